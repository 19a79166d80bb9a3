"""
News posts ("updates") published by admins, with cursor pagination.
"""

import logging
from typing import Dict, Any, List, Optional

from ..database.mongo_service import MongoService, get_mongo_service, POSTS, ADMINS, DESCENDING
from ..errors import ValidationError, NotFoundError
from ..utils.dates import to_datetime
from ..utils.formatting import priority_color, priority_text

logger = logging.getLogger(__name__)

CATEGORIES = ["All", "Announcement", "Event", "Maintenance", "General"]
PRIORITIES = ["High", "Medium", "Low"]
PAGE_SIZE = 10

POST_FIELDS = ["title", "content", "category", "priority", "imageUrl"]
PAGE_ORDER = [("createdAt", DESCENDING), ("_id", DESCENDING)]
_CURSOR_SEP = "|"


def _make_cursor(post: Dict[str, Any]) -> Optional[str]:
    created = to_datetime(post.get("createdAt"))
    if created is None:
        return None
    return f"{created.isoformat()}{_CURSOR_SEP}{post['id']}"


def _parse_cursor(cursor: str):
    stamp, sep, post_id = str(cursor).rpartition(_CURSOR_SEP)
    after = to_datetime(stamp) if sep else None
    if after is None or not post_id:
        raise ValidationError("Invalid page cursor")
    return after, post_id


def _validate(data: Dict[str, Any]) -> None:
    if "title" in data and not str(data["title"] or "").strip():
        raise ValidationError("Title is required", fields=["title"])
    if "content" in data and not str(data["content"] or "").strip():
        raise ValidationError("Content is required", fields=["content"])
    category = data.get("category")
    if category is not None and (category not in CATEGORIES or category == "All"):
        raise ValidationError(f"Unknown post category: {category}")
    priority = data.get("priority")
    if priority is not None and priority not in PRIORITIES:
        raise ValidationError(f"Unknown post priority: {priority}")


class PostService:

    def __init__(self, mongo: Optional[MongoService] = None):
        self.mongo = mongo or get_mongo_service()

    def author_profile(self, admin_id: Optional[str]) -> Dict[str, Any]:
        fallback = {"name": "Admin", "avatarUrl": None}
        if not admin_id:
            return fallback
        admin = self.mongo.get(ADMINS, admin_id)
        if not admin:
            return fallback
        return {"name": admin.get("name") or "Admin", "avatarUrl": admin.get("avatarUrl")}

    def _decorate(self, post: Dict[str, Any]) -> Dict[str, Any]:
        post["author"] = self.author_profile(post.get("adminId"))
        post["priorityColor"] = priority_color(post.get("priority"))
        post["priorityText"] = priority_text(post.get("priority"))
        return post

    def create_post(self, admin_id: str, form: Dict[str, Any]) -> str:
        data = {k: form.get(k) for k in POST_FIELDS}
        data["title"] = data["title"] or ""
        data["content"] = data["content"] or ""
        data["category"] = data["category"] or "Announcement"
        data["priority"] = data["priority"] or "Medium"
        _validate(data)
        data["title"] = data["title"].strip()
        data["content"] = data["content"].strip()
        data["adminId"] = admin_id

        doc_id = self.mongo.add(POSTS, data)
        self.mongo.log_activity("post_created", f"Post published: {data['title']}", admin_id, postId=doc_id)
        return doc_id

    def get_post(self, post_id: str) -> Dict[str, Any]:
        post = self.mongo.get(POSTS, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return self._decorate(post)

    def update_post(self, post_id: str, updates: Dict[str, Any], actor: Optional[str] = None) -> Dict[str, Any]:
        data = {k: v for k, v in updates.items() if k in POST_FIELDS and v is not None}
        _validate(data)
        if not self.mongo.update(POSTS, post_id, data):
            raise NotFoundError("Post not found")
        self.mongo.log_activity("post_updated", "Post updated", actor, postId=post_id)
        return self.get_post(post_id)

    def delete_post(self, post_id: str, actor: Optional[str] = None) -> None:
        if not self.mongo.delete(POSTS, post_id):
            raise NotFoundError("Post not found")
        self.mongo.log_activity("post_deleted", "Post deleted", actor, postId=post_id)

    def list_posts(self, category: str = "All", cursor: Optional[Any] = None,
                   page_size: int = PAGE_SIZE) -> Dict[str, Any]:
        """One page, newest first.

        `cursor` is the `nextCursor` of the previous page: the last post's
        createdAt and id, so posts sharing a timestamp are neither skipped nor
        repeated.
        """
        filters: Dict[str, Any] = {}
        if category and category != "All":
            filters["category"] = category
        if cursor:
            after, after_id = _parse_cursor(cursor)
            filters["$or"] = [
                {"createdAt": {"$lt": after}},
                {"createdAt": after, "_id": {"$lt": after_id}},
            ]

        posts = self.mongo.find(POSTS, filters, sort=PAGE_ORDER, limit=page_size)
        next_cursor = _make_cursor(posts[-1]) if len(posts) == page_size else None
        posts = [self._decorate(p) for p in posts]
        return {"posts": posts, "nextCursor": next_cursor, "hasMore": next_cursor is not None}

    def search_posts(self, query: str, category: str = "All") -> List[Dict[str, Any]]:
        needle = (query or "").strip().lower()
        filters = {"category": category} if category and category != "All" else None
        posts = self.mongo.find(POSTS, filters, sort=[("createdAt", DESCENDING)])
        if needle:
            posts = [
                p for p in posts
                if needle in (p.get("title") or "").lower() or needle in (p.get("content") or "").lower()
            ]
        return [self._decorate(p) for p in posts]


# Global service instance
_post_service = None


def get_post_service() -> PostService:
    global _post_service
    if _post_service is None:
        _post_service = PostService()
    return _post_service
