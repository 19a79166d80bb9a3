"""
MongoDB service for office records, the activity feed, and caching.
Every collection the service layer touches goes through this wrapper.
"""

import uuid
import logging
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional, Sequence, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from ..errors import DatabaseUnavailableError
from .database_config import get_mongo_collection

logger = logging.getLogger(__name__)

APPOINTMENTS = "appointments"
CONCERNS = "concerns"
PROJECTS = "projects"
MEDICAL_APPLICATIONS = "medicalApplications"
POSTS = "posts"
ADMINS = "admins"
USERS = "users"
ACTIVITIES = "activities"
BLOCKED_DATES = "blockedDates"
CACHE = "cache"

SortSpec = Sequence[Tuple[str, int]]


def _to_record(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Map a stored document to the API shape (`_id` becomes `id`)."""
    if document is None:
        return None
    record = dict(document)
    record["id"] = str(record.pop("_id"))
    return record


class MongoService:
    """Service for MongoDB operations."""

    def _get_collection(self, collection_name: str):
        """Get MongoDB collection or fail loudly when the store is down."""
        collection = get_mongo_collection(collection_name)
        if collection is None:
            logger.error(f"MongoDB collection {collection_name} not available")
            raise DatabaseUnavailableError("The document database is not available")
        return collection

    def add(self, collection_name: str, data: Dict[str, Any]) -> str:
        """Insert a new document and return its generated id."""
        collection = self._get_collection(collection_name)
        doc_id = str(uuid.uuid4())
        document = {k: v for k, v in data.items() if k != "id"}
        document["_id"] = doc_id
        document.setdefault("createdAt", datetime.utcnow())

        try:
            collection.insert_one(document)
        except PyMongoError as e:
            logger.error(f"Failed to add document to {collection_name}: {e}")
            raise DatabaseUnavailableError(f"Failed to save to {collection_name}") from e

        logger.info(f"Document added to {collection_name}: {doc_id}")
        return doc_id

    def set(self, collection_name: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Create or replace a document under a known id."""
        collection = self._get_collection(collection_name)
        document = {k: v for k, v in data.items() if k != "id"}
        document["_id"] = doc_id

        try:
            collection.replace_one({"_id": doc_id}, document, upsert=True)
        except PyMongoError as e:
            logger.error(f"Failed to set document {collection_name}/{doc_id}: {e}")
            raise DatabaseUnavailableError(f"Failed to save to {collection_name}") from e

    def get(self, collection_name: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Retrieve a single document by id."""
        collection = self._get_collection(collection_name)
        try:
            return _to_record(collection.find_one({"_id": doc_id}))
        except PyMongoError as e:
            logger.error(f"Failed to retrieve {collection_name}/{doc_id}: {e}")
            raise DatabaseUnavailableError(f"Failed to load from {collection_name}") from e

    def update(self, collection_name: str, doc_id: str, updates: Dict[str, Any],
               touch: bool = True) -> bool:
        """Apply field updates; returns False when no document matched."""
        collection = self._get_collection(collection_name)
        fields = {k: v for k, v in updates.items() if k != "id"}
        if touch:
            fields["updatedAt"] = datetime.utcnow()

        try:
            result = collection.update_one({"_id": doc_id}, {"$set": fields})
        except PyMongoError as e:
            logger.error(f"Failed to update {collection_name}/{doc_id}: {e}")
            raise DatabaseUnavailableError(f"Failed to update {collection_name}") from e

        if result.matched_count:
            logger.info(f"Document updated {collection_name}/{doc_id}: {sorted(fields)}")
        return bool(result.matched_count)

    def delete(self, collection_name: str, doc_id: str) -> bool:
        collection = self._get_collection(collection_name)
        try:
            result = collection.delete_one({"_id": doc_id})
        except PyMongoError as e:
            logger.error(f"Failed to delete {collection_name}/{doc_id}: {e}")
            raise DatabaseUnavailableError(f"Failed to delete from {collection_name}") from e

        if result.deleted_count:
            logger.info(f"Document deleted {collection_name}/{doc_id}")
        return bool(result.deleted_count)

    def find(self, collection_name: str, filters: Optional[Dict[str, Any]] = None,
             sort: Optional[SortSpec] = None, limit: int = 0) -> List[Dict[str, Any]]:
        """Run a simple equality/range/`$in` query with optional ordering."""
        collection = self._get_collection(collection_name)
        try:
            cursor = collection.find(filters or {})
            if sort:
                cursor = cursor.sort(list(sort))
            if limit:
                cursor = cursor.limit(limit)
            return [_to_record(d) for d in cursor]
        except PyMongoError as e:
            logger.error(f"Failed to query {collection_name}: {e}")
            raise DatabaseUnavailableError(f"Failed to load from {collection_name}") from e

    def count(self, collection_name: str, filters: Optional[Dict[str, Any]] = None) -> int:
        collection = self._get_collection(collection_name)
        try:
            return collection.count_documents(filters or {})
        except PyMongoError as e:
            logger.error(f"Failed to count {collection_name}: {e}")
            raise DatabaseUnavailableError(f"Failed to count {collection_name}") from e

    def watch(self, collection_name: str, max_await_time_ms: int = 1000):
        """Open a change stream on a collection (replica set or Atlas only)."""
        collection = self._get_collection(collection_name)
        try:
            return collection.watch(max_await_time_ms=max_await_time_ms)
        except PyMongoError as e:
            logger.error(f"Failed to watch {collection_name}: {e}")
            raise DatabaseUnavailableError(f"Live updates unavailable for {collection_name}") from e

    def log_activity(self, activity_type: str, description: str,
                     actor: Optional[str] = None, **extra) -> Optional[str]:
        """Append to the activity feed. A failed write is logged, not raised."""
        try:
            collection = self._get_collection(ACTIVITIES)
            document = {
                "_id": str(uuid.uuid4()),
                "type": activity_type,
                "description": description,
                "actor": actor or "system",
                "timestamp": datetime.utcnow(),
                **extra,
            }
            collection.insert_one(document)
            logger.debug(f"Activity logged: {activity_type}")
            return document["_id"]
        except (PyMongoError, DatabaseUnavailableError) as e:
            logger.error(f"Failed to log activity {activity_type}: {e}")
            return None

    def recent_activities(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self.find(ACTIVITIES, sort=[("timestamp", DESCENDING)], limit=limit)

    def cache_set(self, key: str, value: Any, ttl_seconds: int = 3600) -> bool:
        """Set cache value with TTL."""
        try:
            collection = self._get_collection(CACHE)
            expire_at = datetime.utcnow() + timedelta(seconds=ttl_seconds)

            document = {
                "_id": key,
                "value": value,
                "expire_at": expire_at,
                "created_at": datetime.utcnow()
            }

            collection.replace_one({"_id": key}, document, upsert=True)
            collection.create_index("expire_at", expireAfterSeconds=0)
            return True

        except (PyMongoError, DatabaseUnavailableError) as e:
            logger.error(f"Failed to set cache: {e}")
            return False

    def cache_get(self, key: str) -> Optional[Any]:
        """Get cache value if not expired."""
        try:
            collection = self._get_collection(CACHE)
            document = collection.find_one({"_id": key})
            if document and document.get("expire_at", datetime.utcnow()) > datetime.utcnow():
                return document.get("value")
            return None

        except (PyMongoError, DatabaseUnavailableError) as e:
            logger.error(f"Failed to get cache: {e}")
            return None

    def cache_delete(self, key: str) -> None:
        try:
            self._get_collection(CACHE).delete_one({"_id": key})
        except (PyMongoError, DatabaseUnavailableError) as e:
            logger.error(f"Failed to clear cache {key}: {e}")


# Global service instance
_mongo_service = None


def get_mongo_service() -> MongoService:
    """Get or create the global MongoDB service instance."""
    global _mongo_service
    if _mongo_service is None:
        _mongo_service = MongoService()
    return _mongo_service


__all__ = [
    "MongoService", "get_mongo_service", "ASCENDING", "DESCENDING",
    "APPOINTMENTS", "CONCERNS", "PROJECTS", "MEDICAL_APPLICATIONS", "POSTS",
    "ADMINS", "USERS", "ACTIVITIES", "BLOCKED_DATES", "CACHE",
]
