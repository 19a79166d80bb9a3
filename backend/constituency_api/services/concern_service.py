"""
Citizen concerns: submission, the admin open queue, status moves.
"""

import logging
from typing import Dict, Any, List, Optional, Iterable

from ..database.mongo_service import MongoService, get_mongo_service, CONCERNS, DESCENDING
from ..errors import ValidationError, NotFoundError
from ..utils.dates import to_datetime
from ..utils.formatting import format_time_ago, concern_status_color, concern_category_color

logger = logging.getLogger(__name__)

CATEGORIES = ["General", "Road", "Garbage", "Water", "Electricity"]
STATUSES = ["Pending", "In Progress", "Resolved"]
OPEN_STATUSES = ["Pending", "In Progress"]

# Resolved is terminal
ALLOWED_TRANSITIONS = {
    "Pending": {"In Progress", "Resolved"},
    "In Progress": {"Resolved"},
    "Resolved": set(),
}


def filter_concerns(concerns: Iterable[Dict[str, Any]], status: str = "all",
                    query: str = "") -> List[Dict[str, Any]]:
    """Status filter ("all" keeps everything) plus free text over subject, description, category."""
    status = (status or "all").lower()
    needle = (query or "").strip().lower()
    results = []
    for concern in concerns:
        if status != "all" and (concern.get("status") or "").lower() != status:
            continue
        if needle:
            haystack = " ".join(str(concern.get(k) or "") for k in ("subject", "description", "category")).lower()
            if needle not in haystack:
                continue
        results.append(concern)
    return results


def status_distribution(concerns: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    counts = {status: 0 for status in STATUSES}
    for concern in concerns:
        status = concern.get("status")
        if status in counts:
            counts[status] += 1
    return counts


class ConcernService:

    def __init__(self, mongo: Optional[MongoService] = None):
        self.mongo = mongo or get_mongo_service()

    def submit_concern(self, user_id: str, user_email: Optional[str], form: Dict[str, Any]) -> str:
        subject = (form.get("subject") or "").strip()
        description = (form.get("description") or "").strip()
        if not subject or not description:
            raise ValidationError("Please fill in all required fields",
                                  fields=[k for k, v in (("subject", subject), ("description", description)) if not v])

        category = form.get("category") or "General"
        if category not in CATEGORIES:
            raise ValidationError(f"Unknown concern category: {category}")

        doc_id = self.mongo.add(CONCERNS, {
            "userId": user_id,
            "userEmail": user_email,
            "category": category,
            "subject": subject,
            "description": description,
            "location": form.get("location"),
            "imageUrl": form.get("imageUrl"),
            "status": "Pending",
        })
        logger.info(f"Concern {doc_id} submitted by {user_id} ({category})")
        return doc_id

    def list_user_concerns(self, user_id: str) -> List[Dict[str, Any]]:
        return self.mongo.find(CONCERNS, {"userId": user_id}, sort=[("createdAt", DESCENDING)])

    def list_open_concerns(self) -> List[Dict[str, Any]]:
        rows = self.mongo.find(CONCERNS, {"status": {"$in": OPEN_STATUSES}}, sort=[("createdAt", DESCENDING)])
        for row in rows:
            row["timeAgo"] = format_time_ago(to_datetime(row.get("createdAt")))
            row["statusColor"] = concern_status_color(row.get("status"))
            row["categoryColor"] = concern_category_color(row.get("category"))
        return rows

    def get_concern(self, concern_id: str) -> Dict[str, Any]:
        concern = self.mongo.get(CONCERNS, concern_id)
        if concern is None:
            raise NotFoundError("Concern not found")
        return concern

    def update_concern_status(self, concern_id: str, new_status: str, actor: Optional[str] = None) -> None:
        concern = self.get_concern(concern_id)
        current = concern.get("status") or "Pending"
        if new_status not in STATUSES:
            raise ValidationError(f"Unknown concern status: {new_status}")
        if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise ValidationError(f"Cannot move a concern from {current} to {new_status}")

        self.mongo.update(CONCERNS, concern_id, {"status": new_status})
        self.mongo.log_activity("concern_status", f"Concern marked as {new_status.lower()}", actor,
                                concernId=concern_id)


# Global service instance
_concern_service = None


def get_concern_service() -> ConcernService:
    global _concern_service
    if _concern_service is None:
        _concern_service = ConcernService()
    return _concern_service
