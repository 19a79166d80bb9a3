"""
Admin dashboard summary: counters, activity feed, pending appointments.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Any, Optional

from ..config import get_config
from ..database.mongo_service import (
    MongoService,
    get_mongo_service,
    APPOINTMENTS,
    CONCERNS,
    PROJECTS,
    MEDICAL_APPLICATIONS,
    ASCENDING,
)
from ..errors import DatabaseUnavailableError
from ..utils.dates import to_datetime
from ..utils.formatting import format_time_ago, format_appointment_datetime

logger = logging.getLogger(__name__)

CACHE_KEY = "dashboard:summary"

COUNTERS = {
    "pendingAppointments": (APPOINTMENTS, {"status": "Pending"}),
    "unresolvedConcerns": (CONCERNS, {"status": {"$in": ["Pending", "In Progress"]}}),
    "activeProjects": (PROJECTS, {"status": "active"}),
    "pendingMedical": (MEDICAL_APPLICATIONS, {"status": {"$in": ["Pending", "pending"]}}),
}


class DashboardService:

    def __init__(self, mongo: Optional[MongoService] = None):
        self.mongo = mongo or get_mongo_service()

    def _count(self, name: str) -> int:
        collection, filters = COUNTERS[name]
        try:
            return self.mongo.count(collection, filters)
        except DatabaseUnavailableError as e:
            logger.error(f"Dashboard count {name} failed: {e}")
            return 0

    def counts(self) -> Dict[str, int]:
        with ThreadPoolExecutor(max_workers=len(COUNTERS)) as pool:
            futures = {name: pool.submit(self._count, name) for name in COUNTERS}
            return {name: future.result() for name, future in futures.items()}

    def recent_activities(self, limit: int = 10):
        activities = self.mongo.recent_activities(limit)
        for activity in activities:
            activity["time"] = format_time_ago(to_datetime(activity.get("timestamp")), just_now=True)
        return activities

    def pending_appointments(self):
        rows = self.mongo.find(APPOINTMENTS, {"status": "Pending"}, sort=[("date", ASCENDING)])
        for row in rows:
            row["formattedDateTime"] = format_appointment_datetime(row.get("date"), row.get("time") or "")
        return rows

    def summary(self, force_refresh: bool = False) -> Dict[str, Any]:
        if force_refresh:
            self.mongo.cache_delete(CACHE_KEY)
        else:
            cached = self.mongo.cache_get(CACHE_KEY)
            if cached is not None:
                return {**cached, "cached": True}

        data = {
            "stats": self.counts(),
            "activities": self.recent_activities(),
            "appointments": self.pending_appointments(),
        }
        self.mongo.cache_set(CACHE_KEY, data, ttl_seconds=get_config().dashboard_cache_seconds)
        return {**data, "cached": False}


# Global service instance
_dashboard_service = None


def get_dashboard_service() -> DashboardService:
    global _dashboard_service
    if _dashboard_service is None:
        _dashboard_service = DashboardService()
    return _dashboard_service
