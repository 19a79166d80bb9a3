"""
Admin accounts and tab-level permissions.
"""

import logging
from typing import Dict, Any, List, Optional

from ..database.mongo_service import MongoService, get_mongo_service, ADMINS, ASCENDING
from ..errors import ValidationError, NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)

SUPERADMIN = "superadmin"
REGULAR = "regular"

# Tab -> required task. None means always visible; stats is handled separately.
TAB_PERMISSIONS = {
    "dashboard": None,
    "profile": None,
    "appointments": "appointments",
    "concerns": "concerns",
    "projects": "projects",
    "medical": "medical",
    "updates": "updates",
    "stats": None,
}
SUPERADMIN_ONLY_TABS = {"stats"}

AVAILABLE_TASKS = {
    "appointments": {"name": "Appointments", "description": "Approve and schedule appointments"},
    "concerns": {"name": "Concerns", "description": "Review and resolve citizen concerns"},
    "projects": {"name": "Projects", "description": "Create and update office projects"},
    "medical": {"name": "Medical Applications", "description": "Review assistance applications"},
    "updates": {"name": "Updates", "description": "Publish news posts"},
}


def can_access_tab(permissions: Dict[str, Any], tab: str) -> bool:
    if tab not in TAB_PERMISSIONS:
        return False
    if permissions.get("isSuperAdmin"):
        return True
    if tab in SUPERADMIN_ONLY_TABS:
        return False
    required = TAB_PERMISSIONS[tab]
    return required is None or required in permissions.get("tasks", [])


def accessible_tabs(permissions: Dict[str, Any]) -> List[str]:
    return [tab for tab in TAB_PERMISSIONS if can_access_tab(permissions, tab)]


class AdminService:

    def __init__(self, mongo: Optional[MongoService] = None):
        self.mongo = mongo or get_mongo_service()

    def get_admin(self, admin_id: str) -> Dict[str, Any]:
        admin = self.mongo.get(ADMINS, admin_id)
        if admin is None:
            raise NotFoundError("Admin not found")
        return admin

    def get_permissions(self, admin_id: Optional[str]) -> Dict[str, Any]:
        """Unknown or missing admins get no tasks and no superadmin flag."""
        admin = self.mongo.get(ADMINS, admin_id) if admin_id else None
        if not admin:
            return {"isSuperAdmin": False, "tasks": []}
        return {"isSuperAdmin": admin.get("adminType") == SUPERADMIN, "tasks": list(admin.get("tasks") or [])}

    def require_task(self, admin_id: Optional[str], tab: str) -> Dict[str, Any]:
        """Permissions of a known admin allowed on `tab`; anyone else is refused."""
        if not admin_id or self.mongo.get(ADMINS, admin_id) is None:
            raise PermissionDeniedError("Admin access required")
        permissions = self.get_permissions(admin_id)
        if not can_access_tab(permissions, tab):
            logger.warning(f"Admin {admin_id} denied access to {tab}")
            raise PermissionDeniedError(f"You do not have access to {tab}")
        return permissions

    def require_superadmin(self, admin_id: Optional[str]) -> None:
        if not self.get_permissions(admin_id)["isSuperAdmin"]:
            raise PermissionDeniedError("Only superadmins can manage admin accounts")

    def add_admin(self, phone: str, actor: str) -> str:
        phone = (phone or "").strip()
        if not phone:
            raise ValidationError("Please enter a valid phone number", fields=["phone"])
        if not self.get_permissions(actor)["isSuperAdmin"]:
            raise PermissionDeniedError("Only superadmins can create new admin accounts")
        if self.mongo.count(ADMINS, {"phone": phone}):
            raise ValidationError("This phone number is already registered as an admin", fields=["phone"])

        doc_id = self.mongo.add(ADMINS, {
            "phone": phone,
            "name": "New Admin",
            "position": "Administrator",
            "addedBy": actor,
            "adminType": REGULAR,
            "tasks": [],
        })
        self.mongo.log_activity("admin_added", f"New admin added ({phone})", actor, adminId=doc_id)
        return doc_id

    def update_admin_tasks(self, admin_id: str, tasks: List[str], actor: str) -> None:
        self.require_superadmin(actor)
        unknown = [t for t in tasks if t not in AVAILABLE_TASKS]
        if unknown:
            raise ValidationError(f"Unknown tasks: {', '.join(unknown)}")
        self.get_admin(admin_id)
        self.mongo.update(ADMINS, admin_id, {"tasks": list(dict.fromkeys(tasks))})
        self.mongo.log_activity("admin_tasks", f"Permissions updated for admin {admin_id}", actor, adminId=admin_id)

    def update_profile(self, admin_id: str, name: str, position: str, phone: Optional[str] = None,
                       avatar_url: Optional[str] = None) -> Dict[str, Any]:
        name, position = (name or "").strip(), (position or "").strip()
        if not name:
            raise ValidationError("Please enter your name", fields=["name"])
        if not position:
            raise ValidationError("Please enter your position", fields=["position"])

        updates: Dict[str, Any] = {"name": name, "position": position}
        if phone is not None:
            updates["phone"] = phone.strip()
        if avatar_url:
            updates["avatarUrl"] = avatar_url
        if not self.mongo.update(ADMINS, admin_id, updates):
            raise NotFoundError("Admin not found")
        return self.get_admin(admin_id)

    def list_admins(self) -> List[Dict[str, Any]]:
        return self.mongo.find(ADMINS, sort=[("createdAt", ASCENDING)])


# Global service instance
_admin_service = None


def get_admin_service() -> AdminService:
    global _admin_service
    if _admin_service is None:
        _admin_service = AdminService()
    return _admin_service
