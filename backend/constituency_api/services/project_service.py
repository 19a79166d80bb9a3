"""
Office projects (infrastructure works and community programs).
"""

import re
import logging
from typing import Dict, Any, List, Optional

from ..database.mongo_service import MongoService, get_mongo_service, PROJECTS, DESCENDING
from ..errors import ValidationError, NotFoundError
from ..utils.dates import to_date
from ..utils.formatting import project_status_color

logger = logging.getLogger(__name__)

PROJECT_STATUSES = ["active", "inactive", "completed"]

PROJECT_TYPE_REQUIRED_FIELDS = {
    "infrastructure": ["contractor", "location"],
    "educational": ["partnerAgency", "targetParticipants", "programType", "venue", "startDate", "endDate"],
    "health": ["partnerAgency", "beneficiaries", "programType", "venue", "startDate"],
    "livelihood": ["partnerAgency", "beneficiaries", "programType", "budget", "startDate"],
    "social": ["partnerAgency", "beneficiaries", "programType", "budget", "venue"],
    "environmental": ["partnerAgency", "targetParticipants", "programType", "location", "materials"],
    "sports": ["partnerAgency", "targetParticipants", "programType", "venue", "equipment"],
    "disaster": ["partnerAgency", "beneficiaries", "programType", "budget", "location"],
    "youth": ["partnerAgency", "targetParticipants", "programType", "venue", "trainingHours"],
    "senior": ["partnerAgency", "beneficiaries", "programType", "venue", "budget"],
}

NUMERIC_FIELDS = ["contractAmount", "budget", "targetParticipants", "beneficiaries", "trainingHours"]

FORM_FIELDS = [
    "title", "contractor", "contractAmount", "accomplishment", "location", "remarks",
    "status", "imageUrl", "projectType", "beneficiaries", "startDate", "endDate", "budget",
    "partnerAgency", "targetParticipants", "programType", "equipment", "materials",
    "trainingHours", "venue",
]

_FORM_DEFAULTS = {"accomplishment": "0%", "status": "active", "projectType": "infrastructure"}


def _label(field: str) -> str:
    """contractAmount -> Contract Amount"""
    spaced = re.sub(r"([A-Z])", r" \1", field)
    return spaced[:1].upper() + spaced[1:]


def _is_number(value: Any) -> bool:
    if isinstance(value, (int, float)):
        return True
    match = re.match(r"^\s*[-+]?(\d+\.?\d*|\.\d+)", str(value))
    return match is not None


def initial_project_form(project: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Blank create form, or the edit form prefilled from an existing project."""
    project = project or {}
    form = {}
    for field in FORM_FIELDS:
        value = project.get(field)
        if value in (None, ""):
            value = _FORM_DEFAULTS.get(field, "")
        form[field] = str(value) if field == "contractAmount" and value != "" else value
    return form


def validate_project_form(form: Dict[str, Any]) -> Dict[str, str]:
    """Field -> message for every problem; empty when the form is valid."""
    errors: Dict[str, str] = {}

    if not str(form.get("title") or "").strip():
        errors["title"] = "Project title is required"
    if not form.get("projectType"):
        errors["projectType"] = "Project type is required"

    for field in PROJECT_TYPE_REQUIRED_FIELDS.get(form.get("projectType"), []):
        if not str(form.get(field) or "").strip():
            errors[field] = f"{_label(field)} is required"

    for field in NUMERIC_FIELDS:
        value = form.get(field)
        if value not in (None, "") and not _is_number(value):
            errors[field] = "Invalid numeric value"

    start, end = form.get("startDate"), form.get("endDate")
    start_day, end_day = to_date(start), to_date(end)
    if start and start_day is None:
        errors["startDate"] = "Invalid start date"
    if end and end_day is None:
        errors["endDate"] = "Invalid end date"
    if start_day and end_day and start_day > end_day:
        errors["endDate"] = "End date must be after start date"

    return errors


class ProjectService:

    def __init__(self, mongo: Optional[MongoService] = None):
        self.mongo = mongo or get_mongo_service()

    def _clean(self, form: Dict[str, Any]) -> Dict[str, Any]:
        data = {k: v for k, v in form.items() if k in FORM_FIELDS}
        if data.get("status") and data["status"] not in PROJECT_STATUSES:
            raise ValidationError(f"Unknown project status: {data['status']}")
        return data

    def create_project(self, form: Dict[str, Any], actor: Optional[str] = None) -> str:
        merged = {**initial_project_form(), **form}
        errors = validate_project_form(merged)
        if errors:
            raise ValidationError("Please fix the highlighted fields", errors=list(errors.values()), fields=errors)

        doc_id = self.mongo.add(PROJECTS, self._clean(merged))
        self.mongo.log_activity("project_created", f"Project created: {merged['title']}", actor, projectId=doc_id)
        return doc_id

    def get_project(self, project_id: str) -> Dict[str, Any]:
        project = self.mongo.get(PROJECTS, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    def update_project(self, project_id: str, updates: Dict[str, Any], actor: Optional[str] = None) -> Dict[str, Any]:
        current = self.get_project(project_id)
        merged = {**initial_project_form(current), **updates}
        errors = validate_project_form(merged)
        if errors:
            raise ValidationError("Please fix the highlighted fields", errors=list(errors.values()), fields=errors)

        self.mongo.update(PROJECTS, project_id, self._clean(updates))
        self.mongo.log_activity("project_updated", f"Project updated: {merged['title']}", actor, projectId=project_id)
        return self.get_project(project_id)

    def delete_project(self, project_id: str, actor: Optional[str] = None) -> None:
        project = self.get_project(project_id)
        self.mongo.delete(PROJECTS, project_id)
        self.mongo.log_activity("project_deleted", f"Project deleted: {project.get('title')}", actor,
                                projectId=project_id)

    def list_projects(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        filters = {"status": status} if status and status != "all" else None
        rows = self.mongo.find(PROJECTS, filters, sort=[("createdAt", DESCENDING)])
        for row in rows:
            row["statusColor"] = project_status_color(row.get("status"))
        return rows


# Global service instance
_project_service = None


def get_project_service() -> ProjectService:
    global _project_service
    if _project_service is None:
        _project_service = ProjectService()
    return _project_service
