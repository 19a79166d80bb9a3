"""
Tests for services/project_service.py
"""
import pytest

from backend.constituency_api.errors import ValidationError, NotFoundError
from backend.constituency_api.database.mongo_service import ACTIVITIES
from backend.constituency_api.services.project_service import (
    ProjectService,
    initial_project_form,
    validate_project_form,
    FORM_FIELDS,
)


@pytest.fixture
def service(mongo):
    return ProjectService(mongo)


def _road_project(**overrides):
    form = {
        "title": "Road widening, National Road",
        "projectType": "infrastructure",
        "contractor": "ABC Builders",
        "location": "Putatan",
        "contractAmount": "1500000",
    }
    form.update(overrides)
    return form


# ── form helpers ──────────────────────────────────────────────────────────────

def test_initial_form_defaults():
    form = initial_project_form()
    assert set(form) == set(FORM_FIELDS)
    assert form["accomplishment"] == "0%"
    assert form["status"] == "active"
    assert form["projectType"] == "infrastructure"
    assert form["title"] == ""


def test_initial_form_from_project_stringifies_amount():
    form = initial_project_form({"title": "Clinic", "contractAmount": 250000})
    assert form["title"] == "Clinic"
    assert form["contractAmount"] == "250000"


def test_validate_required_by_type():
    errors = validate_project_form({"title": "Training", "projectType": "youth"})
    assert errors == {
        "partnerAgency": "Partner Agency is required",
        "targetParticipants": "Target Participants is required",
        "programType": "Program Type is required",
        "venue": "Venue is required",
        "trainingHours": "Training Hours is required",
    }


def test_validate_numeric_and_dates():
    errors = validate_project_form(_road_project(
        contractAmount="lots",
        budget="12.5k",
        startDate="2026-05-01",
        endDate="2026-04-01",
    ))
    assert errors == {
        "contractAmount": "Invalid numeric value",
        "endDate": "End date must be after start date",
    }


def test_validate_title_required():
    assert validate_project_form(_road_project(title=" "))["title"] == "Project title is required"


# ── persistence ───────────────────────────────────────────────────────────────

def test_create_and_get(service, mongo):
    project_id = service.create_project(_road_project(), actor="super-1")
    project = service.get_project(project_id)
    assert project["status"] == "active"
    assert project["accomplishment"] == "0%"
    assert mongo.count(ACTIVITIES, {"type": "project_created"}) == 1


def test_create_invalid_reports_fields(service):
    with pytest.raises(ValidationError) as excinfo:
        service.create_project(_road_project(contractor=""))
    assert excinfo.value.fields == {"contractor": "Contractor is required"}
    assert excinfo.value.to_dict()["details"]["errors"] == ["Contractor is required"]


def test_create_unknown_status(service):
    with pytest.raises(ValidationError):
        service.create_project(_road_project(status="paused"))


def test_update_merges_existing(service):
    project_id = service.create_project(_road_project())
    updated = service.update_project(project_id, {"accomplishment": "45%", "status": "completed"})
    assert updated["accomplishment"] == "45%"
    assert updated["contractor"] == "ABC Builders"


def test_update_validates_merged_form(service):
    project_id = service.create_project(_road_project())
    with pytest.raises(ValidationError):
        service.update_project(project_id, {"location": ""})


def test_delete_and_list(service):
    keep = service.create_project(_road_project(title="Keep", status="completed"))
    drop = service.create_project(_road_project(title="Drop"))
    service.delete_project(drop, actor="super-1")

    with pytest.raises(NotFoundError):
        service.get_project(drop)
    assert [p["id"] for p in service.list_projects()] == [keep]
    assert service.list_projects("active") == []
    assert len(service.list_projects("completed")) == 1
