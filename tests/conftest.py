"""
Shared fixtures for the constituency office service tests.

Every test gets a fresh in-memory MongoDB (mongomock) and a throwaway SQLite
file for the secure store. Service singletons are reset so no state leaks
between tests.
"""
import datetime as dt

import mongomock
import pytest

from backend.constituency_api.config import update_config
from backend.constituency_api.database import set_mongo_client, close_databases
from backend.constituency_api.database.mongo_service import MongoService, ADMINS, USERS
from backend.constituency_api.services import (
    pin_service,
    appointment_service,
    concern_service,
    project_service,
    medical_service,
    post_service,
    admin_service,
    dashboard_service,
)
from backend.constituency_api.chat import help_service
from backend.constituency_api.utils.dates import is_date_unavailable

SINGLETONS = [
    (pin_service, "_pin_service"),
    (pin_service, "_pin_change_sessions"),
    (appointment_service, "_appointment_service"),
    (concern_service, "_concern_service"),
    (project_service, "_project_service"),
    (medical_service, "_medical_service"),
    (post_service, "_post_service"),
    (admin_service, "_admin_service"),
    (dashboard_service, "_dashboard_service"),
    (help_service, "_help_chat_service"),
]


# ── Databases ─────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    for module, name in SINGLETONS:
        monkeypatch.setattr(module, name, None)
    yield


@pytest.fixture
def mongo(tmp_path, monkeypatch):
    """MongoService over mongomock, plus a temporary SQLite secure store."""
    monkeypatch.delenv("POSTGRES_URL", raising=False)
    close_databases()
    update_config(sqlite_path=str(tmp_path / "secure_store.db"), postgres_url="")
    set_mongo_client(mongomock.MongoClient(), "test_office")
    yield MongoService()
    close_databases()


@pytest.fixture
def admins(mongo):
    """One superadmin and one regular admin who may only handle concerns."""
    mongo.set(ADMINS, "super-1", {
        "name": "Ana Reyes",
        "position": "Chief of Staff",
        "phone": "09170000001",
        "adminType": "superadmin",
        "tasks": [],
        "avatarUrl": "https://res.cloudinary.com/djisnlxc4/image/upload/ana.jpg",
        "createdAt": dt.datetime(2026, 1, 5),
    })
    mongo.set(ADMINS, "staff-1", {
        "name": "Ben Cruz",
        "position": "Caseworker",
        "phone": "09170000002",
        "adminType": "regular",
        "tasks": ["concerns"],
        "createdAt": dt.datetime(2026, 2, 1),
    })
    return {"super": "super-1", "staff": "staff-1"}


@pytest.fixture
def citizen(mongo):
    mongo.set(USERS, "user-1", {"firstName": "Maria", "lastName": "Santos", "profileImage": None})
    return "user-1"


@pytest.fixture
def open_days():
    """The first five bookable days at least a month out (no weekends or holidays)."""
    days, day = [], dt.date.today() + dt.timedelta(days=30)
    while len(days) < 5:
        if not is_date_unavailable(day):
            days.append(day)
        day += dt.timedelta(days=1)
    return days


@pytest.fixture
def future_day(open_days):
    return open_days[0]


# ── HTTP client ───────────────────────────────────────────────────────────────

@pytest.fixture
def client(mongo):
    from fastapi.testclient import TestClient
    from backend.constituency_api.main import app

    with TestClient(app) as test_client:
        yield test_client
