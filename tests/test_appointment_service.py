"""
Tests for services/appointment_service.py

Booking validation, rescheduling limits, blocked dates, and the admin queue.
"""
import datetime as dt

import pytest

from backend.constituency_api.errors import ValidationError, NotFoundError
from backend.constituency_api.database.mongo_service import APPOINTMENTS, ACTIVITIES
from backend.constituency_api.services.appointment_service import (
    AppointmentService,
    COURTESY,
    FINANCE,
    MAX_DAILY_APPOINTMENTS,
    type_info,
    is_working_time,
    validate_appointment_form,
    split_upcoming_past,
    group_by_time_slot,
    appointment_counts_by_date,
)
from backend.constituency_api.utils.dates import is_holiday

REF = dt.date(2026, 10, 19)


def _finance_form(day, **overrides):
    form = {
        "type": FINANCE,
        "purpose": "Hospital bill assistance",
        "date": day.isoformat(),
        "time": "9:00 AM",
        "patientName": "Jose Santos",
        "processorName": "Maria Santos",
        "selfieUrl": "https://res.cloudinary.com/djisnlxc4/image/upload/selfie.jpg",
    }
    form.update(overrides)
    return form


@pytest.fixture
def service(mongo):
    return AppointmentService(mongo)


# ── pure helpers ──────────────────────────────────────────────────────────────

def test_type_info_by_first_word():
    assert type_info(COURTESY)["label"] == "Courtesy (VIP)"
    assert type_info(FINANCE)["icon"] == "file-invoice-dollar"
    assert type_info("Walk-in")["label"] == "Other"
    assert type_info(None)["label"] == "Other"


def test_is_working_time():
    assert is_working_time("8:00 AM")
    assert is_working_time("4:59 PM")
    assert not is_working_time("11:45 AM")  # lunch break
    assert not is_working_time("5:00 PM")
    assert not is_working_time("7:30 AM")
    assert not is_working_time("noon")


def test_validate_requires_type_and_purpose():
    errors = validate_appointment_form({}, [], [], "user-1", REF)
    assert "Please select appointment type" in errors
    assert "Please enter purpose" in errors


def test_validate_courtesy_needs_no_date():
    form = {"type": COURTESY, "purpose": "Courtesy call"}
    assert validate_appointment_form(form, [], [], "user-1", REF) == []


def test_validate_one_courtesy_per_day():
    existing = [{"userId": "user-1", "isCourtesy": True, "createdAt": dt.datetime(2026, 10, 19, 8)}]
    form = {"type": COURTESY, "purpose": "Courtesy call"}
    errors = validate_appointment_form(form, [], existing, "user-1", REF)
    assert errors == ["You already have a courtesy appointment request for today. Please try again tomorrow."]
    assert validate_appointment_form(form, [], existing, "user-2", REF) == []


def test_validate_finance_fields():
    form = _finance_form(REF, patientName=" ", selfieUrl=None)
    errors = validate_appointment_form(form, [], [], "user-1", REF)
    assert errors == ["Please enter patient name", "Please take a selfie"]


def test_validate_past_and_blocked_dates():
    past = validate_appointment_form(_finance_form(REF - dt.timedelta(days=1)), [], [], "user-1", REF)
    assert "You cannot schedule appointments for past dates" in past

    blocked = [{"date": REF.isoformat(), "reason": "Holiday"}]
    errors = validate_appointment_form(_finance_form(REF), blocked, [], "user-1", REF)
    assert errors == ["The selected date is blocked. Please choose another date."]


def test_validate_weekend_and_holiday():
    saturday = dt.date(2026, 10, 24)
    errors = validate_appointment_form(_finance_form(saturday), [], [], "user-1", REF)
    assert errors == ["Weekends are not available"]

    immaculate_conception = dt.date(2026, 12, 8)  # a Tuesday
    errors = validate_appointment_form(_finance_form(immaculate_conception), [], [], "user-1", REF)
    assert errors == ["Holidays are not available"]


def test_split_upcoming_past():
    appts = [
        {"id": "a", "date": "2026-10-20", "status": "Confirmed"},
        {"id": "b", "date": "2026-10-20", "status": "Cancelled"},
        {"id": "c", "date": "2026-10-01", "status": "Completed"},
        {"id": "d", "status": "Pending"},
    ]
    upcoming, past = split_upcoming_past(appts, REF)
    assert [a["id"] for a in upcoming] == ["a"]
    assert [a["id"] for a in past] == ["b", "c", "d"]


def test_group_by_time_slot():
    grouped = group_by_time_slot([{"time": "9:00 AM"}, {"time": "2:00 PM"}, {"time": "10:30 AM"}])
    assert len(grouped["Morning"]) == 2
    assert len(grouped["Afternoon"]) == 1


def test_appointment_counts_by_date_ignores_cancelled():
    appts = [
        {"date": "2026-10-20", "status": "Pending"},
        {"date": "2026-10-20", "status": "Confirmed"},
        {"date": "2026-10-20", "status": "Cancelled"},
        {"date": "2026-10-21", "status": "Completed"},
    ]
    assert appointment_counts_by_date(appts) == {"2026-10-20": 2, "2026-10-21": 1}


# ── booking ───────────────────────────────────────────────────────────────────

def test_create_finance_appointment(service, future_day):
    appointment = service.create_appointment("user-1", _finance_form(future_day))
    assert appointment["status"] == "Pending"
    assert appointment["isCourtesy"] is False
    assert appointment["date"] == future_day.isoformat()
    assert appointment["patientName"] == "Jose Santos"


def test_create_courtesy_appointment_has_no_slot(service):
    appointment = service.create_appointment("user-1", {"type": COURTESY, "purpose": "Visit"})
    assert appointment["isCourtesy"] is True
    assert "date" not in appointment


def test_second_courtesy_same_day_rejected(service):
    service.create_appointment("user-1", {"type": COURTESY, "purpose": "Visit"})
    with pytest.raises(ValidationError) as excinfo:
        service.create_appointment("user-1", {"type": COURTESY, "purpose": "Again"})
    assert excinfo.value.errors


def test_create_on_blocked_date_rejected(service, future_day):
    service.block_date(future_day, "Town fiesta", actor="super-1")
    with pytest.raises(ValidationError, match="blocked"):
        service.create_appointment("user-1", _finance_form(future_day))


def _next(start, predicate):
    day = start
    while not predicate(day):
        day += dt.timedelta(days=1)
    return day


def test_create_on_weekend_rejected(service):
    saturday = _next(dt.date.today() + dt.timedelta(days=30),
                     lambda d: d.weekday() == 5 and not is_holiday(d))
    assert not service.is_date_selectable(saturday)
    with pytest.raises(ValidationError, match="Weekends are not available"):
        service.create_appointment("user-1", _finance_form(saturday))
    assert service.list_user_appointments("user-1") == []


def test_create_on_holiday_rejected(service):
    holiday = _next(dt.date.today() + dt.timedelta(days=1),
                    lambda d: is_holiday(d) and d.weekday() < 5)
    with pytest.raises(ValidationError, match="Holidays are not available"):
        service.create_appointment("user-1", _finance_form(holiday))


def test_create_respects_daily_cap(service, mongo, future_day):
    times = ["8:00 AM", "9:00 AM", "10:00 AM", "1:00 PM", "2:00 PM", "3:00 PM"]
    for i, time_value in enumerate(times):
        service.create_appointment(f"user-{i}", _finance_form(future_day, time=time_value))
    assert mongo.count(APPOINTMENTS, {"date": future_day.isoformat()}) == MAX_DAILY_APPOINTMENTS

    with pytest.raises(ValidationError, match="fully booked"):
        service.create_appointment("user-9", _finance_form(future_day, time="4:00 PM"))
    assert mongo.count(APPOINTMENTS, {"date": future_day.isoformat()}) == MAX_DAILY_APPOINTMENTS


def test_create_cancelled_bookings_free_the_day(service, future_day):
    times = ["8:00 AM", "9:00 AM", "10:00 AM", "1:00 PM", "2:00 PM", "3:00 PM"]
    first = None
    for i, time_value in enumerate(times):
        created = service.create_appointment(f"user-{i}", _finance_form(future_day, time=time_value))
        first = first or created
    service.cancel(first["id"], first["userId"])
    assert service.create_appointment("user-9", _finance_form(future_day, time="4:00 PM"))["status"] == "Pending"


def test_create_conflicts_within_hour(service, future_day):
    service.create_appointment("user-1", _finance_form(future_day, time="9:00 AM"))
    with pytest.raises(ValidationError, match="time frame"):
        service.create_appointment("user-1", _finance_form(future_day, time="9:00 AM"))
    with pytest.raises(ValidationError, match="time frame"):
        service.create_appointment("user-1", _finance_form(future_day, time="9:30 AM"))

    assert service.create_appointment("user-2", _finance_form(future_day, time="9:30 AM"))
    assert service.create_appointment("user-1", _finance_form(future_day, time="10:00 AM"))["time"] == "10:00 AM"


def test_create_rejects_unparsable_time(service, future_day):
    with pytest.raises(ValidationError, match="Please select a time"):
        service.create_appointment("user-1", _finance_form(future_day, time="around nine"))


def test_list_user_appointments_sorted(service, future_day, open_days):
    later = open_days[3]
    service.create_appointment("user-1", _finance_form(later))
    service.create_appointment("user-1", _finance_form(future_day))
    service.create_appointment("user-2", _finance_form(future_day))
    rows = service.list_user_appointments("user-1")
    assert [r["date"] for r in rows] == [future_day.isoformat(), later.isoformat()]


# ── blocked dates ─────────────────────────────────────────────────────────────

def test_block_and_unblock(service, mongo, future_day):
    blocked_id = service.block_date(future_day, "Office event", actor="super-1")
    assert not service.is_date_selectable(future_day)
    with pytest.raises(ValidationError, match="already blocked"):
        service.block_date(future_day)

    service.unblock_date(blocked_id, actor="super-1")
    assert service.is_date_selectable(future_day)
    assert mongo.count(ACTIVITIES, {"type": "date_unblocked"}) == 1

    with pytest.raises(NotFoundError):
        service.unblock_date(blocked_id)


def test_block_past_date_rejected(service):
    with pytest.raises(ValidationError):
        service.block_date(dt.date.today() - dt.timedelta(days=1))


# ── reschedule / cancel ───────────────────────────────────────────────────────

def test_reschedule_confirms(service, future_day, open_days):
    appointment = service.create_appointment("user-1", _finance_form(future_day))
    new_day = open_days[1]
    updated = service.reschedule(appointment["id"], "user-1", new_day.isoformat(), "2:00 PM")
    assert updated["date"] == new_day.isoformat()
    assert updated["time"] == "2:00 PM"
    assert updated["status"] == "Confirmed"


def test_reschedule_other_users_appointment(service, future_day):
    appointment = service.create_appointment("user-1", _finance_form(future_day))
    with pytest.raises(NotFoundError):
        service.reschedule(appointment["id"], "user-2", future_day, "2:00 PM")


def test_reschedule_full_day(service, mongo, future_day, open_days):
    target = open_days[2]
    for i in range(MAX_DAILY_APPOINTMENTS):
        mongo.add(APPOINTMENTS, {"userId": f"other-{i}", "date": target.isoformat(),
                                 "time": "9:00 AM", "status": "Confirmed"})
    appointment = service.create_appointment("user-1", _finance_form(future_day))
    with pytest.raises(ValidationError, match="fully booked"):
        service.reschedule(appointment["id"], "user-1", target, "3:00 PM")


def test_reschedule_conflicts_within_hour(service, future_day, open_days):
    target = open_days[2]
    service.create_appointment("user-1", _finance_form(target, time="9:00 AM"))
    appointment = service.create_appointment("user-1", _finance_form(future_day))
    with pytest.raises(ValidationError, match="time frame"):
        service.reschedule(appointment["id"], "user-1", target, "9:45 AM")
    assert service.reschedule(appointment["id"], "user-1", target, "10:00 AM")["time"] == "10:00 AM"


def test_reschedule_refuses_closed_appointments(service, future_day, open_days):
    cancelled = service.create_appointment("user-1", _finance_form(future_day))
    service.cancel(cancelled["id"], "user-1")
    with pytest.raises(ValidationError, match="Only upcoming"):
        service.reschedule(cancelled["id"], "user-1", open_days[1], "2:00 PM")

    done = service.create_appointment("user-1", _finance_form(open_days[2]))
    service.complete(done["id"], actor="super-1")
    with pytest.raises(ValidationError, match="Only upcoming"):
        service.reschedule(done["id"], "user-1", open_days[1], "2:00 PM")
    assert service.list_user_appointments("user-1")[0]["status"] == "Cancelled"


def test_cancel(service, future_day):
    appointment = service.create_appointment("user-1", _finance_form(future_day))
    service.cancel(appointment["id"], "user-1")
    stored = service.list_user_appointments("user-1")[0]
    assert stored["status"] == "Cancelled"
    assert stored["cancelledAt"] is not None


# ── admin queue ───────────────────────────────────────────────────────────────

def test_list_pending_decorates_rows(service, mongo, citizen, future_day):
    service.create_appointment(citizen, _finance_form(future_day, time="2:00 PM"))
    service.create_appointment(citizen, {"type": COURTESY, "purpose": "Visit"})
    mongo.add(APPOINTMENTS, {"userId": "ghost", "type": "Walk-in", "purpose": "?", "status": "Pending",
                             "time": "10:00 AM"})

    rows = service.list_pending()
    assert len(rows) == 3
    by_user = {r["userId"]: r for r in rows if r["userId"] == "ghost"}
    assert by_user["ghost"]["userFirstName"] == "Unknown"
    assert by_user["ghost"]["userLastName"] == "User"
    assert by_user["ghost"]["typeInfo"]["label"] == "Other"

    courtesy = next(r for r in rows if r["isCourtesy"] is True)
    assert courtesy["time"] == "8:00 AM"
    assert courtesy["userFirstName"] == "Maria"

    finance_only = service.list_pending(type_filter="Finance/Medical")
    assert [r["type"] for r in finance_only] == [FINANCE]


def test_admin_status_changes_log_activity(service, mongo, future_day):
    appointment = service.create_appointment("user-1", _finance_form(future_day))
    service.confirm(appointment["id"], actor="super-1")
    assert mongo.get(APPOINTMENTS, appointment["id"])["status"] == "Confirmed"
    service.complete(appointment["id"], actor="super-1")
    assert mongo.get(APPOINTMENTS, appointment["id"])["status"] == "Completed"
    assert mongo.count(ACTIVITIES, {"actor": "super-1"}) == 2

    with pytest.raises(NotFoundError):
        service.reject("missing")


def test_schedule_courtesy(service, future_day):
    appointment = service.create_appointment("user-1", {"type": COURTESY, "purpose": "Visit"})
    scheduled = service.schedule_courtesy(appointment["id"], future_day, "2:30 pm", actor="super-1")
    assert scheduled["status"] == "Confirmed"
    assert scheduled["time"] == "2:30 PM"
    assert scheduled["scheduledBy"] == "admin"
    assert scheduled["isScheduled"] is True


def test_schedule_courtesy_rejects_regular_booking(service, future_day):
    appointment = service.create_appointment("user-1", _finance_form(future_day))
    with pytest.raises(ValidationError):
        service.schedule_courtesy(appointment["id"], future_day, "2:30 PM")
