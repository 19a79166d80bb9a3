"""
Appointment booking, the admin approval queue, and blocked dates.
"""

import logging
import datetime as dt
from typing import Dict, Any, List, Optional, Iterable

from ..database.mongo_service import (
    MongoService,
    get_mongo_service,
    APPOINTMENTS,
    BLOCKED_DATES,
    USERS,
    ASCENDING,
    DESCENDING,
)
from ..errors import ValidationError, NotFoundError
from ..utils.formatting import appointment_status_color
from ..utils.dates import (
    to_date,
    today,
    is_past_date,
    is_weekend,
    is_holiday,
    is_date_unavailable,
    is_same_day,
    parse_time_12h,
    format_time_12h,
    time_slot,
    has_time_conflict,
)

logger = logging.getLogger(__name__)

COURTESY = "Courtesy (VIP)"
FINANCE = "Finance (Medical)"

# Shown on the admin queue; keyed by the upper-cased stored type
TYPE_INFO = {
    "COURTESY": {"label": "Courtesy (VIP)", "icon": "handshake", "color": "#6c5ce7"},
    "FINANCE": {"label": "Finance/Medical", "icon": "file-invoice-dollar", "color": "#e84393"},
    "OTHER": {"label": "Other", "icon": "question-circle", "color": "#636e72"},
}

WORKING_HOURS = {"start": 8, "end": 17, "break_start": 11.5, "break_end": 12.5}

ACTIVE_STATUSES = ["Confirmed", "Pending", "Completed"]
UPCOMING_STATUSES = ["Pending", "Confirmed"]
MAX_DAILY_APPOINTMENTS = 6
TIME_CONFLICT_MINUTES = 60
DEFAULT_TIME = "8:00 AM"


def type_info(appointment_type: Optional[str]) -> Dict[str, str]:
    key = (appointment_type or "OTHER").split(" ")[0].upper()
    return TYPE_INFO.get(key, TYPE_INFO["OTHER"])


def is_working_time(value: str) -> bool:
    """Inside office hours and outside the lunch break."""
    parsed = parse_time_12h(value)
    if parsed is None:
        return False
    hour = parsed.hour + parsed.minute / 60
    if hour < WORKING_HOURS["start"] or hour >= WORKING_HOURS["end"]:
        return False
    return not (WORKING_HOURS["break_start"] <= hour < WORKING_HOURS["break_end"])


def has_courtesy_request_today(appointments: Iterable[Dict[str, Any]], user_id: str,
                               reference: Optional[dt.date] = None) -> bool:
    if not user_id:
        return False
    reference = reference or today()
    return any(
        a.get("isCourtesy") and a.get("userId") == user_id and is_same_day(a.get("createdAt"), reference)
        for a in appointments
    )


def validate_appointment_form(form: Dict[str, Any], blocked_dates: Iterable[Dict[str, Any]],
                              existing: Iterable[Dict[str, Any]], user_id: str,
                              reference: Optional[dt.date] = None) -> List[str]:
    """Return every problem with a booking form; an empty list means valid."""
    errors = []
    appointment_type = form.get("type")

    if not appointment_type:
        errors.append("Please select appointment type")
    if not (form.get("purpose") or "").strip():
        errors.append("Please enter purpose")

    if appointment_type == COURTESY and has_courtesy_request_today(existing, user_id, reference):
        errors.append("You already have a courtesy appointment request for today. Please try again tomorrow.")

    if appointment_type != COURTESY:
        raw_date = form.get("date")
        if not raw_date:
            errors.append("Please select a date")
        else:
            day = to_date(raw_date)
            if day is None:
                errors.append("Invalid date selected")
            else:
                if is_past_date(day, reference):
                    errors.append("You cannot schedule appointments for past dates")
                elif is_weekend(day):
                    errors.append("Weekends are not available")
                elif is_holiday(day):
                    errors.append("Holidays are not available")
                if any(is_same_day(b.get("date"), day) for b in blocked_dates):
                    errors.append("The selected date is blocked. Please choose another date.")
            if not form.get("time"):
                errors.append("Please select a time")

    if appointment_type == FINANCE:
        if not (form.get("patientName") or "").strip():
            errors.append("Please enter patient name")
        if not (form.get("processorName") or "").strip():
            errors.append("Please enter processor name")
        if not form.get("selfieUrl"):
            errors.append("Please take a selfie")

    return errors


def split_upcoming_past(appointments: Iterable[Dict[str, Any]],
                        reference: Optional[dt.date] = None):
    """Upcoming: today or later and not cancelled. Everything else is past."""
    reference = reference or today()
    upcoming, past = [], []
    for appointment in appointments:
        day = to_date(appointment.get("date"))
        if day is not None and day >= reference and appointment.get("status") != "Cancelled":
            upcoming.append(appointment)
        else:
            past.append(appointment)
    return upcoming, past


def group_by_time_slot(appointments: Iterable[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grouped = {"Morning": [], "Afternoon": []}
    for appointment in appointments:
        grouped[time_slot(appointment.get("time"))].append(appointment)
    return grouped


def appointment_counts_by_date(appointments: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Calendar density: bookings per ISO day, counting live statuses only."""
    counts: Dict[str, int] = {}
    for appointment in appointments:
        if appointment.get("status") not in ACTIVE_STATUSES:
            continue
        day = to_date(appointment.get("date"))
        if day is not None:
            counts[day.isoformat()] = counts.get(day.isoformat(), 0) + 1
    return counts


def _to_24h(value: str) -> Optional[str]:
    parsed = parse_time_12h(value)
    return parsed.strftime("%H:%M") if parsed else None


class AppointmentService:
    """Appointment reads and writes against the document store."""

    def __init__(self, mongo: Optional[MongoService] = None):
        self.mongo = mongo or get_mongo_service()

    # Blocked dates

    def list_blocked_dates(self) -> List[Dict[str, Any]]:
        return self.mongo.find(BLOCKED_DATES, sort=[("date", ASCENDING)])

    def block_date(self, day: Any, reason: str = "", actor: Optional[str] = None) -> str:
        parsed = to_date(day)
        if parsed is None:
            raise ValidationError("Invalid date selected")
        if is_past_date(parsed):
            raise ValidationError("Cannot block a past date")
        if any(is_same_day(b.get("date"), parsed) for b in self.list_blocked_dates()):
            raise ValidationError("This date is already blocked")

        doc_id = self.mongo.add(BLOCKED_DATES, {"date": parsed.isoformat(), "reason": reason})
        self.mongo.log_activity("date_blocked", f"Blocked {parsed.isoformat()}", actor, reason=reason)
        return doc_id

    def unblock_date(self, blocked_id: str, actor: Optional[str] = None) -> None:
        if not self.mongo.delete(BLOCKED_DATES, blocked_id):
            raise NotFoundError("Blocked date not found")
        self.mongo.log_activity("date_unblocked", f"Unblocked date {blocked_id}", actor)

    def is_date_selectable(self, day: Any) -> bool:
        """Open for booking: not past, not a weekend or holiday, not blocked."""
        parsed = to_date(day)
        if parsed is None or is_date_unavailable(parsed):
            return False
        return not any(is_same_day(b.get("date"), parsed) for b in self.list_blocked_dates())

    def _check_slot(self, day: dt.date, time_value: str, user_id: str,
                    exclude_id: Optional[str] = None) -> None:
        """Daily cap, then no other live booking of this user within the hour."""
        new_24h = _to_24h(time_value)
        if new_24h is None:
            raise ValidationError("Please select a time")

        same_day = [
            a for a in self.mongo.find(APPOINTMENTS, {"date": day.isoformat(), "status": {"$in": ACTIVE_STATUSES}})
            if a["id"] != exclude_id
        ]
        if len(same_day) >= MAX_DAILY_APPOINTMENTS:
            raise ValidationError("This day is fully booked")

        own_times = [
            _to_24h(a.get("time", "")) for a in same_day
            if a.get("userId") == user_id and a.get("status") in UPCOMING_STATUSES
        ]
        if has_time_conflict([t for t in own_times if t], new_24h, TIME_CONFLICT_MINUTES):
            raise ValidationError("You already have an appointment within this time frame.")

    # Citizen side

    def create_appointment(self, user_id: str, form: Dict[str, Any]) -> Dict[str, Any]:
        existing = self.mongo.find(APPOINTMENTS, {"userId": user_id, "isCourtesy": True})
        errors = validate_appointment_form(form, self.list_blocked_dates(), existing, user_id)
        if errors:
            raise ValidationError(errors[0], errors=errors)

        is_courtesy = form["type"] == COURTESY
        if not is_courtesy:
            self._check_slot(to_date(form["date"]), form["time"], user_id)

        data = {
            "userId": user_id,
            "type": form["type"],
            "purpose": form["purpose"].strip(),
            "status": "Pending",
            "isCourtesy": is_courtesy,
            "imageUrl": form.get("imageUrl"),
        }
        if not is_courtesy:
            data["date"] = to_date(form["date"]).isoformat()
            data["time"] = form["time"]
        if form["type"] == FINANCE:
            data.update({
                "patientName": form["patientName"].strip(),
                "processorName": form["processorName"].strip(),
                "medicalDetails": form.get("medicalDetails"),
                "selfieUrl": form["selfieUrl"],
            })

        doc_id = self.mongo.add(APPOINTMENTS, data)
        logger.info(f"Appointment {doc_id} requested by {user_id} ({form['type']})")
        return self.mongo.get(APPOINTMENTS, doc_id)

    def list_user_appointments(self, user_id: str) -> List[Dict[str, Any]]:
        rows = self.mongo.find(APPOINTMENTS, {"userId": user_id}, sort=[("date", ASCENDING)])
        for row in rows:
            row["statusColor"] = appointment_status_color(row.get("status"))
        return rows

    def reschedule(self, appointment_id: str, user_id: str, new_date: Any, new_time: str) -> Dict[str, Any]:
        appointment = self._require(appointment_id)
        if appointment.get("userId") != user_id:
            raise NotFoundError("Appointment not found")
        if appointment.get("status") not in UPCOMING_STATUSES:
            raise ValidationError("Only upcoming appointments can be rescheduled")

        day = to_date(new_date)
        if day is None or not self.is_date_selectable(day):
            raise ValidationError("The selected date is not available")
        self._check_slot(day, new_time, user_id, exclude_id=appointment_id)

        self.mongo.update(APPOINTMENTS, appointment_id,
                          {"date": day.isoformat(), "time": new_time, "status": "Confirmed"})
        return self.mongo.get(APPOINTMENTS, appointment_id)

    def cancel(self, appointment_id: str, user_id: Optional[str] = None) -> None:
        appointment = self._require(appointment_id)
        if user_id and appointment.get("userId") != user_id:
            raise NotFoundError("Appointment not found")
        self.mongo.update(APPOINTMENTS, appointment_id,
                          {"status": "Cancelled", "cancelledAt": dt.datetime.utcnow()})

    # Admin side

    def _user_details(self, user_id: Optional[str]) -> Dict[str, Any]:
        fallback = {"firstName": "Unknown", "lastName": "User", "profileImage": None}
        if not user_id:
            return fallback
        user = self.mongo.get(USERS, user_id)
        if not user:
            return fallback
        return {
            "firstName": user.get("firstName") or "Unknown",
            "lastName": user.get("lastName") or "",
            "profileImage": user.get("profileImage"),
        }

    def list_pending(self, type_filter: Optional[str] = None, ascending: bool = True) -> List[Dict[str, Any]]:
        """Pending queue ordered by time, decorated with requester and type info."""
        rows = self.mongo.find(APPOINTMENTS, {"status": "Pending"},
                               sort=[("time", ASCENDING if ascending else DESCENDING)])
        results = []
        for row in rows:
            user = self._user_details(row.get("userId"))
            info = type_info(row.get("type"))
            if type_filter and info["label"].lower() != type_filter.lower():
                continue
            results.append({
                **row,
                "time": row.get("time") or DEFAULT_TIME,
                "userFirstName": user["firstName"],
                "userLastName": user["lastName"],
                "userProfileImage": user["profileImage"],
                "typeInfo": info,
            })
        return results

    def _require(self, appointment_id: str) -> Dict[str, Any]:
        appointment = self.mongo.get(APPOINTMENTS, appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    def _set_status(self, appointment_id: str, status: str, actor: Optional[str]) -> None:
        self._require(appointment_id)
        self.mongo.update(APPOINTMENTS, appointment_id, {"status": status})
        self.mongo.log_activity(f"appointment_{status.lower()}",
                                f"Appointment {appointment_id} {status.lower()}", actor,
                                appointmentId=appointment_id)
        logger.info(f"Appointment {appointment_id} -> {status}")

    def confirm(self, appointment_id: str, actor: Optional[str] = None) -> None:
        self._set_status(appointment_id, "Confirmed", actor)

    def reject(self, appointment_id: str, actor: Optional[str] = None) -> None:
        self._set_status(appointment_id, "Rejected", actor)

    def complete(self, appointment_id: str, actor: Optional[str] = None) -> None:
        self._set_status(appointment_id, "Completed", actor)

    def schedule_courtesy(self, appointment_id: str, day: Any, time_value: str,
                          actor: Optional[str] = None) -> Dict[str, Any]:
        """Admin picks the slot for a courtesy request and confirms it."""
        appointment = self._require(appointment_id)
        if not appointment.get("isCourtesy"):
            raise ValidationError("Only courtesy appointments can be scheduled by an admin")
        parsed_day = to_date(day)
        if parsed_day is None or is_past_date(parsed_day):
            raise ValidationError("Please select a date first")
        parsed_time = parse_time_12h(time_value)
        if parsed_time is None:
            raise ValidationError("Please select a time")

        self.mongo.update(APPOINTMENTS, appointment_id, {
            "date": parsed_day.isoformat(),
            "time": format_time_12h(parsed_time),
            "status": "Confirmed",
            "scheduledBy": "admin",
            "isScheduled": True,
        })
        self.mongo.log_activity("courtesy_scheduled",
                                f"Courtesy appointment scheduled for {parsed_day.isoformat()}", actor,
                                appointmentId=appointment_id)
        return self.mongo.get(APPOINTMENTS, appointment_id)


# Global service instance
_appointment_service = None


def get_appointment_service() -> AppointmentService:
    global _appointment_service
    if _appointment_service is None:
        _appointment_service = AppointmentService()
    return _appointment_service
