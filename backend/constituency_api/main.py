import json
import queue
import logging
from typing import Optional

from fastapi import FastAPI, UploadFile, File, Form, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from backend.constituency_api.config import get_config
from backend.constituency_api.database import init_databases, get_database_info
from backend.constituency_api.errors import ServiceError, NotFoundError, ValidationError
from backend.constituency_api import schemas

logging.basicConfig(level=get_config().log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

# Initialize databases
init_databases()

app = FastAPI(title="Constituency Office Service")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_credentials=True, allow_methods=["*"], allow_headers=["*"],
)

from backend.constituency_api.services.pin_service import get_pin_service, get_pin_change_sessions
from backend.constituency_api.services.appointment_service import (
    get_appointment_service,
    split_upcoming_past,
    group_by_time_slot,
    appointment_counts_by_date,
    ACTIVE_STATUSES,
)
from backend.constituency_api.services.concern_service import (
    get_concern_service,
    filter_concerns,
    status_distribution,
)
from backend.constituency_api.services.project_service import get_project_service, initial_project_form
from backend.constituency_api.services.medical_service import (
    get_medical_service,
    search_applications,
    group_applications_by_date,
    application_stats,
)
from backend.constituency_api.services.export_service import (
    build_workbook,
    select_for_export,
    XLSX_MEDIA_TYPE,
    EXPORT_FILENAME,
)
from backend.constituency_api.services.post_service import get_post_service
from backend.constituency_api.services.admin_service import get_admin_service, accessible_tabs
from backend.constituency_api.services.dashboard_service import get_dashboard_service
from backend.constituency_api.services.media_service import upload_image
from backend.constituency_api.services.subscription_service import subscribe
from backend.constituency_api.catalog.hospitals import (
    filter_hospitals,
    get_hospital,
    requirements_for,
    OFFICE_ADDRESS,
)
from backend.constituency_api.chat.help_service import get_help_chat_service
from backend.constituency_api.database.mongo_service import (
    APPOINTMENTS,
    CONCERNS,
    PROJECTS,
    MEDICAL_APPLICATIONS,
    POSTS,
    ASCENDING,
    DESCENDING,
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": "Internal server error", "error_type": "internal"},
    )


def _require(admin_id: Optional[str], tab: str):
    return get_admin_service().require_task(admin_id, tab)


@app.get("/healthz")
def healthz():
    """Health check with database status."""
    return {"status": "ok", "database": get_database_info()}


# Session and PIN. POST /session hands back a token; every /pin route
# reads it from the X-Session-Token header.

@app.post("/session")
def start_session(body: schemas.SessionRequest):
    token = get_pin_service().start_session(body.user_id)
    return {"ok": True, "session_token": token}


@app.delete("/session")
def end_session(x_session_token: Optional[str] = Header(None)):
    get_pin_service().end_session(x_session_token)
    return {"ok": True}


@app.get("/pin/status")
def pin_status(x_session_token: Optional[str] = Header(None)):
    pins = get_pin_service()
    user_id = pins.session_user(x_session_token)
    locked = pins.lockout_until(user_id)
    return {"ok": True, "has_pin": pins.has_pin(user_id), "lockout_until": locked.isoformat() if locked else None}


@app.post("/pin/setup")
def setup_pin(body: schemas.PinRequest, x_session_token: Optional[str] = Header(None)):
    get_pin_service().setup_pin(x_session_token, body.pin)
    return {"ok": True, "message": "PIN set successfully"}


@app.post("/pin/verify")
def verify_pin(body: schemas.PinRequest, x_session_token: Optional[str] = Header(None)):
    return get_pin_service().verify_admin_pin(x_session_token, body.pin)


@app.post("/pin/reset")
def reset_pin(body: schemas.PinRequest, x_session_token: Optional[str] = Header(None)):
    get_pin_service().reset_pin(x_session_token, body.pin)
    return {"ok": True}


@app.post("/pin/change")
def start_pin_change(x_session_token: Optional[str] = Header(None)):
    return {"ok": True, "flow_id": get_pin_change_sessions().start(x_session_token), "step": 1}


@app.post("/pin/change/submit")
def submit_pin_change(body: schemas.PinChangeRequest, x_session_token: Optional[str] = Header(None)):
    return get_pin_change_sessions().submit(body.flow_id, x_session_token, body.pin).to_dict()


@app.delete("/pin/change/{flow_id}")
def cancel_pin_change(flow_id: str, x_session_token: Optional[str] = Header(None)):
    get_pin_change_sessions().cancel(flow_id, x_session_token)
    return {"ok": True}


# Appointments

@app.post("/appointments")
def create_appointment(body: schemas.AppointmentCreate):
    form = body.model_dump(exclude={"user_id"})
    appointment = get_appointment_service().create_appointment(body.user_id, form)
    return {"ok": True, "appointment": appointment}


@app.get("/appointments")
def list_appointments(user_id: str):
    appointments = get_appointment_service().list_user_appointments(user_id)
    upcoming, past = split_upcoming_past(appointments)
    return {
        "ok": True,
        "appointments": appointments,
        "upcoming": upcoming,
        "past": past,
        "slots": group_by_time_slot(upcoming),
    }


@app.get("/appointments/calendar")
def appointment_calendar():
    service = get_appointment_service()
    booked = service.mongo.find(APPOINTMENTS, {"status": {"$in": ACTIVE_STATUSES}})
    return {"ok": True, "counts": appointment_counts_by_date(booked)}


@app.get("/appointments/selectable")
def date_selectable(date: str):
    return {"ok": True, "date": date, "selectable": get_appointment_service().is_date_selectable(date)}


@app.post("/appointments/{appointment_id}/reschedule")
def reschedule_appointment(appointment_id: str, body: schemas.AppointmentReschedule):
    appointment = get_appointment_service().reschedule(appointment_id, body.user_id, body.date, body.time)
    return {"ok": True, "appointment": appointment}


@app.post("/appointments/{appointment_id}/cancel")
def cancel_appointment(appointment_id: str, body: schemas.AppointmentCancel):
    get_appointment_service().cancel(appointment_id, body.user_id)
    return {"ok": True}


@app.get("/blocked-dates")
def blocked_dates():
    return {"ok": True, "blocked_dates": get_appointment_service().list_blocked_dates()}


@app.get("/admin/appointments/pending")
def pending_appointments(type: Optional[str] = None, sort: str = "asc",
                         x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "appointments")
    rows = get_appointment_service().list_pending(type_filter=type, ascending=sort != "desc")
    return {"ok": True, "appointments": rows}


@app.post("/admin/appointments/{appointment_id}/schedule")
def schedule_courtesy(appointment_id: str, body: schemas.CourtesySchedule,
                      x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "appointments")
    appointment = get_appointment_service().schedule_courtesy(appointment_id, body.date, body.time,
                                                              actor=x_admin_id)
    return {"ok": True, "appointment": appointment}


@app.post("/admin/appointments/{appointment_id}/{action}")
def appointment_action(appointment_id: str, action: str, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "appointments")
    service = get_appointment_service()
    handlers = {"confirm": service.confirm, "reject": service.reject, "complete": service.complete}
    if action not in handlers:
        raise NotFoundError(f"Unknown appointment action: {action}")
    handlers[action](appointment_id, actor=x_admin_id)
    return {"ok": True}


@app.post("/admin/blocked-dates")
def block_date(body: schemas.BlockDateRequest, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "appointments")
    return {"ok": True, "id": get_appointment_service().block_date(body.date, body.reason, actor=x_admin_id)}


@app.delete("/admin/blocked-dates/{blocked_id}")
def unblock_date(blocked_id: str, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "appointments")
    get_appointment_service().unblock_date(blocked_id, actor=x_admin_id)
    return {"ok": True}


# Concerns

@app.post("/concerns")
def submit_concern(body: schemas.ConcernCreate):
    form = body.model_dump(exclude={"user_id", "user_email"})
    concern_id = get_concern_service().submit_concern(body.user_id, body.user_email, form)
    return {"ok": True, "id": concern_id}


@app.get("/concerns")
def list_concerns(user_id: str, status: str = "all", q: str = ""):
    concerns = get_concern_service().list_user_concerns(user_id)
    return {"ok": True, "concerns": filter_concerns(concerns, status, q)}


@app.get("/admin/concerns")
def open_concerns(x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "concerns")
    concerns = get_concern_service().list_open_concerns()
    return {"ok": True, "concerns": concerns, "distribution": status_distribution(concerns)}


@app.get("/admin/concerns/{concern_id}")
def concern_detail(concern_id: str, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "concerns")
    return {"ok": True, "concern": get_concern_service().get_concern(concern_id)}


@app.post("/admin/concerns/{concern_id}/status")
def update_concern_status(concern_id: str, body: schemas.StatusUpdate,
                          x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "concerns")
    get_concern_service().update_concern_status(concern_id, body.status, actor=x_admin_id)
    return {"ok": True, "message": f"Concern marked as {body.status.lower()}"}


# Projects

@app.get("/projects")
def list_projects(status: Optional[str] = None):
    return {"ok": True, "projects": get_project_service().list_projects(status)}


@app.get("/projects/form")
def project_form(project_id: Optional[str] = None):
    project = get_project_service().get_project(project_id) if project_id else None
    return {"ok": True, "form": initial_project_form(project)}


@app.get("/projects/{project_id}")
def project_detail(project_id: str):
    return {"ok": True, "project": get_project_service().get_project(project_id)}


@app.post("/admin/projects")
def create_project(body: schemas.ProjectForm, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "projects")
    project_id = get_project_service().create_project(body.model_dump(exclude_none=True), actor=x_admin_id)
    return {"ok": True, "id": project_id}


@app.put("/admin/projects/{project_id}")
def update_project(project_id: str, body: schemas.ProjectForm, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "projects")
    project = get_project_service().update_project(project_id, body.model_dump(exclude_none=True),
                                                   actor=x_admin_id)
    return {"ok": True, "project": project}


@app.delete("/admin/projects/{project_id}")
def delete_project(project_id: str, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "projects")
    get_project_service().delete_project(project_id, actor=x_admin_id)
    return {"ok": True}


# Hospitals and medical assistance

@app.get("/hospitals")
def hospitals(category: str = "All", q: str = ""):
    return {"ok": True, "hospitals": filter_hospitals(category, q)}


@app.get("/hospitals/{hospital_id}")
def hospital_detail(hospital_id: int, patient_status: str = "outpatient"):
    hospital = get_hospital(hospital_id)
    if hospital is None:
        raise NotFoundError("Hospital not found")
    return {"ok": True, "hospital": hospital, "requirements": requirements_for(hospital, patient_status)}


@app.get("/office")
def office_address():
    return {"ok": True, "office": OFFICE_ADDRESS}


@app.post("/medical-applications")
def submit_medical_application(body: schemas.MedicalApplicationCreate):
    program = get_hospital(body.hospital_id)
    if program is None:
        raise NotFoundError("Hospital not found")
    form = body.model_dump(exclude={"user_id", "user_email", "hospital_id"})
    form["hospitalName"] = program["name"]
    result = get_medical_service().submit_application(body.user_id, body.user_email, program, form)
    return {"ok": True, **result}


@app.get("/medical-applications")
def my_medical_applications(user_id: str):
    return {"ok": True, "applications": get_medical_service().list_user_applications(user_id)}


@app.get("/admin/medical")
def medical_applications(status: str = "all", assistance_type: str = "all", q: str = "",
                         date: Optional[str] = None, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "medical")
    rows = search_applications(get_medical_service().list_applications(status, assistance_type), q)
    return {
        "ok": True,
        "applications": rows,
        "grouped": group_applications_by_date(rows, date),
        "stats": application_stats(rows, date),
    }


@app.post("/admin/medical/status")
def medical_bulk_status(body: schemas.BulkStatusUpdate, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "medical")
    updated = get_medical_service().set_status_bulk(body.ids, body.status, actor=x_admin_id)
    return {"ok": True, "updated": updated}


@app.put("/admin/medical/{application_id}/assistance-type")
def medical_assistance_type(application_id: str, body: schemas.AssistanceTypeUpdate,
                            x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "medical")
    get_medical_service().update_assistance_type(application_id, body.assistanceType, actor=x_admin_id)
    return {"ok": True, "message": "Assistance type updated successfully"}


@app.post("/admin/medical/export")
def export_medical(body: schemas.ExportRequest, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "medical")
    rows = get_medical_service().list_applications(body.status, body.assistance_type)
    content = build_workbook(select_for_export(rows, body.query, body.date, body.ids))
    return StreamingResponse(
        iter([content]),
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename={EXPORT_FILENAME}",
            "Content-Length": str(len(content)),
        },
    )


@app.get("/admin/medical/distribution")
def medical_distribution(x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "stats")
    return {"ok": True, "chart": get_medical_service().program_distribution()}


# Posts

@app.get("/posts")
def list_posts(category: str = "All", cursor: Optional[str] = None):
    return {"ok": True, **get_post_service().list_posts(category, cursor)}


@app.get("/posts/search")
def search_posts(q: str = "", category: str = "All"):
    return {"ok": True, "posts": get_post_service().search_posts(q, category)}


@app.get("/posts/{post_id}")
def post_detail(post_id: str):
    return {"ok": True, "post": get_post_service().get_post(post_id)}


@app.post("/admin/posts")
def create_post(body: schemas.PostForm, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "updates")
    return {"ok": True, "id": get_post_service().create_post(x_admin_id, body.model_dump())}


@app.put("/admin/posts/{post_id}")
def update_post(post_id: str, body: schemas.PostForm, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "updates")
    post = get_post_service().update_post(post_id, body.model_dump(exclude_none=True), actor=x_admin_id)
    return {"ok": True, "post": post}


@app.delete("/admin/posts/{post_id}")
def delete_post(post_id: str, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "updates")
    get_post_service().delete_post(post_id, actor=x_admin_id)
    return {"ok": True}


# Admins and dashboard

@app.get("/admin/permissions")
def admin_permissions(x_admin_id: Optional[str] = Header(None)):
    permissions = _require(x_admin_id, "dashboard")
    return {"ok": True, **permissions, "tabs": accessible_tabs(permissions)}


@app.get("/admin/admins")
def list_admins(x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "profile")
    get_admin_service().require_superadmin(x_admin_id)
    return {"ok": True, "admins": get_admin_service().list_admins()}


@app.post("/admin/admins")
def add_admin(body: schemas.AddAdminRequest, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "profile")
    return {"ok": True, "id": get_admin_service().add_admin(body.phone, x_admin_id)}


@app.put("/admin/admins/{admin_id}/tasks")
def update_admin_tasks(admin_id: str, body: schemas.AdminTasksUpdate, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "profile")
    get_admin_service().update_admin_tasks(admin_id, body.tasks, x_admin_id)
    return {"ok": True}


@app.put("/admin/profile")
def update_profile(body: schemas.ProfileUpdate, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "profile")
    admin = get_admin_service().update_profile(x_admin_id, body.name, body.position, body.phone, body.avatarUrl)
    return {"ok": True, "admin": admin}


@app.get("/admin/dashboard")
def dashboard(refresh: bool = False, x_admin_id: Optional[str] = Header(None)):
    _require(x_admin_id, "dashboard")
    return {"ok": True, **get_dashboard_service().summary(force_refresh=refresh)}


# Live snapshots (server-sent events)

LIVE_QUERIES = {
    "appointments": ("appointments", APPOINTMENTS, {"status": "Pending"}, [("time", ASCENDING)]),
    "concerns": ("concerns", CONCERNS, {"status": {"$in": ["Pending", "In Progress"]}}, [("createdAt", DESCENDING)]),
    "projects": ("projects", PROJECTS, None, [("createdAt", DESCENDING)]),
    "medical": ("medical", MEDICAL_APPLICATIONS, None, [("createdAt", DESCENDING)]),
    "posts": ("updates", POSTS, None, [("createdAt", DESCENDING)]),
}


@app.get("/admin/live/{resource}")
def live_snapshots(resource: str, x_admin_id: Optional[str] = Header(None)):
    if resource not in LIVE_QUERIES:
        raise NotFoundError(f"Unknown live resource: {resource}")
    tab, collection_name, filters, sort = LIVE_QUERIES[resource]
    _require(x_admin_id, tab)

    events: "queue.Queue" = queue.Queue()
    unsubscribe = subscribe(collection_name, filters, events.put, sort=sort, on_error=events.put)

    def event_stream():
        try:
            while True:
                try:
                    item = events.get(timeout=15)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                if isinstance(item, Exception):
                    yield f"data: {json.dumps({'event': 'error', 'data': str(item)})}\n\n"
                    return
                yield f"data: {json.dumps({'event': 'snapshot', 'data': item}, default=str)}\n\n"
        finally:
            unsubscribe()

    return StreamingResponse(event_stream(), media_type="text/event-stream")


# Media

@app.post("/media/upload")
def media_upload(file: UploadFile = File(...), folder: Optional[str] = Form(None)):
    content = file.file.read()
    url = upload_image(content, file.filename, folder, file.content_type or "image/jpeg")
    return {"ok": True, "secure_url": url}


# Help desk chat

@app.post("/help/session")
def create_help_session():
    service = get_help_chat_service()
    session_id = service.create_session()
    return {"ok": True, "session_id": session_id, "messages": service.get_history(session_id)}


@app.post("/help/{session_id}/message")
def send_help_message(session_id: str, body: schemas.ChatMessageRequest):
    if not body.message.strip():
        raise ValidationError("Message is empty")
    return {"ok": True, **get_help_chat_service().send_message(session_id, body.message)}


@app.get("/help/{session_id}/messages")
def help_messages(session_id: str):
    return {"ok": True, "messages": get_help_chat_service().get_history(session_id)}


@app.delete("/help/{session_id}")
def end_help_session(session_id: str):
    get_help_chat_service().end_session(session_id)
    return {"ok": True}
