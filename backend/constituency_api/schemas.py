"""
Request bodies for the HTTP API.

Only shapes are checked here; business rules (required fields per type,
date availability, permissions) stay in the services.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class SessionRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="Signed-in user id stored as the session UID")


class PinRequest(BaseModel):
    pin: str = Field(..., description="Six-digit PIN", examples=["123456"])


class PinChangeRequest(BaseModel):
    flow_id: str
    pin: str


class AppointmentCreate(BaseModel):
    user_id: str
    type: str = Field("", examples=["Finance (Medical)"])
    purpose: str = ""
    date: Optional[str] = Field(None, description="YYYY-MM-DD", examples=["2026-10-20"])
    time: Optional[str] = Field(None, description="h:mm AM/PM", examples=["9:00 AM"])
    patientName: Optional[str] = None
    processorName: Optional[str] = None
    medicalDetails: Optional[str] = None
    selfieUrl: Optional[str] = None
    imageUrl: Optional[str] = None


class AppointmentReschedule(BaseModel):
    user_id: str
    date: str
    time: str


class AppointmentCancel(BaseModel):
    user_id: Optional[str] = None


class CourtesySchedule(BaseModel):
    date: str
    time: str = Field(..., examples=["2:30 PM"])


class BlockDateRequest(BaseModel):
    date: str
    reason: str = ""


class ConcernCreate(BaseModel):
    user_id: str
    user_email: Optional[str] = None
    category: str = "General"
    subject: str = ""
    description: str = ""
    location: Optional[str] = None
    imageUrl: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str


class ProjectForm(BaseModel):
    """Every project field; which ones are required depends on projectType."""
    title: Optional[str] = None
    contractor: Optional[str] = None
    contractAmount: Optional[str] = None
    accomplishment: Optional[str] = None
    location: Optional[str] = None
    remarks: Optional[str] = None
    status: Optional[str] = None
    imageUrl: Optional[str] = None
    projectType: Optional[str] = None
    beneficiaries: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    budget: Optional[str] = None
    partnerAgency: Optional[str] = None
    targetParticipants: Optional[str] = None
    programType: Optional[str] = None
    equipment: Optional[str] = None
    materials: Optional[str] = None
    trainingHours: Optional[str] = None
    venue: Optional[str] = None


class MedicalApplicationCreate(BaseModel):
    user_id: str
    user_email: Optional[str] = None
    hospital_id: int = Field(..., description="Catalog id of the hospital or program", examples=[5])
    fullName: Optional[str] = None
    contactNumber: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    medicalCondition: Optional[str] = None
    patientStatus: str = "outpatient"
    assistanceType: Optional[str] = None
    estimatedCost: Optional[float] = None


class BulkStatusUpdate(BaseModel):
    ids: List[str] = Field(..., min_length=1)
    status: str = Field(..., examples=["approved"])


class AssistanceTypeUpdate(BaseModel):
    assistanceType: str


class ExportRequest(BaseModel):
    status: str = "all"
    assistance_type: str = "all"
    query: str = ""
    date: Optional[str] = None
    ids: List[str] = Field(default_factory=list)


class PostForm(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    imageUrl: Optional[str] = None


class AddAdminRequest(BaseModel):
    phone: str


class AdminTasksUpdate(BaseModel):
    tasks: List[str]


class ProfileUpdate(BaseModel):
    name: str
    position: str
    phone: Optional[str] = None
    avatarUrl: Optional[str] = None


class ChatMessageRequest(BaseModel):
    message: str
