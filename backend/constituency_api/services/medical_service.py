"""
Medical and financial assistance applications.

Citizens apply against a hospital guarantee program or a DSWD program;
admins review in bulk, re-label the assistance type, and export selections.
"""

import random
import logging
import datetime as dt
from typing import Dict, Any, List, Optional, Iterable

from ..database.mongo_service import MongoService, get_mongo_service, MEDICAL_APPLICATIONS, DESCENDING
from ..errors import ValidationError, NotFoundError
from ..utils.dates import group_by_date, filter_by_date, calculate_stats
from ..utils.formatting import format_currency, format_status_text, medical_status_color

logger = logging.getLogger(__name__)

STATUSES = ["pending", "approved", "rejected"]

ASSISTANCE_TYPES = [
    "Medical Assistance",
    "Financial Assistance",
    "Medicine Support",
    "Therapy Support",
    "Other",
]

PATIENT_STATUSES = ["outpatient", "inpatient"]

REQUIRED_FIELDS = {
    "dswd-burial": ["fullName", "contactNumber", "address"],
    "default": ["fullName", "contactNumber", "address", "medicalCondition"],
}

FORM_FIELDS = [
    "fullName", "contactNumber", "email", "address", "medicalCondition",
    "patientStatus", "hospitalName", "assistanceType", "estimatedCost",
]


def program_requirements(program_type: str, patient_status: str = "outpatient") -> List[str]:
    """Documents an applicant prepares, by program type; unknown types get the standard list."""
    if program_type == "extensive":
        return [
            "Clinical Abstract (para sa mga naka-confine)" if patient_status == "inpatient"
            else "Medical Certificate (para sa mga hindi naka-confine)",
            "Certification from OSMUN/Public Hospital (kung walang available na service)",
            "Social Case Study (kailangan ng social worker assessment)",
            "Valid ID na may Muntinlupa address",
            "Voter's ID / COMELEC Certification (proof na residente ka ng Muntinlupa)",
            "Certificate of Indigency (kailangan mula sa barangay)",
            "Laboratory and Diagnostic Results (latest medical tests)",
        ]
    if program_type == "dswd-medical":
        return [
            "DSWD Prescribed Request Form (kukunin sa DSWD office)",
            "Certificate of Indigency (with seal & signature ng barangay)",
            "Medical Certificate/Abstract (from doctor)",
            "Prescription/Lab Request (2 copies, dapat signed ng doctor)",
            "Unpaid Hospital Bill (dapat signed ng billing clerk)",
            "Social Case Study (required for dialysis/cancer patients)",
        ]
    if program_type == "dswd-burial":
        return [
            "Death Certificate (Certified True Copy + photocopy)",
            "Funeral Contract (Original + photocopy)",
            "Promissory Note / Certificate of Balance (from funeral home)",
            "Valid ID of Claimant (2 photocopies)",
            "Certificate of Indigency (from barangay)",
        ]
    return [
        "Medical Certificate (within 3 months, dapat updated)",
        "Quotation/Bill/Statement of Account (from hospital)",
        "Valid ID na may Muntinlupa address",
        "Voter's ID / COMELEC Certification (proof na residente ka ng Muntinlupa)",
        "Certificate of Indigency (kailangan mula sa barangay)",
        "Authorization Letter (kung hindi ikaw ang mag-aapply)",
    ]


def _field_name(field: str) -> str:
    return "".join(f" {c.lower()}" if c.isupper() else c for c in field)


def missing_fields(form: Dict[str, Any], program_type: str) -> List[str]:
    required = REQUIRED_FIELDS.get(program_type, REQUIRED_FIELDS["default"])
    return [f for f in required if not str(form.get(f) or "").strip()]


def generate_reference_number() -> str:
    return f"#{random.randint(100000, 999999)}"


def search_applications(applications: Iterable[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    """Substring match on name, email, program (case-insensitive) and contact number."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(applications)
    results = []
    for app in applications:
        if (needle in (app.get("fullName") or "").lower()
                or needle in (app.get("email") or "").lower()
                or needle in (app.get("contactNumber") or "")
                or needle in (app.get("programName") or "").lower()):
            results.append(app)
    return results


def group_applications_by_date(applications: Iterable[Dict[str, Any]],
                               day: Optional[Any] = None) -> Dict[str, List[Dict[str, Any]]]:
    items = filter_by_date(applications, day) if day else applications
    return group_by_date(items)


def application_stats(applications: Iterable[Dict[str, Any]], day: Optional[Any] = None,
                      now: Optional[dt.datetime] = None) -> Dict[str, int]:
    items = filter_by_date(applications, day) if day else applications
    return calculate_stats(items, now)


def program_distribution(applications: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Bar-chart payload: applications per program, most requested first."""
    counts: Dict[str, int] = {}
    for app in applications:
        name = app.get("programName") or "Medical Assistance"
        counts[name] = counts.get(name, 0) + 1
    if not counts:
        return {"labels": ["No Data"], "datasets": [{"data": [0]}]}
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return {
        "labels": [name for name, _ in ordered],
        "datasets": [{"data": [count for _, count in ordered]}],
    }


class MedicalService:

    def __init__(self, mongo: Optional[MongoService] = None):
        self.mongo = mongo or get_mongo_service()

    def submit_application(self, user_id: str, user_email: Optional[str], program: Dict[str, Any],
                           form: Dict[str, Any]) -> Dict[str, Any]:
        program_type = program.get("type") or "standard"
        missing = missing_fields(form, program_type)
        if missing:
            raise ValidationError(f"Pakilagay ang: {', '.join(_field_name(f) for f in missing)}",
                                  fields=missing)

        patient_status = form.get("patientStatus") or "outpatient"
        if patient_status not in PATIENT_STATUSES:
            raise ValidationError(f"Unknown patient status: {patient_status}")

        data = {k: form.get(k) for k in FORM_FIELDS if form.get(k) is not None}
        data.update({
            "patientStatus": patient_status,
            "programType": program_type,
            "programName": program.get("name"),
            "status": "Pending",
            "userId": user_id,
            "userEmail": user_email or "",
        })
        doc_id = self.mongo.add(MEDICAL_APPLICATIONS, data)
        reference = generate_reference_number()
        logger.info(f"Medical application {doc_id} submitted for {program.get('name')} ref {reference}")
        return {"id": doc_id, "referenceNumber": reference}

    def list_user_applications(self, user_id: str) -> List[Dict[str, Any]]:
        rows = self.mongo.find(MEDICAL_APPLICATIONS, {"userId": user_id}, sort=[("createdAt", DESCENDING)])
        for row in rows:
            row["status"] = (row.get("status") or "pending").lower()
            row.setdefault("programName", "Medical Assistance")
        return rows

    def list_applications(self, status: str = "all", assistance_type: str = "all") -> List[Dict[str, Any]]:
        """Newest first, statuses lower-cased; both filters accept "all"."""
        status = (status or "all").lower()
        if status != "all" and status not in STATUSES:
            raise ValidationError(f"Unknown application status: {status}")
        rows = self.mongo.find(MEDICAL_APPLICATIONS, sort=[("createdAt", DESCENDING)])
        assistance_type = (assistance_type or "all").lower()
        results = []
        for row in rows:
            row["status"] = (row.get("status") or "pending").lower()
            if status != "all" and row["status"] != status:
                continue
            if assistance_type != "all" and (row.get("assistanceType") or "").lower() != assistance_type:
                continue
            row["statusText"] = format_status_text(row["status"])
            row["statusColor"] = medical_status_color(row["status"])
            if row.get("estimatedCost") is not None:
                row["estimatedCostText"] = format_currency(row["estimatedCost"])
            results.append(row)
        return results

    def get_application(self, application_id: str) -> Dict[str, Any]:
        application = self.mongo.get(MEDICAL_APPLICATIONS, application_id)
        if application is None:
            raise NotFoundError("Application not found")
        return application

    def set_status_bulk(self, application_ids: List[str], status: str, actor: Optional[str] = None) -> int:
        if status not in ("approved", "rejected"):
            raise ValidationError(f"Unknown application status: {status}")
        if not application_ids:
            raise ValidationError("Please select at least one application")

        updated = 0
        for application_id in application_ids:
            if self.mongo.update(MEDICAL_APPLICATIONS, application_id, {"status": status}):
                updated += 1
        self.mongo.log_activity(f"medical_{status}", f"{updated} medical application(s) {status}", actor,
                                applicationIds=list(application_ids))
        return updated

    def update_assistance_type(self, application_id: str, assistance_type: str,
                               actor: Optional[str] = None) -> None:
        value = (assistance_type or "").strip()
        if not value:
            raise ValidationError("Assistance type is required")
        if value not in ASSISTANCE_TYPES:
            raise ValidationError(f"Unknown assistance type: {value}")
        if not self.mongo.update(MEDICAL_APPLICATIONS, application_id, {"assistanceType": value}):
            raise NotFoundError("Application not found")
        self.mongo.log_activity("medical_assistance_type", f"Assistance type set to {value}", actor,
                                applicationId=application_id)

    def program_distribution(self) -> Dict[str, Any]:
        return program_distribution(self.mongo.find(MEDICAL_APPLICATIONS))


# Global service instance
_medical_service = None


def get_medical_service() -> MedicalService:
    global _medical_service
    if _medical_service is None:
        _medical_service = MedicalService()
    return _medical_service
