"""
Spreadsheet export of medical applications.
"""

import io
import logging
from typing import Dict, Any, List, Iterable, Optional

import pandas as pd
from openpyxl.utils import get_column_letter

from ..errors import ValidationError
from .medical_service import search_applications
from ..utils.dates import filter_by_date

logger = logging.getLogger(__name__)

SHEET_NAME = "Medical Applications"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_FILENAME = "medical_applications.xlsx"

# header, source field, column width
EXPORT_COLUMNS = [
    ("Full Name", "fullName", 20),
    ("Email", "email", 25),
    ("Contact Number", "contactNumber", 15),
    ("Address", "address", 25),
    ("Medical Condition", "medicalCondition", 25),
    ("Patient Status", "patientStatus", 15),
    ("Hospitals", "programName", 30),
    ("Assistance Type", "assistanceType", 20),
]


def select_for_export(applications: Iterable[Dict[str, Any]], query: str = "", day: Optional[Any] = None,
                      selected_ids: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """Search and day filters first, then the explicit selection if there is one."""
    rows = search_applications(applications, query)
    if day:
        rows = filter_by_date(rows, day)
    if selected_ids:
        wanted = set(selected_ids)
        rows = [r for r in rows if r.get("id") in wanted]
    return rows


def to_export_rows(applications: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    rows = []
    for app in applications:
        row = {}
        for header, field, _ in EXPORT_COLUMNS:
            placeholder = "Not specified" if field == "assistanceType" else "N/A"
            row[header] = app.get(field) or placeholder
        rows.append(row)
    return rows


def build_workbook(applications: Iterable[Dict[str, Any]]) -> bytes:
    """Render applications into xlsx bytes. Raises ValidationError when there is nothing to export."""
    rows = to_export_rows(applications)
    if not rows:
        raise ValidationError("There are no applications to export")

    df = pd.DataFrame(rows, columns=[header for header, _, _ in EXPORT_COLUMNS])
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        sheet = writer.sheets[SHEET_NAME]
        for index, (_, _, width) in enumerate(EXPORT_COLUMNS, start=1):
            sheet.column_dimensions[get_column_letter(index)].width = width

    logger.info(f"Exported {len(rows)} medical applications")
    return buffer.getvalue()
