"""Spreadsheet export of a session's attendance."""

from dataclasses import dataclass
from io import BytesIO
from typing import Any

import pandas as pd
from openpyxl.utils import get_column_letter

from attendance_tracker.domain.classes import ReferenceIdentity, SessionRecord

_COLUMN_WIDTHS = (30, 15, 25)
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass(frozen=True)
class ExportFile:
    filename: str
    content: bytes


def attendance_rows(
    session: SessionRecord, references: list[ReferenceIdentity]
) -> list[dict[str, Any]]:
    """Return one row per reference with its presence status."""
    seen_at = {entry.reference_id: entry.timestamp for entry in session.attendance}
    rows: list[dict[str, Any]] = []
    for reference in references:
        timestamp = seen_at.get(reference.id)
        rows.append(
            {
                "Name": reference.name,
                "Status": "Present" if timestamp else "Absent",
                "Attendance Time": (
                    timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
                    if timestamp
                    else "N/A"
                ),
            }
        )
    return rows


def export_session(
    class_name: str, session: SessionRecord, references: list[ReferenceIdentity]
) -> ExportFile:
    """Build an xlsx workbook with the attendance of one session."""
    frame = pd.DataFrame(
        attendance_rows(session, references),
        columns=["Name", "Status", "Attendance Time"],
    )
    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False, sheet_name="Attendance")
        sheet = writer.sheets["Attendance"]
        for index, width in enumerate(_COLUMN_WIDTHS, start=1):
            sheet.column_dimensions[get_column_letter(index)].width = width
        sheet.freeze_panes = "A2"
    output.seek(0)
    return ExportFile(
        filename=f"{class_name} - {session.name} - Attendance.xlsx",
        content=output.read(),
    )
