"""
CommentLens exporter - derives CSV/Excel rows from canonical ParticipantResult JSON.
"""

import csv
import json
from pathlib import Path
from typing import TextIO

from .models import ParticipantResult, SessionRecord

# CSV column order (stable schema - derived from ParticipantResult)
CSV_COLUMNS = [
    "username",
    "display_name",
    "profile_url",
    "comment_count",
    "comment_snippet",
    "primary_email",
    "signal_source",
    "confidence",
    "other_emails",
]


def mask_email(email: str) -> str:
    """Hide most of the local part: johnsmith@gmail.com -> jo*******@gmail.com."""
    local, sep, domain = email.partition("@")
    if not sep:
        return email
    visible = local[:2]
    return f"{visible}{'*' * max(len(local) - len(visible), 1)}@{domain}"


def participant_to_row(participant: ParticipantResult, reveal: bool = False) -> dict:
    """Convert a ParticipantResult to a flat CSV row dict."""
    primary = participant.primary_signal
    email = primary.value
    if primary.is_masked and not reveal:
        email = mask_email(email)

    others = [s.value for s in participant.all_signals if not s.is_primary]

    return {
        "username": participant.username,
        "display_name": participant.display_name,
        "profile_url": participant.profile_url,
        "comment_count": participant.comment_count,
        "comment_snippet": participant.comment_snippet.replace("\n", " "),
        "primary_email": email,
        "signal_source": primary.source,
        "confidence": primary.confidence,
        "other_emails": ";".join(others),
    }


def export_csv(
    participants: list[ParticipantResult], output: Path | TextIO, reveal: bool = False
) -> int:
    """Export participants to CSV. Returns number of rows written."""
    rows = [participant_to_row(p, reveal=reveal) for p in participants]

    if isinstance(output, Path):
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            writer.writerows(rows)
    else:
        writer = csv.DictWriter(output, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)

    return len(rows)


def export_excel(participants: list[ParticipantResult], output: Path) -> int:
    """Export participants to an Excel file with auto-fitted column widths."""
    from openpyxl import Workbook
    from openpyxl.styles import Font
    from openpyxl.utils import get_column_letter

    rows = [participant_to_row(p) for p in participants]
    output.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "Participants"

    for col_idx, col_name in enumerate(CSV_COLUMNS, 1):
        ws.cell(row=1, column=col_idx, value=col_name).font = Font(bold=True)

    for row_idx, row_data in enumerate(rows, 2):
        for col_idx, col_name in enumerate(CSV_COLUMNS, 1):
            ws.cell(row=row_idx, column=col_idx, value=row_data.get(col_name, ""))

    for col_idx, col_name in enumerate(CSV_COLUMNS, 1):
        max_length = len(col_name)
        for row_data in rows:
            # Cap so snippets don't produce super-wide columns
            max_length = max(max_length, min(len(str(row_data.get(col_name, ""))), 50))
        ws.column_dimensions[get_column_letter(col_idx)].width = max_length + 2

    ws.freeze_panes = "A2"
    wb.save(output)
    return len(rows)


def export_json(participants: list[ParticipantResult], output: Path) -> int:
    """Export participants to JSON (canonical format)."""
    output.parent.mkdir(parents=True, exist_ok=True)
    data = [p.model_dump(mode="json") for p in participants]
    with open(output, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, default=str)
    return len(data)


def export_session(record: SessionRecord, output: Path) -> None:
    """Write a session record as JSON."""
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(record.model_dump(mode="json"), f, indent=2, default=str)
