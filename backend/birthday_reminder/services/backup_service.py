"""Backup service: JSON, Excel and PDF export plus JSON/Excel import.

Excel import reads only the layout produced by ``export_excel`` (fixed
headers); arbitrary spreadsheets are rejected with 400. The Excel layout
carries every reminder field, including the times list and timezone. Photo
and notes travel only in the JSON backup.
"""
import io
import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from fastapi import HTTPException, status
from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from pydantic import ValidationError
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.orm import Session

from birthday_reminder.models.birthday import Birthday
from birthday_reminder.schemas.birthday import BirthdayCreateItem
from birthday_reminder.services.birthday_service import create_birthdays, ensure_user

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"
DISPLAY_DATE_FORMAT = "%d.%m.%Y"

EXCEL_SHEET_TITLE = "Birthdays"
EXCEL_HEADERS = [
    "Last name",
    "First name",
    "Birth date",
    "Phone",
    "Email",
    "Notification time",
    "Notification times",
    "Timezone",
    "Notifications enabled",
]
EXCEL_COLUMN_WIDTHS = [20, 20, 15, 18, 25, 18, 25, 20, 20]

# Columns copied verbatim between the JSON backup and the database
JSON_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "email",
    "photo_url",
    "notes",
    "notification_enabled",
    "notification_time",
    "notification_times",
    "timezone",
)


def _ordered(db: Session, user_id: str) -> list[Birthday]:
    return db.query(Birthday).filter(Birthday.user_id == user_id).order_by(Birthday.birth_date).all()


def _serialize(birthday: Birthday) -> dict[str, Any]:
    data = {field: getattr(birthday, field) for field in JSON_FIELDS}
    data["id"] = birthday.id
    data["birth_date"] = birthday.birth_date.isoformat()
    return data


def export_json(db: Session, user_id: str, now: datetime) -> dict[str, Any]:
    ensure_user(db, user_id)
    birthdays = _ordered(db, user_id)
    logger.info("Exporting %d birthdays for user %s as JSON", len(birthdays), user_id)
    return {
        "birthdays": [_serialize(b) for b in birthdays],
        "exportDate": now.isoformat(),
        "version": BACKUP_VERSION,
    }


def export_excel(db: Session, user_id: str) -> bytes:
    ensure_user(db, user_id)
    birthdays = _ordered(db, user_id)

    wb = Workbook()
    ws = wb.active
    ws.title = EXCEL_SHEET_TITLE
    ws.append(EXCEL_HEADERS)
    for b in birthdays:
        ws.append([
            b.last_name,
            b.first_name,
            b.birth_date.strftime(DISPLAY_DATE_FORMAT),
            b.phone or "",
            b.email or "",
            (b.notification_time or "")[:5],
            ", ".join(t[:5] for t in b.notification_times or []),
            b.timezone or "",
            "Yes" if b.notification_enabled else "No",
        ])
    for idx, width in enumerate(EXCEL_COLUMN_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width

    buf = io.BytesIO()
    wb.save(buf)
    logger.info("Exported %d birthdays for user %s as Excel", len(birthdays), user_id)
    return buf.getvalue()


def export_pdf(db: Session, user_id: str, now: datetime) -> bytes:
    ensure_user(db, user_id)
    birthdays = _ordered(db, user_id)
    styles = getSampleStyleSheet()

    rows = [["Last name", "First name", "Birth date", "Phone", "Email", "Notification time"]]
    for b in birthdays:
        rows.append([
            b.last_name,
            b.first_name,
            b.birth_date.strftime(DISPLAY_DATE_FORMAT),
            b.phone or "",
            b.email or "",
            (b.notification_time or "")[:5],
        ])

    table = Table(rows, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.Color(99 / 255, 102 / 255, 241 / 255)),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.Color(245 / 255, 247 / 255, 250 / 255)]),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
    ]))

    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=landscape(A4), title="Birthdays")
    doc.build([
        Paragraph("Birthdays - data export", styles["Title"]),
        Paragraph(f"Export date: {now.strftime('%d.%m.%Y %H:%M')}", styles["Normal"]),
        Paragraph(f"Total records: {len(birthdays)}", styles["Normal"]),
        Spacer(1, 12),
        table,
    ])
    logger.info("Exported %d birthdays for user %s as PDF", len(birthdays), user_id)
    return buf.getvalue()


def _validated_rows(raw_rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    rows = []
    for idx, raw in enumerate(raw_rows, start=1):
        try:
            item = BirthdayCreateItem.model_validate(raw)
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Row {idx}: {exc.errors()[0]['msg']}",
            )
        rows.append(item.model_dump())
    return rows


def import_json(db: Session, user_id: str, payload: dict[str, Any]) -> int:
    """Import a JSON backup: rows whose id already belongs to the user are
    updated in place, everything else is added as a new birthday."""
    ensure_user(db, user_id)
    raw_rows = payload.get("birthdays")
    if not isinstance(raw_rows, list):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Backup has no 'birthdays' list")

    rows = _validated_rows(raw_rows)
    existing = {b.id: b for b in db.query(Birthday).filter(Birthday.user_id == user_id).all()}

    new_rows = []
    updated = 0
    for raw, fields in zip(raw_rows, rows):
        current = existing.get(raw.get("id"))
        if current is None:
            new_rows.append(fields)
            continue
        for field, value in fields.items():
            setattr(current, field, value)
        updated += 1

    db.commit()
    if new_rows:
        create_birthdays(db, user_id, new_rows)
    logger.info("JSON import for user %s: %d updated, %d added", user_id, updated, len(new_rows))
    return updated + len(new_rows)


def _cell_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    try:
        return datetime.strptime(text, DISPLAY_DATE_FORMAT).date()
    except ValueError:
        return text  # left for schema validation (accepts ISO dates)


def _cell_times(value: Any) -> Optional[list[str]]:
    times = [t.strip() for t in str(value or "").split(",") if t.strip()]
    return times or None


def import_excel(db: Session, user_id: str, content: bytes) -> int:
    ensure_user(db, user_id)
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:  # openpyxl raises zipfile, KeyError and InvalidFileException
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unreadable Excel file: {exc}")

    sheet_rows = list(wb.active.iter_rows(values_only=True))
    if not sheet_rows or [str(h or "").strip() for h in sheet_rows[0][:len(EXCEL_HEADERS)]] != EXCEL_HEADERS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unexpected Excel headers")

    raw_rows = []
    for values in sheet_rows[1:]:
        if not values or all(v in (None, "") for v in values):
            continue
        cells = dict(zip(EXCEL_HEADERS, values))
        raw_rows.append({
            "last_name": str(cells.get("Last name") or ""),
            "first_name": str(cells.get("First name") or ""),
            "birth_date": _cell_date(cells.get("Birth date")),
            "phone": str(cells.get("Phone")) if cells.get("Phone") else None,
            "email": str(cells.get("Email")) if cells.get("Email") else None,
            "notification_time": str(cells.get("Notification time")) if cells.get("Notification time") else None,
            "notification_times": _cell_times(cells.get("Notification times")),
            "timezone": str(cells.get("Timezone")).strip() if cells.get("Timezone") else None,
            "notification_enabled": str(cells.get("Notifications enabled") or "Yes").strip().lower() != "no",
        })

    if not raw_rows:
        return 0
    created = create_birthdays(db, user_id, _validated_rows(raw_rows))
    logger.info("Excel import for user %s: %d added", user_id, len(created))
    return len(created)


def export_filename(prefix: str, extension: str, now: datetime) -> str:
    return f"{prefix}-{now.astimezone(timezone.utc).strftime('%Y-%m-%d-%H%M%S')}.{extension}"
