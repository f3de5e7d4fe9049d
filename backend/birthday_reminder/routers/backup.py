"""Backup export/import API routes."""
import logging
from typing import Any
from fastapi import APIRouter, Body, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from birthday_reminder.database import get_db
from birthday_reminder.deps import get_now
from birthday_reminder.services import backup_service

logger = logging.getLogger(__name__)
router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _attachment(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/export/json")
def export_json(user_id: str = Query(...), db: Session = Depends(get_db), now=Depends(get_now)):
    return backup_service.export_json(db, user_id, now)


@router.get("/export/excel")
def export_excel(user_id: str = Query(...), db: Session = Depends(get_db), now=Depends(get_now)):
    content = backup_service.export_excel(db, user_id)
    return _attachment(content, XLSX_MEDIA_TYPE, backup_service.export_filename("birthdays", "xlsx", now))


@router.get("/export/pdf")
def export_pdf(user_id: str = Query(...), db: Session = Depends(get_db), now=Depends(get_now)):
    content = backup_service.export_pdf(db, user_id, now)
    return _attachment(content, "application/pdf", backup_service.export_filename("birthdays", "pdf", now))


@router.post("/import/json")
def import_json(
    user_id: str = Query(...),
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    """Restore a JSON backup into the user's list."""
    imported = backup_service.import_json(db, user_id, payload)
    return {"success": True, "imported": imported}


@router.post("/import/excel")
def import_excel(
    user_id: str = Query(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """Import an Excel file in the layout produced by the Excel export."""
    imported = backup_service.import_excel(db, user_id, file.file.read())
    return {"success": True, "imported": imported}
