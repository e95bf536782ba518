"""
Backup Router - full JSON export and destructive restore
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from atelier.auth import UserSession, get_session
from atelier.database import get_db
from atelier.schemas.backup import BackupPreview, RestoreResult
from atelier.services.backup_service import (
    BackupFormatError,
    RestoreError,
    export_backup,
    parse_backup,
    preview_backup,
    restore_backup,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/backup", tags=["backup"])


async def _read_backup_file(file: UploadFile):
    raw = await file.read()
    try:
        return parse_backup(raw)
    except BackupFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("")
def download_backup(
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Everything the user owns as a downloadable JSON file"""
    now = datetime.now(timezone.utc)
    try:
        document = export_backup(db, session, now=now)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error exporting backup: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Erro ao exportar backup")

    return JSONResponse(
        content=document.model_dump(mode="json"),
        headers={"Content-Disposition": f'attachment; filename="backup_{now.strftime("%Y-%m-%d")}.json"'},
    )


@router.post("/preview", response_model=BackupPreview)
async def preview_backup_file(
    file: UploadFile = File(...),
    session: UserSession = Depends(get_session),
):
    """Validate a backup file and show what it contains. Changes nothing."""
    document = await _read_backup_file(file)
    return preview_backup(document)


@router.post("/restore", response_model=RestoreResult)
async def restore_backup_file(
    file: UploadFile = File(...),
    confirm: bool = Query(False, description="Must be true: restore deletes all current data"),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Replace all of the user's data with the backup's contents"""
    document = await _read_backup_file(file)
    if not confirm:
        raise HTTPException(
            status_code=400,
            detail="A restauração apaga todos os dados atuais. Confirme com confirm=true",
        )

    try:
        summary = restore_backup(db, session, document)
    except RestoreError as e:
        raise HTTPException(status_code=500, detail=f"Erro ao restaurar backup ({e.step})")

    return RestoreResult(summary=summary)
