"""
Uploads Router - invoice photos in, pending invoices out
"""
import os
import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from atelier.auth import UserSession, get_session
from atelier.database import get_db
from atelier.schemas.upload import UploadBatchResponse
from atelier.services.ingestion_service import IngestionService, UploadedImage
from atelier.services.ocr_client import OCRClient, get_ocr_client
from atelier.services.storage_service import StorageService, get_storage_service

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.gif', '.bmp', '.webp', '.tiff', '.tif', '.heic'}

router = APIRouter(prefix="/api/uploads", tags=["uploads"])


@router.post("", response_model=UploadBatchResponse)
async def upload_invoices(
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
    storage: StorageService = Depends(get_storage_service),
    ocr: OCRClient = Depends(get_ocr_client),
):
    """Upload invoice photos. Each one becomes a pending invoice, whatever OCR manages to read."""
    if not files:
        raise HTTPException(status_code=400, detail="Por favor, selecione pelo menos um arquivo")

    for file in files:
        file_ext = os.path.splitext(file.filename.lower())[1] if file.filename else ''
        if file_ext not in ALLOWED_EXTENSIONS:
            raise HTTPException(
                status_code=400,
                detail=f"Tipo de arquivo não suportado: {file.filename}. Envie imagens (PNG, JPG, JPEG, GIF, BMP, WEBP, TIFF, HEIC)"
            )

    images = [UploadedImage(filename=file.filename, content=await file.read()) for file in files]

    results = await IngestionService(storage, ocr).ingest(images, db, session)

    successful = sum(1 for r in results if r.success)
    persisted = sum(1 for r in results if r.persisted)
    with_warnings = sum(1 for r in results if r.warning)
    logger.info(f"Upload batch done: {successful} handled, {persisted} saved, {with_warnings} with warnings")

    return UploadBatchResponse(
        results=results,
        successful=successful,
        persisted=persisted,
        with_warnings=with_warnings,
    )
