import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import RedirectResponse, Response
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from atelier.auth import UserSession, get_session
from atelier.database import get_db
from atelier.schemas.invoice import (
    InvoiceItemCreate,
    InvoiceResponse,
    InvoiceUpdate,
    ManualEntryCreate,
    YearMonths,
)
from atelier.services import invoice_service
from atelier.services.invoice_service import InvoiceValidationError
from atelier.services.storage_service import StorageError, StorageService, get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


def _not_found():
    return HTTPException(status_code=404, detail="Nota fiscal não encontrada")


def _database_error(db: Session, action: str, e: Exception):
    db.rollback()
    logger.error(f"Database error while trying to {action}: {str(e)}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Falha ao {action}")


@router.get("/pending", response_model=List[InvoiceResponse])
def list_pending_invoices(
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Invoices waiting for review, newest first"""
    return invoice_service.list_pending(db, session)


@router.get("/archive", response_model=List[YearMonths])
def get_archive_index(
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Years and months that have validated invoices"""
    return invoice_service.year_month_index(db, session)


@router.get("", response_model=List[InvoiceResponse])
def list_validated_invoices(
    year: int = Query(..., ge=1900, le=9999),
    month: int = Query(..., ge=1, le=12),
    search: Optional[str] = Query(None, description="Substring of the invoice number"),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Validated invoices delivered in one month"""
    return invoice_service.list_validated(db, session, year, month, search)


@router.post("/manual", response_model=InvoiceResponse, status_code=201)
async def create_manual_invoice(
    payload: str = Form(..., description="ManualEntryCreate as JSON"),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
    storage: StorageService = Depends(get_storage_service),
):
    """Save a typed-in invoice (already validated)"""
    try:
        entry = ManualEntryCreate.model_validate_json(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=json.loads(e.json()))

    try:
        invoice_service.validate_manual_entry(entry)
    except InvoiceValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    image_url = None
    if image is not None and image.filename:
        content = await image.read()
        try:
            storage_path = storage.upload_user_file(content, image.filename, session.user_id, randomize=False)
        except StorageError as e:
            logger.error(f"Manual entry image upload failed: {str(e)}")
            raise HTTPException(status_code=500, detail="Falha ao enviar a imagem")
        image_url = storage.get_public_url(storage_path)

    try:
        return invoice_service.create_manual_entry(db, session, entry, image_url=image_url)
    except SQLAlchemyError as e:
        raise _database_error(db, "salvar a entrada manual", e)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    invoice = invoice_service.get_invoice(db, session, invoice_id)
    if not invoice:
        raise _not_found()
    return invoice


@router.get("/{invoice_id}/image")
def get_invoice_image(
    invoice_id: int,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
    storage: StorageService = Depends(get_storage_service),
):
    """Serve the photo behind an invoice"""
    invoice = invoice_service.get_invoice(db, session, invoice_id)
    if not invoice:
        raise _not_found()
    if not invoice.image_url:
        raise HTTPException(status_code=404, detail="Nota fiscal sem imagem")

    storage_path = storage.storage_path_from_url(invoice.image_url)
    if storage_path is None:
        return RedirectResponse(invoice.image_url)

    try:
        content = storage.download_file(storage_path)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Imagem não encontrada")
    except StorageError as e:
        logger.error(f"Failed to serve image for invoice {invoice_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Falha ao carregar a imagem")

    filename = invoice.original_filename or storage_path.rsplit('/', 1)[-1]
    return Response(
        content=content,
        media_type=storage.get_content_type(storage_path),
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@router.post("/{invoice_id}/validate", response_model=InvoiceResponse)
def validate_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Mark an invoice as reviewed"""
    try:
        invoice = invoice_service.validate_invoice(db, session, invoice_id)
    except SQLAlchemyError as e:
        raise _database_error(db, "validar a nota fiscal", e)
    if not invoice:
        raise _not_found()
    return invoice


@router.put("/{invoice_id}", response_model=InvoiceResponse)
def update_invoice(
    invoice_id: int,
    changes: InvoiceUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Save an edit session (invoice fields plus the full item list)"""
    try:
        invoice = invoice_service.update_invoice(db, session, invoice_id, changes)
    except InvoiceValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        raise _database_error(db, "atualizar a nota fiscal", e)
    if not invoice:
        raise _not_found()
    return invoice


@router.post("/{invoice_id}/items", response_model=InvoiceResponse, status_code=201)
def add_invoice_item(
    invoice_id: int,
    item: InvoiceItemCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    try:
        invoice = invoice_service.add_item(db, session, invoice_id, item)
    except SQLAlchemyError as e:
        raise _database_error(db, "adicionar o item", e)
    if not invoice:
        raise _not_found()
    return invoice


@router.delete("/{invoice_id}/items/{item_id}", response_model=InvoiceResponse)
def remove_invoice_item(
    invoice_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    try:
        invoice = invoice_service.remove_item(db, session, invoice_id, item_id)
    except InvoiceValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        raise _database_error(db, "remover o item", e)
    if not invoice:
        raise HTTPException(status_code=404, detail="Item não encontrado")
    return invoice


@router.delete("/{invoice_id}")
def delete_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Delete an invoice and its items"""
    try:
        deleted = invoice_service.delete_invoice(db, session, invoice_id)
    except SQLAlchemyError as e:
        raise _database_error(db, "excluir a nota fiscal", e)
    if not deleted:
        raise _not_found()
    return {"message": "Nota fiscal excluída", "invoice_id": invoice_id}
