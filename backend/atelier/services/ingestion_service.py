"""
Invoice ingestion: photo -> storage -> OCR -> pending invoice.

OCR problems never abort ingestion. Missing fields are defaulted and
reported in the result's warning, and the invoice always lands in the
pending queue for manual review. Storage or database failures fall back to
a minimal placeholder row so every file still produces a result.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from atelier.auth import UserSession
from atelier.models.invoice import Invoice
from atelier.models.invoice_item import InvoiceItem
from atelier.schemas.upload import IngestionResult
from atelier.services.ocr_client import OCRClient
from atelier.services.storage_service import StorageService
from atelier.utils.ocr_normalization import (
    NOT_AVAILABLE,
    PLACEHOLDER_DESCRIPTION,
    NormalizedInvoice,
    normalize_extraction,
)

logger = logging.getLogger(__name__)

FALLBACK_WARNING = "Upload realizado com valores padrão. Revise na aba de validação."
PARTIAL_WARNING = "Processamento parcial. Verifique os dados na aba de validação."


@dataclass
class UploadedImage:
    filename: str
    content: bytes


class IngestionService:
    def __init__(self, storage: StorageService, ocr: OCRClient):
        self.storage = storage
        self.ocr = ocr

    async def ingest(
        self,
        files: List[UploadedImage],
        db: Session,
        session: UserSession,
        today: Optional[date] = None,
    ) -> List[IngestionResult]:
        """Process every file concurrently and wait for the whole batch"""
        today = today or date.today()
        logger.info(f"Ingesting {len(files)} file(s) for user {session.user_id}")
        return list(await asyncio.gather(*(self._process_file(f, db, session, today) for f in files)))

    async def _process_file(
        self,
        file: UploadedImage,
        db: Session,
        session: UserSession,
        today: date,
    ) -> IngestionResult:
        image_url = None
        try:
            storage_path = await asyncio.to_thread(
                self.storage.upload_user_file, file.content, file.filename, session.user_id
            )
            image_url = self.storage.get_public_url(storage_path)

            data = await self.ocr.extract(image_url, session.access_token)
            normalized = normalize_extraction(data, today)
            if normalized.missing_fields:
                logger.info(f"{file.filename}: OCR could not read {normalized.missing_fields}")

            # No awaits below: the row and its items are written in one go
            invoice = self._save(db, session, file.filename, image_url, normalized)
            return IngestionResult(
                file_name=file.filename,
                persisted=True,
                invoice_id=invoice.id,
                warning=normalized.warning,
                missing_fields=normalized.missing_fields,
            )
        except Exception as e:
            logger.error(f"Error processing invoice {file.filename}: {str(e)}", exc_info=True)
            db.rollback()
            return self._save_fallback(db, session, file.filename, image_url, today)

    def _save(
        self,
        db: Session,
        session: UserSession,
        filename: str,
        image_url: str,
        normalized: NormalizedInvoice,
    ) -> Invoice:
        invoice = Invoice(
            user_id=session.user_id,
            invoice_number=normalized.invoice_number,
            invoice_date=normalized.invoice_date,
            delivery_date=normalized.invoice_date,
            total_value=normalized.total_value,  # Printed total as read, not the item sum
            image_url=image_url,
            original_filename=filename,
            is_manual_entry=False,
            is_validated=False,
            phone_number=normalized.phone_number,
            contact_name=normalized.contact_name,
        )
        for item in normalized.items:
            invoice.invoice_items.append(InvoiceItem(description=item["description"], value=item["value"]))
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        logger.info(f"Invoice {invoice.id} created from {filename} (pending validation)")
        return invoice

    def _save_fallback(
        self,
        db: Session,
        session: UserSession,
        filename: str,
        image_url: Optional[str],
        today: date,
    ) -> IngestionResult:
        try:
            invoice = Invoice(
                user_id=session.user_id,
                invoice_number=NOT_AVAILABLE,
                invoice_date=today,
                delivery_date=today,
                total_value=Decimal("0"),
                image_url=image_url,
                original_filename=filename,
                is_manual_entry=False,
                is_validated=False,
            )
            invoice.invoice_items.append(InvoiceItem(description=PLACEHOLDER_DESCRIPTION, value=Decimal("0")))
            db.add(invoice)
            db.commit()
            db.refresh(invoice)
            logger.warning(f"Invoice {invoice.id} created from {filename} with default values")
            return IngestionResult(
                file_name=filename,
                persisted=True,
                invoice_id=invoice.id,
                warning=FALLBACK_WARNING,
            )
        except SQLAlchemyError as e:
            logger.error(f"Fallback insert failed for {filename}: {str(e)}", exc_info=True)
            db.rollback()
            return IngestionResult(file_name=filename, persisted=False, warning=PARTIAL_WARNING)
