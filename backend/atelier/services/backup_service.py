"""
Full-account JSON backup and destructive restore.

Restore replaces everything the user owns (invoices, items, revenues,
debts) with the contents of a backup file. The file is validated against the
versioned schema before anything is deleted, and the wipe plus re-insert
runs in one transaction: a failure at any step leaves the previous data in
place.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from atelier.auth import UserSession
from atelier.models.debt import CorteCoseDebt
from atelier.models.invoice import Invoice
from atelier.models.invoice_item import InvoiceItem
from atelier.models.revenue import Revenue
from atelier.schemas.backup import (
    BACKUP_SCHEMA_VERSION,
    BackupData,
    BackupDebt,
    BackupDocument,
    BackupInvoice,
    BackupItem,
    BackupPreview,
    BackupRevenue,
    BackupSummary,
)

logger = logging.getLogger(__name__)

# Columns that identify the old row or owner and are never restored
_IDENTITY_FIELDS = {"id", "user_id", "invoice_id", "invoice_items"}


class BackupFormatError(ValueError):
    """The uploaded file is not a backup this version can restore"""


class RestoreError(Exception):
    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step
        self.message = message


def summarize(data: BackupData) -> BackupSummary:
    return BackupSummary(
        total_invoices=len(data.invoices),
        total_revenues=len(data.revenues),
        total_invoice_items=sum(len(inv.invoice_items) for inv in data.invoices),
        total_corte_cose_debts=len(data.corte_cose_debts),
    )


def export_backup(db: Session, session: UserSession, now: Optional[datetime] = None) -> BackupDocument:
    """Everything the user owns, as one document"""
    now = now or datetime.now(timezone.utc)

    invoices = (
        db.query(Invoice)
        .options(selectinload(Invoice.invoice_items))
        .filter(Invoice.user_id == session.user_id)
        .order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
        .all()
    )
    revenues = (
        db.query(Revenue)
        .filter(Revenue.user_id == session.user_id)
        .order_by(Revenue.revenue_date.desc(), Revenue.id.desc())
        .all()
    )
    debts = (
        db.query(CorteCoseDebt)
        .filter(CorteCoseDebt.user_id == session.user_id)
        .order_by(CorteCoseDebt.debt_date.desc(), CorteCoseDebt.id.desc())
        .all()
    )

    data = BackupData(
        invoices=[BackupInvoice.model_validate(inv, from_attributes=True) for inv in invoices],
        revenues=[BackupRevenue.model_validate(rev, from_attributes=True) for rev in revenues],
        corte_cose_debts=[BackupDebt.model_validate(debt, from_attributes=True) for debt in debts],
    )
    document = BackupDocument(
        version=BACKUP_SCHEMA_VERSION,
        export_date=now,
        user_email=session.email or "",
        data=data,
        summary=summarize(data),
    )
    logger.info(f"Exported backup for user {session.user_id}: {document.summary}")
    return document


def parse_backup(raw: Union[bytes, str]) -> BackupDocument:
    """Validate an uploaded backup file. Raises BackupFormatError."""
    try:
        return BackupDocument.model_validate_json(raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'arquivo'}: {err['msg']}"
            for err in e.errors()[:5]
        )
        logger.warning(f"Rejected backup file: {problems}")
        raise BackupFormatError(f"Arquivo de backup inválido ({problems})")


def preview_backup(document: BackupDocument) -> BackupPreview:
    """What a restore would bring back, for the confirmation step"""
    return BackupPreview(
        version=document.version,
        export_date=document.export_date,
        user_email=document.user_email,
        summary=summarize(document.data),
    )


def _restorable_fields(record) -> dict:
    fields = record.model_dump(exclude=_IDENTITY_FIELDS)
    # Let the database fill timestamps the backup does not carry
    return {k: v for k, v in fields.items() if not (k in ("created_at", "updated_at") and v is None)}


def _restore_item(item: BackupItem, invoice_id: int) -> InvoiceItem:
    return InvoiceItem(invoice_id=invoice_id, **_restorable_fields(item))


def restore_backup(
    db: Session,
    session: UserSession,
    document: BackupDocument,
    on_progress: Optional[Callable[[str], None]] = None,
) -> BackupSummary:
    """
    Wipe the user's data and re-insert the backup's rows under the current
    user, with new ids. Invoices go in one at a time so each item set can be
    relinked to its new invoice id.
    """
    progress = on_progress or logger.info
    data = document.data
    step = "remover dados existentes"

    try:
        progress("Removendo dados existentes...")
        invoice_ids = [row[0] for row in db.query(Invoice.id).filter(Invoice.user_id == session.user_id).all()]
        if invoice_ids:
            db.query(InvoiceItem).filter(InvoiceItem.invoice_id.in_(invoice_ids)).delete(synchronize_session=False)
        db.query(Invoice).filter(Invoice.user_id == session.user_id).delete(synchronize_session=False)
        db.query(Revenue).filter(Revenue.user_id == session.user_id).delete(synchronize_session=False)
        db.query(CorteCoseDebt).filter(CorteCoseDebt.user_id == session.user_id).delete(synchronize_session=False)
        # Deleted rows must not linger in the identity map: new ids may reuse theirs
        db.expunge_all()

        total = len(data.invoices)
        for position, backup_invoice in enumerate(data.invoices, start=1):
            step = f"restaurar nota fiscal {position} de {total}"
            progress(f"Restaurando nota fiscal {position} de {total}...")
            invoice = Invoice(user_id=session.user_id, **_restorable_fields(backup_invoice))
            db.add(invoice)
            db.flush()  # assigns the new id
            for item in backup_invoice.invoice_items:
                db.add(_restore_item(item, invoice.id))
            db.flush()

        if data.revenues:
            step = "restaurar receitas"
            progress(f"Restaurando {len(data.revenues)} receitas...")
            db.add_all([Revenue(user_id=session.user_id, **_restorable_fields(rev)) for rev in data.revenues])
            db.flush()

        if data.corte_cose_debts:
            step = "restaurar dívidas"
            progress(f"Restaurando {len(data.corte_cose_debts)} dívidas...")
            db.add_all([
                CorteCoseDebt(user_id=session.user_id, **_restorable_fields(debt))
                for debt in data.corte_cose_debts
            ])
            db.flush()

        step = "confirmar restauração"
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Backup restore failed at '{step}' for user {session.user_id}: {str(e)}", exc_info=True)
        raise RestoreError(step, str(e))

    db.expire_all()
    summary = summarize(data)
    logger.info(f"Backup restored for user {session.user_id}: {summary}")
    return summary
