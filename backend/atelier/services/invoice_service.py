"""
Invoice queries and mutations: pending queue, validated archive, edit
sessions, manual entry.

All functions take the caller's ``UserSession`` and only ever touch rows
owned by that user. Items have no user column; they are reached through
their invoice.
"""
import calendar
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from atelier.auth import UserSession
from atelier.models.invoice import Invoice
from atelier.models.invoice_item import InvoiceItem
from atelier.schemas.invoice import InvoiceItemCreate, InvoiceUpdate, ManualEntryCreate
from atelier.services.invoice_totals import recompute_total

logger = logging.getLogger(__name__)


class InvoiceValidationError(ValueError):
    """Submitted invoice data breaks a required-field rule"""


def _owned_invoices(db: Session, session: UserSession):
    return (
        db.query(Invoice)
        .options(selectinload(Invoice.invoice_items))
        .filter(Invoice.user_id == session.user_id)
    )


def get_invoice(db: Session, session: UserSession, invoice_id: int) -> Optional[Invoice]:
    return _owned_invoices(db, session).filter(Invoice.id == invoice_id).first()


def list_pending(db: Session, session: UserSession) -> List[Invoice]:
    """Invoices waiting for review, newest first"""
    return (
        _owned_invoices(db, session)
        .filter(Invoice.is_validated.is_(False))
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .all()
    )


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month"""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def build_year_month_index(delivery_dates: Iterable[date]) -> List[Dict]:
    """
    Distinct (year, month) pairs as ``[{"year": 2025, "months": [11, 3]}, ...]``,
    years newest first and months descending within each year.
    """
    index = defaultdict(set)
    for d in delivery_dates:
        if d is None:
            continue
        index[d.year].add(d.month)
    return [
        {"year": year, "months": sorted(index[year], reverse=True)}
        for year in sorted(index, reverse=True)
    ]


def year_month_index(db: Session, session: UserSession) -> List[Dict]:
    rows = (
        db.query(Invoice.delivery_date)
        .filter(Invoice.user_id == session.user_id, Invoice.is_validated.is_(True))
        .distinct()
        .all()
    )
    return build_year_month_index(row[0] for row in rows)


def list_validated(
    db: Session,
    session: UserSession,
    year: int,
    month: int,
    search: Optional[str] = None,
) -> List[Invoice]:
    """Validated invoices delivered in the given month, optionally filtered by number"""
    start, end = month_bounds(year, month)
    query = (
        _owned_invoices(db, session)
        .filter(Invoice.is_validated.is_(True))
        .filter(Invoice.delivery_date >= start, Invoice.delivery_date <= end)
    )
    if search and search.strip():
        query = query.filter(Invoice.invoice_number.ilike(f"%{search.strip()}%"))
    return query.order_by(Invoice.delivery_date.desc(), Invoice.id.desc()).all()


def validate_invoice(db: Session, session: UserSession, invoice_id: int) -> Optional[Invoice]:
    """Move an invoice from the pending queue into the archive"""
    invoice = get_invoice(db, session, invoice_id)
    if not invoice:
        return None
    invoice.is_validated = True
    db.commit()
    db.refresh(invoice)
    logger.info(f"Invoice {invoice_id} validated")
    return invoice


def validate_manual_entry(entry: ManualEntryCreate) -> None:
    if not entry.invoice_number.strip() or entry.invoice_date is None or not entry.items:
        raise InvoiceValidationError("Por favor, preencha todos os campos obrigatórios")
    for position, item in enumerate(entry.items, start=1):
        if not item.description.strip():
            raise InvoiceValidationError(f"O item {position} precisa de uma descrição")


def create_manual_entry(
    db: Session,
    session: UserSession,
    entry: ManualEntryCreate,
    image_url: Optional[str] = None,
) -> Invoice:
    """
    Save a typed-in invoice. Each item is stored with its rolled-up value
    (quantity x unit value); manual entries skip the pending queue.
    """
    validate_manual_entry(entry)

    invoice = Invoice(
        user_id=session.user_id,
        invoice_number=entry.invoice_number.strip(),
        invoice_date=entry.invoice_date,
        delivery_date=entry.delivery_date or entry.invoice_date,
        is_manual_entry=True,
        is_validated=True,
        observations=entry.observations or None,
        image_url=image_url,
        contact_name=entry.contact_name or None,
        phone_number=entry.phone_number or None,
    )
    for item in entry.items:
        invoice.invoice_items.append(InvoiceItem(
            description=item.description.strip(),
            value=Decimal(item.quantity) * Decimal(item.unit_value),
        ))
    recompute_total(invoice)

    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    logger.info(f"Manual entry {invoice.invoice_number} saved as invoice {invoice.id} (total {invoice.total_value})")
    return invoice


def update_invoice(
    db: Session,
    session: UserSession,
    invoice_id: int,
    changes: InvoiceUpdate,
) -> Optional[Invoice]:
    """
    Save an edit session. The submitted item list replaces the stored one:
    items with an id are updated, items without one are added, stored items
    missing from the list are removed.
    """
    invoice = get_invoice(db, session, invoice_id)
    if not invoice:
        return None

    if not changes.invoice_number.strip():
        raise InvoiceValidationError("Por favor, preencha todos os campos obrigatórios")
    if not changes.items:
        raise InvoiceValidationError("A nota fiscal precisa ter pelo menos um item")

    existing = {item.id: item for item in invoice.invoice_items}
    unknown = [i.id for i in changes.items if i.id is not None and i.id not in existing]
    if unknown:
        raise InvoiceValidationError(f"Itens não pertencem a esta nota fiscal: {unknown}")

    invoice.invoice_number = changes.invoice_number.strip()
    invoice.invoice_date = changes.invoice_date
    invoice.delivery_date = changes.delivery_date
    invoice.phone_number = changes.phone_number or None
    invoice.contact_name = changes.contact_name or None

    kept_ids = set()
    for edit in changes.items:
        if edit.id is None:
            invoice.invoice_items.append(InvoiceItem(description=edit.description, value=edit.value))
            continue
        item = existing[edit.id]
        item.description = edit.description
        item.value = edit.value
        kept_ids.add(edit.id)

    for item_id, item in existing.items():
        if item_id not in kept_ids:
            invoice.invoice_items.remove(item)

    recompute_total(invoice)
    db.commit()
    db.refresh(invoice)
    logger.info(f"Invoice {invoice_id} updated ({len(invoice.invoice_items)} items, total {invoice.total_value})")
    return invoice


def add_item(
    db: Session,
    session: UserSession,
    invoice_id: int,
    item: InvoiceItemCreate,
) -> Optional[Invoice]:
    invoice = get_invoice(db, session, invoice_id)
    if not invoice:
        return None
    invoice.invoice_items.append(InvoiceItem(description=item.description, value=item.value))
    recompute_total(invoice)
    db.commit()
    db.refresh(invoice)
    return invoice


def remove_item(db: Session, session: UserSession, invoice_id: int, item_id: int) -> Optional[Invoice]:
    """Remove one item. The last remaining item cannot be removed."""
    invoice = get_invoice(db, session, invoice_id)
    if not invoice:
        return None
    item = next((i for i in invoice.invoice_items if i.id == item_id), None)
    if item is None:
        return None
    if len(invoice.invoice_items) <= 1:
        raise InvoiceValidationError("A nota fiscal precisa ter pelo menos um item")
    invoice.invoice_items.remove(item)
    recompute_total(invoice)
    db.commit()
    db.refresh(invoice)
    return invoice


def delete_invoice(db: Session, session: UserSession, invoice_id: int) -> bool:
    """Delete an invoice and, by cascade, its items"""
    invoice = get_invoice(db, session, invoice_id)
    if not invoice:
        return False
    db.delete(invoice)
    db.commit()
    logger.info(f"Invoice {invoice_id} deleted")
    return True
