"""
Normalization of raw OCR output into invoice fields.

The extraction function is best effort: any field may be absent, null,
"N/A" or malformed. These helpers turn whatever came back into values that
can always be saved, and report which fields had to be defaulted.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

NOT_AVAILABLE = "N/A"
PLACEHOLDER_DESCRIPTION = "Item não identificado"

# Order matters: the warning lists fields in this order
FIELD_LABELS = {
    "invoiceNumber": "número da nota",
    "invoiceDate": "data",
    "totalValue": "valor total",
    "items": "itens",
}

MISSING_FIELDS_WARNING = "Não foi possível ler: {fields}. Revise na aba de validação."


@dataclass
class NormalizedInvoice:
    invoice_number: str
    invoice_date: date
    total_value: Decimal
    contact_name: Optional[str]
    phone_number: Optional[str]
    items: List[Dict[str, Any]]
    missing_fields: List[str] = field(default_factory=list)

    @property
    def warning(self) -> Optional[str]:
        return build_missing_fields_warning(self.missing_fields)


def _is_number_text(value: str) -> bool:
    return value.strip().isdigit()


def normalize_invoice_date(raw: Any, today: date) -> date:
    """
    Convert an OCR ``DD/MM/YYYY`` string into a date.

    - missing or "N/A" -> today
    - not exactly three "/"-separated parts -> today
    - missing, "null" or non-numeric year -> current year
    - two-digit year -> 20YY
    - any other length than two or four digits -> current year
    - non-numeric day or month -> today
    - impossible calendar date (e.g. 31/02) -> today
    """
    if not raw or not isinstance(raw, str) or raw.strip() == NOT_AVAILABLE:
        return today

    parts = raw.strip().split("/")
    if len(parts) != 3:
        return today

    day, month, year = (p.strip() for p in parts)

    if not year or year in ("null", "undefined") or not _is_number_text(year):
        year = str(today.year)
    if len(year) == 2:
        year = f"20{year}"
    elif len(year) != 4:
        year = str(today.year)

    if not _is_number_text(day) or not _is_number_text(month):
        return today

    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return today


def parse_decimal(raw: Any) -> Optional[Decimal]:
    """Numbers and numeric strings -> Decimal, anything else -> None"""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return Decimal(str(raw))
    if isinstance(raw, str):
        text = raw.strip().replace(",", ".")
        if not text:
            return None
        try:
            return Decimal(text)
        except InvalidOperation:
            return None
    return None


def find_missing_fields(data: Dict[str, Any]) -> List[str]:
    """Keys of FIELD_LABELS the extraction did not provide"""
    missing = []
    number = data.get("invoiceNumber")
    if not number or number == NOT_AVAILABLE:
        missing.append("invoiceNumber")
    invoice_date = data.get("invoiceDate")
    if not invoice_date or invoice_date == NOT_AVAILABLE:
        missing.append("invoiceDate")
    if not parse_decimal(data.get("totalValue")):
        missing.append("totalValue")
    items = data.get("items")
    if not isinstance(items, list) or len(items) == 0:
        missing.append("items")
    return missing


def build_missing_fields_warning(missing_fields: List[str]) -> Optional[str]:
    if not missing_fields:
        return None
    labels = ", ".join(FIELD_LABELS[f] for f in missing_fields)
    return MISSING_FIELDS_WARNING.format(fields=labels)


def normalize_items(raw_items: Any, total_value: Decimal) -> List[Dict[str, Any]]:
    """
    Item rows to persist. Always at least one: without extracted items a
    placeholder carries the whole total.
    """
    items = []
    if isinstance(raw_items, list):
        for raw in raw_items:
            if not isinstance(raw, dict):
                continue
            items.append({
                "description": str(raw.get("description") or PLACEHOLDER_DESCRIPTION),
                "value": parse_decimal(raw.get("value")) or Decimal("0"),
            })
    if not items:
        items.append({"description": PLACEHOLDER_DESCRIPTION, "value": total_value})
    return items


def normalize_extraction(data: Dict[str, Any], today: date) -> NormalizedInvoice:
    """Apply defaults to every field of an OCR response"""
    total_value = parse_decimal(data.get("totalValue")) or Decimal("0")
    number = data.get("invoiceNumber")
    return NormalizedInvoice(
        invoice_number=str(number) if number else NOT_AVAILABLE,
        invoice_date=normalize_invoice_date(data.get("invoiceDate"), today),
        total_value=total_value,
        contact_name=data.get("contactName") or None,
        phone_number=data.get("phoneNumber") or None,
        items=normalize_items(data.get("items"), total_value),
        missing_fields=find_missing_fields(data),
    )
