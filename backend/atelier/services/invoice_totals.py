from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from atelier.models.invoice import Invoice

CENT = Decimal("0.01")


def to_cents(value) -> Decimal:
    """Round a money value the way a Numeric(10, 2) column stores it"""
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_item_values(values: Iterable) -> Decimal:
    return sum((Decimal(str(v or 0)) for v in values), Decimal("0"))


def recompute_total(invoice: Invoice) -> Decimal:
    """
    Set ``invoice.total_value`` to the sum of its items and return it.

    Every path that creates, edits or removes items goes through here so the
    stored total cannot drift from the item rows. Item values are rounded to
    cents first, so the sum is taken over exactly what gets stored.
    """
    for item in invoice.invoice_items:
        item.value = to_cents(item.value)
    invoice.total_value = sum_item_values(item.value for item in invoice.invoice_items)
    return invoice.total_value
