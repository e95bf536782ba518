from atelier.models.invoice import Invoice
from atelier.models.invoice_item import InvoiceItem
from atelier.models.revenue import Revenue
from atelier.models.debt import CorteCoseDebt

__all__ = ["Invoice", "InvoiceItem", "Revenue", "CorteCoseDebt"]
