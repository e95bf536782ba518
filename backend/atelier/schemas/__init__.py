from atelier.schemas.invoice import InvoiceResponse, InvoiceItemResponse, ManualEntryCreate, InvoiceUpdate, YearMonths
from atelier.schemas.upload import IngestionResult, UploadBatchResponse
from atelier.schemas.ledger import RevenueResponse, DebtResponse, CalendarMonth
from atelier.schemas.report import ReportResponse, ReportTableResponse
from atelier.schemas.backup import BackupDocument, BackupPreview, RestoreResult

__all__ = [
    "InvoiceResponse",
    "InvoiceItemResponse",
    "ManualEntryCreate",
    "InvoiceUpdate",
    "YearMonths",
    "IngestionResult",
    "UploadBatchResponse",
    "RevenueResponse",
    "DebtResponse",
    "CalendarMonth",
    "ReportResponse",
    "ReportTableResponse",
    "BackupDocument",
    "BackupPreview",
    "RestoreResult",
]
