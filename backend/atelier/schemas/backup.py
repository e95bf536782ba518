from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Any, Literal
from datetime import date, datetime
from decimal import Decimal

from atelier.schemas.ledger import REFERENCE_MONTH_PATTERN

BACKUP_SCHEMA_VERSION = 2


class BackupItem(BaseModel):
    id: Optional[Any] = None  # Dropped on restore
    invoice_id: Optional[Any] = None  # Dropped on restore, relinked to the new invoice
    description: str
    value: Decimal = Decimal("0")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BackupInvoice(BaseModel):
    id: Optional[Any] = None
    user_id: Optional[str] = None
    invoice_number: str
    invoice_date: date
    delivery_date: date
    total_value: Decimal = Decimal("0")
    image_url: Optional[str] = None
    original_filename: Optional[str] = None
    is_manual_entry: bool = False
    is_validated: bool = False
    contact_name: Optional[str] = None
    phone_number: Optional[str] = None
    observations: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    invoice_items: List[BackupItem] = []

    @field_validator("invoice_items", mode="before")
    @classmethod
    def _null_items(cls, v):
        return [] if v is None else v

    class Config:
        from_attributes = True


class BackupRevenue(BaseModel):
    id: Optional[Any] = None
    user_id: Optional[str] = None
    revenue_date: date
    amount: Decimal = Field(..., ge=0)
    description: Optional[str] = None
    reference_month: Optional[str] = Field(None, pattern=REFERENCE_MONTH_PATTERN)
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BackupDebt(BaseModel):
    id: Optional[Any] = None
    user_id: Optional[str] = None
    debt_date: date
    amount: Decimal = Field(..., ge=0)
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BackupData(BaseModel):
    invoices: List[BackupInvoice]
    revenues: List[BackupRevenue]
    corte_cose_debts: List[BackupDebt] = []  # Absent in early exports


class BackupSummary(BaseModel):
    total_invoices: int
    total_revenues: int
    total_invoice_items: int
    total_corte_cose_debts: int = 0


class BackupDocument(BaseModel):
    version: int = Field(1, ge=1, le=BACKUP_SCHEMA_VERSION)  # Exports without a version are v1
    export_date: datetime
    user_email: str = ""
    data: BackupData
    summary: Optional[BackupSummary] = None


class BackupPreview(BaseModel):
    version: int
    export_date: datetime
    user_email: str
    summary: BackupSummary


class RestoreResult(BaseModel):
    status: Literal["restored"] = "restored"
    summary: BackupSummary
