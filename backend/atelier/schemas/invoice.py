from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal


class InvoiceItemResponse(BaseModel):
    id: int
    invoice_id: int
    description: str
    value: Decimal

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    invoice_date: date
    delivery_date: date
    total_value: Decimal
    image_url: Optional[str] = None
    original_filename: Optional[str] = None
    is_manual_entry: bool
    is_validated: bool
    contact_name: Optional[str] = None
    phone_number: Optional[str] = None
    observations: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    invoice_items: List[InvoiceItemResponse] = []

    class Config:
        from_attributes = True


class ManualItemCreate(BaseModel):
    description: str = ""
    quantity: Decimal = Field(Decimal("1"), ge=0)
    unit_value: Decimal = Field(Decimal("0"), ge=0)


class ManualEntryCreate(BaseModel):
    """Typed-in invoice. Required fields are checked by the service so the
    caller gets a single readable message instead of a pydantic error list."""
    invoice_number: str = ""
    invoice_date: Optional[date] = None
    delivery_date: Optional[date] = None  # Defaults to invoice_date
    contact_name: Optional[str] = None
    phone_number: Optional[str] = None
    observations: Optional[str] = None
    items: List[ManualItemCreate] = []


class InvoiceItemEdit(BaseModel):
    id: Optional[int] = None  # None for items added during the edit session
    description: str
    value: Decimal = Field(..., ge=0)


class InvoiceItemCreate(BaseModel):
    description: str
    value: Decimal = Field(Decimal("0"), ge=0)


class InvoiceUpdate(BaseModel):
    invoice_number: str
    invoice_date: date
    delivery_date: date
    contact_name: Optional[str] = None
    phone_number: Optional[str] = None
    items: List[InvoiceItemEdit]


class YearMonths(BaseModel):
    year: int
    months: List[int]  # 1-12, newest first
