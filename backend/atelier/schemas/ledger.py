from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import date, datetime
from decimal import Decimal


REFERENCE_MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"  # YYYY-MM


class RevenueBase(BaseModel):
    revenue_date: date
    amount: Decimal = Field(..., ge=0)
    description: Optional[str] = None
    reference_month: Optional[str] = Field(None, pattern=REFERENCE_MONTH_PATTERN)


class RevenueCreate(RevenueBase):
    pass


class RevenueUpdate(RevenueBase):
    pass


class RevenueResponse(RevenueBase):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DebtBase(BaseModel):
    debt_date: date
    amount: Decimal = Field(..., ge=0)
    description: Optional[str] = None


class DebtCreate(DebtBase):
    pass


class DebtUpdate(DebtBase):
    pass


class DebtResponse(DebtBase):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CalendarEntry(BaseModel):
    id: int
    kind: Literal["revenue", "debt"]
    entry_date: date
    amount: Decimal
    description: Optional[str] = None
    reference_month: Optional[str] = None


class CalendarDay(BaseModel):
    day: int
    day_date: date
    entries: List[CalendarEntry] = []  # Shown inline
    overflow: List[CalendarEntry] = []  # Behind the "+N" popover
    overflow_count: int = 0


class CalendarMonth(BaseModel):
    year: int
    month: int
    cells: List[Optional[CalendarDay]]  # Sunday-first grid, None = padding before day 1


class ReferenceMonthOption(BaseModel):
    value: str  # YYYY-MM
    label: str
