from pydantic import BaseModel
from typing import List, Dict
from datetime import date
from decimal import Decimal


class ReportSummary(BaseModel):
    start_date: date
    end_date: date
    total_invoice_value: Decimal
    total_invoice_count: int
    total_manual_value: Decimal
    total_manual_count: int
    total_value: Decimal
    item_count: int


class ReportTableResponse(BaseModel):
    shape: str
    title: str
    columns: List[str]
    rows: List[List[str]]
    summary_lines: List[str]


class ReportResponse(BaseModel):
    summary: ReportSummary
    tables: Dict[str, ReportTableResponse]
