"""
Reports Router - period reports as JSON previews and PDF downloads
"""
import logging
from datetime import date, datetime
from typing import Literal, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from atelier.auth import UserSession, get_session
from atelier.config import settings
from atelier.database import get_db
from atelier.schemas.report import ReportResponse, ReportSummary, ReportTableResponse
from atelier.services.report_service import (
    ReportData,
    ReportShape,
    ReportTable,
    current_month_range,
    current_week_range,
    fetch_report_data,
    project_report,
    render_report_pdf,
    report_filename,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


def resolve_range(
    start_date: Optional[date],
    end_date: Optional[date],
    preset: Optional[str],
    today: date,
) -> Tuple[date, date]:
    """Explicit dates win over a preset; one of the two is required"""
    if start_date and end_date:
        if start_date > end_date:
            raise HTTPException(status_code=400, detail="A data inicial deve ser anterior à data final")
        return start_date, end_date
    if preset == "month":
        return current_month_range(today)
    if preset == "week":
        return current_week_range(today)
    raise HTTPException(status_code=400, detail="Por favor, selecione as datas inicial e final")


def _load(db: Session, session: UserSession, start: date, end: date) -> ReportData:
    try:
        return fetch_report_data(db, session, start, end)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error generating report: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Falha ao gerar relatório")


def _table_response(table: ReportTable) -> ReportTableResponse:
    return ReportTableResponse(
        shape=table.shape.value,
        title=table.title,
        columns=table.columns,
        rows=table.rows,
        summary_lines=table.summary_lines,
    )


@router.get("", response_model=ReportResponse)
def get_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    preset: Optional[Literal["month", "week"]] = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Totals plus every report shape, from a single fetch"""
    start, end = resolve_range(start_date, end_date, preset, date.today())
    data = _load(db, session, start, end)
    rate = settings.projected_earning_rate

    summary = ReportSummary(
        start_date=start,
        end_date=end,
        total_invoice_value=data.total_invoice_value,
        total_invoice_count=len(data.regular_invoices),
        total_manual_value=data.total_manual_value,
        total_manual_count=len(data.manual_invoices),
        total_value=data.total_value,
        item_count=len(data.items),
    )
    tables = {shape.value: _table_response(project_report(data, shape, rate)) for shape in ReportShape}
    return ReportResponse(summary=summary, tables=tables)


@router.get("/{shape}", response_model=ReportTableResponse)
def get_report_table(
    shape: ReportShape,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    preset: Optional[Literal["month", "week"]] = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    start, end = resolve_range(start_date, end_date, preset, date.today())
    data = _load(db, session, start, end)
    return _table_response(project_report(data, shape, settings.projected_earning_rate))


@router.get("/{shape}/pdf")
def download_report_pdf(
    shape: ReportShape,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    preset: Optional[Literal["month", "week"]] = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Download one report shape as PDF"""
    today = date.today()
    start, end = resolve_range(start_date, end_date, preset, today)
    data = _load(db, session, start, end)
    pdf = render_report_pdf(data, shape, settings.projected_earning_rate, generated_at=datetime.now())
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(shape, today)}"'},
    )
