from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from atelier.auth import UserSession, get_session
from atelier.database import get_db
from atelier.schemas.ledger import CalendarMonth, ReferenceMonthOption
from atelier.services import ledger_service

router = APIRouter(prefix="/api/ledger", tags=["ledger"])


@router.get("/calendar", response_model=CalendarMonth)
def get_month_calendar(
    year: int = Query(..., ge=1900, le=9999),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Revenues and debts of one month laid out on a Sunday-first grid"""
    return ledger_service.month_calendar(db, session, year, month)


@router.get("/reference-months", response_model=List[ReferenceMonthOption])
def list_reference_months(session: UserSession = Depends(get_session)):
    return ledger_service.reference_month_options(date.today())
