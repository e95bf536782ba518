"""
Revenue and Corte & Cose debt ledgers, plus the monthly calendar view that
shows both side by side.
"""
import calendar
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from atelier.auth import UserSession
from atelier.models.debt import CorteCoseDebt
from atelier.models.revenue import Revenue
from atelier.schemas.ledger import (
    CalendarDay,
    CalendarEntry,
    CalendarMonth,
    DebtCreate,
    DebtUpdate,
    ReferenceMonthOption,
    RevenueCreate,
    RevenueUpdate,
)
from atelier.services.invoice_service import month_bounds

logger = logging.getLogger(__name__)

MAX_INLINE_ENTRIES = 3

MONTH_NAMES = [
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
]


def period_bounds(year: Optional[int], month: Optional[int]) -> Optional[Tuple[date, date]]:
    """
    Date range for a list filter: a whole month, a whole year when only the
    year is given, or None for no filter. A month without a year is an error.
    """
    if year is None:
        if month is not None:
            raise ValueError("month requires a year")
        return None
    if month is None:
        return date(year, 1, 1), date(year, 12, 31)
    return month_bounds(year, month)


# Revenues

def list_revenues(
    db: Session,
    session: UserSession,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> List[Revenue]:
    query = db.query(Revenue).filter(Revenue.user_id == session.user_id)
    bounds = period_bounds(year, month)
    if bounds:
        start, end = bounds
        query = query.filter(Revenue.revenue_date >= start, Revenue.revenue_date <= end)
    return query.order_by(Revenue.revenue_date.desc(), Revenue.id.desc()).all()


def get_revenue(db: Session, session: UserSession, revenue_id: int) -> Optional[Revenue]:
    return db.query(Revenue).filter(Revenue.id == revenue_id, Revenue.user_id == session.user_id).first()


def create_revenue(db: Session, session: UserSession, payload: RevenueCreate) -> Revenue:
    revenue = Revenue(
        user_id=session.user_id,
        revenue_date=payload.revenue_date,
        amount=payload.amount,
        description=payload.description or None,
        reference_month=payload.reference_month or None,
    )
    db.add(revenue)
    db.commit()
    db.refresh(revenue)
    logger.info(f"Revenue {revenue.id} added ({revenue.amount} on {revenue.revenue_date})")
    return revenue


def update_revenue(db: Session, session: UserSession, revenue_id: int, payload: RevenueUpdate) -> Optional[Revenue]:
    revenue = get_revenue(db, session, revenue_id)
    if not revenue:
        return None
    revenue.revenue_date = payload.revenue_date
    revenue.amount = payload.amount
    revenue.description = payload.description or None
    revenue.reference_month = payload.reference_month or None
    db.commit()
    db.refresh(revenue)
    return revenue


def delete_revenue(db: Session, session: UserSession, revenue_id: int) -> bool:
    revenue = get_revenue(db, session, revenue_id)
    if not revenue:
        return False
    db.delete(revenue)
    db.commit()
    return True


# Debts

def list_debts(
    db: Session,
    session: UserSession,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> List[CorteCoseDebt]:
    query = db.query(CorteCoseDebt).filter(CorteCoseDebt.user_id == session.user_id)
    bounds = period_bounds(year, month)
    if bounds:
        start, end = bounds
        query = query.filter(CorteCoseDebt.debt_date >= start, CorteCoseDebt.debt_date <= end)
    return query.order_by(CorteCoseDebt.debt_date.desc(), CorteCoseDebt.id.desc()).all()


def get_debt(db: Session, session: UserSession, debt_id: int) -> Optional[CorteCoseDebt]:
    return (
        db.query(CorteCoseDebt)
        .filter(CorteCoseDebt.id == debt_id, CorteCoseDebt.user_id == session.user_id)
        .first()
    )


def create_debt(db: Session, session: UserSession, payload: DebtCreate) -> CorteCoseDebt:
    debt = CorteCoseDebt(
        user_id=session.user_id,
        debt_date=payload.debt_date,
        amount=payload.amount,
        description=payload.description or None,
    )
    db.add(debt)
    db.commit()
    db.refresh(debt)
    logger.info(f"Debt {debt.id} added ({debt.amount} on {debt.debt_date})")
    return debt


def update_debt(db: Session, session: UserSession, debt_id: int, payload: DebtUpdate) -> Optional[CorteCoseDebt]:
    debt = get_debt(db, session, debt_id)
    if not debt:
        return None
    debt.debt_date = payload.debt_date
    debt.amount = payload.amount
    debt.description = payload.description or None
    db.commit()
    db.refresh(debt)
    return debt


def delete_debt(db: Session, session: UserSession, debt_id: int) -> bool:
    debt = get_debt(db, session, debt_id)
    if not debt:
        return False
    db.delete(debt)
    db.commit()
    return True


# Calendar

def build_calendar(
    year: int,
    month: int,
    revenues: Sequence[Revenue],
    debts: Sequence[CorteCoseDebt],
    max_inline: int = MAX_INLINE_ENTRIES,
) -> CalendarMonth:
    """
    Sunday-first month grid. Entries are bucketed by exact date; each day
    shows at most ``max_inline`` entries (revenues first) and keeps the rest
    as overflow.
    """
    by_day: Dict[date, List[CalendarEntry]] = defaultdict(list)
    for rev in revenues:
        by_day[rev.revenue_date].append(CalendarEntry(
            id=rev.id,
            kind="revenue",
            entry_date=rev.revenue_date,
            amount=rev.amount,
            description=rev.description,
            reference_month=rev.reference_month,
        ))
    for debt in debts:
        by_day[debt.debt_date].append(CalendarEntry(
            id=debt.id,
            kind="debt",
            entry_date=debt.debt_date,
            amount=debt.amount,
            description=debt.description,
        ))

    # calendar.weekday(): Monday=0 ... Sunday=6; shift so Sunday is column 0
    leading_blanks = (calendar.weekday(year, month, 1) + 1) % 7
    cells: List[Optional[CalendarDay]] = [None] * leading_blanks

    days_in_month = calendar.monthrange(year, month)[1]
    for day in range(1, days_in_month + 1):
        current = date(year, month, day)
        entries = by_day.get(current, [])
        cells.append(CalendarDay(
            day=day,
            day_date=current,
            entries=entries[:max_inline],
            overflow=entries[max_inline:],
            overflow_count=max(len(entries) - max_inline, 0),
        ))

    return CalendarMonth(year=year, month=month, cells=cells)


def month_calendar(db: Session, session: UserSession, year: int, month: int) -> CalendarMonth:
    return build_calendar(
        year,
        month,
        list(reversed(list_revenues(db, session, year, month))),
        list(reversed(list_debts(db, session, year, month))),
    )


def reference_month_options(today: date) -> List[ReferenceMonthOption]:
    """Selectable reference months: every month of this year and of last year"""
    options = []
    for year in (today.year, today.year - 1):
        for month in range(1, 13):
            options.append(ReferenceMonthOption(
                value=f"{year}-{month:02d}",
                label=f"{MONTH_NAMES[month - 1]} {year}",
            ))
    return options
