import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from atelier.auth import UserSession, get_session
from atelier.database import get_db
from atelier.schemas.ledger import RevenueCreate, RevenueResponse, RevenueUpdate
from atelier.services import ledger_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/revenues", tags=["revenues"])


def _database_error(db: Session, action: str, e: Exception):
    db.rollback()
    logger.error(f"Database error while trying to {action}: {str(e)}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Falha ao {action}")


@router.get("", response_model=List[RevenueResponse])
def list_revenues(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    """Payments received, newest first. Filter by month, or by whole year when only year is given."""
    try:
        return ledger_service.list_revenues(db, session, year, month)
    except ValueError:
        raise HTTPException(status_code=400, detail="Informe o ano junto com o mês")


@router.post("", response_model=RevenueResponse, status_code=201)
def create_revenue(
    payload: RevenueCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    try:
        return ledger_service.create_revenue(db, session, payload)
    except SQLAlchemyError as e:
        raise _database_error(db, "adicionar receita", e)


@router.put("/{revenue_id}", response_model=RevenueResponse)
def update_revenue(
    revenue_id: int,
    payload: RevenueUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    try:
        revenue = ledger_service.update_revenue(db, session, revenue_id, payload)
    except SQLAlchemyError as e:
        raise _database_error(db, "atualizar receita", e)
    if not revenue:
        raise HTTPException(status_code=404, detail="Receita não encontrada")
    return revenue


@router.delete("/{revenue_id}")
def delete_revenue(
    revenue_id: int,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    try:
        deleted = ledger_service.delete_revenue(db, session, revenue_id)
    except SQLAlchemyError as e:
        raise _database_error(db, "remover receita", e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Receita não encontrada")
    return {"message": "Receita removida", "revenue_id": revenue_id}
