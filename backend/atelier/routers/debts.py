"""
Debts Router - the Corte & Cose debt ledger
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from atelier.auth import UserSession, get_session
from atelier.database import get_db
from atelier.schemas.ledger import DebtCreate, DebtResponse, DebtUpdate
from atelier.services import ledger_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/debts", tags=["debts"])


@router.get("", response_model=List[DebtResponse])
def list_debts(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    try:
        return ledger_service.list_debts(db, session, year, month)
    except ValueError:
        raise HTTPException(status_code=400, detail="Informe o ano junto com o mês")


@router.post("", response_model=DebtResponse, status_code=201)
def create_debt(
    payload: DebtCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    try:
        return ledger_service.create_debt(db, session, payload)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error adding debt: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Falha ao adicionar dívida")


@router.put("/{debt_id}", response_model=DebtResponse)
def update_debt(
    debt_id: int,
    payload: DebtUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    try:
        debt = ledger_service.update_debt(db, session, debt_id, payload)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating debt {debt_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Falha ao atualizar dívida")
    if not debt:
        raise HTTPException(status_code=404, detail="Dívida não encontrada")
    return debt


@router.delete("/{debt_id}")
def delete_debt(
    debt_id: int,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_session),
):
    try:
        deleted = ledger_service.delete_debt(db, session, debt_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting debt {debt_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Falha ao remover dívida")
    if not deleted:
        raise HTTPException(status_code=404, detail="Dívida não encontrada")
    return {"message": "Dívida removida", "debt_id": debt_id}
