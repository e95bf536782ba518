from fastapi import APIRouter, Depends

from atelier.auth import UserSession, get_session

router = APIRouter(prefix="/api/session", tags=["session"])


@router.get("")
def get_current_session(session: UserSession = Depends(get_session)):
    """Who the bearer token belongs to"""
    return {"user_id": session.user_id, "email": session.email}
