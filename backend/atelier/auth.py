"""
Session handling for tokens issued by the external auth provider.

Every data-access call receives an explicit ``UserSession``; nothing reads a
process-wide "current user".
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from atelier.config import settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticationError(Exception):
    """Token missing, malformed, expired or not ours"""


class UserSession(BaseModel):
    user_id: str
    email: Optional[str] = None
    access_token: str


class SessionProvider:
    """Turns bearer tokens into ``UserSession`` objects"""

    def __init__(self, secret: str, algorithm: str = "HS256", audience: Optional[str] = None):
        self.secret = secret
        self.algorithm = algorithm
        self.audience = audience

    def from_token(self, token: str) -> UserSession:
        if not token:
            raise AuthenticationError("Missing access token")

        options = {"verify_aud": self.audience is not None}
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                options=options,
            )
        except JWTError as e:
            raise AuthenticationError(f"Invalid access token: {str(e)}")

        # jose skips the audience check when the claim is absent
        if self.audience is not None and "aud" not in payload:
            raise AuthenticationError("Access token has no audience")

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Access token has no subject")

        return UserSession(user_id=str(user_id), email=payload.get("email"), access_token=token)


session_provider = SessionProvider(
    secret=settings.auth_jwt_secret,
    algorithm=settings.auth_jwt_algorithm,
    audience=settings.auth_jwt_audience,
)


def get_session_provider() -> SessionProvider:
    return session_provider


def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    provider: SessionProvider = Depends(get_session_provider),
) -> UserSession:
    """FastAPI dependency: the caller's session, or 401"""
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Usuário não autenticado",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return provider.from_token(credentials.credentials)
    except AuthenticationError as e:
        logger.info(f"Rejected request: {str(e)}")
        raise HTTPException(
            status_code=401,
            detail="Usuário não autenticado",
            headers={"WWW-Authenticate": "Bearer"},
        )
