import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from sqlmodel import Session

from app.db.db import get_session
from app.models.profile import Profile
from app.services.errors import persistence_guard
from app.services.roles import get_role

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 24 * 60  # 1 day


@dataclass(frozen=True)
class Caller:
    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise HTTPException(status_code=500, detail="JWT_SECRET is not configured")
    return secret


def create_access_token(user_id: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, _secret(), algorithm=ALGORITHM)


bearer_scheme_required = HTTPBearer(auto_error=True)


def get_current_user_required(token: HTTPAuthorizationCredentials = Depends(bearer_scheme_required)):
    try:
        return jwt.decode(token.credentials, _secret(), algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def get_caller(
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_required),
) -> Caller:
    """Build the explicit caller context handed to every workflow call.

    The role is looked up from storage on each request, never read from the token.
    """
    user_id = current_user.get("sub")
    profile = None
    if user_id:
        with persistence_guard(session, "load caller profile"):
            profile = session.get(Profile, user_id)
    if not profile:
        raise HTTPException(status_code=401, detail="User not found")

    return Caller(id=user_id, role=get_role(session, user_id))
