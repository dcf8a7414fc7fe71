import os
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session
from google.oauth2 import id_token
from google.auth.transport import requests as grequests

from app.db.db import get_session
from app.services.profiles import ensure_profile
from app.services.roles import get_role
from app.utils.auth_helper import create_access_token

router = APIRouter()


class GoogleIDToken(BaseModel):
    id_token: str


class TokenResponse(BaseModel):
    access_token: str
    user_id: str
    role: str


def verify_google_token(token: str) -> dict:
    client_id = os.getenv("GOOGLE_CLIENT_ID")
    if not client_id:
        raise HTTPException(status_code=500, detail="GOOGLE_CLIENT_ID is not configured")

    try:
        return id_token.verify_oauth2_token(token, grequests.Request(), client_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid Google ID token")


@router.post("/google", response_model=TokenResponse)
def google_auth(payload: GoogleIDToken, session: Session = Depends(get_session)):
    # idinfo is trusted and parsed by Google libs
    idinfo = verify_google_token(payload.id_token)

    profile = ensure_profile(
        session,
        user_id=idinfo["sub"],
        email=idinfo.get("email", ""),
        full_name=idinfo.get("name"),
        avatar_url=idinfo.get("picture"),
    )

    return TokenResponse(
        access_token=create_access_token(profile.id),
        user_id=profile.id,
        role=get_role(session, profile.id),
    )
