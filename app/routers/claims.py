import uuid
from typing import List, Literal
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from app.db.db import get_session
from app.services.claim_moderation import (
    ReceivedClaim,
    SubmittedClaim,
    list_claims_by_claimer,
    list_claims_for_owner,
    resolve_claim,
)
from app.utils.auth_helper import Caller, get_caller


router = APIRouter()


class ClaimResolveRequest(BaseModel):
    decision: Literal["approved", "rejected"]


@router.get("/received", response_model=List[ReceivedClaim])
def get_received_claims(
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    """Claims other users filed against the caller's items."""
    return list_claims_for_owner(session, caller.id)


@router.get("/mine", response_model=List[SubmittedClaim])
def get_my_claims(
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    return list_claims_by_claimer(session, caller.id)


@router.post("/{claim_id}/resolve")
def resolve(
    claim_id: uuid.UUID,
    payload: ClaimResolveRequest,
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    claim = resolve_claim(session, claim_id, caller.id, payload.decision)

    return {
        "ok": True,
        "claim": claim,
    }
