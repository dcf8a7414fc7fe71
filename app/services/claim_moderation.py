"""Claims against items and their one-time resolution by the item owner."""
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from app.models.claim import Claim
from app.models.item import Item
from app.models.profile import Profile
from app.services.errors import (
    InvalidTransition,
    ItemNotClaimableError,
    NotFound,
    PermissionDenied,
    SelfClaimError,
    ValidationError,
    persistence_guard,
)
from app.services.item_lifecycle import TERMINAL_STATUSES, get_item

logger = logging.getLogger(__name__)

CLAIM_DECISIONS = ("approved", "rejected")


class ReceivedClaim(BaseModel):
    id: str
    status: str
    message: str
    created_at: datetime
    item_id: str
    item_title: str
    item_status: str
    claimer_id: str
    claimer_name: Optional[str]
    claimer_email: str


class SubmittedClaim(BaseModel):
    id: str
    status: str
    message: str
    created_at: datetime
    item_id: str
    item_title: str
    item_status: str


def submit_claim(session: Session, item_id: uuid.UUID, claimer_id: str, message: str) -> Claim:
    item = get_item(session, item_id)

    if item.user_id == claimer_id:
        raise SelfClaimError("You cannot claim your own item")

    if item.status in TERMINAL_STATUSES:
        raise ItemNotClaimableError(f"Item is {item.status} and no longer accepts claims")

    message = (message or "").strip()
    if not message:
        raise ValidationError.single("message", "Message cannot be empty")

    with persistence_guard(session, "submit claim"):
        if not session.get(Profile, claimer_id):
            raise NotFound("Claimer not found")

        claim = Claim(item_id=item.id, claimer_id=claimer_id, message=message)
        session.add(claim)
        session.commit()
        session.refresh(claim)

    logger.info("User %s submitted claim %s on item %s", claimer_id, claim.id, item.id)
    return claim


def resolve_claim(session: Session, claim_id: uuid.UUID, caller_id: str, decision: str) -> Claim:
    """Approve or reject a pending claim. Only the item owner may do this, once."""
    with persistence_guard(session, "load claim"):
        claim = session.get(Claim, claim_id)
    if not claim:
        raise NotFound("Claim not found")

    item = get_item(session, claim.item_id)

    if item.user_id != caller_id:
        logger.info("User %s refused resolution of claim %s", caller_id, claim_id)
        raise PermissionDenied("Not authorized to resolve this claim")

    if decision not in CLAIM_DECISIONS:
        raise ValidationError.single("decision", "Decision must be 'approved' or 'rejected'")

    if claim.status != "pending":
        raise InvalidTransition(f"Claim was already {claim.status}")

    claim.status = decision

    with persistence_guard(session, "resolve claim"):
        session.add(claim)
        session.commit()
        session.refresh(claim)

    logger.info("User %s %s claim %s", caller_id, decision, claim.id)
    return claim


def list_claims_for_owner(session: Session, owner_id: str) -> List[ReceivedClaim]:
    query = (
        select(Claim, Item, Profile)
        .join(Item, Claim.item_id == Item.id)
        .join(Profile, Claim.claimer_id == Profile.id)
        .where(Item.user_id == owner_id)
        .order_by(Claim.created_at.desc())
    )

    with persistence_guard(session, "list received claims"):
        rows = session.exec(query).all()

    return [
        ReceivedClaim(
            id=str(claim.id),
            status=claim.status,
            message=claim.message,
            created_at=claim.created_at,
            item_id=str(item.id),
            item_title=item.title,
            item_status=item.status,
            claimer_id=claimer.id,
            claimer_name=claimer.full_name,
            claimer_email=claimer.email,
        )
        for claim, item, claimer in rows
    ]


def list_claims_by_claimer(session: Session, claimer_id: str) -> List[SubmittedClaim]:
    query = (
        select(Claim, Item)
        .join(Item, Claim.item_id == Item.id)
        .where(Claim.claimer_id == claimer_id)
        .order_by(Claim.created_at.desc())
    )

    with persistence_guard(session, "list submitted claims"):
        rows = session.exec(query).all()

    return [
        SubmittedClaim(
            id=str(claim.id),
            status=claim.status,
            message=claim.message,
            created_at=claim.created_at,
            item_id=str(item.id),
            item_title=item.title,
            item_status=item.status,
        )
        for claim, item in rows
    ]
