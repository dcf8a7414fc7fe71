"""Item lifecycle: creation, edits, status changes, verification and removal.

Status moves are owner-only and follow ALLOWED_TRANSITIONS. ``recovered``
and ``closed`` have no outgoing edges. Edits and deletes are allowed for
the owner or an admin. Permission is checked before anything is written.
"""
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from sqlmodel import Session, select

from app.models.claim import Claim
from app.models.item import ITEM_STATUSES, Item
from app.services.errors import (
    FieldViolation,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
    persistence_guard,
)
from app.utils.form_validator import validate_item_fields

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    "lost": frozenset({"recovered", "closed"}),
    "found": frozenset({"claimed", "closed"}),
    "claimed": frozenset({"closed"}),
    "recovered": frozenset(),
    "closed": frozenset(),
}

TERMINAL_STATUSES = frozenset({"recovered", "closed"})

EDITABLE_FIELDS = {
    "title",
    "category",
    "description",
    "location",
    "date_lost_found",
    "image_url",
    "contact_email",
    "contact_phone",
}


def allowed_transitions(status: str) -> frozenset:
    return ALLOWED_TRANSITIONS.get(status, frozenset())


def can_edit(item: Item, caller_id: Optional[str], caller_role: str) -> bool:
    return caller_role == "admin" or (caller_id is not None and item.user_id == caller_id)


def get_item(session: Session, item_id: uuid.UUID) -> Item:
    with persistence_guard(session, "load item"):
        item = session.get(Item, item_id)
    if not item:
        raise NotFound("Item not found")
    return item


def _save(session: Session, item: Item, action: str) -> Item:
    with persistence_guard(session, action):
        session.add(item)
        session.commit()
        session.refresh(item)
    return item


def create_item(
    session: Session,
    owner_id: str,
    title: str,
    category: str,
    location: str,
    date_lost_found: date,
    status: str,
    description: Optional[str] = None,
    image_ref: Optional[str] = None,
    contact_email: Optional[str] = None,
    contact_phone: Optional[str] = None,
) -> Item:
    validated = validate_item_fields(
        {
            "title": title,
            "category": category,
            "description": description,
            "location": location,
            "date_lost_found": date_lost_found,
            "status": status,
            "image_url": image_ref,
            "contact_email": contact_email,
            "contact_phone": contact_phone,
        },
        creating=True,
    )

    item = Item(user_id=owner_id, is_verified=False, **validated.model_dump())
    item = _save(session, item, "create item")

    logger.info("User %s reported %s item %s", owner_id, item.status, item.id)
    return item


def update_item(
    session: Session,
    item_id: uuid.UUID,
    caller_id: str,
    caller_role: str,
    patch: Dict[str, Any],
) -> Item:
    item = get_item(session, item_id)

    if not can_edit(item, caller_id, caller_role):
        logger.info("User %s refused edit of item %s", caller_id, item_id)
        raise PermissionDenied("Unauthorized to edit this item")

    rejected = sorted(field for field in patch if field not in EDITABLE_FIELDS)
    if rejected:
        raise ValidationError(
            [FieldViolation(field=f, message=f"Field '{f}' cannot be updated") for f in rejected]
        )

    merged = {field: getattr(item, field) for field in EDITABLE_FIELDS}
    merged.update(patch)
    validated = validate_item_fields(merged, creating=False)

    for field, value in validated.model_dump().items():
        setattr(item, field, value)
    item.updated_at = datetime.now(timezone.utc)

    item = _save(session, item, "update item")
    logger.info("User %s updated item %s", caller_id, item.id)
    return item


def transition_status(session: Session, item_id: uuid.UUID, caller_id: str, new_status: str) -> Item:
    item = get_item(session, item_id)

    if item.user_id != caller_id:
        logger.info("User %s refused status change of item %s", caller_id, item_id)
        raise PermissionDenied("Only the owner can change the status of this item")

    if new_status not in ITEM_STATUSES:
        raise ValidationError.single("status", f"Status must be one of: {', '.join(ITEM_STATUSES)}")

    if new_status not in allowed_transitions(item.status):
        raise InvalidTransition(f"Cannot move item from '{item.status}' to '{new_status}'")

    previous = item.status
    item.status = new_status
    item.updated_at = datetime.now(timezone.utc)

    item = _save(session, item, "change item status")
    logger.info("User %s moved item %s from %s to %s", caller_id, item.id, previous, new_status)
    return item


def set_verified(session: Session, item_id: uuid.UUID, caller_role: str, verified: bool) -> Item:
    item = get_item(session, item_id)

    if caller_role != "admin":
        raise PermissionDenied("Admin access required to verify items")

    item.is_verified = bool(verified)
    item.updated_at = datetime.now(timezone.utc)

    item = _save(session, item, "update item verification")
    logger.info("Item %s verification set to %s", item.id, item.is_verified)
    return item


def delete_item(session: Session, item_id: uuid.UUID, caller_id: str, caller_role: str) -> None:
    """Delete an item and the claims filed against it in one commit."""
    item = get_item(session, item_id)

    if not can_edit(item, caller_id, caller_role):
        logger.info("User %s refused delete of item %s", caller_id, item_id)
        raise PermissionDenied("Unauthorized to delete this item")

    with persistence_guard(session, "delete item"):
        claims = session.exec(select(Claim).where(Claim.item_id == item.id)).all()
        for claim in claims:
            session.delete(claim)
        session.flush()

        session.delete(item)
        session.commit()

    logger.info("User %s deleted item %s (%d claims removed)", caller_id, item_id, len(claims))
