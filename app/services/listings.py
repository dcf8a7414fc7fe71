"""Read-only item queries used by the browse, detail and "my items" views."""
import uuid
from typing import List, Optional, Tuple

from sqlmodel import Session, or_, select

from app.models.item import ITEM_CATEGORIES, ITEM_STATUSES, Item
from app.models.profile import Profile
from app.services.errors import ValidationError, persistence_guard
from app.services.item_lifecycle import get_item


def list_items(
    session: Session,
    search: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Item]:
    query = select(Item).order_by(Item.created_at.desc())

    if category and category != "all":
        if category not in ITEM_CATEGORIES:
            raise ValidationError.single("category", "Invalid category option")
        query = query.where(Item.category == category)

    if status and status != "all":
        if status not in ITEM_STATUSES:
            raise ValidationError.single("status", "Invalid status option")
        query = query.where(Item.status == status)

    search = (search or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Item.title.ilike(pattern),
                Item.description.ilike(pattern),
                Item.location.ilike(pattern),
            )
        )

    with persistence_guard(session, "list items"):
        return list(session.exec(query).all())


def get_item_details(session: Session, item_id: uuid.UUID) -> Tuple[Item, Optional[Profile]]:
    item = get_item(session, item_id)
    with persistence_guard(session, "load item owner"):
        owner = session.get(Profile, item.user_id)
    return item, owner


def list_items_for_owner(session: Session, owner_id: str) -> List[Item]:
    query = (
        select(Item)
        .where(Item.user_id == owner_id)
        .order_by(Item.created_at.desc())
    )
    with persistence_guard(session, "list owner items"):
        return list(session.exec(query).all())
