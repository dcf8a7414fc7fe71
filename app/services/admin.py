"""Admin dashboard queries and user removal."""
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel
from sqlmodel import Session, select

from app.models.claim import Claim
from app.models.item import Item
from app.models.profile import Profile
from app.models.user_role import UserRole
from app.services.errors import NotFound, PermissionDenied, persistence_guard
from app.services.roles import require_admin, resolve_role

logger = logging.getLogger(__name__)

TOP_CATEGORIES = 5
RECENT_ACTIVITY_DAYS = 7


class CategoryCount(BaseModel):
    category: str
    count: int


class Analytics(BaseModel):
    total_items: int
    lost_items: int
    found_items: int
    recovered_items: int
    recovery_rate: int
    category_breakdown: List[CategoryCount]
    status_breakdown: Dict[str, int]
    recent_activity: int


class UserWithRole(BaseModel):
    id: str
    full_name: Optional[str]
    email: str
    phone: Optional[str]
    avatar_url: Optional[str]
    created_at: datetime
    role: str


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def compute_analytics(session: Session, caller_role: str, now: Optional[datetime] = None) -> Analytics:
    require_admin(caller_role, "view analytics")

    with persistence_guard(session, "load analytics"):
        items = session.exec(select(Item)).all()

    now = now or datetime.now(timezone.utc)
    week_ago = now - timedelta(days=RECENT_ACTIVITY_DAYS)

    statuses = Counter(item.status for item in items)
    categories = Counter(item.category for item in items)

    total = len(items)
    recovered = statuses.get("recovered", 0)

    return Analytics(
        total_items=total,
        lost_items=statuses.get("lost", 0),
        found_items=statuses.get("found", 0),
        recovered_items=recovered,
        recovery_rate=round(recovered / total * 100) if total else 0,
        category_breakdown=[
            CategoryCount(category=name, count=count)
            for name, count in categories.most_common(TOP_CATEGORIES)
        ],
        status_breakdown=dict(statuses),
        recent_activity=sum(1 for item in items if _as_utc(item.created_at) > week_ago),
    )


def list_all_items(session: Session, caller_role: str) -> List[Tuple[Item, Optional[Profile]]]:
    require_admin(caller_role, "list all items")

    with persistence_guard(session, "list all items"):
        items = session.exec(select(Item).order_by(Item.created_at.desc())).all()
        profiles = {p.id: p for p in session.exec(select(Profile)).all()}

    return [(item, profiles.get(item.user_id)) for item in items]


def list_users_with_roles(session: Session, caller_role: str) -> List[UserWithRole]:
    require_admin(caller_role, "list users")

    with persistence_guard(session, "list users"):
        profiles = session.exec(select(Profile).order_by(Profile.created_at.desc())).all()
        roles = session.exec(select(UserRole)).all()

    return [
        UserWithRole(
            id=profile.id,
            full_name=profile.full_name,
            email=profile.email,
            phone=profile.phone,
            avatar_url=profile.avatar_url,
            created_at=profile.created_at,
            role=resolve_role(profile.id, roles),
        )
        for profile in profiles
    ]


def remove_user(session: Session, caller_id: str, caller_role: str, user_id: str) -> None:
    """Remove a user and everything that references them.

    Roles, claims by the user, claims by others on the user's items, the
    items and finally the profile are deleted in a single commit.
    """
    require_admin(caller_role, "remove users")

    if caller_id == user_id:
        raise PermissionDenied("Admins cannot remove themselves")

    with persistence_guard(session, "remove user"):
        profile = session.get(Profile, user_id)
        if not profile:
            raise NotFound("User not found")

        roles = session.exec(select(UserRole).where(UserRole.user_id == user_id)).all()
        for role in roles:
            session.delete(role)

        own_claims = session.exec(select(Claim).where(Claim.claimer_id == user_id)).all()
        for claim in own_claims:
            session.delete(claim)

        items = session.exec(select(Item).where(Item.user_id == user_id)).all()
        item_ids = [item.id for item in items]

        received_claims = []
        if item_ids:
            received_claims = session.exec(
                select(Claim).where(Claim.item_id.in_(item_ids), Claim.claimer_id != user_id)
            ).all()
        for claim in received_claims:
            session.delete(claim)
        session.flush()

        for item in items:
            session.delete(item)
        session.flush()

        session.delete(profile)
        session.commit()

    logger.info(
        "User %s removed user %s (%d items, %d claims, %d claims on their items)",
        caller_id,
        user_id,
        len(items),
        len(own_claims),
        len(received_claims),
    )
