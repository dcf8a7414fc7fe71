"""Role lookup and assignment.

A user without a role row is an ordinary ``user``. Roles are always
resolved from storage for each request and handed to the workflows as an
explicit ``caller_role`` argument.
"""
import logging
from typing import Iterable

from sqlmodel import Session, select

from app.models.profile import Profile
from app.models.user_role import APP_ROLES, UserRole
from app.services.errors import NotFound, PermissionDenied, ValidationError, persistence_guard

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "user"


def resolve_role(user_id: str, role_records: Iterable[UserRole]) -> str:
    roles = {r.role for r in role_records if r.user_id == user_id}
    if not roles:
        return DEFAULT_ROLE
    if len(roles) > 1:
        logger.warning("Conflicting role records for user %s: %s", user_id, sorted(roles))
        return DEFAULT_ROLE
    return roles.pop()


def get_role(session: Session, user_id: str) -> str:
    with persistence_guard(session, "load user role"):
        records = session.exec(select(UserRole).where(UserRole.user_id == user_id)).all()
    return resolve_role(user_id, records)


def require_admin(caller_role: str, action: str) -> None:
    if caller_role != "admin":
        raise PermissionDenied(f"Admin access required to {action}")


def assign_role(session: Session, caller_id: str, caller_role: str, user_id: str, role: str) -> UserRole:
    """Set the single role row of a user, creating it if needed."""
    require_admin(caller_role, "change roles")

    if role not in APP_ROLES:
        raise ValidationError.single("role", f"Role must be one of: {', '.join(APP_ROLES)}")

    with persistence_guard(session, "assign role"):
        if not session.get(Profile, user_id):
            raise NotFound("User not found")

        record = session.exec(select(UserRole).where(UserRole.user_id == user_id)).first()
        if record:
            record.role = role
        else:
            record = UserRole(user_id=user_id, role=role)

        session.add(record)
        session.commit()
        session.refresh(record)

    logger.info("User %s set role of %s to %s", caller_id, user_id, role)
    return record
