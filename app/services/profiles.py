import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlmodel import Session

from app.models.profile import Profile
from app.services.errors import FieldViolation, NotFound, PermissionDenied, ValidationError, persistence_guard
from app.utils.form_validator import validate_profile_fields

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"full_name", "phone"}


def get_profile(session: Session, user_id: str) -> Profile:
    with persistence_guard(session, "load profile"):
        profile = session.get(Profile, user_id)
    if not profile:
        raise NotFound("User not found")
    return profile


def _save(session: Session, profile: Profile, action: str) -> Profile:
    with persistence_guard(session, action):
        session.add(profile)
        session.commit()
        session.refresh(profile)
    return profile


def ensure_profile(
    session: Session,
    user_id: str,
    email: str,
    full_name: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> Profile:
    """Return the profile for a signed-in identity, creating it on first sign-in."""
    with persistence_guard(session, "load profile"):
        profile = session.get(Profile, user_id)
    if profile:
        return profile

    profile = Profile(id=user_id, email=email, full_name=full_name, avatar_url=avatar_url)
    profile = _save(session, profile, "create profile")
    logger.info("Created profile %s", user_id)
    return profile


def update_profile(session: Session, user_id: str, caller_id: str, patch: Dict[str, Any]) -> Profile:
    profile = get_profile(session, user_id)

    if caller_id != user_id:
        raise PermissionDenied("Only the owner can edit this profile")

    rejected = sorted(field for field in patch if field not in EDITABLE_FIELDS)
    if rejected:
        raise ValidationError(
            [FieldViolation(field=f, message=f"Field '{f}' cannot be updated") for f in rejected]
        )

    merged = {"full_name": profile.full_name, "phone": profile.phone}
    merged.update(patch)
    validated = validate_profile_fields(merged)

    profile.full_name = validated.full_name
    profile.phone = validated.phone
    profile.updated_at = datetime.now(timezone.utc)

    profile = _save(session, profile, "update profile")
    logger.info("User %s updated their profile", caller_id)
    return profile


def set_avatar(session: Session, user_id: str, caller_id: str, avatar_ref: str) -> Profile:
    profile = get_profile(session, user_id)

    if caller_id != user_id:
        raise PermissionDenied("Only the owner can change this avatar")

    profile.avatar_url = avatar_ref
    profile.updated_at = datetime.now(timezone.utc)

    profile = _save(session, profile, "update avatar")
    logger.info("User %s changed their avatar", caller_id)
    return profile
