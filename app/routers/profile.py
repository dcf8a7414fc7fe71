from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from PIL import UnidentifiedImageError
from sqlmodel import Session

from app.db.db import get_session
from app.models.profile import Profile
from app.services import listings, profiles
from app.utils.auth_helper import Caller, get_caller
from app.utils.s3_service import build_object_path, delete_object, get_public_url, upload, with_public_urls
from app.routers.items import MAX_UPLOAD_BYTES, MAX_UPLOAD_SIZE_MB


router = APIRouter()


def profile_out(profile: Profile) -> dict:
    data = profile.model_dump()
    data["avatar_url"] = get_public_url(profile.avatar_url)
    return data


@router.get("/me")
def get_my_profile(
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    profile = profiles.get_profile(session, caller.id)

    return {
        "profile": profile_out(profile),
        "role": caller.role,
    }


@router.patch("/me")
def update_my_profile(
    updates: dict,
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    profile = profiles.update_profile(session, caller.id, caller.id, updates)

    return profile_out(profile)


@router.post("/me/avatar")
async def upload_avatar(
    image: UploadFile = File(...),
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    raw_bytes = await image.read()

    if len(raw_bytes) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail=f"Image exceeds {MAX_UPLOAD_SIZE_MB}MB limit")

    try:
        ref = upload(build_object_path("avatars", caller.id, image.filename), raw_bytes)
    except UnidentifiedImageError:
        raise HTTPException(status_code=400, detail="File is not a supported image")

    previous = profiles.get_profile(session, caller.id).avatar_url
    profile = profiles.set_avatar(session, caller.id, caller.id, ref)
    delete_object(previous)

    return profile_out(profile)


@router.get("/{user_id}")
def get_profile(
    user_id: str,
    session: Session = Depends(get_session),
):
    profile = profiles.get_profile(session, user_id)
    items = listings.list_items_for_owner(session, user_id)

    return {
        "user": {
            "id": profile.id,
            "full_name": profile.full_name,
            "avatar_url": get_public_url(profile.avatar_url),
            "created_at": profile.created_at,
        },
        "lost_items": with_public_urls([item for item in items if item.status == "lost"]),
        "found_items": with_public_urls([item for item in items if item.status == "found"]),
    }
