import os
import uuid
from typing import Optional
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from PIL import UnidentifiedImageError
from pydantic import BaseModel
from sqlmodel import Session

from app.db.db import get_session
from app.models.item import Item
from app.models.profile import Profile
from app.services import claim_moderation, item_lifecycle, listings
from app.utils.auth_helper import Caller, get_caller
from app.utils.s3_service import build_object_path, delete_object, get_public_url, upload, with_public_urls


router = APIRouter()

MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "5"))
MAX_UPLOAD_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024


class ItemCreateRequest(BaseModel):
    # Plain strings; field rules live in form_validator
    title: str = ""
    category: str = ""
    description: Optional[str] = None
    location: str = ""
    date_lost_found: str = ""
    status: str = ""
    image_ref: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None


class StatusChangeRequest(BaseModel):
    status: str


class ClaimCreateRequest(BaseModel):
    message: str = ""


def item_out(item: Item) -> dict:
    data = item.model_dump()
    data["image_url"] = get_public_url(item.image_url)
    data["allowed_transitions"] = sorted(item_lifecycle.allowed_transitions(item.status))
    return data


def owner_out(owner: Optional[Profile]) -> Optional[dict]:
    if not owner:
        return None

    return {
        "id": owner.id,
        "full_name": owner.full_name,
        "email": owner.email,
        "avatar_url": get_public_url(owner.avatar_url),
    }


@router.get("/")
def browse_items(
    search: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    session: Session = Depends(get_session),
):
    items = listings.list_items(session, search=search, category=category, status=status)

    return {
        "items": with_public_urls(items),
    }


@router.post("/", status_code=201)
def create_item(
    payload: ItemCreateRequest,
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    item = item_lifecycle.create_item(
        session,
        owner_id=caller.id,
        title=payload.title,
        category=payload.category,
        description=payload.description,
        location=payload.location,
        date_lost_found=payload.date_lost_found,
        status=payload.status,
        image_ref=payload.image_ref,
        contact_email=payload.contact_email,
        contact_phone=payload.contact_phone,
    )

    return item_out(item)


@router.post("/images", status_code=201)
async def upload_item_image(
    image: UploadFile = File(...),
    caller: Caller = Depends(get_caller),
):
    raw_bytes = await image.read()

    if len(raw_bytes) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail=f"Image exceeds {MAX_UPLOAD_SIZE_MB}MB limit")

    try:
        ref = upload(build_object_path("items", caller.id, image.filename), raw_bytes)
    except UnidentifiedImageError:
        raise HTTPException(status_code=400, detail="File is not a supported image")

    return {
        "image_ref": ref,
        "url": get_public_url(ref),
    }


@router.get("/mine")
def get_my_items(
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    items = listings.list_items_for_owner(session, caller.id)

    return {
        "items": [item_out(item) for item in items],
    }


@router.get("/{item_id}")
def get_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    item, owner = listings.get_item_details(session, item_id)

    return {
        "item": item_out(item),
        "owner": owner_out(owner),
    }


@router.patch("/{item_id}")
def update_item(
    item_id: uuid.UUID,
    updates: dict,
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    item = item_lifecycle.update_item(session, item_id, caller.id, caller.role, updates)

    return item_out(item)


@router.post("/{item_id}/status")
def change_item_status(
    item_id: uuid.UUID,
    payload: StatusChangeRequest,
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    item = item_lifecycle.transition_status(session, item_id, caller.id, payload.status)

    return item_out(item)


@router.delete("/{item_id}")
def delete_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    image_ref = item_lifecycle.get_item(session, item_id).image_url

    item_lifecycle.delete_item(session, item_id, caller.id, caller.role)

    # Best effort, the row is already gone
    delete_object(image_ref)

    return {"ok": True}


@router.post("/{item_id}/claims", status_code=201)
def submit_claim(
    item_id: uuid.UUID,
    payload: ClaimCreateRequest,
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    claim = claim_moderation.submit_claim(session, item_id, caller.id, payload.message)

    return {
        "ok": True,
        "claim": claim,
    }
