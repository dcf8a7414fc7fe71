import uuid
from typing import List, Literal
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from app.db.db import get_session
from app.services import item_lifecycle
from app.services.admin import (
    Analytics,
    UserWithRole,
    compute_analytics,
    list_all_items,
    list_users_with_roles,
    remove_user,
)
from app.services.roles import assign_role, require_admin as require_admin_role
from app.routers.items import item_out, owner_out
from app.utils.auth_helper import Caller, get_caller
from app.utils.s3_service import delete_object

router = APIRouter()


class VerifyItemRequest(BaseModel):
    verified: bool


class AssignRoleRequest(BaseModel):
    role: Literal["user", "admin"]


def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    require_admin_role(caller.role, "use the admin dashboard")
    return caller


@router.get("/analytics", response_model=Analytics)
def get_analytics(
    session: Session = Depends(get_session),
    admin: Caller = Depends(require_admin),
):
    """Headline numbers for the admin dashboard"""
    return compute_analytics(session, admin.role)


@router.get("/items")
def get_all_items(
    session: Session = Depends(get_session),
    admin: Caller = Depends(require_admin),
):
    rows = list_all_items(session, admin.role)

    return {
        "items": [
            {**item_out(item), "owner": owner_out(owner)}
            for item, owner in rows
        ],
    }


@router.post("/items/{item_id}/verify")
def verify_item(
    item_id: uuid.UUID,
    payload: VerifyItemRequest,
    session: Session = Depends(get_session),
    admin: Caller = Depends(require_admin),
):
    item = item_lifecycle.set_verified(session, item_id, admin.role, payload.verified)

    return item_out(item)


@router.delete("/items/{item_id}")
def delete_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    admin: Caller = Depends(require_admin),
):
    image_ref = item_lifecycle.get_item(session, item_id).image_url

    item_lifecycle.delete_item(session, item_id, admin.id, admin.role)
    delete_object(image_ref)

    return {"ok": True}


@router.get("/users", response_model=List[UserWithRole])
def get_users(
    session: Session = Depends(get_session),
    admin: Caller = Depends(require_admin),
):
    """Every profile with its resolved role"""
    return list_users_with_roles(session, admin.role)


@router.put("/users/{user_id}/role")
def set_user_role(
    user_id: str,
    payload: AssignRoleRequest,
    session: Session = Depends(get_session),
    admin: Caller = Depends(require_admin),
):
    record = assign_role(session, admin.id, admin.role, user_id, payload.role)

    return {
        "ok": True,
        "user_id": record.user_id,
        "role": record.role,
    }


@router.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    session: Session = Depends(get_session),
    admin: Caller = Depends(require_admin),
):
    remove_user(session, admin.id, admin.role, user_id)

    return {
        "ok": True,
        "message": "User removed successfully",
    }
