import uuid
from datetime import date, datetime, timezone
from typing import Optional
from sqlmodel import Field, SQLModel

ITEM_CATEGORIES = (
    "electronics",
    "documents",
    "bags",
    "clothing",
    "accessories",
    "keys",
    "jewelry",
    "sports",
    "books",
    "other",
)

ITEM_STATUSES = ("lost", "found", "claimed", "recovered", "closed")


class Item(SQLModel, table=True):
    __tablename__ = "items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Owner info, fixed at creation
    user_id: str = Field(foreign_key="profiles.id", index=True)

    # Item fields
    title: str
    category: str = Field(index=True)
    description: Optional[str] = Field(default=None)
    location: str
    date_lost_found: date
    image_url: Optional[str] = Field(default=None)
    status: str = Field(index=True)  # lost/found/claimed/recovered/closed

    # Contact
    contact_email: Optional[str] = Field(default=None)
    contact_phone: Optional[str] = Field(default=None)

    # Only admins may flip this
    is_verified: bool = Field(default=False)
