from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone


class Profile(SQLModel, table=True):
    __tablename__ = "profiles"

    # Shared with the identity provider (Google subject)
    id: str = Field(primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    full_name: Optional[str] = Field(default=None)
    email: str = Field(index=True)
    phone: Optional[str] = Field(default=None)
    avatar_url: Optional[str] = Field(default=None)
