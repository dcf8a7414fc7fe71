import uuid
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

APP_ROLES = ("user", "admin")


class UserRole(SQLModel, table=True):
    __tablename__ = "user_roles"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # One role row per user
    user_id: str = Field(foreign_key="profiles.id", unique=True, index=True)
    role: str = Field(default="user")  # Possible roles: user, admin
