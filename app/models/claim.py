import uuid
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

CLAIM_STATUSES = ("pending", "approved", "rejected")


class Claim(SQLModel, table=True):
    __tablename__ = "claims"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    item_id: uuid.UUID = Field(foreign_key="items.id", index=True)

    # Claimer
    claimer_id: str = Field(foreign_key="profiles.id", index=True)

    message: str
    status: str = Field(default="pending", index=True)  # values: "pending", "approved", "rejected"
