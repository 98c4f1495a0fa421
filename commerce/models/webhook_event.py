from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON

from commerce.utils.timestamps import utcnow


class WebhookEvent(SQLModel, table=True):
    """Append-only idempotency ledger: one row per delivered gateway event."""

    __tablename__ = "webhook_event"
    id: Optional[int] = Field(default=None, primary_key=True)

    webhook_id: str = Field(index=True, unique=True)
    payload: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    processed_at: datetime = Field(default_factory=utcnow)
