"""Message models for the WhatsApp channel."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class InboundMessage(BaseModel):
    """Normalized incoming message extracted from a gateway webhook."""

    event: str | None = None
    sender_phone: str | None = None
    message_text: str | None = None
    message_id: str | None = None

    # Session id carried by the payload or headers, used for tenant routing
    session_hint: str | None = None

    @property
    def has_required_fields(self) -> bool:
        return bool(self.sender_phone and self.message_text)


class OutgoingMessage(BaseModel):
    """Message to be sent to a user through the gateway."""

    content: str
    recipient_id: str
    session_id: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)


class ProcessedMessageRecord(BaseModel):
    """Idempotency ledger entry for an inbound message id."""

    message_id: str
    tenant_id: str | None = None
    recorded_at: datetime = Field(default_factory=datetime.utcnow)
