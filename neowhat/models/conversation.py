"""Conversation log models."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class ConversationLogEntry(BaseModel):
    """One inbound question and the reply that was produced for it."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: str
    sender_phone: str
    message_in: str
    message_out: str
    tokens_used: int | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def to_llm_messages(self) -> list[dict[str, str]]:
        """Expand the exchange into a user turn followed by the assistant turn."""
        return [
            {"role": "user", "content": self.message_in},
            {"role": "assistant", "content": self.message_out},
        ]
