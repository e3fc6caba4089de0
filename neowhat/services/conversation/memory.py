"""Short-term conversation memory built from the message log."""

import structlog

from neowhat.core.config import settings
from neowhat.storage.base import StorageBackend

logger = structlog.get_logger()


class ConversationMemory:
    """Replays the last few exchanges of a sender as chat turns."""

    def __init__(self, storage: StorageBackend, max_exchanges: int | None = None) -> None:
        self.storage = storage
        self.max_exchanges = max_exchanges if max_exchanges is not None else settings.history_exchanges

    async def get_context_messages(self, tenant_id: str, sender_phone: str) -> list[dict[str, str]]:
        """Get recent exchanges formatted for LLM context, oldest first.

        A history read failure degrades to an empty history.
        """
        try:
            entries = await self.storage.get_recent_log_entries(
                tenant_id, sender_phone, limit=self.max_exchanges
            )
        except Exception as e:
            logger.error("History read failed", tenant_id=tenant_id, error=str(e))
            return []

        messages: list[dict[str, str]] = []
        for entry in entries:
            messages.extend(entry.to_llm_messages())
        return messages
