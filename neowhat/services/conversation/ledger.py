"""Idempotency ledger for inbound gateway message ids."""

import structlog

from neowhat.models import ProcessedMessageRecord
from neowhat.storage.base import StorageBackend

logger = structlog.get_logger()


class IdempotencyLedger:
    """Remembers which message ids were already handled.

    Storage failures never block processing: an unreadable ledger reports
    "not processed" and a failed insert is only logged.
    """

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage

    async def has_processed(self, message_id: str | None) -> bool:
        if not message_id:
            return False
        try:
            return await self.storage.has_processed(message_id)
        except Exception as e:
            logger.error("Ledger read failed", message_id=message_id, error=str(e))
            return False

    async def mark_processed(self, message_id: str | None, tenant_id: str | None) -> bool:
        """Record the message id.

        Returns False only when another delivery already recorded the same id.
        """
        if not message_id:
            return True
        try:
            inserted = await self.storage.mark_processed(
                ProcessedMessageRecord(message_id=message_id, tenant_id=tenant_id)
            )
        except Exception as e:
            logger.error("Ledger write failed", message_id=message_id, error=str(e))
            return True

        if not inserted:
            logger.info("Concurrent duplicate delivery", message_id=message_id)
        return inserted
