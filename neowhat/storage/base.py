"""Abstract base class for storage backends."""

from abc import ABC, abstractmethod

from neowhat.models import ConversationLogEntry, ProcessedMessageRecord, Tenant


class StorageBackend(ABC):
    """Abstract storage backend interface."""

    # ==================== Tenant Operations ====================

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> Tenant | None:
        """Get a tenant by ID."""
        ...

    @abstractmethod
    async def get_tenant_by_session_id(self, session_id: str) -> Tenant | None:
        """Get the active tenant bound to a gateway session."""
        ...

    @abstractmethod
    async def save_tenant(self, tenant: Tenant) -> Tenant:
        """Save or update a tenant.

        Raises SessionConflict when another active tenant already owns the session id.
        """
        ...

    @abstractmethod
    async def list_tenants(self, active_only: bool = False) -> list[Tenant]:
        """List all tenants, optionally only the active ones."""
        ...

    @abstractmethod
    async def delete_tenant(self, tenant_id: str) -> bool:
        """Delete a tenant and its conversation logs."""
        ...

    # ==================== Processed Message Operations ====================

    @abstractmethod
    async def has_processed(self, message_id: str) -> bool:
        """Check whether a message id is already in the ledger."""
        ...

    @abstractmethod
    async def mark_processed(self, record: ProcessedMessageRecord) -> bool:
        """Insert a ledger record.

        Returns False when the message id was already present.
        """
        ...

    # ==================== Conversation Log Operations ====================

    @abstractmethod
    async def save_log_entry(self, entry: ConversationLogEntry) -> ConversationLogEntry:
        """Append a conversation log entry."""
        ...

    @abstractmethod
    async def get_recent_log_entries(
        self,
        tenant_id: str,
        sender_phone: str,
        limit: int = 3,
    ) -> list[ConversationLogEntry]:
        """Get the most recent exchanges for a sender, oldest first."""
        ...

    @abstractmethod
    async def list_log_entries(
        self,
        tenant_id: str,
        sender_phone: str | None = None,
        limit: int = 50,
    ) -> list[ConversationLogEntry]:
        """List log entries for a tenant, newest first."""
        ...

    # ==================== Health Check ====================

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if storage is healthy."""
        ...
