"""In-memory storage backend for development and testing."""

import asyncio
from datetime import datetime

from neowhat.core.exceptions import SessionConflict
from neowhat.models import ConversationLogEntry, ProcessedMessageRecord, Tenant
from neowhat.storage.base import StorageBackend


class InMemoryStorage(StorageBackend):
    """In-memory storage implementation for development."""

    def __init__(self) -> None:
        self._tenants: dict[str, Tenant] = {}
        self._processed: dict[str, ProcessedMessageRecord] = {}
        self._logs: list[ConversationLogEntry] = []
        self._lock = asyncio.Lock()

    # ==================== Tenant Operations ====================

    async def get_tenant(self, tenant_id: str) -> Tenant | None:
        return self._tenants.get(tenant_id)

    async def get_tenant_by_session_id(self, session_id: str) -> Tenant | None:
        for tenant in self._tenants.values():
            if tenant.is_active and tenant.session_id == session_id:
                return tenant
        return None

    async def save_tenant(self, tenant: Tenant) -> Tenant:
        async with self._lock:
            if tenant.is_active and tenant.session_id:
                for other in self._tenants.values():
                    if (
                        other.id != tenant.id
                        and other.is_active
                        and other.session_id == tenant.session_id
                    ):
                        raise SessionConflict(tenant.session_id, other.id)
            tenant.updated_at = datetime.utcnow()
            self._tenants[tenant.id] = tenant
        return tenant

    async def list_tenants(self, active_only: bool = False) -> list[Tenant]:
        tenants = list(self._tenants.values())
        if active_only:
            tenants = [t for t in tenants if t.is_active]
        return tenants

    async def delete_tenant(self, tenant_id: str) -> bool:
        if tenant_id in self._tenants:
            del self._tenants[tenant_id]
            self._logs = [e for e in self._logs if e.tenant_id != tenant_id]
            return True
        return False

    # ==================== Processed Message Operations ====================

    async def has_processed(self, message_id: str) -> bool:
        return message_id in self._processed

    async def mark_processed(self, record: ProcessedMessageRecord) -> bool:
        async with self._lock:
            if record.message_id in self._processed:
                return False
            self._processed[record.message_id] = record
        return True

    # ==================== Conversation Log Operations ====================

    async def save_log_entry(self, entry: ConversationLogEntry) -> ConversationLogEntry:
        self._logs.append(entry)
        return entry

    async def get_recent_log_entries(
        self,
        tenant_id: str,
        sender_phone: str,
        limit: int = 3,
    ) -> list[ConversationLogEntry]:
        entries = [
            e for e in self._logs if e.tenant_id == tenant_id and e.sender_phone == sender_phone
        ]
        entries.sort(key=lambda x: x.created_at)
        return entries[-limit:] if limit > 0 else []

    async def list_log_entries(
        self,
        tenant_id: str,
        sender_phone: str | None = None,
        limit: int = 50,
    ) -> list[ConversationLogEntry]:
        entries = [e for e in self._logs if e.tenant_id == tenant_id]
        if sender_phone:
            entries = [e for e in entries if e.sender_phone == sender_phone]
        entries.sort(key=lambda x: x.created_at, reverse=True)
        return entries[:limit]

    # ==================== Health Check ====================

    async def health_check(self) -> bool:
        return True

    # ==================== Development Helpers ====================

    async def seed_demo_tenant(self) -> Tenant:
        """Create a demo tenant for local testing."""
        demo_tenant = Tenant(
            id="demo",
            name="Demo Restaurant",
            session_id="demo-session",
            system_prompt="Tu es l'assistant WhatsApp du restaurant Demo. Réponds en français.",
        )
        return await self.save_tenant(demo_tenant)
