"""Firestore storage backend for production."""

import os
from datetime import datetime

import structlog
from google.api_core.exceptions import AlreadyExists

from neowhat.core.config import settings
from neowhat.core.exceptions import SessionConflict
from neowhat.models import ConversationLogEntry, ProcessedMessageRecord, Tenant
from neowhat.storage.base import StorageBackend

logger = structlog.get_logger()


class FirestoreStorage(StorageBackend):
    """Firestore storage implementation for production.

    Collection structure:
    - tenants/{tenant_id}
    - processed_messages/{message_id}
    - message_logs/{log_id}
    """

    def __init__(self, project_id: str | None = None) -> None:
        self._project_id = project_id
        self._db = None
        self._initialized = False

    async def _ensure_initialized(self) -> None:
        """Lazy initialization of Firestore client."""
        if self._initialized:
            return

        try:
            from google.cloud import firestore

            # The client library only reads the emulator host from the environment
            if settings.firestore_emulator_host:
                os.environ.setdefault("FIRESTORE_EMULATOR_HOST", settings.firestore_emulator_host)
            if os.environ.get("FIRESTORE_EMULATOR_HOST"):
                logger.info("Using Firestore emulator", host=os.environ["FIRESTORE_EMULATOR_HOST"])

            self._db = firestore.AsyncClient(project=self._project_id)
            self._initialized = True
            logger.info("Firestore client initialized", project=self._project_id)
        except Exception as e:
            logger.error("Failed to initialize Firestore", error=str(e))
            raise

    # ==================== Tenant Operations ====================

    async def get_tenant(self, tenant_id: str) -> Tenant | None:
        await self._ensure_initialized()
        doc = await self._db.collection("tenants").document(tenant_id).get()
        if not doc.exists:
            return None
        return Tenant(**doc.to_dict())

    async def get_tenant_by_session_id(self, session_id: str) -> Tenant | None:
        await self._ensure_initialized()
        query = (
            self._db.collection("tenants")
            .where("session_id", "==", session_id)
            .where("is_active", "==", True)
            .limit(1)
        )
        docs = await query.get()
        for doc in docs:
            return Tenant(**doc.to_dict())
        return None

    async def save_tenant(self, tenant: Tenant) -> Tenant:
        await self._ensure_initialized()
        if tenant.is_active and tenant.session_id:
            owner = await self.get_tenant_by_session_id(tenant.session_id)
            if owner and owner.id != tenant.id:
                raise SessionConflict(tenant.session_id, owner.id)

        tenant.updated_at = datetime.utcnow()
        await self._db.collection("tenants").document(tenant.id).set(
            tenant.model_dump(mode="json")
        )
        return tenant

    async def list_tenants(self, active_only: bool = False) -> list[Tenant]:
        await self._ensure_initialized()
        query = self._db.collection("tenants")
        if active_only:
            query = query.where("is_active", "==", True)

        docs = await query.get()
        return [Tenant(**doc.to_dict()) for doc in docs]

    async def delete_tenant(self, tenant_id: str) -> bool:
        await self._ensure_initialized()
        ref = self._db.collection("tenants").document(tenant_id)
        doc = await ref.get()
        if not doc.exists:
            return False

        logs = await self._db.collection("message_logs").where("tenant_id", "==", tenant_id).get()
        for log_doc in logs:
            await log_doc.reference.delete()

        await ref.delete()
        return True

    # ==================== Processed Message Operations ====================

    async def has_processed(self, message_id: str) -> bool:
        await self._ensure_initialized()
        doc = await self._db.collection("processed_messages").document(message_id).get()
        return doc.exists

    async def mark_processed(self, record: ProcessedMessageRecord) -> bool:
        await self._ensure_initialized()
        # create() fails if the document exists, so Firestore enforces uniqueness
        try:
            await self._db.collection("processed_messages").document(record.message_id).create(
                record.model_dump(mode="json")
            )
        except AlreadyExists:
            return False
        return True

    # ==================== Conversation Log Operations ====================

    async def save_log_entry(self, entry: ConversationLogEntry) -> ConversationLogEntry:
        await self._ensure_initialized()
        await self._db.collection("message_logs").document(entry.id).set(
            entry.model_dump(mode="json")
        )
        return entry

    async def get_recent_log_entries(
        self,
        tenant_id: str,
        sender_phone: str,
        limit: int = 3,
    ) -> list[ConversationLogEntry]:
        await self._ensure_initialized()

        query = (
            self._db.collection("message_logs")
            .where("tenant_id", "==", tenant_id)
            .where("sender_phone", "==", sender_phone)
            .order_by("created_at", direction="DESCENDING")
            .limit(limit)
        )

        docs = await query.get()
        entries = [ConversationLogEntry(**doc.to_dict()) for doc in docs]
        # Reverse to get chronological order
        return list(reversed(entries))

    async def list_log_entries(
        self,
        tenant_id: str,
        sender_phone: str | None = None,
        limit: int = 50,
    ) -> list[ConversationLogEntry]:
        await self._ensure_initialized()

        query = self._db.collection("message_logs").where("tenant_id", "==", tenant_id)
        if sender_phone:
            query = query.where("sender_phone", "==", sender_phone)

        query = query.order_by("created_at", direction="DESCENDING").limit(limit)
        docs = await query.get()
        return [ConversationLogEntry(**doc.to_dict()) for doc in docs]

    # ==================== Health Check ====================

    async def health_check(self) -> bool:
        try:
            await self._ensure_initialized()
            # Simple health check - try to access a collection
            await self._db.collection("_health").document("check").get()
            return True
        except Exception as e:
            logger.error("Firestore health check failed", error=str(e))
            return False
