"""Map an inbound delivery to the tenant that owns its gateway session."""

from dataclasses import dataclass
from enum import Enum

import structlog

from neowhat.core.config import settings
from neowhat.models import Tenant
from neowhat.storage.base import StorageBackend

logger = structlog.get_logger()


class ResolutionStrategy(str, Enum):
    SESSION_ID = "session_id"
    SINGLE_TENANT_FALLBACK = "single_tenant_fallback"
    NONE = "none"


@dataclass
class TenantResolution:
    tenant: Tenant | None
    strategy: ResolutionStrategy
    session_id: str | None = None
    reason: str | None = None

    @property
    def found(self) -> bool:
        return self.tenant is not None


class TenantResolver:
    """Resolves the owning tenant from a session hint.

    Without a hint, falls back to the only active tenant when exactly one
    exists. The fallback is best-effort and can be turned off.
    """

    def __init__(
        self,
        storage: StorageBackend,
        allow_single_tenant_fallback: bool | None = None,
    ) -> None:
        self.storage = storage
        self.allow_single_tenant_fallback = (
            settings.allow_single_tenant_fallback
            if allow_single_tenant_fallback is None
            else allow_single_tenant_fallback
        )

    async def resolve(self, session_hint: str | None) -> TenantResolution:
        try:
            if session_hint:
                return await self._by_session(session_hint)
            return await self._single_tenant()
        except Exception as e:
            logger.error("Tenant lookup failed", session_hint=session_hint, error=str(e))
            return TenantResolution(
                tenant=None,
                strategy=ResolutionStrategy.NONE,
                session_id=session_hint,
                reason="lookup_failed",
            )

    async def _by_session(self, session_id: str) -> TenantResolution:
        tenant = await self.storage.get_tenant_by_session_id(session_id)
        if tenant is None:
            logger.warning("No active tenant for session", session_id=session_id)
            return TenantResolution(
                tenant=None,
                strategy=ResolutionStrategy.NONE,
                session_id=session_id,
                reason="unknown_session",
            )
        return TenantResolution(
            tenant=tenant,
            strategy=ResolutionStrategy.SESSION_ID,
            session_id=tenant.session_id or session_id,
        )

    async def _single_tenant(self) -> TenantResolution:
        if not self.allow_single_tenant_fallback:
            return TenantResolution(
                tenant=None,
                strategy=ResolutionStrategy.NONE,
                reason="missing_session_id",
            )

        active = await self.storage.list_tenants(active_only=True)
        if len(active) != 1:
            logger.warning("Cannot route session-less delivery", active_tenants=len(active))
            return TenantResolution(
                tenant=None,
                strategy=ResolutionStrategy.NONE,
                reason="ambiguous_tenant" if active else "no_active_tenant",
            )

        tenant = active[0]
        logger.warning("Routed by single-tenant fallback", tenant_id=tenant.id)
        return TenantResolution(
            tenant=tenant,
            strategy=ResolutionStrategy.SINGLE_TENANT_FALLBACK,
            session_id=tenant.session_id,
        )
