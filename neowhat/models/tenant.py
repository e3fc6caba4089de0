"""Tenant models for multi-tenancy support."""

from datetime import datetime

from pydantic import BaseModel, Field


class Tenant(BaseModel):
    """A business account bound to one WhatsApp gateway session."""

    id: str = Field(..., description="Unique tenant identifier")
    name: str = Field(..., description="Tenant display name")

    # Gateway routing
    session_id: str | None = Field(default=None, description="WasenderAPI session identifier")
    whatsapp_phone_id: str | None = None

    # Per-tenant credentials (fall back to global settings when empty)
    whatsapp_token: str | None = None
    webhook_secret: str | None = None
    llm_api_key: str | None = None

    # AI settings
    system_prompt: str = ""

    is_active: bool = True

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class TenantCreate(BaseModel):
    """Payload for creating a tenant through the admin API."""

    id: str | None = None
    name: str
    session_id: str | None = None
    whatsapp_phone_id: str | None = None
    whatsapp_token: str | None = None
    webhook_secret: str | None = None
    llm_api_key: str | None = None
    system_prompt: str = ""
    is_active: bool = True


class TenantUpdate(BaseModel):
    """Partial tenant update; unset fields are left untouched."""

    name: str | None = None
    session_id: str | None = None
    whatsapp_phone_id: str | None = None
    whatsapp_token: str | None = None
    webhook_secret: str | None = None
    llm_api_key: str | None = None
    system_prompt: str | None = None
    is_active: bool | None = None


class TenantPublic(BaseModel):
    """Tenant view with secrets replaced by presence flags."""

    id: str
    name: str
    session_id: str | None
    whatsapp_phone_id: str | None
    system_prompt: str
    is_active: bool
    has_whatsapp_token: bool
    has_webhook_secret: bool
    has_llm_api_key: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_tenant(cls, tenant: Tenant) -> "TenantPublic":
        return cls(
            id=tenant.id,
            name=tenant.name,
            session_id=tenant.session_id,
            whatsapp_phone_id=tenant.whatsapp_phone_id,
            system_prompt=tenant.system_prompt,
            is_active=tenant.is_active,
            has_whatsapp_token=bool(tenant.whatsapp_token),
            has_webhook_secret=bool(tenant.webhook_secret),
            has_llm_api_key=bool(tenant.llm_api_key),
            created_at=tenant.created_at,
            updated_at=tenant.updated_at,
        )
