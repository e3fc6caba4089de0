"""Admin endpoints for tenant and knowledge base management."""

import uuid
from datetime import datetime
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from neowhat.api.dependencies import (
    DocumentStoreDep,
    IngestorDep,
    RetrieverDep,
    StorageDep,
    TenantDep,
    WhatsAppDep,
)
from neowhat.core.config import settings
from neowhat.core.credentials import resolve_credential
from neowhat.core.exceptions import ChannelError, SessionConflict
from neowhat.models import (
    ConversationLogEntry,
    OutgoingMessage,
    Tenant,
    TenantCreate,
    TenantPublic,
    TenantUpdate,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/admin", tags=["Admin"])


# ==================== Pydantic Schemas ====================


class KnowledgeIngest(BaseModel):
    """Extracted document text to index for a tenant."""

    text: str = Field(..., min_length=1)
    source: str = "document.pdf"


class KnowledgeSearch(BaseModel):
    question: str = Field(..., min_length=1)


def _conflict(exc: SessionConflict) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)


# ==================== Tenant Endpoints ====================


@router.post("/tenants", response_model=TenantPublic, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    data: TenantCreate,
    storage: StorageDep,
) -> TenantPublic:
    """Create a new tenant."""
    tenant_id = data.id or str(uuid.uuid4())
    if await storage.get_tenant(tenant_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Tenant already exists: {tenant_id}",
        )

    tenant = Tenant(**data.model_dump(exclude={"id"}), id=tenant_id)
    try:
        await storage.save_tenant(tenant)
    except SessionConflict as e:
        raise _conflict(e)

    logger.info("Created tenant", tenant_id=tenant.id, session_id=tenant.session_id)
    return TenantPublic.from_tenant(tenant)


@router.get("/tenants", response_model=list[TenantPublic])
async def list_tenants(
    storage: StorageDep,
    active_only: bool = False,
) -> list[TenantPublic]:
    """List all tenants."""
    tenants = await storage.list_tenants(active_only=active_only)
    return [TenantPublic.from_tenant(t) for t in tenants]


@router.get("/tenants/{tenant_id}", response_model=TenantPublic)
async def get_tenant(tenant: TenantDep) -> TenantPublic:
    """Get a specific tenant."""
    return TenantPublic.from_tenant(tenant)


@router.patch("/tenants/{tenant_id}", response_model=TenantPublic)
async def update_tenant(
    data: TenantUpdate,
    tenant: TenantDep,
    storage: StorageDep,
) -> TenantPublic:
    """Update a tenant. Omitted fields are left unchanged."""
    updated = tenant.model_copy(update=data.model_dump(exclude_unset=True))
    try:
        await storage.save_tenant(updated)
    except SessionConflict as e:
        raise _conflict(e)

    logger.info("Updated tenant", tenant_id=updated.id)
    return TenantPublic.from_tenant(updated)


@router.delete("/tenants/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant(
    tenant: TenantDep,
    storage: StorageDep,
    documents: DocumentStoreDep,
) -> None:
    """Delete a tenant with its documents and conversation logs."""
    removed = await documents.delete_by_tenant(tenant.id)
    await storage.delete_tenant(tenant.id)

    logger.info("Deleted tenant", tenant_id=tenant.id, documents_removed=removed)


# ==================== Knowledge Base Endpoints ====================


@router.post("/tenants/{tenant_id}/knowledge", status_code=status.HTTP_201_CREATED)
async def ingest_knowledge(
    data: KnowledgeIngest,
    tenant: TenantDep,
    ingestor: IngestorDep,
) -> dict[str, Any]:
    """Replace the tenant's knowledge base with the given document text."""
    try:
        report = await ingestor.ingest_text(tenant.id, data.text, data.source)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {
        "success": True,
        "message": f"{report.chunks_stored} chunks vectorisés et stockés avec succès",
        "chunks_count": report.chunks_stored,
        "warning": report.warning,
        "stats": {
            "total_words": report.total_words,
            "total_chars": report.total_chars,
            "chunks_created": report.chunks_created,
            "documents_replaced": report.replaced,
            "failed_chunks": report.failed_chunks,
        },
    }


@router.post("/tenants/{tenant_id}/knowledge/search")
async def search_knowledge(
    data: KnowledgeSearch,
    tenant: TenantDep,
    retriever: RetrieverDep,
) -> dict[str, Any]:
    """Run the webhook's retrieval step for a question, for debugging."""
    result = await retriever.retrieve(data.question, tenant.id)

    return {
        "question": data.question,
        "strategy": result.strategy.value,
        "document_count": result.document_count,
        "is_factual": result.is_factual,
        "threshold": result.threshold,
        "context": result.context,
        "passages": [
            {"content": p.content, "similarity": p.similarity, "metadata": p.metadata}
            for p in result.passages
        ],
    }


# ==================== Conversation Log Endpoints ====================


@router.get("/tenants/{tenant_id}/logs", response_model=list[ConversationLogEntry])
async def list_logs(
    tenant: TenantDep,
    storage: StorageDep,
    phone: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
) -> list[ConversationLogEntry]:
    """List conversation log entries, newest first."""
    return await storage.list_log_entries(tenant.id, sender_phone=phone, limit=limit)


# ==================== Gateway Endpoints ====================


@router.post("/tenants/{tenant_id}/test-send")
async def test_send(
    tenant: TenantDep,
    whatsapp: WhatsAppDep,
    to: str = Query(..., min_length=1, description="Recipient phone number"),
) -> dict[str, Any]:
    """Send a test message with the tenant's gateway credentials."""
    token = resolve_credential(tenant.whatsapp_token, settings.wasender_api_key)
    if not token.available:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="WasenderAPI token not configured",
        )

    text = (
        "🧪 Message de test depuis NeoWhatAI\n"
        f"Date: {datetime.utcnow().strftime('%d/%m/%Y %H:%M:%S')}\n"
        f"Session ID: {(tenant.session_id or '')[:20]}...\n"
        f"Client: {tenant.name}\n\n"
        "Si vous recevez ce message, le système fonctionne correctement ! ✅"
    )
    try:
        await whatsapp.send_message(
            OutgoingMessage(content=text, recipient_id=to, session_id=tenant.session_id),
            token,
        )
    except ChannelError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    logger.info("Test message sent", tenant_id=tenant.id)
    return {
        "success": True,
        "message": "Message envoyé avec succès",
        "client": {"id": tenant.id, "name": tenant.name, "session_id": tenant.session_id},
        "to": to,
    }
