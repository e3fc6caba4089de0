"""Pytest configuration and fixtures."""

import json
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from neowhat.api.dependencies import get_document_store, get_storage
from neowhat.api.main import create_app
from neowhat.core.credentials import ResolvedCredential
from neowhat.core.exceptions import LLMError
from neowhat.models import StoredDocument, Tenant
from neowhat.services.channels.whatsapp import WasenderWhatsAppAdapter, get_whatsapp_adapter
from neowhat.services.conversation.engine import ConversationEngine
from neowhat.services.conversation.ledger import IdempotencyLedger
from neowhat.services.conversation.memory import ConversationMemory
from neowhat.services.conversation.prompt import PromptAssembler
from neowhat.services.conversation.responder import Responder
from neowhat.services.llm.provider import LLMResponse, get_llm_provider
from neowhat.services.rag.embeddings import BaseEmbeddingService, get_embedding_service
from neowhat.services.rag.memory_store import InMemoryDocumentStore
from neowhat.services.rag.retriever import ContextRetriever
from neowhat.services.tenants.resolver import TenantResolver
from neowhat.storage.memory import InMemoryStorage

QUESTION_VECTOR = [1.0, 0.0, 0.0]
CLOSE_VECTOR = [1.0, 0.0, 0.0]
FAR_VECTOR = [0.0, 1.0, 0.0]


# ==================== Fakes ====================


class FakeEmbeddingService(BaseEmbeddingService):
    """Returns the same vector for every question unless told otherwise."""

    def __init__(self, vector: list[float] | None = None) -> None:
        self.vector = vector or QUESTION_VECTOR
        self.fail = False
        self.calls: list[str] = []

    @property
    def vector_size(self) -> int:
        return len(self.vector)

    @property
    def provider_name(self) -> str:
        return "fake"

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.calls.extend(texts)
        if self.fail:
            raise RuntimeError("embedding provider down")
        return [list(self.vector) for _ in texts]


class FakeLLMProvider:
    """Records prompts and answers with a canned reply."""

    def __init__(self, reply: str = "Voici la réponse.") -> None:
        self.reply = reply
        self.fail = False
        self.calls: list[list[dict[str, str]]] = []
        self.api_keys: list[ResolvedCredential] = []
        self.temperatures: list[float | None] = []

    async def complete(
        self,
        messages: list[dict[str, str]],
        api_key: ResolvedCredential,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        self.calls.append(messages)
        self.api_keys.append(api_key)
        self.temperatures.append(temperature)
        if self.fail:
            raise LLMError("upstream unavailable", provider="fake")
        return LLMResponse(content=self.reply, model="fake", tokens_input=40, tokens_output=2)


class FakeGateway:
    """WasenderAPI stand-in behind an httpx MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.response_body: dict[str, Any] = {"success": True}
        self.adapter = WasenderWhatsAppAdapter(
            base_url="https://wasender.test",
            transport=httpx.MockTransport(self._handle),
        )

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.response_body)

    @property
    def sent(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


def wasender_payload(
    text: str | None = "Bonjour",
    sender: str = "33612345678",
    message_id: str | None = "msg-1",
    session_id: str | None = "sess-1",
    event: str = "messages.received",
) -> dict[str, Any]:
    """Payload in the documented messages.received shape."""
    key: dict[str, Any] = {
        "remoteJid": f"{sender}@s.whatsapp.net",
        "cleanedSenderPn": sender,
        "fromMe": False,
    }
    if message_id:
        key["id"] = message_id
    messages: dict[str, Any] = {"key": key}
    if text is not None:
        messages["messageBody"] = text
    payload: dict[str, Any] = {"event": event, "data": {"messages": messages}}
    if session_id:
        payload["sessionId"] = session_id
    return payload


# ==================== Service fixtures ====================


@pytest.fixture
def storage():
    """Create in-memory storage for tests."""
    return InMemoryStorage()


@pytest.fixture
def document_store():
    return InMemoryDocumentStore()


@pytest.fixture
def embeddings():
    return FakeEmbeddingService()


@pytest.fixture
def llm():
    return FakeLLMProvider()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def retriever(document_store, embeddings):
    return ContextRetriever(document_store=document_store, embedding_service=embeddings)


@pytest.fixture
def build_engine(storage, retriever, llm, gateway):
    """Factory so tests can pick the global secrets and defaults."""

    def _build(**overrides: Any) -> ConversationEngine:
        responder = Responder(
            storage=storage,
            llm_provider=llm,
            channel=gateway.adapter,
            default_llm_key=overrides.pop("default_llm_key", "global-llm-key"),
            default_gateway_token=overrides.pop("default_gateway_token", "global-token"),
            error_message=overrides.pop("error_message", "Erreur technique"),
        )
        return ConversationEngine(
            channel=gateway.adapter,
            ledger=IdempotencyLedger(storage),
            resolver=TenantResolver(
                storage,
                allow_single_tenant_fallback=overrides.pop("allow_single_tenant_fallback", True),
            ),
            retriever=retriever,
            memory=ConversationMemory(storage, max_exchanges=3),
            assembler=PromptAssembler(default_system_prompt="Tu es un assistant utile."),
            responder=responder,
            default_webhook_secret=overrides.pop("default_webhook_secret", ""),
            verify_token=overrides.pop("verify_token", ""),
        )

    return _build


@pytest.fixture
def engine(build_engine):
    return build_engine()


# ==================== App fixtures ====================


@pytest.fixture
def app(storage, document_store, embeddings, llm, gateway):
    """Create test application."""
    app = create_app()
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_document_store] = lambda: document_store
    app.dependency_overrides[get_embedding_service] = lambda: embeddings
    app.dependency_overrides[get_llm_provider] = lambda: llm
    app.dependency_overrides[get_whatsapp_adapter] = lambda: gateway.adapter
    return app


@pytest_asyncio.fixture
async def client(app):
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ==================== Data fixtures ====================


@pytest_asyncio.fixture
async def demo_tenant(storage):
    """Create a demo tenant for tests."""
    tenant = Tenant(
        id="test-tenant",
        name="Test Restaurant",
        session_id="sess-1",
        whatsapp_token="tenant-token",
        system_prompt="Tu es l'assistant du restaurant Test.",
    )
    await storage.save_tenant(tenant)
    return tenant


@pytest_asyncio.fixture
async def menu_documents(document_store, demo_tenant):
    """A burger passage close to every question and a formula passage far from it."""
    docs = [
        StoredDocument(
            id="doc-burger",
            tenant_id=demo_tenant.id,
            content="Burger maison servi avec frites : 12 €",
            embedding=CLOSE_VECTOR,
        ),
        StoredDocument(
            id="doc-formule",
            tenant_id=demo_tenant.id,
            content="Formules du Midi : la Formule Express est à 14,50 € (entrée + plat)",
            embedding=FAR_VECTOR,
        ),
    ]
    await document_store.add_documents(docs)
    return docs
