"""End-to-end tests for the WhatsApp webhook pipeline."""

import asyncio
import json

import pytest

from neowhat.models import Tenant
from neowhat.services.conversation.engine import AckReason

from conftest import wasender_payload


def _body(payload) -> bytes:
    return json.dumps(payload).encode("utf-8")


# ==================== HTTP surface ====================


@pytest.mark.asyncio
async def test_webhook_answers_question(client, demo_tenant, menu_documents, llm, gateway, storage):
    response = await client.post(
        "/webhooks/whatsapp",
        json=wasender_payload("Combien coûte la formule express ?"),
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "processed": True}

    system_prompt = llm.calls[0][0]["content"]
    assert system_prompt.startswith("Tu es l'assistant du restaurant Test.")
    assert "14,50 €" in system_prompt

    assert gateway.sent == [{"to": "+33612345678", "text": "Voici la réponse."}]
    assert gateway.requests[0].headers["Authorization"] == "Bearer tenant-token"

    entries = await storage.list_log_entries(demo_tenant.id)
    assert len(entries) == 1
    assert entries[0].message_in == "Combien coûte la formule express ?"


@pytest.mark.asyncio
async def test_webhook_invalid_json(client):
    response = await client.post(
        "/webhooks/whatsapp",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json()["reason"] == "invalid_payload"


@pytest.mark.asyncio
async def test_webhook_ignores_other_events(client, demo_tenant, llm):
    response = await client.post(
        "/webhooks/whatsapp",
        json=wasender_payload(event="messages.update"),
    )

    assert response.json() == {
        "received": True,
        "reason": "event_not_handled",
        "event": "messages.update",
    }
    assert llm.calls == []


@pytest.mark.asyncio
async def test_webhook_missing_text(client, demo_tenant, llm):
    response = await client.post("/webhooks/whatsapp", json=wasender_payload(text=None))

    assert response.json()["reason"] == "missing_data"
    assert llm.calls == []


@pytest.mark.asyncio
async def test_webhook_unknown_session(client, demo_tenant, llm):
    response = await client.post(
        "/webhooks/whatsapp",
        json=wasender_payload(session_id="unknown-session"),
    )

    assert response.status_code == 200
    assert response.json() == {
        "received": True,
        "reason": "client_not_found",
        "sessionId": "unknown-session",
        "from": "33612345678",
    }
    assert llm.calls == []


@pytest.mark.asyncio
async def test_webhook_duplicate_delivery(client, demo_tenant, llm, gateway):
    payload = wasender_payload("Bonjour", message_id="dup-1")

    first = await client.post("/webhooks/whatsapp", json=payload)
    second = await client.post("/webhooks/whatsapp", json=payload)

    assert first.json()["processed"] is True
    assert second.json()["reason"] == "duplicate"
    assert len(llm.calls) == 1
    assert len(gateway.requests) == 1


@pytest.mark.asyncio
async def test_webhook_empty_knowledge_base(client, demo_tenant, llm):
    await client.post("/webhooks/whatsapp", json=wasender_payload("Quels sont vos horaires ?"))

    assert "Aucun document PDF" in llm.calls[0][0]["content"]


@pytest.mark.asyncio
async def test_webhook_session_from_header(client, demo_tenant, gateway):
    response = await client.post(
        "/webhooks/whatsapp",
        json=wasender_payload(session_id=None),
        headers={"X-Session-Id": "sess-1"},
    )

    assert response.json()["processed"] is True
    assert len(gateway.requests) == 1


@pytest.mark.asyncio
async def test_webhook_replays_history(client, demo_tenant, llm):
    await client.post("/webhooks/whatsapp", json=wasender_payload("Bonjour", message_id="m-1"))
    await client.post("/webhooks/whatsapp", json=wasender_payload("Et le dessert ?", message_id="m-2"))

    second_prompt = llm.calls[1]
    assert second_prompt[1:] == [
        {"role": "user", "content": "Bonjour"},
        {"role": "assistant", "content": "Voici la réponse."},
        {"role": "user", "content": "Et le dessert ?"},
    ]


@pytest.mark.asyncio
async def test_verification_handshake(client):
    response = await client.get("/webhooks/whatsapp", params={"challenge": "abc123"})

    assert response.status_code == 200
    assert response.text == "abc123"


@pytest.mark.asyncio
async def test_verification_without_valid_token(client):
    response = await client.get("/webhooks/whatsapp", params={"verify_token": "nope"})

    assert response.status_code == 403
    assert response.json() == {"error": "Invalid verification token"}


# ==================== Engine ====================


@pytest.mark.asyncio
async def test_tenant_secret_is_enforced(build_engine, storage, llm):
    await storage.save_tenant(
        Tenant(id="t1", name="Secured", session_id="sess-1", webhook_secret="tenant-secret")
    )
    engine = build_engine(default_webhook_secret="global-secret")
    body = _body(wasender_payload())

    rejected = await engine.handle_delivery(body, {"x-webhook-signature": "global-secret"})
    assert rejected.status_code == 401
    assert rejected.body == {"error": "Invalid webhook signature"}

    missing = await engine.handle_delivery(body, {})
    assert missing.status_code == 401
    assert llm.calls == []

    accepted = await engine.handle_delivery(body, {"X-Webhook-Signature": "tenant-secret"})
    assert accepted.status_code == 200
    assert accepted.body["processed"] is True


@pytest.mark.asyncio
async def test_global_secret_applies_to_tenants_without_one(build_engine, demo_tenant):
    engine = build_engine(default_webhook_secret="global-secret")
    body = _body(wasender_payload())

    assert (await engine.handle_delivery(body, {"x-webhook-signature": "wrong"})).status_code == 401
    ok = await engine.handle_delivery(body, {"x-webhook-signature": "global-secret"})
    assert ok.status_code == 200


@pytest.mark.asyncio
async def test_rejected_signature_does_not_consume_message_id(build_engine, demo_tenant, storage):
    engine = build_engine(default_webhook_secret="global-secret")

    await engine.handle_delivery(_body(wasender_payload()), {"x-webhook-signature": "wrong"})

    assert await storage.has_processed("msg-1") is False


@pytest.mark.asyncio
async def test_concurrent_duplicates_processed_once(engine, demo_tenant, llm):
    body = _body(wasender_payload("Bonjour", message_id="race-1"))

    outcomes = await asyncio.gather(
        engine.handle_delivery(body, {}),
        engine.handle_delivery(body, {}),
    )

    assert sorted(o.body.get("reason", "processed") for o in outcomes) == ["duplicate", "processed"]
    assert len(llm.calls) == 1


@pytest.mark.asyncio
async def test_tenants_are_isolated(build_engine, storage, document_store, llm, gateway):
    from neowhat.models import StoredDocument

    await storage.save_tenant(Tenant(id="a", name="A", session_id="sess-a", whatsapp_token="tok-a"))
    await storage.save_tenant(Tenant(id="b", name="B", session_id="sess-b", whatsapp_token="tok-b"))
    await document_store.add_documents([
        StoredDocument(tenant_id="a", content="Secret du restaurant A", embedding=[1.0, 0.0, 0.0]),
    ])
    engine = build_engine()

    await engine.handle_delivery(_body(wasender_payload("Bonjour", session_id="sess-b")), {})

    assert "Secret du restaurant A" not in llm.calls[0][0]["content"]
    assert gateway.requests[0].headers["Authorization"] == "Bearer tok-b"
    assert await storage.list_log_entries("a") == []
    assert len(await storage.list_log_entries("b")) == 1


@pytest.mark.asyncio
async def test_llm_failure_sends_error_message(engine, demo_tenant, llm, gateway, storage):
    llm.fail = True

    outcome = await engine.handle_delivery(_body(wasender_payload()), {})

    assert outcome.body["processed"] is True
    assert gateway.sent[0]["text"] == "Erreur technique"
    entries = await storage.list_log_entries(demo_tenant.id)
    assert entries[0].message_out == "Erreur technique"


@pytest.mark.asyncio
async def test_send_failure_still_acknowledged(engine, demo_tenant, gateway, storage):
    gateway.status_code = 401
    gateway.response_body = {"message": "Invalid API key"}

    outcome = await engine.handle_delivery(_body(wasender_payload()), {})

    assert outcome.status_code == 200
    assert outcome.body["processed"] is True
    assert len(await storage.list_log_entries(demo_tenant.id)) == 1


@pytest.mark.asyncio
async def test_log_write_failure_is_acknowledged(engine, demo_tenant, storage):
    async def broken_save(entry):
        raise RuntimeError("database unavailable")

    storage.save_log_entry = broken_save

    outcome = await engine.handle_delivery(_body(wasender_payload()), {})

    assert outcome.status_code == 200
    assert outcome.body["reason"] == AckReason.LOG_WRITE_FAILED.value


@pytest.mark.asyncio
async def test_unexpected_error_is_acknowledged(engine, demo_tenant):
    async def broken_retrieve(question, tenant_id):
        raise RuntimeError("boom")

    engine.retriever.retrieve = broken_retrieve

    outcome = await engine.handle_delivery(_body(wasender_payload()), {})

    assert outcome.status_code == 200
    assert outcome.body["reason"] == "internal_error"


@pytest.mark.asyncio
async def test_single_tenant_fallback_without_session(engine, demo_tenant, gateway):
    outcome = await engine.handle_delivery(_body(wasender_payload(session_id=None)), {})

    assert outcome.body["processed"] is True
    assert len(gateway.requests) == 1


def test_handshake_with_token(build_engine):
    engine = build_engine(verify_token="verify-me")

    assert engine.handshake({"verify_token": "verify-me"}).body == {"verified": True}
    assert engine.handshake({"token": "bad"}).status_code == 403
    assert engine.handshake({"hub.challenge": "xyz", "token": "bad"}).body == "xyz"


def test_handshake_rejected_when_verify_token_unset(build_engine):
    engine = build_engine(verify_token="")

    assert engine.handshake({}).status_code == 403
    assert engine.handshake({"verify_token": ""}).status_code == 403
