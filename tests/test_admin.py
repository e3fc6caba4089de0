"""Tests for the admin API."""

import pytest

from neowhat.models import ConversationLogEntry, StoredDocument


@pytest.mark.asyncio
async def test_create_and_get_tenant(client):
    response = await client.post(
        "/admin/tenants",
        json={
            "id": "resto-1",
            "name": "Resto Un",
            "session_id": "sess-9",
            "whatsapp_token": "secret-token",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["id"] == "resto-1"
    assert data["has_whatsapp_token"] is True
    assert data["has_webhook_secret"] is False
    assert "whatsapp_token" not in data

    fetched = await client.get("/admin/tenants/resto-1")
    assert fetched.status_code == 200
    assert fetched.json()["session_id"] == "sess-9"


@pytest.mark.asyncio
async def test_create_tenant_generates_id(client):
    response = await client.post("/admin/tenants", json={"name": "Sans identifiant"})

    assert response.status_code == 201
    assert response.json()["id"]


@pytest.mark.asyncio
async def test_create_tenant_conflicts(client, demo_tenant):
    same_id = await client.post("/admin/tenants", json={"id": demo_tenant.id, "name": "Copie"})
    assert same_id.status_code == 409

    same_session = await client.post(
        "/admin/tenants",
        json={"id": "other", "name": "Autre", "session_id": demo_tenant.session_id},
    )
    assert same_session.status_code == 409


@pytest.mark.asyncio
async def test_update_tenant(client, demo_tenant):
    response = await client.patch(
        f"/admin/tenants/{demo_tenant.id}",
        json={"system_prompt": "Nouveau prompt", "is_active": False},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["system_prompt"] == "Nouveau prompt"
    assert data["is_active"] is False
    assert data["name"] == demo_tenant.name

    active = await client.get("/admin/tenants", params={"active_only": True})
    assert active.json() == []


@pytest.mark.asyncio
async def test_unknown_tenant(client):
    response = await client.get("/admin/tenants/missing")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_tenant_removes_documents(client, demo_tenant, menu_documents, document_store, storage):
    response = await client.delete(f"/admin/tenants/{demo_tenant.id}")

    assert response.status_code == 204
    assert await storage.get_tenant(demo_tenant.id) is None
    assert await document_store.count_embedded(demo_tenant.id) == 0


@pytest.mark.asyncio
async def test_ingest_and_search_knowledge(client, demo_tenant, document_store):
    await document_store.add_documents([
        StoredDocument(tenant_id=demo_tenant.id, content="Ancien menu", embedding=[1.0, 0.0, 0.0])
    ])
    text = " ".join(f"plat{i}" for i in range(100))

    response = await client.post(
        f"/admin/tenants/{demo_tenant.id}/knowledge",
        json={"text": text, "source": "menu.pdf"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["chunks_count"] == 3
    assert data["stats"]["documents_replaced"] == 1

    search = await client.post(
        f"/admin/tenants/{demo_tenant.id}/knowledge/search",
        json={"question": "Quels sont vos plats ?"},
    )
    result = search.json()
    assert result["strategy"] == "vector"
    assert result["document_count"] == 3
    assert "Ancien menu" not in result["context"]


@pytest.mark.asyncio
async def test_ingest_rejects_blank_text(client, demo_tenant):
    response = await client.post(
        f"/admin/tenants/{demo_tenant.id}/knowledge",
        json={"text": "   "},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_logs(client, demo_tenant, storage):
    for phone in ("336", "337"):
        await storage.save_log_entry(
            ConversationLogEntry(
                tenant_id=demo_tenant.id,
                sender_phone=phone,
                message_in="Bonjour",
                message_out="Bonjour !",
            )
        )

    response = await client.get(f"/admin/tenants/{demo_tenant.id}/logs", params={"phone": "336"})

    assert response.status_code == 200
    entries = response.json()
    assert len(entries) == 1
    assert entries[0]["sender_phone"] == "336"


@pytest.mark.asyncio
async def test_test_send(client, demo_tenant, gateway):
    response = await client.post(
        f"/admin/tenants/{demo_tenant.id}/test-send",
        params={"to": "+33600000000"},
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert gateway.sent[0]["to"] == "+33600000000"
    assert "Client: Test Restaurant" in gateway.sent[0]["text"]


@pytest.mark.asyncio
async def test_test_send_gateway_error(client, demo_tenant, gateway):
    gateway.status_code = 400
    gateway.response_body = {"message": "Session not connected"}

    response = await client.post(
        f"/admin/tenants/{demo_tenant.id}/test-send",
        params={"to": "+33600000000"},
    )

    assert response.status_code == 502
    assert response.json()["detail"] == "Session not connected"
