"""Tests for webhook payload extraction and the WasenderAPI adapter."""

import pytest

from neowhat.core.credentials import CredentialSource, ResolvedCredential, resolve_credential
from neowhat.core.exceptions import ChannelError
from neowhat.services.channels import SignatureVerdict
from neowhat.services.channels.payload import extract_inbound_message, is_accepted_event
from neowhat.services.channels.whatsapp import format_recipient

from conftest import wasender_payload

TOKEN = ResolvedCredential("tenant-token", CredentialSource.TENANT)


# ==================== Credentials ====================


def test_tenant_credential_wins():
    resolved = resolve_credential("tenant-key", "global-key")
    assert resolved.value == "tenant-key"
    assert resolved.source == CredentialSource.TENANT


def test_empty_tenant_credential_falls_back_to_default():
    resolved = resolve_credential("", "global-key")
    assert resolved.value == "global-key"
    assert resolved.source == CredentialSource.DEFAULT


def test_unavailable_credential():
    resolved = resolve_credential(None, "")
    assert resolved.available is False
    assert resolved.value is None


def test_credential_repr_hides_value():
    assert "secret" not in repr(resolve_credential("secret", None))


# ==================== Payload extraction ====================


def test_extract_documented_shape():
    message = extract_inbound_message(wasender_payload("Combien coûte la formule ?"))

    assert message.event == "messages.received"
    assert message.sender_phone == "33612345678"
    assert message.message_text == "Combien coûte la formule ?"
    assert message.message_id == "msg-1"
    assert message.session_hint == "sess-1"
    assert message.has_required_fields


def test_sender_from_remote_jid():
    payload = {
        "event": "messages.received",
        "data": {
            "messages": {
                "key": {"id": "abc", "remoteJid": "33699999999@s.whatsapp.net"},
                "message": {"conversation": "Salut"},
            }
        },
    }
    message = extract_inbound_message(payload)

    assert message.sender_phone == "33699999999"
    assert message.message_text == "Salut"


def test_participant_number_preferred_over_sender():
    payload = wasender_payload("Bonjour")
    payload["data"]["messages"]["key"]["cleanedParticipantPn"] = "33700000000"

    assert extract_inbound_message(payload).sender_phone == "33700000000"


def test_extended_text_message():
    payload = {
        "event": "messages.received",
        "data": {
            "messages": {
                "key": {"cleanedSenderPn": "336"},
                "message": {"extendedTextMessage": {"text": "Lien https://exemple.fr"}},
            }
        },
    }
    assert extract_inbound_message(payload).message_text == "Lien https://exemple.fr"


def test_flat_legacy_shape():
    payload = {"event": "message", "from": "33612345678", "body": "Bonjour", "message_id": "m-9"}
    message = extract_inbound_message(payload)

    assert message.sender_phone == "33612345678"
    assert message.message_text == "Bonjour"
    assert message.message_id == "m-9"


def test_numeric_phone_is_stringified():
    payload = {"event": "message", "data": {"from": 33612345678, "text": "Bonjour"}}
    assert extract_inbound_message(payload).sender_phone == "33612345678"


def test_session_from_data_then_headers():
    payload = wasender_payload(session_id=None)
    payload["data"]["session"] = {"id": "sess-data"}
    assert extract_inbound_message(payload).session_hint == "sess-data"

    headerless = wasender_payload(session_id=None)
    message = extract_inbound_message(headerless, {"X-Session-Id": "sess-header"})
    assert message.session_hint == "sess-header"


def test_missing_text_is_reported():
    message = extract_inbound_message(wasender_payload(text=None))
    assert message.message_text is None
    assert not message.has_required_fields


def test_event_filter():
    assert is_accepted_event("messages.received")
    assert is_accepted_event("webhook-personal-message-received")
    assert not is_accepted_event("messages.update")
    assert not is_accepted_event(None)


# ==================== WasenderAPI adapter ====================


def test_format_recipient():
    assert format_recipient("+33612345678") == "+33612345678"
    assert format_recipient("33 6 12-34-56-78") == "+33612345678"


@pytest.mark.asyncio
async def test_send_text_posts_to_gateway(gateway):
    await gateway.adapter.send_text("33612345678", "Bonjour !", TOKEN)

    assert len(gateway.requests) == 1
    request = gateway.requests[0]
    assert str(request.url) == "https://wasender.test/api/send-message"
    assert request.headers["Authorization"] == "Bearer tenant-token"
    assert gateway.sent == [{"to": "+33612345678", "text": "Bonjour !"}]


@pytest.mark.asyncio
async def test_send_text_gateway_error_message(gateway):
    gateway.status_code = 422
    gateway.response_body = {"success": False, "message": "Invalid phone number"}

    with pytest.raises(ChannelError) as exc_info:
        await gateway.adapter.send_text("123", "Bonjour", TOKEN)

    assert exc_info.value.message == "Invalid phone number"
    assert exc_info.value.details["status_code"] == 422


@pytest.mark.asyncio
async def test_send_text_without_token(gateway):
    with pytest.raises(ChannelError):
        await gateway.adapter.send_text(
            "336", "Bonjour", ResolvedCredential(None, CredentialSource.UNAVAILABLE)
        )
    assert gateway.requests == []


def test_validate_webhook_verdicts(gateway):
    adapter = gateway.adapter
    secret = ResolvedCredential("s3cret", CredentialSource.TENANT)
    disabled = ResolvedCredential(None, CredentialSource.UNAVAILABLE)

    assert adapter.validate_webhook("s3cret", secret) == SignatureVerdict.VERIFIED
    assert adapter.validate_webhook("wrong", secret) == SignatureVerdict.MISMATCH
    assert adapter.validate_webhook(None, secret) == SignatureVerdict.MISSING
    assert adapter.validate_webhook(None, disabled) == SignatureVerdict.DISABLED

    assert SignatureVerdict.DISABLED.accepted
    assert not SignatureVerdict.MISSING.accepted
