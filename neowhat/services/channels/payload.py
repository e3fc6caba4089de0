"""Field extraction for WasenderAPI webhook payloads.

The gateway has shipped several payload shapes over time, so every field is
read through an ordered list of extractors; the first non-empty value wins.
"""

from collections.abc import Callable, Mapping
from typing import Any

from neowhat.models import InboundMessage

Extractor = Callable[["PayloadView"], Any]

ACCEPTED_EVENTS = frozenset({
    "messages.received",
    "message.received",
    "webhook-message-received",
    "webhook-personal-message-received",
    "message",
    "webhook.message.received",
    "personal.message.received",
})

SESSION_HEADERS = ("x-session-id", "session-id", "x-whatsapp-session-id")

JID_SUFFIXES = ("@lid", "@s.whatsapp.net")


def dig(node: Any, *path: str) -> Any:
    """Walk nested mappings, returning None as soon as a level is missing."""
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def _as_text(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value:
        return value
    return None


def _strip_jid(value: Any) -> str | None:
    text = _as_text(value)
    if text is None:
        return None
    for suffix in JID_SUFFIXES:
        text = text.replace(suffix, "")
    return text or None


class PayloadView:
    """The three nesting levels a field can be found at."""

    def __init__(self, payload: Mapping[str, Any]) -> None:
        self.payload = payload
        data = payload.get("data")
        self.data: Mapping[str, Any] = data if isinstance(data, Mapping) and data else payload
        node = self.data.get("messages") or self.data.get("message") or self.data
        self.message: Any = node

    @property
    def event(self) -> str | None:
        return _as_text(
            self.payload.get("event") or self.payload.get("type") or self.payload.get("event_type")
        )


SENDER_PLAN: tuple[Extractor, ...] = (
    lambda v: dig(v.message, "key", "cleanedParticipantPn"),
    lambda v: dig(v.message, "key", "cleanedSenderPn"),
    lambda v: _strip_jid(dig(v.message, "key", "remoteJid")),
    lambda v: dig(v.data, "from"),
    lambda v: dig(v.data, "phone_number"),
    lambda v: dig(v.data, "phone"),
    lambda v: dig(v.data, "from_number"),
    lambda v: dig(v.payload, "from"),
)

TEXT_PLAN: tuple[Extractor, ...] = (
    lambda v: dig(v.message, "messageBody"),
    lambda v: dig(v.message, "message", "conversation"),
    lambda v: dig(v.message, "message", "extendedTextMessage", "text"),
    lambda v: dig(v.message, "body"),
    lambda v: dig(v.message, "text"),
    lambda v: dig(v.data, "message", "body"),
    lambda v: dig(v.data, "message", "text", "body"),
    lambda v: dig(v.data, "message", "text"),
    lambda v: dig(v.data, "body"),
    lambda v: dig(v.data, "text", "body"),
    lambda v: dig(v.data, "text"),
    lambda v: dig(v.data, "content"),
    lambda v: dig(v.payload, "message", "body"),
    lambda v: dig(v.payload, "message", "text", "body"),
    lambda v: dig(v.payload, "body"),
)

MESSAGE_ID_PLAN: tuple[Extractor, ...] = (
    lambda v: dig(v.message, "key", "id"),
    lambda v: dig(v.message, "id"),
    lambda v: dig(v.data, "message", "id"),
    lambda v: dig(v.data, "id"),
    lambda v: dig(v.data, "message_id"),
    lambda v: dig(v.payload, "message_id"),
)

SESSION_PLAN: tuple[Extractor, ...] = (
    lambda v: dig(v.payload, "session_id"),
    lambda v: dig(v.payload, "sessionId"),
    lambda v: dig(v.data, "session_id"),
    lambda v: dig(v.data, "sessionId"),
    lambda v: dig(v.data, "session", "id"),
)


def first_match(view: PayloadView, plan: tuple[Extractor, ...]) -> str | None:
    """Run extractors in order and return the first non-empty string value."""
    for extractor in plan:
        value = _as_text(extractor(view))
        if value:
            return value
    return None


def session_from_headers(headers: Mapping[str, str]) -> str | None:
    lowered = {k.lower(): v for k, v in headers.items()}
    for name in SESSION_HEADERS:
        value = lowered.get(name)
        if value:
            return value
    return None


def is_accepted_event(event: str | None) -> bool:
    return event in ACCEPTED_EVENTS


def extract_inbound_message(
    payload: Mapping[str, Any],
    headers: Mapping[str, str] | None = None,
) -> InboundMessage:
    """Build an InboundMessage from a decoded webhook body and its headers."""
    view = PayloadView(payload)
    session_hint = first_match(view, SESSION_PLAN) or session_from_headers(headers or {})

    return InboundMessage(
        event=view.event,
        sender_phone=first_match(view, SENDER_PLAN),
        message_text=first_match(view, TEXT_PLAN),
        message_id=first_match(view, MESSAGE_ID_PLAN),
        session_hint=session_hint,
    )
