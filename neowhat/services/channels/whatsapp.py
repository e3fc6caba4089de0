"""WasenderAPI WhatsApp channel adapter."""

import hmac
import re
from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from neowhat.core.config import settings
from neowhat.core.credentials import ResolvedCredential
from neowhat.core.exceptions import ChannelError
from neowhat.models import InboundMessage, OutgoingMessage
from neowhat.services.channels.base import ChannelAdapter, SignatureVerdict
from neowhat.services.channels.payload import extract_inbound_message

logger = structlog.get_logger()

SIGNATURE_HEADER = "x-webhook-signature"


def format_recipient(phone: str) -> str:
    """Return the number in +<digits> form expected by the gateway."""
    if phone.startswith("+"):
        return phone
    return "+" + re.sub(r"\D", "", phone)


class WasenderWhatsAppAdapter(ChannelAdapter):
    """WasenderAPI WhatsApp channel adapter.

    Handles:
    - Webhook parsing for incoming WhatsApp messages
    - Sending messages via the WasenderAPI REST endpoint
    - Webhook signature validation
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.wasender_api_root).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    @property
    def channel_name(self) -> str:
        return "whatsapp"

    @property
    def send_url(self) -> str:
        return f"{self.base_url}/api/send-message"

    def parse_webhook(
        self,
        payload: Mapping[str, Any],
        headers: Mapping[str, str] | None = None,
    ) -> InboundMessage:
        message = extract_inbound_message(payload, headers)
        logger.info(
            "Parsed WhatsApp webhook",
            webhook_event=message.event,
            has_sender=bool(message.sender_phone),
            has_text=bool(message.message_text),
            message_id=message.message_id,
            session_hint=message.session_hint,
        )
        return message

    async def send_message(
        self,
        message: OutgoingMessage,
        token: ResolvedCredential,
    ) -> dict[str, Any]:
        """Send a WhatsApp text message through WasenderAPI.

        Raises:
            ChannelError: when no token is available or the gateway rejects the call
        """
        if not token.available:
            raise ChannelError(
                "WasenderAPI token not configured",
                channel=self.channel_name,
                details={"reason": "missing_credentials"},
            )

        to_number = format_recipient(message.recipient_id)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.send_url,
                    json={"to": to_number, "text": message.content},
                    headers={
                        "Authorization": f"Bearer {token.value}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.HTTPError as e:
            logger.error("Failed to reach WasenderAPI", error=str(e), to=to_number)
            raise ChannelError(
                f"Failed to send WhatsApp message: {e}",
                channel=self.channel_name,
                details={"recipient": to_number},
            ) from e

        if response.status_code < 200 or response.status_code >= 300:
            error_message = _error_message(response)
            logger.error(
                "Failed to send WhatsApp message",
                status_code=response.status_code,
                error=error_message,
                to=to_number,
            )
            raise ChannelError(
                error_message,
                channel=self.channel_name,
                details={"status_code": response.status_code, "recipient": to_number},
            )

        logger.info(
            "Sent WhatsApp message",
            to=to_number,
            session_id=message.session_id,
            token_source=token.source.value,
        )
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    def validate_webhook(
        self,
        signature: str | None,
        secret: ResolvedCredential,
    ) -> SignatureVerdict:
        """Compare the signature header with the configured secret.

        WasenderAPI sends the secret itself in the header, so the check is an
        exact comparison rather than an HMAC over the body.
        """
        if not secret.available:
            logger.warning("Webhook signature verification disabled: no secret configured")
            return SignatureVerdict.DISABLED

        if not signature:
            logger.warning("Webhook signature header missing", secret_source=secret.source.value)
            return SignatureVerdict.MISSING

        if not hmac.compare_digest(signature.encode("utf-8"), secret.value.encode("utf-8")):
            logger.warning("Webhook signature mismatch", secret_source=secret.source.value)
            return SignatureVerdict.MISMATCH

        return SignatureVerdict.VERIFIED


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("message") or body.get("error")
        if detail:
            return str(detail)
    return response.text or f"HTTP {response.status_code}"


# Singleton instance
_whatsapp_adapter: WasenderWhatsAppAdapter | None = None


def get_whatsapp_adapter() -> WasenderWhatsAppAdapter:
    """Get or create the WhatsApp adapter singleton."""
    global _whatsapp_adapter
    if _whatsapp_adapter is None:
        _whatsapp_adapter = WasenderWhatsAppAdapter()
    return _whatsapp_adapter
