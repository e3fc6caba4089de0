"""Abstract base class for channel adapters."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import Any

from neowhat.core.credentials import ResolvedCredential
from neowhat.models import InboundMessage, OutgoingMessage


class SignatureVerdict(str, Enum):
    """Result of checking a webhook signature header."""

    VERIFIED = "verified"
    DISABLED = "disabled"  # No secret configured anywhere
    MISSING = "missing"
    MISMATCH = "mismatch"

    @property
    def accepted(self) -> bool:
        return self in (SignatureVerdict.VERIFIED, SignatureVerdict.DISABLED)


class ChannelAdapter(ABC):
    """Abstract base class for communication channel adapters."""

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Get the channel name identifier."""
        ...

    @abstractmethod
    def parse_webhook(
        self,
        payload: Mapping[str, Any],
        headers: Mapping[str, str] | None = None,
    ) -> InboundMessage:
        """Parse incoming webhook payload into a normalized message.

        Args:
            payload: Decoded webhook body
            headers: Request headers, consulted for routing hints

        Returns:
            InboundMessage whose fields may be empty when the payload lacks them
        """
        ...

    @abstractmethod
    async def send_message(
        self,
        message: OutgoingMessage,
        token: ResolvedCredential,
    ) -> dict[str, Any]:
        """Send a message through the channel.

        Args:
            message: OutgoingMessage to send
            token: Gateway credential to authenticate with

        Returns:
            Response dict with channel-specific info
        """
        ...

    @abstractmethod
    def validate_webhook(
        self,
        signature: str | None,
        secret: ResolvedCredential,
    ) -> SignatureVerdict:
        """Validate the webhook signature header against the resolved secret."""
        ...

    async def send_text(
        self,
        recipient_id: str,
        text: str,
        token: ResolvedCredential,
        session_id: str | None = None,
    ) -> dict[str, Any]:
        """Convenience method to send a simple text message."""
        message = OutgoingMessage(
            content=text,
            recipient_id=recipient_id,
            session_id=session_id,
        )
        return await self.send_message(message, token)
