"""Generate a reply, deliver it and record the exchange."""

from dataclasses import dataclass

import structlog

from neowhat.core.config import settings
from neowhat.core.credentials import resolve_credential
from neowhat.models import ConversationLogEntry, OutgoingMessage, Tenant
from neowhat.services.channels.base import ChannelAdapter
from neowhat.services.llm.provider import LLMProvider
from neowhat.storage.base import StorageBackend

logger = structlog.get_logger()


@dataclass
class ResponderOutcome:
    reply_text: str
    delivered: bool
    logged: bool
    tokens_used: int | None = None
    llm_failed: bool = False
    send_error: str | None = None


class Responder:
    """Produces the reply for one inbound question.

    Neither a failed completion nor a failed send prevents the exchange from
    being written to the conversation log.
    """

    def __init__(
        self,
        storage: StorageBackend,
        llm_provider: LLMProvider,
        channel: ChannelAdapter,
        default_llm_key: str | None = None,
        default_gateway_token: str | None = None,
        error_message: str | None = None,
    ) -> None:
        self.storage = storage
        self.llm = llm_provider
        self.channel = channel
        self.default_llm_key = (
            default_llm_key if default_llm_key is not None else settings.openrouter_api_key
        )
        self.default_gateway_token = (
            default_gateway_token if default_gateway_token is not None else settings.wasender_api_key
        )
        self.error_message = error_message or settings.default_error_message

    async def respond(
        self,
        tenant: Tenant,
        sender_phone: str,
        question: str,
        messages: list[dict[str, str]],
        session_hint: str | None = None,
    ) -> ResponderOutcome:
        reply, tokens_used, llm_failed = await self._generate(tenant, messages)

        delivered, send_error = await self._deliver(tenant, sender_phone, reply, session_hint)

        logged = await self._record(tenant, sender_phone, question, reply, tokens_used)

        return ResponderOutcome(
            reply_text=reply,
            delivered=delivered,
            logged=logged,
            tokens_used=tokens_used,
            llm_failed=llm_failed,
            send_error=send_error,
        )

    async def _generate(
        self,
        tenant: Tenant,
        messages: list[dict[str, str]],
    ) -> tuple[str, int | None, bool]:
        api_key = resolve_credential(tenant.llm_api_key, self.default_llm_key)
        try:
            response = await self.llm.complete(messages=messages, api_key=api_key, temperature=0)
        except Exception as e:
            logger.error("Reply generation failed", tenant_id=tenant.id, error=str(e))
            return self.error_message, None, True
        return response.content, response.tokens_used, False

    async def _deliver(
        self,
        tenant: Tenant,
        sender_phone: str,
        reply: str,
        session_hint: str | None,
    ) -> tuple[bool, str | None]:
        session_id = tenant.session_id or session_hint
        if not session_id:
            logger.error("No session id available, reply not sent", tenant_id=tenant.id)
            return False, "missing_session_id"

        token = resolve_credential(tenant.whatsapp_token, self.default_gateway_token)
        message = OutgoingMessage(content=reply, recipient_id=sender_phone, session_id=session_id)
        try:
            await self.channel.send_message(message, token)
        except Exception as e:
            logger.error("Reply delivery failed", tenant_id=tenant.id, error=str(e))
            return False, str(e)
        return True, None

    async def _record(
        self,
        tenant: Tenant,
        sender_phone: str,
        question: str,
        reply: str,
        tokens_used: int | None,
    ) -> bool:
        entry = ConversationLogEntry(
            tenant_id=tenant.id,
            sender_phone=sender_phone,
            message_in=question,
            message_out=reply,
            tokens_used=tokens_used,
        )
        try:
            await self.storage.save_log_entry(entry)
        except Exception as e:
            logger.error("Conversation log write failed", tenant_id=tenant.id, error=str(e))
            return False
        return True
