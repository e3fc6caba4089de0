"""Webhook pipeline - orchestrates routing, retrieval, generation and delivery."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from neowhat.core.config import settings
from neowhat.core.credentials import resolve_credential
from neowhat.models import InboundMessage, Tenant
from neowhat.services.channels.base import ChannelAdapter
from neowhat.services.channels.payload import is_accepted_event
from neowhat.services.channels.whatsapp import SIGNATURE_HEADER
from neowhat.services.conversation.ledger import IdempotencyLedger
from neowhat.services.conversation.memory import ConversationMemory
from neowhat.services.conversation.prompt import PromptAssembler
from neowhat.services.conversation.responder import Responder
from neowhat.services.rag.retriever import ContextRetriever
from neowhat.services.tenants.resolver import TenantResolver

logger = structlog.get_logger()

INVALID_SIGNATURE = "Invalid webhook signature"
INVALID_VERIFY_TOKEN = "Invalid verification token"


class PipelineStage(str, Enum):
    """Steps an inbound delivery goes through, in order."""

    RECEIVED = "received"
    PAYLOAD_PARSED = "payload_parsed"
    EVENT_FILTERED = "event_filtered"
    DATA_EXTRACTED = "data_extracted"
    DUPLICATE_CHECKED = "duplicate_checked"
    TENANT_RESOLVED = "tenant_resolved"
    SIGNATURE_VERIFIED = "signature_verified"
    CONTEXT_RETRIEVED = "context_retrieved"
    RESPONSE_GENERATED = "response_generated"
    DISPATCHED = "dispatched"
    LOGGED = "logged"
    ACKNOWLEDGED = "acknowledged"


class AckReason(str, Enum):
    INVALID_PAYLOAD = "invalid_payload"
    EVENT_NOT_HANDLED = "event_not_handled"
    MISSING_DATA = "missing_data"
    DUPLICATE = "duplicate"
    CLIENT_NOT_FOUND = "client_not_found"
    INTERNAL_ERROR = "internal_error"
    LOG_WRITE_FAILED = "log_write_failed"


@dataclass
class WebhookOutcome:
    """HTTP answer for the gateway."""

    status_code: int
    body: dict[str, Any] | str = field(default_factory=dict)

    @classmethod
    def ack(cls, reason: AckReason | None = None, **extra: Any) -> "WebhookOutcome":
        body: dict[str, Any] = {"received": True}
        if reason is None:
            body["processed"] = True
        else:
            body["reason"] = reason.value
        body.update(extra)
        return cls(status_code=200, body=body)


class ConversationEngine:
    """Handles one webhook delivery from raw body to acknowledgement.

    Every exit before signature verification is a 200 acknowledgement so the
    gateway does not retry. Only a rejected signature returns 401. Failures
    after the tenant is known are caught here and still acknowledged.
    """

    def __init__(
        self,
        channel: ChannelAdapter,
        ledger: IdempotencyLedger,
        resolver: TenantResolver,
        retriever: ContextRetriever,
        memory: ConversationMemory,
        assembler: PromptAssembler,
        responder: Responder,
        default_webhook_secret: str | None = None,
        verify_token: str | None = None,
    ) -> None:
        self.channel = channel
        self.ledger = ledger
        self.resolver = resolver
        self.retriever = retriever
        self.memory = memory
        self.assembler = assembler
        self.responder = responder
        self.default_webhook_secret = (
            default_webhook_secret
            if default_webhook_secret is not None
            else settings.wasender_webhook_secret
        )
        self.verify_token = verify_token if verify_token is not None else settings.whatsapp_verify_token

    async def handle_delivery(self, body: bytes, headers: Mapping[str, str]) -> WebhookOutcome:
        log = logger.bind(stage=PipelineStage.RECEIVED.value)
        lowered = {k.lower(): v for k, v in headers.items()}

        try:
            payload = json.loads(body or b"null")
        except ValueError as e:
            log.warning("Webhook body is not JSON", error=str(e))
            return WebhookOutcome.ack(AckReason.INVALID_PAYLOAD)
        if not isinstance(payload, dict):
            log.warning("Webhook body is not an object")
            return WebhookOutcome.ack(AckReason.INVALID_PAYLOAD)

        inbound = self.channel.parse_webhook(payload, lowered)
        log = log.bind(message_id=inbound.message_id, webhook_event=inbound.event)

        if not is_accepted_event(inbound.event):
            log.info("Event ignored", stage=PipelineStage.EVENT_FILTERED.value)
            return WebhookOutcome.ack(AckReason.EVENT_NOT_HANDLED, event=inbound.event)

        if not inbound.has_required_fields:
            log.warning("Sender or text missing", stage=PipelineStage.DATA_EXTRACTED.value)
            return WebhookOutcome.ack(AckReason.MISSING_DATA)

        if await self.ledger.has_processed(inbound.message_id):
            log.info("Duplicate delivery skipped", stage=PipelineStage.DUPLICATE_CHECKED.value)
            return WebhookOutcome.ack(AckReason.DUPLICATE)

        resolution = await self.resolver.resolve(inbound.session_hint)
        if resolution.tenant is None:
            log.warning(
                "Tenant not found",
                stage=PipelineStage.TENANT_RESOLVED.value,
                session_hint=inbound.session_hint,
                reason=resolution.reason,
            )
            return WebhookOutcome.ack(
                AckReason.CLIENT_NOT_FOUND,
                sessionId=inbound.session_hint,
                **{"from": inbound.sender_phone},
            )

        tenant = resolution.tenant
        log = log.bind(tenant_id=tenant.id, routing=resolution.strategy.value)

        secret = resolve_credential(tenant.webhook_secret, self.default_webhook_secret)
        verdict = self.channel.validate_webhook(lowered.get(SIGNATURE_HEADER), secret)
        if not verdict.accepted:
            log.warning(
                "Webhook rejected",
                stage=PipelineStage.SIGNATURE_VERIFIED.value,
                verdict=verdict.value,
            )
            return WebhookOutcome(status_code=401, body={"error": INVALID_SIGNATURE})

        try:
            return await self._process(inbound, tenant, resolution.session_id, log)
        except Exception as e:
            log.exception("Webhook processing failed", error=str(e))
            return WebhookOutcome.ack(AckReason.INTERNAL_ERROR)

    async def _process(
        self,
        inbound: InboundMessage,
        tenant: Tenant,
        session_id: str | None,
        log: Any,
    ) -> WebhookOutcome:
        if not await self.ledger.mark_processed(inbound.message_id, tenant.id):
            log.info("Concurrent duplicate skipped", stage=PipelineStage.DUPLICATE_CHECKED.value)
            return WebhookOutcome.ack(AckReason.DUPLICATE)

        question = inbound.message_text
        retrieval = await self.retriever.retrieve(question, tenant.id)
        log.info(
            "Context ready",
            stage=PipelineStage.CONTEXT_RETRIEVED.value,
            strategy=retrieval.strategy.value,
            document_count=retrieval.document_count,
        )

        history = await self.memory.get_context_messages(tenant.id, inbound.sender_phone)
        prompt = self.assembler.assemble(tenant, retrieval, history, question)

        outcome = await self.responder.respond(
            tenant=tenant,
            sender_phone=inbound.sender_phone,
            question=question,
            messages=prompt.messages,
            session_hint=session_id or inbound.session_hint,
        )
        log.info(
            "Reply generated",
            stage=PipelineStage.RESPONSE_GENERATED.value,
            branch=prompt.branch.value,
            llm_failed=outcome.llm_failed,
            tokens_used=outcome.tokens_used,
        )
        log.info(
            "Reply dispatched",
            stage=PipelineStage.DISPATCHED.value,
            delivered=outcome.delivered,
            send_error=outcome.send_error,
        )

        if not outcome.logged:
            return WebhookOutcome.ack(AckReason.LOG_WRITE_FAILED)
        log.info("Exchange logged", stage=PipelineStage.LOGGED.value)
        log.info("Delivery acknowledged", stage=PipelineStage.ACKNOWLEDGED.value)
        return WebhookOutcome.ack()

    def handshake(self, params: Mapping[str, str]) -> WebhookOutcome:
        """Answer the gateway's endpoint verification request.

        A challenge is echoed back whatever the token, since some gateways
        send one without a token.
        """
        token = params.get("verify_token") or params.get("token")
        challenge = params.get("challenge") or params.get("hub.challenge")

        if challenge:
            if not (token and self.verify_token and token == self.verify_token):
                logger.warning("Echoing webhook challenge without a valid token")
            return WebhookOutcome(status_code=200, body=challenge)

        # An unset verify token rejects every handshake, even one sent without a token
        if token and self.verify_token and token == self.verify_token:
            return WebhookOutcome(status_code=200, body={"verified": True})

        return WebhookOutcome(status_code=403, body={"error": INVALID_VERIFY_TOKEN})
