"""Webhook endpoints for the WasenderAPI WhatsApp gateway."""

import structlog
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from neowhat.api.dependencies import EngineDep
from neowhat.services.conversation.engine import AckReason, WebhookOutcome

logger = structlog.get_logger()

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def _to_response(outcome: WebhookOutcome) -> Response:
    if isinstance(outcome.body, str):
        return PlainTextResponse(outcome.body, status_code=outcome.status_code)
    return JSONResponse(outcome.body, status_code=outcome.status_code)


@router.post("/whatsapp")
async def whatsapp_webhook(request: Request, engine: EngineDep) -> Response:
    """Handle incoming WhatsApp messages.

    Always answers 200 except for a rejected signature, so the gateway does
    not retry deliveries we chose to drop.
    """
    try:
        body = await request.body()
        outcome = await engine.handle_delivery(body, dict(request.headers))
    except Exception as e:
        logger.error("Error processing WhatsApp webhook", error=str(e), exc_info=True)
        outcome = WebhookOutcome.ack(AckReason.INTERNAL_ERROR)
    return _to_response(outcome)


@router.get("/whatsapp")
async def whatsapp_verification(request: Request, engine: EngineDep) -> Response:
    """Endpoint verification handshake."""
    return _to_response(engine.handshake(dict(request.query_params)))
