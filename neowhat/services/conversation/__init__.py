"""Conversation service - webhook pipeline and its building blocks."""

from neowhat.services.conversation.engine import ConversationEngine, PipelineStage, WebhookOutcome
from neowhat.services.conversation.ledger import IdempotencyLedger
from neowhat.services.conversation.memory import ConversationMemory
from neowhat.services.conversation.prompt import PromptAssembler, PromptBranch
from neowhat.services.conversation.responder import Responder

__all__ = [
    "ConversationEngine",
    "PipelineStage",
    "WebhookOutcome",
    "IdempotencyLedger",
    "ConversationMemory",
    "PromptAssembler",
    "PromptBranch",
    "Responder",
]
