"""Data models for the application."""

from neowhat.models.conversation import ConversationLogEntry
from neowhat.models.document import RetrievedPassage, StoredDocument
from neowhat.models.message import InboundMessage, OutgoingMessage, ProcessedMessageRecord
from neowhat.models.tenant import Tenant, TenantCreate, TenantPublic, TenantUpdate

__all__ = [
    # Tenant
    "Tenant",
    "TenantCreate",
    "TenantPublic",
    "TenantUpdate",
    # Conversation
    "ConversationLogEntry",
    # Message
    "InboundMessage",
    "OutgoingMessage",
    "ProcessedMessageRecord",
    # Knowledge
    "RetrievedPassage",
    "StoredDocument",
]
