"""Core module - configuration and utilities."""

from neowhat.core.config import settings
from neowhat.core.credentials import CredentialSource, ResolvedCredential, resolve_credential
from neowhat.core.exceptions import (
    AppException,
    ChannelError,
    ConfigurationError,
    LLMError,
    SessionConflict,
    VectorStoreError,
)

__all__ = [
    "settings",
    "CredentialSource",
    "ResolvedCredential",
    "resolve_credential",
    "AppException",
    "ChannelError",
    "ConfigurationError",
    "LLMError",
    "SessionConflict",
    "VectorStoreError",
]
