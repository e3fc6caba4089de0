"""Custom exceptions for the application."""

from typing import Any


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ConfigurationError(AppException):
    """Raised when there's a configuration problem."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class SessionConflict(AppException):
    """Raised when an active tenant already owns a gateway session id."""

    def __init__(self, session_id: str, owner_id: str) -> None:
        super().__init__(
            f"Session {session_id} is already bound to tenant {owner_id}",
            code="SESSION_CONFLICT",
            details={"session_id": session_id, "tenant_id": owner_id},
        )


class LLMError(AppException):
    """Raised when LLM provider fails."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(
            message,
            code="LLM_ERROR",
            details={"provider": provider} if provider else {},
        )


class VectorStoreError(AppException):
    """Raised when document store operations fail."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(
            message,
            code="VECTOR_STORE_ERROR",
            details={"operation": operation} if operation else {},
        )


class ChannelError(AppException):
    """Raised when channel operations fail."""

    def __init__(self, message: str, channel: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            code="CHANNEL_ERROR",
            details={"channel": channel, **(details or {})},
        )
