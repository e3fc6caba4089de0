"""Per-tenant credential resolution with global defaults."""

from dataclasses import dataclass
from enum import Enum


class CredentialSource(str, Enum):
    """Where a resolved credential came from."""

    TENANT = "tenant"
    DEFAULT = "default"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ResolvedCredential:
    """A credential value tagged with its origin."""

    value: str | None
    source: CredentialSource

    @property
    def available(self) -> bool:
        return self.source != CredentialSource.UNAVAILABLE

    def __repr__(self) -> str:
        # Never leak the secret into logs
        return f"ResolvedCredential(source={self.source.value})"


def resolve_credential(tenant_value: str | None, default: str | None) -> ResolvedCredential:
    """Prefer the tenant's own value, then the global default.

    Empty strings are treated the same as a missing value.
    """
    if tenant_value:
        return ResolvedCredential(tenant_value, CredentialSource.TENANT)
    if default:
        return ResolvedCredential(default, CredentialSource.DEFAULT)
    return ResolvedCredential(None, CredentialSource.UNAVAILABLE)
