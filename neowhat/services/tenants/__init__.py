"""Tenant routing for inbound webhooks."""

from neowhat.services.tenants.resolver import ResolutionStrategy, TenantResolution, TenantResolver

__all__ = ["ResolutionStrategy", "TenantResolution", "TenantResolver"]
