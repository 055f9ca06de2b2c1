"""Shared API dependencies."""

from bankfeeds.core.database import get_db
from bankfeeds.core.security import TenantContext, get_tenant_context

__all__ = ["get_db", "get_tenant_context", "TenantContext"]
