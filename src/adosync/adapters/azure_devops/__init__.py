"""Public interface for the Azure DevOps adapter."""

from __future__ import annotations

from .client import AzureDevOpsAuthError, AzureDevOpsDirectory, AzureDevOpsError
from .schema import AccessLevel, GraphUser, UserEntitlement, UserEntitlementsPage
from .translator import resolve_license_code, translate_entitlement

__all__ = [
    "AccessLevel",
    "AzureDevOpsAuthError",
    "AzureDevOpsDirectory",
    "AzureDevOpsError",
    "GraphUser",
    "UserEntitlement",
    "UserEntitlementsPage",
    "resolve_license_code",
    "translate_entitlement",
]
