"""Azure DevOps configuration values."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from urllib.parse import urlparse

from .env import require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

ENTITLEMENTS_HOST = "https://vsaex.dev.azure.com"
DEFAULT_API_VERSION = "7.2-preview.3"
AZURE_DEVOPS_TIMEOUT_SECONDS = 30.0

ORG_URL_ENV = "AZURE_DEVOPS_ORG_URL"
PAT_ENV = "AZURE_DEVOPS_PAT"


def organization_from_url(organization_url: str) -> str:
    """Return the organization name, i.e. the last path segment of the URL."""

    parsed = urlparse(organization_url.strip())
    if not parsed.scheme or not parsed.netloc:
        raise ConfigurationError(f"Organization URL is not a valid URL: {organization_url}")
    segments = [segment for segment in parsed.path.split("/") if segment]
    if segments:
        return segments[-1]
    # legacy https://{org}.visualstudio.com
    host = parsed.netloc.split(".")[0]
    if not host:
        raise ConfigurationError(f"Cannot derive organization from URL: {organization_url}")
    return host


def basic_auth_header(pat_token: str) -> str:
    token = base64.b64encode(f":{pat_token}".encode("ascii")).decode("ascii")
    return f"Basic {token}"


@dataclass(frozen=True, slots=True)
class AzureDevOpsConfig:
    """Holds Azure DevOps entitlement API configuration values."""

    organization_url: str
    pat_token: str
    resilience: ResilienceConfig
    api_version: str = DEFAULT_API_VERSION

    @property
    def organization(self) -> str:
        return organization_from_url(self.organization_url)

    @property
    def entitlements_url(self) -> str:
        return f"{ENTITLEMENTS_HOST}/{self.organization}/_apis/userentitlements"


def build_azure_devops_config(
    organization_url: str,
    pat_token: str,
    *,
    resilience: ResilienceConfig | None = None,
) -> AzureDevOpsConfig:
    organization_url = organization_url.strip().rstrip("/")
    organization = organization_from_url(organization_url)
    return AzureDevOpsConfig(
        organization_url=organization_url,
        pat_token=pat_token,
        resilience=resilience
        or ResilienceConfig(
            name="azure-devops",
            base_url=f"{ENTITLEMENTS_HOST}/{organization}/_apis/",
            timeout_seconds=AZURE_DEVOPS_TIMEOUT_SECONDS,
            retry=RetryPolicy(),
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers={
                "Authorization": basic_auth_header(pat_token),
                "Accept": "application/json",
            },
        ),
    )


def get_azure_devops_config(
    *,
    organization_url: str | None = None,
    pat_token: str | None = None,
    resilience: ResilienceConfig | None = None,
) -> AzureDevOpsConfig:
    values = require_env_vars(
        (ORG_URL_ENV, PAT_ENV),
        overrides={ORG_URL_ENV: organization_url, PAT_ENV: pat_token},
    )
    return build_azure_devops_config(
        values[ORG_URL_ENV],
        values[PAT_ENV],
        resilience=resilience,
    )
