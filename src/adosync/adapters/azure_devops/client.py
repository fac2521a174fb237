"""HTTP adapter for the Azure DevOps user entitlement API."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from adosync.adapters.http_resilience import ResilientClient
from adosync.config.azure_devops import get_azure_devops_config
from adosync.domain.ports import DirectoryReader, DirectoryWriter

from .schema import (
    AddEntitlementResponse,
    PatchEntitlementResponse,
    UserEntitlement,
    UserEntitlementsPage,
)
from .translator import translate_entitlement

if TYPE_CHECKING:
    from collections.abc import Callable

    from adosync.config.azure_devops import AzureDevOpsConfig
    from adosync.config.http_resilience import ResilienceConfig
    from adosync.domain.model import RemoteEntity

log = getLogger(__name__)

JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"
AUTH_STATUS_CODES = frozenset({401, 403})
# an invalid PAT is answered with a 203 sign-in page instead of a 401
SIGN_IN_STATUS_CODE = 203
MAX_LOGGED_BODY = 500
MAX_PAGES = 10_000


class AzureDevOpsError(RuntimeError):
    """Raised when the entitlement API cannot be reached or answers unexpectedly."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AzureDevOpsAuthError(AzureDevOpsError):
    """Raised when the personal access token is rejected."""


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _truncate(text: str) -> str:
    return text if len(text) <= MAX_LOGGED_BODY else text[:MAX_LOGGED_BODY] + "..."


def _check_authenticated(response: httpx.Response, *, action: str) -> None:
    if response.status_code in AUTH_STATUS_CODES or response.status_code == SIGN_IN_STATUS_CODE:
        raise AzureDevOpsAuthError(
            f"Authentication failed while trying to {action} (status {response.status_code})",
            status_code=response.status_code,
        )


@dataclass(slots=True)
class AzureDevOpsDirectory:
    """Directory capability backed by ``vsaex.dev.azure.com``.

    ``fetch_all`` raises on transport and authentication failures. ``create_entity``
    and ``update_entity_tier`` never raise for HTTP problems; they log the
    response and return ``False``.
    """

    config: AzureDevOpsConfig = field(default_factory=get_azure_devops_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def fetch_all(self) -> list[RemoteEntity]:
        return asyncio.run(self._fetch_all_async())

    def create_entity(self, identity_key: str, display_name: str, tier_code: int) -> bool:
        return asyncio.run(self._create_entity_async(identity_key, display_name, tier_code))

    def update_entity_tier(self, remote_id: str, tier_code: int) -> bool:
        return asyncio.run(self._update_entity_tier_async(remote_id, tier_code))

    async def _fetch_all_async(self) -> list[RemoteEntity]:
        url = self.config.entitlements_url
        entities: list[RemoteEntity] = []
        token: str | None = None
        seen_tokens: set[str] = set()

        log.info("Fetching users from Azure DevOps: GET %s", url)
        async with self.client_factory(self.config.resilience) as client:
            for _ in range(MAX_PAGES):
                params = {"api-version": self.config.api_version}
                if token is not None:
                    params["continuationToken"] = token
                page = await self._request_page(client, url=url, params=params)
                entities.extend(self._translate_page(page))

                token = page.continuation_token
                if token is None:
                    break
                if token in seen_tokens:
                    raise AzureDevOpsError(
                        f"Continuation token repeated after {len(entities)} users; "
                        "refusing to use an incomplete user list"
                    )
                seen_tokens.add(token)
            else:
                raise AzureDevOpsError(f"Gave up paging user entitlements after {MAX_PAGES} pages")

        log.info("Successfully fetched %s users from Azure DevOps", len(entities))
        return entities

    async def _request_page(
        self,
        client: ResilientClient,
        *,
        url: str,
        params: dict[str, str],
    ) -> UserEntitlementsPage:
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise AzureDevOpsError(f"Error fetching users from Azure DevOps: {exc}") from exc

        _check_authenticated(response, action="fetch users")
        if not response.is_success:
            log.error(
                "Failed to get users. Status: %s, Response: %s",
                response.status_code,
                _truncate(response.text),
            )
            raise AzureDevOpsError(
                f"Failed to get users (status {response.status_code})",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise AzureDevOpsError("Unexpected non-JSON response from Azure DevOps") from exc
        if not isinstance(payload, dict):
            raise AzureDevOpsError("Unexpected Azure DevOps response payload")
        if not any(key in payload for key in ("value", "members", "items")):
            log.warning("No recognised array property found in API response")

        return UserEntitlementsPage.model_validate(payload)

    def _translate_page(self, page: UserEntitlementsPage) -> list[RemoteEntity]:
        entities: list[RemoteEntity] = []
        for item in page.items:
            try:
                entitlement = UserEntitlement.model_validate(item)
            except ValidationError as exc:
                log.warning("Failed to parse a user from JSON: %s", exc.errors()[0]["msg"])
                continue
            entity = translate_entitlement(entitlement)
            if entity is None:
                continue
            log.debug(
                "Parsed user: %s with license type %s", entity.identity_key, entity.tier_code
            )
            entities.append(entity)
        return entities

    async def _create_entity_async(
        self,
        identity_key: str,
        display_name: str,
        tier_code: int,
    ) -> bool:
        url = self.config.entitlements_url
        body = {
            "accessLevel": {"accountLicenseType": tier_code},
            "user": {"principalName": identity_key, "subjectKind": "user"},
        }
        log.info("Adding user %s (%s): POST %s", identity_key, display_name or "-", url)
        log.debug("Request body: %s", json.dumps(body))

        try:
            async with self.client_factory(self.config.resilience) as client:
                response = await client.post(
                    url,
                    params={"api-version": self.config.api_version},
                    json=body,
                )
        except httpx.HTTPError as exc:
            log.error("Error adding user %s: %s", identity_key, exc)  # noqa: TRY400
            return False

        if not response.is_success or response.status_code == SIGN_IN_STATUS_CODE:
            log.error(
                "Failed to add user %s. Status: %s, Response: %s",
                identity_key,
                response.status_code,
                _truncate(response.text),
            )
            return False

        result = _parse_optional(AddEntitlementResponse, response)
        operation = result.operation_result if result is not None else None
        if operation is not None and operation.is_success is False:
            log.error("Azure DevOps refused to add user %s: %s", identity_key, operation.errors)
            return False

        log.info("Successfully added user %s with license type %s", identity_key, tier_code)
        return True

    async def _update_entity_tier_async(self, remote_id: str, tier_code: int) -> bool:
        url = f"{self.config.entitlements_url}/{remote_id}"
        body = [
            {
                "op": "replace",
                "path": "/accessLevel",
                "value": {"accountLicenseType": tier_code, "licensingSource": "account"},
            }
        ]
        log.info("Updating user license: PATCH %s", url)
        log.debug("Request body: %s", json.dumps(body))

        try:
            async with self.client_factory(self.config.resilience) as client:
                response = await client.patch(
                    url,
                    params={"api-version": self.config.api_version},
                    content=json.dumps(body),
                    headers={"Content-Type": JSON_PATCH_CONTENT_TYPE},
                )
        except httpx.HTTPError as exc:
            log.error("Error updating user %s: %s", remote_id, exc)  # noqa: TRY400
            return False

        if not response.is_success or response.status_code == SIGN_IN_STATUS_CODE:
            log.error(
                "Failed to update user %s. Status: %s, Response: %s",
                remote_id,
                response.status_code,
                _truncate(response.text),
            )
            return False

        result = _parse_optional(PatchEntitlementResponse, response)
        if result is not None and result.is_success is False:
            errors = [error for op in result.operation_results for error in op.errors]
            log.error("Azure DevOps refused to update user %s: %s", remote_id, errors)
            return False

        log.info("Successfully updated user %s to license type %s", remote_id, tier_code)
        return True


def _parse_optional[TModel: (AddEntitlementResponse, PatchEntitlementResponse)](
    model: type[TModel],
    response: httpx.Response,
) -> TModel | None:
    if not response.content:
        return None
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError):
        log.debug("Ignoring unparseable %s body", model.__name__)
        return None


if TYPE_CHECKING:
    _reader_check: DirectoryReader = AzureDevOpsDirectory()
    _writer_check: DirectoryWriter = AzureDevOpsDirectory()
