"""Pydantic models for the Azure DevOps user entitlement API."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime  # noqa: TC003
from typing import cast

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)

ITEM_KEYS = ("value", "members", "items")


class AzureDevOpsBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class GraphUser(AzureDevOpsBaseModel):
    display_name: str = Field(default="", alias="displayName")
    mail_address: str | None = Field(default=None, alias="mailAddress")
    principal_name: str | None = Field(default=None, alias="principalName")


class AccessLevel(AzureDevOpsBaseModel):
    account_license_type: int | str | None = Field(default=None, alias="accountLicenseType")
    msdn_license_type: str | None = Field(default=None, alias="msdnLicenseType")
    licensing_source: str | None = Field(default=None, alias="licensingSource")
    license_display_name: str | None = Field(default=None, alias="licenseDisplayName")
    status: str | None = None


class UserEntitlement(AzureDevOpsBaseModel):
    id: str
    user: GraphUser = Field(default_factory=GraphUser)
    access_level: AccessLevel = Field(default_factory=AccessLevel, alias="accessLevel")
    date_created: datetime | None = Field(default=None, alias="dateCreated")

    @field_validator("date_created", mode="wrap")
    @classmethod
    def _lenient_date(
        cls, value: object, handler: ValidatorFunctionWrapHandler
    ) -> datetime | None:
        try:
            return handler(value)
        except ValidationError:
            return None


class UserEntitlementsPage(AzureDevOpsBaseModel):
    """One page of entitlements; items stay raw so bad entries can be skipped one by one."""

    items: list[dict[str, object]] = Field(default_factory=list[dict[str, object]])
    continuation_token: str | None = Field(default=None, alias="continuationToken")
    total_count: int | None = Field(default=None, alias="totalCount")

    @model_validator(mode="before")
    @classmethod
    def _locate_items(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        data: dict[str, object] = dict(cast(Mapping[str, object], value))
        for key in ITEM_KEYS:
            candidate = data.get(key)
            if isinstance(candidate, list):
                data["items"] = [
                    item for item in cast(list[object], candidate) if isinstance(item, dict)
                ]
                break
        else:
            data["items"] = []
        return data

    @field_validator("continuation_token", mode="before")
    @classmethod
    def _blank_token(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class OperationResult(AzureDevOpsBaseModel):
    is_success: bool | None = Field(default=None, alias="isSuccess")
    errors: list[object] = Field(default_factory=list[object])


class AddEntitlementResponse(AzureDevOpsBaseModel):
    operation_result: OperationResult | None = Field(default=None, alias="operationResult")


class PatchEntitlementResponse(AzureDevOpsBaseModel):
    is_success: bool | None = Field(default=None, alias="isSuccess")
    operation_results: list[OperationResult] = Field(
        default_factory=list[OperationResult], alias="operationResults"
    )
