"""Translate entitlement payloads into ``RemoteEntity`` values."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from adosync.domain.model import LicensingSource, RemoteEntity, Tier, normalize_identity

if TYPE_CHECKING:
    from .schema import AccessLevel, UserEntitlement

log = getLogger(__name__)

EARLY_ADOPTER_CODE = 4

LICENSE_NAMES: dict[str, int] = {
    "stakeholder": Tier.STAKEHOLDER,
    "express": Tier.BASIC,
    "basic": Tier.BASIC,
    "advanced": Tier.BASIC_TEST_PLANS,
    "professional": Tier.VISUAL_STUDIO_SUBSCRIBER,
    "enterprise": Tier.VISUAL_STUDIO_SUBSCRIBER,
    "earlyadopter": EARLY_ADOPTER_CODE,
}

MSDN_LICENSE_NAMES: dict[str, int] = {
    "enterprise": Tier.VISUAL_STUDIO_SUBSCRIBER,
    "professional": Tier.VISUAL_STUDIO_SUBSCRIBER,
    "premium": Tier.VISUAL_STUDIO_SUBSCRIBER,
    "testprofessional": Tier.BASIC_TEST_PLANS,
    "platforms": Tier.BASIC,
    "basic": Tier.BASIC,
}


def resolve_license_code(access_level: AccessLevel) -> int:
    """Return the numeric tier for an access level.

    Numeric codes are kept as-is, including codes outside the canonical range.
    ``none`` means the tier comes from a Visual Studio subscription and is read
    from ``msdnLicenseType``.
    """

    raw = access_level.account_license_type
    if raw is None:
        return int(Tier.STAKEHOLDER)
    if isinstance(raw, int):
        return raw

    name = raw.strip().lower()
    if name.lstrip("-").isdigit():
        return int(name)
    if name == "none":
        return _msdn_license_code(access_level.msdn_license_type)
    code = LICENSE_NAMES.get(name)
    if code is None:
        log.warning("Unrecognised license type %r, treating as Stakeholder", raw)
        return int(Tier.STAKEHOLDER)
    return int(code)


def _msdn_license_code(msdn_license_type: str | None) -> int:
    name = (msdn_license_type or "").strip().lower()
    return int(MSDN_LICENSE_NAMES.get(name, Tier.STAKEHOLDER))


def translate_entitlement(entitlement: UserEntitlement) -> RemoteEntity | None:
    """Return the directory user, or ``None`` when it carries no usable email."""

    user = entitlement.user
    identity = normalize_identity(user.mail_address) or normalize_identity(user.principal_name)
    if not identity:
        log.debug("Skipping entitlement %s without an email address", entitlement.id)
        return None

    access_level = entitlement.access_level
    return RemoteEntity(
        remote_id=entitlement.id,
        identity_key=identity,
        display_name=user.display_name,
        tier_code=resolve_license_code(access_level),
        licensing_source=(access_level.licensing_source or LicensingSource.NONE).strip().lower(),
        date_created=entitlement.date_created,
    )
