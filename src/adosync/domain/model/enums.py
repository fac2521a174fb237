"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class Tier(IntEnum):
    """Canonical license tiers as understood by the directory."""

    STAKEHOLDER = 0
    BASIC = 1
    BASIC_TEST_PLANS = 2
    VISUAL_STUDIO_SUBSCRIBER = 3


LOWEST_TIER = Tier.STAKEHOLDER
LOWEST_CREATABLE_TIER = Tier.BASIC


class LicensingSource(StrEnum):
    """Where the directory takes a user's tier from."""

    ACCOUNT = "account"
    MSDN = "msdn"
    PROFILE = "profile"
    AUTO = "auto"
    TRIAL = "trial"
    NONE = "none"


EXTERNAL_LICENSING_SOURCES: frozenset[str] = frozenset({LicensingSource.MSDN.value})


class OutcomeKind(StrEnum):
    ADD = "add"
    UPDATE = "update"
    NO_CHANGE = "no_change"
    FAILED = "failed"
