"""Mapping between free-text access-level labels and directory tier codes.

The label table is data: organisations extend it (see
``adosync.config.tiers``) and each pass receives its own ``LicenseTable``.
Lookups never fail; unknown input degrades to the lowest tier or to
``UNKNOWN_LABEL`` and is reported through logging.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from logging import getLogger
from types import MappingProxyType

from adosync.domain.model import LOWEST_CREATABLE_TIER, LOWEST_TIER, Tier

log = getLogger(__name__)

UNKNOWN_LABEL = "Unknown"

DEFAULT_LABELS: Mapping[str, int] = MappingProxyType(
    {
        "Stakeholder": Tier.STAKEHOLDER,
        "Basic": Tier.BASIC,
        "Basic + Test Plans": Tier.BASIC_TEST_PLANS,
        "Visual Studio Enterprise subscription": Tier.VISUAL_STUDIO_SUBSCRIBER,
        "Visual Studio Professional subscription": Tier.VISUAL_STUDIO_SUBSCRIBER,
        "GitHub Enterprise": Tier.STAKEHOLDER,
        "VS Test Pro with MSDN": Tier.BASIC_TEST_PLANS,
        "Visual Studio Subscriber": Tier.VISUAL_STUDIO_SUBSCRIBER,
        "Visual Studio Enterprise": Tier.VISUAL_STUDIO_SUBSCRIBER,
    }
)

CANONICAL_LABELS: Mapping[int, str] = MappingProxyType(
    {
        Tier.STAKEHOLDER: "Stakeholder",
        Tier.BASIC: "Basic",
        Tier.BASIC_TEST_PLANS: "Basic + Test Plans",
        Tier.VISUAL_STUDIO_SUBSCRIBER: "Visual Studio Enterprise subscription",
    }
)


def normalize_label(label: str | None) -> str:
    return (label or "").strip().casefold()


@dataclass(frozen=True, slots=True)
class LicenseTable:
    """Label -> code (many-to-one) plus the fixed code -> canonical label table."""

    labels: Mapping[str, int]
    canonical: Mapping[int, str] = field(default_factory=lambda: CANONICAL_LABELS)

    def __post_init__(self) -> None:
        normalized: dict[str, int] = {}
        for label, code in self.labels.items():
            key = normalize_label(label)
            if not key:
                raise ValueError("License labels must not be blank")
            if code not in self.canonical:
                raise ValueError(f"License label {label!r} maps to unknown tier code {code}")
            normalized[key] = int(code)
        # canonical labels always resolve to their own code
        for code, label in self.canonical.items():
            key = normalize_label(label)
            mapped = normalized.get(key)
            if mapped is not None and mapped != code:
                raise ValueError(
                    f"Canonical label {label!r} must map to tier code {int(code)}, not {mapped}"
                )
            normalized[key] = int(code)
        object.__setattr__(self, "labels", MappingProxyType(normalized))

    def extended(self, extra: Mapping[str, int]) -> LicenseTable:
        """Return a new table where ``extra`` entries override non-canonical labels."""

        merged = dict(self.labels)
        merged.update({normalize_label(label): code for label, code in extra.items()})
        return LicenseTable(labels=merged, canonical=self.canonical)


def default_license_table() -> LicenseTable:
    return LicenseTable(labels=DEFAULT_LABELS)


class LicenseMapper:
    """Label/code translation and the new-user tier floor."""

    def __init__(self, table: LicenseTable | None = None) -> None:
        self.table = table or default_license_table()
        self._reported_labels: set[str] = set()

    def is_known(self, label: str | None) -> bool:
        return normalize_label(label) in self.table.labels

    def to_tier_code(self, label: str | None) -> int:
        key = normalize_label(label)
        code = self.table.labels.get(key)
        if code is not None:
            return code
        # one warning per distinct label keeps large exports readable
        if key not in self._reported_labels:
            self._reported_labels.add(key)
            if key:
                log.warning(
                    "Unknown access level '%s', defaulting to %s (%s)",
                    (label or "").strip(),
                    self.to_label(LOWEST_TIER),
                    int(LOWEST_TIER),
                )
            else:
                log.warning(
                    "Empty access level provided, defaulting to %s (%s)",
                    self.to_label(LOWEST_TIER),
                    int(LOWEST_TIER),
                )
        return int(LOWEST_TIER)

    def to_label(self, code: int) -> str:
        label = self.table.canonical.get(code)
        if label is not None:
            return label
        log.warning("Unknown license type %s, returning '%s'", code, UNKNOWN_LABEL)
        return UNKNOWN_LABEL

    def are_equivalent(self, label: str | None, code: int) -> bool:
        if not normalize_label(label):
            return False
        return self.to_tier_code(label) == code

    def floor_code(self, code: int) -> int:
        """Raise ``code`` to the lowest tier a new user can be created with."""

        if code != LOWEST_TIER:
            return code
        log.info(
            "Cannot add new users with %s license; will add as %s (%s) instead",
            self.to_label(LOWEST_TIER),
            self.to_label(LOWEST_CREATABLE_TIER),
            int(LOWEST_CREATABLE_TIER),
        )
        return int(LOWEST_CREATABLE_TIER)

    def floor_for_new_entity(self, label: str | None) -> int:
        return self.floor_code(self.to_tier_code(label))
