"""Both sides of the comparison: desired records and remote directory entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .enums import EXTERNAL_LICENSING_SOURCES

if TYPE_CHECKING:
    from datetime import datetime


def normalize_identity(value: str | None) -> str:
    """Join key used on both sides: trimmed, lowercased email/username."""

    if not value:
        return ""
    return value.strip().lower()


@dataclass(frozen=True, slots=True, kw_only=True)
class DesiredRecord:
    """One row of target state, as exported to CSV.

    ``status``, ``source``, ``last_access`` and ``date_created`` are carried for
    reporting only and never influence reconciliation.
    """

    identity_key: str
    display_name: str = ""
    tier_label: str = ""
    status: str = ""
    source: str = ""
    last_access: str = ""
    date_created: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "identity_key", normalize_identity(self.identity_key))
        object.__setattr__(self, "tier_label", self.tier_label.strip())


@dataclass(frozen=True, slots=True, kw_only=True)
class RemoteEntity:
    """Current directory state for one user.

    ``tier_code`` is kept verbatim even outside the canonical 0..3 range.
    """

    remote_id: str
    identity_key: str
    tier_code: int
    display_name: str = ""
    licensing_source: str = ""
    date_created: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "identity_key", normalize_identity(self.identity_key))

    @property
    def is_externally_managed(self) -> bool:
        return self.licensing_source.strip().lower() in EXTERNAL_LICENSING_SOURCES
