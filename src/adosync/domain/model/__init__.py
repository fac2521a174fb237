"""Domain model for license reconciliation."""

from __future__ import annotations

from .enums import (
    EXTERNAL_LICENSING_SOURCES,
    LOWEST_CREATABLE_TIER,
    LOWEST_TIER,
    LicensingSource,
    OutcomeKind,
    Tier,
)
from .outcome import (
    AddOutcome,
    FailedOutcome,
    NoChangeOutcome,
    Outcome,
    UpdateOutcome,
    outcome_kind,
    prior_label_of,
)
from .records import DesiredRecord, RemoteEntity, normalize_identity
from .summary import PassSummary

__all__ = [
    "EXTERNAL_LICENSING_SOURCES",
    "LOWEST_CREATABLE_TIER",
    "LOWEST_TIER",
    "AddOutcome",
    "DesiredRecord",
    "FailedOutcome",
    "LicensingSource",
    "NoChangeOutcome",
    "Outcome",
    "OutcomeKind",
    "PassSummary",
    "RemoteEntity",
    "Tier",
    "UpdateOutcome",
    "normalize_identity",
    "outcome_kind",
    "prior_label_of",
]
