"""Per-record reconciliation outcomes.

Each desired record produces exactly one outcome. The variants form a closed
union; consumers switch over it with ``match`` and finish with
``assert_never`` so a new variant cannot be silently ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, assert_never

from .enums import OutcomeKind


@dataclass(frozen=True, slots=True, kw_only=True)
class AddOutcome:
    """Record had no remote match; the user is (or will be) created."""

    identity_key: str
    display_name: str
    requested_label: str
    status: str
    success: bool = True
    remote_id: str | None = None
    error: str | None = None
    warnings: tuple[str, ...] = ()
    kind: Literal[OutcomeKind.ADD] = OutcomeKind.ADD


@dataclass(frozen=True, slots=True, kw_only=True)
class UpdateOutcome:
    """Remote tier differs from the requested one and is (or will be) replaced."""

    identity_key: str
    display_name: str
    requested_label: str
    prior_label: str
    status: str
    success: bool = True
    remote_id: str | None = None
    error: str | None = None
    warnings: tuple[str, ...] = ()
    kind: Literal[OutcomeKind.UPDATE] = OutcomeKind.UPDATE


@dataclass(frozen=True, slots=True, kw_only=True)
class NoChangeOutcome:
    identity_key: str
    display_name: str
    requested_label: str
    prior_label: str
    status: str = "No change needed"
    success: bool = True
    remote_id: str | None = None
    error: str | None = None
    warnings: tuple[str, ...] = ()
    kind: Literal[OutcomeKind.NO_CHANGE] = OutcomeKind.NO_CHANGE


@dataclass(frozen=True, slots=True, kw_only=True)
class FailedOutcome:
    """Processing failed; ``attempted`` names the operation that was refused, if any."""

    identity_key: str
    display_name: str
    requested_label: str
    status: str
    error: str
    attempted: Literal[OutcomeKind.ADD, OutcomeKind.UPDATE] | None = None
    prior_label: str | None = None
    success: bool = False
    remote_id: str | None = None
    warnings: tuple[str, ...] = ()
    kind: Literal[OutcomeKind.FAILED] = OutcomeKind.FAILED


type Outcome = AddOutcome | UpdateOutcome | NoChangeOutcome | FailedOutcome


def outcome_kind(outcome: Outcome) -> OutcomeKind:
    match outcome:
        case AddOutcome():
            return OutcomeKind.ADD
        case UpdateOutcome():
            return OutcomeKind.UPDATE
        case NoChangeOutcome():
            return OutcomeKind.NO_CHANGE
        case FailedOutcome():
            return OutcomeKind.FAILED
        case _:
            assert_never(outcome)


def prior_label_of(outcome: Outcome) -> str | None:
    match outcome:
        case AddOutcome():
            return None
        case UpdateOutcome() | NoChangeOutcome() | FailedOutcome():
            return outcome.prior_label
        case _:
            assert_never(outcome)
