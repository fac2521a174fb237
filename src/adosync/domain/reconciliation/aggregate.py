"""Fold per-record outcomes into a ``PassSummary``.

The aggregator holds no business logic. Counts are keyed by outcome variant
and the histogram by requested label, so feeding outcomes one by one or all
at once yields the same summary.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, assert_never

from adosync.domain.model import (
    AddOutcome,
    FailedOutcome,
    NoChangeOutcome,
    Outcome,
    OutcomeKind,
    PassSummary,
    UpdateOutcome,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime


@dataclass(slots=True)
class OutcomeAggregator:
    counts: Counter[OutcomeKind] = field(default_factory=Counter[OutcomeKind])
    histogram: Counter[str] = field(default_factory=Counter[str])
    outcomes: list[Outcome] = field(default_factory=list["Outcome"])

    def add(self, outcome: Outcome) -> None:
        match outcome:
            case AddOutcome():
                self.counts[OutcomeKind.ADD] += 1
            case UpdateOutcome():
                self.counts[OutcomeKind.UPDATE] += 1
            case NoChangeOutcome():
                self.counts[OutcomeKind.NO_CHANGE] += 1
            case FailedOutcome():
                self.counts[OutcomeKind.FAILED] += 1
            case _:
                assert_never(outcome)
        self.histogram[outcome.requested_label] += 1
        self.outcomes.append(outcome)

    def extend(self, outcomes: Iterable[Outcome]) -> None:
        for outcome in outcomes:
            self.add(outcome)

    def snapshot(
        self,
        *,
        started_at: datetime,
        finished_at: datetime,
        preview: bool,
        total_desired: int,
        total_remote: int,
        cancelled: bool = False,
    ) -> PassSummary:
        return PassSummary(
            started_at=started_at,
            finished_at=max(finished_at, started_at),
            preview=preview,
            total_desired=total_desired,
            total_remote=total_remote,
            added=self.counts[OutcomeKind.ADD],
            updated=self.counts[OutcomeKind.UPDATE],
            unchanged=self.counts[OutcomeKind.NO_CHANGE],
            failed=self.counts[OutcomeKind.FAILED],
            tier_histogram=dict(self.histogram),
            outcomes=tuple(self.outcomes),
            cancelled=cancelled,
        )

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[Outcome]) -> OutcomeAggregator:
        aggregator = cls()
        aggregator.extend(outcomes)
        return aggregator
