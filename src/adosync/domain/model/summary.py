"""Immutable result of one reconciliation pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime, timedelta

    from .outcome import Outcome


@dataclass(frozen=True, slots=True, kw_only=True)
class PassSummary:
    """Counts, tier histogram and the ordered outcomes of a pass.

    ``tier_histogram`` is keyed by the *requested* label of each processed
    record, failed records included.
    """

    started_at: datetime
    finished_at: datetime
    preview: bool
    total_desired: int
    total_remote: int
    added: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0
    tier_histogram: Mapping[str, int] = field(default_factory=dict[str, int])
    outcomes: tuple[Outcome, ...] = ()
    cancelled: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "tier_histogram", MappingProxyType(dict(self.tier_histogram)))
        if self.finished_at < self.started_at:
            raise ValueError("Pass cannot finish before it started")
        counted = self.added + self.updated + self.unchanged + self.failed
        if counted != len(self.outcomes):
            raise ValueError(
                f"Outcome counts ({counted}) do not match recorded outcomes ({len(self.outcomes)})"
            )
        if sum(self.tier_histogram.values()) != len(self.outcomes):
            raise ValueError("Tier histogram does not cover every processed record")

    @property
    def total_processed(self) -> int:
        return len(self.outcomes)

    @property
    def duration(self) -> timedelta:
        return self.finished_at - self.started_at

    @property
    def has_failures(self) -> bool:
        return self.failed > 0
