"""Port for streaming pass results to the user."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from adosync.domain.model import Outcome, PassSummary


@runtime_checkable
class ReportingSink(Protocol):
    def on_outcome(self, outcome: Outcome) -> None:
        """Called once per processed record, in processing order."""
        ...

    def on_summary(self, summary: PassSummary) -> None:
        """Called once when the pass ends."""
        ...


__all__ = ["ReportingSink"]
