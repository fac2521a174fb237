"""Reusable fakes for the directory and reporting ports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from adosync.domain.model import DesiredRecord, RemoteEntity

if TYPE_CHECKING:
    from collections.abc import Iterable

    from adosync.domain.model import Outcome, PassSummary


def make_record(
    identity_key: str,
    tier_label: str = "Basic",
    *,
    display_name: str = "",
) -> DesiredRecord:
    return DesiredRecord(
        identity_key=identity_key,
        display_name=display_name or identity_key.split("@")[0].title(),
        tier_label=tier_label,
    )


def make_entity(
    identity_key: str,
    tier_code: int,
    *,
    remote_id: str | None = None,
    licensing_source: str = "account",
) -> RemoteEntity:
    return RemoteEntity(
        remote_id=remote_id or f"id-{identity_key.split('@')[0]}",
        identity_key=identity_key,
        tier_code=tier_code,
        licensing_source=licensing_source,
    )


@dataclass(slots=True)
class FakeDirectory:
    """In-memory directory that records every mutating call."""

    entities: list[RemoteEntity] = field(default_factory=list[RemoteEntity])
    reject_create: set[str] = field(default_factory=set[str])
    reject_update: set[str] = field(default_factory=set[str])
    explode_on: set[str] = field(default_factory=set[str])
    created: list[tuple[str, str, int]] = field(default_factory=list[tuple[str, str, int]])
    updated: list[tuple[str, int]] = field(default_factory=list[tuple[str, int]])
    fetch_calls: int = 0

    def fetch_all(self) -> list[RemoteEntity]:
        self.fetch_calls += 1
        return list(self.entities)

    def create_entity(self, identity_key: str, display_name: str, tier_code: int) -> bool:
        if identity_key in self.explode_on:
            raise RuntimeError(f"connection reset while adding {identity_key}")
        self.created.append((identity_key, display_name, tier_code))
        return identity_key not in self.reject_create

    def update_entity_tier(self, remote_id: str, tier_code: int) -> bool:
        if remote_id in self.explode_on:
            raise RuntimeError(f"connection reset while updating {remote_id}")
        self.updated.append((remote_id, tier_code))
        return remote_id not in self.reject_update

    @property
    def mutations(self) -> int:
        return len(self.created) + len(self.updated)


@dataclass(slots=True)
class RecordingSink:
    outcomes: list[Outcome] = field(default_factory=list["Outcome"])
    summaries: list[PassSummary] = field(default_factory=list["PassSummary"])

    def on_outcome(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)

    def on_summary(self, summary: PassSummary) -> None:
        self.summaries.append(summary)


class FixedClock:
    """Clock that advances by ``step`` on every call."""

    def __init__(
        self,
        start: datetime | None = None,
        *,
        step: timedelta = timedelta(seconds=1),
    ) -> None:
        self.current = start or datetime(2024, 5, 1, 9, 0, tzinfo=UTC)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


def static_source(records: Iterable[DesiredRecord]) -> StaticSource:
    return StaticSource(list(records))


@dataclass(slots=True)
class StaticSource:
    records: list[DesiredRecord]
    calls: int = 0

    def __call__(self) -> list[DesiredRecord]:
        self.calls += 1
        return list(self.records)
