"""Reconcile desired license records against a directory snapshot.

One pass walks the desired records in input order and classifies each one as
add, update, no-change or failed:

1) index the remote snapshot by identity key (built once, read-only)
2) missing users are created, raised to the lowest creatable tier
3) users whose tier already matches are left alone
4) everyone else gets a tier update; users licensed through an external
   subscription are flagged because the directory may ignore the change
5) every outcome is streamed to the reporting sink and folded into the summary

Preview passes classify exactly the same way but never call the writer.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from adosync.domain.licensing import LicenseMapper
from adosync.domain.model import (
    AddOutcome,
    FailedOutcome,
    NoChangeOutcome,
    OutcomeKind,
    UpdateOutcome,
)

from .aggregate import OutcomeAggregator

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from adosync.domain.model import DesiredRecord, Outcome, PassSummary, RemoteEntity
    from adosync.domain.ports import DirectoryWriter, ReportingSink

log = getLogger(__name__)

type Clock = Callable[[], datetime]
type CancelCheck = Callable[[], bool]

DEFAULT_PROGRESS_INTERVAL = 10

EXTERNAL_LICENSE_WARNING = (
    "User has an external license source (subscription); the update may not take effect"
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def build_remote_index(remote: Iterable[RemoteEntity]) -> Mapping[str, RemoteEntity]:
    """Index remote users by identity key; the first entity wins on duplicates."""

    index: dict[str, RemoteEntity] = {}
    for entity in remote:
        key = entity.identity_key
        if not key:
            continue
        existing = index.get(key)
        if existing is not None:
            log.warning(
                "Duplicate remote user %s (ids %s, %s); keeping %s",
                key,
                existing.remote_id,
                entity.remote_id,
                existing.remote_id,
            )
            continue
        index[key] = entity
    return MappingProxyType(index)


@dataclass(slots=True)
class ReconciliationEngine:
    """Classify desired records against the directory and apply the differences."""

    writer: DirectoryWriter
    mapper: LicenseMapper = field(default_factory=LicenseMapper)
    sink: ReportingSink | None = None
    clock: Clock = _utcnow
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL

    def reconcile(
        self,
        desired: Iterable[DesiredRecord],
        remote: Iterable[RemoteEntity],
        *,
        preview: bool,
        cancel: CancelCheck | None = None,
    ) -> PassSummary:
        """Run one pass and return its summary.

        ``cancel`` is polled before each record; a cancelled pass still returns
        (and reports) the outcomes gathered so far.
        """

        started_at = self.clock()
        snapshot = tuple(remote)
        index = build_remote_index(snapshot)
        records = [record for record in desired if record.identity_key]
        total = len(records)
        aggregator = OutcomeAggregator()
        cancelled = False

        log.info(
            "Processing %s users against %s directory users (%s)",
            total,
            len(snapshot),
            "preview" if preview else "live",
        )

        for position, record in enumerate(records, start=1):
            if cancel is not None and cancel():
                log.warning("Pass cancelled after %s of %s users", position - 1, total)
                cancelled = True
                break

            outcome = self._process(record, index, preview=preview)
            aggregator.add(outcome)
            if self.sink is not None:
                try:
                    self.sink.on_outcome(outcome)
                except Exception:
                    # outcome is already counted
                    log.exception("Reporting failed for user %s", record.identity_key)

            if position % self.progress_interval == 0:
                log.info(
                    "Progress: %s/%s users processed (%s%%)",
                    position,
                    total,
                    position * 100 // total,
                )

        summary = aggregator.snapshot(
            started_at=started_at,
            finished_at=self.clock(),
            preview=preview,
            total_desired=total,
            total_remote=len(snapshot),
            cancelled=cancelled,
        )
        log.info(
            "Processing complete. Processed %s users in %.1f seconds",
            summary.total_processed,
            summary.duration.total_seconds(),
        )
        if self.sink is not None:
            self.sink.on_summary(summary)
        return summary

    def _process(
        self,
        record: DesiredRecord,
        index: Mapping[str, RemoteEntity],
        *,
        preview: bool,
    ) -> Outcome:
        try:
            warnings: list[str] = []
            target_code = self.mapper.to_tier_code(record.tier_label)
            if not record.tier_label:
                warnings.append(
                    f"No access level given; treated as {self.mapper.to_label(target_code)}"
                )
            elif not self.mapper.is_known(record.tier_label):
                warnings.append(
                    f"Unknown access level {record.tier_label!r}; "
                    f"treated as {self.mapper.to_label(target_code)}"
                )

            remote = index.get(record.identity_key)
            if remote is None:
                return self._add(record, target_code, warnings, preview=preview)
            return self._update(record, remote, target_code, warnings, preview=preview)
        except Exception as exc:
            log.exception("Error processing user %s", record.identity_key)
            return FailedOutcome(
                identity_key=record.identity_key,
                display_name=record.display_name,
                requested_label=record.tier_label,
                status="Error occurred",
                error=str(exc) or type(exc).__name__,
            )

    def _add(
        self,
        record: DesiredRecord,
        target_code: int,
        warnings: list[str],
        *,
        preview: bool,
    ) -> Outcome:
        create_code = self.mapper.floor_for_new_entity(record.tier_label)
        substituted = create_code != target_code
        create_label = self.mapper.to_label(create_code)
        if substituted:
            warnings.append(
                f"Requested {record.tier_label or self.mapper.to_label(target_code)} cannot be "
                f"assigned to new users; adding as {create_label}"
            )

        if preview:
            status = (
                f"Will be added as {create_label} (lowest tier cannot be assigned on creation)"
                if substituted
                else "Will be added"
            )
            return AddOutcome(
                identity_key=record.identity_key,
                display_name=record.display_name,
                requested_label=record.tier_label,
                status=status,
                warnings=tuple(warnings),
            )

        created = self.writer.create_entity(record.identity_key, record.display_name, create_code)
        if not created:
            log.error("Failed to add user %s", record.identity_key)
            return FailedOutcome(
                identity_key=record.identity_key,
                display_name=record.display_name,
                requested_label=record.tier_label,
                status="Failed to add",
                error="Directory rejected the new user",
                attempted=OutcomeKind.ADD,
                warnings=tuple(warnings),
            )

        status = (
            f"Added as {create_label} (adjust to {record.tier_label} manually if needed)"
            if substituted
            else "Added successfully"
        )
        return AddOutcome(
            identity_key=record.identity_key,
            display_name=record.display_name,
            requested_label=record.tier_label,
            status=status,
            warnings=tuple(warnings),
        )

    def _update(
        self,
        record: DesiredRecord,
        remote: RemoteEntity,
        target_code: int,
        warnings: list[str],
        *,
        preview: bool,
    ) -> Outcome:
        prior_label = self.mapper.to_label(remote.tier_code)

        if self.mapper.are_equivalent(record.tier_label, remote.tier_code):
            return NoChangeOutcome(
                identity_key=record.identity_key,
                display_name=record.display_name,
                requested_label=record.tier_label,
                prior_label=prior_label,
                remote_id=remote.remote_id,
                warnings=tuple(warnings),
            )

        external = remote.is_externally_managed
        if external:
            warnings.append(EXTERNAL_LICENSE_WARNING)

        if preview:
            status = (
                "Will be updated (external license source - may not take effect)"
                if external
                else "Will be updated"
            )
            return UpdateOutcome(
                identity_key=record.identity_key,
                display_name=record.display_name,
                requested_label=record.tier_label,
                prior_label=prior_label,
                status=status,
                remote_id=remote.remote_id,
                warnings=tuple(warnings),
            )

        updated = self.writer.update_entity_tier(remote.remote_id, target_code)
        if not updated:
            log.error("Failed to update user %s", record.identity_key)
            return FailedOutcome(
                identity_key=record.identity_key,
                display_name=record.display_name,
                requested_label=record.tier_label,
                status="Failed to update",
                error="Directory rejected the license update",
                attempted=OutcomeKind.UPDATE,
                prior_label=prior_label,
                remote_id=remote.remote_id,
                warnings=tuple(warnings),
            )

        status = (
            "Updated successfully (external license source - verify in portal)"
            if external
            else "Updated successfully"
        )
        return UpdateOutcome(
            identity_key=record.identity_key,
            display_name=record.display_name,
            requested_label=record.tier_label,
            prior_label=prior_label,
            status=status,
            remote_id=remote.remote_id,
            warnings=tuple(warnings),
        )
