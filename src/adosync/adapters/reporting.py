"""Reporting sinks: log lines while a pass runs, JSON file once it ends."""

from __future__ import annotations

import logging
from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING, assert_never

from pydantic import BaseModel, ConfigDict

from adosync.domain.model import (
    AddOutcome,
    FailedOutcome,
    NoChangeOutcome,
    OutcomeKind,
    UpdateOutcome,
    outcome_kind,
    prior_label_of,
)
from adosync.domain.ports import ReportingSink

if TYPE_CHECKING:
    from pathlib import Path

    from adosync.domain.model import Outcome, PassSummary

log = logging.getLogger(__name__)

SEPARATOR = "=" * 44
RULE = "-" * 44

TAGS: dict[OutcomeKind, str] = {
    OutcomeKind.ADD: "ADD",
    OutcomeKind.UPDATE: "UPDATE",
    OutcomeKind.NO_CHANGE: "NO CHANGE",
    OutcomeKind.FAILED: "FAILED",
}


class ReportWriteError(RuntimeError):
    """Raised when the JSON report cannot be written."""


def format_outcome(outcome: Outcome) -> str:
    tag = TAGS[outcome_kind(outcome)]
    message = f"[{tag}] User: {outcome.identity_key}"
    match outcome:
        case UpdateOutcome():
            message += f" | Old: {outcome.prior_label} | New: {outcome.requested_label}"
        case AddOutcome() | NoChangeOutcome() | FailedOutcome():
            message += f" | License: {outcome.requested_label}"
        case _:
            assert_never(outcome)
    message += f" | Status: {outcome.status}"
    if outcome.error:
        message += f" | Error: {outcome.error}"
    return message


def format_summary(summary: PassSummary) -> str:
    preview = summary.preview
    lines = [
        SEPARATOR,
        "Sync Summary Report",
        RULE,
        "Execution Details:",
        f"  Start Time: {summary.started_at:%Y-%m-%d %H:%M:%S}",
        f"  End Time: {summary.finished_at:%Y-%m-%d %H:%M:%S}",
        f"  Duration: {_format_duration(summary)}",
        f"  Mode: {'PREVIEW' if preview else 'LIVE'}",
        RULE,
        "User Statistics:",
        f"  Total Users in CSV: {summary.total_desired}",
        f"  Users in Azure DevOps: {summary.total_remote}",
        f"  Users Processed: {summary.total_processed}",
        RULE,
        "Operation Results:",
        f"  Users {'to Add' if preview else 'Added'}: {summary.added}",
        f"  Users {'to Update' if preview else 'Updated'}: {summary.updated}",
        f"  Users Unchanged: {summary.unchanged}",
        f"  Failed: {summary.failed}",
        RULE,
    ]
    if summary.tier_histogram:
        lines.append("License Type Breakdown:")
        ordered = sorted(summary.tier_histogram.items(), key=lambda item: (-item[1], item[0]))
        lines.extend(f"  {label or '(none)'}: {count} users" for label, count in ordered)
        lines.append(RULE)
    if summary.cancelled:
        lines.append("NOTE: The pass was cancelled; remaining users were not processed.")
    if preview:
        lines.append("NOTE: This was a PREVIEW. No changes were applied.")
        lines.append("Run again without --preview to apply changes.")
    lines.append(SEPARATOR)
    return "\n".join(lines)


def _format_duration(summary: PassSummary) -> str:
    seconds = int(summary.duration.total_seconds())
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class LoggingReportSink:
    """Writes one log line per outcome and the summary block at the end."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or logging.getLogger("adosync.report")

    def on_outcome(self, outcome: Outcome) -> None:
        match outcome:
            case FailedOutcome():
                level = logging.ERROR
            case AddOutcome() | UpdateOutcome() | NoChangeOutcome():
                level = logging.WARNING if outcome.warnings else logging.INFO
            case _:
                assert_never(outcome)
        self._log.log(level, format_outcome(outcome))
        for warning in outcome.warnings:
            self._log.warning("  %s: %s", outcome.identity_key, warning)

    def on_summary(self, summary: PassSummary) -> None:
        self._log.info(format_summary(summary))


class OutcomeReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    identity_key: str
    display_name: str
    requested_label: str
    prior_label: str | None
    status: str
    success: bool
    remote_id: str | None
    error: str | None
    warnings: list[str]

    @classmethod
    def from_outcome(cls, outcome: Outcome) -> OutcomeReport:
        return cls(
            kind=outcome_kind(outcome),
            identity_key=outcome.identity_key,
            display_name=outcome.display_name,
            requested_label=outcome.requested_label,
            prior_label=prior_label_of(outcome),
            status=outcome.status,
            success=outcome.success,
            remote_id=outcome.remote_id,
            error=outcome.error,
            warnings=list(outcome.warnings),
        )


class SummaryReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    started_at: datetime
    finished_at: datetime
    duration_seconds: float
    preview: bool
    cancelled: bool
    total_desired: int
    total_remote: int
    total_processed: int
    added: int
    updated: int
    unchanged: int
    failed: int
    tier_histogram: dict[str, int]
    outcomes: list[OutcomeReport]

    @classmethod
    def from_summary(cls, summary: PassSummary) -> SummaryReport:
        return cls(
            started_at=summary.started_at,
            finished_at=summary.finished_at,
            duration_seconds=summary.duration.total_seconds(),
            preview=summary.preview,
            cancelled=summary.cancelled,
            total_desired=summary.total_desired,
            total_remote=summary.total_remote,
            total_processed=summary.total_processed,
            added=summary.added,
            updated=summary.updated,
            unchanged=summary.unchanged,
            failed=summary.failed,
            tier_histogram=dict(summary.tier_histogram),
            outcomes=[OutcomeReport.from_outcome(outcome) for outcome in summary.outcomes],
        )


def write_json_report(summary: PassSummary, path: Path) -> Path:
    report = SummaryReport.from_summary(summary)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    except OSError as exc:
        raise ReportWriteError(f"Cannot write report {path}: {exc}") from exc
    log.info("Report written to %s", path.resolve())
    return path


class JsonReportSink:
    """Ignores individual outcomes and writes the whole pass to ``path`` at the end."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def on_outcome(self, outcome: Outcome) -> None:
        return None

    def on_summary(self, summary: PassSummary) -> None:
        write_json_report(summary, self.path)


class CompositeReportSink:
    """Forward every call to each sink in order."""

    def __init__(self, *sinks: ReportingSink) -> None:
        self.sinks = sinks

    def on_outcome(self, outcome: Outcome) -> None:
        for sink in self.sinks:
            sink.on_outcome(outcome)

    def on_summary(self, summary: PassSummary) -> None:
        for sink in self.sinks:
            sink.on_summary(summary)


if TYPE_CHECKING:
    _sink_check: ReportingSink = LoggingReportSink()
    _json_check: ReportingSink = JsonReportSink(Path("report.json"))
    _composite_check: ReportingSink = CompositeReportSink()
