"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from adosync.adapters.azure_devops import AzureDevOpsDirectory
from adosync.adapters.csv_records import CsvDesiredRecordSource
from adosync.adapters.reporting import CompositeReportSink, JsonReportSink, LoggingReportSink
from adosync.config import (
    ConfigurationError,
    get_azure_devops_config,
    load_license_table,
)
from adosync.domain.licensing import LicenseMapper
from adosync.domain.reconciliation import ReconciliationEngine

if TYPE_CHECKING:
    from adosync.config import SyncSettings
    from adosync.domain.licensing import LicenseTable
    from adosync.domain.model import PassSummary
    from adosync.domain.ports import (
        DesiredRecordSource,
        DirectoryReader,
        DirectoryWriter,
        ReportingSink,
    )
    from adosync.domain.reconciliation import CancelCheck


log = getLogger(__name__)


def build_report_sink(settings: SyncSettings) -> ReportingSink:
    if settings.report_path is None:
        return LoggingReportSink()
    return CompositeReportSink(LoggingReportSink(), JsonReportSink(settings.report_path))


def sync_licenses(
    settings: SyncSettings,
    *,
    reader: DirectoryReader | None = None,
    writer: DirectoryWriter | None = None,
    source: DesiredRecordSource | None = None,
    sink: ReportingSink | None = None,
    license_table: LicenseTable | None = None,
    cancel: CancelCheck | None = None,
) -> PassSummary:
    """Run one reconciliation pass using the configured adapters.

    Desired records are read before the directory is contacted, so an unreadable
    CSV never costs a remote call. Fetch failures propagate; per-user failures
    end up in the returned summary.
    """

    problems = settings.validate()
    if problems:
        raise ConfigurationError("; ".join(problems))

    table = license_table or load_license_table(settings.tier_map_path)
    if reader is None or writer is None:
        directory = AzureDevOpsDirectory(
            config=get_azure_devops_config(
                organization_url=settings.organization_url,
                pat_token=settings.pat_token,
            )
        )
        reader = reader or directory
        writer = writer or directory
    if source is None:
        if settings.csv_path is None:
            raise ConfigurationError("CSV file path is required")
        source = CsvDesiredRecordSource(settings.csv_path)

    log.info(
        "Starting license sync: csv=%s, organization=%s, mode=%s",
        settings.csv_path,
        settings.organization_url,
        "PREVIEW" if settings.preview else "LIVE",
    )
    if settings.preview:
        log.info("Running in PREVIEW mode - no changes will be made")

    desired = list(source())
    if not desired:
        log.warning("No users found in CSV file")

    remote = reader.fetch_all()

    engine = ReconciliationEngine(
        writer=writer,
        mapper=LicenseMapper(table),
        sink=sink or build_report_sink(settings),
        progress_interval=settings.progress_interval,
    )
    summary = engine.reconcile(desired, remote, preview=settings.preview, cancel=cancel)

    log.info(
        "Finished license sync: added=%s, updated=%s, unchanged=%s, failed=%s",
        summary.added,
        summary.updated,
        summary.unchanged,
        summary.failed,
    )
    return summary
