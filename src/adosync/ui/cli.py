# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from enum import IntEnum
from pathlib import Path
from signal import SIGINT, getsignal, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from adosync.adapters.azure_devops import AzureDevOpsAuthError, AzureDevOpsError
from adosync.adapters.csv_records import DesiredRecordSourceError
from adosync.adapters.reporting import ReportWriteError
from adosync.app import sync_licenses
from adosync.config import ConfigurationError, SyncSettings, configure_logging, default_log_file
from adosync.config.azure_devops import ORG_URL_ENV, PAT_ENV

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from adosync.domain.model import PassSummary

log = logging.getLogger(__name__)


class ExitCode(IntEnum):
    SUCCESS = 0
    PARTIAL_FAILURE = 1
    INVALID_INPUT = 2
    AUTH_FAILURE = 3
    IO_FAILURE = 4


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Synchronise Azure DevOps user access levels with a CSV export"
    )
    parser.add_argument(
        "-c",
        "--csv-file",
        type=Path,
        help="CSV file with Name, Username and Access Level columns",
    )
    parser.add_argument(
        "-o",
        "--org-url",
        type=str,
        default=os.environ.get(ORG_URL_ENV),
        help=f"Organization URL, e.g. https://dev.azure.com/contoso (env: {ORG_URL_ENV})",
    )
    parser.add_argument(
        "-p",
        "--pat",
        type=str,
        default=os.environ.get(PAT_ENV),
        help=f"Personal access token (env: {PAT_ENV})",
    )
    parser.add_argument(
        "-d",
        "--dry-run",
        "--preview",
        dest="preview",
        action="store_true",
        help="Show what would change without applying anything",
    )
    parser.add_argument(
        "-l",
        "--log-file",
        type=Path,
        help="Log file path (default: ado-sync-<timestamp>.log)",
    )
    parser.add_argument(
        "-r",
        "--report",
        type=Path,
        help="Write the pass summary as JSON to this path",
    )
    parser.add_argument(
        "--tier-map",
        type=Path,
        help="TOML file with extra access-level labels ([labels] table)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(list(argv))


def _settings_from_args(args: argparse.Namespace) -> SyncSettings:
    return SyncSettings(
        csv_path=args.csv_file,
        organization_url=args.org_url,
        pat_token=args.pat,
        preview=args.preview,
        log_file=args.log_file or default_log_file(),
        report_path=args.report,
        tier_map_path=args.tier_map,
    )


def exit_code_for(summary: PassSummary) -> ExitCode:
    if summary.has_failures or summary.cancelled:
        return ExitCode.PARTIAL_FAILURE
    return ExitCode.SUCCESS


def run(argv: Sequence[str], *, cancel_event: threading.Event | None = None) -> ExitCode:
    """Parse ``argv``, run one pass and return the process exit code."""

    args = _parse_args(argv)
    settings = _settings_from_args(args)
    level = logging.DEBUG if args.verbose else logging.INFO
    try:
        file_handler = configure_logging(level=level, log_file=settings.log_file)
    except OSError as exc:
        print(f"Error: cannot create log file {settings.log_file}: {exc}", file=sys.stderr)
        return ExitCode.IO_FAILURE

    try:
        return _run_pass(settings, cancel_event or threading.Event())
    finally:
        if file_handler is not None:
            logging.getLogger().removeHandler(file_handler)
            file_handler.close()


def _run_pass(settings: SyncSettings, cancel_event: threading.Event) -> ExitCode:
    problems = settings.validate()
    if problems:
        for problem in problems:
            log.error("Validation error: %s", problem)
        return ExitCode.INVALID_INPUT

    try:
        summary = sync_licenses(settings, cancel=cancel_event.is_set)
    except ConfigurationError as exc:
        log.error("Configuration error: %s", exc)  # noqa: TRY400
        return ExitCode.INVALID_INPUT
    except AzureDevOpsAuthError as exc:
        log.error("Authentication failed: %s. Check the PAT token.", exc)  # noqa: TRY400
        return ExitCode.AUTH_FAILURE
    except (AzureDevOpsError, DesiredRecordSourceError, ReportWriteError) as exc:
        log.error("I/O failure: %s", exc)  # noqa: TRY400
        return ExitCode.IO_FAILURE
    except Exception:
        log.exception("Fatal error during sync")
        return ExitCode.PARTIAL_FAILURE

    code = exit_code_for(summary)
    if code is ExitCode.SUCCESS:
        log.info("Sync completed successfully")
    else:
        log.warning("Sync completed with %s failed users", summary.failed)
    return code


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    cancel_event = threading.Event()

    def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
        """Stop after the current user on Ctrl+C; a second Ctrl+C aborts."""
        if cancel_event.is_set():
            raise KeyboardInterrupt
        log.warning("Cancellation requested (Ctrl+C); finishing the current user")
        cancel_event.set()

    previous = getsignal(SIGINT)
    signal(SIGINT, sigint_handler)
    try:
        code = run(sys.argv[1:] if argv is None else argv, cancel_event=cancel_event)
    finally:
        signal(SIGINT, previous)
    sys.exit(int(code))


if __name__ == "__main__":
    main()
