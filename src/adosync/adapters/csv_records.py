"""CSV supplier of desired records.

Expects the access-level export format (``Name``, ``Username``, ``Access
Level``, ``Last Access``, ``Date Created``, ``License Status``, ``License
Source``). Headers are matched case-insensitively; only ``Username`` is
required.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from adosync.domain.model import DesiredRecord, normalize_identity
from adosync.domain.ports import DesiredRecordSource

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

log = getLogger(__name__)

COLUMNS: dict[str, str] = {
    "name": "display_name",
    "username": "identity_key",
    "access level": "tier_label",
    "last access": "last_access",
    "date created": "date_created",
    "license status": "status",
    "license source": "source",
}
REQUIRED_COLUMNS = ("username",)


class DesiredRecordSourceError(RuntimeError):
    """Raised when the desired-state file cannot be read at all."""


@dataclass(slots=True)
class CsvStatistics:
    rows_read: int = 0
    rows_skipped_blank_identity: int = 0
    rows_skipped_malformed: int = 0


def _normalize_header(header: str | None) -> str:
    token = (header or "").strip().lstrip("\ufeff").strip()
    return " ".join(token.lower().split())


def _column_map(headers: Sequence[str] | None) -> dict[str, str]:
    if not headers:
        raise DesiredRecordSourceError("CSV file has no header row")
    mapping: dict[str, str] = {}
    for header in headers:
        field_name = COLUMNS.get(_normalize_header(header))
        if field_name is not None and field_name not in mapping.values():
            mapping[header] = field_name
    present = {_normalize_header(header) for header in mapping}
    missing = [column for column in REQUIRED_COLUMNS if column not in present]
    if missing:
        missing_list = ", ".join(missing)
        raise DesiredRecordSourceError(f"CSV header is missing required columns: {missing_list}")
    return mapping


def _to_record(row: Mapping[str, str | None], columns: Mapping[str, str]) -> DesiredRecord:
    values = {field_name: (row.get(header) or "").strip() for header, field_name in columns.items()}
    return DesiredRecord(**values)


@dataclass(slots=True)
class CsvDesiredRecordSource:
    """Read desired records from ``path`` in file order."""

    path: Path
    encoding: str = "utf-8-sig"
    statistics: CsvStatistics = field(default_factory=CsvStatistics)

    def __call__(self) -> list[DesiredRecord]:
        self.statistics = CsvStatistics()
        if not self.path.is_file():
            raise DesiredRecordSourceError(f"CSV file not found: {self.path}")
        try:
            with self.path.open(newline="", encoding=self.encoding) as handle:
                records = list(self._iter_records(csv.DictReader(handle)))
        except (OSError, UnicodeDecodeError) as exc:
            raise DesiredRecordSourceError(f"Cannot read CSV file {self.path}: {exc}") from exc

        log.info(
            "Read %s users from %s (%s without username, %s malformed rows skipped)",
            len(records),
            self.path,
            self.statistics.rows_skipped_blank_identity,
            self.statistics.rows_skipped_malformed,
        )
        return records

    def _iter_records(self, reader: csv.DictReader[str]) -> Iterator[DesiredRecord]:
        columns = _column_map(reader.fieldnames)
        while True:
            try:
                row = next(reader)
            except StopIteration:
                return
            except csv.Error as exc:
                self.statistics.rows_skipped_malformed += 1
                log.debug("Skipping malformed CSV line %s: %s", reader.line_num, exc)
                continue

            self.statistics.rows_read += 1
            if not normalize_identity(row.get(_username_header(columns))):
                self.statistics.rows_skipped_blank_identity += 1
                continue
            yield _to_record(row, columns)


def _username_header(columns: Mapping[str, str]) -> str:
    return next(header for header, field_name in columns.items() if field_name == "identity_key")


def read_desired_records(path: Path | str) -> list[DesiredRecord]:
    return CsvDesiredRecordSource(Path(path))()


if TYPE_CHECKING:
    _source_check: DesiredRecordSource = CsvDesiredRecordSource(Path("users.csv"))
