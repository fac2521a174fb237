from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from tests.helpers.directory import FakeDirectory, FixedClock, RecordingSink

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

# keep a developer's real credentials out of the test run
os.environ.pop("AZURE_DEVOPS_ORG_URL", None)
os.environ.pop("AZURE_DEVOPS_PAT", None)

CSV_HEADER = "Name,Username,Access Level,Last Access,Date Created,License Status,License Source"


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Write ``rows`` below the standard export header and return the file path."""

    def _write(*rows: str, header: str = CSV_HEADER, name: str = "users.csv") -> Path:
        path = tmp_path / name
        path.write_text("\n".join((header, *rows)) + "\n", encoding="utf-8")
        return path

    return _write
