"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import DesiredRecordSource, DirectoryReader
from .reporting import ReportingSink
from .writing import DirectoryWriter

__all__ = [
    "DesiredRecordSource",
    "DirectoryReader",
    "DirectoryWriter",
    "ReportingSink",
]
