"""Reconciliation core: classify desired records against a directory snapshot."""

from __future__ import annotations

from .aggregate import OutcomeAggregator
from .engine import (
    CancelCheck,
    Clock,
    ReconciliationEngine,
    build_remote_index,
)

__all__ = [
    "CancelCheck",
    "Clock",
    "OutcomeAggregator",
    "ReconciliationEngine",
    "build_remote_index",
]
