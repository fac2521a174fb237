"""Ports for reading both sides of the comparison."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from adosync.domain.model import DesiredRecord, RemoteEntity


@runtime_checkable
class DirectoryReader(Protocol):
    """Returns the complete current set of remote users.

    Paging and retries are the implementation's concern. Transport and
    authentication failures are raised; a partial snapshot is never returned.
    """

    def fetch_all(self) -> Sequence[RemoteEntity]: ...


@runtime_checkable
class DesiredRecordSource(Protocol):
    """Yields desired records in file order; malformed rows are already skipped."""

    def __call__(self) -> Iterable[DesiredRecord]: ...


__all__ = ["DesiredRecordSource", "DirectoryReader"]
