"""Ports for mutating the remote directory."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class DirectoryWriter(Protocol):
    """Create/update capability of the directory.

    Both calls report success as a boolean. ``True`` only means the call was
    accepted: the directory may still ignore it (invalid principal names,
    tiers controlled by an external subscription).
    """

    def create_entity(self, identity_key: str, display_name: str, tier_code: int) -> bool: ...

    def update_entity_tier(self, remote_id: str, tier_code: int) -> bool: ...


__all__ = ["DirectoryWriter"]
