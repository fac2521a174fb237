"""Loading organisation-specific access-level labels."""

from __future__ import annotations

import tomllib
from typing import TYPE_CHECKING

from adosync.domain.licensing import LicenseTable, default_license_table

from .errors import ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path


def load_license_table(path: Path | None = None) -> LicenseTable:
    """Return the default table, extended by the ``[labels]`` table of ``path``.

    Example file::

        [labels]
        "Contractor" = 0
        "Visual Studio Test Professional" = 2
    """

    table = default_license_table()
    if path is None:
        return table

    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read tier map {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid tier map {path}: {exc}") from exc

    labels = document.get("labels", {})
    if not isinstance(labels, dict):
        raise ConfigurationError(f"Tier map {path} must contain a [labels] table")

    extra: dict[str, int] = {}
    for label, code in labels.items():
        if not isinstance(code, int) or isinstance(code, bool):
            raise ConfigurationError(f"Tier code for {label!r} must be an integer, got {code!r}")
        extra[label] = code

    try:
        return table.extended(extra)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
