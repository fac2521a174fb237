"""Settings for one license synchronisation run."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_PROGRESS_INTERVAL = 10
LOG_FILE_TEMPLATE = "ado-sync-{timestamp:%Y%m%d-%H%M%S}.log"


def default_log_file(now: datetime | None = None) -> Path:
    return Path(LOG_FILE_TEMPLATE.format(timestamp=now or datetime.now()))  # noqa: DTZ005


@dataclass(frozen=True, slots=True)
class SyncSettings:
    csv_path: Path | None
    organization_url: str | None = None
    pat_token: str | None = None
    preview: bool = False
    log_file: Path | None = None
    report_path: Path | None = None
    tier_map_path: Path | None = None
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL

    def validate(self) -> list[str]:
        """Return human-readable problems; an empty list means the settings are usable."""

        errors: list[str] = []
        if self.csv_path is None or not str(self.csv_path).strip():
            errors.append("CSV file path is required")
        elif not self.csv_path.is_file():
            errors.append(f"CSV file not found: {self.csv_path}")

        if not self.organization_url or not self.organization_url.strip():
            errors.append("Organization URL is required")
        else:
            parsed = urlparse(self.organization_url.strip())
            if not parsed.scheme or not parsed.netloc:
                errors.append("Organization URL is not a valid URL")

        if not self.pat_token or not self.pat_token.strip():
            errors.append("PAT token is required")

        if self.tier_map_path is not None and not self.tier_map_path.is_file():
            errors.append(f"Tier map file not found: {self.tier_map_path}")

        if self.progress_interval < 1:
            errors.append("Progress interval must be positive")

        return errors
