from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import pytest

from adosync.config import (
    ConfigurationError,
    MissingConfigurationError,
    SyncSettings,
    configure_logging,
    default_log_file,
    load_license_table,
    organization_from_url,
    require_env_var,
    require_env_vars,
)
from adosync.config.azure_devops import basic_auth_header
from adosync.domain.licensing import LicenseMapper
from adosync.domain.model import Tier


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", " value ")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_A", raising=False)
    monkeypatch.setenv("MISSING_B", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_require_env_vars_prefers_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "from-env")

    result = require_env_vars(["EXAMPLE_VAR"], overrides={"EXAMPLE_VAR": "from-cli"})

    assert result["EXAMPLE_VAR"] == "from-cli"


def test_require_env_var_falls_back_to_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "123")

    assert require_env_var("EXAMPLE_VAR") == "123"


@pytest.mark.parametrize(
    ("url", "organization"),
    [
        ("https://dev.azure.com/contoso", "contoso"),
        ("https://dev.azure.com/contoso/", "contoso"),
        ("https://contoso.visualstudio.com", "contoso"),
    ],
)
def test_organization_from_url(url: str, organization: str) -> None:
    assert organization_from_url(url) == organization


def test_organization_from_url_rejects_relative_values() -> None:
    with pytest.raises(ConfigurationError):
        organization_from_url("contoso")


def test_basic_auth_header_uses_empty_user() -> None:
    # base64 of ":pat"
    assert basic_auth_header("pat") == "Basic OnBhdA=="


def _settings(tmp_path: Path, **overrides: object) -> SyncSettings:
    csv_path = tmp_path / "users.csv"
    csv_path.write_text("Username\n", encoding="utf-8")
    values: dict[str, object] = {
        "csv_path": csv_path,
        "organization_url": "https://dev.azure.com/contoso",
        "pat_token": "pat",
    }
    values.update(overrides)
    return SyncSettings(**values)  # type: ignore[arg-type]


def test_valid_settings_have_no_problems(tmp_path: Path) -> None:
    assert _settings(tmp_path).validate() == []


def test_settings_report_every_problem(tmp_path: Path) -> None:
    settings = _settings(
        tmp_path,
        csv_path=tmp_path / "missing.csv",
        organization_url="dev.azure.com/contoso",
        pat_token=" ",
        tier_map_path=tmp_path / "tiers.toml",
        progress_interval=0,
    )

    assert settings.validate() == [
        f"CSV file not found: {tmp_path / 'missing.csv'}",
        "Organization URL is not a valid URL",
        "PAT token is required",
        f"Tier map file not found: {tmp_path / 'tiers.toml'}",
        "Progress interval must be positive",
    ]


def test_settings_require_csv_and_organization(tmp_path: Path) -> None:
    problems = _settings(tmp_path, csv_path=None, organization_url=None).validate()

    assert problems == ["CSV file path is required", "Organization URL is required"]


def test_default_log_file_uses_timestamp() -> None:
    assert default_log_file(datetime(2024, 5, 1, 9, 3, 7)) == Path("ado-sync-20240501-090307.log")


def test_load_license_table_without_file_is_default() -> None:
    mapper = LicenseMapper(load_license_table())

    assert mapper.to_tier_code("Visual Studio Subscriber") == Tier.VISUAL_STUDIO_SUBSCRIBER


def test_load_license_table_merges_labels(tmp_path: Path) -> None:
    path = tmp_path / "tiers.toml"
    path.write_text('[labels]\n"Contractor" = 0\n"GitHub Enterprise" = 1\n', encoding="utf-8")

    mapper = LicenseMapper(load_license_table(path))

    assert mapper.to_tier_code("Contractor") == Tier.STAKEHOLDER
    assert mapper.to_tier_code("GitHub Enterprise") == Tier.BASIC


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ('[labels]\n"Early Adopter" = 4\n', "unknown tier code"),
        ('[labels]\n"Basic" = "one"\n', "must be an integer"),
        ('[labels]\n"Basic" = true\n', "must be an integer"),
        ('[labels]\n"Basic" = 0\n', "Canonical label"),
        ('labels = "Basic"\n', "must contain a \\[labels\\] table"),
        ("[labels\n", "Invalid tier map"),
    ],
)
def test_load_license_table_rejects_bad_files(tmp_path: Path, content: str, message: str) -> None:
    path = tmp_path / "tiers.toml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError, match=message):
        load_license_table(path)


def test_configure_logging_writes_log_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "run.log"

    handler = configure_logging(log_file=log_file)
    try:
        logging.getLogger("adosync.tests").info("hello from the test")
    finally:
        assert handler is not None
        logging.getLogger().removeHandler(handler)
        handler.close()

    content = log_file.read_text(encoding="utf-8")
    assert "Log file created" in content
    assert "INFO [adosync.tests] hello from the test" in content
