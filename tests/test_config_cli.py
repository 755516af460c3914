"""CLI tests for configuration commands."""

import os
from pathlib import Path
from typing import Any

from click.testing import CliRunner

from imagevault.cli import cli
from imagevault.config import ConfigManager


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path)
    return env


def _config_path(tmp_path: Path) -> Path:
    return tmp_path / ".imagevault" / "config.yaml"


def test_config_view_creates_and_displays_config(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["config", "view"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "thumbnails:" in result.output
    assert _config_path(tmp_path).exists()


def test_config_set_updates_value_and_writes_diff(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["config", "set", "thumbnails.quality", "--value", "65"], env=env)

    assert result.exit_code == 0
    assert "65" in result.output
    assert "Updated thumbnails.quality" in result.output

    config = ConfigManager(config_path=_config_path(tmp_path), env={}).load()
    assert config.thumbnails.quality == 65

    again = runner.invoke(cli, ["config", "set", "thumbnails.quality", "--value", "65"], env=env)
    assert again.exit_code == 0
    assert "No changes applied" in again.output


def test_config_set_rejects_invalid_values(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["config", "set", "export.compression", "--value", "bzip2"], env=env)

    assert result.exit_code != 0
    assert "Invalid configuration values" in result.output

    config = ConfigManager(config_path=_config_path(tmp_path), env={}).load()
    assert config.export.compression == "stored"


def test_config_set_is_used_by_later_commands(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    target = tmp_path / "photos"

    runner.invoke(
        cli, ["config", "set", "storage.collections_dir", "--value", str(target)], env=env
    )
    result = runner.invoke(cli, ["collections", "create", "album"], env=env)

    assert result.exit_code == 0
    assert (target / "album").is_dir()
