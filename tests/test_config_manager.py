"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from imagevault.config import (
    ConfigError,
    ConfigManager,
    ImageVaultConfig,
    flatten_for_env,
    parse_env_overrides,
    resolve_with_precedence,
)


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, **kwargs) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager(**kwargs)


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".imagevault" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "Image Vault configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, ImageVaultConfig)
    assert config.thumbnails.max_dimension == 300
    assert config.images.reject_duplicates is False


def test_precedence_file_then_env_then_cli(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env = {
        "IMAGEVAULT__THUMBNAILS__QUALITY": "60",
        "IMAGEVAULT__EXPORT__COMPRESSION": "deflated",
        "UNRELATED": "ignored",
    }
    manager = _fresh_manager(tmp_path, monkeypatch, env=env)
    manager.save({"thumbnails": {"quality": 90, "max_dimension": 200}, "cli": {"page_size": 10}})

    config = manager.load(cli_overrides={"thumbnails.quality": 40})

    assert config.thumbnails.max_dimension == 200
    assert config.cli.page_size == 10
    assert config.export.compression == "deflated"
    # CLI overrides take precedence over environment
    assert config.thumbnails.quality == 40

    without_env = manager.load(include_env=False)
    assert without_env.thumbnails.quality == 90
    assert without_env.export.compression == "stored"


def test_parse_env_overrides_builds_typed_nested_mapping() -> None:
    overrides = parse_env_overrides(
        {
            "IMAGEVAULT__IMAGES__REJECT_DUPLICATES": "true",
            "IMAGEVAULT__STORAGE__COLLECTIONS_DIR": "/data/photos",
            "OTHER__IMAGES__X": "1",
        }
    )

    assert overrides == {
        "images": {"reject_duplicates": True},
        "storage": {"collections_dir": "/data/photos"},
    }


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_unknown_keys_are_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch, env={})
    manager.save({"thumbnails": {"colour": "blue"}})

    with pytest.raises(ConfigError):
        manager.load()


def test_flatten_for_env_renders_defaults() -> None:
    flat = flatten_for_env(ImageVaultConfig())

    assert flat["IMAGEVAULT__THUMBNAILS__MAX_DIMENSION"] == "300"
    assert flat["IMAGEVAULT__IMAGES__REJECT_DUPLICATES"] == "false"
    assert flat["IMAGEVAULT__EXPORT__COMPRESSION"] == "stored"


@pytest.mark.parametrize(
    "overrides",
    [
        {"thumbnails": {"max_dimension": "not-an-int"}},
        {"thumbnails": {"quality": 0}},
        {"export": {"compression": "bzip2"}},
        {"cli": {"page_size": 5000}},
        {"cli": {"quiet_default": True}},
    ],
)
def test_resolve_with_precedence_invalid_value_raises(overrides: dict) -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=ImageVaultConfig(), file_overrides=overrides)


def test_collections_path_expands_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))

    config = resolve_with_precedence(
        defaults=ImageVaultConfig(), cli_overrides={"storage.collections_dir": "~/vault"}
    )

    assert config.storage.collections_path == tmp_path / "vault"
