"""CLI tests for collection, image, and export commands."""

from __future__ import annotations

import json
import os
import zipfile
from pathlib import Path
from typing import Any, Callable

import pytest
from click.testing import CliRunner, Result

from imagevault.cli import cli

ImageFactory = Callable[..., bytes]


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path)
    for key in list(env):
        if key.startswith("IMAGEVAULT__"):
            env[key] = None
    return env


class _Vault:
    """Invoke the CLI against an isolated home directory."""

    def __init__(self, tmp_path: Path) -> None:
        self.home = tmp_path
        self.runner = CliRunner()
        self.env = _env_with_home(tmp_path)

    def run(self, *args: str) -> Result:
        return self.runner.invoke(cli, list(args), env=self.env)

    def json(self, *args: str) -> dict[str, Any]:
        result = self.run(*args, "--json")
        assert result.exit_code == 0, result.output
        return json.loads(result.stdout)


@pytest.fixture
def vault(tmp_path: Path) -> _Vault:
    return _Vault(tmp_path)


@pytest.fixture
def photos(tmp_path: Path, make_image: ImageFactory) -> list[Path]:
    source = tmp_path / "incoming"
    source.mkdir()
    files = []
    for filename, fmt in (("beach.jpg", "JPEG"), ("sunset.png", "PNG")):
        path = source / filename
        path.write_bytes(make_image(fmt))
        files.append(path)
    return files


def test_cli_help_displays_commands() -> None:
    result = CliRunner().invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Image Vault manages photo collections" in result.output
    for command in ("collections", "images", "export", "config"):
        assert command in result.output


def test_collections_lifecycle(vault: _Vault) -> None:
    created = vault.json("collections", "create", "vacation-photos")
    assert created["collection"]["id"] == "vacation-photos"
    vault.json("collections", "create", "archive-2023")

    listing = vault.json("collections", "list")
    assert listing == {"collections": ["archive-2023", "vacation-photos"]}
    assert (vault.home / ".imagevault" / "collections" / "vacation-photos" / "collection.json").exists()

    deleted = vault.run("collections", "delete", "archive-2023", "--yes")
    assert deleted.exit_code == 0
    assert "Deleted collection archive-2023" in deleted.output
    assert vault.json("collections", "list") == {"collections": ["vacation-photos"]}


def test_collections_delete_prompts_for_confirmation(vault: _Vault) -> None:
    vault.json("collections", "create", "album")

    result = vault.runner.invoke(cli, ["collections", "delete", "album"], env=vault.env, input="n\n")

    assert result.exit_code != 0
    assert vault.json("collections", "list") == {"collections": ["album"]}


def test_errors_are_reported_as_json_payloads(vault: _Vault) -> None:
    result = vault.run("collections", "create", "a/b", "--json")

    assert result.exit_code == 1
    assert json.loads(result.stdout) == {
        "error": {"code": "invalid_identifier", "message": "Invalid collection ID format"}
    }

    vault.json("collections", "create", "album")
    duplicate = vault.run("collections", "create", "album", "--json")
    assert json.loads(duplicate.stdout)["error"]["code"] == "conflict"


def test_errors_without_json_use_click_exceptions(vault: _Vault) -> None:
    result = vault.run("images", "list", "missing")

    assert result.exit_code == 1
    assert "Collection not found" in result.output


def test_image_workflow(vault: _Vault, photos: list[Path], tmp_path: Path) -> None:
    vault.json("collections", "create", "vacation-photos")

    added = vault.json("images", "add", "vacation-photos", *(str(path) for path in photos))
    assert added["errors"] == []
    ids = {image["name"]: image["id"] for image in added["images"]}
    assert set(ids) == {"beach", "sunset"}
    assert all(image["status"] == "INBOX" for image in added["images"])

    status = vault.json("images", "status", "vacation-photos", ids["beach"], "COLLECTION")
    assert status["image"]["status"] == "COLLECTION"

    kept = vault.json("images", "list", "vacation-photos", "--status", "COLLECTION")
    assert [image["id"] for image in kept["images"]] == [ids["beach"]]

    ordered = vault.json(
        "images", "list", "vacation-photos", "--order-by", "created", "--direction", "ASC"
    )
    assert [image["name"] for image in ordered["images"]] == ["beach", "sunset"]

    batch = vault.json(
        "images", "batch-status", "vacation-photos", "ARCHIVE", ids["beach"], ids["sunset"], "not-an-id"
    )
    assert batch["summary"] == "2 of 3 succeeded"
    assert batch["results"][2]["error"]["code"] == "invalid_identifier"

    export_dir = tmp_path / "out"
    exported = vault.json(
        "export", "vacation-photos", ids["beach"], ids["sunset"], ids["beach"],
        "--name", "trip", "--output", str(export_dir),
    )
    assert exported["filename"] == "trip.zip"
    assert exported["contentType"] == "application/zip"
    archive_path = export_dir / "trip.zip"
    assert archive_path.stat().st_size == exported["size"]
    with zipfile.ZipFile(archive_path) as archive:
        assert sorted(archive.namelist()) == ["beach.jpg", "sunset.png"]
        assert archive.read("beach.jpg") == photos[0].read_bytes()

    download_dir = tmp_path / "downloads"
    downloaded = vault.json(
        "images", "download", "vacation-photos", ids["sunset"], "--output", str(download_dir)
    )
    assert Path(downloaded["path"]) == download_dir / "sunset.png"
    assert (download_dir / "sunset.png").read_bytes() == photos[1].read_bytes()

    thumb = vault.json(
        "images", "download", "vacation-photos", ids["sunset"], "--thumbnail", "--output", str(download_dir)
    )
    assert thumb["mime"] == "image/jpeg"
    assert (download_dir / "sunset.jpg").exists()

    assert vault.json("images", "verify", "vacation-photos", ids["beach"]) == {
        "imageId": ids["beach"],
        "intact": True,
    }

    removed = vault.json("images", "delete", "vacation-photos", ids["beach"])
    assert removed["summary"] == "1 of 1 succeeded"
    remaining = vault.json("images", "list", "vacation-photos")
    assert [image["id"] for image in remaining["images"]] == [ids["sunset"]]


def test_images_add_reports_rejected_files(vault: _Vault, tmp_path: Path) -> None:
    vault.json("collections", "create", "album")
    note = tmp_path / "notes.jpg"
    note.write_text("definitely not a photo", encoding="utf-8")

    result = vault.run("images", "add", "album", str(note), "--json")

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["images"] == []
    assert payload["errors"][0]["code"] == "unsupported_media_type"


def test_images_list_rejects_invalid_query(vault: _Vault) -> None:
    vault.json("collections", "create", "album")

    result = vault.run("images", "list", "album", "--limit", "0", "--json")

    assert result.exit_code == 1
    assert json.loads(result.stdout)["error"]["code"] == "invalid_query"


def test_verify_detects_tampering(vault: _Vault, photos: list[Path]) -> None:
    vault.json("collections", "create", "album")
    image = vault.json("images", "add", "album", str(photos[0]))["images"][0]
    original = (
        vault.home / ".imagevault" / "collections" / "album" / "images" / "original" / f"{image['id']}.jpg"
    )
    original.write_bytes(b"corrupted")

    result = vault.run("images", "verify", "album", image["id"])

    assert result.exit_code == 1
    assert "does not match" in result.output


def test_collections_dir_option_overrides_config(vault: _Vault, tmp_path: Path) -> None:
    custom = tmp_path / "elsewhere"

    result = vault.run("--collections-dir", str(custom), "collections", "create", "album")

    assert result.exit_code == 0
    assert (custom / "album" / "collection.json").exists()
    assert vault.json("collections", "list") == {"collections": []}
