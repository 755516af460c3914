"""Command line interface for Image Vault."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any, NoReturn, Optional

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from imagevault.collections import BatchResult, CollectionManager
from imagevault.config import ConfigError, ConfigManager, ImageVaultConfig, resolve_with_precedence
from imagevault.errors import ImageVaultError
from imagevault.export import ArchiveExporter
from imagevault.logging_setup import configure_logging
from imagevault.state.models import ImageQuery, ImageRecord
from imagevault.status import StatusTransitionEngine

console = Console()


class _Runtime:
    """Configuration and engine objects shared by a single command invocation."""

    def __init__(self, config: ImageVaultConfig, config_path: Path) -> None:
        self.config = config
        self.manager = CollectionManager.from_config(config)
        self.status = StatusTransitionEngine(self.manager)
        self.exporter = ArchiveExporter(self.manager, config.export)
        configure_logging(config.logging, config_path.parent / "logs")


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> NoReturn:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    raise click.ClickException(message) from original


def _fail(exc: Exception, json_output: bool) -> NoReturn:
    if isinstance(exc, ImageVaultError):
        _handle_cli_error(exc.message, code=exc.code, json_output=json_output, original=exc)
    _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)


def _runtime(ctx: click.Context, json_output: bool) -> _Runtime:
    """Resolve configuration for the current invocation and build the engine."""
    overrides: dict[str, Any] = {}
    collections_dir = ctx.obj.get("collections_dir") if ctx.obj else None
    if collections_dir:
        overrides["storage.collections_dir"] = collections_dir

    manager = ConfigManager()
    try:
        config = manager.load(cli_overrides=overrides or None)
    except ConfigError as exc:
        _fail(exc, json_output)
    return _Runtime(config, manager.config_path)


def _record_row(record: ImageRecord) -> list[str]:
    return [
        record.id,
        record.filename,
        record.status.value,
        f"{record.width}x{record.height}",
        str(record.size),
        record.updated.isoformat(),
    ]


def _images_table(records: list[ImageRecord], title: str) -> Table:
    table = Table(title=title)
    for column in ("ID", "File", "Status", "Size (px)", "Bytes", "Updated"):
        table.add_column(column)
    for record in records:
        table.add_row(*_record_row(record))
    return table


def _emit_batch(result: BatchResult, *, title: str, json_output: bool) -> None:
    if json_output:
        console.print_json(data=result.to_payload())
        return
    for item in result.items:
        if item.ok:
            console.print(f"[green]{item.image_id}: ok[/green]")
        else:
            console.print(f"[red]{item.image_id}: {item.error.message}[/red]")  # type: ignore[union-attr]
    colour = "green" if not result.failed else "yellow"
    console.print(f"[{colour}]{title}: {result.summary}.[/{colour}]")


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign ``value`` at a dotted path inside a nested mapping.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(f"Cannot assign into '{segment}'; it is not a mapping in the config file.")
        node = child
    node[path[-1]] = value


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="imagevault")
@click.option(
    "--collections-dir",
    type=click.Path(file_okay=False, path_type=str),
    help="Override storage.collections_dir for this invocation.",
)
@click.pass_context
def cli(ctx: click.Context, collections_dir: Optional[str]) -> None:
    """Image Vault manages photo collections stored on the local filesystem."""
    ctx.ensure_object(dict)
    ctx.obj["collections_dir"] = collections_dir


# Collections ----------------------------------------------------------


@cli.group()
def collections() -> None:
    """Create, list, and delete collections."""


@collections.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def collections_list(ctx: click.Context, json_output: bool) -> None:
    """List collection ids in lexicographic order."""
    runtime = _runtime(ctx, json_output)
    try:
        names = runtime.manager.list()
    except ImageVaultError as exc:
        _fail(exc, json_output)

    if json_output:
        console.print_json(data={"collections": names})
        return
    if not names:
        console.print("[yellow]No collections found.[/yellow]")
        return
    for name in names:
        console.print(name)


@collections.command("create")
@click.argument("collection_id")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def collections_create(ctx: click.Context, collection_id: str, json_output: bool) -> None:
    """Create an empty collection named COLLECTION_ID."""
    runtime = _runtime(ctx, json_output)
    try:
        collection = runtime.manager.create(collection_id)
    except ImageVaultError as exc:
        _fail(exc, json_output)

    if json_output:
        console.print_json(data={"collection": {"id": collection.id, "path": str(collection.path)}})
        return
    console.print(f"[green]Created collection {collection.id}.[/green]")


@collections.command("delete")
@click.argument("collection_id")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def collections_delete(ctx: click.Context, collection_id: str, yes: bool, json_output: bool) -> None:
    """Delete COLLECTION_ID together with all of its images."""
    if not yes and not json_output:
        click.confirm(f"Delete collection '{collection_id}' and all of its images?", abort=True)

    runtime = _runtime(ctx, json_output)
    try:
        runtime.manager.delete(collection_id)
    except ImageVaultError as exc:
        _fail(exc, json_output)

    if json_output:
        console.print_json(data={"deleted": collection_id})
        return
    console.print(f"[green]Deleted collection {collection_id}.[/green]")


# Images ---------------------------------------------------------------


@cli.group()
def images() -> None:
    """Add, inspect, and curate images within a collection."""


@images.command("add")
@click.argument("collection_id")
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def images_add(ctx: click.Context, collection_id: str, files: tuple[Path, ...], json_output: bool) -> None:
    """Add FILES to COLLECTION_ID with status INBOX."""
    runtime = _runtime(ctx, json_output)
    try:
        collection = runtime.manager.load(collection_id)
    except ImageVaultError as exc:
        _fail(exc, json_output)

    added: list[ImageRecord] = []
    errors: list[dict[str, str]] = []
    for path in files:
        try:
            added.append(collection.add_image(path.read_bytes(), path.name))
        except ImageVaultError as exc:
            errors.append({"file": str(path), "code": exc.code, "message": exc.message})
        except OSError as exc:
            errors.append({"file": str(path), "code": "io_error", "message": str(exc)})

    if json_output:
        console.print_json(
            data={
                "images": [record.model_dump(mode="json") for record in added],
                "errors": errors,
            }
        )
    else:
        for record in added:
            console.print(f"[green]Added {record.filename} as {record.id}[/green]")
        for error in errors:
            console.print(f"[red]{error['file']}: {error['message']}[/red]")
        console.print(f"Added {len(added)} of {len(files)} file(s) to {collection_id}.")

    if errors:
        raise SystemExit(1)


@images.command("list")
@click.argument("collection_id")
@click.option("--status", type=str, help="Only list images with this status.")
@click.option("--order-by", type=str, default="updated", show_default=True, help="created or updated.")
@click.option("--direction", type=str, default="DESC", show_default=True, help="ASC or DESC.")
@click.option("--limit", type=str, help="Maximum number of images (1-1000).")
@click.option("--offset", type=str, default="0", show_default=True, help="Images to skip.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def images_list(
    ctx: click.Context,
    collection_id: str,
    status: Optional[str],
    order_by: str,
    direction: str,
    limit: Optional[str],
    offset: str,
    json_output: bool,
) -> None:
    """List images in COLLECTION_ID."""
    runtime = _runtime(ctx, json_output)
    try:
        query = ImageQuery.from_params(
            {
                "status": status,
                "order_by": order_by,
                "order_direction": direction,
                "limit": limit if limit is not None else str(runtime.config.cli.page_size),
                "offset": offset,
            }
        )
        records = runtime.manager.list_images(collection_id, query)
    except ImageVaultError as exc:
        _fail(exc, json_output)

    if json_output:
        console.print_json(data={"images": [record.model_dump(mode="json") for record in records]})
        return
    if not records:
        console.print(f"[yellow]No images found in {collection_id}.[/yellow]")
        return
    console.print(_images_table(records, title=collection_id))


@images.command("status")
@click.argument("collection_id")
@click.argument("image_id")
@click.argument("new_status", metavar="STATUS")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def images_status(
    ctx: click.Context, collection_id: str, image_id: str, new_status: str, json_output: bool
) -> None:
    """Set the status of IMAGE_ID to STATUS (INBOX, COLLECTION, or ARCHIVE)."""
    runtime = _runtime(ctx, json_output)
    try:
        record = runtime.status.update_status(collection_id, image_id, new_status)
    except ImageVaultError as exc:
        _fail(exc, json_output)

    if json_output:
        console.print_json(data={"image": record.model_dump(mode="json")})
        return
    console.print(f"[green]{record.id} is now {record.status.value}.[/green]")


@images.command("batch-status")
@click.argument("collection_id")
@click.argument("new_status", metavar="STATUS")
@click.argument("image_ids", nargs=-1, required=True)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def images_batch_status(
    ctx: click.Context,
    collection_id: str,
    new_status: str,
    image_ids: tuple[str, ...],
    json_output: bool,
) -> None:
    """Set STATUS on every IMAGE_ID; failures are reported per image."""
    runtime = _runtime(ctx, json_output)
    try:
        result = runtime.status.batch_update_status(collection_id, image_ids, new_status)
    except ImageVaultError as exc:
        _fail(exc, json_output)
    _emit_batch(result, title="Status update", json_output=json_output)


@images.command("delete")
@click.argument("collection_id")
@click.argument("image_ids", nargs=-1, required=True)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def images_delete(
    ctx: click.Context, collection_id: str, image_ids: tuple[str, ...], json_output: bool
) -> None:
    """Delete IMAGE_IDS from COLLECTION_ID."""
    runtime = _runtime(ctx, json_output)
    try:
        result = runtime.manager.load(collection_id).delete_images(image_ids)
    except ImageVaultError as exc:
        _fail(exc, json_output)
    _emit_batch(result, title="Delete", json_output=json_output)


@images.command("download")
@click.argument("collection_id")
@click.argument("image_id")
@click.option(
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Directory to write the file into.",
)
@click.option("--thumbnail", is_flag=True, help="Download the thumbnail instead of the original.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def images_download(
    ctx: click.Context,
    collection_id: str,
    image_id: str,
    output_dir: Path,
    thumbnail: bool,
    json_output: bool,
) -> None:
    """Write the original (or thumbnail) of IMAGE_ID into a directory."""
    runtime = _runtime(ctx, json_output)
    try:
        collection = runtime.manager.load(collection_id)
        content = collection.open_thumbnail(image_id) if thumbnail else collection.download(image_id)
    except ImageVaultError as exc:
        _fail(exc, json_output)

    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / content.filename
    with content, target.open("wb") as handle:
        for chunk in content.iter_chunks():
            handle.write(chunk)

    if json_output:
        console.print_json(data={"path": str(target), "mime": content.mime, "size": content.size})
        return
    console.print(f"[green]Wrote {content.size} bytes to {target}.[/green]")


@images.command("verify")
@click.argument("collection_id")
@click.argument("image_id")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def images_verify(ctx: click.Context, collection_id: str, image_id: str, json_output: bool) -> None:
    """Check that the stored original of IMAGE_ID still matches its hash."""
    runtime = _runtime(ctx, json_output)
    try:
        intact = runtime.manager.load(collection_id).verify_image(image_id)
    except ImageVaultError as exc:
        _fail(exc, json_output)

    if json_output:
        console.print_json(data={"imageId": image_id, "intact": intact})
    elif intact:
        console.print(f"[green]{image_id} matches its recorded hash.[/green]")
    else:
        console.print(f"[red]{image_id} does not match its recorded hash.[/red]")
    if not intact:
        raise SystemExit(1)


# Export ---------------------------------------------------------------


@cli.command("export")
@click.argument("collection_id")
@click.argument("image_ids", nargs=-1)
@click.option("--name", "archive_name", required=True, help="Archive name, with or without .zip.")
@click.option(
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Directory to write the archive into.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def export(
    ctx: click.Context,
    collection_id: str,
    image_ids: tuple[str, ...],
    archive_name: str,
    output_dir: Path,
    json_output: bool,
) -> None:
    """Write IMAGE_IDS from COLLECTION_ID into a ZIP archive."""
    runtime = _runtime(ctx, json_output)
    try:
        archive = runtime.exporter.export_images(collection_id, image_ids, archive_name)
    except ImageVaultError as exc:
        _fail(exc, json_output)

    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / archive.filename
    with archive, target.open("wb") as handle:
        archive.write_to(handle)

    if json_output:
        console.print_json(
            data={
                "path": str(target),
                "filename": archive.filename,
                "contentType": archive.content_type,
                "size": archive.size,
                "entries": archive.entry_names,
            }
        )
        return
    console.print(
        f"[green]Wrote {len(archive.entries)} image(s) to {target} ({archive.size} bytes).[/green]"
    )


# Configuration --------------------------------------------------------


@cli.group()
def config() -> None:
    """Manage Image Vault configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        resolved = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(resolved.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a YAML VALUE at the dotted configuration KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must be a dotted path such as 'thumbnails.quality'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    before = manager.read_text().splitlines()
    try:
        file_data = manager.load_file_overrides()
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=ImageVaultConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    # The "Last updated" stamp always differs; only report real value changes.
    diff = [
        line
        for line in difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
        if "# Last updated" not in line
    ]
    if any(line.startswith(("+", "-")) and not line.startswith(("+++", "---")) for line in diff):
        console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
        console.print(f"[green]Updated {'.'.join(segments)}.[/green]")
    else:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")


__all__ = ["cli"]
