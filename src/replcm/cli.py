# src/replcm/cli.py
"""replcm Command Line Interface.

Entry point for the replcm CLI tool. Operators use it to recycle data by
hand, look up recycled files, run a one-off clearer pass, or host the
clearer loop as a standalone process.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from replcm import __version__
from replcm.contracts.errors import ReadError
from replcm.contracts.metastore import Database, Partition, Table
from replcm.contracts.results import RecycleResult, SweepResult
from replcm.core.config import ChangeManagerSettings, ReplcmSettings, load_env_settings, load_settings

if TYPE_CHECKING:
    from replcm.core.manager import RecycleManager

__all__ = [
    "app",
]

app = typer.Typer(
    name="replcm",
    help="replcm: Recycle dropped warehouse data for replication consumers.",
    no_args_is_help=True,
)

_DEFAULT_SETTINGS_PATH = Path("settings.yaml")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"replcm version {__version__}")
        raise typer.Exit()


def _load_cli_settings(settings_path: Path | None) -> ReplcmSettings:
    """Load settings from --settings, else ./settings.yaml, else environment and defaults."""
    if settings_path is None and _DEFAULT_SETTINGS_PATH.exists():
        settings_path = _DEFAULT_SETTINGS_PATH
    source = str(settings_path) if settings_path is not None else "environment"

    try:
        if settings_path is None:
            return load_env_settings()
        return load_settings(settings_path)
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings_path}", err=True)
        raise typer.Exit(1) from None
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"Error: Invalid YAML in {settings_path}: {e}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo(f"Error: Invalid settings in {source}:", err=True)
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            typer.echo(f"  - {location}: {error['msg']}", err=True)
        raise typer.Exit(1) from None


def _settings(ctx: typer.Context) -> ReplcmSettings:
    settings: ReplcmSettings = ctx.obj
    return settings


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from a .env file.

    REPLCM_* variables override settings.yaml, so a .env file is a convenient
    place for per-host overrides such as the cm root.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


def _build_manager(settings: ReplcmSettings) -> RecycleManager:
    from replcm.core.filesystem import LocalFilesystem
    from replcm.core.manager import RecycleManager

    return RecycleManager.from_settings(settings, LocalFilesystem())


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    settings_path: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML (default: ./settings.yaml if present).",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """replcm: Recycle dropped warehouse data for replication consumers."""
    from replcm.core.logging import configure_from_settings

    # .env must be loaded before settings so REPLCM_* overrides apply
    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )

    settings = _load_cli_settings(settings_path)
    configure_from_settings(settings.logging, verbose=verbose, json_output=json_logs)
    ctx.obj = settings


def _report(result: RecycleResult) -> None:
    """Print a recycle summary and exit non-zero on failure."""
    for source, destination in result.recycled:
        typer.echo(f"recycled {source} -> {destination}")
    for source in result.deduplicated:
        typer.echo(f"already recycled {source}")
    typer.echo(
        f"Recycled: {len(result.recycled)}, "
        f"deduplicated: {len(result.deduplicated)}, "
        f"missing: {len(result.missing)}, "
        f"failed: {len(result.failures)}"
    )
    if not result.ok:
        for path, reason in result.failures[:10]:
            typer.echo(f"  failed {path}: {reason}", err=True)
        if len(result.failures) > 10:
            typer.echo(f"  ... and {len(result.failures) - 10} more", err=True)
        raise typer.Exit(int(result))


def _require_enabled(settings: ReplcmSettings) -> None:
    if not settings.change_manager.enabled:
        typer.echo("Change manager is disabled (change_manager.enabled=false); nothing recycled.")
        raise typer.Exit(0)


@app.command()
def recycle(
    ctx: typer.Context,
    paths: list[Path] = typer.Argument(
        ...,
        help="Files or directories to recycle.",
    ),
) -> None:
    """Recycle files (directories are walked recursively) into the cm root."""
    settings = _settings(ctx)
    _require_enabled(settings)
    manager = _build_manager(settings)
    _report(manager.recycle_paths(p.expanduser() for p in paths))


@app.command("recycle-table")
def recycle_table(
    ctx: typer.Context,
    db: str = typer.Option(..., "--db", help="Database name."),
    table: str = typer.Option(..., "--table", "-t", help="Table name."),
    location: Path | None = typer.Option(
        None,
        "--location",
        help="Explicit table location (default: derived from the warehouse root).",
    ),
    db_location: Path | None = typer.Option(
        None,
        "--db-location",
        help="Explicit database location (default: derived from the warehouse root).",
    ),
) -> None:
    """Recycle every file of a table."""
    settings = _settings(ctx)
    _require_enabled(settings)
    manager = _build_manager(settings)
    result = manager.recycle_table(
        Database(name=db, location=db_location),
        Table(name=table, db_name=db, location=location),
    )
    _report(result)


@app.command("recycle-partition")
def recycle_partition(
    ctx: typer.Context,
    db: str = typer.Option(..., "--db", help="Database name."),
    table: str = typer.Option(..., "--table", "-t", help="Table name."),
    keys: list[str] = typer.Option(..., "--key", "-k", help="Partition key (repeat in table order)."),
    values: list[str] = typer.Option(..., "--value", help="Partition value (repeat in key order)."),
    location: Path | None = typer.Option(
        None,
        "--location",
        help="Explicit partition location (default: derived from table and values).",
    ),
    table_location: Path | None = typer.Option(
        None,
        "--table-location",
        help="Explicit table location (default: derived from the warehouse root).",
    ),
) -> None:
    """Recycle every file of one partition."""
    settings = _settings(ctx)
    _require_enabled(settings)
    if len(keys) != len(values):
        typer.echo(f"Error: got {len(keys)} --key option(s) but {len(values)} --value option(s).", err=True)
        raise typer.Exit(1)

    manager = _build_manager(settings)
    result = manager.recycle_partition(
        Database(name=db),
        Table(name=table, db_name=db, location=table_location, partition_keys=tuple(keys)),
        Partition(values=tuple(values), db_name=db, table_name=table, location=location),
    )
    _report(result)


@app.command("cm-path")
def cm_path_command(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="File whose recycle destination to compute."),
) -> None:
    """Print where a file would be recycled to, as a path and as an encoded URI."""
    from replcm.core.checksum import ChecksumCalculator
    from replcm.core.filesystem import LocalFilesystem
    from replcm.core.manager import cm_path, encode_file_uri

    settings = _settings(ctx)
    calculator = ChecksumCalculator(LocalFilesystem(), settings.change_manager.checksum_algorithm)
    try:
        checksum = calculator.checksum_or_none(path)
    except ReadError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    if checksum is None:
        typer.echo(f"Error: Not a file: {path}", err=True)
        raise typer.Exit(1)

    typer.echo(str(cm_path(settings.change_manager.cm_root, path, checksum)))
    typer.echo(encode_file_uri(path, checksum))


@app.command()
def locate(
    ctx: typer.Context,
    uri: str = typer.Argument(..., help="File reference as <path>#<checksum>."),
) -> None:
    """Resolve a recorded file reference to wherever its bytes live now."""
    from replcm.core.manager import decode_file_uri

    manager = _build_manager(_settings(ctx))
    path, checksum = decode_file_uri(uri)
    found = manager.locate(path, checksum)
    if found is None:
        typer.echo(f"Not found: {uri}", err=True)
        raise typer.Exit(1)
    typer.echo(str(found))


@app.command()
def clear(
    ctx: typer.Context,
    retain_seconds: float | None = typer.Option(
        None,
        "--retain-seconds",
        "-r",
        help="Delete entries older than this many seconds (default: from settings).",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be deleted without deleting.",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt.",
    ),
) -> None:
    """Run one clearer pass over the cm root.

    Examples:

        # See what would be deleted
        replcm clear --dry-run

        # Delete entries older than one hour
        replcm clear --retain-seconds 3600 --yes
    """
    from replcm.core.clearer import Clearer
    from replcm.core.filesystem import LocalFilesystem

    cm_settings = _settings(ctx).change_manager
    if retain_seconds is not None:
        try:
            cm_settings = ChangeManagerSettings.model_validate({**cm_settings.model_dump(), "retain_seconds": retain_seconds})
        except ValidationError:
            typer.echo(f"Error: --retain-seconds must be positive, got {retain_seconds}", err=True)
            raise typer.Exit(1) from None

    clearer = Clearer(LocalFilesystem(), cm_settings)
    expired = clearer.find_expired()
    if not expired:
        typer.echo(f"No entries older than {cm_settings.retain_seconds:g}s in {cm_settings.cm_root}.")
        if dry_run:
            return
        # Nothing to confirm, but empty directories left by earlier passes still go
        result = clearer.sweep()
        if result.deleted_dirs:
            typer.echo(f"  Removed directories: {len(result.deleted_dirs)}")
        _report_sweep_failures(result)
        return

    if dry_run:
        typer.echo(f"Would delete {len(expired)} entr{'y' if len(expired) == 1 else 'ies'}:")
        for path in expired[:10]:
            typer.echo(f"  {path}")
        if len(expired) > 10:
            typer.echo(f"  ... and {len(expired) - 10} more")
        return

    if not yes:
        confirm = typer.confirm(f"Delete {len(expired)} entries older than {cm_settings.retain_seconds:g}s?")
        if not confirm:
            typer.echo("Aborted.")
            raise typer.Exit(1)

    result = clearer.sweep()
    typer.echo(f"Clear completed in {result.duration_seconds:.2f}s:")
    typer.echo(f"  Deleted files: {len(result.deleted_files)}")
    typer.echo(f"  Removed directories: {len(result.deleted_dirs)}")
    typer.echo(f"  Retained: {result.retained_files}")
    _report_sweep_failures(result)


def _report_sweep_failures(result: SweepResult) -> None:
    if result.failures:
        typer.echo(f"  Failed: {len(result.failures)}")
        for failure in result.failures[:5]:
            typer.echo(f"    {failure}")
        raise typer.Exit(1)


@app.command("show-config")
def show_config(ctx: typer.Context) -> None:
    """Print the effective settings (file, environment and defaults) as YAML."""
    import yaml

    from replcm.core.config import resolve_config

    typer.echo(yaml.safe_dump(resolve_config(_settings(ctx)), sort_keys=False).rstrip())


@app.command()
def serve(ctx: typer.Context) -> None:
    """Run the clearer loop until interrupted."""
    from replcm.core.clearer import schedule_clearer, shutdown_clearer

    cm_settings = _settings(ctx).change_manager
    scheduler = schedule_clearer(cm_settings)
    if scheduler is None:
        typer.echo("Change manager is disabled (change_manager.enabled=false); clearer not started.")
        return

    typer.echo(
        f"Clearing {cm_settings.cm_root} every {cm_settings.clear_interval_seconds:g}s "
        f"(retain {cm_settings.retain_seconds:g}s). Press Ctrl+C to stop."
    )
    try:
        while scheduler.running:
            time.sleep(1.0)
    except KeyboardInterrupt:
        typer.echo("Stopping clearer...")
    finally:
        shutdown_clearer()


if __name__ == "__main__":
    app()
