# src/chkjam/cli.py
"""chkjam Command Line Interface.

Operator tooling for checkpoint directories: inspect single records, dry-run
recovery to see which slot would be resumed, and export kernel state.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError

from chkjam import __version__
from chkjam.contracts import (
    BothCheckpointsFailedError,
    CheckpointDecodeError,
    CheckpointError,
)
from chkjam.core.checkpoint import (
    CheckpointCompatibilityValidator,
    ExportedState,
    JammedCheckpoint,
    RecoveryManager,
    atomic_write_bytes,
    decode_checkpoint,
    decode_export,
    export_state,
    peek_record_kind,
    select_checkpoint,
)
from chkjam.core.config import ChkjamSettings, load_settings
from chkjam.core.state_codec import ColdCacheFactory, JsonStateCodec, ValueArena

__all__ = ["app"]

app = typer.Typer(
    name="chkjam",
    help="chkjam: Crash-safe dual-buffer checkpoints.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"chkjam version {__version__}")
        raise typer.Exit()


def _fail(message: str) -> typer.Exit:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    return typer.Exit(1)


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

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
            raise _fail(f".env file not found: {env_file}")
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


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
    settings_file: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        envvar="CHKJAM_SETTINGS",
        help="Path to YAML settings file.",
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
    """chkjam: Crash-safe dual-buffer checkpoints."""
    from chkjam.core.logging import configure_logging

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )

    if settings_file is not None:
        try:
            settings = load_settings(settings_file)
        except FileNotFoundError as e:
            raise _fail(str(e)) from e
        except ValidationError as e:
            raise _fail(f"Invalid settings in {settings_file}:\n{e}") from e
    else:
        settings = ChkjamSettings()

    level = "DEBUG" if verbose else settings.logging.level
    configure_logging(json_output=json_logs or settings.logging.json_output, level=level)

    ctx.obj = settings


def _settings(ctx: typer.Context) -> ChkjamSettings:
    settings: ChkjamSettings = ctx.obj
    return settings


def _recovery_manager(settings: ChkjamSettings, directory: Path | None) -> RecoveryManager:
    persistence = settings.persistence
    if directory is not None:
        persistence = persistence.model_copy(update={"data_dir": directory})
    return RecoveryManager(
        persistence.jam_paths(),
        JsonStateCodec(),
        ColdCacheFactory(),
        expected_version=persistence.expected_version,
    )


def _describe_record(record: JammedCheckpoint | ExportedState) -> dict[str, Any]:
    info: dict[str, Any] = {
        "kind": "checkpoint" if isinstance(record, JammedCheckpoint) else "export",
        "version": record.version,
        "kernel_hash": record.kernel_hash.hex(),
        "event_number": record.event_number,
        "payload_bytes": len(record.payload),
    }
    if isinstance(record, JammedCheckpoint):
        info["buffer_index"] = record.buffer_index
        info["checksum"] = record.checksum.hex()
        info["checksum_valid"] = record.validate()
    return info


def _echo_info(info: dict[str, Any], as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(info, sort_keys=True))
        return
    for key, value in info.items():
        typer.echo(f"{key}: {value}")


@app.command()
def inspect(
    path: Path = typer.Argument(..., help="Checkpoint slot file or export file."),
    as_json: bool = typer.Option(False, "--json", help="Print fields as JSON."),
) -> None:
    """Decode a single record and print its header fields.

    Exits 1 if the record is malformed or its checksum is invalid.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise _fail(f"Cannot read {path}: {e}") from e

    kind = peek_record_kind(data)
    if kind is None:
        raise _fail(f"{path} is not a checkpoint or export record")

    record: JammedCheckpoint | ExportedState
    try:
        record = decode_checkpoint(data, source=path) if kind == "checkpoint" else decode_export(data, source=path)
    except CheckpointDecodeError as e:
        raise _fail(str(e)) from e

    info = _describe_record(record)
    _echo_info(info, as_json)
    if info.get("checksum_valid") is False:
        raise typer.Exit(1)


@app.command()
def recover(
    ctx: typer.Context,
    directory: Path | None = typer.Option(None, "--dir", "-d", help="Checkpoint directory (defaults to settings)."),
    kernel_hash: str | None = typer.Option(None, "--kernel-hash", help="Hex hash of the running kernel to check compatibility against."),
    materialize: bool = typer.Option(False, "--materialize", help="Also decode the winning payload with the reference codec."),
) -> None:
    """Dry-run recovery: report each slot and which one would be resumed.

    Exits 1 if neither slot is usable, the payload cannot be materialized,
    or the checkpoint is incompatible with --kernel-hash.
    """
    settings = _settings(ctx)
    manager = _recovery_manager(settings, directory)

    outcomes: list[JammedCheckpoint | CheckpointError] = []
    for index in (0, 1):
        try:
            record = manager.decode_slot(index)
        except CheckpointError as e:
            typer.echo(f"slot {index}: FAILED {e}")
            outcomes.append(e)
        else:
            typer.echo(f"slot {index}: ok event={record.event_number} version={record.version}")
            outcomes.append(record)

    try:
        selection = select_checkpoint(outcomes[0], outcomes[1])
    except BothCheckpointsFailedError as e:
        raise _fail(str(e)) from e

    record = selection.record
    typer.echo(f"selected: slot {selection.slot} event={record.event_number}")
    typer.echo(f"next write: slot {1 - record.buffer_index}")

    if materialize:
        try:
            manager.load_checkpoint(ValueArena())
        except CheckpointError as e:
            raise _fail(str(e)) from e
        typer.echo("materialize: ok")

    if kernel_hash is not None:
        try:
            expected = bytes.fromhex(kernel_hash)
        except ValueError as e:
            raise _fail(f"--kernel-hash must be hex: {e}") from e
        check = CheckpointCompatibilityValidator().validate(record, expected, settings.persistence.expected_version)
        if not check.can_resume:
            raise _fail(check.reason or "checkpoint is not compatible")
        typer.echo("compatible: yes")


@app.command()
def export(
    ctx: typer.Context,
    output: Path = typer.Argument(..., help="File to write the export record to."),
    directory: Path | None = typer.Option(None, "--dir", "-d", help="Checkpoint directory (defaults to settings)."),
) -> None:
    """Recover the freshest checkpoint and write its kernel state as an export record."""
    settings = _settings(ctx)
    manager = _recovery_manager(settings, directory)
    codec = JsonStateCodec()

    try:
        checkpoint = manager.load_checkpoint(ValueArena())
    except CheckpointError as e:
        raise _fail(str(e)) from e

    data = export_state(
        codec,
        checkpoint.kernel_state,
        checkpoint.version,
        checkpoint.kernel_hash,
        checkpoint.event_number,
    )
    try:
        atomic_write_bytes(output, data, fsync=settings.persistence.fsync)
    except OSError as e:
        raise _fail(f"Cannot write {output}: {e}") from e
    typer.echo(f"exported event {checkpoint.event_number} ({len(data)} bytes) to {output}")


if __name__ == "__main__":
    app()
