from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError

from pveqemu.config import Settings, get_settings, resolve_config_path
from pveqemu.errors import PveQemuError
from pveqemu.models import VmConfig


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def load_vm_config_or_exit(path: Path) -> VmConfig:
    try:
        return VmConfig.model_validate_json(path.read_text())
    except OSError as exc:
        typer.echo(f"Cannot read VM definition {path}: {exc}", err=True)
        raise typer.Exit(1) from exc
    except ValidationError as exc:
        typer.echo(f"Invalid VM definition: {path}\n{exc}", err=True)
        raise typer.Exit(1) from exc


def load_flat_config_or_exit(path: Path) -> dict[str, Any]:
    """Read a flat config map, either bare or wrapped in the API's ``data`` key."""
    try:
        data = json.loads(path.read_text())
    except OSError as exc:
        typer.echo(f"Cannot read remote config {path}: {exc}", err=True)
        raise typer.Exit(1) from exc
    except json.JSONDecodeError as exc:
        typer.echo(f"Invalid JSON in remote config: {path}\n{exc}", err=True)
        raise typer.Exit(1) from exc

    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    if not isinstance(data, dict):
        typer.echo(f"Remote config {path} is not a JSON object", err=True)
        raise typer.Exit(1)
    return data


def exit_on_error(exc: PveQemuError) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(1)
