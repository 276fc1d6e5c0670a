from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

from pveqemu.core import CodecOptions, config_from_api
from pveqemu.errors import PveQemuError

from .common import exit_on_error, load_flat_config_or_exit, load_settings_or_exit


def register(app: typer.Typer) -> None:
    @app.command()
    def decode(
        remote: Annotated[
            Path, typer.Argument(help="Remote config map as returned by the API")
        ],
        strict: Annotated[
            bool | None,
            typer.Option(
                "--strict/--lenient",
                help="Reject or skip malformed device options (default from config)",
            ),
        ] = None,
    ) -> None:
        """Rebuild a VM definition from a flat remote config."""
        settings = load_settings_or_exit()
        data = load_flat_config_or_exit(remote)
        if strict is None:
            strict = settings.codec.strict

        try:
            config = config_from_api(data, CodecOptions(strict=strict))
        except PveQemuError as exc:
            raise exit_on_error(exc) from exc

        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))
