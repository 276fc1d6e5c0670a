from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from pveqemu.core import Action, CodecOptions, create_params, update_params
from pveqemu.errors import PveQemuError

from .common import exit_on_error, load_settings_or_exit, load_vm_config_or_exit


def register(app: typer.Typer) -> None:
    @app.command()
    def encode(
        spec: Annotated[Path, typer.Argument(help="VM definition (JSON)")],
        vmid: Annotated[int, typer.Option("--vmid", min=0, help="Target VM id")],
        action: Annotated[
            Action, typer.Option("--action", "-a", help="create or update")
        ] = Action.CREATE,
        as_json: Annotated[
            bool, typer.Option("--json", help="Print parameters as JSON")
        ] = False,
    ) -> None:
        """Render the flat API parameters for a VM definition."""
        settings = load_settings_or_exit()
        config = load_vm_config_or_exit(spec)
        options = CodecOptions(
            strict=settings.codec.strict,
            locally_administered_macs=settings.codec.locally_administered_macs,
        )

        try:
            if action is Action.CREATE:
                params = create_params(
                    config, vmid, options, cpu=settings.defaults.cpu
                )
            else:
                params = update_params(config, vmid, options)
        except PveQemuError as exc:
            raise exit_on_error(exc) from exc

        if as_json:
            typer.echo(json.dumps(params, indent=2))
            return

        table = Table(title=f"{action.value} parameters for VM {vmid}")
        table.add_column("Parameter", style="cyan")
        table.add_column("Value", style="green")
        for key, value in params.items():
            table.add_row(key, str(value))

        Console().print(table)
