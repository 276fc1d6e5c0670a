from __future__ import annotations

from typing import Annotated

import typer

from pveqemu.utils.logging import setup_logging

from . import config as config_cmd
from .decode import register as register_decode
from .encode import register as register_encode
from .mac import register as register_mac

app = typer.Typer(
    help="pveqemu - Proxmox QEMU VM definition codec", no_args_is_help=True
)

app.add_typer(config_cmd.app, name="config")

register_encode(app)
register_decode(app)
register_mac(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
) -> None:
    """pveqemu CLI."""
    setup_logging()

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"pveqemu version {get_version('pveqemu')}")
        raise typer.Exit()
