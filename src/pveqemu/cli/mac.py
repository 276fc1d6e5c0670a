from __future__ import annotations

from typing import Annotated

import typer

from pveqemu.core import generate_mac

from .common import load_settings_or_exit


def register(app: typer.Typer) -> None:
    @app.command()
    def mac(
        vmid: Annotated[int, typer.Argument(min=0, help="VM id")],
        index: Annotated[
            int, typer.Option("--index", "-i", min=0, help="NIC index")
        ] = 0,
        local: Annotated[
            bool | None,
            typer.Option(
                "--local/--raw",
                help="Force a unicast, locally administered first octet "
                "(default from config)",
            ),
        ] = None,
    ) -> None:
        """Print the MAC address generated for a NIC without one."""
        if local is None:
            local = load_settings_or_exit().codec.locally_administered_macs
        typer.echo(generate_mac(vmid, index, locally_administered=local))
