"""Configuration file command.

- 'init-config': write the commented default configuration file
"""

from pathlib import Path
from typing import Optional

import click

from ..config import ConfigLoader
from .base import console, handle_errors


@click.command("init-config")
@click.option(
    "--path",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the file (default: ~/.config/agent-subnet/config.yaml)",
)
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
@handle_errors
def init_config(ctx: click.Context, config_path: Optional[Path], force: bool) -> None:
    """Write a commented default configuration file."""
    target = config_path or (ctx.obj or {}).get("config_path")
    written = ConfigLoader(target, load_env_file=False).create_default_config(force=force)
    console.print(f"[green]Configuration written to {written}[/green]")
