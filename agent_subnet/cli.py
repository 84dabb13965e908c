"""agent-subnet command line interface."""

from pathlib import Path
from typing import Optional

import click

from . import __version__
from .commands import register_commands
from .logging_config import LoggingConfig, setup_logging


@click.group()
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="AGENT_SUBNET_CONFIG_PATH",
    help="Configuration file (default: ~/.config/agent-subnet/config.yaml)",
)
@click.option("--json-logs", is_flag=True, help="Emit structured JSON logs")
@click.version_option(__version__, prog_name="agent-subnet")
@click.pass_context
def cli(ctx: click.Context, log_level: str, config_path: Optional[Path], json_logs: bool) -> None:
    """Ephemeral Azure agent subnets for CI test runs."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level.upper()
    ctx.obj["config_path"] = config_path
    ctx.obj["json_logs"] = json_logs

    setup_logging(LoggingConfig(level=log_level.upper(), json_output=json_logs))


register_commands(cli)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
