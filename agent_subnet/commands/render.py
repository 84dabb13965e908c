"""Configuration rendering commands.

- 'render': write main.tf.json for the configured test run
- 'order': show the creation and destruction order of a configuration
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import click
import structlog
from rich.table import Table

from ..exceptions import ConfigurationError
from ..iac import analyze, render_configuration
from .base import build_overrides, command_context, console, handle_errors
from .options import run_options

logger = structlog.get_logger(__name__)


def _load_rendered(path: Path) -> Dict[str, Any]:
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Cannot read Terraform configuration {path}: {e}", cause=e
        ) from e


@click.command("render")
@run_options
@click.option(
    "--strict",
    is_flag=True,
    help="Fail instead of skipping resources with unresolved references",
)
@click.pass_context
@handle_errors
def render(
    ctx: click.Context,
    test_run_id: Optional[int],
    vnet: Optional[str],
    resource_group: Optional[str],
    destroy_wait: Optional[str],
    output_dir: Optional[Path],
    strict: bool,
) -> None:
    """Render the Terraform configuration of a test run.

    Examples:
        agent-subnet render --test-run-id 42 --vnet ci-vnet --resource-group ci-rg
    """
    config = command_context(ctx).load_config(
        build_overrides(test_run_id, vnet, resource_group, destroy_wait, output_dir)
    )
    result = render_configuration(
        config, output_dir=config.terraform.working_dir, strict=strict
    )
    allocation = config.allocation()

    logger.info(
        "Rendered agent subnet",
        subnet=allocation.name,
        cidr=allocation.cidr,
        path=str(result.output_path),
    )
    console.print(
        f"[green]Wrote {result.output_path}[/green] "
        f"({allocation.name}, {allocation.cidr}, destroy wait {config.lifecycle.destroy_wait})"
    )
    for referrer, missing in result.report.unresolved_references.items():
        console.print(f"[yellow]{referrer} references undeclared {', '.join(sorted(missing))}[/yellow]")


@click.command("order")
@run_options
@click.option(
    "--file",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Analyze an already rendered main.tf.json instead of rendering",
)
@click.pass_context
@handle_errors
def order(
    ctx: click.Context,
    test_run_id: Optional[int],
    vnet: Optional[str],
    resource_group: Optional[str],
    destroy_wait: Optional[str],
    output_dir: Optional[Path],
    config_file: Optional[Path],
) -> None:
    """Show the order Terraform creates and destroys the blocks in.

    Examples:
        agent-subnet order --file ./agent-subnet-tf/main.tf.json
    """
    if config_file:
        report = analyze(_load_rendered(config_file))
    else:
        config = command_context(ctx).load_config(
            build_overrides(test_run_id, vnet, resource_group, destroy_wait, output_dir)
        )
        report = render_configuration(config).report

    for title, addresses, style in (
        ("Creation order", report.creation_order, "green"),
        ("Destruction order", report.destruction_order, "red"),
    ):
        table = Table(title=title, show_header=True)
        table.add_column("Step", style="dim", justify="right")
        table.add_column("Address", style=style, no_wrap=True)
        for index, address in enumerate(addresses, start=1):
            table.add_row(str(index), address)
        console.print(table)

    for referrer, missing in report.unresolved_references.items():
        console.print(f"[yellow]{referrer} references undeclared {', '.join(sorted(missing))}[/yellow]")
