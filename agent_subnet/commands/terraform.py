"""Terraform lifecycle commands.

- 'apply': render the configuration and create the agent subnet
- 'destroy': render the configuration and tear the agent subnet down
"""

from pathlib import Path
from typing import Optional

import click
import structlog
from rich.table import Table

from ..config import AgentSubnetConfig
from ..iac import render_configuration
from ..terraform_runner import TerraformRunner, credentials_from_env
from .base import async_command, build_overrides, command_context, console, handle_errors
from .options import run_options

logger = structlog.get_logger(__name__)


async def _prepare_runner(config: AgentSubnetConfig) -> TerraformRunner:
    """Render the configuration and initialise its working directory."""
    working_dir = config.terraform.working_dir
    render_configuration(config, output_dir=working_dir, strict=True)

    runner = TerraformRunner(
        working_dir,
        credentials=credentials_from_env(),
        binary=config.terraform.binary,
        timeout=config.terraform.timeout_seconds,
    )
    runner.require_terraform()

    console.print(f"[cyan]Initialising Terraform in {working_dir}[/cyan]")
    runner.raise_for_status("init", await runner.init())
    return runner


@click.command("apply")
@run_options
@click.option("--yes", "-y", is_flag=True, help="Apply without confirmation")
@click.pass_context
@handle_errors
@async_command
async def apply(
    ctx: click.Context,
    test_run_id: Optional[int],
    vnet: Optional[str],
    resource_group: Optional[str],
    destroy_wait: Optional[str],
    output_dir: Optional[Path],
    yes: bool,
) -> None:
    """Create the agent subnet of a test run.

    Examples:
        agent-subnet apply --test-run-id 42 --yes
    """
    config = command_context(ctx).load_config(
        build_overrides(test_run_id, vnet, resource_group, destroy_wait, output_dir)
    )
    allocation = config.allocation()
    runner = await _prepare_runner(config)

    plan_output = runner.raise_for_status("plan", await runner.plan())
    console.print(plan_output)

    if not yes and not click.confirm(
        f"Create subnet {allocation.name} ({allocation.cidr})?", default=False
    ):
        console.print("[yellow]Apply cancelled[/yellow]")
        return

    runner.raise_for_status("apply", await runner.apply(auto_approve=True))
    logger.info("Agent subnet created", subnet=allocation.name, cidr=allocation.cidr)

    outputs = await runner.output()
    table = Table(title="Agent subnet", show_header=True)
    table.add_column("Output", style="cyan")
    table.add_column("Value", style="green")
    for name, value in sorted(outputs.items()):
        table.add_row(name, str(value))
    console.print(table)


@click.command("destroy")
@run_options
@click.option("--yes", "-y", is_flag=True, help="Destroy without confirmation")
@click.pass_context
@handle_errors
@async_command
async def destroy(
    ctx: click.Context,
    test_run_id: Optional[int],
    vnet: Optional[str],
    resource_group: Optional[str],
    destroy_wait: Optional[str],
    output_dir: Optional[Path],
    yes: bool,
) -> None:
    """Destroy the agent subnet of a test run.

    The destroy delay is removed first, so the command waits for the
    configured destroy wait before the subnet is deleted.

    Examples:
        agent-subnet destroy --test-run-id 42 --yes
    """
    config = command_context(ctx).load_config(
        build_overrides(test_run_id, vnet, resource_group, destroy_wait, output_dir)
    )
    allocation = config.allocation()
    runner = await _prepare_runner(config)

    # An unreadable state must not pass as an empty one
    resources = await runner.get_managed_resources(raise_on_error=True)
    if not resources:
        console.print("[yellow]No managed resources in state; nothing to destroy[/yellow]")
        return

    table = Table(title="Resources to be destroyed", show_header=True)
    table.add_column("Address", style="red")
    table.add_column("ID", style="dim")
    for resource in resources:
        table.add_row(resource["address"], str(resource["id"]))
    console.print(table)

    if not yes and not click.confirm(
        f"Destroy subnet {allocation.name}? This waits "
        f"{config.lifecycle.destroy_wait} before deleting it",
        default=False,
    ):
        console.print("[yellow]Destroy cancelled[/yellow]")
        return

    runner.raise_for_status("destroy", await runner.destroy(auto_approve=True))
    logger.info("Agent subnet destroyed", subnet=allocation.name)
    console.print(f"[green]Destroyed {allocation.name}[/green]")
