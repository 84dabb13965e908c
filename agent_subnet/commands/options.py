"""Options shared by commands that render a test run."""

from pathlib import Path
from typing import Any, Callable

import click


def run_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options that override the loaded run configuration."""
    decorators = [
        click.option(
            "--test-run-id",
            type=click.IntRange(min=0),
            help="Test run identifier (overrides test_run_id)",
        ),
        click.option(
            "--vnet",
            help="Name of the existing virtual network",
        ),
        click.option(
            "--resource-group",
            help="Resource group of the virtual network",
        ),
        click.option(
            "--destroy-wait",
            help="Delay before the subnet is deleted, e.g. 60s or 2m",
        ),
        click.option(
            "--output-dir",
            type=click.Path(file_okay=False, path_type=Path),
            help="Terraform working directory (overrides terraform.working_dir)",
        ),
    ]
    for decorator in reversed(decorators):
        f = decorator(f)
    return f
