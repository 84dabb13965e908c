"""Command modules for the agent-subnet CLI."""

import click

from .base import (
    CommandContext,
    async_command,
    build_overrides,
    command_context,
    exit_with_error,
    handle_errors,
)
from .cidr import cidr
from .config import init_config
from .render import order, render
from .terraform import apply, destroy

COMMANDS = [cidr, render, order, apply, destroy, init_config]


def register_commands(group: click.Group) -> None:
    """Attach every command to the CLI group."""
    for command in COMMANDS:
        group.add_command(command)


__all__ = [
    "COMMANDS",
    "CommandContext",
    "async_command",
    "build_overrides",
    "command_context",
    "exit_with_error",
    "handle_errors",
    "register_commands",
]
