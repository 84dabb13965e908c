"""Base command infrastructure and shared utilities.

This module provides common utilities used across command modules:
- CommandContext for shared command execution context
- async_command for running coroutine commands
- handle_errors for turning AgentSubnetError into a red message and exit 1
"""

import asyncio
import functools
import sys
from pathlib import Path
from typing import Any, Callable, Coroutine, Dict, Optional

import click
import structlog
from rich.console import Console
from rich.markup import escape

from ..config import AgentSubnetConfig, ConfigLoader
from ..exceptions import AgentSubnetError

console = Console()
error_console = Console(stderr=True)

logger = structlog.get_logger(__name__)


class CommandContext:
    """Shared context for command execution."""

    def __init__(
        self,
        ctx: click.Context,
        config_path: Optional[Path] = None,
        log_level: str = "INFO",
    ):
        self.click_ctx = ctx
        self.config_path = config_path
        self.log_level = log_level

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> AgentSubnetConfig:
        """Load the run configuration with CLI overrides on top."""
        loader = ConfigLoader(self.config_path)
        config = loader.load(overrides)
        logger.debug(
            "Loaded configuration",
            config_path=str(loader.config_path),
            test_run_id=config.test_run_id,
        )
        return config


def command_context(ctx: click.Context) -> CommandContext:
    """Create CommandContext from click context."""
    obj = ctx.obj or {}
    return CommandContext(
        ctx=ctx,
        config_path=obj.get("config_path"),
        log_level=obj.get("log_level", "INFO"),
    )


def build_overrides(
    test_run_id: Optional[int] = None,
    vnet: Optional[str] = None,
    resource_group: Optional[str] = None,
    destroy_wait: Optional[str] = None,
    output_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    """Translate CLI options into a nested configuration dictionary."""
    return {
        "test_run_id": test_run_id,
        "network": {
            "virtual_network_name": vnet,
            "resource_group_name": resource_group,
        },
        "lifecycle": {"destroy_wait": destroy_wait},
        "terraform": {"working_dir": output_dir},
    }


def exit_with_error(message: str, code: int = 1) -> None:
    """Exit with error message."""
    error_console.print(f"[red]Error: {escape(message)}[/red]")
    sys.exit(code)


def handle_errors(f: Callable[..., Any]) -> Callable[..., Any]:
    """Report AgentSubnetError as a red message and exit with status 1."""

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except AgentSubnetError as e:
            logger.debug("Command failed", **e.to_dict())
            message = e.message
            if e.recovery_suggestion:
                message += f"\n  Suggestion: {e.recovery_suggestion}"
            exit_with_error(message)

    return wrapper


def async_command(f: Callable[..., Coroutine[Any, Any, Any]]) -> Callable[..., Any]:
    """Decorator to make Click commands async-compatible.

    Handles both running inside and outside of existing event loops.
    """

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop and loop.is_running():
            # Already in an event loop (e.g., pytest-asyncio, Jupyter)
            import nest_asyncio

            nest_asyncio.apply()
            return loop.run_until_complete(loop.create_task(f(*args, **kwargs)))
        return asyncio.run(f(*args, **kwargs))

    return wrapper
