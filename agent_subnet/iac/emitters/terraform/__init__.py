"""Terraform emitter package for agent subnet IaC generation.

This package provides handler-based Terraform configuration generation
from planned resources. Individual handlers are responsible for specific
resource types.

Main Components:
- TerraformEmitter: Main orchestrator for emission process
- EmitterContext: Shared state passed to all handlers
- ResourceHandler: Abstract base class for handlers
- HandlerRegistry: Registry for handler lookup by plan type

Usage:
    from agent_subnet.iac.emitters.terraform import TerraformEmitter

    emitter = TerraformEmitter(strict_mode=True)
    config = emitter.emit(resources)
    emitter.write(config, Path("/output"))
"""

from .base_handler import ResourceHandler
from .context import EmitterContext
from .emitter import TerraformEmitter
from .handlers import HandlerRegistry, ensure_handlers_registered, handler

__all__ = [
    "EmitterContext",
    "HandlerRegistry",
    "ResourceHandler",
    "TerraformEmitter",
    "ensure_handlers_registered",
    "handler",
]
