"""Infrastructure-as-Code generation for agent subnets.

Converts a run configuration into a planned resource list, then into a
Terraform JSON configuration whose ordering can be inspected before apply.
"""

from .dependency_graph import (
    DependencyReport,
    analyze,
    build_dependency_graph,
    creation_order,
    destruction_order,
    find_unresolved_references,
)
from .emitters import TerraformEmitter
from .render import RenderResult, render_configuration
from .resource_plan import build_resource_plan

__all__ = [
    "DependencyReport",
    "RenderResult",
    "TerraformEmitter",
    "analyze",
    "build_dependency_graph",
    "build_resource_plan",
    "creation_order",
    "destruction_order",
    "find_unresolved_references",
    "render_configuration",
]
