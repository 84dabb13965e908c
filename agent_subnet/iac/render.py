"""Render the Terraform configuration of one test run.

Runs the full pipeline: resource plan, handler-based emission, dependency
analysis and (optionally) writing main.tf.json.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..exceptions import EmissionError
from .dependency_graph import DependencyReport, analyze
from .emitters.terraform import TerraformEmitter
from .resource_plan import build_resource_plan

if TYPE_CHECKING:
    from ..config.models import AgentSubnetConfig

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Outcome of rendering a test run."""

    configuration: Dict[str, Any]
    report: DependencyReport
    statistics: Dict[str, Any] = field(default_factory=dict)
    output_path: Optional[Path] = None


def render_configuration(
    config: "AgentSubnetConfig",
    output_dir: Optional[Path] = None,
    strict: bool = False,
) -> RenderResult:
    """Render the Terraform configuration for a test run.

    Args:
        config: Validated run configuration
        output_dir: Directory to write the configuration to; None keeps it
            in memory only
        strict: Fail on skipped resources and unresolved references

    Returns:
        RenderResult with the configuration and its dependency report

    Raises:
        EmissionError: In strict mode, if the configuration is incomplete
        DependencyCycleError: If the emitted blocks depend on each other
    """
    emitter = TerraformEmitter.from_config(config, strict_mode=strict)
    configuration = emitter.emit(build_resource_plan(config))
    report = analyze(configuration)

    if strict and not report.is_valid:
        raise EmissionError(
            "Configuration has unresolved references",
            context={
                referrer: sorted(missing)
                for referrer, missing in report.unresolved_references.items()
            },
        )

    result = RenderResult(
        configuration=configuration,
        report=report,
        statistics=emitter.get_statistics(),
    )
    if output_dir is not None:
        result.output_path = emitter.write(
            configuration, Path(output_dir), config.terraform.output_filename
        )
    return result
