"""TerraformEmitter - Main orchestrator for handler-based Terraform generation.

Architecture:
    Emitter (this file) -> HandlerRegistry -> Individual Handlers
                       |
                       v
                  EmitterContext (shared state)
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List

from ....exceptions import AgentSubnetError, EmissionError
from .context import EmitterContext
from .handlers import HandlerRegistry, ensure_handlers_registered

if TYPE_CHECKING:
    from ....config.models import AgentSubnetConfig

logger = logging.getLogger(__name__)


class TerraformEmitter:
    """Main orchestrator for Terraform configuration generation.

    Delegates resource conversion to registered handlers while managing
    overall configuration structure and output.

    Responsibilities:
    - Initialize context and the terraform/provider blocks
    - Iterate planned resources and dispatch to handlers
    - Call post_emit so handlers can add outputs
    - Generate and write the final configuration

    Usage:
        emitter = TerraformEmitter(strict_mode=True)
        config = emitter.emit(build_resource_plan(settings))
        emitter.write(config, output_dir)
    """

    def __init__(
        self,
        required_version: str = ">= 1.5.0",
        azurerm_version: str = "~> 3.80",
        time_version: str = "~> 0.9",
        strict_mode: bool = False,
    ):
        """Initialize emitter with provider constraints.

        Args:
            required_version: Terraform core version constraint
            azurerm_version: azurerm provider version constraint
            time_version: time provider version constraint
            strict_mode: If True, fail on handler errors and skipped resources
        """
        self.required_version = required_version
        self.azurerm_version = azurerm_version
        self.time_version = time_version
        self.context = EmitterContext(strict_mode=strict_mode)

        ensure_handlers_registered()

        self.stats: Dict[str, Any] = {
            "total_resources": 0,
            "emitted_resources": 0,
            "emitted_data_sources": 0,
            "skipped_resources": 0,
            "unsupported_types": set(),
            "handler_errors": [],
        }

    @classmethod
    def from_config(cls, config: "AgentSubnetConfig", strict_mode: bool = False) -> "TerraformEmitter":
        """Create an emitter using the provider constraints of a run config."""
        return cls(
            required_version=config.terraform.required_version,
            azurerm_version=config.terraform.azurerm_version,
            time_version=config.terraform.time_version,
            strict_mode=strict_mode,
        )

    def emit(self, resources: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Convert planned resources to Terraform configuration.

        Args:
            resources: Planned resource dictionaries

        Returns:
            Complete Terraform configuration dict
        """
        logger.info(f"Starting Terraform emission for {len(resources)} resources")
        self.stats["total_resources"] = len(resources)

        self.context.terraform_config = {
            "terraform": {
                "required_version": self.required_version,
                "required_providers": {
                    "azurerm": {
                        "source": "hashicorp/azurerm",
                        "version": self.azurerm_version,
                    },
                    "time": {
                        "source": "hashicorp/time",
                        "version": self.time_version,
                    },
                },
            },
            "provider": {
                "azurerm": {"features": {}},
            },
            "data": {},
            "resource": {},
            "output": {},
        }

        # Phase 1: Emit planned resources
        self._emit_resources(resources)

        # Phase 2: Call post_emit on all handlers
        self._post_emit_handlers()

        self._log_statistics()

        return self.context.terraform_config

    def _emit_resources(self, resources: List[Dict[str, Any]]) -> None:
        """Emit all resources using registered handlers."""
        for resource in resources:
            resource_type = resource.get("type", "unknown")
            handler = HandlerRegistry.get_handler(resource_type)

            if handler is None:
                self.stats["unsupported_types"].add(resource_type)
                self.stats["skipped_resources"] += 1
                logger.warning(f"No handler for type: {resource_type}")
                if self.context.strict_mode:
                    raise EmissionError(
                        "No handler registered for resource type",
                        resource_name=resource.get("name"),
                        resource_type=resource_type,
                    )
                continue

            try:
                result = handler.emit(resource, self.context)
            except Exception as e:
                self.stats["handler_errors"].append(
                    {
                        "resource": resource.get("name", "unknown"),
                        "type": resource_type,
                        "error": str(e),
                    }
                )
                logger.warning(
                    f"Handler error for {resource.get('name')} ({resource_type}): {e}"
                )
                if self.context.strict_mode:
                    if isinstance(e, AgentSubnetError):
                        raise
                    raise EmissionError(
                        f"Handler {type(handler).__name__} failed: {e}",
                        resource_name=resource.get("name"),
                        resource_type=resource_type,
                        cause=e,
                    ) from e
                continue

            if result is None:
                self.stats["skipped_resources"] += 1
                logger.debug(
                    f"Handler skipped resource: {resource.get('name')} ({resource_type})"
                )
                if self.context.strict_mode:
                    raise EmissionError(
                        "Resource was skipped by its handler",
                        resource_name=resource.get("name"),
                        resource_type=resource_type,
                    )
                continue

            terraform_type, terraform_name, config = result
            if handler.BLOCK_KIND == "data":
                self.context.add_data_source(terraform_type, terraform_name, config)
                self.stats["emitted_data_sources"] += 1
            else:
                self._add_resource(terraform_type, terraform_name, config)
                self.stats["emitted_resources"] += 1

    def _add_resource(
        self,
        terraform_type: str,
        terraform_name: str,
        config: Dict[str, Any],
    ) -> None:
        """Add a resource to terraform configuration."""
        resources = self.context.terraform_config.setdefault("resource", {})
        resources.setdefault(terraform_type, {})[terraform_name] = config

        # Track in context for reference validation
        self.context.add_resource(terraform_type, terraform_name)

    def _post_emit_handlers(self) -> None:
        """Call post_emit on all handlers."""
        for handler_class in HandlerRegistry.get_all_handlers():
            try:
                handler_class().post_emit(self.context)
            except Exception as e:
                logger.warning(f"Error in post_emit for {handler_class.__name__}: {e}")
                if self.context.strict_mode:
                    raise

    def _log_statistics(self) -> None:
        """Log emission statistics."""
        logger.info(
            f"Terraform emission complete: "
            f"{self.stats['emitted_resources']} resources, "
            f"{self.stats['emitted_data_sources']} data sources "
            f"from {self.stats['total_resources']} planned"
        )

        if self.stats["skipped_resources"] > 0:
            logger.info(
                f"Skipped {self.stats['skipped_resources']} resources "
                f"({len(self.stats['unsupported_types'])} unsupported types)"
            )

        if self.stats["handler_errors"]:
            logger.warning(
                f"Handler errors: {len(self.stats['handler_errors'])} "
                f"resources had errors"
            )

        if self.context.missing_references:
            logger.warning(
                f"Missing references: {len(self.context.missing_references)} "
                f"references could not be resolved"
            )

    def write(
        self,
        config: Dict[str, Any],
        output_dir: Path,
        filename: str = "main.tf.json",
    ) -> Path:
        """Write Terraform configuration to file.

        Args:
            config: Terraform configuration dict
            output_dir: Output directory path
            filename: Output filename (default: main.tf.json)

        Returns:
            Path to written file
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        output_file = output_dir / filename

        # Drop empty top-level blocks such as "data": {}
        pruned = {key: value for key, value in config.items() if value != {}}
        with open(output_file, "w") as f:
            json.dump(pruned, f, indent=2, sort_keys=False)
            f.write("\n")

        logger.info(f"Terraform configuration written to {output_file}")
        return output_file

    def get_supported_types(self) -> List[str]:
        """Get sorted list of supported plan types."""
        return HandlerRegistry.get_all_supported_types()

    def get_statistics(self) -> Dict[str, Any]:
        """Get emission statistics."""
        return {
            "total_resources": self.stats["total_resources"],
            "emitted_resources": self.stats["emitted_resources"],
            "emitted_data_sources": self.stats["emitted_data_sources"],
            "skipped_resources": self.stats["skipped_resources"],
            "unsupported_types_count": len(self.stats["unsupported_types"]),
            "handler_errors_count": len(self.stats["handler_errors"]),
            "missing_references_count": len(self.context.missing_references),
        }
