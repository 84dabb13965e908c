"""EmitterContext - Shared state passed to all handlers during emission.

This module contains the EmitterContext dataclass that encapsulates all
shared state and configuration needed by resource handlers during
Terraform configuration generation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set


@dataclass
class EmitterContext:
    """Shared context passed to all handlers during emission.

    This dataclass encapsulates all shared state that handlers need:
    - Terraform config being built
    - Resource and data source tracking for reference validation
    - ID mappings so child resources can reference their parents
    - Error tracking for missing references

    Usage:
        context = EmitterContext(strict_mode=True)
        handler.emit(resource, context)
    """

    strict_mode: bool = False

    # Terraform config being built
    terraform_config: Dict[str, Any] = field(default_factory=dict)

    # Resource tracking for reference validation
    available_resources: Dict[str, Set[str]] = field(default_factory=dict)
    available_data_sources: Dict[str, Set[str]] = field(default_factory=dict)

    # Plan ID -> terraform name, so subnets find their network lookup and
    # delays find their subnet
    network_id_to_terraform_name: Dict[str, str] = field(default_factory=dict)
    subnet_id_to_terraform_name: Dict[str, str] = field(default_factory=dict)

    # Subnet terraform name -> destroy delay terraform name
    destroy_delays: Dict[str, str] = field(default_factory=dict)

    # Error tracking
    missing_references: List[Dict[str, str]] = field(default_factory=list)

    def add_resource(self, terraform_type: str, name: str) -> None:
        """Track a resource that will be emitted.

        Args:
            terraform_type: Terraform resource type (e.g., "azurerm_subnet")
            name: Terraform resource name (sanitized)
        """
        self.available_resources.setdefault(terraform_type, set()).add(name)

    def resource_exists(self, terraform_type: str, name: str) -> bool:
        """Check if a resource exists in tracking."""
        return name in self.available_resources.get(terraform_type, set())

    def data_source_exists(self, data_type: str, name: str) -> bool:
        """Check if a data source exists in tracking."""
        return name in self.available_data_sources.get(data_type, set())

    def add_data_source(
        self,
        data_type: str,
        name: str,
        config: Dict[str, Any],
    ) -> None:
        """Add a data source to terraform config.

        Data sources reference existing Azure resources that this
        configuration reads but never owns (e.g., the shared VNet).

        Args:
            data_type: Terraform data source type (e.g., "azurerm_virtual_network")
            name: Data source name
            config: Data source configuration dict

        Example:
            context.add_data_source(
                "azurerm_virtual_network",
                "vnet_tests",
                {"name": "vnet-tests", "resource_group_name": "rg-tests"},
            )
        """
        data = self.terraform_config.setdefault("data", {})
        data.setdefault(data_type, {})[name] = config
        self.available_data_sources.setdefault(data_type, set()).add(name)

    def add_output(
        self,
        name: str,
        value: str,
        description: str = "",
        depends_on: Optional[List[str]] = None,
        sensitive: bool = False,
    ) -> None:
        """Add an output to terraform configuration.

        Args:
            name: Output name
            value: Output value expression
            description: Output description
            depends_on: Resource addresses the output must wait for
            sensitive: Whether output is sensitive
        """
        output_config: Dict[str, Any] = {"value": value}

        if description:
            output_config["description"] = description
        if depends_on:
            output_config["depends_on"] = list(depends_on)
        if sensitive:
            output_config["sensitive"] = True

        self.terraform_config.setdefault("output", {})[name] = output_config

    def track_missing_reference(
        self,
        resource_name: str,
        resource_type: str,
        missing_resource_name: str,
        missing_resource_id: str,
        **extra: Any,
    ) -> None:
        """Track a missing resource reference for reporting.

        Args:
            resource_name: Name of resource with missing reference
            resource_type: Type of missing resource
            missing_resource_name: Name of missing resource
            missing_resource_id: Plan ID of missing resource
            **extra: Additional context fields
        """
        ref_info = {
            "resource_name": resource_name,
            "resource_type": resource_type,
            "missing_resource_name": missing_resource_name,
            "missing_resource_id": missing_resource_id,
        }
        ref_info.update(extra)
        self.missing_references.append(ref_info)
