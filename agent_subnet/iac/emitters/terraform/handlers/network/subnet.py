"""Agent Subnet handler for Terraform emission.

Handles: Microsoft.Network/virtualNetworks/subnets
Emits: azurerm_subnet
"""

import logging
from typing import Any, ClassVar, Dict, List, Optional, Set, Tuple

from .....resource_plan import SUBNET_TYPE
from ...base_handler import ResourceHandler
from ...context import EmitterContext
from .. import handler

logger = logging.getLogger(__name__)


@handler
class AgentSubnetHandler(ResourceHandler):
    """Handler for the per-test-run agent subnet.

    The subnet lives inside a looked-up virtual network and carries a
    delegation for the managed service under test.

    Emits:
        - azurerm_subnet
        - outputs for the subnet id, name and address prefix
    """

    HANDLED_TYPES: ClassVar[Set[str]] = {
        SUBNET_TYPE,
    }

    TERRAFORM_TYPES: ClassVar[Set[str]] = {
        "azurerm_subnet",
    }

    def emit(
        self,
        resource: Dict[str, Any],
        context: EmitterContext,
    ) -> Optional[Tuple[str, str, Dict[str, Any]]]:
        """Convert a planned subnet to Terraform configuration.

        Args:
            resource: Planned subnet dictionary
            context: Shared emitter context

        Returns:
            Tuple of (terraform_type, resource_name, config) or None if skipped
        """
        resource_name = resource.get("name", "unknown")
        properties = self.parse_properties(resource)
        subnet_id = resource.get("id", "")

        # The parent network is everything up to /subnets/
        network_id = subnet_id.split("/subnets/")[0] if "/subnets/" in subnet_id else ""
        network_tf_name = context.network_id_to_terraform_name.get(network_id)

        if not network_tf_name or not self.validate_resource_reference(
            "azurerm_virtual_network", network_tf_name, context, kind="data"
        ):
            network_name = self.extract_name_from_id(network_id, "virtualNetworks")
            context.track_missing_reference(
                resource_name,
                "Microsoft.Network/virtualNetworks",
                network_name,
                network_id,
            )
            logger.warning(
                f"Subnet '{resource_name}' references network '{network_name}' "
                f"which has no lookup; skipping subnet"
            )
            return None

        address_prefix = properties.get("addressPrefix")
        address_prefixes = (
            [address_prefix] if address_prefix else properties.get("addressPrefixes", [])
        )
        normalized_prefixes = [
            normalized
            for normalized in (
                self.normalize_cidr_block(cidr, resource_name) for cidr in address_prefixes
            )
            if normalized
        ]
        if not normalized_prefixes:
            # A fallback range could collide with another run, so never guess
            logger.warning(f"Subnet '{resource_name}' has no valid address prefix")
            return None

        safe_name = self.sanitize_name(resource_name)
        config: Dict[str, Any] = {
            "name": resource_name,
            "resource_group_name": self.get_resource_group(resource),
            "virtual_network_name": f"${{data.azurerm_virtual_network.{network_tf_name}.name}}",
            "address_prefixes": normalized_prefixes,
        }

        delegations = self._build_delegations(properties.get("delegations", []))
        if delegations:
            config["delegation"] = delegations

        service_endpoints = properties.get("serviceEndpoints", [])
        if service_endpoints:
            config["service_endpoints"] = [
                ep["service"] for ep in service_endpoints if "service" in ep
            ]

        if subnet_id:
            context.subnet_id_to_terraform_name[subnet_id] = safe_name

        logger.debug(
            f"Generated agent subnet: {safe_name} "
            f"({resource_name}, {', '.join(normalized_prefixes)})"
        )
        return "azurerm_subnet", safe_name, config

    @staticmethod
    def _build_delegations(delegations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Translate plan delegations into azurerm delegation blocks."""
        blocks = []
        for delegation in delegations:
            delegation_props = delegation.get("properties", {})
            service_name = delegation_props.get("serviceName")
            if not service_name:
                logger.warning(
                    f"Delegation '{delegation.get('name')}' has no service name, skipping"
                )
                continue

            service_delegation: Dict[str, Any] = {"name": service_name}
            actions = delegation_props.get("actions") or []
            if actions:
                service_delegation["actions"] = list(actions)

            blocks.append(
                {
                    "name": delegation.get("name") or "delegation",
                    "service_delegation": [service_delegation],
                }
            )
        return blocks

    def post_emit(self, context: EmitterContext) -> None:
        """Emit outputs for every emitted subnet.

        The subnet id output waits on the destroy delay, so anything consuming
        it is torn down before the delay and the subnet.
        """
        subnets = context.terraform_config.get("resource", {}).get("azurerm_subnet", {})
        single = len(subnets) == 1

        for safe_name, config in subnets.items():
            suffix = "" if single else f"_{safe_name}"
            delay_name = context.destroy_delays.get(safe_name)
            depends_on = [f"time_sleep.{delay_name}"] if delay_name else None

            context.add_output(
                f"subnet_id{suffix}",
                f"${{azurerm_subnet.{safe_name}.id}}",
                description=f"ID of subnet {config['name']}",
                depends_on=depends_on,
            )
            context.add_output(
                f"subnet_name{suffix}",
                f"${{azurerm_subnet.{safe_name}.name}}",
                description="Name of the agent subnet",
            )
            context.add_output(
                f"subnet_address_prefix{suffix}",
                config["address_prefixes"][0],
                description="Address range of the agent subnet",
            )
