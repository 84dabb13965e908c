"""Resource plan for one test run.

Expands an AgentSubnetConfig into the planned resource dictionaries consumed
by the Terraform handlers. Descriptors use the same shape as Azure resources
(``id``, ``type``, ``name``, ``resource_group``, ``properties``) so handlers
read them like any other resource.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List

if TYPE_CHECKING:
    from ..config.models import AgentSubnetConfig

logger = logging.getLogger(__name__)

VIRTUAL_NETWORK_TYPE = "Microsoft.Network/virtualNetworks"
SUBNET_TYPE = "Microsoft.Network/virtualNetworks/subnets"
DESTROY_DELAY_TYPE = "Ephemeral/destroyDelays"


def network_id(resource_group: str, network_name: str) -> str:
    """Plan-local ID of the shared virtual network."""
    return (
        f"/resourceGroups/{resource_group}/providers/"
        f"{VIRTUAL_NETWORK_TYPE}/{network_name}"
    )


def build_resource_plan(config: "AgentSubnetConfig") -> List[Dict[str, Any]]:
    """Expand a test run configuration into planned resources.

    The order is lookup, subnet, delay: each handler finds the terraform name
    of its parent in the emitter context.

    Args:
        config: Validated configuration of the test run

    Returns:
        Planned resource dictionaries
    """
    allocation = config.allocation()
    network = config.network
    subnet = config.subnet

    vnet_id = network_id(network.resource_group_name, network.virtual_network_name)
    subnet_id = f"{vnet_id}/subnets/{allocation.name}"

    network_resource = {
        "id": vnet_id,
        "type": VIRTUAL_NETWORK_TYPE,
        "name": network.virtual_network_name,
        "resource_group": network.resource_group_name,
        "existing": True,
    }

    subnet_resource = {
        "id": subnet_id,
        "type": SUBNET_TYPE,
        "name": allocation.name,
        "resource_group": network.resource_group_name,
        "test_run_id": allocation.test_run_id,
        "properties": {
            "addressPrefix": allocation.cidr,
            "delegations": [
                {
                    "name": subnet.delegation_name,
                    "properties": {
                        "serviceName": subnet.delegation_service,
                        "actions": list(subnet.delegation_actions),
                    },
                }
            ],
            "serviceEndpoints": [
                {"service": service} for service in subnet.service_endpoints
            ],
        },
    }

    delay_resource = {
        "id": f"{subnet_id}/destroyDelay",
        "type": DESTROY_DELAY_TYPE,
        "name": f"{allocation.name}-destroy-delay",
        "resource_group": network.resource_group_name,
        "properties": {
            "subnetId": subnet_id,
            "destroyDuration": config.lifecycle.destroy_wait,
            "recreateOnApply": config.lifecycle.recreate_on_apply,
        },
    }

    logger.info(
        f"Planned subnet {allocation.name} ({allocation.cidr}) in "
        f"{network.resource_group_name}/{network.virtual_network_name}"
    )
    return [network_resource, subnet_resource, delay_resource]
