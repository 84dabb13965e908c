"""Virtual Network lookup handler for Terraform emission.

Handles: Microsoft.Network/virtualNetworks (existing networks only)
Emits: data.azurerm_virtual_network
"""

import logging
from typing import Any, ClassVar, Dict, Optional, Set, Tuple

from .....resource_plan import VIRTUAL_NETWORK_TYPE
from ...base_handler import ResourceHandler
from ...context import EmitterContext
from .. import handler

logger = logging.getLogger(__name__)


@handler
class VirtualNetworkLookupHandler(ResourceHandler):
    """Handler for the shared, pre-existing virtual network.

    The network is read through a data source and never managed, so
    destroying a test run can never delete it.

    Emits:
        - data.azurerm_virtual_network
    """

    HANDLED_TYPES: ClassVar[Set[str]] = {
        VIRTUAL_NETWORK_TYPE,
    }

    TERRAFORM_TYPES: ClassVar[Set[str]] = {
        "azurerm_virtual_network",
    }

    BLOCK_KIND: ClassVar[str] = "data"

    def emit(
        self,
        resource: Dict[str, Any],
        context: EmitterContext,
    ) -> Optional[Tuple[str, str, Dict[str, Any]]]:
        """Convert an existing network reference to a data source.

        Args:
            resource: Planned virtual network dictionary
            context: Shared emitter context

        Returns:
            Tuple of (terraform_type, data_source_name, config) or None if skipped
        """
        network_name = resource.get("name")
        resource_group = self.get_resource_group(resource)

        if not resource.get("existing", False):
            logger.warning(
                f"Virtual network '{network_name}' is not marked as existing; "
                f"only lookups of pre-existing networks are supported, skipping"
            )
            return None

        if not network_name or not resource_group:
            logger.warning(
                f"Virtual network lookup needs a name and resource group "
                f"(got name={network_name!r}, resource_group={resource_group!r}), skipping"
            )
            return None

        safe_name = self.sanitize_name(network_name)
        config = {
            "name": network_name,
            "resource_group_name": resource_group,
        }

        network_id = resource.get("id")
        if network_id:
            context.network_id_to_terraform_name[network_id] = safe_name

        logger.debug(f"Generated network lookup: data.azurerm_virtual_network.{safe_name}")
        return "azurerm_virtual_network", safe_name, config
