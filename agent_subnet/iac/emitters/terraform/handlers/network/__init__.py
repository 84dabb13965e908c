"""Network handlers for Terraform emission."""

from .subnet import AgentSubnetHandler
from .virtual_network_lookup import VirtualNetworkLookupHandler

__all__ = [
    "AgentSubnetHandler",
    "VirtualNetworkLookupHandler",
]
