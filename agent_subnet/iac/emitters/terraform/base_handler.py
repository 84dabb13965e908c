"""Base handler interface for planned resource handlers.

This module defines the abstract base class that all resource handlers
must implement. Each handler is responsible for converting one planned
resource type into a Terraform resource or data source block.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Optional, Set, Tuple

from .context import EmitterContext

logger = logging.getLogger(__name__)


class ResourceHandler(ABC):
    """Abstract base class for planned resource handlers.

    Handlers should be:
    - Focused: Handle related resource types only
    - Stateless: Use EmitterContext for shared state
    - Testable: Pure functions where possible
    - Self-documenting: Clear mapping declarations

    Usage:
        @handler
        class AgentSubnetHandler(ResourceHandler):
            HANDLED_TYPES = {"Microsoft.Network/virtualNetworks/subnets"}
            TERRAFORM_TYPES = {"azurerm_subnet"}

            def emit(self, resource, context):
                return ("azurerm_subnet", "agent_5", {...})
    """

    # Class-level declaration of handled plan types
    # Subclasses MUST override this
    HANDLED_TYPES: ClassVar[Set[str]] = set()

    # Terraform type(s) this handler emits
    TERRAFORM_TYPES: ClassVar[Set[str]] = set()

    # "resource" for managed blocks, "data" for lookups
    BLOCK_KIND: ClassVar[str] = "resource"

    @classmethod
    def can_handle(cls, resource_type: str) -> bool:
        """Check if this handler can process the given plan type.

        Args:
            resource_type: Plan resource type (e.g., "Microsoft.Network/virtualNetworks")

        Returns:
            True if handler can process this type
        """
        resource_type_lower = resource_type.lower()
        return any(t.lower() == resource_type_lower for t in cls.HANDLED_TYPES)

    @abstractmethod
    def emit(
        self,
        resource: Dict[str, Any],
        context: EmitterContext,
    ) -> Optional[Tuple[str, str, Dict[str, Any]]]:
        """Convert a planned resource to Terraform configuration.

        Args:
            resource: Planned resource dictionary
            context: Shared emitter context

        Returns:
            Tuple of (terraform_type, terraform_name, config) or None if skipped

        Note:
            - Return None to skip the resource (with logging)
            - Should validate references before emitting
        """
        raise NotImplementedError

    def post_emit(self, context: EmitterContext) -> None:  # noqa: B027
        """Called after all resources are emitted.

        Override to emit deferred blocks such as outputs.
        Default implementation does nothing (intentional - not abstract).

        Args:
            context: Shared emitter context
        """

    # Utility methods available to all handlers

    @staticmethod
    def parse_properties(resource: Dict[str, Any]) -> Dict[str, Any]:
        """Parse JSON properties from resource.

        Args:
            resource: Resource dict with properties field

        Returns:
            Parsed properties dict (empty dict if parsing fails)
        """
        properties = resource.get("properties", "{}")
        if isinstance(properties, str):
            try:
                return json.loads(properties)
            except json.JSONDecodeError:
                logger.warning(
                    f"Failed to parse properties for resource '{resource.get('name')}'"
                )
                return {}
        return properties if isinstance(properties, dict) else {}

    @staticmethod
    def sanitize_name(name: str) -> str:
        """Sanitize resource name for Terraform compatibility.

        Args:
            name: Original resource name

        Returns:
            Sanitized name safe for Terraform
        """
        sanitized = re.sub(r"[^a-zA-Z0-9_]", "_", name)

        # Ensure it starts with a letter or underscore
        if sanitized and sanitized[0].isdigit():
            sanitized = f"resource_{sanitized}"

        return sanitized or "unnamed_resource"

    @staticmethod
    def extract_name_from_id(resource_id: str, resource_type: str) -> str:
        """Extract resource name from a resource ID.

        Args:
            resource_id: Full resource ID
            resource_type: Resource type segment (e.g., "subnets", "virtualNetworks")

        Returns:
            Extracted resource name or "unknown"
        """
        if not resource_id:
            return "unknown"

        path_segment = f"/{resource_type}/"
        if path_segment in resource_id:
            return resource_id.split(path_segment)[-1].split("/")[0]
        return "unknown"

    @staticmethod
    def get_resource_group(resource: Dict[str, Any]) -> Optional[str]:
        """Get resource group name from resource."""
        return resource.get("resource_group") or resource.get("resourceGroup")

    def validate_resource_reference(
        self,
        terraform_type: str,
        name: str,
        context: EmitterContext,
        kind: str = "resource",
    ) -> bool:
        """Validate that a referenced resource or data source exists.

        Args:
            terraform_type: Terraform type
            name: Terraform name (sanitized)
            context: Emitter context with resource tracking
            kind: "resource" or "data"

        Returns:
            True if the block exists in context or terraform config
        """
        if kind == "data" and context.data_source_exists(terraform_type, name):
            return True
        if kind == "resource" and context.resource_exists(terraform_type, name):
            return True

        blocks = context.terraform_config.get(kind, {})
        return name in blocks.get(terraform_type, {})

    @staticmethod
    def normalize_cidr_block(cidr: str, context_name: str) -> Optional[str]:
        """Normalize a CIDR block to standard format.

        Args:
            cidr: CIDR block string
            context_name: Resource name for logging context

        Returns:
            Normalized CIDR or None if invalid
        """
        if not cidr or not isinstance(cidr, str):
            return None

        cidr = cidr.strip()

        if "/" not in cidr:
            logger.warning(f"CIDR '{cidr}' for '{context_name}' missing prefix length")
            return None

        try:
            ip_part, prefix_part = cidr.split("/")
            prefix = int(prefix_part)

            if prefix < 0 or prefix > 32:
                logger.warning(
                    f"CIDR '{cidr}' for '{context_name}' has invalid prefix: {prefix}"
                )
                return None

            parts = ip_part.split(".")
            if len(parts) != 4:
                logger.warning(
                    f"CIDR '{cidr}' for '{context_name}' has invalid IP format"
                )
                return None

            octets = [int(part) for part in parts]
            for octet in octets:
                if octet < 0 or octet > 255:
                    logger.warning(
                        f"CIDR '{cidr}' for '{context_name}' has invalid octet: {octet}"
                    )
                    return None

            # Drop leading zeros ("172.016.007.0" -> "172.16.7.0")
            return f"{'.'.join(str(o) for o in octets)}/{prefix}"

        except (ValueError, AttributeError) as e:
            logger.warning(
                f"Failed to normalize CIDR '{cidr}' for '{context_name}': {e}"
            )
            return None
