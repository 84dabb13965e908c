"""Destroy delay handler for Terraform emission.

Handles: Ephemeral/destroyDelays
Emits: time_sleep
"""

import logging
from typing import Any, ClassVar, Dict, Optional, Set, Tuple

from ......durations import parse_duration
from ......exceptions import ConfigurationError, EmissionError
from .....resource_plan import DESTROY_DELAY_TYPE
from ...base_handler import ResourceHandler
from ...context import EmitterContext
from .. import handler

logger = logging.getLogger(__name__)


@handler
class DestroyDelayHandler(ResourceHandler):
    """Handler for the destroy-phase delay in front of a subnet.

    The delay depends on the subnet, so Terraform destroys it first and
    sleeps ``destroy_duration`` before deleting the subnet. That gives the
    delegated service time to drop its service association links.

    With ``recreateOnApply`` the triggers include ``timestamp()``, which
    changes on every run and forces the delay to be replaced on each apply.

    Emits:
        - time_sleep
    """

    HANDLED_TYPES: ClassVar[Set[str]] = {
        DESTROY_DELAY_TYPE,
    }

    TERRAFORM_TYPES: ClassVar[Set[str]] = {
        "time_sleep",
    }

    def emit(
        self,
        resource: Dict[str, Any],
        context: EmitterContext,
    ) -> Optional[Tuple[str, str, Dict[str, Any]]]:
        resource_name = resource.get("name", "unknown")
        properties = self.parse_properties(resource)

        subnet_id = properties.get("subnetId", "")
        subnet_tf_name = context.subnet_id_to_terraform_name.get(subnet_id)
        if not subnet_tf_name or not self.validate_resource_reference(
            "azurerm_subnet", subnet_tf_name, context
        ):
            context.track_missing_reference(
                resource_name,
                "Microsoft.Network/virtualNetworks/subnets",
                self.extract_name_from_id(subnet_id, "subnets"),
                subnet_id,
            )
            logger.warning(
                f"Destroy delay '{resource_name}' targets a subnet that was not "
                f"emitted; skipping"
            )
            return None

        duration = properties.get("destroyDuration", "")
        try:
            parse_duration(duration)
        except ConfigurationError as e:
            raise EmissionError(
                f"Invalid destroy duration {duration!r}",
                resource_name=resource_name,
                resource_type=DESTROY_DELAY_TYPE,
                cause=e,
            ) from e

        triggers = {"subnet_id": f"${{azurerm_subnet.{subnet_tf_name}.id}}"}
        if properties.get("recreateOnApply", True):
            triggers["applied_at"] = "${timestamp()}"

        safe_name = self.sanitize_name(resource_name)
        config = {
            "destroy_duration": duration,
            "triggers": triggers,
            "depends_on": [f"azurerm_subnet.{subnet_tf_name}"],
        }

        context.destroy_delays[subnet_tf_name] = safe_name
        logger.debug(
            f"Generated destroy delay {safe_name} ({duration}) for subnet {subnet_tf_name}"
        )
        return "time_sleep", safe_name, config
