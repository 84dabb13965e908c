"""Handler registry for resource type dispatch.

This module provides the HandlerRegistry class that manages registration
and lookup of resource handlers based on planned resource types.
"""

import logging
from typing import Dict, List, Optional, Type

from ..base_handler import ResourceHandler

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Registry for resource handlers with type-based dispatch.

    Usage:
        @handler
        class MyHandler(ResourceHandler):
            HANDLED_TYPES = {"Microsoft.Network/virtualNetworks/subnets"}
            ...

        # Later:
        handler = HandlerRegistry.get_handler("Microsoft.Network/virtualNetworks/subnets")
        if handler:
            result = handler.emit(resource, context)
    """

    _handlers: List[Type[ResourceHandler]] = []
    _type_cache: Dict[str, Type[ResourceHandler]] = {}

    @classmethod
    def register(cls, handler_class: Type[ResourceHandler]) -> Type[ResourceHandler]:
        """Register a handler class.

        Args:
            handler_class: Handler class to register

        Returns:
            The handler class (unchanged)
        """
        if handler_class not in cls._handlers:
            cls._handlers.append(handler_class)

            for resource_type in handler_class.HANDLED_TYPES:
                cls._type_cache[resource_type.lower()] = handler_class
                logger.debug(
                    f"Registered handler {handler_class.__name__} for {resource_type}"
                )

        return handler_class

    @classmethod
    def get_handler(cls, resource_type: str) -> Optional[ResourceHandler]:
        """Get handler instance for a plan type.

        Args:
            resource_type: Planned resource type

        Returns:
            Handler instance or None if no handler registered
        """
        resource_type_lower = resource_type.lower()

        if resource_type_lower in cls._type_cache:
            return cls._type_cache[resource_type_lower]()

        for handler_class in cls._handlers:
            if handler_class.can_handle(resource_type):
                cls._type_cache[resource_type_lower] = handler_class
                return handler_class()

        return None

    @classmethod
    def get_all_supported_types(cls) -> List[str]:
        """Get all plan types supported by registered handlers."""
        types = set()
        for handler_class in cls._handlers:
            types.update(handler_class.HANDLED_TYPES)
        return sorted(types)

    @classmethod
    def get_all_handlers(cls) -> List[Type[ResourceHandler]]:
        """Get all registered handler classes (copy)."""
        return cls._handlers.copy()

    @classmethod
    def clear(cls) -> None:
        """Clear all registered handlers.

        Primarily for testing.
        """
        cls._handlers = []
        cls._type_cache = {}


def handler(cls: Type[ResourceHandler]) -> Type[ResourceHandler]:
    """Decorator to register a handler class.

    Usage:
        @handler
        class AgentSubnetHandler(ResourceHandler):
            HANDLED_TYPES = {"Microsoft.Network/virtualNetworks/subnets"}
            ...
    """
    return HandlerRegistry.register(cls)


def _register_all_handlers() -> None:
    """Import all handler modules to trigger registration.

    Handlers are registered explicitly as well, because module imports are
    cached and would not re-run the decorators after HandlerRegistry.clear().
    """
    # Lifecycle handlers
    from .lifecycle.destroy_delay import DestroyDelayHandler

    # Network handlers
    from .network.subnet import AgentSubnetHandler
    from .network.virtual_network_lookup import VirtualNetworkLookupHandler

    for handler_class in (
        VirtualNetworkLookupHandler,
        AgentSubnetHandler,
        DestroyDelayHandler,
    ):
        HandlerRegistry.register(handler_class)

    logger.debug(
        f"Registered {len(HandlerRegistry._handlers)} handlers "
        f"covering {len(HandlerRegistry.get_all_supported_types())} plan types"
    )


def ensure_handlers_registered() -> None:
    """Ensure all handlers are registered.

    Called lazily on first emission. Registration is idempotent, so this is
    safe to call multiple times.
    """
    _register_all_handlers()


__all__ = [
    "HandlerRegistry",
    "ensure_handlers_registered",
    "handler",
]
