import logging
from typing import Any

from k8s_topology.discoverers.handlers import BaseLinkHandler, get_all_handlers
from k8s_topology.models import GroupResource

logger = logging.getLogger(__name__)


class LinkHandlerRegistry:
    """
    Registry of the link handlers applied to mesh/gateway objects.

    Handlers run in descending ``priority`` order; registration order breaks
    ties. The global registry comes pre-loaded with the built-in handlers.

    Example:
        >>> registry = LinkHandlerRegistry.get_global()
        >>> registry.register(MyPolicyHandler())
        >>> handlers = registry.get_handlers_for(obj, resource)
    """

    _global_registry: "LinkHandlerRegistry | None" = None

    def __init__(self) -> None:
        self._handlers: list[BaseLinkHandler] = []

    @classmethod
    def get_global(cls) -> "LinkHandlerRegistry":
        """
        Get the global singleton registry.

        Returns:
            Global LinkHandlerRegistry instance
        """
        if cls._global_registry is None:
            cls._global_registry = cls.with_defaults()
        return cls._global_registry

    @classmethod
    def with_defaults(cls) -> "LinkHandlerRegistry":
        registry = cls()
        for handler in get_all_handlers():
            registry.register(handler)
        return registry

    def register(self, handler: BaseLinkHandler) -> None:
        """
        Register a link handler.

        Args:
            handler: Handler instance to add
        """
        self._handlers.append(handler)
        logger.debug(
            f"Registered link handler {handler.__class__.__name__} (priority {handler.priority})"
        )

    def get_handlers_for(
        self, obj: dict[str, Any], resource: GroupResource
    ) -> list[BaseLinkHandler]:
        """
        Handlers that apply to one object, highest priority first.

        Args:
            obj: The mesh object as a dictionary
            resource: Discovery descriptor of the object's type

        Returns:
            Applicable handlers, sorted by priority
        """
        matching = [h for h in self._handlers if h.supports(obj, resource)]
        return sorted(matching, key=lambda h: h.priority, reverse=True)

    def list_handlers(self) -> list[BaseLinkHandler]:
        return sorted(self._handlers, key=lambda h: h.priority, reverse=True)

    def clear(self) -> None:
        """Remove all registered handlers."""
        self._handlers.clear()
        logger.debug("Link handler registry cleared")
