import logging
from dataclasses import dataclass
from typing import Any

from k8s_topology.graph import TopologyGraph
from k8s_topology.models import GroupResource, Relation
from k8s_topology.node_identity import resource_name
from k8s_topology.resolvers import ResourceResolver

logger = logging.getLogger(__name__)


@dataclass
class LinkContext:
    """Everything a link handler needs to attach one mesh object to the graph."""

    graph: TopologyGraph
    resolver: ResourceResolver
    namespace: str
    service_index: dict[str, str]
    resource: GroupResource
    obj: dict[str, Any]
    source_id: str

    @property
    def name(self) -> str:
        return resource_name(self.obj)


class BaseLinkHandler:
    """
    A structural linking rule applied to untyped mesh/gateway documents.

    Handlers never look at a CRD schema as a whole; each one keys on a few
    field paths (``spec.host``, ``spec.targetRef``, ...) so objects of kinds
    the engine has never seen still get linked when they use the same
    conventions.

    Subclasses override :meth:`supports` to restrict themselves to certain
    groups or kinds and :meth:`link` to add edges. Higher ``priority`` runs
    first.
    """

    priority: int = 50

    def supports(self, obj: dict[str, Any], resource: GroupResource) -> bool:
        return True

    async def link(self, ctx: LinkContext) -> list[str]:
        raise NotImplementedError

    def _link_services(self, ctx: LinkContext, names: list[str], relation: Relation) -> None:
        """Edge from the object to every name that resolves in the service index."""
        for name in names:
            service_name = ctx.service_index.get(name)
            if service_name:
                service_id = ctx.graph.add_node("Service", "", ctx.namespace, service_name)
                ctx.graph.add_edge(ctx.source_id, service_id, relation)


def nested_get(obj: dict[str, Any], *fields: str) -> Any:
    value: Any = obj
    for field in fields:
        if not isinstance(value, dict):
            return None
        value = value.get(field)
    return value


def nested_string(obj: dict[str, Any], *fields: str) -> str:
    value = nested_get(obj, *fields)
    return value if isinstance(value, str) else ""


def nested_string_list(obj: dict[str, Any], *fields: str) -> list[str]:
    value = nested_get(obj, *fields)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item]


def nested_string_map(obj: dict[str, Any], *fields: str) -> dict[str, str]:
    value = nested_get(obj, *fields)
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(v, str)}


def nested_list(obj: dict[str, Any], *fields: str) -> list[dict[str, Any]]:
    value = nested_get(obj, *fields)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]
