import logging
from typing import Any

from k8s_topology.discoverers.handlers.base import (
    BaseLinkHandler,
    LinkContext,
    nested_list,
    nested_string_list,
)
from k8s_topology.models import GroupResource, Relation

logger = logging.getLogger(__name__)

GATEWAY_API_GROUP = "gateway.networking.k8s.io"

# Istio's reserved gateway name for in-mesh sidecar traffic
MESH_GATEWAY = "mesh"


class GatewayAttachmentHandler(BaseLinkHandler):
    """
    Route-like objects -> the Gateways they attach to (``attached-to``).

    Reads Istio-style ``spec.gateways`` (``name`` or ``namespace/name``,
    ``mesh`` skipped) and Gateway API ``spec.parentRefs`` whose kind is
    ``Gateway`` or unset.
    """

    priority = 60

    def supports(self, obj: dict[str, Any], resource: GroupResource) -> bool:
        spec = obj.get("spec") or {}
        return "gateways" in spec or "parentRefs" in spec

    async def link(self, ctx: LinkContext) -> list[str]:
        for gateway in nested_string_list(ctx.obj, "spec", "gateways"):
            if gateway == MESH_GATEWAY:
                continue
            namespace, _, name = gateway.rpartition("/")
            self._attach(ctx, ctx.resource.group, namespace or ctx.namespace, name)

        for ref in gateway_parent_refs(ctx.obj):
            self._attach(
                ctx,
                ref.get("group") or GATEWAY_API_GROUP,
                ref.get("namespace") or ctx.namespace,
                ref["name"],
            )
        return []

    @staticmethod
    def _attach(ctx: LinkContext, group: str, namespace: str, name: str) -> None:
        if not name:
            return
        gateway_id = ctx.graph.add_node("Gateway", group, namespace, name)
        ctx.graph.add_edge(ctx.source_id, gateway_id, Relation.ATTACHED_TO)


class BackendRefHandler(BaseLinkHandler):
    """``spec.rules[].backendRefs`` of kind Service -> Service (``routes-to``)."""

    priority = 55

    async def link(self, ctx: LinkContext) -> list[str]:
        names = [
            ref["name"]
            for ref in service_backend_refs(ctx.obj)
            if (ref.get("namespace") or ctx.namespace) == ctx.namespace
        ]
        self._link_services(ctx, names, Relation.ROUTES_TO)
        return []


def gateway_parent_refs(obj: dict[str, Any]) -> list[dict[str, Any]]:
    """``spec.parentRefs`` entries naming a Gateway (kind ``Gateway`` or unset)."""
    return [
        ref
        for ref in nested_list(obj, "spec", "parentRefs")
        if ref.get("kind") in (None, "", "Gateway") and ref.get("name")
    ]


def service_backend_refs(obj: dict[str, Any]) -> list[dict[str, Any]]:
    """``spec.rules[].backendRefs`` entries naming a Service (kind ``Service`` or unset)."""
    refs = []
    for rule in nested_list(obj, "spec", "rules"):
        for ref in rule.get("backendRefs") or []:
            if not isinstance(ref, dict):
                continue
            if ref.get("kind") in (None, "", "Service") and ref.get("name"):
                refs.append(ref)
    return refs
