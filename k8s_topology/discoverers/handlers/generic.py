import logging
from typing import Any

from k8s_topology.discoverers.handlers.base import (
    BaseLinkHandler,
    LinkContext,
    nested_get,
    nested_list,
    nested_string,
    nested_string_list,
    nested_string_map,
)
from k8s_topology.errors import InvalidSelectorError, TopologyError
from k8s_topology.models import Relation
from k8s_topology.node_identity import NodeIdentity, resource_name
from k8s_topology.selectors import LabelSelector

logger = logging.getLogger(__name__)

SELECTOR_PATHS = (
    ("spec", "selector", "matchLabels"),
    ("spec", "workloadSelector", "labels"),
    ("spec", "podSelector", "matchLabels"),
)


class HostLinkHandler(BaseLinkHandler):
    """``spec.host`` / ``spec.hosts`` -> Service (``routes-to``)."""

    priority = 100

    async def link(self, ctx: LinkContext) -> list[str]:
        hosts = []
        host = nested_string(ctx.obj, "spec", "host")
        if host:
            hosts.append(host)
        hosts.extend(nested_string_list(ctx.obj, "spec", "hosts"))

        self._link_services(ctx, hosts, Relation.ROUTES_TO)
        return []


class SelectorLinkHandler(BaseLinkHandler):
    """
    Workload selectors -> Pods (``applies-to``).

    Checks ``spec.selector.matchLabels``, ``spec.workloadSelector.labels`` and
    ``spec.podSelector.matchLabels`` in that order; every non-empty one
    triggers a pod lookup.
    """

    priority = 90

    async def link(self, ctx: LinkContext) -> list[str]:
        warnings: list[str] = []
        for path in SELECTOR_PATHS:
            labels = nested_string_map(ctx.obj, *path)
            if not labels:
                continue
            try:
                pods = await ctx.resolver.pods_for_selector(
                    ctx.namespace, LabelSelector.from_set(labels)
                )
            except (InvalidSelectorError, TopologyError) as e:
                warnings.append(f"selector lookup failed for {ctx.resource.resource}: {e}")
                continue
            for pod in pods:
                pod_id = ctx.graph.add_node(
                    "Pod", "", ctx.namespace, resource_name(pod), NodeIdentity.pod_details(pod)
                )
                ctx.graph.add_edge(ctx.source_id, pod_id, Relation.APPLIES_TO)
        return warnings


class TargetRefLinkHandler(BaseLinkHandler):
    """``spec.targetRef`` (and ``spec.targetRefs``) -> any kind (``targets``)."""

    priority = 80

    async def link(self, ctx: LinkContext) -> list[str]:
        refs = []
        ref = nested_get(ctx.obj, "spec", "targetRef")
        if isinstance(ref, dict):
            refs.append(ref)
        refs.extend(nested_list(ctx.obj, "spec", "targetRefs"))

        for ref in refs:
            self._link_ref(ctx, ref)
        return []

    @staticmethod
    def _link_ref(ctx: LinkContext, ref: dict[str, Any]) -> None:
        kind = ref.get("kind") or ""
        name = ref.get("name") or ""
        group = ref.get("group") or ref.get("apiGroup") or ""
        if not kind or not name:
            return
        target_id = ctx.graph.add_node(kind, group, ctx.namespace, name)
        ctx.graph.add_edge(ctx.source_id, target_id, Relation.TARGETS)


class ServerRefLinkHandler(BaseLinkHandler):
    """``spec.server`` (string or ``{name}``) -> Linkerd Server (``authorizes``)."""

    priority = 70

    async def link(self, ctx: LinkContext) -> list[str]:
        server = nested_string(ctx.obj, "spec", "server") or nested_string(
            ctx.obj, "spec", "server", "name"
        )
        if not server:
            return []
        server_id = ctx.graph.add_node("Server", "policy.linkerd.io", ctx.namespace, server)
        ctx.graph.add_edge(ctx.source_id, server_id, Relation.AUTHORIZES)
        return []
