import logging
from typing import Any

from k8s_topology.discoverers.base import BaseDiscoverer
from k8s_topology.discoverers.handlers import LinkContext
from k8s_topology.discoverers.registry import LinkHandlerRegistry
from k8s_topology.errors import NotFoundError, TopologyError
from k8s_topology.graph import TopologyGraph
from k8s_topology.models import GroupResource
from k8s_topology.node_identity import resource_name
from k8s_topology.protocols import DiscoveryClientProtocol
from k8s_topology.resolvers import ResourceResolver

logger = logging.getLogger(__name__)

MESH_FAMILIES: dict[str, tuple[str, ...]] = {
    "gateway api": ("gateway.networking.k8s.io",),
    "istio": ("networking.istio.io", "security.istio.io"),
    "linkerd": ("linkerd.io", "policy.linkerd.io"),
}


class MeshDiscoverer(BaseDiscoverer):
    """
    Adds service-mesh and gateway objects of a namespace to the graph.

    Nothing is hardcoded per kind: for every installed family the API
    groups are enumerated through discovery, every object of every served
    type becomes a node, and namespaced objects are handed to the link
    handlers of the registry, which key on common field paths
    (``spec.hosts``, ``spec.targetRef``, ``spec.parentRefs``, ...).

    Families that are not installed are skipped silently. Any failure is
    turned into a warning and never stops the other families.
    """

    def __init__(
        self,
        graph: TopologyGraph,
        resolver: ResourceResolver,
        discovery: DiscoveryClientProtocol,
        registry: LinkHandlerRegistry | None = None,
        cluster_domain: str = "cluster.local",
    ) -> None:
        super().__init__(graph, resolver)
        self.discovery = discovery
        self.registry = registry or LinkHandlerRegistry.get_global()
        self.cluster_domain = cluster_domain

    async def discover(self, namespace: str) -> list[str]:
        try:
            services = await self.resolver.list_services(namespace)
        except TopologyError as e:
            return [f"failed to list services for mesh graph: {e}"]
        service_index = build_service_index(namespace, services, self.cluster_domain)

        warnings: list[str] = []
        for family, groups in MESH_FAMILIES.items():
            try:
                present = await self._present_groups(groups)
            except TopologyError as e:
                logger.warning(f"{family} discovery failed: {e}")
                warnings.append(f"{family} discovery failed: {e}")
                continue
            if not present:
                logger.debug(f"No {family} groups served, skipping")
                continue
            for group in present:
                warnings.extend(await self.add_group_resources(namespace, group, service_index))

        return warnings

    async def add_group_resources(
        self,
        namespace: str,
        group: str,
        service_index: dict[str, str],
    ) -> list[str]:
        """
        Add every object of every resource type served by one API group.

        Args:
            namespace: Namespace whose namespaced objects are listed
            group: API group name
            service_index: Host/name -> service name lookup for the namespace

        Returns:
            Warnings collected while listing and linking
        """
        warnings: list[str] = []
        try:
            resources = await self.discovery.get_group_resources(group)
        except TopologyError as e:
            return [f"resource discovery failed for {group}: {e}"]

        for resource in resources:
            list_namespace = namespace if resource.namespaced else None
            try:
                objects = await self.discovery.list_group_objects(resource, list_namespace)
            except NotFoundError:
                logger.debug(f"{resource.resource}.{group} not served, skipping")
                continue
            except TopologyError as e:
                warnings.append(f"{resource.resource} list failed: {e}")
                continue

            for obj in objects:
                if not resource.namespaced:
                    self.graph.add_node(
                        resource.kind,
                        resource.group,
                        "",
                        resource_name(obj),
                        _details(obj, resource, "cluster"),
                    )
                    continue
                warnings.extend(
                    await self._add_namespaced(namespace, resource, obj, service_index)
                )

        return warnings

    async def _add_namespaced(
        self,
        namespace: str,
        resource: GroupResource,
        obj: dict[str, Any],
        service_index: dict[str, str],
    ) -> list[str]:
        source_id = self.graph.add_node(
            resource.kind,
            resource.group,
            namespace,
            resource_name(obj),
            _details(obj, resource, "namespaced"),
        )
        ctx = LinkContext(
            graph=self.graph,
            resolver=self.resolver,
            namespace=namespace,
            service_index=service_index,
            resource=resource,
            obj=obj,
            source_id=source_id,
        )

        warnings: list[str] = []
        for handler in self.registry.get_handlers_for(obj, resource):
            warnings.extend(await handler.link(ctx))
        return warnings

    async def _present_groups(self, groups: tuple[str, ...]) -> list[str]:
        served = set(await self.discovery.get_api_groups())
        return [group for group in groups if group in served]


def build_service_index(
    namespace: str,
    services: list[dict[str, Any]],
    cluster_domain: str = "cluster.local",
) -> dict[str, str]:
    """
    Map every way a mesh object may name a local service to the service name.

    Example:
        >>> index = build_service_index("shop", [{"metadata": {"name": "web"}}])
        >>> index["web.shop.svc.cluster.local"]
        'web'
    """
    index: dict[str, str] = {}
    for service in services:
        name = resource_name(service)
        if not name:
            continue
        index[name] = name
        index[f"{name}.{namespace}"] = name
        index[f"{name}.{namespace}.svc"] = name
        index[f"{name}.{namespace}.svc.{cluster_domain}"] = name
    return index


def _details(obj: dict[str, Any], resource: GroupResource, scope: str) -> dict[str, Any]:
    return {
        "apiVersion": obj.get("apiVersion") or resource.api_version,
        "resource": resource.resource,
        "scope": scope,
    }
