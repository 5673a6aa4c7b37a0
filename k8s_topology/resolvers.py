import logging
from typing import Any

from k8s_topology.errors import NotFoundError
from k8s_topology.models import ResourceIdentifier
from k8s_topology.node_identity import resource_labels
from k8s_topology.protocols import K8sClientProtocol
from k8s_topology.selectors import LabelSelector
from k8s_topology.snapshot import SnapshotCache

logger = logging.getLogger(__name__)


class ResourceResolver:
    """
    Cache-first getters for core resources.

    When the snapshot has a kind loaded, lookups are a map hit or miss and a
    miss raises :class:`NotFoundError`. When the kind is not loaded (its bulk
    fetch failed, or there is no snapshot) lookups fall through to live
    queries against the client.
    """

    def __init__(self, client: K8sClientProtocol, cache: SnapshotCache | None = None) -> None:
        self.client = client
        self.cache = cache

    async def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        """
        Resolve one resource.

        Raises:
            NotFoundError: The resource does not exist
            K8sAPIError: The live query failed
        """
        if self.cache is not None and self.cache.is_loaded(kind):
            resource = self.cache.lookup(kind, name)
        else:
            logger.debug(f"Live lookup for {kind}/{name} in '{namespace}'")
            resource = await self.client.get_resource(
                ResourceIdentifier(kind=kind, name=name, namespace=namespace)
            )
        if resource is None:
            raise NotFoundError(kind, name, namespace)
        return resource

    async def get_service(self, namespace: str, name: str) -> dict[str, Any]:
        return await self.get("Service", namespace, name)

    async def get_endpoints(self, namespace: str, name: str) -> dict[str, Any]:
        return await self.get("Endpoints", namespace, name)

    async def get_pod(self, namespace: str, name: str) -> dict[str, Any]:
        return await self.get("Pod", namespace, name)

    async def get_deployment(self, namespace: str, name: str) -> dict[str, Any]:
        return await self.get("Deployment", namespace, name)

    async def get_replicaset(self, namespace: str, name: str) -> dict[str, Any]:
        return await self.get("ReplicaSet", namespace, name)

    async def get_statefulset(self, namespace: str, name: str) -> dict[str, Any]:
        return await self.get("StatefulSet", namespace, name)

    async def get_daemonset(self, namespace: str, name: str) -> dict[str, Any]:
        return await self.get("DaemonSet", namespace, name)

    async def get_ingress(self, namespace: str, name: str) -> dict[str, Any]:
        return await self.get("Ingress", namespace, name)

    async def pods_for_selector(
        self, namespace: str, selector: LabelSelector
    ) -> list[dict[str, Any]]:
        return await self._for_selector("Pod", namespace, selector)

    async def replicasets_for_selector(
        self, namespace: str, selector: LabelSelector
    ) -> list[dict[str, Any]]:
        return await self._for_selector("ReplicaSet", namespace, selector)

    async def list_services(self, namespace: str) -> list[dict[str, Any]]:
        return await self._list("Service", namespace)

    async def list_network_policies(self, namespace: str) -> list[dict[str, Any]]:
        return await self._list("NetworkPolicy", namespace)

    async def _list(self, kind: str, namespace: str) -> list[dict[str, Any]]:
        if self.cache is not None and self.cache.is_loaded(kind):
            return list(self.cache.items(kind))
        resources, _ = await self.client.list_resources(kind=kind, namespace=namespace)
        return resources

    async def _for_selector(
        self, kind: str, namespace: str, selector: LabelSelector
    ) -> list[dict[str, Any]]:
        if selector.match_nothing:
            return []
        if self.cache is not None and self.cache.is_loaded(kind):
            return [
                item for item in self.cache.items(kind) if selector.matches(resource_labels(item))
            ]
        resources, _ = await self.client.list_resources(
            kind=kind,
            namespace=namespace,
            label_selector=selector.to_query() or None,
        )
        return resources
