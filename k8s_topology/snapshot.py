import logging
from dataclasses import dataclass, field
from typing import Any

from k8s_topology.errors import TopologyError
from k8s_topology.node_identity import resource_name
from k8s_topology.protocols import K8sClientProtocol

logger = logging.getLogger(__name__)

NAMESPACED_KINDS = (
    "Service",
    "Endpoints",
    "Pod",
    "Deployment",
    "ReplicaSet",
    "StatefulSet",
    "DaemonSet",
    "Ingress",
    "NetworkPolicy",
)


@dataclass
class KindSnapshot:
    """
    Bulk-fetched resources of one kind.

    ``loaded`` distinguishes "fetched, zero results" (True, empty items)
    from "fetch failed" (False), in which case lookups fall back to live
    queries.
    """

    kind: str
    loaded: bool = False
    items: list[dict[str, Any]] = field(default_factory=list)
    by_name: dict[str, dict[str, Any]] = field(default_factory=dict)

    def populate(self, items: list[dict[str, Any]]) -> None:
        self.loaded = True
        for item in items:
            self.items.append(item)
            self.by_name[resource_name(item)] = item


class SnapshotCache:
    """
    One-shot snapshot of the core resources of a namespace.

    Built once per graph build and discarded afterwards. Each kind is listed
    at most once, so the API load of a build is bounded no matter how many
    nodes reference a kind. A failed list is recorded as a warning and leaves
    the kind unloaded.

    Example:
        >>> cache, warnings = await SnapshotCache.load(client, "default", cluster_access=False)
        >>> cache.is_loaded("Pod")
        True
    """

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace
        self._kinds: dict[str, KindSnapshot] = {
            kind: KindSnapshot(kind) for kind in (*NAMESPACED_KINDS, "Namespace")
        }

    @classmethod
    async def load(
        cls,
        client: K8sClientProtocol,
        namespace: str,
        cluster_access: bool,
    ) -> tuple["SnapshotCache", list[str]]:
        """
        List every core kind in the namespace.

        Args:
            client: K8s client implementation
            namespace: Namespace to snapshot
            cluster_access: Also list cluster namespaces (needs cluster-wide read)

        Returns:
            Tuple of (cache, warnings)
        """
        cache = cls(namespace)
        warnings: list[str] = []

        kinds: list[tuple[str, str | None]] = [(kind, namespace) for kind in NAMESPACED_KINDS]
        if cluster_access:
            kinds.append(("Namespace", None))

        for kind, list_namespace in kinds:
            try:
                items, _ = await client.list_resources(kind=kind, namespace=list_namespace)
            except TopologyError as e:
                logger.warning(f"Snapshot of {kind} in '{namespace}' failed: {e}")
                warnings.append(f"{kind.lower()} list failed: {e}")
                continue
            cache._kinds[kind].populate(items)

        logger.debug(
            f"Snapshot for '{namespace}' loaded kinds: "
            f"{', '.join(k for k, snap in cache._kinds.items() if snap.loaded)}"
        )
        return cache, warnings

    def is_loaded(self, kind: str) -> bool:
        return self._kinds[kind].loaded

    def items(self, kind: str) -> list[dict[str, Any]]:
        return self._kinds[kind].items

    def lookup(self, kind: str, name: str) -> dict[str, Any] | None:
        return self._kinds[kind].by_name.get(name)
