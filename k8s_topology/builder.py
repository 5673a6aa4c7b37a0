import logging

from k8s_topology.cache import GraphResultCache, graph_cache_key
from k8s_topology.discoverers.mesh import MeshDiscoverer
from k8s_topology.discoverers.network import NetworkPolicyDiscoverer
from k8s_topology.discoverers.registry import LinkHandlerRegistry
from k8s_topology.discoverers.workloads import WorkloadDiscoverer
from k8s_topology.errors import UnsupportedKindError
from k8s_topology.graph import TopologyGraph
from k8s_topology.models import GraphResult, GraphSettings, SeedKind
from k8s_topology.protocols import DiscoveryClientProtocol, K8sClientProtocol
from k8s_topology.resolvers import ResourceResolver
from k8s_topology.snapshot import SnapshotCache

logger = logging.getLogger(__name__)


class GraphBuilder:
    """
    Builds a connectivity graph around one seed resource.

    A build runs in fixed order:
    - consult the result cache (when a TTL is configured)
    - snapshot the core kinds of the namespace
    - expand the seed through the matching workload builder
    - attach NetworkPolicies and mesh/gateway objects to whatever is in the graph
    - serialize, annotate with warnings and write the result cache

    Every build owns its own graph, snapshot and resolver, so a builder can
    serve concurrent builds. Recoverable problems come back as warnings on the
    result; a missing seed or a failed API call on the seed path raises.

    Example:
        >>> from k8s_topology import GraphBuilder, KubernetesAdapter
        >>> builder = GraphBuilder(KubernetesAdapter())
        >>> result = await builder.build_graph("service", "default", "web")
        >>> print(result.to_json(indent=2))
    """

    def __init__(
        self,
        client: K8sClientProtocol,
        settings: GraphSettings | None = None,
        result_cache: GraphResultCache | None = None,
        registry: LinkHandlerRegistry | None = None,
        discovery: DiscoveryClientProtocol | None = None,
    ):
        """
        Initialize the graph builder.

        Args:
            client: K8s client implementation
            settings: Build settings (defaults apply if None)
            result_cache: Cache for finished results, created on demand when
                the settings carry a TTL
            registry: Link handler registry for mesh objects (uses global if None)
            discovery: Discovery client for mesh groups; defaults to ``client``
                when it implements :class:`DiscoveryClientProtocol`
        """
        self.client = client
        self.settings = settings or GraphSettings()
        self.registry = registry or LinkHandlerRegistry.get_global()

        if discovery is None and isinstance(client, DiscoveryClientProtocol):
            discovery = client
        self.discovery = discovery

        if result_cache is None and self.settings.graph_cache_ttl_seconds > 0:
            result_cache = GraphResultCache()
        self.result_cache = result_cache

    async def build_graph(
        self,
        seed_kind: SeedKind | str,
        namespace: str,
        name: str,
        cluster_access: bool = False,
    ) -> GraphResult:
        """
        Build the graph for one seed resource.

        Args:
            seed_kind: ingress, service, deployment, replicaset, statefulset,
                daemonset or pod (case-insensitive)
            namespace: Namespace of the seed
            name: Name of the seed
            cluster_access: Caller may read cluster-scoped objects; enables
                namespace selector resolution for NetworkPolicy peers

        Returns:
            Serialized graph with any warnings collected along the way

        Raises:
            ValueError: A required argument is missing
            UnsupportedKindError: The seed kind cannot start a build
            NotFoundError: The seed does not exist
            K8sAPIError: A fatal API failure while expanding the seed
        """
        if not seed_kind:
            raise ValueError("kind is required")
        if not name:
            raise ValueError("name is required")
        if not namespace:
            raise ValueError("namespace is required")

        kind = parse_seed_kind(seed_kind)
        cache_key = graph_cache_key(kind.value, namespace, name, cluster_access)
        ttl = self.settings.graph_cache_ttl_seconds

        if self.result_cache is not None and ttl > 0:
            cached = self.result_cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Graph cache hit for {cache_key}")
                return cached.model_copy(deep=True)

        snapshot, warnings = await SnapshotCache.load(self.client, namespace, cluster_access)
        graph = TopologyGraph()
        resolver = ResourceResolver(self.client, snapshot)

        workloads = WorkloadDiscoverer(graph, resolver)
        add_seed = getattr(workloads, f"add_{kind.value}")
        warnings.extend(await add_seed(namespace, name))

        if self.settings.include_network_policies:
            namespaces = snapshot.items("Namespace") if snapshot.is_loaded("Namespace") else None
            policies = NetworkPolicyDiscoverer(graph, resolver, namespaces)
            warnings.extend(await policies.discover(namespace))

        if self.settings.include_mesh:
            if self.discovery is None:
                logger.debug("No discovery client configured, skipping mesh pass")
            else:
                mesh = MeshDiscoverer(
                    graph,
                    resolver,
                    self.discovery,
                    registry=self.registry,
                    cluster_domain=self.settings.cluster_domain,
                )
                warnings.extend(await mesh.discover(namespace))

        result = graph.serialize(warnings)

        logger.info(
            f"Built graph for {kind.value} {namespace}/{name} with "
            f"{graph.number_of_nodes()} nodes, {graph.number_of_edges()} edges "
            f"and {len(warnings)} warnings"
        )

        if self.result_cache is not None and ttl > 0:
            # Callers may overlay details on the returned result
            self.result_cache.set(cache_key, result.model_copy(deep=True), ttl)

        return result


def parse_seed_kind(seed_kind: SeedKind | str) -> SeedKind:
    """
    Normalize a seed kind.

    Raises:
        UnsupportedKindError: The kind is not one a build can start from
    """
    if isinstance(seed_kind, SeedKind):
        return seed_kind
    try:
        return SeedKind(seed_kind.strip().lower())
    except ValueError:
        raise UnsupportedKindError(f"unsupported kind for graph: {seed_kind}") from None
