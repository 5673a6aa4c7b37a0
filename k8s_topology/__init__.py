"""
k8s-topology: connectivity graphs around Kubernetes resources.

Starting from a seed (ingress, service, workload or pod) the builder links
core workloads, NetworkPolicy rules and service-mesh/gateway custom
resources into one directed multigraph, returning recoverable problems as
warnings next to the graph.

Example:
    >>> from k8s_topology import GraphBuilder, KubernetesAdapter
    >>> builder = GraphBuilder(KubernetesAdapter())
    >>> result = await builder.build_graph("deployment", "default", "web")
    >>> result.to_dict()["nodes"][0]["id"]
"""

from k8s_topology.adapters import KubernetesAdapter
from k8s_topology.builder import GraphBuilder, parse_seed_kind
from k8s_topology.cache import GraphResultCache, graph_cache_key
from k8s_topology.config import load_settings
from k8s_topology.discoverers import (
    LinkHandlerRegistry,
    MeshDiscoverer,
    NetworkPolicyDiscoverer,
    WorkloadDiscoverer,
    build_service_index,
)
from k8s_topology.discoverers.handlers import BaseLinkHandler, LinkContext, parse_spiffe_principal
from k8s_topology.errors import (
    InvalidSelectorError,
    K8sAPIError,
    NotFoundError,
    TopologyError,
    UnsupportedKindError,
)
from k8s_topology.graph import TopologyGraph
from k8s_topology.models import (
    GraphEdge,
    GraphNode,
    GraphResult,
    GraphSettings,
    GroupResource,
    Relation,
    ResourceIdentifier,
    SeedKind,
)
from k8s_topology.node_identity import NodeIdentity
from k8s_topology.protocols import DiscoveryClientProtocol, K8sClientProtocol
from k8s_topology.resolvers import ResourceResolver
from k8s_topology.selectors import LabelSelector, Requirement
from k8s_topology.snapshot import SnapshotCache

__version__ = "0.1.0"

__all__ = [
    "GraphBuilder",
    "parse_seed_kind",
    "KubernetesAdapter",
    "K8sClientProtocol",
    "DiscoveryClientProtocol",
    "TopologyGraph",
    "NodeIdentity",
    "SnapshotCache",
    "ResourceResolver",
    "LabelSelector",
    "Requirement",
    "WorkloadDiscoverer",
    "NetworkPolicyDiscoverer",
    "MeshDiscoverer",
    "LinkHandlerRegistry",
    "BaseLinkHandler",
    "LinkContext",
    "build_service_index",
    "parse_spiffe_principal",
    "GraphResultCache",
    "graph_cache_key",
    "load_settings",
    "GraphNode",
    "GraphEdge",
    "GraphResult",
    "GraphSettings",
    "GroupResource",
    "Relation",
    "ResourceIdentifier",
    "SeedKind",
    "TopologyError",
    "NotFoundError",
    "K8sAPIError",
    "InvalidSelectorError",
    "UnsupportedKindError",
]
