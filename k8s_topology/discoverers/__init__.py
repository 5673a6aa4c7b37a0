from k8s_topology.discoverers.base import BaseDiscoverer
from k8s_topology.discoverers.mesh import MeshDiscoverer, build_service_index
from k8s_topology.discoverers.network import NetworkPolicyDiscoverer
from k8s_topology.discoverers.registry import LinkHandlerRegistry
from k8s_topology.discoverers.workloads import WorkloadDiscoverer

__all__ = [
    "BaseDiscoverer",
    "WorkloadDiscoverer",
    "NetworkPolicyDiscoverer",
    "MeshDiscoverer",
    "LinkHandlerRegistry",
    "build_service_index",
]
