import logging
from typing import Any

from k8s_topology.errors import InvalidSelectorError
from k8s_topology.graph import TopologyGraph
from k8s_topology.node_identity import NodeIdentity, resource_name
from k8s_topology.resolvers import ResourceResolver
from k8s_topology.selectors import LabelSelector

logger = logging.getLogger(__name__)


class BaseDiscoverer:
    """
    Common state for the passes that grow a graph.

    A discoverer is created per build: it shares that build's graph and
    resolver (and through it the snapshot cache) with the other passes, and
    returns recoverable failures as warning strings instead of raising.
    """

    def __init__(self, graph: TopologyGraph, resolver: ResourceResolver) -> None:
        self.graph = graph
        self.resolver = resolver

    def _add_pod_node(self, namespace: str, pod: dict[str, Any]) -> str:
        return self.graph.add_node(
            "Pod", "", namespace, resource_name(pod), NodeIdentity.pod_details(pod)
        )

    def _parse_selector(
        self,
        selector: dict[str, Any] | None,
        owner: str,
        warnings: list[str],
    ) -> LabelSelector | None:
        """
        Parse a label selector, recording a warning when it is malformed.

        Returns:
            The parsed selector, or None if it is invalid
        """
        try:
            return LabelSelector.parse(selector)
        except InvalidSelectorError as e:
            logger.warning(f"{owner} selector invalid: {e}")
            warnings.append(f"{owner} selector invalid: {e}")
            return None
