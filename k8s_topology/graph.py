import logging
from typing import Any

import networkx as nx

from k8s_topology.models import GraphEdge, GraphNode, GraphResult, Relation
from k8s_topology.node_identity import NodeIdentity

logger = logging.getLogger(__name__)


class TopologyGraph:
    """
    Deduplicated vertex store plus an append-only edge list.

    Backed by a NetworkX ``MultiDiGraph``: nodes are unique by identity key,
    edges are never deduplicated, so the same logical edge added by two
    independent code paths appears twice. Each edge carries a ``seq``
    attribute recording insertion order.

    Example:
        >>> graph = TopologyGraph()
        >>> svc = graph.add_node("Service", "", "default", "api")
        >>> pod = graph.add_node("Pod", "", "default", "api-1", {"phase": "Running"})
        >>> graph.add_edge(svc, pod, Relation.SELECTS)
        >>> graph.serialize().to_dict()["edges"]
        [{'from': 'service/default/api', 'to': 'pod/default/api-1', 'relation': 'selects'}]
    """

    def __init__(self) -> None:
        self._graph = nx.MultiDiGraph()
        self._seq = 0

    def add_node(
        self,
        kind: str,
        group: str,
        namespace: str,
        name: str,
        details: dict[str, Any] | None = None,
    ) -> str:
        """
        Insert a node if its identity key is new and return the key.

        Details are only recorded on first insertion; later insertions of the
        same key leave the existing node untouched.
        """
        if not name:
            raise ValueError(f"cannot add {kind} node without a name")

        node_id = NodeIdentity.node_id(kind, group, namespace, name)
        if not self._graph.has_node(node_id):
            self._graph.add_node(
                node_id,
                kind=kind,
                group=group,
                namespace=namespace,
                name=name,
                details=dict(details) if details else None,
            )
            logger.debug(f"Added node: {node_id}")
        return node_id

    def add_edge(self, from_id: str, to_id: str, relation: Relation | str) -> None:
        relation = relation.value if isinstance(relation, Relation) else relation
        self._graph.add_edge(from_id, to_id, relation=relation, seq=self._seq)
        self._seq += 1
        logger.debug(f"Added edge: {from_id} --[{relation}]--> {to_id}")

    def has_node(self, node_id: str) -> bool:
        return self._graph.has_node(node_id)

    def get_node(self, node_id: str) -> GraphNode | None:
        if not self._graph.has_node(node_id):
            return None
        return GraphNode(id=node_id, **self._graph.nodes[node_id])

    def number_of_nodes(self) -> int:
        return self._graph.number_of_nodes()

    def number_of_edges(self) -> int:
        return self._graph.number_of_edges()

    def edges(self) -> list[GraphEdge]:
        """Edges in insertion order."""
        ordered = sorted(self._graph.edges(data=True), key=lambda edge: edge[2]["seq"])
        return [
            GraphEdge(source=source, target=target, relation=attrs["relation"])
            for source, target, attrs in ordered
        ]

    def serialize(self, warnings: list[str] | None = None) -> GraphResult:
        nodes = [
            GraphNode(id=node_id, **attrs)
            for node_id, attrs in sorted(self._graph.nodes(data=True), key=lambda node: node[0])
        ]
        return GraphResult(nodes=nodes, edges=self.edges(), warnings=list(warnings or []))

    def to_networkx(self) -> nx.MultiDiGraph:
        """Return a copy of the backing multigraph for traversal by consumers."""
        return self._graph.copy()
