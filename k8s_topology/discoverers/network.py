import logging
from typing import Any

from k8s_topology.discoverers.base import BaseDiscoverer
from k8s_topology.errors import InvalidSelectorError, TopologyError
from k8s_topology.graph import TopologyGraph
from k8s_topology.models import Relation
from k8s_topology.node_identity import resource_labels, resource_name
from k8s_topology.resolvers import ResourceResolver
from k8s_topology.selectors import LabelSelector

logger = logging.getLogger(__name__)


class NetworkPolicyDiscoverer(BaseDiscoverer):
    """
    Links every NetworkPolicy of a namespace to the pods and peers it governs.

    For each policy:
    - ``policy -selects-> pod`` for pods matched by ``spec.podSelector``
    - ``pod -blocked-by-> policy`` when the policy applies to ingress but
      declares no ingress rules (implicit deny), and ``egress-blocked-by``
      for the egress equivalent
    - ``allows-from`` / ``allows-to`` edges to the peers of every rule

    Peers in other namespaces are never enumerated; they are represented by
    a coarse ``<relation>-namespace`` edge to the Namespace node.
    """

    def __init__(
        self,
        graph: TopologyGraph,
        resolver: ResourceResolver,
        namespaces: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(graph, resolver)
        self.namespaces = namespaces

    async def discover(self, namespace: str) -> list[str]:
        warnings: list[str] = []
        try:
            policies = await self.resolver.list_network_policies(namespace)
        except TopologyError as e:
            return [f"networkpolicy list failed: {e}"]

        for policy in policies:
            await self._add_policy(namespace, policy, warnings)

        return warnings

    async def _add_policy(self, namespace: str, policy: dict[str, Any], warnings: list[str]) -> None:
        policy_name = resource_name(policy)
        policy_id = self.graph.add_node("NetworkPolicy", "", namespace, policy_name)
        spec = policy.get("spec") or {}

        try:
            selector = LabelSelector.parse(spec.get("podSelector") or {})
        except InvalidSelectorError as e:
            warnings.append(f"networkpolicy {policy_name} selector invalid: {e}")
            return

        try:
            pods = await self.resolver.pods_for_selector(namespace, selector)
        except TopologyError as e:
            warnings.append(f"networkpolicy {policy_name} pod lookup failed: {e}")
            return

        pod_ids = [self._add_pod_node(namespace, pod) for pod in pods]
        for pod_id in pod_ids:
            self.graph.add_edge(policy_id, pod_id, Relation.SELECTS)

        ingress_rules = spec.get("ingress") or []
        egress_rules = spec.get("egress") or []

        if policy_applies_ingress(policy) and not ingress_rules:
            for pod_id in pod_ids:
                self.graph.add_edge(pod_id, policy_id, Relation.BLOCKED_BY)
        if policy_applies_egress(policy) and not egress_rules:
            for pod_id in pod_ids:
                self.graph.add_edge(pod_id, policy_id, Relation.EGRESS_BLOCKED_BY)

        for rule in ingress_rules:
            for peer in rule.get("from") or []:
                await self.add_peer_edges(namespace, policy_id, peer, Relation.ALLOWS_FROM, warnings)
        for rule in egress_rules:
            for peer in rule.get("to") or []:
                await self.add_peer_edges(namespace, policy_id, peer, Relation.ALLOWS_TO, warnings)

    async def add_peer_edges(
        self,
        namespace: str,
        policy_id: str,
        peer: dict[str, Any],
        relation: Relation,
        warnings: list[str],
    ) -> None:
        """Resolve one ``from``/``to`` peer entry into edges from the policy."""
        namespace_relation = f"{relation.value}-namespace"

        ip_block = peer.get("ipBlock")
        if ip_block and ip_block.get("cidr"):
            details = {"except": list(ip_block["except"])} if ip_block.get("except") else None
            ip_id = self.graph.add_node("IPBlock", "", "", ip_block["cidr"], details)
            self.graph.add_edge(policy_id, ip_id, relation)

        namespace_selector = peer.get("namespaceSelector")
        target_namespaces = self._target_namespaces(namespace_selector, warnings)
        if not target_namespaces:
            target_namespaces = [namespace]

        pod_selector_doc = peer.get("podSelector")
        if pod_selector_doc is None:
            if namespace_selector is not None:
                for target in target_namespaces:
                    ns_id = self.graph.add_node("Namespace", "", "", target)
                    self.graph.add_edge(policy_id, ns_id, namespace_relation)
            return

        try:
            pod_selector = LabelSelector.parse(pod_selector_doc)
        except InvalidSelectorError as e:
            warnings.append(f"networkpolicy pod selector invalid: {e}")
            return

        for target in target_namespaces:
            if target != namespace:
                ns_id = self.graph.add_node("Namespace", "", "", target)
                self.graph.add_edge(policy_id, ns_id, namespace_relation)
                continue
            try:
                pods = await self.resolver.pods_for_selector(target, pod_selector)
            except TopologyError as e:
                warnings.append(f"networkpolicy peer pod lookup failed: {e}")
                continue
            for pod in pods:
                pod_id = self._add_pod_node(target, pod)
                self.graph.add_edge(policy_id, pod_id, relation)

    def _target_namespaces(
        self, namespace_selector: dict[str, Any] | None, warnings: list[str]
    ) -> list[str]:
        if namespace_selector is None:
            return []
        try:
            selector = LabelSelector.parse(namespace_selector)
        except InvalidSelectorError as e:
            warnings.append(f"networkpolicy namespace selector invalid: {e}")
            return []
        if self.namespaces is None:
            warnings.append("namespace selector present but namespaces not available")
            return []
        return [
            resource_name(ns) for ns in self.namespaces if selector.matches(resource_labels(ns))
        ]


def policy_applies_ingress(policy: dict[str, Any]) -> bool:
    policy_types = (policy.get("spec") or {}).get("policyTypes") or []
    if not policy_types:
        return True
    return "Ingress" in policy_types


def policy_applies_egress(policy: dict[str, Any]) -> bool:
    policy_types = (policy.get("spec") or {}).get("policyTypes") or []
    return "Egress" in policy_types
