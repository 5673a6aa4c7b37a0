import logging
from typing import Any

from k8s_topology.discoverers.base import BaseDiscoverer
from k8s_topology.errors import InvalidSelectorError, NotFoundError, TopologyError
from k8s_topology.models import Relation
from k8s_topology.node_identity import NodeIdentity, first_owner, resource_labels, resource_name
from k8s_topology.selectors import LabelSelector

logger = logging.getLogger(__name__)


class WorkloadDiscoverer(BaseDiscoverer):
    """
    Per-kind expansion of core workloads from a seed resource.

    Handles the chains:
    - Ingress -> Service (default backend and every rule path)
    - Service -> Endpoints -> Pod, and Service -> (selector) -> Pod
    - Deployment -> ReplicaSet -> Pod
    - ReplicaSet / StatefulSet / DaemonSet -> Pod
    - Pod -> owner chain (first owner reference only)

    Every ``add_*`` method returns a list of warnings. A missing seed raises
    :class:`NotFoundError`; a missing resource reached while expanding
    becomes a warning and only that branch is skipped.
    """

    async def add_ingress(self, namespace: str, name: str) -> list[str]:
        warnings: list[str] = []
        ingress = await self.resolver.get_ingress(namespace, name)
        ingress_id = self.graph.add_node("Ingress", "", namespace, resource_name(ingress))

        services = ingress_backend_services(ingress)
        if not services:
            warnings.append("ingress has no backend services")

        for service_name in services:
            service_id = self.graph.add_node("Service", "", namespace, service_name)
            self.graph.add_edge(ingress_id, service_id, Relation.ROUTES_TO)
            try:
                warnings.extend(await self.add_service(namespace, service_name))
            except NotFoundError:
                warnings.append(f"service not found: {service_name}")

        return warnings

    async def add_service(self, namespace: str, name: str) -> list[str]:
        warnings: list[str] = []
        service = await self.resolver.get_service(namespace, name)
        service_id = self.graph.add_node("Service", "", namespace, resource_name(service))

        try:
            endpoints = await self.resolver.get_endpoints(namespace, name)
        except NotFoundError:
            warnings.append("endpoints not found for service")
        else:
            endpoints_id = self.graph.add_node("Endpoints", "", namespace, resource_name(endpoints))
            self.graph.add_edge(service_id, endpoints_id, Relation.SELECTS)
            for pod_name in pods_from_endpoints(endpoints):
                await self._expand_pod(namespace, pod_name, warnings)
                pod_id = self.graph.add_node("Pod", "", namespace, pod_name)
                self.graph.add_edge(endpoints_id, pod_id, Relation.TARGETS)

        selector_labels = (service.get("spec") or {}).get("selector") or {}
        if not selector_labels:
            warnings.append("service has no selector")
            return warnings

        try:
            selector = LabelSelector.from_set(selector_labels)
        except InvalidSelectorError as e:
            warnings.append(f"service {name} selector invalid: {e}")
            return warnings

        for pod in await self.resolver.pods_for_selector(namespace, selector):
            pod_id = self._add_pod_node(namespace, pod)
            self.graph.add_edge(service_id, pod_id, Relation.SELECTS)
            await self._expand_pod(namespace, resource_name(pod), warnings)

        return warnings

    async def add_deployment(self, namespace: str, name: str) -> list[str]:
        warnings: list[str] = []
        deployment = await self.resolver.get_deployment(namespace, name)
        deployment_name = resource_name(deployment)
        deployment_id = self.graph.add_node(
            "Deployment", "", namespace, deployment_name, NodeIdentity.replica_details(deployment)
        )

        spec = deployment.get("spec") or {}
        selector = self._parse_selector(spec.get("selector"), f"deployment {deployment_name}", warnings)
        if selector is not None:
            for rs in await self.resolver.replicasets_for_selector(namespace, selector):
                owner = first_owner(rs)
                if not owner or owner.get("kind") != "Deployment" or owner.get("name") != deployment_name:
                    continue
                rs_id = self.graph.add_node(
                    "ReplicaSet", "", namespace, resource_name(rs), NodeIdentity.replica_details(rs)
                )
                self.graph.add_edge(deployment_id, rs_id, Relation.OWNS)
                warnings.extend(await self._add_replicaset_pods(namespace, rs))

        warnings.extend(
            await self.link_services_for_labels(
                namespace, _template_labels(deployment), "Deployment", deployment_name
            )
        )
        return warnings

    async def add_replicaset(self, namespace: str, name: str) -> list[str]:
        warnings: list[str] = []
        rs = await self.resolver.get_replicaset(namespace, name)
        rs_name = resource_name(rs)
        rs_id = self.graph.add_node(
            "ReplicaSet", "", namespace, rs_name, NodeIdentity.replica_details(rs)
        )

        owner = first_owner(rs)
        if owner and owner.get("kind") == "Deployment" and owner.get("name"):
            deployment_id = self.graph.add_node("Deployment", "", namespace, owner["name"])
            self.graph.add_edge(rs_id, deployment_id, Relation.OWNED_BY)

        warnings.extend(await self._add_replicaset_pods(namespace, rs))
        warnings.extend(
            await self.link_services_for_labels(namespace, _template_labels(rs), "ReplicaSet", rs_name)
        )
        return warnings

    async def add_statefulset(self, namespace: str, name: str) -> list[str]:
        warnings: list[str] = []
        statefulset = await self.resolver.get_statefulset(namespace, name)
        ss_name = resource_name(statefulset)
        ss_id = self.graph.add_node(
            "StatefulSet", "", namespace, ss_name, NodeIdentity.replica_details(statefulset)
        )

        spec = statefulset.get("spec") or {}
        await self._add_selected_pods(namespace, ss_id, spec.get("selector"), f"statefulset {ss_name}", warnings)

        service_name = spec.get("serviceName")
        if service_name:
            service_id = self.graph.add_node("Service", "", namespace, service_name)
            self.graph.add_edge(ss_id, service_id, Relation.HEADLESS_SERVICE)
            try:
                warnings.extend(await self.add_service(namespace, service_name))
            except NotFoundError:
                warnings.append(f"service not found: {service_name}")

        warnings.extend(
            await self.link_services_for_labels(
                namespace, _template_labels(statefulset), "StatefulSet", ss_name
            )
        )
        return warnings

    async def add_daemonset(self, namespace: str, name: str) -> list[str]:
        warnings: list[str] = []
        daemonset = await self.resolver.get_daemonset(namespace, name)
        ds_name = resource_name(daemonset)
        ds_id = self.graph.add_node(
            "DaemonSet", "", namespace, ds_name, NodeIdentity.daemonset_details(daemonset)
        )

        spec = daemonset.get("spec") or {}
        await self._add_selected_pods(namespace, ds_id, spec.get("selector"), f"daemonset {ds_name}", warnings)

        warnings.extend(
            await self.link_services_for_labels(
                namespace, _template_labels(daemonset), "DaemonSet", ds_name
            )
        )
        return warnings

    async def add_pod(self, namespace: str, name: str) -> list[str]:
        warnings: list[str] = []
        pod = await self.resolver.get_pod(namespace, name)
        pod_name = resource_name(pod)
        pod_id = self._add_pod_node(namespace, pod)

        owner = first_owner(pod)
        if owner is None or not owner.get("kind") or not owner.get("name"):
            warnings.append("pod has no owner references")
        else:
            await self._link_pod_owner(namespace, pod_id, owner, warnings)

        warnings.extend(
            await self.link_services_for_labels(namespace, resource_labels(pod), "Pod", pod_name)
        )
        return warnings

    async def link_services_for_labels(
        self,
        namespace: str,
        labels: dict[str, str],
        target_kind: str,
        target_name: str,
    ) -> list[str]:
        """
        Add ``service -selects-> workload`` for every service matching the labels.

        Services with an empty selector never match.
        """
        warnings: list[str] = []
        if not labels:
            return warnings

        try:
            services = await self.resolver.list_services(namespace)
        except TopologyError as e:
            return [f"failed to list services: {e}"]

        for service in services:
            selector_labels = (service.get("spec") or {}).get("selector") or {}
            if not selector_labels:
                continue
            try:
                selector = LabelSelector.from_set(selector_labels)
            except InvalidSelectorError as e:
                logger.debug(f"Skipping service {resource_name(service)}: {e}")
                continue
            if selector.matches(labels):
                service_id = self.graph.add_node("Service", "", namespace, resource_name(service))
                target_id = self.graph.add_node(target_kind, "", namespace, target_name)
                self.graph.add_edge(service_id, target_id, Relation.SELECTS)

        return warnings

    async def _link_pod_owner(
        self,
        namespace: str,
        pod_id: str,
        owner: dict[str, Any],
        warnings: list[str],
    ) -> None:
        owner_kind = owner["kind"]
        owner_name = owner["name"]
        owner_id = self.graph.add_node(owner_kind, "", namespace, owner_name)
        self.graph.add_edge(pod_id, owner_id, Relation.OWNED_BY)

        if owner_kind != "ReplicaSet":
            return

        try:
            rs = await self.resolver.get_replicaset(namespace, owner_name)
        except NotFoundError:
            logger.debug(f"ReplicaSet {owner_name} owning pod not found, stopping owner chain")
            return
        except TopologyError as e:
            warnings.append(f"replicaset lookup failed: {owner_name}: {e}")
            return

        deployment_owner = first_owner(rs)
        if deployment_owner and deployment_owner.get("kind") == "Deployment" and deployment_owner.get("name"):
            deployment_id = self.graph.add_node("Deployment", "", namespace, deployment_owner["name"])
            self.graph.add_edge(owner_id, deployment_id, Relation.OWNED_BY)

    async def _add_replicaset_pods(self, namespace: str, rs: dict[str, Any]) -> list[str]:
        warnings: list[str] = []
        rs_name = resource_name(rs)
        rs_id = self.graph.add_node("ReplicaSet", "", namespace, rs_name)
        selector = (rs.get("spec") or {}).get("selector")
        await self._add_selected_pods(namespace, rs_id, selector, f"replicaset {rs_name}", warnings)
        return warnings

    async def _add_selected_pods(
        self,
        namespace: str,
        owner_id: str,
        selector_doc: dict[str, Any] | None,
        owner: str,
        warnings: list[str],
    ) -> None:
        selector = self._parse_selector(selector_doc, owner, warnings)
        if selector is None:
            return
        for pod in await self.resolver.pods_for_selector(namespace, selector):
            pod_id = self._add_pod_node(namespace, pod)
            self.graph.add_edge(owner_id, pod_id, Relation.OWNS)
            await self._expand_pod(namespace, resource_name(pod), warnings)

    async def _expand_pod(self, namespace: str, name: str, warnings: list[str]) -> None:
        try:
            warnings.extend(await self.add_pod(namespace, name))
        except NotFoundError:
            warnings.append(f"pod not found: {name}")


def ingress_backend_services(ingress: dict[str, Any]) -> list[str]:
    """Backend service names of an Ingress, deduplicated and sorted."""
    found: set[str] = set()
    spec = ingress.get("spec") or {}

    default_backend = spec.get("defaultBackend") or spec.get("backend") or {}
    service_name = _backend_service_name(default_backend)
    if service_name:
        found.add(service_name)

    for rule in spec.get("rules") or []:
        http = rule.get("http") or {}
        for path in http.get("paths") or []:
            service_name = _backend_service_name(path.get("backend") or {})
            if service_name:
                found.add(service_name)

    return sorted(found)


def pods_from_endpoints(endpoints: dict[str, Any]) -> list[str]:
    """Names of the pods an Endpoints object points at, deduplicated and sorted."""
    found: set[str] = set()
    for subset in endpoints.get("subsets") or []:
        for address in subset.get("addresses") or []:
            target_ref = address.get("targetRef") or {}
            if target_ref.get("kind") == "Pod" and target_ref.get("name"):
                found.add(target_ref["name"])
    return sorted(found)


def _backend_service_name(backend: dict[str, Any]) -> str | None:
    service = backend.get("service") or {}
    # extensions/v1beta1 backends use serviceName
    return service.get("name") or backend.get("serviceName")


def _template_labels(resource: dict[str, Any]) -> dict[str, str]:
    template = (resource.get("spec") or {}).get("template") or {}
    return (template.get("metadata") or {}).get("labels") or {}
