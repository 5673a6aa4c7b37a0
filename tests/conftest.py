"""Shared test fixtures for k8s-topology tests."""

from typing import Any

import pytest

from k8s_topology.discoverers.registry import LinkHandlerRegistry
from k8s_topology.errors import NotFoundError, TopologyError
from k8s_topology.models import GroupResource, ResourceIdentifier

API_VERSIONS = {
    "Service": "v1",
    "Endpoints": "v1",
    "Pod": "v1",
    "Namespace": "v1",
    "Deployment": "apps/v1",
    "ReplicaSet": "apps/v1",
    "StatefulSet": "apps/v1",
    "DaemonSet": "apps/v1",
    "Ingress": "networking.k8s.io/v1",
    "NetworkPolicy": "networking.k8s.io/v1",
}


class MockK8sClient:
    """
    In-memory cluster implementing both client protocols.

    Tracks API call statistics and every list call made, and lets tests
    inject failures per kind, per group or for discovery as a whole.
    """

    def __init__(self):
        self.resources: dict[tuple[str, str | None, str], dict[str, Any]] = {}
        self.api_groups: list[str] = []
        self.group_resources: dict[str, list[GroupResource]] = {}
        self.group_objects: dict[tuple[str, str], list[dict[str, Any]]] = {}

        self.list_errors: dict[str, TopologyError] = {}
        self.get_errors: dict[str, TopologyError] = {}
        self.discovery_error: TopologyError | None = None
        self.group_resource_errors: dict[str, TopologyError] = {}
        self.group_object_errors: dict[str, TopologyError] = {}

        self.list_calls: list[tuple[str, str | None, str | None]] = []
        self._api_call_stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> dict[str, int]:
        return {
            "get_resource": 0,
            "list_resources": 0,
            "discovery": 0,
            "list_group_objects": 0,
            "total": 0,
        }

    def _count(self, operation: str) -> None:
        self._api_call_stats[operation] += 1
        self._api_call_stats["total"] += 1

    async def get_resource(self, resource_id: ResourceIdentifier) -> dict[str, Any] | None:
        self._count("get_resource")
        if resource_id.kind in self.get_errors:
            raise self.get_errors[resource_id.kind]
        key = (resource_id.kind, resource_id.namespace, resource_id.name)
        return self.resources.get(key)

    async def list_resources(
        self,
        kind: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        self._count("list_resources")
        self.list_calls.append((kind, namespace, label_selector))
        if kind in self.list_errors:
            raise self.list_errors[kind]

        results = []
        for (res_kind, res_ns, _), resource in self.resources.items():
            if res_kind != kind:
                continue
            if namespace and res_ns != namespace:
                continue
            if label_selector and not _matches_query(resource, label_selector):
                continue
            results.append(resource)

        return results, {"resourceVersion": "12345"}

    async def get_api_groups(self) -> list[str]:
        self._count("discovery")
        if self.discovery_error is not None:
            raise self.discovery_error
        return sorted(self.api_groups)

    async def get_group_resources(self, group: str) -> list[GroupResource]:
        self._count("discovery")
        if group in self.group_resource_errors:
            raise self.group_resource_errors[group]
        return list(self.group_resources.get(group, []))

    async def list_group_objects(
        self,
        resource: GroupResource,
        namespace: str | None = None,
    ) -> list[dict[str, Any]]:
        self._count("list_group_objects")
        if resource.resource in self.group_object_errors:
            raise self.group_object_errors[resource.resource]
        key = (resource.group, resource.resource)
        if key not in self.group_objects:
            raise NotFoundError(resource.kind, "*", namespace)
        return [
            obj
            for obj in self.group_objects[key]
            if namespace is None or obj["metadata"].get("namespace") == namespace
        ]

    def get_api_call_stats(self) -> dict[str, int]:
        return self._api_call_stats.copy()

    def reset_api_call_stats(self) -> None:
        self._api_call_stats = self._empty_stats()
        self.list_calls = []

    def add_resource(self, resource: dict[str, Any]) -> dict[str, Any]:
        kind = resource["kind"]
        metadata = resource.get("metadata", {})
        self.resources[(kind, metadata.get("namespace"), metadata["name"])] = resource
        return resource

    def _add(
        self,
        kind: str,
        name: str,
        namespace: str | None,
        labels: dict[str, str] | None = None,
        owner: tuple[str, str] | None = None,
        **body: Any,
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {"name": name}
        if namespace:
            metadata["namespace"] = namespace
        if labels:
            metadata["labels"] = dict(labels)
        if owner:
            metadata["ownerReferences"] = [
                {"kind": owner[0], "name": owner[1], "uid": f"{owner[1]}-uid"}
            ]
        resource = {"apiVersion": API_VERSIONS[kind], "kind": kind, "metadata": metadata}
        resource.update(body)
        return self.add_resource(resource)

    def add_pod(
        self,
        name: str,
        labels: dict[str, str] | None = None,
        owner: tuple[str, str] | None = None,
        phase: str = "Running",
        namespace: str = "default",
    ) -> dict[str, Any]:
        return self._add(
            "Pod", name, namespace, labels, owner,
            spec={"containers": [{"name": "app", "image": "nginx:1.25"}]},
            status={"phase": phase},
        )

    def add_service(
        self,
        name: str,
        selector: dict[str, str] | None = None,
        namespace: str = "default",
    ) -> dict[str, Any]:
        spec: dict[str, Any] = {"type": "ClusterIP", "ports": [{"port": 80}]}
        if selector is not None:
            spec["selector"] = dict(selector)
        return self._add("Service", name, namespace, spec=spec)

    def add_endpoints(
        self,
        name: str,
        pod_names: list[str],
        namespace: str = "default",
    ) -> dict[str, Any]:
        addresses = [
            {"ip": f"10.0.0.{i + 1}", "targetRef": {"kind": "Pod", "name": pod, "namespace": namespace}}
            for i, pod in enumerate(pod_names)
        ]
        return self._add("Endpoints", name, namespace, subsets=[{"addresses": addresses}])

    def add_deployment(
        self,
        name: str,
        labels: dict[str, str],
        replicas: int = 2,
        ready: int = 2,
        namespace: str = "default",
    ) -> dict[str, Any]:
        return self._add(
            "Deployment", name, namespace, labels,
            spec={
                "replicas": replicas,
                "selector": {"matchLabels": dict(labels)},
                "template": {"metadata": {"labels": dict(labels)}},
            },
            status={"readyReplicas": ready},
        )

    def add_replicaset(
        self,
        name: str,
        labels: dict[str, str],
        owner: tuple[str, str] | None = None,
        replicas: int = 2,
        ready: int = 2,
        namespace: str = "default",
    ) -> dict[str, Any]:
        return self._add(
            "ReplicaSet", name, namespace, labels, owner,
            spec={
                "replicas": replicas,
                "selector": {"matchLabels": dict(labels)},
                "template": {"metadata": {"labels": dict(labels)}},
            },
            status={"readyReplicas": ready},
        )

    def add_statefulset(
        self,
        name: str,
        labels: dict[str, str],
        service_name: str | None = None,
        replicas: int = 1,
        namespace: str = "default",
    ) -> dict[str, Any]:
        spec: dict[str, Any] = {
            "replicas": replicas,
            "selector": {"matchLabels": dict(labels)},
            "template": {"metadata": {"labels": dict(labels)}},
        }
        if service_name:
            spec["serviceName"] = service_name
        return self._add(
            "StatefulSet", name, namespace, labels, spec=spec, status={"readyReplicas": replicas}
        )

    def add_daemonset(
        self,
        name: str,
        labels: dict[str, str],
        namespace: str = "default",
    ) -> dict[str, Any]:
        return self._add(
            "DaemonSet", name, namespace, labels,
            spec={
                "selector": {"matchLabels": dict(labels)},
                "template": {"metadata": {"labels": dict(labels)}},
            },
            status={"numberReady": 3, "desiredNumberScheduled": 4},
        )

    def add_ingress(
        self,
        name: str,
        backends: list[str],
        default_backend: str | None = None,
        namespace: str = "default",
    ) -> dict[str, Any]:
        spec: dict[str, Any] = {
            "rules": [
                {
                    "host": "example.com",
                    "http": {
                        "paths": [
                            {
                                "path": f"/{backend}",
                                "pathType": "Prefix",
                                "backend": {"service": {"name": backend, "port": {"number": 80}}},
                            }
                            for backend in backends
                        ]
                    },
                }
            ]
        }
        if default_backend:
            spec["defaultBackend"] = {"service": {"name": default_backend, "port": {"number": 80}}}
        return self._add("Ingress", name, namespace, spec=spec)

    def add_network_policy(
        self,
        name: str,
        spec: dict[str, Any],
        namespace: str = "default",
    ) -> dict[str, Any]:
        return self._add("NetworkPolicy", name, namespace, spec=spec)

    def add_namespace(self, name: str, labels: dict[str, str] | None = None) -> dict[str, Any]:
        return self._add("Namespace", name, None, labels)

    def add_group_resource(self, resource: GroupResource) -> None:
        if resource.group not in self.api_groups:
            self.api_groups.append(resource.group)
        self.group_resources.setdefault(resource.group, []).append(resource)
        self.group_objects.setdefault((resource.group, resource.resource), [])

    def add_mesh_object(
        self,
        resource: GroupResource,
        name: str,
        spec: dict[str, Any] | None = None,
        namespace: str | None = "default",
    ) -> dict[str, Any]:
        if resource not in self.group_resources.get(resource.group, []):
            self.add_group_resource(resource)
        metadata: dict[str, Any] = {"name": name}
        if namespace and resource.namespaced:
            metadata["namespace"] = namespace
        obj = {
            "apiVersion": resource.api_version,
            "kind": resource.kind,
            "metadata": metadata,
            "spec": spec or {},
        }
        self.group_objects[(resource.group, resource.resource)].append(obj)
        return obj


def _matches_query(resource: dict[str, Any], query: str) -> bool:
    labels = resource.get("metadata", {}).get("labels") or {}
    for part in query.split(","):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        if labels.get(key.strip()) != value.strip():
            return False
    return True


VIRTUAL_SERVICE = GroupResource(
    group="networking.istio.io", version="v1beta1", resource="virtualservices", kind="VirtualService"
)
DESTINATION_RULE = GroupResource(
    group="networking.istio.io", version="v1beta1", resource="destinationrules", kind="DestinationRule"
)
ISTIO_GATEWAY = GroupResource(
    group="networking.istio.io", version="v1beta1", resource="gateways", kind="Gateway"
)
SIDECAR = GroupResource(
    group="networking.istio.io", version="v1beta1", resource="sidecars", kind="Sidecar"
)
AUTHORIZATION_POLICY = GroupResource(
    group="security.istio.io",
    version="v1",
    resource="authorizationpolicies",
    kind="AuthorizationPolicy",
)
HTTP_ROUTE = GroupResource(
    group="gateway.networking.k8s.io", version="v1", resource="httproutes", kind="HTTPRoute"
)
GATEWAY_CLASS = GroupResource(
    group="gateway.networking.k8s.io",
    version="v1",
    resource="gatewayclasses",
    kind="GatewayClass",
    namespaced=False,
)
SERVICE_PROFILE = GroupResource(
    group="linkerd.io", version="v1alpha2", resource="serviceprofiles", kind="ServiceProfile"
)
SERVER_AUTHORIZATION = GroupResource(
    group="policy.linkerd.io",
    version="v1beta1",
    resource="serverauthorizations",
    kind="ServerAuthorization",
)
AUTHORIZATION_POLICY_LINKERD = GroupResource(
    group="policy.linkerd.io",
    version="v1alpha1",
    resource="authorizationpolicies",
    kind="AuthorizationPolicy",
)


@pytest.fixture
def mock_client() -> MockK8sClient:
    """Empty in-memory cluster."""
    return MockK8sClient()


@pytest.fixture
def web_cluster(mock_client) -> MockK8sClient:
    """
    One Deployment behind one Service in namespace default.

    service/web -> endpoints/web -> pods web-7d4f-1, web-7d4f-2, both owned by
    replicaset web-7d4f, owned by deployment web.
    """
    labels = {"app": "web"}
    pod_labels = {"app": "web", "pod-template-hash": "7d4f"}

    mock_client.add_deployment("web", labels)
    mock_client.add_replicaset("web-7d4f", pod_labels, owner=("Deployment", "web"))
    mock_client.add_pod("web-7d4f-1", pod_labels, owner=("ReplicaSet", "web-7d4f"))
    mock_client.add_pod("web-7d4f-2", pod_labels, owner=("ReplicaSet", "web-7d4f"))
    mock_client.add_service("web", selector=labels)
    mock_client.add_endpoints("web", ["web-7d4f-1", "web-7d4f-2"])
    return mock_client


@pytest.fixture
def test_registry() -> LinkHandlerRegistry:
    """Fresh link handler registry with the built-in handlers."""
    return LinkHandlerRegistry.with_defaults()


@pytest.fixture(autouse=True)
def reset_global_registry():
    """Ensure tests never leak handlers into the global registry."""
    yield
    LinkHandlerRegistry._global_registry = None
