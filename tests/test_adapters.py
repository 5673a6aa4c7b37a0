"""Tests for k8s_topology.adapters."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from kubernetes.client.rest import ApiException

from k8s_topology.adapters import KubernetesAdapter
from k8s_topology.errors import K8sAPIError, NotFoundError
from k8s_topology.models import GroupResource, ResourceIdentifier
from k8s_topology.protocols import DiscoveryClientProtocol, K8sClientProtocol
from tests.conftest import MockK8sClient


@pytest.fixture
def adapter():
    api_client = MagicMock()
    api_client.sanitize_for_serialization.side_effect = lambda obj: obj
    adapter = KubernetesAdapter(api_client=api_client)
    adapter._apis = {"core": MagicMock(), "apps": MagicMock(), "networking": MagicMock()}
    adapter._groups_api = MagicMock()
    adapter._custom_api = MagicMock()
    return adapter


def api_groups(*groups):
    return SimpleNamespace(
        groups=[
            SimpleNamespace(name=name, preferred_version=SimpleNamespace(version=version))
            for name, version in groups
        ]
    )


def test_protocol_checks(adapter):
    """Test the adapter and the mock client implement both protocols."""
    assert isinstance(adapter, K8sClientProtocol)
    assert isinstance(adapter, DiscoveryClientProtocol)
    assert isinstance(MockK8sClient(), K8sClientProtocol)
    assert isinstance(MockK8sClient(), DiscoveryClientProtocol)


@pytest.mark.asyncio
async def test_get_resource_sets_type_fields(adapter):
    """Test kind and apiVersion are filled in on returned objects."""
    adapter._apis["apps"].read_namespaced_deployment.return_value = {
        "metadata": {"name": "web", "namespace": "default"}
    }

    obj = await adapter.get_resource(
        ResourceIdentifier(kind="Deployment", name="web", namespace="default")
    )

    adapter._apis["apps"].read_namespaced_deployment.assert_called_once_with("web", "default")
    assert obj["kind"] == "Deployment"
    assert obj["apiVersion"] == "apps/v1"


@pytest.mark.asyncio
async def test_get_resource_not_found_returns_none(adapter):
    """Test a 404 on a point lookup is not an error."""
    adapter._apis["core"].read_namespaced_service.side_effect = ApiException(
        status=404, reason="Not Found"
    )

    obj = await adapter.get_resource(ResourceIdentifier(kind="Service", name="gone", namespace="default"))

    assert obj is None


@pytest.mark.asyncio
async def test_get_resource_server_error(adapter):
    """Test non-404 API failures raise K8sAPIError."""
    adapter._apis["core"].read_namespaced_pod.side_effect = ApiException(
        status=500, reason="Internal Server Error"
    )

    with pytest.raises(K8sAPIError) as exc_info:
        await adapter.get_resource(ResourceIdentifier(kind="Pod", name="p", namespace="default"))

    assert exc_info.value.status == 500


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", ["CronJob", "Namespace"])
async def test_get_unsupported_kind(adapter, kind):
    """Test kinds without typed point lookups are rejected."""
    with pytest.raises(ValueError, match="Unsupported kind"):
        await adapter.get_resource(ResourceIdentifier(kind=kind, name="c", namespace="default"))

    adapter._apis["core"].read_namespace.assert_not_called()


@pytest.mark.asyncio
async def test_list_namespaces(adapter):
    """Test namespaces are listed cluster-wide."""
    core = adapter._apis["core"]
    core.list_namespace.return_value = {"metadata": {}, "items": [{"metadata": {"name": "prod"}}]}

    items, _ = await adapter.list_resources("Namespace", namespace="default")

    core.list_namespace.assert_called_once_with()
    assert items[0]["kind"] == "Namespace"
    assert items[0]["apiVersion"] == "v1"


@pytest.mark.asyncio
async def test_list_resources_namespaced_and_all(adapter):
    """Test namespace-scoped and cluster-wide listing."""
    core = adapter._apis["core"]
    core.list_namespaced_pod.return_value = {
        "metadata": {"resourceVersion": "42"},
        "items": [{"metadata": {"name": "a"}}, {"kind": "Pod", "metadata": {"name": "b"}}],
    }
    core.list_pod_for_all_namespaces.return_value = {"metadata": {}, "items": None}

    items, metadata = await adapter.list_resources("Pod", namespace="default", label_selector="app=web")
    everywhere, _ = await adapter.list_resources("Pod")

    core.list_namespaced_pod.assert_called_once_with("default", label_selector="app=web")
    assert [item["kind"] for item in items] == ["Pod", "Pod"]
    assert items[0]["apiVersion"] == "v1"
    assert metadata == {"resourceVersion": "42"}
    assert everywhere == []


@pytest.mark.asyncio
async def test_list_resources_errors(adapter):
    """Test a 404 on list means the type is not served."""
    networking = adapter._apis["networking"]
    networking.list_namespaced_network_policy.side_effect = ApiException(status=404, reason="Not Found")
    networking.list_namespaced_ingress.side_effect = ApiException(status=403, reason="Forbidden")

    with pytest.raises(NotFoundError):
        await adapter.list_resources("NetworkPolicy", namespace="default")
    with pytest.raises(K8sAPIError, match="list Ingress failed: 403 Forbidden"):
        await adapter.list_resources("Ingress", namespace="default")


@pytest.mark.asyncio
async def test_get_api_groups(adapter):
    """Test group names are returned sorted."""
    adapter._groups_api.get_api_versions.return_value = api_groups(
        ("networking.istio.io", "v1beta1"), ("apps", "v1")
    )

    assert await adapter.get_api_groups() == ["apps", "networking.istio.io"]


@pytest.mark.asyncio
async def test_get_group_resources(adapter):
    """Test resource discovery uses the preferred version and skips subresources."""
    adapter._groups_api.get_api_versions.return_value = api_groups(("linkerd.io", "v1alpha2"))
    adapter._custom_api.get_api_resources.return_value = SimpleNamespace(
        resources=[
            SimpleNamespace(name="serviceprofiles", kind="ServiceProfile", namespaced=True, short_names=["sp"]),
            SimpleNamespace(name="serviceprofiles/status", kind="ServiceProfile", namespaced=True, short_names=None),
        ]
    )

    resources = await adapter.get_group_resources("linkerd.io")

    adapter._custom_api.get_api_resources.assert_called_once_with("linkerd.io", "v1alpha2")
    assert resources == [
        GroupResource(
            group="linkerd.io",
            version="v1alpha2",
            resource="serviceprofiles",
            kind="ServiceProfile",
            short_names=("sp",),
        )
    ]
    assert await adapter.get_group_resources("missing.example.com") == []


@pytest.mark.asyncio
async def test_discovery_failure(adapter):
    """Test discovery errors surface as K8sAPIError."""
    adapter._groups_api.get_api_versions.side_effect = ApiException(status=503, reason="Service Unavailable")

    with pytest.raises(K8sAPIError, match="503"):
        await adapter.get_api_groups()


@pytest.mark.asyncio
async def test_list_group_objects(adapter):
    """Test generic listing in a namespace and cluster-wide."""
    resource = GroupResource(
        group="networking.istio.io", version="v1beta1", resource="virtualservices", kind="VirtualService"
    )
    adapter._custom_api.list_namespaced_custom_object.return_value = {"items": [{"metadata": {"name": "web"}}]}
    adapter._custom_api.list_cluster_custom_object.side_effect = ApiException(status=404, reason="Not Found")

    objs = await adapter.list_group_objects(resource, namespace="default")

    adapter._custom_api.list_namespaced_custom_object.assert_called_once_with(
        "networking.istio.io", "v1beta1", "default", "virtualservices"
    )
    assert objs[0]["kind"] == "VirtualService"
    assert objs[0]["apiVersion"] == "networking.istio.io/v1beta1"
    with pytest.raises(NotFoundError):
        await adapter.list_group_objects(resource)


@pytest.mark.asyncio
async def test_api_call_statistics(adapter):
    """Test API call statistics tracking."""
    adapter._apis["core"].list_namespaced_service.return_value = {"items": []}
    adapter._groups_api.get_api_versions.return_value = api_groups()

    await adapter.list_resources("Service", namespace="default")
    await adapter.list_resources("Service", namespace="default")
    await adapter.get_api_groups()

    stats = adapter.get_api_call_stats()
    assert stats == {"get_resource": 0, "list_resources": 2, "discovery": 1, "total": 3}

    adapter.reset_api_call_stats()
    assert adapter.get_api_call_stats()["total"] == 0
