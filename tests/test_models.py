"""Tests for k8s_topology.models."""

import json

import pytest
from pydantic import ValidationError

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


def test_resource_identifier_creation():
    """Test basic ResourceIdentifier creation."""
    rid = ResourceIdentifier(kind="Pod", name="nginx", namespace="default")
    assert rid.kind == "Pod"
    assert rid.name == "nginx"
    assert rid.namespace == "default"
    assert rid.api_version is None


def test_resource_identifier_validation():
    """Test ResourceIdentifier validation."""
    with pytest.raises(ValidationError):
        ResourceIdentifier(kind="", name="nginx")

    with pytest.raises(ValidationError):
        ResourceIdentifier(kind="pod", name="nginx")

    with pytest.raises(ValidationError):
        ResourceIdentifier(kind="Pod", name="")


def test_resource_identifier_str():
    """Test ResourceIdentifier string representation."""
    rid = ResourceIdentifier(kind="Pod", name="nginx", namespace="default")
    assert str(rid) == "Pod/nginx (ns: default)"

    rid_cluster = ResourceIdentifier(kind="Namespace", name="prod")
    assert str(rid_cluster) == "Namespace/prod"


def test_relation_values():
    """Test Relation enum values match the wire names."""
    assert Relation.OWNED_BY == "owned-by"
    assert Relation.HEADLESS_SERVICE == "headless-service"
    assert Relation.EGRESS_BLOCKED_BY == "egress-blocked-by"
    assert Relation.ALLOWS_FROM_NAMESPACE == "allows-from-namespace"


def test_seed_kind_values():
    """Test the seed kinds a build accepts."""
    assert {kind.value for kind in SeedKind} == {
        "ingress",
        "service",
        "deployment",
        "replicaset",
        "statefulset",
        "daemonset",
        "pod",
    }


def test_group_resource_api_version():
    """Test GroupResource apiVersion derivation."""
    vs = GroupResource(
        group="networking.istio.io", version="v1beta1", resource="virtualservices", kind="VirtualService"
    )
    assert vs.api_version == "networking.istio.io/v1beta1"
    assert vs.namespaced is True

    core = GroupResource(group="", version="v1", resource="pods", kind="Pod")
    assert core.api_version == "v1"


def test_graph_node_to_dict_omits_empty_fields():
    """Test that optional node fields are omitted when empty."""
    node = GraphNode(id="namespace/prod", kind="Namespace", name="prod")
    assert node.to_dict() == {"id": "namespace/prod", "kind": "Namespace", "name": "prod"}

    pod = GraphNode(
        id="pod/default/web-1",
        kind="Pod",
        name="web-1",
        namespace="default",
        details={"phase": "Running"},
    )
    assert pod.to_dict() == {
        "id": "pod/default/web-1",
        "kind": "Pod",
        "name": "web-1",
        "namespace": "default",
        "details": {"phase": "Running"},
    }


def test_graph_node_immutable():
    """Test that GraphNode is immutable."""
    node = GraphNode(id="pod/default/web-1", kind="Pod", name="web-1", namespace="default")
    with pytest.raises(ValidationError):
        node.name = "other"


def test_graph_edge_aliases():
    """Test GraphEdge accepts and emits from/to."""
    edge = GraphEdge.model_validate({"from": "a", "to": "b", "relation": "owns"})
    assert edge.source == "a"
    assert edge.target == "b"
    assert edge.to_dict() == {"from": "a", "to": "b", "relation": "owns"}


def test_graph_result_warnings_only_when_present():
    """Test that warnings are omitted from the dict form when empty."""
    result = GraphResult()
    assert result.to_dict() == {"nodes": [], "edges": []}

    result = GraphResult(warnings=["service has no selector"])
    assert result.to_dict()["warnings"] == ["service has no selector"]


def test_graph_result_to_json():
    """Test JSON serialization of a result."""
    result = GraphResult(
        nodes=[GraphNode(id="service/default/web", kind="Service", name="web", namespace="default")],
        edges=[GraphEdge(source="service/default/web", target="pod/default/web-1", relation="selects")],
    )
    data = json.loads(result.to_json())
    assert data["nodes"][0]["id"] == "service/default/web"
    assert data["edges"][0] == {
        "from": "service/default/web",
        "to": "pod/default/web-1",
        "relation": "selects",
    }


def test_graph_settings_defaults():
    """Test GraphSettings defaults."""
    settings = GraphSettings()
    assert settings.graph_cache_ttl_seconds == 0
    assert settings.cluster_domain == "cluster.local"
    assert settings.include_network_policies is True
    assert settings.include_mesh is True


def test_graph_settings_validation():
    """Test GraphSettings validation."""
    with pytest.raises(ValidationError):
        GraphSettings(graph_cache_ttl_seconds=-1)

    with pytest.raises(ValidationError):
        GraphSettings(cluster_domain=" . ")

    assert GraphSettings(cluster_domain=".corp.local.").cluster_domain == "corp.local"
