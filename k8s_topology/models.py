import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SeedKind(str, Enum):
    """Resource kinds a graph build may start from."""

    INGRESS = "ingress"
    SERVICE = "service"
    DEPLOYMENT = "deployment"
    REPLICASET = "replicaset"
    STATEFULSET = "statefulset"
    DAEMONSET = "daemonset"
    POD = "pod"


class Relation(str, Enum):
    """Edge relations produced by the graph engine."""

    OWNS = "owns"
    OWNED_BY = "owned-by"
    SELECTS = "selects"
    TARGETS = "targets"
    ROUTES_TO = "routes-to"
    HEADLESS_SERVICE = "headless-service"
    ATTACHED_TO = "attached-to"
    APPLIES_TO = "applies-to"
    PROFILES = "profiles"
    AUTHORIZES = "authorizes"
    ALLOWS_FROM = "allows-from"
    ALLOWS_TO = "allows-to"
    ALLOWS_FROM_NAMESPACE = "allows-from-namespace"
    ALLOWS_TO_NAMESPACE = "allows-to-namespace"
    BLOCKED_BY = "blocked-by"
    EGRESS_BLOCKED_BY = "egress-blocked-by"


class ResourceIdentifier(BaseModel):
    """
    Identifies a single Kubernetes resource for point lookups.

    Example:
        >>> rid = ResourceIdentifier(kind="Service", name="api", namespace="default")
        >>> str(rid)
        'Service/api (ns: default)'
    """

    model_config = ConfigDict(frozen=True)

    kind: str
    name: str
    namespace: str | None = None
    api_version: str | None = None

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        if not v:
            raise ValueError("kind must not be empty")
        if not v[0].isupper():
            raise ValueError(f"kind must be CamelCase, got {v!r}")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            raise ValueError("name must not be empty")
        return v

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.name} (ns: {self.namespace})"
        return f"{self.kind}/{self.name}"


class GroupResource(BaseModel):
    """Discovery-derived descriptor for one resource type of an API group."""

    model_config = ConfigDict(frozen=True)

    group: str
    version: str
    resource: str
    kind: str
    namespaced: bool = True
    short_names: tuple[str, ...] = ()

    @property
    def api_version(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"


class GraphNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    kind: str
    group: str = ""
    name: str
    namespace: str = ""
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "kind": self.kind}
        if self.group:
            out["group"] = self.group
        out["name"] = self.name
        if self.namespace:
            out["namespace"] = self.namespace
        if self.details:
            out["details"] = dict(self.details)
        return out


class GraphEdge(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: str = Field(alias="from")
    target: str = Field(alias="to")
    relation: str

    def to_dict(self) -> dict[str, str]:
        return {"from": self.source, "to": self.target, "relation": self.relation}


class GraphResult(BaseModel):
    """
    Serialized outcome of one graph build.

    Nodes are sorted by id so two builds over the same cluster state produce
    identical node lists. Edges keep insertion order and may contain
    duplicates.
    """

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }
        if self.warnings:
            out["warnings"] = list(self.warnings)
        return out

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)


class GraphSettings(BaseModel):
    """
    Tunables for graph builds.

    Attributes:
        graph_cache_ttl_seconds: Lifetime of cached graph results, 0 disables caching
        cluster_domain: DNS suffix used when indexing service FQDNs
        include_network_policies: Run the NetworkPolicy pass after the workload pass
        include_mesh: Run the mesh/gateway discovery pass after the workload pass
    """

    graph_cache_ttl_seconds: int = Field(default=0, ge=0, le=86400)
    cluster_domain: str = "cluster.local"
    include_network_policies: bool = True
    include_mesh: bool = True

    @field_validator("cluster_domain")
    @classmethod
    def validate_cluster_domain(cls, v: str) -> str:
        v = v.strip().strip(".")
        if not v:
            raise ValueError("cluster_domain must not be empty")
        return v
