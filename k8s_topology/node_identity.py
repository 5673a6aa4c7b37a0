from typing import Any


class NodeIdentity:
    """
    Generates stable node IDs and node details for graph vertices.

    IDs are built from ``(kind, group, namespace, name)`` with kind and group
    lower-cased, so the same resource reached through two different edges
    collapses into one node and IDs stay stable across builds:

    - ``pod/default/api-1`` (namespaced, core group)
    - ``virtualservice.networking.istio.io/default/api`` (namespaced, named group)
    - ``namespace/prod`` (cluster-scoped)

    Example:
        >>> NodeIdentity.node_id("Service", "", "default", "api")
        'service/default/api'
    """

    @staticmethod
    def node_id(kind: str, group: str, namespace: str, name: str) -> str:
        kind = kind.lower()
        group = group.lower()
        prefix = f"{kind}.{group}" if group else kind
        if not namespace:
            return f"{prefix}/{name}"
        return f"{prefix}/{namespace}/{name}"

    @staticmethod
    def pod_details(pod: dict[str, Any]) -> dict[str, Any]:
        return {"phase": (pod.get("status") or {}).get("phase", "")}

    @staticmethod
    def replica_details(resource: dict[str, Any]) -> dict[str, Any]:
        """Ready/desired counts for Deployments, ReplicaSets and StatefulSets."""
        spec = resource.get("spec") or {}
        status = resource.get("status") or {}
        return {
            "ready": status.get("readyReplicas") or 0,
            "desired": spec.get("replicas") or 0,
        }

    @staticmethod
    def daemonset_details(resource: dict[str, Any]) -> dict[str, Any]:
        status = resource.get("status") or {}
        return {
            "ready": status.get("numberReady") or 0,
            "desired": status.get("desiredNumberScheduled") or 0,
        }


def resource_name(resource: dict[str, Any]) -> str:
    return (resource.get("metadata") or {}).get("name", "")


def resource_labels(resource: dict[str, Any]) -> dict[str, str]:
    return (resource.get("metadata") or {}).get("labels") or {}


def first_owner(resource: dict[str, Any]) -> dict[str, Any] | None:
    """
    Return the first owner reference of a resource.

    Only the first owner is modeled; any further owner references are
    ignored.
    """
    owner_refs = (resource.get("metadata") or {}).get("ownerReferences") or []
    if not owner_refs:
        return None
    return owner_refs[0]
