import asyncio
import logging
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from k8s_topology.errors import K8sAPIError, NotFoundError
from k8s_topology.models import GroupResource, ResourceIdentifier

logger = logging.getLogger(__name__)

# kind -> (api, apiVersion, namespaced list, all-namespaces list, namespaced read)
_KIND_OPERATIONS: dict[str, tuple[str, str, str, str, str]] = {
    "Service": (
        "core",
        "v1",
        "list_namespaced_service",
        "list_service_for_all_namespaces",
        "read_namespaced_service",
    ),
    "Endpoints": (
        "core",
        "v1",
        "list_namespaced_endpoints",
        "list_endpoints_for_all_namespaces",
        "read_namespaced_endpoints",
    ),
    "Pod": (
        "core",
        "v1",
        "list_namespaced_pod",
        "list_pod_for_all_namespaces",
        "read_namespaced_pod",
    ),
    "Deployment": (
        "apps",
        "apps/v1",
        "list_namespaced_deployment",
        "list_deployment_for_all_namespaces",
        "read_namespaced_deployment",
    ),
    "ReplicaSet": (
        "apps",
        "apps/v1",
        "list_namespaced_replica_set",
        "list_replica_set_for_all_namespaces",
        "read_namespaced_replica_set",
    ),
    "StatefulSet": (
        "apps",
        "apps/v1",
        "list_namespaced_stateful_set",
        "list_stateful_set_for_all_namespaces",
        "read_namespaced_stateful_set",
    ),
    "DaemonSet": (
        "apps",
        "apps/v1",
        "list_namespaced_daemon_set",
        "list_daemon_set_for_all_namespaces",
        "read_namespaced_daemon_set",
    ),
    "Ingress": (
        "networking",
        "networking.k8s.io/v1",
        "list_namespaced_ingress",
        "list_ingress_for_all_namespaces",
        "read_namespaced_ingress",
    ),
    "NetworkPolicy": (
        "networking",
        "networking.k8s.io/v1",
        "list_namespaced_network_policy",
        "list_network_policy_for_all_namespaces",
        "read_namespaced_network_policy",
    ),
}


class KubernetesAdapter:
    """
    Read-only cluster client backed by the official ``kubernetes`` package.

    Implements both :class:`K8sClientProtocol` and
    :class:`DiscoveryClientProtocol`. Blocking client calls run in a worker
    thread so builds stay cancellable. Resources are returned as plain
    dictionaries in the API's camelCase shape.

    Example:
        >>> adapter = KubernetesAdapter(context="staging")
        >>> pods, _ = await adapter.list_resources("Pod", namespace="default")
    """

    def __init__(
        self,
        context: str | None = None,
        api_client: client.ApiClient | None = None,
    ) -> None:
        if api_client is None:
            try:
                config.load_incluster_config()
                logger.debug("Loaded in-cluster Kubernetes configuration")
            except config.ConfigException:
                config.load_kube_config(context=context)
                logger.debug(f"Loaded kubeconfig (context: {context or 'current'})")
            api_client = client.ApiClient()

        self._api_client = api_client
        self._apis = {
            "core": client.CoreV1Api(api_client),
            "apps": client.AppsV1Api(api_client),
            "networking": client.NetworkingV1Api(api_client),
        }
        self._groups_api = client.ApisApi(api_client)
        self._custom_api = client.CustomObjectsApi(api_client)
        self._api_call_stats = {"get_resource": 0, "list_resources": 0, "discovery": 0, "total": 0}

    async def get_resource(self, resource_id: ResourceIdentifier) -> dict[str, Any] | None:
        self._count("get_resource")
        kind = resource_id.kind
        api_name, api_version, _, _, read_op = self._operations(kind)
        call = getattr(self._apis[api_name], read_op)

        try:
            obj = await asyncio.to_thread(call, resource_id.name, resource_id.namespace)
        except ApiException as e:
            if e.status == 404:
                logger.debug(f"{resource_id} not found")
                return None
            raise self._api_error(e, f"get {resource_id}") from e
        except HTTPError as e:
            raise K8sAPIError(f"get {resource_id} failed: {e}") from e

        return self._to_dict(obj, kind, api_version)

    async def list_resources(
        self,
        kind: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        self._count("list_resources")
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector

        if kind == "Namespace":
            call = self._apis["core"].list_namespace
            args: tuple[Any, ...] = ()
            api_version = "v1"
        else:
            api_name, api_version, list_op, list_all_op, _ = self._operations(kind)
            api = self._apis[api_name]
            if namespace:
                call = getattr(api, list_op)
                args = (namespace,)
            else:
                call = getattr(api, list_all_op)
                args = ()

        try:
            result = await asyncio.to_thread(call, *args, **kwargs)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(kind, "*", namespace) from e
            raise self._api_error(e, f"list {kind}") from e
        except HTTPError as e:
            raise K8sAPIError(f"list {kind} failed: {e}") from e

        data = self._api_client.sanitize_for_serialization(result)
        items = [self._with_type(item, kind, api_version) for item in data.get("items") or []]
        return items, data.get("metadata") or {}

    async def get_api_groups(self) -> list[str]:
        self._count("discovery")
        group_list = await self._call_discovery(self._groups_api.get_api_versions, "api groups")
        return sorted(group.name for group in group_list.groups or [])

    async def get_group_resources(self, group: str) -> list[GroupResource]:
        self._count("discovery")
        group_list = await self._call_discovery(self._groups_api.get_api_versions, "api groups")

        version = None
        for api_group in group_list.groups or []:
            if api_group.name == group and api_group.preferred_version:
                version = api_group.preferred_version.version
                break
        if not version:
            return []

        resource_list = await self._call_discovery(
            lambda: self._custom_api.get_api_resources(group, version),
            f"{group}/{version} resources",
        )

        resources = []
        for api_resource in resource_list.resources or []:
            if not api_resource.name or "/" in api_resource.name:
                continue
            resources.append(
                GroupResource(
                    group=group,
                    version=version,
                    resource=api_resource.name,
                    kind=api_resource.kind,
                    namespaced=bool(api_resource.namespaced),
                    short_names=tuple(api_resource.short_names or ()),
                )
            )
        return resources

    async def list_group_objects(
        self,
        resource: GroupResource,
        namespace: str | None = None,
    ) -> list[dict[str, Any]]:
        self._count("list_resources")
        try:
            if namespace:
                data = await asyncio.to_thread(
                    self._custom_api.list_namespaced_custom_object,
                    resource.group,
                    resource.version,
                    namespace,
                    resource.resource,
                )
            else:
                data = await asyncio.to_thread(
                    self._custom_api.list_cluster_custom_object,
                    resource.group,
                    resource.version,
                    resource.resource,
                )
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(resource.kind, "*", namespace) from e
            raise self._api_error(e, f"list {resource.resource}") from e
        except HTTPError as e:
            raise K8sAPIError(f"list {resource.resource} failed: {e}") from e

        return [
            self._with_type(item, resource.kind, resource.api_version)
            for item in data.get("items") or []
        ]

    def get_api_call_stats(self) -> dict[str, int]:
        return self._api_call_stats.copy()

    def reset_api_call_stats(self) -> None:
        self._api_call_stats = {key: 0 for key in self._api_call_stats}

    async def _call_discovery(self, call: Any, what: str) -> Any:
        try:
            return await asyncio.to_thread(call)
        except ApiException as e:
            raise self._api_error(e, f"discover {what}") from e
        except HTTPError as e:
            raise K8sAPIError(f"discover {what} failed: {e}") from e

    def _operations(self, kind: str) -> tuple[str, str, str, str, str]:
        try:
            return _KIND_OPERATIONS[kind]
        except KeyError:
            raise ValueError(f"Unsupported kind for typed access: {kind}") from None

    def _to_dict(self, obj: Any, kind: str, api_version: str) -> dict[str, Any]:
        return self._with_type(self._api_client.sanitize_for_serialization(obj), kind, api_version)

    @staticmethod
    def _with_type(item: dict[str, Any], kind: str, api_version: str) -> dict[str, Any]:
        item.setdefault("kind", kind)
        item.setdefault("apiVersion", api_version)
        return item

    @staticmethod
    def _api_error(e: ApiException, action: str) -> K8sAPIError:
        return K8sAPIError(f"{action} failed: {e.status} {e.reason}", status=e.status, reason=e.reason)

    def _count(self, operation: str) -> None:
        self._api_call_stats[operation] += 1
        self._api_call_stats["total"] += 1
