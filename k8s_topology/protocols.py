from typing import Any, Protocol, runtime_checkable

from k8s_topology.models import GroupResource, ResourceIdentifier


@runtime_checkable
class K8sClientProtocol(Protocol):
    """
    Typed resource access used by the snapshot cache and resolvers.

    Implementations return resources as plain dictionaries in the API's
    camelCase shape (``metadata``, ``spec``, ``status``).
    """

    async def get_resource(self, resource_id: ResourceIdentifier) -> dict[str, Any] | None:
        """
        Fetch a single resource.

        Returns:
            The resource, or None when it does not exist

        Raises:
            K8sAPIError: For transport, authorization or server failures
        """
        ...

    async def list_resources(
        self,
        kind: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """
        List resources of a kind.

        Returns:
            Tuple of (resources, list metadata)

        Raises:
            NotFoundError: When the resource type is not served
            K8sAPIError: For any other failure
        """
        ...


@runtime_checkable
class DiscoveryClientProtocol(Protocol):
    """Discovery and generic (group/version/resource) access for CRDs."""

    async def get_api_groups(self) -> list[str]:
        """Names of the API groups the server reports."""
        ...

    async def get_group_resources(self, group: str) -> list[GroupResource]:
        """
        Resource types served by the preferred version of a group.

        Subresources (``foo/status``) are not included.
        """
        ...

    async def list_group_objects(
        self,
        resource: GroupResource,
        namespace: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        List objects of a discovered resource type.

        Lists within ``namespace`` when given, cluster-wide otherwise.

        Raises:
            NotFoundError: When the resource type is not served
            K8sAPIError: For any other failure
        """
        ...
