from typing import Any

from k8s_topology.discoverers.handlers.base import BaseLinkHandler, LinkContext
from k8s_topology.models import GroupResource, Relation


class ServiceProfileHandler(BaseLinkHandler):
    """Linkerd ServiceProfile -> the Service its name resolves to (``profiles``)."""

    priority = 50

    def supports(self, obj: dict[str, Any], resource: GroupResource) -> bool:
        return resource.group == "linkerd.io" and resource.kind == "ServiceProfile"

    async def link(self, ctx: LinkContext) -> list[str]:
        # profiles are named by FQDN, e.g. web.default.svc.cluster.local
        self._link_services(ctx, [ctx.name], Relation.PROFILES)
        return []
