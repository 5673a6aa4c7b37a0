from k8s_topology.discoverers.handlers.base import BaseLinkHandler, LinkContext
from k8s_topology.discoverers.handlers.gateway_api import (
    BackendRefHandler,
    GatewayAttachmentHandler,
)
from k8s_topology.discoverers.handlers.generic import (
    HostLinkHandler,
    SelectorLinkHandler,
    ServerRefLinkHandler,
    TargetRefLinkHandler,
)
from k8s_topology.discoverers.handlers.istio import (
    AuthorizationPolicyHandler,
    parse_spiffe_principal,
)
from k8s_topology.discoverers.handlers.linkerd import ServiceProfileHandler


def get_all_handlers() -> list[BaseLinkHandler]:
    return [
        HostLinkHandler(),
        SelectorLinkHandler(),
        TargetRefLinkHandler(),
        ServerRefLinkHandler(),
        GatewayAttachmentHandler(),
        BackendRefHandler(),
        ServiceProfileHandler(),
        AuthorizationPolicyHandler(),
    ]


__all__ = [
    "BaseLinkHandler",
    "LinkContext",
    "HostLinkHandler",
    "SelectorLinkHandler",
    "TargetRefLinkHandler",
    "ServerRefLinkHandler",
    "GatewayAttachmentHandler",
    "BackendRefHandler",
    "ServiceProfileHandler",
    "AuthorizationPolicyHandler",
    "parse_spiffe_principal",
    "get_all_handlers",
]
