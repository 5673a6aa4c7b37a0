import logging
from typing import Any

from k8s_topology.discoverers.handlers.base import BaseLinkHandler, LinkContext, nested_list
from k8s_topology.models import GroupResource, Relation

logger = logging.getLogger(__name__)

SPIFFE_SCHEME = "spiffe://"
NAMESPACE_SEGMENT = "/ns/"


class AuthorizationPolicyHandler(BaseLinkHandler):
    """
    Istio AuthorizationPolicy -> ServiceAccount (``authorizes``).

    Every ``spec.rules[].from[].source.principals`` entry that parses as a
    SPIFFE service account identity becomes a ServiceAccount node in the
    namespace named by the principal. Unparseable principals are ignored.
    """

    priority = 40

    def supports(self, obj: dict[str, Any], resource: GroupResource) -> bool:
        return resource.group == "security.istio.io" and resource.kind == "AuthorizationPolicy"

    async def link(self, ctx: LinkContext) -> list[str]:
        for principal in authorization_policy_principals(ctx.obj):
            parsed = parse_spiffe_principal(principal)
            if parsed is None:
                logger.debug(f"Skipping principal {principal!r} of {ctx.name}")
                continue
            namespace, service_account = parsed
            sa_id = ctx.graph.add_node("ServiceAccount", "", namespace, service_account)
            ctx.graph.add_edge(ctx.source_id, sa_id, Relation.AUTHORIZES)
        return []


def authorization_policy_principals(obj: dict[str, Any]) -> list[str]:
    principals = []
    for rule in nested_list(obj, "spec", "rules"):
        for source_entry in rule.get("from") or []:
            if not isinstance(source_entry, dict):
                continue
            source = source_entry.get("source")
            if not isinstance(source, dict):
                continue
            for principal in source.get("principals") or []:
                if isinstance(principal, str) and principal:
                    principals.append(principal)
    return principals


def parse_spiffe_principal(principal: str) -> tuple[str, str] | None:
    """
    Parse an Istio principal into ``(namespace, service_account)``.

    Accepts ``spiffe://<trust domain>/ns/<ns>/sa/<sa>``,
    ``<trust domain>/ns/<ns>/sa/<sa>`` and ``ns/<ns>/sa/<sa>``.

    Args:
        principal: Principal string from an AuthorizationPolicy source

    Returns:
        Tuple of namespace and service account, or None if it does not parse

    Example:
        >>> parse_spiffe_principal("spiffe://cluster.local/ns/default/sa/api")
        ('default', 'api')
        >>> parse_spiffe_principal("*") is None
        True
    """
    value = principal.strip()
    if not value:
        return None

    value = value.removeprefix(SPIFFE_SCHEME)
    if value.startswith("ns/"):
        value = value[len("ns/") :]
    else:
        # The trust domain is a single path segment
        trust_domain, sep, rest = value.partition(NAMESPACE_SEGMENT)
        if sep and trust_domain and "/" not in trust_domain:
            value = rest

    parts = value.split("/sa/")
    if len(parts) != 2:
        return None

    namespace, service_account = (part.strip() for part in parts)
    if not namespace or not service_account or "/" in namespace + service_account:
        return None
    return namespace, service_account
