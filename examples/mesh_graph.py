"""Service mesh example: what routes to, attaches to and authorizes a Service."""

import asyncio
import sys

from k8s_topology import GraphBuilder, GraphSettings, KubernetesAdapter, Relation

MESH_RELATIONS = {
    Relation.ROUTES_TO.value,
    Relation.ATTACHED_TO.value,
    Relation.APPLIES_TO.value,
    Relation.PROFILES.value,
    Relation.AUTHORIZES.value,
}


async def main(namespace: str, service: str):
    client = KubernetesAdapter()
    builder = GraphBuilder(client, settings=GraphSettings(graph_cache_ttl_seconds=30))

    result = await builder.build_graph("service", namespace, service, cluster_access=True)

    nodes = {node.id: node for node in result.nodes}
    print(f"Mesh links around service/{namespace}/{service}:")
    for edge in result.edges:
        if edge.relation not in MESH_RELATIONS:
            continue
        source = nodes[edge.source]
        print(f"  {source.kind} {source.name} --[{edge.relation}]--> {edge.target}")

    for warning in result.warnings:
        print(f"  warning: {warning}")

    # Second build within the TTL is served from the result cache
    await builder.build_graph("service", namespace, service, cluster_access=True)
    print(f"\nResult cache: {builder.result_cache.get_stats()}")


if __name__ == "__main__":
    ns = sys.argv[1] if len(sys.argv) > 1 else "default"
    name = sys.argv[2] if len(sys.argv) > 2 else "web"
    asyncio.run(main(ns, name))
