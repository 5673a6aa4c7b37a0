"""Basic usage example for k8s-topology."""

import asyncio

from k8s_topology import GraphBuilder, KubernetesAdapter, load_settings


async def main():
    """Build the connectivity graph around a Deployment."""
    client = KubernetesAdapter()
    builder = GraphBuilder(client, settings=load_settings())

    print("Building graph from Deployment...")
    result = await builder.build_graph("deployment", "default", "nginx")

    print("\nGraph Statistics:")
    print(f"  Nodes: {len(result.nodes)}")
    print(f"  Edges: {len(result.edges)}")

    print("\nResources:")
    for node in result.nodes:
        print(f"  {node.kind}/{node.name} (namespace: {node.namespace or 'N/A'})")

    print("\nRelationships:")
    for edge in result.edges:
        print(f"  {edge.source} --[{edge.relation}]--> {edge.target}")

    if result.warnings:
        print("\nWarnings:")
        for warning in result.warnings:
            print(f"  {warning}")

    api_stats = client.get_api_call_stats()
    print("\nKubernetes API Statistics:")
    print(f"  get_resource calls: {api_stats['get_resource']}")
    print(f"  list_resources calls: {api_stats['list_resources']}")
    print(f"  discovery calls: {api_stats['discovery']}")
    print(f"  Total API calls: {api_stats['total']}")


if __name__ == "__main__":
    asyncio.run(main())
