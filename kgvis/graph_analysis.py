import logging

import networkx as nx

logger = logging.getLogger(__name__)


def _undirected(graph):
    g = nx.Graph()
    g.add_nodes_from(node.id for node in graph.nodes)
    for link in graph.links:
        if link.source_id != link.target_id:
            g.add_edge(link.source_id, link.target_id)
    return g


def assign_clusters(graph):
    """Tags untagged nodes with a community id. Returns the number of communities found."""
    if not graph.nodes:
        return 0
    g = _undirected(graph)
    if g.number_of_edges() == 0:
        communities = [{n} for n in g.nodes]
    else:
        communities = nx.community.greedy_modularity_communities(g)

    membership = {}
    for i, members in enumerate(communities):
        for node_id in members:
            membership[node_id] = f"cluster-{i}"

    for node in graph.nodes:
        if node.cluster is None:
            node.cluster = membership.get(node.id)

    logger.info(f"Found {len(communities)} clusters.")
    return len(communities)


def key_entities(graph, limit=5):
    """Node ids ranked by degree centrality, most central first."""
    if not graph.nodes:
        return []
    centrality = nx.degree_centrality(_undirected(graph))
    order = {node.id: i for i, node in enumerate(graph.nodes)}
    ranked = sorted(centrality, key=lambda n: (-centrality[n], order[n]))
    return ranked[:limit]
