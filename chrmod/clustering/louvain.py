from chrmod.ansi import info
from chrmod.clustering.utils import set_igraph_random_state, relabel_by_appearance
from chrmod.utils import get_igraph_from_adjacency


def louvain(
    adjacency, *,
    random_state = 123,
    use_weights: bool = True,
    resolution: float = 1,
    return_partition: bool = False
):
    '''
    Cluster the nodes of an undirected graph with the Louvain algorithm (the
    multilevel modularity optimization of ``igraph``).

    Parameters
    ----------
    adjacency
        Symmetric sparse adjacency matrix of the graph.

    random_state
        Seed of the igraph random number generator during the optimization, which
        decides the order nodes are visited in.

    use_weights
        If `True`, edge weights from the graph are used in the computation.
        (placing more emphasis on stronger edges).

    resolution
        Resolution of the modularity. Higher values lead to more clusters.

    Returns
    -------
    np.ndarray
        Cluster of each node, labelled from 1 in the order of first appearance.
        The igraph partition is also returned if ``return_partition``.
    '''

    graph = get_igraph_from_adjacency(adjacency)
    weights = 'weight' if use_weights else None
    with set_igraph_random_state(random_state):
        partition = graph.community_multilevel(weights = weights, resolution = resolution)

    membership = relabel_by_appearance(partition.membership)
    info(f'louvain found {membership.max()} clusters, modularity {partition.modularity:.3f}.')
    if return_partition: return membership, partition
    return membership
