import numpy as np
import scipy.sparse
from sklearn.neighbors import NearestNeighbors

from chrmod.ansi import warning, error


def knn_graph(embedding, k = 30, dist_metric = 'euclidean'):
    '''
    Calculate the exact kNN graph of the rows of an embedding. The point itself is
    not counted as its own neighbor. When there are not enough points, ``k`` is
    reduced to the number of other points.

    Returns
    ----------

    A tuple of three:
    
    *   the undirected adjacency matrix (n_points, n_points). An edge is weighted by 
        the number of directed neighbor relations between the two points (1 if only one 
        lists the other as its neighbor, 2 if they are mutual neighbors).
    *   nearest neighbor index matrix (n_points, k)
    *   nearest neighbor distance matrix (n_points, k)
    '''

    embedding = np.asarray(embedding, dtype = np.float64)
    n = embedding.shape[0]
    if n < 2: error(f'at least 2 points are required to build a knn graph, got {n}.')
    if k >= n:
        warning(f'n_points too small: adjusting to `k = {n - 1}`')
        k = n - 1

    nbrs = NearestNeighbors(n_neighbors = k, metric = dist_metric, algorithm = 'kd_tree') \
        if dist_metric == 'euclidean' else \
        NearestNeighbors(n_neighbors = k, metric = dist_metric, algorithm = 'brute')
    
    nbrs.fit(embedding)
    distances, knn = nbrs.kneighbors(return_distance = True)
    return adjacency_matrix(knn, n), knn, distances


def adjacency_matrix(knn, n_nodes):
    '''
    Turn a neighbor index matrix into a symmetric adjacency matrix, where each
    directed relation ``i -> knn[i, j]`` contributes 1 to both ``A[i, j]`` and ``A[j, i]``.
    '''

    rows = np.repeat(np.arange(knn.shape[0]), knn.shape[1])
    cols = knn.reshape(-1)
    directed = scipy.sparse.csr_matrix(
        (np.ones(len(rows)), (rows, cols)), shape = (n_nodes, n_nodes)
    )

    return (directed + directed.T).tocsr()
