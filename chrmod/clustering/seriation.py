import numpy as np
from scipy.spatial.distance import squareform
from fastcluster import linkage


def seriation(Z, N, cur_index):
    '''
    Computes the order implied by a hierarchical tree (dendrogram)

    Parameters
    ----------
    Z:
        A hierarchical tree (dendrogram)
    
    N:
        The number of points given to the clustering process

    cur_index:
        The position in the tree for the recursive traversal
    
    Returns
    -------
    Order implied by the hierarchical tree Z
    '''

    # iterative traversal, deep trees of many peaks overflow the recursion limit.
    order = []
    stack = [cur_index]
    while len(stack) > 0:
        node = stack.pop()
        if node < N: order.append(node)
        else:
            stack.append(int(Z[node - N, 1]))
            stack.append(int(Z[node - N, 0]))
    return order


def correlation_distance(X):
    '''
    Pearson correlation distance (1 - r) between the rows of X. Rows without
    variance have undefined correlation, and are set to distance 1 from all others.
    '''

    X = np.asarray(X, dtype = np.float64)
    with np.errstate(divide = 'ignore', invalid = 'ignore'):
        dist = 1 - np.corrcoef(X)
    dist = np.atleast_2d(dist)
    dist[np.isnan(dist)] = 1
    dist = (dist + dist.T) / 2
    np.fill_diagonal(dist, 0)
    return np.clip(dist, 0, 2)


def serial_order(X, method = 'complete'):
    '''
    Order the rows of X by hierarchical clustering on correlation distance.

    Parameters
    ----------
    method: ["ward", "single", "average", "complete"]
        Method of agglomerative clustering

    Returns
    -------
    - res_order: The order implied by the hierarhical tree
    - res_linkage: The hierarhical tree (dendrogram), None for less than 2 rows.
    '''

    N = X.shape[0]
    if N < 2: return list(range(N)), None
    
    flat_dist_mat = squareform(correlation_distance(X), checks = False)
    res_linkage = linkage(flat_dist_mat, method = method, preserve_input = True)
    res_order = seriation(res_linkage, N, N + N - 2)
    return res_order, res_linkage
