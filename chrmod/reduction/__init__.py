from chrmod.reduction.pca import pca
from chrmod.reduction.nn import knn_graph, adjacency_matrix

__all__ = [
    'pca',
    'knn_graph',
    'adjacency_matrix'
]
