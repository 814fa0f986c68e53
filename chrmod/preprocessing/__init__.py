import numpy as np

from chrmod.preprocessing.linear import center_counts as center_counts_m
from chrmod.preprocessing.linear import binarize
from chrmod.ansi import error, info
from chrmod.utils import choose_layer, scale


def scale_deviations(devs, layer = 'X', dest = 'scaled'):
    '''
    Standardize the motif deviation scores within each cell (across motifs),
    which is the column scaling of the motifs * cells matrix. The scaled matrix
    is stored in ``layers[dest]`` and must not contain missing values.
    '''

    m_devs = choose_layer(devs, layer)
    scaled = scale(m_devs, axis = 1)
    if np.isnan(scaled).any():
        n_bad = int(np.isnan(scaled).any(axis = 1).sum())
        error(f'scaled deviations contains missing values in {n_bad} cells.')

    devs.layers[dest] = scaled
    return devs


def center_counts(adata, counts = 'X', dest = 'centered', chunk_size = 1000):

    m_count = choose_layer(adata, counts)
    adata.layers[dest] = center_counts_m(m_count, chunk_size = chunk_size)
    return adata


def binarize_counts(adata, counts = 'X', dest = 'binary'):

    m_count = choose_layer(adata, counts)
    adata.layers[dest] = binarize(m_count)
    info(f'binarized {adata.layers[dest].nnz} accessible entries.')
    return adata
