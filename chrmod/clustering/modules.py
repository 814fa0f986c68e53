'''
Peak modules. Significant peaks are described by their fold changes across the
significant motifs, linked to their nearest neighbors in that space, and the
resulting graph is partitioned with Louvain. Peaks are then ordered within each
module by hierarchical clustering for display.
'''

import numpy as np
import pandas as pd
import scipy.sparse as sp

from chrmod.ansi import error, info
from chrmod.clustering.louvain import louvain
from chrmod.clustering.seriation import serial_order
from chrmod.reduction.nn import knn_graph
from chrmod.utils import scale


def scaled_fold_change(lfc):
    ''' Standardize each peak across motifs. Peaks with constant fold change are zero. '''
    scaled = scale(lfc, axis = 1)
    scaled[np.isnan(scaled)] = 0
    return scaled


def define_modules(lfc, k = 30, random_state = 123):
    '''
    Cluster peaks into modules by Louvain clustering of the kNN graph of their
    standardized fold changes.

    Parameters
    ----------
    lfc
        Peaks * motifs log2 fold changes, see :func:`chrmod.descriptive.diff.fold_change_matrix`.

    k
        Number of nearest neighbors of each peak.

    random_state
        Seed of the Louvain optimization.

    Returns
    -------
    pd.Series
        Module label (1 to K) of each peak, indexed as ``lfc``.
    '''

    if lfc.shape[0] < 2: error(f'at least 2 peaks are required to define modules, got {lfc.shape[0]}.')
    info(f'building {k}-nn graph of {lfc.shape[0]} peaks over {lfc.shape[1]} motifs ...')
    adjacency, _, _ = knn_graph(scaled_fold_change(lfc), k = k)
    membership = louvain(adjacency, random_state = random_state)

    return pd.Series(membership, index = lfc.index, name = 'module')


def module_sizes(membership):
    ''' Number of peaks in each module, indexed 1 to K. '''
    K = int(membership.max())
    return membership.value_counts().reindex(range(1, K + 1), fill_value = 0).rename('n.peaks')


def check_module_order(order, K):

    if order is None: return list(range(1, K + 1))
    order = [int(x) for x in order]
    if sorted(order) != list(range(1, K + 1)):
        error(f'module order {order} is not a permutation of modules 1 - {K}.')
    return order


def order_modules(lfc, membership, order = None, method = 'complete'):
    '''
    Order peaks by module, and within each module by hierarchical clustering of the
    Pearson correlation distance between peaks. Columns keep their order.

    Parameters
    ----------
    order
        The order of modules. Defaults to 1 to K, a custom order must list every
        module exactly once.

    Returns
    -------
    A tuple of two:

    *   The row-ordered fold change matrix.
    *   The module of each row, as a categorical with ``order`` as its categories.
    '''

    membership = pd.Series(np.asarray(membership), index = lfc.index)
    K = int(membership.max())
    order = check_module_order(order, K)

    blocks = []
    labels = []
    for k in order:
        kmat = lfc.loc[(membership == k).values, :]
        if kmat.shape[0] == 0: continue
        info(f'clustering {kmat.shape[0]} peaks from module K{k} ...')
        row_order, _ = serial_order(kmat.values, method = method)
        blocks.append(kmat.iloc[row_order, :])
        labels += [k] * kmat.shape[0]

    ordered = pd.concat(blocks, axis = 0)
    labels = pd.Categorical(labels, categories = order, ordered = True)
    return ordered, labels


def annotation_matrix(n_peaks, peaks, membership):
    '''
    Binary annotation of all peaks with their modules (n_peaks * K), which may be
    scored in single cells like a motif annotation.

    Parameters
    ----------
    n_peaks
        Total number of peaks in the count matrix.

    peaks
        Integer positions of the clustered peaks.

    membership
        Module (1 to K) of each clustered peak, in the same order as ``peaks``.

    Returns
    -------
    A tuple of the sparse boolean matrix and the module names ``K1`` to ``K<K>``.
    '''

    peaks = np.asarray(peaks, dtype = np.int64)
    membership = np.asarray(membership, dtype = np.int64)
    if len(peaks) != len(membership): error('peaks and module memberships differ in length.')
    if len(peaks) > 0 and (peaks.max() >= n_peaks or peaks.min() < 0):
        error(f'peak positions out of range for {n_peaks} peaks.')

    K = int(membership.max()) if len(membership) > 0 else 0
    annot = sp.csr_matrix(
        (np.ones(len(peaks), dtype = bool), (peaks, membership - 1)),
        shape = (n_peaks, K), dtype = bool
    )

    return annot, [f'K{k}' for k in range(1, K + 1)]
