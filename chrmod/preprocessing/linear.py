'''
Normalization in linear space
'''

import scipy
import numpy as np

from chrmod.ansi import error, info


def center_counts(E, chunk_size = 1000):

    ''' 
    Cell-level mean normalization of the peak counts. Each cell is divided by its
    mean count across peaks, so that the value 1 represents the average accessibility
    of the cell. Cells are processed in chunks to limit the memory footprint.

    Parameters
    -----------
    
    E : np.array | scipy.sparse.csr_matrix
        Array of raw counts (cells * peaks). This is either sparse or dense.

    chunk_size : int
        Number of cells normalized at a time.
    '''

    E = scipy.sparse.csr_matrix(E, dtype = np.float64)
    ncell, npeak = E.shape
    if npeak == 0: error('the count matrix has no peaks.')

    chunks = []
    for start in range(0, ncell, chunk_size):
        end = min(start + chunk_size, ncell)
        info(f'computing centered counts for cells: {start + 1} to {end} ...')
        m = E[start:end, :]
        cell_means = np.asarray(m.sum(axis = 1)).reshape(-1) / npeak
        if (cell_means == 0).any():
            error(f'{int((cell_means == 0).sum())} cells have no counts in any peaks.')

        w = scipy.sparse.diags(1. / cell_means)
        chunks.append((w @ m).tocsr())

    if len(chunks) == 0: return E.copy()
    return scipy.sparse.vstack(chunks).tocsr()


def binarize(E):
    ''' Binarize accessibility, any positive count is set to 1. '''

    E = scipy.sparse.csr_matrix(E, dtype = np.float64, copy = True)
    E.data = (E.data > 0).astype(np.float64)
    E.eliminate_zeros()
    return E
