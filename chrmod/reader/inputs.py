'''
Loaders for the inputs of the module analysis. The single cell peak counts and
the motif deviation scores are both stored as annotated data (h5ad) with cells
as observations. The list of cells to keep is a plain text file of barcodes.
'''

import os
import numpy as np
import anndata as ad
import scipy.sparse as sp

from chrmod.ansi import error, warning, info, dtypemat


def read_counts(src):
    '''
    Read the single cell peak counts (cells * peaks). The count matrix is kept
    in compressed sparse rows of floating point numbers.
    '''

    if not os.path.exists(src): error(f'peak counts file `{src}` does not exist.')
    adata = ad.read_h5ad(src)
    if sp.issparse(adata.X): adata.X = sp.csr_matrix(adata.X, dtype = np.float64)
    else: adata.X = sp.csr_matrix(np.asarray(adata.X, dtype = np.float64))

    if not adata.var_names.is_unique:
        warning('peak names are not unique, making them unique.')
        adata.var_names_make_unique()

    info(f'read peak counts {dtypemat(adata.X)} from {src}')
    return adata


def read_deviations(src):
    '''
    Read the per-cell motif deviation scores (cells * motifs). The main matrix
    should hold the chromVAR deviation z-scores.
    '''

    if not os.path.exists(src): error(f'motif deviations file `{src}` does not exist.')
    adata = ad.read_h5ad(src)
    if sp.issparse(adata.X): adata.X = adata.X.toarray()
    adata.X = np.asarray(adata.X, dtype = np.float64)
    info(f'read motif deviations {dtypemat(adata.X)} from {src}')
    return adata


def read_cells(src):

    if not os.path.exists(src): error(f'cell list `{src}` does not exist.')
    with open(src, 'r') as f:
        cells = [line.strip() for line in f]
    cells = [x for x in cells if len(x) > 0]
    if len(cells) == 0: error(f'cell list `{src}` is empty.')
    return cells


def subset_cells(counts, deviations, cells = None):
    '''
    Subset the peak counts and motif deviations to the same cells in the same
    order. When no cell list is given, the cells shared by the two datasets are
    kept, in the order of the peak counts.

    Returns
    -------
    A tuple of the subsetted (counts, deviations), both as new objects.
    '''

    if cells is None:
        shared = set(deviations.obs_names)
        cells = [x for x in counts.obs_names if x in shared]
        if len(cells) < counts.n_obs or len(cells) < deviations.n_obs:
            warning(f'{len(cells)} cells shared by peak counts ({counts.n_obs}) '
                    f'and motif deviations ({deviations.n_obs}).')
    
    else:
        cells = list(cells)
        if len(set(cells)) != len(cells): error('duplicated barcodes in the cell list.')
        missing_counts = [x for x in cells if x not in counts.obs_names]
        missing_devs = [x for x in cells if x not in deviations.obs_names]
        if len(missing_counts) > 0:
            error(f'{len(missing_counts)} cells not found in peak counts, e.g. `{missing_counts[0]}`.')
        if len(missing_devs) > 0:
            error(f'{len(missing_devs)} cells not found in motif deviations, e.g. `{missing_devs[0]}`.')

    if len(cells) == 0: error('no cells left after subsetting.')
    info(f'keep {len(cells)} cells for the module analysis.')
    counts = counts[cells, :].copy()
    if not counts.var_names.is_unique:
        warning('peak names are not unique, making them unique.')
        counts.var_names_make_unique()

    return counts, deviations[cells, :].copy()
