import numpy as np
import scipy.sparse as sp
import scipy
from pynndescent import NNDescent

from chrmod.ansi import error, warning, info


def background_peaks(
    adata, niterations = 500, n_jobs = -1, gc_key = 'gc', 
    key_added = 'bg.peaks', random_state = 42
):
    """
    Find background peaks based on GC bias and number of reads per peak.
    Each peak is matched to its nearest peaks in the space of (log10 reads, GC)
    after whitening the two covariates.

    Parameters
    ----------
    niterations : int, optional
        Number of background peaks to sample, by default 500

    n_jobs : int, optional
        Number of cpus for compute. If set to -1, all cpus will be used, by default -1

    Returns
    -------
    The background peak indices (n_peaks * niterations), also stored in ``varm[key_added]``.
    """

    # check if the object contains bias in Anndata.varm
    if not gc_key in adata.var.columns:
        error(f'cannot find .var["{gc_key}"], run `gc_content(...)` first.')

    n_peaks = adata.n_vars
    if niterations >= n_peaks:
        warning(f'too few peaks: adjusting to `niterations = {n_peaks - 1}`')
        niterations = n_peaks - 1
    if niterations < 1: error('at least 2 peaks are required to sample background peaks.')

    reads_per_peak = np.log1p(adata.X.sum(axis = 0)) / np.log(10)

    # here if reads_per_peak is a numpy matrix, convert it to array
    if sp.issparse(reads_per_peak): reads_per_peak = reads_per_peak.todense()
    reads_per_peak = np.squeeze(np.asarray(reads_per_peak))

    mat = np.array([reads_per_peak, adata.var[gc_key].values.astype(np.float64)])
    try: chol_cov_mat = np.linalg.cholesky(np.cov(mat))
    except np.linalg.LinAlgError as e:
        error('read depth and gc content of the peaks are degenerate.', e)
    trans_norm_mat = scipy.linalg.solve_triangular(
        a = chol_cov_mat, b = mat, lower = True).transpose()

    index = NNDescent(
        trans_norm_mat, metric = "euclidean",
        n_neighbors = niterations + 1, n_jobs = n_jobs,
        random_state = random_state
    )
    
    knn_idx, _ = index.query(trans_norm_mat, niterations + 1)

    # drop the peak itself from its background
    bg = np.zeros((n_peaks, niterations), dtype = np.int64)
    for i in range(n_peaks):
        row = knn_idx[i][knn_idx[i] != i]
        bg[i, :] = row[:niterations]

    adata.varm[key_added] = bg
    info(f'sampled {niterations} background peaks for {n_peaks} peaks.')
    return bg
