# Deviations of accessibility
# ---------------------------
#
# For a peak annotation (a set of peaks sharing a motif, or a peak module), the
# deviation of a cell is the relative excess of reads the cell has in the peak
# set, over what is expected from the cell's sequencing depth and the overall
# accessibility of those peaks:
#
#     raw = (observed - expected) / expected
#     expected = (reads of the cell) * (fraction of all reads falling in the set)
#
# technical biases (gc content, peak strength) are removed by recomputing the
# raw deviations on background peak sets, where each peak of the annotation is
# replaced by one of its matched background peaks. the bias corrected deviation
# is the raw deviation less the background mean, and the z-score divides it by
# the background standard deviation.

import numpy as np
import pandas as pd
import anndata as ad
import scipy.sparse as sp

from chrmod.ansi import error, info, pprog
from chrmod.utils import choose_layer


def raw_deviations(X, annotation, expectation, cell_totals):
    ''' Raw deviation (cells * annotations) of the peak counts X (cells * peaks). '''

    observed = np.asarray((X @ annotation).todense()) if sp.issparse(annotation) \
        else np.asarray(X @ annotation)
    expected_fraction = np.asarray(annotation.T @ expectation).reshape(-1)
    expected = np.outer(cell_totals, expected_fraction)
    with np.errstate(divide = 'ignore', invalid = 'ignore'):
        return (observed - expected) / expected


def background_annotation(annotation, bg_idx):
    '''
    Move each annotated peak onto its background peak. ``bg_idx[p]`` is the background
    peak replacing peak p in this round.
    '''

    n_peaks = annotation.shape[0]
    mapping = sp.csr_matrix(
        (np.ones(n_peaks), (bg_idx, np.arange(n_peaks))),
        shape = (n_peaks, n_peaks)
    )
    return (mapping @ annotation).tocsc()


def compute_deviations(
    adata, annotation, annotation_names = None, *,
    layer = 'X', bg_key = 'bg.peaks', background = None
):
    '''
    Score single cells for peak annotations.

    Parameters
    ----------
    adata
        Annotated peak counts (cells * peaks).

    annotation
        Sparse binary matrix (peaks * annotations).

    annotation_names
        Names of the annotations.

    background
        Background peak indices (peaks * iterations). Defaults to ``adata.varm[bg_key]``,
        see :func:`chrmod.peaks.background.background_peaks`.

    Returns
    -------
    ad.AnnData
        Cells * annotations, with bias corrected deviations in ``X`` and deviation
        z-scores in ``layers['z']``.
    '''

    X = sp.csr_matrix(choose_layer(adata, layer), dtype = np.float64)
    annotation = sp.csc_matrix(annotation, dtype = np.float64)
    if annotation.shape[0] != X.shape[1]:
        error(f'annotation has {annotation.shape[0]} peaks, while the counts have {X.shape[1]}.')

    if background is None:
        if bg_key not in adata.varm.keys():
            error(f'cannot find .varm["{bg_key}"], run `background_peaks(...)` first.')
        background = adata.varm[bg_key]
    background = np.asarray(background, dtype = np.int64)

    peak_totals = np.asarray(X.sum(axis = 0)).reshape(-1)
    if peak_totals.sum() == 0: error('the count matrix is empty.')
    expectation = peak_totals / peak_totals.sum()
    cell_totals = np.asarray(X.sum(axis = 1)).reshape(-1)

    raw = raw_deviations(X, annotation, expectation, cell_totals)

    n_iter = background.shape[1]
    bg_sum = np.zeros(raw.shape)
    bg_sqsum = np.zeros(raw.shape)
    for i in pprog(range(n_iter), desc = 'background'):
        bg = raw_deviations(
            X, background_annotation(annotation, background[:, i]),
            expectation, cell_totals
        )
        bg_sum += bg
        bg_sqsum += bg ** 2

    bg_mean = bg_sum / n_iter
    with np.errstate(divide = 'ignore', invalid = 'ignore'):
        bg_sd = np.sqrt(np.maximum(bg_sqsum / n_iter - bg_mean ** 2, 0) * n_iter / (n_iter - 1)) \
            if n_iter > 1 else np.full(raw.shape, np.nan)
        dev = raw - bg_mean
        z = dev / bg_sd

    if annotation_names is None: annotation_names = [f'K{k + 1}' for k in range(annotation.shape[1])]
    result = ad.AnnData(
        X = dev,
        obs = pd.DataFrame(index = adata.obs_names.copy()),
        var = pd.DataFrame({
            'n.peaks': np.asarray(annotation.sum(axis = 0)).reshape(-1).astype(int)
        }, index = list(annotation_names))
    )

    result.layers['z'] = z
    info(f'scored {adata.n_obs} cells for {annotation.shape[1]} annotations.')
    return result
