'''
Differential accessibility of peaks between motif high and motif low cells.

For each motif, cells are split into a high and a low group by their deviation
scores, and every peak is tested with a Welch two-sample t-test. Group sums and
sums of squares are taken with sparse products, so the test never densifies
the peak count matrix.
'''

import numpy as np
import pandas as pd
import scipy.sparse as sp
from scipy import stats
from statsmodels.stats.multitest import multipletests

from chrmod.ansi import error, warning, info
from chrmod.parallel import parallelize
from chrmod.preprocessing.linear import center_counts, binarize
from chrmod.utils import choose_layer, check_between, extract_tf_names, toarray


def binarize_scores(z, quantile = 0.5):
    '''
    Split cells into motif high (1) and motif low (0) groups for each motif.

    Parameters
    ----------
    z
        Deviation scores (cells * motifs), as a dataframe or array.

    quantile
        Cells above the ``1 - quantile`` quantile of a motif are high and cells at
        or below the ``quantile`` quantile are low. The default 0.5 is a median split;
        smaller values leave the cells in between unassigned (NaN).

    Returns
    -------
    Group assignments of the same shape and labels as ``z``.
    '''

    check_between(0, 0.5, quantile = quantile)
    if quantile == 0: error('quantile must be positive.')

    values = np.asarray(toarray(z), dtype = np.float64)
    lower = np.quantile(values, quantile, axis = 0)
    upper = np.quantile(values, 1 - quantile, axis = 0)

    groups = np.full(values.shape, np.nan)
    groups[values <= lower[np.newaxis, :]] = 0
    groups[values > upper[np.newaxis, :]] = 1

    if isinstance(z, pd.DataFrame):
        return pd.DataFrame(groups, index = z.index, columns = z.columns)
    return groups


def group_moments(X, X2, indicator):
    ''' Size, mean and sample variance of each column over the selected rows. '''

    n = indicator.sum()
    sums = np.asarray(X.T @ indicator).reshape(-1)
    sqsums = np.asarray(X2.T @ indicator).reshape(-1)
    mean = sums / n
    var = (sqsums - n * mean ** 2) / (n - 1)
    # cancellation leaves rounding residue on constant columns
    var[var <= 1e-12 * sqsums / (n - 1)] = 0
    return n, mean, var


def welch_ttest(n1, m1, v1, n2, m2, v2):
    '''
    Welch two-sample t-test from group moments. Returns the t statistics and
    two-sided p-values. Tests where both groups have no variance are NaN.
    '''

    with np.errstate(divide = 'ignore', invalid = 'ignore'):
        s1 = v1 / n1
        s2 = v2 / n2
        se = np.sqrt(s1 + s2)
        t = (m1 - m2) / se
        dof = (s1 + s2) ** 2 / (s1 ** 2 / (n1 - 1) + s2 ** 2 / (n2 - 1))

    t[se == 0] = np.nan
    dof[se == 0] = np.nan
    pval = 2 * stats.t.sf(np.abs(t), dof)
    return t, pval


def ttest_peaks(X, groups, peak_names = None, X2 = None):
    '''
    Test each peak for differential accessibility between high and low cells.

    Parameters
    ----------
    X
        Accessibility matrix (cells * peaks), sparse or dense.

    groups
        Group of each cell: 1 for high, 0 for low, NaN for excluded cells.

    X2
        Optional precomputed element-wise square of ``X``.

    Returns
    -------
    pd.DataFrame
        One row per peak, with columns ``mean.high``, ``mean.low``, ``dm`` (high minus
        low), ``t`` and ``p.value``.
    '''

    X = sp.csr_matrix(X)
    if X2 is None: X2 = X.multiply(X).tocsr()

    groups = np.asarray(groups, dtype = np.float64)
    high = (groups == 1).astype(np.float64)
    low = (groups == 0).astype(np.float64)
    if high.sum() < 2 or low.sum() < 2:
        error(f'at least 2 cells are required in each group, got {int(high.sum())} '
              f'high and {int(low.sum())} low cells.')

    n1, m1, v1 = group_moments(X, X2, high)
    n2, m2, v2 = group_moments(X, X2, low)
    t, pval = welch_ttest(n1, m1, v1, n2, m2, v2)

    if peak_names is None: peak_names = np.arange(X.shape[1])
    return pd.DataFrame({
        'mean.high': m1,
        'mean.low': m2,
        'dm': m1 - m2,
        't': t,
        'p.value': pval
    }, index = pd.Index(peak_names, name = 'peak'))


def ttest_peaks_motifs(
    counts, z, *, layer = 'X', normalize = True, binarize_counts = False,
    quantile = 0.5, n_jobs = 1, chunk_size = 1000
):
    '''
    Differential peaks for every motif.

    Parameters
    ----------
    counts
        Annotated peak counts (cells * peaks).

    z
        Deviation scores of the tested motifs (cells * motifs) as a dataframe, with
        cells in the same order as ``counts``.

    normalize
        Mean-center the counts of each cell before testing.
        See :func:`chrmod.preprocessing.linear.center_counts`.

    binarize_counts
        Test binarized accessibility instead of counts. Applied before normalization.

    Returns
    -------
    dict
        Mapping from motif name to its per-peak table, see :func:`ttest_peaks`.
    '''

    if z.shape[0] != counts.n_obs or list(z.index) != list(counts.obs_names):
        error('cells of the deviation scores and the peak counts do not match.')

    X = sp.csr_matrix(choose_layer(counts, layer), dtype = np.float64)
    if binarize_counts: X = binarize(X)
    if normalize: X = center_counts(X, chunk_size = chunk_size)
    X2 = X.multiply(X).tocsr()

    groups = binarize_scores(z, quantile = quantile)
    motifs = z.columns.tolist()
    info(f'testing {counts.n_vars} peaks for {len(motifs)} motifs ...')

    tables = parallelize(
        lambda m, **kwargs: ttest_peaks(groups = groups[m].values, **kwargs),
        motifs, n_jobs = n_jobs, backend = 'threading',
        description = 'differential peaks',
        X = X, X2 = X2, peak_names = counts.var_names.tolist()
    )

    return dict(zip(motifs, tables))


def adjust_fdr(tables, method = 'fdr_bh'):
    '''
    Add multiple testing adjusted p-values (``fdr``) to each motif table. Missing
    p-values stay missing and are not counted as tests.
    '''

    for motif, df in tables.items():
        pvals = df['p.value'].values
        valid = ~ np.isnan(pvals)
        adjusted = np.full(len(pvals), np.nan)
        if valid.sum() > 0:
            adjusted[valid] = multipletests(pvals[valid], method = method)[1]
        else: warning(f'motif `{motif}` has no valid tests.')
        df['fdr'] = adjusted

    return tables


def count_significant(tables, fdr = 1e-6):
    '''
    Number of significant peaks (FDR below the cutoff) per motif, sorted from the
    most to the least. Missing values are not significant.
    '''

    motifs = list(tables.keys())
    counts = [int((tables[m]['fdr'] < fdr).sum()) for m in motifs]
    df = pd.DataFrame({
        'motif': motifs,
        'tf': extract_tf_names(motifs),
        'n.sig': counts
    })

    return df.sort_values('n.sig', ascending = False, kind = 'stable').reset_index(drop = True)


def significant_peaks(tables, fdr = 1e-6):
    '''
    Union of the significant peaks of all motifs.

    Returns
    -------
    np.ndarray
        Integer positions of the peaks, in the order they are first seen when
        walking through the motifs (and then the peaks) in order.
    '''

    seen = set()
    union = []
    for df in tables.values():
        positions = np.flatnonzero((df['fdr'] < fdr).values)
        for p in positions:
            if p not in seen:
                seen.add(p)
                union.append(p)

    return np.array(union, dtype = np.int64)


def fold_change_matrix(
    centered, groups, peaks, *, motif_names = None, peak_names = None, pseudocount = 1
):
    '''
    Log2 fold change of mean accessibility between motif high and low cells.

    Parameters
    ----------
    centered
        Mean-centered counts (cells * peaks).

    groups
        Group assignment (cells * motifs), from :func:`binarize_scores`.

    peaks
        Integer positions of the peaks included.

    pseudocount
        Added to every entry before averaging, so that peaks without reads in a
        group still yield a finite fold change.

    Returns
    -------
    pd.DataFrame
        Peaks * motifs log2 fold changes. Columns are TF names when the motif names
        are given.
    '''

    X = sp.csc_matrix(centered)[:, peaks].tocsr()
    garr = np.asarray(toarray(groups), dtype = np.float64)

    lfc = np.zeros((len(peaks), garr.shape[1]))
    for m in range(garr.shape[1]):
        high = (garr[:, m] == 1).astype(np.float64)
        low = (garr[:, m] == 0).astype(np.float64)
        if high.sum() == 0 or low.sum() == 0:
            error(f'motif group {m} has an empty high or low group.')
        counts_high = np.asarray(X.T @ high).reshape(-1) / high.sum() + pseudocount
        counts_low = np.asarray(X.T @ low).reshape(-1) / low.sum() + pseudocount
        lfc[:, m] = np.log2(counts_high / counts_low)

    if motif_names is None and isinstance(groups, pd.DataFrame):
        motif_names = groups.columns.tolist()
    columns = extract_tf_names(motif_names) if motif_names is not None else None
    if peak_names is None: peak_names = [f'Peak {p + 1}' for p in peaks]
    return pd.DataFrame(lfc, index = peak_names, columns = columns)
