'''
Jackstraw significance of motif loadings on principal components.

A random subset of motifs is permuted independently across cells in each round,
breaking its association with the cell structure while keeping its marginal
distribution. The loadings these permuted motifs receive on the principal
components form the null distribution, against which the observed loadings of
every motif are compared.
'''

import numpy as np
import pandas as pd

from chrmod.ansi import error, warning, info
from chrmod.parallel import parallelize
from chrmod.reduction.pca import pca
from chrmod.utils import choose_layer, check_between, check_positive


def jackstraw_round(seed, mat, n_permuted, n_pcs, svd_solver = 'full'):
    '''
    One permutation round. Returns the absolute loadings of the permuted motifs
    on the leading ``n_pcs`` components, shaped (n_permuted, n_pcs).
    '''

    rng = np.random.default_rng(seed)
    picked = rng.choice(mat.shape[1], n_permuted, replace = False)
    permuted = np.array(mat, copy = True)
    for j in picked: permuted[:, j] = rng.permutation(permuted[:, j])

    _, loadings, _, _ = pca(
        permuted, n_comp = n_pcs,
        random_state = 0, svd_solver = svd_solver
    )

    return np.abs(loadings[picked, :])


def empirical_pvalues(observed, null):
    '''
    Fraction of null values not smaller than each observed value. Both inputs
    are absolute loadings of a single component.
    '''

    null = np.sort(np.asarray(null))
    if len(null) == 0: error('empty null distribution.')
    n_greater = len(null) - np.searchsorted(null, observed, side = 'left')
    return n_greater / len(null)


def jackstraw_motifs(
    devs, layer = 'scaled', *,
    prop_use = 0.2, n_pcs = 20, n_iterations = 1000,
    random_state = 42, n_jobs = 1, svd_solver = 'full',
    key_added = 'jackstraw'
):
    '''
    Run jackstraw on the scaled motif deviation matrix (cells * motifs).

    Parameters
    ----------
    devs
        Annotated motif deviations, with the scaled scores in ``layers[layer]``.
        See :func:`chrmod.preprocessing.scale_deviations`.

    prop_use
        Proportion of motifs permuted in each round. At least one motif is permuted.

    n_pcs
        Number of leading principal components tested.

    n_iterations
        Number of permutation rounds.

    random_state
        Seed of the permutations. Each round derives its own random stream from it,
        so the result does not depend on ``n_jobs``.

    key_added
        Empirical p-values are stored in ``varm[key_added]`` and observed loadings in
        ``varm[key_added + '.loadings']``; parameters in ``uns[key_added]``.

    Returns
    -------
    pd.DataFrame
        Motifs * components table of empirical p-values. Columns are named
        ``PC1`` to ``PC<n>``.
    '''

    check_between(0, 1, prop_use = prop_use)
    check_positive(n_pcs = n_pcs, n_iterations = n_iterations)

    mat = np.asarray(choose_layer(devs, layer), dtype = np.float64)
    n_cells, n_motifs = mat.shape
    max_pcs = min(n_cells, n_motifs)
    if n_pcs > max_pcs:
        warning(f'only {max_pcs} components available, adjusting to `n_pcs = {max_pcs}`')
        n_pcs = max_pcs

    n_permuted = max(1, int(round(prop_use * n_motifs)))
    info(f'jackstraw on {n_motifs} motifs over {n_cells} cells: '
         f'{n_permuted} motifs permuted per round, {n_iterations} rounds.')

    _, loadings, variance, _ = pca(
        mat, n_comp = n_pcs,
        random_state = 0, svd_solver = svd_solver
    )

    seeds = np.random.SeedSequence(random_state).spawn(n_iterations)
    nulls = parallelize(
        jackstraw_round, seeds, n_jobs = n_jobs,
        description = 'jackstraw',
        mat = mat, n_permuted = n_permuted,
        n_pcs = n_pcs, svd_solver = svd_solver
    )

    nulls = np.concatenate(nulls, axis = 0)
    observed = np.abs(loadings)
    pvals = np.zeros((n_motifs, n_pcs))
    for c in range(n_pcs):
        pvals[:, c] = empirical_pvalues(observed[:, c], nulls[:, c])

    columns = [f'PC{c + 1}' for c in range(n_pcs)]
    devs.varm[key_added] = pvals
    devs.varm[key_added + '.loadings'] = loadings
    devs.uns[key_added] = {
        'prop': prop_use,
        'npcs': n_pcs,
        'iterations': n_iterations,
        'seed': random_state,
        'variance.ratio': variance
    }

    return pd.DataFrame(pvals, index = devs.var_names.copy(), columns = columns)


def significant_motifs(pvals, pcs_use = range(1, 11), pval_cutoff = 0.1):
    '''
    Motifs whose loading is significant on at least one of the selected components.

    Parameters
    ----------
    pvals
        Empirical p-values from :func:`jackstraw_motifs`.

    pcs_use
        The components considered, counted from 1.

    Returns
    -------
    list
        Names of the significant motifs, in the order of the input table.
    '''

    pcs_use = list(pcs_use)
    if len(pcs_use) == 0: error('no principal components selected.')
    for pc in pcs_use:
        if pc < 1 or pc > pvals.shape[1]:
            error(f'component {pc} is out of the tested range 1 - {pvals.shape[1]}.')

    selected = pvals.iloc[:, [pc - 1 for pc in pcs_use]]
    mask = (selected < pval_cutoff).any(axis = 1)
    motifs = pvals.index[mask.values].tolist()
    info(f'{len(motifs)} of {pvals.shape[0]} motifs significant (p < {pval_cutoff}) '
         f'on components {pcs_use[0]} - {pcs_use[-1]}.')
    return motifs
