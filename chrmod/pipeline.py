'''
The module analysis, from motif deviations and peak counts to peak modules.

The analysis keeps every intermediate in a ``modules`` object, so that each step
can be inspected, replotted or rerun with other parameters interactively::

    import chrmod
    result = chrmod.run('atac.h5ad', 'deviations.h5ad', cells = 'cells.txt')
    result.plot_heatmap()
    result.save('modules')

The default parameters are taken from the configuration (see ``chrmod.config``).
'''

import os
import re
import numpy as np
import pandas as pd
import anndata as ad
import scipy.sparse as sp

from chrmod.ansi import error, warning, info, dtypemat
from chrmod.configuration import default as cfg
from chrmod.reader import read_counts, read_deviations, read_cells, subset_cells
from chrmod.preprocessing import scale_deviations, center_counts
from chrmod.descriptive import (
    jackstraw_motifs,
    significant_motifs,
    binarize_scores,
    ttest_peaks_motifs,
    adjust_fdr,
    count_significant,
    significant_peaks,
    fold_change_matrix
)
from chrmod.clustering import define_modules, module_sizes, order_modules, annotation_matrix
from chrmod.utils import extract_tf_names


def default_params():
    return {
        'prop_use': cfg['jackstraw.prop'],
        'n_pcs': cfg['jackstraw.npcs'],
        'n_iterations': cfg['jackstraw.iterations'],
        'pcs_use': list(cfg['jackstraw.pcs.use']),
        'pval_cutoff': cfg['jackstraw.pval'],
        'normalize': cfg['diff.normalize'],
        'binarize': cfg['diff.binarize'],
        'quantile': cfg['diff.quantile'],
        'fdr': cfg['diff.fdr'],
        'k': cfg['modules.k'],
        'module_seed': cfg['modules.seed'],
        'module_order': cfg['modules.order'],
        'score': cfg['scoring.enabled'],
        'score_iterations': cfg['scoring.iterations'],
        'fasta': cfg['scoring.fasta'],
        'gc_key': cfg['scoring.gc'],
        'n_jobs': cfg['n.jobs'],
        'seed': cfg['seed']
    }


def safe_filename(name):
    return re.sub(r'[^\w.\-]+', '_', str(name))


class modules:
    '''
    Peak modules of motif activity.

    Parameters
    ----------
    counts
        Annotated peak counts (cells * peaks).

    deviations
        Annotated motif deviation z-scores (cells * motifs), on the same cells.

    params
        Analysis parameters, overriding :func:`default_params`.
    '''

    def __init__(self, counts, deviations, **params):

        self.params = default_params()
        for key, value in params.items():
            if key not in self.params: error(f'unknown parameter `{key}`.')
            self.params[key] = value

        if counts is not None and deviations is not None:
            if list(counts.obs_names) != list(deviations.obs_names):
                error('peak counts and motif deviations should have the same cells, '
                      'use `subset_cells(...)` first.')

        self.counts = counts
        self.deviations = deviations

        self.jackstraw = None
        self.motifs = None
        self.tables = None
        self.nsig = None
        self.peaks = None
        self.groups = None
        self.lfc = None
        self.membership = None
        self.ordered = None
        self.labels = None
        self.annotation = None
        self.annotation_names = None
        self.scores = None


    def select_motifs(self):
        ''' Keep the motifs with significant variation by jackstraw. '''

        p = self.params
        scale_deviations(self.deviations, layer = 'X', dest = 'scaled')
        self.jackstraw = jackstraw_motifs(
            self.deviations, layer = 'scaled',
            prop_use = p['prop_use'], n_pcs = p['n_pcs'],
            n_iterations = p['n_iterations'], random_state = p['seed'],
            n_jobs = p['n_jobs']
        )

        n_tested = self.jackstraw.shape[1]
        pcs_use = [pc for pc in p['pcs_use'] if 1 <= pc <= n_tested]
        if len(pcs_use) < len(p['pcs_use']):
            warning(f'only {n_tested} components tested, using components {pcs_use}.')
        if len(pcs_use) == 0: error('none of the selected components `pcs_use` were tested.')

        self.motifs = significant_motifs(
            self.jackstraw, pcs_use = pcs_use,
            pval_cutoff = p['pval_cutoff']
        )

        if len(self.motifs) == 0:
            error('no motifs pass the jackstraw test, try a looser `pval_cutoff`.')
        self.deviations.var['jackstraw.sig'] = self.deviations.var_names.isin(self.motifs)
        return self.motifs


    def scores_of_motifs(self):
        ''' The unscaled deviation scores of the selected motifs (cells * motifs). '''

        devs = self.deviations[:, self.motifs]
        return pd.DataFrame(
            np.asarray(devs.X, dtype = np.float64),
            index = devs.obs_names.copy(), columns = list(self.motifs)
        )


    def differential_peaks(self):
        ''' Peaks differentially accessible between motif high and low cells. '''

        if self.motifs is None: error('run `select_motifs()` first.')
        p = self.params
        z = self.scores_of_motifs()

        if 'centered' not in self.counts.layers.keys():
            center_counts(self.counts, counts = 'X', dest = 'centered')

        if p['normalize'] and not p['binarize']:
            tables = ttest_peaks_motifs(
                self.counts, z, layer = 'centered', normalize = False,
                quantile = p['quantile'], n_jobs = p['n_jobs']
            )

        else:
            tables = ttest_peaks_motifs(
                self.counts, z, layer = 'X', normalize = p['normalize'],
                binarize_counts = p['binarize'], quantile = p['quantile'],
                n_jobs = p['n_jobs']
            )

        self.tables = adjust_fdr(tables)
        self.nsig = count_significant(self.tables, fdr = p['fdr'])
        for motif, n in zip(self.nsig['motif'], self.nsig['n.sig']):
            info(f'{motif}: {n} differential peaks (fdr < {p["fdr"]:g})')

        self.peaks = significant_peaks(self.tables, fdr = p['fdr'])
        info(f'{len(self.peaks)} differential peaks in total.')
        if len(self.peaks) < 2:
            error(f'only {len(self.peaks)} differential peaks found, try a looser `fdr`.')

        self.groups = binarize_scores(z, quantile = p['quantile'])
        self.lfc = fold_change_matrix(
            self.counts.layers['centered'], self.groups, self.peaks,
            motif_names = list(self.motifs),
            peak_names = self.counts.var_names[self.peaks].tolist()
        )

        return self.tables


    def cluster_peaks(self):
        ''' Group the differential peaks into modules. '''

        if self.lfc is None: error('run `differential_peaks()` first.')
        p = self.params
        self.membership = define_modules(self.lfc, k = p['k'], random_state = p['module_seed'])
        for k, n in module_sizes(self.membership).items():
            info(f'module K{k}: {n} peaks')

        self.ordered, self.labels = order_modules(
            self.lfc, self.membership, order = p['module_order']
        )

        self.annotation, self.annotation_names = annotation_matrix(
            self.counts.n_vars, self.peaks, self.membership.values
        )

        return self.membership


    def score_modules(self):
        ''' Score single cells for each module with chromVAR deviations. '''

        from chrmod.peaks import gc_content, background_peaks, compute_deviations

        if self.annotation is None: error('run `cluster_peaks()` first.')
        p = self.params
        if p['gc_key'] not in self.counts.var.columns:
            if p['fasta'] is None:
                error(f'scoring modules requires .var["{p["gc_key"]}"] or a reference genome `fasta`.')
            gc_content(self.counts, p['fasta'], key_added = p['gc_key'])

        background_peaks(
            self.counts, niterations = p['score_iterations'],
            n_jobs = p['n_jobs'], gc_key = p['gc_key'],
            random_state = p['seed']
        )

        self.scores = compute_deviations(
            self.counts, self.annotation, self.annotation_names
        )

        return self.scores


    def run(self):

        self.select_motifs()
        self.differential_peaks()
        self.cluster_peaks()
        if self.params['score']: self.score_modules()
        return self


    def plot_significant_peaks(self, **kwargs):
        from chrmod.plotting import significant_peaks_per_motif
        return significant_peaks_per_motif(self.nsig, fdr = self.params['fdr'], **kwargs)


    def plot_module_sizes(self, **kwargs):
        from chrmod.plotting import peaks_per_module
        return peaks_per_module(module_sizes(self.membership), fdr = self.params['fdr'], **kwargs)


    def plot_heatmap(self, **kwargs):
        from chrmod.plotting import module_heatmap
        return module_heatmap(self.ordered, self.labels, **kwargs)


    def to_anndata(self):
        '''
        The ordered fold change matrix as annotated data (peaks * motifs), with the
        module of each peak in ``obs['module']``.
        '''

        if self.ordered is None: error('run `cluster_peaks()` first.')
        positions = pd.Series(np.arange(self.counts.n_vars), index = self.counts.var_names) \
            if self.counts is not None else None

        obs = pd.DataFrame(index = self.ordered.index.copy())
        obs['module'] = pd.Categorical(
            [f'K{k}' for k in self.labels],
            categories = [f'K{k}' for k in self.labels.categories]
        )
        if positions is not None:
            obs['peak.position'] = positions[self.ordered.index].values

        var = pd.DataFrame({'tf': extract_tf_names(self.motifs)}, index = list(self.motifs))
        adata = ad.AnnData(X = self.ordered.values.astype(np.float64), obs = obs, var = var)
        adata.uns['params'] = {
            k: v for k, v in self.params.items()
            if v is not None and k != 'fasta'
        }
        return adata


    def save(self, directory, figures = True):

        os.makedirs(directory, exist_ok = True)
        info(f'saving module analysis to {directory} ...')

        if self.jackstraw is not None:
            self.jackstraw.to_csv(os.path.join(directory, 'jackstraw.pvals.tsv'), sep = '\t')
        if self.motifs is not None:
            with open(os.path.join(directory, 'motifs.sig.txt'), 'w') as f:
                f.write('\n'.join(self.motifs) + '\n')

        if self.tables is not None:
            os.makedirs(os.path.join(directory, 'diff'), exist_ok = True)
            for motif, df in self.tables.items():
                df.to_csv(
                    os.path.join(directory, 'diff', safe_filename(motif) + '.tsv.gz'),
                    sep = '\t'
                )

        if self.nsig is not None:
            self.nsig.to_csv(os.path.join(directory, 'motifs.nsig.tsv'), sep = '\t', index = False)

        if self.membership is not None:
            table = pd.DataFrame({
                'peak': self.membership.index,
                'peak.position': self.peaks,
                'module': [f'K{k}' for k in self.membership.values]
            })
            table.to_csv(os.path.join(directory, 'modules.tsv'), sep = '\t', index = False)
            self.to_anndata().write_h5ad(os.path.join(directory, 'modules.h5ad'))

            annot = ad.AnnData(
                X = sp.csr_matrix(self.annotation, dtype = np.uint8),
                obs = pd.DataFrame(index = self.counts.var_names.copy()),
                var = pd.DataFrame(index = self.annotation_names)
            )
            annot.write_h5ad(os.path.join(directory, 'annotation.h5ad'))

        if self.scores is not None:
            self.scores.write_h5ad(os.path.join(directory, 'deviations.modules.h5ad'))

        if figures and self.membership is not None:
            import matplotlib.pyplot as plt
            for name, plot in [
                ('motifs.nsig.pdf', self.plot_significant_peaks),
                ('modules.sizes.pdf', self.plot_module_sizes),
                ('modules.heatmap.pdf', self.plot_heatmap)
            ]:
                fig = plot()
                fig.savefig(os.path.join(directory, name), bbox_inches = 'tight')
                plt.close(fig)


    def __repr__(self):

        lines = ['<chrmod.modules>']
        if self.counts is not None:
            lines.append(f'  peak counts: {dtypemat(self.counts.X)}')
        if self.motifs is not None:
            lines.append(f'  significant motifs: {len(self.motifs)}')
        if self.peaks is not None:
            lines.append(f'  differential peaks: {len(self.peaks)}')
        if self.membership is not None:
            lines.append(f'  modules: {int(self.membership.max())}')
        if self.scores is not None:
            lines.append(f'  module scores: {self.scores.n_obs} cells')
        return '\n'.join(lines)


def run(counts, deviations, cells = None, **params):
    '''
    Run the module analysis.

    Parameters
    ----------
    counts
        Peak counts as annotated data or the path to an h5ad file.

    deviations
        Motif deviation z-scores as annotated data or the path to an h5ad file.

    cells
        The cells to keep, as a list of barcodes or the path to a text file. When
        omitted, all cells shared by the two inputs are used.

    params
        Analysis parameters, see :func:`default_params`.

    Returns
    -------
    modules
        The analysis, with all intermediate results.
    '''

    if isinstance(counts, (str, os.PathLike)): counts = read_counts(counts)
    if isinstance(deviations, (str, os.PathLike)): deviations = read_deviations(deviations)
    if isinstance(cells, (str, os.PathLike)): cells = read_cells(cells)
    counts, deviations = subset_cells(counts, deviations, cells)

    if not sp.issparse(counts.X): counts.X = sp.csr_matrix(counts.X, dtype = np.float64)
    return modules(counts, deviations, **params).run()


def load_modules(directory):
    '''
    Load a saved module analysis. The inputs are not saved, so the returned object
    holds the results only, and the steps cannot be rerun on it.
    '''

    fmodules = os.path.join(directory, 'modules.h5ad')
    if not os.path.exists(fmodules): error(f'cannot find {fmodules}.')
    adata = ad.read_h5ad(fmodules)

    result = modules(None, None)
    for key, value in adata.uns['params'].items():
        if key in result.params:
            result.params[key] = value.tolist() if isinstance(value, np.ndarray) else value

    result.motifs = adata.var_names.tolist()
    result.ordered = pd.DataFrame(
        np.asarray(adata.X), index = adata.obs_names.copy(),
        columns = adata.var['tf'].tolist()
    )
    result.labels = pd.Categorical(
        [int(x[1:]) for x in adata.obs['module']],
        categories = [int(x[1:]) for x in adata.obs['module'].cat.categories], ordered = True
    )

    table = pd.read_table(os.path.join(directory, 'modules.tsv'))
    result.peaks = table['peak.position'].values.astype(np.int64)
    result.membership = pd.Series(
        [int(x[1:]) for x in table['module']], index = table['peak'].tolist(), name = 'module'
    )
    result.lfc = result.ordered.loc[result.membership.index, :]

    fnsig = os.path.join(directory, 'motifs.nsig.tsv')
    if os.path.exists(fnsig): result.nsig = pd.read_table(fnsig)
    fjack = os.path.join(directory, 'jackstraw.pvals.tsv')
    if os.path.exists(fjack): result.jackstraw = pd.read_table(fjack, index_col = 0)

    fannot = os.path.join(directory, 'annotation.h5ad')
    if os.path.exists(fannot):
        annot = ad.read_h5ad(fannot)
        result.annotation = sp.csr_matrix(annot.X, dtype = bool)
        result.annotation_names = annot.var_names.tolist()

    fscores = os.path.join(directory, 'deviations.modules.h5ad')
    if os.path.exists(fscores): result.scores = ad.read_h5ad(fscores)

    info(f'loaded {len(result.peaks)} peaks in {int(result.membership.max())} modules.')
    return result
