import numpy as np
import pandas as pd
import seaborn as sns
import matplotlib.pyplot as plt

from chrmod.clustering.seriation import serial_order
from chrmod.utils import scale


def format_cutoff(fdr):
    return f'{fdr:g}'


def significant_peaks_per_motif(
    nsig, fdr = 1e-6, ax = None, color = 'slategray',
    fontsize = 5, figsize = (8, 3), dpi = 100
):
    '''
    Number of differential peaks of each motif, from the most to the least.

    Parameters
    ----------
    nsig
        Table of significant peak counts, see :func:`chrmod.descriptive.diff.count_significant`.
    '''

    df = nsig.sort_values('n.sig', ascending = False, kind = 'stable')
    if ax is not None: fig, axis = ax.figure, ax
    else: fig, axis = plt.subplots(1, 1, figsize = figsize, dpi = dpi)

    x = np.arange(df.shape[0])
    axis.scatter(
        x, df['n.sig'].values, s = 12,
        facecolor = color, edgecolor = 'black', linewidth = 0.5
    )

    axis.set_xticks(x)
    axis.set_xticklabels(df['tf'].tolist(), rotation = 90, fontsize = fontsize)
    axis.set_xlim(-1, len(x))
    axis.set_ylim(0, df['n.sig'].max() * 1.1 + 1)
    axis.set_ylabel(f'No. of differential peaks\n(FDR < {format_cutoff(fdr)})', linespacing = 1.5)

    for pos in ['right', 'top']:
        axis.spines[pos].set_visible(False)

    return fig


def peaks_per_module(
    sizes, fdr = 1e-6, ax = None, color = 'black', figsize = (4, 3), dpi = 100
):
    '''
    Number of peaks in each module.

    Parameters
    ----------
    sizes
        Peak counts indexed by module, see :func:`chrmod.clustering.modules.module_sizes`.
    '''

    if ax is not None: fig, axis = ax.figure, ax
    else: fig, axis = plt.subplots(1, 1, figsize = figsize, dpi = dpi)

    df = pd.DataFrame({'module': [str(x) for x in sizes.index], 'n': sizes.values})
    sns.barplot(
        data = df, x = 'module', y = 'n', ax = axis,
        color = color, edgecolor = 'white', linewidth = 0.5
    )

    axis.set_xlabel('Module')
    axis.set_ylabel(f'No. of differential peaks\n(FDR < {format_cutoff(fdr)})', linespacing = 1.5)
    axis.set_ylim(0, df['n'].max() * 1.1 + 1)
    for pos in ['right', 'top']:
        axis.spines[pos].set_visible(False)

    return fig


def module_heatmap(
    ordered, labels, cmap = 'RdBu_r', vmax = 2,
    title = 'log2 FC\naccessibility', fontsize = 6.5,
    figsize = (6, 8), dpi = 100
):
    '''
    Heatmap of the standardized fold changes of the peaks, split by module.

    Rows are taken in the given order (grouped by module in the order of the label
    categories). Columns are ordered by hierarchical clustering on the Pearson
    correlation distance between motifs.

    Parameters
    ----------
    ordered
        Peaks * motifs fold changes, ordered by :func:`chrmod.clustering.modules.order_modules`.

    labels
        The module of each row, a categorical in module display order.

    vmax
        Color limit of the standardized values, symmetric around zero.
    '''

    mat = scale(ordered, axis = 1)
    mat[np.isnan(mat)] = 0
    col_order, _ = serial_order(mat.T)
    mat = mat[:, col_order]
    columns = [ordered.columns[i] for i in col_order]

    labels = pd.Categorical(labels)
    modules = [k for k in labels.categories if (labels == k).sum() > 0]
    sizes = [int((labels == k).sum()) for k in modules]

    fig, axes = plt.subplots(
        len(modules), 1, figsize = figsize, dpi = dpi, squeeze = False,
        gridspec_kw = { 'height_ratios': sizes, 'hspace': 0.05 }
    )

    codes = np.asarray(labels.codes)
    for i, k in enumerate(modules):
        axis = axes[i, 0]
        block = mat[codes == list(labels.categories).index(k), :]
        im = axis.imshow(
            block, aspect = 'auto', cmap = cmap,
            vmin = -vmax, vmax = vmax, interpolation = 'nearest'
        )

        im.set_rasterized(True)
        axis.set_yticks([])
        axis.set_ylabel(f'K{k}', rotation = 0, ha = 'right', va = 'center', fontsize = fontsize)
        axis.set_xticks([])
        for pos in ['right', 'top', 'left', 'bottom']:
            axis.spines[pos].set_visible(False)

    last = axes[-1, 0]
    last.set_xticks(np.arange(len(columns)))
    last.set_xticklabels(columns, rotation = 90, fontsize = fontsize)

    cbar = fig.colorbar(im, ax = axes[:, 0].tolist(), shrink = 0.25, aspect = 10, pad = 0.02)
    cbar.set_label(title, fontsize = fontsize)
    cbar.ax.tick_params(labelsize = fontsize)
    return fig
