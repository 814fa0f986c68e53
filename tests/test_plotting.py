import numpy as np
import pandas as pd

from chrmod.plotting import significant_peaks_per_motif, peaks_per_module, module_heatmap


def test_significant_peaks_per_motif():
    nsig = pd.DataFrame({
        'motif': ['m1', 'm2', 'm3'],
        'tf': ['Sox2', 'Pax6', 'Klf4'],
        'n.sig': [5, 40, 12]
    })

    fig = significant_peaks_per_motif(nsig, fdr = 1e-6)
    labels = [x.get_text() for x in fig.axes[0].get_xticklabels()]
    assert labels == ['Pax6', 'Klf4', 'Sox2']


def test_peaks_per_module():
    sizes = pd.Series([10, 3, 7], index = [1, 2, 3], name = 'n.peaks')
    fig = peaks_per_module(sizes)
    assert len(fig.axes[0].patches) == 3


def test_module_heatmap():
    rng = np.random.default_rng(0)
    ordered = pd.DataFrame(
        rng.normal(size = (12, 4)),
        index = [f'p{i}' for i in range(12)],
        columns = ['A', 'B', 'C', 'D']
    )

    labels = pd.Categorical([2] * 5 + [1] * 7, categories = [2, 1], ordered = True)
    fig = module_heatmap(ordered, labels)

    # one panel per module and the colorbar
    assert len(fig.axes) == 3
    assert fig.axes[0].get_ylabel() == 'K2'
    assert sorted(x.get_text() for x in fig.axes[1].get_xticklabels()) == ['A', 'B', 'C', 'D']
