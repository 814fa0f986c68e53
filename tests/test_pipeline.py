import os
import numpy as np
import pandas as pd
import pytest

import chrmod
from chrmod.pipeline import modules, default_params
from chrmod.configuration import default as cfg


def majority_purity(membership, positions):
    ''' Fraction of planted peaks that share a module with most peaks of their program. '''

    program = np.where(positions < 30, 'a', 'b')
    df = pd.DataFrame({'module': membership, 'program': program})
    agree = df.groupby('module')['program'].agg(lambda x: x.value_counts().iloc[0]).sum()
    return agree / df.shape[0]


@pytest.fixture
def result(simulated, fast_params):
    counts, devs = simulated
    return chrmod.run(counts, devs, **fast_params)


def test_default_params_follow_configuration():
    cfg.update_config('diff.fdr', 0.01)
    params = default_params()
    assert params['fdr'] == 0.01
    assert params['pcs_use'] == list(range(1, 11))
    assert params['k'] == 30


def test_unknown_parameter(simulated):
    counts, devs = simulated
    with pytest.raises(Exception, match = 'unknown parameter'):
        modules(counts, devs, clusters = 3)


def test_modules_require_same_cells(simulated):
    counts, devs = simulated
    with pytest.raises(Exception, match = 'same cells'):
        modules(counts, devs[::2].copy())


def test_steps_in_order(simulated):
    counts, devs = simulated
    with pytest.raises(Exception, match = 'select_motifs'):
        modules(counts, devs).differential_peaks()


def test_run_recovers_programs(result):
    assert {'ENSMUSG00000000000_LINE0_Tf0_D_N1', 'ENSMUSG00000000004_LINE4_Tf4_D_N1'} \
        <= set(result.motifs)
    assert result.deviations.var['jackstraw.sig'].sum() == len(result.motifs)

    planted = result.peaks[result.peaks < 60]
    assert len(planted) >= 50
    assert len(result.peaks) - len(planted) < 10

    membership = result.membership.values[result.peaks < 60]
    assert majority_purity(membership, planted) > 0.9
    assert result.membership.iloc[0] == 1

    assert result.lfc.shape == (len(result.peaks), len(result.motifs))
    assert result.lfc.columns.tolist() == chrmod.utils.extract_tf_names(result.motifs)
    assert result.ordered.shape == result.lfc.shape
    assert sorted(result.ordered.index) == sorted(result.lfc.index)

    assert result.annotation.shape == (result.counts.n_vars, result.membership.max())
    assert result.annotation.sum() == len(result.peaks)
    assert result.scores is None
    assert repr(result).startswith('<chrmod.modules>')


def test_module_order(simulated, fast_params):
    counts, devs = simulated
    first = chrmod.run(counts.copy(), devs.copy(), **fast_params)
    K = int(first.membership.max())
    order = list(range(K, 0, -1))

    second = chrmod.run(counts, devs, module_order = order, **fast_params)
    assert list(second.labels.categories) == order
    assert second.labels[0] == K
    assert (second.membership.values == first.membership.values).all()


def test_save_and_load(result, tmp_path):
    outdir = str(tmp_path / 'modules')
    result.save(outdir)

    for name in [
        'jackstraw.pvals.tsv', 'motifs.sig.txt', 'motifs.nsig.tsv', 'modules.tsv',
        'modules.h5ad', 'annotation.h5ad', 'motifs.nsig.pdf', 'modules.sizes.pdf',
        'modules.heatmap.pdf'
    ]:
        assert os.path.exists(os.path.join(outdir, name)), name

    assert len(os.listdir(os.path.join(outdir, 'diff'))) == len(result.motifs)
    table = pd.read_table(os.path.join(outdir, 'modules.tsv'))
    assert table.columns.tolist() == ['peak', 'peak.position', 'module']
    assert table['peak.position'].tolist() == result.peaks.tolist()

    loaded = chrmod.load_modules(outdir)
    assert loaded.motifs == list(result.motifs)
    assert (loaded.peaks == result.peaks).all()
    assert (loaded.membership.values == result.membership.values).all()
    np.testing.assert_allclose(loaded.ordered.values, result.ordered.values)
    assert list(loaded.labels.categories) == list(result.labels.categories)
    assert loaded.params['fdr'] == result.params['fdr']
    assert (loaded.annotation != result.annotation).nnz == 0

    fig = loaded.plot_heatmap()
    assert len(fig.axes) == int(result.membership.max()) + 1


def test_modules_anndata(result):
    adata = result.to_anndata()
    assert adata.shape == result.ordered.shape
    assert adata.obs['module'].cat.categories.tolist() == \
        [f'K{k}' for k in range(1, int(result.membership.max()) + 1)]
    positions = adata.obs['peak.position'].values
    assert (result.counts.var_names[positions] == adata.obs_names).all()


def test_run_with_scoring(simulated, fast_params):
    counts, devs = simulated
    counts.var['gc'] = np.random.default_rng(0).uniform(0.3, 0.7, size = counts.n_vars)
    result = chrmod.run(counts, devs, score = True, score_iterations = 20, **fast_params)

    K = int(result.membership.max())
    assert result.scores.shape == (counts.n_obs, K)
    assert result.scores.var_names.tolist() == [f'K{k}' for k in range(1, K + 1)]
    assert 'z' in result.scores.layers.keys()


def test_run_from_files(input_files, fast_params, tmp_path):
    fcounts, fdevs = input_files
    fcells = tmp_path / 'cells.txt'
    fcells.write_text('\n'.join(f'cell{i}' for i in range(0, 300, 2)) + '\n')

    result = chrmod.run(str(fcounts), str(fdevs), cells = str(fcells), **fast_params)
    assert result.counts.n_obs == 150
    assert result.deviations.obs_names.tolist() == result.counts.obs_names.tolist()


def test_run_with_fewer_motifs_than_components(simulated):
    counts, devs = simulated
    result = chrmod.run(
        counts, devs[:, :8].copy(),
        n_iterations = 10, k = 15, fdr = 1e-4, n_jobs = 1
    )

    assert result.params['pcs_use'] == list(range(1, 11))
    assert result.jackstraw.shape == (8, 8)
    assert len(result.motifs) > 0


def test_run_from_paths(input_files, fast_params):
    fcounts, fdevs = input_files
    result = chrmod.run(fcounts, fdevs, **fast_params)
    assert result.counts.n_obs == 300


def test_run_with_duplicated_peak_names(simulated, fast_params):
    counts, devs = simulated
    names = counts.var_names.tolist()
    names[1] = names[0]
    counts.var_names = names

    result = chrmod.run(counts, devs, **fast_params)
    assert result.counts.var_names.is_unique
    adata = result.to_anndata()
    assert adata.n_obs == len(result.peaks)
    positions = adata.obs['peak.position'].values
    assert (result.counts.var_names[positions] == adata.obs_names).all()
