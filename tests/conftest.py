import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import anndata as ad
import scipy.sparse as sp
import pytest

from chrmod import ansi
from chrmod.configuration import default as cfg


N_CELLS = 300
N_PEAKS = 600


def motif_name(i):
    return f'ENSMUSG{i:011d}_LINE{i}_Tf{i}_D_N1'


def simulate(n_cells = N_CELLS, n_peaks = N_PEAKS, seed = 0):
    '''
    Two independent cell programs a and b. Motifs 0-3 follow a, motifs 4-7 follow
    b and motifs 8-11 are noise. Peaks 0-29 open with a, peaks 30-59 open with b,
    and the remaining peaks are flat. Flat peaks dominate the library size, so that
    centering the counts does not make them differential.
    '''

    rng = np.random.default_rng(seed)
    a = rng.normal(size = n_cells)
    b = rng.normal(size = n_cells)

    z = np.zeros((n_cells, 12))
    for i in range(4): z[:, i] = a + 0.3 * rng.normal(size = n_cells)
    for i in range(4, 8): z[:, i] = b + 0.3 * rng.normal(size = n_cells)
    for i in range(8, 12): z[:, i] = rng.normal(size = n_cells)

    rate = np.ones((n_cells, n_peaks))
    rate[:, 0:30] = np.exp(1.2 * a)[:, np.newaxis]
    rate[:, 30:60] = np.exp(1.2 * b)[:, np.newaxis]
    depth = rng.uniform(0.8, 1.2, size = n_cells)
    counts = rng.poisson(rate * depth[:, np.newaxis]).astype(np.float64)

    cells = [f'cell{i}' for i in range(n_cells)]
    peaks = [f'chr1:{1000 * i}-{1000 * i + 500}' for i in range(n_peaks)]

    counts = ad.AnnData(
        X = sp.csr_matrix(counts),
        obs = pd.DataFrame(index = cells),
        var = pd.DataFrame(index = peaks)
    )

    devs = ad.AnnData(
        X = z,
        obs = pd.DataFrame(index = cells),
        var = pd.DataFrame(index = [motif_name(i) for i in range(12)])
    )

    return counts, devs


@pytest.fixture
def simulated():
    return simulate()


@pytest.fixture
def input_files(tmp_path, simulated):
    counts, devs = simulated
    fcounts = tmp_path / 'atac.h5ad'
    fdevs = tmp_path / 'deviations.h5ad'
    counts.write_h5ad(fcounts)
    devs.write_h5ad(fdevs)
    return fcounts, fdevs


@pytest.fixture(autouse = True)
def isolated_state(monkeypatch):
    ''' Keep the configuration and console switches of one test from leaking. '''
    monkeypatch.setattr(cfg, 'config', dict(cfg.config))
    monkeypatch.setattr(ansi, 'SILENT', False)
    yield
    import matplotlib.pyplot as plt
    plt.close('all')


@pytest.fixture
def fast_params():
    return {
        'n_iterations': 30,
        'n_pcs': 5,
        'pcs_use': [1, 2],
        'k': 15,
        'fdr': 1e-4,
        'n_jobs': 1
    }
