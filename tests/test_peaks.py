import numpy as np
import pandas as pd
import anndata as ad
import scipy.sparse as sp
import pytest

from chrmod.peaks import gc_content, background_peaks, compute_deviations, peak_coordinates


def test_compute_deviations_by_hand():
    counts = ad.AnnData(X = sp.csr_matrix(np.array([
        [2., 0., 1., 1.],
        [0., 2., 1., 1.],
    ])))

    annotation = sp.csr_matrix(np.array([[1], [0], [0], [0]], dtype = bool))
    background = np.array([[1, 2], [2, 3], [3, 0], [0, 1]])
    scores = compute_deviations(counts, annotation, ['K1'], background = background)

    # raw deviations 1 and -1, backgrounds (-1, 0) and (1, 0)
    np.testing.assert_allclose(scores.X[:, 0], [1.5, -1.5])
    np.testing.assert_allclose(scores.layers['z'][:, 0], [1.5 / np.sqrt(0.5), -1.5 / np.sqrt(0.5)])
    assert scores.var_names.tolist() == ['K1']
    assert scores.var['n.peaks'].tolist() == [1]
    assert scores.obs_names.tolist() == counts.obs_names.tolist()


def test_compute_deviations_requires_background():
    counts = ad.AnnData(X = sp.csr_matrix(np.ones((2, 3))))
    with pytest.raises(Exception, match = 'background_peaks'):
        compute_deviations(counts, sp.csr_matrix(np.ones((3, 1))))


def test_background_peaks_excludes_self(simulated):
    counts, _ = simulated
    counts.var['gc'] = np.random.default_rng(0).uniform(0.3, 0.7, size = counts.n_vars)
    bg = background_peaks(counts, niterations = 10, n_jobs = 1)

    assert bg.shape == (counts.n_vars, 10)
    assert (bg != np.arange(counts.n_vars)[:, np.newaxis]).all()
    assert ((bg >= 0) & (bg < counts.n_vars)).all()
    assert counts.varm['bg.peaks'].shape == (counts.n_vars, 10)


def test_background_peaks_requires_gc(simulated):
    counts, _ = simulated
    with pytest.raises(Exception, match = 'gc_content'):
        background_peaks(counts, niterations = 10)


@pytest.fixture
def genome(tmp_path):
    fasta = tmp_path / 'genome.fa'
    fasta.write_text('>chr1\nACGTNNNNGGCC\n>chr2\nAAAATTTT\n')
    return str(fasta)


def test_gc_content(genome):
    peaks = ['chr1:0-4', 'chr1:4-8', 'chr1:8-12', 'chr2:0-8']
    adata = ad.AnnData(X = np.zeros((1, 4)), var = pd.DataFrame(index = peaks))
    gc_content(adata, genome)
    np.testing.assert_allclose(adata.var['gc'].values, [0.5, 0.5, 1.0, 0.0])


def test_gc_content_unknown_chromosome(genome):
    adata = ad.AnnData(X = np.zeros((1, 1)), var = pd.DataFrame(index = ['chr3:0-4']))
    with pytest.raises(Exception, match = 'not in the reference genome'):
        gc_content(adata, genome)


def test_peak_coordinates_prefer_columns():
    var = pd.DataFrame({'chr': ['chr9'], 'start': ['10'], 'end': ['20']}, index = ['peak1'])
    adata = ad.AnnData(X = np.zeros((1, 1)), var = var)
    coords = peak_coordinates(adata)
    assert coords['start'].tolist() == [10]
    assert coords['end'].tolist() == [20]
