import numpy as np
import anndata as ad
import scipy.sparse as sp
import pytest

from chrmod.preprocessing import scale_deviations, center_counts, binarize_counts
from chrmod.preprocessing.linear import center_counts as center_counts_m
from chrmod.utils import scale, extract_tf_names, parse_peak_names


def test_scale_standardizes_each_cell(simulated):
    _, devs = simulated
    scale_deviations(devs)
    scaled = devs.layers['scaled']
    np.testing.assert_allclose(scaled.mean(axis = 1), 0, atol = 1e-10)
    np.testing.assert_allclose(scaled.std(axis = 1, ddof = 1), 1, atol = 1e-10)


def test_scale_rejects_constant_cells():
    devs = ad.AnnData(X = np.array([[1., 2., 3.], [2., 2., 2.]]))
    with pytest.raises(Exception, match = 'missing values'):
        scale_deviations(devs)


def test_scale_matches_sample_sd():
    X = np.array([[1., 2., 3., 6.]])
    expected = (X - 3) / np.std(X, ddof = 1)
    np.testing.assert_allclose(scale(X, axis = 1), expected)


def test_center_counts_divides_by_cell_mean():
    X = sp.csr_matrix(np.array([[0., 2., 4., 2.], [1., 1., 1., 1.], [0., 0., 8., 0.]]))
    centered = center_counts_m(X, chunk_size = 2).toarray()
    expected = np.array([[0., 1., 2., 1.], [1., 1., 1., 1.], [0., 0., 4., 0.]])
    np.testing.assert_allclose(centered, expected)


def test_center_counts_rejects_empty_cells():
    X = sp.csr_matrix(np.array([[0., 2.], [0., 0.]]))
    with pytest.raises(Exception, match = 'no counts'):
        center_counts_m(X)


def test_center_counts_layer(simulated):
    counts, _ = simulated
    center_counts(counts)
    means = np.asarray(counts.layers['centered'].mean(axis = 1)).reshape(-1)
    np.testing.assert_allclose(means, 1)


def test_binarize_counts():
    adata = ad.AnnData(X = sp.csr_matrix(np.array([[0., 3.], [1., 0.]])))
    binarize_counts(adata)
    np.testing.assert_array_equal(adata.layers['binary'].toarray(), [[0, 1], [1, 0]])


def test_extract_tf_names():
    names = ['ENSMUSG00000025902_LINE1_Sox17_D_N1', 'CTCF', 'MA0139.1_CTCF']
    assert extract_tf_names(names) == ['Sox17', 'CTCF', 'MA0139.1_CTCF']


def test_parse_peak_names():
    coords = parse_peak_names(['chr1:100-200', 'chrX-5-10'])
    assert coords['chr'].tolist() == ['chr1', 'chrX']
    assert coords['start'].tolist() == [100, 5]
    assert coords['end'].tolist() == [200, 10]

    with pytest.raises(Exception, match = 'cannot parse'):
        parse_peak_names(['peak1'])
