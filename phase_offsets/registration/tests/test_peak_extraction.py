"""Tests for the reference top-K maxima extractor."""
import numpy as np
import pytest

from .._peak_extraction import NMaximaExtractor, requested_peak_count


@pytest.fixture
def extractor():
    return NMaximaExtractor()


def gaussian_blobs(shape, centers, amplitudes, sigma=1.5):
    """Sum of isotropic gaussians on a grid."""
    grids = np.indices(shape)
    surface = np.zeros(shape)
    for center, amplitude in zip(centers, amplitudes):
        dist2 = sum((g - c) ** 2 for g, c in zip(grids, center))
        surface += amplitude * np.exp(-dist2 / (2 * sigma ** 2))
    return surface


def test_sorted_descending(extractor):
    surface = gaussian_blobs((64, 64), [(10, 10), (30, 40), (50, 20)], [0.5, 1.0, 0.8])
    values, indices = extractor.top_k(surface, 3)

    assert values.tolist() == sorted(values.tolist(), reverse=True)
    assert indices.tolist() == [[30, 40], [50, 20], [10, 10]]
    assert indices.dtype == np.int64


def test_only_local_maxima(extractor):
    """Samples next to a stronger one are not reported."""
    surface = gaussian_blobs((64, 64), [(20, 20)], [1.0])
    values, indices = extractor.top_k(surface, 2)

    assert indices[0].tolist() == [20, 20]
    assert all(abs(i - 20) > 1 or abs(j - 20) > 1 for i, j in indices[1:])


def test_local_maxima_wrap_around(extractor):
    """The last sample is compared with the first one."""
    surface = np.array([5.0, 1.0, 0.0, 2.0, 4.0])
    values, indices = extractor.top_k(surface, 5)

    assert values.tolist() == [5.0]
    assert indices.tolist() == [[0]]


def test_plateau_reported_once(extractor):
    """A flat-topped peak yields a single maximum at its first sample."""
    surface = np.array([0.0] * 5 + [5.0, 5.0, 5.0] + [0.0] * 12)
    values, indices = extractor.top_k(surface, 5)

    assert values.tolist() == [5.0, 0.0]
    assert indices.tolist() == [[5], [0]]


def test_plateau_across_edge_reported_once(extractor):
    """Plateaus joined through the periodic boundary count as one."""
    surface = np.zeros((8, 8))
    surface[0, 3] = surface[7, 3] = surface[7, 4] = 2.0
    surface[4, 0] = surface[4, 7] = 1.0
    values, indices = extractor.top_k(surface, 8)

    assert values.tolist() == [2.0, 1.0, 0.0]
    assert indices[:2].tolist() == [[0, 3], [4, 0]]


def test_truncates_to_k(extractor):
    rng = np.random.default_rng(7)
    values, indices = extractor.top_k(rng.random((32, 32)), 4)

    assert len(values) == len(indices) == 4
    assert indices.shape == (4, 2)


def test_3d_surface(extractor):
    surface = gaussian_blobs((16, 16, 16), [(4, 5, 6)], [2.0])
    values, indices = extractor.top_k(surface, 1)

    assert indices.tolist() == [[4, 5, 6]]
    assert values[0] == pytest.approx(2.0)


def test_invalid_k(extractor):
    with pytest.raises(ValueError):
        extractor.top_k(np.ones(8), 0)
    with pytest.raises(TypeError):
        extractor.top_k(np.ones(8), 1.5)


def test_k_larger_than_surface_warns(extractor):
    with pytest.warns(UserWarning):
        extractor.top_k(np.arange(4.0), 10)


def test_non_finite_surface(extractor):
    surface = np.ones(8)
    surface[3] = np.nan
    with pytest.raises(ValueError, match="non-finite"):
        extractor.top_k(surface, 1)


@pytest.mark.parametrize(
    "offset_count, ndim, merge_peaks, expected",
    [
        (1, 2, 1, 8),
        (5, 2, 1, 24),
        (5, 2, 0, 5),
        (3, 1, 1, 4),
        (4, 3, 2, 52),
    ],
)
def test_requested_peak_count(offset_count, ndim, merge_peaks, expected):
    assert requested_peak_count(offset_count, ndim, merge_peaks) == expected
