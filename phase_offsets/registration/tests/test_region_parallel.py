"""Tests for the region dispatcher."""
import threading

import numpy as np
import pytest

from .._region_parallel import parallel_for_regions, region_indices, split_regions


def test_regions_cover_grid_without_overlap():
    shape = (10, 7)
    coverage = np.zeros(shape, dtype=int)
    for region in split_regions(shape, 3):
        coverage[region] += 1

    assert len(split_regions(shape, 3)) == 3
    np.testing.assert_array_equal(coverage, 1)


def test_more_regions_than_rows():
    regions = split_regions((2, 50), 8)
    assert len(regions) == 2


def test_region_indices_are_array_coordinates():
    region = (slice(3, 5), slice(0, 4))
    rows, cols = region_indices(region)

    assert rows.ravel().tolist() == [3, 4]
    assert cols.ravel().tolist() == [0, 1, 2, 3]


def test_region_indices_1d():
    (ind,) = region_indices((slice(2, 5),))
    assert ind.tolist() == [2, 3, 4]


def test_every_region_processed():
    shape = (256, 64)
    output = np.zeros(shape)
    lock = threading.Lock()
    seen = []

    def fill(region):
        output[region] = 1.0
        with lock:
            seen.append(region)

    parallel_for_regions(shape, fill, num_workers=4)

    assert len(seen) == 4
    np.testing.assert_array_equal(output, 1.0)


def test_small_grid_runs_inline():
    calls = []
    parallel_for_regions((8, 8), calls.append, num_workers=8)
    assert calls == [(slice(0, 8), slice(0, 8))]


def test_worker_exception_propagates():
    def fail(region):
        raise MemoryError("out of memory")

    with pytest.raises(MemoryError):
        parallel_for_regions((256, 64), fail, num_workers=4)
