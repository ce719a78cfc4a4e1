"""Tests for candidate selection and peak merging."""
import numpy as np
import pytest

from .._candidates import (
    CandidatePeaks,
    PeakListMismatchError,
    drop_non_positive,
    merge_peaks,
    truncate,
    wrapped_distance,
)


def test_mismatched_lengths_are_fatal():
    """Confidences and indices must always have the same length."""
    with pytest.raises(PeakListMismatchError, match="same number of elements"):
        CandidatePeaks([5.0, 3.0], [[1, 1]])


def test_indices_must_be_2d():
    with pytest.raises(PeakListMismatchError):
        CandidatePeaks([5.0], [[[1]]])


def test_drop_non_positive_cuts_at_first_non_positive():
    candidates = CandidatePeaks([5.0, 3.0, 0.0, -1.0], [[0], [1], [2], [3]])
    selected = drop_non_positive(candidates)

    assert selected.confidences.tolist() == [5.0, 3.0]
    assert selected.indices.tolist() == [[0], [1]]


def test_drop_non_positive_keeps_all_positive():
    candidates = CandidatePeaks([5.0, 3.0], [[0], [1]])
    assert drop_non_positive(candidates) is candidates


def test_drop_non_positive_can_empty_the_list():
    candidates = CandidatePeaks([0.0, -2.0], [[0, 0], [1, 1]])
    selected = drop_non_positive(candidates)

    assert len(selected) == 0
    assert selected.indices.shape == (0, 2)


def test_truncate():
    candidates = CandidatePeaks([5.0, 4.0, 3.0, 2.0, 1.0], [[i] for i in range(5)])

    assert truncate(candidates, 3).confidences.tolist() == [5.0, 4.0, 3.0]
    assert len(truncate(candidates, 10)) == 5


def test_wrapped_distance():
    dist = wrapped_distance([[0, 5], [2, 30]], [31, 1], (32, 32))
    assert dist.tolist() == [[1, 4], [3, 3]]


def test_merge_adjacent_peaks():
    """Two peaks one pixel apart collapse into the stronger one with summed confidence."""
    candidates = CandidatePeaks([5.0, 3.0], [[10, 10], [10, 11]])
    merged = merge_peaks(candidates, (32, 32), merge_distance=1)

    assert merged.confidences.tolist() == [8.0]
    assert merged.indices.tolist() == [[10, 10]]


def test_merge_uses_chebyshev_distance():
    """Diagonal neighbours are within distance 1."""
    candidates = CandidatePeaks([5.0, 3.0], [[10, 10], [11, 11]])
    merged = merge_peaks(candidates, (32, 32), merge_distance=1)

    assert merged.confidences.tolist() == [8.0]


def test_merge_wraps_around():
    """Peaks on opposite edges of the periodic grid are neighbours."""
    candidates = CandidatePeaks([5.0, 3.0], [[0, 5], [31, 5]])
    merged = merge_peaks(candidates, (32, 32), merge_distance=1)

    assert merged.confidences.tolist() == [8.0]
    assert merged.indices.tolist() == [[0, 5]]


def test_merge_keeps_distant_peaks():
    candidates = CandidatePeaks([5.0, 3.0], [[10, 10], [10, 12]])
    merged = merge_peaks(candidates, (32, 32), merge_distance=1)

    assert merged.confidences.tolist() == [5.0, 3.0]


def test_merge_disabled_is_noop():
    """A zero merge distance returns the candidates unchanged and unsorted."""
    candidates = CandidatePeaks([3.0, 5.0], [[10, 10], [10, 11]])
    merged = merge_peaks(candidates, (32, 32), merge_distance=0)

    assert merged is candidates
    assert merged.confidences.tolist() == [3.0, 5.0]


def test_merge_resorts_by_confidence():
    """Merged confidences can overtake the previous leader."""
    candidates = CandidatePeaks([5.0, 4.0, 3.0], [[0], [10], [11]])
    merged = merge_peaks(candidates, (100,), merge_distance=1)

    assert merged.confidences.tolist() == [7.0, 5.0]
    assert merged.indices.tolist() == [[10], [0]]


def test_merge_into_first_nearby_survivor():
    """A candidate joins the earliest surviving candidate within range."""
    candidates = CandidatePeaks([5.0, 4.0, 3.0, 2.0], [[0], [2], [1], [3]])
    merged = merge_peaks(candidates, (100,), merge_distance=1)

    # [1] joins [0]; [3] is only near [2]
    assert merged.confidences.tolist() == [8.0, 6.0]
    assert merged.indices.tolist() == [[0], [2]]


def test_merge_larger_distance():
    candidates = CandidatePeaks([5.0, 3.0, 1.0], [[10, 10], [12, 8], [14, 10]])

    assert len(merge_peaks(candidates, (32, 32), merge_distance=1)) == 3
    merged = merge_peaks(candidates, (32, 32), merge_distance=2)
    assert merged.confidences.tolist() == [8.0, 1.0]
    assert merge_peaks(candidates, (32, 32), merge_distance=4).confidences.tolist() == [9.0]
