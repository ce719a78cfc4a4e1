"""Candidate peak bookkeeping: selection, merging and truncation.

Candidates are kept as two parallel arrays (confidences and grid indices).
Every operation returns a new CandidatePeaks instead of editing lists while
iterating over them.
"""
from dataclasses import dataclass
import logging
from typing import Sequence

import numpy as np

from ._typing_utils import FloatArray, IntArray

logger = logging.getLogger(__name__)


class PeakListMismatchError(RuntimeError):
    """Raised when maxima and their indices do not have the same number of elements."""


@dataclass(frozen=True, eq=False)
class CandidatePeaks:
    """Parallel lists of peak confidences and integer grid indices.

    Attributes:
        confidences: Peak amplitudes, shape (M,)
        indices: Grid indices of the peaks, shape (M, N)
    """
    confidences: FloatArray
    indices: IntArray

    def __post_init__(self) -> None:
        confidences = np.asarray(self.confidences, dtype=np.float64).reshape(-1)
        indices = np.asarray(self.indices, dtype=np.int64)
        if indices.ndim == 1 and len(confidences) == 0 and indices.size == 0:
            indices = indices.reshape(0, 0)
        if indices.ndim != 2:
            raise PeakListMismatchError(f"Peak indices must have shape (M, N), got {indices.shape}")
        if len(confidences) != len(indices):
            raise PeakListMismatchError(
                "Maxima and their indices must have the same number of elements, got "
                f"{len(confidences)} maxima and {len(indices)} indices"
            )
        object.__setattr__(self, "confidences", confidences)
        object.__setattr__(self, "indices", indices)

    def __len__(self) -> int:
        return len(self.confidences)

    def take(self, selection) -> "CandidatePeaks":
        """Subset or reorder the candidates with a slice, mask or index array."""
        return CandidatePeaks(self.confidences[selection], self.indices[selection])


def drop_non_positive(candidates: CandidatePeaks) -> CandidatePeaks:
    """Cut the descending list at its first non-positive confidence."""
    non_positive = np.flatnonzero(candidates.confidences <= 0.0)
    if len(non_positive) == 0:
        return candidates
    cut = int(non_positive[0])
    logger.debug(f"Dropping {len(candidates) - cut} non-positive maxima")
    return candidates.take(slice(0, cut))


def truncate(candidates: CandidatePeaks, offset_count: int) -> CandidatePeaks:
    """Keep at most offset_count candidates."""
    return candidates.take(slice(0, min(int(offset_count), len(candidates))))


def wrapped_distance(a: IntArray, b: IntArray, size: Sequence[int]) -> IntArray:
    """Per-axis absolute index difference on a periodic grid."""
    size = np.asarray(size, dtype=np.int64)
    dist = np.abs(np.asarray(a, dtype=np.int64) - np.asarray(b, dtype=np.int64))
    return np.where(dist > size // 2, size - dist, dist)


def merge_peaks(
    candidates: CandidatePeaks,
    size: Sequence[int],
    merge_distance: int,
) -> CandidatePeaks:
    """Collapse maxima that belong to the same blurry peak.

    Each candidate is compared with the earlier surviving ones in order; the
    first one whose largest per-axis periodic distance is within
    merge_distance absorbs its confidence. The survivors are then re-sorted
    by confidence, descending.

    Args:
        candidates: Candidates sorted by descending confidence
        size: Number of samples along each axis of the grid
        merge_distance: Maximum per-axis distance, 0 disables merging

    Returns:
        Merged candidates
    """
    if merge_distance <= 0 or len(candidates) < 2:
        return candidates

    confidences = candidates.confidences.copy()
    indices = candidates.indices
    keep = np.ones(len(candidates), dtype=bool)

    for i in range(1, len(candidates)):
        survivors = np.flatnonzero(keep[:i])
        dist = wrapped_distance(indices[survivors], indices[i], size).max(axis=1)
        nearby = survivors[dist <= merge_distance]
        if len(nearby) > 0:
            k = int(nearby[0])
            confidences[k] += confidences[i]
            keep[i] = False
            logger.debug(f"Merged peak {indices[i].tolist()} into {indices[k].tolist()}")

    merged = CandidatePeaks(confidences[keep], indices[keep])
    order = np.argsort(-merged.confidences, kind="stable")
    return merged.take(order)
