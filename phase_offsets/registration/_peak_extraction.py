"""Top-K local maxima extraction from an adjusted correlation surface.

The estimator only relies on the `PeakExtractor` contract; `NMaximaExtractor`
is the implementation used when the caller does not inject one.
"""
import logging
import warnings
from typing import Any, Protocol, Tuple

import numpy as np
from scipy import ndimage

from ._typing_utils import FloatArray, IntArray

logger = logging.getLogger(__name__)


class PeakExtractor(Protocol):
    """Strategy returning the K largest local maxima of a surface."""

    def top_k(self, surface: FloatArray, k: int) -> Tuple[FloatArray, IntArray]:
        """Find the K largest local maxima.

        Args:
            surface: N-dimensional real array
            k: Maximum number of maxima to return

        Returns:
            Tuple of (values sorted descending, array coordinates with shape (M, N))
        """
        ...


class NMaximaExtractor:
    """Periodic local-maximum search followed by a descending sort.

    A sample is a local maximum when it equals the maximum of its 3^N
    neighbourhood, with every axis wrapping around. Connected maxima form a
    plateau of equal values and are reported once, at the plateau sample
    with the lowest flat (C order) index. Equal values keep the order of
    their flat index.
    """

    def top_k(self, surface: FloatArray, k: int) -> Tuple[FloatArray, IntArray]:
        _validate_surface_input(surface)
        _validate_max_peaks(k, surface.size)

        values = np.asarray(surface, dtype=np.float64)
        neighborhood_max = ndimage.maximum_filter(values, size=3, mode="wrap")
        is_peak = values >= neighborhood_max

        flat_peaks = _plateau_representatives(is_peak)
        peak_values = values.reshape(-1)[flat_peaks]
        order = np.argsort(-peak_values, kind="stable")[:k]

        indices = np.stack(np.unravel_index(flat_peaks[order], values.shape), axis=1).astype(np.int64)
        logger.debug(f"Found {len(flat_peaks)} local maxima, returning {len(order)}")
        return peak_values[order], indices


def _plateau_representatives(is_peak: np.ndarray) -> IntArray:
    """First flat index of every periodically connected component of a mask."""
    structure = np.ones((3,) * is_peak.ndim, dtype=bool)
    labels, n_labels = ndimage.label(is_peak, structure=structure)
    flat_peaks = np.flatnonzero(is_peak)
    if n_labels <= 1:
        return flat_peaks[:n_labels]

    # ndimage.label does not wrap, so join components touching across an edge
    parent = np.arange(n_labels + 1)

    def find(label: int) -> int:
        while parent[label] != label:
            parent[label] = parent[parent[label]]
            label = parent[label]
        return label

    for shift in np.ndindex(*((3,) * is_peak.ndim)):
        shift = tuple(s - 1 for s in shift)
        if not any(shift):
            continue
        neighbor = np.roll(labels, shift, axis=tuple(range(is_peak.ndim)))
        joined = (labels > 0) & (neighbor > 0) & (labels != neighbor)
        for a, b in zip(labels[joined].tolist(), neighbor[joined].tolist()):
            root_a, root_b = find(a), find(b)
            if root_a != root_b:
                parent[max(root_a, root_b)] = min(root_a, root_b)

    roots = np.array([find(label) for label in labels.reshape(-1)[flat_peaks].tolist()])
    _, first = np.unique(roots, return_index=True)
    return flat_peaks[np.sort(first)]


def requested_peak_count(offset_count: int, ndim: int, merge_peaks: int) -> int:
    """Number of raw maxima to request so enough survive merging."""
    if merge_peaks > 0:
        return int(np.ceil(offset_count / 2)) * (3 ** ndim - 1)
    return offset_count


def _validate_surface_input(surface: Any) -> None:
    """Validate a surface handed to the extractor.

    Raises:
        TypeError: If surface is not array-like
        ValueError: If surface is empty or contains non-finite values
    """
    if surface is None:
        raise TypeError("Surface cannot be None")
    if not hasattr(surface, "shape") or not hasattr(surface, "dtype"):
        raise TypeError(f"Surface must be array-like with 'shape' and 'dtype' attributes, got {type(surface)}")
    if surface.size == 0:
        raise ValueError("Surface cannot be empty")
    if not np.issubdtype(surface.dtype, np.number):
        raise ValueError(f"Surface must be numeric, got dtype {surface.dtype}")
    if not np.all(np.isfinite(surface)):
        raise ValueError("Surface contains non-finite values (NaN or infinity)")


def _validate_max_peaks(max_peaks: Any, surface_size: int) -> None:
    """Validate the requested number of maxima.

    Raises:
        TypeError: If max_peaks is not integer
        ValueError: If max_peaks is not positive
    """
    if not isinstance(max_peaks, (int, np.integer)):
        raise TypeError(f"max_peaks must be an integer, got {type(max_peaks)}")
    if max_peaks <= 0:
        raise ValueError(f"max_peaks must be positive, got {max_peaks}")
    if max_peaks > surface_size:
        warnings.warn(
            f"max_peaks ({max_peaks}) exceeds surface size ({surface_size}). "
            f"Will return at most {surface_size} peaks.",
            UserWarning,
            stacklevel=3,
        )
