"""Offset estimation from the maxima of a phase correlation surface.

Given a precomputed phase correlation surface and the geometry of the two
images it was computed from, this module produces a ranked list of sub-pixel
offsets between the images:

- The surface is biased towards the shift implied by the image origins
- The trivial zero-shift solution is suppressed
- Local maxima are extracted, non-positive ones dropped and nearby ones merged
- Each retained peak is refined to sub-pixel accuracy and converted into a
  physical offset, resolving the direct/mirror ambiguity per axis

Every call allocates its own working surface and candidate list; nothing is
kept between calls.
"""
from dataclasses import dataclass
import logging
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd

from ..benchmarking_util import debug_timing
from ..parameters import OptimizerParameters
from ._bias_field import build_bias_field, suppress_zero_shift
from ._candidates import CandidatePeaks, drop_non_positive, merge_peaks, truncate
from ._interpolation import refine_peak
from ._offset_resolution import resolve_offset
from ._peak_extraction import NMaximaExtractor, PeakExtractor, requested_peak_count
from ._surface import CorrelationSurface, ImageGeometry, as_correlation_surface
from ._typing_utils import FloatArray, IntArray, NumArray
from .debug_output import (
    ADJUSTED_SURFACE_FILENAME,
    ZERO_SUPPRESSED_SURFACE_FILENAME,
    write_debug_surface,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class OffsetEstimate:
    """Ranked offsets between two images.

    Attributes:
        offsets: Physical offsets, shape (K, N), best first
        confidences: Confidence of each offset, shape (K,), descending
    """
    offsets: FloatArray
    confidences: FloatArray

    def __len__(self) -> int:
        return len(self.confidences)

    @property
    def best_offset(self) -> FloatArray:
        """The highest-confidence offset."""
        return self.offsets[0]

    def to_dataframe(self) -> pd.DataFrame:
        """One row per offset with columns offset_0..offset_{N-1} and confidence."""
        columns = {f"offset_{axis}": self.offsets[:, axis] for axis in range(self.offsets.shape[1])}
        columns["confidence"] = self.confidences
        df = pd.DataFrame(columns)
        df.index.name = "rank"
        return df


def zero_offset_estimate(ndim: int) -> OffsetEstimate:
    """A single all-zero offset, returned when there is no surface to analyse."""
    return OffsetEstimate(np.zeros((1, ndim), dtype=np.float64), np.zeros(1, dtype=np.float64))


def _validate_inputs(
    surface: CorrelationSurface,
    geometry: ImageGeometry,
    offset_count: int,
) -> None:
    """Check that the surface, geometry and requested count fit together.

    Raises:
        ValueError: If the inputs are inconsistent
    """
    if not isinstance(offset_count, (int, np.integer)) or offset_count < 1:
        raise ValueError(f"offset_count must be a positive integer, got {offset_count}")
    if geometry.ndim != surface.ndim:
        raise ValueError(
            f"Geometry has {geometry.ndim} dimensions but the surface is {surface.ndim}D"
        )
    if not np.all(np.isfinite(surface.values)):
        raise ValueError("Correlation surface contains non-finite values (NaN or infinity)")


def _validate_peak_indices(array_indices: IntArray, shape: Tuple[int, ...]) -> None:
    """Check that extracted maxima lie on the surface grid.

    Raises:
        ValueError: If any index is outside the surface
    """
    outside = np.any((array_indices < 0) | (array_indices >= np.asarray(shape)), axis=1)
    if np.any(outside):
        raise ValueError(
            f"Peak extractor returned indices outside the {shape} surface: "
            f"{array_indices[outside].tolist()}"
        )


def estimate_offsets(
    surface: Union[CorrelationSurface, NumArray, None],
    geometry: Optional[ImageGeometry] = None,
    offset_count: int = 1,
    parameters: Optional[OptimizerParameters] = None,
    peak_extractor: Optional[PeakExtractor] = None,
) -> OffsetEstimate:
    """Estimate ranked sub-pixel offsets from a phase correlation surface.

    Args:
        surface: Correlation surface, or a bare array with a zero grid origin.
            None yields a single zero offset without any computation.
        geometry: Spacing of the fixed image and origins of both images.
            Defaults to unit spacing and coincident origins.
        offset_count: Maximum number of offsets to return
        parameters: Estimation parameters, defaults if None
        peak_extractor: Strategy finding the top-K maxima of a surface,
            NMaximaExtractor if None

    Returns:
        OffsetEstimate with at most offset_count offsets, sorted by
        descending confidence

    Raises:
        ValueError: If the inputs are inconsistent, or the extractor
            returns indices outside the surface
        PeakListMismatchError: If the extractor returns maxima and indices
            of different lengths
    """
    surface = as_correlation_surface(surface)
    if surface is None:
        ndim = geometry.ndim if geometry is not None else 1
        logger.debug("No correlation surface supplied, returning a zero offset")
        return zero_offset_estimate(ndim)

    if parameters is None:
        parameters = OptimizerParameters()
    if geometry is None:
        geometry = ImageGeometry.unit(surface.ndim)
    if peak_extractor is None:
        peak_extractor = NMaximaExtractor()
    _validate_inputs(surface, geometry, offset_count)

    num_workers = parameters.effective_num_workers

    with debug_timing("bias field"):
        adjusted = build_bias_field(
            surface, geometry, parameters.pixel_distance_tolerance, num_workers
        )
    write_debug_surface(adjusted, parameters.debug_output_dir, ADJUSTED_SURFACE_FILENAME)

    if parameters.zero_suppression > 0.0:
        with debug_timing("zero suppression"):
            suppress_zero_shift(adjusted, parameters.zero_suppression, num_workers)
        write_debug_surface(adjusted, parameters.debug_output_dir, ZERO_SUPPRESSED_SURFACE_FILENAME)

    k = requested_peak_count(int(offset_count), surface.ndim, parameters.merge_peaks)
    k = min(k, adjusted.size)
    with debug_timing("peak extraction"):
        confidences, array_indices = peak_extractor.top_k(adjusted, k)

    array_indices = np.asarray(array_indices, dtype=np.int64).reshape(-1, surface.ndim)
    _validate_peak_indices(array_indices, surface.shape)
    candidates = CandidatePeaks(confidences, array_indices + surface.grid_origin)
    candidates = drop_non_positive(candidates)
    candidates = merge_peaks(candidates, surface.shape, parameters.merge_peaks)
    candidates = truncate(candidates, offset_count)
    logger.debug(f"Retained {len(candidates)} of {k} requested maxima")

    offsets = np.zeros((len(candidates), surface.ndim), dtype=np.float64)
    for m, index in enumerate(candidates.indices):
        refined = refine_peak(
            adjusted,
            index - surface.grid_origin,
            parameters.peak_interpolation,
            # only the best peak may extrapolate beyond its neighbourhood
            clamp_ratio=m > 0,
        )
        offsets[m] = resolve_offset(refined + surface.grid_origin, surface, geometry)

    return OffsetEstimate(offsets, candidates.confidences * parameters.confidence_scale)


class MaxPhaseCorrelationOptimizer:
    """Reusable holder of estimation parameters and the peak extraction strategy.

    The object carries no per-call state; `compute_offsets` is a pure
    function of its arguments and the configuration given at construction.
    """

    def __init__(
        self,
        parameters: Optional[OptimizerParameters] = None,
        peak_extractor: Optional[PeakExtractor] = None,
    ):
        self.parameters = parameters if parameters is not None else OptimizerParameters()
        self.peak_extractor = peak_extractor if peak_extractor is not None else NMaximaExtractor()

    def compute_offsets(
        self,
        surface: Union[CorrelationSurface, NumArray, None],
        geometry: Optional[ImageGeometry] = None,
        offset_count: int = 1,
    ) -> OffsetEstimate:
        """Estimate offsets with this optimizer's configuration. See estimate_offsets."""
        return estimate_offsets(
            surface,
            geometry,
            offset_count,
            parameters=self.parameters,
            peak_extractor=self.peak_extractor,
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(parameters={self.parameters!r}, "
            f"peak_extractor={type(self.peak_extractor).__name__})"
        )
