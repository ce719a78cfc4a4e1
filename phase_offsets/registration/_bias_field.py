"""Surface adjustments applied before peak extraction.

The raw phase correlation surface is reweighted twice:

- A bias field favours samples near the shift implied by the image origins.
  The expected shift can show up either at its direct index or at its
  periodic mirror, so the nearer of the two is used per axis.
- The trivial zero-shift solution, together with the lines/sheets through the
  zero index, is damped. Those samples carry self-correlation energy that is
  independent of the actual relative shift.

Both stages are evaluated per sample and run over disjoint grid regions on a
worker pool.
"""
import logging
import math
from typing import Optional, Tuple

import numpy as np

from ._region_parallel import Region, parallel_for_regions, region_indices
from ._surface import CorrelationSurface, ImageGeometry
from ._typing_utils import FloatArray, IntArray

logger = logging.getLogger(__name__)

# Penalty exponent numerator used when no pixel tolerance is given
AUTO_PENALTY_NUMERATOR = -10.0
# Damping reached at one tolerance unit when a tolerance is given
TOLERANCE_DAMPING = 0.9
# Samples further than this many squared tolerances are zeroed outright
ZERO_DISTANCE_FACTOR = 10
# City-block radius of the neighbourhood around the zero index
ZERO_NEIGHBORHOOD_SIZE = 4
# Shift of x/(a+x) avoiding its steep initial rise
ZERO_SUPPRESSION_OFFSET = 10.0


def _region_shape(region: Region) -> Tuple[int, ...]:
    return tuple(s.stop - s.start for s in region)


def expected_indices(
    surface: CorrelationSurface, geometry: ImageGeometry
) -> Tuple[IntArray, IntArray]:
    """Direct and mirror grid indices of the shift implied by the origins.

    Args:
        surface: Correlation surface providing grid origin and extent
        geometry: Image spacing and origins

    Returns:
        Tuple of (direct_index, mirror_index), integer arrays of length N
    """
    # truncated toward zero after the grid offset is added
    shift = geometry.origin_offset / geometry.spacing
    direct_index = np.trunc(shift + surface.grid_origin).astype(np.int64)
    mirror_index = np.trunc(shift + surface.grid_extent).astype(np.int64)
    return direct_index, mirror_index


def distance_penalty_factor(surface: CorrelationSurface, pixel_distance_tolerance: int) -> float:
    """Exponent coefficient applied to the squared distance from the expected index."""
    if pixel_distance_tolerance == 0:
        image_size2 = float(np.sum(surface.grid_extent.astype(np.float64) ** 2))
        return AUTO_PENALTY_NUMERATOR / image_size2
    return math.log(TOLERANCE_DAMPING) / float(pixel_distance_tolerance) ** 2


def build_bias_field(
    surface: CorrelationSurface,
    geometry: ImageGeometry,
    pixel_distance_tolerance: int = 0,
    num_workers: Optional[int] = None,
) -> FloatArray:
    """Create the adjusted surface biased towards the expected solution.

    Every sample is multiplied by exp(f * d2), where f is the distance
    penalty factor and d2 is the squared index distance to the nearer of
    the direct and mirror expected indices, chosen independently per axis.

    Args:
        surface: Correlation surface to adjust (left untouched)
        geometry: Image spacing and origins
        pixel_distance_tolerance: Expected maximum translation in pixels,
            0 for an automatic scale derived from the grid size
        num_workers: Worker threads to use

    Returns:
        New float64 array with the surface's shape
    """
    if pixel_distance_tolerance < 0:
        raise ValueError(f"pixel_distance_tolerance must be non-negative, got {pixel_distance_tolerance}")

    direct_index, mirror_index = expected_indices(surface, geometry)
    penalty = distance_penalty_factor(surface, pixel_distance_tolerance)
    zero_dist2 = ZERO_DISTANCE_FACTOR * pixel_distance_tolerance * pixel_distance_tolerance
    logger.debug(
        f"Bias field: direct index {direct_index.tolist()}, mirror index {mirror_index.tolist()}, "
        f"penalty factor {penalty:.3e}"
    )

    values = surface.values
    grid_origin = surface.grid_origin
    adjusted = np.empty(surface.shape, dtype=np.float64)

    def adjust_region(region: Region) -> None:
        dist2 = np.zeros(_region_shape(region), dtype=np.int64)
        for axis, ind in enumerate(region_indices(region)):
            ind = ind + grid_origin[axis]
            dist_direct = (direct_index[axis] - ind) ** 2
            dist_mirror = (mirror_index[axis] - ind) ** 2
            dist2 += np.minimum(dist_direct, dist_mirror)

        if pixel_distance_tolerance > 0:
            near = dist2 <= zero_dist2
            weights = np.zeros(dist2.shape, dtype=np.float64)
            weights[near] = np.exp(penalty * dist2[near])
        else:
            weights = np.exp(penalty * dist2)
        adjusted[region] = values[region] * weights

    parallel_for_regions(surface.shape, adjust_region, num_workers)
    return adjusted


def suppress_zero_shift(
    adjusted: FloatArray,
    zero_suppression: float,
    num_workers: Optional[int] = None,
) -> FloatArray:
    """Damp the trivial zero-shift solution in place.

    Samples within a small city-block neighbourhood of the zero index, or
    with any coordinate equal to zero, are multiplied by
    (d + 10) / (zero_suppression + d + 10), d being the periodic
    city-block distance to the zero index.

    Args:
        adjusted: Adjusted surface in array coordinates, modified in place
        zero_suppression: Aggressiveness in [0, 100], 0 disables the stage
        num_workers: Worker threads to use

    Returns:
        The same array, for chaining
    """
    if zero_suppression <= 0.0:
        return adjusted

    size = adjusted.shape

    def suppress_region(region: Region) -> None:
        dist = np.zeros(_region_shape(region), dtype=np.int64)
        on_zero_line = np.zeros(dist.shape, dtype=bool)
        for axis, ind in enumerate(region_indices(region)):
            dist_axis = np.where(ind > size[axis] // 2, size[axis] - ind, ind)
            dist += dist_axis
            on_zero_line |= ind == 0

        selected = on_zero_line | (dist < ZERO_NEIGHBORHOOD_SIZE)
        factor = (dist + ZERO_SUPPRESSION_OFFSET) / (zero_suppression + dist + ZERO_SUPPRESSION_OFFSET)
        block = adjusted[region]
        block[selected] *= factor[selected]

    parallel_for_regions(size, suppress_region, num_workers)
    return adjusted
