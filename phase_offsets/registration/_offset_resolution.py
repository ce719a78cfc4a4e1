"""Conversion of refined grid indices into physical offsets."""
from typing import Tuple

import numpy as np

from ._surface import CorrelationSurface, ImageGeometry
from ._typing_utils import FloatArray


def candidate_offsets(
    index: FloatArray,
    surface: CorrelationSurface,
    geometry: ImageGeometry,
) -> Tuple[FloatArray, FloatArray]:
    """Direct and mirror physical offsets consistent with a grid index.

    The surface is periodic, so an index i corresponds both to a shift
    measured from the grid origin and to one measured from the grid extent.

    Args:
        index: Continuous grid index (not array coordinates), length N
        surface: Surface providing grid origin and extent
        geometry: Image spacing and origins

    Returns:
        Tuple of (direct, mirror) offsets, one entry per axis each
    """
    index = np.asarray(index, dtype=np.float64)
    direct = geometry.origin_offset - geometry.spacing * (index - surface.grid_origin)
    mirror = geometry.origin_offset - geometry.spacing * (index - surface.grid_extent)
    return direct, mirror


def resolve_offset(
    index: FloatArray,
    surface: CorrelationSurface,
    geometry: ImageGeometry,
) -> FloatArray:
    """Physical offset for a grid index, choosing the shorter solution per axis.

    Ties go to the direct solution. Axes are resolved independently and may
    end up on different branches.
    """
    direct, mirror = candidate_offsets(index, surface, geometry)
    return np.where(np.abs(direct) <= np.abs(mirror), direct, mirror)
