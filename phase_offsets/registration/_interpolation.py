"""Sub-pixel refinement of discrete correlation peaks.

Each axis is refined independently from three samples: the peak (y1) and its
neighbours at -1 (y0) and +1 (y2) along that axis. Axes whose neighbourhood
leaves the grid, or whose fit is degenerate, keep the integer index.
"""
import logging
import math
from typing import Optional

import numpy as np

from ..parameters import PeakInterpolationMethod
from ._typing_utils import FloatArray, IntArray

logger = logging.getLogger(__name__)

EPSILON = np.finfo(np.float64).eps


def parabolic_delta(y0: float, y1: float, y2: float) -> Optional[float]:
    """Vertex of the parabola through (-1, y0), (0, y1), (1, y2).

    Returns:
        Offset of the vertex from the centre sample, or None when the three
        samples are (nearly) collinear
    """
    denominator = 2.0 * (y0 - 2.0 * y1 + y2)
    scale = max(abs(y0), abs(y1), abs(y2))
    if abs(denominator) <= EPSILON * scale or denominator == 0.0:
        return None
    delta = (y0 - y2) / denominator
    if not math.isfinite(delta):
        return None
    return delta


def cosine_delta(y0: float, y1: float, y2: float, clamp_ratio: bool = True) -> Optional[float]:
    """Peak of the cosine through (-1, y0), (0, y1), (1, y2).

    Args:
        y0: Sample before the peak
        y1: Peak sample
        y2: Sample after the peak
        clamp_ratio: Clip (y0 + y2) / (2 * y1) into the open interval (-1, 1).
            Without clipping the fit may extrapolate beyond the sampled
            neighbourhood, or fail when the ratio leaves [-1, 1].

    Returns:
        Offset of the peak from the centre sample, or None when the fit is
        undefined
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.float64(y0 + y2) / np.float64(2.0 * y1)
        if clamp_ratio:
            ratio = np.clip(ratio, -1.0 + EPSILON, 1.0 - EPSILON)
        omega = np.arccos(ratio)
        theta = np.arctan(np.float64(y0 - y2) / (2.0 * y1 * np.sin(omega)))
        delta = -theta / (np.pi * omega)
    if not np.isfinite(delta):
        return None
    return float(delta)


def refine_peak(
    adjusted: FloatArray,
    array_index: IntArray,
    method: PeakInterpolationMethod,
    clamp_ratio: bool = True,
) -> FloatArray:
    """Continuous array index of a peak refined along every axis.

    Args:
        adjusted: Surface the peak was found on
        array_index: Integer array coordinates of the peak
        method: Interpolation method
        clamp_ratio: Passed to the cosine fit; ignored otherwise

    Returns:
        Refined float index, equal to array_index where refinement was skipped
    """
    array_index = np.asarray(array_index, dtype=np.int64)
    refined = array_index.astype(np.float64)
    if method == PeakInterpolationMethod.none:
        return refined

    shape = adjusted.shape
    y1 = float(adjusted[tuple(array_index)])
    for axis in range(len(shape)):
        if array_index[axis] - 1 < 0 or array_index[axis] + 1 >= shape[axis]:
            continue
        neighbor = array_index.copy()
        neighbor[axis] -= 1
        y0 = float(adjusted[tuple(neighbor)])
        neighbor[axis] += 2
        y2 = float(adjusted[tuple(neighbor)])

        if method == PeakInterpolationMethod.parabolic:
            delta = parabolic_delta(y0, y1, y2)
        elif method == PeakInterpolationMethod.cosine:
            delta = cosine_delta(y0, y1, y2, clamp_ratio)
        else:
            raise ValueError(f"Unknown interpolation method: {method}")

        if delta is None:
            logger.debug(
                f"Degenerate {method.value} fit at {array_index.tolist()} along axis {axis}, "
                f"keeping pixel accuracy"
            )
            continue
        refined[axis] += delta
    return refined
