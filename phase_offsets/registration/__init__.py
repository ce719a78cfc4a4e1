"""Registration module for phase correlation offset estimation.

This module turns a precomputed phase correlation surface into ranked,
sub-pixel accurate offsets between two images.
"""

from .max_phase_correlation import (
    estimate_offsets,
    MaxPhaseCorrelationOptimizer,
    OffsetEstimate,
)
from ._candidates import CandidatePeaks, PeakListMismatchError
from ._peak_extraction import NMaximaExtractor, PeakExtractor
from ._surface import CorrelationSurface, ImageGeometry

__all__ = [
    'estimate_offsets',
    'MaxPhaseCorrelationOptimizer',
    'OffsetEstimate',
    'CandidatePeaks',
    'PeakListMismatchError',
    'NMaximaExtractor',
    'PeakExtractor',
    'CorrelationSurface',
    'ImageGeometry',
]
