"""Phase correlation offset estimation.

This package estimates the sub-pixel translation between two overlapping
images from their precomputed phase correlation surface.

Main functionality:
- Bias towards the translation implied by the image origins
- Suppression of the trivial zero-shift peak
- Periodic peak merging and direct/mirror disambiguation
- Parabolic and cosine sub-pixel peak interpolation

The package exposes the estimation entry points at the top level for convenience.
"""

from .parameters import OptimizerParameters, PeakInterpolationMethod
from .registration.max_phase_correlation import (
    estimate_offsets,
    MaxPhaseCorrelationOptimizer,
    OffsetEstimate,
)
from .registration._candidates import PeakListMismatchError
from .registration._peak_extraction import NMaximaExtractor, PeakExtractor
from .registration._surface import CorrelationSurface, ImageGeometry

__all__ = [
    'OptimizerParameters',
    'PeakInterpolationMethod',
    'estimate_offsets',
    'MaxPhaseCorrelationOptimizer',
    'OffsetEstimate',
    'PeakListMismatchError',
    'NMaximaExtractor',
    'PeakExtractor',
    'CorrelationSurface',
    'ImageGeometry',
]
