"""Type aliases for correlation surfaces and peak lists.

This module provides commonly used type aliases for numpy arrays
used throughout the registration package.
"""
from typing import Any, Sequence, Union

import numpy as np
import numpy.typing as npt

# Array type aliases
NumArray = npt.NDArray[Any]
FloatArray = npt.NDArray[np.float64]
IntArray = npt.NDArray[np.int64]

# Per-axis vectors accepted from callers (origins, spacing)
VectorLike = Union[Sequence[float], FloatArray]
