"""Value types describing a phase correlation surface and its sampling geometry."""
import warnings
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

import numpy as np

from ._typing_utils import FloatArray, IntArray, NumArray, VectorLike


@dataclass(frozen=True, eq=False)
class ImageGeometry:
    """Physical sampling of the fixed and moving images.

    Attributes:
        spacing: Pixel spacing of the fixed image, one entry per axis
        fixed_origin: Physical origin of the fixed image
        moving_origin: Physical origin of the moving image
    """
    spacing: FloatArray
    fixed_origin: FloatArray
    moving_origin: FloatArray

    def __post_init__(self) -> None:
        for name in ("spacing", "fixed_origin", "moving_origin"):
            value = np.asarray(getattr(self, name), dtype=np.float64).reshape(-1)
            object.__setattr__(self, name, value)
        if not (len(self.spacing) == len(self.fixed_origin) == len(self.moving_origin)):
            raise ValueError(
                "spacing, fixed_origin and moving_origin must have the same length, got "
                f"{len(self.spacing)}, {len(self.fixed_origin)} and {len(self.moving_origin)}"
            )
        if not np.all(np.isfinite(self.spacing)) or np.any(self.spacing <= 0):
            raise ValueError(f"spacing must be finite and positive, got {self.spacing}")

    @classmethod
    def unit(cls, ndim: int) -> "ImageGeometry":
        """Geometry with unit spacing and coincident origins."""
        return cls(np.ones(ndim), np.zeros(ndim), np.zeros(ndim))

    @classmethod
    def from_origins(
        cls,
        fixed_origin: VectorLike,
        moving_origin: VectorLike,
        spacing: Optional[VectorLike] = None,
    ) -> "ImageGeometry":
        fixed = np.asarray(fixed_origin, dtype=np.float64).reshape(-1)
        if spacing is None:
            spacing = np.ones(len(fixed))
        return cls(np.asarray(spacing), fixed, np.asarray(moving_origin))

    @property
    def ndim(self) -> int:
        return len(self.spacing)

    @property
    def origin_offset(self) -> FloatArray:
        """Physical offset between the moving and fixed origins."""
        return self.moving_origin - self.fixed_origin


@dataclass(frozen=True, eq=False)
class CorrelationSurface:
    """A real-valued, per-axis periodic correlation grid.

    Attributes:
        values: The correlation samples, any number of dimensions
        grid_origin: Integer index of the first sample along each axis
    """
    values: NumArray
    grid_origin: IntArray = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        values = np.asarray(self.values)
        if values.ndim == 0:
            raise ValueError("Correlation surface must have at least one dimension")
        if values.size == 0:
            raise ValueError(f"Correlation surface cannot be empty, got shape {values.shape}")
        if not np.issubdtype(values.dtype, np.number) or np.iscomplexobj(values):
            raise ValueError(f"Correlation surface must be real-valued, got dtype {values.dtype}")
        if not np.issubdtype(values.dtype, np.floating):
            warnings.warn(
                f"Correlation surface has integer dtype {values.dtype}. Using floating-point "
                f"types is recommended for sub-pixel interpolation precision.",
                UserWarning,
                stacklevel=3,
            )
        object.__setattr__(self, "values", values)

        if self.grid_origin is None:
            grid_origin = np.zeros(values.ndim, dtype=np.int64)
        else:
            grid_origin = np.asarray(self.grid_origin, dtype=np.int64).reshape(-1)
        if len(grid_origin) != values.ndim:
            raise ValueError(
                f"grid_origin has {len(grid_origin)} entries for a {values.ndim}D surface"
            )
        object.__setattr__(self, "grid_origin", grid_origin)

    @property
    def ndim(self) -> int:
        return self.values.ndim

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.values.shape

    @property
    def size(self) -> IntArray:
        """Number of samples along each axis."""
        return np.asarray(self.values.shape, dtype=np.int64)

    @property
    def grid_extent(self) -> IntArray:
        """One past the last index along each axis (size + grid origin)."""
        return self.size + self.grid_origin


def as_correlation_surface(
    surface: Union[CorrelationSurface, NumArray, None]
) -> Optional[CorrelationSurface]:
    """Wrap a bare array into a CorrelationSurface with a zero grid origin."""
    if surface is None or isinstance(surface, CorrelationSurface):
        return surface
    return CorrelationSurface(np.asarray(surface))
