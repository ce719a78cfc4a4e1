import enum
import logging
import os
import pathlib
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

MAX_ZERO_SUPPRESSION = 100.0


class PeakInterpolationMethod(enum.Enum):
    """Method used to refine a correlation peak to sub-pixel accuracy."""

    none = "none"
    parabolic = "parabolic"
    cosine = "cosine"


def clamp_zero_suppression(value: float) -> float:
    """Pydantic validator clamping the zero suppression into [0, 100]."""
    clamped = min(max(value, 0.0), MAX_ZERO_SUPPRESSION)
    if clamped != value:
        logger.warning(f"zero_suppression {value} clamped to {clamped}")
    return clamped


class OptimizerParameters(
    BaseModel,
    use_attribute_docstrings=True,
):
    """Parameters for turning a phase correlation surface into offsets."""
    model_config = ConfigDict(frozen=True)

    peak_interpolation: PeakInterpolationMethod = PeakInterpolationMethod.parabolic
    """How the location of each retained peak is refined.

    `none` keeps pixel accuracy, `parabolic` fits a parabola through the peak
    and its two neighbours along each axis, `cosine` fits a cosine instead.
    """

    merge_peaks: int = Field(default=1, ge=0)
    """Maximum per-axis distance (in pixels) for merging maxima into one peak.

    Zero disables merging.
    """

    zero_suppression: Annotated[float, AfterValidator(clamp_zero_suppression)] = 5.0
    """Suppression aggressiveness of the trivial zero-shift solution.

    Values are clamped into the [0, 100] range; zero disables suppression.
    """

    pixel_distance_tolerance: int = Field(default=0, ge=0)
    """Expected maximum linear translation, in pixels.

    Zero has a special meaning: the penalty decays to about half strength at
    roughly a quarter of the image diagonal. Translations can plausibly be up
    to half an image size.
    """

    confidence_scale: float = Field(default=1.0, gt=0.0)
    """Constant multiplier applied to returned confidences.

    Only useful for making the numbers more readable; ordering is unaffected.
    """

    num_workers: Optional[int] = Field(default=None, ge=1)
    """Number of worker threads used for the per-sample surface stages.

    The default, `None`, uses the number of CPUs.
    """

    debug_output_dir: Optional[pathlib.Path] = None
    """If set, intermediate adjusted surfaces are written here as TIFF files."""

    @property
    def effective_num_workers(self) -> int:
        """Worker count actually used by the region dispatcher."""
        if self.num_workers is not None:
            return self.num_workers
        return os.cpu_count() or 1

    @classmethod
    def from_json_file(cls, json_path: str) -> "OptimizerParameters":
        """Create parameters from a JSON file.

        Args:
            json_path: Path to JSON file containing parameters

        Returns:
            OptimizerParameters: New instance with values from JSON
        """
        with open(json_path) as f:
            return cls.model_validate_json(f.read())

    def to_json_file(self, json_path: str) -> None:
        """Save parameters to a JSON file.

        Args:
            json_path: Path where JSON file should be saved
        """
        with open(json_path, "w") as f:
            f.write(self.model_dump_json(indent=2))
