import logging
import pathlib
import sys
from typing import Annotated, Optional

import numpy as np
import tifffile
from pydantic import AfterValidator, BaseModel, Field
from pydantic_settings import CliApp

from phase_offsets.parameters import OptimizerParameters
from phase_offsets.registration import CorrelationSurface, ImageGeometry, estimate_offsets

TIFF_SUFFIXES = {".tif", ".tiff"}


def surface_path_exists(path: pathlib.Path) -> pathlib.Path:
    """Pydantic validator to check the surface file exists."""
    if not path.is_file():
        raise ValueError(f"Surface file does not exist: {path}")
    return path


class OffsetsCliParameters(
    BaseModel,
    use_attribute_docstrings=True,
):
    """Estimate offsets between two images from their phase correlation surface."""

    surface_path: Annotated[pathlib.Path, AfterValidator(surface_path_exists)]
    """Phase correlation surface stored as .npy or TIFF."""

    fixed_origin: list[float]
    """Physical origin of the fixed image, one value per axis."""

    moving_origin: list[float]
    """Physical origin of the moving image, one value per axis."""

    spacing: Optional[list[float]] = None
    """Pixel spacing of the fixed image. Defaults to 1 along every axis."""

    grid_origin: Optional[list[int]] = None
    """Index of the first surface sample along each axis. Defaults to 0."""

    offset_count: int = Field(default=1, ge=1)
    """Maximum number of offsets to report."""

    optimizer: OptimizerParameters = OptimizerParameters()
    """Estimation parameters."""

    output_csv: Optional[pathlib.Path] = None
    """If set, the ranked offsets are also written to this CSV file."""

    verbose: bool = False
    """Show debug-level logging."""


def load_surface(path: pathlib.Path) -> np.ndarray:
    """Read a correlation surface from a .npy or TIFF file."""
    if path.suffix.lower() in TIFF_SUFFIXES:
        return tifffile.imread(path)
    return np.load(path)


def main(args: list[str]) -> None:
    params = CliApp.run(OffsetsCliParameters, cli_args=args)
    log_level = logging.DEBUG if params.verbose else logging.INFO
    logging.basicConfig(level=log_level)

    surface = CorrelationSurface(load_surface(params.surface_path), params.grid_origin)
    geometry = ImageGeometry.from_origins(params.fixed_origin, params.moving_origin, params.spacing)
    estimate = estimate_offsets(surface, geometry, params.offset_count, params.optimizer)

    df = estimate.to_dataframe()
    print(df.to_string())
    if params.output_csv is not None:
        df.to_csv(params.output_csv)
        logging.info(f"Wrote {len(df)} offsets to {params.output_csv}")


def cli() -> None:
    main(sys.argv[1:])


if __name__ == "__main__":
    cli()
