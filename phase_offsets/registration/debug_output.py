"""Optional diagnostic dumps of intermediate surfaces."""
import logging
import os
import pathlib
from typing import Optional, Union

import numpy as np
import tifffile

from ._typing_utils import FloatArray

logger = logging.getLogger(__name__)

ADJUSTED_SURFACE_FILENAME = "adjusted.tiff"
ZERO_SUPPRESSED_SURFACE_FILENAME = "adjusted_zero_suppressed.tiff"


def write_debug_surface(
    surface: FloatArray,
    output_dir: Optional[Union[str, pathlib.Path]],
    filename: str,
) -> Optional[pathlib.Path]:
    """Write a surface as a float32 TIFF if an output directory is configured.

    Args:
        surface: Array to write
        output_dir: Destination directory, None disables writing
        filename: Name of the file inside output_dir

    Returns:
        Path of the written file, or None when nothing was written
    """
    if output_dir is None:
        return None

    output_dir = pathlib.Path(output_dir)
    os.makedirs(output_dir, exist_ok=True)
    path = output_dir / filename
    tifffile.imwrite(path, np.asarray(surface, dtype=np.float32))
    logger.debug(f"Wrote debug surface {surface.shape} to {path}")
    return path
