"""Data-parallel dispatch of per-sample work over disjoint grid regions.

Each region is a tuple of slices covering a contiguous slab along the first
axis. Regions never overlap, so workers may write to their own part of a
shared output array without locking as long as every output sample only
depends on co-located inputs.
"""
from concurrent.futures import ThreadPoolExecutor
import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Below this many samples a single region is cheaper than a thread pool
MIN_SAMPLES_PER_REGION = 4096

Region = Tuple[slice, ...]


def split_regions(shape: Sequence[int], n_regions: int) -> List[Region]:
    """Split a grid into at most n_regions slabs along axis 0.

    Args:
        shape: Grid shape
        n_regions: Requested number of regions

    Returns:
        Non-overlapping regions that together cover the whole grid
    """
    if len(shape) == 0:
        raise ValueError("Cannot split a zero-dimensional grid")
    n_regions = max(1, min(int(n_regions), int(shape[0])))
    bounds = np.linspace(0, shape[0], n_regions + 1).astype(int)
    rest = tuple(slice(0, s) for s in shape[1:])
    return [
        (slice(int(start), int(stop)),) + rest
        for start, stop in zip(bounds[:-1], bounds[1:])
        if stop > start
    ]


def region_indices(region: Region) -> List[np.ndarray]:
    """Open-mesh grid indices (array coordinates) of the samples in a region."""
    grids = np.ogrid[region]
    if isinstance(grids, np.ndarray):
        return [grids]
    return list(grids)


def parallel_for_regions(
    shape: Sequence[int],
    fn: Callable[[Region], None],
    num_workers: Optional[int] = None,
) -> None:
    """Run fn once per disjoint region of a grid on a worker pool.

    Exceptions raised by any worker are re-raised in the caller.

    Args:
        shape: Shape of the grid to partition
        fn: Callable receiving the slices of one region
        num_workers: Worker count, or None for a single region
    """
    n_samples = int(np.prod(shape))
    n_workers = num_workers or 1
    n_workers = min(n_workers, max(1, n_samples // MIN_SAMPLES_PER_REGION))
    regions = split_regions(shape, n_workers)

    if len(regions) == 1:
        fn(regions[0])
        return

    logger.debug(f"Dispatching {len(regions)} regions of grid {tuple(shape)} to {n_workers} workers")
    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        futures = [executor.submit(fn, region) for region in regions]
        for future in futures:
            future.result()
