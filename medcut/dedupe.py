import numpy as np
from typing import Sequence, Tuple

from medcut.groups import BLUE, GREEN, RED, bucket_sort

# Pass order for the multi-channel sorts. The last pass is the primary key.
DEDUPE_PASSES = (RED, GREEN, BLUE)
PALETTE_PASSES = (RED, BLUE, GREEN)


def sort_by_channels(colors: np.ndarray, order: np.ndarray, passes: Sequence[int]) -> np.ndarray:
    """Re-orders ``order`` (indices into ``colors``) with one stable bucket pass per channel."""
    for channel in passes:
        order = order[bucket_sort(colors[order, channel])]
    return order


def collapse_duplicates(colors: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Separates channel-distinct colors from exact duplicates.

    The working set is sorted by all three channels so equal colors end up
    next to each other. Within a run of equal colors the first one (lowest
    original index, since every pass is stable) survives and the rest point
    at it.

    Args:
        colors (np.ndarray): (N, 3) uint8 array, row i is the color registered at global index i.

    Returns:
        Tuple[np.ndarray, np.ndarray]:
            - Original indices of the surviving distinct colors, in sorted order.
            - Array of length N holding, for every duplicate, the original index of
              its surviving representative, and -1 for colors that survived.
    """
    order = sort_by_channels(colors, np.arange(len(colors), dtype=np.intp), DEDUPE_PASSES)
    ordered = colors[order]

    same_as_prev = np.zeros(len(order), dtype=bool)
    same_as_prev[1:] = np.all(ordered[1:] == ordered[:-1], axis=1)

    # every position inherits the start of its run
    run_start = np.where(same_as_prev, 0, np.arange(len(order)))
    run_start = np.maximum.accumulate(run_start)

    representative = np.full(len(colors), -1, dtype=np.intp)
    duplicates = order[same_as_prev]
    representative[duplicates] = order[run_start[same_as_prev]]

    return order[~same_as_prev], representative
