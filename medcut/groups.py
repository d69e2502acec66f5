from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np

RED, GREEN, BLUE = 0, 1, 2


class GroupStats(NamedTuple):
    channel: int  # channel with the widest spread
    spread: int  # max - min on that channel
    total: int  # sum of that channel over the group


@dataclass
class Group:
    """
    A box of the median cut: the half-open range [start, end) of the shared
    order array. sorted_by is the channel the range is currently ordered by,
    or None when it has not been sorted yet.
    """

    start: int
    end: int
    stats: GroupStats
    sorted_by: Optional[int] = None

    def __len__(self) -> int:
        return self.end - self.start


def analyze_group(colors: np.ndarray) -> GroupStats:
    """
    Finds the channel a group should be split along.

    Args:
        colors (np.ndarray): Non-empty (N, 3) uint8 array of the group's colors.

    Returns:
        GroupStats: The channel with the largest max-min spread (red wins ties
        over green, green over blue), that spread, and the channel's sum.
    """
    spreads = colors.max(axis=0).astype(np.int64) - colors.min(axis=0).astype(np.int64)
    channel = int(np.argmax(spreads))  # first maximum, so ties keep channel order
    total = int(colors[:, channel].sum(dtype=np.int64))
    return GroupStats(channel, int(spreads[channel]), total)


def bucket_sort(keys: np.ndarray) -> np.ndarray:
    """
    Stable counting sort of byte keys into 256 buckets.

    Returns the permutation that lists the keys bucket by bucket in ascending
    order; keys in the same bucket keep their relative order. numpy's stable
    sort is a radix sort for 8-bit integers, so this is a single O(n + 256)
    pass rather than a comparison sort.
    """
    return np.argsort(keys.astype(np.uint8, copy=False), kind="stable")


def split_at_median(keys: np.ndarray, total: int) -> Optional[int]:
    """
    Finds where a sorted group is cut in two.

    Accumulates the keys until the running sum exceeds half of ``total``. The
    key that crosses the half starts the second group, unless it is the very
    first key, which then forms the first group on its own.

    Args:
        keys (np.ndarray): Values of the split channel, sorted ascending.
        total (int): Sum of ``keys``.

    Returns:
        Optional[int]: Length of the first group, or None when the cut would
        leave the second group empty.
    """
    running = np.cumsum(keys, dtype=np.int64)
    crossing = int(np.searchsorted(running, total // 2, side="right"))
    cut = max(crossing, 1)
    if cut >= len(keys):
        return None
    return cut
