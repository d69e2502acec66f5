"""
Median-cut palette reduction.

Register one or more color maps (an image's pixels, a palette, ...) on a
Quantizer, then call reduce() once to get a palette of at most the requested
width and an index map that sends every registered color to a palette slot:

    q = Quantizer()
    base = [q.register(pal, stride=3) for pal in (pal_a, pal_b, pal_c)]
    index_map, palette, width = q.reduce(256)
    new_index = index_map[base[1] + old_index_in_pal_b]

A Quantizer is single-use: reduce() consumes it.
"""

import numpy as np
from typing import List, NamedTuple, Optional

from medcut.dedupe import PALETTE_PASSES, collapse_duplicates, sort_by_channels
from medcut.errors import AllocationError, InvalidArgumentError, QuantizerStateError
from medcut.groups import Group, analyze_group, bucket_sort, split_at_median
from medcut.registry import ColorInput, ColorRegistry


class Reduction(NamedTuple):
    index_map: np.ndarray  # (N,) palette slot per registered color
    palette: np.ndarray  # (width, 3) uint8
    width: int


def index_dtype(width: int) -> np.dtype:
    """Smallest unsigned dtype able to hold every slot of a palette of ``width`` entries."""
    return np.min_scalar_type(max(width - 1, 0))


class Quantizer:
    def __init__(self):
        self.registry = ColorRegistry()
        self.consumed = False

    def _check_live(self):
        if self.consumed:
            raise QuantizerStateError("this quantizer was already consumed by reduce()")

    @property
    def total_colors(self) -> int:
        return len(self.registry)

    @property
    def offsets(self) -> List[int]:
        return self.registry.offsets

    def register(self, colors: ColorInput, stride: int = 3, count: Optional[int] = None) -> int:
        """
        Adds a color map to be quantized.

        Args:
            colors: Bytes, numpy array or sequence of (r, g, b[, x]) tuples.
            stride (int): 3 for packed RGB, 4 when every color carries an extra byte to ignore.
            count (int, optional): Number of colors to read. Defaults to all of them.

        Returns:
            int: Offset into the index map where this color map starts.
        """
        self._check_live()
        return self.registry.add(colors, stride=stride, count=count)

    def reduce(self, width: int, reorder: bool = True) -> Reduction:
        """
        Reduces everything registered so far to at most ``width`` colors.

        The quantizer is consumed whether or not the reduction succeeds.

        Args:
            width (int): Requested palette size, at least 1.
            reorder (bool): Re-quantize the finished palette so its entries come out
                sorted and free of duplicates.

        Returns:
            Reduction: index_map, palette and the achieved width.
        """
        self._check_live()
        if width < 1:
            raise InvalidArgumentError(f"palette width must be at least 1, got {width}")
        if not len(self.registry):
            raise InvalidArgumentError("no colors have been registered")

        self.consumed = True
        try:
            result = reduce_colors(self.registry.flatten(), width)
            if reorder:
                result = requantize(result)
        except AllocationError:
            raise
        except MemoryError as e:
            raise AllocationError(f"out of memory while reducing to {width} colors: {e}") from e
        finally:
            self.registry.release()
        return result


def reduce_colors(colors: np.ndarray, width: int) -> Reduction:
    """Runs duplicate collapsing, the median-cut loop and palette synthesis on an (N, 3) array."""
    distinct, representative = collapse_duplicates(colors)
    index_map = np.zeros(len(colors), dtype=np.intp)

    if len(distinct) <= width:
        # nothing to merge, just hand out slots in sorted order
        order = sort_by_channels(colors, distinct, PALETTE_PASSES)
        index_map[order] = np.arange(len(order))
        palette = colors[order].copy()
    else:
        groups = split_groups(colors, distinct, width)
        palette = synthesize_palette(colors, distinct, groups, index_map)

    duplicates = np.flatnonzero(representative >= 0)
    index_map[duplicates] = index_map[representative[duplicates]]

    return Reduction(index_map.astype(index_dtype(len(palette))), palette, len(palette))


def split_groups(colors: np.ndarray, order: np.ndarray, width: int) -> List[Group]:
    """
    Grows the group set by repeatedly cutting the group with the widest channel.

    ``order`` holds the original indices of the distinct colors and is
    permuted in place; every returned group is a range of it.
    """
    groups = [Group(0, len(order), analyze_group(colors[order]))]

    while len(groups) < width:
        i = max(range(len(groups)), key=lambda n: groups[n].stats.spread)
        group = groups[i]
        channel = group.stats.channel

        if group.sorted_by != channel:
            members = order[group.start:group.end]
            order[group.start:group.end] = members[bucket_sort(colors[members, channel])]
            group.sorted_by = channel

        members = order[group.start:group.end]
        cut = split_at_median(colors[members, channel], group.stats.total)
        if cut is None:
            break

        mid = group.start + cut
        groups.append(Group(mid, group.end, analyze_group(colors[order[mid:group.end]]), group.sorted_by))
        group.end = mid
        group.stats = analyze_group(colors[order[group.start:mid]])

    return groups


def synthesize_palette(colors: np.ndarray, order: np.ndarray, groups: List[Group], index_map: np.ndarray) -> np.ndarray:
    """Builds one palette entry per group and points every member's index map slot at it."""
    palette = np.empty((len(groups), 3), dtype=np.uint8)
    for slot, group in enumerate(groups):
        members = order[group.start:group.end]
        index_map[members] = slot
        if group.stats.spread > 1:
            count = len(members)
            sums = colors[members].sum(axis=0, dtype=np.int64)
            palette[slot] = (sums + count // 2) // count
        else:
            # averaging a near-uniform group would only invent a color
            palette[slot] = colors[members[0]]
    return palette


def requantize(result: Reduction) -> Reduction:
    """
    Feeds a finished palette back through the quantizer at its own width.

    The inner run always takes the no-merge path, so its only effect is a
    sorted, duplicate-free palette; the outer index map is remapped through it.
    """
    inner = Quantizer()
    inner.register(result.palette, stride=3)
    remap = inner.reduce(result.width, reorder=False)
    return Reduction(remap.index_map[result.index_map], remap.palette, remap.width)


def create_quantizer() -> Quantizer:
    return Quantizer()


def register_colors(handle: Quantizer, colors: ColorInput, color_count: int, stride: int) -> int:
    return handle.register(colors, stride=stride, count=color_count)


def reduce(handle: Quantizer, requested_width: int) -> Reduction:
    return handle.reduce(requested_width)
