import numbers
import numpy as np
from typing import List, Optional, Sequence, Union

from medcut.errors import AllocationError, InvalidArgumentError

ColorInput = Union[bytes, bytearray, memoryview, np.ndarray, Sequence[Sequence[int]]]

VALID_STRIDES = (3, 4)


def _as_rgb_rows(colors: ColorInput, stride: int, count: Optional[int]) -> np.ndarray:
    """
    Normalizes any supported color input into an (N, 3) uint8 array.

    Args:
        colors: Raw bytes, a numpy array (flat or (N, stride)), or a sequence of
            (r, g, b[, x]) tuples.
        stride (int): Bytes per color record, 3 or 4. With 4 the last byte is ignored.
        count (int, optional): Number of colors to take. Defaults to all of them.

    Returns:
        np.ndarray: Array of shape (count, 3), dtype uint8.
    """
    if stride not in VALID_STRIDES:
        raise InvalidArgumentError(f"stride must be 3 or 4, got {stride}")

    if isinstance(colors, (bytes, bytearray, memoryview)):
        flat = np.frombuffer(colors, dtype=np.uint8)
    elif isinstance(colors, np.ndarray):
        if colors.dtype != np.uint8:
            if colors.size and (colors.min() < 0 or colors.max() > 255):
                raise InvalidArgumentError("channel values must be in 0..255")
        if colors.ndim >= 2 and colors.shape[-1] != stride:
            raise InvalidArgumentError(
                f"array rows have {colors.shape[-1]} channels but stride is {stride}"
            )
        flat = colors.astype(np.uint8, copy=False).reshape(-1)
    else:
        rows = list(colors)
        if rows and isinstance(rows[0], numbers.Integral):
            # flat r, g, b[, x] run, same layout as a byte buffer
            rows = [rows]
        elif any(len(row) != stride for row in rows):
            bad = next(tuple(row) for row in rows if len(row) != stride)
            raise InvalidArgumentError(f"color {bad!r} does not match stride {stride}")
        for row in rows:
            if any(not 0 <= int(c) <= 255 for c in row):
                raise InvalidArgumentError(f"color values {tuple(row)!r} include a channel outside 0..255")
        flat = np.array(rows, dtype=np.uint8).reshape(-1)

    available = flat.size // stride
    if count is None:
        if flat.size % stride:
            raise InvalidArgumentError(
                f"{flat.size} bytes is not a whole number of stride {stride} colors"
            )
        count = available
    if count < 1:
        raise InvalidArgumentError("a color map needs at least one color")
    if count > available:
        raise InvalidArgumentError(
            f"color map holds {available} colors of stride {stride}, {count} requested"
        )

    return flat[: count * stride].reshape(count, stride)[:, :3]


class ColorRegistry:
    """
    Append-only store of every color registered for one reduction.

    Each color map keeps its own (N, 3) block; the blocks are flattened into
    one working set when the reduction starts. Global index i is the position
    of a color in that flattened set, so a map registered at base offset b owns
    indices b..b+len(map)-1.
    """

    def __init__(self):
        self._maps: List[np.ndarray] = []
        self._offsets: List[int] = []
        self.total = 0

    def __len__(self) -> int:
        return self.total

    @property
    def offsets(self) -> List[int]:
        return list(self._offsets)

    @property
    def map_sizes(self) -> List[int]:
        return [len(block) for block in self._maps]

    def add(self, colors: ColorInput, stride: int = 3, count: Optional[int] = None) -> int:
        """Registers one color map and returns its base offset into the index map."""
        try:
            block = np.array(_as_rgb_rows(colors, stride, count), dtype=np.uint8, copy=True)
        except MemoryError as e:
            raise AllocationError(f"could not reserve storage for a color map: {e}") from e

        base = self.total
        self._maps.append(block)
        self._offsets.append(base)
        self.total += len(block)
        return base

    def flatten(self) -> np.ndarray:
        """Returns every registered color as one (total, 3) uint8 array, in global index order."""
        if not self._maps:
            raise InvalidArgumentError("no colors have been registered")
        try:
            return np.concatenate(self._maps, axis=0)
        except MemoryError as e:
            raise AllocationError(f"could not reserve the {self.total}-color working set: {e}") from e

    def release(self):
        self._maps.clear()
        self._offsets.clear()
        self.total = 0
