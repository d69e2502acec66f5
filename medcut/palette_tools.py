from PIL import Image
import numpy as np
from typing import List, Sequence, Tuple

from medcut.quantizer import Quantizer, index_dtype

# Rows of pixels compared against the palette at once in nearest-color mapping
_NEAREST_CHUNK = 65536


def extract_palette_from_image(path, max_colors=24):
    """
    Extract a palette from an image (e.g. a paint tray or a reference swatch sheet).

    Args:
        path (str): Path to the palette image.
        max_colors (int): Maximum number of colors to extract.

    Returns:
        np.ndarray: Array of RGB colors (uint8) with shape (N, 3), N <= max_colors.
            N is smaller when the image has fewer distinct colors.
    """
    image = Image.open(path).convert("RGB")
    image = image.resize((100, 100), Image.Resampling.NEAREST)  # Downsample, keep colors exact

    q = Quantizer()
    q.register(np.asarray(image).reshape(-1, 3))
    return q.reduce(max_colors).palette


def nearest_palette_indices(pixels, palette):
    """
    Index of the nearest palette color (euclidean RGB) for every pixel.

    Args:
        pixels (np.ndarray): Nx3 RGB data
        palette (np.ndarray): Mx3 palette array

    Returns:
        np.ndarray: N palette indices
    """
    pixels = np.asarray(pixels, dtype=np.int32).reshape(-1, 3)
    palette = np.asarray(palette, dtype=np.int32).reshape(-1, 3)
    nearest = np.empty(len(pixels), dtype=index_dtype(len(palette)))
    for start in range(0, len(pixels), _NEAREST_CHUNK):
        chunk = pixels[start:start + _NEAREST_CHUNK]
        dists = ((chunk[:, None, :] - palette[None, :, :]) ** 2).sum(axis=2)
        nearest[start:start + len(chunk)] = np.argmin(dists, axis=1)
    return nearest


def map_image_to_palette(image_array, palette):
    """
    Map every pixel in the image to the nearest color in the fixed palette.

    Args:
        image_array (np.ndarray): HxWx3 RGB image data
        palette (np.ndarray): Nx3 palette array

    Returns:
        np.ndarray: Quantized image array of same shape as input
    """
    h, w, _ = image_array.shape
    palette = np.asarray(palette, dtype=np.uint8)
    nearest = nearest_palette_indices(image_array.reshape((-1, 3)), palette)
    return palette[nearest].reshape((h, w, 3))


def sort_palette_by_frequency(index_map: np.ndarray, palette: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Reorders a palette so the most used entry comes first and rewrites the
    index map to match. Entries used equally often keep their relative order.
    """
    counts = np.bincount(index_map, minlength=len(palette))
    by_use = np.argsort(-counts, kind="stable")
    new_slot = np.empty(len(palette), dtype=index_map.dtype)
    new_slot[by_use] = np.arange(len(palette))
    return new_slot[index_map], palette[by_use]


def combine_palettes(palettes: Sequence[np.ndarray], width: int = 256, reorder: bool = True) -> Tuple[np.ndarray, List[np.ndarray]]:
    """
    Merges several palettes into one shared palette of at most ``width`` colors.

    Args:
        palettes: Sequence of Nx3 (or Nx4, 4th byte ignored) uint8 palettes.
        width (int): Size of the combined palette.
        reorder (bool): Normalize the ordering of the combined palette.

    Returns:
        Tuple[np.ndarray, List[np.ndarray]]:
            - The combined palette, shape [M, 3], M <= width.
            - One remap table per input palette: remaps[k][old_index] is the
              entry of the combined palette that replaces palettes[k][old_index].
    """
    q = Quantizer()
    for palette in palettes:
        palette = np.asarray(palette)
        stride = palette.shape[-1] if palette.ndim == 2 else 3
        q.register(palette, stride=stride)
    starts = q.offsets
    ends = starts[1:] + [q.total_colors]

    index_map, combined, _ = q.reduce(width, reorder=reorder)
    remaps = [index_map[start:end] for start, end in zip(starts, ends)]
    return combined, remaps
