from PIL import Image, UnidentifiedImageError
import numpy as np
import typer # for typer.secho warnings
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from medcut.palette_tools import nearest_palette_indices, sort_palette_by_frequency
from medcut.quantizer import Quantizer

ImageSource = Union[str, Path, Image.Image]

# Indexed ("P") images hold at most 256 palette entries
MAX_INDEXED_COLORS = 256


def load_image(source: ImageSource) -> Image.Image:
    """
    Opens an image from a path, or passes a PIL image through.

    Raises:
        FileNotFoundError: If the path does not exist.
        ValueError: If the file is not an image Pillow can read.
    """
    if isinstance(source, Image.Image):
        return source
    try:
        image = Image.open(source)
        image.load()
    except FileNotFoundError:
        raise
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Error opening image {source}: {e}")
    return image


def image_pixels(image: Image.Image) -> Tuple[np.ndarray, int]:
    """
    Pixel data of an image in the layout the quantizer registers.

    RGBA images keep their 4-byte pixels (stride 4, alpha ignored); every other
    mode is converted to packed RGB (stride 3).

    Returns:
        Tuple[np.ndarray, int]: (H*W, stride) uint8 array and its stride.
    """
    if image.mode == "RGBA":
        return np.asarray(image, dtype=np.uint8).reshape(-1, 4), 4
    return np.asarray(image.convert("RGB"), dtype=np.uint8).reshape(-1, 3), 3


def indexed_image(indices: np.ndarray, palette: np.ndarray, size: Tuple[int, int]) -> Image.Image:
    """Builds a "P" mode PIL image from per-pixel palette indices."""
    image = Image.frombytes("P", size, np.ascontiguousarray(indices, dtype=np.uint8).tobytes())
    image.putpalette(np.asarray(palette, dtype=np.uint8).reshape(-1).tolist())
    return image


def _clamp_num_colors(num_colors: Optional[int]) -> int:
    if num_colors is None:
        return MAX_INDEXED_COLORS
    if not (1 <= num_colors <= MAX_INDEXED_COLORS):
        typer.secho(
            f"Warning: num_colors ({num_colors}) is outside 1-{MAX_INDEXED_COLORS} for an indexed image. Clamping.",
            fg=typer.colors.YELLOW,
        )
        num_colors = max(1, min(num_colors, MAX_INDEXED_COLORS))
    return num_colors


def quantize_image(
    source: ImageSource,
    num_colors: Optional[int] = None,
    fixed_palette: Optional[np.ndarray] = None,
    sort_by_frequency: bool = False,
    reorder: bool = True,
) -> Tuple[Image.Image, np.ndarray]:
    """
    Quantize an image with median cut, or map it onto a fixed palette.

    Args:
        source: Path to the input image, or a PIL image.
        num_colors (int, optional): Palette size to reduce to. Defaults to 256.
            Ignored if fixed_palette is used.
        fixed_palette (np.ndarray, optional): Pre-extracted RGB palette (shape [N, 3]).
            Pixels are mapped to the nearest entry.
        sort_by_frequency (bool): If True, the most used palette entry comes first.
        reorder (bool): Normalize the median-cut palette ordering (sorted, duplicate free).

    Returns:
        Tuple[PIL.Image.Image, np.ndarray]:
            - The quantized image ("P" mode).
            - Array of RGB palette colors (shape [M, 3], dtype=np.uint8).
    """
    images, palette = quantize_images(
        [source],
        num_colors=num_colors,
        fixed_palette=fixed_palette,
        sort_by_frequency=sort_by_frequency,
        reorder=reorder,
    )
    return images[0], palette


def quantize_images(
    sources: Sequence[ImageSource],
    num_colors: Optional[int] = None,
    fixed_palette: Optional[np.ndarray] = None,
    sort_by_frequency: bool = False,
    reorder: bool = True,
) -> Tuple[List[Image.Image], np.ndarray]:
    """
    Quantize several images against one shared palette.

    Every image is registered as its own color map; a single reduction then
    builds the palette and each image's indices are sliced out of the shared
    index map at its base offset.

    Returns:
        Tuple[List[PIL.Image.Image], np.ndarray]: One "P" image per source, and the shared palette.
    """
    if not sources:
        raise ValueError("quantize_images needs at least one image")
    images = [load_image(source) for source in sources]

    if fixed_palette is not None:
        fixed_palette = np.asarray(fixed_palette)
        if fixed_palette.ndim != 2 or fixed_palette.shape[1] != 3 or not (1 <= len(fixed_palette) <= MAX_INDEXED_COLORS):
            raise ValueError(f"fixed_palette must be an array of shape [N, 3] with 1 <= N <= {MAX_INDEXED_COLORS}.")
        palette = fixed_palette.astype(np.uint8)
        index_maps = [nearest_palette_indices(image_pixels(image)[0][:, :3], palette) for image in images]
        index_map = np.concatenate(index_maps)
    else:
        q = Quantizer()
        for image in images:
            pixels, stride = image_pixels(image)
            q.register(pixels, stride=stride)
        index_map, palette, _ = q.reduce(_clamp_num_colors(num_colors), reorder=reorder)

    if sort_by_frequency:
        index_map, palette = sort_palette_by_frequency(index_map, palette)

    results = []
    base = 0
    for image in images:
        count = image.width * image.height
        results.append(indexed_image(index_map[base:base + count], palette, image.size))
        base += count
    return results, palette
