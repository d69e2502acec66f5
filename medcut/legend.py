from PIL import Image, ImageDraw, ImageFont
import os


def _label_color(rgb):
    # dark text on light swatches, light text on dark ones
    r, g, b = rgb
    return (0, 0, 0) if (299 * r + 587 * g + 114 * b) >= 128000 else (255, 255, 255)


def _load_font(font_path, font_size):
    if font_path and os.path.isfile(font_path):
        try:
            return ImageFont.truetype(font_path, font_size)
        except IOError:
            pass # Fall back to the default font
    try:
        return ImageFont.load_default(size=font_size)
    except TypeError: # Older Pillow versions do not take a size
        return ImageFont.load_default()


def create_legend_image(palette, font_path=None, font_size=14, swatch_size=40, padding=10, columns=16):
    """
    Renders a palette as a grid of numbered swatches.

    Args:
        palette (list or np.ndarray): Color palette, each item an RGB tuple/list or ndarray row.
        font_path (str, optional): Path to a TTF font file.
        font_size (int): Font size for the index numbers.
        swatch_size (int): Width/height of each color swatch.
        padding (int): Space around the grid and between swatches.
        columns (int): Swatches per row before wrapping.

    Returns:
        PIL.Image.Image: The legend image, or None for an empty palette.
    """
    num_colors = len(palette)
    if num_colors == 0:
        return None

    cols = max(1, min(columns, num_colors))
    rows = (num_colors + cols - 1) // cols
    width = (swatch_size * cols) + (padding * (cols + 1))
    height = (swatch_size * rows) + (padding * (rows + 1))

    image = Image.new("RGB", (width, height), color=(255, 255, 255))
    draw = ImageDraw.Draw(image)
    font = _load_font(font_path, font_size)

    for idx, color_data in enumerate(palette):
        row, col = divmod(idx, cols)
        x0 = padding + col * (swatch_size + padding)
        y0 = padding + row * (swatch_size + padding)
        fill_color = tuple(int(c) for c in list(color_data)[:3])

        draw.rectangle([x0, y0, x0 + swatch_size, y0 + swatch_size], fill=fill_color, outline=(0, 0, 0))

        text = str(idx)
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        text_x = x0 + (swatch_size - (right - left)) / 2.0 - left
        text_y = y0 + (swatch_size - (bottom - top)) / 2.0 - top
        draw.text((text_x, text_y), text, fill=_label_color(fill_color), font=font)

    return image
