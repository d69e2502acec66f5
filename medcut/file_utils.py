import re
from pathlib import Path
from PIL import Image, PngImagePlugin
from typing import Dict, Optional

METADATA_PREFIX = "medcut:"


def _clean_metadata_key(key: str) -> str:
    """Turns a free-form label into a tEXt-safe keyword."""
    key_clean = re.sub(r'\s+', '_', key)
    key_clean = re.sub(r'[^a-zA-Z0-9_.-]', '', key_clean)
    if not re.match(r'^[a-zA-Z_]', key_clean):
        key_clean = "medcut_" + key_clean
    # tEXt keywords are limited to 79 bytes, leave room for the prefix
    return key_clean[:70]


def save_indexed_png(
    image_to_save: Image.Image,
    output_path: Path,
    command_line_invocation: Optional[str] = None,
    additional_metadata: Optional[Dict[str, str]] = None
) -> Path:
    """
    Saves a quantized image as PNG with medcut metadata in tEXt chunks.

    "P" images are written as paletted PNGs; other modes are saved as they are
    (legend images, for example). Parent directories are created as needed.

    Returns:
        Path: The path written.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    png_info = PngImagePlugin.PngInfo()
    png_info.add_text("Software", "medcut median-cut palette quantizer")
    if command_line_invocation:
        png_info.add_text(f"{METADATA_PREFIX}command_line", command_line_invocation)

    for key, value in (additional_metadata or {}).items():
        png_info.add_text(f"{METADATA_PREFIX}{_clean_metadata_key(key)}", str(value))

    image_to_save.save(output_path, "PNG", pnginfo=png_info)
    return output_path


def read_png_metadata(path: Path) -> Dict[str, str]:
    """Returns the medcut tEXt entries of a PNG, without their prefix."""
    with Image.open(path) as img:
        return {
            key[len(METADATA_PREFIX):]: value
            for key, value in img.info.items()
            if isinstance(key, str) and key.startswith(METADATA_PREFIX)
        }
