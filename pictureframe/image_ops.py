from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image, ImageOps

BACKGROUND = (0, 0, 0)


def _fit_in_target(image: Image.Image, target_w: int, target_h: int) -> Image.Image:
    # Letterbox onto black background to preserve full photo.
    fitted = ImageOps.contain(image, (target_w, target_h), Image.Resampling.LANCZOS)
    out = Image.new("RGB", (target_w, target_h), BACKGROUND)
    x = (target_w - fitted.width) // 2
    y = (target_h - fitted.height) // 2
    out.paste(fitted, (x, y))
    return out


def prepare(image_path: Path, size: tuple[int, int]) -> Image.Image:
    """Decode, correct EXIF orientation and letterbox to `size`."""
    with Image.open(image_path) as im:
        im.load()
        oriented = ImageOps.exif_transpose(im)
        rgb = oriented.convert("RGB")
    return _fit_in_target(rgb, *size)


def black_frame(size: tuple[int, int]) -> Image.Image:
    return Image.new("RGB", size, BACKGROUND)


def to_rgb565(image: Image.Image) -> bytes:
    # Fast RGB565 with numpy (little-endian, no byteswap)
    pixels = np.asarray(image.convert("RGB"), dtype=np.uint16)
    r = (pixels[:, :, 0] >> 3) & 0x1F
    g = (pixels[:, :, 1] >> 2) & 0x3F
    b = (pixels[:, :, 2] >> 3) & 0x1F
    packed = (r << 11) | (g << 5) | b
    return packed.astype("<u2").tobytes("C")
