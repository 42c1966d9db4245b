"""Renderers: the opaque "blit this image" primitive the controller calls."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from PIL import Image

from .config import FrameConfig
from .image_ops import black_frame, prepare, to_rgb565

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    def show(self, image_path: Path) -> None:
        """Decode and display one image; raises on failure."""

    def blank(self) -> None:
        """Display a black frame."""


class FramebufferRenderer:
    """Writes frames straight to a Linux framebuffer device."""

    def __init__(self, device: str, size: tuple[int, int], bits_per_pixel: int | None = None) -> None:
        self.device = device
        self.size = size
        self.bits_per_pixel = bits_per_pixel or _read_bits_per_pixel(device)

    def show(self, image_path: Path) -> None:
        frame = prepare(image_path, self.size)
        self._blit(frame)
        logger.info("blitted %s", Path(image_path).name)

    def blank(self) -> None:
        self._blit(black_frame(self.size))
        logger.info("blitted black frame")

    def encode(self, frame: Image.Image) -> bytes:
        if self.bits_per_pixel == 16:
            return to_rgb565(frame)
        return frame.tobytes("raw", "BGRX")

    def _blit(self, frame: Image.Image) -> None:
        data = self.encode(frame)
        with open(self.device, "r+b", buffering=0) as dst:
            dst.seek(0)
            dst.write(data)


def _read_bits_per_pixel(device: str) -> int:
    # /dev/fbN -> /sys/class/graphics/fbN/bits_per_pixel
    sysfs = Path("/sys/class/graphics") / Path(device).name / "bits_per_pixel"
    try:
        return int(sysfs.read_text().strip())
    except (OSError, ValueError):
        logger.warning("cannot read %s, assuming 32 bits per pixel", sysfs)
        return 32


def create_renderer(config: FrameConfig) -> Renderer:
    if config.renderer == "inky":
        from .eink import InkyRenderer

        return InkyRenderer()
    return FramebufferRenderer(config.framebuffer_device, config.display_size)
