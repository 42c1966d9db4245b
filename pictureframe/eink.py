from __future__ import annotations

import logging
from pathlib import Path

from inky.auto import auto

from .image_ops import black_frame, prepare

logger = logging.getLogger(__name__)


class InkyRenderer:
    """Pimoroni Inky e-paper panel, detected via its EEPROM."""

    def __init__(self) -> None:
        self.display = auto()
        logger.info("initialised display with resolution: %s", self.display.resolution)

    @property
    def size(self) -> tuple[int, int]:
        return tuple(self.display.resolution)

    def show(self, image_path: Path) -> None:
        frame = prepare(image_path, self.size)
        logger.info("loaded image from path: %s", image_path)
        self.display.set_image(frame)
        self.display.show()

    def blank(self) -> None:
        self.display.set_image(black_frame(self.size))
        self.display.show()
