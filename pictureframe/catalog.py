from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

logger = logging.getLogger(__name__)

ACCEPTED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})


def is_accepted(name: str) -> bool:
    return Path(name).suffix.lower() in ACCEPTED_EXTENSIONS


@dataclass(frozen=True)
class ImageCatalog:
    """Ordered, immutable list of displayable image paths."""

    paths: tuple[Path, ...] = ()

    def __len__(self) -> int:
        return len(self.paths)

    def __iter__(self) -> Iterator[Path]:
        return iter(self.paths)

    def __getitem__(self, index: int) -> Path:
        return self.paths[index]

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.paths]

    def index_of(self, filename: str) -> int | None:
        for idx, path in enumerate(self.paths):
            if path.name == filename:
                return idx
        return None

    def position(self, path: Path) -> int | None:
        try:
            return self.paths.index(path)
        except ValueError:
            return None

    def sorted(self) -> "ImageCatalog":
        return ImageCatalog(tuple(sorted(self.paths)))


def scan(directory: Path) -> ImageCatalog:
    directory = Path(directory)
    try:
        entries = list(directory.iterdir())
    except FileNotFoundError:
        logger.warning("image directory %s does not exist", directory)
        return ImageCatalog()

    files = [p for p in entries if is_accepted(p.name) and p.is_file()]
    return ImageCatalog(tuple(sorted(files)))


def shuffle(catalog: ImageCatalog | Sequence[Path], rng: random.Random | None = None) -> ImageCatalog:
    paths = list(catalog)
    (rng or random).shuffle(paths)
    return ImageCatalog(tuple(paths))
