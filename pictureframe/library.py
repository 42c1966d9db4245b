from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO

from .catalog import ACCEPTED_EXTENSIONS, is_accepted, scan
from .errors import PictureError

logger = logging.getLogger(__name__)


def _safe_name(filename: str) -> str:
    name = Path(filename or "").name
    if not name or name in {".", ".."} or name.startswith("."):
        raise PictureError(f"invalid picture filename: {filename!r}")
    if not is_accepted(name):
        allowed = ", ".join(sorted(ACCEPTED_EXTENSIONS))
        raise PictureError(f"{name}: only {allowed} files are accepted")
    return name


def list_pictures(image_dir: Path) -> list[str]:
    return scan(image_dir).names


def save_picture(image_dir: Path, filename: str, source: BinaryIO) -> Path:
    """Copy an upload into the image directory; appears atomically under its name."""
    name = _safe_name(filename)
    image_dir = Path(image_dir)
    target = image_dir / name

    # Dot-prefixed temp files are ignored by the catalog and the watcher.
    fd, tmp = tempfile.mkstemp(prefix=".upload.", suffix=".tmp", dir=image_dir)
    try:
        with os.fdopen(fd, "wb") as f:
            for chunk in iter(lambda: source.read(1 << 16), b""):
                f.write(chunk)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, target)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise
    logger.info("saved picture %s", target)
    return target


def delete_picture(image_dir: Path, filename: str) -> bool:
    """Remove a picture; a file that is already gone counts as deleted.

    Returns True when a file was actually removed.
    """
    name = _safe_name(filename)
    path = Path(image_dir) / name
    try:
        path.unlink()
    except FileNotFoundError:
        logger.info("picture %s already gone", name)
        return False
    logger.info("deleted picture %s", path)
    return True
