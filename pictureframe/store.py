from __future__ import annotations

import logging
import os
import tempfile
import threading
from dataclasses import replace
from pathlib import Path
from typing import Callable

from . import settings as settings_format
from .catalog import ImageCatalog
from .errors import ConfigError, PinError
from .feed import ChangeFeed, Subscription
from .settings import FrameSettings, PartialSettings

logger = logging.getLogger(__name__)


class SettingsStore:
    """Single source of truth for FrameSettings.

    All mutations run under one lock: transform, serialize, write a temp file
    in the settings directory and rename it over the canonical path. Only a
    successful rename replaces the in-memory value and publishes it.
    """

    def __init__(self, path: Path, initial: FrameSettings) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._value = initial
        self._feed: ChangeFeed[FrameSettings] = ChangeFeed(initial)

    @classmethod
    def load(cls, path: Path) -> "SettingsStore":
        path = Path(path)
        if path.exists():
            initial = settings_format.read_settings(path)
            logger.info("loaded settings from %s", path)
            return cls(path, initial)

        path.parent.mkdir(parents=True, exist_ok=True)
        store = cls(path, FrameSettings())
        store._write(store._value)
        logger.info("wrote default settings to %s", path)
        return store

    def get(self) -> FrameSettings:
        with self._lock:
            return self._value

    def subscribe(self) -> Subscription[FrameSettings]:
        return self._feed.subscribe()

    def update(self, transform: Callable[[FrameSettings], FrameSettings]) -> FrameSettings:
        with self._lock:
            new = transform(self._value)
            if not isinstance(new, FrameSettings):
                raise TypeError(f"settings transform returned {type(new).__name__}")
            self._write(new)
            self._value = new
            # publish under the lock so the feed sees values in write order
            self._feed.publish(new)
        logger.info("settings updated: %s", new)
        return new

    def reload(self) -> FrameSettings:
        """Re-read the canonical file after an external edit.

        Raises ConfigError and keeps the current value when the file does not
        parse. Publishes only when the value actually differs.
        """
        with self._lock:
            fresh = settings_format.read_settings(self.path)
            if fresh == self._value:
                return fresh
            self._value = fresh
            self._feed.publish(fresh)
        logger.info("settings reloaded from disk: %s", fresh)
        return fresh

    def _write(self, value: FrameSettings) -> None:
        directory = self.path.parent
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(settings_format.dumps(value))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise


def load_store(path: Path) -> SettingsStore:
    """Startup helper: an unparseable settings file is fatal."""
    try:
        return SettingsStore.load(path)
    except ConfigError:
        logger.error("refusing to start with unreadable settings file %s", path)
        raise


def apply_partial(store: SettingsStore, partial: PartialSettings) -> FrameSettings:
    return store.update(partial.apply)


def pin(store: SettingsStore, filename: str, catalog: ImageCatalog) -> FrameSettings:
    if catalog.index_of(filename) is None:
        raise PinError(f"{filename} is not in the picture catalog")
    current = store.get()
    if current.pinned_image == filename:
        return current
    return store.update(lambda s: replace(s, pinned_image=filename))


def unpin(store: SettingsStore, filename: str | None = None) -> FrameSettings:
    """Clear the pin. With `filename`, only that image may be unpinned."""
    current = store.get()
    if current.pinned_image is None:
        return current

    def clear(settings: FrameSettings) -> FrameSettings:
        # checked against the live value, not the snapshot above
        pinned = settings.pinned_image
        if filename is not None and pinned is not None and filename != pinned:
            raise PinError(f"{filename} is not pinned (pinned: {pinned})")
        return replace(settings, pinned_image=None)

    return store.update(clear)
