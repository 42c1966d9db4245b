"""Debounced filesystem watch over the image directory and the settings file.

watchdog feeds raw events into a pending set. A poll thread drains that set
every `interval` seconds, hashes the touched files and only reports the
paths whose content actually changed. Batches go to the event loop through a
bounded queue; on overflow the oldest batch is folded into the newest so a
burst never loses the kind of change it carried.
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .catalog import is_accepted

logger = logging.getLogger(__name__)

SETTINGS = "settings"
IMAGES = "images"

_CHUNK = 1 << 16


@dataclass(frozen=True)
class WatchBatch:
    settings_changed: bool = False
    images_changed: bool = False
    paths: tuple[Path, ...] = ()

    def merge(self, other: "WatchBatch") -> "WatchBatch":
        return WatchBatch(
            settings_changed=self.settings_changed or other.settings_changed,
            images_changed=self.images_changed or other.images_changed,
            paths=self.paths + tuple(p for p in other.paths if p not in self.paths),
        )


def file_digest(path: Path) -> str | None:
    """sha256 of the file content, None when the file is gone."""
    h = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK), b""):
                h.update(chunk)
    except (FileNotFoundError, IsADirectoryError):
        return None
    return h.hexdigest()


class _Handler(FileSystemEventHandler):
    def __init__(self, watcher: "FileWatcher") -> None:
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._watcher.note(event.src_path)
        dest = getattr(event, "dest_path", "")
        if dest:
            self._watcher.note(dest)


class FileWatcher:
    def __init__(
        self,
        image_dir: Path,
        settings_file: Path,
        interval: float = 2.0,
        queue_size: int = 8,
        polling: bool = False,
    ) -> None:
        self.image_dir = Path(image_dir).resolve()
        self.settings_file = Path(settings_file).resolve()
        self.interval = interval
        self.polling = polling

        self._pending: set[Path] = set()
        self._pending_lock = threading.Lock()
        self._digests: dict[Path, str | None] = {}
        self._queue: asyncio.Queue[WatchBatch] = asyncio.Queue(maxsize=queue_size)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._observer = None
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

    def classify(self, path: str | Path) -> str | None:
        resolved = Path(path).resolve()
        if resolved == self.settings_file:
            return SETTINGS
        if resolved.parent == self.image_dir and is_accepted(resolved.name):
            return IMAGES
        return None

    def note(self, path: str | Path) -> None:
        """Record a raw filesystem event; cheap enough for the observer thread."""
        if self.classify(path) is None:
            return
        with self._pending_lock:
            self._pending.add(Path(path).resolve())

    def snapshot(self) -> None:
        """Remember current content so the first poll only reports real edits."""
        self._digests[self.settings_file] = file_digest(self.settings_file)
        try:
            entries = list(self.image_dir.iterdir())
        except FileNotFoundError:
            entries = []
        for entry in entries:
            if is_accepted(entry.name):
                self._digests[entry.resolve()] = file_digest(entry)

    def poll_once(self) -> WatchBatch | None:
        with self._pending_lock:
            pending, self._pending = self._pending, set()

        changed: list[Path] = []
        retry: set[Path] = set()
        for path in sorted(pending):
            try:
                digest = file_digest(path)
            except OSError as exc:
                logger.warning("cannot read %s, retrying next poll: %s", path, exc)
                retry.add(path)
                continue
            if self._digests.get(path) == digest:
                continue
            self._digests[path] = digest
            changed.append(path)

        if retry:
            with self._pending_lock:
                self._pending |= retry

        if not changed:
            return None
        kinds = {self.classify(p) for p in changed}
        batch = WatchBatch(
            settings_changed=SETTINGS in kinds,
            images_changed=IMAGES in kinds,
            paths=tuple(changed),
        )
        logger.debug("watch batch: %s", batch)
        return batch

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        if self._thread is not None:
            return
        self._loop = loop or asyncio.get_running_loop()
        self._stop.clear()
        self.snapshot()

        observer = PollingObserver(timeout=self.interval) if self.polling else Observer()
        handler = _Handler(self)
        observer.schedule(handler, str(self.image_dir), recursive=False)
        observer.schedule(handler, str(self.settings_file.parent), recursive=False)
        observer.start()
        self._observer = observer

        self._thread = threading.Thread(target=self._run, name="frame-watcher", daemon=True)
        self._thread.start()
        logger.info("watching %s and %s", self.image_dir, self.settings_file)

    def stop(self) -> None:
        self._stop.set()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    async def next_batch(self) -> WatchBatch:
        return await self._queue.get()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                batch = self.poll_once()
            except Exception:
                logger.exception("file watch poll failed")
                continue
            if batch is not None:
                self._deliver(batch)

    def _deliver(self, batch: WatchBatch) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self.offer, batch)
        except RuntimeError:
            logger.debug("event loop closed, dropping %s", batch)

    def offer(self, batch: WatchBatch) -> None:
        """Enqueue from the loop thread, folding the oldest batch on overflow."""
        while self._queue.full():
            dropped = self._queue.get_nowait()
            logger.debug("watch queue full, folding %s", dropped)
            batch = dropped.merge(batch)
        self._queue.put_nowait(batch)
