from __future__ import annotations

import asyncio
import enum
import logging
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .catalog import ImageCatalog, scan, shuffle
from .config import FrameConfig
from .errors import ConfigError
from .render import Renderer
from .settings import FrameSettings
from .store import SettingsStore
from .watcher import FileWatcher, WatchBatch

logger = logging.getLogger(__name__)


class DisplayMode(enum.Enum):
    BLANK = "blank"
    SHOWING = "showing"
    PINNED = "pinned"


@dataclass
class DisplayState:
    current_index: int = 0
    deadline: float = 0.0
    mode: DisplayMode = DisplayMode.BLANK
    displayed: Path | None = None


class DisplayController:
    """Decides what is on screen.

    Four sources feed the loop: settings published by the store, batches from
    the file watcher, the rotation deadline and the shutdown event. The
    `on_*` methods are the state machine and take an explicit `now`; `run`
    only waits for whichever source is ready first and dispatches to them.
    """

    def __init__(
        self,
        store: SettingsStore,
        renderer: Renderer,
        image_dir: Path,
        watcher: FileWatcher | None = None,
        *,
        disabled_poll_secs: float = 5.0,
        min_tick_secs: float = 1.0,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.renderer = renderer
        self.image_dir = Path(image_dir)
        self.watcher = watcher
        self.disabled_poll_secs = disabled_poll_secs
        self.min_tick_secs = min_tick_secs
        self.rng = rng or random.Random()
        self.clock = clock

        self.subscription = store.subscribe()
        self.settings: FrameSettings = store.get()
        self.catalog = ImageCatalog()
        self.state = DisplayState()

        self._shutdown = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._warned_pin: str | None = None
        self._blanked = False

    @classmethod
    def from_config(cls, config: FrameConfig, store: SettingsStore, renderer: Renderer) -> "DisplayController":
        watcher = FileWatcher(
            config.image_dir,
            config.settings_file,
            interval=config.watch_interval_secs,
            queue_size=config.watch_queue_size,
            polling=config.watch_polling,
        )
        return cls(
            store,
            renderer,
            config.image_dir,
            watcher,
            disabled_poll_secs=config.disabled_poll_secs,
            min_tick_secs=config.min_tick_secs,
        )

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        if self._task is None:
            self._shutdown.clear()
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        self._shutdown.set()
        if self._task is not None:
            await self._task
            self._task = None

    def request_shutdown(self) -> None:
        self._shutdown.set()

    async def run(self) -> None:
        self.prime(self.clock())
        if self.watcher is not None:
            # the initial snapshot hashes every image; keep it off the loop
            await asyncio.to_thread(self.watcher.start, asyncio.get_running_loop())

        shutdown = asyncio.create_task(self._shutdown.wait())
        feed = asyncio.create_task(self.subscription.changed())
        watch = asyncio.create_task(self.watcher.next_batch()) if self.watcher else None
        try:
            while True:
                waiting = {shutdown, feed} | ({watch} if watch else set())
                delay = max(0.0, self.state.deadline - self.clock())
                done, _ = await asyncio.wait(waiting, timeout=delay, return_when=asyncio.FIRST_COMPLETED)

                if shutdown in done:
                    break
                if feed in done:
                    self.on_settings(feed.result(), self.clock())
                    feed = asyncio.create_task(self.subscription.changed())
                if watch is not None and watch in done:
                    self.on_watch(watch.result(), self.clock())
                    watch = asyncio.create_task(self.watcher.next_batch())

                now = self.clock()
                if now >= self.state.deadline:
                    self.on_timer(now)
        finally:
            for task in (shutdown, feed, watch):
                if task is not None:
                    task.cancel()
            await asyncio.gather(*(t for t in (shutdown, feed, watch) if t is not None), return_exceptions=True)
            if self.watcher is not None:
                await asyncio.to_thread(self.watcher.stop)
            logger.info("display controller stopped")

    def run_once(self) -> None:
        """Make a single display decision without starting the loop."""
        now = self.clock()
        self.prime(now)
        self.on_timer(now)

    # -- state machine -----------------------------------------------------

    def prime(self, now: float) -> None:
        self.catalog = self._build_catalog()
        pinned = self._pinned_index()
        self.state.current_index = pinned if pinned is not None else 0
        self.state.deadline = now
        logger.info("starting with %d image(s), settings %s", len(self.catalog), self.settings)

    def on_settings(self, new: FrameSettings, now: float) -> bool:
        if new == self.settings:
            return False
        old, self.settings = self.settings, new
        logger.info("adopting settings %s", new)

        if new.shuffle and not old.shuffle:
            self.catalog = shuffle(self.catalog, self.rng)
            pinned = self._pinned_index()
            self.state.current_index = pinned if pinned is not None else 0
        elif old.shuffle and not new.shuffle:
            upcoming = self._upcoming()
            self.catalog = self.catalog.sorted()
            self._relocate(upcoming)

        if new.pinned_image != old.pinned_image:
            self._warned_pin = None

        self.state.deadline = now
        return True

    def on_watch(self, batch: WatchBatch, now: float) -> None:
        if batch.settings_changed:
            try:
                fresh = self.store.reload()
            except (ConfigError, OSError) as exc:
                logger.warning("keeping last good settings, cannot reload: %s", exc)
            else:
                self.on_settings(fresh, now)
        if batch.images_changed:
            self.rescan(now)

    def rescan(self, now: float) -> None:
        upcoming = self._upcoming()
        showing = self.state.displayed
        self.catalog = self._build_catalog()
        logger.info("rescanned %s: %d image(s)", self.image_dir, len(self.catalog))

        if not self.catalog:
            self.state.current_index = 0
            if self.state.mode is not DisplayMode.BLANK:
                self._go_blank()
            return

        pinned = self._pinned_index()
        if pinned is not None:
            self.state.current_index = pinned
        else:
            self._relocate(upcoming)

        if showing is None or self.catalog.position(showing) is None:
            self.state.deadline = now

    def on_timer(self, now: float) -> None:
        settings = self.settings
        if not settings.display_enabled:
            if not self._blanked:
                self._go_blank()
            self.state.deadline = now + self.disabled_poll_secs
            return

        self.state.deadline = now + max(float(settings.rotate_interval_secs), self.min_tick_secs)

        if not self.catalog:
            if self.state.mode is not DisplayMode.BLANK:
                self._go_blank()
            return

        if settings.pinned_image:
            pinned = self.catalog.index_of(settings.pinned_image)
            if pinned is not None:
                self._warned_pin = None
                if self._render(pinned):
                    self.state.mode = DisplayMode.PINNED
                return
            if self._warned_pin != settings.pinned_image:
                logger.warning("pinned image %s is not in the catalog, keeping current frame", settings.pinned_image)
                self._warned_pin = settings.pinned_image
            if self.state.displayed is None and self._render(self.state.current_index % len(self.catalog)):
                self.state.mode = DisplayMode.SHOWING
            return

        index = self.state.current_index % len(self.catalog)
        if self._render(index):
            self.state.mode = DisplayMode.SHOWING
            self.state.current_index = (index + 1) % len(self.catalog)

    # -- helpers -----------------------------------------------------------

    def _build_catalog(self) -> ImageCatalog:
        catalog = scan(self.image_dir)
        if self.settings.shuffle:
            catalog = shuffle(catalog, self.rng)
        return catalog

    def _pinned_index(self) -> int | None:
        if not self.settings.pinned_image:
            return None
        return self.catalog.index_of(self.settings.pinned_image)

    def _upcoming(self) -> Path | None:
        if not self.catalog:
            return None
        return self.catalog[self.state.current_index % len(self.catalog)]

    def _relocate(self, path: Path | None) -> None:
        position = self.catalog.position(path) if path is not None else None
        if position is not None:
            self.state.current_index = position
        elif self.catalog:
            self.state.current_index %= len(self.catalog)
        else:
            self.state.current_index = 0

    def _render(self, index: int) -> bool:
        path = self.catalog[index]
        try:
            self.renderer.show(path)
        except Exception:
            logger.exception("failed to display %s", path)
            return False
        self.state.displayed = path
        self._blanked = False
        return True

    def _go_blank(self) -> None:
        logger.info("display blank")
        try:
            self.renderer.blank()
        except Exception:
            logger.exception("failed to blank display")
        self.state.mode = DisplayMode.BLANK
        self.state.displayed = None
        self._blanked = True
