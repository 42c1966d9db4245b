from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .errors import ConfigError

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"

DEFAULT_DISPLAY_WIDTH = 800
DEFAULT_DISPLAY_HEIGHT = 480
DEFAULT_FRAMEBUFFER = "/dev/fb0"
DEFAULT_WATCH_INTERVAL = 2.0
DEFAULT_WATCH_QUEUE = 8
DEFAULT_DISABLED_POLL = 5.0
DEFAULT_MIN_TICK = 1.0

RENDERERS = ("framebuffer", "inky")


@dataclass(frozen=True)
class FrameConfig:
    data_dir: Path
    image_dir: Path
    settings_file: Path
    display_width: int = DEFAULT_DISPLAY_WIDTH
    display_height: int = DEFAULT_DISPLAY_HEIGHT
    renderer: str = "framebuffer"
    framebuffer_device: str = DEFAULT_FRAMEBUFFER
    watch_interval_secs: float = DEFAULT_WATCH_INTERVAL
    watch_queue_size: int = DEFAULT_WATCH_QUEUE
    watch_polling: bool = False
    disabled_poll_secs: float = DEFAULT_DISABLED_POLL
    min_tick_secs: float = DEFAULT_MIN_TICK
    log_level: str = "INFO"

    @property
    def display_size(self) -> tuple[int, int]:
        return self.display_width, self.display_height

    @classmethod
    def for_data_dir(cls, data_dir: Path, **overrides) -> "FrameConfig":
        data_dir = Path(data_dir)
        overrides.setdefault("image_dir", data_dir / "images")
        overrides.setdefault("settings_file", data_dir / "config" / "settings.json")
        return cls(data_dir=data_dir, **overrides)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "FrameConfig":
        env = os.environ if environ is None else environ
        data_dir = Path(env.get("FRAME_DATA_DIR", str(DATA_DIR)))

        renderer = env.get("FRAME_RENDERER", "framebuffer").strip().lower()
        if renderer not in RENDERERS:
            raise ConfigError(f"FRAME_RENDERER must be one of {', '.join(RENDERERS)}, got {renderer!r}")

        return cls.for_data_dir(
            data_dir,
            image_dir=Path(env.get("FRAME_IMAGE_DIR", str(data_dir / "images"))),
            settings_file=Path(env.get("FRAME_SETTINGS_FILE", str(data_dir / "config" / "settings.json"))),
            display_width=max(1, _int(env, "FRAME_DISPLAY_WIDTH", DEFAULT_DISPLAY_WIDTH)),
            display_height=max(1, _int(env, "FRAME_DISPLAY_HEIGHT", DEFAULT_DISPLAY_HEIGHT)),
            renderer=renderer,
            framebuffer_device=env.get("FRAME_FRAMEBUFFER", DEFAULT_FRAMEBUFFER),
            watch_interval_secs=max(0.1, _float(env, "FRAME_WATCH_INTERVAL", DEFAULT_WATCH_INTERVAL)),
            watch_queue_size=max(1, _int(env, "FRAME_WATCH_QUEUE", DEFAULT_WATCH_QUEUE)),
            watch_polling=_bool(env, "FRAME_WATCH_POLLING", False),
            disabled_poll_secs=max(0.1, _float(env, "FRAME_DISABLED_POLL", DEFAULT_DISABLED_POLL)),
            min_tick_secs=max(0.01, _float(env, "FRAME_MIN_TICK", DEFAULT_MIN_TICK)),
            log_level=env.get("FRAME_LOG_LEVEL", "INFO").upper(),
        )

    def ensure_dirs(self) -> None:
        self.image_dir.mkdir(parents=True, exist_ok=True)
        self.settings_file.parent.mkdir(parents=True, exist_ok=True)


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None


def _bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
