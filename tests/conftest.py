from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from pictureframe.config import FrameConfig
from pictureframe.store import SettingsStore


class RecordingRenderer:
    def __init__(self, fail: set[str] | None = None) -> None:
        self.shown: list[Path] = []
        self.blanks = 0
        self.fail = fail or set()

    def show(self, image_path: Path) -> None:
        if Path(image_path).name in self.fail:
            raise OSError(f"cannot decode {image_path}")
        self.shown.append(Path(image_path))

    def blank(self) -> None:
        self.blanks += 1

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.shown]


def make_image(path: Path, color=(200, 30, 30), size=(4, 2)) -> Path:
    Image.new("RGB", size, color).save(path)
    return path


@pytest.fixture
def config(tmp_path: Path) -> FrameConfig:
    cfg = FrameConfig.for_data_dir(tmp_path / "data", watch_interval_secs=0.1, disabled_poll_secs=5.0)
    cfg.ensure_dirs()
    return cfg


@pytest.fixture
def image_dir(config: FrameConfig) -> Path:
    for name in ("a.jpg", "b.jpg", "c.png"):
        make_image(config.image_dir / name)
    return config.image_dir


@pytest.fixture
def store(config: FrameConfig) -> SettingsStore:
    return SettingsStore.load(config.settings_file)


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()
