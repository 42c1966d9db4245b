"""FrameSettings value type and its on-disk text format.

The settings file is a small JSON object holding the whole record. It is
meant to be edited by hand as well as by the API, so parsing is strict
about the four known keys and ignores anything else.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any

from .errors import ConfigError

DEFAULT_ROTATE_INTERVAL_SECS = 10

FIELDS = ("display_enabled", "rotate_interval_secs", "shuffle", "pinned_image")


@dataclass(frozen=True)
class FrameSettings:
    display_enabled: bool = True
    rotate_interval_secs: int = DEFAULT_ROTATE_INTERVAL_SECS
    shuffle: bool = False
    pinned_image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "FrameSettings":
        if not isinstance(data, dict):
            raise ConfigError("settings must be an object")

        for key in ("display_enabled", "shuffle"):
            if key not in data:
                raise ConfigError(f"missing field: {key}")
            if not isinstance(data[key], bool):
                raise ConfigError(f"{key} must be true or false")

        if "rotate_interval_secs" not in data:
            raise ConfigError("missing field: rotate_interval_secs")
        interval = data["rotate_interval_secs"]
        if isinstance(interval, bool) or not isinstance(interval, int) or interval < 0:
            raise ConfigError("rotate_interval_secs must be a non-negative integer")

        pinned = data.get("pinned_image")
        if pinned is not None and not isinstance(pinned, str):
            raise ConfigError("pinned_image must be a string or null")

        return cls(
            display_enabled=data["display_enabled"],
            rotate_interval_secs=interval,
            shuffle=data["shuffle"],
            pinned_image=pinned or None,
        )


def dumps(settings: FrameSettings) -> str:
    return json.dumps(settings.to_dict(), indent=2) + "\n"


def loads(text: str) -> FrameSettings:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"settings are not valid JSON: {exc}") from exc
    return FrameSettings.from_dict(data)


def read_settings(path: Path) -> FrameSettings:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigError(f"{path} is not UTF-8 text") from exc
    try:
        return loads(text)
    except ConfigError as exc:
        raise ConfigError(f"{path}: {exc}") from exc


@dataclass(frozen=True)
class PartialSettings:
    """A subset of FrameSettings fields; only names in `provided` are applied."""

    display_enabled: Any = None
    rotate_interval_secs: Any = None
    shuffle: Any = None
    pinned_image: Any = None
    provided: frozenset[str] = frozenset()

    @classmethod
    def from_fields(cls, **fields: Any) -> "PartialSettings":
        unknown = set(fields) - set(FIELDS)
        if unknown:
            raise ConfigError(f"unknown settings field(s): {', '.join(sorted(unknown))}")
        return cls(provided=frozenset(fields), **fields)

    def apply(self, settings: FrameSettings) -> FrameSettings:
        changes = {name: getattr(self, name) for name in self.provided}
        if not changes:
            return settings
        # Round-trip through from_dict so a partial update can never produce
        # a value the file parser would reject.
        return FrameSettings.from_dict(replace(settings, **changes).to_dict())
