import json

import pytest

from pictureframe.errors import ConfigError
from pictureframe.settings import FrameSettings, PartialSettings, dumps, loads, read_settings


@pytest.mark.parametrize(
    "value",
    [
        FrameSettings(),
        FrameSettings(display_enabled=False, rotate_interval_secs=0, shuffle=True, pinned_image=None),
        FrameSettings(rotate_interval_secs=86400, pinned_image="holiday 2019.JPG"),
    ],
)
def test_serialized_settings_parse_back_equal(value):
    assert loads(dumps(value)) == value


def test_defaults():
    s = FrameSettings()
    assert s.display_enabled is True
    assert s.rotate_interval_secs == 10
    assert s.shuffle is False
    assert s.pinned_image is None


def test_file_is_whole_record_json():
    data = json.loads(dumps(FrameSettings(pinned_image="x.png")))
    assert data == {
        "display_enabled": True,
        "rotate_interval_secs": 10,
        "shuffle": False,
        "pinned_image": "x.png",
    }


def test_missing_pinned_image_means_none_and_unknown_keys_ignored():
    text = '{"display_enabled": true, "rotate_interval_secs": 5, "shuffle": false, "theme": "dark"}'
    assert loads(text) == FrameSettings(rotate_interval_secs=5)


def test_empty_pin_is_normalised():
    text = '{"display_enabled": true, "rotate_interval_secs": 5, "shuffle": false, "pinned_image": ""}'
    assert loads(text).pinned_image is None


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[]",
        '{"rotate_interval_secs": 5, "shuffle": false}',
        '{"display_enabled": "yes", "rotate_interval_secs": 5, "shuffle": false}',
        '{"display_enabled": true, "rotate_interval_secs": -1, "shuffle": false}',
        '{"display_enabled": true, "rotate_interval_secs": true, "shuffle": false}',
        '{"display_enabled": true, "rotate_interval_secs": 1.5, "shuffle": false}',
        '{"display_enabled": true, "rotate_interval_secs": 5, "shuffle": false, "pinned_image": 3}',
    ],
)
def test_invalid_settings_raise_config_error(text):
    with pytest.raises(ConfigError):
        loads(text)


def test_read_settings_names_the_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigError, match="settings.json"):
        read_settings(path)


def test_partial_applies_only_provided_fields():
    base = FrameSettings(display_enabled=True, rotate_interval_secs=30, shuffle=True, pinned_image="a.jpg")
    partial = PartialSettings.from_fields(rotate_interval_secs=5)
    assert partial.apply(base) == FrameSettings(
        display_enabled=True, rotate_interval_secs=5, shuffle=True, pinned_image="a.jpg"
    )


def test_partial_can_clear_pin():
    base = FrameSettings(pinned_image="a.jpg")
    assert PartialSettings.from_fields(pinned_image=None).apply(base).pinned_image is None


def test_empty_partial_is_identity():
    base = FrameSettings(shuffle=True)
    assert PartialSettings.from_fields().apply(base) is base


def test_partial_rejects_unknown_and_invalid_fields():
    with pytest.raises(ConfigError):
        PartialSettings.from_fields(brightness=3)
    with pytest.raises(ConfigError):
        PartialSettings.from_fields(display_enabled=None).apply(FrameSettings())
