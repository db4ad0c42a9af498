from __future__ import annotations

import json

import pytest

pytest.importorskip("PySide6")

from PySide6.QtGui import QColor

from image_cropper.crop.options import CropOptions
from image_cropper.settings_manager import SettingsManager, parse_aspect_ratio


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("16:9", 16 / 9),
        ("1:1", 1.0),
        ("1.5", 1.5),
        (" 4:3 ", 4 / 3),
        (2, 2.0),
        ("free", None),
        ("None", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_aspect_ratio(text, expected) -> None:
    assert parse_aspect_ratio(text) == expected


@pytest.mark.parametrize("text", ["abc", "16:0", "0", "-1.5", "3:x"])
def test_parse_aspect_ratio_rejects_garbage(text) -> None:
    with pytest.raises(ValueError):
        parse_aspect_ratio(text)


def test_defaults_when_file_missing(tmp_path) -> None:
    sm = SettingsManager(str(tmp_path / "settings.json"))
    opts = sm.crop_options()

    assert opts == CropOptions(theme=opts.theme)
    assert QColor(opts.theme.primary_color) == QColor("#073d44")
    assert QColor(opts.theme.overlay_color).alpha() == 0x99
    assert not sm.has("aspect_ratio")


def test_set_persists_and_reloads(tmp_path) -> None:
    path = tmp_path / "sub" / "settings.json"
    sm = SettingsManager(str(path))
    sm.set("max_output_size", 800)

    assert json.loads(path.read_text(encoding="utf-8")) == {"max_output_size": 800}
    assert SettingsManager(str(path)).crop_options().max_output_size == 800


def test_corrupt_file_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    sm = SettingsManager(str(path))
    assert sm.data == {}
    assert sm.crop_options().aspect_ratio == 1.0


def test_stored_null_ratio_means_free_form(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"aspect_ratio": None, "compression_quality": 0.5}), encoding="utf-8")

    opts = SettingsManager(str(path)).crop_options()
    assert opts.aspect_ratio is None
    assert opts.compression_quality == 0.5
    assert not opts.constraints().aspect_locked


def test_stored_null_numbers_use_defaults(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"max_output_size": None, "compression_quality": None}), encoding="utf-8")

    opts = SettingsManager(str(path)).crop_options()
    assert opts.max_output_size == 1200
    assert opts.compression_quality == 0.7


def test_non_numeric_stored_values_raise_value_error(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"max_output_size": [800]}), encoding="utf-8")

    with pytest.raises(ValueError, match="max_output_size"):
        SettingsManager(str(path)).crop_options()


def test_overrides_win_and_are_validated(tmp_path) -> None:
    sm = SettingsManager(str(tmp_path / "settings.json"))

    assert sm.crop_options(aspect_ratio=16 / 9).aspect_ratio == pytest.approx(16 / 9)
    with pytest.raises(ValueError):
        sm.crop_options(compression_quality=1.5)
    with pytest.raises(ValueError):
        sm.crop_options(max_output_size=0)


def test_invalid_theme_colour_falls_back(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"primary_color": "not-a-colour", "background_color": "#202020"}), encoding="utf-8")
    sm = SettingsManager(str(path))

    assert sm.theme_color("primary_color") == QColor("#073d44")
    assert sm.theme_color("background_color") == QColor("#202020")


def test_crop_presets_skip_malformed_entries(tmp_path) -> None:
    path = tmp_path / "settings.json"
    presets = [
        {"name": "Free", "ratio": None},
        {"name": "21:9", "ratio": [21, 9]},
        {"name": "broken", "ratio": [1]},
        {"ratio": [1, 1]},
        {"name": "zero", "ratio": [1, 0]},
    ]
    path.write_text(json.dumps({"crop_presets": presets}), encoding="utf-8")

    assert SettingsManager(str(path)).crop_presets() == [("Free", None), ("21:9", 21 / 9)]


def test_default_presets(tmp_path) -> None:
    names = [name for name, _ in SettingsManager(str(tmp_path / "s.json")).crop_presets()]
    assert names == ["Free", "1:1", "4:3", "3:2", "16:9"]
