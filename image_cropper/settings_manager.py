from __future__ import annotations

import json
import os
from typing import Any

from PySide6.QtGui import QColor

from image_cropper.crop.options import CropOptions, Theme

from .logger import get_logger

_logger = get_logger("settings")

_DEFAULT_THEME = Theme()
_THEME_KEYS = ("primary_color", "background_color", "overlay_color")


def parse_aspect_ratio(text: str | float | None) -> float | None:
    """Parse "16:9", "1.5" or "free"/"none" (-> None) into a width/height ratio."""
    if text is None:
        return None
    if isinstance(text, (int, float)):
        value = float(text)
    else:
        raw = str(text).strip().lower()
        if raw in ("", "free", "none"):
            return None
        try:
            if ":" in raw:
                w, h = raw.split(":", 1)
                value = float(w) / float(h)
            else:
                value = float(raw)
        except (ValueError, ZeroDivisionError) as e:
            raise ValueError(f"invalid aspect ratio: {text!r}") from e
    if value <= 0:
        raise ValueError(f"aspect ratio must be positive: {text!r}")
    return value


class SettingsManager:
    def __init__(self, settings_path: str):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    DEFAULTS: dict[str, Any] = {
        "aspect_ratio": 1.0,
        "max_output_size": 1200,
        "compression_quality": 0.7,
        "circular_preview": False,
        "primary_color": _DEFAULT_THEME.primary_color,
        "background_color": _DEFAULT_THEME.background_color,
        "overlay_color": _DEFAULT_THEME.overlay_color,
        "crop_presets": [
            {"name": "Free", "ratio": None},
            {"name": "1:1", "ratio": [1, 1]},
            {"name": "4:3", "ratio": [4, 3]},
            {"name": "3:2", "ratio": [3, 2]},
            {"name": "16:9", "ratio": [16, 9]},
        ],
    }

    def load(self) -> None:
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._settings = data
                        _logger.debug("settings loaded: %s", self.settings_path)
                        return
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed: %s", e)
        self._settings = {}

    def save(self) -> None:
        try:
            parent = os.path.dirname(self.settings_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, ensure_ascii=False, indent=2)
            _logger.debug("settings saved: %s", self.settings_path)
        except OSError as e:
            _logger.error("settings save failed: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        return key in self._settings

    def set(self, key: str, value: Any) -> None:
        self._settings[key] = value
        self.save()

    @property
    def data(self) -> dict[str, Any]:
        return self._settings

    def crop_presets(self) -> list[tuple[str, float | None]]:
        """Return (label, ratio) pairs; malformed entries are skipped."""
        out: list[tuple[str, float | None]] = []
        for preset in self.get("crop_presets") or []:
            try:
                name = str(preset["name"])
                ratio = preset.get("ratio")
                if ratio is None:
                    out.append((name, None))
                else:
                    w, h = ratio
                    out.append((name, parse_aspect_ratio(f"{w}:{h}")))
            except (KeyError, TypeError, ValueError) as e:
                _logger.warning("ignoring crop preset %r: %s", preset, e)
        return out

    def theme_color(self, key: str) -> QColor:
        default = self.DEFAULTS[key]
        hexcol = self.get(key)
        if isinstance(hexcol, str):
            color = QColor(hexcol)
            if color.isValid():
                return color
            _logger.warning("saved %s invalid: %s", key, hexcol)
        return QColor(default)

    def _stored_number(self, key: str, convert: type) -> Any:
        # null in the file falls back to the default
        raw = self.get(key)
        if raw is None:
            raw = self.DEFAULTS[key]
        try:
            return convert(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid {key}: {raw!r}") from e

    def crop_options(self, **overrides: Any) -> CropOptions:
        """Build CropOptions from stored values; keyword overrides win (e.g. CLI flags).

        Raises ValueError for out-of-range values.
        """
        # An explicit null in the file means free-form
        values: dict[str, Any] = {
            "aspect_ratio": parse_aspect_ratio(self.get("aspect_ratio")),
            "max_output_size": self._stored_number("max_output_size", int),
            "compression_quality": self._stored_number("compression_quality", float),
            "circular_preview": bool(self.get("circular_preview")),
            "theme": Theme(**{k: self.theme_color(k).name(QColor.NameFormat.HexArgb) for k in _THEME_KEYS}),
        }
        values.update(overrides)
        return CropOptions(**values)
