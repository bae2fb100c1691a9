from __future__ import annotations

import json
import os
from typing import Any

from .logger import get_logger

_logger = get_logger("settings")

_ENV_OVERRIDES = {
    "RASTERKIT_DRIVER": "driver",
    "RASTERKIT_IMAGE_DIRECTORY": "image_directory",
}


class Settings:
    """Library defaults, optionally read from a JSON file.

    Precedence: environment variables > settings file > DEFAULTS.
    """

    DEFAULTS: dict[str, Any] = {
        "driver": "vips",
        # None: save next to the source file
        "image_directory": None,
        "png_compression": 9,
        "jpeg_flatten_background": [255, 255, 255],
    }

    def __init__(self, settings_path: str | None = None):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        self._settings = {}
        if not self.settings_path:
            return
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._settings = data
                        _logger.debug("settings loaded: %s", self.settings_path)
                    else:
                        _logger.warning("settings file is not a JSON object: %s", self.settings_path)
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed: %s", e)

    def get(self, key: str) -> Any:
        for env_name, env_key in _ENV_OVERRIDES.items():
            if env_key == key:
                env_val = (os.getenv(env_name) or "").strip()
                if env_val:
                    return env_val
        return self._settings.get(key, self.DEFAULTS.get(key))

    @property
    def driver(self) -> str:
        return str(self.get("driver") or self.DEFAULTS["driver"]).lower()

    @property
    def image_directory(self) -> str | None:
        val = self.get("image_directory")
        return val if isinstance(val, str) and val else None

    @property
    def png_compression(self) -> int:
        try:
            level = int(self.get("png_compression"))
        except (TypeError, ValueError):
            _logger.warning("invalid png_compression: %r", self.get("png_compression"))
            return int(self.DEFAULTS["png_compression"])
        return min(max(level, 0), 9)

    @property
    def jpeg_flatten_background(self) -> list[int]:
        val = self.get("jpeg_flatten_background")
        if isinstance(val, (list, tuple)) and len(val) == 3:
            return [int(v) for v in val]
        return list(self.DEFAULTS["jpeg_flatten_background"])


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings; the path comes from RASTERKIT_SETTINGS when set."""
    global _settings
    if _settings is None:
        _settings = Settings(os.getenv("RASTERKIT_SETTINGS") or None)
    return _settings


def reset_settings(settings: Settings | None = None) -> None:
    global _settings
    _settings = settings
