from __future__ import annotations

import json
from pathlib import Path

from rasterkit.settings import Settings, get_settings, reset_settings


def _write(path: Path, data) -> str:
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_defaults_without_file() -> None:
    s = Settings()
    assert s.driver == "vips"
    assert s.image_directory is None
    assert s.png_compression == 9
    assert s.jpeg_flatten_background == [255, 255, 255]


def test_defaults_when_file_is_missing(tmp_path: Path) -> None:
    s = Settings(str(tmp_path / "missing.json"))
    assert s.driver == "vips"


def test_file_values(tmp_path: Path) -> None:
    path = _write(tmp_path / "rasterkit.json", {"driver": "QT", "png_compression": 42, "image_directory": "up"})
    s = Settings(path)
    assert s.driver == "qt"
    # Out of zlib range is clamped
    assert s.png_compression == 9
    assert s.image_directory == "up"


def test_reload_picks_up_changes(tmp_path: Path) -> None:
    path = tmp_path / "rasterkit.json"
    s = Settings(_write(path, {"png_compression": 3}))
    assert s.png_compression == 3
    _write(path, {"png_compression": 6})
    s.load()
    assert s.png_compression == 6


def test_env_overrides_file(tmp_path: Path, monkeypatch) -> None:
    path = _write(tmp_path / "rasterkit.json", {"driver": "qt", "image_directory": "a"})
    monkeypatch.setenv("RASTERKIT_DRIVER", "vips")
    monkeypatch.setenv("RASTERKIT_IMAGE_DIRECTORY", "b")
    s = Settings(path)
    assert s.driver == "vips"
    assert s.image_directory == "b"


def test_broken_file_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "rasterkit.json"
    path.write_text("{not json", encoding="utf-8")
    s = Settings(str(path))
    assert s.driver == "vips"
    assert s.png_compression == 9


def test_non_object_file_is_ignored(tmp_path: Path) -> None:
    s = Settings(_write(tmp_path / "rasterkit.json", ["qt"]))
    assert s.driver == "vips"


def test_invalid_values_fall_back(tmp_path: Path) -> None:
    path = _write(tmp_path / "rasterkit.json", {"png_compression": "high", "jpeg_flatten_background": [1]})
    s = Settings(path)
    assert s.png_compression == 9
    assert s.jpeg_flatten_background == [255, 255, 255]


def test_global_settings_from_env(tmp_path: Path, monkeypatch) -> None:
    path = _write(tmp_path / "rasterkit.json", {"image_directory": str(tmp_path)})
    monkeypatch.setenv("RASTERKIT_SETTINGS", path)
    reset_settings(None)
    assert get_settings().image_directory == str(tmp_path)
    assert get_settings() is get_settings()
