from __future__ import annotations

import pytest

from rasterkit import backends
from rasterkit.backends import available_backends, get_backend, register_backend
from rasterkit.errors import UnsupportedBackend
from rasterkit.settings import Settings, reset_settings
from tests.helpers.recording_backend import RecordingBackend


@pytest.fixture
def registry(monkeypatch):
    """Work on a copy of the registry so registrations don't leak between tests."""
    monkeypatch.setattr(backends, "_REGISTRY", dict(backends._REGISTRY))
    return backends._REGISTRY


def test_builtin_backends_are_registered(registry) -> None:
    assert available_backends() == ["qt", "vips"]


def test_unknown_backend(registry) -> None:
    with pytest.raises(UnsupportedBackend) as exc:
        get_backend("GD2 ")
    assert exc.value.name == "gd2"


def test_register_backend_normalizes_name(registry) -> None:
    register_backend(" Recording ", RecordingBackend)
    assert "recording" in available_backends()
    assert isinstance(get_backend("RECORDING"), RecordingBackend)


def test_default_backend_comes_from_settings(registry, monkeypatch) -> None:
    register_backend("recording", RecordingBackend)
    monkeypatch.setenv("RASTERKIT_DRIVER", "recording")
    reset_settings(Settings())
    assert isinstance(get_backend(), RecordingBackend)


def test_factory_called_per_request(registry) -> None:
    register_backend("recording", RecordingBackend)
    assert get_backend("recording") is not get_backend("recording")
