"""Pytest configuration.

The Qt backend paints on QImage, which needs a QGuiApplication for font and
image-format plugin setup on some platforms. We create a single application
for the entire session as early as possible and shut it down at the end.
"""

from __future__ import annotations

from typing import Any

import pytest

from rasterkit.metrics import metrics
from rasterkit.settings import Settings, reset_settings
from tests.helpers.recording_backend import RecordingBackend

_APP: Any | None = None


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QGuiApplication exists before collecting/running tests."""

    # Import lazily so environments without Qt can still import this conftest.
    try:
        from PySide6.QtGui import QGuiApplication
    except ImportError:
        return

    global _APP

    app = QGuiApplication.instance()
    if app is None:
        # Keep a strong ref so it isn't GC'd mid-session.
        _APP = QGuiApplication(["rasterkit-tests", "-platform", "offscreen"])
    else:
        _APP = app


def pytest_sessionfinish(session, exitstatus) -> None:  # noqa: ARG001
    try:
        from PySide6.QtGui import QGuiApplication
    except ImportError:
        return

    app = QGuiApplication.instance()
    if app is None:
        return
    app.quit()
    app.processEvents()


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    for name in ("RASTERKIT_DRIVER", "RASTERKIT_IMAGE_DIRECTORY", "RASTERKIT_SETTINGS"):
        monkeypatch.delenv(name, raising=False)
    reset_settings(Settings())
    metrics.reset()
    yield
    reset_settings(None)


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()
