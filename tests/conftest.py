"""Pytest configuration.

Dialog and canvas tests use PySide6 widgets. A single `QApplication` is
created for the whole session as early as possible (before collection imports
Qt modules) and shut down cleanly at the end. Qt runs offscreen unless the
caller picked a platform.
"""

from __future__ import annotations

import os
from typing import Any

import pytest

_APP: Any | None = None


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QApplication exists before collecting/running tests."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

    # Import lazily so non-Qt environments can still import this conftest.
    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    global _APP

    app = QApplication.instance()
    if app is None:
        # Keep a strong ref so it isn't GC'd mid-session.
        _APP = QApplication([])
    else:
        _APP = app


def pytest_sessionfinish(session, exitstatus) -> None:  # noqa: ARG001
    """Attempt a clean Qt shutdown to avoid lingering threads at interpreter exit."""
    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    app = QApplication.instance()
    if app is None:
        return

    app.quit()
    app.processEvents()


@pytest.fixture
def make_image_bytes():
    """Factory for small encoded test images: make_image_bytes(w, h, suffix=".jpg")."""
    pyvips = pytest.importorskip("pyvips")

    def _make(width: int, height: int, suffix: str = ".jpg") -> bytes:
        img = (pyvips.Image.black(width, height, bands=3) + [200, 80, 40]).cast("uchar")
        return bytes(img.write_to_buffer(suffix))

    return _make
