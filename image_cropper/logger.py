"""Project logging.

Everything logs under the ``image_cropper`` logger, which owns one stderr
handler and does not propagate. Two environment variables are re-read on every
setup_logger() call so CLI flags parsed late still apply:

    IMAGE_CROPPER_LOG_LEVEL  debug | info | warning | error | critical
    IMAGE_CROPPER_LOG_CATS   comma separated child names, e.g. "session,export"
"""

import logging
import os
import sys

LEVEL_ENV = "IMAGE_CROPPER_LOG_LEVEL"
CATS_ENV = "IMAGE_CROPPER_LOG_CATS"

_LEVELS = {name: getattr(logging, name.upper()) for name in ("debug", "info", "warning", "error", "critical")}


class _StderrHandler(logging.StreamHandler):
    """The project's console handler; other handlers on the logger are left alone."""


class _CategoryFilter(logging.Filter):
    """Keep records whose last name segment (image_cropper.<cat>) is allowed."""

    def __init__(self, allowed: set[str]):
        super().__init__()
        self.allowed = allowed

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.rsplit(".", 1)[-1] in self.allowed


def _level_from_env(default: int) -> int:
    return _LEVELS.get((os.getenv(LEVEL_ENV) or "").strip().lower(), default)


def _categories_from_env() -> set[str]:
    return {c.strip() for c in (os.getenv(CATS_ENV) or "").split(",") if c.strip()}


def _console_handler(logger: logging.Logger) -> _StderrHandler:
    # sys.stderr may have been swapped (pytest capture); rebind to the current one
    current: _StderrHandler | None = None
    for h in list(logger.handlers):
        if not isinstance(h, _StderrHandler):
            continue
        if current is None and h.stream is sys.stderr:
            current = h
        else:
            logger.removeHandler(h)
    if current is None:
        current = _StderrHandler(stream=sys.stderr)
        current.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s", datefmt="%H:%M:%S"))
        logger.addHandler(current)
    return current


def setup_logger(level: int = logging.INFO, name: str = "image_cropper") -> logging.Logger:
    """Create or refresh the project logger from `level` and the environment."""
    logger = logging.getLogger(name)
    logger.setLevel(_level_from_env(level))

    handler = _console_handler(logger)
    handler.filters.clear()
    cats = _categories_from_env()
    if cats:
        handler.addFilter(_CategoryFilter(cats))

    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = setup_logger()
    return base if not name else base.getChild(name)
