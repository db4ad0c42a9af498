"""Source raster decoding via pyvips.

Input bytes are expected to be a directly decodable format; anything exotic
(e.g. HEIC without libheif) is converted upstream by a normaliser.
"""

from __future__ import annotations

import contextlib
import os
from dataclasses import dataclass
from typing import Any

import numpy as np

from image_cropper.crop.errors import LoadError
from image_cropper.logger import get_logger

_logger = get_logger("decoder")

_LIBVIPS_BIN = os.environ.get("LIBVIPS_BIN")
if _LIBVIPS_BIN and os.name == "nt":
    # Best-effort only; decoding will report import errors if any
    with contextlib.suppress(OSError):
        os.add_dll_directory(_LIBVIPS_BIN)


_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        # Single-shot edits: keep libvips' operation cache from growing
        with contextlib.suppress(Exception):
            pyvips.cache_set_max(0)
            pyvips.cache_set_max_mem(0)
            pyvips.cache_set_max_files(0)
        _pyvips = pyvips
    return _pyvips


@dataclass(frozen=True, slots=True)
class DecodedImage:
    """A decoded source held in memory, with its natural (intrinsic) size."""

    image: Any
    width: int
    height: int


def decode_source(data: bytes) -> DecodedImage:
    """Decode `data` into an in-memory pyvips image, EXIF orientation applied.

    Raises LoadError when the bytes are empty or not a decodable raster.
    """
    if not data:
        raise LoadError("source image is empty")

    pyvips = _get_pyvips_module()
    try:
        image = pyvips.Image.new_from_buffer(data, "")
        with contextlib.suppress(pyvips.Error):
            image = image.autorot()
        image = image.copy_memory()
    except pyvips.Error as e:
        _logger.debug("decode failed: %s", e)
        raise LoadError(f"could not decode source image: {e}") from e

    if image.width <= 0 or image.height <= 0:
        raise LoadError(f"decoded image has no pixels ({image.width}x{image.height})")

    _logger.debug("decoded %dx%d bands=%d", image.width, image.height, image.bands)
    return DecodedImage(image=image, width=int(image.width), height=int(image.height))


def to_srgb_uchar(image: Any) -> Any:
    """Return `image` as 3-band 8-bit sRGB with any alpha flattened onto white."""
    pyvips = _get_pyvips_module()
    with contextlib.suppress(pyvips.Error):
        image = image.colourspace("srgb")
    if image.hasalpha():
        image = image.flatten(background=[255, 255, 255])
    if image.bands > 3:
        image = image.extract_band(0, n=3)
    elif image.bands < 3:
        image = pyvips.Image.bandjoin([image] * 3)
    if image.format != "uchar":
        image = image.cast("uchar")
    return image


def to_rgb_array(image: Any) -> np.ndarray:
    """Convert a pyvips image into an (H, W, 3) uint8 numpy array for display."""
    image = to_srgb_uchar(image)
    mem = image.write_to_memory()
    array = np.frombuffer(mem, dtype=np.uint8).reshape(image.height, image.width, image.bands)
    array = array.copy()
    if array.shape[2] != 3:
        raise RuntimeError(f"Unsupported band count after conversion: {array.shape[2]}")
    return array
