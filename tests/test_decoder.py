from __future__ import annotations

import numpy as np
import pytest

from image_cropper.crop.errors import LoadError
from image_cropper.decoder import decode_source, to_rgb_array


def test_empty_bytes_are_rejected() -> None:
    with pytest.raises(LoadError):
        decode_source(b"")


def test_garbage_is_a_load_error() -> None:
    pyvips = pytest.importorskip("pyvips")
    with pytest.raises(LoadError) as exc:
        decode_source(b"\x00\x01 not an image")
    assert isinstance(exc.value.__cause__, pyvips.Error)


def test_decode_reports_natural_size(make_image_bytes) -> None:
    decoded = decode_source(make_image_bytes(320, 200, ".png"))
    assert (decoded.width, decoded.height) == (320, 200)


def test_exif_orientation_is_applied() -> None:
    pyvips = pytest.importorskip("pyvips")
    img = (pyvips.Image.black(300, 100, bands=3) + 128).cast("uchar").copy()
    # Orientation 6: stored landscape, displayed rotated 90 degrees
    img.set_type(pyvips.GValue.gint_type, "orientation", 6)
    data = bytes(img.write_to_buffer(".jpg"))

    decoded = decode_source(data)
    assert (decoded.width, decoded.height) == (100, 300)


def test_to_rgb_array_flattens_alpha() -> None:
    pyvips = pytest.importorskip("pyvips")
    rgba = pyvips.Image.black(4, 3, bands=4).cast("uchar").copy(interpretation="srgb")
    arr = to_rgb_array(rgba)

    assert arr.shape == (3, 4, 3)
    assert arr.dtype == np.uint8
    # Fully transparent pixels end up white
    assert (arr == 255).all()
