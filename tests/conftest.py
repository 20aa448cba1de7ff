"""
Test fixtures for gl_image_filters tests.
"""

import os
import sys

import numpy as np
import pytest

# Add the parent directory to the system path to import the module
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from gl_image_filters.core import GLContext  # noqa: E402


@pytest.fixture
def rgba_image():
    """Create an RGBA test image with color gradients and transparency."""
    # Create a 64x48 RGBA image with red, green, blue gradients and alpha channel
    h, w = 48, 64
    x = np.linspace(0, 1, w)
    y = np.linspace(0, 1, h)
    xx, yy = np.meshgrid(x, y)

    # Red channel: horizontal gradient
    red = xx
    # Green channel: vertical gradient
    green = yy
    # Blue channel: radial gradient from center
    blue = np.clip(1 - np.sqrt((xx - 0.5) ** 2 + (yy - 0.5) ** 2) * 1.4, 0, 1)
    # Alpha channel: fading from 1 on the left to 0.5 on the right
    alpha = 1 - 0.5 * xx

    rgba = np.zeros((h, w, 4))
    rgba[:, :, 0] = red
    rgba[:, :, 1] = green
    rgba[:, :, 2] = blue
    rgba[:, :, 3] = alpha

    return rgba


@pytest.fixture
def checkerboard_rgba():
    """Create a checkerboard pattern test image in RGBA format."""
    h, w = 32, 32
    checkerboard = np.full((h, w, 4), 255, dtype=np.uint8)

    # 4x4 checkerboard of 8 pixel squares
    check_size = 8
    for i in range(h):
        for j in range(w):
            if ((i // check_size) + (j // check_size)) % 2:
                checkerboard[i, j, :3] = 0

    return checkerboard


@pytest.fixture
def primaries_2x2():
    """Red, green / blue, white, half transparent so alpha changes are visible."""
    return np.array(
        [
            [[255, 0, 0, 128], [0, 255, 0, 128]],
            [[0, 0, 255, 128], [255, 255, 255, 128]],
        ],
        dtype=np.uint8,
    )


@pytest.fixture
def gray_image():
    """A grayscale image covering every 8-bit level once (16x16)."""
    levels = np.arange(256, dtype=np.uint8).reshape(16, 16)
    gray = np.empty((16, 16, 4), dtype=np.uint8)
    gray[:, :, 0] = levels
    gray[:, :, 1] = levels
    gray[:, :, 2] = levels
    gray[:, :, 3] = 255
    return gray


@pytest.fixture
def gl():
    """Create a standalone GLContext for testing."""
    ctx = GLContext()
    try:
        yield ctx
    finally:
        ctx.release()


def assert_pixels_close(result, expected, atol=1):
    """Compare uint8 pixel arrays, allowing one 8-bit rounding step."""
    assert result.shape == expected.shape
    diff = np.abs(result.astype(np.int16) - np.asarray(expected).astype(np.int16))
    assert diff.max() <= atol, f"max difference {diff.max()} exceeds {atol}"


@pytest.fixture
def pixels_close():
    return assert_pixels_close
