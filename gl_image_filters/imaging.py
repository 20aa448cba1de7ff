"""
Source images and the Pillow-backed decoding collaborator.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import ImageLoadFailure

logger = logging.getLogger(__name__)

NDArray = np.ndarray
PathLike = Union[str, Path]


def validate_rgba(img: NDArray) -> None:
    """
    Validates that an image is in RGBA format (4 channels).

    Args:
        img: Input image as numpy ndarray, must be 3D with 4 channels

    Raises:
        ValueError: If the image is not in RGBA format
    """
    if img.ndim != 3:
        raise ValueError(f"Image must be 3D array with 4 channels, got {img.ndim}D array")
    if img.shape[2] != 4:
        raise ValueError(f"Image must have 4 channels (RGBA), got {img.shape[2]} channels")


def to_uint8(img: NDArray) -> NDArray:
    """
    Convert pixel data to 8-bit unsigned integers.

    Integer arrays are taken as 0-255 values; floating point arrays as
    normalized [0, 1] values and rounded to the nearest 8-bit step.
    """
    if img.dtype == np.uint8:
        return img
    if np.issubdtype(img.dtype, np.floating):
        return np.clip(np.rint(img * 255.0), 0, 255).astype(np.uint8)
    return np.clip(img, 0, 255).astype(np.uint8)


@dataclass(frozen=True, eq=False)
class SourceImage:
    """
    A decoded RGBA image, read-only once constructed.

    ``pixels`` is a HxWx4 uint8 array with row 0 at the top of the picture.
    """

    pixels: NDArray

    def __post_init__(self):
        validate_rgba(self.pixels)
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Pixel data must be uint8, got {self.pixels.dtype}")
        if self.pixels.shape[0] == 0 or self.pixels.shape[1] == 0:
            raise ValueError("Image must have at least one pixel")
        self.pixels.setflags(write=False)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self):
        """(width, height) of the image."""
        return self.width, self.height

    def normalized(self) -> NDArray:
        """Pixel data as float32 values in [0, 1]."""
        return self.pixels.astype(np.float32) / 255.0

    @classmethod
    def from_array(cls, img: NDArray) -> "SourceImage":
        """
        Build a source image from a HxWx4 array.

        Args:
            img: uint8 array, or floating point array with values in [0, 1]

        Raises:
            ValueError: If the array is not RGBA
        """
        img = np.asarray(img)
        validate_rgba(img)
        return cls(np.ascontiguousarray(to_uint8(img)).copy())

    @classmethod
    def from_pil(cls, image: Image.Image) -> "SourceImage":
        """Build a source image from a Pillow image of any mode."""
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(np.array(image, dtype=np.uint8))


def load_image(path: PathLike) -> SourceImage:
    """
    Decode an image file into a SourceImage.

    Args:
        path: Path of the image file

    Returns:
        The decoded image in RGBA format

    Raises:
        ImageLoadFailure: If the file can't be read or decoded
    """
    try:
        with Image.open(path) as image:
            image.load()
            source = SourceImage.from_pil(image)
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        raise ImageLoadFailure(f"Could not load image {path}: {exc}") from exc

    logger.info("Loaded %s (%dx%d)", path, source.width, source.height)
    return source


def save_image(img: NDArray, path: PathLike) -> None:
    """
    Write a HxWx4 array to an image file; the format follows the file suffix.

    Args:
        img: uint8 or normalized float RGBA array
        path: Destination path
    """
    validate_rgba(img)
    Image.fromarray(np.ascontiguousarray(to_uint8(img))).save(path)
    logger.info("Saved %s", path)
