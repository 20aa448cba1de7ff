"""
Image filters as plain array functions.
Each function renders one filter on the GPU in a throwaway context and returns
the result as a numpy array the size of the input.
"""

from typing import Optional, Sequence, Union

from .filters import ColorPalette, Grayscale, Inverse, Kernel, grayscale_palette
from .imaging import NDArray, SourceImage
from .renderer import render_to_ndarray

ImageInput = Union[SourceImage, NDArray]


def grayscale(img: ImageInput) -> NDArray:
    """
    Convert an image to grayscale.

    Args:
        img: Input image (RGBA array or SourceImage)

    Returns:
        Grayscale image as uint8 RGBA array (R=G=B, opaque)
    """
    return render_to_ndarray(img, Grayscale())


def invert_colors(img: ImageInput) -> NDArray:
    """
    Invert the colors of an image.

    Args:
        img: Input image (RGBA array or SourceImage)

    Returns:
        Color-inverted image as uint8 RGBA array (opaque)
    """
    return render_to_ndarray(img, Inverse())


def convolve(img: ImageInput, weights: Sequence[float], weight: Optional[float] = None) -> NDArray:
    """
    Apply a 3x3 convolution kernel.

    Args:
        img: Input image (RGBA array or SourceImage)
        weights: Nine row-major kernel weights
        weight: Divisor for the weighted sum, see Kernel

    Returns:
        Convolved image as uint8 RGBA array (opaque)
    """
    return render_to_ndarray(img, Kernel(weights, weight))


def blur_image(img: ImageInput) -> NDArray:
    """Blur with a 3x3 Gaussian kernel."""
    return render_to_ndarray(img, Kernel.preset("gaussian_blur"))


def sharpen_image(img: ImageInput) -> NDArray:
    """Sharpen with a 3x3 cross kernel."""
    return render_to_ndarray(img, Kernel.preset("sharpen"))


def edge_detection(img: ImageInput) -> NDArray:
    """Highlight edges with a 3x3 Laplacian kernel."""
    return render_to_ndarray(img, Kernel.preset("edge_detect"))


def apply_palette(img: ImageInput, palette: Optional[ImageInput] = None) -> NDArray:
    """
    Remap an image through a palette strip indexed by the red channel.

    Args:
        img: Input image (RGBA array or SourceImage)
        palette: Palette strip; a black-to-white ramp when omitted

    Returns:
        Remapped image as uint8 RGBA array
    """
    return render_to_ndarray(img, ColorPalette(palette if palette is not None else grayscale_palette()))
