"""
Pixel filters.
This module holds the GLSL program that transforms each pixel and the host-side
filter types that select and parameterize it.
"""

import enum
import math
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union

import numpy as np

from .imaging import NDArray, SourceImage

UniformDict = Dict[str, object]
Color = Union[str, Sequence[float]]

VERTEX_SHADER = """
#version 330
in vec2 position;
in vec2 texCoords;
out vec2 textureCoords;
void main() {
    // Image rows are uploaded top-down; flip so row 0 lands at the top
    gl_Position = vec4(position.x, position.y * -1.0, 0.0, 1.0);
    textureCoords = texCoords;
}
"""

FRAGMENT_SHADER = """
#version 330
in vec2 textureCoords;
uniform sampler2D uImage, uColorPalette;
uniform float activeIndex, uKernel[9], kernelWeight;
uniform bool isGrayscale, isInverse, isKernel, isColorPalette;
uniform vec2 pixelJumpFactor;
out vec4 color;

vec4 applyKernel() {
    vec2 onePixel = 1.0 / vec2(textureSize(uImage, 0));
    vec4 sum = vec4(0.0);
    // Row-major from (-1, -1) to (1, 1)
    for (int i = 0; i < 9; i++) {
        vec2 offset = vec2(float(i % 3 - 1), float(i / 3 - 1));
        sum += texture(uImage, textureCoords + offset * onePixel) * uKernel[i];
    }
    return vec4((sum / kernelWeight).rgb, 1.0);
}

void main() {
    vec4 texel = texture(uImage, textureCoords);
    if (isGrayscale) {
        float luminance = texel.r * 0.59 + texel.g * 0.30 + texel.b * 0.11;
        texel = vec4(vec3(luminance), 1.0);
    } else if (isInverse) {
        texel = vec4(1.0 - texel.rgb, 1.0);
    } else if (isKernel) {
        texel = applyKernel();
    } else if (isColorPalette) {
        texel = texture(uColorPalette, vec2(texel.r, 0.0));
    }
    color = texel;
}
"""

GRAYSCALE_WEIGHTS = (0.59, 0.30, 0.11)

KERNEL_PRESETS: Dict[str, Tuple[float, ...]] = {
    "identity": (0, 0, 0, 0, 1, 0, 0, 0, 0),
    "box_blur": (1, 1, 1, 1, 1, 1, 1, 1, 1),
    "gaussian_blur": (1, 2, 1, 2, 4, 2, 1, 2, 1),
    "sharpen": (0, -1, 0, -1, 5, -1, 0, -1, 0),
    "unsharpen": (-1, -1, -1, -1, 9, -1, -1, -1, -1),
    "edge_detect": (-1, -1, -1, -1, 8, -1, -1, -1, -1),
    "emboss": (-2, -1, 0, -1, 1, 1, 0, 1, 2),
}


class FilterMode(enum.Enum):
    NONE = "none"
    GRAYSCALE = "grayscale"
    INVERSE = "inverse"
    KERNEL = "kernel"
    COLOR_PALETTE = "palette"


# Mode flag uniforms, in the order the fragment program tests them
MODE_FLAGS = {
    FilterMode.GRAYSCALE: "isGrayscale",
    FilterMode.INVERSE: "isInverse",
    FilterMode.KERNEL: "isKernel",
    FilterMode.COLOR_PALETTE: "isColorPalette",
}


class ImageFilter:
    """
    Base for the filter variants. Each variant selects exactly one mode and
    carries only the parameters that mode uses.
    """

    mode = FilterMode.NONE

    def uniforms(self) -> UniformDict:
        """Uniform values for this filter; every mode flag is set, at most one true."""
        return {flag: self.mode is mode for mode, flag in MODE_FLAGS.items()}

    @property
    def palette_image(self) -> Optional[SourceImage]:
        """Palette strip to bind, if the filter samples one."""
        return None


@dataclass(frozen=True)
class NoFilter(ImageFilter):
    """Pass the source pixels through unchanged."""

    mode = FilterMode.NONE


@dataclass(frozen=True)
class Grayscale(ImageFilter):
    """Replace colour with luminance, weighted R 0.59, G 0.30, B 0.11."""

    mode = FilterMode.GRAYSCALE


@dataclass(frozen=True)
class Inverse(ImageFilter):
    """Invert the RGB channels."""

    mode = FilterMode.INVERSE


@dataclass(frozen=True)
class Kernel(ImageFilter):
    """
    3x3 convolution.

    Args:
        weights: Nine weights in row-major order, or a 3x3 nested sequence
        weight: Divisor applied to the weighted sum. Defaults to the sum of the
            weights, or 1.0 when that sum is not positive.
    """

    weights: Tuple[float, ...]
    weight: Optional[float] = None

    mode = FilterMode.KERNEL

    def __post_init__(self):
        weights = tuple(float(w) for w in np.asarray(self.weights, dtype=np.float64).ravel())
        if len(weights) != 9:
            raise ValueError(f"Kernel needs 9 weights, got {len(weights)}")
        if not all(math.isfinite(w) for w in weights):
            raise ValueError("Kernel weights must be finite")

        weight = self.weight
        if weight is None:
            total = sum(weights)
            weight = total if total > 0 else 1.0
        weight = float(weight)
        if weight == 0.0 or not math.isfinite(weight):
            raise ValueError(f"Kernel weight must be a finite non-zero number, got {weight}")

        object.__setattr__(self, "weights", weights)
        object.__setattr__(self, "weight", weight)

    @classmethod
    def preset(cls, name: str) -> "Kernel":
        """
        Build one of the named kernels in KERNEL_PRESETS.

        Raises:
            KeyError: If the name is unknown
        """
        key = name.strip().lower().replace("-", "_")
        if key not in KERNEL_PRESETS:
            raise KeyError(f"Unknown kernel '{name}'. Available: {', '.join(sorted(KERNEL_PRESETS))}")
        return cls(KERNEL_PRESETS[key])

    def uniforms(self) -> UniformDict:
        uniforms = super().uniforms()
        uniforms["uKernel"] = np.array(self.weights, dtype=np.float32)
        uniforms["kernelWeight"] = self.weight
        return uniforms


@dataclass(frozen=True, eq=False)
class ColorPalette(ImageFilter):
    """
    Remap pixels through a palette strip, using the red channel as the index.

    Args:
        palette: Palette image or RGBA array; only its first row is sampled
    """

    palette: SourceImage

    mode = FilterMode.COLOR_PALETTE

    def __post_init__(self):
        if not isinstance(self.palette, SourceImage):
            object.__setattr__(self, "palette", SourceImage.from_array(self.palette))

    @property
    def palette_image(self) -> SourceImage:
        return self.palette


def parse_color(color: Color) -> Tuple[float, float, float, float]:
    """
    Parse a colour into normalized RGBA.

    Accepts "#rgb", "#rrggbb", "#rrggbbaa" strings and sequences of 3 or 4
    floats in [0, 1].
    """
    if isinstance(color, str):
        text = color.strip().lstrip("#")
        if len(text) == 3:
            text = "".join(c * 2 for c in text)
        if len(text) == 6:
            text += "ff"
        if len(text) != 8:
            raise ValueError(f"Invalid colour {color!r}")
        try:
            channels = [int(text[i : i + 2], 16) / 255.0 for i in range(0, 8, 2)]
        except ValueError as exc:
            raise ValueError(f"Invalid colour {color!r}") from exc
        return tuple(channels)

    channels = [float(c) for c in color]
    if len(channels) == 3:
        channels.append(1.0)
    if len(channels) != 4:
        raise ValueError(f"Colour needs 3 or 4 channels, got {len(channels)}")
    return tuple(channels)


def gradient_palette(colors: Iterable[Color], width: int = 256) -> SourceImage:
    """
    Build a 1-pixel-high palette strip interpolating evenly between colours.

    Args:
        colors: At least two colour stops, first at index 0, last at width - 1
        width: Number of palette entries

    Returns:
        A 1 x width RGBA palette image
    """
    stops = np.array([parse_color(c) for c in colors], dtype=np.float64)
    if len(stops) < 2:
        raise ValueError("A gradient needs at least two colours")
    if width < 2:
        raise ValueError(f"Palette width must be at least 2, got {width}")

    positions = np.linspace(0.0, 1.0, len(stops))
    samples = np.linspace(0.0, 1.0, width)
    strip = np.stack([np.interp(samples, positions, stops[:, ch]) for ch in range(4)], axis=-1)
    return SourceImage.from_array(strip[np.newaxis, :, :])


def grayscale_palette(width: int = 256) -> SourceImage:
    """A black-to-white ramp, entry i being i / (width - 1)."""
    return gradient_palette(["#000000", "#ffffff"], width)


def make_filter(
    name: Union[str, FilterMode],
    kernel: Optional[Union[str, Sequence[float]]] = None,
    kernel_weight: Optional[float] = None,
    palette: Optional[Union[SourceImage, NDArray]] = None,
) -> ImageFilter:
    """
    Build a filter from a mode name and its parameters.

    Args:
        name: Mode name ("none", "grayscale", "inverse", "kernel", "palette")
        kernel: Preset name or nine weights, for "kernel" (defaults to identity)
        kernel_weight: Optional divisor for "kernel"
        palette: Palette strip for "palette" (defaults to a grayscale ramp)

    Raises:
        ValueError: If the mode is unknown
    """
    mode = name if isinstance(name, FilterMode) else FilterMode(name.strip().lower())

    if mode is FilterMode.GRAYSCALE:
        return Grayscale()
    if mode is FilterMode.INVERSE:
        return Inverse()
    if mode is FilterMode.KERNEL:
        if kernel is None:
            kernel = "identity"
        if isinstance(kernel, str):
            return Kernel(Kernel.preset(kernel).weights, kernel_weight)
        return Kernel(kernel, kernel_weight)
    if mode is FilterMode.COLOR_PALETTE:
        return ColorPalette(palette if palette is not None else grayscale_palette())
    return NoFilter()
