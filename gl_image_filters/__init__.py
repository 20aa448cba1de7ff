"""
GL Image Filters

GPU pixel filters (grayscale, inversion, 3x3 convolution, palette remap)
drawn through a full-screen quad using ModernGL.
"""

from .config import RenderConfig
from .core import AttributeBinding, GLContext, ProgramBuild, Surface, build_program
from .effects import (
    apply_palette,
    blur_image,
    convolve,
    edge_detection,
    grayscale,
    invert_colors,
    sharpen_image,
)
from .errors import (
    AttributeNotFound,
    FilterPipelineError,
    ImageLoadFailure,
    ProgramLinkError,
    ShaderBuildError,
    ShaderCompileError,
)
from .filters import (
    FRAGMENT_SHADER,
    KERNEL_PRESETS,
    VERTEX_SHADER,
    ColorPalette,
    FilterMode,
    Grayscale,
    ImageFilter,
    Inverse,
    Kernel,
    NoFilter,
    gradient_palette,
    grayscale_palette,
    make_filter,
)
from .geometry import QUAD_VERTICES, texture_coordinates, vertex_count
from .imaging import SourceImage, load_image, save_image, validate_rgba
from .logging_config import setup_logging
from .renderer import FrameRenderer, FrameResources, RenderState, render_to_ndarray
from .session import FilterSession

__all__ = [
    # Core functionality
    "GLContext",
    "Surface",
    "ProgramBuild",
    "AttributeBinding",
    "build_program",
    "FrameRenderer",
    "FrameResources",
    "RenderState",
    "render_to_ndarray",
    "FilterSession",
    "RenderConfig",
    "setup_logging",
    # Geometry
    "QUAD_VERTICES",
    "texture_coordinates",
    "vertex_count",
    # Filters
    "VERTEX_SHADER",
    "FRAGMENT_SHADER",
    "KERNEL_PRESETS",
    "FilterMode",
    "ImageFilter",
    "NoFilter",
    "Grayscale",
    "Inverse",
    "Kernel",
    "ColorPalette",
    "gradient_palette",
    "grayscale_palette",
    "make_filter",
    # Effects (ndarray-based)
    "grayscale",
    "invert_colors",
    "convolve",
    "blur_image",
    "sharpen_image",
    "edge_detection",
    "apply_palette",
    # Images
    "SourceImage",
    "load_image",
    "save_image",
    "validate_rgba",
    # Errors
    "FilterPipelineError",
    "ShaderBuildError",
    "ShaderCompileError",
    "ProgramLinkError",
    "AttributeNotFound",
    "ImageLoadFailure",
]
