"""
Configuration & Constants
=========================
Central registry for the pipeline's fixed names and default settings.

Exports:
    DEFAULT_SURFACE_SIZE: Size of the visible output surface (width, height).
    CLEAR_COLOR: Colour the surface is cleared to before each draw.
    RenderConfig: Runtime settings, optionally read from the environment.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

DEFAULT_SURFACE_SIZE: Tuple[int, int] = (500, 500)
CLEAR_COLOR: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)

# Shader interface names
POSITION_ATTRIBUTE = "position"
TEXCOORD_ATTRIBUTE = "texCoords"
IMAGE_SAMPLER = "uImage"
PALETTE_SAMPLER = "uColorPalette"

# Texture units
IMAGE_TEXTURE_UNIT = 0
PALETTE_TEXTURE_UNIT = 1

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

ENV_SURFACE_SIZE = "GL_IMAGE_FILTERS_SURFACE_SIZE"
ENV_LOG_LEVEL = "GL_IMAGE_FILTERS_LOG_LEVEL"


def parse_size(text: str) -> Tuple[int, int]:
    """
    Parse a ``WIDTHxHEIGHT`` string such as ``"640x480"``.

    Raises:
        ValueError: If the text is malformed or a dimension is not positive
    """
    parts = text.lower().split("x")
    if len(parts) != 2:
        raise ValueError(f"Size must look like WIDTHxHEIGHT, got {text!r}")
    width, height = int(parts[0]), int(parts[1])
    if width <= 0 or height <= 0:
        raise ValueError(f"Size must be positive, got {width}x{height}")
    return width, height


@dataclass(frozen=True)
class RenderConfig:
    """Settings for a filter session."""

    surface_size: Tuple[int, int] = DEFAULT_SURFACE_SIZE
    clear_color: Tuple[float, float, float, float] = CLEAR_COLOR
    standalone: bool = True
    log_level: int = logging.INFO

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RenderConfig":
        """Build a config, overriding defaults with ``GL_IMAGE_FILTERS_*`` variables."""
        environ = os.environ if environ is None else environ

        surface_size = DEFAULT_SURFACE_SIZE
        if environ.get(ENV_SURFACE_SIZE):
            surface_size = parse_size(environ[ENV_SURFACE_SIZE])

        log_level = logging.INFO
        if environ.get(ENV_LOG_LEVEL):
            name = environ[ENV_LOG_LEVEL].upper()
            level = logging.getLevelName(name)
            if not isinstance(level, int):
                raise ValueError(f"Unknown log level {name!r}")
            log_level = level

        return cls(surface_size=surface_size, log_level=log_level)
