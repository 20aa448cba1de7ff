"""
Core functionality for OpenGL image filtering.
This module provides the ModernGL context wrapper, the shader program builder,
the GPU resource binder (buffers, textures, vertex attributes) and the output
surface the filtered image is drawn to.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

import moderngl
import numpy as np
from PIL import Image

from .config import CLEAR_COLOR, DEFAULT_SURFACE_SIZE
from .errors import ProgramLinkError, ShaderBuildError, ShaderCompileError
from .imaging import NDArray, SourceImage

logger = logging.getLogger(__name__)

ShaderSource = str
UniformDict = Dict[str, Any]

# Byte sizes of the moderngl attribute types accepted by AttributeBinding
ATTRIBUTE_TYPE_SIZES = {
    "f": 4,
    "f1": 1,
    "f2": 2,
    "f4": 4,
    "i": 4,
    "i1": 1,
    "i2": 2,
    "i4": 4,
    "u": 4,
    "u1": 1,
    "u2": 2,
    "u4": 4,
}


@dataclass
class ProgramBuild:
    """
    Outcome of building a shader program.

    Exactly one of ``program`` and ``error`` is set.
    """

    program: Optional[moderngl.Program] = None
    error: Optional[ShaderBuildError] = None

    @property
    def ok(self) -> bool:
        return self.program is not None


def _classify_build_error(exc: moderngl.Error) -> ShaderBuildError:
    """Map a moderngl build error onto a compile or link failure."""
    diagnostic = str(exc).strip()
    if "Linker failed" in diagnostic:
        return ProgramLinkError("Shader program failed to link", diagnostic)
    return ShaderCompileError("Shader stage failed to compile", diagnostic)


def build_program(
    ctx: moderngl.Context, vertex_shader: ShaderSource, fragment_shader: ShaderSource
) -> ProgramBuild:
    """
    Compile a vertex and a fragment stage and link them into a program.

    Failures are logged with the driver's diagnostic and returned rather than
    raised; the caller must check ``ok`` before using the program.

    Args:
        ctx: ModernGL context to build the program in
        vertex_shader: Vertex stage source code
        fragment_shader: Fragment stage source code

    Returns:
        A ProgramBuild holding either the linked program or the error
    """
    for stage, source in (("vertex_shader", vertex_shader), ("fragment_shader", fragment_shader)):
        if not source or not source.strip():
            error = ShaderCompileError(f"Empty {stage} source", f"{stage}: no source text")
            logger.error("%s", error)
            return ProgramBuild(error=error)

    try:
        program = ctx.program(vertex_shader=vertex_shader, fragment_shader=fragment_shader)
    except moderngl.Error as exc:
        error = _classify_build_error(exc)
        logger.error("%s:\n%s", error, error.diagnostic)
        return ProgramBuild(error=error)

    return ProgramBuild(program=program)


@dataclass
class AttributeBinding:
    """
    Read layout of one vertex attribute.

    Args:
        name: Attribute name in the vertex shader
        buffer: Buffer holding the attribute data
        components: Number of components per vertex
        dtype: moderngl attribute type ("f", "f4", "i", "u1", ...)
        normalize: Map unsigned bytes to [0, 1] floats; only valid for "u1"
        stride: Bytes between consecutive vertices, 0 for tightly packed
        offset: Bytes before the first component
    """

    name: str
    buffer: moderngl.Buffer
    components: int = 2
    dtype: str = "f"
    normalize: bool = False
    stride: int = 0
    offset: int = 0

    def format(self) -> str:
        """
        The moderngl buffer format string for this layout.

        Offset and stride are expressed as padding bytes around the attribute.
        """
        if self.dtype not in ATTRIBUTE_TYPE_SIZES:
            raise ValueError(f"Unsupported attribute type {self.dtype!r}")
        if self.components < 1 or self.components > 4:
            raise ValueError(f"Attribute must have 1 to 4 components, got {self.components}")

        dtype = self.dtype
        if self.normalize:
            if dtype != "u1":
                raise ValueError(f"Normalization is only supported for 'u1' attributes, got {dtype!r}")
            dtype = "f1"

        size = self.components * ATTRIBUTE_TYPE_SIZES[self.dtype]
        parts = []
        if self.offset:
            parts.append(f"{self.offset}x")
        parts.append(f"{self.components}{dtype}")
        if self.stride:
            padding = self.stride - self.offset - size
            if padding < 0:
                raise ValueError(f"Stride {self.stride} is smaller than offset plus attribute size")
            if padding:
                parts.append(f"{padding}x")
        return " ".join(parts)

    def content(self) -> Tuple[moderngl.Buffer, str, str]:
        """Vertex array content entry for ``ctx.vertex_array``."""
        return (self.buffer, self.format(), self.name)


class Surface:
    """
    Output surface the filtered image is drawn onto.

    The surface keeps its pixels between draws, so the last rendered frame
    remains readable until the next successful draw.
    """

    def __init__(self, ctx: moderngl.Context, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Surface size must be positive, got {width}x{height}")
        self.ctx = ctx
        self.width = width
        self.height = height
        self.texture = ctx.texture((width, height), 4, dtype="f1")
        self.fbo = ctx.framebuffer(color_attachments=[self.texture])
        self.clear()

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def use(self) -> None:
        """Make the surface the current draw target with a matching viewport."""
        self.fbo.use()
        self.ctx.viewport = (0, 0, self.width, self.height)

    def clear(self, color: Tuple[float, float, float, float] = CLEAR_COLOR) -> None:
        self.fbo.clear(*color)

    def read(self) -> NDArray:
        """
        Read the surface pixels.

        Returns:
            HxWx4 uint8 array with row 0 at the top of the surface
        """
        data = self.fbo.read(components=4, dtype="f1")
        # OpenGL rows run bottom to top
        pixels = np.frombuffer(data, dtype=np.uint8).reshape(self.height, self.width, 4)
        return np.flipud(pixels).copy()

    def to_image(self):
        """The surface contents as a Pillow RGBA image."""
        return Image.fromarray(self.read())

    def release(self) -> None:
        self.fbo.release()
        self.texture.release()


class GLContext:
    """
    ModernGL context manager for image filtering.
    Handles creation of the OpenGL context and the GPU resources a render needs.
    """

    def __init__(self, standalone: bool = True, ctx: Optional[moderngl.Context] = None):
        """
        Initialize a new OpenGL context for image filtering.

        Args:
            standalone: If True, creates a standalone context. If False, attempts to
                      use the current context (useful within GUI applications).
            ctx: An existing ModernGL context to wrap instead of creating one
        """
        self._owns_context = ctx is None
        if ctx is None:
            ctx = moderngl.create_standalone_context() if standalone else moderngl.create_context()
        self.ctx = ctx

    def __enter__(self) -> "GLContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def release(self) -> None:
        """Release the context if this wrapper created it."""
        if self._owns_context and self.ctx is not None:
            self.ctx.release()
        self.ctx = None

    def build_program(self, vertex_shader: ShaderSource, fragment_shader: ShaderSource) -> ProgramBuild:
        """Build a shader program in this context, see build_program."""
        return build_program(self.ctx, vertex_shader, fragment_shader)

    def create_buffer(self, data: Union[NDArray, list], dynamic: bool = False) -> moderngl.Buffer:
        """
        Upload vertex data into a new GPU buffer.

        Args:
            data: Values to upload, stored as float32
            dynamic: Usage hint, True for data that is rewritten often

        Returns:
            A buffer whose contents equal ``data``
        """
        array = np.ascontiguousarray(data, dtype=np.float32)
        return self.ctx.buffer(array.tobytes(), dynamic=dynamic)

    def create_texture(self, image: SourceImage) -> moderngl.Texture:
        """
        Create a 2D RGBA texture from a source image.

        Sampling uses nearest-neighbour filtering without mipmaps and clamps at
        the edges, so every texel keeps its exact value and neighbour reads past
        the border repeat the edge pixel.

        Args:
            image: The decoded image

        Returns:
            An RGBA8 texture, texel row 0 being image row 0
        """
        data = np.ascontiguousarray(image.pixels).tobytes()
        texture = self.ctx.texture((image.width, image.height), 4, data, dtype="f1")
        texture.filter = (moderngl.NEAREST, moderngl.NEAREST)
        texture.repeat_x = False
        texture.repeat_y = False
        return texture

    def create_surface(self, width: int = DEFAULT_SURFACE_SIZE[0], height: int = DEFAULT_SURFACE_SIZE[1]) -> Surface:
        """Create an output surface of the given size, cleared to opaque black."""
        return Surface(self.ctx, width, height)

    @staticmethod
    def bind_attribute(program: moderngl.Program, binding: AttributeBinding) -> int:
        """
        Resolve a vertex attribute of the program for the given binding.

        Args:
            program: Linked shader program
            binding: Buffer and read layout of the attribute

        Returns:
            The attribute location, or -1 when the program has no such attribute
        """
        member = program.get(binding.name, None)
        if not isinstance(member, moderngl.Attribute):
            logger.warning("Attribute '%s' not found in program, nothing bound", binding.name)
            return -1
        # Validates the layout before it reaches the vertex array
        binding.format()
        return member.location

    @staticmethod
    def set_uniforms(program: moderngl.Program, uniforms: UniformDict) -> None:
        """
        Set uniform values on the program.

        Uniforms the compiler optimized away are skipped. Numpy arrays are
        written as raw float32 data, which covers uniform arrays.
        """
        for name, value in uniforms.items():
            if name not in program:
                logger.debug("Uniform '%s' not active in program, skipped", name)
                continue
            if isinstance(value, np.ndarray):
                program[name].write(np.ascontiguousarray(value, dtype=np.float32).tobytes())
            else:
                program[name] = value
