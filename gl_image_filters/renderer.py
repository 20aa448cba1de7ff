"""
Frame rendering.
Sequences a single filtered draw: build the program, upload the quad and the
image, bind attributes and uniforms, then draw the quad onto the output surface.
"""

import contextlib
import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

import moderngl

from .config import (
    CLEAR_COLOR,
    IMAGE_SAMPLER,
    IMAGE_TEXTURE_UNIT,
    PALETTE_SAMPLER,
    PALETTE_TEXTURE_UNIT,
    POSITION_ATTRIBUTE,
    TEXCOORD_ATTRIBUTE,
)
from .core import AttributeBinding, GLContext, ShaderSource, Surface
from .errors import AttributeNotFound, FilterPipelineError, ImageLoadFailure
from .filters import FRAGMENT_SHADER, VERTEX_SHADER, ImageFilter, NoFilter
from .geometry import COMPONENTS_PER_VERTEX, QUAD_VERTICES, texture_coordinates, vertex_count
from .imaging import NDArray, SourceImage

logger = logging.getLogger(__name__)


class RenderState(enum.Enum):
    IDLE = "idle"
    COMPILING = "compiling"
    BOUND = "bound"
    RENDERED = "rendered"
    FAILED = "failed"


@dataclass
class FrameResources:
    """
    Owner of every GPU object created for the current frame.

    Everything is released together before the next frame acquires its own.
    """

    program: Optional[moderngl.Program] = None
    buffers: List[moderngl.Buffer] = field(default_factory=list)
    textures: List[moderngl.Texture] = field(default_factory=list)
    vao: Optional[moderngl.VertexArray] = None

    def release(self) -> None:
        """Release all objects in reverse order of dependency."""
        if self.vao is not None:
            self.vao.release()

        for texture in self.textures:
            texture.release()

        for buffer in self.buffers:
            buffer.release()

        if self.program is not None:
            self.program.release()

        self.vao = None
        self.textures = []
        self.buffers = []
        self.program = None

    @property
    def empty(self) -> bool:
        return self.program is None and not self.buffers and not self.textures


class FrameRenderer:
    """
    Draws a source image through a filter onto a surface.

    Every render rebuilds the program, buffers and textures. Renders are
    serialized: a request made while another is running waits for it.
    """

    REQUIRED_ATTRIBUTES = (POSITION_ATTRIBUTE, TEXCOORD_ATTRIBUTE)

    def __init__(
        self,
        gl: GLContext,
        surface: Surface,
        vertex_shader: ShaderSource = VERTEX_SHADER,
        fragment_shader: ShaderSource = FRAGMENT_SHADER,
        clear_color: Tuple[float, float, float, float] = CLEAR_COLOR,
    ):
        self.gl = gl
        self.surface = surface
        self.vertex_shader = vertex_shader
        self.fragment_shader = fragment_shader
        self.clear_color = clear_color

        self.state = RenderState.IDLE
        self.last_error: Optional[Exception] = None
        self.draw_count = 0

        self._resources = FrameResources()
        self._lock = threading.Lock()

    @property
    def resources(self) -> FrameResources:
        return self._resources

    def render(self, image: Optional[SourceImage], image_filter: Optional[ImageFilter] = None) -> bool:
        """
        Render the image through the filter onto the surface.

        Failures are logged and recorded in ``last_error``; the surface keeps
        its previous contents when nothing was drawn.

        Args:
            image: Decoded source image; None is rejected without touching the GPU
            image_filter: Filter to apply, NoFilter when omitted

        Returns:
            True if the frame was drawn
        """
        with self._lock:
            if image is None:
                self._fail(ImageLoadFailure("No image loaded, nothing to render"))
                return False

            try:
                self._render(image, image_filter if image_filter is not None else NoFilter())
            except (FilterPipelineError, moderngl.Error) as exc:
                self._fail(exc)
                return False

            self.state = RenderState.RENDERED
            self.last_error = None
            return True

    def release(self) -> None:
        """Release the GPU objects of the last frame."""
        with self._lock:
            self._resources.release()
            self.state = RenderState.IDLE

    def _fail(self, error: Exception) -> None:
        self.state = RenderState.FAILED
        self.last_error = error
        logger.error("Render failed: %s", error)

    def _render(self, image: SourceImage, image_filter: ImageFilter) -> None:
        gl = self.gl
        resources = self._resources

        # Previous frame's objects go before new ones are created
        resources.release()
        self.state = RenderState.COMPILING
        build = gl.build_program(self.vertex_shader, self.fragment_shader)
        if not build.ok:
            raise build.error
        program = build.program
        resources.program = program

        quad_buffer = gl.create_buffer(QUAD_VERTICES)
        resources.buffers.append(quad_buffer)
        texcoord_buffer = gl.create_buffer(texture_coordinates())
        resources.buffers.append(texcoord_buffer)

        image_texture = gl.create_texture(image)
        resources.textures.append(image_texture)

        palette_texture = None
        if image_filter.palette_image is not None:
            palette_texture = gl.create_texture(image_filter.palette_image)
            resources.textures.append(palette_texture)

        content = []
        for name, buffer in zip(self.REQUIRED_ATTRIBUTES, (quad_buffer, texcoord_buffer)):
            binding = AttributeBinding(name, buffer, components=COMPONENTS_PER_VERTEX)
            if gl.bind_attribute(program, binding) == -1:
                raise AttributeNotFound(binding.name)
            content.append(binding.content())
        resources.vao = gl.ctx.vertex_array(program, content)
        self.state = RenderState.BOUND

        image_texture.use(location=IMAGE_TEXTURE_UNIT)
        if palette_texture is not None:
            palette_texture.use(location=PALETTE_TEXTURE_UNIT)

        uniforms = {
            IMAGE_SAMPLER: IMAGE_TEXTURE_UNIT,
            PALETTE_SAMPLER: PALETTE_TEXTURE_UNIT,
            "activeIndex": 0.0,
            "pixelJumpFactor": (1.0 / image.width, 1.0 / image.height),
        }
        uniforms.update(image_filter.uniforms())
        gl.set_uniforms(program, uniforms)

        self.surface.use()
        self.surface.clear(self.clear_color)
        resources.vao.render(moderngl.TRIANGLES, vertices=vertex_count())
        self.draw_count += 1

        logger.debug(
            "Rendered %dx%d image with %s onto %dx%d surface",
            image.width,
            image.height,
            image_filter.mode.value,
            self.surface.width,
            self.surface.height,
        )


def render_to_ndarray(
    img: Union[SourceImage, NDArray],
    image_filter: Optional[ImageFilter] = None,
    surface_size: Optional[Tuple[int, int]] = None,
) -> NDArray:
    """
    Convenience function to filter an image on the GPU and return the result.

    Args:
        img: Source image, or an RGBA array (uint8 or floats in [0, 1])
        image_filter: Filter to apply, NoFilter when omitted
        surface_size: Output (width, height); the image size when omitted

    Returns:
        Filtered image as a HxWx4 uint8 array

    Raises:
        FilterPipelineError: If the render failed
    """
    image = img if isinstance(img, SourceImage) else SourceImage.from_array(img)
    width, height = surface_size or image.size

    with contextlib.ExitStack() as stack:
        gl = GLContext()
        stack.callback(gl.release)

        surface = gl.create_surface(width, height)
        stack.callback(surface.release)

        renderer = FrameRenderer(gl, surface)
        stack.callback(renderer.release)

        if not renderer.render(image, image_filter):
            raise renderer.last_error
        return surface.read()
