"""
Tests for the frame renderer.
"""

import threading

import numpy as np
import pytest

from gl_image_filters.errors import AttributeNotFound, ImageLoadFailure, ShaderCompileError
from gl_image_filters.filters import ColorPalette, Grayscale, Inverse, NoFilter, grayscale_palette
from gl_image_filters.imaging import SourceImage
from gl_image_filters.renderer import FrameRenderer, FrameResources, RenderState, render_to_ndarray

BROKEN_FRAGMENT_SHADER = """
#version 330
in vec2 textureCoords;
out vec4 color;
void main() {
    color = vec4(textureCoords, 0.0 1.0);
}
"""

# Never reads texCoords, so the attribute is optimized out
POSITION_ONLY_VERTEX_SHADER = """
#version 330
in vec2 position;
out vec2 textureCoords;
void main() {
    gl_Position = vec4(position, 0.0, 1.0);
    textureCoords = position;
}
"""


@pytest.fixture
def surface(gl):
    surface = gl.create_surface(32, 32)
    try:
        yield surface
    finally:
        surface.release()


@pytest.fixture
def renderer(gl, surface):
    renderer = FrameRenderer(gl, surface)
    try:
        yield renderer
    finally:
        renderer.release()


@pytest.fixture
def board(checkerboard_rgba):
    return SourceImage.from_array(checkerboard_rgba)


class TestFrameRenderer:
    """Tests for the render state machine."""

    def test_initial_state(self, renderer):
        assert renderer.state is RenderState.IDLE
        assert renderer.last_error is None
        assert renderer.resources.empty

    def test_render(self, renderer, surface, board):
        assert renderer.render(board, Inverse())
        assert renderer.state is RenderState.RENDERED
        assert renderer.last_error is None
        assert renderer.draw_count == 1
        assert np.array_equal(surface.read()[:, :, :3], 255 - board.pixels[:, :, :3])

    def test_no_image_rejected(self, renderer, surface):
        """Without an image nothing is created, bound or drawn."""
        before = surface.read()
        assert not renderer.render(None, Grayscale())
        assert renderer.state is RenderState.FAILED
        assert isinstance(renderer.last_error, ImageLoadFailure)
        assert renderer.resources.empty
        assert renderer.draw_count == 0
        assert np.array_equal(surface.read(), before)

    def test_compile_error_keeps_previous_frame(self, gl, surface, renderer, board):
        """A broken fragment program aborts the render before anything is drawn."""
        assert renderer.render(board, NoFilter())
        before = surface.read()

        broken = FrameRenderer(gl, surface, fragment_shader=BROKEN_FRAGMENT_SHADER)
        try:
            assert not broken.render(board, Inverse())
            assert broken.state is RenderState.FAILED
            assert isinstance(broken.last_error, ShaderCompileError)
            assert broken.draw_count == 0
            assert broken.resources.program is None
            assert np.array_equal(surface.read(), before)
        finally:
            broken.release()

    def test_compile_error_on_fresh_surface_stays_black(self, gl, surface, board):
        broken = FrameRenderer(gl, surface, fragment_shader=BROKEN_FRAGMENT_SHADER)
        try:
            assert not broken.render(board)
            pixels = surface.read()
            assert np.all(pixels[:, :, :3] == 0)
            assert np.all(pixels[:, :, 3] == 255)
        finally:
            broken.release()

    def test_missing_attribute_fails_render(self, gl, surface, board):
        renderer = FrameRenderer(gl, surface, vertex_shader=POSITION_ONLY_VERTEX_SHADER)
        try:
            assert not renderer.render(board)
            assert renderer.state is RenderState.FAILED
            assert isinstance(renderer.last_error, AttributeNotFound)
            assert renderer.last_error.name == "texCoords"
            assert renderer.draw_count == 0
        finally:
            renderer.release()

    def test_resources_rebuilt_each_render(self, renderer, board):
        renderer.render(board, Grayscale())
        first_program = renderer.resources.program
        assert len(renderer.resources.buffers) == 2
        assert len(renderer.resources.textures) == 1

        renderer.render(board, ColorPalette(grayscale_palette()))
        assert renderer.resources.program is not first_program
        assert len(renderer.resources.buffers) == 2
        # Source image and palette strip
        assert len(renderer.resources.textures) == 2
        assert renderer.draw_count == 2

    def test_recovers_after_failure(self, renderer, board):
        assert not renderer.render(None)
        assert renderer.render(board)
        assert renderer.state is RenderState.RENDERED
        assert renderer.last_error is None

    def test_renders_are_serialized(self, renderer, board):
        """A render requested while another holds the lock waits for it."""
        assert renderer.render(board)

        # The queued request needs no GPU work, so it may run off the GL thread
        waiting = threading.Thread(target=renderer.render, args=(None,))
        with renderer._lock:
            waiting.start()
            waiting.join(timeout=0.2)
            assert waiting.is_alive()
            assert renderer.state is RenderState.RENDERED
        waiting.join(timeout=5)
        assert not waiting.is_alive()
        assert renderer.state is RenderState.FAILED

        assert renderer.render(board)
        assert renderer.state is RenderState.RENDERED
        assert renderer.draw_count == 2

    def test_release(self, renderer, board):
        renderer.render(board)
        renderer.release()
        assert renderer.resources.empty
        assert renderer.state is RenderState.IDLE

    def test_stretches_to_surface(self, gl, primaries_2x2):
        """A small image fills the whole surface, top row at the top."""
        surface = gl.create_surface(10, 10)
        renderer = FrameRenderer(gl, surface)
        try:
            assert renderer.render(SourceImage.from_array(primaries_2x2))
            pixels = surface.read()
            assert pixels[0, 0].tolist() == primaries_2x2[0, 0].tolist()
            assert pixels[0, 9].tolist() == primaries_2x2[0, 1].tolist()
            assert pixels[9, 0].tolist() == primaries_2x2[1, 0].tolist()
            assert pixels[9, 9].tolist() == primaries_2x2[1, 1].tolist()
        finally:
            renderer.release()
            surface.release()


class TestFrameResources:
    """Tests for the per-frame resource owner."""

    def test_release_empty(self):
        resources = FrameResources()
        resources.release()
        assert resources.empty

    def test_release_all(self, gl):
        resources = FrameResources()
        resources.buffers.append(gl.create_buffer([0.0, 1.0]))
        resources.textures.append(gl.create_texture(SourceImage.from_array(np.zeros((1, 1, 4), dtype=np.uint8))))
        assert not resources.empty
        resources.release()
        assert resources.empty


class TestRenderToNdarray:
    """Tests for the render_to_ndarray function."""

    def test_accepts_source_image(self, board):
        result = render_to_ndarray(board)
        assert np.array_equal(result, board.pixels)

    def test_surface_size(self, checkerboard_rgba):
        result = render_to_ndarray(checkerboard_rgba, surface_size=(64, 16))
        assert result.shape == (16, 64, 4)

    def test_invalid_image(self):
        with pytest.raises(ValueError, match="must have 4 channels"):
            render_to_ndarray(np.zeros((4, 4, 3)))
