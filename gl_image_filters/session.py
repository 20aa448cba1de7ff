"""
Filter session: the current image, the output surface and the renderer that
draws one onto the other.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from PIL import Image

from .config import RenderConfig
from .core import GLContext
from .filters import ImageFilter, NoFilter
from .imaging import NDArray, SourceImage, load_image
from .renderer import FrameRenderer, RenderState

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, SourceImage, NDArray, Image.Image]


class FilterSession:
    """
    Holds the loaded image for one user session and renders it on request.

    Loading a new image replaces the previous one; the next render uploads it
    as a fresh texture.
    """

    def __init__(self, config: Optional[RenderConfig] = None, gl: Optional[GLContext] = None):
        self.config = config or RenderConfig()
        self._owns_gl = gl is None
        self.gl = gl if gl is not None else GLContext(standalone=self.config.standalone)
        self.surface = self.gl.create_surface(*self.config.surface_size)
        self.renderer = FrameRenderer(self.gl, self.surface, clear_color=self.config.clear_color)
        self.image: Optional[SourceImage] = None
        self.image_filter: ImageFilter = NoFilter()

    def __enter__(self) -> "FilterSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def state(self) -> RenderState:
        return self.renderer.state

    @property
    def last_error(self) -> Optional[Exception]:
        return self.renderer.last_error

    def load(self, source: ImageSource) -> SourceImage:
        """
        Make ``source`` the current image.

        Args:
            source: Image file path, Pillow image, RGBA array or SourceImage

        Raises:
            ImageLoadFailure: If a file can't be decoded
        """
        if isinstance(source, SourceImage):
            image = source
        elif isinstance(source, (str, Path)):
            image = load_image(source)
        elif isinstance(source, Image.Image):
            image = SourceImage.from_pil(source)
        else:
            image = SourceImage.from_array(source)

        self.image = image
        logger.debug("Session image set to %dx%d", image.width, image.height)
        return image

    def apply(self, image_filter: Optional[ImageFilter] = None) -> bool:
        """
        Render the current image through a filter.

        Args:
            image_filter: Filter to apply; the previously applied one when omitted

        Returns:
            True if the surface now shows the filtered image

        Raises:
            RuntimeError: If the session has been closed
        """
        if self.gl is None:
            raise RuntimeError("Session is closed, open a new one to render")
        if image_filter is not None:
            self.image_filter = image_filter
        return self.renderer.render(self.image, self.image_filter)

    def open(self, source: ImageSource, image_filter: Optional[ImageFilter] = None) -> bool:
        """Load an image and render it straight away."""
        self.load(source)
        return self.apply(image_filter)

    def snapshot(self) -> NDArray:
        """Current surface contents as a HxWx4 uint8 array."""
        return self.surface.read()

    def export(self, path: Union[str, Path]) -> None:
        """Save the current surface contents; the format follows the suffix."""
        self.surface.to_image().save(path)
        logger.info("Exported surface to %s", path)

    def close(self) -> None:
        """Release the renderer, the surface and, if owned, the context."""
        if self.gl is None:
            return
        self.renderer.release()
        self.surface.release()
        if self._owns_gl:
            self.gl.release()
        self.gl = None
