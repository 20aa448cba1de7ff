"""
Full-screen quad geometry.

The quad is drawn as two triangles covering normalized device coordinates
[-1, 1] x [-1, 1]. Texture coordinates are derived from the vertex positions so
that the [0, 1] x [0, 1] sampling square lines up with the quad.
"""

from functools import lru_cache

import numpy as np

# Two triangles, (x, y) per vertex
QUAD_VERTICES = np.array(
    [
        -1.0, -1.0,
        1.0, -1.0,
        -1.0, 1.0,
        -1.0, 1.0,
        1.0, 1.0,
        1.0, -1.0,
    ],
    dtype=np.float32,
)
QUAD_VERTICES.setflags(write=False)

COMPONENTS_PER_VERTEX = 2


@lru_cache(maxsize=None)
def texture_coordinates() -> np.ndarray:
    """
    Texture coordinates matching QUAD_VERTICES vertex for vertex.

    The quad only uses -1/1 corners, so -1 maps to 0 and 1 stays 1.

    Returns:
        Read-only float32 array with the same length as QUAD_VERTICES
    """
    coords = np.where(QUAD_VERTICES == -1.0, 0.0, QUAD_VERTICES).astype(np.float32)
    coords.setflags(write=False)
    return coords


def vertex_count() -> int:
    """Number of vertices in the quad (not the number of floats)."""
    return len(QUAD_VERTICES) // COMPONENTS_PER_VERTEX
