import numpy as np

from .color import Color
from .primitives import Mesh
from .texture import Texture

# Outward normal and two in-plane axes (u x v == normal) for each cube face.
_CUBE_FACES = [
    ((1, 0, 0), (0, 1, 0), (0, 0, 1)),     # +x
    ((-1, 0, 0), (0, 0, 1), (0, 1, 0)),    # -x
    ((0, 1, 0), (0, 0, 1), (1, 0, 0)),     # +y
    ((0, -1, 0), (1, 0, 0), (0, 0, 1)),    # -y
    ((0, 0, 1), (1, 0, 0), (0, 1, 0)),     # +z, faces the viewer
    ((0, 0, -1), (0, 1, 0), (1, 0, 0)),    # -z
]

# Corner order of a face in (u, v) units, and the two counter-clockwise triangles over it.
_QUAD_CORNERS = np.array([[-1, -1], [1, -1], [1, 1], [-1, 1]], dtype=np.float32)
_QUAD_TRIANGLES = [0, 1, 2, 0, 2, 3]


def make_quad_mesh(half_size=0.5, z=0.0):
    """Builds a square of two triangles facing +z, with uvs covering [0, 1]^2."""
    corners = np.zeros((4, 3), dtype=np.float32)
    corners[:, :2] = _QUAD_CORNERS * half_size
    corners[:, 2] = z
    uvs = (_QUAD_CORNERS + 1.0) / 2.0
    normals = np.tile(np.array([0, 0, 1], dtype=np.float32), (4, 1))
    return Mesh(corners[_QUAD_TRIANGLES], uvs[_QUAD_TRIANGLES], normals[_QUAD_TRIANGLES])


def make_cube_mesh(half_size=0.5):
    """Builds an axis-aligned cube of 12 triangles, counter-clockwise seen from outside."""
    positions, uvs, normals = [], [], []
    for normal, u_axis, v_axis in _CUBE_FACES:
        normal = np.array(normal, dtype=np.float32)
        u_axis = np.array(u_axis, dtype=np.float32)
        v_axis = np.array(v_axis, dtype=np.float32)
        corners = [(normal + cu * u_axis + cv * v_axis) * half_size for cu, cv in _QUAD_CORNERS]
        for i in _QUAD_TRIANGLES:
            positions.append(corners[i])
            uvs.append((_QUAD_CORNERS[i] + 1.0) / 2.0)
            normals.append(normal)
    return Mesh(np.array(positions), np.array(uvs), np.array(normals))


def make_checker_texture(size=8, tiles=2, color_a=None, color_b=None):
    """
    Builds a size x size checkerboard texture with tiles x tiles squares.
    The top-left square uses color_a (white by default), its neighbours color_b (black).
    """
    if color_a is None:
        color_a = Color.white()
    if color_b is None:
        color_b = Color.black()
    tile = max(1, size // tiles)
    ys, xs = np.mgrid[0:size, 0:size]
    mask = ((xs // tile) + (ys // tile)) % 2 == 0
    pixels = np.where(mask[..., np.newaxis], color_a.to_array(), color_b.to_array())
    return Texture.from_array(pixels.astype(np.uint8))


def make_gradient_texture(width=4, height=4):
    """Builds a texture whose red channel grows along x and green channel along y."""
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[..., 0] = np.linspace(0, 255, width, dtype=np.float64).round().astype(np.uint8)[np.newaxis, :]
    pixels[..., 1] = np.linspace(0, 255, height, dtype=np.float64).round().astype(np.uint8)[:, np.newaxis]
    pixels[..., 3] = 255
    return Texture.from_array(pixels)
