"""
Line and triangle rasterization into a Framebuffer.

Positions are given in normalized device coordinates (x right, y up, both in
[-1, 1]) and mapped to integer pixels (x right, y down). z is carried through
unchanged for the depth test. Nothing here keeps state between calls.
"""
import math

import numpy as np

from .color import Color, float_to_fixed
from .texture import FilterMode, WrapMode


def _round(value):
    """Rounds half away from zero."""
    if value >= 0:
        return math.floor(value + 0.5)
    return -math.floor(-value + 0.5)


def _as_color(color):
    return color if isinstance(color, Color) else Color.from_array(color)


def to_screen_pos(pos, width, height):
    """Projects an NDC position to integer pixel coordinates (sx, sy)."""
    return (_round((pos[0] + 1.0) / 2.0 * width),
            _round((1.0 - pos[1]) / 2.0 * height))


# --- Lines ---

def line_pixels(p0_s, p1_s):
    """
    Yields the (x, y) pixels of the Bresenham walk from p0_s to p1_s, inclusive.

    The walk always advances along the longer axis, so there are no gaps for
    any slope. Both endpoints may be yielded in either order.
    """
    x0, y0 = p0_s
    x1, y1 = p1_s
    steep = False
    if abs(x0 - x1) < abs(y0 - y1):
        x0, y0, x1, y1 = y0, x0, y1, x1
        steep = True
    if x0 > x1:
        x0, x1 = x1, x0
        y0, y1 = y1, y0

    dx = x1 - x0
    derror2 = abs(y1 - y0) * 2
    y_step = 1 if y1 > y0 else -1
    error2 = 0
    y = y0
    for x in range(x0, x1 + 1):
        yield (y, x) if steep else (x, y)
        error2 += derror2
        if error2 > dx:
            y += y_step
            error2 -= dx * 2


def draw_line(framebuffer, p0, p1, color):
    """
    Draws the segment p0 -> p1 with per-pixel depth through set_color_with_depth.

    Depth is found by solving for the line parameter t from the pixel's NDC
    coordinate along the major axis (x for shallow lines, y for steep ones).
    When the segment does not move along that axis the depth is direction.z.
    """
    width, height = framebuffer.width, framebuffer.height
    if width == 0 or height == 0:
        return
    color = _as_color(color)
    p0 = np.asarray(p0, dtype=np.float64)
    direction = np.asarray(p1, dtype=np.float64) - p0

    p0_s = to_screen_pos(p0, width, height)
    p1_s = to_screen_pos(p1, width, height)
    steep = abs(p0_s[0] - p1_s[0]) < abs(p0_s[1] - p1_s[1])
    half_w = width * 0.5
    half_h = height * 0.5

    for x, y in line_pixels(p0_s, p1_s):
        if steep:
            if direction[1] != 0.0:
                t = ((1.0 - y / half_h) - p0[1]) / direction[1]
                depth = p0[2] + t * direction[2]
            else:
                depth = direction[2]
        else:
            if direction[0] != 0.0:
                t = ((x / half_w - 1.0) - p0[0]) / direction[0]
                depth = p0[2] + t * direction[2]
            else:
                depth = direction[2]
        framebuffer.set_color_with_depth(x, y, depth, color)


# --- Triangles ---

def barycentric(p, p0, p1, p2):
    """
    Screen-space barycentric weights of pixel p for the integer triangle p0, p1, p2.

    Uses the cross product of the x and y edge-difference vectors. A triangle
    with less than one unit of doubled area is degenerate and yields
    (-1, 1, 1), which every coverage test rejects.
    """
    s0 = (p2[0] - p0[0], p1[0] - p0[0], p0[0] - p[0])
    s1 = (p2[1] - p0[1], p1[1] - p0[1], p0[1] - p[1])
    ux = s0[1] * s1[2] - s0[2] * s1[1]
    uy = s0[2] * s1[0] - s0[0] * s1[2]
    uz = s0[0] * s1[1] - s0[1] * s1[0]
    if abs(uz) < 1:
        return (-1.0, 1.0, 1.0)
    return (1.0 - (ux + uy) / uz, uy / uz, ux / uz)


def _barycentric_grid(xs, ys, p0, p1, p2):
    """Vectorized barycentric() over arrays of pixel coordinates."""
    uz = (p2[0] - p0[0]) * (p1[1] - p0[1]) - (p1[0] - p0[0]) * (p2[1] - p0[1])
    if abs(uz) < 1:
        rejected = np.full(xs.shape, -1.0)
        return rejected, -rejected, -rejected
    ox = p0[0] - xs
    oy = p0[1] - ys
    ux = (p1[0] - p0[0]) * oy - ox * (p1[1] - p0[1])
    uy = ox * (p2[1] - p0[1]) - (p2[0] - p0[0]) * oy
    return 1.0 - (ux + uy) / uz, uy / uz, ux / uz


def _bounding_box(width, height, points):
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    min_x = max(0, min(width - 1, *xs))
    min_y = max(0, min(height - 1, *ys))
    max_x = min(width - 1, max(0, *xs))
    max_y = min(height - 1, max(0, *ys))
    return min_x, min_y, max_x, max_y


class _Shading:
    """Per-vertex inputs of the textured, lit triangle path."""
    def __init__(self, texture, uvs, normals, light_dir, light_intensity, wrap_mode, filter_mode):
        self.texture = texture
        self.uvs = np.asarray(uvs, dtype=np.float64).reshape(3, 2)
        self.normals = np.asarray(normals, dtype=np.float64).reshape(3, 3)
        self.light_dir = np.asarray(light_dir, dtype=np.float64).reshape(3)
        self.light_intensity = float(light_intensity)
        self.wrap_mode = wrap_mode
        self.filter_mode = filter_mode

    def shade(self, c0, c1, c2) -> Color:
        """Color of one pixel from its normalized weights."""
        uv = c0 * self.uvs[0] + c1 * self.uvs[1] + c2 * self.uvs[2]
        n = c0 * self.normals[0] + c1 * self.normals[1] + c2 * self.normals[2]
        length = np.sqrt(n[0] * n[0] + n[1] * n[1] + n[2] * n[2])
        n = -n / length if length > 0 else np.zeros(3)
        intensity = (n[0] * self.light_dir[0] + n[1] * self.light_dir[1]
                     + n[2] * self.light_dir[2]) * self.light_intensity
        color = self.texture.texture(uv[0], uv[1], self.wrap_mode, self.filter_mode)
        color = color * np.array([intensity, intensity, intensity, 1.0], dtype=np.float32)
        return Color.from_array(float_to_fixed(color))

    def shade_many(self, c0, c1, c2) -> np.ndarray:
        """Vectorized shade(); returns an (N, 4) uint8 array."""
        c0, c1, c2 = c0[:, np.newaxis], c1[:, np.newaxis], c2[:, np.newaxis]
        uv = c0 * self.uvs[0] + c1 * self.uvs[1] + c2 * self.uvs[2]
        n = c0 * self.normals[0] + c1 * self.normals[1] + c2 * self.normals[2]
        length = np.sqrt(n[:, 0] * n[:, 0] + n[:, 1] * n[:, 1] + n[:, 2] * n[:, 2])
        nonzero = length > 0
        n = -n / np.where(nonzero, length, 1.0)[:, np.newaxis]
        n[~nonzero] = 0.0
        intensity = (n[:, 0] * self.light_dir[0] + n[:, 1] * self.light_dir[1]
                     + n[:, 2] * self.light_dir[2]) * self.light_intensity
        colors = self.texture.sample(uv[:, 0], uv[:, 1], self.wrap_mode, self.filter_mode)
        factors = np.column_stack([intensity, intensity, intensity, np.ones_like(intensity)])
        return float_to_fixed(colors * factors.astype(np.float32))


def _draw_triangle_naive(framebuffer, points, z, color, shading):
    min_x, min_y, max_x, max_y = _bounding_box(framebuffer.width, framebuffer.height, points)
    p0_s, p1_s, p2_s = points
    for y in range(min_y, max_y + 1):
        for x in range(min_x, max_x + 1):
            w0, w1, w2 = barycentric((x, y), p0_s, p1_s, p2_s)
            if w0 < 0 or w1 < 0 or w2 < 0:
                continue
            if shading is None:
                framebuffer.set_color(x, y, color)
                continue
            total = w0 + w1 + w2
            pixel = shading.shade(w0 / total, w1 / total, w2 / total)
            depth = z[0] * w0 + z[1] * w1 + z[2] * w2
            framebuffer.set_color_with_depth(x, y, depth, pixel)


def _draw_triangle_vectorized(framebuffer, points, z, color, shading):
    min_x, min_y, max_x, max_y = _bounding_box(framebuffer.width, framebuffer.height, points)
    if min_x > max_x or min_y > max_y:
        return
    # Create coordinate grids for vectorized computation
    X, Y = np.meshgrid(np.arange(min_x, max_x + 1, dtype=np.int64),
                       np.arange(min_y, max_y + 1, dtype=np.int64))
    xs, ys = X.reshape(-1), Y.reshape(-1)

    w0, w1, w2 = _barycentric_grid(xs, ys, *points)
    inside = (w0 >= 0) & (w1 >= 0) & (w2 >= 0)
    if not np.any(inside):
        return
    xs, ys = xs[inside], ys[inside]
    w0, w1, w2 = w0[inside], w1[inside], w2[inside]

    if shading is None:
        framebuffer.set_colors(xs, ys, color.to_array())
        return
    total = w0 + w1 + w2
    pixels = shading.shade_many(w0 / total, w1 / total, w2 / total)
    depths = z[0] * w0 + z[1] * w1 + z[2] * w2
    framebuffer.set_colors_with_depth(xs, ys, depths, pixels)


def draw_triangle(framebuffer, p0, p1, p2, color=None, *, texture=None, uvs=None, normals=None,
                  light_dir=(0.0, 0.0, -1.0), light_intensity=1.0,
                  wrap_mode=WrapMode.CLAMP_TO_EDGE, filter_mode=FilterMode.LINEAR,
                  method="vectorized"):
    """
    Rasterizes one triangle by testing every pixel of its clamped bounding box.

    Flat mode (no texture): covered pixels are set to `color` with the plain
    color write; the depth grid is not consulted.

    Shaded mode (texture, uvs and normals given): per pixel, uv and normal are
    interpolated with the normalized weights, the negated unit normal is dotted
    with `light_dir` and scaled by `light_intensity`, and the texture sample is
    modulated by that intensity (alpha kept). Depth comes from the raw
    screen-space weights and goes through the depth test.

    Args:
        framebuffer (Framebuffer): Target of the pixel writes.
        p0, p1, p2: NDC vertex positions (x, y, z).
        color: Flat color (Color or 4 bytes); ignored in shaded mode.
        texture (Texture): Enables shaded mode.
        uvs: (3, 2) per-vertex texture coordinates.
        normals: (3, 3) per-vertex normals.
        method (str): 'vectorized' (NumPy over the bounding box) or 'naive'
                      (one pixel at a time). Both give the same image.
    """
    if method == "vectorized":
        draw = _draw_triangle_vectorized
    elif method == "naive":
        draw = _draw_triangle_naive
    else:
        raise ValueError(f"Unknown rasterization method: {method}")

    if texture is not None:
        if uvs is None or normals is None:
            raise ValueError("shaded triangles need uvs and normals")
        shading = _Shading(texture, uvs, normals, light_dir, light_intensity, wrap_mode, filter_mode)
    elif color is not None:
        shading = None
        color = _as_color(color)
    else:
        raise ValueError("draw_triangle needs either a color or a texture")

    width, height = framebuffer.width, framebuffer.height
    if width == 0 or height == 0:
        return
    points = tuple(to_screen_pos(p, width, height) for p in (p0, p1, p2))
    z = (float(p0[2]), float(p1[2]), float(p2[2]))
    draw(framebuffer, points, z, color, shading)
