import numpy as np

from . import io
from .color import Color
from .errors import BadPositionError, BadSizeError

# Cleared depth: every valid fragment depth compares greater.
DEPTH_MIN = float(np.finfo(np.float32).min)
# Reported for depth queries outside the buffer.
DEPTH_MAX = float(np.finfo(np.float32).max)

_EPS = np.finfo(np.float32).eps
DEPTH_LOW = np.float32(-1.0) - _EPS
DEPTH_HIGH = np.float32(1.0) + _EPS


def _rgba(color) -> np.ndarray:
    if isinstance(color, Color):
        return color.to_array()
    return np.asarray(color, dtype=np.uint8).reshape(4)


def _readonly(view: np.ndarray) -> np.ndarray:
    view.flags.writeable = False
    return view


class Framebuffer:
    """
    Represents the output canvas for rendering: an RGBA color grid and a float32 depth grid.

    Both grids are flat and indexed by ``y * width + x``. Writes outside the
    buffer are silently dropped so a draw call is never aborted by a stray pixel.
    """
    def __init__(self, width, height, fill_color=None):
        if width < 0 or height < 0:
            raise BadSizeError(f"framebuffer size must be non-negative, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        if fill_color is None:
            fill_color = Color.transparent()
        # Initialize buffers
        self._colors = np.empty((self.width * self.height, 4), dtype=np.uint8)
        self._colors[:] = _rgba(fill_color)
        self._depth = np.full(self.width * self.height, DEPTH_MIN, dtype=np.float32)
        self._depth_test = True

    def __repr__(self):
        return f"Framebuffer({self.width}x{self.height}, depth_test={self._depth_test})"

    def _offset(self, x, y):
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            return None
        return y * self.width + x

    # --- Clearing ---

    def clear_color(self, color=None):
        self._colors[:] = _rgba(Color.transparent() if color is None else color)

    def clear_depth(self, value=DEPTH_MIN):
        self._depth.fill(value)

    def clear(self, color=None):
        """Resets both buffers for a new frame."""
        self.clear_color(color)
        self.clear_depth()

    # --- Per-pixel access ---

    def set_color(self, x, y, color):
        offset = self._offset(x, y)
        if offset is not None:
            self._colors[offset] = _rgba(color)

    def get_color(self, x, y) -> Color:
        offset = self._offset(x, y)
        if offset is None:
            raise BadPositionError(f"pixel ({x}, {y}) outside {self.width}x{self.height} framebuffer")
        return Color.from_array(self._colors[offset])

    def set_depth(self, x, y, value):
        offset = self._offset(x, y)
        if offset is not None:
            self._depth[offset] = value

    def get_depth(self, x, y) -> float:
        """Returns the stored depth, or DEPTH_MAX (farthest) outside the buffer."""
        offset = self._offset(x, y)
        if offset is None:
            return DEPTH_MAX
        return float(self._depth[offset])

    @property
    def depth_test_enabled(self):
        return self._depth_test

    def set_depth_test(self, enabled):
        self._depth_test = bool(enabled)

    def set_color_with_depth(self, x, y, depth, color):
        """
        Writes a fragment, subject to the depth test when it is enabled.

        A fragment passes when its depth lies in [-1 - eps, 1 + eps] and is
        strictly greater than the stored depth; color and depth are then both
        written. With the depth test disabled the color is always written and
        the depth grid is left alone.
        """
        if not self._depth_test:
            self.set_color(x, y, color)
            return
        depth = np.float32(depth)
        if DEPTH_LOW <= depth <= DEPTH_HIGH and depth > self.get_depth(x, y):
            self.set_color(x, y, color)
            self.set_depth(x, y, depth)

    # --- Batched access (one entry per distinct pixel) ---

    def _batch_offsets(self, xs, ys):
        xs = np.asarray(xs, dtype=np.int64)
        ys = np.asarray(ys, dtype=np.int64)
        inside = (xs >= 0) & (ys >= 0) & (xs < self.width) & (ys < self.height)
        return ys * self.width + xs, inside

    def set_colors(self, xs, ys, colors):
        """Vectorized set_color; colors is an (N, 4) uint8 array or a single color."""
        offsets, inside = self._batch_offsets(xs, ys)
        colors = np.broadcast_to(np.asarray(colors, dtype=np.uint8), (len(offsets), 4))
        self._colors[offsets[inside]] = colors[inside]

    def set_colors_with_depth(self, xs, ys, depths, colors):
        """Vectorized set_color_with_depth with the same per-pixel rules."""
        offsets, inside = self._batch_offsets(xs, ys)
        colors = np.broadcast_to(np.asarray(colors, dtype=np.uint8), (len(offsets), 4))
        if not self._depth_test:
            self._colors[offsets[inside]] = colors[inside]
            return

        depths = np.asarray(depths, dtype=np.float32)
        current = np.full(len(offsets), np.float32(DEPTH_MAX), dtype=np.float32)
        current[inside] = self._depth[offsets[inside]]
        passed = inside & (depths >= DEPTH_LOW) & (depths <= DEPTH_HIGH) & (depths > current)
        self._colors[offsets[passed]] = colors[passed]
        self._depth[offsets[passed]] = depths[passed]

    # --- Raw views ---
    # These alias the framebuffer storage and are only valid until the next
    # write or clear; copy them if they must outlive the frame.

    def as_u8(self) -> np.ndarray:
        """RGBA bytes, row-major, 4 bytes per pixel (read-only view)."""
        return _readonly(self._colors.reshape(-1))

    def as_u32(self) -> np.ndarray:
        """One packed 32-bit word per pixel holding the stored RGBA bytes (read-only view)."""
        return _readonly(self._colors.view(np.uint32).reshape(-1))

    def get_image(self) -> np.ndarray:
        """Returns the color grid as a (height, width, 4) read-only view."""
        return _readonly(self._colors.reshape(self.height, self.width, 4))

    def get_depth_image(self) -> np.ndarray:
        return _readonly(self._depth.reshape(self.height, self.width))

    # --- Export ---

    def write(self, path):
        io.image_write(path, self.as_u8(), self.width, self.height, 4)

    def write_depth(self, path):
        """Writes the depth grid as greyscale, mapping [-1, 1] to [0, 255]."""
        scaled = np.floor((self._depth.astype(np.float64) / 2.0 + 0.5) * 255.0 + 0.5)
        io.image_write(path, np.clip(scaled, 0, 255).astype(np.uint8), self.width, self.height, 1)
