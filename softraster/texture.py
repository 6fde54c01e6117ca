import math
from enum import Enum

import numpy as np

from . import io
from .color import Color, fixed_to_float
from .errors import BadPositionError, BadSizeError


def _as_color(color) -> Color:
    return color if isinstance(color, Color) else Color.from_array(color)


class WrapMode(Enum):
    CLAMP_TO_EDGE = "clamp_to_edge"
    CLAMP_TO_BORDER = "clamp_to_border"
    REPEAT = "repeat"
    MIRRORED_REPEAT = "mirrored_repeat"


class FilterMode(Enum):
    NEAREST = "nearest"
    LINEAR = "linear"


def _clamp01(c):
    return min(max(c, 0.0), 1.0)


def _mirror(c):
    # Odd integer part reflects the coordinate before wrapping.
    return ((1.0 - (math.floor(c) % 2) * 2.0) * c) % 1.0


def wrap_coord(x, y, wrap_mode):
    """
    Maps a texture coordinate pair into [0, 1] according to `wrap_mode`.

    Returns:
        tuple: (x, y, use_border) where use_border tells the caller to return
               the border color instead of sampling.
    """
    if wrap_mode is WrapMode.CLAMP_TO_EDGE:
        return _clamp01(x), _clamp01(y), False
    if wrap_mode is WrapMode.CLAMP_TO_BORDER:
        use_border = not (0.0 <= x <= 1.0) or not (0.0 <= y <= 1.0)
        return _clamp01(x), _clamp01(y), use_border
    if wrap_mode is WrapMode.REPEAT:
        return x % 1.0, y % 1.0, False
    if wrap_mode is WrapMode.MIRRORED_REPEAT:
        return _mirror(x), _mirror(y), False
    raise ValueError(f"Unknown wrap mode: {wrap_mode}")


def wrap_coords(xs, ys, wrap_mode):
    """Vectorized wrap_coord; returns (xs, ys, use_border) arrays."""
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    no_border = np.zeros(xs.shape, dtype=bool)
    if wrap_mode is WrapMode.CLAMP_TO_EDGE:
        return np.clip(xs, 0.0, 1.0), np.clip(ys, 0.0, 1.0), no_border
    if wrap_mode is WrapMode.CLAMP_TO_BORDER:
        use_border = ~((xs >= 0.0) & (xs <= 1.0)) | ~((ys >= 0.0) & (ys <= 1.0))
        return np.clip(xs, 0.0, 1.0), np.clip(ys, 0.0, 1.0), use_border
    if wrap_mode is WrapMode.REPEAT:
        return np.mod(xs, 1.0), np.mod(ys, 1.0), no_border
    if wrap_mode is WrapMode.MIRRORED_REPEAT:
        def mirror(c):
            return np.mod((1.0 - np.mod(np.floor(c), 2.0) * 2.0) * c, 1.0)
        return mirror(xs), mirror(ys), no_border
    raise ValueError(f"Unknown wrap mode: {wrap_mode}")


class Texture:
    """
    A 2-D RGBA image sampled with normalized UV coordinates.

    UV (0, 0) is the bottom-left corner of the image while pixel row 0 is the
    top row, so v is flipped before sampling.
    """
    def __init__(self, width, height, fill_color=None):
        if width < 0 or height < 0:
            raise BadSizeError(f"texture size must be non-negative, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        fill_color = Color.transparent() if fill_color is None else _as_color(fill_color)
        self._pixels = np.empty((self.width * self.height, 4), dtype=np.uint8)
        self._pixels[:] = fill_color.to_array()
        self._border_color = Color.transparent()

    @classmethod
    def from_array(cls, pixels):
        """Builds a texture from a decoded (height, width, 4) uint8 buffer."""
        pixels = np.asarray(pixels, dtype=np.uint8)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"expected a (height, width, 4) buffer, got shape {pixels.shape}")
        height, width = pixels.shape[:2]
        tex = cls(width, height)
        tex._pixels[:] = pixels.reshape(-1, 4)
        return tex

    @classmethod
    def load(cls, path):
        return cls.from_array(io.image_read(path))

    def __repr__(self):
        return f"Texture({self.width}x{self.height})"

    @property
    def border_color(self) -> Color:
        return self._border_color

    def set_border_color(self, color):
        """Sets the color returned for coordinates outside [0, 1] under CLAMP_TO_BORDER."""
        self._border_color = _as_color(color)

    def get_color(self, x, y) -> Color:
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            raise BadPositionError(f"texel ({x}, {y}) outside {self.width}x{self.height} texture")
        return Color.from_array(self._pixels[y * self.width + x])

    def as_u8(self) -> np.ndarray:
        view = self._pixels.reshape(-1)
        view.flags.writeable = False
        return view

    def as_u32(self) -> np.ndarray:
        view = self._pixels.view(np.uint32).reshape(-1)
        view.flags.writeable = False
        return view

    def write(self, path):
        io.image_write(path, self.as_u8(), self.width, self.height, 4)

    # --- Sampling ---

    def _fetch(self, x, y) -> np.ndarray:
        # Coordinate 1.0 scales to width/height; keep it on the last texel.
        if self.width == 0 or self.height == 0:
            raise BadPositionError("cannot sample an empty texture")
        x = min(max(x, 0), self.width - 1)
        y = min(max(y, 0), self.height - 1)
        return fixed_to_float(self._pixels[y * self.width + x])

    def texture(self, u, v, wrap_mode=WrapMode.CLAMP_TO_EDGE, filter_mode=FilterMode.LINEAR) -> np.ndarray:
        """
        Samples the texture at (u, v).

        Returns:
            np.ndarray: float32 RGBA color of shape (4,).
        """
        x, y, use_border = wrap_coord(u, 1.0 - v, wrap_mode)
        if use_border:
            return self._border_color.to_float()

        if filter_mode is FilterMode.NEAREST:
            return self._fetch(math.floor(x * self.width + 0.5), math.floor(y * self.height + 0.5))
        if filter_mode is not FilterMode.LINEAR:
            raise ValueError(f"Unknown filter mode: {filter_mode}")

        x = x * self.width
        y = y * self.height
        x_min, x_max = math.floor(x), math.ceil(x)
        y_min, y_max = math.floor(y), math.ceil(y)
        xt = 0.0 if x_min == x_max else (x - x_min) / (x_max - x_min)
        yt = 0.0 if y_min == y_max else (y - y_min) / (y_max - y_min)

        xt0, xt1 = np.float32(1.0 - xt), np.float32(xt)
        yt0, yt1 = np.float32(1.0 - yt), np.float32(yt)

        color1 = self._fetch(x_min, y_min)
        color2 = self._fetch(x_max, y_min)
        color3 = self._fetch(x_min, y_max)
        color4 = self._fetch(x_max, y_max)
        return (color1 * xt0 * yt0
                + color2 * xt1 * yt0
                + color3 * xt0 * yt1
                + color4 * xt1 * yt1)

    def _fetch_many(self, xs, ys) -> np.ndarray:
        if self.width == 0 or self.height == 0:
            raise BadPositionError("cannot sample an empty texture")
        xs = np.clip(xs, 0, self.width - 1)
        ys = np.clip(ys, 0, self.height - 1)
        return fixed_to_float(self._pixels[ys * self.width + xs])

    def sample(self, us, vs, wrap_mode=WrapMode.CLAMP_TO_EDGE, filter_mode=FilterMode.LINEAR) -> np.ndarray:
        """
        Vectorized version of texture() for arrays of coordinates.

        Returns:
            np.ndarray: float32 array of shape (N, 4), equal row by row to texture().
        """
        us = np.asarray(us, dtype=np.float64).reshape(-1)
        vs = np.asarray(vs, dtype=np.float64).reshape(-1)
        xs, ys, use_border = wrap_coords(us, 1.0 - vs, wrap_mode)
        if len(xs) == 0:
            return np.zeros((0, 4), dtype=np.float32)

        if filter_mode is FilterMode.NEAREST:
            colors = self._fetch_many(np.floor(xs * self.width + 0.5).astype(np.int64),
                                      np.floor(ys * self.height + 0.5).astype(np.int64))
        elif filter_mode is FilterMode.LINEAR:
            xs = xs * self.width
            ys = ys * self.height
            x_min, x_max = np.floor(xs).astype(np.int64), np.ceil(xs).astype(np.int64)
            y_min, y_max = np.floor(ys).astype(np.int64), np.ceil(ys).astype(np.int64)
            same_x = x_min == x_max
            same_y = y_min == y_max
            xt = np.where(same_x, 0.0, (xs - x_min) / np.where(same_x, 1, x_max - x_min))
            yt = np.where(same_y, 0.0, (ys - y_min) / np.where(same_y, 1, y_max - y_min))

            # Weights rounded to float32 exactly as the scalar path does.
            xt0 = (1.0 - xt).astype(np.float32)[:, np.newaxis]
            xt1 = xt.astype(np.float32)[:, np.newaxis]
            yt0 = (1.0 - yt).astype(np.float32)[:, np.newaxis]
            yt1 = yt.astype(np.float32)[:, np.newaxis]

            color1 = self._fetch_many(x_min, y_min)
            color2 = self._fetch_many(x_max, y_min)
            color3 = self._fetch_many(x_min, y_max)
            color4 = self._fetch_many(x_max, y_max)
            colors = (color1 * xt0 * yt0
                      + color2 * xt1 * yt0
                      + color3 * xt0 * yt1
                      + color4 * xt1 * yt1)
        else:
            raise ValueError(f"Unknown filter mode: {filter_mode}")

        if np.any(use_border):
            colors[use_border] = self._border_color.to_float()
        return colors
