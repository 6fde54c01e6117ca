import numpy as np
from dataclasses import dataclass


def float_to_fixed(colors) -> np.ndarray:
    """
    Converts normalized float colors to 8-bit channels.

    Channels are clamped to [0, 1], scaled by 255 and rounded half away from zero.
    Works on a single (4,) color or on an (N, 4) batch.
    """
    colors = np.clip(np.asarray(colors, dtype=np.float32), 0.0, 1.0)
    return np.floor(colors * np.float32(255.0) + np.float32(0.5)).astype(np.uint8)


def fixed_to_float(colors) -> np.ndarray:
    """Converts 8-bit channels to normalized float32 colors."""
    return np.asarray(colors, dtype=np.float32) / np.float32(255.0)


@dataclass(frozen=True)
class Color:
    """
    An RGBA color with 8 bits per channel.
    """
    r: int = 0
    g: int = 0
    b: int = 0
    a: int = 0

    def __post_init__(self):
        for channel in (self.r, self.g, self.b, self.a):
            if not 0 <= channel <= 255:
                raise ValueError(f"color channel out of range [0, 255]: {channel}")

    def __iter__(self):
        yield self.r
        yield self.g
        yield self.b
        yield self.a

    @classmethod
    def red(cls):
        return cls(255, 0, 0, 255)

    @classmethod
    def green(cls):
        return cls(0, 255, 0, 255)

    @classmethod
    def blue(cls):
        return cls(0, 0, 255, 255)

    @classmethod
    def white(cls):
        return cls(255, 255, 255, 255)

    @classmethod
    def black(cls):
        return cls(0, 0, 0, 255)

    @classmethod
    def transparent(cls):
        return cls(0, 0, 0, 0)

    @classmethod
    def from_array(cls, rgba):
        r, g, b, a = (int(c) for c in rgba)
        return cls(r, g, b, a)

    @classmethod
    def from_float(cls, rgba):
        return cls.from_array(float_to_fixed(rgba))

    def to_array(self) -> np.ndarray:
        return np.array([self.r, self.g, self.b, self.a], dtype=np.uint8)

    def to_float(self) -> np.ndarray:
        return fixed_to_float(self.to_array())
