import numpy as np
from dataclasses import dataclass


@dataclass
class Triangle:
    """
    Represents a single triangle with its per-vertex attributes as a pure data object.
    """
    positions: np.ndarray # (3, 3) NDC positions, one row per vertex
    uvs: np.ndarray # (3, 2)
    normals: np.ndarray # (3, 3)


@dataclass
class Mesh:
    """
    Store the flattened vertex streams of a triangulated model, organized by attribute.
    Every run of 3 consecutive rows is one triangle.
    """

    positions: np.ndarray # array of size (n, 3) where n is 3 * number of triangles
    uvs: np.ndarray = None # (n, 2)
    normals: np.ndarray = None # (n, 3)

    def __post_init__(self):
        self.positions = np.asarray(self.positions, dtype=np.float32).reshape(-1, 3)
        n = len(self.positions)
        if n % 3 != 0:
            raise ValueError(f"vertex count must be a multiple of 3, got {n}")
        self.uvs = self._stream(self.uvs, n, 2, "uvs")
        self.normals = self._stream(self.normals, n, 3, "normals")

    @staticmethod
    def _stream(values, n, width, name):
        if values is None:
            return np.zeros((n, width), dtype=np.float32)
        values = np.asarray(values, dtype=np.float32).reshape(-1, width)
        if len(values) != n:
            raise ValueError(f"{name} has {len(values)} entries, expected {n}")
        return values

    def __len__(self):
        return len(self.positions) // 3

    def triangle(self, index) -> Triangle:
        if not 0 <= index < len(self):
            raise IndexError(f"triangle index {index} out of range")
        s = slice(3 * index, 3 * index + 3)
        return Triangle(self.positions[s], self.uvs[s], self.normals[s])
