import random
import time
from enum import Enum

import numpy as np
from scipy.spatial.transform import Rotation

from .primitives import Mesh


def reduce_triangles(mesh: Mesh, keep_fraction=1.0) -> Mesh:
    """
    Reduces the number of triangles to speed up rendering, preserving order.

    Args:
        mesh (Mesh): The original mesh.
        keep_fraction (float, optional): The fraction of triangles to keep (e.g., 0.2 for 20%).
                                         Defaults to 1.0 (keep all).

    Returns:
        Mesh: A new, smaller mesh made of whole triangles of the original.
    """
    original_count = len(mesh)
    if not (0.0 <= keep_fraction <= 1.0):
        raise ValueError("keep_fraction must be between 0.0 and 1.0")

    if keep_fraction == 1.0:
        return mesh

    num_to_keep = int(original_count * keep_fraction)

    # Select random triangles and sort them so the draw order is unchanged.
    indices_to_keep = sorted(random.sample(range(original_count), k=num_to_keep))
    rows = (3 * np.asarray(indices_to_keep, dtype=np.int64)[:, np.newaxis] + np.arange(3)).reshape(-1)
    reduced = Mesh(mesh.positions[rows], mesh.uvs[rows], mesh.normals[rows])

    print(f"Reduced triangles from {original_count} to {len(reduced)} (kept ~{keep_fraction*100:.1f}%).")
    return reduced


def analyze_mesh_bounds(mesh: Mesh):
    """
    Analyzes the spatial distribution of a mesh's vertices.

    Returns:
        dict: count, mean, min, max, std, center and size of the vertex positions.
    """
    if len(mesh) == 0:
        return {
            "count": 0, "mean": np.zeros(3), "min": np.zeros(3),
            "max": np.zeros(3), "std": np.zeros(3), "center": np.zeros(3),
            "size": np.zeros(3)
        }

    xyz = mesh.positions.astype(np.float64)
    min_pos = np.min(xyz, axis=0)
    max_pos = np.max(xyz, axis=0)

    return {
        "count": len(mesh),
        "mean": np.mean(xyz, axis=0),
        "min": min_pos,
        "max": max_pos,
        "std": np.std(xyz, axis=0),
        "center": (max_pos + min_pos) / 2.0, # Geometric center of the bounding box
        "size": max_pos - min_pos           # Dimensions of the bounding box
    }


def normalize_to_ndc(mesh: Mesh, stats=None, margin=0.9) -> Mesh:
    """
    Centers a mesh on the origin and scales it uniformly so that it fits in [-margin, margin]^3.

    Args:
        mesh (Mesh): The mesh to fit.
        stats (dict, optional): Output of analyze_mesh_bounds; computed when omitted.
        margin (float): Half-extent of the target cube.
    """
    if stats is None:
        stats = analyze_mesh_bounds(mesh)
    max_size = np.max(stats["size"])
    scale = (2.0 * margin / max_size) if max_size > 0 else 1.0
    positions = (mesh.positions - stats["center"]) * scale
    return Mesh(positions, mesh.uvs.copy(), mesh.normals.copy())


def rotate_mesh(mesh: Mesh, angles, center=(0.0, 0.0, 0.0), degrees=False) -> Mesh:
    """
    Rotates positions about `center` and normals about the origin.

    Args:
        angles: Intrinsic x, y, z Euler angles.
    """
    if len(mesh) == 0:
        return Mesh(mesh.positions.copy(), mesh.uvs.copy(), mesh.normals.copy())
    rotation = Rotation.from_euler("xyz", angles, degrees=degrees)
    center = np.asarray(center, dtype=np.float64)
    positions = rotation.apply(mesh.positions - center) + center
    normals = rotation.apply(mesh.normals)
    return Mesh(positions, mesh.uvs.copy(), normals)


def rgba_to_bgra(src, dst=None) -> np.ndarray:
    """
    Swaps the red and blue bytes of packed RGBA pixels, e.g. for window
    surfaces that expect BGRA words.

    Args:
        src (np.ndarray): uint32 array of packed pixels, as from Framebuffer.as_u32().
        dst (np.ndarray, optional): uint32 array of the same length to fill in place.
    """
    src_u8 = np.ascontiguousarray(src, dtype=np.uint32).view(np.uint8).reshape(-1, 4)
    if dst is None:
        dst = np.empty(len(src_u8), dtype=np.uint32)
    dst_u8 = dst.view(np.uint8).reshape(-1, 4)
    dst_u8[:] = src_u8[:, [2, 1, 0, 3]]
    return dst


class FpsStatus(Enum):
    NOT_READY = "not_ready"
    NOT_UPDATED = "not_updated"
    UPDATED = "updated"


class Fps:
    """Frame-rate counter that refreshes its estimate every `interval` seconds."""
    def __init__(self, interval=2.0, clock=time.perf_counter):
        self.interval = interval
        self.clock = clock
        self.last_time = None
        self.frame_count = 0
        self.fps = 0

    def update(self):
        """
        Counts one frame.

        Returns:
            tuple: (FpsStatus, fps). fps is 0 until the first interval has elapsed.
        """
        now = self.clock()
        self.frame_count += 1
        if self.last_time is None:
            self.last_time = now
        else:
            elapsed = now - self.last_time
            if elapsed >= self.interval:
                self.fps = round(self.frame_count / elapsed)
                self.last_time = now
                self.frame_count = 0
                return FpsStatus.UPDATED, self.fps
        if self.fps == 0:
            return FpsStatus.NOT_READY, 0
        return FpsStatus.NOT_UPDATED, self.fps
