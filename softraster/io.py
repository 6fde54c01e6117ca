import os

import numpy as np
from PIL import Image, UnidentifiedImageError
from plyfile import PlyData

from .errors import (
    ImageDecodeError,
    ImageReadError,
    ImageWriteError,
    ModelError,
    UnsupportedImageTypeError,
)
from .primitives import Mesh

# Extension -> Pillow format name
IMAGE_FORMATS = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".bmp": "BMP",
    ".tga": "TGA",
}

JPEG_QUALITY = 90


def image_read(path) -> np.ndarray:
    """
    Decodes an image file into an RGBA pixel buffer.

    Args:
        path: Path of the image file.

    Returns:
        np.ndarray: uint8 array of shape (height, width, 4), row 0 at the top.

    Raises:
        ImageReadError: The file could not be opened.
        ImageDecodeError: The file contents are not a decodable image.
    """
    try:
        with Image.open(path) as img:
            img.load()
            pixels = np.asarray(img.convert("RGBA"), dtype=np.uint8)
    except UnidentifiedImageError as e:
        raise ImageDecodeError(f"cannot decode image {path}") from e
    except OSError as e:
        raise ImageReadError(f"cannot read image {path}: {e}") from e

    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise ImageDecodeError(f"image {path} has no pixels")
    return np.ascontiguousarray(pixels)


def image_write(path, data, width, height, comp):
    """
    Encodes a row-major pixel buffer to an image file.

    The format is chosen from the file extension (png, jpg/jpeg, bmp, tga).
    `comp` is the channel count: 1 for greyscale, 4 for RGBA.
    """
    ext = os.path.splitext(str(path))[1].lower()
    fmt = IMAGE_FORMATS.get(ext)
    if fmt is None:
        raise UnsupportedImageTypeError(f"unsupported image type: {path}")

    if comp not in (1, 4):
        raise ValueError(f"unsupported channel count: {comp}")
    if width <= 0 or height <= 0:
        raise ImageWriteError(f"cannot encode an empty {width}x{height} image")

    pixels = np.frombuffer(np.ascontiguousarray(data), dtype=np.uint8)
    if comp == 1:
        pixels = pixels.reshape(height, width)
    else:
        pixels = pixels.reshape(height, width, comp)
    img = Image.fromarray(pixels)

    try:
        if fmt == "JPEG":
            # JPEG has no alpha channel
            if img.mode == "RGBA":
                img = img.convert("RGB")
            img.save(path, format=fmt, quality=JPEG_QUALITY)
        else:
            img.save(path, format=fmt)
    except OSError as e:
        raise ImageWriteError(f"cannot write image {path}: {e}") from e


def _parse_floats(tokens, counts, lineno, line):
    if len(tokens) not in counts:
        raise ModelError(f"line {lineno}: expected {' or '.join(map(str, counts))} values: {line!r}")
    try:
        return [float(t) for t in tokens]
    except ValueError as e:
        raise ModelError(f"line {lineno}: {e}") from e


def _parse_face_corner(token, lineno, line):
    parts = token.split("/")
    if len(parts) != 3:
        raise ModelError(f"line {lineno}: face corners must be v/vt/vn: {line!r}")
    try:
        return [int(p) - 1 for p in parts]
    except ValueError as e:
        raise ModelError(f"line {lineno}: {e}") from e


def load_obj(path) -> Mesh:
    """
    Loads a Wavefront OBJ file into a flattened triangle Mesh.

    Faces must give all three indices per corner (v/vt/vn). Quads are split
    into the triangles (0, 1, 2) and (2, 1, 3).
    """
    verts, uvs, norms = [], [], []
    faces = []  # one list of (v, vt, vn) corners per triangle

    with open(path, "r") as file:
        for lineno, raw in enumerate(file, start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            tokens = line.split()
            keyword, args = tokens[0], tokens[1:]

            if keyword == "v":
                verts.append(_parse_floats(args, (3,), lineno, line))
            elif keyword == "vt":
                uvs.append(_parse_floats(args, (2, 3), lineno, line)[:2])
            elif keyword == "vn":
                norms.append(_parse_floats(args, (3,), lineno, line))
            elif keyword == "f":
                corners = [_parse_face_corner(t, lineno, line) for t in args]
                if len(corners) == 3:
                    faces.append(corners)
                elif len(corners) == 4:
                    faces.append([corners[0], corners[1], corners[2]])
                    faces.append([corners[2], corners[1], corners[3]])
                else:
                    raise ModelError(f"line {lineno}: faces need 3 or 4 corners: {line!r}")
            # other statements (o, g, s, usemtl, ...) are ignored

    def _gather(values, column, width, name):
        if not faces:
            return np.zeros((0, width), dtype=np.float32)
        table = np.asarray(values, dtype=np.float32).reshape(-1, width)
        indices = np.array([corner[column] for face in faces for corner in face])
        if np.any(indices < 0) or np.any(indices >= len(table)):
            raise ModelError(f"{path}: {name} index out of range")
        return table[indices]

    mesh = Mesh(
        positions=_gather(verts, 0, 3, "vertex"),
        uvs=_gather(uvs, 1, 2, "texture coordinate"),
        normals=_gather(norms, 2, 3, "normal"),
    )
    print(f"{path} contains {len(mesh)} triangles")
    return mesh


def load_ply(path) -> Mesh:
    """
    Loads a PLY mesh into a flattened triangle Mesh.

    Polygons are fan-triangulated. Normals (nx, ny, nz) and texture coordinates
    (s/t, u/v or texture_u/texture_v) are used when present.
    """
    plydata = PlyData.read(str(path))
    vertex = plydata["vertex"]
    names = [p.name for p in vertex.properties]

    xyz = np.stack((np.asarray(vertex["x"]),
                    np.asarray(vertex["y"]),
                    np.asarray(vertex["z"])), axis=1).astype(np.float32)

    def _get_pair(candidates, count):
        """Stacks the first property group whose names are all present."""
        for group in candidates:
            if all(name in names for name in group):
                return np.stack([np.asarray(vertex[name]) for name in group], axis=1).astype(np.float32)
        return np.zeros((len(xyz), count), dtype=np.float32)

    normals = _get_pair([("nx", "ny", "nz")], 3)
    uvs = _get_pair([("s", "t"), ("u", "v"), ("texture_u", "texture_v")], 2)

    try:
        face = plydata["face"]
    except KeyError as e:
        raise ModelError(f"{path} has no face element") from e
    index_name = "vertex_indices" if "vertex_indices" in [p.name for p in face.properties] else "vertex_index"

    indices = []
    for polygon in face[index_name]:
        polygon = [int(i) for i in polygon]
        if len(polygon) < 3:
            raise ModelError(f"{path}: face with fewer than 3 vertices")
        for k in range(1, len(polygon) - 1):
            indices.extend((polygon[0], polygon[k], polygon[k + 1]))
    indices = np.asarray(indices, dtype=np.int64)
    if indices.size and (indices.min() < 0 or indices.max() >= len(xyz)):
        raise ModelError(f"{path}: vertex index out of range")

    mesh = Mesh(positions=xyz[indices], uvs=uvs[indices], normals=normals[indices])
    print(f"{path} contains {len(mesh)} triangles")
    return mesh


def load_model(path) -> Mesh:
    """Loads a mesh, choosing the parser from the file extension."""
    ext = os.path.splitext(str(path))[1].lower()
    if ext == ".obj":
        return load_obj(path)
    if ext == ".ply":
        return load_ply(path)
    raise ModelError(f"unsupported model type: {path}")
