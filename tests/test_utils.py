"""Tests for mesh helpers and the frame counter."""

import numpy as np
import pytest

from softraster.color import Color
from softraster.config import RenderConfig
from softraster.framebuffer import Framebuffer
from softraster.primitives import Mesh
from softraster.render import Renderer
from softraster.toy_data import make_checker_texture, make_cube_mesh, make_quad_mesh
from softraster.utils import (
    Fps,
    FpsStatus,
    analyze_mesh_bounds,
    normalize_to_ndc,
    reduce_triangles,
    rgba_to_bgra,
    rotate_mesh,
)


def _strip_mesh(count: int) -> Mesh:
    # triangle i sits at x = i, so its first vertex names it
    positions = [[[i, 0.0, 0.0], [i + 0.5, 0.0, 0.0], [i, 1.0, 0.0]] for i in range(count)]
    return Mesh(np.array(positions, dtype=np.float32))


def test_reduce_triangles_keeps_whole_triangles_in_order() -> None:
    mesh = _strip_mesh(100)
    reduced = reduce_triangles(mesh, keep_fraction=0.25)

    assert len(reduced) == 25
    kept = reduced.positions[0::3, 0]
    assert list(kept) == sorted(kept)
    for i in range(len(reduced)):
        np.testing.assert_array_equal(reduced.triangle(i).positions, mesh.triangle(int(kept[i])).positions)

    assert reduce_triangles(mesh) is mesh
    assert len(reduce_triangles(mesh, keep_fraction=0.0)) == 0
    with pytest.raises(ValueError):
        reduce_triangles(mesh, keep_fraction=1.5)


def _lit_pixels(mesh: Mesh) -> int:
    renderer = Renderer(mesh, RenderConfig(width=32, height=32, shading="flat", progress=False))
    try:
        fb = renderer.draw()
    finally:
        renderer.close()
    return int(np.count_nonzero(fb.get_image()[..., 0]))


def test_reduced_mesh_renders() -> None:
    quad = make_quad_mesh()
    half = reduce_triangles(quad, keep_fraction=0.5)

    assert len(half) == 1
    assert 0 < _lit_pixels(half) < _lit_pixels(quad)


def test_normalize_to_ndc_fits_margin() -> None:
    mesh = Mesh(make_cube_mesh().positions * 10.0 + 3.0)
    stats = analyze_mesh_bounds(mesh)
    np.testing.assert_allclose(stats["center"], [3.0, 3.0, 3.0])
    np.testing.assert_allclose(stats["size"], [10.0, 10.0, 10.0])

    fitted = normalize_to_ndc(mesh, margin=0.8)

    np.testing.assert_allclose(fitted.positions.min(axis=0), [-0.8] * 3, atol=1e-6)
    np.testing.assert_allclose(fitted.positions.max(axis=0), [0.8] * 3, atol=1e-6)


def test_empty_mesh_helpers() -> None:
    empty = Mesh(np.zeros((0, 3)))
    assert analyze_mesh_bounds(empty)["count"] == 0
    assert len(normalize_to_ndc(empty)) == 0
    assert len(rotate_mesh(empty, (0.0, 1.0, 0.0))) == 0


def test_rotate_mesh_about_y() -> None:
    mesh = make_quad_mesh()
    turned = rotate_mesh(mesh, (0.0, 180.0, 0.0), degrees=True)

    np.testing.assert_allclose(turned.positions[:, 0], -mesh.positions[:, 0], atol=1e-6)
    np.testing.assert_allclose(turned.positions[:, 1], mesh.positions[:, 1], atol=1e-6)
    np.testing.assert_allclose(turned.normals, np.tile([0.0, 0.0, -1.0], (6, 1)), atol=1e-6)
    np.testing.assert_array_equal(turned.uvs, mesh.uvs)


def test_rotate_mesh_about_center() -> None:
    mesh = Mesh([[1.0, 0.0, 0.0], [2.0, 0.0, 0.0], [1.0, 1.0, 0.0]])
    turned = rotate_mesh(mesh, (0.0, 0.0, 90.0), center=(1.0, 0.0, 0.0), degrees=True)
    np.testing.assert_allclose(turned.positions, [[1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 0.0, 0.0]],
                               atol=1e-6)


def test_rgba_to_bgra_swaps_red_and_blue() -> None:
    fb = Framebuffer(2, 1)
    fb.set_color(0, 0, Color(1, 2, 3, 4))
    fb.set_color(1, 0, Color.red())

    swapped = rgba_to_bgra(fb.as_u32())

    assert swapped.view(np.uint8).tolist() == [3, 2, 1, 4, 0, 0, 255, 255]

    dst = np.zeros(2, dtype=np.uint32)
    assert rgba_to_bgra(fb.as_u32(), dst) is dst
    np.testing.assert_array_equal(dst, swapped)


def test_fps_counter() -> None:
    ticks = iter([0.0, 1.0, 2.5, 3.0])
    fps = Fps(interval=2.0, clock=lambda: next(ticks))

    assert fps.update() == (FpsStatus.NOT_READY, 0)
    assert fps.update() == (FpsStatus.NOT_READY, 0)
    assert fps.update() == (FpsStatus.UPDATED, 1)
    assert fps.update() == (FpsStatus.NOT_UPDATED, 1)


def test_checker_texture_pattern() -> None:
    tex = make_checker_texture(size=4, tiles=2)
    assert tex.get_color(0, 0) == Color.white()
    assert tex.get_color(2, 0) == Color.black()
    assert tex.get_color(3, 3) == Color.white()
