"""Tests for texture wrap modes, filtering and construction."""

import numpy as np
import pytest

from softraster.color import Color
from softraster.errors import BadPositionError, BadSizeError
from softraster.texture import FilterMode, Texture, WrapMode, wrap_coord
from softraster.toy_data import make_checker_texture, make_gradient_texture


@pytest.mark.parametrize(
    ("mode", "coord", "expected"),
    [
        (WrapMode.CLAMP_TO_EDGE, (0.5, 0.5), (0.5, 0.5, False)),
        (WrapMode.CLAMP_TO_EDGE, (1.5, -0.5), (1.0, 0.0, False)),
        (WrapMode.CLAMP_TO_BORDER, (0.5, 0.5), (0.5, 0.5, False)),
        (WrapMode.CLAMP_TO_BORDER, (1.5, -0.5), (1.0, 0.0, True)),
        (WrapMode.REPEAT, (1.2, -0.4), (0.2, 0.6, False)),
        (WrapMode.REPEAT, (1.2, -0.6), (0.2, 0.4, False)),
        (WrapMode.MIRRORED_REPEAT, (1.2, -0.4), (0.8, 0.4, False)),
        (WrapMode.MIRRORED_REPEAT, (1.2, -0.6), (0.8, 0.6, False)),
        (WrapMode.MIRRORED_REPEAT, (1.2, -1.4), (0.8, 0.6, False)),
        (WrapMode.MIRRORED_REPEAT, (1.2, -1.6), (0.8, 0.4, False)),
        (WrapMode.MIRRORED_REPEAT, (1.2, 0.4), (0.8, 0.4, False)),
        (WrapMode.MIRRORED_REPEAT, (1.2, 1.4), (0.8, 0.6, False)),
        (WrapMode.MIRRORED_REPEAT, (1.2, 1.6), (0.8, 0.4, False)),
    ],
)
def test_wrap_coord(mode, coord, expected) -> None:
    x, y, use_border = wrap_coord(coord[0], coord[1], mode)
    assert x == pytest.approx(expected[0])
    assert y == pytest.approx(expected[1])
    assert use_border is expected[2]


def test_repeat_and_mirrored_repeat_samples() -> None:
    tex = make_gradient_texture(8, 8)
    for v in (0.1, 0.5):
        np.testing.assert_array_equal(
            tex.texture(1.25, v, WrapMode.REPEAT, FilterMode.NEAREST),
            tex.texture(0.25, v, WrapMode.REPEAT, FilterMode.NEAREST),
        )
        np.testing.assert_array_equal(
            tex.texture(1.25, v, WrapMode.MIRRORED_REPEAT, FilterMode.NEAREST),
            tex.texture(0.75, v, WrapMode.MIRRORED_REPEAT, FilterMode.NEAREST),
        )


def test_clamp_to_border_returns_border_color_exactly() -> None:
    tex = make_checker_texture()
    border = Color(10, 20, 30, 40)
    tex.set_border_color(border)
    assert tex.border_color == border

    for u, v in [(1.5, 0.5), (0.5, -0.1), (-3.0, 7.0)]:
        for filter_mode in FilterMode:
            sample = tex.texture(u, v, WrapMode.CLAMP_TO_BORDER, filter_mode)
            np.testing.assert_array_equal(sample, border.to_float())

    inside = tex.texture(0.1, 0.9, WrapMode.CLAMP_TO_BORDER, FilterMode.NEAREST)
    np.testing.assert_array_equal(inside, Color.white().to_float())


def test_linear_filter_at_texel_position_is_exact() -> None:
    tex = make_gradient_texture(4, 4)
    # u * 4 == 1 and (1 - v) * 4 == 2 land exactly on texel (1, 2)
    sample = tex.texture(0.25, 0.5, WrapMode.CLAMP_TO_EDGE, FilterMode.LINEAR)
    np.testing.assert_array_equal(sample, tex.get_color(1, 2).to_float())


def test_linear_filter_blends_neighbours() -> None:
    pixels = np.zeros((1, 2, 4), dtype=np.uint8)
    pixels[0, 0] = [0, 0, 0, 255]
    pixels[0, 1] = [255, 255, 255, 255]
    tex = Texture.from_array(pixels)
    sample = tex.texture(0.25, 1.0, WrapMode.CLAMP_TO_EDGE, FilterMode.LINEAR)
    np.testing.assert_allclose(sample, [0.5, 0.5, 0.5, 1.0], rtol=1e-6)


def test_nearest_filter_rounds_to_closest_texel() -> None:
    tex = make_gradient_texture(4, 4)
    sample = tex.texture(0.6, 0.4, WrapMode.CLAMP_TO_EDGE, FilterMode.NEAREST)
    np.testing.assert_array_equal(sample, tex.get_color(2, 2).to_float())


def test_v_is_flipped_so_v_one_is_the_top_row() -> None:
    tex = make_gradient_texture(4, 4)
    top = tex.texture(0.0, 1.0, WrapMode.CLAMP_TO_EDGE, FilterMode.NEAREST)
    bottom = tex.texture(0.0, 0.0, WrapMode.CLAMP_TO_EDGE, FilterMode.NEAREST)
    np.testing.assert_array_equal(top, tex.get_color(0, 0).to_float())
    np.testing.assert_array_equal(bottom, tex.get_color(0, 3).to_float())


def test_coordinate_one_stays_on_last_texel() -> None:
    tex = make_gradient_texture(4, 4)
    for filter_mode in FilterMode:
        sample = tex.texture(1.0, 0.0, WrapMode.CLAMP_TO_EDGE, filter_mode)
        np.testing.assert_array_equal(sample, tex.get_color(3, 3).to_float())


@pytest.mark.parametrize("wrap_mode", list(WrapMode))
@pytest.mark.parametrize("filter_mode", list(FilterMode))
def test_vectorized_sampling_matches_scalar(wrap_mode, filter_mode) -> None:
    tex = make_gradient_texture(5, 3)
    tex.set_border_color(Color(1, 2, 3, 4))
    rng = np.random.default_rng(7)
    us = rng.uniform(-2.0, 3.0, 64)
    vs = rng.uniform(-2.0, 3.0, 64)

    batch = tex.sample(us, vs, wrap_mode, filter_mode)

    expected = np.array([tex.texture(u, v, wrap_mode, filter_mode) for u, v in zip(us, vs)])
    np.testing.assert_array_equal(batch, expected)


def test_construction_and_access() -> None:
    tex = Texture(3, 2, Color.green())
    assert tex.get_color(2, 1) == Color.green()
    assert len(tex.as_u32()) == 6
    with pytest.raises(BadPositionError):
        tex.get_color(3, 0)
    with pytest.raises(BadSizeError):
        Texture(-1, 1)
    with pytest.raises(ValueError):
        Texture.from_array(np.zeros((2, 2, 3), dtype=np.uint8))


def test_colors_accept_raw_bytes() -> None:
    tex = Texture(2, 2, (1, 2, 3, 4))
    assert tex.get_color(1, 1) == Color(1, 2, 3, 4)

    tex.set_border_color(np.array([9, 8, 7, 6], dtype=np.uint8))
    assert tex.border_color == Color(9, 8, 7, 6)
    np.testing.assert_array_equal(tex.texture(2.0, 0.5, WrapMode.CLAMP_TO_BORDER), Color(9, 8, 7, 6).to_float())


def test_bad_border_color_is_rejected_when_set() -> None:
    tex = Texture(1, 1)
    with pytest.raises(ValueError):
        tex.set_border_color((1, 2, 3))
    with pytest.raises(ValueError):
        tex.set_border_color((0, 0, 0, 300))
    assert tex.border_color == Color.transparent()


def test_sampling_an_empty_texture_is_a_contract_violation() -> None:
    tex = Texture(0, 0)
    with pytest.raises(BadPositionError):
        tex.texture(0.5, 0.5)


def test_load_and_write_round_trip(tmp_path) -> None:
    tex = make_gradient_texture(4, 2)
    path = tmp_path / "tex.tga"
    tex.write(path)

    loaded = Texture.load(path)

    assert (loaded.width, loaded.height) == (4, 2)
    np.testing.assert_array_equal(loaded.as_u8(), tex.as_u8())
