"""Tests for fixed-point and float color conversion."""

import numpy as np
import pytest

from softraster.color import Color, fixed_to_float, float_to_fixed


def test_every_byte_survives_float_round_trip() -> None:
    values = np.arange(256, dtype=np.uint8)
    colors = np.stack([values, values[::-1], values, np.full(256, 7, dtype=np.uint8)], axis=1)
    np.testing.assert_array_equal(float_to_fixed(fixed_to_float(colors)), colors)


def test_color_round_trip_through_float() -> None:
    color = Color(12, 200, 255, 1)
    assert Color.from_float(color.to_float()) == color


def test_from_float_clamps_and_rounds_half_up() -> None:
    assert Color.from_float([1.5, -0.25, 0.5, 1.0]) == Color(255, 0, 128, 255)


def test_to_float_divides_by_255() -> None:
    np.testing.assert_allclose(Color(255, 0, 51, 255).to_float(), [1.0, 0.0, 0.2, 1.0], rtol=1e-6)
    assert Color.red().to_float().dtype == np.float32


def test_equality_is_component_wise() -> None:
    assert Color(1, 2, 3, 4) == Color(1, 2, 3, 4)
    assert Color(1, 2, 3, 4) != Color(1, 2, 3, 5)
    assert Color.transparent() == Color(0, 0, 0, 0)
    assert tuple(Color.red()) == (255, 0, 0, 255)


def test_channel_out_of_range_is_rejected() -> None:
    with pytest.raises(ValueError):
        Color(256, 0, 0, 0)
