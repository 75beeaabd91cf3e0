"""Tests for color and scalar helpers."""

import math

import pytest

from vfx_blueprint.core.params import EmissionShape
from vfx_blueprint.core.utils import ColorUtils, MathUtils


class TestColorUtils:
    """Hex parsing, formatting and mixing."""

    def test_hex_to_rgb(self) -> None:
        assert ColorUtils.hex_to_rgb("#ff0000") == (1.0, 0.0, 0.0)
        assert ColorUtils.hex_to_rgb("00ff00") == (0.0, 1.0, 0.0)

    def test_invalid_hex_reads_as_white(self) -> None:
        assert ColorUtils.hex_to_rgb("#zzzzzz") == ColorUtils.WHITE
        assert ColorUtils.hex_to_rgb(None) == ColorUtils.WHITE
        assert ColorUtils.hex_to_rgb("#fff") == ColorUtils.WHITE

    def test_normalize_hex(self) -> None:
        assert ColorUtils.normalize_hex("ABCDEF") == "#abcdef"
        assert ColorUtils.normalize_hex(" #A0B0C0 ") == "#a0b0c0"
        assert ColorUtils.normalize_hex("nope") == "#ffffff"
        assert ColorUtils.normalize_hex(123, "#000000") == "#000000"

    def test_rgb_to_hex_clamps_channels(self) -> None:
        assert ColorUtils.rgb_to_hex((2.0, -1.0, 0.0)) == "#ff0000"
        assert ColorUtils.rgb_to_hex((math.nan, 0.0, 0.0)) == "#ff0000"

    def test_mix_endpoints(self) -> None:
        assert ColorUtils.mix_hex("#000000", "#ffffff", 0.0) == "#000000"
        assert ColorUtils.mix_hex("#000000", "#ffffff", 1.0) == "#ffffff"

    def test_mix_midpoint(self) -> None:
        assert ColorUtils.mix_hex("#000000", "#ffffff", 0.5) == "#808080"

    def test_brighten_saturates(self) -> None:
        assert ColorUtils.brighten_hex("#ffffff", 0.1) == "#ffffff"
        assert ColorUtils.brighten_hex("#000000", 0.1) != "#000000"


class TestMathUtils:
    """Clamping, wrapping and finite checks."""

    def test_clamp(self) -> None:
        assert MathUtils.clamp(5, 0, 1) == 1
        assert MathUtils.clamp(-5, 0, 1) == 0
        assert MathUtils.clamp(0.5, 0, 1) == 0.5

    def test_clamp01_non_finite(self) -> None:
        assert MathUtils.clamp01(math.inf) == 0.0
        assert MathUtils.clamp01(math.nan) == 0.0

    def test_wrap01(self) -> None:
        assert MathUtils.wrap01(1.25) == pytest.approx(0.25)
        assert MathUtils.wrap01(-0.25) == pytest.approx(0.75)
        assert MathUtils.wrap01(1.0) == 0.0
        assert 0.0 <= MathUtils.wrap01(-1e-18) < 1.0

    def test_fract(self) -> None:
        assert MathUtils.fract(2.75) == pytest.approx(0.75)
        assert MathUtils.fract(-0.25) == pytest.approx(0.75)

    def test_lerp(self) -> None:
        assert MathUtils.lerp(2, 4, 0.5) == 3

    def test_is_finite(self) -> None:
        assert MathUtils.is_finite(1.5)
        assert MathUtils.is_finite(3)
        assert not MathUtils.is_finite(True)
        assert not MathUtils.is_finite("1")
        assert not MathUtils.is_finite(math.inf)


class TestVariant:
    """Enum coercion at the input boundary."""

    def test_exact_and_case_insensitive(self) -> None:
        assert EmissionShape.coerce("sphere") is EmissionShape.SPHERE
        assert EmissionShape.coerce("SPHERE") is EmissionShape.SPHERE

    def test_unknown_falls_back_to_first_member(self) -> None:
        assert EmissionShape.coerce("triangle") is EmissionShape.BOX
        assert EmissionShape.coerce(None) is EmissionShape.BOX
        assert EmissionShape.default() is EmissionShape.BOX
