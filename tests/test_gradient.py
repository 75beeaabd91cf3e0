"""Tests for color gradient sampling."""

import pytest

from vfx_blueprint.core.gradient import (
    ColorGradient,
    GradientBinding,
    GradientPlayback,
    GradientSource,
    GradientStop,
)


@pytest.fixture
def ramp() -> ColorGradient:
    return ColorGradient.from_stops([
        {"stop": 0.75, "color": "#0000ff"},
        {"stop": 0.25, "color": "#ff0000"},
        {"stop": 0.5, "color": "#00ff00"},
    ])


class TestFromStops:
    """Normalization of raw stop lists."""

    def test_sorted(self, ramp: ColorGradient) -> None:
        assert [s.t for s in ramp.stops] == [0.25, 0.5, 0.75]

    def test_clamps_phase(self) -> None:
        gradient = ColorGradient.from_stops([{"stop": -1, "color": "#000000"}, {"t": 3, "color": "#ffffff"}])
        assert [s.t for s in gradient.stops] == [0.0, 1.0]

    def test_accepts_rgb_lists(self) -> None:
        gradient = ColorGradient.from_stops([{"stop": 0, "color": [1, 0, 0]}])
        assert gradient.stops[0].color == (1.0, 0.0, 0.0)

    def test_empty_or_invalid(self) -> None:
        assert ColorGradient.from_stops(None) is None
        assert ColorGradient.from_stops([]) is None
        assert ColorGradient.from_stops(["#ff0000", 5]) is None
        assert ColorGradient.from_stops("#ff0000") is None

    def test_to_list(self, ramp: ColorGradient) -> None:
        assert ramp.to_list()[0] == {"stop": 0.25, "color": "#ff0000"}

    def test_stop_hex(self) -> None:
        assert GradientStop(0.0, (0.0, 1.0, 0.0)).hex == "#00ff00"


class TestSample:
    """Clamped and wrapped sampling."""

    def test_at_stop(self, ramp: ColorGradient) -> None:
        assert ramp.sample(0.5) == (0.0, 1.0, 0.0)
        assert ramp.sample(0.25) == (1.0, 0.0, 0.0)
        assert ramp.sample(0.75) == (0.0, 0.0, 1.0)

    def test_boundaries(self, ramp: ColorGradient) -> None:
        assert ramp.sample(0.0) == (1.0, 0.0, 0.0)
        assert ramp.sample(1.0) == (0.0, 0.0, 1.0)
        assert ramp.sample(-3.0) == (1.0, 0.0, 0.0)
        assert ramp.sample(7.0) == (0.0, 0.0, 1.0)

    def test_interpolates(self, ramp: ColorGradient) -> None:
        r, g, b = ramp.sample(0.375)
        assert (r, g, b) == pytest.approx((0.5, 0.5, 0.0))

    def test_wrap(self, ramp: ColorGradient) -> None:
        assert ramp.sample(1.375, wrap=True) == pytest.approx(ramp.sample(0.375))
        assert ramp.sample(-0.625, wrap=True) == pytest.approx(ramp.sample(0.375))

    def test_sample_hex(self, ramp: ColorGradient) -> None:
        assert ramp.sample_hex(0.5) == "#00ff00"


class TestBinding:
    """Phase evolution per playback mode."""

    def test_static(self, ramp: ColorGradient) -> None:
        binding = GradientBinding(ramp, base_t=0.4)
        assert binding.phase_at(0.9, 3.0) == 0.4

    def test_lifetime_wraps(self, ramp: ColorGradient) -> None:
        binding = GradientBinding(ramp, base_t=0.8, playback=GradientPlayback.LIFETIME)
        assert binding.phase_at(0.5, 1.0) == pytest.approx(0.3)

    def test_scroll(self, ramp: ColorGradient) -> None:
        binding = GradientBinding(ramp, base_t=0.1, playback=GradientPlayback.SCROLL, speed=0.5, wrap=True)
        assert binding.phase_at(0.0, 2.0) == pytest.approx(1.1)
        assert binding.sample_at(0.0, 2.0) == pytest.approx(ramp.sample(0.1))

    def test_to_dict(self, ramp: ColorGradient) -> None:
        data = GradientBinding(ramp, 0.5, source=GradientSource.LAYER).to_dict()
        assert data["source"] == "layer"
        assert data["playback"] == "static"
        assert len(data["stops"]) == 3
