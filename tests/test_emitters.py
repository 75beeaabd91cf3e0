"""Tests for emission shape samplers."""

import math

import pytest

from vfx_blueprint.core.params import EmissionShape
from vfx_blueprint.core.presets import StyleDefinition
from vfx_blueprint.core.rng import SeededRandom
from vfx_blueprint.procedural.emitters import (
    DEFAULT_ARC_END,
    DEFAULT_ARC_START,
    arc_angle_range,
    compute_emission_position,
    sample_box,
    sample_rainbow_arc,
    sample_vortex,
)

INDICES = range(64)
STYLE = StyleDefinition()


def streams(effect_type: str = "test"):
    return [SeededRandom(effect_type, i) for i in INDICES]


def sample_all(shape: EmissionShape, spread: float, surface_only: bool, style=STYLE):
    return [
        compute_emission_position(shape, spread, random, style, surface_only)
        for random in streams()
    ]


class TestStandardShapes:
    """Geometric bounds of each shape."""

    def test_sphere_surface(self) -> None:
        for sample in sample_all(EmissionShape.SPHERE, 1.5, True):
            assert sample.position.length == pytest.approx(1.5)

    def test_sphere_volume(self) -> None:
        for sample in sample_all(EmissionShape.SPHERE, 1.5, False):
            assert sample.position.length <= 1.5 + 1e-9

    def test_cone(self) -> None:
        spread = 2.0
        for sample in sample_all(EmissionShape.CONE, spread, False):
            assert 0.0 <= sample.position.y <= spread * STYLE.cone_height_multiplier
            assert sample.position.horizontal_length <= spread * STYLE.cone_radius_multiplier + 1e-9

    def test_cone_surface_widens_with_height(self) -> None:
        spread = 2.0
        height_range = spread * STYLE.cone_height_multiplier
        base_radius = spread * STYLE.cone_radius_multiplier
        for sample in sample_all(EmissionShape.CONE, spread, True):
            expected = base_radius * sample.position.y / height_range
            assert sample.position.horizontal_length == pytest.approx(expected)

    def test_ring_surface(self) -> None:
        for sample in sample_all(EmissionShape.RING, 1.0, True):
            assert sample.position.horizontal_length == pytest.approx(STYLE.ring_radius_multiplier)
            assert abs(sample.position.y) <= STYLE.ring_height / 2

    def test_ring_thickness(self) -> None:
        radius = STYLE.ring_radius_multiplier
        for sample in sample_all(EmissionShape.RING, 1.0, False):
            assert abs(sample.position.horizontal_length - radius) <= STYLE.ring_thickness / 2 + 1e-9

    def test_disc(self) -> None:
        for sample in sample_all(EmissionShape.DISC, 1.2, False):
            assert sample.position.y == 0.0
            assert sample.position.horizontal_length <= 1.2 + 1e-9

    def test_disc_rim(self) -> None:
        for sample in sample_all(EmissionShape.DISC, 1.2, True):
            assert sample.position.horizontal_length == pytest.approx(1.2)

    def test_box_volume(self) -> None:
        for sample in sample_all(EmissionShape.BOX, 0.5, False):
            assert all(abs(c) <= 0.5 for c in sample.position.to_tuple())

    def test_box_surface(self) -> None:
        for sample in sample_all(EmissionShape.BOX, 0.5, True):
            coords = sample.position.to_tuple()
            assert all(abs(c) <= 0.5 for c in coords)
            assert any(abs(c) == 0.5 for c in coords)

    def test_unknown_shape_is_box(self) -> None:
        random = SeededRandom("test", 3)
        fallback = compute_emission_position("triangle", 1.0, random, STYLE)
        assert fallback == sample_box(1.0, random, STYLE, False)

    def test_pure(self) -> None:
        a = compute_emission_position(EmissionShape.SPHERE, 1.0, SeededRandom("x", 5), STYLE)
        b = compute_emission_position(EmissionShape.SPHERE, 1.0, SeededRandom("x", 5), STYLE)
        assert a == b


class TestVortex:
    """Layered funnel emitter."""

    @pytest.fixture
    def style(self) -> StyleDefinition:
        return StyleDefinition.from_dict({
            "custom_emitter": "vortex",
            "vortex_height": 3.0,
            "vortex_base_radius": 1.5,
            "vortex_tip_radius": 0.2,
            "vortex_layers": 5,
        })

    def test_layers(self, style) -> None:
        for random in streams():
            sample = sample_vortex(1.0, random, style)
            assert sample.layer_t in (0.0, 0.25, 0.5, 0.75, 1.0)
            assert sample.base_radius == pytest.approx(1.5)
            assert sample.tip_radius == pytest.approx(0.2)
            assert 0.2 - 1e-9 <= sample.radius <= 1.5 + 1e-9
            assert sample.height == 3.0

    def test_radius_grows_with_layer(self, style) -> None:
        samples = sorted((sample_vortex(1.0, r, style) for r in streams()), key=lambda s: s.layer_t)
        radii = [s.radius for s in samples]
        assert radii == sorted(radii)

    def test_overrides_shape(self, style) -> None:
        sample = compute_emission_position(EmissionShape.SPHERE, 1.0, SeededRandom("t", 0), style)
        assert sample.layer_t is not None
        assert sample.base_radius is not None

    def test_defaults_from_spread(self) -> None:
        style = StyleDefinition.from_dict({"custom_emitter": "vortex"})
        sample = sample_vortex(2.0, SeededRandom("t", 1), style)
        assert sample.height == pytest.approx(4.6)
        assert sample.base_radius == pytest.approx(2.1)


class TestRainbowArc:
    """Upright arc emitter."""

    @pytest.fixture
    def style(self) -> StyleDefinition:
        return StyleDefinition.from_dict({
            "custom_emitter": "rainbowArc",
            "arc_radius": 2.0,
            "arc_start_angle": 0.5,
            "arc_end_angle": 2.5,
            "arc_thickness": 0.4,
            "arc_height_offset": 0.25,
        })

    def test_on_arc(self, style) -> None:
        for random in streams():
            sample = sample_rainbow_arc(1.0, random, style)
            assert 0.5 <= sample.angle <= 2.5
            assert abs(sample.lateral) <= 0.2
            assert 0.0 <= sample.layer_t <= 1.0
            assert sample.position.x == pytest.approx(math.cos(sample.angle) * 2.0)
            assert sample.position.y == pytest.approx(math.sin(sample.angle) * 2.0 + 0.25)
            assert sample.position.z == sample.lateral
            assert sample.arc_range == (0.5, 2.5)

    def test_layer_follows_lateral(self, style) -> None:
        for random in streams():
            sample = sample_rainbow_arc(1.0, random, style)
            assert sample.layer_t == pytest.approx(sample.lateral / 0.4 + 0.5)

    def test_default_range(self) -> None:
        style = StyleDefinition.from_dict({"custom_emitter": "rainbowArc"})
        assert arc_angle_range(style) == (DEFAULT_ARC_START, DEFAULT_ARC_END)
        sample = sample_rainbow_arc(2.0, SeededRandom("t", 2), style)
        assert sample.arc_radius == pytest.approx(2.2)
