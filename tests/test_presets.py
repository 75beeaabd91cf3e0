"""Tests for styles, presets and style resolution."""

import logging

import pytest

from vfx_blueprint.core.gradient import GradientPlayback, GradientSource
from vfx_blueprint.core.orientation import Vec3
from vfx_blueprint.core.params import AnimationType, ArcFlowMode, EffectParams
from vfx_blueprint.core.presets import (
    DEFAULT_REGISTRY,
    EFFECT_PRESETS,
    EFFECT_STYLES,
    AlphaMode,
    CustomEmitter,
    StyleDefinition,
    StyleRegistry,
    build_preset_params,
    create_random_params,
    get_effect_preset,
    get_effect_style,
    list_effect_types,
    resolve_style,
    with_effect_type,
)


class TestStyleLookup:
    """Named styles and the default fallback."""

    def test_unknown_type_gets_default(self) -> None:
        assert get_effect_style("mystery").to_dict() == StyleDefinition().to_dict()

    def test_named_style_applied(self) -> None:
        style = get_effect_style("fireball")
        assert style.max_particles == 120
        assert style.explosion_spread == 2.8
        assert style.geometry["type"] == "sphere"

    def test_tornado_is_vortex(self) -> None:
        style = get_effect_style("tornado")
        assert style.is_vortex
        assert not style.is_rainbow_arc
        assert style.vortex_layers == 20

    def test_rainbow_is_arc(self) -> None:
        style = get_effect_style("rainbow")
        assert style.is_rainbow_arc
        assert style.arc_radius == 3.0
        assert len(style.color_gradient.stops) == 7
        assert style.color_gradient_source is GradientSource.LAYER
        assert style.keyframe_steps == 12

    def test_overrides_are_copies(self) -> None:
        overrides = DEFAULT_REGISTRY.get_style_overrides("aura")
        overrides["spin_rates"].append(9)
        overrides["geometry"]["type"] = "box"
        fresh = DEFAULT_REGISTRY.get_style_overrides("aura")
        assert fresh["spin_rates"] == [1.6, 1.1, 1.4]
        assert fresh["geometry"]["type"] == "icosahedron"
        assert EFFECT_STYLES["aura"]["geometry"]["type"] == "icosahedron"

    def test_listing(self) -> None:
        assert "rainbow" in DEFAULT_REGISTRY.list_styles()
        assert list_effect_types() == sorted(EFFECT_PRESETS)

    def test_style_from_dict_coerces(self) -> None:
        style = StyleDefinition.from_dict({
            "custom_emitter": "RAINBOW_ARC",
            "alpha_mode": "blend",
            "keyframe_steps": 2,
            "base_scale": [1, "x", 2],
            "unknown_key": 1,
        })
        assert style.custom_emitter is CustomEmitter.RAINBOW_ARC
        assert style.alpha_mode is AlphaMode.BLEND
        assert style.keyframe_steps == 4
        assert style.base_scale == (1.0, 1.0, 2.0)

    def test_unknown_custom_emitter_is_none(self) -> None:
        assert CustomEmitter.coerce("meteor") is None
        assert CustomEmitter.coerce("rainbowArc") is CustomEmitter.RAINBOW_ARC


class TestPresets:
    def test_build_known_preset(self) -> None:
        params = build_preset_params("tornado")
        assert params.particle_count == 140
        assert params.animation_type is AnimationType.SPIRAL
        assert params.effect_type == "tornado"
        assert params.effect_identifier == "tornado:effect"

    def test_unknown_uses_fallback(self) -> None:
        params = build_preset_params("nope")
        assert params.particle_count == 60
        assert params.lifetime == 1.8
        assert params.effect_type == "nope"

    def test_rainbow_enables_arc(self) -> None:
        assert build_preset_params("rainbow").use_arc_emitter is True

    def test_preset_copy(self) -> None:
        preset = get_effect_preset("aura")
        preset["particle_count"] = 1
        assert get_effect_preset("aura")["particle_count"] == 90
        assert get_effect_preset("mystery") is None

    def test_with_effect_type_keeps_other_fields(self) -> None:
        params = build_preset_params("fireball")
        params.emitter.spawn_rate = 7
        params.motion_drag = 0.5
        switched = with_effect_type(params, "smoke")
        assert switched.effect_type == "smoke"
        assert switched.animation_type is AnimationType.RISE
        assert switched.primary_color == "#6b6b6b"
        assert switched.emitter.spawn_rate == 7
        assert switched.motion_drag == 0.5
        assert params.effect_type == "fireball"

    def test_with_effect_type_applies_arc_flag(self) -> None:
        switched = with_effect_type(build_preset_params("fireball"), "rainbow")
        assert switched.use_arc_emitter is True


class TestResolve:
    """Layering of params on top of the named style."""

    def test_particle_shape_override(self) -> None:
        params = build_preset_params("fireball")
        params.particle_shape = "cylinder"
        style = resolve_style(params)
        assert style.geometry["type"] == "cylinder"
        assert style.base_scale == (0.7, 1.4, 0.7)

    def test_unknown_particle_shape_keeps_style(self) -> None:
        params = build_preset_params("ice")
        params.particle_shape = "teapot"
        assert resolve_style(params).geometry["type"] == "octahedron"

    def test_opacity_switches_to_blend(self) -> None:
        params = build_preset_params("fireball")
        params.opacity = 0.5
        style = resolve_style(params)
        assert style.opacity_range == (0.5, 0.5)
        assert style.alpha_mode is AlphaMode.BLEND
        assert style.depth_write is False

    def test_full_opacity_keeps_opaque(self) -> None:
        params = build_preset_params("fireball")
        params.opacity = 1
        style = resolve_style(params)
        assert style.opacity_range == (1.0, 1.0)
        assert style.alpha_mode is AlphaMode.OPAQUE

    def test_param_gradient(self) -> None:
        params = build_preset_params("fireball")
        params.color_gradient = [{"stop": 0, "color": "#000000"}, {"stop": 1, "color": "#ffffff"}]
        params.color_gradient_source = "height"
        params.color_gradient_playback = "scroll"
        params.color_gradient_speed = 0.5
        style = resolve_style(params)
        assert style.color_gradient.sample_hex(1.0) == "#ffffff"
        assert style.color_gradient_source is GradientSource.HEIGHT
        assert style.color_gradient_playback is GradientPlayback.SCROLL
        assert style.color_gradient_speed == 0.5

    def test_tornado_keeps_explicit_spiral(self) -> None:
        style = resolve_style(build_preset_params("tornado"))
        assert style.spiral_height == 3.2
        assert style.spiral_revolutions == 5.5
        assert style.spiral_angular_speed == 1.1

    def test_vortex_defaults_for_user_style(self) -> None:
        registry = DEFAULT_REGISTRY.with_styles({"whirl": {"customEmitter": "vortex", "vortexHeight": 2}})
        params = EffectParams(effect_type="whirl")
        style = registry.resolve(params)
        assert style.is_vortex
        assert style.spiral_height == 2.0
        assert style.spiral_revolutions == 6.0
        assert style.spiral_angular_speed == 1.1

    def test_arc_param_geometry(self, rainbow_params) -> None:
        rainbow_params.arc_radius = 5
        rainbow_params.arc_flow_mode = "burst"
        style = resolve_style(rainbow_params)
        assert style.arc_radius == 5.0
        assert style.arc_flow_mode is ArcFlowMode.BURST

    def test_arc_disabled_on_rainbow(self, rainbow_params) -> None:
        rainbow_params.use_arc_emitter = False
        assert resolve_style(rainbow_params).custom_emitter is None

    def test_arc_on_unknown_type_merges_rainbow(self) -> None:
        params = EffectParams(effect_type="mystery", use_arc_emitter=True)
        style = resolve_style(params)
        assert style.is_rainbow_arc
        assert style.arc_radius == 3.0
        assert style.color_gradient is not None

    def test_arc_on_named_type_keeps_its_style(self) -> None:
        params = build_preset_params("fireball")
        params.use_arc_emitter = True
        style = resolve_style(params)
        assert style.is_rainbow_arc
        assert style.arc_radius is None
        assert style.color_gradient is None

    def test_resolve_does_not_touch_registry(self, rainbow_params) -> None:
        rainbow_params.arc_radius = 7
        resolve_style(rainbow_params)
        assert get_effect_style("rainbow").arc_radius == 3.0


class TestYamlStyles:
    """User style files."""

    def test_single_style_file(self, tmp_path) -> None:
        path = tmp_path / "frost.yaml"
        path.write_text("baseScale: [2, 2, 2]\nmaxParticles: 40\ncolor_bias: 0.9\n")
        registry = DEFAULT_REGISTRY.load_yaml(path)
        assert registry.has_style("frost")
        style = registry.get_effect_style("frost")
        assert style.base_scale == (2.0, 2.0, 2.0)
        assert style.max_particles == 40
        assert not DEFAULT_REGISTRY.has_style("frost")

    def test_styles_and_presets_mapping(self, tmp_path) -> None:
        path = tmp_path / "pack.yml"
        path.write_text(
            "styles:\n"
            "  glitter:\n"
            "    size_multiplier: 0.5\n"
            "presets:\n"
            "  glitter:\n"
            "    particle_count: 33\n"
            "    animation_type: pulse\n"
        )
        registry = StyleRegistry().load_yaml(tmp_path)
        params = registry.build_preset_params("glitter")
        assert params.particle_count == 33
        assert params.animation_type is AnimationType.PULSE
        assert registry.get_effect_style("glitter").size_multiplier == 0.5

    def test_bad_file_skipped(self, tmp_path, caplog) -> None:
        (tmp_path / "broken.yaml").write_text("styles: [unclosed\n")
        (tmp_path / "scalar.yaml").write_text("42\n")
        (tmp_path / "good.yaml").write_text("size_multiplier: 2\n")
        with caplog.at_level(logging.WARNING):
            registry = DEFAULT_REGISTRY.load_yaml(tmp_path)
        assert registry.has_style("good")
        assert not registry.has_style("broken")
        assert "broken.yaml" in caplog.text
        assert "scalar.yaml" in caplog.text

    def test_missing_path(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            DEFAULT_REGISTRY.load_yaml(tmp_path / "absent.yaml")


class TestRandomParams:
    def test_reproducible(self) -> None:
        assert create_random_params(42).to_dict() == create_random_params(42).to_dict()

    @pytest.mark.parametrize("seed", range(12))
    def test_valid(self, seed) -> None:
        params = create_random_params(seed)
        assert params.effect_type in list_effect_types()
        assert 10 <= params.particle_count <= 200
        assert params.effect_identifier == f"vfx:{params.effect_type}"
        if params.use_arc_emitter:
            assert params.arc_start_angle < params.arc_end_angle
            assert params.arc_radius is not None
        if params.motion_direction_mode.value == "inwards":
            assert params.motion_direction == Vec3(0.0, -1.0, 0.0)
