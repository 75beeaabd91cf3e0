"""Tests for keyframe sampling."""

import dataclasses

import numpy as np
import numpy.testing as npt
import pytest

from vfx_blueprint.core.orientation import Vec3
from vfx_blueprint.core.params import AnimationType, MotionDirectionMode
from vfx_blueprint.core.presets import build_preset_params, resolve_style
from vfx_blueprint.procedural.blueprint import build_keyframe_times
from vfx_blueprint.procedural.keyframes import (
    EXPLODE_MIN_SHRINK,
    LOOP_FADE_EXPONENT,
    MotionContext,
    apply_motion_delay,
    build_animation_keyframes,
    delayed_progress_time,
    get_sampler,
    sample_explode,
    sample_orbit,
    sample_rise,
)
from vfx_blueprint.procedural.state import MIN_SCALE, build_particle_state

FLOAT32_MIN_SCALE = np.float32(MIN_SCALE)


def bake(params, index=0, total=1, style=None):
    style = style or resolve_style(params)
    state = build_particle_state(params, style, index, total)
    times = build_keyframe_times(params.lifetime, style.keyframe_steps)
    return state, times, build_animation_keyframes(params, style, state, times)


class TestTrackLayout:
    def test_shapes(self, fireball_params) -> None:
        _, times, track = bake(fireball_params)
        n = len(times)
        assert track.positions.shape == (n * 3,)
        assert track.rotations.shape == (n * 4,)
        assert track.scales.shape == (n * 3,)
        assert track.colors is None
        assert track.sample_count == n
        assert track.positions.dtype == np.float32

    def test_read_only(self, fireball_params) -> None:
        _, _, track = bake(fireball_params)
        with pytest.raises(ValueError):
            track.positions[0] = 1.0

    def test_deterministic(self, fireball_params) -> None:
        _, _, a = bake(fireball_params, 3, 10)
        _, _, b = bake(fireball_params, 3, 10)
        npt.assert_array_equal(a.positions, b.positions)
        npt.assert_array_equal(a.rotations, b.rotations)
        npt.assert_array_equal(a.scales, b.scales)


@pytest.mark.parametrize("animation", list(AnimationType))
class TestInvariants:
    """Properties every animation type keeps."""

    def test_unit_quaternions(self, fireball_params, animation) -> None:
        fireball_params.animation_type = animation
        for i in range(5):
            _, _, track = bake(fireball_params, i, 5)
            norms = np.linalg.norm(track.rotations.reshape(-1, 4), axis=1)
            npt.assert_allclose(norms, 1.0, atol=1e-5)

    def test_scale_floor(self, fireball_params, animation) -> None:
        fireball_params.animation_type = animation
        fireball_params.particle_size = 0.02
        for i in range(5):
            _, _, track = bake(fireball_params, i, 5)
            assert track.scales.min() >= FLOAT32_MIN_SCALE

    def test_finite(self, fireball_params, animation) -> None:
        fireball_params.animation_type = animation
        _, _, track = bake(fireball_params, 2, 5)
        assert np.isfinite(track.positions).all()


class TestSamplers:
    """Individual animation samplers."""

    def test_explode_endpoints(self, fireball_params, fireball_style) -> None:
        state = build_particle_state(fireball_params, fireball_style, 0, 1)
        ctx = MotionContext.create(fireball_params, fireball_style, state)

        position, scale = sample_explode(ctx, 0.0, 0.0)
        assert position == state.initial_position
        assert scale == state.scale

        position, scale = sample_explode(ctx, 1.0, fireball_params.lifetime)
        expansion = 1 + fireball_style.explosion_spread
        shrink = max(EXPLODE_MIN_SHRINK, 1 - fireball_style.explosion_shrink)
        assert position.to_tuple() == pytest.approx((state.initial_position * expansion).to_tuple())
        assert scale.to_tuple() == pytest.approx((state.scale * shrink).to_tuple())

    def test_rise_climbs_and_grows(self) -> None:
        params = build_preset_params("smoke")
        style = resolve_style(params)
        state = build_particle_state(params, style, 0, 1)
        ctx = MotionContext.create(params, style, state)
        position, scale = sample_rise(ctx, 1.0, params.lifetime)
        assert position.y == pytest.approx(state.initial_position.y + style.rise_height * style.rise_speed)
        assert scale.to_tuple() == pytest.approx((state.scale * style.rise_scale_end).to_tuple())

    def test_orbit_keeps_radius(self, fireball_params, fireball_style) -> None:
        fireball_params.animation_type = AnimationType.ORBIT
        state = build_particle_state(fireball_params, fireball_style, 0, 1)
        ctx = MotionContext.create(fireball_params, fireball_style, state)
        for progress in (0.0, 0.3, 0.7):
            position, _ = sample_orbit(ctx, progress, 0.0)
            assert position.horizontal_length == pytest.approx(state.radius)

    def test_sampler_registry(self) -> None:
        assert get_sampler(AnimationType.RISE) is sample_rise
        assert get_sampler("unknown") is sample_orbit


class TestMotionDelay:
    """Delayed starts for strand and cluster particles."""

    def test_zero_delay_is_identity(self) -> None:
        for progress in (0.0, 0.3, 1.0):
            assert apply_motion_delay(progress, 0.0) == progress

    def test_holds_then_spans_window(self) -> None:
        assert apply_motion_delay(0.25, 0.5) == 0.0
        assert apply_motion_delay(0.75, 0.5) == pytest.approx(0.5)
        assert apply_motion_delay(1.0, 0.5) == pytest.approx(1.0)

    def test_delay_is_capped(self) -> None:
        assert apply_motion_delay(0.96, 2.0) == pytest.approx(0.2)
        assert apply_motion_delay(0.5, -1.0) == 0.5

    def test_delayed_progress_time(self) -> None:
        assert delayed_progress_time(0.5, 0.5, 2.0) == pytest.approx(1.5)
        assert delayed_progress_time(0.0, 1.0, 3.0) == pytest.approx(3.0)

    @pytest.mark.parametrize("sampler", [sample_rise, sample_explode])
    def test_delayed_sampler(self, sampler) -> None:
        params = build_preset_params("smoke")
        style = resolve_style(params)
        state = build_particle_state(params, style, 3, 10)
        plain = MotionContext.create(params, style, state)
        delayed = MotionContext.create(params, style, dataclasses.replace(state, motion_delay=0.5))

        held_position, held_scale = sampler(delayed, 0.4, 0.0)
        start_position, start_scale = sampler(plain, 0.0, 0.0)
        assert held_position.to_tuple() == pytest.approx(start_position.to_tuple())
        assert held_scale.to_tuple() == pytest.approx(start_scale.to_tuple())

        late_position, _ = sampler(delayed, 0.75, 0.0)
        half_position, _ = sampler(plain, 0.5, 0.0)
        assert late_position.to_tuple() == pytest.approx(half_position.to_tuple())

        end_position, _ = sampler(delayed, 1.0, 0.0)
        assert end_position.to_tuple() == pytest.approx(sampler(plain, 1.0, 0.0)[0].to_tuple())


class TestKinematics:
    def test_velocity_and_acceleration(self, fireball_params, fireball_style) -> None:
        fireball_params.animation_type = AnimationType.CUSTOM
        fireball_params.motion_direction_mode = MotionDirectionMode.CUSTOM
        fireball_params.motion_direction = Vec3(0, 1, 0)
        fireball_params.motion_acceleration = Vec3(0, -2, 0)
        state, times, track = bake(fireball_params, 0, 1, fireball_style)

        t = float(times[-1])
        expected = (
            state.initial_position
            + state.velocity * t
            + state.acceleration * (0.5 * t * t)
        )
        last = track.position_at(track.sample_count - 1)
        assert last.to_tuple() == pytest.approx(expected.to_tuple(), abs=1e-4)
        assert track.position_at(0).to_tuple() == pytest.approx(state.initial_position.to_tuple(), abs=1e-5)


class TestLoopFade:
    def test_scale_fades_near_cycle_end(self, fireball_params, fireball_style) -> None:
        fireball_params.animation_type = AnimationType.ORBIT
        fireball_params.emitter.loop_particles = True
        state = build_particle_state(fireball_params, fireball_style, 0, 1)
        state = dataclasses.replace(state, cycle_offset=0.9)
        times = build_keyframe_times(fireball_params.lifetime, fireball_style.keyframe_steps)
        track = build_animation_keyframes(fireball_params, fireball_style, state, times)

        window = fireball_style.emitter_fade_window
        factor = (1 - (0.9 - (1 - window)) / window) ** LOOP_FADE_EXPONENT
        assert track.scale_at(0).to_tuple() == pytest.approx((state.scale * factor).to_tuple(), rel=1e-5)


class TestArcFlow:
    """Rainbow-arc travel."""

    def test_burst_collapses_outside_unit_phase(self, rainbow_params) -> None:
        rainbow_params.arc_flow_mode = "burst"
        rainbow_params.arc_flow_speed = 3
        style = resolve_style(rainbow_params)
        state, times, track = bake(rainbow_params, 0, 10, style)
        scales = track.scales.reshape(-1, 3)
        for i, time in enumerate(times):
            phase = float(time) / rainbow_params.lifetime * state.arc_travel_speed
            if phase <= 0 or phase >= 1:
                npt.assert_array_equal(scales[i], 0.0)
            elif 0.12 < phase < 0.88:
                assert scales[i].min() > 0

    def test_continuous_stays_on_arc(self, rainbow_params, rainbow_style) -> None:
        for i in range(10):
            state, _, track = bake(rainbow_params, i, 10, rainbow_style)
            assert track.scales.min() >= 0
            positions = track.positions.reshape(-1, 3)
            assert np.isfinite(positions).all()
            assert np.abs(positions[:, 2]).max() <= 1.0

    def test_static_gradient_colors(self, rainbow_params, rainbow_style) -> None:
        _, times, track = bake(rainbow_params, 4, 10, rainbow_style)
        colors = track.colors.reshape(-1, 3)
        assert colors.shape == (len(times), 3)
        npt.assert_array_equal(colors, np.repeat(colors[:1], len(times), axis=0))
        assert ((colors >= 0) & (colors <= 1)).all()


def test_lifetime_gradient_changes_color(fireball_params) -> None:
    fireball_params.color_gradient = [
        {"stop": 0, "color": "#ff0000"},
        {"stop": 1, "color": "#0000ff"},
    ]
    fireball_params.color_gradient_playback = "lifetime"
    _, _, track = bake(fireball_params, 1, 4)
    colors = track.colors.reshape(-1, 3)
    assert not np.allclose(colors[0], colors[2])
