"""
Keyframe Sampler - bakes a particle's motion at fixed sample times

One sampler function per animation type, selected from a registry.
Each sampler maps (context, progress, elapsed) to a position and a
scale before kinematics; the driver then adds velocity/acceleration,
emitter-loop fading, rotation and gradient color.

Tracks are flat float32 arrays in time-major order:
positions / scales stride 3, rotations stride 4 (x, y, z, w),
colors stride 3.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from ..core.orientation import Vec3, euler_to_quaternion
from ..core.params import AnimationType, ArcFlowMode, EffectParams
from ..core.presets import StyleDefinition
from ..core.utils import MathUtils
from .emitters import arc_angle_range
from .state import MIN_SCALE, ParticleState

TWO_PI = math.pi * 2

LOOP_FADE_EXPONENT = 1.35
MIN_LOOP_FADE_WINDOW = 0.05
EXPLODE_MIN_SHRINK = 0.12
VORTEX_FALLOFF = 1.3
MAX_DELAY = 0.95


# ============================================================================
# Track
# ============================================================================

def _frozen(values: np.ndarray) -> np.ndarray:
    values.setflags(write=False)
    return values


@dataclass(frozen=True)
class KeyframeTrack:
    """Baked samples for one particle (flat, read-only float32 arrays)"""
    positions: np.ndarray
    rotations: np.ndarray
    scales: np.ndarray
    colors: Optional[np.ndarray] = None

    @property
    def sample_count(self) -> int:
        return len(self.positions) // 3

    def position_at(self, i: int) -> Vec3:
        return Vec3(*(float(v) for v in self.positions[i * 3:i * 3 + 3]))

    def scale_at(self, i: int) -> Vec3:
        return Vec3(*(float(v) for v in self.scales[i * 3:i * 3 + 3]))

    def rotation_at(self, i: int) -> Tuple[float, float, float, float]:
        return tuple(float(v) for v in self.rotations[i * 4:i * 4 + 4])

    def to_dict(self):
        data = {
            'positions': self.positions.tolist(),
            'rotations': self.rotations.tolist(),
            'scales': self.scales.tolist(),
        }
        if self.colors is not None:
            data['colors'] = self.colors.tolist()
        return data


# ============================================================================
# Motion Context
# ============================================================================

@dataclass(frozen=True)
class MotionContext:
    """Everything a sampler needs for one particle"""
    params: EffectParams
    style: StyleDefinition
    state: ParticleState
    duration: float
    effective_speed: float
    emitter_offset: Vec3

    @classmethod
    def create(cls, params: EffectParams, style: StyleDefinition,
               state: ParticleState) -> 'MotionContext':
        speed_multiplier = max(0.0, 1 + state.speed_offset)
        return cls(
            params=params,
            style=style,
            state=state,
            duration=params.lifetime if params.lifetime > 0 else 1.0,
            effective_speed=max(0.0, params.particle_speed) * speed_multiplier,
            emitter_offset=params.emission_offset,
        )

    def float_wave(self, progress: float) -> float:
        s = self.state
        return math.sin(progress * TWO_PI * (s.float_frequency or 1) + s.orbit_offset)


# (position, scale) before kinematics
SampleResult = Tuple[Vec3, Vec3]
Sampler = Callable[[MotionContext, float, float], SampleResult]


def _scaled(scale: Vec3, factor: float) -> Vec3:
    return scale * factor


def apply_motion_delay(progress: float, delay: float) -> float:
    """
    Remap lifetime progress so motion starts after `delay`.

    The particle holds progress 0 until the delay has passed, then covers
    the full range over the remaining window. A zero delay is the identity.
    """
    if not delay:
        return progress
    delay = MathUtils.clamp(delay, 0.0, MAX_DELAY)
    window = max(1e-4, 1 - delay)
    return MathUtils.clamp01((progress - delay) / window)


def delayed_progress_time(delay: float, phase: float, duration: float) -> float:
    """Absolute time at which a delayed particle reaches `phase` of its motion"""
    delay = MathUtils.clamp(delay or 0.0, 0.0, MAX_DELAY)
    window = max(1e-4, 1 - delay)
    return (delay + MathUtils.clamp01(phase) * window) * duration


# ============================================================================
# Animation Samplers
# ============================================================================

def sample_orbit(ctx: MotionContext, progress: float, elapsed: float) -> SampleResult:
    """Circle the emitter at the particle's radius with a vertical float"""
    s = ctx.state
    turns = max(1.0, ctx.effective_speed)
    angle = s.orbit_offset + progress * TWO_PI * turns
    position = Vec3(
        ctx.emitter_offset.x + math.cos(angle) * s.radius,
        s.initial_position.y + ctx.float_wave(progress) * s.float_strength,
        ctx.emitter_offset.z + math.sin(angle) * s.radius,
    )
    return position, s.scale


def sample_rise(ctx: MotionContext, progress: float, elapsed: float) -> SampleResult:
    """Climb by rise_height * rise_speed over the lifetime with optional drift"""
    s, style = ctx.state, ctx.style
    progress = apply_motion_delay(progress, s.motion_delay)
    x, y, z = s.initial_position.to_tuple()
    y += progress * style.rise_height * style.rise_speed

    if s.drift_amplitude > 0:
        drift_angle = progress * TWO_PI + s.drift_phase
        x += math.sin(drift_angle) * s.drift_amplitude
        z += math.cos(drift_angle * 0.8) * s.drift_amplitude

    growth = MathUtils.lerp(style.rise_scale_start, style.rise_scale_end, progress)
    return Vec3(x, y, z), _scaled(s.scale, growth)


def sample_explode(ctx: MotionContext, progress: float, elapsed: float) -> SampleResult:
    """Push outward from the start position while shrinking"""
    s, style = ctx.state, ctx.style
    progress = apply_motion_delay(progress, s.motion_delay)
    expansion = 1 + progress * style.explosion_spread
    shrink = max(EXPLODE_MIN_SHRINK, 1 - progress * style.explosion_shrink)
    return s.initial_position * expansion, _scaled(s.scale, shrink)


def _vortex_sample(ctx: MotionContext, angle: float, revolutions: float) -> SampleResult:
    s, style = ctx.state, ctx.style
    height = style.vortex_height if style.vortex_height is not None else (style.spiral_height or 2)
    layer_progress = MathUtils.fract(s.layer_t + revolutions * style.vortex_layer_drift)

    max_radius = style.vortex_base_radius if style.vortex_base_radius is not None else s.base_radius
    tip = style.vortex_tip_radius if style.vortex_tip_radius is not None else s.tip_radius
    min_radius = max(MIN_SCALE, tip)
    falloff = style.vortex_radius_falloff if style.vortex_radius_falloff is not None else VORTEX_FALLOFF
    radius_range = max(0.001, max_radius - min_radius)
    radius = min_radius + radius_range * math.pow(layer_progress, falloff)
    radius *= max(0.25, 1 - style.spiral_taper * (1 - layer_progress))

    if style.vortex_sway_radius > 0:
        radius += math.sin(angle * 0.35 + s.swirl_phase) * style.vortex_sway_radius

    y = ctx.emitter_offset.y - height * 0.5 + layer_progress * height
    if style.vortex_sway != 0:
        y += math.sin(angle * style.vortex_sway_speed + s.swirl_phase) * style.vortex_sway

    position = Vec3(
        ctx.emitter_offset.x + math.cos(angle) * radius,
        y,
        ctx.emitter_offset.z + math.sin(angle) * radius,
    )
    radial_scale = 0.65 + layer_progress * 0.45
    scale = Vec3(
        s.scale.x * radial_scale,
        s.scale.y * (0.85 + (1 - layer_progress) * 0.25),
        s.scale.z * radial_scale,
    )
    return position, scale


def sample_spiral(ctx: MotionContext, progress: float, elapsed: float) -> SampleResult:
    """
    Wind around the vertical axis.

    With the vortex emitter the radius and height follow the particle's
    funnel layer as it drifts upwards; otherwise the radius tapers and
    the height climbs with each fractional revolution.
    """
    s, style = ctx.state, ctx.style
    turns = style.spiral_revolutions * max(0.4, ctx.effective_speed * style.spiral_angular_speed)
    revolutions = turns * progress
    angle = s.orbit_offset + s.swirl_phase + revolutions * TWO_PI

    if style.is_vortex:
        return _vortex_sample(ctx, angle, revolutions)

    fractional = MathUtils.fract(revolutions)
    radius = s.radius * max(0.2, 1 - fractional * style.spiral_taper)
    position = Vec3(
        ctx.emitter_offset.x + math.cos(angle) * radius,
        s.initial_position.y + fractional * style.spiral_height,
        ctx.emitter_offset.z + math.sin(angle) * radius,
    )
    return position, s.scale


def sample_pulse(ctx: MotionContext, progress: float, elapsed: float) -> SampleResult:
    """Breathe the uniform scale between base and base + range"""
    s, style = ctx.state, ctx.style
    cycles = max(1.0, ctx.effective_speed)
    oscillation = math.sin(progress * TWO_PI * cycles + s.orbit_offset) * 0.5 + 0.5
    factor = style.pulse_scale_base + oscillation * style.pulse_scale_range
    return s.initial_position, _scaled(s.scale, factor)


def sample_custom(ctx: MotionContext, progress: float, elapsed: float) -> SampleResult:
    """Static start position; motion comes from velocity / acceleration alone"""
    return ctx.state.initial_position, ctx.state.scale


ANIMATION_SAMPLERS: Dict[AnimationType, Sampler] = {
    AnimationType.ORBIT: sample_orbit,
    AnimationType.RISE: sample_rise,
    AnimationType.EXPLODE: sample_explode,
    AnimationType.SPIRAL: sample_spiral,
    AnimationType.PULSE: sample_pulse,
    AnimationType.CUSTOM: sample_custom,
}


def get_sampler(animation_type: AnimationType) -> Sampler:
    """Sampler for an animation type (unknown types orbit)"""
    return ANIMATION_SAMPLERS.get(AnimationType.coerce(animation_type), sample_orbit)


# ============================================================================
# Rainbow Arc Flow
# ============================================================================

def arc_phase(ctx: MotionContext, progress: float) -> float:
    """Travel phase along the arc; wrapped for continuous flow, raw for burst"""
    s = ctx.state
    phase = progress * s.arc_travel_speed + s.arc_travel_offset
    if s.arc_flow_mode is ArcFlowMode.CONTINUOUS:
        return MathUtils.wrap01(phase)
    return phase


def sample_arc_flow(ctx: MotionContext, progress: float, elapsed: float) -> SampleResult:
    """
    Move the particle along its arc.

    Continuous flow wraps around the arc and fades near both ends; burst
    flow runs once and collapses to zero scale outside (0, 1).
    """
    s, style = ctx.state, ctx.style
    start, end = s.arc_range or arc_angle_range(style)
    span = max(1e-5, end - start)
    radius = s.arc_radius
    if radius is None:
        radius = style.arc_radius if style.arc_radius is not None else ctx.params.spread
    radius = max(0.01, radius)
    offset = s.arc_offset or Vec3()

    def point_at(arc_angle: float) -> Vec3:
        return Vec3(
            ctx.emitter_offset.x + math.cos(arc_angle) * radius + offset.x,
            ctx.emitter_offset.y + math.sin(arc_angle) * radius + offset.y,
            ctx.emitter_offset.z + s.arc_lateral + offset.z,
        )

    phase = arc_phase(ctx, progress)
    continuous = s.arc_flow_mode is ArcFlowMode.CONTINUOUS

    if not continuous:
        if phase <= 0:
            return point_at(start), Vec3()
        if phase >= 1:
            return point_at(end), Vec3()

    position = point_at(start + phase * span)
    if continuous and s.drift_amplitude > 0:
        drift = s.drift_amplitude * 0.25
        drift_angle = phase * TWO_PI + s.drift_phase
        position = position + Vec3(
            math.sin(drift_angle) * drift, 0.0, math.cos(drift_angle * 0.6) * drift
        )
    position = position + Vec3(0.0, ctx.float_wave(progress) * s.float_strength * 0.45, 0.0)

    fade = style.arc_continuous_fade if continuous else style.arc_burst_fade
    fade = max(1e-6, fade)
    visibility = max(0.0, min(1.0, phase / fade, (1 - phase) / fade))
    pulse = math.sin(progress * TWO_PI + s.orbit_offset + s.index * 0.18) * 0.2 + 0.9
    return position, _scaled(s.scale, pulse * visibility)


# ============================================================================
# Driver
# ============================================================================

def _sample_time(ctx: MotionContext, time: float) -> float:
    if ctx.state.loops_forever:
        return (time + ctx.state.cycle_offset * ctx.duration) % ctx.duration
    return min(time, ctx.duration)


def build_animation_keyframes(
    params: EffectParams,
    style: StyleDefinition,
    state: ParticleState,
    times: Sequence[float],
) -> KeyframeTrack:
    """
    Bake one particle's track at the given sample times.

    Args:
        params: Effect parameters
        style: Resolved style
        state: The particle's static state
        times: Sample times in seconds, starting at 0

    Returns:
        KeyframeTrack with positions, rotations, scales and (when the
        particle has a gradient binding) colors
    """
    n = len(times)
    positions = np.zeros(n * 3, dtype=np.float32)
    rotations = np.zeros(n * 4, dtype=np.float32)
    scales = np.zeros(n * 3, dtype=np.float32)
    colors = np.zeros(n * 3, dtype=np.float32) if state.gradient is not None else None

    ctx = MotionContext.create(params, style, state)
    arc_flow = style.is_rainbow_arc
    sampler = sample_arc_flow if arc_flow else get_sampler(params.animation_type)
    loop_fade = max(MIN_LOOP_FADE_WINDOW, style.emitter_fade_window) if state.loops_forever else 0.0
    moving = not (state.velocity.is_zero() and state.acceleration.is_zero())

    for i, time in enumerate(times):
        elapsed = _sample_time(ctx, float(time))
        progress = elapsed / ctx.duration
        kinematic_time = elapsed

        position, scale = sampler(ctx, progress, elapsed)
        if not arc_flow:
            scale = Vec3(max(MIN_SCALE, scale.x), max(MIN_SCALE, scale.y), max(MIN_SCALE, scale.z))

        if state.loops_forever and progress > 1 - loop_fade:
            fade_t = MathUtils.clamp01((progress - (1 - loop_fade)) / loop_fade)
            scale = scale * math.pow(max(0.0, 1 - fade_t), LOOP_FADE_EXPONENT)
            kinematic_time = min(kinematic_time, ctx.duration * max(0.0, 1 - loop_fade))

        if not arc_flow and moving and kinematic_time > 0:
            half_t2 = 0.5 * kinematic_time * kinematic_time
            position = position + state.velocity * kinematic_time + state.acceleration * half_t2

        rotation = euler_to_quaternion(
            elapsed * state.spin_rates.x,
            elapsed * state.spin_rates.y,
            elapsed * state.spin_rates.z,
        )

        positions[i * 3:i * 3 + 3] = position.to_tuple()
        rotations[i * 4:i * 4 + 4] = rotation.to_tuple()
        scales[i * 3:i * 3 + 3] = (max(0.0, scale.x), max(0.0, scale.y), max(0.0, scale.z))
        if colors is not None:
            colors[i * 3:i * 3 + 3] = state.gradient.sample_at(progress, elapsed)

    return KeyframeTrack(
        positions=_frozen(positions),
        rotations=_frozen(rotations),
        scales=_frozen(scales),
        colors=_frozen(colors) if colors is not None else None,
    )
