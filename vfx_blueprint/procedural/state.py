"""
Particle State - the static, per-particle snapshot a keyframe track animates

Everything random about a particle is decided here, once, from its own
seeded stream. The keyframe sampler only reads this snapshot.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..core.gradient import GradientBinding, GradientPlayback, GradientSource
from ..core.orientation import Vec3
from ..core.params import AnimationType, ArcFlowMode, EffectParams, MotionDirectionMode
from ..core.presets import StyleDefinition
from ..core.rng import Salt, SeededRandom, create_random_generator
from ..core.utils import ColorUtils, MathUtils
from .emitters import EmissionSample, arc_angle_range, compute_emission_position

MIN_SCALE = 0.02

# Low-discrepancy sequence steps used to spread beam strands evenly
GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))
STRAND_SEQUENCE = (0.7548776662466927, 0.5698402909980532, 0.4386924697151326)
MAX_MOTION_DELAY = 0.98

# Animation types that honor the configured velocity / acceleration
DIRECTIONAL_ANIMATIONS = (AnimationType.EXPLODE, AnimationType.RISE, AnimationType.CUSTOM)


@dataclass(frozen=True)
class ParticleState:
    """Immutable per-particle values derived from params, style and index"""
    index: int
    color: str
    opacity: float
    emissive_intensity: float
    scale: Vec3
    size_scalar: float
    initial_position: Vec3
    gradient: Optional[GradientBinding]

    # Shape metadata
    radius: float
    base_radius: float
    tip_radius: float
    angle: float
    layer_t: float
    emitter_height: Optional[float]

    # Motion jitter
    orbit_offset: float
    float_strength: float
    float_frequency: float
    spin_rates: Vec3
    speed_offset: float
    drift_amplitude: float
    drift_phase: float
    swirl_phase: float

    # Kinematics
    direction: Vec3
    velocity: Vec3
    acceleration: Vec3

    # Emitter looping
    loops_forever: bool = False
    cycle_offset: float = 0.0

    # Rainbow arc
    arc_radius: Optional[float] = None
    arc_range: Optional[Tuple[float, float]] = None
    arc_offset: Optional[Vec3] = None
    arc_lateral: float = 0.0
    arc_travel_offset: float = 0.0
    arc_travel_speed: float = 0.0
    arc_flow_mode: ArcFlowMode = ArcFlowMode.CONTINUOUS

    # Strand and cluster placement
    motion_delay: float = 0.0
    cluster_index: Optional[int] = None
    cluster_anchor: Optional[Vec3] = None

    @property
    def velocity_magnitude(self) -> float:
        return self.velocity.length

    def to_dict(self) -> Dict[str, Any]:
        return {
            'index': self.index,
            'color': self.color,
            'opacity': self.opacity,
            'emissiveIntensity': self.emissive_intensity,
            'scale': self.scale.to_dict(),
            'sizeScalar': self.size_scalar,
            'initialPosition': self.initial_position.to_dict(),
            'colorGradient': self.gradient.to_dict() if self.gradient else None,
            'radius': self.radius,
            'baseRadius': self.base_radius,
            'tipRadius': self.tip_radius,
            'angle': self.angle,
            'layerT': self.layer_t,
            'emitterHeight': self.emitter_height,
            'orbitOffset': self.orbit_offset,
            'floatStrength': self.float_strength,
            'floatFrequency': self.float_frequency,
            'spinRates': self.spin_rates.to_dict(),
            'speedOffset': self.speed_offset,
            'driftAmplitude': self.drift_amplitude,
            'driftPhase': self.drift_phase,
            'swirlPhase': self.swirl_phase,
            'direction': self.direction.to_dict(),
            'velocity': self.velocity.to_dict(),
            'acceleration': self.acceleration.to_dict(),
            'velocityMagnitude': self.velocity_magnitude,
            'loopsForever': self.loops_forever,
            'cycleOffset': self.cycle_offset,
            'arcRadius': self.arc_radius,
            'arcRange': (
                {'start': self.arc_range[0], 'end': self.arc_range[1]}
                if self.arc_range else None
            ),
            'arcOffset': self.arc_offset.to_dict() if self.arc_offset else None,
            'arcLateral': self.arc_lateral,
            'arcTravelOffset': self.arc_travel_offset,
            'arcTravelSpeed': self.arc_travel_speed,
            'arcFlowMode': self.arc_flow_mode.value,
            'motionDelay': self.motion_delay,
            'clusterIndex': self.cluster_index,
            'clusterAnchor': self.cluster_anchor.to_dict() if self.cluster_anchor else None,
        }


# ============================================================================
# Helpers
# ============================================================================

def _axis_scale(size: float, base: float, variance: float, r: float) -> float:
    return max(MIN_SCALE, size * base * (1 - variance / 2 + r * variance))


def _gradient_phase(
    source: GradientSource,
    style: StyleDefinition,
    random: SeededRandom,
    emission: EmissionSample,
    angle: float,
    radius: float,
    height: float,
    spread: float,
) -> float:
    if source is GradientSource.ANGLE:
        if style.is_rainbow_arc:
            start, end = emission.arc_range or arc_angle_range(style)
            span = max(1e-5, end - start)
            return MathUtils.clamp01((angle - start) / span)
        return MathUtils.wrap01(angle / (math.pi * 2))
    if source is GradientSource.LAYER:
        layer = emission.layer_t if emission.layer_t is not None else random(Salt.GRADIENT_PHASE)
        return MathUtils.clamp01(layer)
    if source is GradientSource.RADIUS:
        return MathUtils.clamp01(radius / max(1e-3, spread))
    if source is GradientSource.HEIGHT:
        return MathUtils.clamp01((height + spread) / max(1e-3, spread * 2))
    return random(Salt.GRADIENT_PHASE)


def _motion_direction(params: EffectParams, outward: Vec3) -> Vec3:
    mode = params.motion_direction_mode
    if mode is MotionDirectionMode.INWARDS:
        return -outward
    if mode is MotionDirectionMode.CUSTOM:
        return params.motion_direction.normalized()
    return outward


def _beam_strand_placement(
    style: StyleDefinition,
    spread: float,
    index: int,
    strands: int,
    random: SeededRandom,
) -> Tuple[Vec3, float]:
    """
    Place a particle on one of the style's beam strands.

    Strand radius, angle and height come from a low-discrepancy sequence
    over the index so strands fill evenly at any particle count. Returns
    the relative position and the particle's motion delay.
    """
    seq_a, seq_b, seq_c = (MathUtils.wrap01((index + 0.5) * step) for step in STRAND_SEQUENCE)

    radius_base = max(0.01, style.beam_radius if style.beam_radius is not None else spread * 0.2)
    falloff = style.beam_radius_falloff if style.beam_radius_falloff is not None else 1.0
    radius_power = max(0.25, falloff)
    sample_radius = max(0.002, radius_base * seq_a ** (0.5 * radius_power))
    angle = seq_b * math.pi * 2 + style.beam_twist * index * GOLDEN_ANGLE

    height = max(0.01, style.beam_height if style.beam_height is not None else spread * 4)
    y = style.beam_base_height + seq_c * height
    y += (random(Salt.PLACEMENT_HEIGHT) - 0.5) * style.beam_height_jitter
    if style.beam_vertical_jitter:
        y += (random(Salt.PLACEMENT_OFFSET) - 0.5) * style.beam_vertical_jitter

    motion_delay = 0.0
    delay_range = MathUtils.clamp(style.beam_delay_range, 0.0, MAX_MOTION_DELAY)
    if delay_range > 0:
        jitter = style.beam_delay_jitter
        if jitter is None:
            jitter = delay_range * 0.25
        delay_jitter = (random(Salt.BEAM_DELAY) - 0.5) * jitter
        strand_progress = (index % strands) / strands if strands > 1 else 0.0
        delay_mix = MathUtils.clamp01(0.25 * strand_progress + 0.75 * seq_c)
        motion_delay = MathUtils.clamp(delay_mix * delay_range + delay_jitter, 0.0, MAX_MOTION_DELAY)

    position = Vec3(math.cos(angle) * sample_radius, y, math.sin(angle) * sample_radius)
    return position, motion_delay


def cluster_anchor(effect_type: str, style: StyleDefinition, spread: float, cluster_index: int) -> Vec3:
    """Anchor point of one cluster (shared by every particle in it)"""
    seed = create_random_generator(f"{effect_type}_cluster", cluster_index)
    base_radius = style.cluster_radius if style.cluster_radius is not None else spread * 0.5
    anchor_radius = max(0.05, base_radius * (0.65 + seed(Salt.ANCHOR_RADIUS) * 0.6))
    anchor_angle = seed(Salt.ANCHOR_ANGLE) * math.pi * 2
    height_range = (style.cluster_height_range if style.cluster_height_range is not None
                    else spread * 0.6)
    anchor_height = style.cluster_base_height + (seed(Salt.ANCHOR_HEIGHT) - 0.5) * height_range
    return Vec3(
        math.cos(anchor_angle) * anchor_radius,
        anchor_height,
        math.sin(anchor_angle) * anchor_radius,
    )


def _cluster_placement(
    effect_type: str,
    style: StyleDefinition,
    spread: float,
    random: SeededRandom,
) -> Tuple[Vec3, float, int, Vec3]:
    """Scatter a particle around a randomly picked cluster anchor"""
    count = style.cluster_count
    cluster_index = min(count - 1, int(abs(random(Salt.CLUSTER_PICK)) * count))
    anchor = cluster_anchor(effect_type, style, spread, cluster_index)

    scatter = style.cluster_scatter
    position = anchor + Vec3(
        (random(Salt.CLUSTER_SCATTER_X) - 0.5) * scatter,
        (random(Salt.PLACEMENT_HEIGHT) - 0.5) * scatter * style.cluster_vertical_scatter,
        (random(Salt.CLUSTER_SCATTER_Z) - 0.5) * scatter,
    )

    motion_delay = 0.0
    if style.cluster_delay_range:
        seed = create_random_generator(f"{effect_type}_cluster", cluster_index)
        motion_delay = MathUtils.clamp(seed(Salt.ANCHOR_DELAY) * style.cluster_delay_range, 0.0, 0.95)
    if style.cluster_rise_jitter:
        motion_delay = MathUtils.clamp(
            motion_delay + (random(Salt.PLACEMENT_OFFSET) - 0.5) * style.cluster_rise_jitter,
            0.0,
            MAX_MOTION_DELAY,
        )
    return position, motion_delay, cluster_index, anchor


# ============================================================================
# Builder
# ============================================================================

def build_particle_state(
    params: EffectParams,
    style: StyleDefinition,
    index: int,
    total_count: int = 1,
) -> ParticleState:
    """
    Derive one particle's static state.

    Args:
        params: Effect parameters
        style: Resolved style for this build
        index: Particle index (selects the random stream)
        total_count: Number of particles in the build (arc staggering, loop offsets)

    Returns:
        ParticleState
    """
    random = create_random_generator(params.effect_type, index)

    # Size and scale
    base_size = max(MIN_SCALE, params.particle_size * style.size_multiplier)
    size_variation = (random(Salt.SIZE) - 0.5) * style.size_jitter * base_size * 2
    size_scalar = max(MIN_SCALE, base_size + size_variation)
    bx, by, bz = style.base_scale
    vx, vy, vz = style.scale_variance
    scale = Vec3(
        _axis_scale(size_scalar, bx, vx, random(Salt.SCALE_X)),
        _axis_scale(size_scalar, by, vy, random(Salt.SCALE_Y)),
        _axis_scale(size_scalar, bz, vz, random(Salt.SCALE_Z)),
    )

    # Color, opacity, glow
    color_mix = MathUtils.clamp01(
        style.color_bias + (random(Salt.COLOR_MIX) - 0.5) * style.color_variance
    )
    color = ColorUtils.mix_hex(params.primary_color, params.secondary_color, color_mix)

    opacity_min, opacity_max = style.opacity_range
    opacity = opacity_min + random(Salt.OPACITY) * max(0.0, opacity_max - opacity_min)
    emissive_intensity = (
        params.glow_intensity
        * style.emissive_multiplier
        * (0.8 + random(Salt.EMISSIVE) * style.emissive_variance)
    )

    # Position
    spread = params.spread * style.spread_multiplier
    emission = compute_emission_position(
        params.emission_shape, spread, random, style, params.emission_surface_only
    )
    x, y, z = emission.position.to_tuple()

    jitter_scale = 0.3 if style.is_vortex else 1.0
    radial_jitter = style.radial_jitter * jitter_scale
    vertical_jitter = style.vertical_jitter * jitter_scale
    x *= 1 + (random(Salt.RADIAL_JITTER_X) - 0.5) * radial_jitter
    z *= 1 + (random(Salt.RADIAL_JITTER_Z) - 0.5) * radial_jitter
    y += (random(Salt.VERTICAL_JITTER) - 0.5) * vertical_jitter
    y += style.height_bias

    # Strands and clusters replace the shape position
    motion_delay = 0.0
    cluster_index = None
    cluster_anchor_point = None
    placed = False
    beam_strands = style.beam_strand_count
    if beam_strands > 0:
        placement, motion_delay = _beam_strand_placement(style, spread, index, beam_strands, random)
        x, y, z = placement.to_tuple()
        placed = True
    elif style.cluster_count > 0:
        placement, motion_delay, cluster_index, cluster_anchor_point = _cluster_placement(
            params.effect_type, style, spread, random
        )
        x, y, z = placement.to_tuple()
        placed = True

    arc_lateral = emission.lateral or 0.0
    gradient_allowed = True
    if style.is_rainbow_arc and style.arc_layers:
        layer = style.arc_layers[index % len(style.arc_layers)]
        z += layer.offset
        arc_lateral += layer.offset
        if layer.color:
            color = layer.color
            gradient_allowed = False

    relative = Vec3(x, y, z)
    initial_position = relative + params.emission_offset
    angle = emission.angle if emission.angle is not None and not placed else math.atan2(z, x)
    radius = (emission.radius if emission.radius is not None and not placed
              else relative.horizontal_length)
    base_radius = emission.base_radius if emission.base_radius is not None else radius
    tip_radius = (emission.tip_radius if emission.tip_radius is not None
                  else max(MIN_SCALE, base_radius * 0.15))

    arc_range = None
    arc_offset = None
    arc_radius = None
    if style.is_rainbow_arc:
        arc_range = emission.arc_range or arc_angle_range(style)
        arc_radius = emission.arc_radius
        if arc_radius is None:
            fallback = style.arc_radius if style.arc_radius is not None else params.spread
            arc_radius = max(fallback, relative.horizontal_length)
        arc_offset = relative - Vec3(
            math.cos(angle) * arc_radius,
            math.sin(angle) * arc_radius + style.arc_height_offset,
            arc_lateral,
        )

    if style.is_vortex:
        orbit_offset = angle + random(Salt.ORBIT_OFFSET) * math.pi * 0.6
    else:
        orbit_offset = random(Salt.ORBIT_OFFSET) * math.pi * 2
    float_strength = style.float_strength * (0.7 + random(Salt.FLOAT_STRENGTH) * 0.6)
    float_frequency = style.float_frequency * (0.8 + random(Salt.FLOAT_FREQUENCY) * 0.4)

    # Gradient binding
    gradient = None
    if style.color_gradient is not None and gradient_allowed:
        playback = style.color_gradient_playback
        source = style.color_gradient_source
        wrap = playback is GradientPlayback.SCROLL
        phase = _gradient_phase(
            source, style, random, emission, angle, radius, initial_position.y, spread
        )
        base_t = MathUtils.wrap01(phase) if wrap else MathUtils.clamp01(phase)
        gradient = GradientBinding(
            gradient=style.color_gradient,
            base_t=base_t,
            playback=playback,
            speed=style.color_gradient_speed,
            wrap=wrap,
            source=source,
        )
        color = gradient.gradient.sample_hex(base_t, wrap=wrap)

    sx, sy, sz = style.spin_rates
    spin_rates = Vec3(
        sx * (0.6 + random(Salt.SPIN_X) * 0.8),
        sy * (0.6 + random(Salt.SPIN_Y) * 0.8),
        sz * (0.6 + random(Salt.SPIN_Z) * 0.8),
    )

    speed_offset = (random(Salt.SPEED) - 0.5) * style.speed_variance
    speed_multiplier = max(0.0, 1 + speed_offset)

    # Direction and kinematics
    direction = _motion_direction(params, relative.normalized())
    directional = (
        params.motion_direction_mode is MotionDirectionMode.CUSTOM
        or params.animation_type in DIRECTIONAL_ANIMATIONS
    )
    if directional:
        velocity = direction * (max(0.0, params.particle_speed) * speed_multiplier)
        acceleration = params.motion_acceleration
    else:
        velocity = Vec3()
        acceleration = Vec3()

    drift_amplitude = style.drift_strength * (0.6 + random(Salt.DRIFT_AMPLITUDE) * 0.8)
    drift_phase = random(Salt.DRIFT_PHASE) * math.pi * 2
    swirl_phase = random(Salt.SWIRL_PHASE) * math.pi * 2

    total = max(1, total_count)
    loops_forever = params.emitter.loop_particles
    cycle_offset = index / total if loops_forever else 0.0

    # Arc travel
    arc_flow_mode = ArcFlowMode.CONTINUOUS
    arc_travel_speed = 0.0
    arc_travel_offset = 0.0
    if style.is_rainbow_arc:
        arc_flow_mode = params.arc_flow_mode or style.arc_flow_mode
        speed = params.arc_flow_speed
        if speed is None:
            speed = style.arc_flow_speed if style.arc_flow_speed is not None else 1.0
        arc_travel_speed = max(0.01, speed)
        if arc_flow_mode is ArcFlowMode.CONTINUOUS:
            base_ratio = index / total if total > 1 else 0.0
            jitter = (random(Salt.ARC_TRAVEL) - 0.5) / total
            arc_travel_offset = MathUtils.wrap01(base_ratio + jitter)

    layer_t = emission.layer_t if emission.layer_t is not None else random(Salt.LAYER)

    return ParticleState(
        index=index,
        color=color,
        opacity=opacity,
        emissive_intensity=emissive_intensity,
        scale=scale,
        size_scalar=size_scalar,
        initial_position=initial_position,
        gradient=gradient,
        radius=radius,
        base_radius=base_radius,
        tip_radius=tip_radius,
        angle=angle,
        layer_t=layer_t,
        emitter_height=emission.height,
        orbit_offset=orbit_offset,
        float_strength=float_strength,
        float_frequency=float_frequency,
        spin_rates=spin_rates,
        speed_offset=speed_offset,
        drift_amplitude=drift_amplitude,
        drift_phase=drift_phase,
        swirl_phase=swirl_phase,
        direction=direction,
        velocity=velocity,
        acceleration=acceleration,
        loops_forever=loops_forever,
        cycle_offset=cycle_offset,
        arc_radius=arc_radius,
        arc_range=arc_range,
        arc_offset=arc_offset,
        arc_lateral=arc_lateral,
        arc_travel_offset=arc_travel_offset,
        arc_travel_speed=arc_travel_speed,
        arc_flow_mode=arc_flow_mode,
        motion_delay=motion_delay,
        cluster_index=cluster_index,
        cluster_anchor=cluster_anchor_point,
    )
