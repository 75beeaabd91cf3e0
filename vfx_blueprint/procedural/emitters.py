"""
Emission Shapes - where each particle starts

Every sampler is a pure function of (spread, random stream, style) and
returns an emitter-relative offset plus whatever shape metadata later
stages reuse (angle, radius, layer fraction, arc range...).

Shapes:
- box: uniform in the cube, or on one of its six faces
- sphere: uniform direction, radius full (surface) or spread * cbrt(r)
- cone: apex at the emitter, opening upwards
- ring: circle with radial thickness jitter
- disc: filled circle (sqrt radius) or its rim

Custom emitters (vortex, rainbow arc) replace the shape entirely.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from ..core.orientation import Vec3
from ..core.params import EmissionShape
from ..core.presets import StyleDefinition
from ..core.rng import Salt, SeededRandom
from ..core.utils import MathUtils

TWO_PI = math.pi * 2

DEFAULT_ARC_START = math.pi * 0.1
DEFAULT_ARC_END = math.pi * 0.9
DEFAULT_VORTEX_LAYERS = 16
DEFAULT_VORTEX_FALLOFF = 1.35


@dataclass(frozen=True)
class EmissionSample:
    """Emitter-relative start offset plus shape metadata"""
    position: Vec3
    angle: Optional[float] = None
    radius: Optional[float] = None
    base_radius: Optional[float] = None
    tip_radius: Optional[float] = None
    layer_t: Optional[float] = None
    height: Optional[float] = None

    # Rainbow arc only
    arc_radius: Optional[float] = None
    arc_range: Optional[Tuple[float, float]] = None
    lateral: Optional[float] = None
    height_offset: Optional[float] = None


# ============================================================================
# Custom Emitters
# ============================================================================

def sample_vortex(spread: float, random: SeededRandom, style: StyleDefinition) -> EmissionSample:
    """
    Layered funnel: one of N height layers, radius from tip to base by
    layer_t ** falloff, with small per-axis jitter.
    """
    height = style.vortex_height if style.vortex_height is not None else spread * 2.3
    layers = max(2, int(style.vortex_layers or DEFAULT_VORTEX_LAYERS))
    layer_index = min(layers - 1, math.floor(random(Salt.VORTEX_LAYER) * layers))
    layer_t = layer_index / (layers - 1)

    base_radius = style.vortex_base_radius if style.vortex_base_radius is not None else spread * 1.05
    max_radius = base_radius * style.spread_multiplier
    tip_radius = style.vortex_tip_radius if style.vortex_tip_radius is not None else max_radius * 0.18
    min_radius = max(0.02, tip_radius)
    falloff = (style.vortex_radius_falloff
               if style.vortex_radius_falloff is not None else DEFAULT_VORTEX_FALLOFF)
    radius_range = max(0.001, max_radius - min_radius)
    radius = min_radius + radius_range * math.pow(layer_t, falloff)

    angle = random(Salt.VORTEX_ANGLE) * TWO_PI
    radial_jitter = style.vortex_jitter * max_radius
    vertical_jitter = style.vortex_vertical_jitter * height
    x = math.cos(angle) * radius + (random(Salt.VORTEX_JITTER_X) - 0.5) * radial_jitter
    z = math.sin(angle) * radius + (random(Salt.VORTEX_JITTER_Z) - 0.5) * radial_jitter
    y = -height * 0.5 + layer_t * height + (random(Salt.VORTEX_JITTER_Y) - 0.5) * vertical_jitter

    return EmissionSample(
        position=Vec3(x, y, z),
        angle=angle,
        radius=radius,
        base_radius=max_radius,
        tip_radius=min_radius,
        layer_t=layer_t,
        height=height,
    )


def sample_rainbow_arc(spread: float, random: SeededRandom, style: StyleDefinition) -> EmissionSample:
    """Point on an upright arc with lateral (z) jitter across its thickness"""
    radius = style.arc_radius if style.arc_radius is not None else spread * 1.1
    start, end = arc_angle_range(style)
    angle = start + max(1e-5, end - start) * random(Salt.ARC_ANGLE)
    thickness = style.arc_thickness if style.arc_thickness is not None else 0.4
    height_offset = style.arc_height_offset
    lateral = (random(Salt.ARC_LATERAL) - 0.5) * thickness
    layer_t = MathUtils.clamp01(lateral / thickness + 0.5) if thickness != 0 else 0.5

    return EmissionSample(
        position=Vec3(
            math.cos(angle) * radius,
            math.sin(angle) * radius + height_offset,
            lateral,
        ),
        angle=angle,
        radius=radius,
        layer_t=layer_t,
        arc_radius=radius,
        arc_range=(start, end),
        lateral=lateral,
        height_offset=height_offset,
    )


def arc_angle_range(style: StyleDefinition) -> Tuple[float, float]:
    start = style.arc_start_angle if style.arc_start_angle is not None else DEFAULT_ARC_START
    end = style.arc_end_angle if style.arc_end_angle is not None else DEFAULT_ARC_END
    return start, end


# ============================================================================
# Standard Shapes
# ============================================================================

def sample_sphere(spread: float, random: SeededRandom, style: StyleDefinition,
                  surface_only: bool) -> EmissionSample:
    theta = TWO_PI * random(Salt.SPHERE_THETA)
    phi = math.acos(2 * random(Salt.SPHERE_PHI) - 1)
    base_radius = max(spread, 0.0)
    if surface_only:
        radius = base_radius
    else:
        radius = base_radius * math.pow(max(0.0, random(Salt.SPHERE_RADIUS)), 1 / 3)
    return EmissionSample(
        position=Vec3(
            radius * math.sin(phi) * math.cos(theta),
            radius * math.sin(phi) * math.sin(theta),
            radius * math.cos(phi),
        ),
        radius=radius,
    )


def sample_cone(spread: float, random: SeededRandom, style: StyleDefinition,
                surface_only: bool) -> EmissionSample:
    angle = random(Salt.CONE_ANGLE) * TWO_PI
    height_range = spread * style.cone_height_multiplier
    height = height_range * random(Salt.CONE_HEIGHT)
    base_radius = max(0.0, spread * style.cone_radius_multiplier)
    if surface_only:
        radius = base_radius * MathUtils.clamp01(height / height_range if height_range > 0 else 0)
    else:
        radius = base_radius * math.sqrt(max(0.0, random(Salt.CONE_RADIUS)))
    return EmissionSample(
        position=Vec3(radius * math.cos(angle), height, radius * math.sin(angle)),
        angle=angle,
        radius=radius,
        height=height,
    )


def sample_ring(spread: float, random: SeededRandom, style: StyleDefinition,
                surface_only: bool) -> EmissionSample:
    angle = random(Salt.RING_ANGLE) * TWO_PI
    radius = spread * style.ring_radius_multiplier
    if surface_only:
        sample_radius = radius
    else:
        sample_radius = radius + style.ring_thickness * (random(Salt.RING_RADIAL) - 0.5)
    y = (random(Salt.RING_HEIGHT) - 0.5) * style.ring_height
    return EmissionSample(
        position=Vec3(sample_radius * math.cos(angle), y, sample_radius * math.sin(angle)),
        angle=angle,
        radius=radius,
    )


def sample_disc(spread: float, random: SeededRandom, style: StyleDefinition,
                surface_only: bool) -> EmissionSample:
    angle = random(Salt.DISC_ANGLE) * TWO_PI
    base_radius = max(spread, 0.0)
    if surface_only:
        radius = base_radius
    else:
        radius = base_radius * math.sqrt(max(0.0, random(Salt.DISC_RADIUS)))
    return EmissionSample(
        position=Vec3(radius * math.cos(angle), 0.0, radius * math.sin(angle)),
        angle=angle,
        radius=radius,
    )


def sample_box(spread: float, random: SeededRandom, style: StyleDefinition,
               surface_only: bool) -> EmissionSample:
    half = spread
    if surface_only:
        axis = min(2, math.floor(random(Salt.BOX_FACE_AXIS) * 3))
        sign = 1 if random(Salt.BOX_FACE_SIGN) > 0.5 else -1
        coords = [
            (random(Salt.BOX_FACE_X) - 0.5) * half * 2,
            (random(Salt.BOX_FACE_Y) - 0.5) * half * 2,
            (random(Salt.BOX_FACE_Z) - 0.5) * half * 2,
        ]
        coords[axis] = sign * half
        return EmissionSample(position=Vec3(*coords))
    return EmissionSample(position=Vec3(
        (random(Salt.BOX_X) - 0.5) * half * 2,
        (random(Salt.BOX_Y) - 0.5) * half * 2,
        (random(Salt.BOX_Z) - 0.5) * half * 2,
    ))


ShapeSampler = Callable[[float, SeededRandom, StyleDefinition, bool], EmissionSample]

SHAPE_SAMPLERS: Dict[EmissionShape, ShapeSampler] = {
    EmissionShape.BOX: sample_box,
    EmissionShape.SPHERE: sample_sphere,
    EmissionShape.CONE: sample_cone,
    EmissionShape.RING: sample_ring,
    EmissionShape.DISC: sample_disc,
}


def compute_emission_position(
    shape: EmissionShape,
    spread: float,
    random: SeededRandom,
    style: StyleDefinition,
    surface_only: bool = False,
) -> EmissionSample:
    """
    Sample one particle's emitter-relative start position.

    Args:
        shape: Emission shape (unknown values fall back to box)
        spread: Effective spread (params spread * style multiplier)
        random: The particle's seeded stream
        style: Resolved style; a custom emitter overrides the shape
        surface_only: Restrict samples to the shape's surface

    Returns:
        EmissionSample with position and shape metadata
    """
    if style.is_vortex:
        return sample_vortex(spread, random, style)
    if style.is_rainbow_arc:
        return sample_rainbow_arc(spread, random, style)

    sampler = SHAPE_SAMPLERS.get(EmissionShape.coerce(shape), sample_box)
    return sampler(spread, random, style, bool(surface_only))
