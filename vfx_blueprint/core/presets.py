"""
Effect Styles & Presets - named generation styles and parameter presets

A style bundles the generation constants of one effect type (geometry,
scale/variance, color bias, motion tuning, custom emitter behavior,
gradient). A preset is the matching starting point for EffectParams.
Both tables are read-only; every lookup returns a fresh copy.
"""

import copy
import logging
import math
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
import yaml

from .gradient import ColorGradient, GradientPlayback, GradientSource
from .orientation import Vec3
from .params import (
    ArcFlowMode,
    EffectParams,
    EmissionShape,
    MotionDirectionMode,
    to_snake_case,
)
from .utils import ColorUtils, MathUtils, Variant

logger = logging.getLogger(__name__)


# ============================================================================
# Style Data Structures
# ============================================================================

class CustomEmitter(Enum):
    """Emission + motion behaviors that replace the standard shape pairing"""
    VORTEX = "vortex"
    RAINBOW_ARC = "rainbowArc"

    @classmethod
    def coerce(cls, value: Any) -> Optional['CustomEmitter']:
        """Unknown or empty tags mean no custom emitter"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace('_', '')
            for member in cls:
                if member.value.lower() == key:
                    return member
        return None


class AlphaMode(Variant):
    OPAQUE = "OPAQUE"
    BLEND = "BLEND"


@dataclass(frozen=True)
class ArcLayer:
    """One lateral band of a rainbow arc"""
    offset: float = 0.0
    color: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> 'ArcLayer':
        if isinstance(raw, ArcLayer):
            return raw
        raw = raw if isinstance(raw, dict) else {}
        offset = raw.get('offset', 0.0)
        color = raw.get('color')
        return cls(
            offset=float(offset) if MathUtils.is_finite(offset) else 0.0,
            color=ColorUtils.normalize_hex(color) if ColorUtils.is_hex_color(color) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'offset': self.offset, 'color': self.color}


Triple = Tuple[float, float, float]


@dataclass(frozen=True)
class StyleDefinition:
    """
    Fully resolved generation style for one blueprint build.

    Optional fields are None when the style leaves the choice to the
    sampler that reads them.
    """

    # Render hints
    geometry: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({'type': 'box'}))
    roughness: float = 0.45
    metalness: float = 0.2
    alpha_mode: AlphaMode = AlphaMode.OPAQUE
    depth_write: bool = True

    # Size and color
    base_scale: Triple = (1.0, 1.0, 1.0)
    scale_variance: Triple = (0.0, 0.0, 0.0)
    size_multiplier: float = 1.0
    size_jitter: float = 0.25
    color_bias: float = 0.5
    color_variance: float = 0.2
    opacity_range: Tuple[float, float] = (0.7, 1.0)
    emissive_multiplier: float = 1.2
    emissive_variance: float = 0.15

    # Placement
    vertical_jitter: float = 0.2
    radial_jitter: float = 0.15
    height_bias: float = 0.0
    spread_multiplier: float = 1.0
    cone_height_multiplier: float = 2.0
    cone_radius_multiplier: float = 0.6
    ring_thickness: float = 0.35
    ring_radius_multiplier: float = 0.8
    ring_height: float = 0.3

    # Motion
    float_strength: float = 0.2
    float_frequency: float = 2.0
    spin_rates: Triple = (1.2, 0.9, 1.1)
    speed_variance: float = 0.25
    drift_strength: float = 0.0
    spiral_height: float = 1.0
    spiral_taper: float = 0.3
    spiral_revolutions: float = 3.0
    spiral_angular_speed: float = 1.0
    rise_speed: float = 0.5
    rise_height: float = 3.2
    rise_scale_start: float = 1.0
    rise_scale_end: float = 1.0
    explosion_spread: float = 2.0
    explosion_shrink: float = 0.85
    pulse_scale_base: float = 0.55
    pulse_scale_range: float = 0.75
    emitter_fade_window: float = 0.15

    # System
    system_rotation_speed: float = 0.35
    max_particles: int = 160
    keyframe_steps: int = 6

    # Custom emitters
    custom_emitter: Optional[CustomEmitter] = None
    vortex_height: Optional[float] = None
    vortex_base_radius: Optional[float] = None
    vortex_tip_radius: Optional[float] = None
    vortex_radius_falloff: Optional[float] = None
    vortex_layers: Optional[int] = None
    vortex_layer_drift: float = 0.75
    vortex_jitter: float = 0.06
    vortex_vertical_jitter: float = 0.04
    vortex_sway: float = 0.0
    vortex_sway_speed: float = 1.5
    vortex_sway_radius: float = 0.0
    arc_radius: Optional[float] = None
    arc_start_angle: Optional[float] = None
    arc_end_angle: Optional[float] = None
    arc_thickness: Optional[float] = None
    arc_height_offset: float = 0.0
    arc_flow_speed: Optional[float] = None
    arc_flow_mode: ArcFlowMode = ArcFlowMode.CONTINUOUS
    arc_layers: Optional[Tuple[ArcLayer, ...]] = None
    arc_continuous_fade: float = 0.08
    arc_burst_fade: float = 0.12

    # Strand and cluster placement
    beam_strand_count: int = 0
    beam_radius: Optional[float] = None
    beam_radius_falloff: Optional[float] = None
    beam_twist: float = 0.0
    beam_height: Optional[float] = None
    beam_base_height: float = 0.0
    beam_height_jitter: float = 0.0
    beam_vertical_jitter: float = 0.0
    beam_delay_range: float = 0.0
    beam_delay_jitter: Optional[float] = None
    cluster_count: int = 0
    cluster_radius: Optional[float] = None
    cluster_base_height: float = 0.0
    cluster_height_range: Optional[float] = None
    cluster_scatter: float = 0.45
    cluster_vertical_scatter: float = 0.85
    cluster_delay_range: float = 0.0
    cluster_rise_jitter: float = 0.0

    # Gradient
    color_gradient: Optional[ColorGradient] = None
    color_gradient_source: GradientSource = GradientSource.RANDOM
    color_gradient_playback: GradientPlayback = GradientPlayback.STATIC
    color_gradient_speed: float = 0.0

    @property
    def is_vortex(self) -> bool:
        return self.custom_emitter is CustomEmitter.VORTEX

    @property
    def is_rainbow_arc(self) -> bool:
        return self.custom_emitter is CustomEmitter.RAINBOW_ARC

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StyleDefinition':
        """Build from a plain (snake_case) dict, coercing every field"""
        defaults = cls()
        kwargs = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            kwargs[f.name] = _coerce_style_value(f.name, data[f.name], getattr(defaults, f.name))
        unknown = set(data) - set(kwargs)
        if unknown:
            logger.debug("Ignoring unknown style keys: %s", sorted(unknown))
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, ColorGradient):
                value = value.to_list()
            elif f.name == 'geometry':
                value = dict(value)
            elif f.name == 'arc_layers' and value is not None:
                value = [layer.to_dict() for layer in value]
            elif isinstance(value, tuple):
                value = list(value)
            data[f.name] = value
        return data


def _vector_tuple(value: Any, default: tuple) -> tuple:
    if not isinstance(value, (list, tuple)) or len(value) < len(default):
        return default
    return tuple(
        float(v) if MathUtils.is_finite(v) else d
        for v, d in zip(value, default)
    )


def _coerce_style_value(name: str, value: Any, default: Any) -> Any:
    if name == 'geometry':
        return MappingProxyType(dict(value)) if isinstance(value, Mapping) else default
    if name in ('base_scale', 'scale_variance', 'spin_rates', 'opacity_range'):
        return _vector_tuple(value, default)
    if name == 'custom_emitter':
        return CustomEmitter.coerce(value)
    if name == 'alpha_mode':
        return AlphaMode.coerce(value)
    if name == 'arc_flow_mode':
        return ArcFlowMode.coerce(value)
    if name == 'color_gradient_source':
        return GradientSource.coerce(value)
    if name == 'color_gradient_playback':
        return GradientPlayback.coerce(value)
    if name == 'color_gradient':
        return value if isinstance(value, ColorGradient) else ColorGradient.from_stops(value)
    if name == 'arc_layers':
        if not isinstance(value, (list, tuple)) or not value:
            return None
        return tuple(ArcLayer.from_raw(layer) for layer in value)
    if name == 'depth_write':
        return bool(value)
    if name == 'keyframe_steps':
        return max(4, int(value)) if MathUtils.is_finite(value) else default
    if name in ('beam_strand_count', 'cluster_count'):
        return max(0, int(value)) if MathUtils.is_finite(value) else default
    if name in ('max_particles', 'vortex_layers'):
        if not MathUtils.is_finite(value):
            return default
        return max(1, int(value))
    if value is None:
        return None if default is None else default
    return float(value) if MathUtils.is_finite(value) else default


# ============================================================================
# Built-in Styles
# ============================================================================

DEFAULT_STYLE: Dict[str, Any] = {
    name: value for name, value in StyleDefinition().to_dict().items()
}

EFFECT_STYLES: Dict[str, Dict[str, Any]] = {
    "aura": {
        "geometry": {"type": "icosahedron", "detail": 1},
        "base_scale": [1, 1, 1],
        "scale_variance": [0.2, 0.2, 0.2],
        "size_multiplier": 1.1,
        "size_jitter": 0.35,
        "color_bias": 0.65,
        "color_variance": 0.3,
        "opacity_range": [0.6, 0.95],
        "emissive_multiplier": 1.9,
        "emissive_variance": 0.25,
        "roughness": 0.25,
        "metalness": 0.12,
        "alpha_mode": "BLEND",
        "depth_write": False,
        "float_strength": 0.4,
        "float_frequency": 2.6,
        "vertical_jitter": 0.45,
        "radial_jitter": 0.2,
        "height_bias": 0.1,
        "spread_multiplier": 1.3,
        "spin_rates": [1.6, 1.1, 1.4],
        "speed_variance": 0.18,
        "drift_strength": 0.15,
        "system_rotation_speed": 0.42,
    },

    "fireball": {
        "geometry": {"type": "sphere", "width_segments": 16, "height_segments": 12},
        "base_scale": [1, 1, 1],
        "scale_variance": [0.1, 0.1, 0.1],
        "size_multiplier": 1.35,
        "size_jitter": 0.28,
        "color_bias": 0.35,
        "color_variance": 0.22,
        "opacity_range": [0.75, 1],
        "emissive_multiplier": 2.6,
        "emissive_variance": 0.2,
        "roughness": 0.35,
        "metalness": 0.18,
        "float_strength": 0.18,
        "float_frequency": 3.2,
        "vertical_jitter": 0.25,
        "radial_jitter": 0.18,
        "spread_multiplier": 0.9,
        "spin_rates": [2.1, 1.4, 1.6],
        "speed_variance": 0.22,
        "explosion_spread": 2.8,
        "explosion_shrink": 0.9,
        "max_particles": 120,
    },

    "ice": {
        "geometry": {"type": "octahedron", "detail": 1},
        "base_scale": [1, 1.2, 1],
        "scale_variance": [0.15, 0.2, 0.15],
        "size_multiplier": 1.05,
        "size_jitter": 0.2,
        "color_bias": 0.7,
        "color_variance": 0.18,
        "opacity_range": [0.65, 0.9],
        "emissive_multiplier": 1.4,
        "emissive_variance": 0.15,
        "roughness": 0.55,
        "metalness": 0.05,
        "alpha_mode": "BLEND",
        "depth_write": False,
        "float_strength": 0.28,
        "float_frequency": 2.1,
        "vertical_jitter": 0.35,
        "radial_jitter": 0.12,
        "height_bias": 0.2,
        "spread_multiplier": 1.15,
        "spin_rates": [1.1, 0.8, 1.3],
        "speed_variance": 0.16,
        "drift_strength": 0.12,
    },

    "ground-smash": {
        "geometry": {"type": "box"},
        "base_scale": [1.4, 0.6, 1.4],
        "scale_variance": [0.2, 0.15, 0.2],
        "size_multiplier": 1.55,
        "size_jitter": 0.22,
        "color_bias": 0.45,
        "color_variance": 0.18,
        "opacity_range": [0.85, 1],
        "emissive_multiplier": 1.0,
        "emissive_variance": 0.1,
        "roughness": 0.85,
        "metalness": 0.06,
        "float_strength": 0.08,
        "float_frequency": 1.5,
        "vertical_jitter": 0.25,
        "radial_jitter": 0.35,
        "height_bias": -0.25,
        "spread_multiplier": 1.4,
        "spin_rates": [0.6, 1.3, 0.5],
        "speed_variance": 0.12,
        "explosion_spread": 1.9,
        "explosion_shrink": 0.7,
        "rise_height": 2.2,
        "max_particles": 90,
    },

    "tornado": {
        "custom_emitter": "vortex",
        "geometry": {
            "type": "cylinder", "top_radius": 0.08, "bottom_radius": 0.4,
            "height": 1.4, "radial_segments": 20, "open_ended": True,
        },
        "base_scale": [0.35, 2.8, 0.35],
        "scale_variance": [0.25, 0.65, 0.25],
        "size_multiplier": 1.0,
        "size_jitter": 0.28,
        "color_bias": 0.52,
        "color_variance": 0.22,
        "opacity_range": [0.45, 0.85],
        "emissive_multiplier": 1.6,
        "emissive_variance": 0.22,
        "roughness": 0.48,
        "metalness": 0.1,
        "alpha_mode": "BLEND",
        "depth_write": False,
        "float_strength": 0.14,
        "float_frequency": 2.8,
        "vertical_jitter": 0.4,
        "radial_jitter": 0.08,
        "spread_multiplier": 1.25,
        "spin_rates": [0.9, 2.4, 1],
        "speed_variance": 0.24,
        "spiral_height": 3.2,
        "spiral_taper": 0.55,
        "spiral_revolutions": 5.5,
        "spiral_angular_speed": 1.1,
        "drift_strength": 0.12,
        "vortex_height": 3.6,
        "vortex_base_radius": 1.45,
        "vortex_tip_radius": 0.18,
        "vortex_radius_falloff": 1.4,
        "vortex_layers": 20,
        "vortex_layer_drift": 0.85,
        "vortex_jitter": 0.08,
        "vortex_vertical_jitter": 0.05,
        "vortex_sway": 0.1,
        "vortex_sway_speed": 1.4,
        "vortex_sway_radius": 0.06,
        "system_rotation_speed": 0.48,
        "max_particles": 150,
    },

    "sparkles": {
        "geometry": {"type": "tetrahedron"},
        "base_scale": [1, 1, 1],
        "scale_variance": [0.35, 0.35, 0.35],
        "size_multiplier": 0.95,
        "size_jitter": 0.5,
        "color_bias": 0.5,
        "color_variance": 0.4,
        "opacity_range": [0.35, 0.8],
        "emissive_multiplier": 3,
        "emissive_variance": 0.35,
        "roughness": 0.15,
        "metalness": 0.15,
        "alpha_mode": "BLEND",
        "depth_write": False,
        "float_strength": 0.5,
        "float_frequency": 4.2,
        "vertical_jitter": 0.4,
        "radial_jitter": 0.15,
        "spread_multiplier": 1,
        "spin_rates": [3.1, 2.8, 2.2],
        "speed_variance": 0.32,
        "pulse_scale_base": 0.45,
        "pulse_scale_range": 1.0,
        "drift_strength": 0.1,
        "max_particles": 150,
        "keyframe_steps": 8,
    },

    "smoke": {
        "geometry": {"type": "sphere", "width_segments": 14, "height_segments": 12},
        "base_scale": [1.3, 1.6, 1.3],
        "scale_variance": [0.25, 0.4, 0.25],
        "size_multiplier": 1.7,
        "size_jitter": 0.45,
        "color_bias": 0.55,
        "color_variance": 0.2,
        "opacity_range": [0.22, 0.55],
        "emissive_multiplier": 0.4,
        "emissive_variance": 0.12,
        "roughness": 0.95,
        "metalness": 0.02,
        "alpha_mode": "BLEND",
        "depth_write": False,
        "float_strength": 0.12,
        "float_frequency": 1.6,
        "vertical_jitter": 0.6,
        "radial_jitter": 0.15,
        "height_bias": 0.15,
        "spread_multiplier": 1.6,
        "spin_rates": [0.25, 0.4, 0.3],
        "speed_variance": 0.18,
        "drift_strength": 0.45,
        "rise_speed": 0.35,
        "rise_height": 2.6,
        "rise_scale_start": 0.8,
        "rise_scale_end": 1.35,
        "max_particles": 140,
    },

    "energy-beam": {
        "geometry": {
            "type": "cylinder", "top_radius": 0.12, "bottom_radius": 0.12,
            "height": 1.3, "radial_segments": 16, "open_ended": False,
        },
        "base_scale": [0.3, 3.8, 0.3],
        "scale_variance": [0.1, 0.15, 0.1],
        "size_multiplier": 1.15,
        "size_jitter": 0.12,
        "color_bias": 0.4,
        "color_variance": 0.2,
        "opacity_range": [0.6, 0.95],
        "emissive_multiplier": 3.3,
        "emissive_variance": 0.3,
        "roughness": 0.2,
        "metalness": 0.25,
        "alpha_mode": "BLEND",
        "depth_write": True,
        "float_strength": 0.22,
        "float_frequency": 3.6,
        "vertical_jitter": 0.2,
        "radial_jitter": 0.08,
        "height_bias": 0.35,
        "spread_multiplier": 0.75,
        "spin_rates": [1.9, 2.5, 1.9],
        "speed_variance": 0.18,
        "pulse_scale_base": 0.6,
        "pulse_scale_range": 0.9,
        "drift_strength": 0.05,
        "spiral_height": 2.2,
        "system_rotation_speed": 0.48,
        "max_particles": 110,
    },

    "rainbow": {
        "custom_emitter": "rainbowArc",
        "geometry": {"type": "sphere", "width_segments": 12, "height_segments": 10},
        "base_scale": [1, 1, 1],
        "scale_variance": [0.1, 0.1, 0.1],
        "size_multiplier": 0.9,
        "size_jitter": 0.2,
        "color_bias": 0.5,
        "color_variance": 0.1,
        "opacity_range": [0.75, 1],
        "emissive_multiplier": 2.2,
        "emissive_variance": 0.15,
        "roughness": 0.3,
        "metalness": 0.1,
        "alpha_mode": "BLEND",
        "depth_write": False,
        "float_strength": 0.12,
        "float_frequency": 1.8,
        "vertical_jitter": 0.05,
        "radial_jitter": 0.04,
        "spin_rates": [0.6, 0.8, 0.6],
        "speed_variance": 0.1,
        "drift_strength": 0.05,
        "arc_radius": 3.0,
        "arc_start_angle": math.pi * 0.05,
        "arc_end_angle": math.pi * 0.95,
        "arc_thickness": 0.6,
        "arc_height_offset": 0.0,
        "arc_flow_speed": 0.5,
        "arc_flow_mode": "continuous",
        "color_gradient": [
            {"stop": 0.0, "color": "#ff0000"},
            {"stop": 0.17, "color": "#ff8000"},
            {"stop": 0.33, "color": "#ffff00"},
            {"stop": 0.5, "color": "#00ff00"},
            {"stop": 0.67, "color": "#0080ff"},
            {"stop": 0.83, "color": "#4b00ff"},
            {"stop": 1.0, "color": "#9400d3"},
        ],
        "color_gradient_source": "layer",
        "color_gradient_playback": "static",
        "max_particles": 180,
        "keyframe_steps": 12,
    },
}

# Geometry/style overrides selected by EffectParams.particle_shape
PARTICLE_SHAPES: Dict[str, Dict[str, Any]] = {
    "style": {"name": "Effect Default"},
    "cube": {"name": "Block", "geometry": {"type": "box"}},
    "sphere": {
        "name": "Sphere",
        "geometry": {"type": "sphere", "width_segments": 16, "height_segments": 12},
    },
    "tetra": {"name": "Tetrahedron", "geometry": {"type": "tetrahedron"}},
    "octa": {"name": "Octahedron", "geometry": {"type": "octahedron", "detail": 0}},
    "cylinder": {
        "name": "Cylinder",
        "geometry": {
            "type": "cylinder", "top_radius": 0.25, "bottom_radius": 0.25,
            "height": 1.2, "radial_segments": 18, "open_ended": False,
        },
        "style_overrides": {"base_scale": [0.7, 1.4, 0.7]},
    },
    "plane": {
        "name": "Plane",
        "geometry": {"type": "plane"},
        "style_overrides": {
            "base_scale": [1.3, 0.1, 1.3],
            "scale_variance": [0.15, 0.05, 0.15],
        },
    },
}


# ============================================================================
# Built-in Parameter Presets
# ============================================================================

FALLBACK_PRESET: Dict[str, Any] = {
    "particle_count": 60,
    "particle_size": 0.22,
    "particle_speed": 1.6,
    "spread": 1.1,
    "primary_color": "#ff4500",
    "secondary_color": "#ffa500",
    "emission_shape": "sphere",
    "animation_type": "explode",
    "glow_intensity": 1,
    "lifetime": 1.8,
    "particle_shape": "style",
}

EFFECT_PRESETS: Dict[str, Dict[str, Any]] = {
    "aura": {
        "particle_count": 90, "particle_size": 0.18, "particle_speed": 0.8, "spread": 1.4,
        "primary_color": "#7f75ff", "secondary_color": "#a7f7ff",
        "emission_shape": "sphere", "animation_type": "orbit",
        "glow_intensity": 2.6, "lifetime": 3,
    },
    "fireball": {
        "particle_count": 70, "particle_size": 0.24, "particle_speed": 1.9, "spread": 0.9,
        "primary_color": "#ff4b1f", "secondary_color": "#ffb347",
        "emission_shape": "sphere", "animation_type": "explode",
        "glow_intensity": 3.4, "lifetime": 1.6,
    },
    "ice": {
        "particle_count": 65, "particle_size": 0.17, "particle_speed": 1, "spread": 1.2,
        "primary_color": "#66d4ff", "secondary_color": "#f3fbff",
        "emission_shape": "cone", "animation_type": "rise",
        "glow_intensity": 1.8, "lifetime": 2.8,
    },
    "ground-smash": {
        "particle_count": 50, "particle_size": 0.3, "particle_speed": 1.3, "spread": 1.6,
        "primary_color": "#8b5a2b", "secondary_color": "#f2d3a2",
        "emission_shape": "box", "animation_type": "explode",
        "glow_intensity": 1.2, "lifetime": 1.4,
    },
    "tornado": {
        "particle_count": 140, "particle_size": 0.17, "particle_speed": 1.9, "spread": 1.5,
        "primary_color": "#7dd8ff", "secondary_color": "#e0f7ff",
        "emission_shape": "cone", "animation_type": "spiral",
        "glow_intensity": 2.0, "lifetime": 3.8,
    },
    "sparkles": {
        "particle_count": 120, "particle_size": 0.15, "particle_speed": 2, "spread": 1,
        "primary_color": "#fff8c6", "secondary_color": "#ffe4f6",
        "emission_shape": "ring", "animation_type": "pulse",
        "glow_intensity": 3, "lifetime": 2.2,
    },
    "smoke": {
        "particle_count": 85, "particle_size": 0.32, "particle_speed": 0.7, "spread": 1.7,
        "primary_color": "#6b6b6b", "secondary_color": "#a8a8a8",
        "emission_shape": "sphere", "animation_type": "rise",
        "glow_intensity": 0.9, "lifetime": 3.6,
    },
    "energy-beam": {
        "particle_count": 70, "particle_size": 0.2, "particle_speed": 2.3, "spread": 0.8,
        "primary_color": "#45f6ff", "secondary_color": "#97fffb",
        "emission_shape": "ring", "animation_type": "pulse",
        "glow_intensity": 3.2, "lifetime": 2.6,
    },
    "rainbow": {
        "particle_count": 150, "particle_size": 0.14, "particle_speed": 1, "spread": 1.2,
        "primary_color": "#ff3b3b", "secondary_color": "#7a3bff",
        "emission_shape": "disc", "animation_type": "orbit",
        "glow_intensity": 2.4, "lifetime": 3.2,
        "use_arc_emitter": True,
    },
}


# ============================================================================
# Style Registry
# ============================================================================

def _snake_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    return {to_snake_case(str(k)): v for k, v in data.items()}


def _freeze(table: Dict[str, Dict[str, Any]]) -> Mapping[str, Mapping[str, Any]]:
    return MappingProxyType({
        name: MappingProxyType(copy.deepcopy(entry)) for name, entry in table.items()
    })


class StyleRegistry:
    """
    Read-only table of named styles and parameter presets.

    Every accessor returns a deep copy, so callers may mutate what they
    get back without touching the registry or an earlier result.
    """

    def __init__(
        self,
        styles: Optional[Dict[str, Dict[str, Any]]] = None,
        presets: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        self._styles = _freeze(EFFECT_STYLES if styles is None else styles)
        self._presets = _freeze(EFFECT_PRESETS if presets is None else presets)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def has_style(self, name: str) -> bool:
        return name in self._styles

    def list_styles(self) -> List[str]:
        return sorted(self._styles)

    def list_presets(self) -> List[str]:
        return sorted(self._presets)

    def get_style_overrides(self, name: str) -> Dict[str, Any]:
        """Raw overrides of a named style ({} for unknown names)"""
        return copy.deepcopy(dict(self._styles.get(name, {})))

    def get_preset(self, name: str) -> Optional[Dict[str, Any]]:
        """Parameter preset for an effect type, or None"""
        preset = self._presets.get(name)
        return copy.deepcopy(dict(preset)) if preset is not None else None

    def style_dict(self, effect_type: str) -> Dict[str, Any]:
        """Default style merged with the named overrides, as a fresh dict"""
        merged = copy.deepcopy(DEFAULT_STYLE)
        merged.update(self.get_style_overrides(effect_type))
        return merged

    def get_effect_style(self, effect_type: str) -> StyleDefinition:
        """Base style for an effect type. Unknown names get the default style."""
        return StyleDefinition.from_dict(self.style_dict(effect_type))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, params: EffectParams) -> StyleDefinition:
        """
        Resolve the style for one blueprint build.

        Applies, in order: the named style, the particle-shape override,
        the parameter gradient and opacity, vortex defaults, and the
        rainbow-arc selection with its parameter geometry.
        """
        overrides = self.get_style_overrides(params.effect_type)
        style = self.style_dict(params.effect_type)

        shape = PARTICLE_SHAPES.get(params.particle_shape)
        if shape:
            if 'geometry' in shape:
                style['geometry'] = copy.deepcopy(shape['geometry'])
            for key, value in shape.get('style_overrides', {}).items():
                style[key] = copy.deepcopy(value)

        if params.color_gradient:
            style['color_gradient'] = copy.deepcopy(params.color_gradient)
            if params.color_gradient_source is not None:
                style['color_gradient_source'] = params.color_gradient_source
            if params.color_gradient_playback is not None:
                style['color_gradient_playback'] = params.color_gradient_playback
            if params.color_gradient_speed is not None:
                style['color_gradient_speed'] = params.color_gradient_speed

        if params.opacity is not None:
            style['opacity_range'] = [params.opacity, params.opacity]
            if params.opacity < 1 and AlphaMode.coerce(style.get('alpha_mode')) is not AlphaMode.BLEND:
                style['alpha_mode'] = AlphaMode.BLEND
                style['depth_write'] = False

        custom_emitter = CustomEmitter.coerce(style.get('custom_emitter'))
        if custom_emitter is CustomEmitter.VORTEX:
            if not overrides.get('spiral_height') and style.get('vortex_height'):
                style['spiral_height'] = style['vortex_height']
            if 'spiral_revolutions' not in overrides:
                style['spiral_revolutions'] = 6
            if 'spiral_angular_speed' not in overrides:
                style['spiral_angular_speed'] = 1.1

        wants_arc = params.use_arc_emitter
        if wants_arc is None:
            wants_arc = custom_emitter is CustomEmitter.RAINBOW_ARC

        if wants_arc:
            if (not self.has_style(params.effect_type)
                    and custom_emitter is not CustomEmitter.RAINBOW_ARC
                    and self.has_style('rainbow')):
                for key, value in self.get_style_overrides('rainbow').items():
                    if key != 'custom_emitter':
                        style[key] = value
            custom_emitter = CustomEmitter.RAINBOW_ARC
        elif custom_emitter is CustomEmitter.RAINBOW_ARC:
            custom_emitter = None
        style['custom_emitter'] = custom_emitter

        if custom_emitter is CustomEmitter.RAINBOW_ARC:
            for key in ('arc_radius', 'arc_start_angle', 'arc_end_angle', 'arc_thickness',
                        'arc_height_offset', 'arc_flow_speed', 'arc_flow_mode'):
                value = getattr(params, key)
                if value is not None:
                    style[key] = value

        return StyleDefinition.from_dict(style)

    # ------------------------------------------------------------------
    # User styles
    # ------------------------------------------------------------------

    def with_styles(
        self,
        styles: Optional[Dict[str, Dict[str, Any]]] = None,
        presets: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> 'StyleRegistry':
        """New registry with extra or replacement entries"""
        merged_styles = {name: dict(entry) for name, entry in self._styles.items()}
        merged_presets = {name: dict(entry) for name, entry in self._presets.items()}
        for name, entry in (styles or {}).items():
            merged_styles[name] = _snake_keys(entry)
        for name, entry in (presets or {}).items():
            merged_presets[name] = _snake_keys(entry)
        return StyleRegistry(merged_styles, merged_presets)

    def load_yaml(self, path: Union[str, Path]) -> 'StyleRegistry':
        """
        New registry extended with styles from a YAML file or directory.

        A file holds either one style (named after the file) or 'styles'
        and/or 'presets' mappings. Unreadable files are skipped.

        Args:
            path: YAML file, or directory of *.yaml / *.yml files

        Returns:
            Extended StyleRegistry
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Style path not found: {path}")

        if path.is_dir():
            files = sorted(list(path.glob('*.yaml')) + list(path.glob('*.yml')))
        else:
            files = [path]

        styles: Dict[str, Dict[str, Any]] = {}
        presets: Dict[str, Dict[str, Any]] = {}
        for yaml_file in files:
            try:
                with open(yaml_file, 'r') as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Could not load style file %s: %s", yaml_file, e)
                continue

            if not isinstance(data, dict):
                logger.warning("Skipping style file %s: expected a mapping", yaml_file)
                continue

            if 'styles' in data or 'presets' in data:
                for name, entry in (data.get('styles') or {}).items():
                    if isinstance(entry, dict):
                        styles[str(name)] = entry
                for name, entry in (data.get('presets') or {}).items():
                    if isinstance(entry, dict):
                        presets[str(name)] = entry
            else:
                styles[yaml_file.stem] = data

        logger.info("Loaded %d user styles and %d presets from %s", len(styles), len(presets), path)
        return self.with_styles(styles, presets)

    # ------------------------------------------------------------------
    # Parameter presets
    # ------------------------------------------------------------------

    def build_preset_params(self, effect_type: str = "fireball") -> EffectParams:
        """
        Starting parameters for an effect type.

        The fallback preset is overlaid with the named preset; unknown
        names get the fallback preset alone.
        """
        merged = dict(FALLBACK_PRESET)
        merged.update(self.get_preset(effect_type) or {})
        params = EffectParams.from_dict(merged)
        params.effect_type = effect_type
        params.effect_identifier = f"{effect_type}:effect"
        return params

    def with_effect_type(self, params: EffectParams, effect_type: str) -> EffectParams:
        """Copy of params with another effect's preset applied"""
        preset = self.build_preset_params(effect_type)
        changes = {key: getattr(preset, key) for key in FALLBACK_PRESET}
        for key in self.get_preset(effect_type) or {}:
            changes[to_snake_case(key)] = getattr(preset, to_snake_case(key))
        changes['effect_type'] = effect_type
        changes['effect_identifier'] = preset.effect_identifier
        return params.copy(**changes)


# ============================================================================
# Random Parameters
# ============================================================================

def _pick(rng: np.random.Generator, items: List[Any]) -> Any:
    return items[int(rng.integers(len(items)))]


def create_random_params(seed: Optional[int] = None,
                         registry: Optional['StyleRegistry'] = None) -> EffectParams:
    """
    Random but valid parameter set, reproducible for a given seed.

    Args:
        seed: Seed for numpy's default generator (None = fresh entropy)
        registry: Style registry supplying the effect presets
    """
    registry = registry or DEFAULT_REGISTRY
    rng = np.random.default_rng(seed)

    effect_type = _pick(rng, registry.list_presets())
    params = registry.build_preset_params(effect_type)
    params.effect_identifier = f"vfx:{effect_type}"
    params.particle_shape = _pick(rng, list(PARTICLE_SHAPES))
    params.particle_count = int(rng.integers(10, 201))
    params.particle_size = round(float(rng.uniform(0.05, 0.5)), 2)
    params.particle_speed = round(float(rng.uniform(0.1, 3)), 1)
    params.spread = round(float(rng.uniform(0.5, 3)), 1)
    params.glow_intensity = round(float(rng.uniform(0.5, 5)), 1)
    params.lifetime = round(float(rng.uniform(0.5, 5)), 1)
    params.primary_color = '#{:06x}'.format(int(rng.integers(0, 0x1000000)))
    params.secondary_color = '#{:06x}'.format(int(rng.integers(0, 0x1000000)))
    params.emission_shape = _pick(rng, list(EmissionShape))
    params.emission_surface_only = bool(rng.random() < 0.5)

    mode = _pick(rng, list(MotionDirectionMode))
    params.motion_direction_mode = mode
    if mode is MotionDirectionMode.CUSTOM:
        direction = [round(float(v), 2) for v in rng.uniform(-1, 1, 3)]
        if all(abs(v) < 0.1 for v in direction):
            direction = [0.0, 1.0, 0.0]
        params.motion_direction = direction
    elif mode is MotionDirectionMode.INWARDS:
        params.motion_direction = Vec3(0.0, -1.0, 0.0)
    params.motion_acceleration = [round(float(v), 2) for v in rng.uniform(-0.5, 0.5, 3)]

    params.use_arc_emitter = bool(rng.random() < 0.5)
    if params.use_arc_emitter:
        start_deg = int(rng.integers(0, 171))
        end_deg = int(rng.integers(start_deg + 1, 181))
        params.arc_radius = round(float(rng.uniform(0.5, 4)), 1)
        params.arc_thickness = round(float(rng.uniform(0.05, 0.4)), 2)
        params.arc_height_offset = 0.0
        params.arc_flow_speed = round(float(rng.uniform(0.1, 2.5)), 2)
        params.arc_flow_mode = _pick(rng, list(ArcFlowMode))
        params.arc_end_angle = math.radians(end_deg)
        params.arc_start_angle = math.radians(start_deg)
    return params


# ============================================================================
# Global Instance & Convenience Functions
# ============================================================================

DEFAULT_REGISTRY = StyleRegistry()


def get_effect_style(effect_type: str) -> StyleDefinition:
    """Base style for an effect type from the built-in registry"""
    return DEFAULT_REGISTRY.get_effect_style(effect_type)


def resolve_style(params: EffectParams, registry: Optional[StyleRegistry] = None) -> StyleDefinition:
    """Resolve the style for a generation call"""
    return (registry or DEFAULT_REGISTRY).resolve(params)


def get_effect_preset(effect_type: str) -> Optional[Dict[str, Any]]:
    return DEFAULT_REGISTRY.get_preset(effect_type)


def build_preset_params(effect_type: str = "fireball") -> EffectParams:
    return DEFAULT_REGISTRY.build_preset_params(effect_type)


def list_effect_types() -> List[str]:
    return DEFAULT_REGISTRY.list_presets()


def with_effect_type(params: EffectParams, effect_type: str) -> EffectParams:
    return DEFAULT_REGISTRY.with_effect_type(params, effect_type)
