"""
Blueprint Builder - resolves a style and bakes every particle

A Blueprint is a fresh value on every call: the resolved style, the
shared sample times, and each particle's static state plus its track.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from ..core.params import EffectParams
from ..core.presets import DEFAULT_REGISTRY, StyleDefinition, StyleRegistry
from .keyframes import KeyframeTrack, build_animation_keyframes
from .state import ParticleState, build_particle_state

logger = logging.getLogger(__name__)

MIN_PARTICLES = 8
DEFAULT_MAX_PARTICLES = 160
DEFAULT_REQUESTED_PARTICLES = 10
MIN_KEYFRAME_STEPS = 4
DEFAULT_KEYFRAME_STEPS = 6


@dataclass(frozen=True)
class BlueprintParticle:
    state: ParticleState
    keyframes: KeyframeTrack

    def to_dict(self) -> Dict[str, Any]:
        data = self.state.to_dict()
        data['keyframes'] = self.keyframes.to_dict()
        return data


@dataclass(frozen=True)
class SystemSettings:
    """Whole-system render hints"""
    auto_rotate_speed: float = 0.35

    def to_dict(self) -> Dict[str, Any]:
        return {'autoRotateSpeed': self.auto_rotate_speed}


@dataclass(frozen=True)
class Blueprint:
    """Complete baked particle animation"""
    style: StyleDefinition
    keyframe_times: np.ndarray
    particles: List[BlueprintParticle] = field(default_factory=list)
    system: SystemSettings = field(default_factory=SystemSettings)
    duration: float = 0.0
    loops: bool = False

    @property
    def particle_count(self) -> int:
        return len(self.particles)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form (camelCase keys, flat keyframe lists)"""
        return {
            'style': self.style.to_dict(),
            'keyframeTimes': self.keyframe_times.tolist(),
            'particles': [particle.to_dict() for particle in self.particles],
            'system': self.system.to_dict(),
            'duration': self.duration,
            'loops': self.loops,
        }


def resolve_particle_count(requested: Any, max_particles: Optional[int]) -> int:
    """
    Clamp a requested count to [8, style max].

    Zero, missing or non-numeric requests count as 10.
    """
    try:
        count = math.floor(float(requested))
    except (TypeError, ValueError, OverflowError):
        count = 0
    count = count or DEFAULT_REQUESTED_PARTICLES
    return min(max(count, MIN_PARTICLES), max_particles or DEFAULT_MAX_PARTICLES)


def build_keyframe_times(lifetime: float, steps: Optional[int]) -> np.ndarray:
    """Uniform sample times over [0, lifetime], at least four of them"""
    steps = max(steps or DEFAULT_KEYFRAME_STEPS, MIN_KEYFRAME_STEPS)
    times = np.array(
        [lifetime * i / (steps - 1) for i in range(steps)], dtype=np.float32
    )
    times.setflags(write=False)
    return times


def build_blueprint(
    params: EffectParams,
    registry: Optional[StyleRegistry] = None,
) -> Blueprint:
    """
    Generate a blueprint for a parameter set.

    Args:
        params: Effect parameters
        registry: Style registry (defaults to the built-in styles)

    Returns:
        New Blueprint
    """
    registry = registry or DEFAULT_REGISTRY
    style = registry.resolve(params)

    count = resolve_particle_count(params.particle_count, style.max_particles)
    times = build_keyframe_times(params.lifetime, style.keyframe_steps)
    logger.debug(
        "Building %s blueprint: %d particles, %d keyframes, custom emitter %s",
        params.effect_type, count, len(times),
        style.custom_emitter.value if style.custom_emitter else None,
    )

    particles = []
    for i in range(count):
        state = build_particle_state(params, style, i, count)
        keyframes = build_animation_keyframes(params, style, state, times)
        particles.append(BlueprintParticle(state, keyframes))

    return Blueprint(
        style=style,
        keyframe_times=times,
        particles=particles,
        system=SystemSettings(auto_rotate_speed=style.system_rotation_speed),
        duration=float(times[-1]),
        loops=params.emitter.loop_particles,
    )
