"""
Procedural Generation - per-particle state and baked keyframe tracks
"""

from .emitters import (
    EmissionSample, SHAPE_SAMPLERS,
    sample_vortex, sample_rainbow_arc, arc_angle_range,
    sample_sphere, sample_cone, sample_ring, sample_disc, sample_box,
    compute_emission_position,
)
from .state import ParticleState, build_particle_state
from .keyframes import (
    KeyframeTrack, MotionContext, ANIMATION_SAMPLERS,
    sample_orbit, sample_rise, sample_explode, sample_spiral,
    sample_pulse, sample_custom, sample_arc_flow,
    apply_motion_delay, delayed_progress_time,
    get_sampler, build_animation_keyframes,
)
from .blueprint import (
    Blueprint, BlueprintParticle, SystemSettings,
    resolve_particle_count, build_keyframe_times, build_blueprint,
)

__all__ = [
    # Emission
    'EmissionSample', 'SHAPE_SAMPLERS',
    'sample_vortex', 'sample_rainbow_arc', 'arc_angle_range',
    'sample_sphere', 'sample_cone', 'sample_ring', 'sample_disc', 'sample_box',
    'compute_emission_position',
    # Particle state
    'ParticleState', 'build_particle_state',
    # Keyframes
    'KeyframeTrack', 'MotionContext', 'ANIMATION_SAMPLERS',
    'sample_orbit', 'sample_rise', 'sample_explode', 'sample_spiral',
    'sample_pulse', 'sample_custom', 'sample_arc_flow',
    'apply_motion_delay', 'delayed_progress_time',
    'get_sampler', 'build_animation_keyframes',
    # Blueprint
    'Blueprint', 'BlueprintParticle', 'SystemSettings',
    'resolve_particle_count', 'build_keyframe_times', 'build_blueprint',
]
