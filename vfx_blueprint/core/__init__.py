"""
VFX Blueprint - Core Utilities
"""

from .utils import ColorUtils, MathUtils, Variant
from .orientation import Vec3, Quaternion, euler_to_quaternion
from .rng import (
    Salt, SeededRandom,
    string_hash, seeded_random, create_random_generator,
)
from .gradient import (
    GradientPlayback, GradientSource,
    GradientStop, ColorGradient, GradientBinding,
)
from .params import (
    # Variants
    EmissionShape, AnimationType, MotionDirectionMode, ArcFlowMode,
    TextureMode, RateMode, EmitterLifetimeMode, RotationMode,
    BillboardFacing, BillboardDirectionMode,
    # Records
    UVPair, EmitterSettings, EmitterSpace, RotationSettings,
    CollisionSettings, TextureFlipbook, BillboardSettings,
    EmitterMotion, ImportMetadata,
    # Parameters
    EffectParams,
)
from .presets import (
    # Styles
    CustomEmitter, AlphaMode, ArcLayer, StyleDefinition,
    DEFAULT_STYLE, EFFECT_STYLES, PARTICLE_SHAPES,
    FALLBACK_PRESET, EFFECT_PRESETS,
    # Registry
    StyleRegistry, DEFAULT_REGISTRY,
    # Convenience
    get_effect_style, resolve_style, get_effect_preset,
    build_preset_params, list_effect_types, with_effect_type,
    create_random_params,
)

__all__ = [
    'ColorUtils', 'MathUtils', 'Variant',
    'Vec3', 'Quaternion', 'euler_to_quaternion',
    # Random
    'Salt', 'SeededRandom',
    'string_hash', 'seeded_random', 'create_random_generator',
    # Gradients
    'GradientPlayback', 'GradientSource',
    'GradientStop', 'ColorGradient', 'GradientBinding',
    # Parameters
    'EmissionShape', 'AnimationType', 'MotionDirectionMode', 'ArcFlowMode',
    'TextureMode', 'RateMode', 'EmitterLifetimeMode', 'RotationMode',
    'BillboardFacing', 'BillboardDirectionMode',
    'UVPair', 'EmitterSettings', 'EmitterSpace', 'RotationSettings',
    'CollisionSettings', 'TextureFlipbook', 'BillboardSettings',
    'EmitterMotion', 'ImportMetadata',
    'EffectParams',
    # Styles & Presets
    'CustomEmitter', 'AlphaMode', 'ArcLayer', 'StyleDefinition',
    'DEFAULT_STYLE', 'EFFECT_STYLES', 'PARTICLE_SHAPES',
    'FALLBACK_PRESET', 'EFFECT_PRESETS',
    'StyleRegistry', 'DEFAULT_REGISTRY',
    'get_effect_style', 'resolve_style', 'get_effect_preset',
    'build_preset_params', 'list_effect_types', 'with_effect_type',
    'create_random_params',
]
