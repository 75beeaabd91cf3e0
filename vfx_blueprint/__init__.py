"""
VFX Blueprint - Deterministic procedural particle-effect blueprints
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from .core import (
    EffectParams, StyleDefinition, StyleRegistry, DEFAULT_REGISTRY,
    build_preset_params, create_random_params, list_effect_types, resolve_style,
)
from .procedural import Blueprint, build_blueprint
from .importer import ImportResult, SnowstormImportError, convert_snowstorm, load_snowstorm_file

__version__ = "0.1.0"
__all__ = [
    'EffectParams',
    'StyleDefinition',
    'StyleRegistry',
    'Blueprint',
    'ImportResult',
    'SnowstormImportError',
    'build_blueprint',
    'build_preset_params',
    'create_random_params',
    'list_effect_types',
    'resolve_style',
    'convert_snowstorm',
    'generate',
    'import_snowstorm',
]


def generate(
    effect_type: str = "fireball",
    params: Optional[EffectParams] = None,
    registry: Optional[StyleRegistry] = None,
    **overrides
) -> Blueprint:
    """
    Build a blueprint for an effect.

    Args:
        effect_type: Preset to start from when params is not given
        params: Explicit parameters (copied, never modified)
        registry: Style registry (defaults to the built-in styles)
        **overrides: Parameter fields to change, e.g. particle_count=40

    Returns:
        New Blueprint
    """
    registry = registry or DEFAULT_REGISTRY
    if params is None:
        params = registry.build_preset_params(effect_type)
    if overrides:
        params = params.copy(**overrides)
    return build_blueprint(params, registry)


def import_snowstorm(source: Union[str, Path, Dict[str, Any]]) -> ImportResult:
    """
    Import a Snowstorm particle effect.

    Args:
        source: Decoded document, JSON text, or path to a .json file
    """
    if isinstance(source, Path):
        return load_snowstorm_file(source)
    if isinstance(source, str) and not source.lstrip().startswith('{') and Path(source).is_file():
        return load_snowstorm_file(source)
    return convert_snowstorm(source)
