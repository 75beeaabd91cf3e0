"""Shared pytest fixtures for blueprint and importer tests."""

import copy

import pytest

from vfx_blueprint.core import DEFAULT_REGISTRY, EffectParams, StyleDefinition, build_preset_params


@pytest.fixture
def fireball_params() -> EffectParams:
    """Fresh fireball preset parameters."""
    return build_preset_params("fireball")


@pytest.fixture
def fireball_style(fireball_params) -> StyleDefinition:
    """Style resolved for the fireball preset."""
    return DEFAULT_REGISTRY.resolve(fireball_params)


@pytest.fixture
def rainbow_params() -> EffectParams:
    """Rainbow preset (arc emitter enabled)."""
    return build_preset_params("rainbow")


@pytest.fixture
def rainbow_style(rainbow_params) -> StyleDefinition:
    return DEFAULT_REGISTRY.resolve(rainbow_params)


_SPARKS_DOCUMENT = {
    "format_version": "1.10.0",
    "particle_effect": {
        "description": {
            "identifier": "demo:sparks",
            "basic_render_parameters": {
                "material": "particles_add",
                "texture": "textures/particle/particles",
            },
        },
        "components": {
            "minecraft:emitter_rate_steady": {"spawn_rate": 30, "max_particles": 50},
            "minecraft:emitter_lifetime_looping": {"active_time": 2},
            "minecraft:emitter_shape_sphere": {
                "radius": 2.5,
                "surface_only": True,
                "direction": "outwards",
            },
            "minecraft:particle_lifetime_expression": {"max_lifetime": 2},
            "minecraft:particle_initial_speed": 4,
            "minecraft:particle_motion_dynamic": {
                "linear_acceleration": [0, -2, 0],
                "linear_drag_coefficient": 0.5,
            },
            "minecraft:particle_appearance_billboard": {
                "size": [0.2, 0.4],
                "facing_camera_mode": "lookat_xyz",
            },
            "minecraft:particle_appearance_tinting": {"color": [1, 0.5, 0, 1]},
        },
    },
}

_ARC_DOCUMENT = {
    "format_version": "1.10.0",
    "particle_effect": {
        "description": {
            "identifier": "demo:rainbow",
            "basic_render_parameters": {"material": "particles_blend"},
        },
        "components": {
            "minecraft:emitter_rate_steady": {"spawn_rate": 40, "max_particles": 120},
            "minecraft:emitter_shape_point": {
                "offset": [
                    "math.cos(variable.emitter_age * 90) * 3",
                    "math.sin(variable.emitter_age * 90) * 3",
                    0,
                ],
            },
            "minecraft:particle_lifetime_expression": {"max_lifetime": 1.5},
        },
    },
}


@pytest.fixture
def sparks_document() -> dict:
    """Sphere emitter with rate, motion, size and tint components."""
    return copy.deepcopy(_SPARKS_DOCUMENT)


@pytest.fixture
def arc_document() -> dict:
    """Point emitter swept along a cosine/sine arc."""
    return copy.deepcopy(_ARC_DOCUMENT)


def make_document(components: dict, description: dict = None) -> dict:
    """Minimal Snowstorm document around the given components."""
    return {
        "format_version": "1.10.0",
        "particle_effect": {
            "description": description or {
                "identifier": "test:effect",
                "basic_render_parameters": {"texture": "textures/test"},
            },
            "components": components,
        },
    }


@pytest.fixture
def document_factory():
    return make_document
