"""
Snowstorm Importer - Bedrock particle JSON to EffectParams

Maps each recognized component family onto the parameter schema. Values
may be numbers or Molang expressions; anything that cannot be resolved
exactly is approximated and, where the approximation loses meaning,
reported as a warning. Only a missing payload or a missing
particle_effect block aborts an import.
"""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..core.orientation import Vec3
from ..core.params import (
    AnimationType,
    ArcFlowMode,
    BillboardDirectionMode,
    BillboardFacing,
    EffectParams,
    EmissionShape,
    EmitterLifetimeMode,
    EmitterMotion,
    ImportMetadata,
    MotionDirectionMode,
    RateMode,
    RotationMode,
    TextureMode,
    UVPair,
)
from ..core.gradient import GradientPlayback, GradientSource
from ..core.utils import ColorUtils, MathUtils
from .expressions import (
    ExpressionContext,
    compile_axis_expression,
    extract_numbers,
    parse_init_block,
    resolve_number,
)

logger = logging.getLogger(__name__)

DEFAULT_IDENTIFIER = "snowstorm:import"
POINT_SPREAD = 0.15

DEFAULT_ARC_RADIUS = 2.5

_IDENTIFIER = re.compile(r"[A-Za-z_]")

WARN_COLOR_EXPRESSION = "Color expressions were simplified to approximate RGB values."
WARN_GRADIENT_INTERPOLANT = "Color gradient interpolant was approximated by static per-particle sampling."
WARN_LIFETIME_EXPRESSION = "Emitter lifetime expressions are imported as metadata only."
WARN_NO_TEXTURE = "Texture path was not provided; using blocky procedural colors."

_DIRECTION_MODES = {
    'derive_from_velocity': BillboardDirectionMode.VELOCITY,
    'velocity': BillboardDirectionMode.VELOCITY,
    'custom': BillboardDirectionMode.CUSTOM,
    'custom_direction': BillboardDirectionMode.CUSTOM,
}


class SnowstormImportError(ValueError):
    """The document is not a usable Snowstorm particle file"""


@dataclass
class ImportResult:
    params: EffectParams
    warnings: List[str] = field(default_factory=list)


# ============================================================================
# Arc Detection
# ============================================================================

@dataclass(frozen=True)
class ArcEmitterGuess:
    """Rainbow-arc settings inferred from a point emitter's offset"""
    radius: float
    thickness: float
    height_offset: float
    start_angle: float = math.pi * 0.05
    end_angle: float = math.pi * 0.95
    flow_speed: float = 0.65
    flow_mode: ArcFlowMode = ArcFlowMode.CONTINUOUS


def find_radius_from_offset_expression(expression: Any) -> Optional[float]:
    """
    Largest literal multiplier in an offset expression.

    Looks at '*'-separated factors from the right, skipping any that
    mention the emitter age, then at the whole expression.
    """
    if not isinstance(expression, str):
        return None
    factors = [part.strip() for part in expression.split('*') if part.strip()]
    for factor in reversed(factors):
        if 'emitter_age' in factor.lower():
            continue
        samples = [abs(n) for n in extract_numbers(factor)]
        if samples:
            return max(samples)
    samples = [abs(n) for n in extract_numbers(expression)]
    return max(samples) if samples else None


def detect_arc_emitter(shape: Any, context: Optional[ExpressionContext] = None) -> Optional[ArcEmitterGuess]:
    """
    Recognize a point emitter swept along an arc: cosine on the x offset
    and sine on the y offset.
    """
    if not isinstance(shape, dict):
        return None
    offset = shape.get('offset')
    if not isinstance(offset, (list, tuple)) or len(offset) < 2:
        return None
    x_expr, y_expr = offset[0], offset[1]
    z_expr = offset[2] if len(offset) > 2 else 0
    if not isinstance(x_expr, str) or not isinstance(y_expr, str):
        return None
    if 'math.cos' not in x_expr.lower() or 'math.sin' not in y_expr.lower():
        return None

    radius = find_radius_from_offset_expression(x_expr)
    if radius is None:
        radius = find_radius_from_offset_expression(y_expr)
    if radius is None:
        radius = DEFAULT_ARC_RADIUS
    radius = max(0.05, radius)
    return ArcEmitterGuess(
        radius=radius,
        thickness=max(0.05, max(radius * 0.35, 0.1)),
        height_offset=resolve_number(z_expr, 0.0, context),
    )


# ============================================================================
# Color Helpers
# ============================================================================

def _js_round(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_color(value: Any, context: Optional[ExpressionContext] = None,
                default: Optional[str] = None) -> Optional[str]:
    """
    Hex color from '#RRGGBB', '#AARRGGBB', an RGB(A) list or {r, g, b}.

    Channels are normalized 0-1. Unparseable values give the default.
    """
    if isinstance(value, str):
        digits = value.strip().lstrip('#')
        if len(digits) == 8:
            digits = digits[2:]
        return ColorUtils.normalize_hex(digits, default) if ColorUtils.is_hex_color(digits) else default
    if isinstance(value, (list, tuple)) and len(value) >= 3:
        return ColorUtils.rgb_to_hex(tuple(resolve_number(c, 1.0, context) for c in value[:3]))
    if isinstance(value, dict) and any(k in value for k in ('r', 'g', 'b')):
        return ColorUtils.rgb_to_hex(tuple(
            resolve_number(value.get(k), 1.0, context) for k in ('r', 'g', 'b')
        ))
    return default


def extract_gradient_stops(gradient: Any, context: Optional[ExpressionContext] = None) -> List[Dict[str, Any]]:
    """Stops from {stop: color} or an evenly spaced [color, ...] list"""
    stops = []
    if isinstance(gradient, dict):
        for key, raw in gradient.items():
            try:
                t = float(key)
            except (TypeError, ValueError):
                continue
            color = parse_color(raw, context)
            if color is not None and math.isfinite(t):
                stops.append({'stop': MathUtils.clamp01(t), 'color': color})
    elif isinstance(gradient, (list, tuple)):
        colors = [parse_color(raw, context) for raw in gradient]
        colors = [c for c in colors if c is not None]
        for i, color in enumerate(colors):
            t = i / (len(colors) - 1) if len(colors) > 1 else 0.0
            stops.append({'stop': t, 'color': color})
    return sorted(stops, key=lambda s: s['stop'])


# ============================================================================
# Converter
# ============================================================================

class SnowstormConverter:
    """
    Converts one particle_effect block.

    Each _apply_* method handles one component family and leaves the
    parameters untouched when its components are absent.
    """

    def __init__(self, effect: Dict[str, Any]):
        description = effect.get('description')
        components = effect.get('components')
        self.description: Dict[str, Any] = description if isinstance(description, dict) else {}
        self.components: Dict[str, Any] = components if isinstance(components, dict) else {}
        render = self.description.get('basic_render_parameters')
        self.render: Dict[str, Any] = render if isinstance(render, dict) else {}

        self.params = EffectParams()
        self.context = ExpressionContext(lifetime=self.params.lifetime, size=self.params.particle_size)
        self.warnings: List[str] = []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(message)

    def _component(self, name: str) -> Optional[Any]:
        value = self.components.get(name)
        if value is not None:
            logger.debug("Applying %s", name)
        return value

    def _number(self, value: Any, default: float) -> float:
        return resolve_number(value, default, self.context)

    def _vector(self, value: Any, fallback: Vec3) -> Vec3:
        if isinstance(value, (list, tuple)):
            parts = list(value[:3]) + [None] * (3 - len(value[:3]))
        elif isinstance(value, dict):
            parts = [value.get('x'), value.get('y'), value.get('z')]
        else:
            return fallback
        return Vec3(*(self._number(part, default) for part, default in zip(parts, fallback.to_tuple())))

    def _uv(self, value: Any, fallback: UVPair) -> UVPair:
        if not isinstance(value, (list, tuple)) or len(value) < 2:
            return fallback
        return UVPair(self._number(value[0], fallback.u), self._number(value[1], fallback.v))

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def convert(self) -> ImportResult:
        p = self.params
        identifier = self.description.get('identifier') or DEFAULT_IDENTIFIER
        texture = self.render.get('texture') or None
        p.effect_type = identifier
        p.effect_identifier = identifier
        p.effect_description = texture or ''
        p.animation_type = AnimationType.CUSTOM

        self._apply_initialization()
        self._apply_material()
        self._apply_lifetime()
        self._apply_shape()
        self._apply_rate()
        self._apply_speed()
        self._apply_motion()
        self._apply_size()
        self._apply_colors()
        self._apply_emitter_space()
        self._apply_emitter_lifetime()
        self._apply_spin()
        self._apply_collision()
        self._apply_billboard()

        p.import_metadata = ImportMetadata(
            source='snowstorm',
            identifier=self.description.get('identifier') or None,
            material=self.render.get('material'),
            texture_path=texture,
        )
        if not texture:
            self._warn(WARN_NO_TEXTURE)
            p.texture_mode = TextureMode.AUTO

        return ImportResult(params=p, warnings=self.warnings)

    def _apply_initialization(self) -> None:
        init = self._component('minecraft:emitter_initialization')
        if isinstance(init, dict):
            defined = parse_init_block(init.get('creation_expression'), self.context)
            if defined:
                logger.debug("Initialization defined %s", ", ".join(defined))

    def _apply_material(self) -> None:
        material = self.render.get('material')
        if not isinstance(material, str):
            return
        if 'add' in material:
            self.params.glow_intensity = 2.2
        elif 'opaque' in material:
            self.params.opacity = 1
            self.params.glow_intensity = 0.8
        elif 'alpha' in material:
            self.params.opacity = 0.85

    def _apply_lifetime(self) -> None:
        source = None
        for name in ('minecraft:particle_lifetime_expression',
                     'minecraft:particle_lifetime_constant',
                     'minecraft:particle_lifetime_linear'):
            source = self._component(name)
            if isinstance(source, dict):
                break
        if not isinstance(source, dict):
            return
        self.params.lifetime = self._number(source.get('max_lifetime'), self.params.lifetime)
        self.context.lifetime = self.params.lifetime

    def _apply_shape(self) -> None:
        p = self.params
        sphere = self._component('minecraft:emitter_shape_sphere')
        disc = self._component('minecraft:emitter_shape_disc')
        box = self._component('minecraft:emitter_shape_box')
        point = self._component('minecraft:emitter_shape_point')
        shape = next((s for s in (sphere, disc, box, point) if isinstance(s, dict)), None)
        if shape is None:
            return

        if isinstance(point, dict):
            arc = detect_arc_emitter(point, self.context)
            if arc is not None:
                p.use_arc_emitter = True
                p.emission_shape = EmissionShape.DISC
                p.emission_surface_only = True
                p.arc_radius = arc.radius
                p.arc_thickness = arc.thickness
                p.arc_height_offset = arc.height_offset
                p.arc_start_angle = arc.start_angle
                p.arc_end_angle = arc.end_angle
                p.arc_flow_speed = arc.flow_speed
                p.arc_flow_mode = arc.flow_mode
                logger.debug("Point emitter reinterpreted as rainbow arc (radius %.2f)", arc.radius)
                return

        if shape is sphere:
            p.emission_shape = EmissionShape.SPHERE
            p.spread = MathUtils.clamp(self._number(sphere.get('radius'), p.spread), 0.01, 6)
        elif shape is disc:
            p.emission_shape = EmissionShape.DISC
            p.spread = MathUtils.clamp(self._number(disc.get('radius'), p.spread), 0.05, 6)
        elif shape is box:
            p.emission_shape = EmissionShape.BOX
            dims = box.get('half_dimensions')
            if isinstance(dims, (list, tuple)) and dims:
                values = [abs(self._number(v, 0.25)) for v in dims]
                average = sum(values) / len(values) or 1.0
                p.spread = MathUtils.clamp(average * 2, 0.1, 6)
        else:
            p.emission_shape = EmissionShape.SPHERE
            p.spread = POINT_SPREAD

        if shape.get('offset') is not None:
            self._apply_offset(shape['offset'])
        if isinstance(shape.get('surface_only'), bool):
            p.emission_surface_only = shape['surface_only']

        direction = shape.get('direction')
        if isinstance(direction, str):
            mode = direction.lower()
            if mode in ('outwards', 'inwards'):
                p.motion_direction_mode = mode
        elif isinstance(direction, (list, tuple, dict)):
            vector = self._vector(direction, p.motion_direction)
            if vector.length > 1e-3:
                p.motion_direction_mode = MotionDirectionMode.CUSTOM
                p.motion_direction = vector.normalized()

    def _apply_offset(self, offset: Any) -> None:
        """Static offset, with emitter-age axes compiled into emitter motion"""
        if isinstance(offset, dict):
            raw = [offset.get('x'), offset.get('y'), offset.get('z')]
        elif isinstance(offset, (list, tuple)):
            raw = list(offset[:3]) + [None] * (3 - len(offset[:3]))
        else:
            return

        static = []
        expressions = {}
        functions = {}
        for axis, value, default in zip('xyz', raw, self.params.emission_offset.to_tuple()):
            fn = compile_axis_expression(value, self.context)
            if fn is not None:
                expressions[axis] = value
                functions[axis] = fn
                static.append(0.0)
            else:
                static.append(self._number(value, default))

        self.params.emission_offset = Vec3(*static)
        if functions:
            self.params.emitter_motion = EmitterMotion(
                axis_expressions=expressions, axis_functions=functions
            )

    def _apply_rate(self) -> None:
        p = self.params
        emitter = p.emitter
        steady = self._component('minecraft:emitter_rate_steady')
        instant = self._component('minecraft:emitter_rate_instant')
        if isinstance(steady, dict):
            emitter.rate_mode = RateMode.STEADY
            emitter.spawn_rate = self._number(steady.get('spawn_rate'), emitter.spawn_rate)
            emitter.max_particles = self._number(steady.get('max_particles'), emitter.max_particles)
            estimate = max(emitter.spawn_rate * p.lifetime, emitter.max_particles or 0)
            count = estimate or emitter.spawn_rate or p.particle_count
            p.particle_count = MathUtils.clamp(_js_round(count), 8, 200)
        elif isinstance(instant, dict):
            emitter.rate_mode = RateMode.INSTANT
            emitter.burst_amount = self._number(instant.get('amount'), emitter.burst_amount)
            emitter.max_particles = self._number(instant.get('max_particles'), emitter.max_particles)
            p.particle_count = MathUtils.clamp(_js_round(emitter.burst_amount or p.particle_count), 8, 200)

    def _apply_speed(self) -> None:
        speed = self._component('minecraft:particle_initial_speed')
        if speed is None:
            return
        if isinstance(speed, (list, tuple)):
            value = self._vector(speed, Vec3()).length
        else:
            value = self._number(speed, self.params.particle_speed)
        self.params.particle_speed = MathUtils.clamp(value, 0, 12)

    def _apply_motion(self) -> None:
        motion = self._component('minecraft:particle_motion_dynamic')
        if not isinstance(motion, dict):
            return
        p = self.params
        if motion.get('linear_acceleration') is not None:
            p.motion_acceleration = self._vector(motion['linear_acceleration'], p.motion_acceleration)
        if motion.get('linear_drag_coefficient') is not None:
            p.motion_drag = self._number(motion['linear_drag_coefficient'], p.motion_drag)
        if motion.get('rotation_acceleration') is not None:
            p.rotation.mode = RotationMode.DYNAMIC
            p.rotation.acceleration = self._number(motion['rotation_acceleration'], p.rotation.acceleration)
        if motion.get('rotation_drag_coefficient') is not None:
            p.rotation.mode = RotationMode.DYNAMIC
            p.rotation.drag = self._number(motion['rotation_drag_coefficient'], p.rotation.drag)

    def _apply_size(self) -> None:
        appearance = self._component('minecraft:particle_appearance_billboard')
        if not isinstance(appearance, dict):
            return
        p = self.params
        size = appearance.get('size')
        if isinstance(size, (list, tuple)) and len(size) >= 2:
            average = (self._number(size[0], p.particle_size) + self._number(size[1], p.particle_size)) / 2
            p.particle_size = abs(average) or p.particle_size
        elif MathUtils.is_finite(size) or isinstance(size, str):
            p.particle_size = abs(self._number(size, p.particle_size)) or p.particle_size
        self.context.size = p.particle_size

    def _apply_colors(self) -> None:
        tint = self._component('minecraft:particle_appearance_tinting')
        if not isinstance(tint, dict) or not tint.get('color'):
            return
        p = self.params
        color = tint['color']

        if isinstance(color, dict) and color.get('gradient'):
            stops = extract_gradient_stops(color['gradient'], self.context)
            if stops:
                p.color_gradient = stops
                p.color_gradient_source = GradientSource.LAYER if p.use_arc_emitter else GradientSource.RANDOM
                p.color_gradient_playback = GradientPlayback.STATIC
                p.color_gradient_speed = 0
                p.primary_color = stops[0]['color']
                p.secondary_color = stops[-1]['color']
                interpolant = color.get('interpolant')
                if isinstance(interpolant, str) and _IDENTIFIER.search(interpolant):
                    self._warn(WARN_GRADIENT_INTERPOLANT)
                return

        if isinstance(color, (list, tuple)):
            if any(isinstance(c, str) for c in color[:3]):
                self._warn(WARN_COLOR_EXPRESSION)
            padded = list(color[:3]) + [1.0] * (3 - len(color[:3]))
            primary = parse_color(padded, self.context)
        else:
            primary = parse_color(color, self.context)
            if primary is None and isinstance(color, str):
                self._warn(WARN_COLOR_EXPRESSION)
        if primary is None:
            return
        p.primary_color = primary
        p.secondary_color = ColorUtils.brighten_hex(primary, 0.1)

    def _apply_emitter_space(self) -> None:
        config = self._component('minecraft:emitter_local_space')
        if not isinstance(config, dict):
            return
        space = self.params.emitter_space
        space.local_position = bool(config.get('position'))
        space.local_rotation = bool(config.get('rotation'))
        space.local_velocity = bool(config.get('velocity'))

    def _apply_emitter_lifetime(self) -> None:
        emitter = self.params.emitter
        looping = self._component('minecraft:emitter_lifetime_looping')
        once = self._component('minecraft:emitter_lifetime_once')
        expression = self._component('minecraft:emitter_lifetime_expression')
        if isinstance(looping, dict):
            emitter.lifetime_mode = EmitterLifetimeMode.LOOPING
            emitter.active_time = self._number(looping.get('active_time'), emitter.active_time)
            emitter.sleep_time = self._number(looping.get('sleep_time'), emitter.sleep_time)
        elif isinstance(once, dict):
            emitter.lifetime_mode = EmitterLifetimeMode.ONCE
            emitter.once_duration = self._number(once.get('active_time'), emitter.once_duration)
        elif isinstance(expression, dict):
            emitter.lifetime_mode = EmitterLifetimeMode.EXPRESSION
            if isinstance(expression.get('activation_expression'), str):
                emitter.activation_expression = expression['activation_expression']
            if isinstance(expression.get('expiration_expression'), str):
                emitter.expiration_expression = expression['expiration_expression']
            self._warn(WARN_LIFETIME_EXPRESSION)

        emitter.loop_particles = (
            emitter.rate_mode is RateMode.STEADY
            and emitter.lifetime_mode is not EmitterLifetimeMode.ONCE
        )

    def _apply_spin(self) -> None:
        spin = self._component('minecraft:particle_initial_spin')
        if not isinstance(spin, dict):
            return
        rotation = self.params.rotation
        rotation.mode = RotationMode.DYNAMIC
        rotation.initial_angle = self._number(spin.get('rotation'), rotation.initial_angle)
        rotation.rate = self._number(spin.get('rotation_rate'), rotation.rate)

    def _apply_collision(self) -> None:
        config = self._component('minecraft:particle_motion_collision')
        if not isinstance(config, dict):
            return
        collision = self.params.collision
        collision.enabled = True
        collision.radius = self._number(config.get('collision_radius'), collision.radius)
        collision.drag = self._number(config.get('collision_drag'), collision.drag)
        collision.bounciness = self._number(config.get('coefficient_of_restitution'), collision.bounciness)
        collision.expire_on_contact = bool(config.get('expire_on_contact'))

    def _apply_billboard(self) -> None:
        appearance = self.components.get('minecraft:particle_appearance_billboard')
        if not isinstance(appearance, dict):
            return
        billboard = self.params.billboard

        if appearance.get('facing_camera_mode'):
            billboard.facing = BillboardFacing.coerce(appearance['facing_camera_mode'])

        direction = appearance.get('direction')
        if isinstance(direction, dict):
            mode = direction.get('mode')
            custom = direction.get('custom_direction')
            threshold = direction.get('min_speed_threshold')
        else:
            mode = appearance.get('direction_mode')
            custom = direction if isinstance(direction, (list, tuple)) else None
            threshold = appearance.get('speed_threshold')

        if isinstance(mode, str):
            billboard.direction_mode = _DIRECTION_MODES.get(mode.lower(), BillboardDirectionMode.default())
        if custom is not None:
            billboard.custom_direction = self._vector(custom, billboard.custom_direction)
        if threshold is not None:
            billboard.speed_threshold = self._number(threshold, billboard.speed_threshold)

        uv = appearance.get('uv')
        if not isinstance(uv, dict):
            return
        billboard.uv_offset = self._uv(uv.get('uv'), billboard.uv_offset)
        billboard.uv_size = self._uv(uv.get('uv_size'), billboard.uv_size)

        flip = uv.get('flipbook')
        if isinstance(flip, dict):
            flipbook = billboard.flipbook
            flipbook.enabled = True
            flipbook.texture_width = self._number(uv.get('texture_width'), flipbook.texture_width)
            flipbook.texture_height = self._number(uv.get('texture_height'), flipbook.texture_height)
            flipbook.base_uv = self._uv(flip.get('base_UV'), flipbook.base_uv)
            flipbook.size_uv = self._uv(flip.get('size_UV'), flipbook.size_uv)
            flipbook.step_uv = self._uv(flip.get('step_UV'), flipbook.step_uv)
            flipbook.max_frame = self._number(flip.get('max_frame'), flipbook.max_frame)
            fps = flip.get('frames_per_second', uv.get('frames_per_second'))
            flipbook.fps = self._number(fps, flipbook.fps)
            flipbook.stretch_to_lifetime = bool(flip.get('stretch_to_lifetime'))
            if 'loop' in flip:
                flipbook.loop = bool(flip['loop'])


# ============================================================================
# Public API
# ============================================================================

def convert_snowstorm(raw: Union[str, Dict[str, Any]]) -> ImportResult:
    """
    Convert a Snowstorm particle document into effect parameters.

    Args:
        raw: JSON text or an already-decoded document

    Returns:
        ImportResult with params and informational warnings

    Raises:
        SnowstormImportError: payload is not a JSON object, or has no
            particle_effect block
    """
    payload = raw
    if isinstance(raw, (str, bytes)):
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SnowstormImportError("Invalid Snowstorm file: missing JSON payload.") from e

    if not isinstance(payload, dict):
        raise SnowstormImportError("Invalid Snowstorm file: missing JSON payload.")
    effect = payload.get('particle_effect')
    if not isinstance(effect, dict):
        raise SnowstormImportError("Invalid Snowstorm file: missing particle_effect block.")

    result = SnowstormConverter(effect).convert()
    logger.info(
        "Imported %s with %d warning(s)", result.params.effect_identifier, len(result.warnings)
    )
    return result


def load_snowstorm_file(path: Union[str, Path]) -> ImportResult:
    """Read and convert a .particle.json file"""
    with open(path, 'r', encoding='utf-8') as f:
        return convert_snowstorm(f.read())
