"""
Effect Parameters - the flat, user-editable configuration of one effect

Every numeric field is clamped into its valid range as it is assigned,
every variant field is coerced to a known enum member, and invalid colors
become white. Downstream code can therefore trust whatever it reads.
"""

import math
import re
from dataclasses import MISSING, dataclass, field, fields
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple

from .gradient import ColorGradient, GradientPlayback, GradientSource
from .orientation import Vec3
from .utils import ColorUtils, MathUtils, Variant


# ============================================================================
# Variants
# ============================================================================

class EmissionShape(Variant):
    BOX = "box"
    SPHERE = "sphere"
    CONE = "cone"
    RING = "ring"
    DISC = "disc"


class AnimationType(Variant):
    ORBIT = "orbit"
    RISE = "rise"
    EXPLODE = "explode"
    SPIRAL = "spiral"
    PULSE = "pulse"
    CUSTOM = "custom"


class MotionDirectionMode(Variant):
    OUTWARDS = "outwards"
    INWARDS = "inwards"
    CUSTOM = "custom"


class ArcFlowMode(Variant):
    CONTINUOUS = "continuous"
    BURST = "burst"


class TextureMode(Variant):
    AUTO = "auto"
    NONE = "none"
    CUSTOM = "custom"


class RateMode(Variant):
    STEADY = "steady"
    INSTANT = "instant"


class EmitterLifetimeMode(Variant):
    LOOPING = "looping"
    ONCE = "once"
    EXPRESSION = "expression"


class RotationMode(Variant):
    NONE = "none"
    DYNAMIC = "dynamic"


class BillboardFacing(Variant):
    ROTATE_XYZ = "rotate_xyz"
    ROTATE_Y = "rotate_y"
    LOOKAT_XYZ = "lookat_xyz"
    LOOKAT_Y = "lookat_y"
    DIRECTION_X = "direction_x"
    DIRECTION_Y = "direction_y"
    DIRECTION_Z = "direction_z"
    EMITTER_TRANSFORM_XY = "emitter_transform_xy"
    EMITTER_TRANSFORM_XZ = "emitter_transform_xz"
    EMITTER_TRANSFORM_YZ = "emitter_transform_yz"


class BillboardDirectionMode(Variant):
    VELOCITY = "velocity"
    CUSTOM = "custom"


# ============================================================================
# Field rules
# ============================================================================

# A rule takes (incoming value, field default) and returns the stored value
Rule = Callable[[Any, Any], Any]

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


def to_snake_case(name: str) -> str:
    """'particleCount' -> 'particle_count', 'baseUV' -> 'base_uv'"""
    return _CAMEL_BOUNDARY.sub(r'_\1', name).lower()


def _as_float(value: Any) -> Optional[float]:
    if MathUtils.is_finite(value):
        return float(value)
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def number(min_val: float = -math.inf, max_val: float = math.inf, integer: bool = False) -> Rule:
    def rule(value, default):
        parsed = _as_float(value)
        if parsed is None:
            return default
        if integer:
            parsed = math.floor(parsed)
        clamped = MathUtils.clamp(parsed, min_val, max_val)
        return int(clamped) if integer else clamped
    return rule


def optional(inner: Rule) -> Rule:
    def rule(value, default):
        if value is None:
            return None
        return inner(value, default)
    return rule


def variant(enum_cls) -> Rule:
    return lambda value, default: enum_cls.coerce(value)


def optional_variant(enum_cls) -> Rule:
    return optional(variant(enum_cls))


def flag(value, default):
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    return bool(value)


def text(value, default):
    if value is None:
        return default
    return str(value)


def color(value, default):
    return ColorUtils.normalize_hex(value, '#ffffff')


def vector(value, default):
    return Vec3.from_any(value, default if isinstance(default, Vec3) else Vec3())


def uv_pair(value, default):
    return UVPair.from_any(value, default if isinstance(default, UVPair) else UVPair())


def record(record_cls) -> Rule:
    def rule(value, default):
        if isinstance(value, record_cls):
            return value
        if isinstance(value, dict):
            return record_cls.from_dict(value)
        return default
    return rule


def gradient_stops(value, default):
    gradient = ColorGradient.from_stops(value) if isinstance(value, (list, tuple)) else None
    return gradient.to_list() if gradient else None


# ============================================================================
# Records
# ============================================================================

class ClampedRecord:
    """
    Dataclass mixin applying the class's _RULES on every assignment.

    Assignments happen in __init__ too, so a record can never hold an
    out-of-range value.
    """

    _RULES: ClassVar[Dict[str, Rule]] = {}

    def __setattr__(self, name: str, value: Any) -> None:
        rule = self._RULES.get(name)
        if rule is not None:
            value = rule(value, self._field_default(name))
        object.__setattr__(self, name, value)

    @classmethod
    def _field_default(cls, name: str) -> Any:
        f = cls.__dataclass_fields__.get(name)
        if f is None:
            return None
        if f.default is not MISSING:
            return f.default
        if f.default_factory is not MISSING:
            return f.default_factory()
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Create from a dict with snake_case or camelCase keys; unknown keys are ignored"""
        valid_fields = {f.name for f in fields(cls)}
        filtered = {}
        for key, value in (data or {}).items():
            name = to_snake_case(str(key))
            if name in valid_fields:
                filtered[name] = value
        return cls(**filtered)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _plain(getattr(self, f.name)) for f in fields(self)}


def _plain(value: Any) -> Any:
    """Convert records, vectors and enums into plain data"""
    if isinstance(value, (ClampedRecord, UVPair, Vec3)):
        return value.to_dict()
    if isinstance(value, Variant):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    return value


@dataclass(frozen=True)
class UVPair:
    """Texture-space coordinate pair"""
    u: float = 0.0
    v: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {'u': self.u, 'v': self.v}

    @staticmethod
    def from_any(value: Any, fallback: 'UVPair' = None) -> 'UVPair':
        fallback = fallback or UVPair()
        if isinstance(value, UVPair):
            return value
        if isinstance(value, dict):
            u, v = value.get('u'), value.get('v')
        elif isinstance(value, (list, tuple)) and len(value) >= 2:
            u, v = value[0], value[1]
        else:
            return fallback
        return UVPair(
            float(u) if MathUtils.is_finite(u) else fallback.u,
            float(v) if MathUtils.is_finite(v) else fallback.v,
        )


@dataclass
class EmitterSettings(ClampedRecord):
    """Emitter rate and lifetime"""
    rate_mode: RateMode = RateMode.STEADY
    spawn_rate: float = 20.0
    burst_amount: float = 50.0
    max_particles: int = 200
    lifetime_mode: EmitterLifetimeMode = EmitterLifetimeMode.LOOPING
    active_time: float = 1.0
    sleep_time: float = 0.0
    once_duration: float = 1.0
    activation_expression: str = ""
    expiration_expression: str = ""
    loop_particles: bool = False

    _RULES: ClassVar[Dict[str, Rule]] = {
        'rate_mode': variant(RateMode),
        'spawn_rate': number(0, 10000),
        'burst_amount': number(1, 5000),
        'max_particles': number(1, 50000, integer=True),
        'lifetime_mode': variant(EmitterLifetimeMode),
        'active_time': number(0),
        'sleep_time': number(0),
        'once_duration': number(0),
        'activation_expression': text,
        'expiration_expression': text,
        'loop_particles': flag,
    }


@dataclass
class EmitterSpace(ClampedRecord):
    """Which emitter transforms particles inherit"""
    local_position: bool = False
    local_rotation: bool = False
    local_velocity: bool = False

    _RULES: ClassVar[Dict[str, Rule]] = {
        'local_position': flag,
        'local_rotation': flag,
        'local_velocity': flag,
    }


@dataclass
class RotationSettings(ClampedRecord):
    """Billboard roll rotation"""
    mode: RotationMode = RotationMode.NONE
    initial_angle: float = 0.0
    rate: float = 0.0
    acceleration: float = 0.0
    drag: float = 0.0

    _RULES: ClassVar[Dict[str, Rule]] = {
        'mode': variant(RotationMode),
        'initial_angle': number(-3600, 3600),
        'rate': number(-3600, 3600),
        'acceleration': number(-3600, 3600),
        'drag': number(0, 100),
    }


@dataclass
class CollisionSettings(ClampedRecord):
    enabled: bool = False
    radius: float = 0.1
    drag: float = 0.0
    bounciness: float = 0.0
    expire_on_contact: bool = False
    floor_height: float = 0.0

    _RULES: ClassVar[Dict[str, Rule]] = {
        'enabled': flag,
        'radius': number(0, 10),
        'drag': number(0, 100),
        'bounciness': number(0, 10),
        'expire_on_contact': flag,
        'floor_height': number(-100, 100),
    }


@dataclass
class TextureFlipbook(ClampedRecord):
    """Sprite-sheet animation of the particle texture"""
    enabled: bool = False
    texture_width: int = 16
    texture_height: int = 16
    base_uv: UVPair = field(default_factory=lambda: UVPair(0, 0))
    size_uv: UVPair = field(default_factory=lambda: UVPair(16, 16))
    step_uv: UVPair = field(default_factory=lambda: UVPair(0, 16))
    fps: float = 16.0
    max_frame: int = 16
    stretch_to_lifetime: bool = True
    loop: bool = True

    _RULES: ClassVar[Dict[str, Rule]] = {
        'enabled': flag,
        'texture_width': number(1, 4096, integer=True),
        'texture_height': number(1, 4096, integer=True),
        'base_uv': uv_pair,
        'size_uv': uv_pair,
        'step_uv': uv_pair,
        'fps': number(0, 240),
        'max_frame': number(1, 4096, integer=True),
        'stretch_to_lifetime': flag,
        'loop': flag,
    }


@dataclass
class BillboardSettings(ClampedRecord):
    """Camera facing and UV mapping of billboard particles"""
    facing: BillboardFacing = BillboardFacing.ROTATE_XYZ
    direction_mode: BillboardDirectionMode = BillboardDirectionMode.VELOCITY
    speed_threshold: float = 0.01
    custom_direction: Vec3 = field(default_factory=lambda: Vec3(0.0, 1.0, 0.0))
    uv_offset: UVPair = field(default_factory=UVPair)
    uv_size: UVPair = field(default_factory=lambda: UVPair(1, 1))
    flipbook: TextureFlipbook = field(default_factory=TextureFlipbook)

    _RULES: ClassVar[Dict[str, Rule]] = {
        'facing': variant(BillboardFacing),
        'direction_mode': variant(BillboardDirectionMode),
        'speed_threshold': number(0, 100),
        'custom_direction': vector,
        'uv_offset': uv_pair,
        'uv_size': uv_pair,
        'flipbook': record(TextureFlipbook),
    }


@dataclass(frozen=True)
class EmitterMotion:
    """
    Time-varying emitter offset.

    Each axis function maps elapsed seconds to an offset; axes without a
    function stay at 0. The source expressions are kept for display.
    """
    axis_expressions: Dict[str, str] = field(default_factory=dict, compare=False)
    axis_functions: Dict[str, Callable[[float], float]] = field(default_factory=dict, compare=False)

    def sample(self, time: float) -> Vec3:
        values = []
        for axis in ('x', 'y', 'z'):
            fn = self.axis_functions.get(axis)
            value = fn(time) if fn is not None else 0.0
            values.append(value if MathUtils.is_finite(value) else 0.0)
        return Vec3(*values)

    def to_dict(self) -> Dict[str, Any]:
        return {'mode': 'expression', 'axisExpressions': dict(self.axis_expressions)}


@dataclass(frozen=True)
class ImportMetadata:
    """Where an imported effect came from"""
    source: str
    identifier: Optional[str] = None
    material: Optional[str] = None
    texture_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'identifier': self.identifier,
            'material': self.material,
            'texture_path': self.texture_path,
        }


# ============================================================================
# Effect Parameters
# ============================================================================

MIN_ARC_ANGLE = 0.0
MAX_ARC_ANGLE = math.pi
ARC_ANGLE_STEP = math.radians(1)


@dataclass
class EffectParams(ClampedRecord):
    """
    Complete parameter set for one blueprint generation.

    Arc fields and use_arc_emitter default to None, meaning "let the
    style decide"; the same goes for opacity and the gradient overrides.
    """

    effect_type: str = "fireball"
    effect_identifier: str = "vfx:effect"
    effect_description: str = ""

    # Particles
    particle_count: int = 60
    particle_size: float = 0.22
    particle_speed: float = 1.6
    spread: float = 1.1
    particle_shape: str = "style"
    lifetime: float = 1.8

    # Color
    primary_color: str = "#ff4500"
    secondary_color: str = "#ffa500"
    glow_intensity: float = 1.0
    opacity: Optional[float] = None
    color_gradient: Optional[List[Dict[str, Any]]] = None
    color_gradient_source: Optional[GradientSource] = None
    color_gradient_playback: Optional[GradientPlayback] = None
    color_gradient_speed: Optional[float] = None

    # Emission
    emission_shape: EmissionShape = EmissionShape.SPHERE
    emission_surface_only: bool = False
    emission_offset: Vec3 = field(default_factory=Vec3)

    # Motion
    animation_type: AnimationType = AnimationType.EXPLODE
    motion_direction_mode: MotionDirectionMode = MotionDirectionMode.OUTWARDS
    motion_direction: Vec3 = field(default_factory=lambda: Vec3(0.0, 1.0, 0.0))
    motion_acceleration: Vec3 = field(default_factory=Vec3)
    motion_drag: float = 0.0

    # Rainbow-arc emitter
    use_arc_emitter: Optional[bool] = None
    arc_radius: Optional[float] = None
    arc_start_angle: Optional[float] = None
    arc_end_angle: Optional[float] = None
    arc_thickness: Optional[float] = None
    arc_height_offset: Optional[float] = None
    arc_flow_speed: Optional[float] = None
    arc_flow_mode: Optional[ArcFlowMode] = None

    # Texture
    texture_mode: TextureMode = TextureMode.AUTO
    texture_resolution: int = 16
    texture_blend: float = 1.0

    # Sub-records
    emitter: EmitterSettings = field(default_factory=EmitterSettings)
    emitter_space: EmitterSpace = field(default_factory=EmitterSpace)
    rotation: RotationSettings = field(default_factory=RotationSettings)
    collision: CollisionSettings = field(default_factory=CollisionSettings)
    billboard: BillboardSettings = field(default_factory=BillboardSettings)

    # Set by importers
    emitter_motion: Optional[EmitterMotion] = None
    import_metadata: Optional[ImportMetadata] = None

    _RULES: ClassVar[Dict[str, Rule]] = {
        'effect_type': text,
        'effect_identifier': text,
        'effect_description': text,
        'particle_count': number(1, 1000, integer=True),
        'particle_size': number(0.02, 2),
        'particle_speed': number(0, 12),
        'spread': number(0.01, 6),
        'particle_shape': text,
        'lifetime': number(0.2, 10),
        'primary_color': color,
        'secondary_color': color,
        'glow_intensity': number(0, 10),
        'opacity': optional(number(0, 1)),
        'color_gradient': gradient_stops,
        'color_gradient_source': optional_variant(GradientSource),
        'color_gradient_playback': optional_variant(GradientPlayback),
        'color_gradient_speed': optional(number(-10, 10)),
        'emission_shape': variant(EmissionShape),
        'emission_surface_only': flag,
        'emission_offset': vector,
        'animation_type': variant(AnimationType),
        'motion_direction_mode': variant(MotionDirectionMode),
        'motion_direction': vector,
        'motion_acceleration': vector,
        'motion_drag': number(0, 10),
        'use_arc_emitter': optional(flag),
        'arc_radius': optional(number(0.1, 20)),
        'arc_start_angle': optional(number(MIN_ARC_ANGLE, MAX_ARC_ANGLE - ARC_ANGLE_STEP)),
        'arc_end_angle': optional(number(MIN_ARC_ANGLE + ARC_ANGLE_STEP, MAX_ARC_ANGLE)),
        'arc_thickness': optional(number(0.01, 5)),
        'arc_height_offset': optional(number(-10, 10)),
        'arc_flow_speed': optional(number(0.05, 10)),
        'arc_flow_mode': optional_variant(ArcFlowMode),
        'texture_mode': variant(TextureMode),
        'texture_resolution': number(8, 64, integer=True),
        'texture_blend': number(0, 1),
        'emitter': record(EmitterSettings),
        'emitter_space': record(EmitterSpace),
        'rotation': record(RotationSettings),
        'collision': record(CollisionSettings),
        'billboard': record(BillboardSettings),
    }

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name in ('arc_start_angle', 'arc_end_angle'):
            self._order_arc_angles(moved=name)

    def _order_arc_angles(self, moved: str) -> None:
        start = getattr(self, 'arc_start_angle', None)
        end = getattr(self, 'arc_end_angle', None)
        if start is None or end is None or start < end:
            return
        if moved == 'arc_start_angle':
            object.__setattr__(self, 'arc_end_angle', min(MAX_ARC_ANGLE, start + ARC_ANGLE_STEP))
        else:
            object.__setattr__(self, 'arc_start_angle', max(MIN_ARC_ANGLE, end - ARC_ANGLE_STEP))

    @property
    def arc_angle_range(self) -> Optional[Tuple[float, float]]:
        if self.arc_start_angle is None or self.arc_end_angle is None:
            return None
        return (self.arc_start_angle, self.arc_end_angle)

    def copy(self, **changes) -> 'EffectParams':
        """Independent copy with optional field changes (clamped like any assignment)"""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        for key in ('emitter', 'emitter_space', 'rotation', 'collision', 'billboard'):
            data[key] = type(data[key]).from_dict(data[key].to_dict())
        if data['color_gradient'] is not None:
            data['color_gradient'] = [dict(stop) for stop in data['color_gradient']]
        data.update(changes)
        return EffectParams(**data)
