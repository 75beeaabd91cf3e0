"""
Vector and orientation math - 3D vectors, quaternions, Euler conversion
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .utils import MathUtils


# =============================================================================
# Vectors
# =============================================================================

@dataclass(frozen=True)
class Vec3:
    """Immutable 3D vector"""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: 'Vec3') -> 'Vec3':
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: 'Vec3') -> 'Vec3':
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> 'Vec3':
        return Vec3(self.x * scalar, self.y * scalar, self.z * scalar)

    def __rmul__(self, scalar: float) -> 'Vec3':
        return self.__mul__(scalar)

    def __neg__(self) -> 'Vec3':
        return Vec3(-self.x, -self.y, -self.z)

    @property
    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    @property
    def horizontal_length(self) -> float:
        """Distance from the vertical axis (length in the XZ plane)"""
        return math.hypot(self.x, self.z)

    def is_zero(self) -> bool:
        return self.x == 0 and self.y == 0 and self.z == 0

    def normalized(self) -> 'Vec3':
        """Unit vector; the zero vector normalizes to straight up"""
        l = self.length
        if l == 0 or not math.isfinite(l):
            return Vec3(0.0, 1.0, 0.0)
        return Vec3(self.x / l, self.y / l, self.z / l)

    def lerp(self, other: 'Vec3', t: float) -> 'Vec3':
        return Vec3(
            self.x + (other.x - self.x) * t,
            self.y + (other.y - self.y) * t,
            self.z + (other.z - self.z) * t,
        )

    def to_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def to_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y, 'z': self.z}

    @staticmethod
    def from_any(value: Any, fallback: 'Vec3' = None) -> 'Vec3':
        """
        Coerce a Vec3, {x, y, z} mapping or 3-sequence into a Vec3.

        Missing or non-finite components take the fallback's component.
        """
        fallback = fallback or Vec3()
        if isinstance(value, Vec3):
            return value
        if isinstance(value, dict):
            parts = (value.get('x'), value.get('y'), value.get('z'))
        elif isinstance(value, (list, tuple)):
            parts = tuple(value[:3]) + (None,) * (3 - len(value[:3]))
        else:
            return fallback

        defaults = fallback.to_tuple()
        coerced = []
        for part, default in zip(parts, defaults):
            coerced.append(float(part) if MathUtils.is_finite(part) else default)
        return Vec3(*coerced)


# =============================================================================
# Quaternions
# =============================================================================

@dataclass(frozen=True)
class Quaternion:
    """Rotation quaternion stored as (x, y, z, w)"""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @property
    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z + self.w * self.w)

    def normalized(self) -> 'Quaternion':
        l = self.length
        if l == 0 or not math.isfinite(l):
            l = 1.0
        return Quaternion(self.x / l, self.y / l, self.z / l, self.w / l)

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.z, self.w)


def euler_to_quaternion(x: float, y: float, z: float) -> Quaternion:
    """
    Build a unit quaternion from XYZ-order Euler angles.

    Args:
        x, y, z: Rotation around each axis in radians

    Returns:
        Normalized Quaternion
    """
    cx, sx = math.cos(x / 2), math.sin(x / 2)
    cy, sy = math.cos(y / 2), math.sin(y / 2)
    cz, sz = math.cos(z / 2), math.sin(z / 2)

    return Quaternion(
        x=sx * cy * cz - cx * sy * sz,
        y=cx * sy * cz + sx * cy * sz,
        z=cx * cy * sz - sx * sy * cz,
        w=cx * cy * cz + sx * sy * sz,
    ).normalized()
