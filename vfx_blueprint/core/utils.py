"""
Utility functions for color conversion and scalar math
"""

import math
import numbers
import re
from enum import Enum
from typing import Tuple

RGB = Tuple[float, float, float]

_HEX_PATTERN = re.compile(r'^[0-9a-fA-F]{6}$')


class ColorUtils:
    """Hex color conversion and mixing utilities (channels normalized to 0-1)"""

    WHITE: RGB = (1.0, 1.0, 1.0)

    @staticmethod
    def is_hex_color(value) -> bool:
        """True for a 6-digit hex string, with or without a leading '#'"""
        if not isinstance(value, str):
            return False
        return bool(_HEX_PATTERN.match(value.strip().lstrip('#')))

    @staticmethod
    def normalize_hex(value, fallback: str = '#ffffff') -> str:
        """Return '#rrggbb' in lowercase, or the fallback for invalid input"""
        if not ColorUtils.is_hex_color(value):
            return fallback
        return '#' + value.strip().lstrip('#').lower()

    @staticmethod
    def hex_to_rgb(hex_color: str) -> RGB:
        """Convert '#rrggbb' to normalized RGB. Anything else reads as white."""
        if not ColorUtils.is_hex_color(hex_color):
            return ColorUtils.WHITE
        value = int(hex_color.strip().lstrip('#'), 16)
        return (
            ((value >> 16) & 255) / 255,
            ((value >> 8) & 255) / 255,
            (value & 255) / 255,
        )

    @staticmethod
    def rgb_to_hex(rgb: RGB) -> str:
        """Convert normalized RGB to '#rrggbb', rounding and clamping each channel"""
        def to_byte(channel: float) -> int:
            if not math.isfinite(channel):
                channel = 1.0
            return int(MathUtils.clamp(round(channel * 255), 0, 255))

        r, g, b = rgb
        return '#{:02x}{:02x}{:02x}'.format(to_byte(r), to_byte(g), to_byte(b))

    @staticmethod
    def mix_hex(hex_a: str, hex_b: str, t: float) -> str:
        """Linear RGB mix of two hex colors"""
        a = ColorUtils.hex_to_rgb(hex_a)
        b = ColorUtils.hex_to_rgb(hex_b)
        return ColorUtils.rgb_to_hex(tuple(
            MathUtils.lerp(a[i], b[i], t) for i in range(3)
        ))

    @staticmethod
    def brighten_hex(hex_color: str, delta: float) -> str:
        """Shift every channel by delta (fraction of full range), clamped"""
        r, g, b = ColorUtils.hex_to_rgb(hex_color)
        return ColorUtils.rgb_to_hex((r + delta, g + delta, b + delta))


class MathUtils:
    """Scalar math helpers shared by the samplers"""

    @staticmethod
    def clamp(value: float, min_val: float, max_val: float) -> float:
        """Clamp value to [min_val, max_val]"""
        return min(max(value, min_val), max_val)

    @staticmethod
    def clamp01(value: float) -> float:
        """Clamp to [0, 1]; non-finite values read as 0"""
        if not MathUtils.is_finite(value):
            return 0.0
        return MathUtils.clamp(value, 0.0, 1.0)

    @staticmethod
    def lerp(a: float, b: float, t: float) -> float:
        """Linear interpolation between a and b"""
        return a + (b - a) * t

    @staticmethod
    def wrap01(value: float) -> float:
        """Wrap into [0, 1); non-finite values read as 0"""
        if not MathUtils.is_finite(value):
            return 0.0
        wrapped = value % 1.0
        # float modulo can round up to exactly 1.0 for tiny negatives
        return 0.0 if wrapped >= 1.0 else wrapped

    @staticmethod
    def fract(value: float) -> float:
        """Fractional part, always in [0, 1)"""
        return value - math.floor(value)

    @staticmethod
    def is_finite(value) -> bool:
        """True for a real, finite number (bools excluded)"""
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            return False
        return math.isfinite(value)


class Variant(Enum):
    """
    Enum for values arriving from user input.

    The first member declared is the fallback for unknown values, so
    unsupported strings resolve at the boundary instead of deep inside
    a sampler.
    """

    @classmethod
    def default(cls) -> 'Variant':
        return next(iter(cls))

    @classmethod
    def coerce(cls, value) -> 'Variant':
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip()
            for member in cls:
                if member.value == key or member.value.lower() == key.lower():
                    return member
        return cls.default()
