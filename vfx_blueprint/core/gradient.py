"""
Color gradients - stop normalization, sampling and per-particle bindings
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .utils import ColorUtils, MathUtils, RGB, Variant


class GradientPlayback(Variant):
    """How a particle's gradient phase evolves over time"""
    STATIC = "static"
    LIFETIME = "lifetime"
    SCROLL = "scroll"


class GradientSource(Variant):
    """Which particle property picks the initial gradient phase"""
    RANDOM = "random"
    ANGLE = "angle"
    LAYER = "layer"
    RADIUS = "radius"
    HEIGHT = "height"


@dataclass(frozen=True)
class GradientStop:
    """One anchor of a piecewise-linear color ramp"""
    t: float
    color: RGB

    @property
    def hex(self) -> str:
        return ColorUtils.rgb_to_hex(self.color)

    @classmethod
    def from_raw(cls, raw: Any) -> Optional['GradientStop']:
        """Accept {stop|t, color|value} mappings or existing stops"""
        if isinstance(raw, GradientStop):
            return raw
        if not isinstance(raw, dict):
            return None
        t = raw.get('stop', raw.get('t', 0))
        try:
            t = float(t)
        except (TypeError, ValueError):
            t = 0.0
        color = raw.get('color') or raw.get('value') or '#ffffff'
        if isinstance(color, (tuple, list)) and len(color) >= 3:
            rgb = tuple(MathUtils.clamp01(c) for c in color[:3])
        else:
            rgb = ColorUtils.hex_to_rgb(color)
        return cls(MathUtils.clamp01(t), rgb)


@dataclass(frozen=True)
class ColorGradient:
    """Sorted, immutable list of gradient stops"""
    stops: Tuple[GradientStop, ...]

    @classmethod
    def from_stops(cls, raw_stops: Optional[Iterable[Any]]) -> Optional['ColorGradient']:
        """
        Normalize raw stops: clamp t into [0, 1], parse colors, sort by t.

        Returns:
            ColorGradient, or None when nothing usable remains
        """
        if raw_stops is None or isinstance(raw_stops, (str, bytes, dict)):
            return None
        parsed = [GradientStop.from_raw(stop) for stop in raw_stops]
        stops = sorted((s for s in parsed if s is not None), key=lambda s: s.t)
        if not stops:
            return None
        return cls(tuple(stops))

    def sample(self, t: float, wrap: bool = False) -> RGB:
        """
        Sample the ramp at phase t.

        Args:
            t: Phase; wrapped into [0, 1) when wrap is set, clamped otherwise
            wrap: Treat the ramp as cyclic

        Returns:
            Normalized RGB tuple
        """
        target = MathUtils.wrap01(t) if wrap else MathUtils.clamp01(t)
        stops = self.stops

        for current, following in zip(stops, stops[1:]):
            if current.t <= target <= following.t:
                span = max(1e-6, following.t - current.t)
                alpha = (target - current.t) / span
                if alpha <= 0:
                    return current.color
                if alpha >= 1:
                    return following.color
                return tuple(
                    MathUtils.lerp(current.color[i], following.color[i], alpha)
                    for i in range(3)
                )

        if target <= stops[0].t:
            return stops[0].color
        return stops[-1].color

    def sample_hex(self, t: float, wrap: bool = False) -> str:
        return ColorUtils.rgb_to_hex(self.sample(t, wrap))

    def to_list(self) -> List[Dict[str, Any]]:
        return [{'stop': stop.t, 'color': stop.hex} for stop in self.stops]


@dataclass(frozen=True)
class GradientBinding:
    """A particle's gradient plus the phase it started at"""
    gradient: ColorGradient
    base_t: float
    playback: GradientPlayback = GradientPlayback.STATIC
    speed: float = 0.0
    wrap: bool = False
    source: GradientSource = GradientSource.RANDOM

    def phase_at(self, progress: float, elapsed: float) -> float:
        """Gradient phase for a sample at the given progress / elapsed time"""
        if self.playback is GradientPlayback.LIFETIME:
            return MathUtils.wrap01(self.base_t + progress)
        if self.playback is GradientPlayback.SCROLL:
            return self.base_t + self.speed * elapsed
        return self.base_t

    def sample_at(self, progress: float, elapsed: float) -> RGB:
        return self.gradient.sample(self.phase_at(progress, elapsed), wrap=self.wrap)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stops': self.gradient.to_list(),
            'baseT': self.base_t,
            'playback': self.playback.value,
            'speed': self.speed,
            'wrap': self.wrap,
            'source': self.source.value,
        }
