"""
Seeded per-particle random streams

Every particle gets its own stream derived from the effect type and its
index. Each attribute draws from the stream with its own salt, so values
are reproducible and uncorrelated across attributes.
"""

import math
from enum import IntEnum, unique

HASH_SCALE = 0.0001
INDEX_SCALE = 13.37
SALT_SCALE = 17.17


@unique
class Salt(IntEnum):
    """Salt value for every random draw. Values must stay distinct."""
    # Particle state
    SIZE = 1
    SCALE_X = 2
    SCALE_Y = 3
    SCALE_Z = 4
    COLOR_MIX = 5
    OPACITY = 6
    EMISSIVE = 7
    RADIAL_JITTER_X = 8
    RADIAL_JITTER_Z = 9
    VERTICAL_JITTER = 10
    ORBIT_OFFSET = 11
    FLOAT_STRENGTH = 12
    FLOAT_FREQUENCY = 13
    SPIN_X = 14
    SPIN_Y = 15
    SPIN_Z = 16
    SPEED = 17
    DRIFT_AMPLITUDE = 18
    DRIFT_PHASE = 19
    LAYER = 20
    SWIRL_PHASE = 24
    GRADIENT_PHASE = 25
    ARC_TRAVEL = 26

    # Strand and cluster placement
    PLACEMENT_HEIGHT = 21
    PLACEMENT_OFFSET = 22
    BEAM_DELAY = 23
    CLUSTER_PICK = 27
    CLUSTER_SCATTER_X = 28
    CLUSTER_SCATTER_Z = 29

    # Custom emitters
    VORTEX_LAYER = 30
    VORTEX_ANGLE = 31
    VORTEX_JITTER_X = 32
    VORTEX_JITTER_Z = 33
    VORTEX_JITTER_Y = 34
    ARC_ANGLE = 35
    ARC_LATERAL = 36

    # Emission shapes
    DISC_ANGLE = 40
    DISC_RADIUS = 41
    BOX_FACE_AXIS = 42
    BOX_FACE_SIGN = 43
    BOX_FACE_X = 44
    BOX_FACE_Y = 45
    BOX_FACE_Z = 46
    SPHERE_THETA = 50
    SPHERE_PHI = 51
    SPHERE_RADIUS = 52
    CONE_ANGLE = 53
    CONE_HEIGHT = 54
    CONE_RADIUS = 55
    RING_ANGLE = 56
    RING_RADIAL = 57
    RING_HEIGHT = 58
    BOX_X = 60
    BOX_Y = 61
    BOX_Z = 62

    # Cluster anchor streams
    ANCHOR_RADIUS = 64
    ANCHOR_ANGLE = 65
    ANCHOR_HEIGHT = 66
    ANCHOR_DELAY = 67


def string_hash(value: str) -> int:
    """
    32-bit rolling string hash (h * 31 + code unit), returned as an
    absolute value. Code units are UTF-16 so non-ASCII names hash the
    same way everywhere.
    """
    h = 0
    data = value.encode('utf-16-le')
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = ((h << 5) - h + code) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def seeded_random(seed: float) -> float:
    """Sine-hash pseudo random value in [0, 1)"""
    x = math.sin(seed * 12.9898) * 43758.5453
    value = x - math.floor(x)
    return 0.0 if value >= 1.0 else value


class SeededRandom:
    """
    Deterministic random stream for one particle.

    Calling the stream with a salt always returns the same value for the
    same (effect type, index, salt).
    """

    def __init__(self, effect_type: str, index: int):
        self.effect_type = effect_type
        self.index = index
        self.base = string_hash(effect_type or '') * HASH_SCALE + index * INDEX_SCALE

    def __call__(self, salt: int = 0) -> float:
        return seeded_random(self.base + int(salt) * SALT_SCALE)

    def __repr__(self) -> str:
        return f"SeededRandom({self.effect_type!r}, {self.index})"


def create_random_generator(effect_type: str, index: int) -> SeededRandom:
    return SeededRandom(effect_type, index)
