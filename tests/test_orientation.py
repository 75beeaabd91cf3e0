"""Tests for vectors and quaternions."""

import math

import pytest

from vfx_blueprint.core.orientation import Quaternion, Vec3, euler_to_quaternion


class TestVec3:
    """Vector arithmetic and coercion."""

    def test_arithmetic(self) -> None:
        a = Vec3(1, 2, 3)
        b = Vec3(0.5, 0.5, 0.5)
        assert a + b == Vec3(1.5, 2.5, 3.5)
        assert a - b == Vec3(0.5, 1.5, 2.5)
        assert a * 2 == Vec3(2, 4, 6)
        assert 2 * a == Vec3(2, 4, 6)
        assert -a == Vec3(-1, -2, -3)

    def test_length(self) -> None:
        assert Vec3(3, 4, 0).length == pytest.approx(5)
        assert Vec3(3, 10, 4).horizontal_length == pytest.approx(5)

    def test_normalized(self) -> None:
        n = Vec3(0, 0, 5).normalized()
        assert n == Vec3(0, 0, 1)

    def test_zero_normalizes_up(self) -> None:
        assert Vec3().normalized() == Vec3(0.0, 1.0, 0.0)

    def test_from_any(self) -> None:
        assert Vec3.from_any([1, 2, 3]) == Vec3(1, 2, 3)
        assert Vec3.from_any({"x": 1, "z": 2}) == Vec3(1, 0, 2)
        assert Vec3.from_any([1, "bad"], Vec3(9, 9, 9)) == Vec3(1, 9, 9)
        assert Vec3.from_any("junk", Vec3(0, 1, 0)) == Vec3(0, 1, 0)


class TestQuaternion:
    """Euler conversion and normalization."""

    def test_identity(self) -> None:
        q = euler_to_quaternion(0, 0, 0)
        assert q.to_tuple() == pytest.approx((0, 0, 0, 1))

    def test_half_turn_about_x(self) -> None:
        q = euler_to_quaternion(math.pi, 0, 0)
        assert q.to_tuple() == pytest.approx((1, 0, 0, 0), abs=1e-9)

    @pytest.mark.parametrize("angles", [
        (0.3, -1.2, 2.5),
        (10.0, 20.0, 30.0),
        (-7.5, 0.0, 123.4),
    ])
    def test_unit_length(self, angles) -> None:
        assert euler_to_quaternion(*angles).length == pytest.approx(1.0, abs=1e-9)

    def test_normalized_zero(self) -> None:
        q = Quaternion(0, 0, 0, 0).normalized()
        assert q.to_tuple() == (0, 0, 0, 0)

    def test_normalized_scales(self) -> None:
        q = Quaternion(0, 0, 0, 2).normalized()
        assert q.w == pytest.approx(1.0)
