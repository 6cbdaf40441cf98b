"""
Vector and Angle Utilities

Small helpers shared by the orientation and celestial modules: 3D vector
operations on raw sensor samples, clamping of inverse trigonometric
arguments, and angle wrapping.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple, Union

import numpy as np

EPSILON = 1e-9

VectorLike = Union["Vector3", Sequence[float], np.ndarray]


@dataclass(frozen=True)
class Vector3:
    """
    A raw 3-axis sensor sample.

    Attributes:
        x (float): Component along the device right edge.
        y (float): Component along the device top edge.
        z (float): Component out of the screen.
    """

    x: float
    y: float
    z: float

    @classmethod
    def from_iterable(cls, values: Iterable[float]) -> "Vector3":
        x, y, z = (float(v) for v in values)
        return cls(x, y, z)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)

    def norm(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)


def as_array(v: VectorLike) -> np.ndarray:
    """Returns any supported vector representation as a float numpy array."""
    if isinstance(v, Vector3):
        return v.as_array()
    return np.asarray(v, dtype=float)


def normalize(v: VectorLike) -> Optional[np.ndarray]:
    """
    Scales a vector to unit length.

    Returns:
        np.ndarray | None: The unit vector, or None when the input is shorter
        than EPSILON (degenerate; the caller decides what to do).
    """
    arr = as_array(v)
    n = float(np.linalg.norm(arr))
    if not math.isfinite(n) or n < EPSILON:
        return None
    return arr / n


def dot(a: VectorLike, b: VectorLike) -> float:
    return float(np.dot(as_array(a), as_array(b)))


def cross(a: VectorLike, b: VectorLike) -> np.ndarray:
    return np.cross(as_array(a), as_array(b))


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def safe_asin_deg(v: float) -> float:
    """asin in degrees with the argument clamped to [-1, 1]."""
    return math.degrees(math.asin(clamp(v, -1.0, 1.0)))


def safe_acos_deg(v: float) -> float:
    """acos in degrees with the argument clamped to [-1, 1]."""
    return math.degrees(math.acos(clamp(v, -1.0, 1.0)))


def wrap360(deg: float) -> float:
    """Wraps an angle to [0, 360)."""
    w = deg % 360.0
    # -1e-17 % 360 rounds to 360.0
    return 0.0 if w >= 360.0 else w


def wrap180(deg: float) -> float:
    """Wraps an angle to [-180, 180)."""
    return wrap360(deg + 180.0) - 180.0


def wrap_hours(hours: float) -> float:
    """Wraps a time angle to [0, 24)."""
    w = hours % 24.0
    return 0.0 if w >= 24.0 else w


def vector_from_altaz(az_deg: float, alt_deg: float) -> np.ndarray:
    """Converts Az/Alt to a unit vector (x North, y East, z Up)."""
    az_rad = math.radians(az_deg)
    alt_rad = math.radians(alt_deg)
    return np.array(
        [
            math.cos(alt_rad) * math.cos(az_rad),
            math.cos(alt_rad) * math.sin(az_rad),
            math.sin(alt_rad),
        ]
    )


def vector_to_altaz(vec: VectorLike) -> Tuple[float, float]:
    """Converts a 3D vector to Azimuth and Altitude (degrees)."""
    unit = normalize(vec)
    if unit is None:
        return 0.0, 0.0
    vx, vy, vz = unit
    alt_deg = safe_asin_deg(vz)
    az_deg = math.degrees(math.atan2(vy, vx))
    return wrap360(az_deg), alt_deg


def angular_distance(az1: float, alt1: float, az2: float, alt2: float) -> float:
    """Calculates angular distance between two points in degrees."""
    r1 = math.radians(alt1)
    r2 = math.radians(alt2)
    d_az = math.radians(az1 - az2)

    cos_dist = math.sin(r1) * math.sin(r2) + math.cos(r1) * math.cos(r2) * math.cos(
        d_az
    )
    return safe_acos_deg(cos_dist)
