"""
Pointing Guidance

Differences between the target position and where the tube currently
points, plus the short human-readable hints shown next to them.
"""

from dataclasses import dataclass

from .celestial import HorizontalPosition
from .vector_math import wrap360

CARDINAL_POINTS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]


@dataclass(frozen=True)
class PointingDelta:
    """Target minus current, degrees. delta_az is in [-180, 180]."""

    delta_alt: float
    delta_az: float


def pointing_delta(
    target: HorizontalPosition, current_az: float, current_alt: float
) -> PointingDelta:
    d_az = target.az_deg - current_az
    while d_az > 180.0:
        d_az -= 360.0
    while d_az < -180.0:
        d_az += 360.0
    return PointingDelta(delta_alt=target.alt_deg - current_alt, delta_az=d_az)


def altitude_hint(delta: PointingDelta, tolerance_deg: float = 1.0) -> str:
    """Direction to move in altitude, or "" when already within tolerance."""
    if abs(delta.delta_alt) <= tolerance_deg:
        return ""
    return "Point UP" if delta.delta_alt > 0 else "Point DOWN"


def azimuth_hint(delta: PointingDelta, tolerance_deg: float = 1.0) -> str:
    if abs(delta.delta_az) <= tolerance_deg:
        return ""
    return "Rotate RIGHT (E)" if delta.delta_az > 0 else "Rotate LEFT (W)"


def is_on_target(delta: PointingDelta, tolerance_deg: float = 1.0) -> bool:
    return abs(delta.delta_alt) <= tolerance_deg and abs(delta.delta_az) <= tolerance_deg


def cardinal_direction(az_deg: float) -> str:
    """16-point compass name of an azimuth."""
    return CARDINAL_POINTS[int(wrap360(az_deg) / 22.5 + 0.5) % 16]
