"""
Signal Smoothing

Exponential smoothing for linear quantities (altitude, pitch, roll) and for
circular quantities (heading), plus the strength profiles that set both the
smoothing factor and the cadence of the orientation tick.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

from .vector_math import wrap360

logger = logging.getLogger(__name__)


class SmoothingStrength(Enum):
    """User-selectable smoothing strength."""

    LOW = "low"
    MED = "med"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Union[str, "SmoothingStrength"]) -> "SmoothingStrength":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Unknown smoothing strength {value!r}, expected low, med or high"
            ) from None


@dataclass(frozen=True)
class SmoothingProfile:
    """
    Attributes:
        alpha (float): Weight of the new sample, 0..1.
        tick_ms (int): Orientation tick interval.
        accel_interval_ms (int): Requested accelerometer update interval.
        mag_interval_ms (int): Requested magnetometer update interval.
    """

    alpha: float
    tick_ms: int
    accel_interval_ms: int
    mag_interval_ms: int

    @property
    def tick_s(self) -> float:
        return self.tick_ms / 1000.0


SMOOTHING_PROFILES: Dict[SmoothingStrength, SmoothingProfile] = {
    SmoothingStrength.LOW: SmoothingProfile(0.35, 90, 50, 75),
    SmoothingStrength.MED: SmoothingProfile(0.22, 120, 100, 150),
    SmoothingStrength.HIGH: SmoothingProfile(0.12, 160, 200, 300),
}


def profile_for(strength: Union[str, SmoothingStrength]) -> SmoothingProfile:
    return SMOOTHING_PROFILES[SmoothingStrength.parse(strength)]


def smooth_linear(prev: float, next_value: float, alpha: float) -> float:
    return prev + alpha * (next_value - prev)


def smooth_angle(prev: float, next_value: float, alpha: float) -> float:
    """
    Smooths an angle in degrees along the shortest arc.

    The step is alpha times the signed shortest delta in [-180, 180), so
    359 -> 1 moves forward through 0 instead of back through 180. The result
    is wrapped to [0, 360).
    """
    delta = ((next_value - prev + 540.0) % 360.0) - 180.0
    return wrap360(prev + alpha * delta)


class SignalSmoother:
    """
    Stateful smoother for heading, altitude, pitch and roll (degrees).

    The first valid sample seeds the state. Samples containing non-finite
    values are ignored and the previous smoothed state is kept.
    """

    def __init__(self, alpha: float = SMOOTHING_PROFILES[SmoothingStrength.MED].alpha):
        self.alpha = alpha
        self.heading: Optional[float] = None
        self.altitude: Optional[float] = None
        self.pitch: Optional[float] = None
        self.roll: Optional[float] = None

    @property
    def seeded(self) -> bool:
        return self.heading is not None

    def reset(self):
        self.heading = None
        self.altitude = None
        self.pitch = None
        self.roll = None

    def update(
        self,
        heading: float,
        altitude: float,
        pitch: float,
        roll: float,
        alpha: Optional[float] = None,
    ) -> bool:
        """
        Folds a new raw sample into the smoothed state.

        Returns:
            bool: False when the sample was rejected as non-finite.
        """
        values = (heading, altitude, pitch, roll)
        if not all(math.isfinite(v) for v in values):
            logger.debug("Discarding non-finite orientation sample %s", values)
            return False

        a = self.alpha if alpha is None else alpha
        if not self.seeded:
            self.heading = wrap360(heading)
            self.altitude = altitude
            self.pitch = pitch
            self.roll = roll
            return True

        self.heading = smooth_angle(self.heading, heading, a)
        self.altitude = smooth_linear(self.altitude, altitude, a)
        self.pitch = smooth_linear(self.pitch, pitch, a)
        self.roll = smooth_linear(self.roll, roll, a)
        return True
