"""
Observer Location

GPS fix representation, validation, the manual-coordinates override and a
0-100 quality score for display.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from .config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoLocation:
    """
    Attributes:
        lat_deg (float): Latitude, north positive.
        lon_deg (float): Longitude, east positive.
        altitude_m (float | None): Height above sea level.
        accuracy_m (float | None): Horizontal accuracy (1 sigma).
        altitude_accuracy_m (float | None): Vertical accuracy.
        speed_mps (float | None): Ground speed.
        timestamp (float | None): Fix time, seconds since the epoch.
    """

    lat_deg: float
    lon_deg: float
    altitude_m: Optional[float] = None
    accuracy_m: Optional[float] = None
    altitude_accuracy_m: Optional[float] = None
    speed_mps: Optional[float] = None
    timestamp: Optional[float] = None

    def is_valid(self) -> bool:
        return (
            math.isfinite(self.lat_deg)
            and math.isfinite(self.lon_deg)
            and -90.0 <= self.lat_deg <= 90.0
            and -180.0 <= self.lon_deg <= 180.0
        )

    def age_s(self, now: float) -> Optional[float]:
        if self.timestamp is None:
            return None
        return max(0.0, now - self.timestamp)


def resolve_location(
    settings: Settings, gps_fix: Optional[GeoLocation]
) -> Optional[GeoLocation]:
    """
    Picks the location to compute with.

    Manual coordinates win when auto_location is off and both are set.
    Otherwise the GPS fix is used if valid. Never defaults to (0, 0).
    """
    if (
        not settings.auto_location
        and settings.manual_lat is not None
        and settings.manual_lon is not None
    ):
        manual = GeoLocation(settings.manual_lat, settings.manual_lon)
        if manual.is_valid():
            return manual
        logger.warning(
            "Ignoring out-of-range manual location %s, %s",
            settings.manual_lat,
            settings.manual_lon,
        )
    if gps_fix is not None and gps_fix.is_valid():
        return gps_fix
    if gps_fix is not None:
        logger.debug("Discarding invalid GPS fix %s", gps_fix)
    return None


def location_quality_score(location: GeoLocation, age_s: float) -> float:
    """
    Heuristic fix quality in [0, 100] from accuracy, age and speed.
    """
    score = 100.0

    h_acc = location.accuracy_m
    if h_acc:
        if h_acc < 5:
            pass
        elif h_acc < 10:
            score *= 0.9
        elif h_acc < 25:
            score *= 0.8
        elif h_acc < 50:
            score *= 0.6
        elif h_acc < 100:
            score *= 0.4
        else:
            score *= 0.2

    v_acc = location.altitude_accuracy_m
    if v_acc:
        if v_acc < 10:
            pass
        elif v_acc < 25:
            score *= 0.95
        elif v_acc < 50:
            score *= 0.9
        else:
            score *= 0.8

    if age_s < 10:
        pass
    elif age_s < 30:
        score *= 0.95
    elif age_s < 60:
        score *= 0.9
    elif age_s < 120:
        score *= 0.8
    elif age_s < 300:
        score *= 0.6
    else:
        score *= 0.3

    speed = location.speed_mps
    if speed and speed > 1:
        score *= 0.8 if speed > 5 else 0.9

    return max(0.0, min(100.0, score))


def location_quality_label(score: float) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    return "Poor"
