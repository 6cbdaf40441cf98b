"""
Alignment Model

Reconciles device-measured pointing with computed sky positions. Each
alignment point pairs where the device said it was pointing with where the
star actually was at that instant; the model reduces them to a constant
azimuth/altitude offset and a quality class.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Tuple

from .catalog import CatalogTarget
from .celestial import equatorial_to_horizontal
from .location import GeoLocation
from .vector_math import (
    angular_distance,
    vector_from_altaz,
    vector_to_altaz,
    wrap180,
    wrap360,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlignmentPoint:
    """
    A user-confirmed pointing pair, all angles in degrees.

    Attributes:
        star (CatalogTarget): The centered star.
        device_az (float): Azimuth reported by the device.
        device_alt (float): Altitude reported by the device.
        calculated_az (float): Star azimuth at the instant of the SYNC.
        calculated_alt (float): Star altitude at the instant of the SYNC.
    """

    star: CatalogTarget
    device_az: float
    device_alt: float
    calculated_az: float
    calculated_alt: float

    @property
    def az_difference(self) -> float:
        return self.device_az - self.calculated_az

    @property
    def alt_difference(self) -> float:
        return self.device_alt - self.calculated_alt


@dataclass(frozen=True)
class AlignmentOffset:
    """Offset (device - calculated) in degrees."""

    az_offset_deg: float = 0.0
    alt_offset_deg: float = 0.0


class AlignmentQuality(Enum):
    NONE = "none"
    ONE_STAR = "1-star"
    TWO_STAR = "2-star"
    THREE_STAR = "3-star"


def create_alignment_point(
    star: CatalogTarget,
    device_az: float,
    device_alt: float,
    location: GeoLocation,
    when: datetime,
) -> AlignmentPoint:
    """Builds an alignment point, computing the star position at `when`."""
    pos = equatorial_to_horizontal(
        star.ra_hours, star.dec_deg, location.lat_deg, location.lon_deg, when
    )
    return AlignmentPoint(
        star=star,
        device_az=device_az,
        device_alt=device_alt,
        calculated_az=pos.az_deg,
        calculated_alt=pos.alt_deg,
    )


class AlignmentModel:
    """
    Averaged-offset alignment over an ordered list of points.

    With `circular=False` (default) azimuth differences are averaged
    arithmetically, which is wrong for points whose differences straddle
    the 0/360 seam (e.g. +359 and -1). With `circular=True` each
    difference is taken as a direction and the circular mean is used.
    """

    def __init__(self, circular: bool = False):
        self.circular = circular
        self._points: List[AlignmentPoint] = []
        self._lock = threading.Lock()

    @property
    def points(self) -> Tuple[AlignmentPoint, ...]:
        with self._lock:
            return tuple(self._points)

    def __len__(self) -> int:
        with self._lock:
            return len(self._points)

    def add_alignment_point(self, point: AlignmentPoint):
        with self._lock:
            self._points.append(point)
            count = len(self._points)
        logger.info(
            "Alignment point %d on %s: dAz=%.3f dAlt=%.3f",
            count,
            point.star.name,
            point.az_difference,
            point.alt_difference,
        )

    def clear_alignment(self):
        with self._lock:
            self._points = []
        logger.info("Alignment cleared")

    def get_offsets(self) -> AlignmentOffset:
        points = self.points
        if not points:
            return AlignmentOffset(0.0, 0.0)

        if len(points) == 1:
            p = points[0]
            return AlignmentOffset(p.az_difference, p.alt_difference)

        alt_offset = sum(p.alt_difference for p in points) / len(points)
        if self.circular:
            resultant = sum(vector_from_altaz(p.az_difference, 0.0) for p in points)
            az_offset = wrap180(vector_to_altaz(resultant)[0])
        else:
            az_offset = sum(p.az_difference for p in points) / len(points)
        return AlignmentOffset(az_offset, alt_offset)

    def get_alignment_quality(self) -> AlignmentQuality:
        count = len(self)
        if count == 0:
            return AlignmentQuality.NONE
        if count == 1:
            return AlignmentQuality.ONE_STAR
        if count == 2:
            return AlignmentQuality.TWO_STAR
        return AlignmentQuality.THREE_STAR

    def apply(self, device_az: float, device_alt: float) -> Tuple[float, float]:
        """Corrects a device reading into sky coordinates."""
        offset = self.get_offsets()
        return (
            wrap360(device_az - offset.az_offset_deg),
            device_alt - offset.alt_offset_deg,
        )

    def residuals(self) -> List[float]:
        """Great-circle error (degrees) of each point after correction."""
        offset = self.get_offsets()
        res = []
        for p in self.points:
            az = p.device_az - offset.az_offset_deg
            alt = p.device_alt - offset.alt_offset_deg
            res.append(angular_distance(az, alt, p.calculated_az, p.calculated_alt))
        return res

    def rms_error_deg(self) -> float:
        res = self.residuals()
        if not res:
            return 0.0
        return math.sqrt(sum(r * r for r in res) / len(res))
