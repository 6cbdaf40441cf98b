"""
Celestial Positioning

Julian Date, Greenwich/Local Sidereal Time and the Equatorial -> Horizontal
(RA/Dec -> Alt/Az) transform. Catalog coordinates are used as given:
no precession, nutation or refraction.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from .vector_math import clamp, wrap180, wrap360, wrap_hours

if TYPE_CHECKING:
    from .catalog import CatalogTarget
    from .location import GeoLocation

logger = logging.getLogger(__name__)

J2000 = 2451545.0
DAYS_PER_CENTURY = 36525.0

# Below this cos(alt) * cos(lat) the azimuth is undefined (object at the
# zenith or nadir, or observer at a pole).
AZIMUTH_DEGENERATE = 1e-9


@dataclass(frozen=True)
class HorizontalPosition:
    """Local horizontal coordinates in degrees, az in [0, 360)."""

    alt_deg: float
    az_deg: float


def _as_utc(when: datetime) -> datetime:
    if when.tzinfo is None:
        return when
    return when.astimezone(timezone.utc).replace(tzinfo=None)


def julian_date(when: datetime) -> float:
    """
    Julian Date of a UTC instant (proleptic Gregorian calendar).

    Naive datetimes are taken to be UTC.
    """
    t = _as_utc(when)
    year = t.year
    month = t.month
    day = (
        t.day
        + (
            t.hour
            + t.minute / 60.0
            + (t.second + t.microsecond / 1e6) / 3600.0
        )
        / 24.0
    )
    if month <= 2:
        year -= 1
        month += 12
    a = year // 100
    b = 2 - a + a // 4
    return (
        math.floor(365.25 * (year + 4716))
        + math.floor(30.6001 * (month + 1))
        + day
        + b
        - 1524.5
    )


def sidereal_time_hours(jd: float) -> float:
    """Greenwich Mean Sidereal Time in hours, [0, 24)."""
    d = jd - J2000
    t = d / DAYS_PER_CENTURY
    gmst = 280.46061837 + 360.98564736629 * d + 0.000387933 * t * t - t**3 / 38710000.0
    return wrap360(gmst) / 15.0


def local_sidereal_time_hours(jd: float, lon_deg: float) -> float:
    """Local sidereal time in hours for a longitude in degrees, east positive."""
    return wrap_hours(sidereal_time_hours(jd) + lon_deg / 15.0)


def hour_angle_hours(lst_hours: float, ra_hours: float) -> float:
    """LST - RA wrapped to [-12, 12) hours."""
    return wrap180((lst_hours - ra_hours) * 15.0) / 15.0


def equatorial_to_horizontal(
    ra_hours: float,
    dec_deg: float,
    lat_deg: float,
    lon_deg: float,
    when: datetime,
    previous_az: Optional[float] = None,
) -> HorizontalPosition:
    """
    Converts RA/Dec to Alt/Az for an observer and UTC instant.

    Args:
        ra_hours: Right Ascension in hours.
        dec_deg: Declination in degrees.
        lat_deg: Observer latitude in degrees.
        lon_deg: Observer longitude in degrees, east positive.
        when: UTC instant (naive datetimes are taken to be UTC).
        previous_az: Azimuth reported when it is undefined (zenith/nadir or
            an observer at a pole). Defaults to 0.

    Returns:
        HorizontalPosition: alt in [-90, 90], az in [0, 360).
    """
    ra_hours = wrap_hours(ra_hours)
    dec_deg = clamp(dec_deg, -90.0, 90.0)
    lat_deg = clamp(lat_deg, -90.0, 90.0)

    lst = local_sidereal_time_hours(julian_date(when), lon_deg)
    ha_rad = math.radians(hour_angle_hours(lst, ra_hours) * 15.0)
    dec_rad = math.radians(dec_deg)
    lat_rad = math.radians(lat_deg)

    sin_alt = math.sin(dec_rad) * math.sin(lat_rad) + math.cos(dec_rad) * math.cos(
        lat_rad
    ) * math.cos(ha_rad)
    alt_rad = math.asin(clamp(sin_alt, -1.0, 1.0))
    alt_deg = math.degrees(alt_rad)

    denom = math.cos(alt_rad) * math.cos(lat_rad)
    if abs(denom) < AZIMUTH_DEGENERATE:
        logger.debug("Azimuth undefined at alt=%.6f lat=%.6f", alt_deg, lat_deg)
        az_deg = wrap360(previous_az) if previous_az is not None else 0.0
        return HorizontalPosition(alt_deg=alt_deg, az_deg=az_deg)

    cos_a = (math.sin(dec_rad) - math.sin(alt_rad) * math.sin(lat_rad)) / denom
    az_deg = math.degrees(math.acos(clamp(cos_a, -1.0, 1.0)))
    # acos only covers 0..180; the sign of -cos(dec) sin(HA) picks the half.
    if -math.cos(dec_rad) * math.sin(ha_rad) < 0:
        az_deg = 360.0 - az_deg
    return HorizontalPosition(alt_deg=alt_deg, az_deg=wrap360(az_deg))


def target_position(
    target: Optional["CatalogTarget"],
    location: Optional["GeoLocation"],
    when: datetime,
    previous: Optional[HorizontalPosition] = None,
) -> Optional[HorizontalPosition]:
    """
    Alt/Az of a target, or None when the target or a valid location is missing.
    """
    if target is None or location is None or not location.is_valid():
        return None
    return equatorial_to_horizontal(
        target.ra_hours,
        target.dec_deg,
        location.lat_deg,
        location.lon_deg,
        when,
        previous_az=previous.az_deg if previous is not None else None,
    )
