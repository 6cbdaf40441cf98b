"""
Target Catalog

A small built-in list of bright deep-sky objects and alignment stars
(RA in hours, Dec in degrees, J2000), manual target entry with validation,
and a fallback to the ephem star catalog for other named stars.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

import ephem


@dataclass(frozen=True)
class CatalogTarget:
    """
    Attributes:
        name (str): Display name.
        ra_hours (float): Right Ascension in [0, 24).
        dec_deg (float): Declination in [-90, 90].
        kind (str): "star", "galaxy", "nebula", "cluster" or "manual".
    """

    name: str
    ra_hours: float
    dec_deg: float
    kind: str = "star"


CATALOG: List[CatalogTarget] = [
    # Galaxies
    CatalogTarget("Andromeda (M31)", 0.712, 41.269, "galaxy"),
    CatalogTarget("Triangulum (M33)", 1.6, 30.66, "galaxy"),
    CatalogTarget("Whirlpool (M51)", 13.498, 47.196, "galaxy"),
    CatalogTarget("Pinwheel (M101)", 14.054, 54.349, "galaxy"),
    CatalogTarget("Sombrero (M104)", 12.666, -11.623, "galaxy"),
    CatalogTarget("Black Eye (M64)", 12.670, 21.683, "galaxy"),
    # Stars
    CatalogTarget("Vega", 18.615649, 38.78369, "star"),
    CatalogTarget("Altair", 19.846, 8.868, "star"),
    CatalogTarget("Polaris", 2.530, 89.264, "star"),
    CatalogTarget("Sirius", 6.752, -16.716, "star"),
    CatalogTarget("Betelgeuse", 5.919, 7.407, "star"),
    CatalogTarget("Rigel", 5.242, -8.202, "star"),
    CatalogTarget("Arcturus", 14.261, 19.182, "star"),
    CatalogTarget("Capella", 5.278, 45.998, "star"),
    CatalogTarget("Procyon", 7.655, 5.225, "star"),
    CatalogTarget("Castor", 7.576, 31.888, "star"),
    CatalogTarget("Pollux", 7.755, 28.026, "star"),
    CatalogTarget("Regulus", 10.139, 11.967, "star"),
    CatalogTarget("Spica", 13.420, -11.161, "star"),
    CatalogTarget("Antares", 16.490, -26.432, "star"),
    CatalogTarget("Deneb", 20.690, 45.280, "star"),
    # Star clusters
    CatalogTarget("M13 (Hercules)", 16.6981, 36.4613, "cluster"),
    CatalogTarget("Pleiades (M45)", 3.791, 24.105, "cluster"),
    CatalogTarget("Hyades", 4.583, 15.867, "cluster"),
    CatalogTarget("Beehive (M44)", 8.673, 19.991, "cluster"),
    CatalogTarget("M41", 18.875, 20.775, "cluster"),
    # Nebulae
    CatalogTarget("Orion Nebula (M42)", 5.591, -5.387, "nebula"),
    CatalogTarget("Ring Nebula (M57)", 18.894, 33.029, "nebula"),
    CatalogTarget("Dumbbell Nebula (M27)", 19.991, 22.721, "nebula"),
    CatalogTarget("Helix Nebula (NGC 7293)", 22.146, -20.917, "nebula"),
    CatalogTarget("Lagoon Nebula (M8)", 18.084, -24.386, "nebula"),
    CatalogTarget("Trifid Nebula (M20)", 18.046, -23.030, "nebula"),
]

ALIGNMENT_STARS: List[CatalogTarget] = [
    CatalogTarget("Vega", 18.615649, 38.78369),
    CatalogTarget("Altair", 19.846, 8.868),
    CatalogTarget("Polaris", 2.530, 89.264),
    CatalogTarget("Arcturus", 14.261, 19.182),
    CatalogTarget("Capella", 5.278, 45.998),
    CatalogTarget("Betelgeuse", 5.919, 7.407),
    CatalogTarget("Rigel", 5.242, -8.202),
    CatalogTarget("Sirius", 6.752, -16.716),
    CatalogTarget("Procyon", 7.655, 5.225),
    CatalogTarget("Regulus", 10.139, 11.967),
    CatalogTarget("Spica", 13.420, -11.161),
    CatalogTarget("Antares", 16.490, -26.432),
    CatalogTarget("Deneb", 20.690, 45.280),
    CatalogTarget("Fomalhaut", 22.960, -29.622),
    CatalogTarget("Aldebaran", 4.600, 16.509),
    CatalogTarget("Castor", 7.576, 31.888),
    CatalogTarget("Pollux", 7.755, 28.026),
    CatalogTarget("Bellatrix", 5.418, 6.350),
    CatalogTarget("Elnath", 5.439, 28.608),
    CatalogTarget("Alnitak", 5.679, -1.943),
]


def _lookup_ephem_star(name: str) -> Optional[CatalogTarget]:
    try:
        star = ephem.star(name)
    except KeyError:
        return None
    star.compute(ephem.J2000, epoch=ephem.J2000)
    ra_hours = float(star.a_ra) * 12.0 / math.pi
    dec_deg = math.degrees(float(star.a_dec))
    return CatalogTarget(star.name, ra_hours % 24.0, dec_deg, "star")


def find_target(name: str) -> Optional[CatalogTarget]:
    """
    Finds a target by name (case-insensitive).

    Searches the built-in catalog and alignment stars first, then the ephem
    star catalog. Returns None for unknown names.
    """
    key = name.strip().lower()
    for target in CATALOG + ALIGNMENT_STARS:
        if target.name.lower() == key:
            return target
    return _lookup_ephem_star(name.strip().title())


def manual_target(ra_hours: float, dec_deg: float, name: str = "Manual") -> CatalogTarget:
    """
    Validates manually entered coordinates.

    Raises:
        ValueError: If RA is outside [0, 24) hours or Dec outside [-90, 90].
    """
    try:
        ra = float(ra_hours)
        dec = float(dec_deg)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid coordinates: RA={ra_hours!r} Dec={dec_deg!r}") from None
    if not math.isfinite(ra) or not 0.0 <= ra < 24.0:
        raise ValueError(f"RA must be 0-24 hours, got {ra_hours!r}")
    if not math.isfinite(dec) or not -90.0 <= dec <= 90.0:
        raise ValueError(f"Dec must be -90 to +90 degrees, got {dec_deg!r}")
    return CatalogTarget(name, ra, dec, "manual")
