"""
SYNC Calibration

A single azimuth/altitude correction recorded when the user centers the
current target and confirms SYNC. Independent of the multi-star alignment
model; applied directly to the live heading and altitude.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from .vector_math import wrap180, wrap360

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationOffset:
    """Correction added to measured heading/altitude, degrees."""

    az_offset_deg: float = 0.0
    alt_offset_deg: float = 0.0


class CalibrationOffsetManager:
    """Holds the current SYNC offset."""

    def __init__(self):
        self.offset = CalibrationOffset()

    @property
    def is_calibrated(self) -> bool:
        return self.offset.az_offset_deg != 0.0 or self.offset.alt_offset_deg != 0.0

    def sync(
        self,
        target_az: float,
        target_alt: float,
        measured_heading: float,
        measured_altitude: float,
    ) -> CalibrationOffset:
        """
        Records the offset that makes the measured position equal the target.

        Overwrites any previous offset.
        """
        self.offset = CalibrationOffset(
            az_offset_deg=wrap180(target_az - measured_heading),
            alt_offset_deg=target_alt - measured_altitude,
        )
        logger.info(
            "SYNC stored: az %+.2f deg, alt %+.2f deg",
            self.offset.az_offset_deg,
            self.offset.alt_offset_deg,
        )
        return self.offset

    def reset(self):
        self.offset = CalibrationOffset()
        logger.info("SYNC offsets reset")

    def apply(self, measured_heading: float, measured_altitude: float) -> Tuple[float, float]:
        """Returns (displayed_az, displayed_alt)."""
        return (
            wrap360(measured_heading + self.offset.az_offset_deg),
            measured_altitude + self.offset.alt_offset_deg,
        )
