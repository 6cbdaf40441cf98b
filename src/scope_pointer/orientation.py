"""
Device Orientation from Accelerometer and Magnetometer

Derives pitch, roll, gravity-referenced altitude and magnetic heading of the
telescope tube from raw sensor vectors.

Conventions (fixed, validated by the fixtures in tests/test_orientation.py):

* Device frame: x along the right edge, y along the top edge, z out of the
  screen (right-handed).
* The accelerometer reading points along gravity, towards the ground. A
  device lying face-up reads (0, 0, -g). "Up" is the negated reading.
* The magnetometer reading is the local field in the same device frame.
* A MountingConfig names the device axis that points along the tube. It maps
  the device frame onto a body frame with x forward (along the tube), y to
  the right and z down, which is the frame the pitch/roll and
  tilt-compensation formulas are written in.
* Heading: 0 = magnetic North, 90 = East, increasing clockwise seen from
  above. Pitch and altitude are positive with the tube above the horizon.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from .config import MountingConfig, Settings
from .vector_math import (
    EPSILON,
    Vector3,
    VectorLike,
    as_array,
    clamp,
    cross,
    dot,
    normalize,
    wrap360,
)

logger = logging.getLogger(__name__)

# Minimum |m x up| (unit vectors) for the cross-product heading. Below this
# the field is within ~0.6 deg of vertical and East is undefined.
MIN_HORIZONTAL_FIELD = 1e-2
# Minimum horizontal component of the forward axis for the cross-product heading.
MIN_HORIZONTAL_FORWARD = 1e-6

DEFAULT_MOUNTING = MountingConfig()

# Rows are the body x (forward), y (right) and z (down) axes in device
# coordinates, for the reference pose of each mounting.
_BODY_ROWS = {
    "y": lambda s: [[0, s, 0], [s, 0, 0], [0, 0, -1]],
    "x": lambda s: [[s, 0, 0], [0, -s, 0], [0, 0, -1]],
    "z": lambda s: [[0, 0, s], [-s, 0, 0], [0, -1, 0]],
}
_matrix_cache: Dict[Tuple[str, int], np.ndarray] = {}


def device_to_body_matrix(mounting: MountingConfig = DEFAULT_MOUNTING) -> np.ndarray:
    """Rotation taking device-frame vectors into the body frame (det = +1)."""
    key = (mounting.forward_axis, mounting.forward_sign)
    if key not in _matrix_cache:
        m = np.array(_BODY_ROWS[mounting.forward_axis](mounting.forward_sign), float)
        m.setflags(write=False)
        _matrix_cache[key] = m
    return _matrix_cache[key]


def forward_vector(mounting: MountingConfig = DEFAULT_MOUNTING) -> np.ndarray:
    """Unit vector along the tube, in device coordinates."""
    return device_to_body_matrix(mounting)[0]


@dataclass(frozen=True)
class OrientationSample:
    """
    Orientation derived from one accelerometer/magnetometer pair.

    Attributes:
        pitch_rad (float): Tube elevation from the pitch formula (radians).
        roll_rad (float): Rotation about the tube axis (radians).
        heading_deg (float): Magnetic heading plus heading offset, [0, 360).
        altitude_deg (float): Gravity-referenced tube altitude (degrees).
    """

    pitch_rad: float
    roll_rad: float
    heading_deg: float
    altitude_deg: float

    @property
    def pitch_deg(self) -> float:
        return math.degrees(self.pitch_rad)

    @property
    def roll_deg(self) -> float:
        return math.degrees(self.roll_rad)


def _body_pitch_roll(
    accel: VectorLike, mounting: MountingConfig
) -> Tuple[float, float]:
    g = device_to_body_matrix(mounting) @ as_array(accel)
    pitch = math.atan2(-g[0], math.sqrt(g[1] * g[1] + g[2] * g[2]))
    roll = math.atan2(g[1], g[2])
    return pitch, roll


def pitch_roll_from_accel(
    accel: VectorLike,
    settings: Optional[Settings] = None,
    mounting: MountingConfig = DEFAULT_MOUNTING,
) -> Tuple[float, float]:
    """
    Computes pitch and roll (radians) from an accelerometer sample.

    With g the reading in the body frame:
    pitch = atan2(-g.x, sqrt(g.y^2 + g.z^2)), roll = atan2(g.y, g.z).
    Pitch is negated when settings.flip_altitude is set.
    """
    pitch, roll = _body_pitch_roll(accel, mounting)
    if settings is not None and settings.flip_altitude:
        pitch = -pitch
    return pitch, roll


def altitude_from_accel(
    accel: VectorLike,
    settings: Optional[Settings] = None,
    mounting: MountingConfig = DEFAULT_MOUNTING,
) -> Optional[float]:
    """
    Gravity-referenced altitude of the tube in degrees.

    altitude = asin(forward . up) with up the negated, normalized reading.
    Does not depend on roll. Returns None for a zero-length sample.
    """
    g = normalize(accel)
    if g is None:
        return None
    up = -g
    alt = math.degrees(math.asin(clamp(dot(forward_vector(mounting), up), -1.0, 1.0)))
    if settings is not None and settings.flip_altitude:
        alt = -alt
    return alt


def _apply_heading_offset(heading_deg: float, settings: Optional[Settings]) -> float:
    if settings is not None and settings.heading_offset:
        heading_deg += settings.heading_offset
    return wrap360(heading_deg)


def tilt_compensated_heading(
    mag: VectorLike,
    pitch_rad: float,
    roll_rad: float,
    settings: Optional[Settings] = None,
    mounting: MountingConfig = DEFAULT_MOUNTING,
) -> float:
    """
    Magnetic heading of the tube with pitch/roll compensation.

    The field is rotated into the horizontal plane:
        Xh = Mx cosP + My sinR sinP + Mz cosR sinP
        Yh = My cosR - Mz sinR
    and heading = atan2(-Yh, Xh), wrapped to [0, 360) after adding the
    heading offset. pitch_rad must be the physical (unflipped) pitch.
    """
    mx, my, mz = device_to_body_matrix(mounting) @ as_array(mag)
    cos_p, sin_p = math.cos(pitch_rad), math.sin(pitch_rad)
    cos_r, sin_r = math.cos(roll_rad), math.sin(roll_rad)

    xh = mx * cos_p + my * sin_r * sin_p + mz * cos_r * sin_p
    yh = my * cos_r - mz * sin_r
    heading = math.degrees(math.atan2(-yh, xh))
    return _apply_heading_offset(heading, settings)


def heading_from_vectors(
    accel: VectorLike,
    mag: VectorLike,
    settings: Optional[Settings] = None,
    mounting: MountingConfig = DEFAULT_MOUNTING,
) -> Optional[float]:
    """
    Heading from the East/North basis built with cross products.

    E = normalize(m x up), N = up x E, heading = atan2(forward.E, forward.N).
    Returns None when the field is parallel to gravity or the tube points
    straight up or down.
    """
    g = normalize(accel)
    m = normalize(mag)
    if g is None or m is None:
        return None
    up = -g
    east = cross(m, up)
    horizontal = float(np.linalg.norm(east))
    if horizontal < MIN_HORIZONTAL_FIELD:
        logger.debug("Magnetic field parallel to gravity, heading undefined")
        return None
    east = east / horizontal
    north = cross(up, east)

    fwd = forward_vector(mounting)
    fe, fn = dot(fwd, east), dot(fwd, north)
    if math.hypot(fe, fn) < MIN_HORIZONTAL_FORWARD:
        return None
    heading = math.degrees(math.atan2(fe, fn))
    return _apply_heading_offset(heading, settings)


class OrientationEstimator:
    """
    Turns the latest raw sensor pair into an OrientationSample.

    Keeps the last valid heading so degenerate geometry reports the
    last known value instead of a meaningless one.
    """

    def __init__(self, mounting: MountingConfig = DEFAULT_MOUNTING):
        self.mounting = mounting
        self.last_heading: Optional[float] = None

    def reset(self):
        self.last_heading = None

    def estimate(
        self,
        accel: Optional[Vector3],
        mag: Optional[Vector3],
        settings: Settings,
    ) -> Optional[OrientationSample]:
        """
        Returns:
            OrientationSample | None: None when a sample is missing, non-finite
            or degenerate and no previous heading is known.
        """
        if accel is None or mag is None:
            return None
        if not accel.is_finite() or not mag.is_finite():
            logger.debug("Discarding non-finite sensor sample %s %s", accel, mag)
            return None
        if accel.norm() < EPSILON:
            return None

        pitch, roll = _body_pitch_roll(accel, self.mounting)
        altitude = altitude_from_accel(accel, settings, self.mounting)

        heading: Optional[float]
        if mag.norm() < EPSILON:
            heading = None
        elif settings.heading_method == "vector":
            heading = heading_from_vectors(accel, mag, settings, self.mounting)
        else:
            heading = tilt_compensated_heading(mag, pitch, roll, settings, self.mounting)

        if heading is None or not math.isfinite(heading):
            heading = self.last_heading
            if heading is None:
                return None
        else:
            self.last_heading = heading

        if settings.flip_altitude:
            pitch = -pitch
        return OrientationSample(
            pitch_rad=pitch,
            roll_rad=roll,
            heading_deg=heading,
            altitude_deg=altitude,
        )
