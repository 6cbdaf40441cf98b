"""
Observation Session

Wires the orientation estimator, smoother, celestial transform, SYNC
calibration and alignment model together on a single asyncio event loop.

Three independent activities:

* sensor callbacks (on_accelerometer / on_magnetometer) only store the latest
  raw sample;
* the orientation tick reads the latest samples, estimates, smooths and
  publishes, at the cadence of the smoothing profile;
* the target loop recomputes the target Alt/Az every few seconds.
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Iterable, List, Optional, Tuple, TypeVar, Union

from .alignment import AlignmentModel, AlignmentPoint, create_alignment_point
from .calibration import CalibrationOffset, CalibrationOffsetManager
from .catalog import CatalogTarget, manual_target
from .celestial import HorizontalPosition, target_position
from .config import MountingConfig, Settings
from .guidance import PointingDelta, pointing_delta
from .location import GeoLocation, resolve_location
from .orientation import OrientationEstimator, OrientationSample
from .smoothing import SignalSmoother, SmoothingProfile, profile_for
from .vector_math import Vector3

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TARGET_INTERVAL_S = 2.0


class LatestSample(Generic[T]):
    """Last-write-wins cell shared by one producer and one consumer."""

    def __init__(self):
        self._value: Optional[T] = None
        self._lock = threading.Lock()

    def set(self, value: T):
        with self._lock:
            self._value = value

    def get(self) -> Optional[T]:
        with self._lock:
            return self._value

    def clear(self):
        self.set(None)


def _as_vector(sample: Union[Vector3, Iterable[float]]) -> Vector3:
    if isinstance(sample, Vector3):
        return sample
    return Vector3.from_iterable(sample)


class ObservationSession:
    """
    Live pointing state for one observing session.

    Args:
        settings: User settings; replace with update_settings().
        mounting: Fixed device mounting on the tube.
        target_interval_s: Period of the target Alt/Az recompute.
        alignment: Alignment model to record points into.
        clock: Returns the current UTC datetime.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        mounting: Optional[MountingConfig] = None,
        target_interval_s: float = DEFAULT_TARGET_INTERVAL_S,
        alignment: Optional[AlignmentModel] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or Settings()
        self.mounting = mounting or MountingConfig()
        self.target_interval_s = target_interval_s
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.estimator = OrientationEstimator(self.mounting)
        self.smoother = SignalSmoother(self.profile.alpha)
        self.calibration = CalibrationOffsetManager()
        self.alignment = alignment if alignment is not None else AlignmentModel()

        self.accel: LatestSample[Vector3] = LatestSample()
        self.mag: LatestSample[Vector3] = LatestSample()
        self.gps_fix: Optional[GeoLocation] = None
        self.target: Optional[CatalogTarget] = None

        self.orientation: Optional[OrientationSample] = None
        self.target_position: Optional[HorizontalPosition] = None

        self._orientation_listeners: List[Callable[[OrientationSample], Any]] = []
        self._target_listeners: List[Callable[[HorizontalPosition], Any]] = []
        self._tasks: List[asyncio.Task] = []

    # --- Inputs ---

    @property
    def profile(self) -> SmoothingProfile:
        return profile_for(self.settings.smoothing_strength)

    def sensor_intervals_ms(self) -> Tuple[int, int]:
        """Accelerometer and magnetometer update intervals to request from hardware."""
        p = self.profile
        return p.accel_interval_ms, p.mag_interval_ms

    def on_accelerometer(self, sample: Union[Vector3, Iterable[float]]):
        self.accel.set(_as_vector(sample))

    def on_magnetometer(self, sample: Union[Vector3, Iterable[float]]):
        self.mag.set(_as_vector(sample))

    def set_location(self, fix: Optional[GeoLocation]):
        self.gps_fix = fix

    @property
    def location(self) -> Optional[GeoLocation]:
        return resolve_location(self.settings, self.gps_fix)

    def select_target(self, target: Optional[CatalogTarget]):
        self.target = target
        self.target_position = None
        if target is not None:
            logger.info(
                "Target %s (RA %.4fh, Dec %+.4f)", target.name, target.ra_hours, target.dec_deg
            )
            self.recompute_target()

    def set_manual_target(self, ra_hours: float, dec_deg: float) -> CatalogTarget:
        """Validates and selects manual coordinates. Raises ValueError if out of range."""
        target = manual_target(ra_hours, dec_deg)
        self.select_target(target)
        return target

    def update_settings(self, settings: Settings):
        """New settings apply from the next tick."""
        if settings.heading_offset != self.settings.heading_offset or (
            settings.heading_method != self.settings.heading_method
        ):
            self.estimator.reset()
        self.settings = settings
        self.smoother.alpha = self.profile.alpha

    def add_orientation_listener(self, callback: Callable[[OrientationSample], Any]):
        self._orientation_listeners.append(callback)

    def add_target_listener(self, callback: Callable[[HorizontalPosition], Any]):
        self._target_listeners.append(callback)

    # --- Computation ---

    def tick(self) -> Optional[OrientationSample]:
        """
        One orientation update from the latest raw samples.

        Invalid or missing samples leave the previous smoothed state in place.
        """
        raw = self.estimator.estimate(self.accel.get(), self.mag.get(), self.settings)
        if raw is None:
            return self.orientation

        if not self.smoother.update(
            raw.heading_deg,
            raw.altitude_deg,
            raw.pitch_deg,
            raw.roll_deg,
            alpha=self.profile.alpha,
        ):
            return self.orientation

        self.orientation = OrientationSample(
            pitch_rad=math.radians(self.smoother.pitch),
            roll_rad=math.radians(self.smoother.roll),
            heading_deg=self.smoother.heading,
            altitude_deg=self.smoother.altitude,
        )
        for callback in self._orientation_listeners:
            callback(self.orientation)
        return self.orientation

    def recompute_target(self, when: Optional[datetime] = None) -> Optional[HorizontalPosition]:
        """
        Recomputes the target Alt/Az. Skipped (returns None) without a target
        or a location.
        """
        pos = target_position(
            self.target, self.location, when or self.clock(), previous=self.target_position
        )
        if pos is None:
            return None
        self.target_position = pos
        for callback in self._target_listeners:
            callback(pos)
        return pos

    def aligned_pointing(self) -> Optional[Tuple[float, float]]:
        """Smoothed (az, alt) corrected by the alignment model."""
        if self.orientation is None:
            return None
        return self.alignment.apply(
            self.orientation.heading_deg, self.orientation.altitude_deg
        )

    def current_pointing(self) -> Optional[Tuple[float, float]]:
        """
        Displayed (az, alt): the aligned pointing with the SYNC offset on top,
        or None before the first tick.
        """
        aligned = self.aligned_pointing()
        if aligned is None:
            return None
        return self.calibration.apply(*aligned)

    def pointing_delta(self) -> Optional[PointingDelta]:
        current = self.current_pointing()
        if current is None or self.target_position is None:
            return None
        return pointing_delta(self.target_position, *current)

    # --- User actions ---

    def sync(self, when: Optional[datetime] = None) -> Optional[CalibrationOffset]:
        """
        SYNC on the current target: the displayed position becomes the
        target position. Returns None when there is no target position or
        no orientation yet.
        """
        pos = self.recompute_target(when)
        aligned = self.aligned_pointing()
        if pos is None or aligned is None:
            logger.warning("SYNC ignored: need a target, a location and sensor data")
            return None
        return self.calibration.sync(pos.az_deg, pos.alt_deg, *aligned)

    def reset_calibration(self):
        self.calibration.reset()

    def add_alignment_point(
        self, star: Optional[CatalogTarget] = None, when: Optional[datetime] = None
    ) -> Optional[AlignmentPoint]:
        """
        Records the current device pointing against `star` (default: the
        selected target), computing the star position now.
        """
        star = star or self.target
        location = self.location
        if star is None or location is None or self.orientation is None:
            logger.warning("Alignment point ignored: need a star, a location and sensor data")
            return None
        point = create_alignment_point(
            star,
            self.orientation.heading_deg,
            self.orientation.altitude_deg,
            location,
            when or self.clock(),
        )
        self.alignment.add_alignment_point(point)
        return point

    def clear_alignment(self):
        self.alignment.clear_alignment()

    # --- Timers ---

    async def _orientation_loop(self):
        """Fixed-interval orientation tick."""
        try:
            while True:
                try:
                    self.tick()
                except Exception:
                    logger.exception("Error in orientation tick")
                await asyncio.sleep(self.profile.tick_s)
        except asyncio.CancelledError:
            pass

    async def _target_loop(self):
        """Periodic target Alt/Az recompute."""
        try:
            while True:
                try:
                    self.recompute_target()
                except Exception:
                    logger.exception("Error in target recompute")
                await asyncio.sleep(self.target_interval_s)
        except asyncio.CancelledError:
            pass

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self):
        """Starts the timers on the running event loop."""
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._orientation_loop()),
            asyncio.create_task(self._target_loop()),
        ]

    async def stop(self):
        """Cancels the timers and waits for them to finish."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
