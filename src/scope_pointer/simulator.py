"""
Sensor Simulator

Generates accelerometer/magnetometer samples for a device strapped to a
telescope tube at a known azimuth, altitude and roll, and drives an
ObservationSession with them. Useful for exercising the whole pipeline
without hardware:

    scope-pointer-sim --target Vega --duration 20 --az-error 4 --sync
"""

import argparse
import asyncio
import logging
import math
from time import monotonic, time
from typing import Optional, Tuple

import numpy as np

from .catalog import find_target, manual_target
from .config import (
    MountingConfig,
    load_config,
    mounting_from_config,
    settings_from_config,
)
from .guidance import altitude_hint, azimuth_hint, cardinal_direction, is_on_target
from .location import GeoLocation
from .orientation import DEFAULT_MOUNTING, device_to_body_matrix
from .session import ObservationSession
from .vector_math import Vector3, clamp, wrap180, wrap360

logger = logging.getLogger(__name__)

STANDARD_GRAVITY = 9.80665


def ned_to_body_matrix(heading_deg: float, pitch_deg: float, roll_deg: float) -> np.ndarray:
    """Rotation from North-East-Down into the body frame (yaw, pitch, roll order)."""
    psi, theta, phi = (math.radians(a) for a in (heading_deg, pitch_deg, roll_deg))
    cps, sps = math.cos(psi), math.sin(psi)
    ct, st = math.cos(theta), math.sin(theta)
    cph, sph = math.cos(phi), math.sin(phi)
    rz = np.array([[cps, sps, 0.0], [-sps, cps, 0.0], [0.0, 0.0, 1.0]])
    ry = np.array([[ct, 0.0, -st], [0.0, 1.0, 0.0], [st, 0.0, ct]])
    rx = np.array([[1.0, 0.0, 0.0], [0.0, cph, sph], [0.0, -sph, cph]])
    return rx @ ry @ rz


def synthetic_sample(
    az_deg: float,
    alt_deg: float,
    roll_deg: float = 0.0,
    dip_deg: float = 60.0,
    field_ut: float = 50.0,
    gravity: float = STANDARD_GRAVITY,
    declination_deg: float = 0.0,
    mounting: MountingConfig = DEFAULT_MOUNTING,
) -> Tuple[Vector3, Vector3]:
    """
    Noise-free (accel, mag) device readings for a tube pointing at az/alt.

    Args:
        az_deg: True azimuth of the tube.
        alt_deg: Altitude of the tube.
        roll_deg: Rotation of the device about the tube axis.
        dip_deg: Magnetic inclination, positive pointing down.
        field_ut: Total field strength in microtesla.
        gravity: Magnitude of the accelerometer reading.
        declination_deg: Magnetic declination (east positive); the magnetic
            heading is az_deg - declination_deg.
        mounting: Device mounting on the tube.
    """
    r = ned_to_body_matrix(az_deg - declination_deg, alt_deg, roll_deg)
    dip = math.radians(dip_deg)
    gravity_ned = np.array([0.0, 0.0, gravity])
    field_ned = np.array([field_ut * math.cos(dip), 0.0, field_ut * math.sin(dip)])

    body_to_device = device_to_body_matrix(mounting).T
    accel = body_to_device @ (r @ gravity_ned)
    mag = body_to_device @ (r @ field_ned)
    return Vector3.from_iterable(accel), Vector3.from_iterable(mag)


class SimulatedDevice:
    """
    A phone on a manually slewed tube.

    Moves towards the goto position at a limited rate and pushes noisy
    samples into the attached session on every tick.
    """

    def __init__(
        self,
        session: Optional[ObservationSession] = None,
        az: float = 0.0,
        alt: float = 45.0,
        roll: float = 0.0,
        dip_deg: float = 60.0,
        field_ut: float = 50.0,
        accel_noise: float = 0.0,
        mag_noise: float = 0.0,
        slew_rate_deg_s: float = 15.0,
        declination_deg: float = 0.0,
        mounting: Optional[MountingConfig] = None,
        seed: Optional[int] = None,
    ):
        self.session = session
        self.az = wrap360(az)
        self.alt = clamp(alt, -90.0, 90.0)
        self.roll = roll
        self.dip_deg = dip_deg
        self.field_ut = field_ut
        self.accel_noise = accel_noise
        self.mag_noise = mag_noise
        self.slew_rate = slew_rate_deg_s
        self.declination_deg = declination_deg
        if mounting is None:
            mounting = session.mounting if session is not None else DEFAULT_MOUNTING
        self.mounting = mounting
        self.rng = np.random.default_rng(seed)
        self.target_az = self.az
        self.target_alt = self.alt

    @property
    def slewing(self) -> bool:
        return (
            abs(wrap180(self.target_az - self.az)) > 1e-6
            or abs(self.target_alt - self.alt) > 1e-6
        )

    def goto(self, az: float, alt: float):
        self.target_az = wrap360(az)
        self.target_alt = clamp(alt, -90.0, 90.0)
        logger.debug("Goto az=%.3f alt=%.3f", self.target_az, self.target_alt)

    def _step(self, delta: float, dt: float) -> float:
        max_step = self.slew_rate * dt
        if abs(delta) <= max_step:
            return delta
        return math.copysign(max_step, delta)

    def sample(self) -> Tuple[Vector3, Vector3]:
        accel, mag = synthetic_sample(
            self.az,
            self.alt,
            self.roll,
            dip_deg=self.dip_deg,
            field_ut=self.field_ut,
            declination_deg=self.declination_deg,
            mounting=self.mounting,
        )
        if self.accel_noise > 0:
            accel = Vector3.from_iterable(
                accel.as_array() + self.rng.normal(0.0, self.accel_noise, 3)
            )
        if self.mag_noise > 0:
            mag = Vector3.from_iterable(
                mag.as_array() + self.rng.normal(0.0, self.mag_noise, 3)
            )
        return accel, mag

    def tick(self, interval: float):
        """Advances the slew by `interval` seconds and publishes a sample."""
        self.az = wrap360(self.az + self._step(wrap180(self.target_az - self.az), interval))
        self.alt += self._step(self.target_alt - self.alt, interval)
        accel, mag = self.sample()
        if self.session is not None:
            self.session.on_accelerometer(accel)
            self.session.on_magnetometer(mag)


async def timer(seconds_to_sleep: float = 0.05, device: Optional[SimulatedDevice] = None):
    """Timer loop driving the device model."""
    t = monotonic()
    try:
        while True:
            await asyncio.sleep(seconds_to_sleep)
            cur_t = monotonic()
            if device:
                device.tick(cur_t - t)
            t = cur_t
    except asyncio.CancelledError:
        pass


def report(session: ObservationSession) -> str:
    current = session.current_pointing()
    if current is None:
        return "Waiting for sensor data"
    az, alt = current
    line = f"Az {az:7.2f} ({cardinal_direction(az):>3}) Alt {alt:+6.2f}"
    target = session.target_position
    delta = session.pointing_delta()
    if target is not None and delta is not None:
        line += (
            f" | {session.target.name}: Az {target.az_deg:7.2f} Alt {target.alt_deg:+6.2f}"
            f" | dAz {delta.delta_az:+7.2f} dAlt {delta.delta_alt:+6.2f}"
        )
        if is_on_target(delta):
            line += " | ON TARGET"
        else:
            hints = [h for h in (altitude_hint(delta), azimuth_hint(delta)) if h]
            line += " | " + ", ".join(hints)
    return line


async def main_async(argv=None):
    parser = argparse.ArgumentParser(description="Handheld telescope pointer simulator")
    parser.add_argument("-c", "--config", default=None, help="YAML configuration file")
    parser.add_argument(
        "-d", "--debug", action="store_true", help="Enable debug logging to stderr"
    )
    parser.add_argument("-t", "--target", default="Vega", help="Catalog or star name")
    parser.add_argument("--ra", type=float, default=None, help="Manual RA (hours)")
    parser.add_argument("--dec", type=float, default=None, help="Manual Dec (degrees)")
    parser.add_argument("--lat", type=float, default=None, help="Observer latitude")
    parser.add_argument("--lon", type=float, default=None, help="Observer longitude")
    parser.add_argument(
        "--duration", type=float, default=15.0, help="Run time in seconds (0 = forever)"
    )
    parser.add_argument(
        "--interval", type=float, default=1.0, help="Status report interval (s)"
    )
    parser.add_argument(
        "--az-error",
        type=float,
        default=0.0,
        help="Uncorrected heading error of the device (degrees)",
    )
    parser.add_argument(
        "--sync", action="store_true", help="SYNC on the target once the slew settles"
    )
    parser.add_argument("--seed", type=int, default=None, help="Noise RNG seed")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    config = load_config(args.config)
    sim_cfg = config.get("simulator", {})
    settings = settings_from_config(config)
    mounting = mounting_from_config(config)

    session = ObservationSession(
        settings,
        mounting,
        target_interval_s=float(config.get("session", {}).get("target_interval_s", 2.0)),
    )
    lat = args.lat if args.lat is not None else float(sim_cfg.get("latitude", 50.1822))
    lon = args.lon if args.lon is not None else float(sim_cfg.get("longitude", 19.7925))
    session.set_location(GeoLocation(lat, lon, accuracy_m=5.0, timestamp=time()))

    if args.ra is not None or args.dec is not None:
        try:
            target = manual_target(args.ra, args.dec)
        except ValueError as e:
            parser.error(str(e))
    else:
        target = find_target(args.target)
        if target is None:
            parser.error(f"Unknown target {args.target!r}")
    session.select_target(target)

    device = SimulatedDevice(
        session,
        az=0.0,
        alt=10.0,
        dip_deg=float(sim_cfg.get("dip_deg", 60.0)),
        field_ut=float(sim_cfg.get("field_ut", 50.0)),
        accel_noise=float(sim_cfg.get("accel_noise", 0.0)),
        mag_noise=float(sim_cfg.get("mag_noise", 0.0)),
        slew_rate_deg_s=float(sim_cfg.get("slew_rate_deg_s", 15.0)),
        declination_deg=settings.heading_offset - args.az_error,
        mounting=mounting,
        seed=args.seed,
    )

    session.start()
    timer_task = asyncio.create_task(timer(0.05, device))
    loop = asyncio.get_running_loop()
    end = loop.time() + args.duration
    synced = False
    print(f"Simulating {target.name} from lat {lat:.4f} lon {lon:.4f}")
    try:
        while args.duration <= 0 or loop.time() < end:
            await asyncio.sleep(args.interval)
            pos = session.target_position
            if pos is not None:
                # The physical tube follows the true target position.
                device.goto(pos.az_deg, pos.alt_deg)
            print(report(session))
            if args.sync and not synced and pos is not None and not device.slewing:
                offset = session.sync()
                if offset is not None:
                    synced = True
                    print(
                        f"SYNC: az offset {offset.az_offset_deg:+.2f}"
                        f" alt offset {offset.alt_offset_deg:+.2f}"
                    )
    finally:
        timer_task.cancel()
        await asyncio.gather(timer_task, return_exceptions=True)
        await session.stop()


def main():
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
