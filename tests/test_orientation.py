import itertools
import math
import unittest

import numpy as np

from scope_pointer.config import MountingConfig, Settings
from scope_pointer.orientation import (
    OrientationEstimator,
    altitude_from_accel,
    device_to_body_matrix,
    heading_from_vectors,
    pitch_roll_from_accel,
    tilt_compensated_heading,
)
from scope_pointer.simulator import synthetic_sample
from scope_pointer.vector_math import Vector3, wrap180

G = 9.81
FACE_UP = Vector3(0.0, 0.0, -G)
NORTH_FIELD = Vector3(0.0, 30.0, -40.0)
EAST_FIELD = Vector3(-30.0, 0.0, -40.0)

ALL_MOUNTINGS = [MountingConfig(a, s) for a in ("x", "y", "z") for s in (1, -1)]


def angle_diff(a, b):
    return abs(wrap180(a - b))


class TestFixtures(unittest.TestCase):
    """
    Fixed sensor readings with a known answer for a device lying face-up
    with its top edge along the tube (default mounting).
    """

    def test_level_pitch_roll(self):
        pitch, roll = pitch_roll_from_accel(FACE_UP)
        self.assertAlmostEqual(pitch, 0.0)
        self.assertAlmostEqual(roll, 0.0)
        self.assertAlmostEqual(altitude_from_accel(FACE_UP), 0.0)

    def test_north(self):
        """
        Description:
            The horizontal field points along the top edge: the tube points
            to magnetic North.

        Expected Results:
            - Both heading methods report 0.
        """
        self.assertLess(angle_diff(tilt_compensated_heading(NORTH_FIELD, 0.0, 0.0), 0.0), 1e-9)
        self.assertLess(angle_diff(heading_from_vectors(FACE_UP, NORTH_FIELD), 0.0), 1e-9)

    def test_east(self):
        """
        Description:
            The horizontal field points to the left edge, so the top edge
            points East.

        Expected Results:
            - Both heading methods report 90.
        """
        self.assertAlmostEqual(tilt_compensated_heading(EAST_FIELD, 0.0, 0.0), 90.0)
        self.assertAlmostEqual(heading_from_vectors(FACE_UP, EAST_FIELD), 90.0)

    def test_heading_offset(self):
        settings = Settings(heading_offset=10.0)
        self.assertAlmostEqual(
            tilt_compensated_heading(EAST_FIELD, 0.0, 0.0, settings), 100.0
        )
        settings = Settings(heading_offset=-100.0)
        self.assertAlmostEqual(heading_from_vectors(FACE_UP, EAST_FIELD, settings), 350.0)

    def test_tilted_up(self):
        """Top edge raised 30 degrees: reading has a component along -y."""
        accel = Vector3(0.0, -G * math.sin(math.radians(30)), -G * math.cos(math.radians(30)))
        pitch, roll = pitch_roll_from_accel(accel)
        self.assertAlmostEqual(math.degrees(pitch), 30.0)
        self.assertAlmostEqual(roll, 0.0)
        self.assertAlmostEqual(altitude_from_accel(accel), 30.0)

        flipped = Settings(flip_altitude=True)
        pitch, _ = pitch_roll_from_accel(accel, flipped)
        self.assertAlmostEqual(math.degrees(pitch), -30.0)
        self.assertAlmostEqual(altitude_from_accel(accel, flipped), -30.0)

    def test_altitude_degenerate(self):
        self.assertIsNone(altitude_from_accel((0.0, 0.0, 0.0)))

    def test_mounting_matrices_are_rotations(self):
        for mounting in ALL_MOUNTINGS:
            m = device_to_body_matrix(mounting)
            np.testing.assert_allclose(m @ m.T, np.eye(3))
            self.assertAlmostEqual(float(np.linalg.det(m)), 1.0)


class TestSyntheticPoses(unittest.TestCase):
    """
    Description:
        Generates readings for known tube poses and checks that the
        estimator recovers the pose.

    Methodology:
        Every mounting, both heading methods, a grid of azimuths, altitudes
        and rolls about the tube axis.

    Expected Results:
        - Heading equals the azimuth, altitude and pitch equal the altitude.
        - Altitude does not depend on roll.
    """

    AZIMUTHS = (0.0, 45.0, 135.0, 200.0, 315.0)
    ALTITUDES = (-30.0, 0.0, 30.0, 60.0)
    ROLLS = (0.0, 25.0, -40.0)

    def test_recovers_pose(self):
        for mounting, method in itertools.product(ALL_MOUNTINGS, ("tilt", "vector")):
            settings = Settings(heading_method=method)
            estimator = OrientationEstimator(mounting)
            for az, alt, roll in itertools.product(self.AZIMUTHS, self.ALTITUDES, self.ROLLS):
                with self.subTest(mounting=mounting, method=method, az=az, alt=alt, roll=roll):
                    accel, mag = synthetic_sample(az, alt, roll, mounting=mounting)
                    sample = estimator.estimate(accel, mag, settings)
                    self.assertIsNotNone(sample)
                    self.assertLess(angle_diff(sample.heading_deg, az), 1e-6)
                    self.assertAlmostEqual(sample.altitude_deg, alt)
                    self.assertAlmostEqual(sample.pitch_deg, alt)
                    self.assertAlmostEqual(sample.roll_deg, roll)

    def test_altitude_independent_of_roll(self):
        for mounting in ALL_MOUNTINGS:
            alts = [
                altitude_from_accel(synthetic_sample(70.0, 40.0, roll, mounting=mounting)[0],
                                    mounting=mounting)
                for roll in (-170.0, -60.0, 0.0, 33.0, 120.0)
            ]
            for alt in alts:
                self.assertAlmostEqual(alt, 40.0)

    def test_methods_agree(self):
        accel, mag = synthetic_sample(250.0, 20.0, 15.0, dip_deg=70.0)
        pitch, roll = pitch_roll_from_accel(accel)
        self.assertAlmostEqual(
            tilt_compensated_heading(mag, pitch, roll), heading_from_vectors(accel, mag)
        )


class TestOrientationEstimator(unittest.TestCase):
    def setUp(self):
        self.estimator = OrientationEstimator()
        self.settings = Settings()

    def test_missing_samples(self):
        self.assertIsNone(self.estimator.estimate(None, NORTH_FIELD, self.settings))
        self.assertIsNone(self.estimator.estimate(FACE_UP, None, self.settings))

    def test_non_finite_samples(self):
        bad = Vector3(float("nan"), 0.0, -G)
        self.assertIsNone(self.estimator.estimate(bad, NORTH_FIELD, self.settings))
        bad = Vector3(0.0, float("inf"), 0.0)
        self.assertIsNone(self.estimator.estimate(FACE_UP, bad, self.settings))

    def test_zero_gravity(self):
        self.assertIsNone(
            self.estimator.estimate(Vector3(0, 0, 0), NORTH_FIELD, self.settings)
        )

    def test_degenerate_field_holds_heading(self):
        """
        Description:
            A magnetic field parallel to gravity leaves East undefined.

        Methodology:
            1. Estimate from a valid sample pointing East.
            2. Estimate from a vertical field (vector method).
            3. Estimate from a zero field (tilt method).

        Expected Results:
            - Both degenerate samples report the last valid heading.
            - A fresh estimator reports nothing.
        """
        settings = Settings(heading_method="vector")
        first = self.estimator.estimate(FACE_UP, EAST_FIELD, settings)
        self.assertAlmostEqual(first.heading_deg, 90.0)

        vertical = Vector3(0.0, 0.0, -50.0)
        held = self.estimator.estimate(FACE_UP, vertical, settings)
        self.assertIsNotNone(held)
        self.assertEqual(held.heading_deg, first.heading_deg)

        held = self.estimator.estimate(FACE_UP, Vector3(0, 0, 0), self.settings)
        self.assertEqual(held.heading_deg, first.heading_deg)

        self.assertIsNone(OrientationEstimator().estimate(FACE_UP, vertical, settings))

    def test_flip_altitude(self):
        """Flip negates reported pitch and altitude but not the heading."""
        accel, mag = synthetic_sample(120.0, 35.0, 10.0)
        normal = self.estimator.estimate(accel, mag, self.settings)
        flipped = OrientationEstimator().estimate(accel, mag, Settings(flip_altitude=True))
        self.assertAlmostEqual(flipped.altitude_deg, -35.0)
        self.assertAlmostEqual(flipped.pitch_deg, -35.0)
        self.assertAlmostEqual(flipped.heading_deg, normal.heading_deg)
        self.assertAlmostEqual(flipped.roll_deg, normal.roll_deg)

    def test_declination_offset(self):
        accel, mag = synthetic_sample(5.0, 10.0, declination_deg=15.0)
        sample = self.estimator.estimate(accel, mag, Settings(heading_offset=15.0))
        self.assertLess(angle_diff(sample.heading_deg, 5.0), 1e-6)

        raw = OrientationEstimator().estimate(accel, mag, self.settings)
        self.assertLess(angle_diff(raw.heading_deg, 350.0), 1e-6)

    def test_heading_range(self):
        for az in (0.0, 90.0, 179.9, 180.0, 270.0, 359.99):
            accel, mag = synthetic_sample(az, 0.0)
            sample = self.estimator.estimate(accel, mag, self.settings)
            self.assertGreaterEqual(sample.heading_deg, 0.0)
            self.assertLess(sample.heading_deg, 360.0)


if __name__ == "__main__":
    unittest.main()
