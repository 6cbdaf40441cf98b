import itertools
import math
import unittest
from datetime import datetime, timedelta, timezone

import ephem

from scope_pointer.catalog import CatalogTarget, find_target
from scope_pointer.celestial import (
    J2000,
    HorizontalPosition,
    equatorial_to_horizontal,
    hour_angle_hours,
    julian_date,
    local_sidereal_time_hours,
    sidereal_time_hours,
    target_position,
)
from scope_pointer.location import GeoLocation
from scope_pointer.vector_math import angular_distance

LAT = 50.1822
LON = 19.7925


def ephem_altaz(ra_hours, dec_deg, lat_deg, lon_deg, when):
    """Reference Alt/Az from ephem, refraction disabled."""
    obs = ephem.Observer()
    obs.lat = math.radians(lat_deg)
    obs.lon = math.radians(lon_deg)
    obs.elevation = 0
    obs.pressure = 0
    obs.date = ephem.Date(when)
    body = ephem.FixedBody()
    body._ra = math.radians(ra_hours * 15.0)
    body._dec = math.radians(dec_deg)
    body._epoch = ephem.J2000
    body.compute(obs)
    return math.degrees(float(body.alt)), math.degrees(float(body.az))


class TestTime(unittest.TestCase):
    def test_j2000_epoch(self):
        self.assertEqual(julian_date(datetime(2000, 1, 1, 12, 0, 0)), J2000)

    def test_january_february(self):
        """Months 1 and 2 count as months 13 and 14 of the previous year."""
        self.assertEqual(julian_date(datetime(2024, 2, 29)), 2460369.5)
        self.assertEqual(julian_date(datetime(2024, 3, 1)), 2460370.5)
        self.assertEqual(julian_date(datetime(1999, 12, 31, 12)), J2000 - 1)

    def test_fractional_day(self):
        self.assertAlmostEqual(julian_date(datetime(2000, 1, 1, 18)), J2000 + 0.25, places=9)
        self.assertAlmostEqual(
            julian_date(datetime(2000, 1, 1, 12, 0, 0, 500000)),
            J2000 + 0.5 / 86400.0,
            places=8,
        )

    def test_timezone_aware(self):
        cet = timezone(timedelta(hours=1))
        self.assertEqual(julian_date(datetime(2000, 1, 1, 13, tzinfo=cet)), J2000)
        self.assertEqual(julian_date(datetime(2000, 1, 1, 12, tzinfo=timezone.utc)), J2000)

    def test_gmst_at_epoch(self):
        self.assertAlmostEqual(sidereal_time_hours(J2000), 280.46061837 / 15.0, places=9)

    def test_sidereal_time_against_ephem(self):
        """
        Description:
            Compares local sidereal time with ephem.

        Methodology:
            Several instants over three decades and longitudes on both
            sides of Greenwich. ephem returns apparent sidereal time, which
            differs from mean time by the equation of the equinoxes (about
            one second).

        Expected Results:
            - Agreement within 3 seconds of time.
        """
        instants = [
            datetime(2000, 1, 1, 12),
            datetime(2010, 6, 21, 3, 15),
            datetime(2024, 3, 15, 21, 30),
            datetime(2031, 11, 2, 8, 45, 10),
        ]
        for when, lon in itertools.product(instants, (0.0, LON, -122.4)):
            obs = ephem.Observer()
            obs.lon = math.radians(lon)
            obs.lat = math.radians(LAT)
            obs.date = ephem.Date(when)
            expected = float(obs.sidereal_time()) * 12.0 / math.pi
            lst = local_sidereal_time_hours(julian_date(when), lon)
            diff = (lst - expected + 12.0) % 24.0 - 12.0
            with self.subTest(when=when, lon=lon):
                self.assertLess(abs(diff) * 3600.0, 3.0)

    def test_ranges(self):
        for jd in (J2000 - 10000.3, J2000, J2000 + 0.7, J2000 + 9131.25):
            gmst = sidereal_time_hours(jd)
            self.assertTrue(0.0 <= gmst < 24.0)
            for lon in (-180.0, -45.5, 0.0, 179.9):
                lst = local_sidereal_time_hours(jd, lon)
                self.assertTrue(0.0 <= lst < 24.0)
        for lst, ra in itertools.product((0.0, 5.5, 23.9), (0.0, 11.99, 12.0, 23.99)):
            ha = hour_angle_hours(lst, ra)
            self.assertTrue(-12.0 <= ha < 12.0)


class TestEquatorialToHorizontal(unittest.TestCase):
    def test_against_ephem(self):
        """
        Description:
            Compares the transform with ephem for bright stars around J2000,
            where catalog coordinates need no precession.

        Expected Results:
            - Positions above the horizon agree within 0.1 degree.
        """
        names = ("Vega", "Sirius", "Polaris", "Arcturus", "Capella", "Antares")
        start = datetime(2000, 1, 2, 0, 0)
        for name, hour in itertools.product(names, range(0, 24, 3)):
            star = find_target(name)
            when = start + timedelta(hours=hour)
            pos = equatorial_to_horizontal(star.ra_hours, star.dec_deg, LAT, LON, when)
            alt, az = ephem_altaz(star.ra_hours, star.dec_deg, LAT, LON, when)
            if alt < 0:
                continue
            with self.subTest(star=name, when=when):
                self.assertLess(angular_distance(pos.az_deg, pos.alt_deg, az, alt), 0.1)

    def test_southern_observer(self):
        when = datetime(2000, 3, 20, 22, 0)
        for ra, dec in ((6.752, -16.716), (12.443, -63.099), (5.919, 7.407)):
            pos = equatorial_to_horizontal(ra, dec, -33.86, 151.21, when)
            alt, az = ephem_altaz(ra, dec, -33.86, 151.21, when)
            with self.subTest(ra=ra, dec=dec):
                self.assertLess(angular_distance(pos.az_deg, pos.alt_deg, az, alt), 0.1)

    def test_azimuth_quadrant(self):
        """Rising objects (HA < 0) are in the East, setting ones in the West."""
        when = datetime(2024, 1, 1, 0, 0)
        lst = local_sidereal_time_hours(julian_date(when), LON)
        rising = equatorial_to_horizontal((lst + 3.0) % 24.0, 0.0, 45.0, LON, when)
        setting = equatorial_to_horizontal((lst - 3.0) % 24.0, 0.0, 45.0, LON, when)
        self.assertTrue(0.0 < rising.az_deg < 180.0)
        self.assertTrue(180.0 < setting.az_deg < 360.0)
        self.assertAlmostEqual(rising.alt_deg, setting.alt_deg)

    def test_meridian_transit(self):
        when = datetime(2024, 1, 1, 0, 0)
        lst = local_sidereal_time_hours(julian_date(when), LON)
        pos = equatorial_to_horizontal(lst, 10.0, LAT, LON, when)
        self.assertAlmostEqual(pos.alt_deg, 90.0 - LAT + 10.0, places=6)
        self.assertAlmostEqual(pos.az_deg, 180.0, places=4)

    def test_zenith(self):
        when = datetime(2024, 1, 1, 0, 0)
        lst = local_sidereal_time_hours(julian_date(when), LON)
        pos = equatorial_to_horizontal(lst, LAT, LAT, LON, when)
        self.assertAlmostEqual(pos.alt_deg, 90.0, places=5)
        self.assertTrue(0.0 <= pos.az_deg < 360.0)

    def test_pole_observer(self):
        """
        Description:
            At a geographic pole azimuth is undefined for every object.

        Expected Results:
            - Altitude equals declination.
            - Azimuth is the previous azimuth when given, 0 otherwise.
        """
        when = datetime(2024, 6, 1, 12, 0)
        pos = equatorial_to_horizontal(7.0, 45.0, 90.0, 0.0, when, previous_az=123.0)
        self.assertAlmostEqual(pos.alt_deg, 45.0)
        self.assertEqual(pos.az_deg, 123.0)
        pos = equatorial_to_horizontal(7.0, 45.0, 90.0, 0.0, when)
        self.assertEqual(pos.az_deg, 0.0)

    def test_polaris_near_latitude(self):
        polaris = find_target("Polaris")
        for hour in range(0, 24, 2):
            when = datetime(2024, 9, 1) + timedelta(hours=hour)
            pos = equatorial_to_horizontal(polaris.ra_hours, polaris.dec_deg, LAT, LON, when)
            self.assertLessEqual(abs(pos.alt_deg - LAT), 90.0 - polaris.dec_deg + 1e-6)
            self.assertLess(abs(((pos.az_deg + 180.0) % 360.0) - 180.0), 1.5)

    def test_output_ranges(self):
        when = datetime(2025, 5, 5, 5, 5)
        grid = itertools.product(
            (0.0, 6.0, 13.7, 23.99),
            (-90.0, -45.0, 0.0, 60.0, 90.0),
            (-90.0, -33.0, 0.0, 50.0, 90.0),
            (-180.0, 0.0, 120.0),
        )
        for ra, dec, lat, lon in grid:
            pos = equatorial_to_horizontal(ra, dec, lat, lon, when)
            with self.subTest(ra=ra, dec=dec, lat=lat, lon=lon):
                self.assertTrue(-90.0 <= pos.alt_deg <= 90.0)
                self.assertTrue(0.0 <= pos.az_deg < 360.0)
                self.assertFalse(math.isnan(pos.az_deg))


class TestTargetPosition(unittest.TestCase):
    def setUp(self):
        self.vega = CatalogTarget("Vega", 18.615649, 38.78369)
        self.when = datetime(2024, 8, 1, 21, 0)

    def test_requires_target_and_location(self):
        here = GeoLocation(LAT, LON)
        self.assertIsNone(target_position(None, here, self.when))
        self.assertIsNone(target_position(self.vega, None, self.when))
        self.assertIsNone(target_position(self.vega, GeoLocation(95.0, 0.0), self.when))

    def test_matches_transform(self):
        pos = target_position(self.vega, GeoLocation(LAT, LON), self.when)
        expected = equatorial_to_horizontal(
            self.vega.ra_hours, self.vega.dec_deg, LAT, LON, self.when
        )
        self.assertEqual(pos, expected)

    def test_previous_azimuth_passed_through(self):
        zenith_star = CatalogTarget("Zenith", 0.0, 90.0)
        pole = GeoLocation(90.0, 0.0)
        pos = target_position(
            zenith_star, pole, self.when, previous=HorizontalPosition(89.0, 42.0)
        )
        self.assertEqual(pos.az_deg, 42.0)


if __name__ == "__main__":
    unittest.main()
