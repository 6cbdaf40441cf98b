import math
import unittest

from scope_pointer.catalog import ALIGNMENT_STARS, CATALOG, find_target, manual_target


class TestCatalog(unittest.TestCase):
    def test_catalog_coordinates_in_range(self):
        for target in CATALOG + ALIGNMENT_STARS:
            with self.subTest(target=target.name):
                self.assertTrue(0.0 <= target.ra_hours < 24.0)
                self.assertTrue(-90.0 <= target.dec_deg <= 90.0)

    def test_find_builtin(self):
        vega = find_target("vega")
        self.assertEqual(vega.name, "Vega")
        self.assertAlmostEqual(vega.ra_hours, 18.615649)
        m45 = find_target("  Pleiades (M45) ")
        self.assertEqual(m45.kind, "cluster")

    def test_find_in_ephem_catalog(self):
        """
        Description:
            Names missing from the built-in list fall back to ephem's star
            catalog.

        Expected Results:
            - Mizar is found with its J2000 coordinates (13h 23m 55s, +54 55').
        """
        mizar = find_target("mizar")
        self.assertIsNotNone(mizar)
        self.assertEqual(mizar.name, "Mizar")
        self.assertAlmostEqual(mizar.ra_hours, 13.3987, delta=0.01)
        self.assertAlmostEqual(mizar.dec_deg, 54.925, delta=0.05)

    def test_unknown_target(self):
        self.assertIsNone(find_target("No Such Star"))


class TestManualTarget(unittest.TestCase):
    def test_valid(self):
        target = manual_target(5.5, -30.25)
        self.assertEqual((target.ra_hours, target.dec_deg), (5.5, -30.25))
        self.assertEqual(target.kind, "manual")
        self.assertEqual(manual_target("0", "90").dec_deg, 90.0)
        self.assertEqual(manual_target(23.999, -90.0).ra_hours, 23.999)

    def test_invalid(self):
        cases = [
            (24.0, 0.0),
            (-0.1, 0.0),
            (12.0, 90.5),
            (12.0, -91.0),
            ("abc", 0.0),
            (None, 0.0),
            (math.nan, 0.0),
            (12.0, math.inf),
        ]
        for ra, dec in cases:
            with self.subTest(ra=ra, dec=dec):
                with self.assertRaises(ValueError):
                    manual_target(ra, dec)


if __name__ == "__main__":
    unittest.main()
