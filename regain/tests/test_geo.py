import unittest

from regain.geo import bounding_box, haversine_m, validate_point

MUMBAI = (72.8777, 19.0760)
PUNE = (73.8567, 18.5204)


class HaversineTests(unittest.TestCase):
    def test_zero_distance(self):
        self.assertEqual(haversine_m(*MUMBAI, *MUMBAI), 0.0)

    def test_one_degree_of_latitude(self):
        self.assertAlmostEqual(haversine_m(0.0, 0.0, 0.0, 1.0), 111_195, delta=1)

    def test_city_distance_is_symmetric(self):
        there = haversine_m(*MUMBAI, *PUNE)
        back = haversine_m(*PUNE, *MUMBAI)
        self.assertAlmostEqual(there, back, places=6)
        self.assertGreater(there, 118_000)
        self.assertLess(there, 122_000)


class BoundingBoxTests(unittest.TestCase):
    def test_box_contains_circle_edges(self):
        lng, lat = MUMBAI
        radius = 15_000
        min_lng, min_lat, max_lng, max_lat = bounding_box(lng, lat, radius)
        # Points on the circle in each cardinal direction.
        self.assertLessEqual(min_lat, lat - 0.1348)
        self.assertGreaterEqual(max_lat, lat + 0.1348)
        self.assertLess(min_lng, lng)
        self.assertGreater(max_lng, lng)
        east_edge = haversine_m(lng, lat, max_lng, lat)
        self.assertGreaterEqual(east_edge, radius)

    def test_polar_circle_drops_longitude_bounds(self):
        min_lng, min_lat, max_lng, max_lat = bounding_box(0.0, 89.95, 20_000)
        self.assertIsNone(min_lng)
        self.assertIsNone(max_lng)
        self.assertEqual(max_lat, 90.0)

    def test_antimeridian_drops_longitude_bounds(self):
        min_lng, _, max_lng, _ = bounding_box(179.99, 0.0, 10_000)
        self.assertIsNone(min_lng)
        self.assertIsNone(max_lng)


class ValidatePointTests(unittest.TestCase):
    def test_rejects_out_of_range(self):
        with self.assertRaises(ValueError):
            validate_point(181.0, 0.0)
        with self.assertRaises(ValueError):
            validate_point(0.0, -90.5)

    def test_accepts_limits(self):
        validate_point(-180.0, 90.0)


if __name__ == "__main__":
    unittest.main()
