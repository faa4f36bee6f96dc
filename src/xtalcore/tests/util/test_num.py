import unittest
import numpy as np
from xtalcore.util.num import (
    NEIGHBOUR_OFFSETS,
    RunningAverage,
    cartesian_product,
    nearly_equal,
    nearly_integer,
    round_half_away,
    tally_first_maximum,
    wrap_to_unit_cell,
)
from xtalcore.util.unit import units


class NumTestCase(unittest.TestCase):
    def test_cartesian_product(self):
        p = cartesian_product([1, 2], [3, 4, 5])
        self.assertEqual(p.shape, (6, 2))
        np.testing.assert_equal(p[0], (1, 3))
        np.testing.assert_equal(p[1], (1, 4))
        np.testing.assert_equal(p[-1], (2, 5))

    def test_neighbour_offsets(self):
        self.assertEqual(NEIGHBOUR_OFFSETS.shape, (27, 3))
        np.testing.assert_equal(NEIGHBOUR_OFFSETS[0], (0, 0, 0))
        self.assertEqual(len(set(map(tuple, NEIGHBOUR_OFFSETS))), 27)

    def test_nearly(self):
        self.assertTrue(nearly_equal(1.0, 1.0 + 1e-8))
        self.assertFalse(nearly_equal(1.0, 1.001))
        self.assertTrue(nearly_integer((1.0, -2.0000001, 0.0)))
        self.assertFalse(nearly_integer((0.5, 0.0, 0.0)))

    def test_wrap(self):
        wrapped = wrap_to_unit_cell(np.array([[1.25, -0.25, 3.0], [-1e-20, 0.5, 0.999]]))
        np.testing.assert_allclose(wrapped, [[0.25, 0.75, 0.0], [0.0, 0.5, 0.999]])
        self.assertTrue(np.all(wrapped < 1.0))
        self.assertTrue(np.all(wrapped >= 0.0))

    def test_round_half_away(self):
        np.testing.assert_equal(round_half_away([0.5, -0.5, 1.5, 2.5, -2.4]), [1, -1, 2, 3, -2])

    def test_running_average(self):
        r = RunningAverage()
        for x in (1.0, 2.0, 3.0, 4.0):
            r.add_value(x)
        self.assertEqual(r.count, 4)
        self.assertEqual(len(r), 4)
        self.assertAlmostEqual(r.average, 2.5)
        self.assertAlmostEqual(r.variance, np.var([1, 2, 3, 4], ddof=1))

        r = RunningAverage(np.array([0.0, 1.0, 2.0]))
        r.add_value(np.array([1.0, 1.0, 0.0]))
        np.testing.assert_allclose(r.average, [0.5, 1.0, 1.0])

        with self.assertRaises(ValueError):
            RunningAverage().average

    def test_tally(self):
        self.assertEqual(tally_first_maximum([1, 3, 0, 3]), (1, 3))

    def test_units(self):
        self.assertAlmostEqual(units.convert(1.0, t="debye"), 4.80320471)
        self.assertAlmostEqual(units.convert(4.80320471, f="Debye"), 1.0)
        with self.assertRaises(ValueError):
            units.convert(1.0, t="hartree")
