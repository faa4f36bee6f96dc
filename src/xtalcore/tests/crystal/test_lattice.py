import logging
import unittest
import numpy as np
from xtalcore.crystal.lattice import Lattice, LatticeSystem, deduce_lattice_system

LOG = logging.getLogger(__name__)

CUBIC_DIRECT = np.eye(3) * 5.0
TRICLINIC_PARAMETERS = (5.1, 6.3, 7.7, 71.2, 83.4, 99.9)


class LatticeTestCase(unittest.TestCase):
    def test_construction(self):
        cubic = Lattice.cubic(5.0)
        np.testing.assert_allclose(cubic.direct, CUBIC_DIRECT, atol=1e-12)
        self.assertAlmostEqual(cubic.volume(), 125.0)
        self.assertEqual(cubic.lattice_system, LatticeSystem.CUBIC)

        hexagonal = Lattice.hexagonal(3.0, 5.0)
        np.testing.assert_allclose(hexagonal.v_b, (-1.5, 3.0 * np.sqrt(3) / 2, 0.0), atol=1e-12)
        self.assertAlmostEqual(hexagonal.volume(), 3.0 * 3.0 * 5.0 * np.sqrt(3) / 2)

        t = Lattice(*TRICLINIC_PARAMETERS)
        np.testing.assert_allclose(t.parameters, TRICLINIC_PARAMETERS)
        np.testing.assert_allclose(t.lengths, np.linalg.norm(t.direct, axis=1))

    def test_invalid_parameters(self):
        with self.assertRaises(ValueError):
            Lattice(5.0, 5.0, 5.0, 150.0, 150.0, 150.0)
        with self.assertRaises(ValueError):
            Lattice(-1.0, 5.0, 5.0)

    def test_lattice_systems(self):
        cases = (
            ((5, 5, 5, 90, 90, 90), LatticeSystem.CUBIC),
            ((5, 6, 7, 90, 90, 90), LatticeSystem.ORTHORHOMBIC),
            ((5, 5, 7, 90, 90, 120), LatticeSystem.HEXAGONAL),
            ((5, 6, 7, 80, 90, 90), LatticeSystem.MONOCLINIC),
            ((5, 5, 7, 90, 90, 90), LatticeSystem.TETRAGONAL),
            ((5, 5, 5, 80, 80, 80), LatticeSystem.RHOMBOHEDRAL),
            ((5, 6, 7, 80, 85, 95), LatticeSystem.TRICLINIC),
        )
        for params, expected in cases:
            self.assertEqual(deduce_lattice_system(params[:3], params[3:]), expected)
            self.assertEqual(Lattice(*params).lattice_system, expected)
        self.assertEqual(Lattice.monoclinic(5, 6, 7, 101.0).cell_type, "monoclinic")

    def test_ambiguous_equal_angles(self):
        with self.assertLogs("xtalcore.crystal.lattice", level="WARNING"):
            system = deduce_lattice_system((5, 6, 7), (80, 80, 80))
        self.assertEqual(system, LatticeSystem.TRICLINIC)

    def test_unique_parameters(self):
        self.assertEqual(len(Lattice.cubic(5.0).unique_parameters), 1)
        self.assertEqual(len(Lattice.hexagonal(3.0, 5.0).unique_parameters), 2)
        np.testing.assert_allclose(
            Lattice.monoclinic(5, 6, 7, 101.0).unique_parameters, (5, 6, 7, 101.0)
        )

    def test_coordinate_round_trip(self):
        rng = np.random.default_rng(1)
        for params in ((5, 5, 5, 90, 90, 90), TRICLINIC_PARAMETERS, (3, 3, 9, 90, 90, 120)):
            lattice = Lattice(*params)
            frac = rng.random((20, 3)) * 4 - 2
            np.testing.assert_allclose(lattice.to_fractional(lattice.to_cartesian(frac)), frac)
            cart = rng.random((20, 3)) * 10
            np.testing.assert_allclose(lattice.to_cartesian(lattice.to_fractional(cart)), cart)
            single = lattice.to_fractional(lattice.to_cartesian(frac[0]))
            self.assertEqual(single.shape, (3,))

    def test_metric_matrices(self):
        lattice = Lattice(*TRICLINIC_PARAMETERS)
        g = lattice.metric_matrix()
        np.testing.assert_allclose(np.diag(g), lattice.lengths ** 2)
        np.testing.assert_allclose(g @ lattice.reciprocal_metric_matrix(), np.eye(3), atol=1e-12)
        x = np.array((0.1, -0.4, 0.3))
        self.assertAlmostEqual(x @ g @ x, np.sum(lattice.to_cartesian(x) ** 2))

    def test_reciprocal(self):
        lattice = Lattice(*TRICLINIC_PARAMETERS)
        np.testing.assert_allclose(
            lattice.direct @ lattice.reciprocal_lattice.T, np.eye(3), atol=1e-12
        )
        self.assertAlmostEqual(lattice.a_star, np.linalg.norm(lattice.v_a_star))
        self.assertAlmostEqual(Lattice.cubic(5.0).a_star, 0.2)

    def test_minimum_image(self):
        lattice = Lattice.cubic(10.0)
        d, diff = lattice.shortest_distance((0.05, 0.0, 0.0), (0.95, 0.0, 0.0))
        self.assertAlmostEqual(d, 1.0)
        np.testing.assert_allclose(diff, (-0.1, 0.0, 0.0), atol=1e-12)
        self.assertAlmostEqual(lattice.shortest_distance2((0, 0, 0), (0.5, 0.5, 0.5)), 75.0)

    def test_minimum_image_symmetry_and_periodicity(self):
        rng = np.random.default_rng(7)
        lattice = Lattice(*TRICLINIC_PARAMETERS)
        for _ in range(20):
            p, q = rng.random(3), rng.random(3)
            d_pq = lattice.shortest_distance(p, q)[0]
            self.assertAlmostEqual(d_pq, lattice.shortest_distance(q, p)[0])
            shift = rng.integers(-3, 4, size=3)
            self.assertAlmostEqual(d_pq, lattice.shortest_distance(p + shift, q)[0])
            self.assertAlmostEqual(d_pq, lattice.shortest_distance(p, q - shift)[0])

    def test_minimum_image_brute_force(self):
        lattice = Lattice(6.0, 7.0, 8.0, 110.0, 115.0, 75.0)
        rng = np.random.default_rng(3)
        diffs = rng.random((50, 3))
        d2, images = lattice.minimum_images(diffs)
        np.testing.assert_allclose(images - diffs, np.round(images - diffs), atol=1e-10)
        grid = np.array(list(np.ndindex(7, 7, 7))) - 3
        for diff, best in zip(diffs, d2):
            brute = np.min(np.sum(lattice.to_cartesian(diff + grid) ** 2, axis=1))
            self.assertAlmostEqual(best, brute)

    def test_minimum_image_sheared_cell(self):
        lattice = Lattice(6.0, 6.0, 6.0, 35.0, 35.0, 35.0)
        rng = np.random.default_rng(11)
        diffs = rng.random((50, 3))
        d2, images = lattice.minimum_images(diffs)
        neighbours = np.array(list(np.ndindex(3, 3, 3))) - 1
        grid = np.array(list(np.ndindex(9, 9, 9))) - 4
        for diff, image, best in zip(diffs, images, d2):
            local = np.sum(lattice.to_cartesian(image + neighbours) ** 2, axis=1)
            self.assertGreaterEqual(np.min(local), best - 1e-10)
            brute = np.min(np.sum(lattice.to_cartesian(diff + grid) ** 2, axis=1))
            self.assertGreaterEqual(best, brute - 1e-10)

    def test_transform(self):
        lattice = Lattice.orthorhombic(4.0, 5.0, 6.0)
        swapped = lattice.transform(((0, 1, 0), (1, 0, 0), (0, 0, -1)))
        np.testing.assert_allclose(swapped.lengths, (5.0, 4.0, 6.0))
        self.assertAlmostEqual(swapped.volume(), lattice.volume())
        with self.assertLogs("xtalcore.crystal.lattice", level="WARNING"):
            doubled = lattice.transform(np.diag((2, 1, 1)))
        self.assertAlmostEqual(doubled.a, 8.0)

    def test_rescale_volume(self):
        lattice = Lattice(*TRICLINIC_PARAMETERS)
        rescaled = lattice.rescale_volume(500.0)
        self.assertAlmostEqual(rescaled.volume(), 500.0)
        np.testing.assert_allclose(rescaled.angles, lattice.angles)
        cubic = Lattice.cubic(10.0)
        np.testing.assert_allclose(cubic.rescale_volume(250.0, Z=4).volume(), 1000.0)
        np.testing.assert_allclose(cubic.rescale_volume(300.0, Z=2).volume(), 1050.0)

    def test_equality_and_average(self):
        l1 = Lattice(5, 6, 7, 90, 100, 90)
        l2 = Lattice(5, 6, 7, 90, 100, 90)
        l3 = Lattice(7, 6, 5, 90, 110, 90)
        self.assertEqual(l1, l2)
        self.assertNotEqual(l1, l3)
        np.testing.assert_allclose(l1.average(l3).parameters, (6, 6, 6, 90, 105, 90))
        np.testing.assert_allclose(l1.scaled(2, 1, 3).lengths, (10, 6, 21))

    def test_from_vectors(self):
        lattice = Lattice(*TRICLINIC_PARAMETERS)
        rebuilt = Lattice.from_vectors(lattice.direct)
        np.testing.assert_allclose(rebuilt.direct, lattice.direct, atol=1e-10)
        rad = Lattice.from_lengths_and_angles((5, 6, 7), np.radians((80, 90, 90)))
        np.testing.assert_allclose(rad.angles_deg, (80, 90, 90))
        deg = Lattice.from_lengths_and_angles((5, 6, 7), (80, 90, 90), unit="degrees")
        self.assertEqual(rad, deg)

    def test_enclosing_box(self):
        lo, hi = Lattice.orthorhombic(4.0, 5.0, 6.0).enclosing_box()
        np.testing.assert_allclose(lo, (0, 0, 0), atol=1e-12)
        np.testing.assert_allclose(hi, (4, 5, 6))

    def test_repr(self):
        self.assertEqual(repr(Lattice.cubic(2.0)), "<Lattice: cubic (2.000)>")
