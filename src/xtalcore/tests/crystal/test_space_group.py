import logging
import unittest
import numpy as np
from xtalcore.crystal import PointGroup, SpaceGroup, SymmetryOperation
from xtalcore.crystal.space_group import check_if_closed, same_symmetry_operations
from xtalcore.crystal.symmetry_operation import (
    decode_symm_str,
    encode_symm_str,
    rotation_part_type,
)

LOG = logging.getLogger(__name__)

P222 = ("x,y,z", "-x,-y,z", "-x,y,-z", "x,-y,-z")
P4 = ("x,y,z", "-y,x,z", "-x,-y,z", "y,-x,z")
P3 = ("x,y,z", "-y,x-y,z", "-x+y,-x,z")
P6 = ("x,y,z", "x-y,x,z", "-y,x-y,z", "-x,-y,z", "-x+y,-x,z", "y,-x+y,z")
P23 = (
    "x,y,z",
    "-x,-y,z",
    "-x,y,-z",
    "x,-y,-z",
    "z,x,y",
    "z,-x,-y",
    "-z,-x,y",
    "-z,x,-y",
    "y,z,x",
    "-y,z,-x",
    "y,-z,-x",
    "-y,-z,x",
)


class SymmetryOperationTestCase(unittest.TestCase):
    identity = SymmetryOperation.identity()

    def test_seitz(self):
        np.testing.assert_allclose(self.identity.seitz_matrix, np.eye(4))
        s = SymmetryOperation.from_string_code("-x,1/2+y,1/2-z")
        np.testing.assert_allclose(s.seitz_matrix[:3, 3], (0.0, 0.5, 0.5))

    def test_cif_form(self):
        self.assertEqual(self.identity.cif_form, "x,y,z")
        inv = self.identity.inverted()
        self.assertEqual(inv.cif_form, "-x,-y,-z")
        inv += (0.5, 0.0, 0.0)
        self.assertEqual(inv.cif_form, "1/2-x,-y,-z")
        inv -= (0.5, 0.0, 0.0)
        self.assertEqual(inv.cif_form, "-x,-y,-z")

    def test_string_codes(self):
        for code in ("x,y,z", "-x,1/2+y,1/2-z", "-y,x-y,1/3+z", "1/4+y,3/4-x,-z"):
            self.assertEqual(str(SymmetryOperation.from_string_code(code)), code)
        rotation, translation = decode_symm_str(" 1/2 - x, y-0.25 , 2*z ")
        np.testing.assert_allclose(rotation, np.diag((-1, 1, 2)))
        np.testing.assert_allclose(translation, (0.5, 0.75, 0.0))
        self.assertEqual(encode_symm_str(rotation, translation), "1/2-x,3/4+y,2z")
        irregular = SymmetryOperation(np.diag((-1, 1, -1)), (0.0, 0.87, 0.00001))
        self.assertEqual(irregular.cif_form, "-x,0.87+y,0.00001-z")
        self.assertEqual(SymmetryOperation.from_string_code(irregular.cif_form), irregular)
        np.testing.assert_allclose(
            SymmetryOperation.from_string_code(irregular.cif_form).translation, (0.0, 0.87, 0.00001)
        )
        for bad in ("x,y", "x,y,+", "x,y,q", "x,,z"):
            with self.assertRaises(ValueError):
                decode_symm_str(bad)

    def test_apply(self):
        rng = np.random.default_rng(0)
        pts_seitz = rng.random((100, 4))
        pts_seitz[:, 3] = 1
        np.testing.assert_allclose(pts_seitz[:, :3], self.identity.apply(pts_seitz))
        s = SymmetryOperation.from_string_code("-x,1/2+y,1/2-z")
        np.testing.assert_allclose(s((0.1, 0.2, 0.3)), (-0.1, 0.7, 0.2))
        np.testing.assert_allclose(s(pts_seitz[:, :3])[:, 1], pts_seitz[:, 1] + 0.5)

    def test_composition(self):
        a = SymmetryOperation.from_string_code("-y,x-y,1/3+z")
        b = SymmetryOperation.from_string_code("-x,1/2+y,1/2-z")
        self.assertTrue((a * a.inverse()).is_identity())
        x = np.array((0.1, 0.25, 0.7))
        np.testing.assert_allclose((a * b)(x) % 1, a(b(x)) % 1)
        self.assertEqual(a * a * a, self.identity)

    def test_rotation_types(self):
        cases = {
            "x,y,z": 1,
            "-x,-y,-z": -1,
            "-x,y,-z": 2,
            "x,-y,z": -2,
            "-y,x-y,z": 3,
            "y,-x+y,-z": -3,
            "-y,x,z": 4,
            "y,-x,-z": -4,
            "x-y,x,z": 6,
            "-x+y,-x,-z": -6,
        }
        for code, expected in cases.items():
            s = SymmetryOperation.from_string_code(code)
            self.assertEqual(s.rotation_part_type, expected, code)
        with self.assertRaises(ValueError):
            rotation_part_type(np.diag((2, 1, 1)))

    def test_equality(self):
        a = SymmetryOperation.from_string_code("-x,1/2+y,1/2-z")
        b = SymmetryOperation(np.diag((-1, 1, -1)), (1.0, -0.5, 1.5))
        self.assertEqual(a, b)
        self.assertNotEqual(a, self.identity)
        self.assertTrue(SymmetryOperation.inversion().is_inversion())
        np.testing.assert_allclose(
            SymmetryOperation.inversion((0.25, 0.0, 0.0)).translation, (0.5, 0.0, 0.0)
        )
        self.assertTrue(SymmetryOperation.translation_only((0.5, 0.5, 0)).is_pure_translation())


class SpaceGroupTestCase(unittest.TestCase):
    def test_p1(self):
        sg = SpaceGroup.P1()
        self.assertEqual(len(sg), 1)
        self.assertTrue(sg[0].is_identity())
        self.assertFalse(sg.has_inversion)
        self.assertEqual(sg.crystal_system, "triclinic")
        self.assertEqual(sg.centring_vectors, [])

    def test_p21c(self):
        sg = SpaceGroup.P21c()
        self.assertEqual(len(sg), 4)
        self.assertEqual(sg.name, "P21/c")
        self.assertTrue(sg.has_inversion)
        self.assertTrue(sg.has_inversion_at_origin)
        np.testing.assert_allclose(sg.position_of_inversion, (0, 0, 0))
        self.assertEqual(len(sg.representative_symmetry_operations), 2)
        self.assertEqual(sg.crystal_system, "monoclinic")
        self.assertEqual(
            [s.cif_form for s in sg.symops],
            ["x,y,z", "-x,-y,-z", "-x,1/2+y,1/2-z", "x,1/2-y,1/2+z"],
        )
        self.assertEqual(
            sg.cif_section.splitlines()[:2], ["1 'x,y,z'", "2 '-x,-y,-z'"]
        )

    def test_closed(self):
        for codes in (P222, P4, P3, P6, P23):
            check_if_closed([SymmetryOperation.from_string_code(c) for c in codes])
        with self.assertRaises(ValueError):
            SpaceGroup.from_string_codes(("x,y,z", "-x,1/2+y,1/2-z", "-x,-y,-z"))
        with self.assertRaises(ValueError):
            SpaceGroup.from_string_codes(("x,y,z", "-y,x,z"))

    def test_identity_moved_first(self):
        sg = SpaceGroup.from_string_codes(("-x,-y,-z", "x,y,z"))
        self.assertTrue(sg[0].is_identity())

    def test_missing_identity(self):
        sg = SpaceGroup.P1()
        sg.symmetry_operations = [SymmetryOperation.inversion()]
        with self.assertRaises(ValueError):
            sg.decompose()

    def test_crystal_systems(self):
        cases = (
            (P222, "orthorhombic"),
            (P4, "tetragonal"),
            (P3, "trigonal"),
            (P6, "hexagonal"),
            (P23, "cubic"),
        )
        for codes, expected in cases:
            sg = SpaceGroup.from_string_codes(codes)
            self.assertEqual(sg.crystal_system, expected)
            self.assertEqual(sg.point_group().crystal_system, expected)
        with self.assertRaises(RuntimeError):
            PointGroup([np.eye(3), np.diag((-1, -1, 1)), np.diag((-1, 1, -1))]).crystal_system

    def test_centring(self):
        sg = SpaceGroup.from_string_codes(("x,y,z", "1/2+x,1/2+y,z"), name="C1")
        self.assertEqual(len(sg.centring_vectors), 1)
        np.testing.assert_allclose(sg.centring_vectors[0], (0.5, 0.5, 0.0))
        self.assertEqual(sg.crystal_system, "triclinic")

    def test_add_inversion_idempotent(self):
        sg = SpaceGroup.from_string_codes(("x,y,z", "-x,1/2+y,1/2-z"))
        self.assertEqual(len(sg), 2)
        self.assertFalse(sg.has_inversion)
        sg.add_inversion_at_origin()
        self.assertEqual(len(sg), 4)
        self.assertTrue(sg.has_inversion_at_origin)
        sg.add_inversion_at_origin()
        self.assertEqual(len(sg), 4)
        self.assertEqual(sg, SpaceGroup.P21c())

    def test_add_inversion_with_shifted_inversion(self):
        sg = SpaceGroup.from_string_codes(("x,y,z", "1/2-x,1/2-y,1/2-z"))
        self.assertTrue(sg.has_inversion)
        self.assertFalse(sg.has_inversion_at_origin)
        np.testing.assert_allclose(sg.position_of_inversion, (0.25, 0.25, 0.25))
        with self.assertLogs("xtalcore.crystal.space_group", level="WARNING"):
            sg.add_inversion_at_origin()
        self.assertEqual(len(sg), 4)
        self.assertTrue(sg.has_inversion_at_origin)
        self.assertEqual(len(sg.centring_vectors), 1)
        np.testing.assert_allclose(sg.centring_vectors[0], (0.5, 0.5, 0.5))

    def test_point_group_and_laue_class(self):
        sg = SpaceGroup.from_string_codes(("x,y,z", "-x,1/2+y,1/2-z"))
        pg = sg.point_group()
        self.assertEqual(len(pg), 2)
        self.assertFalse(pg.has_inversion)
        laue = sg.laue_class()
        self.assertEqual(len(laue), 4)
        self.assertTrue(laue.has_inversion)
        self.assertIn(np.diag((1, -1, 1)), laue)
        self.assertEqual(len(SpaceGroup.P21c().laue_class()), 4)

    def test_similarity_transformation(self):
        sg = SpaceGroup.P21c()
        sg.apply_similarity_transformation(SymmetryOperation.translation_only((0.25, 0.0, 0.0)))
        self.assertEqual(len(sg), 4)
        self.assertFalse(sg.has_inversion_at_origin)
        np.testing.assert_allclose(sg.position_of_inversion, (0.25, 0.0, 0.0))
        check_if_closed(sg.symmetry_operations)

    def test_remove_duplicates(self):
        sg = SpaceGroup.from_string_codes(("x,y,z", "-x,-y,-z", "1-x,-y,-z"))
        self.assertEqual(len(sg), 3)
        sg.remove_duplicate_symmetry_operations()
        self.assertEqual(len(sg), 2)

    def test_same_symmetry_operations(self):
        a = SpaceGroup.P21c()
        b = SpaceGroup.from_string_codes(
            ("x,1/2-y,1/2+z", "x,y,z", "-x,1/2+y,1/2-z", "-x,-y,-z")
        )
        self.assertTrue(same_symmetry_operations(a, b))
        self.assertEqual(a, b)
        self.assertNotEqual(a, SpaceGroup.P1())
