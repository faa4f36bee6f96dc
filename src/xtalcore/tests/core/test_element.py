import unittest
from xtalcore.core.element import (
    Element,
    are_bonded,
    bond_cutoff,
    chemical_formula,
    molecular_weight,
)


class ElementTestCase(unittest.TestCase):
    def test_construction(self):
        for s in (1, "D", "H", "hydrogen", "1", "h"):
            e = Element[s]
            self.assertEqual(e.atomic_number, 1)
            self.assertEqual(e.symbol, "H")
            self.assertEqual(e.name, "hydrogen")

        for s in ("blah", "32.141", None, 1.5, 0, 200):
            with self.assertRaises(ValueError):
                Element[s]

    def test_from_label(self):
        self.assertEqual(Element.from_label("C12A").symbol, "C")
        self.assertEqual(Element.from_label("Ca2").symbol, "Ca")
        self.assertEqual(Element.from_label("O1").symbol, "O")
        self.assertEqual(Element.from_label("D3").symbol, "H")
        self.assertEqual(Element["Cl1"].symbol, "Cl")
        for label in ("blah", "Xq1", "Bx2", "Qz"):
            with self.assertRaises(ValueError):
                Element.from_label(label)

    def test_properties(self):
        c = Element["C"]
        self.assertEqual(c.atomic_number, 6)
        self.assertAlmostEqual(c.mass, 12.0107)
        self.assertEqual(c.cov, 0.68)
        self.assertEqual(c.covalent_radius, 0.68)
        self.assertFalse(c.is_hydrogen)
        self.assertTrue(Element["D"].is_hydrogen)

    def test_comparison(self):
        h = Element[1]
        self.assertEqual(h, Element["H"])
        self.assertEqual(hash(h), hash(Element["D"]))
        self.assertNotEqual(h, Element["C"])
        ordered = sorted([Element["O"], Element["H"], Element["N"], Element["C"]])
        self.assertEqual([e.symbol for e in ordered], ["C", "H", "N", "O"])
        self.assertTrue(Element["B"] > Element["H"])

    def test_chemical_formula(self):
        els = [Element[x] for x in ("O", "H", "C", "O", "H", "H", "H", "C")]
        self.assertEqual(chemical_formula(els), "C2H4O2")
        self.assertEqual(chemical_formula(els, subscript=True), "C₂H₄O₂")
        self.assertEqual(chemical_formula([Element["Na"], Element["Cl"]]), "NaCl")

    def test_molecular_weight(self):
        water = [Element["H"], Element["H"], Element["O"]]
        self.assertAlmostEqual(molecular_weight(water), 18.01528, places=4)

    def test_bonding(self):
        c = Element["C"]
        h = Element["H"]
        self.assertAlmostEqual(bond_cutoff(c, c), 1.76)
        self.assertTrue(are_bonded(c, c, 1.54 ** 2))
        self.assertTrue(are_bonded(c, h, 1.09 ** 2))
        self.assertFalse(are_bonded(c, c, 1.80 ** 2))
        self.assertFalse(are_bonded(h, h, 1.0))
        self.assertFalse(are_bonded(c, c, 0.0))
        self.assertTrue(are_bonded(h, h, 1.0, tolerance=0.6))
