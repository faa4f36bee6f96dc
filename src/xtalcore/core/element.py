"""Element lookup tables: symbols, atomic masses and covalent radii."""

import re
import functools
import numbers
from collections import Counter
from typing import Iterable

_SYMBOL_REGEX = re.compile("([A-Z]+).*", re.IGNORECASE)

# covalent radii in angstroms, masses in g/mol
_ELEMENT_TABLE = (
    # symbol name mass cov
    ("H", "hydrogen", 1.00794, 0.23),
    ("He", "helium", 4.002602, 1.50),
    ("Li", "lithium", 6.941, 1.28),
    ("Be", "beryllium", 9.012182, 0.96),
    ("B", "boron", 10.811, 0.83),
    ("C", "carbon", 12.0107, 0.68),
    ("N", "nitrogen", 14.0067, 0.68),
    ("O", "oxygen", 15.9994, 0.68),
    ("F", "fluorine", 18.998403, 0.64),
    ("Ne", "neon", 20.1797, 1.50),
    ("Na", "sodium", 22.98977, 1.66),
    ("Mg", "magnesium", 24.305, 1.41),
    ("Al", "aluminium", 26.981538, 1.21),
    ("Si", "silicon", 28.0855, 1.20),
    ("P", "phosphorus", 30.973761, 1.05),
    ("S", "sulfur", 32.065, 1.02),
    ("Cl", "chlorine", 35.453, 0.99),
    ("Ar", "argon", 39.948, 1.51),
    ("K", "potassium", 39.0983, 2.03),
    ("Ca", "calcium", 40.078, 1.76),
    ("Sc", "scandium", 44.95591, 1.70),
    ("Ti", "titanium", 47.867, 1.60),
    ("V", "vanadium", 50.9415, 1.53),
    ("Cr", "chromium", 51.9961, 1.39),
    ("Mn", "manganese", 54.938049, 1.61),
    ("Fe", "iron", 55.845, 1.52),
    ("Co", "cobalt", 58.9332, 1.26),
    ("Ni", "nickel", 58.6934, 1.24),
    ("Cu", "copper", 63.546, 1.32),
    ("Zn", "zinc", 65.409, 1.22),
    ("Ga", "gallium", 69.723, 1.22),
    ("Ge", "germanium", 72.64, 1.17),
    ("As", "arsenic", 74.9216, 1.21),
    ("Se", "selenium", 78.96, 1.22),
    ("Br", "bromine", 79.904, 1.21),
    ("Kr", "krypton", 83.798, 1.50),
    ("Rb", "rubidium", 85.4678, 2.20),
    ("Sr", "strontium", 87.62, 1.95),
    ("Y", "yttrium", 88.90585, 1.90),
    ("Zr", "zirconium", 91.224, 1.75),
    ("Nb", "niobium", 92.90638, 1.64),
    ("Mo", "molybdenum", 95.94, 1.54),
    ("Tc", "technetium", 98.0, 1.47),
    ("Ru", "ruthenium", 101.07, 1.46),
    ("Rh", "rhodium", 102.9055, 1.45),
    ("Pd", "palladium", 106.42, 1.39),
    ("Ag", "silver", 107.8682, 1.45),
    ("Cd", "cadmium", 112.411, 1.44),
    ("In", "indium", 114.818, 1.42),
    ("Sn", "tin", 118.71, 1.39),
    ("Sb", "antimony", 121.76, 1.39),
    ("Te", "tellurium", 127.6, 1.47),
    ("I", "iodine", 126.90447, 1.40),
    ("Xe", "xenon", 131.293, 1.50),
    ("Cs", "caesium", 132.90545, 2.44),
    ("Ba", "barium", 137.327, 2.15),
    ("La", "lanthanum", 138.9055, 2.07),
    ("Ce", "cerium", 140.116, 2.04),
    ("Pr", "praseodymium", 140.90765, 2.03),
    ("Nd", "neodymium", 144.24, 2.01),
    ("Pm", "promethium", 145.0, 1.99),
    ("Sm", "samarium", 150.36, 1.98),
    ("Eu", "europium", 151.964, 1.98),
    ("Gd", "gadolinium", 157.25, 1.96),
    ("Tb", "terbium", 158.92534, 1.94),
    ("Dy", "dysprosium", 162.5, 1.92),
    ("Ho", "holmium", 164.93032, 1.92),
    ("Er", "erbium", 167.259, 1.89),
    ("Tm", "thulium", 168.93421, 1.90),
    ("Ytterbium", "Yb", 1.87, 2.00, 173.04),
    ("Lu", "lutetium", 174.967, 1.87),
    ("Hf", "hafnium", 178.49, 1.75),
    ("Ta", "tantalum", 180.9479, 1.70),
    ("W", "tungsten", 183.84, 1.62),
    ("Re", "rhenium", 186.207, 1.51),
    ("Os", "osmium", 190.23, 1.44),
    ("Ir", "iridium", 192.217, 1.41),
    ("Pt", "platinum", 195.078, 1.36),
    ("Au", "gold", 196.96655, 1.50),
    ("Hg", "mercury", 200.59, 1.32),
    ("Tl", "thallium", 204.3833, 1.45),
    ("Pb", "lead", 207.2, 1.46),
    ("Bi", "bismuth", 208.98038, 1.48),
    ("Po", "polonium", 290.0, 1.40),
    ("At", "astatine", 210.0, 1.21),
    ("Rn", "radon", 222.0, 1.50),
    ("Fr", "francium", 223.0, 2.60),
    ("Ra", "radium", 226.0, 2.21),
    ("Ac", "actinium", 227.0, 2.15),
    ("Th", "thorium", 232.0381, 2.06),
    ("Pa", "protactinium", 231.03588, 2.00),
    ("U", "uranium", 238.02891, 1.96),
    ("Np", "neptunium", 237.0, 1.90),
    ("Pu", "plutonium", 244.0, 1.87),
    ("Am", "americium", 243.0, 1.80),
    ("Cm", "curium", 247.0, 1.69),
    ("Bk", "berkelium", 247.0, 1.54),
    ("Cf", "californium", 251.0, 1.83),
    ("Es", "einsteinium", 252.0, 1.50),
    ("Fm", "fermium", 257.0, 1.50),
    ("Md", "mendelevium", 258.0, 1.50),
    ("No", "nobelium", 259.0, 1.50),
    ("Lr", "lawrencium", 262.0, 1.50),
)

_BY_SYMBOL = {row[0]: (i, *row) for i, row in enumerate(_ELEMENT_TABLE, start=1)}
_BY_NAME = {row[1]: (i, *row) for i, row in enumerate(_ELEMENT_TABLE, start=1)}

DEFAULT_BOND_TOLERANCE = 0.4


class _ElementMeta(type):
    def __getitem__(cls, val):
        if isinstance(val, numbers.Integral):
            return cls.from_atomic_number(val)
        elif isinstance(val, str):
            return cls.from_string(val)
        raise ValueError("cannot construct element from {}".format(type(val)))


@functools.total_ordering
class Element(metaclass=_ElementMeta):
    """Static data for a chemical element.

    Deuterium is treated as hydrogen: it shares the atomic number,
    mass table entry and bonding radius.

    Examples:
        >>> Element["C"].mass
        12.0107
        >>> sorted([Element["O"], Element["H"], Element["C"]])
        [C, H, O]
    """

    def __init__(self, atomic_number, symbol, name, mass, cov):
        self.atomic_number = atomic_number
        self.symbol = symbol
        self.name = name
        self.mass = mass
        self.cov = cov

    @staticmethod
    def from_string(s: str) -> "Element":
        """Create an element from a symbol, a name or a site label.

        Args:
            s (str): e.g. 'c', 'Carbon', 'C12' or '6'

        Returns:
            Element: the matching element, otherwise a ValueError is raised
        """
        symbol = s.strip().capitalize()
        if symbol == "D":
            symbol = "H"
        if symbol.isdigit():
            return Element.from_atomic_number(int(symbol))
        if symbol in _BY_SYMBOL:
            return Element(*_BY_SYMBOL[symbol])
        if symbol.lower() in _BY_NAME:
            return Element(*_BY_NAME[symbol.lower()])
        return Element.from_label(s)

    @staticmethod
    def from_label(label: str) -> "Element":
        """Create an element from an atom site label e.g. 'O1', 'H12A'.

        The leading alphabetic run must be an element symbol, so
        'Ca2' is calcium, 'C12A' is carbon and 'Xq1' is an error.
        """
        m = re.match(_SYMBOL_REGEX, label.strip())
        if m is None:
            raise ValueError("Could not determine element from label {}".format(label))
        letters = m.group(1)
        sym = letters.capitalize()
        if sym == "D":
            sym = "H"
        if sym in _BY_SYMBOL:
            return Element(*_BY_SYMBOL[sym])
        raise ValueError("Could not determine element from label {}".format(label))

    @staticmethod
    def from_atomic_number(n: int) -> "Element":
        if n < 1 or n > len(_ELEMENT_TABLE):
            raise ValueError("No element with atomic number {}".format(n))
        return Element(n, *_ELEMENT_TABLE[n - 1])

    @property
    def covalent_radius(self) -> float:
        """The covalent radius in angstroms."""
        return self.cov

    @property
    def is_hydrogen(self) -> bool:
        "True for hydrogen and deuterium"
        return self.atomic_number == 1

    def __repr__(self):
        return self.symbol

    def __hash__(self):
        return int(self.atomic_number)

    def _is_valid_operand(self, other):
        return hasattr(other, "atomic_number")

    def __eq__(self, other):
        if not self._is_valid_operand(other):
            return NotImplemented
        return self.atomic_number == other.atomic_number

    def __lt__(self, other):
        """Carbon first, then hydrogen, then by atomic number."""
        if not self._is_valid_operand(other):
            return NotImplemented
        n1, n2 = self.atomic_number, other.atomic_number
        if n1 == n2:
            return False
        for first in (6, 1):
            if n1 == first:
                return True
            if n2 == first:
                return False
        return n1 < n2


def chemical_formula(elements: Iterable, subscript=False) -> str:
    """Calculate the chemical formula for the given elements.

    Examples:
        >>> chemical_formula([Element["O"], Element["C"], Element["O"]])
        'CO2'

    Args:
        elements (Iterable[Element]): the elements, with repeats
        subscript (bool, optional): use unicode subscripts for the counts

    Returns:
        str: the chemical formula
    """
    count = Counter(sorted(elements))
    blocks = []
    for el, c in count.items():
        if c == 1:
            c = ""
        elif subscript:
            c = "".join(chr(0x2080 + int(i)) for i in str(c))
        blocks.append(f"{el}{c}")
    return "".join(blocks)


def molecular_weight(elements: Iterable) -> float:
    "Sum of atomic masses (g/mol) of the given elements"
    return sum(el.mass for el in elements)


def bond_cutoff(el_a: Element, el_b: Element, tolerance=DEFAULT_BOND_TOLERANCE) -> float:
    "Largest distance (angstroms) at which two elements are considered bonded"
    return el_a.cov + el_b.cov + tolerance


def are_bonded(el_a: Element, el_b: Element, distance2: float, tolerance=DEFAULT_BOND_TOLERANCE) -> bool:
    """Bonding predicate on a squared interatomic distance.

    Two atoms are bonded when their separation is no greater than
    the sum of their covalent radii plus `tolerance`.

    Args:
        el_a (Element): first element
        el_b (Element): second element
        distance2 (float): squared separation in angstroms^2
        tolerance (float, optional): slack added to the radii sum

    Returns:
        bool: whether the pair is bonded
    """
    cutoff = bond_cutoff(el_a, el_b, tolerance=tolerance)
    return 0.0 < distance2 <= cutoff * cutoff
