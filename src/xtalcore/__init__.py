from .core import Element
from .crystal import Atom, Lattice, SpaceGroup, Structure, SymmetryOperation

__all__ = [
    "Atom",
    "Element",
    "Lattice",
    "SpaceGroup",
    "Structure",
    "SymmetryOperation",
]
