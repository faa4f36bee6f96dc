"""
This module implements functionality associated with
3D periodic crystal structures (`Structure`), including lattices (`Lattice`),
space groups (`SpaceGroup`), point groups (`PointGroup`), symmetry operations in
fractional coordinates (`SymmetryOperation`) and structure matching.
"""

from .atom import AnisotropicDisplacementParameters, Atom
from .lattice import Lattice, LatticeSystem
from .matching import (
    MatchResult,
    RMSCDResult,
    find_match,
    rmscd_with_matching,
    root_mean_square_cartesian_displacement,
)
from .molecule import MoleculeInCrystal
from .point_group import PointGroup
from .space_group import SpaceGroup
from .structure import Structure, SymmetryState
from .symmetry_operation import SymmetryOperation

__all__ = [
    "AnisotropicDisplacementParameters",
    "Atom",
    "Lattice",
    "LatticeSystem",
    "MatchResult",
    "MoleculeInCrystal",
    "PointGroup",
    "RMSCDResult",
    "SpaceGroup",
    "Structure",
    "SymmetryOperation",
    "SymmetryState",
    "find_match",
    "rmscd_with_matching",
    "root_mean_square_cartesian_displacement",
]
