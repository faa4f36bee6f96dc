from typing import List
import numpy as np
from xtalcore.core.element import chemical_formula, molecular_weight
from xtalcore.crystal.atom import Atom


class MoleculeInCrystal:
    """
    A bonded group of atoms inside a crystal structure.

    Positions are fractional coordinates of the parent lattice, taken
    from the periodic images that realise the bonds, so the molecule
    is contiguous and may extend outside [0, 1).

    Attributes:
        atoms (List[Atom]): the atoms of this molecule
        atom_indices (List[int]): indices of the atoms in the parent structure
    """

    def __init__(self, atoms=None, atom_indices=None):
        self.atoms: List[Atom] = list(atoms) if atoms is not None else []
        self.atom_indices: List[int] = list(atom_indices) if atom_indices is not None else []

    def add_atom(self, atom: Atom, index: int = -1):
        self.atoms.append(atom)
        self.atom_indices.append(index)

    def atom(self, i: int) -> Atom:
        if i < 0 or i >= len(self.atoms):
            raise IndexError("Atom index {} out of range for molecule of {} atoms".format(i, len(self)))
        return self.atoms[i]

    def set_atom(self, i: int, atom: Atom):
        self.atom(i)
        self.atoms[i] = atom

    @property
    def positions(self) -> np.ndarray:
        "(N, 3) fractional coordinates"
        return np.array([a.position for a in self.atoms])

    @property
    def elements(self):
        return [a.element for a in self.atoms]

    def centre_of_mass(self, weigh_by_atomic_weight=True) -> np.ndarray:
        """
        Centre of the molecule in fractional coordinates.

        Args:
            weigh_by_atomic_weight (bool, optional): weight by atomic
                mass, otherwise all atoms count equally

        Returns:
            np.ndarray: (3,) fractional coordinates
        """
        if not self.atoms:
            raise ValueError("Empty molecule has no centre of mass")
        if weigh_by_atomic_weight:
            weights = np.array([a.element.mass for a in self.atoms])
        else:
            weights = np.ones(len(self.atoms))
        return np.sum(self.positions * weights[:, np.newaxis], axis=0) / np.sum(weights)

    def translate(self, shift):
        "Shift every atom by a fractional vector"
        shift = np.asarray(shift, dtype=np.float64)
        for a in self.atoms:
            a.position = a.position + shift

    @property
    def molecular_weight(self) -> float:
        return molecular_weight(self.elements)

    @property
    def formula(self) -> str:
        return chemical_formula(self.elements)

    def __len__(self):
        return len(self.atoms)

    def __iter__(self):
        return iter(self.atoms)

    def __repr__(self):
        return "<MoleculeInCrystal: {}>".format(self.formula)
