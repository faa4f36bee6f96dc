import logging
from copy import deepcopy
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple
import numpy as np
from scipy.sparse import dok_matrix
import scipy.sparse.csgraph as csgraph
from xtalcore.core.element import (
    DEFAULT_BOND_TOLERANCE,
    are_bonded,
    chemical_formula,
    molecular_weight,
)
from xtalcore.crystal.atom import ADPType, AnisotropicDisplacementParameters, Atom
from xtalcore.crystal.lattice import Lattice
from xtalcore.crystal.molecule import MoleculeInCrystal
from xtalcore.crystal.space_group import SpaceGroup
from xtalcore.crystal.symmetry_operation import SymmetryOperation
from xtalcore.util.num import (
    RunningAverage,
    nearly_equal,
    round_half_away,
    wrap_to_unit_cell,
)
from xtalcore.util.unit import ANGSTROM3_TO_CM3, AVOGADRO, units

LOG = logging.getLogger(__name__)

# distances in Angstroms
DUPLICATE_ATOM_TOLERANCE = 0.001
SPECIAL_POSITION_TOLERANCE = 0.1
COLLAPSE_AVERAGING_TOLERANCE = 0.3
# Angstroms^2
DRIFT_MISMATCH_DISTANCE2 = 25.0
BOND_TOLERANCE = DEFAULT_BOND_TOLERANCE


class SymmetryState(Enum):
    "Whether the atom list holds only the asymmetric unit or the full cell"
    RAW = "raw"
    EXPANDED = "expanded"


class CollapseResult(NamedTuple):
    structure: "Structure"
    actual_centre: np.ndarray
    positions: List[np.ndarray]
    n_mismatches: int


def supercell_multiples(supercell_lattice: Lattice, reference_lattice: Lattice) -> Tuple[int, int, int]:
    """
    The integer multiples (u, v, w) relating a supercell lattice
    to the lattice of its unit cell.

    Raises:
        ValueError: if any multiple rounds to zero
    """
    ratio = supercell_lattice.lengths / reference_lattice.lengths
    u, v, w = (int(x) for x in round_half_away(ratio))
    if min(u, v, w) < 1:
        raise ValueError("Supercell multiples must be positive, got {}".format((u, v, w)))
    return u, v, w


class Structure:
    """
    A periodic atomic model: a lattice, a space group and a list of
    atoms in fractional coordinates.

    The atom list starts out as given (typically the asymmetric unit,
    `SymmetryState.RAW`). `apply_space_group_symmetry` expands it to
    the full unit cell (`SymmetryState.EXPANDED`). Molecules are only
    available after `perceive_molecules`.

    Operations that rebuild the structure (supercells, collapses,
    basis transformations) return a new Structure and leave this
    one unchanged.

    Attributes:
        lattice (Lattice): the unit cell
        space_group (SpaceGroup): the space group
        atoms (List[Atom]): the atoms
        molecules (List[MoleculeInCrystal]): perceived molecules
        name (str): name of the structure, e.g. a CSD refcode
    """

    def __init__(self, lattice=None, space_group=None, atoms=None, name="", symmetry_state=SymmetryState.RAW):
        self.lattice = lattice if lattice is not None else Lattice()
        self.space_group = space_group if space_group is not None else SpaceGroup()
        self.atoms: List[Atom] = []
        self.molecules: List[MoleculeInCrystal] = []
        self.name = name
        self._symmetry_state = symmetry_state
        if atoms is not None:
            self.add_atoms(atoms)

    @property
    def sg(self) -> SpaceGroup:
        "alias for `self.space_group`"
        return self.space_group

    @property
    def symmetry_state(self) -> SymmetryState:
        return self._symmetry_state

    @property
    def space_group_symmetry_has_been_applied(self) -> bool:
        return self._symmetry_state == SymmetryState.EXPANDED

    @property
    def natoms(self) -> int:
        return len(self.atoms)

    @property
    def nmolecules(self) -> int:
        return len(self.molecules)

    @property
    def positions(self) -> np.ndarray:
        "(N, 3) fractional coordinates of all atoms"
        if not self.atoms:
            return np.empty((0, 3))
        return np.array([a.position for a in self.atoms])

    @property
    def active_atoms(self) -> List[Atom]:
        return [a for a in self.atoms if a.active]

    @property
    def formula(self) -> str:
        return chemical_formula(a.element for a in self.atoms)

    def elements(self) -> set:
        "The set of distinct elements in this structure"
        return set(a.element for a in self.atoms)

    def add_atom(self, atom: Atom):
        self.atoms.append(atom)

    def add_atoms(self, atoms):
        for atom in atoms:
            self.add_atom(atom)

    def atom(self, i: int) -> Atom:
        if i < 0 or i >= len(self.atoms):
            raise IndexError("Atom index {} out of range ({} atoms)".format(i, len(self.atoms)))
        return self.atoms[i]

    def set_atom(self, i: int, atom: Atom):
        self.atom(i)
        self.atoms[i] = atom

    def find_label(self, label: str) -> Optional[int]:
        "Index of the first atom with this label, None if there is none"
        for i, atom in enumerate(self.atoms):
            if atom.label == label:
                return i
        return None

    def atom_index(self, label: str) -> int:
        "Index of the first atom with this label"
        i = self.find_label(label)
        if i is None:
            raise ValueError("No atom with label '{}'".format(label))
        return i

    def make_atom_labels_unique(self):
        "Relabel every atom as element symbol + index, e.g. C0, H1, ..."
        for i, atom in enumerate(self.atoms):
            atom.label = "{}{}".format(atom.element.symbol, i)

    def copy(self) -> "Structure":
        return deepcopy(self)

    def reduce_to_asymmetric_unit(self, tolerance=DUPLICATE_ATOM_TOLERANCE):
        """
        Keep only the asymmetric unit: of any two atoms of the same element
        that are closer than `tolerance` once lattice translations and
        space group symmetry are taken into account, the later one is
        dropped. The structure is afterwards considered not expanded.

        Args:
            tolerance (float, optional): distance in Angstroms
        """
        positions = self.positions
        n = len(positions)
        duplicate = np.zeros(n, dtype=bool)
        tol2 = tolerance * tolerance
        for i in range(n):
            if duplicate[i]:
                continue
            others = np.array(
                [
                    j
                    for j in range(i + 1, n)
                    if not duplicate[j] and self.atoms[j].element == self.atoms[i].element
                ],
                dtype=int,
            )
            if len(others) == 0:
                continue
            d2 = self._symmetry_distances2(positions[i], positions[others])
            duplicate[others[d2 < tol2]] = True
        if np.any(duplicate):
            LOG.debug("Removed %d duplicate atoms", np.sum(duplicate))
        self.atoms = [a for a, dup in zip(self.atoms, duplicate) if not dup]
        self._symmetry_state = SymmetryState.RAW

    def apply_space_group_symmetry(self, tolerance=SPECIAL_POSITION_TOLERANCE):
        """
        Generate the symmetry equivalent copies of every atom, so the
        atom list covers the full unit cell.

        An image closer than `tolerance` to the original atom, or to an
        image already generated from it, means the atom is on a special
        position and the image is discarded. Anisotropic displacement
        parameters are rotated along with the positions.

        Args:
            tolerance (float, optional): distance in Angstroms
        """
        if self._symmetry_state == SymmetryState.EXPANDED:
            LOG.warning("Space group symmetry has already been applied to %s", self.name or self)
        tol2 = tolerance * tolerance
        new_atoms = []
        for atom in self.atoms:
            kept = [atom.position]
            for symop in self.space_group.symmetry_operations[1:]:
                new_position = symop(atom.position)
                d2, _ = self.lattice.minimum_images(np.array(kept) - new_position)
                if np.min(d2) <= tol2:
                    continue
                kept.append(new_position)
                displacement = atom.displacement
                if atom.adp_type == ADPType.ANISOTROPIC:
                    displacement = displacement.rotated(symop.rotation, self.lattice)
                new_atoms.append(atom.copy(position=new_position, displacement=displacement))
        LOG.debug(
            "Applied %d symmetry operations: %d new atoms",
            len(self.space_group),
            len(new_atoms),
        )
        self.add_atoms(new_atoms)
        self._symmetry_state = SymmetryState.EXPANDED

    def perceive_molecules(self, bond_tolerance=BOND_TOLERANCE):
        """
        Split the contents of the unit cell into bonded molecules.

        The atom list is first reduced to the asymmetric unit and then
        re-expanded, so it holds exactly one unit cell of atoms whatever
        the input contained. Two atoms are bonded when their minimum
        image distance is within the sum of covalent radii plus
        `bond_tolerance`; the position of the later atom is moved to
        the image that forms the bond, so molecules come out contiguous.

        Args:
            bond_tolerance (float, optional): slack added to the covalent
                radii sum, in Angstroms
        """
        self.reduce_to_asymmetric_unit()
        self.apply_space_group_symmetry()
        n = len(self.atoms)
        positions = self.positions
        elements = [a.element for a in self.atoms]
        bonds = dok_matrix((n, n), dtype=np.int8)
        for i in range(n - 1):
            d2, differences = self.lattice.minimum_images(positions[i + 1 :] - positions[i])
            for offset in range(len(d2)):
                j = i + 1 + offset
                if are_bonded(elements[i], elements[j], d2[offset], tolerance=bond_tolerance):
                    bonds[i, j] = 1
                    bonds[j, i] = 1
                    positions[j] = positions[i] + differences[offset]
        for atom, position in zip(self.atoms, positions):
            atom.position = position
        nmol, labels = csgraph.connected_components(
            csgraph=bonds.tocsr(), directed=False, return_labels=True
        )
        LOG.debug("%d molecules in unit cell", nmol)
        order = []
        for label in labels:
            if label not in order:
                order.append(label)
        self.molecules = []
        for label in order:
            nodes = np.flatnonzero(labels == label)
            self.molecules.append(
                MoleculeInCrystal(
                    [self.atoms[k].copy() for k in nodes], atom_indices=nodes.tolist()
                )
            )

    def molecule_in_crystal(self, i: int) -> MoleculeInCrystal:
        if i < 0 or i >= len(self.molecules):
            raise IndexError(
                "Molecule index {} out of range ({} molecules)".format(i, len(self.molecules))
            )
        return self.molecules[i]

    def molecular_centre_of_mass(self, i: int) -> np.ndarray:
        "Unweighted centre of molecule i, in fractional coordinates"
        return self.molecule_in_crystal(i).centre_of_mass(weigh_by_atomic_weight=False)

    def move_molecule(self, i: int, shift):
        "Translate molecule i by a fractional shift"
        self.molecule_in_crystal(i).translate(shift)

    def position_all_atoms_within_unit_cell(self):
        for atom in self.atoms:
            atom.position = wrap_to_unit_cell(atom.position)

    def supercell(self, u: int, v: int, w: int) -> "Structure":
        """
        Build a u x v x w supercell in P1.

        The space group symmetry is applied first (to a copy) if this
        structure has not been expanded. Atom labels get the suffix
        _i_j_k of the cell they were placed in.

        Args:
            u (int): multiple along a
            v (int): multiple along b
            w (int): multiple along c

        Returns:
            Structure: the supercell
        """
        if min(u, v, w) < 1:
            raise ValueError("Supercell multiples must be positive, got {}".format((u, v, w)))
        source = self
        if self._symmetry_state != SymmetryState.EXPANDED:
            source = self.copy()
            source.apply_space_group_symmetry()
        new_lattice = self.lattice.scaled(u, v, w)
        result = Structure(
            lattice=new_lattice,
            space_group=SpaceGroup(),
            name=self.name,
            symmetry_state=SymmetryState.EXPANDED,
        )
        for i in range(u):
            for j in range(v):
                for k in range(w):
                    shift = self.lattice.to_cartesian(np.array((i, j, k), dtype=np.float64))
                    for atom in source.atoms:
                        cart = self.lattice.to_cartesian(atom.position) + shift
                        displacement = atom.displacement
                        if atom.adp_type == ADPType.ANISOTROPIC:
                            displacement = AnisotropicDisplacementParameters(displacement.u_cart)
                        result.add_atom(
                            atom.copy(
                                position=new_lattice.to_fractional(cart),
                                label="{}_{}_{}_{}".format(atom.label, i, j, k),
                                displacement=displacement,
                            )
                        )
        LOG.debug("Built %dx%dx%d supercell with %d atoms", u, v, w, result.natoms)
        return result

    def convert_to_p1(self) -> "Structure":
        "The full unit cell content in space group P1"
        return self.supercell(1, 1, 1)

    def _collapsed_positions(self, u, v, w, wrap=True) -> Tuple[Lattice, np.ndarray]:
        if min(u, v, w) < 1:
            raise ValueError("Supercell multiples must be positive, got {}".format((u, v, w)))
        positions = self.positions * np.array((u, v, w), dtype=np.float64)
        if wrap:
            positions = wrap_to_unit_cell(positions)
        return self.lattice.scaled(1.0 / u, 1.0 / v, 1.0 / w), positions

    def collapse_supercell(self, u: int, v: int, w: int, tolerance=COLLAPSE_AVERAGING_TOLERANCE) -> "Structure":
        """
        Fold a (P1) u x v x w supercell back onto its unit cell,
        averaging the positions of atoms that coincide after folding.

        Copies are found by proximity: each atom is compared against the
        running average of its class. A warning is logged if a class does
        not contain exactly u * v * w atoms, or mixes elements.

        Args:
            u (int): multiple along a
            v (int): multiple along b
            w (int): multiple along c
            tolerance (float, optional): distance in Angstroms within which
                atoms are considered copies

        Returns:
            Structure: the collapsed structure
        """
        lattice, positions = self._collapsed_positions(u, v, w)
        multiplicity = u * v * w
        n = len(positions)
        done = np.zeros(n, dtype=bool)
        result = Structure(
            lattice=lattice,
            space_group=deepcopy(self.space_group),
            name=self.name,
            symmetry_state=self._symmetry_state,
        )
        for i in range(n):
            if done[i]:
                continue
            done[i] = True
            average = RunningAverage(positions[i])
            count = 1
            for j in range(i + 1, n):
                if done[j]:
                    continue
                distance, difference = lattice.shortest_distance(average.average, positions[j])
                if distance < tolerance:
                    if self.atoms[i].element != self.atoms[j].element:
                        LOG.warning(
                            "Averaging atoms of different elements: %s and %s",
                            self.atoms[i].label,
                            self.atoms[j].label,
                        )
                    count += 1
                    average.add_value(average.average + difference)
                    done[j] = True
            if count != multiplicity:
                LOG.warning(
                    "Number of averaged atoms for %s (%d) is not equal to the multiplicity (%d)",
                    self.atoms[i].label,
                    count,
                    multiplicity,
                )
            atom = self.atoms[i]
            result.add_atom(Atom(atom.element, average.average, label=atom.label))
        return result

    def collapse_supercell_ordered(self, u: int, v: int, w: int) -> "Structure":
        """
        Fold a (P1) u x v x w supercell back onto its unit cell, assuming
        atom i + k * n corresponds to atom i for every cell k, where n is
        the number of atoms per unit cell.

        Returns:
            Structure: the collapsed structure
        """
        lattice, positions = self._collapsed_positions(u, v, w, wrap=False)
        multiplicity = u * v * w
        n_per_cell = len(positions) // multiplicity
        if n_per_cell * multiplicity != len(positions):
            LOG.warning(
                "Number of atoms (%d) is not a multiple of %d", len(positions), multiplicity
            )
        result = Structure(
            lattice=lattice,
            space_group=deepcopy(self.space_group),
            name=self.name,
            symmetry_state=self._symmetry_state,
        )
        for i in range(n_per_cell):
            average = RunningAverage(positions[i])
            for k in range(1, multiplicity):
                j = n_per_cell * k + i
                shifted = positions[j] - round_half_away(positions[j] - positions[i])
                average.add_value(shifted)
                if self.atoms[i].element != self.atoms[j].element:
                    LOG.warning(
                        "Averaging atoms of different elements: %s and %s",
                        self.atoms[i].label,
                        self.atoms[j].label,
                    )
            atom = self.atoms[i]
            result.add_atom(Atom(atom.element, average.average, label=atom.label))
        return result

    def collapse_supercell_with_space_group(self, u: int, v: int, w: int, space_group: SpaceGroup) -> "Structure":
        """
        Fold a (P1) u x v x w supercell back onto its unit cell, then move
        every atom to its symmetry equivalent position (under the space
        group of the unit cell) closest to the origin. No averaging is done.

        Returns:
            Structure: the collapsed structure, with all atoms kept
        """
        lattice, positions = self._collapsed_positions(u, v, w)
        result = Structure(
            lattice=lattice,
            space_group=deepcopy(self.space_group),
            name=self.name,
            symmetry_state=self._symmetry_state,
        )
        for atom, position in zip(self.atoms, positions):
            best = position
            best_norm = np.linalg.norm(position)
            for symop in space_group.symmetry_operations:
                candidate = wrap_to_unit_cell(symop(position))
                norm = np.linalg.norm(candidate)
                if norm < best_norm:
                    best, best_norm = candidate, norm
            result.add_atom(atom.copy(position=best))
        return result

    def collapse_supercell_drift_corrected(
        self,
        u: int,
        v: int,
        w: int,
        target_centre=None,
        drift_correction=True,
        space_group: SpaceGroup = None,
    ) -> CollapseResult:
        """
        Fold a u x v x w supercell (e.g. a frame from a molecular dynamics
        trajectory) back onto the asymmetric unit of its unit cell.

        The atom order is assumed to be n asymmetric unit atoms, repeated
        for every symmetry operation and every cell. The structure is
        first recentred from its actual centre onto `target_centre`
        (when `drift_correction` is set). Then for every copy of every
        asymmetric unit atom, each symmetry operation is tried and the
        image closest to the first copy is kept. Copies which end up
        further than 5 Angstroms away are counted as likely mismatches.

        Args:
            u (int): multiple along a
            v (int): multiple along b
            w (int): multiple along c
            target_centre (array_like, optional): fractional centre to
                recentre onto, defaults to the actual centre
            drift_correction (bool, optional): whether to recentre
            space_group (SpaceGroup, optional): space group of the unit
                cell, defaults to the space group of this structure

        Returns:
            CollapseResult: the collapsed asymmetric unit (with averaged
            positions), the actual centre before recentring, the
            positions of all copies per asymmetric unit atom and the
            number of likely mismatches
        """
        if space_group is None:
            space_group = self.space_group
        positions = self.positions
        actual_centre = np.mean(positions, axis=0)
        if target_centre is None:
            target_centre = actual_centre
        if drift_correction:
            positions = positions - actual_centre + np.asarray(target_centre)
        scaled = positions * np.array((u, v, w), dtype=np.float64)
        lattice = self.lattice.scaled(1.0 / u, 1.0 / v, 1.0 / w)
        multiplicity = u * v * w * len(space_group)
        n_asym = len(scaled) // multiplicity
        if n_asym * multiplicity != len(scaled):
            LOG.warning(
                "Number of atoms (%d) is not a multiple of %d", len(scaled), multiplicity
            )
        all_positions = []
        n_mismatches = 0
        result = Structure(
            lattice=lattice,
            space_group=deepcopy(space_group),
            name=self.name,
            symmetry_state=SymmetryState.RAW,
        )
        for i in range(n_asym):
            reference = scaled[i]
            copies = [reference]
            for k in range(1, multiplicity):
                j = n_asym * k + i
                if self.atoms[i].element != self.atoms[j].element:
                    LOG.warning(
                        "Averaging atoms of different elements: %s and %s",
                        self.atoms[i].label,
                        self.atoms[j].label,
                    )
                images = np.array([s(scaled[j]) for s in space_group.symmetry_operations])
                images -= round_half_away(images - reference)
                d2 = np.sum(lattice.to_cartesian(images - reference) ** 2, axis=1)
                best = int(np.argmin(d2))
                if d2[best] > DRIFT_MISMATCH_DISTANCE2:
                    n_mismatches += 1
                copies.append(images[best])
            copies = np.array(copies)
            all_positions.append(copies)
            atom = self.atoms[i]
            result.add_atom(Atom(atom.element, np.mean(copies, axis=0), label=atom.label))
        if n_mismatches > 0:
            LOG.warning("Number of distances > 5.0 A = %d", n_mismatches)
        return CollapseResult(result, actual_centre, all_positions, n_mismatches)

    def transform(self, matrix) -> "Structure":
        """
        Express this structure in a new basis, with new lattice vectors
        new = matrix @ old (as rows). Fractional positions transform with
        the inverse transpose of the matrix, and the space group is
        conjugated accordingly.

        Args:
            matrix (array_like): (3, 3) transformation matrix, which
                should have determinant 1

        Returns:
            Structure: the transformed structure
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        new_lattice = self.lattice.transform(matrix)
        m_inv_t = np.linalg.inv(matrix).T
        result = Structure(
            lattice=new_lattice,
            space_group=deepcopy(self.space_group),
            name=self.name,
            symmetry_state=self._symmetry_state,
        )
        for atom in self.atoms:
            displacement = atom.displacement
            if atom.adp_type == ADPType.ANISOTROPIC:
                displacement = displacement.transformed(matrix, self.lattice, new_lattice)
            result.add_atom(
                atom.copy(position=np.dot(m_inv_t, atom.position), displacement=displacement)
            )
        result.space_group.apply_similarity_transformation(SymmetryOperation(m_inv_t))
        return result

    def centre_of_mass(self, ignore_hydrogens=False, weigh_by_atomic_weight=False) -> np.ndarray:
        """
        Centre of all atoms, in fractional coordinates.

        Args:
            ignore_hydrogens (bool, optional): leave out H and D
            weigh_by_atomic_weight (bool, optional): weight by atomic mass

        Returns:
            np.ndarray: (3,) fractional coordinates
        """
        atoms = [a for a in self.atoms if not (ignore_hydrogens and a.is_hydrogen)]
        if not atoms:
            raise ValueError("Centre of mass is undefined for a structure without atoms")
        positions = np.array([a.position for a in atoms])
        if weigh_by_atomic_weight:
            weights = np.array([a.element.mass for a in atoms])
        else:
            weights = np.ones(len(atoms))
        return np.sum(positions * weights[:, np.newaxis], axis=0) / np.sum(weights)

    def dipole_moment(self, unit="e_angstrom") -> float:
        """
        Magnitude of the dipole moment of the atoms as point charges,
        as the total positive charge times the distance between the
        centres of positive and negative charge. Any net charge is
        first spread evenly over all atoms.

        Args:
            unit (str, optional): 'e_angstrom' or 'debye'

        Returns:
            float: the dipole moment
        """
        if not self.atoms:
            return 0.0
        charges = np.array([a.charge for a in self.atoms], dtype=np.float64)
        charges -= np.sum(charges) / len(charges)
        n_zero = sum(nearly_equal(q, 0.0) for q in charges)
        if n_zero:
            LOG.warning("%d atoms have a charge equal to 0.0", n_zero)
        cart = self.lattice.to_cartesian(self.positions)
        negative = charges < 0.0
        positive = ~negative
        sum_negative = np.sum(charges[negative])
        sum_positive = np.sum(charges[positive])
        if nearly_equal(sum_positive, 0.0):
            return 0.0
        centre_negative = np.sum(cart[negative] * charges[negative, np.newaxis], axis=0) / sum_negative
        centre_positive = np.sum(cart[positive] * charges[positive, np.newaxis], axis=0) / sum_positive
        LOG.debug(
            "Centres of negative and positive charge: %s, %s",
            self.lattice.to_fractional(centre_negative),
            self.lattice.to_fractional(centre_positive),
        )
        value = sum_positive * np.linalg.norm(centre_negative - centre_positive)
        return units.convert(value, t=unit, f="e_angstrom")

    def density(self) -> float:
        "Calculated density of this crystal structure in g/cm^3"
        if self._symmetry_state != SymmetryState.EXPANDED:
            LOG.warning(
                "Space group symmetry has not been applied, density of %s will be wrong",
                self.name or self,
            )
        mass = molecular_weight(a.element for a in self.atoms)
        return mass / (self.lattice.volume() * ANGSTROM3_TO_CM3) / AVOGADRO

    def _symmetry_distances2(self, p, qs) -> np.ndarray:
        "squared distances from p to the closest symmetry image of each of qs"
        rotations = np.array([s.rotation for s in self.space_group.symmetry_operations])
        translations = np.array([s.translation for s in self.space_group.symmetry_operations])
        images = np.einsum("jx,kyx->jky", np.reshape(qs, (-1, 3)), rotations) + translations
        d2, _ = self.lattice.minimum_images(images - np.asarray(p))
        return np.min(np.reshape(d2, images.shape[:2]), axis=1)

    def _symmetry_distances(self, p, q) -> Tuple[np.ndarray, np.ndarray]:
        "minimum image distances from p to every symmetry image of q"
        q = np.asarray(q, dtype=np.float64)
        images = np.array([s(q) for s in self.space_group.symmetry_operations])
        d2, differences = self.lattice.minimum_images(images - np.asarray(p))
        return np.sqrt(d2), differences

    def shortest_distance(self, p, q) -> Tuple[float, np.ndarray]:
        """
        Shortest distance between fractional points p and q, over all
        lattice translations and all symmetry images of q.

        Returns:
            Tuple[float, np.ndarray]: the distance in Angstroms and the
            fractional difference vector realising it
        """
        distances, differences = self._symmetry_distances(p, q)
        best = int(np.argmin(distances))
        return float(distances[best]), differences[best]

    def shortest_distance2(self, p, q) -> float:
        "Square of `shortest_distance`, in Angstroms^2"
        return self.shortest_distance(p, q)[0] ** 2

    def second_shortest_distance(self, p, q) -> Tuple[float, Optional[np.ndarray]]:
        """
        The shortest distance between p and a symmetry image of q which
        is distinct from the shortest one.

        Returns:
            Tuple[float, np.ndarray]: the distance in Angstroms and the
            fractional difference vector, or (inf, None) if every symmetry
            image is at the shortest distance
        """
        distances, differences = self._symmetry_distances(p, q)
        shortest = np.min(distances)
        result = (float("inf"), None)
        for distance, difference in zip(distances, differences):
            if nearly_equal(distance, shortest):
                continue
            if distance < result[0]:
                result = (float(distance), difference)
        return result

    def to_cif_data(self) -> dict:
        """
        The data needed to write this structure to a CIF (or any other
        periodic structure format): cell parameters and volume, symmetry
        operations, and per active atom its label, element symbol,
        fractional position, occupancy and displacement parameters
        (U_iso, or U_cif for anisotropic atoms).

        Returns:
            dict: CIF data names mapped to values
        """
        atoms = self.active_atoms
        data = {
            "data_name": self.name,
            "symmetry_space_group_name_H-M": self.space_group.name,
            "symmetry_cell_setting": self.lattice.cell_type,
            "cell_length_a": self.lattice.a,
            "cell_length_b": self.lattice.b,
            "cell_length_c": self.lattice.c,
            "cell_angle_alpha": self.lattice.alpha_deg,
            "cell_angle_beta": self.lattice.beta_deg,
            "cell_angle_gamma": self.lattice.gamma_deg,
            "cell_volume": self.lattice.volume(),
            "symmetry_equiv_pos_site_id": list(range(1, len(self.space_group) + 1)),
            "symmetry_equiv_pos_as_xyz": [s.cif_form for s in self.space_group],
            "atom_site_label": [a.label for a in atoms],
            "atom_site_type_symbol": [a.element.symbol for a in atoms],
            "atom_site_fract_x": [a.position[0] for a in atoms],
            "atom_site_fract_y": [a.position[1] for a in atoms],
            "atom_site_fract_z": [a.position[2] for a in atoms],
            "atom_site_occupancy": [a.occupancy for a in atoms],
            "atom_site_U_iso_or_equiv": [a.u_iso for a in atoms],
            "atom_site_adp_type": [a.adp_type.value for a in atoms],
        }
        aniso = [a for a in atoms if a.adp_type == ADPType.ANISOTROPIC]
        if aniso:
            u_cif = [a.displacement.u_cif(self.lattice) for a in aniso]
            data["atom_site_aniso_label"] = [a.label for a in aniso]
            for name, (i, j) in (
                ("11", (0, 0)),
                ("22", (1, 1)),
                ("33", (2, 2)),
                ("12", (0, 1)),
                ("13", (0, 2)),
                ("23", (1, 2)),
            ):
                data["atom_site_aniso_U_" + name] = [u[i, j] for u in u_cif]
        return data

    def __repr__(self):
        return "<Structure {}: {} ({}, {} atoms)>".format(
            self.name, self.formula, self.space_group.name, self.natoms
        )
