"""
Comparison of two crystal structures of the same compound: the root
mean square Cartesian displacement (RMSCD) between corresponding atoms,
and the search for the symmetry operation and shift that maps one
structure onto the other.
"""
import logging
from copy import deepcopy
from typing import NamedTuple
import numpy as np
from xtalcore.crystal.atom import Atom
from xtalcore.crystal.lattice import Lattice
from xtalcore.crystal.space_group import SpaceGroup, same_symmetry_operations
from xtalcore.crystal.structure import Structure
from xtalcore.crystal.symmetry_operation import SymmetryOperation
from xtalcore.util.num import (
    cartesian_product,
    nearly_equal,
    round_half_away,
    tally_first_maximum,
)

LOG = logging.getLogger(__name__)

LATTICE_LENGTH_MISMATCH = 0.10
# degrees
LATTICE_ANGLE_MISMATCH = 10.0

HALF_INTEGER_SHIFTS = np.array(
    (
        (0.0, 0.0, 0.0),
        (0.5, 0.0, 0.0),
        (0.5, 0.5, 0.0),
        (0.5, 0.0, 0.5),
        (0.0, 0.5, 0.0),
        (0.0, 0.5, 0.5),
        (0.0, 0.0, 0.5),
        (0.5, 0.5, 0.5),
    )
)


class RMSCDResult(NamedTuple):
    rmscd: float
    reordered: Structure


class MatchResult(NamedTuple):
    symmetry_operation: SymmetryOperation
    integer_shifts: np.ndarray
    symmetry_operation_frequencies: np.ndarray
    shift_frequencies: np.ndarray
    shifts: np.ndarray
    unanimous: bool


def absolute_relative_difference(lhs: float, rhs: float) -> float:
    "|lhs - rhs| relative to their mean"
    return abs(lhs - rhs) / (0.5 * (lhs + rhs))


def check_lattice_similarity(lhs: Lattice, rhs: Lattice) -> bool:
    """
    Log a warning for every cell length differing by more than 10 %
    and every angle differing by more than 10 degrees.

    Returns:
        bool: True if no parameter differs by more than these limits
    """
    similar = True
    for name, l, r in zip("abc", lhs.lengths, rhs.lengths):
        if absolute_relative_difference(l, r) > LATTICE_LENGTH_MISMATCH:
            LOG.warning("%s parameters differ by more than 10%%: %.4f, %.4f", name, l, r)
            similar = False
    for name, l, r in zip(("alpha", "beta", "gamma"), lhs.angles_deg, rhs.angles_deg):
        if abs(l - r) > LATTICE_ANGLE_MISMATCH:
            LOG.warning("%s angles differ by more than 10 degrees: %.3f, %.3f", name, l, r)
            similar = False
    return similar


def _check_atom_counts(lhs: Structure, rhs: Structure):
    if lhs.natoms != rhs.natoms:
        raise ValueError(
            "Numbers of atoms are not the same: {} and {}".format(lhs.natoms, rhs.natoms)
        )


def _cartesian_displacement(lhs_lattice, rhs_lattice, p, q) -> np.ndarray:
    "(|A1 (p - q)| + |A2 (p - q)|) / 2 for (N, 3) fractional p and q"
    diff = np.asarray(p) - np.asarray(q)
    return 0.5 * (
        np.linalg.norm(lhs_lattice.to_cartesian(diff), axis=-1)
        + np.linalg.norm(rhs_lattice.to_cartesian(diff), axis=-1)
    )


def root_mean_square_cartesian_displacement(lhs: Structure, rhs: Structure) -> float:
    """
    RMSCD between atom i of lhs and atom i of rhs, without any matching.

    The displacement of each pair is measured in the metric of both
    lattices and averaged. Pairs in which both atoms are hydrogen
    (or deuterium) are left out.

    Args:
        lhs (Structure): first structure
        rhs (Structure): second structure, atoms in the same order

    Returns:
        float: the RMSCD in Angstroms

    Raises:
        ValueError: if the numbers of atoms differ, or a pair of atoms
            differ in element
    """
    _check_atom_counts(lhs, rhs)
    p, q = [], []
    for a, b in zip(lhs.atoms, rhs.atoms):
        if a.is_hydrogen and b.is_hydrogen:
            continue
        if a.element != b.element:
            raise ValueError(
                "Elements are not the same: {} and {}".format(a.label, b.label)
            )
        p.append(a.position)
        q.append(b.position)
    if not p:
        return 0.0
    displacements = _cartesian_displacement(lhs.lattice, rhs.lattice, p, q)
    return float(np.sqrt(np.mean(displacements ** 2)))


def _closest_image(position, candidates, space_group, shifts, lattice):
    """
    Search every candidate position under every symmetry operation and
    every shift for the image closest to `position`. Ties go to the
    first found in (candidate, operation, shift) order.

    Returns:
        Tuple[int, int, int, float, np.ndarray]: indices of the candidate,
        operation and shift, the distance, and the fractional difference
        vector from position to the image
    """
    rotations = np.array([s.rotation for s in space_group.symmetry_operations])
    translations = np.array([s.translation for s in space_group.symmetry_operations])
    shifted = candidates[:, np.newaxis, :] + shifts[np.newaxis, :, :]
    images = (
        np.einsum("jmx,kyx->jkmy", shifted, rotations)
        + translations[np.newaxis, :, np.newaxis, :]
    )
    d2, differences = lattice.minimum_images(images - position)
    best = int(np.argmin(d2))
    j, k, m = np.unravel_index(best, images.shape[:3])
    return int(j), int(k), int(m), float(np.sqrt(d2[best])), differences[best]


def _claim(claimed, index, atom):
    if claimed[index] and not atom.is_hydrogen:
        LOG.warning("Atom %s has two matches", atom.label)
    claimed[index] = True


def rmscd_with_matching(lhs: Structure, rhs: Structure, add_shifts=False) -> RMSCDResult:
    """
    RMSCD between two structures whose atoms are not in the same order.

    Every atom of lhs is matched to the closest symmetry equivalent
    image (using the space group of rhs) of any atom of rhs of the same
    element, with distances measured in the average of both lattices.
    Matching the same rhs atom twice is logged as a warning.

    Args:
        lhs (Structure): the reference structure
        rhs (Structure): the structure to match onto lhs
        add_shifts (bool, optional): also try shifting rhs by every
            combination of half lattice vectors

    Returns:
        RMSCDResult: the RMSCD in Angstroms over all non-hydrogen atoms,
        and the matched rhs positions as a structure with the atom order,
        elements and labels of lhs
    """
    _check_atom_counts(lhs, rhs)
    reordered = Structure(
        lattice=rhs.lattice, space_group=deepcopy(rhs.space_group), name=rhs.name
    )
    if lhs.natoms == 0:
        return RMSCDResult(0.0, reordered)
    average_lattice = lhs.lattice.average(rhs.lattice)
    check_lattice_similarity(lhs.lattice, rhs.lattice)
    shifts = HALF_INTEGER_SHIFTS if add_shifts else HALF_INTEGER_SHIFTS[:1]
    rhs_positions = rhs.positions
    rhs_elements = [a.element for a in rhs.atoms]
    claimed = np.zeros(rhs.natoms, dtype=bool)
    best_matches = []
    for atom in lhs.atoms:
        candidates = np.array([j for j, el in enumerate(rhs_elements) if el == atom.element])
        if len(candidates) == 0:
            raise ValueError("No atom of element {} to match {}".format(atom.element, atom.label))
        j, _, _, distance, difference = _closest_image(
            atom.position, rhs_positions[candidates], rhs.space_group, shifts, average_lattice
        )
        LOG.debug("%s smallest distance = %.5f", atom.label, distance)
        _claim(claimed, candidates[j], atom)
        best_matches.append(atom.position + difference)
        reordered.add_atom(Atom(atom.element, best_matches[-1], label=atom.label))
    heavy = [i for i, a in enumerate(lhs.atoms) if not a.is_hydrogen]
    if not heavy:
        return RMSCDResult(0.0, reordered)
    displacements = _cartesian_displacement(
        lhs.lattice,
        rhs.lattice,
        lhs.positions[heavy],
        np.array(best_matches)[heavy],
    )
    return RMSCDResult(float(np.sqrt(np.mean(displacements ** 2))), reordered)


def _floating_axes_correction(lhs: Structure, rhs: Structure, space_group: SpaceGroup) -> np.ndarray:
    total = np.sum([s.rotation for s in space_group.symmetry_operations], axis=0)
    com_lhs = lhs.centre_of_mass()
    com_rhs = rhs.centre_of_mass()
    correction = np.zeros(3)
    for i in range(3):
        if not nearly_equal(total[i, i], 0.0):
            LOG.debug("Floating axis found along %s", "abc"[i])
            correction[i] = com_lhs[i] - com_rhs[i]
    return correction


def _shift_grid(correction, shift_steps) -> np.ndarray:
    if shift_steps <= 1:
        return correction[np.newaxis, :].copy()
    steps = np.arange(shift_steps) / shift_steps
    return correction + cartesian_product(steps, steps, steps)


def find_match(
    lhs: Structure,
    rhs: Structure,
    shift_steps=1,
    add_inversion=False,
    correct_floating_axes=False,
) -> MatchResult:
    """
    Find the symmetry operation (including a shift) that best maps rhs
    onto lhs.

    Every non-hydrogen atom of lhs votes for the operation and the shift
    that bring an atom of rhs of the same element closest to it. The
    most common operation and the most common shift (the first one in
    case of a tie) are combined into the result. Votes that are not
    unanimous and atoms matched twice are logged as warnings.

    Args:
        lhs (Structure): the target structure
        rhs (Structure): the structure to transform
        shift_steps (int, optional): try shifts on a grid of
            1/shift_steps along each axis; 0 or 1 means no shifts
        add_inversion (bool, optional): add an inversion through the
            origin to the operations if there is none
        correct_floating_axes (bool, optional): offset the shifts by the
            difference in centre of mass along axes with no fixed origin

    Returns:
        MatchResult: the operation, integer lattice translations that
        bring the centre of mass of the transformed rhs onto that of lhs,
        the vote tallies, the shifts tried and whether the vote was
        unanimous
    """
    _check_atom_counts(lhs, rhs)
    if lhs.natoms == 0:
        return MatchResult(
            SymmetryOperation.identity(),
            np.zeros(3, dtype=int),
            np.zeros(1, dtype=int),
            np.zeros(1, dtype=int),
            np.zeros((1, 3)),
            True,
        )
    average_lattice = lhs.lattice.average(rhs.lattice)
    check_lattice_similarity(lhs.lattice, rhs.lattice)
    if not same_symmetry_operations(lhs.space_group, rhs.space_group):
        LOG.warning("Space groups are different, the match will not be meaningful")
    space_group = deepcopy(rhs.space_group)
    correction = np.zeros(3)
    if correct_floating_axes:
        correction = _floating_axes_correction(lhs, rhs, space_group)
    if add_inversion:
        space_group.add_inversion_at_origin()
    shifts = _shift_grid(correction, shift_steps)

    symop_frequencies = np.zeros(len(space_group), dtype=int)
    shift_frequencies = np.zeros(len(shifts), dtype=int)
    rhs_positions = rhs.positions
    rhs_elements = [a.element for a in rhs.atoms]
    claimed = np.zeros(rhs.natoms, dtype=bool)
    nvotes = 0
    for atom in lhs.atoms:
        if atom.is_hydrogen:
            continue
        candidates = np.array([j for j, el in enumerate(rhs_elements) if el == atom.element])
        if len(candidates) == 0:
            raise ValueError("No atom of element {} to match {}".format(atom.element, atom.label))
        j, k, m, distance, _ = _closest_image(
            atom.position, rhs_positions[candidates], space_group, shifts, average_lattice
        )
        LOG.debug("%s smallest distance = %.5f, operation %d, shift %d", atom.label, distance, k, m)
        _claim(claimed, candidates[j], atom)
        symop_frequencies[k] += 1
        shift_frequencies[m] += 1
        nvotes += 1

    best_symop, symop_votes = tally_first_maximum(symop_frequencies)
    best_shift, shift_votes = tally_first_maximum(shift_frequencies)
    unanimous = symop_votes == nvotes and shift_votes == nvotes
    if not unanimous:
        LOG.warning(
            "Vote is not unanimous: operation frequencies %s, shift frequencies %s",
            symop_frequencies.tolist(),
            shift_frequencies.tolist(),
        )
    symop = space_group[best_symop]
    result = SymmetryOperation(
        symop.rotation, np.dot(symop.rotation, shifts[best_shift]) + symop.translation
    )
    integer_shifts = round_half_away(
        lhs.centre_of_mass() - result(rhs.centre_of_mass())
    ).astype(int)
    LOG.debug("Best match %s with integer shifts %s", result, integer_shifts)
    return MatchResult(
        result, integer_shifts, symop_frequencies, shift_frequencies, shifts, unanimous
    )
