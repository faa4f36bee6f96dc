import logging
from typing import List
import numpy as np
from xtalcore.crystal.symmetry_operation import rotation_part_type
from xtalcore.util.num import nearly_equal

LOG = logging.getLogger(__name__)


def representative_rotations(rotations) -> List[np.ndarray]:
    """
    Reduce a list of rotation matrices to those which are not
    equal (or equal up to sign) to an earlier one.

    Args:
        rotations (Iterable[np.ndarray]): (3, 3) rotation matrices

    Returns:
        List[np.ndarray]: the representative rotations, in input order
    """
    result = []
    for r in rotations:
        if not any(nearly_equal(r, x) or nearly_equal(r, -x) for x in result):
            result.append(np.asarray(r))
    return result


def crystal_system_from_rotations(rotations) -> str:
    """
    Determine the crystal system from the representative rotations
    of a point group, by counting 2, 3, 4 and 6-fold (proper or
    improper) rotations.

    Args:
        rotations (List[np.ndarray]): representative rotations, as returned
            by `representative_rotations`

    Returns:
        str: one of triclinic, monoclinic, orthorhombic, trigonal,
        tetragonal, hexagonal, cubic
    """
    if len(rotations) == 1:
        return "triclinic"
    counts = {2: 0, 3: 0, 4: 0, 6: 0}
    for r in rotations:
        order = abs(rotation_part_type(r))
        if order in counts:
            counts[order] += 1
    LOG.debug("Rotation counts for crystal system: %s", counts)
    if counts[3] == 8:
        return "cubic"
    if counts[6] == 2:
        return "hexagonal"
    if counts[3] == 2:
        return "trigonal"
    if counts[4] == 2:
        return "tetragonal"
    if counts[2] == 3:
        return "orthorhombic"
    if counts[2] == 1:
        return "monoclinic"
    raise RuntimeError("Unrecognised combination of rotations: {}".format(counts))


class PointGroup:
    """
    A point group as a list of rotation matrices in fractional
    coordinates, i.e. a space group with translations removed.
    """

    def __init__(self, rotations):
        self.rotations = [np.array(r, dtype=np.float64) for r in rotations]

    @property
    def has_inversion(self) -> bool:
        return any(nearly_equal(r, -np.eye(3)) for r in self.rotations)

    def add_inversion(self):
        "Add -R for every rotation R, no-op if the group is centrosymmetric"
        if self.has_inversion:
            return
        self.rotations = self.rotations + [-r for r in self.rotations]

    @property
    def representative_rotations(self) -> List[np.ndarray]:
        return representative_rotations(self.rotations)

    @property
    def crystal_system(self) -> str:
        return crystal_system_from_rotations(self.representative_rotations)

    def __len__(self):
        return len(self.rotations)

    def __contains__(self, rotation):
        return any(nearly_equal(rotation, r) for r in self.rotations)

    def __repr__(self):
        return "<PointGroup: order {} ({})>".format(len(self), self.crystal_system)
