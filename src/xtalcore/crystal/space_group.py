import logging
from typing import List, Tuple
import numpy as np
from xtalcore.crystal.symmetry_operation import SymmetryOperation
from xtalcore.crystal.point_group import PointGroup, crystal_system_from_rotations
from xtalcore.util.num import NEARLY_EQUAL_TOLERANCE, nearly_equal, nearly_integer

LOG = logging.getLogger(__name__)


def _stack(symmetry_operations) -> Tuple[np.ndarray, np.ndarray]:
    rotations = np.array([s.rotation for s in symmetry_operations])
    translations = np.array([s.translation for s in symmetry_operations])
    return rotations, translations


def _find_operation(symop, rotations, translations, tolerance=NEARLY_EQUAL_TOLERANCE) -> int:
    "index of symop within the stacked operations, -1 if absent"
    r_match = np.all(np.abs(rotations - symop.rotation) < tolerance, axis=(1, 2))
    dt = translations - symop.translation
    t_match = np.all(np.abs(dt - np.round(dt)) < tolerance, axis=1)
    found = np.flatnonzero(r_match & t_match)
    return int(found[0]) if len(found) else -1


def check_if_closed(symmetry_operations: List[SymmetryOperation]):
    """
    Check that every product of two of the given operations is itself
    one of the operations (modulo lattice translations).

    Args:
        symmetry_operations (List[SymmetryOperation]): the candidate group

    Raises:
        ValueError: if a product is missing from the set
    """
    rotations, translations = _stack(symmetry_operations)
    for a in symmetry_operations:
        for b in symmetry_operations:
            product = a * b
            if _find_operation(product, rotations, translations) < 0:
                raise ValueError(
                    "Symmetry operations are not closed: {} * {} = {} "
                    "is not in the set".format(a, b, product)
                )


def same_symmetry_operations(lhs: "SpaceGroup", rhs: "SpaceGroup") -> bool:
    "True if both groups contain the same operations, in any order"
    if len(lhs) != len(rhs):
        return False
    rotations, translations = _stack(rhs.symmetry_operations)
    return all(
        _find_operation(s, rotations, translations) >= 0
        for s in lhs.symmetry_operations
    )


class SpaceGroup:
    """
    A space group as an explicit, closed list of symmetry operations,
    identity first.

    Every change to the list re-runs `decompose`, which derives the
    centring vectors, the inversion centre (if any) and the
    representative operations used to classify the group.

    Attributes:
        symmetry_operations (List[SymmetryOperation]): the operations of
            the group, starting with the identity
        name (str): a human readable name, e.g. 'P21/c'
        centring_vectors (List[np.ndarray]): non-zero pure translations
        has_inversion (bool): whether an operation with rotation -1 exists
        position_of_inversion (np.ndarray): fractional position of the
            inversion centre, None without inversion
        has_inversion_at_origin (bool): whether -x,-y,-z is in the group
        representative_symmetry_operations (List[SymmetryOperation]):
            operations with rotations distinct from (and not the negative
            of) any earlier one
    """

    def __init__(self, symmetry_operations=None, name="P1"):
        """
        Args:
            symmetry_operations (List[SymmetryOperation], optional): the
                operations, which must be closed under composition;
                defaults to just the identity
            name (str, optional): name of the space group
        """
        if symmetry_operations is None:
            symmetry_operations = [SymmetryOperation.identity()]
        symmetry_operations = list(symmetry_operations)
        check_if_closed(symmetry_operations)
        for i, s in enumerate(symmetry_operations):
            if s.is_identity():
                if i != 0:
                    symmetry_operations[0], symmetry_operations[i] = (
                        symmetry_operations[i],
                        symmetry_operations[0],
                    )
                break
        self.symmetry_operations = symmetry_operations
        self.name = name
        self.decompose()

    @property
    def symops(self):
        "alias for `self.symmetry_operations`"
        return self.symmetry_operations

    def decompose(self):
        """
        Recompute the centring vectors, inversion centre and representative
        operations from the current list of operations.

        Raises:
            ValueError: if the identity is missing or an operation has a
                rotation with determinant other than +/-1
        """
        centring = []
        inversion_translations = []
        for s in self.symmetry_operations:
            det = s.determinant
            if nearly_equal(det, 1.0):
                if s.is_pure_translation():
                    centring.append(s.translation)
            elif nearly_equal(det, -1.0):
                if s.is_inversion():
                    inversion_translations.append(s.translation)
            else:
                raise ValueError(
                    "Symmetry operation {} has determinant {:.6f}".format(s, det)
                )
        if not any(nearly_integer(t) for t in centring):
            raise ValueError("Identity operation not found in space group")
        self.centring_vectors = [t for t in centring if not nearly_integer(t)]
        self.has_inversion = len(inversion_translations) > 0
        self.has_inversion_at_origin = False
        self.position_of_inversion = None
        if self.has_inversion:
            sums = [np.sum(t) for t in inversion_translations]
            smallest = int(np.argmin(sums))
            self.position_of_inversion = 0.5 * inversion_translations[smallest]
            self.has_inversion_at_origin = nearly_equal(sums[smallest], 0.0)
        self.representative_symmetry_operations = []
        for s in self.symmetry_operations:
            if not any(
                nearly_equal(s.rotation, r.rotation) or nearly_equal(s.rotation, -r.rotation)
                for r in self.representative_symmetry_operations
            ):
                self.representative_symmetry_operations.append(s)
        LOG.debug(
            "Decomposed %s: %d operations, %d centring vectors, inversion: %s",
            self.name,
            len(self),
            len(self.centring_vectors),
            self.has_inversion,
        )

    @property
    def crystal_system(self) -> str:
        "The crystal system of the space group e.g. triclinic, monoclinic etc."
        return crystal_system_from_rotations(
            [s.rotation for s in self.representative_symmetry_operations]
        )

    def point_group(self) -> PointGroup:
        "The point group of this space group (translations removed)"
        rotations = []
        for s in self.representative_symmetry_operations:
            rotations.append(s.rotation)
            if self.has_inversion:
                rotations.append(-s.rotation)
        return PointGroup(rotations)

    def laue_class(self) -> PointGroup:
        "The point group of this space group with an inversion added"
        pg = self.point_group()
        pg.add_inversion()
        return pg

    def add_inversion_at_origin(self):
        """
        Double the group by adding the product of every operation with
        an inversion through the origin. Does nothing if the group
        already contains -x,-y,-z.
        """
        if self.has_inversion_at_origin:
            return
        if self.has_inversion:
            LOG.warning(
                "Adding an inversion at the origin to %s, which already has "
                "an inversion at %s",
                self.name,
                self.position_of_inversion,
            )
        inversion = SymmetryOperation.inversion()
        symmetry_operations = []
        for s in self.symmetry_operations:
            symmetry_operations.append(s)
            symmetry_operations.append(inversion * s)
        self.symmetry_operations = symmetry_operations
        self.decompose()

    def apply_similarity_transformation(self, symop: SymmetryOperation):
        "Replace every operation g by S g S^-1"
        inverse = symop.inverse()
        self.symmetry_operations = [
            symop * s * inverse for s in self.symmetry_operations
        ]
        self.decompose()

    def remove_duplicate_symmetry_operations(self):
        "Drop operations equal to an earlier one, keeping the identity first"
        unique = [self.symmetry_operations[0]]
        for s in self.symmetry_operations[1:]:
            if s not in unique:
                unique.append(s)
        if len(unique) != len(self.symmetry_operations):
            LOG.debug(
                "Removed %d duplicate symmetry operations",
                len(self.symmetry_operations) - len(unique),
            )
        self.symmetry_operations = unique
        self.decompose()

    @property
    def cif_section(self) -> str:
        "Representation of the SpaceGroup in CIF files"
        return "\n".join(
            "{} '{}'".format(i, sym.cif_form)
            for i, sym in enumerate(self.symmetry_operations, start=1)
        )

    def __len__(self):
        return len(self.symmetry_operations)

    def __getitem__(self, index) -> SymmetryOperation:
        return self.symmetry_operations[index]

    def __iter__(self):
        return iter(self.symmetry_operations)

    def __eq__(self, other):
        if not isinstance(other, SpaceGroup):
            return NotImplemented
        return same_symmetry_operations(self, other)

    __hash__ = None

    def __repr__(self):
        return "<{} {}: {} operations>".format(
            self.__class__.__name__, self.name, len(self)
        )

    @classmethod
    def from_string_codes(cls, codes, name=""):
        """
        Construct a space group from operations in string form.

        Args:
            codes (Iterable[str]): e.g. ['x,y,z', '-x,-y,-z']
            name (str, optional): name of the space group

        Returns:
            SpaceGroup: the new space group
        """
        return cls([SymmetryOperation.from_string_code(c) for c in codes], name=name)

    @classmethod
    def P1(cls):
        return cls(name="P1")

    @classmethod
    def P21c(cls):
        "P21/c, unique axis b, with the inversion at the origin"
        result = cls.from_string_codes(("x,y,z", "-x,1/2+y,1/2-z"), name="P21/c")
        result.add_inversion_at_origin()
        return result

