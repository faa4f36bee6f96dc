from fractions import Fraction
import logging
import re
from typing import Tuple
import numpy as np
from xtalcore.util.num import nearly_equal, nearly_integer, nearly_zero

LOG = logging.getLogger(__name__)

SYMM_STR_TERM_REGEX = re.compile(r"([+-]?)((?:\d+\.?\d*|\.\d+)(?:/\d+)?)?\*?([xyz]?)")

# (determinant, trace) of crystallographic rotations -> rotation type
_ROTATION_TYPES = {
    (1, 3): 1,
    (1, -1): 2,
    (1, 0): 3,
    (1, 1): 4,
    (1, 2): 6,
    (-1, -3): -1,
    (-1, 1): -2,
    (-1, 0): -3,
    (-1, -1): -4,
    (-1, -2): -6,
}


def _format_number(value: float) -> str:
    "Small fraction where it is exact (1/2, 2/3), otherwise a decimal"
    value = float(value)
    fraction = Fraction(value).limit_denominator(12)
    if nearly_equal(float(fraction), value):
        return str(fraction)
    return "{:.6f}".format(value).rstrip("0")


def encode_symm_str(rotation, translation) -> str:
    """
    Encode a rotation matrix and (rational) translation vector
    into string form e.g. 1/2-x,1/2+y,-z

    >>> encode_symm_str(((-1, 0, 0), (0, 0, 1), (0, 1, 0)), (0, 0.5, 1/3))
    '-x,1/2+z,1/3+y'
    >>> encode_symm_str(((1, -1, 0), (2, 0, 0), (0, 0, 1)), (0, 0, 0))
    'x-y,2x,z'

    Args:
        rotation (array_like): (3,3) matrix encoding the rotation component
            of the symmetry operation
        translation (array_like): (3) vector of rational numbers encoding the translation component
            of the symmetry operation

    Returns:
        str: the encoded symmetry operation
    """
    symbols = "xyz"
    res = []
    for i in (0, 1, 2):
        v = ""
        t = float(translation[i])
        if not nearly_zero(t):
            v += _format_number(t)
        for j in (0, 1, 2):
            c = float(rotation[i][j])
            if nearly_zero(c):
                continue
            v += "-" if c < 0 else "+"
            if not nearly_equal(abs(c), 1.0):
                v += _format_number(abs(c))
            v += symbols[j]
        res.append(v.lstrip("+") or "0")
    return ",".join(res)


def decode_symm_str(s: str) -> Tuple[np.ndarray, np.ndarray]:
    """
    Decode a symmetry operation represented in the string
    form e.g. '1/2 + x, y, -z -0.25' into a rotation matrix
    and translation vector.

    >>> encode_symm_str(*decode_symm_str("x,y,z"))
    'x,y,z'
    >>> encode_symm_str(*decode_symm_str("1/2 - x,y-0.3333333,2*z"))
    '1/2-x,2/3+y,2z'

    Args:
        s (str): the encoded symmetry operation string

    Returns:
        Tuple[np.ndarray, np.ndarray]: a (3,3) rotation matrix and a (3) translation vector
    """
    rotation = np.zeros((3, 3), dtype=np.float64)
    translation = np.zeros((3,), dtype=np.float64)
    tokens = s.lower().replace(" ", "").replace("'", "").split(",")
    if len(tokens) != 3:
        raise ValueError("Symmetry operation '{}' must have three components".format(s))
    for i, row in enumerate(tokens):
        parsed = 0
        for m in SYMM_STR_TERM_REGEX.finditer(row):
            if not m.group(0):
                continue
            parsed += len(m.group(0))
            sign, number, axis = m.groups()
            fac = -1 if sign == "-" else 1
            value = Fraction(number) if number else None
            if value is None and not axis:
                raise ValueError("Dangling sign in symmetry operation '{}'".format(s))
            if axis:
                idx = "xyz".index(axis)
                rotation[i, idx] += fac * (float(value) if value is not None else 1.0)
            elif value is not None:
                translation[i] += fac * float(value)
        if parsed != len(row) or not row:
            raise ValueError("Could not parse symmetry operation component '{}'".format(row))
    return rotation, translation % 1


def rotation_part_type(rotation: np.ndarray) -> int:
    """
    Classify a crystallographic rotation matrix by its order, negative
    for improper rotations (-1 is the inversion, -2 a mirror).

    Args:
        rotation (array_like): (3, 3) rotation matrix in fractional coordinates

    Returns:
        int: one of 1, 2, 3, 4, 6, -1, -2, -3, -4, -6
    """
    rotation = np.asarray(rotation)
    det = int(np.round(np.linalg.det(rotation)))
    trace = int(np.round(np.trace(rotation)))
    key = (det, trace)
    if key not in _ROTATION_TYPES:
        raise ValueError(
            "Not a crystallographic rotation (det={}, trace={})".format(det, trace)
        )
    return _ROTATION_TYPES[key]


def _clean_translation(translation) -> np.ndarray:
    t = np.asarray(translation, dtype=np.float64) % 1
    t[np.abs(t - 1.0) < 1e-10] = 0.0
    return t


class SymmetryOperation:
    """
    Class to represent a crystallographic symmetry operation,
    composed of a rotation and a translation, acting on fractional
    coordinates as R x + t.

    The translation is always kept in [0, 1); two operations are
    equal when their rotations agree and their translations differ by
    a lattice vector.

    Attributes:
        rotation (np.ndarray): (3, 3) rotation matrix in fractional coordinates
        translation (np.ndarray): (3) translation vector in fractional coordinates
    """

    rotation: np.ndarray
    translation: np.ndarray

    def __init__(self, rotation, translation=(0.0, 0.0, 0.0)):
        self.rotation = np.array(rotation, dtype=np.float64)
        self.translation = _clean_translation(translation)

    @property
    def seitz_matrix(self) -> np.ndarray:
        "The Seitz matrix form of this SymmetryOperation"
        s = np.eye(4, dtype=np.float64)
        s[:3, :3] = self.rotation
        s[:3, 3] = self.translation
        return s

    @property
    def cif_form(self) -> str:
        "Represent this SymmetryOperation in string form e.g. 'x,y,z'"
        return str(self)

    @property
    def determinant(self) -> float:
        return float(np.linalg.det(self.rotation))

    @property
    def is_proper(self) -> bool:
        return self.determinant > 0

    @property
    def rotation_part_type(self) -> int:
        return rotation_part_type(self.rotation)

    def inverse(self) -> "SymmetryOperation":
        "The operation g^-1 with g^-1 g = identity"
        r_inv = np.linalg.inv(self.rotation)
        return SymmetryOperation(r_inv, -np.dot(r_inv, self.translation))

    def inverted(self) -> "SymmetryOperation":
        """
        A copy of this symmetry operation followed by an inversion
        through the origin.

        Returns:
            SymmetryOperation: an inverted copy of this symmetry operation
        """
        return SymmetryOperation(-self.rotation, -self.translation)

    def __mul__(self, other: "SymmetryOperation") -> "SymmetryOperation":
        "Composition: (self * other)(x) == self(other(x))"
        if not isinstance(other, SymmetryOperation):
            return NotImplemented
        return SymmetryOperation(
            np.dot(self.rotation, other.rotation),
            np.dot(self.rotation, other.translation) + self.translation,
        )

    def __add__(self, value: np.ndarray):
        """
        Add a vector to this symmetry operation's translation vector.

        Returns:
            SymmetryOperation: a copy of this symmetry operation under additional translation
        """
        return SymmetryOperation(self.rotation, self.translation + value)

    def __sub__(self, value: np.ndarray):
        return SymmetryOperation(self.rotation, self.translation - value)

    def apply(self, coordinates: np.ndarray) -> np.ndarray:
        """
        Apply this symmetry operation to fractional coordinates. The
        result is not wrapped into the unit cell.

        Args:
            coordinates (np.ndarray): (3,), (N,3) or (N,4) array of fractional
                coordinates or homogeneous fractional coordinates.

        Returns:
            np.ndarray: transformed coordinates, (3,) or (N, 3)
        """
        coordinates = np.asarray(coordinates, dtype=np.float64)
        if coordinates.ndim == 2 and coordinates.shape[1] == 4:
            return np.dot(coordinates, self.seitz_matrix.T)[:, :3]
        return np.dot(coordinates, self.rotation.T) + self.translation

    def __call__(self, coordinates):
        return self.apply(coordinates)

    def is_identity(self) -> bool:
        "Returns true if this is the identity symmetry operation 'x,y,z'"
        return nearly_equal(self.rotation, np.eye(3)) and nearly_integer(self.translation)

    def is_pure_translation(self) -> bool:
        "Identity rotation, any translation (including zero)"
        return nearly_equal(self.rotation, np.eye(3))

    def is_inversion(self) -> bool:
        "Rotation part is -1, the translation locates the inversion centre"
        return nearly_equal(self.rotation, -np.eye(3))

    def rotation_equals(self, other: "SymmetryOperation") -> bool:
        return nearly_equal(self.rotation, other.rotation)

    def __eq__(self, other):
        if not isinstance(other, SymmetryOperation):
            return NotImplemented
        return self.rotation_equals(other) and nearly_integer(
            self.translation - other.translation
        )

    __hash__ = None

    def __str__(self):
        return encode_symm_str(self.rotation, self.translation)

    def __repr__(self):
        return "<{}: {}>".format(self.__class__.__name__, self)

    @classmethod
    def from_string_code(cls, code: str):
        """
        Alternative constructor from a string encoded
        symmetry operation e.g. 'x,1/2+y,-z'.

        See also the `encode_symm_str`, `decode_symm_str` methods.

        Args:
            code (str): string-encoded symmetry operation

        Returns:
            SymmetryOperation: a new symmetry operation from the provided string code
        """
        return cls(*decode_symm_str(code))

    @classmethod
    def identity(cls):
        "Alternative constructor for the the identity symop i.e. x,y,z"
        return cls(np.eye(3), np.zeros(3))

    @classmethod
    def inversion(cls, centre=(0.0, 0.0, 0.0)):
        "Inversion through the fractional point `centre`"
        return cls(-np.eye(3), 2 * np.asarray(centre, dtype=np.float64))

    @classmethod
    def translation_only(cls, translation):
        return cls(np.eye(3), translation)
