import logging
from enum import Enum
from typing import Tuple
import numpy as np
from xtalcore.util.num import (
    NEARLY_EQUAL_TOLERANCE,
    NEIGHBOUR_OFFSETS,
    nearly_equal,
    wrap_to_unit_cell,
)

LOG = logging.getLogger(__name__)


class LatticeSystem(Enum):
    TRICLINIC = "triclinic"
    MONOCLINIC = "monoclinic"
    ORTHORHOMBIC = "orthorhombic"
    TRIGONAL = "trigonal"
    TETRAGONAL = "tetragonal"
    HEXAGONAL = "hexagonal"
    RHOMBOHEDRAL = "rhombohedral"
    CUBIC = "cubic"

    def __str__(self):
        return self.value


def deduce_lattice_system(lengths, angles, tolerance=NEARLY_EQUAL_TOLERANCE) -> LatticeSystem:
    """
    Classify a set of cell parameters into a lattice system.

    Trigonal is never returned here, as it cannot be told apart
    from hexagonal (or rhombohedral) by the metric alone.

    Args:
        lengths (array_like): (a, b, c) in Angstroms
        angles (array_like): (alpha, beta, gamma) in degrees
        tolerance (float, optional): tolerance for equality of lengths
            and angles

    Returns:
        LatticeSystem: the lattice system of the parameters
    """
    a, b, c = lengths
    alpha, beta, gamma = angles

    def eq(x, y):
        return nearly_equal(x, y, tolerance=tolerance)

    angles_equal = eq(alpha, beta) and eq(alpha, gamma)
    ab_equal = eq(a, b)
    alpha_is_90 = eq(alpha, 90.0)
    if angles_equal:
        if alpha_is_90:
            if ab_equal:
                if eq(a, c):
                    return LatticeSystem.CUBIC
                return LatticeSystem.TETRAGONAL
            return LatticeSystem.ORTHORHOMBIC
        elif ab_equal and eq(a, c):
            return LatticeSystem.RHOMBOHEDRAL
        LOG.warning(
            "Angles are all equal (%.4f) but lengths are not, "
            "treating lattice as monoclinic or triclinic",
            alpha,
        )
    beta_is_90 = eq(beta, 90.0)
    if ab_equal and alpha_is_90 and beta_is_90 and eq(gamma, 120.0):
        return LatticeSystem.HEXAGONAL
    gamma_is_90 = eq(gamma, 90.0)
    if sum((alpha_is_90, beta_is_90, gamma_is_90)) >= 2:
        return LatticeSystem.MONOCLINIC
    return LatticeSystem.TRICLINIC


class Lattice:
    """
    Immutable description of the repeating unit of a crystal: the
    three lattice vectors and everything derived from them.

    Lengths are in Angstroms. The constructor takes angles in degrees;
    the `alpha`, `beta`, `gamma` properties are in radians, with
    `*_deg` variants in degrees.

    Vectors follow the convention a along x, b in the xy-plane.

    Attributes:
        direct (np.ndarray): (3, 3) row major lattice vectors, i.e.
            direct[0] is vector a
        inverse (np.ndarray): inverse of `direct`
        lattice_system (LatticeSystem): classification of the cell
    """

    def __init__(self, a=10.0, b=10.0, c=10.0, alpha=90.0, beta=90.0, gamma=90.0):
        self._lengths = np.array((a, b, c), dtype=np.float64)
        self._angles = np.radians(np.array((alpha, beta, gamma), dtype=np.float64))
        if np.any(self._lengths <= 0):
            raise ValueError("Lattice lengths must be positive: {}".format(self._lengths))
        ca, cb, cg = np.cos(self._angles)
        sg = np.sin(self._angles[2])
        bx, by = b * cg, b * sg
        cx = c * cb
        cy = (b * c * ca - bx * cx) / by
        residual = c * c - cx * cx - cy * cy
        if not residual > 0:
            raise ValueError(
                "Lattice angles ({:.3f}, {:.3f}, {:.3f}) are geometrically "
                "inconsistent".format(alpha, beta, gamma)
            )
        self._direct = np.array(((a, 0.0, 0.0), (bx, by, 0.0), (cx, cy, np.sqrt(residual))))
        self._inverse = np.linalg.inv(self._direct)
        self._volume = float(np.linalg.det(self._direct))
        self._lattice_system = deduce_lattice_system(self._lengths, self.angles_deg)

    @property
    def direct(self) -> np.ndarray:
        "The direct matrix of this lattice i.e. the (row) lattice vectors"
        return self._direct.copy()

    @property
    def inverse(self) -> np.ndarray:
        "The inverse of the direct matrix"
        return self._inverse.copy()

    @property
    def reciprocal_lattice(self) -> np.ndarray:
        "The reciprocal lattice vectors (rows a*, b*, c*), without factor 2 pi"
        return self._inverse.T.copy()

    @property
    def fractional_to_orthogonal_matrix(self) -> np.ndarray:
        "Column major form: orthogonal = M @ fractional"
        return self._direct.T.copy()

    @property
    def orthogonal_to_fractional_matrix(self) -> np.ndarray:
        return self._inverse.T.copy()

    def fractional_to_orthogonal(self, coords: np.ndarray) -> np.ndarray:
        """
        Transform coordinates from fractional space (a, b, c)
        to Cartesian space (x, y, z).

        Args:
            coords (array_like): (3,) or (N, 3) array of fractional coordinates

        Returns:
            np.ndarray: Cartesian coordinates of the same shape
        """
        return np.dot(coords, self._direct)

    def orthogonal_to_fractional(self, coords: np.ndarray) -> np.ndarray:
        """
        Transform coordinates from Cartesian space (x, y, z)
        to fractional space (a, b, c).

        Args:
            coords (array_like): (3,) or (N, 3) array of Cartesian coordinates

        Returns:
            np.ndarray: fractional coordinates of the same shape
        """
        return np.dot(coords, self._inverse)

    to_cartesian = fractional_to_orthogonal
    to_fractional = orthogonal_to_fractional

    def metric_matrix(self) -> np.ndarray:
        "Gram matrix G of the lattice vectors, |x|^2 = x G x for fractional x"
        return self._direct @ self._direct.T

    def reciprocal_metric_matrix(self) -> np.ndarray:
        "Gram matrix of the reciprocal lattice vectors, the inverse of G"
        return self._inverse.T @ self._inverse

    def volume(self) -> float:
        """The volume of the unit cell, in cubic Angstroms"""
        return self._volume

    @property
    def lattice_system(self) -> LatticeSystem:
        return self._lattice_system

    @property
    def cell_type(self) -> str:
        return self._lattice_system.value

    @property
    def unique_parameters(self) -> Tuple:
        "The free parameters of this cell given its lattice system, angles in degrees"
        system = self._lattice_system
        a, b, c = self._lengths
        if system == LatticeSystem.CUBIC:
            return (a,)
        elif system in (LatticeSystem.TETRAGONAL, LatticeSystem.HEXAGONAL):
            return (a, c)
        elif system == LatticeSystem.RHOMBOHEDRAL:
            return (a, self.alpha_deg)
        elif system == LatticeSystem.ORTHORHOMBIC:
            return (a, b, c)
        elif system == LatticeSystem.MONOCLINIC:
            unique = [x for x in self.angles_deg if not nearly_equal(x, 90.0)]
            return (a, b, c, unique[0] if unique else 90.0)
        return tuple(self.parameters)

    @property
    def lengths(self) -> np.ndarray:
        return self._lengths.copy()

    @property
    def angles(self) -> np.ndarray:
        "(alpha, beta, gamma) in radians"
        return self._angles.copy()

    @property
    def angles_deg(self) -> np.ndarray:
        return np.degrees(self._angles)

    @property
    def parameters(self) -> np.ndarray:
        "single vector of lattice side lengths and angles in degrees"
        return np.hstack((self._lengths, self.angles_deg))

    @property
    def a(self) -> float:
        "Length of lattice vector a"
        return float(self._lengths[0])

    @property
    def b(self) -> float:
        "Length of lattice vector b"
        return float(self._lengths[1])

    @property
    def c(self) -> float:
        "Length of lattice vector c"
        return float(self._lengths[2])

    @property
    def alpha(self) -> float:
        "Angle between lattice vectors b and c"
        return float(self._angles[0])

    @property
    def beta(self) -> float:
        "Angle between lattice vectors a and c"
        return float(self._angles[1])

    @property
    def gamma(self) -> float:
        "Angle between lattice vectors a and b"
        return float(self._angles[2])

    @property
    def alpha_deg(self) -> float:
        return float(np.degrees(self._angles[0]))

    @property
    def beta_deg(self) -> float:
        return float(np.degrees(self._angles[1]))

    @property
    def gamma_deg(self) -> float:
        return float(np.degrees(self._angles[2]))

    @property
    def v_a(self) -> np.ndarray:
        "lattice vector a"
        return self._direct[0].copy()

    @property
    def v_b(self) -> np.ndarray:
        "lattice vector b"
        return self._direct[1].copy()

    @property
    def v_c(self) -> np.ndarray:
        "lattice vector c"
        return self._direct[2].copy()

    @property
    def v_a_star(self) -> np.ndarray:
        "reciprocal lattice vector a*"
        return self._inverse[:, 0].copy()

    @property
    def v_b_star(self) -> np.ndarray:
        "reciprocal lattice vector b*"
        return self._inverse[:, 1].copy()

    @property
    def v_c_star(self) -> np.ndarray:
        "reciprocal lattice vector c*"
        return self._inverse[:, 2].copy()

    @property
    def a_star(self) -> float:
        "length of reciprocal lattice vector a*"
        return float(np.linalg.norm(self._inverse[:, 0]))

    @property
    def b_star(self) -> float:
        "length of reciprocal lattice vector b*"
        return float(np.linalg.norm(self._inverse[:, 1]))

    @property
    def c_star(self) -> float:
        "length of reciprocal lattice vector c*"
        return float(np.linalg.norm(self._inverse[:, 2]))

    @staticmethod
    def _angle_between(u, v) -> float:
        cos = np.vdot(u, v) / (np.linalg.norm(u) * np.linalg.norm(v))
        return float(np.arccos(np.clip(cos, -1, 1)))

    @property
    def alpha_star(self) -> float:
        "Angle between reciprocal lattice vectors b* and c*"
        return self._angle_between(self.v_b_star, self.v_c_star)

    @property
    def beta_star(self) -> float:
        "Angle between reciprocal lattice vectors a* and c*"
        return self._angle_between(self.v_a_star, self.v_c_star)

    @property
    def gamma_star(self) -> float:
        "Angle between reciprocal lattice vectors a* and b*"
        return self._angle_between(self.v_a_star, self.v_b_star)

    def minimum_images(self, differences: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Find the periodic images of fractional difference vectors
        with the smallest Cartesian length.

        Each vector is first wrapped into [0, 1), then shifted by
        offsets in {-1, 0, 1}^3 until no offset makes it any shorter.
        A single pass over the neighbours is not enough for very
        oblique cells.

        The result is only a local minimum over {-1, 0, 1}^3: for
        strongly sheared cells (e.g. all angles near 35 degrees) it can
        be a few tenths of an Angstrom longer than the true shortest
        image. Reduce such cells before relying on distances.

        Args:
            differences (array_like): (N, 3) fractional difference vectors

        Returns:
            Tuple[np.ndarray, np.ndarray]: (N,) squared lengths of the
            shortest images in Angstroms^2, and the (N, 3) images as
            fractional vectors
        """
        diff = wrap_to_unit_cell(np.reshape(differences, (-1, 3)))
        best2 = np.sum(np.dot(diff, self._direct) ** 2, axis=1)
        active = np.arange(len(diff))
        while len(active):
            candidates = diff[active, np.newaxis, :] + NEIGHBOUR_OFFSETS
            d2 = np.sum(np.dot(candidates, self._direct) ** 2, axis=2)
            idx = np.argmin(d2, axis=1)
            smallest = d2[np.arange(len(active)), idx]
            improved = smallest < best2[active]
            rows = active[improved]
            diff[rows] = candidates[improved, idx[improved]]
            best2[rows] = smallest[improved]
            active = rows
        return best2, diff

    def minimum_image(self, difference: np.ndarray) -> Tuple[float, np.ndarray]:
        """
        Shortest periodic image of a single fractional difference vector,
        see `minimum_images`.

        Returns:
            Tuple[float, np.ndarray]: squared length in Angstroms^2 and
            the (3,) fractional image vector
        """
        d2, diff = self.minimum_images(difference)
        return float(d2[0]), diff[0]

    def shortest_distance2(self, p: np.ndarray, q: np.ndarray) -> float:
        "Squared minimum image distance between fractional points p and q"
        return self.minimum_image(np.asarray(q) - np.asarray(p))[0]

    def shortest_distance(self, p: np.ndarray, q: np.ndarray) -> Tuple[float, np.ndarray]:
        """
        Minimum image distance between two points in fractional coordinates.

        Args:
            p (array_like): (3,) fractional coordinates of the first point
            q (array_like): (3,) fractional coordinates of the second point

        Returns:
            Tuple[float, np.ndarray]: the distance in Angstroms, and the
            fractional difference vector (q - p, shifted by whole
            lattice vectors) which realises it
        """
        d2, diff = self.minimum_image(np.asarray(q) - np.asarray(p))
        return np.sqrt(d2), diff

    def enclosing_box(self) -> Tuple[np.ndarray, np.ndarray]:
        "Cartesian (min, max) corners of the box containing the unit cell"
        corners = np.dot(np.array(list(np.ndindex(2, 2, 2)), dtype=np.float64), self._direct)
        return corners.min(axis=0), corners.max(axis=0)

    def transform(self, matrix: np.ndarray) -> "Lattice":
        """
        A new lattice whose vectors are linear combinations of these,
        new_a = M[0, 0] a + M[0, 1] b + M[0, 2] c etc.

        Args:
            matrix (array_like): (3, 3) transformation matrix M

        Returns:
            Lattice: the transformed lattice
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        det = np.linalg.det(matrix)
        if not nearly_equal(abs(det), 1.0):
            LOG.warning("Lattice transformation matrix has determinant %.6f", det)
        return Lattice.from_vectors(np.dot(matrix, self._direct))

    def rescale_volume(self, target_volume: float, Z: int = 0) -> "Lattice":
        """
        A copy of this lattice uniformly scaled to a target volume,
        keeping all angles.

        Args:
            target_volume (float): volume to reach, per formula unit if Z is given
            Z (int, optional): number of formula units the target volume
                refers to; 0 means the target is for the whole cell

        Returns:
            Lattice: the rescaled lattice
        """
        current_Z = 1
        if Z == 0:
            Z = 1
        else:
            current_Z = int(np.round((self._volume / target_volume) * Z))
        k = ((target_volume / Z) / (self._volume / current_Z)) ** (1.0 / 3.0)
        return Lattice(self.a * k, self.b * k, self.c * k, *self.angles_deg)

    def average(self, other: "Lattice") -> "Lattice":
        "Parameter-wise mean of this and another lattice"
        return Lattice(*(0.5 * (self.parameters + other.parameters)))

    def scaled(self, u, v, w) -> "Lattice":
        "A copy with lengths multiplied by u, v, w"
        return Lattice(self.a * u, self.b * v, self.c * w, *self.angles_deg)

    def __eq__(self, other):
        if not isinstance(other, Lattice):
            return NotImplemented
        return nearly_equal(self.parameters, other.parameters)

    __hash__ = None

    def __repr__(self):
        unique = ",".join("{:.3f}".format(p) for p in self.unique_parameters)
        return "<Lattice: {} ({})>".format(self.cell_type, unique)

    @classmethod
    def from_vectors(cls, vectors):
        """
        Construct a lattice from row major lattice vectors. The result
        is re-oriented to the standard convention (a along x), only
        lengths and angles between the vectors are kept.

        Args:
            vectors (array_like): (3, 3) array, vectors[0] is lattice vector a

        Returns:
            Lattice: the new lattice
        """
        vectors = np.asarray(vectors, dtype=np.float64)
        lengths = np.linalg.norm(vectors, axis=1)
        alpha = cls._angle_between(vectors[1], vectors[2])
        beta = cls._angle_between(vectors[0], vectors[2])
        gamma = cls._angle_between(vectors[0], vectors[1])
        return cls(*lengths, *np.degrees((alpha, beta, gamma)))

    @classmethod
    def from_lengths_and_angles(cls, lengths, angles, unit="radians"):
        """
        Construct a new Lattice from the provided lengths and angles.

        Args:
            lengths (array_like): Lattice side lengths (a, b, c) in Angstroms.
            angles (array_like): Lattice angles (alpha, beta, gamma) in provided units (default radians)
            unit (str, optional): Unit for angles i.e. 'radians' or 'degrees' (default radians).

        Returns:
            Lattice: A new lattice
        """
        if unit == "radians":
            if np.any(np.abs(angles) > np.pi):
                LOG.warning(
                    "Large angle in Lattice.from_lengths_and_angles, "
                    "are you sure your angles are not in degrees?"
                )
            angles = np.degrees(angles)
        return cls(*lengths, *angles)

    @classmethod
    def cubic(cls, length):
        return cls(length, length, length, 90.0, 90.0, 90.0)

    @classmethod
    def tetragonal(cls, a, c):
        return cls(a, a, c, 90.0, 90.0, 90.0)

    @classmethod
    def orthorhombic(cls, a, b, c):
        return cls(a, b, c, 90.0, 90.0, 90.0)

    @classmethod
    def hexagonal(cls, a, c):
        return cls(a, a, c, 90.0, 90.0, 120.0)

    @classmethod
    def rhombohedral(cls, a, alpha):
        "alpha in degrees"
        return cls(a, a, a, alpha, alpha, alpha)

    @classmethod
    def monoclinic(cls, a, b, c, beta):
        "unique axis b, beta in degrees"
        return cls(a, b, c, 90.0, beta, 90.0)

    @classmethod
    def triclinic(cls, a, b, c, alpha, beta, gamma):
        return cls(a, b, c, alpha, beta, gamma)
