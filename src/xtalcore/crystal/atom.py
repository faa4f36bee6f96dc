from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union
import numpy as np
from xtalcore.core.element import Element


class ADPType(Enum):
    NONE = "none"
    ISOTROPIC = "Uiso"
    ANISOTROPIC = "Uani"


class AnisotropicDisplacementParameters:
    """
    Anisotropic displacement parameters, stored as the symmetric (3, 3)
    tensor U in the orthogonal (Cartesian) frame of the lattice, in
    Angstroms^2.

    Conversions to the fractional form U* (the covariance of the
    fractional coordinates) and the CIF form U_cif need the lattice:
    with A the fractional to orthogonal matrix and
    N = diag(a*, b*, c*),

        U* = A^-1 U A^-T
        U_cif = N^-1 U* N^-1
    """

    def __init__(self, u_cart):
        u_cart = np.array(u_cart, dtype=np.float64)
        if u_cart.shape == (6,):
            u_cart = self._from_six(u_cart)
        if u_cart.shape != (3, 3):
            raise ValueError("ADP tensor must be (3, 3) or six unique elements")
        self.u_cart = 0.5 * (u_cart + u_cart.T)

    @staticmethod
    def _from_six(u):
        "(U11, U22, U33, U12, U13, U23)"
        u11, u22, u33, u12, u13, u23 = u
        return np.array(((u11, u12, u13), (u12, u22, u23), (u13, u23, u33)))

    @staticmethod
    def _n_matrix(lattice):
        return np.diag((lattice.a_star, lattice.b_star, lattice.c_star))

    @classmethod
    def from_u_star(cls, u_star, lattice):
        A = lattice.fractional_to_orthogonal_matrix
        return cls(A @ np.asarray(u_star) @ A.T)

    @classmethod
    def from_u_cif(cls, u_cif, lattice):
        """
        Construct from U_cif as given in a CIF (_atom_site_aniso_U_11 etc.)

        Args:
            u_cif (array_like): (3, 3) tensor or (U11, U22, U33, U12, U13, U23)
            lattice (Lattice): the lattice the parameters refer to
        """
        u_cif = np.array(u_cif, dtype=np.float64)
        if u_cif.shape == (6,):
            u_cif = cls._from_six(u_cif)
        n = cls._n_matrix(lattice)
        return cls.from_u_star(n @ u_cif @ n, lattice)

    def u_star(self, lattice) -> np.ndarray:
        A_inv = np.linalg.inv(lattice.fractional_to_orthogonal_matrix)
        return A_inv @ self.u_cart @ A_inv.T

    def u_cif(self, lattice) -> np.ndarray:
        n_inv = np.linalg.inv(self._n_matrix(lattice))
        return n_inv @ self.u_star(lattice) @ n_inv

    @property
    def u_eq(self) -> float:
        "Equivalent isotropic displacement parameter"
        return float(np.trace(self.u_cart) / 3.0)

    def rotated(self, rotation, lattice) -> "AnisotropicDisplacementParameters":
        """
        The tensor after applying a rotation given in fractional
        coordinates, e.g. the rotation part of a symmetry operation.
        """
        rotation = np.asarray(rotation)
        u_star = self.u_star(lattice)
        return AnisotropicDisplacementParameters.from_u_star(
            rotation @ u_star @ rotation.T, lattice
        )

    def transformed(self, matrix, old_lattice, new_lattice) -> "AnisotropicDisplacementParameters":
        """
        The tensor expressed for a new basis whose vectors are
        new = matrix @ old (as rows).
        """
        m_inv = np.linalg.inv(np.asarray(matrix, dtype=np.float64))
        u_star = m_inv.T @ self.u_star(old_lattice) @ m_inv
        return AnisotropicDisplacementParameters.from_u_star(u_star, new_lattice)

    def __eq__(self, other):
        if not isinstance(other, AnisotropicDisplacementParameters):
            return NotImplemented
        return np.allclose(self.u_cart, other.u_cart)

    __hash__ = None

    def __repr__(self):
        return "<ADP: Ueq={:.4f}>".format(self.u_eq)


Displacement = Union[None, float, AnisotropicDisplacementParameters]


@dataclass(eq=False, repr=False)
class Atom:
    """
    An atom site in a crystal structure.

    Attributes:
        element (Element): the chemical element
        position (np.ndarray): fractional coordinates
        label (str): site label, e.g. 'C1'
        occupancy (float): site occupancy
        charge (float): (partial) charge, used for dipole moments
        displacement: None, an isotropic U (float) or anisotropic
            displacement parameters
        active (bool): inactive atoms take part in geometry but are
            left out of exported data
    """

    element: Element
    position: np.ndarray
    label: str = ""
    occupancy: float = 1.0
    charge: float = 0.0
    displacement: Displacement = None
    active: bool = True

    def __post_init__(self):
        if isinstance(self.element, str):
            self.element = Element.from_string(self.element)
        self.position = np.array(self.position, dtype=np.float64)
        if self.position.shape != (3,):
            raise ValueError("Atom position must have 3 components")
        if not self.label:
            self.label = self.element.symbol

    @property
    def adp_type(self) -> ADPType:
        if self.displacement is None:
            return ADPType.NONE
        if isinstance(self.displacement, AnisotropicDisplacementParameters):
            return ADPType.ANISOTROPIC
        return ADPType.ISOTROPIC

    @property
    def u_iso(self) -> Optional[float]:
        "Isotropic U, or U_eq for anisotropic atoms"
        if self.adp_type == ADPType.ANISOTROPIC:
            return self.displacement.u_eq
        return self.displacement

    @property
    def is_hydrogen(self) -> bool:
        return self.element.is_hydrogen

    def copy(self, **changes) -> "Atom":
        "A copy of this atom (with its own position array), optionally modified"
        changes.setdefault("position", self.position.copy())
        return replace(self, **changes)

    def __eq__(self, other):
        if not isinstance(other, Atom):
            return NotImplemented
        return (
            self.element == other.element
            and self.label == other.label
            and np.allclose(self.position, other.position)
        )

    __hash__ = None

    def __repr__(self):
        return "<Atom {} {}: [{:.5f}, {:.5f}, {:.5f}]>".format(
            self.label, self.element, *self.position
        )
