import numpy as np
from typing import Tuple

NEARLY_EQUAL_TOLERANCE = 1e-6


def cartesian_product(*arrays) -> np.ndarray:
    """
    Efficiently calculate the Cartesian product of the
    provided vectors A x B x C ... etc. This will maintain
    order in loops from the right most array.

    Args:
        *arrays (array_like): 1D arrays to use for the Cartesian product

    Returns:
        np.ndarray: The Cartesian product of the provided vectors.
    """
    arrays = [np.asarray(a) for a in arrays]
    la = len(arrays)
    dtype = np.result_type(*arrays)
    arr = np.empty([len(a) for a in arrays] + [la], dtype=dtype)
    for i, a in enumerate(np.ix_(*arrays)):
        arr[..., i] = a
    return arr.reshape(-1, la)


_UNIT_OFFSETS = cartesian_product(*([-1.0, 0.0, 1.0],) * 3)
# all offsets in {-1, 0, 1}^3, zero offset first
NEIGHBOUR_OFFSETS = np.vstack(
    (np.zeros((1, 3)), _UNIT_OFFSETS[np.any(_UNIT_OFFSETS != 0, axis=1)])
)


def nearly_equal(a, b, tolerance=NEARLY_EQUAL_TOLERANCE) -> bool:
    "True if every element of a and b differs by less than tolerance"
    return bool(np.all(np.abs(np.asarray(a) - np.asarray(b)) < tolerance))


def nearly_zero(a, tolerance=NEARLY_EQUAL_TOLERANCE) -> bool:
    return bool(np.all(np.abs(np.asarray(a)) < tolerance))


def nearly_integer(a, tolerance=NEARLY_EQUAL_TOLERANCE) -> bool:
    a = np.asarray(a)
    return nearly_equal(a, np.round(a), tolerance=tolerance)


def wrap_to_unit_cell(coords: np.ndarray) -> np.ndarray:
    """
    Map fractional coordinates into [0, 1).

    Args:
        coords (array_like): (3,) or (N, 3) fractional coordinates

    Returns:
        np.ndarray: wrapped copy of coords
    """
    coords = np.asarray(coords, dtype=np.float64)
    wrapped = coords - np.floor(coords)
    # floating point can leave exactly 1.0 for tiny negative input
    wrapped[wrapped >= 1.0] -= 1.0
    return wrapped


def round_half_away(x) -> np.ndarray:
    "Round to the nearest integer, halves away from zero"
    x = np.asarray(x, dtype=np.float64)
    return np.sign(x) * np.floor(np.abs(x) + 0.5)


class RunningAverage:
    """
    Incremental mean (and estimated standard deviation) of scalars
    or arrays, using Welford's update.

    >>> r = RunningAverage()
    >>> r.add_value(1.0); r.add_value(3.0)
    >>> r.average
    2.0
    """

    def __init__(self, value=None):
        self._count = 0
        self._mean = None
        self._m2 = None
        if value is not None:
            self.add_value(value)

    def add_value(self, value):
        value = np.asarray(value, dtype=np.float64)
        self._count += 1
        if self._mean is None:
            self._mean = value.copy()
            self._m2 = np.zeros_like(value)
            return
        delta = value - self._mean
        self._mean = self._mean + delta / self._count
        self._m2 = self._m2 + delta * (value - self._mean)

    @property
    def count(self) -> int:
        return self._count

    @property
    def average(self):
        if self._mean is None:
            raise ValueError("No values added to RunningAverage")
        if self._mean.ndim == 0:
            return float(self._mean)
        return self._mean.copy()

    @property
    def variance(self):
        if self._count < 2:
            return np.zeros_like(self._mean) if self._mean is not None else 0.0
        return self._m2 / (self._count - 1)

    @property
    def esd(self):
        "Estimated standard deviation of the values"
        return np.sqrt(self.variance)

    def __len__(self):
        return self._count

    def __repr__(self):
        return "<RunningAverage: n={}>".format(self._count)


def tally_first_maximum(counts) -> Tuple[int, int]:
    "Index and value of the first largest entry of counts"
    counts = np.asarray(counts)
    idx = int(np.argmax(counts))
    return idx, int(counts[idx])
