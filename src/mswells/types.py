import enum
import typing

import numpy as np
from scipy.sparse import csr_array, csr_matrix
from scipy.sparse.linalg import LinearOperator
from typing_extensions import TypeAlias


__all__ = [
    "WellType",
    "ControlType",
    "WellStatus",
    "FloatArray",
    "IntArray",
    "AggregationOperator",
]

FloatArray: TypeAlias = np.typing.NDArray[np.floating]
"""Dense array of floating point values"""
IntArray: TypeAlias = np.typing.NDArray[np.integer]
"""Dense array of integer values"""


class WellType(enum.Enum):
    """Enum representing the flow direction of a well."""

    INJECTOR = "injector"
    PRODUCER = "producer"


class ControlType(enum.Enum):
    """
    Enum representing the kind of target a well control enforces.

    Everything that is not a bottom-hole pressure, tubing-head pressure
    or surface rate target is treated alike when building initial guesses.
    """

    BHP = "bhp"
    """Bottom-hole pressure target"""
    THP = "thp"
    """Tubing-head pressure target"""
    SURFACE_RATE = "surface_rate"
    """Surface volume rate target, split across phases by a distribution"""
    RESERVOIR_RATE = "reservoir_rate"
    """Reservoir volume rate target"""


class WellStatus(enum.Enum):
    """Enum representing whether a well is flowing or not."""

    OPEN = "open"
    STOPPED = "stopped"


AggregationOperator = typing.Union[
    np.ndarray,
    csr_array,
    csr_matrix,
    LinearOperator,
    typing.Callable[[FloatArray], FloatArray],
]
"""
Perforation-to-segment linear map of a single well.

Anything that maps a perforation-space vector to a segment-space vector:
a dense matrix, a scipy sparse matrix, a `LinearOperator` or a plain callable.
"""
