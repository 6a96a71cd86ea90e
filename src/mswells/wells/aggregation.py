"""Perforation-to-segment aggregation."""

import logging
import typing

import numba
import numpy as np
from scipy.sparse import csr_array, issparse
from scipy.sparse.linalg import LinearOperator, aslinearoperator

from mswells.errors import ValidationError
from mswells.types import AggregationOperator, FloatArray

logger = logging.getLogger(__name__)

__all__ = [
    "SegmentAggregator",
    "as_aggregator",
    "aggregate_segment_rates",
    "build_gather_operator",
]


@typing.runtime_checkable
class SegmentAggregator(typing.Protocol):
    """
    Protocol for a perforation-to-segment linear map of one well.

    Maps a perforation-space vector of one phase to the segment-space vector.
    """

    def __call__(self, perforation_values: FloatArray, /) -> FloatArray:
        """
        Aggregate perforation values into segment values.

        :param perforation_values: 1D array with one entry per perforation of the well.
        :return: 1D array with one entry per segment of the well.
        """
        ...


def as_aggregator(operator: AggregationOperator) -> SegmentAggregator:
    """
    Wrap a perforation-to-segment operator as a `SegmentAggregator`.

    Dense arrays, scipy sparse matrices and `LinearOperator`s are applied through
    `scipy.sparse.linalg.aslinearoperator`. Callables are used as they are.

    :param operator: The operator to wrap.
    :return: A callable applying the operator to a perforation-space vector.
    """
    if isinstance(operator, (np.ndarray, LinearOperator)) or issparse(operator):
        linear_operator = aslinearoperator(operator)
        return linear_operator.matvec
    if callable(operator):
        return operator
    raise ValidationError(
        f"Cannot use object of type {type(operator).__name__!r} as an aggregation operator."
    )


def aggregate_segment_rates(
    aggregator: SegmentAggregator,
    perforation_rates: FloatArray,
    segment_count: int,
) -> FloatArray:
    """
    Compute segment phase rates of one well from its perforation phase rates.

    The aggregator is applied once per phase.

    :param aggregator: Perforation-to-segment map of the well.
    :param perforation_rates: `(perforation_count, num_phases)` block of perforation rates.
    :param segment_count: Number of segments of the well.
    :return: `(segment_count, num_phases)` block of segment rates.
    :raises ValidationError: If the aggregator does not produce one value per segment.
    """
    num_phases = perforation_rates.shape[1]
    segment_rates = np.zeros((segment_count, num_phases), dtype=perforation_rates.dtype)
    for phase in range(num_phases):
        values = np.asarray(
            aggregator(np.ascontiguousarray(perforation_rates[:, phase]))
        ).reshape(-1)
        if values.shape[0] != segment_count:
            raise ValidationError(
                f"Aggregation operator produced {values.shape[0]} value(s) for phase {phase}, "
                f"expected one per segment ({segment_count})."
            )
        segment_rates[:, phase] = values
    return segment_rates


@numba.njit(cache=True)
def _subtree_pairs(outlets: np.ndarray) -> typing.Tuple[np.ndarray, np.ndarray]:
    """
    Pairs `(ancestor, segment)` for every segment and each of its ancestors, itself included.

    :param outlets: Outlet (parent) segment of each segment, negative for the top segment.
    :return: Tuple of (rows, cols) such that segment `rows[k]` gathers from segment `cols[k]`.
    """
    segment_count = outlets.shape[0]
    rows = []
    cols = []
    for segment in range(segment_count):
        current = segment
        steps = 0
        while current >= 0:
            rows.append(current)
            cols.append(segment)
            current = outlets[current]
            steps += 1
            if steps > segment_count:
                # Cycle in the outlet tree
                return np.empty(0, dtype=np.int64), np.empty(0, dtype=np.int64)
    return np.array(rows, dtype=np.int64), np.array(cols, dtype=np.int64)


def build_gather_operator(
    segment_perforations: typing.Sequence[typing.Sequence[int]],
    outlet_segments: typing.Optional[typing.Sequence[int]] = None,
    num_perforations: typing.Optional[int] = None,
) -> csr_array:
    """
    Build a perforation-to-segment gather operator from a well's segment layout.

    Without outlets, each segment gathers the perforations attached to it. With
    outlets, each segment gathers every perforation in its sub-tree, so the top
    segment carries the total well rate.

    :param segment_perforations: Well-local perforation indices attached to each segment.
    :param outlet_segments: Outlet (parent) segment of each segment, -1 for the top segment.
    :param num_perforations: Number of perforations of the well. Inferred if not given.
    :return: `(segment_count, num_perforations)` sparse operator.
    """
    segment_count = len(segment_perforations)
    if num_perforations is None:
        num_perforations = sum(len(perforations) for perforations in segment_perforations)

    rows = []
    cols = []
    for segment, perforations in enumerate(segment_perforations):
        for perforation in perforations:
            if not 0 <= perforation < num_perforations:
                raise ValidationError(
                    f"Perforation index {perforation} of segment {segment} is out of range "
                    f"for {num_perforations} perforation(s)."
                )
            rows.append(segment)
            cols.append(perforation)

    p2s = csr_array(
        (np.ones(len(rows)), (np.array(rows, dtype=np.int64), np.array(cols, dtype=np.int64))),
        shape=(segment_count, num_perforations),
    )
    if outlet_segments is None:
        return p2s

    outlets = np.asarray(outlet_segments, dtype=np.int64)
    if outlets.shape != (segment_count,):
        raise ValidationError(
            f"Expected {segment_count} outlet segment(s), got {outlets.shape[0]}."
        )
    if np.any(outlets >= segment_count):
        raise ValidationError("Outlet segment index out of range.")
    if segment_count and (outlets[0] >= 0 or np.any(outlets[1:] < 0)):
        raise ValidationError("Segment 0 must be the only segment without an outlet.")

    ancestors, segments = _subtree_pairs(outlets)
    if segment_count and ancestors.shape[0] == 0:
        raise ValidationError("Outlet segments do not form a tree.")

    s2s_gather = csr_array(
        (np.ones(ancestors.shape[0]), (ancestors, segments)),
        shape=(segment_count, segment_count),
    )
    logger.debug(
        f"Built gather operator for {segment_count} segment(s) and {num_perforations} perforation(s)"
    )
    return csr_array(s2s_gather @ p2s)
