"""Flat-array layout of wells, segments and perforations."""

import logging
import typing

import attrs
import numpy as np

from mswells.errors import TopologyError
from mswells.types import WellType
from mswells.wells.base import MultiSegmentWell

logger = logging.getLogger(__name__)

__all__ = ["WellTopologyEntry", "WellTopology", "WellMap", "build_topology"]


def _to_int_tuple(value: typing.Iterable[int]) -> typing.Tuple[int, ...]:
    return tuple(int(v) for v in value)


@attrs.frozen
class WellTopologyEntry:
    """
    Location of one well inside the global segment and perforation arrays.

    Segment and perforation ranges of consecutive wells are contiguous and in
    well-index order. Within a well, the perforations of each segment form a
    contiguous sub-range, in segment order.
    """

    well_index: int
    """Rank of the well among all wells. Indexes per-well arrays."""
    segment_start: int
    """Position of the well's top segment in the global segment arrays."""
    segment_count: int
    """Number of segments of the well."""
    perforation_start: int
    """Position of the well's first perforation in the global perforation arrays."""
    perforation_count: int
    """Number of perforations of the well."""
    perforation_start_in_segment: typing.Tuple[int, ...] = attrs.field(
        converter=_to_int_tuple
    )
    """Offset of each segment's first perforation, relative to `perforation_start`."""
    perforation_count_in_segment: typing.Tuple[int, ...] = attrs.field(
        converter=_to_int_tuple
    )
    """Number of perforations attached to each segment."""

    @property
    def segment_slice(self) -> slice:
        """Slice of the well in the global segment arrays."""
        return slice(self.segment_start, self.segment_start + self.segment_count)

    @property
    def perforation_slice(self) -> slice:
        """Slice of the well in the global perforation arrays."""
        return slice(
            self.perforation_start, self.perforation_start + self.perforation_count
        )

    def segment_perforation_slice(self, segment: int) -> slice:
        """
        Slice of one segment's perforations in the global perforation arrays.

        :param segment: Well-local segment index.
        """
        start = self.perforation_start + self.perforation_start_in_segment[segment]
        return slice(start, start + self.perforation_count_in_segment[segment])

    def has_same_shape(self, other: "WellTopologyEntry") -> bool:
        """Check whether another entry has the same number of segments and perforations."""
        return (
            self.segment_count == other.segment_count
            and self.perforation_count == other.perforation_count
        )


WellMap = typing.Dict[str, WellTopologyEntry]
"""Mapping of well name to its topology entry."""


@attrs.frozen(eq=False)
class WellTopology:
    """Topology index of a set of wells and their name-keyed map."""

    well_map: WellMap = attrs.field(factory=dict)
    """Topology entry of each well, by well name."""
    num_segments: int = 0
    """Total number of segments across all wells."""
    num_perforations: int = 0
    """Total number of perforations across all wells."""
    top_segment_locations: np.ndarray = attrs.field(
        factory=lambda: np.zeros(0, dtype=np.int64)
    )
    """Position of each well's top segment in the global segment arrays, by well index."""

    @property
    def num_wells(self) -> int:
        return len(self.well_map)

    def entries(self) -> typing.List[WellTopologyEntry]:
        """Topology entries ordered by well index."""
        return sorted(self.well_map.values(), key=lambda entry: entry.well_index)


def _check_well(well: MultiSegmentWell, num_phases: int) -> None:
    if well.well_type not in (WellType.INJECTOR, WellType.PRODUCER):
        raise TopologyError(
            f"Well {well.name!r} has type {well.well_type!r}, expected injector or producer."
        )
    if well.num_phases != num_phases:
        raise TopologyError(
            f"Well {well.name!r} tracks {well.num_phases} phase(s), expected {num_phases}."
        )


def build_topology(wells: typing.Sequence[MultiSegmentWell]) -> WellTopology:
    """
    Lay out wells, segments and perforations in flat arrays.

    Wells are laid out contiguously in input order. The top segment location of each
    well is its first segment.

    :param wells: Wells in well-index order.
    :return: The topology index of the wells.
    :raises TopologyError: If the per-segment perforation counts of a well do not add up to
        its perforation count, perforations are not numbered segment by segment,
        a well type is unknown, names are duplicated, or wells track
        different numbers of phases.
    """
    if not wells:
        return WellTopology()

    num_phases = wells[0].num_phases
    well_map: WellMap = {}
    top_segment_locations = np.zeros(len(wells), dtype=np.int64)
    segment_start = 0
    perforation_start = 0

    for well_index, well in enumerate(wells):
        _check_well(well, num_phases)
        if well.name in well_map:
            raise TopologyError(f"Duplicate well name {well.name!r}.")

        perforation_count = well.num_perforations
        counts_in_segment = [len(perforations) for perforations in well.segment_perforations]
        starts_in_segment = np.concatenate(([0], np.cumsum(counts_in_segment)[:-1]))
        if sum(counts_in_segment) != perforation_count:
            raise TopologyError(
                f"Segments of well {well.name!r} hold {sum(counts_in_segment)} perforation(s), "
                f"but the well has {perforation_count}."
            )
        numbering = [i for perforations in well.segment_perforations for i in perforations]
        if numbering != list(range(perforation_count)):
            raise TopologyError(
                f"Perforations of well {well.name!r} must be numbered 0 to {perforation_count - 1}, "
                f"segment by segment, got {numbering}."
            )

        entry = WellTopologyEntry(
            well_index=well_index,
            segment_start=segment_start,
            segment_count=well.num_segments,
            perforation_start=perforation_start,
            perforation_count=perforation_count,
            perforation_start_in_segment=starts_in_segment,
            perforation_count_in_segment=counts_in_segment,
        )
        well_map[well.name] = entry
        top_segment_locations[well_index] = segment_start

        segment_start += entry.segment_count
        perforation_start += entry.perforation_count

    logger.debug(
        f"Laid out {len(wells)} well(s) with {segment_start} segment(s) "
        f"and {perforation_start} perforation(s)"
    )
    return WellTopology(
        well_map=well_map,
        num_segments=segment_start,
        num_perforations=perforation_start,
        top_segment_locations=top_segment_locations,
    )
