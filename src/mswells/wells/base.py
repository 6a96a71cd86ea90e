"""Multi-segment well descriptors and collections."""

import logging
import typing

import attrs
import numpy as np

from mswells.errors import ValidationError
from mswells.types import AggregationOperator, ControlType, WellStatus, WellType
from mswells.wells.aggregation import (
    SegmentAggregator,
    as_aggregator,
    build_gather_operator,
)
from mswells.wells.controls import WellControls

logger = logging.getLogger(__name__)

__all__ = ["MultiSegmentWell", "MultiSegmentWells"]


def _to_segment_perforations(
    value: typing.Iterable[typing.Iterable[int]],
) -> typing.Tuple[typing.Tuple[int, ...], ...]:
    return tuple(tuple(int(i) for i in perforations) for perforations in value)


def _to_index_array(value: typing.Iterable[int]) -> np.ndarray:
    return np.asarray(value, dtype=np.int64).reshape(-1)


def _to_outlets(
    value: typing.Optional[typing.Iterable[int]],
) -> typing.Optional[typing.Tuple[int, ...]]:
    if value is None:
        return None
    return tuple(int(i) for i in value)


@attrs.define(eq=False)
class MultiSegmentWell:
    """
    Describes a multi-segment well for the purpose of building well states.

    A well is a tree of segments. Each segment has zero or more perforations,
    and each perforation connects the well to one reservoir cell.
    Perforations are numbered per well, segment by segment, so that the
    perforations of a segment are contiguous. The segment layout cannot be
    changed once the well is created.
    """

    name: str
    """Unique name of the well."""
    well_type: WellType = attrs.field(converter=WellType)
    """Whether the well injects or produces."""
    num_phases: int = attrs.field(validator=attrs.validators.ge(1))
    """Number of fluid phases tracked for the well."""
    controls: WellControls = attrs.field()
    """Configured controls and the currently active one."""
    segment_perforations: typing.Tuple[typing.Tuple[int, ...], ...] = attrs.field(
        converter=_to_segment_perforations, on_setattr=attrs.setters.frozen
    )
    """Well-local perforation indices attached to each segment. Segment 0 is the top segment."""
    well_cells: np.ndarray = attrs.field(
        converter=_to_index_array, on_setattr=attrs.setters.frozen
    )
    """Reservoir cell index connected to each perforation."""
    outlet_segments: typing.Optional[typing.Tuple[int, ...]] = attrs.field(
        default=None, converter=_to_outlets, on_setattr=attrs.setters.frozen
    )
    """Outlet (parent) segment of each segment, -1 for the top segment."""
    aggregator: typing.Optional[AggregationOperator] = None
    """
    Perforation-to-segment linear map of the well.

    If None, a gather operator is built from `segment_perforations` and `outlet_segments`
    whenever it is requested.
    """
    is_multi_segmented: bool = attrs.field(
        default=attrs.Factory(lambda self: self.num_segments > 1, takes_self=True),
        on_setattr=attrs.setters.frozen,
    )
    """
    Whether the well is a true multi-segment well.

    Regular wells are represented with a single segment. Defaults to True when
    the well has more than one segment.
    """

    @controls.validator
    def _check_controls(self, attribute, value) -> None:
        for index, control in enumerate(value.controls):
            distribution = control.distribution
            if distribution is not None and len(distribution) < self.num_phases:
                raise ValidationError(
                    f"Control {index} of well {self.name!r} distributes its target over "
                    f"{len(distribution)} phase(s), but the well has {self.num_phases}."
                )

    @segment_perforations.validator
    def _check_segments(self, attribute, value) -> None:
        if not value:
            raise ValidationError(f"Well {self.name!r} must have at least one segment.")

    @well_cells.validator
    def _check_cells(self, attribute, value) -> None:
        if value.shape[0] == 0:
            raise ValidationError(f"Well {self.name!r} must have at least one perforation.")
        if np.any(value < 0):
            raise ValidationError(f"Well {self.name!r} has negative reservoir cell indices.")

    @property
    def num_segments(self) -> int:
        return len(self.segment_perforations)

    @property
    def num_perforations(self) -> int:
        return int(self.well_cells.shape[0])

    @property
    def is_injector(self) -> bool:
        return self.well_type == WellType.INJECTOR

    @property
    def is_producer(self) -> bool:
        return self.well_type == WellType.PRODUCER

    @property
    def is_stopped(self) -> bool:
        return self.controls.is_stopped

    @property
    def status(self) -> WellStatus:
        return self.controls.status

    @property
    def control_type(self) -> ControlType:
        return self.controls.current_type

    def get_aggregator(self) -> SegmentAggregator:
        """
        Get the perforation-to-segment map of the well.

        :return: A callable mapping a perforation-space vector to a segment-space vector.
        """
        operator = self.aggregator
        if operator is None:
            logger.debug(f"Building default gather operator for well {self.name!r}")
            operator = build_gather_operator(
                segment_perforations=self.segment_perforations,
                outlet_segments=self.outlet_segments,
                num_perforations=self.num_perforations,
            )
        return as_aggregator(operator)

    def shut_in(self) -> None:
        """Stop the well."""
        self.controls.stop()

    def open(self) -> None:
        """Open the well."""
        self.controls.open()


WellT = typing.TypeVar("WellT", bound=MultiSegmentWell)


@typing.final
class MultiSegmentWells(typing.Generic[WellT]):
    """
    An ordered collection of multi-segment wells with unique names.

    The order of the collection defines the well indices of the well state.
    """

    def __init__(self, wells: typing.Iterable[WellT] = ()) -> None:
        self._wells: typing.List[WellT] = list(wells)
        self._by_name: typing.Dict[str, WellT] = {}
        for well in self._wells:
            if well.name in self._by_name:
                raise ValidationError(f"Duplicate well name {well.name!r}.")
            self._by_name[well.name] = well

        phases = {well.num_phases for well in self._wells}
        if len(phases) > 1:
            raise ValidationError(
                f"All wells must track the same number of phases, got {sorted(phases)}."
            )

    @property
    def names(self) -> typing.List[str]:
        """Names of all wells, in order."""
        return [well.name for well in self._wells]

    @property
    def num_phases(self) -> int:
        """Number of phases tracked by the wells. Zero if there are no wells."""
        if not self._wells:
            return 0
        return self._wells[0].num_phases

    def get_by_name(self, name: str) -> typing.Optional[WellT]:
        """
        Get a well by its name.

        :param name: The name of the well.
        :return: The well, or None if not found.
        """
        return self._by_name.get(name)

    def __getitem__(self, key: typing.Union[int, str], /) -> WellT:
        if isinstance(key, str):
            return self._by_name[key]
        return self._wells[key]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._wells)

    def __iter__(self) -> typing.Iterator[WellT]:
        return iter(self._wells)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(names={self.names!r})"

    def exists(self) -> bool:
        """
        Check if there are any wells in the collection.

        :return: True if there is at least one well, False otherwise.
        """
        return bool(self._wells)
