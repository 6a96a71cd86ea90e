"""Well state of a set of multi-segment wells."""

import copy
import logging
import typing

import attrs
import numpy as np
from typing_extensions import Self

from mswells._precision import get_dtype
from mswells.config import Config
from mswells.errors import TopologyError, ValidationError
from mswells.states.continuation import ContinuationSummary, continue_from
from mswells.states.guesses import initialize_wells
from mswells.states.topology import WellMap, WellTopology, WellTopologyEntry, build_topology
from mswells.types import FloatArray, IntArray
from mswells.wells.base import MultiSegmentWell

logger = logging.getLogger(__name__)

__all__ = ["ReservoirState", "WellState"]


def _to_pressure_array(value: typing.Any) -> np.ndarray:
    return np.asarray(value, dtype=np.float64).reshape(-1)


@attrs.frozen
class ReservoirState:
    """Reservoir quantities read when initializing well states."""

    pressure: np.ndarray = attrs.field(converter=_to_pressure_array)
    """Pressure of each reservoir cell (Pa)."""


class _HasPressure(typing.Protocol):
    @property
    def pressure(self) -> typing.Any: ...


class WellState:
    """
    The numerical state of a set of multi-segment wells at one time step.

    All quantities are kept in flat arrays. Per-well arrays are indexed by well index,
    segment and perforation arrays hold the wells one after another, as described by the
    topology entries in `well_map`. Phase-resolved arrays have one column per phase.

    A new state is built for every time step with `init`, which computes an initial guess
    and then carries over values from the previous time step's state.
    The arrays may be modified freely afterwards.
    """

    def __init__(self) -> None:
        """Create an empty well state, with no wells."""
        self._reset()

    def _reset(self, dtype: typing.Optional[np.typing.DTypeLike] = None) -> None:
        dtype = dtype if dtype is not None else get_dtype()
        self.num_phases = 0
        self.topology = WellTopology()
        self.legacy_wells: typing.Any = None
        self.bhp: FloatArray = np.zeros(0, dtype=dtype)
        self.thp: FloatArray = np.zeros(0, dtype=dtype)
        self.temperature: FloatArray = np.zeros(0, dtype=dtype)
        self.well_rates: FloatArray = np.zeros((0, 0), dtype=dtype)
        self.segment_pressures: FloatArray = np.zeros(0, dtype=dtype)
        self.segment_phase_rates: FloatArray = np.zeros((0, 0), dtype=dtype)
        self.perforation_pressures: FloatArray = np.zeros(0, dtype=dtype)
        self.perforation_phase_rates: FloatArray = np.zeros((0, 0), dtype=dtype)
        self.current_controls: IntArray = np.zeros(0, dtype=np.int64)
        self.continuation = ContinuationSummary()
        """What the last `init` carried over from the previous state."""

    @property
    def well_map(self) -> WellMap:
        """Topology entry of each well, by well name."""
        return self.topology.well_map

    @property
    def top_segment_locations(self) -> IntArray:
        """Position of each well's top segment in the segment arrays, by well index."""
        return self.topology.top_segment_locations

    @property
    def num_wells(self) -> int:
        return self.topology.num_wells

    @property
    def num_segments(self) -> int:
        return self.topology.num_segments

    @property
    def num_perforations(self) -> int:
        return self.topology.num_perforations

    def init(
        self,
        wells: typing.Sequence[MultiSegmentWell],
        reservoir_state: _HasPressure,
        previous_state: typing.Optional["WellState"] = None,
        legacy_wells: typing.Any = None,
        config: typing.Optional[Config] = None,
    ) -> Self:
        """
        Allocate and initialize the state for a set of wells.

        Every quantity is first given an initial guess based on the well's status and
        active control. Wells that also exist in `previous_state` (matched by name) then
        get their values carried over.

        :param wells: The wells, in well-index order.
        :param reservoir_state: Reservoir state exposing the pressure of each cell.
        :param previous_state: State of the previous time step. An empty state or None
            means there is nothing to carry over.
        :param legacy_wells: Well network handle kept for output facilities. It is copied,
            not interpreted.
        :param config: Initialization configuration. Defaults to `Config()`.
        :return: The initialized state.
        :raises TopologyError: If the wells cannot be laid out safely.
        :raises ValidationError: If a well's aggregation operator does not match its segments.
            The state is left empty whenever an error is raised.
        """
        config = config or Config()
        dtype = config.dtype if config.dtype is not None else get_dtype()

        if previous_state is self:
            previous_state = self.copy()
        self._reset(dtype)
        self.legacy_wells = copy.deepcopy(legacy_wells)
        if not wells:
            logger.debug("No wells, well state cleared")
            return self

        topology = build_topology(wells)
        reservoir_pressure = np.asarray(reservoir_state.pressure, dtype=np.float64).reshape(-1)
        for well in wells:
            if int(well.well_cells.max()) >= reservoir_pressure.shape[0]:
                raise TopologyError(
                    f"Well {well.name!r} is connected to cell {int(well.well_cells.max())}, "
                    f"but the reservoir has {reservoir_pressure.shape[0]} cell(s)."
                )

        num_wells = len(wells)
        # Pressures the dtype cannot hold would become -inf
        sentinel = config.get_pressure_sentinel()
        lowest = float(np.finfo(dtype).min)
        if sentinel < lowest:
            logger.debug(
                f"Pressure sentinel {sentinel} does not fit {np.dtype(dtype)}, using {lowest}"
            )
            sentinel = lowest

        try:
            self._fill(
                wells=wells,
                topology=topology,
                reservoir_pressure=reservoir_pressure,
                previous_state=previous_state,
                config=config,
                dtype=dtype,
                sentinel=sentinel,
            )
        except Exception:
            self._reset(dtype)
            raise

        summary = self.continuation
        logger.info(
            f"Initialized well state: {num_wells} well(s), {topology.num_segments} segment(s), "
            f"{topology.num_perforations} perforation(s); carried over {len(summary.continued)} "
            f"well(s) fully and {len(summary.well_level_only)} at well level"
        )
        return self

    def _fill(
        self,
        wells: typing.Sequence[MultiSegmentWell],
        topology: WellTopology,
        reservoir_pressure: np.ndarray,
        previous_state: typing.Optional["WellState"],
        config: Config,
        dtype: np.typing.DTypeLike,
        sentinel: float,
    ) -> None:
        constants = config.constants
        num_wells = len(wells)
        num_phases = wells[0].num_phases

        self.num_phases = num_phases
        self.topology = topology
        self.bhp = np.zeros(num_wells, dtype=dtype)
        self.thp = np.zeros(num_wells, dtype=dtype)
        self.temperature = np.full(num_wells, constants.STANDARD_TEMPERATURE, dtype=dtype)
        self.well_rates = np.zeros((num_wells, num_phases), dtype=dtype)
        self.segment_pressures = np.full(topology.num_segments, sentinel, dtype=dtype)
        self.segment_phase_rates = np.zeros((topology.num_segments, num_phases), dtype=dtype)
        self.perforation_pressures = np.full(topology.num_perforations, sentinel, dtype=dtype)
        self.perforation_phase_rates = np.zeros(
            (topology.num_perforations, num_phases), dtype=dtype
        )
        # Controls set on the wells are the defaults
        self.current_controls = np.array(
            [well.controls.current for well in wells], dtype=np.int64
        )

        initialize_wells(
            state=self,
            wells=wells,
            reservoir_pressure=reservoir_pressure,
            constants=constants,
        )

        if config.continuation:
            self.continuation = continue_from(
                state=self, previous=previous_state, wells=wells
            )

    @classmethod
    def from_wells(
        cls,
        wells: typing.Sequence[MultiSegmentWell],
        reservoir_state: _HasPressure,
        previous_state: typing.Optional["WellState"] = None,
        legacy_wells: typing.Any = None,
        config: typing.Optional[Config] = None,
    ) -> Self:
        """
        Build and initialize a well state.

        See `WellState.init` for details on the parameters.
        """
        return cls().init(
            wells=wells,
            reservoir_state=reservoir_state,
            previous_state=previous_state,
            legacy_wells=legacy_wells,
            config=config,
        )

    def copy(self) -> Self:
        """
        Get an independent copy of the state.

        Use this to keep the state of a time step around as the previous state of the next.
        """
        return copy.deepcopy(self)

    def get_entry(self, name: str) -> WellTopologyEntry:
        """
        Get the topology entry of a well.

        :param name: The name of the well.
        :raises ValidationError: If there is no well with that name.
        """
        try:
            return self.well_map[name]
        except KeyError:
            raise ValidationError(f"No well named {name!r} in well state.") from None

    def segment_pressures_of(self, name: str) -> FloatArray:
        """Segment pressures of a well, as a view into the state array."""
        return self.segment_pressures[self.get_entry(name).segment_slice]

    def segment_phase_rates_of(self, name: str) -> FloatArray:
        """Segment phase rates of a well, as a view into the state array."""
        return self.segment_phase_rates[self.get_entry(name).segment_slice]

    def perforation_pressures_of(self, name: str) -> FloatArray:
        """Perforation pressures of a well, as a view into the state array."""
        return self.perforation_pressures[self.get_entry(name).perforation_slice]

    def perforation_phase_rates_of(self, name: str) -> FloatArray:
        """Perforation phase rates of a well, as a view into the state array."""
        return self.perforation_phase_rates[self.get_entry(name).perforation_slice]

    def well_rates_of(self, name: str) -> FloatArray:
        """Phase rates of a well, as a view into the state array."""
        return self.well_rates[self.get_entry(name).well_index]

    def asdict(self) -> typing.Dict[str, typing.Any]:
        """
        Get a dictionary representation of the well state.
        """
        return {
            "num_wells": self.num_wells,
            "num_phases": self.num_phases,
            "num_segments": self.num_segments,
            "num_perforations": self.num_perforations,
            "well_map": dict(self.well_map),
            "bhp": self.bhp,
            "thp": self.thp,
            "temperature": self.temperature,
            "well_rates": self.well_rates,
            "segment_pressures": self.segment_pressures,
            "segment_phase_rates": self.segment_phase_rates,
            "perforation_pressures": self.perforation_pressures,
            "perforation_phase_rates": self.perforation_phase_rates,
            "current_controls": self.current_controls,
            "top_segment_locations": self.top_segment_locations,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(wells={self.num_wells}, segments={self.num_segments}, "
            f"perforations={self.num_perforations}, phases={self.num_phases})"
        )
