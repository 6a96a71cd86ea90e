"""Initial guesses for well, segment and perforation quantities."""

import logging
import typing

import attrs
import numba
import numpy as np

from mswells.constants import Constants
from mswells.types import ControlType, FloatArray, WellStatus
from mswells.wells.aggregation import aggregate_segment_rates
from mswells.wells.base import MultiSegmentWell

if typing.TYPE_CHECKING:
    from mswells.states.base import WellState
    from mswells.states.topology import WellTopologyEntry

logger = logging.getLogger(__name__)

__all__ = ["GuessRules", "GUESS_RULES", "get_guess_rules", "initialize_well", "initialize_wells"]


RateRule = typing.Callable[[MultiSegmentWell, Constants], FloatArray]
PressureRule = typing.Callable[[MultiSegmentWell, float, Constants], float]
THPRule = typing.Callable[[MultiSegmentWell, float], float]


def get_safety_factor(well: MultiSegmentWell, constants: Constants) -> float:
    """
    Factor biasing a reservoir pressure towards the expected well pressure.

    Injectors need a pressure above the reservoir's, producers one below it.
    """
    if well.is_injector:
        return constants.INJECTOR_SAFETY_FACTOR
    return constants.PRODUCER_SAFETY_FACTOR


def _zero_rates(well: MultiSegmentWell, constants: Constants) -> FloatArray:
    return np.zeros(well.num_phases)


def _target_rates(well: MultiSegmentWell, constants: Constants) -> FloatArray:
    distribution = np.asarray(well.controls.current_distribution, dtype=np.float64)
    return well.controls.current_target * distribution[: well.num_phases]


def _placeholder_rates(well: MultiSegmentWell, constants: Constants) -> FloatArray:
    # Only the sign matters downstream
    sign = 1.0 if well.is_injector else -1.0
    return np.full(well.num_phases, sign * constants.SMALL_RATE)


def _target_bhp(
    well: MultiSegmentWell, cell_pressure: float, constants: Constants
) -> float:
    return well.controls.current_target


def _cell_bhp(
    well: MultiSegmentWell, cell_pressure: float, constants: Constants
) -> float:
    return cell_pressure


def _scaled_cell_bhp(
    well: MultiSegmentWell, cell_pressure: float, constants: Constants
) -> float:
    return get_safety_factor(well, constants) * cell_pressure


def _target_thp(well: MultiSegmentWell, bhp: float) -> float:
    return well.controls.current_target


def _thp_from_bhp(well: MultiSegmentWell, bhp: float) -> float:
    return bhp


@attrs.frozen
class GuessRules:
    """How to guess the well-level quantities for one (status, control type) combination."""

    rates: RateRule
    """Computes the phase rates of the well."""
    bhp: PressureRule
    """Computes the bottom-hole pressure from the first connected cell pressure."""
    thp: THPRule
    """Computes the tubing-head pressure from the bottom-hole pressure."""


GUESS_RULES: typing.Dict[typing.Tuple[WellStatus, ControlType], GuessRules] = {
    (WellStatus.STOPPED, ControlType.BHP): GuessRules(
        rates=_zero_rates, bhp=_target_bhp, thp=_thp_from_bhp
    ),
    (WellStatus.STOPPED, ControlType.THP): GuessRules(
        rates=_zero_rates, bhp=_cell_bhp, thp=_target_thp
    ),
    (WellStatus.STOPPED, ControlType.SURFACE_RATE): GuessRules(
        rates=_zero_rates, bhp=_cell_bhp, thp=_thp_from_bhp
    ),
    (WellStatus.STOPPED, ControlType.RESERVOIR_RATE): GuessRules(
        rates=_zero_rates, bhp=_cell_bhp, thp=_thp_from_bhp
    ),
    (WellStatus.OPEN, ControlType.BHP): GuessRules(
        rates=_placeholder_rates, bhp=_target_bhp, thp=_thp_from_bhp
    ),
    (WellStatus.OPEN, ControlType.THP): GuessRules(
        rates=_placeholder_rates, bhp=_scaled_cell_bhp, thp=_target_thp
    ),
    (WellStatus.OPEN, ControlType.SURFACE_RATE): GuessRules(
        rates=_target_rates, bhp=_scaled_cell_bhp, thp=_thp_from_bhp
    ),
    (WellStatus.OPEN, ControlType.RESERVOIR_RATE): GuessRules(
        rates=_placeholder_rates, bhp=_scaled_cell_bhp, thp=_thp_from_bhp
    ),
}
"""Guess rules for every combination of well status and control type."""


def get_guess_rules(well: MultiSegmentWell) -> GuessRules:
    """Get the guess rules matching the well's status and active control type."""
    return GUESS_RULES[(well.status, well.control_type)]


@numba.njit(cache=True)
def _fill_segment_pressures(
    segment_pressures: np.ndarray,
    perforation_pressures: np.ndarray,
    bhp: float,
    perforation_start_in_segment: np.ndarray,
    perforation_count_in_segment: np.ndarray,
) -> None:
    """
    Fill the segment pressures of one well (in-place).

    The top segment takes the bottom-hole pressure. Every other segment takes the
    pressure of its first perforation, or the bottom-hole pressure if it has none.

    :param segment_pressures: Segment pressures of the well
    :param perforation_pressures: Perforation pressures of the well
    :param bhp: Bottom-hole pressure of the well
    :param perforation_start_in_segment: Offset of each segment's first perforation within the well
    :param perforation_count_in_segment: Number of perforations of each segment
    """
    segment_pressures[0] = bhp
    for segment in range(1, segment_pressures.shape[0]):
        if perforation_count_in_segment[segment] > 0:
            segment_pressures[segment] = perforation_pressures[
                perforation_start_in_segment[segment]
            ]
        else:
            segment_pressures[segment] = bhp


def initialize_well(
    state: "WellState",
    well: MultiSegmentWell,
    entry: "WellTopologyEntry",
    reservoir_pressure: FloatArray,
    constants: Constants,
) -> None:
    """
    Write the initial guess of one well into the state arrays.

    Stopped wells only get well-level values. Their segment and perforation
    entries keep the values they were allocated with.

    :param state: The well state being initialized.
    :param well: The well.
    :param entry: Topology entry of the well.
    :param reservoir_pressure: Pressure of each reservoir cell.
    :param constants: Constants to use for placeholder rates and safety factors.
    """
    rules = get_guess_rules(well)
    w = entry.well_index
    first_cell_pressure = float(reservoir_pressure[well.well_cells[0]])

    state.well_rates[w] = rules.rates(well, constants)
    state.bhp[w] = rules.bhp(well, first_cell_pressure, constants)
    state.thp[w] = rules.thp(well, state.bhp[w])

    logger.debug(
        f"Initial guess for well {well.name!r} ({well.status.value}, "
        f"{well.control_type.value}): bhp={state.bhp[w]:.6g}, thp={state.thp[w]:.6g}"
    )
    if well.is_stopped:
        return

    perforations = entry.perforation_slice
    perforation_rates = state.perforation_phase_rates[perforations]
    perforation_rates[:] = state.well_rates[w] / entry.perforation_count

    cell_pressures = reservoir_pressure[well.well_cells]
    if well.is_multi_segmented:
        cell_pressures = get_safety_factor(well, constants) * cell_pressures
    state.perforation_pressures[perforations] = cell_pressures

    segments = entry.segment_slice
    _fill_segment_pressures(
        state.segment_pressures[segments],
        state.perforation_pressures[perforations],
        float(state.bhp[w]),
        np.asarray(entry.perforation_start_in_segment, dtype=np.int64),
        np.asarray(entry.perforation_count_in_segment, dtype=np.int64),
    )
    state.segment_phase_rates[segments] = aggregate_segment_rates(
        aggregator=well.get_aggregator(),
        perforation_rates=perforation_rates,
        segment_count=entry.segment_count,
    )


def initialize_wells(
    state: "WellState",
    wells: typing.Iterable[MultiSegmentWell],
    reservoir_pressure: FloatArray,
    constants: Constants,
) -> None:
    """
    Write the initial guess of every well into the state arrays.

    :param state: The well state being initialized. Its topology must already be built.
    :param wells: The wells, in well-index order.
    :param reservoir_pressure: Pressure of each reservoir cell.
    :param constants: Constants to use for placeholder rates and safety factors.
    """
    well_map = state.well_map
    for well in wells:
        initialize_well(
            state=state,
            well=well,
            entry=well_map[well.name],
            reservoir_pressure=reservoir_pressure,
            constants=constants,
        )
