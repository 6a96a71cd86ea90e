"""Carry-over of well state values from the previous time step."""

import logging
import typing

import attrs

from mswells.wells.base import MultiSegmentWell

if typing.TYPE_CHECKING:
    from mswells.states.base import WellState

logger = logging.getLogger(__name__)

__all__ = ["ContinuationSummary", "continue_from"]


@attrs.frozen
class ContinuationSummary:
    """Which wells received values from the previous state."""

    continued: typing.Tuple[str, ...] = ()
    """Wells whose well, segment and perforation values were carried over."""
    well_level_only: typing.Tuple[str, ...] = ()
    """Wells whose structure changed. Only bottom-hole pressure and rates were carried over."""
    new: typing.Tuple[str, ...] = ()
    """Wells absent from the previous state. They keep their initial guess."""

    @property
    def is_empty(self) -> bool:
        return not (self.continued or self.well_level_only)


def continue_from(
    state: "WellState",
    previous: typing.Optional["WellState"],
    wells: typing.Iterable[MultiSegmentWell],
) -> ContinuationSummary:
    """
    Overwrite the freshly initialized state with values from the previous state.

    Wells are matched by name, so wells may have been added, removed or reordered.
    For every matched well, the bottom-hole pressure and phase rates are copied.
    Segment and perforation values, and the current control index, are copied
    position by position only if the well has the same number of segments and
    perforations as before. The previous control index is kept only if it is a valid
    index for the well's current controls.

    Matching by counts does not detect segments whose perforations were reassigned
    while the counts stayed the same. Such wells get values copied to the wrong segments.

    :param state: The freshly initialized state. Modified in-place.
    :param previous: The state of the previous time step. Not modified.
    :param wells: The current wells, in well-index order.
    :return: A summary of what was carried over.
    """
    if previous is None or not previous.well_map:
        return ContinuationSummary()
    if previous.num_phases != state.num_phases:
        logger.warning(
            f"Previous well state tracks {previous.num_phases} phase(s), current state tracks "
            f"{state.num_phases}. Nothing is carried over."
        )
        return ContinuationSummary(new=tuple(well.name for well in wells))

    continued = []
    well_level_only = []
    new = []
    for well in wells:
        name = well.name
        this = state.well_map[name]
        old = previous.well_map.get(name)
        if old is None:
            new.append(name)
            continue

        w, old_w = this.well_index, old.well_index
        state.bhp[w] = previous.bhp[old_w]
        state.well_rates[w] = previous.well_rates[old_w]

        if not this.has_same_shape(old):
            logger.debug(
                f"Well {name!r} changed from {old.segment_count} segment(s)/{old.perforation_count} "
                f"perforation(s) to {this.segment_count}/{this.perforation_count}, "
                "keeping initial segment and perforation values"
            )
            well_level_only.append(name)
            continue

        segments, old_segments = this.segment_slice, old.segment_slice
        perforations, old_perforations = this.perforation_slice, old.perforation_slice
        state.segment_phase_rates[segments] = previous.segment_phase_rates[old_segments]
        state.segment_pressures[segments] = previous.segment_pressures[old_segments]
        state.perforation_phase_rates[perforations] = previous.perforation_phase_rates[
            old_perforations
        ]
        state.perforation_pressures[perforations] = previous.perforation_pressures[
            old_perforations
        ]

        old_control = int(previous.current_controls[old_w])
        if old_control < well.controls.num_controls:
            state.current_controls[w] = old_control
        else:
            logger.debug(
                f"Discarding control index {old_control} of well {name!r}, "
                f"only {well.controls.num_controls} control(s) configured"
            )
        continued.append(name)

    return ContinuationSummary(
        continued=tuple(continued),
        well_level_only=tuple(well_level_only),
        new=tuple(new),
    )
