"""Shared fixtures for well state tests."""

import typing

import numpy as np
import pytest

from mswells import (
    Control,
    MultiSegmentWell,
    ReservoirState,
    WellControls,
    bhp_control,
)


def make_well(
    name: str,
    well_type: str = "producer",
    segment_perforations: typing.Sequence[typing.Sequence[int]] = ([], [0, 1], [2, 3]),
    well_cells: typing.Optional[typing.Sequence[int]] = None,
    controls: typing.Optional[typing.Sequence[Control]] = None,
    current: int = 0,
    is_stopped: bool = False,
    num_phases: int = 2,
    **kwargs,
) -> MultiSegmentWell:
    """Build a well with sensible defaults for tests."""
    num_perforations = sum(len(perforations) for perforations in segment_perforations)
    if well_cells is None:
        well_cells = list(range(num_perforations))
    if controls is None:
        controls = [bhp_control(200e5)]
    return MultiSegmentWell(
        name=name,
        well_type=well_type,
        num_phases=num_phases,
        controls=WellControls(controls, current=current, is_stopped=is_stopped),
        segment_perforations=segment_perforations,
        well_cells=well_cells,
        **kwargs,
    )


@pytest.fixture
def reservoir() -> ReservoirState:
    """Reservoir with 20 cells and a linear pressure profile."""
    return ReservoirState(pressure=250e5 + 1e5 * np.arange(20))


@pytest.fixture
def well_factory():
    """Factory building test wells."""
    return make_well
