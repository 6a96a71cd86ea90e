"""
Tests for carrying well state values over from the previous time step.
"""

import numpy as np
import pytest

from mswells import (
    Config,
    ReservoirState,
    WellState,
    bhp_control,
    rate_control,
    thp_control,
)


def _scramble(state: WellState, seed: int = 42) -> WellState:
    """Overwrite every value of a state, as a nonlinear solve would."""
    rng = np.random.default_rng(seed)
    for array in (
        state.bhp,
        state.thp,
        state.well_rates,
        state.segment_pressures,
        state.segment_phase_rates,
        state.perforation_pressures,
        state.perforation_phase_rates,
    ):
        array[...] = rng.uniform(1.0, 100.0, size=array.shape)
    return state


@pytest.fixture
def network(well_factory):
    return [
        well_factory("A", segment_perforations=[[0], [1, 2]], well_cells=[0, 1, 2]),
        well_factory(
            "B",
            well_type="injector",
            segment_perforations=[[], [0], [1], [2, 3]],
            well_cells=[5, 6, 7, 8],
            controls=[rate_control(50.0, (1.0, 0.0))],
        ),
        well_factory("C", segment_perforations=[[0, 1]], well_cells=[10, 11]),
    ]


class TestStructuralMatch:
    """Wells with unchanged structure get all their values carried over."""

    def test_exact_copy_with_reordered_wells(self, network, reservoir):
        """Test every value is carried over even when wells are reordered."""
        previous = _scramble(WellState.from_wells(network, reservoir))
        reordered = [network[2], network[0], network[1]]
        state = WellState.from_wells(reordered, reservoir, previous_state=previous)

        for name in ("A", "B", "C"):
            old = previous.well_map[name]
            new = state.well_map[name]
            assert state.bhp[new.well_index] == previous.bhp[old.well_index]
            np.testing.assert_array_equal(
                state.well_rates[new.well_index], previous.well_rates[old.well_index]
            )
            np.testing.assert_array_equal(
                state.segment_pressures_of(name), previous.segment_pressures_of(name)
            )
            np.testing.assert_array_equal(
                state.segment_phase_rates_of(name), previous.segment_phase_rates_of(name)
            )
            np.testing.assert_array_equal(
                state.perforation_pressures_of(name),
                previous.perforation_pressures_of(name),
            )
            np.testing.assert_array_equal(
                state.perforation_phase_rates_of(name),
                previous.perforation_phase_rates_of(name),
            )

        assert set(state.continuation.continued) == {"A", "B", "C"}

    def test_thp_not_carried_over(self, network, reservoir):
        """Test the tubing-head pressure keeps its fresh guess."""
        previous = _scramble(WellState.from_wells(network, reservoir))
        fresh = WellState.from_wells(network, reservoir)
        state = WellState.from_wells(network, reservoir, previous_state=previous)

        np.testing.assert_array_equal(state.thp, fresh.thp)

    def test_continuation_disabled(self, network, reservoir):
        """Test that the config can switch carry-over off."""
        previous = _scramble(WellState.from_wells(network, reservoir))
        fresh = WellState.from_wells(network, reservoir)
        state = WellState.from_wells(
            network, reservoir, previous_state=previous, config=Config(continuation=False)
        )

        np.testing.assert_array_equal(state.bhp, fresh.bhp)
        np.testing.assert_array_equal(
            state.perforation_phase_rates, fresh.perforation_phase_rates
        )

    def test_reinit_from_itself(self, network, reservoir):
        """Test that a state can be re-initialized with itself as the previous state."""
        state = _scramble(WellState.from_wells(network, reservoir))
        expected_bhp = state.bhp.copy()
        state.init(network, reservoir, previous_state=state)

        np.testing.assert_array_equal(state.bhp, expected_bhp)


class TestStructuralMismatch:
    """Wells whose structure changed keep their fresh segment and perforation values."""

    def test_perforation_count_change(self, network, well_factory, reservoir):
        """Test only well-level values are carried over when perforations change."""
        previous = _scramble(WellState.from_wells(network, reservoir))
        changed = list(network)
        changed[0] = well_factory(
            "A", segment_perforations=[[0], [1, 2, 3]], well_cells=[0, 1, 2, 3]
        )
        fresh = WellState.from_wells(changed, reservoir)
        state = WellState.from_wells(changed, reservoir, previous_state=previous)

        np.testing.assert_array_equal(
            state.perforation_pressures_of("A"), fresh.perforation_pressures_of("A")
        )
        np.testing.assert_array_equal(
            state.perforation_phase_rates_of("A"), fresh.perforation_phase_rates_of("A")
        )
        np.testing.assert_array_equal(
            state.segment_pressures_of("A"), fresh.segment_pressures_of("A")
        )
        np.testing.assert_array_equal(
            state.segment_phase_rates_of("A"), fresh.segment_phase_rates_of("A")
        )
        assert state.bhp[0] == previous.bhp[0]
        np.testing.assert_array_equal(state.well_rates[0], previous.well_rates[0])
        assert state.continuation.well_level_only == ("A",)

        # Unchanged wells are still fully carried over
        np.testing.assert_array_equal(
            state.perforation_pressures_of("C"), previous.perforation_pressures_of("C")
        )

    def test_control_index_not_carried_on_mismatch(self, well_factory, reservoir):
        """Test the control index is left fresh when the structure changed."""
        controls = [bhp_control(100e5), thp_control(20e5)]
        old_well = well_factory("A", controls=controls, current=1)
        new_well = well_factory(
            "A",
            controls=controls,
            segment_perforations=[[0], [1]],
            well_cells=[0, 1],
        )
        previous = WellState.from_wells([old_well], reservoir)
        state = WellState.from_wells([new_well], reservoir, previous_state=previous)

        assert state.current_controls[0] == 0

    def test_new_and_removed_wells(self, network, well_factory, reservoir):
        """Test wells absent from the previous state keep their fresh guess."""
        previous = _scramble(WellState.from_wells(network[:2], reservoir))
        wells = [network[1], well_factory("D", well_cells=[12, 13, 14, 15])]
        fresh = WellState.from_wells(wells, reservoir)
        state = WellState.from_wells(wells, reservoir, previous_state=previous)

        assert state.bhp[1] == fresh.bhp[1]
        np.testing.assert_array_equal(
            state.perforation_pressures_of("D"), fresh.perforation_pressures_of("D")
        )
        assert state.continuation.new == ("D",)
        assert "A" not in state.well_map


class TestControlIndex:
    """Carried-over control indices are always valid for the current controls."""

    def test_valid_index_carried_over(self, well_factory, reservoir):
        """Test a previous control index still in range is kept."""
        controls = [bhp_control(100e5), thp_control(20e5), rate_control(-5.0, (1.0, 0.0))]
        previous = WellState.from_wells(
            [well_factory("A", controls=controls, current=2)], reservoir
        )
        state = WellState.from_wells(
            [well_factory("A", controls=controls, current=0)],
            reservoir,
            previous_state=previous,
        )

        assert state.current_controls[0] == 2

    def test_stale_index_discarded(self, well_factory, reservoir):
        """Test a previous control index out of range is replaced by the fresh one."""
        previous = WellState.from_wells(
            [
                well_factory(
                    "A",
                    controls=[bhp_control(100e5), thp_control(20e5), bhp_control(90e5)],
                    current=2,
                )
            ],
            reservoir,
        )
        current_well = well_factory(
            "A", controls=[bhp_control(100e5), thp_control(20e5)], current=1
        )
        state = WellState.from_wells([current_well], reservoir, previous_state=previous)

        assert state.current_controls[0] < current_well.controls.num_controls
        assert state.current_controls[0] != previous.current_controls[0]
        assert state.current_controls[0] == 1


class TestNoPreviousState:
    """An empty previous state means nothing is carried over."""

    def test_empty_previous_state(self, network, reservoir):
        """Test that an empty state behaves like no previous state."""
        fresh = WellState.from_wells(network, reservoir)
        state = WellState.from_wells(network, reservoir, previous_state=WellState())

        np.testing.assert_array_equal(state.bhp, fresh.bhp)
        assert state.continuation.is_empty

    def test_different_phase_count(self, well_factory):
        """Test a previous state with other phases is ignored."""
        reservoir = ReservoirState(pressure=np.full(4, 100e5))
        previous = _scramble(
            WellState.from_wells([well_factory("A", num_phases=3)], reservoir)
        )
        fresh = WellState.from_wells([well_factory("A")], reservoir)
        state = WellState.from_wells(
            [well_factory("A")], reservoir, previous_state=previous
        )

        np.testing.assert_array_equal(state.well_rates, fresh.well_rates)
        assert state.continuation.new == ("A",)
