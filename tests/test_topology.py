"""
Tests for the flat-array layout of wells, segments and perforations.
"""

import numpy as np
import pytest

from mswells import TopologyError, ValidationError, WellType, build_topology


class TestSliceTiling:
    """Segment and perforation slices tile the global arrays."""

    def test_slices_tile_global_arrays(self, well_factory):
        """Test that slices are contiguous, in order and cover everything."""
        wells = [
            well_factory("A", segment_perforations=[[0], [1, 2]]),
            well_factory("B", segment_perforations=[[0, 1, 2, 3]]),
            well_factory("C", segment_perforations=[[], [0], [1], [2, 3, 4]]),
        ]
        topology = build_topology(wells)

        assert topology.num_segments == 2 + 1 + 4
        assert topology.num_perforations == 3 + 4 + 5

        segment_cover = np.zeros(topology.num_segments, dtype=int)
        perforation_cover = np.zeros(topology.num_perforations, dtype=int)
        previous_end = (0, 0)
        for well_index, entry in enumerate(topology.entries()):
            assert entry.well_index == well_index
            assert (entry.segment_start, entry.perforation_start) == previous_end
            segment_cover[entry.segment_slice] += 1
            perforation_cover[entry.perforation_slice] += 1
            previous_end = (
                entry.segment_start + entry.segment_count,
                entry.perforation_start + entry.perforation_count,
            )

        assert np.all(segment_cover == 1)
        assert np.all(perforation_cover == 1)

    def test_per_segment_counts_sum_to_well_count(self, well_factory):
        """Test the per-segment sub-slices of a well."""
        well = well_factory("C", segment_perforations=[[], [0], [1], [2, 3, 4]])
        entry = build_topology([well]).well_map["C"]

        assert sum(entry.perforation_count_in_segment) == entry.perforation_count
        assert entry.perforation_count_in_segment == (0, 1, 1, 3)
        assert entry.perforation_start_in_segment == (0, 0, 1, 2)
        assert entry.segment_perforation_slice(3) == slice(2, 5)

    def test_top_segment_locations(self, well_factory):
        """Test that each well's top segment is its first segment."""
        wells = [
            well_factory("A", segment_perforations=[[0], [1, 2]]),
            well_factory("B", segment_perforations=[[0, 1]]),
        ]
        topology = build_topology(wells)

        np.testing.assert_array_equal(topology.top_segment_locations, [0, 2])

    def test_empty_wells(self):
        """Test that no wells gives an empty topology."""
        topology = build_topology([])

        assert topology.num_wells == 0
        assert topology.num_segments == 0
        assert topology.num_perforations == 0
        assert topology.well_map == {}


class TestTopologyErrors:
    """Structural precondition violations are fatal."""

    def test_perforation_count_mismatch(self, well_factory):
        """Test segments holding fewer perforations than the well has."""
        well = well_factory(
            "A", segment_perforations=[[0], [1]], well_cells=[0, 1, 2]
        )
        with pytest.raises(TopologyError, match="hold 2 perforation"):
            build_topology([well])

    def test_perforations_not_numbered_by_segment(self, well_factory):
        """Test perforations must be numbered segment by segment."""
        well = well_factory("A", segment_perforations=[[], [0, 2], [1, 3]])
        with pytest.raises(TopologyError, match="segment by segment"):
            build_topology([well])

    def test_duplicate_names(self, well_factory):
        """Test that two wells with the same name are rejected."""
        with pytest.raises(TopologyError, match="Duplicate"):
            build_topology([well_factory("A"), well_factory("A")])

    def test_unknown_well_type(self, well_factory):
        """Test a well that is neither injector nor producer."""
        well = well_factory("A")
        object.__setattr__(well, "well_type", "observation")
        with pytest.raises(TopologyError, match="injector or producer"):
            build_topology([well])

    def test_mixed_phase_counts(self, well_factory):
        """Test that all wells must track the same phases."""
        wells = [well_factory("A", num_phases=2), well_factory("B", num_phases=3)]
        with pytest.raises(TopologyError, match="phase"):
            build_topology(wells)

    def test_topology_error_is_validation_error(self):
        """Test the error hierarchy."""
        assert issubclass(TopologyError, ValidationError)
        assert issubclass(TopologyError, ValueError)

    def test_unknown_type_rejected_on_construction(self, well_factory):
        """Test that unknown type names cannot be used to build a well."""
        with pytest.raises(ValueError):
            well_factory("A", well_type="observation")
        assert well_factory("A", well_type="injector").well_type == WellType.INJECTOR
