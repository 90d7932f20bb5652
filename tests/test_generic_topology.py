"""Tests for the psutil-based fallback topology."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from hwinspect import DiscoveryFailed, InspectionConfig
from hwinspect.topology import Architecture, TopologyInspector
from hwinspect.topology.generic_topology import discover_generic_nodes

_PSUTIL = "hwinspect.topology.generic_topology._get_psutil"


def fake_psutil(logical_count, physical_count):
    psutil = MagicMock()
    psutil.cpu_count.side_effect = lambda logical=True: logical_count if logical else physical_count
    return psutil


class TestGenericFallback:
    def test_threads_spread_over_cores(self):
        with patch(_PSUTIL, return_value=fake_psutil(8, 4)):
            nodes, notes = discover_generic_nodes()
        cores = nodes[0].cores
        assert len(cores) == 4
        assert cores[0].logical_processor_ids == (0, 1)
        assert cores[3].logical_processor_ids == (6, 7)
        assert nodes[0].caches == ()
        assert {n.component for n in notes} == {"core", "cache"}

    def test_leftover_threads_go_to_first_cores(self):
        with patch(_PSUTIL, return_value=fake_psutil(5, 2)):
            nodes, _ = discover_generic_nodes()
        cores = nodes[0].cores
        assert [c.logical_processor_ids for c in cores] == [(0, 1, 2), (3, 4)]

    def test_hybrid_counts_spread_one_per_core(self):
        # e.g. 4 performance cores with SMT plus 4 efficiency cores
        with patch(_PSUTIL, return_value=fake_psutil(12, 8)):
            nodes, _ = discover_generic_nodes()
        assert [c.num_threads for c in nodes[0].cores] == [2, 2, 2, 2, 1, 1, 1, 1]

    def test_unknown_physical_count(self):
        with patch(_PSUTIL, return_value=fake_psutil(4, None)):
            nodes, _ = discover_generic_nodes()
        assert [c.num_threads for c in nodes[0].cores] == [1, 1, 1, 1]

    def test_inspector_on_other_platform(self):
        config = InspectionConfig(platform="Darwin", disable_warnings=True)
        with patch(_PSUTIL, return_value=fake_psutil(2, 1)):
            info = TopologyInspector(config).inspect()
        assert info.architecture == Architecture.UNIFORM
        assert info.is_partial

    def test_missing_psutil_fails(self):
        config = InspectionConfig(platform="Darwin")
        with patch(_PSUTIL, return_value=None):
            with pytest.raises(DiscoveryFailed):
                TopologyInspector(config).inspect()

    def test_no_processors_fails(self):
        config = InspectionConfig(platform="FreeBSD")
        with patch(_PSUTIL, return_value=fake_psutil(None, None)):
            with pytest.raises(DiscoveryFailed):
                TopologyInspector(config).inspect()
