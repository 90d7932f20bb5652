"""Tests for hwinspect.topology.windows_topology using synthetic query rows."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock, patch

import pytest

from hwinspect import DiscoveryFailed, InspectionConfig, SourceUnavailable
from hwinspect.topology import Architecture, CacheType, TopologyInspector
from hwinspect.topology.windows_topology import (
    RELATION_CACHE,
    RELATION_NUMA_NODE,
    RELATION_PROCESSOR_CORE,
    RELATION_PROCESSOR_PACKAGE,
    ProcessorRecord,
    check_processor_coverage,
    query_logical_processor_information,
    topology_from_records,
)

_PSUTIL = "hwinspect.topology.windows_topology._get_psutil"


def fake_psutil(logical_count):
    psutil = MagicMock()
    psutil.cpu_count.return_value = logical_count
    return psutil


def core(mask):
    return ProcessorRecord(RELATION_PROCESSOR_CORE, mask)


def numa(node, mask):
    return ProcessorRecord(RELATION_NUMA_NODE, mask, node_number=node)


def cache(mask, level, cache_type, size):
    return ProcessorRecord(RELATION_CACHE, mask, cache_level=level, cache_type=cache_type, cache_size=size)


def package(mask):
    return ProcessorRecord(RELATION_PROCESSOR_PACKAGE, mask)


@pytest.fixture
def single_socket_records():
    """Two cores with two threads each, L1d per core, shared L2; one NUMA row."""
    return [
        core(0b0011),
        cache(0b0011, 1, 2, 32768),
        core(0b1100),
        cache(0b1100, 1, 2, 32768),
        cache(0b1111, 2, 0, 262144),
        package(0b1111),
        numa(0, 0b1111),
    ]


class TestTopologyFromRecords:
    def test_single_node(self, single_socket_records):
        nodes, notes = topology_from_records(single_socket_records)
        assert notes == []
        assert len(nodes) == 1
        node = nodes[0]
        assert [c.logical_processor_ids for c in node.cores] == [(0, 1), (2, 3)]
        assert [c.id for c in node.cores] == [0, 1]
        assert [(c.level, c.type, c.logical_processor_ids) for c in node.caches] == [
            (0, CacheType.DATA, (0, 1)),
            (0, CacheType.DATA, (2, 3)),
            (1, CacheType.UNIFIED, (0, 1, 2, 3)),
        ]

    def test_two_numa_nodes(self):
        records = [
            core(0b01), core(0b10),
            cache(0b01, 3, 0, 1 << 20), cache(0b10, 3, 0, 1 << 20),
            numa(1, 0b10), numa(0, 0b01),
        ]
        nodes, _ = topology_from_records(records)
        assert [n.id for n in nodes] == [0, 1]
        assert nodes[1].cores[0].logical_processor_ids == (1,)
        assert nodes[1].cores[0].index == 0
        assert nodes[1].caches[0].logical_processor_ids == (1,)

    def test_no_numa_rows_synthesizes_node_zero(self):
        nodes, _ = topology_from_records([core(0b1), core(0b10)])
        assert [n.id for n in nodes] == [0]
        assert len(nodes[0].cores) == 2

    def test_trace_cache_is_annotated(self):
        nodes, notes = topology_from_records([core(0b1), cache(0b1, 1, 3, 12288), numa(0, 0b1)])
        assert nodes[0].caches[0].type == CacheType.UNIFIED
        assert notes[0].component == "cache"

    def test_processor_outside_numa_nodes_is_annotated(self):
        nodes, notes = topology_from_records([core(0b1), core(0b10), numa(0, 0b1)])
        assert nodes[0].logical_processor_ids == (0,)
        assert [n.logical_processor_id for n in notes] == [1]

    def test_invalid_cache_level_skipped(self):
        nodes, notes = topology_from_records([core(0b1), cache(0b1, 0, 0, 1024)])
        assert nodes[0].caches == ()
        assert len(notes) == 1


class TestWindowsInspector:
    def test_inspect_uses_query_rows(self, single_socket_records):
        config = InspectionConfig(platform="Windows", disable_warnings=True)
        with patch(
            "hwinspect.topology.windows_topology.query_logical_processor_information",
            return_value=single_socket_records,
        ), patch(_PSUTIL, return_value=fake_psutil(4)):
            info = TopologyInspector(config).inspect()
        assert info.architecture == Architecture.UNIFORM
        assert len(info.nodes[0].cores) == 2
        assert info.partial_data == ()

    def test_no_core_rows_fails(self):
        config = InspectionConfig(platform="Windows")
        with patch(
            "hwinspect.topology.windows_topology.query_logical_processor_information",
            return_value=[numa(0, 0b1)],
        ), patch(_PSUTIL, return_value=None):
            with pytest.raises(DiscoveryFailed):
                TopologyInspector(config).inspect()

    def test_query_failure_becomes_discovery_failed(self):
        config = InspectionConfig(platform="Windows")
        failure = SourceUnavailable("GetLogicalProcessorInformation", "call failed")
        with patch(
            "hwinspect.topology.windows_topology.query_logical_processor_information",
            side_effect=failure,
        ):
            with pytest.raises(DiscoveryFailed) as excinfo:
                TopologyInspector(config).inspect()
        assert excinfo.value.__cause__ is failure


@pytest.mark.skipif(sys.platform == "win32", reason="checks behaviour off Windows")
def test_query_unavailable_off_windows():
    with pytest.raises(SourceUnavailable) as excinfo:
        query_logical_processor_information()
    assert excinfo.value.missing


class TestProcessorCoverage:
    def test_missing_processor_groups_annotated(self, single_socket_records):
        nodes, _ = topology_from_records(single_socket_records)
        with patch(_PSUTIL, return_value=fake_psutil(128)):
            notes = check_processor_coverage(nodes)
        assert len(notes) == 1
        assert notes[0].component == "node"
        assert "4 of 128" in notes[0].message

    def test_full_coverage_not_annotated(self, single_socket_records):
        nodes, _ = topology_from_records(single_socket_records)
        with patch(_PSUTIL, return_value=fake_psutil(4)):
            assert check_processor_coverage(nodes) == []

    def test_without_psutil_not_annotated(self, single_socket_records):
        nodes, _ = topology_from_records(single_socket_records)
        with patch(_PSUTIL, return_value=None):
            assert check_processor_coverage(nodes) == []

    def test_inspect_reports_shortfall(self, single_socket_records):
        config = InspectionConfig(platform="Windows", disable_warnings=True)
        with patch(
            "hwinspect.topology.windows_topology.query_logical_processor_information",
            return_value=single_socket_records,
        ), patch(_PSUTIL, return_value=fake_psutil(72)):
            info = TopologyInspector(config).inspect()
        assert [n.component for n in info.partial_data] == ["node"]
