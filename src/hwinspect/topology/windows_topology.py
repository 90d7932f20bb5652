#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Windows-specific topology discovery via the Win32 API.

A single GetLogicalProcessorInformation query returns one row per
relationship between a set of logical processors (an affinity mask) and a
processor core, NUMA node, cache or package. The rows are normalized into the
same thread and cache reports the Linux reader produces, so both platforms
share the core mapper and cache builder.

Limitations:
- Windows does not number cores; the ordinal of each core row is used as id.
- GetLogicalProcessorInformation only covers the calling thread's processor
  group, so hosts with more than 64 logical processors are reported partially.
  The shortfall is detected against psutil's processor count and annotated.
"""

import ctypes
import logging
from ctypes import Structure, Union, byref, c_int, c_size_t, c_ubyte, c_ulong, c_ulonglong, c_ushort, sizeof
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..exceptions import SourceUnavailable
from ..utils import mask_to_ids, safe_import
from .builders import CacheReport, ThreadReport, build_caches, map_cores
from .topology_schema import Node, PartialData

# Module logger
logger = logging.getLogger(__name__)

# LOGICAL_PROCESSOR_RELATIONSHIP values (from winnt.h)
RELATION_PROCESSOR_CORE = 0
RELATION_NUMA_NODE = 1
RELATION_CACHE = 2
RELATION_PROCESSOR_PACKAGE = 3

ERROR_INSUFFICIENT_BUFFER = 122

QUERY_NAME = "GetLogicalProcessorInformation"


class CACHE_DESCRIPTOR(Structure):
    """Windows CACHE_DESCRIPTOR structure."""
    _fields_ = [
        ("Level", c_ubyte),
        ("Associativity", c_ubyte),
        ("LineSize", c_ushort),
        ("Size", c_ulong),
        ("Type", c_int),  # PROCESSOR_CACHE_TYPE
    ]


class _PROCESSOR_INFO_UNION(Union):
    _fields_ = [
        ("Flags", c_ubyte),        # ProcessorCore: 1 when threads share functional units
        ("NodeNumber", c_ulong),   # NumaNode
        ("Cache", CACHE_DESCRIPTOR),
        ("Reserved", c_ulonglong * 2),
    ]


class SYSTEM_LOGICAL_PROCESSOR_INFORMATION(Structure):
    """
    Windows SYSTEM_LOGICAL_PROCESSOR_INFORMATION structure.

    ProcessorMask is a ULONG_PTR affinity mask of the logical processors the
    row applies to. The union member to read depends on Relationship.
    """
    _fields_ = [
        ("ProcessorMask", c_size_t),
        ("Relationship", c_int),
        ("Info", _PROCESSOR_INFO_UNION),
    ]


@dataclass(frozen=True)
class ProcessorRecord:
    """One relationship row of the query result, decoupled from ctypes."""
    relationship: int
    processor_mask: int
    node_number: Optional[int] = None
    cache_level: Optional[int] = None
    cache_type: Optional[int] = None
    cache_size: Optional[int] = None


def query_logical_processor_information() -> List[ProcessorRecord]:
    """
    Run GetLogicalProcessorInformation and return its rows.

    Raises:
        SourceUnavailable: If the Win32 API is not available or the call fails
    """
    wintypes = safe_import("ctypes.wintypes")
    if not wintypes or not hasattr(ctypes, "WinDLL"):
        raise SourceUnavailable(QUERY_NAME, "Windows API not available on this platform", missing=True)

    kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
    length = c_ulong(0)

    # First call only reports the buffer size needed
    kernel32.GetLogicalProcessorInformation(None, byref(length))
    error = ctypes.get_last_error()
    if error != ERROR_INSUFFICIENT_BUFFER:
        raise SourceUnavailable(QUERY_NAME, f"unexpected error {error} while sizing buffer")

    count = length.value // sizeof(SYSTEM_LOGICAL_PROCESSOR_INFORMATION)
    buffer = (SYSTEM_LOGICAL_PROCESSOR_INFORMATION * count)()
    if not kernel32.GetLogicalProcessorInformation(buffer, byref(length)):
        raise SourceUnavailable(QUERY_NAME, f"call failed with error {ctypes.get_last_error()}")

    records = []
    for info in buffer[:length.value // sizeof(SYSTEM_LOGICAL_PROCESSOR_INFORMATION)]:
        if info.Relationship == RELATION_NUMA_NODE:
            records.append(ProcessorRecord(
                info.Relationship, info.ProcessorMask, node_number=info.Info.NodeNumber,
            ))
        elif info.Relationship == RELATION_CACHE:
            cache = info.Info.Cache
            records.append(ProcessorRecord(
                info.Relationship, info.ProcessorMask,
                cache_level=cache.Level, cache_type=cache.Type, cache_size=cache.Size,
            ))
        else:
            records.append(ProcessorRecord(info.Relationship, info.ProcessorMask))
    logger.debug(f"{QUERY_NAME} returned {len(records)} rows")
    return records


def _package_of(lp_id: int, packages: List[frozenset]) -> Optional[int]:
    for package_id, members in enumerate(packages):
        if lp_id in members:
            return package_id
    return None


def topology_from_records(records: List[ProcessorRecord]) -> Tuple[List[Node], List[PartialData]]:
    """
    Build nodes from GetLogicalProcessorInformation rows.

    A host without NUMA rows is treated as a single node 0 holding every
    processor that appears in a core row.

    Returns:
        Tuple of (nodes ordered by id, annotations)
    """
    annotations: List[PartialData] = []
    node_masks: Dict[int, frozenset] = {}
    packages: List[frozenset] = []
    thread_reports: List[ThreadReport] = []
    cache_reports: List[CacheReport] = []

    for record in records:
        if record.relationship == RELATION_NUMA_NODE:
            node_masks[record.node_number] = mask_to_ids(record.processor_mask)
        elif record.relationship == RELATION_PROCESSOR_PACKAGE:
            packages.append(mask_to_ids(record.processor_mask))

    core_ordinal = 0
    for record in records:
        members = mask_to_ids(record.processor_mask)
        if record.relationship == RELATION_PROCESSOR_CORE:
            for lp_id in members:
                thread_reports.append(ThreadReport(lp_id, core_ordinal, _package_of(lp_id, packages)))
            core_ordinal += 1
        elif record.relationship == RELATION_CACHE:
            if not record.cache_level:
                annotations.append(PartialData(
                    component="cache", message=f"skipped cache row with level {record.cache_level}",
                ))
                continue
            for lp_id in members:
                cache_reports.append(CacheReport(
                    logical_processor_id=lp_id,
                    level=record.cache_level - 1,
                    type_code=record.cache_type,
                    size_bytes=record.cache_size or 0,
                    shared_processor_ids=members,
                ))

    if not node_masks:
        node_masks = {0: frozenset(r.logical_processor_id for r in thread_reports)}

    claimed = set()
    nodes = []
    for node_id in sorted(node_masks):
        mask = node_masks[node_id]
        claimed.update(mask)
        cores, core_notes = map_cores([r for r in thread_reports if r.logical_processor_id in mask], node_id=node_id)
        assigned = {lp for core in cores for lp in core.logical_processor_ids}
        caches, cache_notes = build_caches(cache_reports, assigned, node_id=node_id)
        nodes.append(Node(id=node_id, cores=tuple(cores), caches=tuple(caches)))
        annotations.extend(core_notes + cache_notes)

    for report in thread_reports:
        if report.logical_processor_id not in claimed:
            annotations.append(PartialData(
                component="node",
                logical_processor_id=report.logical_processor_id,
                message="logical processor is not covered by any NUMA node",
            ))
    return nodes, annotations


def _get_psutil():
    return safe_import("psutil")


def check_processor_coverage(nodes: List[Node]) -> List[PartialData]:
    """
    Compare the processors found in the query rows with the host's logical processor count.

    Rows only cover one processor group, so larger hosts come back short.
    """
    psutil = _get_psutil()
    if not psutil:
        logger.debug("psutil not installed, processor coverage not checked")
        return []
    expected = psutil.cpu_count(logical=True)
    found = sum(len(node.logical_processor_ids) for node in nodes)
    if expected and found < expected:
        return [PartialData(
            component="node",
            message=f"{QUERY_NAME} reported {found} of {expected} logical processors; other processor groups are missing",
        )]
    return []


def discover_windows_nodes() -> Tuple[List[Node], List[PartialData]]:
    """
    Discover every node of a Windows host.

    Raises:
        SourceUnavailable: If the processor information query fails
    """
    nodes, annotations = topology_from_records(query_logical_processor_information())
    return nodes, annotations + check_processor_coverage(nodes)
