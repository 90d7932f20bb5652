#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Linux-specific topology discovery via /sys/devices/system.

Sources used:
- /sys/devices/system/node/node<N>/        NUMA nodes, their cpu<M> links,
                                            meminfo, distance and memory<K> blocks
- /sys/devices/system/cpu/cpu<M>/topology/ core_id and physical_package_id
- /sys/devices/system/cpu/cpu<M>/cache/index<K>/
                                            level, type, size, shared_cpu_list
                                            (or shared_cpu_map)
- /sys/devices/system/memory/block_size_bytes
- /proc/meminfo                             memory total of a host without nodes

Kernels built without NUMA support have no node directory at all. Such hosts
are reported as one synthesized node 0 holding every cpu<M> directory.
"""

import logging
from typing import List, Optional, Tuple

from ..exceptions import SourceUnavailable
from ..utils import parse_cpu_list, parse_cpu_mask
from .builders import CacheReport, ThreadReport, build_caches, map_cores
from .sources import PROC_MEMINFO, SYS_CPU_DIR, SYS_MEMORY_DIR, SYS_NODE_DIR, SysfsSource
from .topology_schema import Node, NodeMemory, PartialData

# Module logger
logger = logging.getLogger(__name__)

# Node id used when the host exposes no node abstraction
SYNTHESIZED_NODE_ID = 0

_SIZE_UNITS = {"K": 1024, "M": 1024 ** 2, "G": 1024 ** 3}


def _parse_cache_size(value_str: str) -> int:
    """
    Parse a sysfs cache size such as "32K" or "8M" into bytes.

    Raises:
        ValueError: If the value is not a size
    """
    value_str = value_str.strip().upper()
    if value_str.endswith("B"):
        value_str = value_str[:-1]
    multiplier = 1
    if value_str and value_str[-1] in _SIZE_UNITS:
        multiplier = _SIZE_UNITS[value_str[-1]]
        value_str = value_str[:-1]
    return int(value_str) * multiplier


def _parse_meminfo_total(lines: List[str]) -> Optional[int]:
    """
    Extract MemTotal in bytes from /proc/meminfo or a node meminfo file.

    Node files prefix every line with "Node <N> ", e.g.
    "Node 0 MemTotal:       16318404 kB".
    """
    for line in lines:
        if ':' not in line:
            continue
        key, value = line.split(':', 1)
        if key.split()[-1] != 'MemTotal':
            continue
        value = value.strip().replace('kB', '').replace('KB', '').strip()
        try:
            return int(value) * 1024
        except ValueError:
            return None
    return None


def enumerate_nodes(source: SysfsSource) -> List[int]:
    """
    Discover NUMA node ids in ascending order.

    Returns:
        Node ids; empty when the node directory exists but holds no nodes

    Raises:
        SourceUnavailable: If the node directory is missing or unreadable.
            The missing attribute tells the two cases apart.
    """
    node_ids = source.list_children(SYS_NODE_DIR, "node")
    logger.debug(f"Found {len(node_ids)} NUMA nodes under {SYS_NODE_DIR}")
    return node_ids


def node_processors(source: SysfsSource, node_id: Optional[int]) -> List[int]:
    """
    List logical processors of a node in ascending order.

    Args:
        source: Sysfs reader
        node_id: Node to list, or None for every processor of the host

    Raises:
        SourceUnavailable: If the directory cannot be listed
    """
    if node_id is None:
        return source.list_children(SYS_CPU_DIR, "cpu")
    return source.list_children(f"{SYS_NODE_DIR}/node{node_id}", "cpu")


def read_thread_reports(source: SysfsSource, processor_ids: List[int]) -> List[ThreadReport]:
    """Read core and package identifiers for each logical processor."""
    reports = []
    for lp_id in processor_ids:
        topology_dir = f"{SYS_CPU_DIR}/cpu{lp_id}/topology"
        try:
            core_id = source.read_int(f"{topology_dir}/core_id")
        except SourceUnavailable as e:
            reports.append(ThreadReport(lp_id, None, error=str(e)))
            continue
        try:
            package_id = source.read_int(f"{topology_dir}/physical_package_id")
        except SourceUnavailable:
            package_id = None
        reports.append(ThreadReport(lp_id, core_id, package_id))
    return reports


def _read_shared_processors(source: SysfsSource, index_dir: str) -> Optional[frozenset]:
    try:
        return parse_cpu_list(source.read_value(f"{index_dir}/shared_cpu_list"))
    except (SourceUnavailable, ValueError):
        pass
    try:
        return parse_cpu_mask(source.read_value(f"{index_dir}/shared_cpu_map"))
    except (SourceUnavailable, ValueError):
        return None


def read_cache_reports(
    source: SysfsSource,
    processor_ids: List[int],
    node_id: Optional[int] = None,
) -> Tuple[List[CacheReport], List[PartialData]]:
    """
    Read every cache description reported by each logical processor.

    A processor without a cache directory contributes nothing; some
    virtualized and embedded hosts do not expose caches at all. A cache index
    with unreadable fields is skipped and annotated.

    Returns:
        Tuple of (reports, annotations)
    """
    reports: List[CacheReport] = []
    annotations: List[PartialData] = []

    for lp_id in processor_ids:
        cache_dir = f"{SYS_CPU_DIR}/cpu{lp_id}/cache"
        try:
            indexes = source.list_children(cache_dir, "index")
        except SourceUnavailable:
            logger.debug(f"No cache information for cpu{lp_id}")
            continue

        for index in indexes:
            index_dir = f"{cache_dir}/index{index}"
            try:
                level = source.read_int(f"{index_dir}/level")
                type_code = source.read_value(f"{index_dir}/type")
                size_bytes = _parse_cache_size(source.read_value(f"{index_dir}/size"))
            except (SourceUnavailable, ValueError) as e:
                annotations.append(PartialData(
                    component="cache",
                    node_id=node_id,
                    logical_processor_id=lp_id,
                    message=f"skipped cache index{index}: {e}",
                ))
                continue

            if level < 1:
                annotations.append(PartialData(
                    component="cache",
                    node_id=node_id,
                    logical_processor_id=lp_id,
                    message=f"skipped cache index{index}: invalid level {level}",
                ))
                continue

            shared = _read_shared_processors(source, index_dir)
            if shared is None:
                annotations.append(PartialData(
                    component="cache",
                    node_id=node_id,
                    logical_processor_id=lp_id,
                    message=f"sharing information unavailable for cache index{index}",
                ))
                shared = frozenset()

            # sysfs numbers cache levels from 1
            reports.append(CacheReport(
                logical_processor_id=lp_id,
                level=level - 1,
                type_code=type_code,
                size_bytes=size_bytes,
                shared_processor_ids=shared,
            ))
    return reports, annotations


def read_node_memory(
    source: SysfsSource,
    node_id: Optional[int],
) -> Tuple[Optional[NodeMemory], List[PartialData]]:
    """
    Read the memory area local to a node.

    Usable memory comes from the node's meminfo (or /proc/meminfo for the
    synthesized node). Physical memory is the number of memory blocks linked
    to the node times the block size; it stays None when memory blocks are
    not exposed.
    """
    annotations: List[PartialData] = []
    if node_id is None:
        meminfo_path = PROC_MEMINFO
        blocks_dir = SYS_MEMORY_DIR
    else:
        meminfo_path = f"{SYS_NODE_DIR}/node{node_id}/meminfo"
        blocks_dir = f"{SYS_NODE_DIR}/node{node_id}"
    report_id = SYNTHESIZED_NODE_ID if node_id is None else node_id

    usable = None
    try:
        usable = _parse_meminfo_total(source.read_lines(meminfo_path))
        if usable is None:
            annotations.append(PartialData(
                component="memory", node_id=report_id, message=f"no MemTotal in {meminfo_path}",
            ))
    except SourceUnavailable as e:
        annotations.append(PartialData(component="memory", node_id=report_id, message=str(e)))

    physical = None
    try:
        block_size = source.read_int(f"{SYS_MEMORY_DIR}/block_size_bytes", base=16)
        blocks = source.list_children(blocks_dir, "memory")
        if blocks:
            physical = block_size * len(blocks)
    except SourceUnavailable:
        logger.debug(f"Memory blocks not exposed for node {report_id}")

    if usable is None and physical is None:
        return None, annotations
    return NodeMemory(total_physical_bytes=physical, total_usable_bytes=usable), annotations


def read_node_distances(source: SysfsSource, node_id: int) -> Tuple[Tuple[int, ...], List[PartialData]]:
    """Read the NUMA distance row of a node ("10 21")."""
    path = f"{SYS_NODE_DIR}/node{node_id}/distance"
    try:
        return tuple(int(d) for d in source.read_value(path).split()), []
    except SourceUnavailable as e:
        return (), [PartialData(component="node", node_id=node_id, message=str(e))]
    except ValueError:
        return (), [PartialData(component="node", node_id=node_id, message=f"malformed distances in {path}")]


def build_linux_node(source: SysfsSource, node_id: Optional[int]) -> Tuple[Node, List[PartialData]]:
    """
    Build one node: cores first, then caches of the processors those cores hold.

    Args:
        source: Sysfs reader
        node_id: Node to build, or None to synthesize node 0 from all processors

    Raises:
        SourceUnavailable: If the node's processors cannot be listed
    """
    report_id = SYNTHESIZED_NODE_ID if node_id is None else node_id
    processor_ids = node_processors(source, node_id)

    cores, annotations = map_cores(read_thread_reports(source, processor_ids), node_id=report_id)
    assigned = sorted({lp for core in cores for lp in core.logical_processor_ids})

    cache_reports, cache_notes = read_cache_reports(source, assigned, node_id=report_id)
    caches, merge_notes = build_caches(cache_reports, assigned, node_id=report_id)

    if node_id is None:
        distances, distance_notes = (), []
    else:
        distances, distance_notes = read_node_distances(source, node_id)
    memory, memory_notes = read_node_memory(source, node_id)

    node = Node(
        id=report_id,
        cores=tuple(cores),
        caches=tuple(caches),
        distances=distances,
        memory=memory,
    )
    return node, annotations + cache_notes + merge_notes + distance_notes + memory_notes


def discover_linux_nodes(source: SysfsSource) -> Tuple[List[Node], List[PartialData]]:
    """
    Discover every node of a Linux host.

    Returns:
        Tuple of (nodes ordered by id, annotations)

    Raises:
        SourceUnavailable: If the node directory exists but cannot be listed,
            or no processor directory can be listed at all
    """
    try:
        node_ids = enumerate_nodes(source)
    except SourceUnavailable as e:
        if not e.missing:
            raise
        logger.debug(f"{SYS_NODE_DIR} not present, assuming a uniform host")
        node_ids = []

    if not node_ids:
        node, annotations = build_linux_node(source, None)
        return [node], annotations

    nodes: List[Node] = []
    annotations: List[PartialData] = []
    for node_id in node_ids:
        node, notes = build_linux_node(source, node_id)
        nodes.append(node)
        annotations.extend(notes)
    return nodes, annotations
