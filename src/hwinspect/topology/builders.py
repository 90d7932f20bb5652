#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Platform-independent reconstruction of cores and caches.

The platform readers (linux_topology, windows_topology) turn raw sources into
flat per-processor reports. This module groups those reports into
ProcessorCore and MemoryCache entries:

- map_cores(): groups logical processors sharing a core identifier. Cores are
  indexed in discovery order, which is ascending logical processor order.
- build_caches(): every processor sharing a cache reports that cache, so the
  same physical cache shows up once per sharer. Reports are merged on a
  canonical key of (level, type, set of sharing processors). Size and level
  alone are not enough: two distinct L1d caches of identical size exist on
  every multi-core host.

Neither function raises for bad records. Problems are returned as PartialData
annotations next to the result.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from .topology_schema import CacheType, MemoryCache, PartialData, ProcessorCore

# Module logger
logger = logging.getLogger(__name__)

# Source cache-type codes: sysfs names and Windows PROCESSOR_CACHE_TYPE values
CACHE_TYPE_CODES: Dict[Union[str, int], CacheType] = {
    "data": CacheType.DATA,
    "instruction": CacheType.INSTRUCTION,
    "unified": CacheType.UNIFIED,
    0: CacheType.UNIFIED,      # CacheUnified
    1: CacheType.INSTRUCTION,  # CacheInstruction
    2: CacheType.DATA,         # CacheData
}


@dataclass(frozen=True)
class ThreadReport:
    """Core membership of one logical processor. core_id is None when it could not be read."""
    logical_processor_id: int
    core_id: Optional[int]
    package_id: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class CacheReport:
    """One cache description as reported by one logical processor."""
    logical_processor_id: int
    level: int
    type_code: Union[str, int]
    size_bytes: int
    shared_processor_ids: FrozenSet[int] = field(default_factory=frozenset)


def classify_cache_type(type_code: Union[str, int]) -> Optional[CacheType]:
    """
    Map a source cache-type code onto CacheType.

    Returns:
        The matching CacheType, or None for an unrecognized code
    """
    if isinstance(type_code, str):
        type_code = type_code.strip().lower()
    return CACHE_TYPE_CODES.get(type_code)


def map_cores(
    reports: Iterable[ThreadReport],
    node_id: Optional[int] = None,
) -> Tuple[List[ProcessorCore], List[PartialData]]:
    """
    Group logical processors into cores.

    Processors are visited in ascending ID order; a core seen for the first
    time gets the next index. Processors whose core identifier is missing are
    skipped and annotated. Thread counts always come from the collected
    processor sets, never from a summary count.

    Args:
        reports: One ThreadReport per logical processor of the node
        node_id: Node being mapped, used for annotations

    Returns:
        Tuple of (cores ordered by index, annotations)
    """
    annotations: List[PartialData] = []
    grouped: Dict[Tuple[Optional[int], int], List[int]] = {}
    order: List[Tuple[Optional[int], int]] = []
    seen_processors = set()

    for report in sorted(reports, key=lambda r: r.logical_processor_id):
        lp_id = report.logical_processor_id
        if lp_id in seen_processors:
            continue
        seen_processors.add(lp_id)

        if report.core_id is None:
            reason = report.error or "core identifier unavailable"
            annotations.append(PartialData(
                component="core",
                node_id=node_id,
                logical_processor_id=lp_id,
                message=f"skipped logical processor: {reason}",
            ))
            continue

        key = (report.package_id, report.core_id)
        if key not in grouped:
            grouped[key] = []
            order.append(key)
        grouped[key].append(lp_id)

    cores = []
    for index, key in enumerate(order):
        lp_ids = tuple(sorted(grouped[key]))
        cores.append(ProcessorCore(
            id=key[1],
            index=index,
            num_threads=len(lp_ids),
            logical_processor_ids=lp_ids,
        ))
    return cores, annotations


def build_caches(
    reports: Iterable[CacheReport],
    node_processors: Optional[Iterable[int]] = None,
    node_id: Optional[int] = None,
) -> Tuple[List[MemoryCache], List[PartialData]]:
    """
    Merge per-processor cache reports into one entry per physical cache.

    Args:
        reports: Cache reports from every logical processor of the node
        node_processors: Processors assigned to the node's cores; reports from
            other processors are ignored. None accepts every report.
        node_id: Node being built, used for annotations

    Returns:
        Tuple of (caches ordered by level, type and processors, annotations)
    """
    allowed = frozenset(node_processors) if node_processors is not None else None
    annotations: List[PartialData] = []
    merged: Dict[Tuple[int, CacheType, FrozenSet[int]], dict] = {}

    for report in sorted(reports, key=lambda r: r.logical_processor_id):
        lp_id = report.logical_processor_id
        if allowed is not None and lp_id not in allowed:
            continue

        cache_type = classify_cache_type(report.type_code)
        if cache_type is None:
            cache_type = CacheType.UNIFIED
            annotations.append(PartialData(
                component="cache",
                node_id=node_id,
                logical_processor_id=lp_id,
                message=f"unrecognized cache type {report.type_code!r} at level {report.level}, treated as unified",
            ))

        # A processor always shares its own cache
        sharers = frozenset(report.shared_processor_ids) | {lp_id}
        key = (report.level, cache_type, sharers)

        entry = merged.get(key)
        if entry is None:
            merged[key] = {"size_bytes": report.size_bytes, "processors": {lp_id}}
            continue

        entry["processors"].add(lp_id)
        if report.size_bytes != entry["size_bytes"]:
            annotations.append(PartialData(
                component="cache",
                node_id=node_id,
                logical_processor_id=lp_id,
                message=(
                    f"L{report.level + 1} {cache_type.value} cache size {report.size_bytes} "
                    f"disagrees with {entry['size_bytes']}, keeping first value"
                ),
            ))

    caches = [
        MemoryCache(
            type=cache_type,
            level=level,
            size_bytes=entry["size_bytes"],
            logical_processor_ids=tuple(sorted(entry["processors"])),
        )
        for (level, cache_type, _), entry in merged.items()
    ]
    caches.sort(key=_cache_sort_key)
    logger.debug(f"Merged cache reports into {len(caches)} caches for node {node_id}")
    return caches, annotations


def _cache_sort_key(cache: MemoryCache):
    return (cache.level, cache.type.sort_key, cache.logical_processor_ids)
