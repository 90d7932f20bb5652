#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fallback topology for platforms without a dedicated reader.

psutil only reports processor counts, not which logical processor belongs to
which core. The fallback reports a single uniform node and spreads logical
processors over physical cores in order, with any leftover threads going one
each to the first cores. The result is annotated so callers
can tell the mapping was inferred.
"""

import logging
from typing import List, Tuple

from ..exceptions import SourceUnavailable
from ..utils import safe_import
from .builders import ThreadReport, map_cores
from .topology_schema import Node, PartialData

# Module logger
logger = logging.getLogger(__name__)


def _get_psutil():
    return safe_import("psutil")


def discover_generic_nodes() -> Tuple[List[Node], List[PartialData]]:
    """
    Build a single node from psutil processor counts.

    Raises:
        SourceUnavailable: If psutil is missing or reports no processors
    """
    psutil = _get_psutil()
    if not psutil:
        raise SourceUnavailable("psutil.cpu_count", "psutil is not installed", missing=True)

    logical = psutil.cpu_count(logical=True)
    if not logical:
        raise SourceUnavailable("psutil.cpu_count", "logical processor count unavailable")
    physical = psutil.cpu_count(logical=False) or logical
    physical = min(physical, logical)

    annotations = [
        PartialData(
            component="core",
            node_id=0,
            message=f"core mapping inferred from counts ({physical} cores, {logical} logical processors)",
        ),
        PartialData(component="cache", node_id=0, message="cache information not available on this platform"),
    ]

    # The first `extra` cores take one leftover thread each
    base, extra = divmod(logical, physical)
    reports = []
    lp_id = 0
    for core_id in range(physical):
        for _ in range(base + (1 if core_id < extra else 0)):
            reports.append(ThreadReport(lp_id, core_id))
            lp_id += 1
    cores, core_notes = map_cores(reports, node_id=0)
    logger.debug(f"Inferred {len(cores)} cores from psutil counts")
    return [Node(id=0, cores=tuple(cores))], annotations + core_notes
