#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Topology Information Module

Provides a simple interface to get the processor topology of the host
as a validated Pydantic BaseModel.
"""

from typing import Optional

from ..config import InspectionConfig
from .inspector import TopologyInspector
from .topology_schema import TopologyInfo


def discover_topology(config: Optional[InspectionConfig] = None) -> TopologyInfo:
    """
    Get the NUMA node, core and cache topology of the host.

    Without a config, settings are read from the HWINSPECT_* environment
    variables. Each call inspects the host again.

    Returns:
        TopologyInfo: A validated, immutable Pydantic BaseModel

    Raises:
        DiscoveryFailed: If the topology cannot be determined at all

    Example:
        >>> info = discover_topology()
        >>> print(info)
        >>> for node in info.nodes:
        ...     print(f"  {node}")
        ...     for core in node.cores:
        ...         print(f"    {core}")
        ...     for cache in node.caches:
        ...         print(f"    {cache}")
    """
    inspector = TopologyInspector(config or InspectionConfig.from_env())
    return inspector.inspect()
