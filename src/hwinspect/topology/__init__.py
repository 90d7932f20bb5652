"""
Processor topology discovery.

Reports NUMA nodes, the physical cores and hardware threads in each node, and
the memory caches shared between them.
"""

from .topology_info import discover_topology
from .inspector import TopologyInspector
from .assembler import assemble_topology
from .topology_schema import (
    TopologyInfo,
    Node,
    NodeMemory,
    ProcessorCore,
    MemoryCache,
    PartialData,
    Architecture,
    CacheType,
)

__all__ = [
    # Primary API
    "discover_topology",
    "TopologyInspector",
    "assemble_topology",

    # Schemas
    "TopologyInfo",
    "Node",
    "NodeMemory",
    "ProcessorCore",
    "MemoryCache",
    "PartialData",
    "Architecture",
    "CacheType",
]
