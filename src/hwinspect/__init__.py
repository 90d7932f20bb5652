"""
hwinspect - Static host hardware inspection without elevated privileges.

Submodules:
    - hwinspect.topology: NUMA node, core and cache topology
"""

# Import submodules for namespace access (hwinspect.topology.discover_topology())
from . import topology

# Top-level convenience exports (most common operations)
from .topology import discover_topology, TopologyInfo, TopologyInspector
from .config import InspectionConfig
from .exceptions import SourceUnavailable, DiscoveryFailed

__version__ = "0.1.0"

__all__ = [
    # Submodules
    "topology",

    # Primary API
    "discover_topology",
    "TopologyInspector",
    "TopologyInfo",
    "InspectionConfig",

    # Errors
    "SourceUnavailable",
    "DiscoveryFailed",
]
