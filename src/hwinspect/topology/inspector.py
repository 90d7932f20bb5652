#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Cross-platform processor topology inspector.

Nothing is cached between calls: every inspect() reads the host again and
returns a new immutable TopologyInfo. Callers that want to reuse a result keep
it themselves.

Only read access is needed. Sources are:
1. Linux: the /sys pseudo-filesystem (see linux_topology)
2. Windows: GetLogicalProcessorInformation (see windows_topology)
3. Anything else: psutil processor counts (see generic_topology)
"""

import logging
import platform
from typing import List, Optional, Tuple

from ..config import InspectionConfig
from ..exceptions import DiscoveryFailed, SourceUnavailable
from .assembler import assemble_topology
from .generic_topology import discover_generic_nodes
from .linux_topology import discover_linux_nodes
from .sources import SysfsSource
from .topology_schema import Node, PartialData, TopologyInfo
from .windows_topology import discover_windows_nodes

# Module logger
logger = logging.getLogger(__name__)


class TopologyInspector:
    """
    Inspects the NUMA node, core and cache topology of the host.

    Example:
        >>> inspector = TopologyInspector(InspectionConfig(chroot="/mnt/snapshot"))
        >>> info = inspector.inspect()
        >>> print(info)
        topology SMP (1 nodes)
    """

    def __init__(self, config: Optional[InspectionConfig] = None):
        """Initializes the TopologyInspector."""
        self.config = config or InspectionConfig()

    @property
    def platform(self) -> str:
        return self.config.platform or platform.system()

    def _discover_nodes(self) -> Tuple[List[Node], List[PartialData]]:
        system = self.platform
        if system == "Linux":
            return discover_linux_nodes(SysfsSource(self.config.chroot))
        elif system == "Windows":
            return discover_windows_nodes()
        else:
            logger.debug(f"No dedicated topology reader for {system}, using processor counts")
            return discover_generic_nodes()

    def _report(self, partial_data: List[PartialData]) -> None:
        """Log partial data annotations using the module logger."""
        if self.config.disable_warnings:
            return
        for note in partial_data:
            logger.warning(f"Partial topology data: {note}")

    def inspect(self) -> TopologyInfo:
        """
        Discover the topology of the host.

        Returns:
            TopologyInfo: A validated, immutable topology result

        Raises:
            DiscoveryFailed: If nodes cannot be discovered at all. The underlying
                SourceUnavailable is available as __cause__.
        """
        try:
            nodes, partial_data = self._discover_nodes()
        except SourceUnavailable as e:
            raise DiscoveryFailed(str(e), platform=self.platform) from e

        self._report(partial_data)
        info = assemble_topology(nodes, partial_data)
        logger.debug(f"Discovered {info}")
        return info
