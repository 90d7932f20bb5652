"""Composition of discovered nodes into the final TopologyInfo."""

from typing import Iterable

from ..exceptions import DiscoveryFailed
from .topology_schema import Architecture, Node, PartialData, TopologyInfo


def assemble_topology(nodes: Iterable[Node], partial_data: Iterable[PartialData] = ()) -> TopologyInfo:
    """
    Order nodes by id and classify the architecture.

    Args:
        nodes: Fully built nodes in any order
        partial_data: Annotations collected while building them

    Returns:
        TopologyInfo with UNIFORM architecture for exactly one node

    Raises:
        DiscoveryFailed: If there are no nodes, two nodes share an id, or no
            node holds any core
    """
    ordered = sorted(nodes, key=lambda n: n.id)
    if not ordered:
        raise DiscoveryFailed("no nodes were discovered")

    ids = [node.id for node in ordered]
    if len(set(ids)) != len(ids):
        raise DiscoveryFailed(f"duplicate node ids in {ids}")

    # Memory-only nodes are valid, but a host needs at least one core somewhere
    if not any(node.cores for node in ordered):
        raise DiscoveryFailed(f"no processor cores found in nodes {ids}")

    architecture = Architecture.UNIFORM if len(ordered) == 1 else Architecture.NON_UNIFORM
    return TopologyInfo(
        architecture=architecture,
        nodes=tuple(ordered),
        partial_data=tuple(partial_data),
    )
