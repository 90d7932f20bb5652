#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Topology Schema Definitions

Pydantic BaseModel schemas that define the output structure of
TopologyInspector.inspect().

The hierarchy is TopologyInfo -> Node -> (ProcessorCore, MemoryCache). Every
model is frozen and every collection is a tuple, so a result is immutable once
it has been built and two results describing the same host compare equal.
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..utils import format_cpu_ids


class Architecture(str, Enum):
    """Overall memory/processor architecture of the host."""
    UNIFORM = "uniform"
    NON_UNIFORM = "non_uniform"

    @property
    def label(self) -> str:
        """Short conventional name ('SMP' or 'NUMA')."""
        return "SMP" if self is Architecture.UNIFORM else "NUMA"


class CacheType(str, Enum):
    """Kind of data a memory cache holds."""
    DATA = "data"
    INSTRUCTION = "instruction"
    UNIFIED = "unified"

    @property
    def sort_key(self) -> int:
        """Position in deterministic output order: Data, Instruction, Unified."""
        return _CACHE_TYPE_ORDER[self]


_CACHE_TYPE_ORDER = {
    CacheType.DATA: 0,
    CacheType.INSTRUCTION: 1,
    CacheType.UNIFIED: 2,
}

_CACHE_TYPE_SUFFIX = {
    CacheType.DATA: "d",
    CacheType.INSTRUCTION: "i",
    CacheType.UNIFIED: "",
}


class PartialData(BaseModel):
    """A non-fatal annotation describing a record that was missing or inconsistent."""
    component: str = Field(..., description="Discovery step that produced the annotation ('node', 'core', 'cache', 'memory')")
    message: str = Field(..., description="Human-readable description of the problem")
    node_id: Optional[int] = Field(None, description="Node the record belongs to, if known")
    logical_processor_id: Optional[int] = Field(None, description="Logical processor the record belongs to, if known")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        where = []
        if self.node_id is not None:
            where.append(f"node {self.node_id}")
        if self.logical_processor_id is not None:
            where.append(f"cpu {self.logical_processor_id}")
        location = f" [{', '.join(where)}]" if where else ""
        return f"{self.component}{location}: {self.message}"


class ProcessorCore(BaseModel):
    """A physical core and the logical processors (hardware threads) it exposes."""
    id: int = Field(..., description="Host-assigned core identifier (not unique across nodes)")
    index: int = Field(..., ge=0, description="Zero-based position of the core within its node")
    num_threads: int = Field(..., ge=1, description="Number of logical processors bound to this core")
    logical_processor_ids: Tuple[int, ...] = Field(..., description="Sorted logical processor IDs bound to this core")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_threads(self) -> "ProcessorCore":
        if not self.logical_processor_ids:
            raise ValueError("a processor core needs at least one logical processor")
        if len(set(self.logical_processor_ids)) != len(self.logical_processor_ids):
            raise ValueError("logical processor IDs must be unique")
        if self.num_threads != len(self.logical_processor_ids):
            raise ValueError(
                f"num_threads={self.num_threads} does not match "
                f"{len(self.logical_processor_ids)} logical processors"
            )
        return self

    def __str__(self) -> str:
        return (
            f"processor core #{self.index} ({self.num_threads} threads), "
            f"logical processors {list(self.logical_processor_ids)}"
        )


class MemoryCache(BaseModel):
    """One physical cache instance and the logical processors sharing it."""
    type: CacheType = Field(..., description="Data, instruction or unified cache")
    level: int = Field(..., ge=0, description="Zero-based cache level (0 is closest to the processor)")
    size_bytes: int = Field(..., ge=0, description="Cache size in bytes")
    logical_processor_ids: Tuple[int, ...] = Field(..., description="Sorted logical processor IDs sharing this cache")

    model_config = ConfigDict(frozen=True)

    @property
    def label(self) -> str:
        """Conventional cache name such as 'L1d', 'L1i' or 'L2'."""
        return f"L{self.level + 1}{_CACHE_TYPE_SUFFIX[self.type]}"

    def __str__(self) -> str:
        return (
            f"{self.label} cache ({self.size_bytes // 1024} KB) shared with "
            f"logical processors: {format_cpu_ids(self.logical_processor_ids)}"
        )


class NodeMemory(BaseModel):
    """Memory local to a node."""
    total_physical_bytes: Optional[int] = Field(None, description="Physical memory installed on the node, in bytes")
    total_usable_bytes: Optional[int] = Field(None, description="Memory usable by the kernel on the node, in bytes")

    model_config = ConfigDict(frozen=True)


class Node(BaseModel):
    """A NUMA node (or the single synthesized node of a uniform host)."""
    id: int = Field(..., ge=0, description="Host-assigned node identifier")
    cores: Tuple[ProcessorCore, ...] = Field(default_factory=tuple, description="Cores ordered by index")
    caches: Tuple[MemoryCache, ...] = Field(default_factory=tuple, description="Caches ordered by level then type")
    distances: Tuple[int, ...] = Field(default_factory=tuple, description="NUMA distance to every node, by node order")
    memory: Optional[NodeMemory] = Field(None, description="Node-local memory, if the platform exposes it")

    model_config = ConfigDict(frozen=True)

    @property
    def logical_processor_ids(self) -> Tuple[int, ...]:
        """All logical processors assigned to this node's cores."""
        ids = set()
        for core in self.cores:
            ids.update(core.logical_processor_ids)
        return tuple(sorted(ids))

    def __str__(self) -> str:
        return f"node #{self.id} ({len(self.cores)} cores)"


class TopologyInfo(BaseModel):
    """
    Complete topology of the host from TopologyInspector.inspect().

    A successful result always holds at least one node. Records that could not
    be read are listed in partial_data instead of failing the whole query.
    """
    architecture: Architecture = Field(..., description="UNIFORM for exactly one node, NON_UNIFORM otherwise")
    nodes: Tuple[Node, ...] = Field(..., min_length=1, description="Nodes ordered by ascending id")
    partial_data: Tuple[PartialData, ...] = Field(default_factory=tuple, description="Non-fatal annotations")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_architecture(self) -> "TopologyInfo":
        expected = Architecture.UNIFORM if len(self.nodes) == 1 else Architecture.NON_UNIFORM
        if self.architecture != expected:
            raise ValueError(f"{len(self.nodes)} nodes cannot have architecture {self.architecture.value}")
        return self

    @property
    def is_partial(self) -> bool:
        """True when any record was missing or inconsistent."""
        return bool(self.partial_data)

    def __str__(self) -> str:
        return f"topology {self.architecture.label} ({len(self.nodes)} nodes)"
