"""Shared fixtures: a fake /sys tree built under tmp_path."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

import pytest

from hwinspect.config import InspectionConfig


class FakeSysfs:
    """Builds a minimal /sys/devices/system layout under a temporary root."""

    def __init__(self, root: Path):
        self.root = root

    def write(self, host_path: str, content: str) -> Path:
        path = self.root / host_path.lstrip("/")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    def mkdir(self, host_path: str) -> Path:
        path = self.root / host_path.lstrip("/")
        path.mkdir(parents=True, exist_ok=True)
        return path

    def add_cpu(self, lp_id: int, core_id: Optional[int], package_id: int = 0, node: Optional[int] = None):
        cpu = f"/sys/devices/system/cpu/cpu{lp_id}"
        self.mkdir(cpu)
        if core_id is not None:
            self.write(f"{cpu}/topology/core_id", f"{core_id}\n")
        self.write(f"{cpu}/topology/physical_package_id", f"{package_id}\n")
        if node is not None:
            self.mkdir(f"/sys/devices/system/node/node{node}/cpu{lp_id}")

    def add_cache(self, lp_id: int, index: int, level: int, cache_type: str, size: str,
                  shared_list: Optional[str] = None, shared_map: Optional[str] = None):
        index_dir = f"/sys/devices/system/cpu/cpu{lp_id}/cache/index{index}"
        self.write(f"{index_dir}/level", f"{level}\n")
        self.write(f"{index_dir}/type", f"{cache_type}\n")
        self.write(f"{index_dir}/size", f"{size}\n")
        if shared_list is not None:
            self.write(f"{index_dir}/shared_cpu_list", f"{shared_list}\n")
        if shared_map is not None:
            self.write(f"{index_dir}/shared_cpu_map", f"{shared_map}\n")

    def add_node(self, node_id: int, meminfo_kb: Optional[int] = None, distances: Iterable[int] = (),
                 memory_blocks: Iterable[int] = ()):
        node = f"/sys/devices/system/node/node{node_id}"
        self.mkdir(node)
        if meminfo_kb is not None:
            self.write(
                f"{node}/meminfo",
                f"Node {node_id} MemTotal:       {meminfo_kb} kB\n"
                f"Node {node_id} MemFree:        1024 kB\n",
            )
        distances = list(distances)
        if distances:
            self.write(f"{node}/distance", " ".join(str(d) for d in distances) + "\n")
        for block in memory_blocks:
            self.mkdir(f"{node}/memory{block}")

    def config(self, **overrides) -> InspectionConfig:
        values = {"chroot": str(self.root), "platform": "Linux", "disable_warnings": True}
        values.update(overrides)
        return InspectionConfig(**values)


@pytest.fixture
def sysfs(tmp_path) -> FakeSysfs:
    return FakeSysfs(tmp_path)


def build_scenario_a(fake: FakeSysfs, node: Optional[int] = 0) -> FakeSysfs:
    """One node, 4 logical processors on 2 cores, private L1d per core, shared L2."""
    if node is not None:
        fake.add_node(node, meminfo_kb=16 * 1024 * 1024, distances=[10])
    for lp_id, core_id in [(0, 0), (1, 0), (2, 1), (3, 1)]:
        fake.add_cpu(lp_id, core_id, node=node)
        sibling_list = "0-1" if core_id == 0 else "2-3"
        fake.add_cache(lp_id, 0, 1, "Data", "32K", shared_list=sibling_list)
        fake.add_cache(lp_id, 1, 2, "Unified", "256K", shared_list="0-3")
    return fake


@pytest.fixture
def scenario_a(sysfs) -> FakeSysfs:
    return build_scenario_a(sysfs)
