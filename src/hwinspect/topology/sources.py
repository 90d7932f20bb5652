#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Read-only access to the Linux pseudo-filesystems (/sys and /proc).

Every read is all-or-nothing: a source either returns its full content or
raises SourceUnavailable. Paths are given as absolute host paths and are
resolved under the configured chroot, so a captured copy of /sys can be
inspected the same way as the live one.
"""

import errno
import os
import re
from typing import List

from ..exceptions import SourceUnavailable

SYS_NODE_DIR = "/sys/devices/system/node"
SYS_CPU_DIR = "/sys/devices/system/cpu"
SYS_MEMORY_DIR = "/sys/devices/system/memory"
PROC_MEMINFO = "/proc/meminfo"


class SysfsSource:
    """Reader for sysfs/procfs files under a root directory."""

    def __init__(self, chroot: str = "/"):
        self.chroot = chroot

    def path(self, host_path: str) -> str:
        """Resolve an absolute host path under the chroot."""
        if self.chroot in ("", "/"):
            return host_path
        return os.path.join(self.chroot, host_path.lstrip("/"))

    def exists(self, host_path: str) -> bool:
        return os.path.exists(self.path(host_path))

    def read_lines(self, host_path: str) -> List[str]:
        """
        Read the whole file and return its lines without trailing newlines.

        Raises:
            SourceUnavailable: If the file does not exist or cannot be read
        """
        resolved = self.path(host_path)
        try:
            with open(resolved, 'r', encoding='utf-8') as f:
                return f.read().splitlines()
        except OSError as e:
            raise SourceUnavailable(host_path, e.strerror or str(e), missing=_is_missing(e)) from e
        except UnicodeDecodeError as e:
            raise SourceUnavailable(host_path, "undecodable content") from e

    def read_value(self, host_path: str) -> str:
        """
        Read a single-value attribute file (e.g. core_id) and return it stripped.

        Raises:
            SourceUnavailable: If the file cannot be read
        """
        return "\n".join(self.read_lines(host_path)).strip()

    def read_int(self, host_path: str, base: int = 10) -> int:
        """
        Read a single integer attribute.

        Raises:
            SourceUnavailable: If the file cannot be read or does not hold an integer
        """
        value = self.read_value(host_path)
        try:
            return int(value, base)
        except ValueError as e:
            raise SourceUnavailable(host_path, f"not an integer: {value!r}") from e

    def list_children(self, host_path: str, prefix: str) -> List[int]:
        """
        List numbered children of a directory, e.g. prefix "node" -> node0, node1.

        Args:
            host_path: Directory to list
            prefix: Name prefix; only entries named <prefix><digits> are kept

        Returns:
            Child numbers in ascending order

        Raises:
            SourceUnavailable: If the directory does not exist or cannot be listed
        """
        resolved = self.path(host_path)
        try:
            names = os.listdir(resolved)
        except OSError as e:
            raise SourceUnavailable(host_path, e.strerror or str(e), missing=_is_missing(e)) from e

        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        children = []
        for name in names:
            match = pattern.match(name)
            if match:
                children.append(int(match.group(1)))
        return sorted(children)


def _is_missing(error: OSError) -> bool:
    return error.errno in (errno.ENOENT, errno.ENOTDIR)
