"""
Parsers for the CPU set formats used by Linux sysfs.

Two encodings appear under /sys/devices/system:

- list format: "0-3,8,10-11" (cpulist, shared_cpu_list, thread_siblings_list)
- mask format: "00000000,0000000f" (cpumap, shared_cpu_map), comma-separated
  32-bit hex words, most significant word first
"""

from typing import FrozenSet, Iterable


def parse_cpu_list(text: str) -> FrozenSet[int]:
    """
    Parse a sysfs CPU list such as "0-3,8,10-11".

    Args:
        text: Raw list string, possibly with surrounding whitespace

    Returns:
        Frozen set of logical processor IDs (empty for an empty string)

    Raises:
        ValueError: If a range or ID is malformed
    """
    cpus = set()
    text = text.strip()
    if not text:
        return frozenset()
    for chunk in text.split(','):
        chunk = chunk.strip()
        if not chunk:
            continue
        if '-' in chunk:
            start, end = chunk.split('-', 1)
            first, last = int(start), int(end)
            if last < first:
                raise ValueError(f"Invalid CPU range: {chunk!r}")
            cpus.update(range(first, last + 1))
        else:
            cpus.add(int(chunk))
    return frozenset(cpus)


def parse_cpu_mask(text: str) -> FrozenSet[int]:
    """
    Parse a sysfs CPU mask such as "00000000,0000000f".

    Raises:
        ValueError: If the mask is not hexadecimal
    """
    value = int(text.strip().replace(',', '') or '0', 16)
    return mask_to_ids(value)


def mask_to_ids(mask: int) -> FrozenSet[int]:
    """Convert an integer affinity mask to the set of bit positions that are set."""
    ids = set()
    bit = 0
    while mask:
        if mask & 1:
            ids.add(bit)
        mask >>= 1
        bit += 1
    return frozenset(ids)


def format_cpu_ids(ids: Iterable[int]) -> str:
    """Render processor IDs as a sorted comma-separated string ("0,1,4")."""
    return ','.join(str(i) for i in sorted(ids))
