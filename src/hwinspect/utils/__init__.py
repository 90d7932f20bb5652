"""Utility functions for hwinspect."""

from .imports import safe_import
from .cpuset import parse_cpu_list, parse_cpu_mask, mask_to_ids, format_cpu_ids

__all__ = ["safe_import", "parse_cpu_list", "parse_cpu_mask", "mask_to_ids", "format_cpu_ids"]
