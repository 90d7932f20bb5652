"""Safe import utilities for optional and platform-specific dependencies."""


def safe_import(module_name: str):
    """
    Safely import a module, returning None if unavailable.

    Use this for optional dependencies or platform-specific modules that may
    not be installed or available on all systems.

    Args:
        module_name: The module to import (e.g., "psutil", "ctypes.wintypes")

    Returns:
        The imported module, or None if import fails

    Examples:
        >>> psutil = safe_import("psutil")
        >>> if psutil:
        ...     psutil.cpu_count(logical=True)

        >>> wintypes = safe_import("ctypes.wintypes")
        >>> if not wintypes:
        ...     return None  # Not on Windows
    """
    try:
        return __import__(module_name, fromlist=[''])
    except ImportError:
        return None
    except ValueError:
        # ctypes.wintypes raises ValueError off Windows on older interpreters
        return None
