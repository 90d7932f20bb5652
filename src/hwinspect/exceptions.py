"""
Custom exceptions for hwinspect.
"""

from typing import Optional


class SourceUnavailable(OSError):
    """Raised when a host data source (pseudo-file, directory or OS query) cannot be read."""

    def __init__(self, path: str, reason: str = None, missing: bool = False):
        """
        Initialize SourceUnavailable.

        Args:
            path: Path or query identifier that could not be read
            reason: Optional description of the underlying failure
            missing: True when the source does not exist at all
        """
        self.path = path
        self.missing = missing
        full_message = f"Source unavailable: {path}"
        if reason:
            full_message += f" ({reason})"
        super().__init__(full_message)


class DiscoveryFailed(RuntimeError):
    """Raised when topology discovery cannot produce any result."""

    def __init__(self, message: str, platform: Optional[str] = None):
        self.platform = platform
        full_message = f"Topology discovery failed: {message}"
        if platform:
            full_message += f" (platform: {platform})"
        super().__init__(full_message)
