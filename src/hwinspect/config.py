"""
Inspection configuration.

A caller-owned settings object handed to TopologyInspector. Values can be
given explicitly or read from the environment with InspectionConfig.from_env().
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Environment variables recognised by InspectionConfig.from_env()
ENV_CHROOT = "HWINSPECT_CHROOT"
ENV_DISABLE_WARNINGS = "HWINSPECT_DISABLE_WARNINGS"
ENV_PLATFORM = "HWINSPECT_PLATFORM"

_TRUTHY = {"1", "true", "yes", "on"}


class InspectionConfig(BaseModel):
    """Settings for a topology inspection."""
    chroot: str = Field("/", description="Root directory under which /sys and /proc are read")
    disable_warnings: bool = Field(False, description="Suppress warning logs for partial data")
    platform: Optional[str] = Field(None, description="Override for platform.system() ('Linux', 'Windows', ...)")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_env(cls, **overrides) -> "InspectionConfig":
        """
        Build a config from HWINSPECT_* environment variables.

        Args:
            **overrides: Explicit values that take precedence over the environment

        Returns:
            InspectionConfig instance
        """
        values = {}
        chroot = os.environ.get(ENV_CHROOT)
        if chroot:
            values["chroot"] = chroot
        disable = os.environ.get(ENV_DISABLE_WARNINGS)
        if disable is not None:
            values["disable_warnings"] = disable.strip().lower() in _TRUTHY
        platform_name = os.environ.get(ENV_PLATFORM)
        if platform_name:
            values["platform"] = platform_name
        values.update(overrides)
        return cls(**values)
