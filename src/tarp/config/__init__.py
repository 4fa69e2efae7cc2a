"""Config module exports."""

from tarp.config.loader import load_config
from tarp.config.models import (
    LoggingConfig,
    LogOutputConfig,
    ReportConfig,
    ResolveConfig,
    TarpConfig,
)

__all__ = [
    "load_config",
    "LoggingConfig",
    "LogOutputConfig",
    "ReportConfig",
    "ResolveConfig",
    "TarpConfig",
]
