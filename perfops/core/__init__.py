"""
Core functionality components.
"""

from perfops.core.config import AppConfig, RenderMode, RunOptions
from perfops.core.runner import Poller, RunOutputResult, run_test

__all__ = [
    "AppConfig",
    "Poller",
    "RenderMode",
    "RunOptions",
    "RunOutputResult",
    "run_test",
]
