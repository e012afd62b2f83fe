"""
PerfOps CLI - run ping, traceroute, MTR, latency, DNS and curl tests
from PerfOps nodes around the world.
"""

from perfops.__version__ import __version__
from perfops.api.client import Client
from perfops.core.config import AppConfig
from perfops.core.runner import run_test

__all__ = [
    "AppConfig",
    "Client",
    "run_test",
    "__version__",
]
