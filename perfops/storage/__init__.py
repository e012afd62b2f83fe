"""
Storage and logging components.
"""

from perfops.storage.logger import setup_logging

__all__ = [
    "setup_logging",
]
