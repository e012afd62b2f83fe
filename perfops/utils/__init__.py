"""
Utility functions.
"""

from perfops.utils.network import (
    FREE_MAX_NODE_CAP,
    is_valid_ip,
    is_valid_limit,
    is_valid_target,
)

__all__ = [
    "FREE_MAX_NODE_CAP",
    "is_valid_ip",
    "is_valid_limit",
    "is_valid_target",
]
