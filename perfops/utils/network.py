"""
Validation of test targets and node limits.
"""

import ipaddress

# The maximum number of nodes allowed for requests without an API key.
FREE_MAX_NODE_CAP = 20


def is_valid_ip(ip: str) -> bool:
    """Return True for an IPv4 or IPv6 literal."""
    try:
        ipaddress.ip_address(ip)
    except ValueError:
        return False
    return True


def is_valid_target(target: str) -> bool:
    """
    Check that a target is an IP literal or looks like a public domain name.

    A domain needs a dot followed by a label that does not start with a
    digit, e.g. "example.com" but not "example." or "10.0.0".

    Args:
        target: Host name or IP address

    Returns:
        True if the API would accept the target
    """
    if not target:
        return False
    if is_valid_ip(target):
        return True

    i = target.rfind(".")
    if i == -1 or i == len(target) - 1:
        return False
    return not "0" <= target[i + 1] <= "9"


def is_valid_limit(has_auth: bool, limit: int) -> bool:
    """Requests without an API key are capped at FREE_MAX_NODE_CAP nodes."""
    return has_auth or limit <= FREE_MAX_NODE_CAP
