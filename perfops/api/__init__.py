"""
PerfOps API client, models and errors.
"""

from perfops.api.client import API_ROOT, Client
from perfops.api.errors import (
    ArgError,
    ClientError,
    DecodeError,
    PerfOpsError,
    is_arg_error,
    is_unauthorized,
)
from perfops.api.models import (
    CurlRequest,
    DNSPerfRequest,
    DNSResolveRequest,
    RunOutput,
    RunRequest,
    TestKind,
    build_run_request,
)

__all__ = [
    "API_ROOT",
    "ArgError",
    "Client",
    "ClientError",
    "CurlRequest",
    "DNSPerfRequest",
    "DNSResolveRequest",
    "DecodeError",
    "PerfOpsError",
    "RunOutput",
    "RunRequest",
    "TestKind",
    "build_run_request",
    "is_arg_error",
    "is_unauthorized",
]
