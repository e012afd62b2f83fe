"""
Errors raised by the PerfOps API client.
"""

HTTP_UNAUTHORIZED = 401


class PerfOpsError(Exception):
    """Base class for all PerfOps client errors."""


class ArgError(PerfOpsError):
    """A request argument failed local validation."""

    def __init__(self, arg_name: str):
        super().__init__(f"invalid argument: {arg_name}")
        self.arg_name = arg_name


class ClientError(PerfOpsError):
    """The API answered with a non-2xx status code."""

    def __init__(self, code: int, text: str = ""):
        super().__init__(f"{code}: {text}" if text else str(code))
        self.code = code
        self.text = text

    @property
    def is_unauthorized(self) -> bool:
        return self.code == HTTP_UNAUTHORIZED


class DecodeError(PerfOpsError):
    """The API answered with a body that could not be decoded."""


def is_arg_error(err: BaseException) -> bool:
    """Return True if the error names an invalid argument."""
    return isinstance(err, ArgError)


def is_unauthorized(err: BaseException) -> bool:
    """Return True if the error is an authorization error."""
    return isinstance(err, ClientError) and err.is_unauthorized
