"""
HTTP client for the PerfOps API.

The client owns transport concerns (base URL, headers, timeouts) and turns
HTTP failures into PerfOps errors. Test orchestration lives in
perfops.core.runner.
"""

from __future__ import annotations

import json
import platform
from typing import Any, List, Optional

import httpx
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from perfops.__version__ import __version__
from perfops.api.errors import ClientError, DecodeError, PerfOpsError
from perfops.api.models import City, Country, RunOutput, RunRequest, TestKind

API_ROOT = "https://api.perfops.net"
USER_AGENT = "PerfOps API Python Client"

_COUNTRIES = TypeAdapter(List[Country])
_CITIES = TypeAdapter(List[City])


def default_user_agent() -> str:
    return f"{USER_AGENT}/{__version__} ({platform.system().lower()}/{platform.machine().lower()})"


class Client:
    """
    PerfOps API client.

    Args:
        api_key: API key sent as the Authorization header; empty for the free plan
        base_url: API endpoint base URL
        user_agent: Optional additional User-Agent fragment
        http_client: Optional preconfigured httpx client (used by tests)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = API_ROOT,
        user_agent: str = "",
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.user_agent = f"{user_agent} {default_user_agent()}" if user_agent else default_user_agent()
        self._http = http_client or httpx.Client(timeout=timeout)

        self.run = RunService(self)
        self.dns = DNSService(self)
        self.analytics = AnalyticsService(self)

    @property
    def has_key(self) -> bool:
        return bool(self.api_key)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def do(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        """
        Send a request and decode the JSON response body.

        Raises:
            ClientError: on a 4xx or 5xx response
            DecodeError: when the body is not JSON
            PerfOpsError: on transport failures
        """
        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }
        content = None
        if payload is not None:
            content = json.dumps(payload, separators=(",", ":"))

        url = self.base_url + path
        logger.debug(f"{method} {url} {content or ''}".rstrip())
        try:
            resp = self._http.request(method, url, content=content, headers=headers)
        except httpx.HTTPError as e:
            raise PerfOpsError(str(e)) from e

        if resp.status_code >= 400:
            logger.debug(f"{method} {url} failed with {resp.status_code}")
            raise ClientError(resp.status_code, resp.text)

        try:
            return resp.json()
        except ValueError as e:
            raise DecodeError(f"malformed response from {path}: {e}") from e


class RunService:
    """The run API: submit tests and fetch their output."""

    def __init__(self, client: Client):
        self.client = client

    def submit(self, kind: TestKind, request: RunRequest) -> str:
        """
        Validate and submit a test, returning its test ID.

        Raises:
            ArgError: when the request fails local validation
        """
        request.validate_for(self.client.has_key)
        raw = self.client.do("POST", kind.path, request.to_payload())
        if not isinstance(raw, dict):
            raise DecodeError(f"unexpected response from {kind.path}")
        error = raw.get("error") or raw.get("Error")
        if error:
            raise PerfOpsError(str(error))
        test_id = str(raw.get("id") or "")
        logger.debug(f"Submitted {kind.value} test {test_id}")
        return test_id

    def output(self, kind: TestKind, test_id: str) -> RunOutput:
        """Return the current output snapshot of a test."""
        raw = self.client.do("GET", f"{kind.path}/{test_id}")
        try:
            return RunOutput.model_validate(raw)
        except ValidationError as e:
            raise DecodeError(f"malformed {kind.value} output: {e}") from e


class DNSService:
    """Account endpoints."""

    def __init__(self, client: Client):
        self.client = client

    def remaining_credits(self) -> int:
        raw = self.client.do("GET", "/remaining-credits")
        try:
            return int(raw["remaining_credits"])
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"malformed credits response: {e}") from e


class AnalyticsService:
    """Reference data about node locations."""

    def __init__(self, client: Client):
        self.client = client

    def countries(self) -> List[Country]:
        return self._decode(_COUNTRIES, self.client.do("GET", "/analytics/dns/countries"))

    def cities(self) -> List[City]:
        return self._decode(_CITIES, self.client.do("GET", "/analytics/dns/city"))

    @staticmethod
    def _decode(adapter: TypeAdapter, raw: Any):
        try:
            return adapter.validate_python(raw or [])
        except ValidationError as e:
            raise DecodeError(str(e)) from e
