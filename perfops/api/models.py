"""
Request and response models for the PerfOps run API.
"""

from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

from perfops.api.errors import ArgError
from perfops.utils.network import is_valid_limit, is_valid_target

# Reserved wire values.
TIMEOUT_SENTINEL = "-2"
NO_DATA = "NO DATA"
FINISHED = "true"


class TestKind(str, Enum):
    """The kinds of tests the run API knows about."""

    PING = "ping"
    TRACEROUTE = "traceroute"
    MTR = "mtr"
    LATENCY = "latency"
    DNS_PERF = "dns-perf"
    DNS_RESOLVE = "dns-resolve"
    CURL = "curl"

    @property
    def path(self) -> str:
        return f"/run/{self.value}"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class RunRequest(BaseModel):
    """Parameters for a ping, MTR, traceroute or latency test."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # Wire key order; keys missing here are never sent.
    _wire_order: ClassVar[Tuple[str, ...]] = (
        "target", "nodes", "location", "limit", "ipversion",
    )
    # Keys dropped from the payload when empty, zero or false.
    _omit_empty: ClassVar[Tuple[str, ...]] = (
        "nodes", "location", "limit", "insecure", "http2", "dnsServer", "param",
    )

    target: str
    nodes: List[int] = Field(default_factory=list)
    location: str = ""
    limit: int = 0
    ip_version: Optional[int] = Field(default=None, alias="ipversion")

    @field_serializer("nodes")
    def _encode_nodes(self, nodes: List[int]) -> str:
        # The API takes node IDs as one comma separated string.
        return ",".join(str(n) for n in nodes)

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON body sent to the API."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        payload = {}
        for key in self._wire_order:
            if key not in data:
                continue
            value = data[key]
            if key in self._omit_empty and value in ("", 0):
                continue
            payload[key] = value
        return payload

    def validate_for(self, has_key: bool) -> None:
        """
        Validate the request before it is sent.

        Raises:
            ArgError: naming the first invalid argument
        """
        if not is_valid_target(self.target):
            raise ArgError("target")
        if not is_valid_limit(has_key, self.limit):
            raise ArgError("limit")


class DNSPerfRequest(RunRequest):
    """Parameters for a DNS perf test."""

    _wire_order: ClassVar[Tuple[str, ...]] = (
        "target", "dnsServer", "nodes", "location", "limit", "ipversion",
    )

    dns_server: str = Field(default="", alias="dnsServer")

    def validate_for(self, has_key: bool) -> None:
        if not is_valid_target(self.target):
            raise ArgError("target")
        if self.dns_server and not is_valid_target(self.dns_server):
            raise ArgError("dns server")
        if not is_valid_limit(has_key, self.limit):
            raise ArgError("limit")


class DNSResolveRequest(RunRequest):
    """Parameters for a DNS resolve test."""

    _wire_order: ClassVar[Tuple[str, ...]] = (
        "target", "param", "dnsServer", "nodes", "location", "limit", "ipversion",
    )

    param: str = ""
    dns_server: str = Field(default="", alias="dnsServer")

    def validate_for(self, has_key: bool) -> None:
        if not is_valid_target(self.target):
            raise ArgError("target")
        if not self.param:
            raise ArgError("param")
        if not is_valid_target(self.dns_server):
            raise ArgError("dns server")
        if not is_valid_limit(has_key, self.limit):
            raise ArgError("limit")


class CurlRequest(RunRequest):
    """Parameters for a curl test."""

    _wire_order: ClassVar[Tuple[str, ...]] = (
        "target", "head", "insecure", "http2", "nodes", "location", "limit", "ipversion",
    )

    head: bool = True
    insecure: bool = False
    http2: bool = False


def build_run_request(
    target: str,
    location: str = "",
    node_ids: Optional[List[int]] = None,
    limit: int = 0,
    ip_version: Optional[int] = None,
) -> RunRequest:
    """Build the request shared by ping, MTR, traceroute and latency tests."""
    return RunRequest(
        target=target,
        location=location,
        nodes=list(node_ids or []),
        limit=limit,
        ip_version=ip_version,
    )


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class _WireModel(BaseModel):
    # Unknown fields are kept so that JSON output mirrors the API.
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Continent(_WireModel):
    id: int = 0
    name: str = ""
    iso: str = ""


class Country(_WireModel):
    """A country; `iso_numeric` is always kept as a string."""

    id: int = 0
    name: str = ""
    iso: str = ""
    iso_numeric: str = Field(
        default="",
        validation_alias=AliasChoices("iso_numeric", "isoNumeric"),
        serialization_alias="iso_numeric",
    )
    continent: Optional[Continent] = None

    @field_validator("iso_numeric", mode="before")
    @classmethod
    def _coerce_iso_numeric(cls, v):
        if v is None:
            return ""
        return str(v)


class Node(_WireModel):
    """A test node."""

    id: int = 0
    as_number: int = 0
    latitude: float = 0.0
    longitude: float = 0.0
    city: str = ""
    sub_region: str = ""
    country: Optional[Country] = None

    @field_validator("country", mode="before")
    @classmethod
    def _country_by_name(cls, v):
        if isinstance(v, str):
            return {"name": v}
        return v

    @property
    def country_name(self) -> str:
        return self.country.name if self.country else ""


class NamedRef(_WireModel):
    name: str = ""


class City(_WireModel):
    """A city where nodes are present."""

    name: str = ""
    country: Optional[NamedRef] = None
    continent: Optional[NamedRef] = None


class TextOutput(BaseModel):
    """A scalar output, e.g. a latency value or a whole ping log."""

    kind: Literal["text"] = "text"
    text: str


class LinesOutput(BaseModel):
    """An array output, e.g. the records of a DNS resolve test."""

    kind: Literal["lines"] = "lines"
    lines: List[str]


OutputPayload = Annotated[Union[TextOutput, LinesOutput], Field(discriminator="kind")]


def _decode_output(value: Any) -> Any:
    if value is None or isinstance(value, (TextOutput, LinesOutput)):
        return value
    if isinstance(value, dict) and "kind" in value:
        return value
    if isinstance(value, list):
        return {"kind": "lines", "lines": ["" if v is None else str(v) for v in value]}
    if isinstance(value, bool):
        return {"kind": "text", "text": "true" if value else "false"}
    if isinstance(value, (str, int, float)):
        return {"kind": "text", "text": str(value)}
    raise ValueError(f"unsupported output payload: {type(value).__name__}")


class RunResult(_WireModel):
    """One node's contribution to a test."""

    node: Optional[Node] = None
    output: Optional[OutputPayload] = None
    message: str = ""
    finished: Union[bool, str, None] = None
    dns_server: Optional[str] = Field(default=None, alias="dnsServer")

    @field_validator("output", mode="before")
    @classmethod
    def _decode(cls, v):
        return _decode_output(v)

    @field_validator("message", mode="before")
    @classmethod
    def _none_message(cls, v):
        return "" if v is None else v

    @field_serializer("output")
    def _encode(self, v):
        if isinstance(v, TextOutput):
            return v.text
        if isinstance(v, LinesOutput):
            return list(v.lines)
        return None

    def is_finished(self) -> bool:
        """Per-node completion; the API sends either a boolean or a string."""
        if isinstance(self.finished, bool):
            return self.finished
        return self.finished == FINISHED

    def display_output(self) -> str:
        if isinstance(self.output, TextOutput):
            return self.output.text
        if isinstance(self.output, LinesOutput):
            return "\n".join(self.output.lines)
        return ""

    def perf_output(self) -> str:
        """Output of a DNS perf test: the query time, or "-"."""
        if isinstance(self.output, TextOutput):
            return self.output.text
        return "-"

    def resolve_output(self) -> List[str]:
        """Output of a DNS resolve test: one entry per record."""
        if isinstance(self.output, LinesOutput):
            return list(self.output.lines)
        if isinstance(self.output, TextOutput):
            return self.output.text.split("\n")
        return ["-"]


class RunItem(_WireModel):
    id: str = ""
    result: Optional[RunResult] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        return "" if v is None else str(v)

    @property
    def key(self) -> str:
        """Identity of the item across polls: its ID, else its node's ID."""
        if self.id:
            return self.id
        if self.result is not None and self.result.node is not None:
            return f"node:{self.result.node.id}"
        return ""


class RunOutput(_WireModel):
    """
    The full snapshot of a test returned by one poll.

    Every poll returns the whole item list seen so far, not a delta.
    """

    id: str = ""
    requested: str = ""
    finished: Union[str, bool, None] = None
    items: List[RunItem] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _none_items(cls, v):
        return [] if v is None else v

    def is_finished(self) -> bool:
        # Only the literal string "true" counts.
        return self.finished == FINISHED

    def finished_count(self) -> int:
        return sum(1 for item in self.items if item.result and item.result.is_finished())

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
