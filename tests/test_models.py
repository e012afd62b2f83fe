"""Tests for request encoding and output decoding."""
import pytest
from pydantic import ValidationError

from perfops.api.errors import ArgError
from perfops.api.models import (
    Country,
    CurlRequest,
    DNSPerfRequest,
    DNSResolveRequest,
    LinesOutput,
    RunOutput,
    RunRequest,
    RunResult,
    TestKind as Kind,
    TextOutput,
    build_run_request,
)

HONG_KONG_NODE = {
    "id": 27,
    "as_number": 12345,
    "latitude": 22.28512548314,
    "longitude": 114.17507171631,
    "country": {
        "id": 195,
        "name": "Hong Kong",
        "continent": {"id": 2, "name": "Asia", "iso": "AS"},
        "iso": "HK",
        "iso_numeric": "344",
    },
    "city": "Hong Kong",
    "sub_region": "Eastern Asia",
}


class TestRunRequest:
    """Test the submission payload of run requests."""

    def test_payload_omits_empty_fields(self):
        request = build_run_request("example.com", location="From here", limit=12)
        assert request.to_payload() == {
            "target": "example.com",
            "location": "From here",
            "limit": 12,
        }

    def test_payload_nodes_are_comma_separated(self):
        request = build_run_request("example.com", node_ids=[1, 22, 333], limit=3)
        assert request.to_payload() == {"target": "example.com", "nodes": "1,22,333", "limit": 3}

    def test_payload_ip_version(self):
        request = build_run_request("example.com", limit=1, ip_version=6)
        assert request.to_payload() == {"target": "example.com", "limit": 1, "ipversion": 6}

    def test_payload_key_order(self):
        request = build_run_request("example.com", "Europe", [7], 2, 4)
        assert list(request.to_payload()) == ["target", "nodes", "location", "limit", "ipversion"]

    def test_request_is_frozen(self):
        request = build_run_request("example.com")
        with pytest.raises(ValidationError):
            request.target = "other.com"

    def test_validate_target(self):
        with pytest.raises(ArgError) as exc:
            build_run_request("localhost").validate_for(False)
        assert exc.value.arg_name == "target"

    def test_validate_limit_without_key(self):
        request = build_run_request("example.com", limit=21)
        with pytest.raises(ArgError) as exc:
            request.validate_for(False)
        assert exc.value.arg_name == "limit"
        request.validate_for(True)

    def test_target_checked_before_limit(self):
        with pytest.raises(ArgError) as exc:
            build_run_request("", limit=100).validate_for(False)
        assert exc.value.arg_name == "target"


class TestKindSpecificRequests:
    """Test the DNS and curl request variants."""

    def test_dns_perf_payload(self):
        request = DNSPerfRequest(target="example.com", dns_server="8.8.8.8", limit=1, ip_version=4)
        assert request.to_payload() == {
            "target": "example.com",
            "dnsServer": "8.8.8.8",
            "limit": 1,
            "ipversion": 4,
        }

    def test_dns_perf_server_is_optional(self):
        request = DNSPerfRequest(target="example.com", limit=1)
        request.validate_for(False)
        assert "dnsServer" not in request.to_payload()

    def test_dns_perf_invalid_server(self):
        request = DNSPerfRequest(target="example.com", dns_server="resolver")
        with pytest.raises(ArgError) as exc:
            request.validate_for(False)
        assert exc.value.arg_name == "dns server"

    def test_dns_resolve_payload(self):
        request = DNSResolveRequest(target="example.com", param="AAAA", dns_server="1.1.1.1", limit=2)
        assert request.to_payload() == {
            "target": "example.com",
            "param": "AAAA",
            "dnsServer": "1.1.1.1",
            "limit": 2,
        }

    def test_dns_resolve_requires_param_and_server(self):
        with pytest.raises(ArgError) as exc:
            DNSResolveRequest(target="example.com", dns_server="1.1.1.1").validate_for(False)
        assert exc.value.arg_name == "param"
        with pytest.raises(ArgError) as exc:
            DNSResolveRequest(target="example.com", param="A").validate_for(False)
        assert exc.value.arg_name == "dns server"

    def test_curl_payload(self):
        request = CurlRequest(target="example.com", limit=1, ip_version=4)
        assert request.to_payload() == {
            "target": "example.com",
            "head": True,
            "limit": 1,
            "ipversion": 4,
        }

    def test_curl_payload_flags(self):
        request = CurlRequest(target="example.com", head=False, insecure=True, http2=True)
        assert request.to_payload() == {
            "target": "example.com",
            "head": False,
            "insecure": True,
            "http2": True,
        }

    def test_kind_paths(self):
        assert Kind.PING.path == "/run/ping"
        assert Kind.DNS_PERF.path == "/run/dns-perf"
        assert Kind.DNS_RESOLVE.path == "/run/dns-resolve"
        assert Kind.CURL.path == "/run/curl"


class TestRunOutput:
    """Test decoding of poll snapshots."""

    @pytest.mark.parametrize(
        "finished,expected",
        [
            ("true", True),
            (True, False),
            ("false", False),
            (False, False),
            (None, False),
            ("TRUE", False),
        ],
    )
    def test_is_finished_requires_string_true(self, finished, expected):
        raw = {"id": "abc", "items": []}
        if finished is not None:
            raw["finished"] = finished
        assert RunOutput.model_validate(raw).is_finished() is expected

    def test_missing_items(self):
        output = RunOutput.model_validate({"id": "abc", "items": None})
        assert output.items == []
        assert output.finished_count() == 0

    def test_item_id_is_string(self):
        output = RunOutput.model_validate({"id": "abc", "items": [{"id": 5, "result": {}}]})
        assert output.items[0].id == "5"

    def test_finished_count(self):
        output = RunOutput.model_validate(
            {
                "id": "abc",
                "items": [
                    {"id": "1", "result": {"finished": True}},
                    {"id": "2", "result": {"finished": "true"}},
                    {"id": "3", "result": {"finished": False}},
                    {"id": "4", "result": {}},
                ],
            }
        )
        assert output.finished_count() == 2

    def test_text_output(self):
        result = RunResult.model_validate({"output": "121", "node": HONG_KONG_NODE})
        assert isinstance(result.output, TextOutput)
        assert result.display_output() == "121"
        assert result.node.country_name == "Hong Kong"

    def test_numeric_output(self):
        result = RunResult.model_validate({"output": -1, "message": "100% packet loss"})
        assert result.display_output() == "-1"
        assert result.message == "100% packet loss"

    def test_array_output(self):
        result = RunResult.model_validate({"output": ["header", "  1 row", " 10 row"]})
        assert isinstance(result.output, LinesOutput)
        assert result.display_output() == "header\n  1 row\n 10 row"

    def test_unsupported_output(self):
        with pytest.raises(ValidationError):
            RunResult.model_validate({"output": {"unexpected": 1}})

    def test_null_message(self):
        assert RunResult.model_validate({"message": None}).message == ""

    def test_perf_output(self):
        assert RunResult.model_validate({"output": "23"}).perf_output() == "23"
        assert RunResult.model_validate({"output": ["23"]}).perf_output() == "-"
        assert RunResult.model_validate({}).perf_output() == "-"

    def test_resolve_output(self):
        assert RunResult.model_validate({"output": ["1.2.3.4", "5.6.7.8"]}).resolve_output() == [
            "1.2.3.4",
            "5.6.7.8",
        ]
        assert RunResult.model_validate({"output": "1.2.3.4"}).resolve_output() == ["1.2.3.4"]
        assert RunResult.model_validate({}).resolve_output() == ["-"]

    def test_country_as_name(self):
        result = RunResult.model_validate({"node": {"id": 27, "city": "Hong Kong", "country": "Hong Kong"}})
        assert result.node.country_name == "Hong Kong"

    def test_to_wire_keeps_api_shape(self):
        raw = {
            "id": "706fc55e",
            "requested": "sendergram.com",
            "finished": "true",
            "elapsedTime": 0.665,
            "items": [
                {
                    "id": "bba07247",
                    "result": {
                        "output": ["a", "b"],
                        "finished": True,
                        "dnsServer": "8.8.8.8",
                        "node": HONG_KONG_NODE,
                    },
                }
            ],
        }
        wire = RunOutput.model_validate(raw).to_wire()
        assert wire["elapsedTime"] == 0.665
        assert wire["finished"] == "true"
        result = wire["items"][0]["result"]
        assert result["output"] == ["a", "b"]
        assert result["dnsServer"] == "8.8.8.8"
        assert result["node"]["country"]["iso_numeric"] == "344"


def test_country_iso_numeric_is_string():
    """iso_numeric is kept as a string whichever way the API spells it."""
    assert Country.model_validate({"iso_numeric": 344}).iso_numeric == "344"
    assert Country.model_validate({"isoNumeric": "344"}).iso_numeric == "344"
    assert Country.model_validate({"iso_numeric": None}).iso_numeric == ""
