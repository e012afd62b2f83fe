"""Tests for the PerfOps API client (with a mocked HTTP transport)."""
import httpx
import pytest

from perfops.api.client import API_ROOT, USER_AGENT, Client
from perfops.api.errors import ArgError, ClientError, DecodeError, PerfOpsError, is_unauthorized
from perfops.api.models import RunOutput, TestKind as Kind, build_run_request

RUN_OUTPUT = {
    "id": "2e9fd0e3a444adddb9b8168e6e0f856c",
    "items": [
        {
            "id": "186b4c4c77985f75e7cefc48289e79ff",
            "result": {
                "ip": "74.125.200.113",
                "output": "35.223",
                "node": {
                    "id": 58,
                    "country": {"id": 195, "name": "Hong Kong", "iso": "HK", "iso_numeric": "344"},
                    "city": "Hong Kong",
                    "sub_region": "Eastern Asia",
                },
            },
        }
    ],
    "requested": "google.com",
    "finished": "true",
}


class Recorder:
    """Mock transport handler that records requests and replays responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


def make_client(handler, api_key=""):
    return Client(api_key=api_key, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_submit_and_fetch_ping():
    """A ping test posts the payload and polls a path derived from the test ID."""
    recorder = Recorder(
        httpx.Response(200, json={"id": "2e9fd0e3a444adddb9b8168e6e0f856c"}),
        httpx.Response(200, json=RUN_OUTPUT),
    )
    client = make_client(recorder)
    request = build_run_request("example.com", location="From here", limit=12)

    test_id = client.run.submit(Kind.PING, request)
    output = client.run.output(Kind.PING, test_id)

    assert test_id == "2e9fd0e3a444adddb9b8168e6e0f856c"
    post, get = recorder.requests
    assert post.method == "POST"
    assert str(post.url) == API_ROOT + "/run/ping"
    assert post.content == b'{"target":"example.com","location":"From here","limit":12}'
    assert get.method == "GET"
    assert str(get.url) == API_ROOT + "/run/ping/2e9fd0e3a444adddb9b8168e6e0f856c"
    assert isinstance(output, RunOutput)
    assert output.is_finished()
    assert output.items[0].result.node.id == 58


def test_request_headers():
    """Every request carries the API key, the content type and the user agent."""
    recorder = Recorder(httpx.Response(200, json={"id": "1"}))
    client = make_client(recorder, api_key="secret")
    client.run.submit(Kind.LATENCY, build_run_request("example.com", limit=1))

    headers = recorder.requests[0].headers
    assert headers["Authorization"] == "secret"
    assert headers["Content-Type"] == "application/json"
    assert headers["User-Agent"].startswith(USER_AGENT + "/")


def test_custom_base_url():
    recorder = Recorder(httpx.Response(200, json={"remaining_credits": 7}))
    client = Client(
        base_url="http://localhost:8080/",
        http_client=httpx.Client(transport=httpx.MockTransport(recorder)),
    )
    assert client.dns.remaining_credits() == 7
    assert str(recorder.requests[0].url) == "http://localhost:8080/remaining-credits"


def test_submit_validates_before_sending():
    """Invalid requests fail locally without any network call."""
    recorder = Recorder()
    client = make_client(recorder)
    with pytest.raises(ArgError) as exc:
        client.run.submit(Kind.PING, build_run_request("example.com", limit=50))
    assert exc.value.arg_name == "limit"
    assert recorder.requests == []


def test_submit_limit_allowed_with_key():
    recorder = Recorder(httpx.Response(200, json={"id": "abc"}))
    client = make_client(recorder, api_key="secret")
    assert client.run.submit(Kind.PING, build_run_request("example.com", limit=50)) == "abc"


def test_submit_error_field():
    """An error field in the submit response is raised."""
    recorder = Recorder(httpx.Response(200, json={"error": "no nodes found"}))
    client = make_client(recorder)
    with pytest.raises(PerfOpsError, match="no nodes found"):
        client.run.submit(Kind.PING, build_run_request("example.com", limit=1))


def test_unauthorized():
    recorder = Recorder(httpx.Response(401, text="Unauthorized"))
    client = make_client(recorder, api_key="bad")
    with pytest.raises(ClientError) as exc:
        client.run.submit(Kind.PING, build_run_request("example.com", limit=1))
    assert exc.value.code == 401
    assert is_unauthorized(exc.value)


def test_server_error():
    recorder = Recorder(httpx.Response(500, text="boom"))
    client = make_client(recorder)
    with pytest.raises(ClientError) as exc:
        client.run.output(Kind.PING, "abc")
    assert str(exc.value) == "500: boom"
    assert not is_unauthorized(exc.value)


def test_malformed_body():
    recorder = Recorder(httpx.Response(200, text="not json"))
    client = make_client(recorder)
    with pytest.raises(DecodeError):
        client.run.output(Kind.PING, "abc")


def test_malformed_output():
    recorder = Recorder(httpx.Response(200, json={"id": "abc", "items": "nope"}))
    client = make_client(recorder)
    with pytest.raises(DecodeError):
        client.run.output(Kind.PING, "abc")


def test_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(PerfOpsError, match="connection refused"):
        client.run.output(Kind.PING, "abc")


def test_countries_and_cities():
    recorder = Recorder(
        httpx.Response(200, json=[{"id": 1, "name": "Germany", "iso": "DE", "iso_numeric": 276}]),
        httpx.Response(200, json=[{"name": "Berlin", "country": {"name": "Germany"}}]),
    )
    client = make_client(recorder)

    countries = client.analytics.countries()
    cities = client.analytics.cities()

    assert countries[0].iso_numeric == "276"
    assert cities[0].country.name == "Germany"
    assert [r.url.path for r in recorder.requests] == ["/analytics/dns/countries", "/analytics/dns/city"]


def test_client_context_manager():
    recorder = Recorder(httpx.Response(200, json={"remaining_credits": "12"}))
    with make_client(recorder) as client:
        assert client.dns.remaining_credits() == 12
    assert client._http.is_closed
