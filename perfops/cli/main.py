"""
Main CLI application using Typer.
"""

from pathlib import Path
from typing import Annotated, List, Optional

import typer
from loguru import logger
from rich.console import Console

from perfops import __version__
from perfops.api.client import Client
from perfops.api.errors import PerfOpsError, is_arg_error, is_unauthorized
from perfops.api.models import (
    CurlRequest,
    DNSPerfRequest,
    DNSResolveRequest,
    RunRequest,
    TestKind,
    build_run_request,
)
from perfops.cli.formatters import Formatter, print_output_json
from perfops.core.config import AppConfig, RenderMode
from perfops.core.runner import run_test
from perfops.storage.logger import setup_logging
from perfops.utils.network import FREE_MAX_NODE_CAP

app = typer.Typer(
    name="perfops",
    help="perfops is a tool to interact with the PerfOps API.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)

UNAUTHORIZED_MESSAGE = (
    "The API token was declined. Please correct it or do not send a token to use the free plan."
)
LIMIT_HELP = (
    f"For free users the maximum allowed number nodes for a single test is {FREE_MAX_NODE_CAP}. "
    "Please change your limit."
)

# Parameter names of the arguments validated before a request is sent.
ARG_PARAMS = {
    "target": "target",
    "limit": "limit",
    "dns server": "dns_server",
    "param": "query_type",
}


def _parse_node_ids(value: str) -> List[int]:
    if not value:
        return []
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise typer.BadParameter(
            "expected a comma separated list of node IDs", param_hint="'--nodeid'"
        )


Target = Annotated[str, typer.Argument(help="Domain name or IP address, e.g. google.com or 8.8.8.8")]
From = Annotated[
    str,
    typer.Option("--from", "-F", help="A continent, region (e.g eastern europe), country, US state or city"),
]
NodeIDs = Annotated[
    str,
    typer.Option(
        "--nodeid",
        "-N",
        metavar="IDS",
        help="A comma separated list of node IDs to run a test from",
    ),
]
Limit = Annotated[int, typer.Option("--limit", "-L", help="The maximum number of nodes to use")]
JSONOutput = Annotated[bool, typer.Option("--json", help="Print the final result as JSON")]
Debug = Annotated[bool, typer.Option("--debug", help="Enables debug output")]
Plain = Annotated[bool, typer.Option("--plain", help="Print each node's result once it is complete")]
OutputFile = Annotated[
    Optional[Path],
    typer.Option("--output", "-o", help="Also write the final result to a file"),
]
IPv6 = Annotated[bool, typer.Option("--ipv6", "-6", help="Use IPv6")]
DNSServer = Annotated[
    str,
    typer.Option(
        "--dns-server",
        "-S",
        help="The DNS server to use to query for the test. You can use 127.0.0.1 "
        "to use the local resolver for location based benchmarking.",
    ),
]


def _new_client(config: AppConfig) -> Client:
    return Client(api_key=config.api_key, base_url=config.base_url)


def _config(ctx: typer.Context) -> AppConfig:
    if ctx.obj is None:
        ctx.obj = AppConfig.load()
    return ctx.obj


def _is_option(param) -> bool:
    return getattr(param, "param_type_name", "") == "option"


def _flag_usage(param) -> str:
    if _is_option(param):
        line = "  " + ", ".join(sorted(param.opts, key=len))
        if not getattr(param, "is_flag", False):
            line += f" {param.type.name.upper()}"
        return line
    return f"  {param.human_readable_name}"


def _invalid_arg_help(ctx: typer.Context, arg_name: str) -> None:
    if arg_name == "limit":
        console.print(LIMIT_HELP, markup=False, highlight=False)
        return
    console.print("Missing or invalid arguments:", markup=False, highlight=False)
    wanted = ARG_PARAMS.get(arg_name, arg_name)
    for param in ctx.command.params:
        if param.name == wanted or (_is_option(param) and param.required):
            console.print(_flag_usage(param), markup=False, highlight=False)


def _check_run_error(ctx: typer.Context, err: PerfOpsError) -> None:
    """Translate a run error into user-facing output and an exit status."""
    if is_unauthorized(err):
        err_console.print(f"Error: {UNAUTHORIZED_MESSAGE}", markup=False, highlight=False)
        raise typer.Exit(1)
    if is_arg_error(err):
        _invalid_arg_help(ctx, err.arg_name)
        raise typer.Exit(2)
    err_console.print(f"Error: {err}", markup=False, highlight=False)
    raise typer.Exit(1)


def _run(
    ctx: typer.Context,
    kind: TestKind,
    request: RunRequest,
    mode: RenderMode,
    output_json: bool,
    debug: bool,
    plain: bool,
    output_file: Optional[Path],
) -> None:
    config = _config(ctx)
    if debug:
        setup_logging(True, config.log_file)
    options = config.run_options(
        mode=RenderMode.STREAM if plain else mode,
        output_json=output_json,
        debug=debug,
        output_file=output_file,
    )
    logger.debug(f"Running {kind.value} test on {request.target}")

    client = _new_client(config)
    try:
        run_test(
            request,
            lambda req: client.run.submit(kind, req),
            lambda test_id: client.run.output(kind, test_id),
            options,
            formatter=Formatter(print_id=options.debug and not output_json),
            kind=kind,
        )
    except PerfOpsError as e:
        logger.debug(f"{kind.value} test failed: {e!r}")
        _check_run_error(ctx, e)
    finally:
        client.close()


@app.callback(invoke_without_command=True)
def _default(
    ctx: typer.Context,
    key: Annotated[
        Optional[str],
        typer.Option("--key", "-K", help="The PerfOps API key (default is $PERFOPS_API_KEY)"),
    ] = None,
    log_file: Annotated[
        Optional[Path],
        typer.Option("--log-file", help="Write a debug log to this file"),
    ] = None,
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Prints the version information of perfops", is_eager=True),
    ] = False,
):
    """
    perfops is a tool to interact with the PerfOps API.
    """
    if version:
        console.print(f"perfops {__version__}", markup=False, highlight=False)
        raise typer.Exit(0)
    config = AppConfig.load(api_key=key, log_file=log_file)
    setup_logging(config.debug, config.log_file)
    ctx.obj = config
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help(), markup=False, highlight=False)
        raise typer.Exit(0)


@app.command()
def ping(
    ctx: typer.Context,
    target: Target,
    from_: From = "",
    node_ids: NodeIDs = "",
    limit: Limit = 1,
    output_json: JSONOutput = False,
    debug: Debug = False,
    plain: Plain = False,
    output_file: OutputFile = None,
):
    """
    Run a ping test on a domain name or IP address.
    """
    request = build_run_request(target, from_ or _config(ctx).location, _parse_node_ids(node_ids), limit)
    _run(ctx, TestKind.PING, request, RenderMode.SNAPSHOT, output_json, debug, plain, output_file)


@app.command()
def mtr(
    ctx: typer.Context,
    target: Target,
    from_: From = "",
    node_ids: NodeIDs = "",
    limit: Limit = 1,
    output_json: JSONOutput = False,
    debug: Debug = False,
    plain: Plain = False,
    output_file: OutputFile = None,
):
    """
    Run a MTR test on a domain name or IP address.
    """
    request = build_run_request(target, from_ or _config(ctx).location, _parse_node_ids(node_ids), limit)
    _run(ctx, TestKind.MTR, request, RenderMode.SNAPSHOT, output_json, debug, plain, output_file)


@app.command()
def traceroute(
    ctx: typer.Context,
    target: Target,
    from_: From = "",
    node_ids: NodeIDs = "",
    limit: Limit = 1,
    ipv6: IPv6 = False,
    output_json: JSONOutput = False,
    debug: Debug = False,
    plain: Plain = False,
    output_file: OutputFile = None,
):
    """
    Run a traceroute test on a domain name or IP address.
    """
    request = build_run_request(
        target, from_ or _config(ctx).location, _parse_node_ids(node_ids), limit, 6 if ipv6 else 4
    )
    _run(ctx, TestKind.TRACEROUTE, request, RenderMode.SNAPSHOT, output_json, debug, plain, output_file)


@app.command()
def latency(
    ctx: typer.Context,
    target: Target,
    from_: From = "",
    node_ids: NodeIDs = "",
    limit: Limit = 1,
    ipv6: IPv6 = False,
    output_json: JSONOutput = False,
    debug: Debug = False,
    plain: Plain = False,
    output_file: OutputFile = None,
):
    """
    Run a ICMP latency test on a domain name or IP address.
    """
    request = build_run_request(
        target, from_ or _config(ctx).location, _parse_node_ids(node_ids), limit, 6 if ipv6 else 4
    )
    _run(ctx, TestKind.LATENCY, request, RenderMode.SNAPSHOT, output_json, debug, plain, output_file)


@app.command()
def dnsperf(
    ctx: typer.Context,
    target: Target,
    dns_server: DNSServer,
    from_: From = "",
    node_ids: NodeIDs = "",
    limit: Limit = 1,
    ipv6: IPv6 = False,
    output_json: JSONOutput = False,
    debug: Debug = False,
    plain: Plain = False,
    output_file: OutputFile = None,
):
    """
    Find the time it takes to resolve a DNS record on a target.
    """
    request = DNSPerfRequest(
        target=target,
        dns_server=dns_server,
        location=from_ or _config(ctx).location,
        nodes=_parse_node_ids(node_ids),
        limit=limit,
        ip_version=6 if ipv6 else 4,
    )
    _run(ctx, TestKind.DNS_PERF, request, RenderMode.STREAM, output_json, debug, plain, output_file)


@app.command()
def resolve(
    ctx: typer.Context,
    target: Target,
    query_type: Annotated[
        str,
        typer.Option(
            "--type",
            "-T",
            help="The DNS query type. One of: A, AAAA, CNAME, MX, NAPTR, NS, PTR, SOA, SPF, SRV, TXT.",
        ),
    ],
    dns_server: DNSServer,
    from_: From = "",
    node_ids: NodeIDs = "",
    limit: Limit = 1,
    output_json: JSONOutput = False,
    debug: Debug = False,
    plain: Plain = False,
    output_file: OutputFile = None,
):
    """
    Resolve a DNS record on a domain name.
    """
    request = DNSResolveRequest(
        target=target,
        param=query_type,
        dns_server=dns_server,
        location=from_ or _config(ctx).location,
        nodes=_parse_node_ids(node_ids),
        limit=limit,
    )
    _run(ctx, TestKind.DNS_RESOLVE, request, RenderMode.STREAM, output_json, debug, plain, output_file)


@app.command()
def curl(
    ctx: typer.Context,
    target: Target,
    head: Annotated[bool, typer.Option("--head/--no-head", "-I", help="Fetch the headers only")] = True,
    insecure: Annotated[
        bool,
        typer.Option(
            "--insecure",
            "-k",
            help="Allow curl to proceed for server connections considered insecure",
        ),
    ] = False,
    http2: Annotated[bool, typer.Option("--http2", help="Use HTTP version 2")] = False,
    from_: From = "",
    node_ids: NodeIDs = "",
    limit: Limit = 1,
    ipv6: IPv6 = False,
    output_json: JSONOutput = False,
    debug: Debug = False,
    plain: Plain = False,
    output_file: OutputFile = None,
):
    """
    Run a curl test on a domain name or IP address.
    """
    request = CurlRequest(
        target=target,
        head=head,
        insecure=insecure,
        http2=http2,
        location=from_ or _config(ctx).location,
        nodes=_parse_node_ids(node_ids),
        limit=limit,
        ip_version=6 if ipv6 else 4,
    )
    _run(ctx, TestKind.CURL, request, RenderMode.STREAM, output_json, debug, plain, output_file)


@app.command()
def credits(ctx: typer.Context):
    """
    Show the remaining credits of the API key.
    """
    client = _new_client(_config(ctx))
    try:
        remaining = client.dns.remaining_credits()
    except PerfOpsError as e:
        _check_run_error(ctx, e)
    finally:
        client.close()
    console.print(f"Remaining credits: {remaining}", markup=False, highlight=False)


LIST_TYPES = ("countries", "cities")


@app.command("list")
def list_locations(
    ctx: typer.Context,
    data_type: Annotated[str, typer.Argument(metavar="TYPE", help="One of: countries, cities")],
):
    """
    Get the locations where PerfOps nodes are present, e.g. 'list countries' or 'list cities'.
    """
    if data_type not in LIST_TYPES:
        err_console.print(f"Error: no data with type '{data_type}'", markup=False, highlight=False)
        raise typer.Exit(1)

    client = _new_client(_config(ctx))
    formatter = Formatter()
    formatter.start_spinner()
    try:
        if data_type == "countries":
            items = client.analytics.countries()
        else:
            items = client.analytics.cities()
    except PerfOpsError as e:
        _check_run_error(ctx, e)
    finally:
        formatter.stop_spinner()
        client.close()
    print_output_json([item.model_dump(mode="json", by_alias=True, exclude_none=True) for item in items])


if __name__ == "__main__":
    app()
