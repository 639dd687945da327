"""headerguard CLI - Command line interface."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
import sys

import click
import structlog
from rich.console import Console
from rich.table import Table

from headerguard.core.config import FilterConfig, get_settings, load_filter_config
from headerguard.core.errors import ConfigError
from headerguard.filter.engine import HeaderBlockFilter, create_filter
from headerguard.filter.request import RequestView

console = Console()

EXIT_DENIED = 3


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Configure structlog for CLI use."""
    processors: list[structlog.typing.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _load(config_file: str | None) -> tuple[FilterConfig, HeaderBlockFilter]:
    config_file = config_file or get_settings().config_file
    if not config_file:
        console.print("[red]No config file given[/red] (argument or HEADERGUARD_CONFIG_FILE)")
        sys.exit(1)
    try:
        config = load_filter_config(config_file)
        return config, create_filter(config)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[red]Failed to load config:[/red] {e}")
        sys.exit(1)


def _parse_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise click.BadParameter(f"expected 'Name: value', got {raw!r}", param_hint="--header")
    return name.strip(), value.strip()


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    help="Log level (default: HEADERGUARD_LOG_LEVEL or info)",
)
@click.option("--log-json", is_flag=True, help="Render logs as JSON lines (default: HEADERGUARD_LOG_JSON)")
def main(log_level: str | None, log_json: bool):
    """headerguard - Block requests by header name and value."""
    settings = get_settings()
    configure_logging(
        log_level or settings.log_level,
        log_json or settings.log_json,
    )


@main.command()
@click.argument("config_file", type=click.Path(exists=True), required=False)
def validate(config_file: str | None):
    """Compile a filter config and show its rules."""
    config, header_filter = _load(config_file)

    table = Table(title="Header rules")
    table.add_column("List")
    table.add_column("#", justify="right")
    table.add_column("Rule")
    for index, rule in enumerate(header_filter.block_rules):
        table.add_row("block", str(index), rule.describe())
    for index, rule in enumerate(header_filter.whitelist_rules):
        table.add_row("whitelist", str(index), rule.describe())
    console.print(table)

    ranges = ", ".join(str(r) for r in header_filter.allow_list.ranges) or "-"
    console.print(f"[bold]Allowed IPs:[/bold] {ranges}")
    console.print(f"[bold]Logging:[/bold] {'on' if config.log else 'off'}")
    console.print("[green]Config OK[/green]")


@main.command()
@click.argument("config_file", type=click.Path(exists=True), required=False)
@click.option("--header", "-H", "headers", multiple=True, help="Request header 'Name: value' (repeatable)")
@click.option("--remote", "remote_addr", default=None, help="Peer address, e.g. 127.0.0.1:5000")
@click.option("--url", default="/", help="Request URL used in logs")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def check(config_file: str | None, headers: tuple[str, ...], remote_addr: str | None, url: str, json_output: bool):
    """Evaluate a synthetic request against a filter config.

    Exits 0 when the request would be forwarded and 3 when it would be denied.
    """
    _, header_filter = _load(config_file)
    request = RequestView.from_pairs(
        [_parse_header(h) for h in headers],
        remote_addr=remote_addr,
        url=url,
    )
    result = header_filter.evaluate(request)

    if json_output:
        click.echo(
            json.dumps(
                {
                    "decision": result.decision.value,
                    "reason": result.reason,
                    "header": result.header,
                    "client_ip": str(result.client_ip) if result.client_ip else None,
                }
            )
        )
    elif result.allowed:
        console.print("[green]FORWARD[/green]")
    else:
        console.print(f"[red]DENY[/red] {result.reason}")
        if result.client_ip is not None:
            console.print(f"[bold]Client IP:[/bold] {result.client_ip}", style="dim")

    if result.denied:
        sys.exit(EXIT_DENIED)


@main.command()
@click.argument("config_file", type=click.Path(exists=True), required=False)
@click.option("--upstream", "-u", default=None, help="Upstream base URL (default: HEADERGUARD_UPSTREAM)")
@click.option("--bind", "-b", default=None, help="Listen address host:port (default: HEADERGUARD_BIND)")
@click.option("--timeout", "-t", type=float, default=None, help="Upstream request timeout in seconds")
def serve(config_file: str | None, upstream: str | None, bind: str | None, timeout: float | None):
    """Run the filtering reverse proxy."""
    from headerguard.server.proxy import FilterProxy

    settings = get_settings()
    _, header_filter = _load(config_file)
    proxy = FilterProxy(
        header_filter,
        upstream=upstream or settings.upstream,
        bind=bind or settings.bind,
        request_timeout=settings.request_timeout if timeout is None else timeout,
    )
    console.print(f"Filtering {proxy.bind} -> {proxy.upstream}", style="yellow")
    console.print("Press Ctrl+C to stop.\n", style="dim")

    async def run() -> None:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop_event.set)

        await proxy.start()
        try:
            await stop_event.wait()
        finally:
            await proxy.stop()

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run())
    console.print("[green]Proxy stopped.[/green]")


@main.command()
def version():
    """Show version information."""
    from headerguard import __version__

    console.print(f"[bold]Version:[/bold] {__version__}")
    console.print(f"[bold]Python:[/bold] {sys.version}")


if __name__ == "__main__":
    main()
