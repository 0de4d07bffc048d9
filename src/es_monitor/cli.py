"""CLI for es-monitor.

Provides a rich command-line interface using Typer for:
- Running the live dashboard against a cluster
- Taking a single report
- Generating a sample configuration
"""

from __future__ import annotations

import signal
from pathlib import Path
from types import FrameType

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from es_monitor import __version__
from es_monitor.client.elasticsearch import ElasticsearchClient, ElasticsearchError
from es_monitor.core.config import default_config, load_config, write_sample_config
from es_monitor.core.schemas import MonitorConfig
from es_monitor.monitor import Monitor
from es_monitor.utils.logging import get_logger, setup_logging

app = typer.Typer(
    name="es-monitor",
    help="Read-only Elasticsearch and host monitoring dashboard",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def parse_address(address: str) -> tuple[str | None, str, int | None]:
    """Split ``[scheme://]host[:port]`` into its parts.

    Args:
        address: Cluster address as typed by the user

    Returns:
        (scheme or None, host, port or None)

    Raises:
        typer.BadParameter: If the port is not a number
    """
    scheme: str | None = None
    if "://" in address:
        scheme, address = address.split("://", 1)
    address = address.rstrip("/")

    host, sep, port_text = address.rpartition(":")
    if not sep or "]" in port_text:
        return scheme, address, None
    if not port_text.isdigit():
        raise typer.BadParameter(f"Invalid port in address: {port_text}")
    return scheme, host, int(port_text)


def build_config(
    base: MonitorConfig,
    address: str | None = None,
    host: str | None = None,
    port: int | None = None,
    user: str | None = None,
    password: str | None = None,
    scheme: str | None = None,
    insecure: bool = False,
    interval: float | None = None,
) -> MonitorConfig:
    """Apply command-line overrides to a loaded configuration.

    Explicit ``--host``/``--port``/``--scheme`` win over the positional address.
    The result is always read-only.
    """
    connection: dict[str, object] = {}
    if address:
        addr_scheme, addr_host, addr_port = parse_address(address)
        connection["host"] = addr_host
        if addr_port is not None:
            connection["port"] = addr_port
        if addr_scheme is not None:
            connection["scheme"] = addr_scheme
    if host is not None:
        connection["host"] = host
    if port is not None:
        connection["port"] = port
    if scheme is not None:
        connection["scheme"] = scheme
    if user is not None:
        connection["username"] = user
    if password is not None:
        connection["password"] = password
    if insecure:
        connection["verify_tls"] = False

    if not base.connection.read_only:
        logger.warning("read_only: false in configuration ignored; es-monitor is always read-only")
    connection["read_only"] = True

    data = base.model_dump()
    data["connection"] = {**data["connection"], **connection}
    if interval is not None:
        data["sampling"] = {
            **data["sampling"],
            "system_interval_seconds": interval,
            "cluster_interval_seconds": interval,
            "render_interval_seconds": interval,
        }
    return MonitorConfig.model_validate(data)


@app.command()
def monitor(
    address: str | None = typer.Argument(
        None, help="Cluster address: host, host:port or scheme://host:port"
    ),
    host: str | None = typer.Option(None, "--host", "-H", help="Elasticsearch host"),
    port: int | None = typer.Option(None, "--port", "-p", help="Elasticsearch port"),
    user: str | None = typer.Option(None, "--user", "-u", help="Basic auth username"),
    password: str | None = typer.Option(
        None, "--password", envvar="ES_MONITOR_PASSWORD", help="Basic auth password"
    ),
    scheme: str | None = typer.Option(None, "--scheme", help="http or https"),
    insecure: bool = typer.Option(False, "--insecure", help="Skip TLS certificate verification"),
    interval: float | None = typer.Option(
        None, "--interval", "-i", help="Sampling and refresh interval in seconds"
    ),
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to configuration file (YAML/JSON)"
    ),
    once: bool = typer.Option(False, "--once", help="Print a single report and exit"),
    log_level: str = typer.Option("WARNING", "--log-level", "-l", help="Logging level"),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file in addition to console"
    ),
    json_logs: bool = typer.Option(
        False, "--json-logs", help="Output logs in JSON format (for programmatic parsing)"
    ),
) -> None:
    """Monitor an Elasticsearch cluster and the local host."""
    try:
        setup_logging(
            level=log_level, log_file=log_file, json_format=json_logs, rich_console=not json_logs
        )
    except ValueError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from e

    try:
        base = load_config(config) if config is not None else default_config()
        monitor_config = build_config(
            base,
            address=address,
            host=host,
            port=port,
            user=user,
            password=password,
            scheme=scheme,
            insecure=insecure,
            interval=interval,
        )
    except (FileNotFoundError, ValueError, ValidationError) as e:
        console.print(f"[bold red]Error loading config: {escape(str(e))}[/]")
        raise typer.Exit(1) from e

    client = ElasticsearchClient(monitor_config.connection, monitor_config.safety)
    base_url = monitor_config.connection.base_url
    try:
        info = client.ping()
    except ElasticsearchError as e:
        console.print(f"[bold red]Cannot connect to {base_url}: {escape(str(e))}[/]")
        raise typer.Exit(1) from e

    _show_connection_summary(monitor_config, info)

    dashboard = Monitor(monitor_config, client=client, console=console)

    def _handle_signal(signum: int, frame: FrameType | None) -> None:
        logger.info(f"Received signal {signum}, shutting down")
        dashboard.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    if once:
        dashboard.render(dashboard.run_once())
        return

    try:
        dashboard.run()
    except KeyboardInterrupt:
        dashboard.stop()
    console.print("[bold blue]Monitoring stopped[/]")


@app.command()
def version() -> None:
    """Show the es-monitor version."""
    console.print(f"es-monitor {__version__}")


@app.command()
def init_config(
    output: Path = typer.Option(
        Path("es-monitor.yaml"), "--output", "-o", help="Output configuration file"
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Generate a sample configuration file."""
    if output.exists() and not force:
        console.print(f"[bold red]{output} already exists (use --force to overwrite)[/]")
        raise typer.Exit(1)
    write_sample_config(output)
    console.print(f"[bold green]Sample configuration written to {output}[/]")


def _show_connection_summary(config: MonitorConfig, info: dict[str, object]) -> None:
    """Display the target cluster and the effective sampling settings."""
    table = Table(title="Connection")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    es_version = info.get("version")
    version_number = es_version.get("number", "?") if isinstance(es_version, dict) else "?"

    table.add_row("Cluster", str(info.get("cluster_name", "?")))
    table.add_row("Version", str(version_number))
    table.add_row("URL", config.connection.base_url)
    table.add_row("Mode", "read-only")
    table.add_row("Interval", f"{config.sampling.system_interval_seconds:g}s")

    console.print(table)


if __name__ == "__main__":
    app()
