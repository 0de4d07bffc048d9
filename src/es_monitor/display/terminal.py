"""Rich rendering of a dashboard snapshot."""

from __future__ import annotations

from datetime import datetime

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from es_monitor.core.schemas import HealthIssue, MetricDimension, Thresholds
from es_monitor.display.formatters import (
    cluster_status_style,
    format_bandwidth,
    format_bytes,
    format_bytes_per_sec,
    format_count,
    format_duration,
    format_percent,
    format_rate,
    percent_style,
    severity_style,
    truncate,
)
from es_monitor.monitoring.base import ClusterSnapshot, SystemMetrics
from es_monitor.scheduler import DashboardSnapshot

SECTION_SYSTEM = "system"
SECTION_CLUSTER = "cluster"


class DashboardRenderer:
    """Builds the dashboard renderable from a ``DashboardSnapshot``.

    Rendering is a pure function of the snapshot; the renderer holds only
    display settings.
    """

    def __init__(
        self,
        thresholds: Thresholds | None = None,
        max_indices: int = 20,
        cluster_label: str = "",
    ) -> None:
        self.thresholds = thresholds or Thresholds()
        self.max_indices = max_indices
        self.cluster_label = cluster_label

    def render(self, snapshot: DashboardSnapshot) -> RenderableType:
        parts: list[RenderableType] = [self._header()]

        cluster = snapshot.get(SECTION_CLUSTER)
        system = snapshot.get(SECTION_SYSTEM)

        if cluster is not None:
            parts.append(self._cluster_panel(cluster))
        if system is not None:
            parts.append(self._system_panel(system))
        if cluster is not None:
            if cluster.nodes:
                parts.append(self._nodes_table(cluster))
            if cluster.indices and self.max_indices > 0:
                parts.append(self._indices_table(cluster))

        parts.append(self._issues_panel(snapshot.issues))

        errors = dict(snapshot.errors)
        if cluster is not None:
            errors.update({f"cluster.{k}": v for k, v in cluster.errors.items()})
        if system is not None:
            errors.update({f"system.{k}": v for k, v in system.errors.items()})
        if errors:
            parts.append(self._errors_panel(errors))

        return Group(*parts)

    def _header(self) -> Text:
        title = Text("Elasticsearch Monitor", style="bold blue")
        if self.cluster_label:
            title.append(f"  {self.cluster_label}", style="cyan")
        title.append(f"  {datetime.now():%Y-%m-%d %H:%M:%S}", style="dim")
        title.append("  (read-only)", style="dim green")
        return title

    def _styled_percent(self, value: float, dimension: MetricDimension) -> Text:
        style = percent_style(value, self.thresholds.get(dimension))
        return Text(format_percent(value), style=style)

    def _cluster_panel(self, cluster: ClusterSnapshot) -> Panel:
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Metric", style="dim")
        table.add_column("Value", style="bold")

        health = cluster.health
        if health is None:
            table.add_row("Status", Text("unavailable", style="dim"))
        else:
            table.add_row("Cluster", health.cluster_name or "-")
            table.add_row(
                "Status", Text(health.status.upper(), style=cluster_status_style(health.status))
            )
            table.add_row(
                "Nodes", f"{health.number_of_nodes} ({health.number_of_data_nodes} data)"
            )
            table.add_row(
                "Shards",
                f"{health.active_shards} active, {health.active_primary_shards} primary",
            )
            table.add_row(
                "Shard states",
                f"{health.relocating_shards} relocating, "
                f"{health.initializing_shards} initializing, "
                f"{health.unassigned_shards} unassigned",
            )
            table.add_row("Active shards", format_percent(health.active_shards_percent_as_number))
            table.add_row("Pending tasks", str(health.number_of_pending_tasks))

        return Panel(table, title="[bold]Cluster[/]", border_style="blue")

    def _system_panel(self, metrics: SystemMetrics) -> Panel:
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Metric", style="dim")
        table.add_column("Value", style="bold")

        cpu = metrics.cpu
        table.add_row("[yellow]CPU[/]", "")
        table.add_row(
            "  Usage", self._styled_percent(cpu.usage_percent, MetricDimension.CPU_PERCENT)
        )
        table.add_row(
            "  User / System / IOWait",
            f"{cpu.user_percent:.1f}% / {cpu.system_percent:.1f}% / {cpu.iowait_percent:.1f}%",
        )
        table.add_row("  Cores", f"{cpu.cores} physical, {cpu.logical_cores} logical")
        table.add_row(
            "  Load", f"{cpu.load_avg_1:.2f} {cpu.load_avg_5:.2f} {cpu.load_avg_15:.2f}"
        )

        memory = metrics.memory
        table.add_row("", "")
        table.add_row("[magenta]Memory[/]", "")
        table.add_row(
            "  Used",
            Text.assemble(
                self._styled_percent(memory.used_percent, MetricDimension.MEMORY_PERCENT),
                f"  {format_bytes(memory.used)} / {format_bytes(memory.total)}",
            ),
        )
        table.add_row("  Available", format_bytes(memory.available))
        table.add_row(
            "  Swap",
            f"{format_percent(memory.swap_used_percent)}  "
            f"{format_bytes(memory.swap_used)} / {format_bytes(memory.swap_total)}",
        )

        disk = metrics.disk
        network = metrics.network
        pending = "" if metrics.rates_ready else " (warming up)"
        table.add_row("", "")
        table.add_row(f"[red]Disk I/O{pending}[/]", "")
        table.add_row(
            "  Read / Write",
            f"{format_bytes_per_sec(disk.read_bytes_per_sec)} / "
            f"{format_bytes_per_sec(disk.write_bytes_per_sec)}",
        )
        table.add_row(
            "  IOPS", f"{disk.read_ops_per_sec:.1f} r / {disk.write_ops_per_sec:.1f} w"
        )
        table.add_row("  Utilisation", format_percent(disk.io_util_percent))
        for partition in disk.partitions:
            table.add_row(
                f"  {truncate(partition.mountpoint, 24)}",
                Text.assemble(
                    self._styled_percent(partition.used_percent, MetricDimension.DISK_PERCENT),
                    f"  {format_bytes(partition.used)} / {format_bytes(partition.total)}",
                    f"  inodes {format_percent(partition.inodes_used_percent)}",
                ),
            )

        table.add_row("", "")
        table.add_row(f"[green]Network{pending}[/]", "")
        table.add_row(
            "  Send / Receive",
            f"{format_bandwidth(network.bytes_sent_per_sec)} / "
            f"{format_bandwidth(network.bytes_recv_per_sec)}",
        )
        table.add_row(
            "  Physical NICs",
            f"{format_bytes_per_sec(network.physical_bytes_sent_per_sec)} / "
            f"{format_bytes_per_sec(network.physical_bytes_recv_per_sec)}",
        )
        table.add_row(
            "  Packets",
            f"{network.packets_sent_per_sec:.0f} out / {network.packets_recv_per_sec:.0f} in /s",
        )
        table.add_row(
            "  Errors / Drops", f"{network.errors_per_sec:.1f} / {network.drops_per_sec:.1f} /s"
        )

        return Panel(table, title="[bold]Host[/]", border_style="blue")

    def _nodes_table(self, cluster: ClusterSnapshot) -> Table:
        table = Table(title="Nodes", expand=True)
        table.add_column("Node", style="cyan")
        table.add_column("IP")
        table.add_column("Roles", style="dim")
        table.add_column("Uptime", justify="right")
        table.add_column("Heap", justify="right")
        table.add_column("CPU", justify="right")
        table.add_column("Mem", justify="right")
        table.add_column("Disk", justify="right")
        table.add_column("FDs", justify="right")
        table.add_column("Old GC", justify="right")
        table.add_column("Index rate", justify="right")
        table.add_column("Query rate", justify="right")

        for node in cluster.nodes:
            table.add_row(
                truncate(node.name, 24),
                node.ip,
                ",".join(node.roles),
                format_duration(node.uptime_millis),
                self._styled_percent(node.heap_used_percent, MetricDimension.HEAP_PERCENT),
                self._styled_percent(node.cpu_percent, MetricDimension.CPU_PERCENT),
                self._styled_percent(node.memory_percent, MetricDimension.MEMORY_PERCENT),
                self._styled_percent(node.disk_used_percent, MetricDimension.DISK_PERCENT),
                self._styled_percent(node.fd_percent, MetricDimension.FD_PERCENT),
                format_count(node.old_gc_count),
                format_rate(node.indexing_rate, "docs/s"),
                format_rate(node.query_rate, "q/s"),
            )
        return table

    def _indices_table(self, cluster: ClusterSnapshot) -> Table:
        shown = cluster.indices[: self.max_indices]
        title = f"Indices (top {len(shown)} of {len(cluster.indices)} by size)"
        table = Table(title=title, expand=True)
        table.add_column("Index", style="cyan")
        table.add_column("Health")
        table.add_column("Status", style="dim")
        table.add_column("Pri/Rep", justify="right")
        table.add_column("Docs", justify="right")
        table.add_column("Size", justify="right")
        table.add_column("Segments", justify="right")
        table.add_column("Index rate", justify="right")
        table.add_column("Query rate", justify="right")

        for index in shown:
            table.add_row(
                truncate(index.name, 40),
                Text(index.health or "-", style=cluster_status_style(index.health)),
                index.status,
                f"{index.primaries}/{index.replicas}",
                format_count(index.docs_count),
                format_bytes(index.store_size_bytes),
                format_count(index.segments_count),
                format_rate(index.indexing_rate, "docs/s"),
                format_rate(index.query_rate, "q/s"),
            )
        return table

    def _issues_panel(self, issues: list[HealthIssue]) -> Panel:
        if not issues:
            return Panel(
                Text("No issues detected", style="green"),
                title="[bold]Health Issues[/]",
                border_style="green",
            )

        table = Table(show_header=True, box=None, padding=(0, 2), expand=True)
        table.add_column("Severity")
        table.add_column("Subject", style="cyan")
        table.add_column("Issue")
        table.add_column("Suggestion", style="dim")
        for issue in issues:
            table.add_row(
                Text(issue.severity.value.upper(), style=severity_style(issue.severity)),
                issue.subject or issue.component,
                issue.message,
                issue.suggestion,
            )

        worst = issues[0].severity
        return Panel(
            table,
            title=f"[bold]Health Issues ({len(issues)})[/]",
            border_style=severity_style(worst).split()[-1],
        )

    def _errors_panel(self, errors: dict[str, str]) -> Panel:
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Section", style="bold red")
        table.add_column("Error")
        for section, message in sorted(errors.items()):
            table.add_row(section, truncate(message, 120))
        return Panel(table, title="[bold]Collection Errors[/]", border_style="red")
