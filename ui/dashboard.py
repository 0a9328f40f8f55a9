"""Real-time CLI dashboard for proxy monitoring."""

from collections.abc import Mapping
from datetime import datetime
from threading import Lock
from typing import Any

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from core.headers import HeaderBuilder
from ui.log_utils import (
    submit_log,
    summarize_body,
    write_cli_log,
    write_incoming_log,
    write_outcome_log,
)

console = Console()


class RequestInfo:
    """Info about a single relayed request."""

    def __init__(self, path: str, summary: str, has_auth: bool, timestamp: datetime):
        self.path = path
        self.summary = summary
        self.has_auth = has_auth
        self.timestamp = timestamp


class Dashboard:
    """Real-time dashboard showing relay traffic and errors."""

    def __init__(self, config: Config):
        self.config = config
        self._lock = Lock()
        self._recent: list[RequestInfo] = []
        self._max_recent = 8
        self._counts = {"received": 0, "ok": 0, "error": 0, "rejected": 0}
        self._last_latency_ms: float | None = None
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_request(self, path: str, headers: Mapping[str, str], body: Any) -> None:
        """Log a request received on the relay route."""
        with self._lock:
            self._counts["received"] += 1
            summary = summarize_body(body)
            info = RequestInfo(
                path=path,
                summary=summary,
                has_auth=HeaderBuilder.find_authorization(headers) is not None,
                timestamp=datetime.now(),
            )
            self._recent.insert(0, info)
            self._recent = self._recent[: self._max_recent]

            submit_log(write_incoming_log, "POST", path, dict(headers), body)
            submit_log(write_cli_log, "REQUEST", summary, path=path)

            self._refresh()

    def log_response(self, status: int, elapsed_ms: float, *, forwarded: bool = True) -> None:
        """Log the status returned to the caller."""
        with self._lock:
            if not forwarded:
                self._counts["rejected"] += 1
            elif 200 <= status < 300:
                self._counts["ok"] += 1
            else:
                self._counts["error"] += 1
            self._last_latency_ms = elapsed_ms

            submit_log(write_outcome_log, status, elapsed_ms, forwarded=forwarded)
            self._refresh()

    def log_error(self, route: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{route} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
            submit_log(write_cli_log, "ERROR", message[:200], route=route, status=status)

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_requests_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Apps Script Proxy", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Received: {self._counts['received']}", style="blue")
        stats.append("  |  ")
        stats.append(f"OK: {self._counts['ok']}", style="green")
        stats.append("  |  ")
        stats.append(f"Errors: {self._counts['error']}", style="red")
        stats.append("  |  ")
        stats.append(f"Rejected: {self._counts['rejected']}", style="yellow")
        if self._last_latency_ms is not None:
            stats.append("  |  ")
            stats.append(f"Last: {self._last_latency_ms:.0f} ms", style="dim")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_requests_panel(self) -> Panel:
        """Build recent requests panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Auth", width=4)
            table.add_column("Body", ratio=1)

            for info in self._recent:
                table.add_row(
                    info.timestamp.strftime("%H:%M:%S"),
                    "[green]yes[/green]" if info.has_auth else "[dim]no[/dim]",
                    escape(info.summary),
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[blue]Recent Requests[/blue]", border_style="blue")

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        elif not self.config.destination.configured:
            content = Text(
                "Destination URL missing: set DESTINATION_URL, every request will fail with 500",
                style="yellow",
            )
        else:
            content = Text(
                f"Point the client at http://localhost:{self.config.proxy.port}/api/apps-script",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
