"""Line-oriented request logger for non-interactive runs."""

from collections.abc import Mapping
from typing import Any

from rich.console import Console
from rich.markup import escape

from core.headers import HeaderBuilder
from ui.log_utils import (
    submit_log,
    summarize_body,
    write_cli_log,
    write_incoming_log,
    write_outcome_log,
)


class ConsoleLogger:
    """Print one line per event instead of a live dashboard."""

    def __init__(self, console: Console | None = None, *, write_files: bool = True):
        self._console = console or Console()
        self._write_files = write_files

    def log_request(self, path: str, headers: Mapping[str, str], body: Any) -> None:
        auth = "auth" if HeaderBuilder.find_authorization(headers) else "no auth"
        summary = summarize_body(body)
        self._console.print(f"[blue]->[/blue] POST {path} ({auth}) {escape(summary)}", highlight=False)
        if self._write_files:
            submit_log(write_incoming_log, "POST", path, dict(headers), body)
            submit_log(write_cli_log, "REQUEST", summary, path=path)

    def log_response(self, status: int, elapsed_ms: float, *, forwarded: bool = True) -> None:
        style = "green" if 200 <= status < 300 else "red"
        self._console.print(f"[{style}]<-[/{style}] {status} in {elapsed_ms:.0f} ms")
        if self._write_files:
            submit_log(write_outcome_log, status, elapsed_ms, forwarded=forwarded)

    def log_error(self, route: str, status: int, message: str) -> None:
        self._console.print(f"[red bold]![/red bold] {route} {status}: {escape(message[:200])}", highlight=False)
        if self._write_files:
            submit_log(write_cli_log, "ERROR", message[:200], route=route, status=status)
