"""Shared logging utilities."""

import atexit
import json
import shutil
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable
from uuid import uuid4

from rich.console import Console
from rich.markup import escape

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "proxy.log"

# File writes happen off the event loop, in submission order.
_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="proxy-log")
_error_console = Console(stderr=True)


def submit_log(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
    """Run a log writer on the background executor."""
    future = _executor.submit(fn, *args, **kwargs)
    future.add_done_callback(report_log_failure)
    return future


def report_log_failure(future: Future) -> None:
    """Print the error of a failed log write to stderr."""
    exc = future.exception()
    if exc is not None:
        _error_console.print(f"[red]Log write failed:[/red] {escape(str(exc))}")


def shutdown_log_executor() -> None:
    """Flush pending log writes and stop the executor."""
    _executor.shutdown(wait=True)


atexit.register(shutdown_log_executor)


def summarize_body(body: Any, limit: int = 80) -> str:
    """One-line preview of a JSON body for display."""
    if isinstance(body, dict):
        action = body.get("action")
        keys = ", ".join(str(k) for k in list(body)[:5])
        summary = f"action={action} " if action else ""
        summary += f"{{{keys}}}" if keys else "{}"
    else:
        summary = json.dumps(body, default=str)
    summary = summary.replace("\n", " ").strip()
    return summary[:limit] + "..." if len(summary) > limit else summary


def write_incoming_log(
    method: str,
    path: str,
    headers: Mapping[str, str],
    body: Any,
    *,
    log_root: Path = LOG_ROOT,
) -> Path:
    """Write a single incoming request log entry."""
    payload = {
        "timestamp": _utc_now(),
        "method": method,
        "path": path,
        "headers": redact_headers(headers),
        "body": body,
    }
    return _write_json(log_root / "incoming", payload)


def write_outcome_log(
    status: int,
    elapsed_ms: float,
    *,
    forwarded: bool,
    log_root: Path = LOG_ROOT,
) -> Path:
    """Write a single relay outcome log entry."""
    payload = {
        "timestamp": _utc_now(),
        "status": status,
        "elapsed_ms": round(elapsed_ms, 1),
        "forwarded": forwarded,
    }
    return _write_json(log_root / "outcomes", payload)


def write_cli_log(
    level: str,
    message: str,
    *,
    log_file: Path = CLI_LOG_FILE,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with log_file.open("a") as f:
        f.write(line)


def clear_logs(log_root: Path = LOG_ROOT) -> None:
    """Remove logs left by a previous run."""
    if log_root.exists():
        shutil.rmtree(log_root)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Redact sensitive headers."""
    redacted = {}
    for key, value in headers.items():
        lowered = key.lower()
        if "key" in lowered or "authorization" in lowered or lowered == "cookie":
            redacted[key] = _mask(value)
        else:
            redacted[key] = value
    return redacted


def _write_json(folder: Path, payload: dict[str, Any]) -> Path:
    """Write payload to a unique JSON file in the given folder."""
    folder.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")
    file_path = folder / f"{timestamp}_{uuid4().hex}.json"
    file_path.write_text(json.dumps(payload, indent=2, default=str))
    return file_path


def _mask(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return value[:6] + "..." + value[-4:]


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()


class GuardedLogger:
    """Wrap a RequestLogger so a logging failure never replaces a relay response.

    Failures are reported on stderr.
    """

    def __init__(self, inner: Any):
        self._inner = inner

    def log_request(self, path: str, headers: Mapping[str, str], body: Any) -> None:
        self._call("log_request", path, headers, body)

    def log_response(self, status: int, elapsed_ms: float, *, forwarded: bool = True) -> None:
        self._call("log_response", status, elapsed_ms, forwarded=forwarded)

    def log_error(self, route: str, status: int, message: str) -> None:
        self._call("log_error", route, status, message)

    def _call(self, method: str, *args: Any, **kwargs: Any) -> None:
        try:
            getattr(self._inner, method)(*args, **kwargs)
        except Exception as e:
            _error_console.print(f"[red]Request logging failed ({method}):[/red] {escape(str(e))}")
