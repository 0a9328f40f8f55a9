"""Shared protocol definitions."""

from collections.abc import Mapping
from typing import Any, Protocol


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard, ConsoleLogger)."""

    def log_request(self, path: str, headers: Mapping[str, str], body: Any) -> None: ...
    def log_response(self, status: int, elapsed_ms: float, *, forwarded: bool = True) -> None: ...
    def log_error(self, route: str, status: int, message: str) -> None: ...
