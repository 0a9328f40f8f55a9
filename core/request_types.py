"""Shared request data types."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class InboundRequest:
    """A call received on the relay route."""

    headers: Mapping[str, str]
    body: Any


@dataclass(frozen=True)
class OutboundRequest:
    """Prepared data for the destination request."""

    destination_url: str
    headers: dict[str, str]
    body: Any


@dataclass(frozen=True)
class Completed:
    """The destination answered, whatever the status code."""

    status: int
    body: Any


@dataclass(frozen=True)
class NetworkFailure:
    """The exchange could not complete.

    ``status`` and ``body`` are set when part of a response had already
    arrived before the failure.
    """

    description: str
    status: int | None = None
    body: Any = None

    @property
    def has_response(self) -> bool:
        return self.status is not None


@dataclass(frozen=True)
class LocalFailure:
    """Something failed on our side, before or after the exchange."""

    description: str


DownstreamResult = Completed | NetworkFailure | LocalFailure


@dataclass(frozen=True)
class OutboundResponse:
    """Status and JSON payload written back to the caller."""

    status_code: int
    payload: Any = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
