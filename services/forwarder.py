"""Forward relay requests to the destination and normalize the reply."""

import json
from typing import Any

from core.config import DestinationSettings
from core.exceptions import ConfigurationError
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.request_types import (
    Completed,
    DownstreamResult,
    InboundRequest,
    LocalFailure,
    NetworkFailure,
    OutboundRequest,
    OutboundResponse,
)
from services.destination import DestinationClient

ROUTE_NAME = "destination"

CONFIG_ERROR_MESSAGE = "Server configuration error: destination URL missing."
DESTINATION_ERROR_PREFIX = "Destination Error: "
RESPONSE_ERROR_MESSAGE = "internal error forwarding request (response error)"
NO_RESPONSE_MESSAGE = "internal error forwarding request (no response from destination)"
INTERNAL_ERROR_MESSAGE = "internal error"


class Forwarder:
    """Relay one inbound request to the configured destination.

    Holds no per-request state, so a single instance serves concurrent
    requests. ``forward`` always returns an ``OutboundResponse``.
    """

    def __init__(
        self,
        destination: DestinationSettings,
        client: DestinationClient,
        logger: RequestLogger,
        header_builder: HeaderBuilder | None = None,
    ) -> None:
        self._destination = destination
        self._client = client
        self._logger = logger
        self._headers = header_builder or HeaderBuilder()

    async def forward(self, inbound: InboundRequest) -> OutboundResponse:
        try:
            outbound = self.prepare(inbound)
        except ConfigurationError as e:
            self._logger.log_error(ROUTE_NAME, 500, str(e))
            return OutboundResponse(500, {"success": False, "message": CONFIG_ERROR_MESSAGE})

        try:
            result = await self._client.exchange(outbound)
            return self.to_response(result)
        except Exception as e:
            return self.to_response(LocalFailure(str(e) or type(e).__name__))

    def prepare(self, inbound: InboundRequest) -> OutboundRequest:
        """Build the destination request.

        Raises:
            ConfigurationError: if no destination URL is configured.
        """
        if not self._destination.url:
            raise ConfigurationError("destination URL is not configured")
        return OutboundRequest(
            destination_url=self._destination.url,
            headers=self._headers.build_destination_headers(inbound.headers),
            body=inbound.body,
        )

    def to_response(self, result: DownstreamResult) -> OutboundResponse:
        """Map an exchange result onto the caller-facing response."""
        if isinstance(result, Completed):
            if 200 <= result.status < 300:
                return OutboundResponse(result.status, result.body)
            message = stringify(result.body)
            self._logger.log_error(ROUTE_NAME, result.status, message)
            return OutboundResponse(
                result.status,
                {
                    "success": False,
                    "message": DESTINATION_ERROR_PREFIX + message,
                    "statusCode": result.status,
                },
            )

        if isinstance(result, NetworkFailure):
            if result.has_response:
                status = result.status or 500
                self._logger.log_error(ROUTE_NAME, status, result.description)
                return OutboundResponse(
                    status,
                    {
                        "success": False,
                        "message": RESPONSE_ERROR_MESSAGE,
                        "details": result.body or result.description,
                        "statusCode": result.status,
                    },
                )
            self._logger.log_error(ROUTE_NAME, 500, result.description)
            return OutboundResponse(
                500,
                {
                    "success": False,
                    "message": NO_RESPONSE_MESSAGE,
                    "details": result.description,
                },
            )

        self._logger.log_error(ROUTE_NAME, 500, result.description)
        return OutboundResponse(
            500,
            {
                "success": False,
                "message": INTERNAL_ERROR_MESSAGE,
                "details": result.description,
            },
        )


def stringify(value: Any) -> str:
    """Serialize like JavaScript's JSON.stringify (compact, unicode kept)."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
