"""HTTP exchange with the destination."""

import json
from typing import Any

import httpx

from core.request_types import (
    Completed,
    DownstreamResult,
    LocalFailure,
    NetworkFailure,
    OutboundRequest,
)


class DestinationClient:
    """POST prepared requests to the destination and report what happened.

    Redirects are followed (Apps Script answers every POST to /exec with a
    302), so the status reported is the one of the final response.
    Never raises for an HTTP status: every status code that comes back is a
    ``Completed`` result. Transport problems become ``NetworkFailure`` and
    problems on our side of the wire become ``LocalFailure``.
    """

    def __init__(self, client: httpx.AsyncClient, timeout: float = 60.0) -> None:
        self._client = client
        self._timeout = timeout

    async def exchange(self, request: OutboundRequest) -> DownstreamResult:
        try:
            req = self._client.build_request(
                "POST",
                request.destination_url,
                json=request.body,
                headers=request.headers,
                timeout=self._timeout,
            )
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            return LocalFailure(_describe(e))

        try:
            response = await self._client.send(req, stream=True, follow_redirects=True)
        except httpx.UnsupportedProtocol as e:
            return LocalFailure(_describe(e))
        except httpx.TimeoutException as e:
            return NetworkFailure(f"Destination timeout: {_describe(e)}")
        except httpx.RequestError as e:
            return NetworkFailure(_describe(e))

        try:
            await response.aread()
        except httpx.RequestError as e:
            # Status line and headers arrived, the body did not.
            return NetworkFailure(_describe(e), status=response.status_code)
        finally:
            await response.aclose()

        return Completed(response.status_code, _decode_body(response))


def _decode_body(response: httpx.Response) -> Any:
    """Parsed JSON when possible, otherwise the raw text."""
    text = response.text
    if not text:
        return ""
    try:
        return json.loads(text)
    except ValueError:
        return text


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__
