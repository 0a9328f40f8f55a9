import json

import httpx
import pytest

from core.config import DestinationSettings
from core.request_types import (
    Completed,
    InboundRequest,
    LocalFailure,
    NetworkFailure,
    OutboundResponse,
)
from services.destination import DestinationClient
from services.forwarder import (
    CONFIG_ERROR_MESSAGE,
    INTERNAL_ERROR_MESSAGE,
    NO_RESPONSE_MESSAGE,
    RESPONSE_ERROR_MESSAGE,
    Forwarder,
    stringify,
)

DESTINATION = "https://script.google.com/macros/s/abc/exec"


class _Destination:
    """MockTransport handler that records requests and replays a canned reply."""

    def __init__(self, reply):
        self.reply = reply
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def _forwarder(destination, logger, url=DESTINATION):
    client = httpx.AsyncClient(transport=httpx.MockTransport(destination))
    return Forwarder(
        DestinationSettings(url=url),
        DestinationClient(client),
        logger,
    )


@pytest.mark.asyncio
async def test_success_body_passes_through_verbatim(recording_logger):
    destination = _Destination(httpx.Response(200, json={"result": "ok"}))
    forwarder = _forwarder(destination, recording_logger)

    response = await forwarder.forward(InboundRequest(headers={}, body={"action": "list"}))

    assert response == OutboundResponse(200, {"result": "ok"})
    assert recording_logger.errors == []


@pytest.mark.asyncio
async def test_success_status_other_than_200_is_kept(recording_logger):
    destination = _Destination(httpx.Response(201, json=[1, 2]))
    forwarder = _forwarder(destination, recording_logger)

    response = await forwarder.forward(InboundRequest(headers={}, body={}))

    assert response.status_code == 201
    assert response.payload == [1, 2]


@pytest.mark.asyncio
async def test_body_is_sent_unchanged_as_json_post(recording_logger):
    destination = _Destination(httpx.Response(200, json={}))
    forwarder = _forwarder(destination, recording_logger)
    body = {"action": "save", "rows": [{"id": 1, "name": "Zoë"}], "flag": None}

    await forwarder.forward(InboundRequest(headers={}, body=body))

    (sent,) = destination.requests
    assert sent.method == "POST"
    assert str(sent.url) == DESTINATION
    assert sent.headers["content-type"] == "application/json"
    assert json.loads(sent.content) == body


@pytest.mark.asyncio
async def test_destination_error_status_is_propagated(recording_logger):
    destination = _Destination(httpx.Response(403, json={"error": "denied"}))
    forwarder = _forwarder(destination, recording_logger)

    response = await forwarder.forward(InboundRequest(headers={}, body={}))

    assert response.status_code == 403
    assert response.payload == {
        "success": False,
        "message": 'Destination Error: {"error":"denied"}',
        "statusCode": 403,
    }
    assert recording_logger.errors[0][1] == 403


@pytest.mark.asyncio
async def test_destination_error_with_text_body(recording_logger):
    destination = _Destination(httpx.Response(500, text="Script function not found"))
    forwarder = _forwarder(destination, recording_logger)

    response = await forwarder.forward(InboundRequest(headers={}, body={}))

    assert response.status_code == 500
    assert response.payload["message"] == 'Destination Error: "Script function not found"'
    assert response.payload["statusCode"] == 500


@pytest.mark.asyncio
async def test_missing_destination_url_answers_without_calling_out(recording_logger):
    destination = _Destination(httpx.Response(200, json={}))
    forwarder = _forwarder(destination, recording_logger, url=None)

    response = await forwarder.forward(InboundRequest(headers={}, body={"anything": True}))

    assert response == OutboundResponse(500, {"success": False, "message": CONFIG_ERROR_MESSAGE})
    assert destination.requests == []


@pytest.mark.asyncio
async def test_empty_destination_url_counts_as_missing(recording_logger):
    destination = _Destination(httpx.Response(200, json={}))
    forwarder = _forwarder(destination, recording_logger, url="")

    response = await forwarder.forward(InboundRequest(headers={}, body={}))

    assert response.status_code == 500
    assert response.payload["message"] == CONFIG_ERROR_MESSAGE
    assert destination.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("header_name", ["Authorization", "authorization", "AUTHORIZATION"])
async def test_authorization_is_forwarded_exactly(recording_logger, header_name):
    destination = _Destination(httpx.Response(200, json={}))
    forwarder = _forwarder(destination, recording_logger)

    await forwarder.forward(InboundRequest(headers={header_name: "Bearer abc123"}, body={}))

    assert destination.requests[0].headers["authorization"] == "Bearer abc123"


@pytest.mark.asyncio
async def test_no_authorization_header_when_absent(recording_logger):
    destination = _Destination(httpx.Response(200, json={}))
    forwarder = _forwarder(destination, recording_logger)

    await forwarder.forward(InboundRequest(headers={"x-other": "1"}, body={}))

    sent = destination.requests[0]
    assert "authorization" not in sent.headers
    assert "x-other" not in sent.headers


@pytest.mark.asyncio
async def test_unreachable_destination(recording_logger):
    destination = _Destination(httpx.ConnectError("[Errno 111] Connection refused"))
    forwarder = _forwarder(destination, recording_logger)

    response = await forwarder.forward(InboundRequest(headers={}, body={}))

    assert response.status_code == 500
    assert response.payload == {
        "success": False,
        "message": NO_RESPONSE_MESSAGE,
        "details": "[Errno 111] Connection refused",
    }


@pytest.mark.asyncio
async def test_timeout_is_a_network_failure(recording_logger):
    destination = _Destination(httpx.ReadTimeout("timed out"))
    forwarder = _forwarder(destination, recording_logger)

    response = await forwarder.forward(InboundRequest(headers={}, body={}))

    assert response.status_code == 500
    assert response.payload["message"] == NO_RESPONSE_MESSAGE
    assert "timed out" in response.payload["details"]


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_internal_error(recording_logger):
    class _Exploding:
        async def exchange(self, request):
            raise RuntimeError("boom")

    forwarder = Forwarder(DestinationSettings(url=DESTINATION), _Exploding(), recording_logger)

    response = await forwarder.forward(InboundRequest(headers={}, body={}))

    assert response == OutboundResponse(
        500, {"success": False, "message": INTERNAL_ERROR_MESSAGE, "details": "boom"}
    )


@pytest.mark.asyncio
async def test_repeated_requests_give_same_shape(recording_logger):
    sent = []

    def destination(request):
        sent.append(request)
        return httpx.Response(400, json={"error": "bad"})

    forwarder = _forwarder(destination, recording_logger)
    inbound = InboundRequest(headers={"Authorization": "Bearer t"}, body={"a": 1})

    first = await forwarder.forward(inbound)
    second = await forwarder.forward(inbound)

    assert first == second
    assert len(sent) == 2


class TestToResponse:
    """Mapping of each DownstreamResult variant."""

    def _forwarder(self, logger):
        return Forwarder(DestinationSettings(url=DESTINATION), None, logger)

    def test_partial_response_keeps_status(self, recording_logger):
        result = NetworkFailure("peer closed connection", status=502, body=None)

        response = self._forwarder(recording_logger).to_response(result)

        assert response.status_code == 502
        assert response.payload == {
            "success": False,
            "message": RESPONSE_ERROR_MESSAGE,
            "details": "peer closed connection",
            "statusCode": 502,
        }

    def test_partial_response_prefers_body_for_details(self, recording_logger):
        result = NetworkFailure("read error", status=200, body={"half": "done"})

        response = self._forwarder(recording_logger).to_response(result)

        assert response.status_code == 200
        assert response.payload["details"] == {"half": "done"}

    def test_partial_response_without_status_code_falls_back_to_500(self, recording_logger):
        result = NetworkFailure("reset", status=0)

        response = self._forwarder(recording_logger).to_response(result)

        assert response.status_code == 500
        assert response.payload["statusCode"] == 0

    def test_local_failure(self, recording_logger):
        response = self._forwarder(recording_logger).to_response(LocalFailure("bad url"))

        assert response == OutboundResponse(
            500, {"success": False, "message": INTERNAL_ERROR_MESSAGE, "details": "bad url"}
        )

    def test_every_failure_payload_has_success_and_message(self, recording_logger):
        forwarder = self._forwarder(recording_logger)
        results = [
            Completed(404, {"error": "missing"}),
            NetworkFailure("down"),
            NetworkFailure("cut", status=503),
            LocalFailure("oops"),
        ]

        for result in results:
            payload = forwarder.to_response(result).payload
            assert payload["success"] is False
            assert isinstance(payload["message"], str)


def test_stringify_matches_json_stringify():
    assert stringify({"a": [1, "é"], "b": None}) == '{"a":[1,"é"],"b":null}'
    assert stringify("text") == '"text"'


@pytest.mark.asyncio
async def test_apps_script_redirect_relays_final_body(recording_logger):
    def apps_script(request):
        if request.url.host == "script.google.com":
            return httpx.Response(
                302,
                headers={"location": "https://script.googleusercontent.com/macros/echo?user_content_key=k"},
            )
        return httpx.Response(200, json={"result": "ok"})

    forwarder = _forwarder(apps_script, recording_logger)

    response = await forwarder.forward(InboundRequest(headers={}, body={"action": "read"}))

    assert response == OutboundResponse(200, {"result": "ok"})
    assert recording_logger.errors == []
