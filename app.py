"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api.handlers import handle_relay
from core.config import Config
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from services.destination import DestinationClient
from services.forwarder import Forwarder
from ui.log_utils import GuardedLogger

RELAY_PATH = "/api/apps-script"


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``transport`` replaces the network layer of the destination client
    (tests pass an ``httpx.MockTransport``).
    """
    logger = GuardedLogger(logger)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limits = httpx.Limits(max_connections=100, max_keepalive_connections=20)
        destination_client = httpx.AsyncClient(
            timeout=config.destination.timeout,
            limits=limits,
            follow_redirects=True,
            transport=transport,
        )
        app.state.forwarder = Forwarder(
            destination=config.destination,
            client=DestinationClient(destination_client, timeout=config.destination.timeout),
            logger=logger,
            header_builder=HeaderBuilder(),
        )
        try:
            yield
        finally:
            await destination_client.aclose()

    app = FastAPI(title="Apps Script Proxy", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.cors.allowed_origin],
        allow_methods=list(config.cors.allow_methods),
        allow_headers=list(config.cors.allow_headers),
    )

    @app.post(RELAY_PATH)
    async def relay(request: Request):
        return await handle_relay(request, config, logger)

    return app
