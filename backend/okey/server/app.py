from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from okey.server.relay import RelayHub
from okey.server.settings import RelayServerSettings
from okey.server.websocket import websocket_endpoint
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.websockets import WebSocket

DISTRIBUTION_NAME = "okey-engine"


def _app_version() -> str:
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "dev"


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": _app_version()})


async def status(request: Request) -> JSONResponse:
    hub: RelayHub = request.app.state.hub
    settings: RelayServerSettings = request.app.state.settings
    return JSONResponse(
        {
            "status": "ok",
            "version": _app_version(),
            "active_games": hub.game_count,
            "connections": hub.connection_count,
            "max_games": settings.max_games,
        },
    )


def create_app(
    settings: RelayServerSettings | None = None,
    hub: RelayHub | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = RelayServerSettings()

    if hub is None:
        hub = RelayHub(max_games=settings.max_games, max_players_per_game=settings.max_players_per_game)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, hub)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        WebSocketRoute("/ws/{game_id}", ws_endpoint),
    ]

    app = Starlette(routes=routes)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.hub = hub

    logger.info("relay server ready", max_games=settings.max_games)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    settings = RelayServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
