"""
Assistant MCP HTTP Server

Streamable HTTP transport for remote access to the Assistant MCP server.

Routes:
- POST /mcp     MCP requests (stateless: one transport per request)
- GET /mcp      405, use POST
- OPTIONS /, /mcp  204 (CORS preflight)
- GET /         plain-text usage banner
- GET /health   configuration status of each upstream service
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from starlette.applications import Starlette
from starlette.datastructures import Headers
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from mcp.server.streamable_http_manager import StreamableHTTPSessionManager

from . import __version__
from .config import Settings, load_settings
from .server import SERVER_NAME, build_registry, create_server

logger = logging.getLogger("assistant-mcp")

BANNER = "GET uses POST /mcp."
MAX_BODY_BYTES = 2 * 1024 * 1024


class PreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware that answers accepted preflights with an empty 204."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            k: v for k, v in response.headers.items()
            if k not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)


class MCPEndpoint:
    """ASGI app for the /mcp path.

    POST (and anything else the SDK understands) goes to the session manager.
    GET is answered with 405 since stateless mode has no standalone stream.
    """

    def __init__(self, session_manager: StreamableHTTPSessionManager, max_body_bytes: int = MAX_BODY_BYTES):
        self.session_manager = session_manager
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        method = scope["method"]

        if method == "OPTIONS":
            response = Response(status_code=204)
        elif method in ("GET", "HEAD"):
            response = PlainTextResponse(
                "Method not allowed. Use POST /mcp.",
                status_code=405,
                headers={"Allow": "POST, OPTIONS"},
            )
        elif self._too_large(scope):
            response = PlainTextResponse("Request body too large.", status_code=413)
        else:
            await self.session_manager.handle_request(scope, receive, send)
            return

        await response(scope, receive, send)

    def _too_large(self, scope: Scope) -> bool:
        for key, value in scope.get("headers", []):
            if key == b"content-length":
                try:
                    return int(value) > self.max_body_bytes
                except ValueError:
                    return False
        return False


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Starlette:
    """Create the Starlette ASGI application."""
    if settings is None:
        settings = load_settings()

    registry = build_registry(settings, transport)
    server = create_server(settings, registry=registry)
    session_manager = StreamableHTTPSessionManager(app=server, stateless=True)

    @asynccontextmanager
    async def lifespan(app):
        """Application lifespan — startup/shutdown."""
        logger.info("Assistant MCP HTTP Server starting...")
        async with session_manager.run():
            yield
        logger.info("Assistant MCP HTTP Server shut down.")

    async def root(request: Request) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=204)
        return PlainTextResponse(BANNER)

    async def health(request: Request) -> JSONResponse:
        """Report which upstream services are configured.

        Nothing is contacted; "degraded" only means some tool will answer
        with a configuration error.
        """
        upstreams = settings.upstream_status()
        status = "healthy" if all(s == "configured" for s in upstreams.values()) else "degraded"
        return JSONResponse({
            "status": status,
            "server": SERVER_NAME,
            "version": __version__,
            "tools": registry.names(),
            "upstreams": upstreams,
        })

    routes = [
        Route("/", root, methods=["GET", "OPTIONS"]),
        Route("/health", health, methods=["GET"]),
        Route("/mcp", endpoint=MCPEndpoint(session_manager)),
    ]

    middleware = [
        Middleware(
            PreflightCORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["Mcp-Session-Id"],
        ),
    ]

    return Starlette(
        routes=routes,
        middleware=middleware,
        lifespan=lifespan,
    )


def main():
    """Main entry point for HTTP server."""
    settings = load_settings()
    logging.getLogger().setLevel(settings.log_level)

    app = create_app(settings)
    logger.info(f"MCP server listening on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
