"""
Assistant MCP Server

A Model Context Protocol server exposing three tools backed by upstream HTTP
services: send_email (Resend), search_emails (email search service) and
create_appointment (appointment service).

Error Handling Strategy:
- Missing configuration short-circuits inside each tool before any network call
- Upstream failures are caught per tool and returned as error text
- Unknown tools and invalid arguments are raised so the SDK reports them as
  protocol-level error results
- Errors are logged to stderr
"""

import logging
import sys
import traceback
from typing import Any, Optional

# Configure logging FIRST, before any other imports that might log
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("assistant-mcp")

try:
    from mcp.server import Server
    from mcp.server.stdio import stdio_server
    from mcp.types import Tool, TextContent
except ImportError as e:
    logger.critical(f"Failed to import MCP library: {e}")
    logger.critical("Make sure 'mcp' is installed: pip install mcp")
    sys.exit(1)

import httpx

from . import __version__
from .config import Settings, load_settings
from .tools import InvalidArgumentsError, ToolNotFoundError, ToolRegistry
from .tools import appointments, mail
from .upstream import UpstreamClient

SERVER_NAME = "assistant-mcp"


def build_registry(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    registry: Optional[ToolRegistry] = None,
) -> ToolRegistry:
    """Register every tool module into ``registry`` (a new one if None).

    Safe to call repeatedly on the same registry: already-registered tools
    are left untouched.
    """
    if registry is None:
        registry = ToolRegistry()
    http = UpstreamClient(timeout=settings.upstream_timeout, transport=transport)

    for module in (mail, appointments):
        module.register(registry, settings, http)

    logger.info(f"Tools registered: {', '.join(registry.names())}")
    return registry


def create_server(
    settings: Optional[Settings] = None,
    registry: Optional[ToolRegistry] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Server:
    """Create and configure the MCP server.

    Args:
        settings: Runtime configuration. Loaded from the environment if None.
        registry: Pre-built tool registry. Built from ``settings`` if None.
        transport: Optional httpx transport for upstream calls (tests).

    Returns:
        Configured MCP Server instance.
    """
    logger.info("Creating MCP server...")

    if settings is None:
        settings = load_settings()
    if registry is None:
        registry = build_registry(settings, transport)

    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """Return list of available tools."""
        return registry.list_tools()

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Dispatch a tool call through the registry.

        Unknown tools and invalid arguments propagate to the SDK; anything
        else a handler lets slip is logged and returned as error text.
        """
        logger.info(f"Tool call: {name}")
        try:
            return await registry.call(name, arguments)
        except (ToolNotFoundError, InvalidArgumentsError) as e:
            logger.warning(str(e))
            raise
        except Exception as e:
            logger.error(f"Tool '{name}' failed with error: {e}")
            logger.error(f"Traceback:\n{traceback.format_exc()}")
            return [TextContent(type="text", text=f"Error in {name}: {type(e).__name__}: {e}")]

    logger.info(f"Server handlers registered ({len(registry)} tools)")
    return server


# =============================================================================
# Main Entry Point (stdio transport — local MCP clients)
# =============================================================================

async def run(settings: Optional[Settings] = None):
    """Run the MCP server via stdio transport."""
    logger.info("Starting Assistant MCP Server (stdio)...")

    server = create_server(settings)

    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Transport ready, starting server loop...")
            init_options = server.create_initialization_options()
            await server.run(read_stream, write_stream, init_options)
    finally:
        logger.info("Server shutdown complete")


def main():
    """Console entry point for the stdio server."""
    import asyncio

    try:
        settings = load_settings()
        logging.getLogger().setLevel(settings.log_level)
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.critical(f"FATAL ERROR: {type(e).__name__}: {e}")
        logger.critical(f"Full traceback:\n{traceback.format_exc()}")
        sys.exit(1)


if __name__ == "__main__":
    main()
