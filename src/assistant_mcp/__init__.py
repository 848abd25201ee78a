"""
Assistant MCP Server

Exposes send_email, search_emails and create_appointment as MCP tools.
"""

__version__ = "1.0.0"

from .server import main, run, create_server, build_registry

__all__ = ["main", "run", "create_server", "build_registry"]
