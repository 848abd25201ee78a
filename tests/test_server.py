"""
Tests for Assistant MCP Server
"""

import sys
from pathlib import Path

import pytest
from mcp import types
from mcp.types import Tool, TextContent
from starlette.testclient import TestClient

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from assistant_mcp.config import Settings
from assistant_mcp.http_server import BANNER, MAX_BODY_BYTES, create_app
from assistant_mcp.server import build_registry, create_server
from assistant_mcp.tools import ToolNotFoundError, ToolRegistry
from assistant_mcp.tools.schemas import CREATE_APPOINTMENT, SEARCH_EMAILS, SEND_EMAIL


def _tool(name: str) -> Tool:
    return Tool(name=name, description="test tool", inputSchema={"type": "object", "properties": {}})


class TestToolRegistry:
    """Test the idempotent tool registry."""

    @pytest.mark.asyncio
    async def test_register_once_keeps_first(self):
        """Test a duplicate name is ignored and the first handler stays active."""
        registry = ToolRegistry()

        async def first(arguments):
            return [TextContent(type="text", text="first")]

        async def second(arguments):
            return [TextContent(type="text", text="second")]

        assert registry.register_once(_tool("echo"), first) is True
        assert registry.register_once(_tool("echo"), second) is False

        assert len(registry) == 1
        result = await registry.call("echo", {})
        assert result[0].text == "first"

    def test_build_registry_is_idempotent(self):
        """Test registering all modules twice into one registry."""
        registry = build_registry(Settings())
        build_registry(Settings(), registry=registry)

        assert registry.names() == ["search_emails", "send_email", "create_appointment"]

    def test_separate_registries_are_independent(self):
        """Test there is no process-wide registry state."""
        a = build_registry(Settings())
        b = ToolRegistry()
        assert len(a) == 3
        assert len(b) == 0
        assert "send_email" not in b

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        """Test calling an unregistered tool raises."""
        registry = build_registry(Settings())
        with pytest.raises(ToolNotFoundError):
            await registry.call("delete_everything", {})

    @pytest.mark.asyncio
    async def test_handler_without_model_gets_raw_arguments(self):
        """Test tools registered without an input model see the raw dict."""
        registry = ToolRegistry()
        seen = []

        async def handler(arguments):
            seen.append(arguments)
            return [TextContent(type="text", text="ok")]

        registry.register_once(_tool("raw"), handler)
        await registry.call("raw", None)
        assert seen == [{}]


class TestToolDefinitions:
    """Test the advertised tool schemas."""

    def test_titles(self):
        assert SEARCH_EMAILS.title == "Search Email Archive"
        assert CREATE_APPOINTMENT.title == "Create Appointment"
        assert SEND_EMAIL.title == "Send Email"

    def test_appointment_schema_uses_camel_case(self):
        """Test the schema exposes the wire names of each argument."""
        schema = CREATE_APPOINTMENT.inputSchema
        assert schema["type"] == "object"
        assert set(schema["properties"]) == {"dateTime", "attendeeEmail", "durationInMinutes"}
        assert set(schema["required"]) == {"dateTime", "attendeeEmail", "durationInMinutes"}
        assert schema["properties"]["durationInMinutes"]["exclusiveMinimum"] == 0

    def test_search_schema(self):
        schema = SEARCH_EMAILS.inputSchema
        assert schema["required"] == ["query"]
        assert schema["properties"]["query"]["minLength"] == 1

    def test_send_email_schema(self):
        schema = SEND_EMAIL.inputSchema
        assert set(schema["required"]) == {"to", "subject", "body"}
        assert "pattern" in schema["properties"]["to"]


class TestSettings:
    """Test environment configuration."""

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.port == 8080
        assert settings.host == "0.0.0.0"
        assert settings.resend_api_key is None
        assert settings.search_api_url is None
        assert settings.appointment_service_url is None
        assert settings.email_from == "onboarding@resend.dev"
        assert settings.doctor_id == "default-doc"

    def test_values_from_env(self):
        settings = Settings.from_env({
            "PORT": "9000",
            "RESEND_API_KEY": " re_abc ",
            "EMAIL_SEARCH_API_URL": "http://search.test/",
            "APPOINTMENT_SERVICE_URL": "http://booking.test",
            "UPSTREAM_TIMEOUT": "5",
            "LOG_LEVEL": "debug",
        })
        assert settings.port == 9000
        assert settings.resend_api_key == "re_abc"
        assert settings.search_api_url == "http://search.test"
        assert settings.appointment_service_url == "http://booking.test"
        assert settings.upstream_timeout == 5.0
        assert settings.log_level == "DEBUG"

    def test_static_search_url_fallback(self):
        """Test the alternate search URL variable name is honoured."""
        settings = Settings.from_env({"STATIC_SEARCH_API_URL": "http://static.test"})
        assert settings.search_api_url == "http://static.test"

        settings = Settings.from_env({
            "EMAIL_SEARCH_API_URL": "http://primary.test",
            "STATIC_SEARCH_API_URL": "http://static.test",
        })
        assert settings.search_api_url == "http://primary.test"

    def test_blank_values_are_unset(self):
        settings = Settings.from_env({"RESEND_API_KEY": "   ", "PORT": ""})
        assert settings.resend_api_key is None
        assert settings.port == 8080

    def test_bad_port(self):
        with pytest.raises(ValueError):
            Settings.from_env({"PORT": "eighty"})

    def test_upstream_status(self):
        settings = Settings(resend_api_key="k")
        assert settings.upstream_status() == {
            "email": "configured",
            "search": "not_configured",
            "appointments": "not_configured",
        }


class TestCreateServer:
    """Test the MCP server wiring."""

    def test_create_server_returns_server(self):
        """Test create_server returns an MCP Server instance."""
        from mcp.server import Server

        server = create_server(Settings())
        assert isinstance(server, Server)

    @pytest.mark.asyncio
    async def test_list_tools(self):
        server = create_server(Settings())
        handler = server.request_handlers[types.ListToolsRequest]

        result = await handler(types.ListToolsRequest(method="tools/list"))

        names = [t.name for t in result.root.tools]
        assert names == ["search_emails", "send_email", "create_appointment"]

    @pytest.mark.asyncio
    async def test_call_tool_returns_envelope(self):
        """Test a handled failure comes back as normal text content."""
        server = create_server(Settings())
        handler = server.request_handlers[types.CallToolRequest]

        result = await handler(types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="search_emails", arguments={"query": "hi"}),
        ))

        assert not result.root.isError
        assert result.root.content[0].text == "Error: The EMAIL_SEARCH_API_URL is not configured."

    @pytest.mark.asyncio
    async def test_unknown_tool_is_protocol_error(self):
        """Test unknown tools surface as error results from the SDK."""
        server = create_server(Settings())
        handler = server.request_handlers[types.CallToolRequest]

        result = await handler(types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="nope", arguments={}),
        ))

        assert result.root.isError
        assert "nope" in result.root.content[0].text


class TestHttpServer:
    """Test the HTTP routes that do not reach the MCP session manager."""

    @pytest.fixture
    def client(self):
        app = create_app(Settings(search_api_url="http://search.test"))
        return TestClient(app)

    def test_root_banner(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.text == BANNER

    def test_options_root(self, client):
        resp = client.options("/")
        assert resp.status_code == 204
        assert resp.content == b""

    def test_options_mcp(self, client):
        resp = client.options("/mcp")
        assert resp.status_code == 204

    @pytest.mark.parametrize("path", ["/", "/mcp"])
    def test_cors_preflight(self, client, path):
        """Test a browser preflight gets an empty 204 with CORS headers."""
        resp = client.options(path, headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        })
        assert resp.status_code == 204
        assert resp.content == b""
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "POST" in resp.headers["access-control-allow-methods"]

    def test_get_mcp_not_allowed(self, client):
        resp = client.get("/mcp")
        assert resp.status_code == 405
        assert "POST" in resp.text
        assert resp.headers["allow"] == "POST, OPTIONS"

    def test_body_too_large(self, client):
        resp = client.post(
            "/mcp",
            content=b"x" * (MAX_BODY_BYTES + 1),
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 413

    def test_cors_headers(self, client):
        resp = client.get("/", headers={"Origin": "https://app.example.com"})
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "degraded"
        assert data["server"] == "assistant-mcp"
        assert data["tools"] == ["search_emails", "send_email", "create_appointment"]
        assert data["upstreams"]["search"] == "configured"
        assert data["upstreams"]["email"] == "not_configured"


class TestMcpEndpoint:
    """Test JSON-RPC requests through POST /mcp with the session manager running."""

    HEADERS = {
        "Accept": "application/json, text/event-stream",
        "Content-Type": "application/json",
    }

    def _post(self, payload: dict) -> str:
        with TestClient(create_app(Settings())) as client:
            resp = client.post("/mcp", json=payload, headers=self.HEADERS)
        assert resp.status_code == 200
        return resp.text

    def test_tools_call_returns_envelope(self):
        """Test a tools/call round trip returns the tool's text envelope."""
        body = self._post({
            "jsonrpc": "2.0",
            "id": 1,
            "method": "tools/call",
            "params": {
                "name": "send_email",
                "arguments": {"to": "pat@example.com", "subject": "Hi", "body": "Hello"},
            },
        })
        assert "Error: RESEND_API_KEY is not configured." in body
        assert '"isError":false' in body

    def test_tools_list(self):
        body = self._post({"jsonrpc": "2.0", "id": 2, "method": "tools/list", "params": {}})
        for name in ("search_emails", "send_email", "create_appointment"):
            assert name in body


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
