"""Tool registry for the Assistant MCP server."""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from mcp.types import Tool, TextContent
from pydantic import BaseModel, ValidationError

logger = logging.getLogger("assistant-mcp")

ToolHandler = Callable[[Any], Awaitable[list[TextContent]]]


class ToolNotFoundError(LookupError):
    """Raised when a call names a tool that was never registered."""


class InvalidArgumentsError(ValueError):
    """Raised when call arguments do not match the tool's input model."""


@dataclass(frozen=True)
class RegisteredTool:
    """A tool definition bound to its handler.

    When ``input_model`` is set, the handler receives the validated model
    instance; otherwise it receives the raw arguments dict.
    """
    definition: Tool
    handler: ToolHandler
    input_model: Optional[type[BaseModel]] = None


class ToolRegistry:
    """Maps tool names to their definitions and handlers.

    Registration is insert-if-absent: a second registration under an existing
    name is ignored and the first one stays active. There is no way to
    unregister or replace a tool.
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}

    def register_once(
        self,
        definition: Tool,
        handler: ToolHandler,
        input_model: Optional[type[BaseModel]] = None,
    ) -> bool:
        """Register a tool unless its name is already taken.

        Returns:
            True if the tool was added, False if the name was already present.
        """
        if definition.name in self._tools:
            logger.debug(f"Tool '{definition.name}' already registered, skipping")
            return False
        self._tools[definition.name] = RegisteredTool(definition, handler, input_model)
        logger.info(f"Registered tool: {definition.name}")
        return True

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> RegisteredTool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(f"Unknown tool: {name}") from None

    def list_tools(self) -> list[Tool]:
        """Tool definitions in registration order."""
        return [t.definition for t in self._tools.values()]

    async def call(self, name: str, arguments: Optional[dict[str, Any]]) -> list[TextContent]:
        """Validate ``arguments`` and invoke the named tool's handler.

        Raises:
            ToolNotFoundError: No tool is registered under ``name``.
            InvalidArgumentsError: Arguments fail the tool's input model.
        """
        tool = self.get(name)
        arguments = arguments or {}

        if tool.input_model is None:
            return await tool.handler(arguments)

        try:
            params = tool.input_model.model_validate(arguments)
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidArgumentsError(f"Invalid arguments for tool {name}: {details}") from e

        return await tool.handler(params)
