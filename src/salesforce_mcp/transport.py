"""
Server transport

The activation engine talks to the live MCP server only through the
ServerTransport protocol: register a tool once, and tell connected clients
that the tool list changed. McpServerTransport implements it on top of the
low-level mcp.server.Server, serving tools/list and tools/call from the set
of registered descriptors.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Protocol

import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .errors import RateLimitExceededError, ToolExecutionError, TransportRegistrationError
from .rate_limiter import RateLimiter
from .tools import ToolDescriptor

logger = logging.getLogger(__name__)


class ServerTransport(Protocol):
    def register(self, descriptor: ToolDescriptor) -> None:
        ...

    async def notify_tool_list_changed(self) -> None:
        ...


class McpServerTransport:
    """Advertises registered tools on an mcp Server and dispatches calls to them."""

    def __init__(self, server: Server, rate_limiter: Optional[RateLimiter] = None):
        self.server = server
        self.rate_limiter = rate_limiter
        self._tools: Dict[str, ToolDescriptor] = {}

        @server.list_tools()
        async def handle_list_tools() -> List[types.Tool]:
            return [descriptor.to_mcp_tool() for descriptor in list(self._tools.values())]

        @server.call_tool()
        async def handle_call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
            return await self.call_tool(name, arguments or {})

    def register(self, descriptor: ToolDescriptor) -> None:
        """Make a tool visible and callable.

        Raises:
            TransportRegistrationError: if a tool with the same name is already registered.
        """
        if descriptor.name in self._tools:
            raise TransportRegistrationError(descriptor.name)
        self._tools[descriptor.name] = descriptor
        logger.info(f"Tool registered: '{descriptor.name}'")

    def is_registered(self, name: str) -> bool:
        return name in self._tools

    def registered_names(self) -> List[str]:
        return list(self._tools)

    async def notify_tool_list_changed(self) -> None:
        """Send notifications/tools/list_changed on the session of the current request."""
        try:
            session = self.server.request_context.session
        except LookupError:
            logger.debug("No request in progress, skipping tools/list_changed notification")
            return
        await session.send_tool_list_changed()

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        descriptor = self._tools.get(name)
        if descriptor is None:
            raise ValueError(f"Unknown tool: {name}")

        if self.rate_limiter:
            limit = self.rate_limiter.check_limit()
            if not limit.allowed:
                logger.warning(f"Tool {name} rate limited. Retry after: {limit.retry_after:.2f}s")
                raise RateLimitExceededError(limit.retry_after)
            logger.debug(f"Tool {name} rate check passed. Remaining: {limit.remaining}")

        logger.debug(f"Tool {name} called")
        start = time.monotonic()
        result = await descriptor.execute(arguments)
        runtime_ms = (time.monotonic() - start) * 1000
        logger.debug(f"Tool {name} completed in {runtime_ms:.0f}ms")

        if result.is_error:
            logger.debug(f"Tool {name} errored")
            raise ToolExecutionError(result.text)
        return [types.TextContent(type="text", text=result.text)]

    def initialization_options(self) -> InitializationOptions:
        return self.server.create_initialization_options(
            notification_options=NotificationOptions(tools_changed=True),
            experimental_capabilities={},
        )
