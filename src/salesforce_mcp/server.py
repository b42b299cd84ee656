#!/usr/bin/env python3
"""
Salesforce MCP Server

Entry point. Builds the tool catalogue from the providers, enables the
startup toolsets, and serves MCP over stdio or SSE (Starlette + uvicorn).
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

import mcp.server.stdio
import uvicorn
from mcp.server import Server
from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Mount, Route

from . import __version__
from .activation import ActivationEngine
from .config import Settings
from .errors import ConfigError
from .listing import ListingService
from .logging_config import configure_logging
from .providers import ToolProvider, collect_descriptors
from .providers.dynamic import DynamicToolProvider
from .providers.salesforce import SalesforceClient, SalesforceToolProvider
from .rate_limiter import RateLimiter
from .state import EnablementState
from .tools import Toolset
from .toolsets import ToolsetRegistry
from .transport import McpServerTransport, ServerTransport

logger = logging.getLogger(__name__)

SERVER_NAME = "salesforce-mcp"


class SalesforceMcpServer:
    """Owns the tool catalogue, the enablement state and the live MCP server."""

    def __init__(
        self,
        settings: Settings,
        providers: Optional[Sequence[ToolProvider]] = None,
        allow_non_ga_tools: bool = False,
        rate_limit: bool = True,
        transport: Optional[ServerTransport] = None,
    ):
        self.settings = settings
        self.sf_client = SalesforceClient(settings)
        self.mcp = Server(SERVER_NAME)

        if transport is None:
            rate_limiter = None
            if rate_limit:
                rate_limiter = RateLimiter(
                    limit=settings.rate_limit,
                    window_seconds=settings.rate_window_seconds,
                    burst_allowance=settings.rate_burst,
                )
            transport = McpServerTransport(self.mcp, rate_limiter=rate_limiter)
        self.transport = transport

        if providers is None:
            providers = [SalesforceToolProvider(self.sf_client)]
        providers = list(providers) + [DynamicToolProvider(self)]

        self.registry = ToolsetRegistry(collect_descriptors(providers, allow_non_ga_tools))
        self.state = EnablementState(self.registry.tool_names())
        self.engine = ActivationEngine(self.registry, self.state, self.transport)
        self.listing = ListingService(self.registry, self.state)

    def enable_startup_tools(self, selection: "StartupSelection"):
        toolsets = selection.resolve_toolsets(self.registry.toolset_names())
        for toolset in self.registry.toolset_names(include_hidden=True):
            if toolset not in toolsets:
                logger.info(f"   Skipping toolset: '{toolset}'")
        for report in self.engine.preload(toolsets, selection.tools):
            if not report.ok:
                logger.error(f"Startup enablement failed: {report.message}")

    async def run_stdio(self):
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            await self.mcp.run(read_stream, write_stream, self.transport.initialization_options())


@dataclass
class StartupSelection:
    """Which tools are enabled before the first client connects."""
    toolsets: List[str] = field(default_factory=list)
    tools: List[str] = field(default_factory=list)
    dynamic_tools: bool = False

    def validate(self):
        if not self.toolsets and not self.tools and not self.dynamic_tools:
            raise ConfigError(
                "Tool registration error. Start server with one of the following flags: "
                "--toolsets, --tools, --dynamic-tools"
            )

    def resolve_toolsets(self, available: Iterable[str]) -> List[str]:
        """Toolsets to enable at startup. The core toolset is always included."""
        available = list(available)
        requested = list(self.toolsets)
        if "all" in requested:
            requested = available
        invalid = [name for name in requested if name not in available]
        if invalid:
            raise ConfigError(f"Invalid toolsets provided to --toolsets: {', '.join(invalid)}")

        toolsets = [Toolset.CORE.value]
        if self.dynamic_tools:
            toolsets.append(Toolset.DYNAMIC.value)
        for name in requested:
            if name not in toolsets:
                toolsets.append(name)
        return toolsets

    def validate_tools(self, known: Iterable[str]):
        known = set(known)
        invalid = [name for name in self.tools if name not in known]
        if invalid:
            raise ConfigError(f"Invalid tool names provided to --tools: {', '.join(invalid)}")


def create_starlette_app(server: SalesforceMcpServer, *, debug: bool = False) -> Starlette:
    """Create a Starlette application that can serve the provided mcp server with SSE."""
    sse = SseServerTransport("/messages/")

    async def handle_sse(request: Request) -> Response:
        async with sse.connect_sse(
                request.scope,
                request.receive,
                request._send,
        ) as (read_stream, write_stream):
            await server.mcp.run(
                read_stream,
                write_stream,
                server.transport.initialization_options(),
            )
        return Response()

    async def handle_health_check(request: Request) -> Response:
        """Health check endpoint for container health checks"""
        if not server.sf_client.connected:
            return Response(
                content=json.dumps({"status": "error", "message": "Salesforce connection not established"}),
                status_code=503,
                media_type="application/json"
            )

        return Response(
            content=json.dumps({"status": "ok", "service": SERVER_NAME, "timestamp": datetime.now().isoformat()}),
            status_code=200,
            media_type="application/json"
        )

    async def handle_metrics(request: Request) -> Response:
        """Metrics endpoint for monitoring"""
        tools = server.listing.list_all_tools()
        return Response(
            content=json.dumps({
                "service": SERVER_NAME,
                "status": "active",
                "timestamp": datetime.now().isoformat(),
                "salesforce_connected": server.sf_client.connected,
                "tools_total": len(tools),
                "tools_enabled": sum(1 for tool in tools if tool.enabled),
                "version": __version__,
            }),
            status_code=200,
            media_type="application/json"
        )

    return Starlette(
        debug=debug,
        routes=[
            Route("/sse", endpoint=handle_sse),
            Route("/health", endpoint=handle_health_check),
            Route("/metrics", endpoint=handle_metrics),
            Mount("/messages/", app=sse.handle_post_message),
        ],
    )


def _split(values: Optional[List[str]]) -> List[str]:
    """Flatten repeated, comma separated flag values."""
    result = []
    for value in values or []:
        result.extend(part.strip() for part in value.split(",") if part.strip())
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Run the Salesforce MCP server')
    parser.add_argument('--transport', choices=['stdio', 'sse'], default='stdio', help='Transport to serve MCP on')
    parser.add_argument('--host', default='0.0.0.0', help='Host to bind to (sse only)')
    parser.add_argument('--port', type=int, default=8080, help='Port to listen on (sse only)')
    parser.add_argument('--log-level', default=None, help='Logging level (debug, info, warning, error)')

    selection = parser.add_mutually_exclusive_group()
    selection.add_argument('--toolsets', action='append', help="Toolsets to enable, comma separated, or 'all'")
    selection.add_argument('--dynamic-tools', action='store_true',
                           help='Start with core tools only and let the agent enable the rest')
    parser.add_argument('--tools', action='append', help='Individual tools to enable, comma separated')
    parser.add_argument('--allow-non-ga-tools', action='store_true', help='Also serve tools that are not generally available')
    parser.add_argument('--no-rate-limit', action='store_true', help='Disable tool call rate limiting')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point for the application"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigError as e:
        parser.error(str(e))
    configure_logging(args.log_level or settings.log_level)

    selection = StartupSelection(
        toolsets=_split(args.toolsets),
        tools=_split(args.tools),
        dynamic_tools=args.dynamic_tools,
    )

    server = SalesforceMcpServer(
        settings,
        allow_non_ga_tools=args.allow_non_ga_tools,
        rate_limit=not args.no_rate_limit,
    )
    try:
        selection.validate()
        selection.validate_tools(server.registry.tool_names())
        server.enable_startup_tools(selection)
    except ConfigError as e:
        parser.error(str(e))

    if not server.sf_client.connect():
        logger.warning("Starting without a Salesforce connection; Salesforce tools will fail until it is fixed")

    if args.transport == 'stdio':
        logger.info("Starting in stdio mode...")
        try:
            asyncio.run(server.run_stdio())
        except KeyboardInterrupt:
            logger.info("Server stopped")
        return

    starlette_app = create_starlette_app(server, debug=(args.log_level or '').lower() == 'debug')
    logger.info(f"Starting Salesforce MCP Server with streaming on http://{args.host}:{args.port}")
    logger.info(f"SSE endpoint available at http://{args.host}:{args.port}/sse")
    try:
        uvicorn.run(starlette_app, host=args.host, port=args.port)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
