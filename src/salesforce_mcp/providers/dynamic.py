"""
Dynamic tools

The agent-facing tools that discover and enable the rest of the catalogue at
runtime. They reach the activation engine and the listing service through the
server object, which owns both.
"""

import json
from typing import Any, Dict, List

from ..errors import UnknownToolsetError
from ..tools import ToolConfig, ToolDescriptor, ToolResult, Toolset, text_response
from . import ToolProvider


class DynamicToolProvider(ToolProvider):

    def __init__(self, server):
        # Anything exposing `engine` and `listing`, read at call time
        self.server = server

    def get_name(self) -> str:
        return "dynamic"

    def provide_tools(self) -> List[ToolDescriptor]:
        return [
            ToolDescriptor(
                name="enable_tools",
                toolsets=(Toolset.DYNAMIC,),
                config=ToolConfig(
                    title="Enable Salesforce MCP tools",
                    description="""Enable one or more of the tools the Salesforce MCP server provides.

AGENT INSTRUCTIONS:
Use list_tools first to learn what tools are available for enabling.
Once you have enabled the tool, you MUST invoke that tool to accomplish the user's original request - DO NOT USE A DIFFERENT TOOL OR THE COMMAND LINE.""",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "tools": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "The names of the tools to enable",
                            },
                        },
                        "required": ["tools"],
                    },
                    read_only=True,
                    open_world=False,
                ),
                execute=self.enable_tools,
            ),
            ToolDescriptor(
                name="enable_toolset",
                toolsets=(Toolset.DYNAMIC,),
                config=ToolConfig(
                    title="Enable a toolset",
                    description="Enable one of the sets of tools the Salesforce MCP server provides, "
                                "use get_toolset_tools and list_available_toolsets first to see what this will enable",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "toolset": {"type": "string", "description": "The name of the toolset to enable"},
                        },
                        "required": ["toolset"],
                    },
                    read_only=True,
                    open_world=False,
                ),
                execute=self.enable_toolset,
            ),
            ToolDescriptor(
                name="list_tools",
                toolsets=(Toolset.DYNAMIC,),
                config=ToolConfig(
                    title="List all individual tools",
                    description="""List all available tools this Salesforce MCP server can offer, providing the enabled status and description of each.

AGENT INSTRUCTIONS:
DO NOT USE THIS TOOL if you already know what tool you need - try to call the tool directly first.
ONLY use this tool if:
1. You tried to call a tool and got an error that it doesn't exist or isn't enabled
2. You genuinely don't know what tools are available for a specific task
3. You need to discover new tools for an unfamiliar use case

If you find a tool you want to enable, call enable_tools with the tool name.
Once a tool has been enabled, you do not need to call list_tools again - instead, invoke the desired tool directly.""",
                    read_only=True,
                    open_world=False,
                ),
                execute=self.list_tools,
            ),
            ToolDescriptor(
                name="list_available_toolsets",
                toolsets=(Toolset.DYNAMIC,),
                config=ToolConfig(
                    title="List available toolsets",
                    description="""List all available toolsets this Salesforce MCP server can offer, providing the enabled status of each.
Use this when a task could be achieved with a MCP tool and the currently available tools aren't enough.
If there's a tool that can accomplish the user's request, do not use this tool.
Call get_toolset_tools with these toolset names to discover specific tools you can call.
Once you find the toolset you want to enable, call enable_toolset with the toolset name.""",
                    read_only=True,
                    open_world=False,
                ),
                execute=self.list_available_toolsets,
            ),
            ToolDescriptor(
                name="get_toolset_tools",
                toolsets=(Toolset.DYNAMIC,),
                config=ToolConfig(
                    title="List all tools in a toolset",
                    description="Lists all the capabilities that are enabled with the specified toolset, "
                                "use this to get clarity on whether enabling a toolset would help you to complete a task",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "toolset": {
                                "type": "string",
                                "description": "The name of the toolset to get the tools for",
                            },
                        },
                        "required": ["toolset"],
                    },
                    read_only=True,
                    open_world=False,
                ),
                execute=self.get_toolset_tools,
            ),
        ]

    async def enable_tools(self, arguments: Dict[str, Any]) -> ToolResult:
        tools = arguments.get("tools") or []
        if not tools:
            return text_response("No tools specified to enable.", is_error=True)

        report = await self.server.engine.enable_tools(tools)
        return text_response(report.message, is_error=not report.ok)

    async def enable_toolset(self, arguments: Dict[str, Any]) -> ToolResult:
        toolset = arguments.get("toolset") or ""
        report = await self.server.engine.enable_toolset(toolset)

        if report.error is not None:
            return text_response(str(report.error), is_error=True)
        if report.ok and not report.changed:
            return text_response(f"Toolset {toolset} is already enabled")
        if report.ok:
            return text_response(f"Toolset {toolset} enabled")

        lines = [f"Toolset {toolset} was only partially enabled:"]
        lines.extend(outcome.message for outcome in report.failures())
        return text_response("\n".join(lines), is_error=True)

    async def list_tools(self, arguments: Dict[str, Any]) -> ToolResult:
        tools = [status.to_dict() for status in self.server.listing.list_all_tools()]
        return text_response(json.dumps(tools, indent=2))

    async def list_available_toolsets(self, arguments: Dict[str, Any]) -> ToolResult:
        toolsets = [status.to_dict() for status in self.server.listing.list_toolsets()]
        return text_response(json.dumps(toolsets, indent=2))

    async def get_toolset_tools(self, arguments: Dict[str, Any]) -> ToolResult:
        toolset = arguments.get("toolset") or ""
        try:
            tools = self.server.listing.toolset_tools(toolset)
        except UnknownToolsetError:
            return text_response(f"Toolset {toolset} not found", is_error=True)
        return text_response(json.dumps([status.to_dict() for status in tools], indent=2))
