"""
Tool descriptors

A ToolDescriptor is the immutable record a provider hands to the server for
each tool: its name, the toolsets it belongs to, its release state, the
MCP-facing config and the coroutine that executes it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import mcp.types as types


class ReleaseState(str, Enum):
    """Release state of a tool."""
    GA = "ga"
    NON_GA = "non-ga"


class Toolset(str, Enum):
    """Toolsets a tool can live under."""
    CORE = "core"
    DATA = "data"
    METADATA = "metadata"
    TESTING = "testing"
    DEVOPS = "devops"
    OTHER = "other"
    DYNAMIC = "dynamic"


TOOLSET_DESCRIPTIONS: Dict[str, str] = {
    Toolset.CORE.value: "Core tools for Salesforce development. These are always enabled, regardless of selected toolsets.",
    Toolset.DATA.value: "Tools for working with Salesforce data.",
    Toolset.METADATA.value: "Tools for working with Salesforce metadata.",
    Toolset.TESTING.value: "Tools for testing Salesforce applications.",
    Toolset.DEVOPS.value: "Tools for DevOps Center projects and work items.",
    Toolset.OTHER.value: "Low-level Tooling, Apex REST and REST API access.",
    Toolset.DYNAMIC.value: "Tools for discovering and enabling other tools at runtime.",
}

# Not offered in toolset listings or as a --toolsets choice
HIDDEN_TOOLSETS = frozenset({Toolset.DYNAMIC.value})


@dataclass(frozen=True)
class ToolResult:
    """Text outcome of a tool call."""
    text: str
    is_error: bool = False


def text_response(text: str, is_error: bool = False) -> ToolResult:
    return ToolResult(text=text, is_error=is_error)


ToolExecutor = Callable[[Dict[str, Any]], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolConfig:
    """MCP-facing metadata. Schemas are plain JSON schema dicts."""
    title: str
    description: str
    input_schema: Dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    output_schema: Optional[Dict[str, Any]] = None
    read_only: bool = False
    open_world: bool = True
    destructive: bool = False


@dataclass(frozen=True)
class ToolDescriptor:
    """Immutable description of one tool plus the callback that runs it."""
    name: str
    toolsets: Tuple[str, ...]
    config: ToolConfig
    execute: ToolExecutor = field(compare=False, repr=False)
    release_state: ReleaseState = ReleaseState.GA

    def __post_init__(self):
        if not self.name:
            raise ValueError("Tool name must not be empty")
        if not self.toolsets:
            raise ValueError(f"Tool {self.name} must belong to at least one toolset")
        # Store plain, de-duplicated strings in declaration order
        names = (t.value if isinstance(t, Toolset) else t for t in self.toolsets)
        object.__setattr__(self, "toolsets", tuple(dict.fromkeys(names)))

    @property
    def description(self) -> str:
        return self.config.description

    def to_mcp_tool(self) -> types.Tool:
        """Build the tools/list entry advertised to clients."""
        return types.Tool(
            name=self.name,
            title=self.config.title,
            description=self.config.description,
            inputSchema=self.config.input_schema,
            outputSchema=self.config.output_schema,
            annotations=types.ToolAnnotations(
                title=self.config.title,
                readOnlyHint=self.config.read_only,
                destructiveHint=self.config.destructive,
                openWorldHint=self.config.open_world,
            ),
        )
