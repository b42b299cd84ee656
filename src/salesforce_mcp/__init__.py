"""Salesforce MCP server with runtime tool and toolset enablement."""

__version__ = "0.2.0"

from .activation import ActivationEngine, ActivationOutcome, ActivationReport, Outcome
from .errors import (
    TransportRegistrationError,
    UnknownToolError,
    UnknownToolsetError,
)
from .listing import ListingService
from .state import EnablementState
from .tools import ReleaseState, ToolConfig, ToolDescriptor, ToolResult, Toolset
from .toolsets import ToolsetRegistry

__all__ = [
    "ActivationEngine",
    "ActivationOutcome",
    "ActivationReport",
    "EnablementState",
    "ListingService",
    "Outcome",
    "ReleaseState",
    "ToolConfig",
    "ToolDescriptor",
    "ToolResult",
    "Toolset",
    "ToolsetRegistry",
    "TransportRegistrationError",
    "UnknownToolError",
    "UnknownToolsetError",
]
