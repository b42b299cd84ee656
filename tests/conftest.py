"""
Shared fixtures for the Salesforce MCP server tests.
"""

from typing import List

import pytest

from salesforce_mcp.activation import ActivationEngine
from salesforce_mcp.errors import TransportRegistrationError
from salesforce_mcp.listing import ListingService
from salesforce_mcp.state import EnablementState
from salesforce_mcp.tools import ReleaseState, ToolConfig, ToolDescriptor, text_response
from salesforce_mcp.toolsets import ToolsetRegistry


class RecordingTransport:
    """Server transport double that records every call."""

    def __init__(self, fail_notify: bool = False):
        self.registered: List[str] = []
        self.notifications = 0
        self.fail_notify = fail_notify

    def register(self, descriptor: ToolDescriptor) -> None:
        if descriptor.name in self.registered:
            raise TransportRegistrationError(descriptor.name)
        self.registered.append(descriptor.name)

    async def notify_tool_list_changed(self) -> None:
        self.notifications += 1
        if self.fail_notify:
            raise ConnectionError("client went away")


def make_tool(name, toolsets=("data",), release_state=ReleaseState.GA, text=None):
    async def execute(arguments):
        return text_response(text or f"{name} ran with {sorted(arguments)}")

    return ToolDescriptor(
        name=name,
        toolsets=tuple(toolsets),
        config=ToolConfig(title=name.replace("_", " ").title(), description=f"Description of {name}"),
        execute=execute,
        release_state=release_state,
    )


@pytest.fixture
def descriptors():
    return [
        make_tool("get_username", toolsets=("core",)),
        make_tool("run_soql_query", toolsets=("data", "devops")),
        make_tool("get_record"),
        make_tool("deploy_metadata", toolsets=("metadata",)),
        make_tool("list_projects", toolsets=("devops",)),
        make_tool("list_workitems", toolsets=("devops",)),
    ]


@pytest.fixture
def registry(descriptors):
    return ToolsetRegistry(descriptors)


@pytest.fixture
def state(registry):
    return EnablementState(registry.tool_names())


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def engine(registry, state, transport):
    return ActivationEngine(registry, state, transport)


@pytest.fixture
def listing(registry, state):
    return ListingService(registry, state)
