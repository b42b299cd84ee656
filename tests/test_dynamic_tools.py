"""
Dynamic Tools Tests
-------------------
Drives the agent-facing enable/list tools the way a client would, through
a server wired to a recording transport.
"""

import asyncio
import json

import pytest

from salesforce_mcp.config import Settings
from salesforce_mcp.providers import ToolProvider
from salesforce_mcp.server import SalesforceMcpServer, StartupSelection

from conftest import RecordingTransport, make_tool

DYNAMIC_TOOLS = {"enable_tools", "enable_toolset", "list_tools", "list_available_toolsets", "get_toolset_tools"}


class FakeSalesforceProvider(ToolProvider):

    def provide_tools(self):
        return [
            make_tool("get_username", toolsets=("core",)),
            make_tool("run_soql_query", toolsets=("data", "devops")),
            make_tool("get_record", toolsets=("data",)),
            make_tool("deploy_metadata", toolsets=("metadata",)),
            make_tool("list_projects", toolsets=("devops",)),
            make_tool("list_workitems", toolsets=("devops",)),
        ]


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def server(transport):
    server = SalesforceMcpServer(Settings(), providers=[FakeSalesforceProvider()], transport=transport)
    server.enable_startup_tools(StartupSelection(dynamic_tools=True))
    return server


def call(server, name, **arguments):
    return asyncio.run(server.registry.descriptor(name).execute(arguments))


def enabled_tools(server):
    tools = json.loads(call(server, "list_tools").text)
    return {tool["name"] for tool in tools if tool["enabled"]}


class TestFreshServer:

    def test_only_always_on_tools_enabled(self, server, transport):
        assert enabled_tools(server) == {"get_username"} | DYNAMIC_TOOLS
        assert set(transport.registered) == {"get_username"} | DYNAMIC_TOOLS
        assert transport.notifications == 0

    def test_list_tools_includes_disabled_tools(self, server):
        tools = json.loads(call(server, "list_tools").text)
        names = {tool["name"] for tool in tools}
        assert {"run_soql_query", "deploy_metadata", "list_projects"} <= names


class TestEnableTools:

    def test_enable_two_tools(self, server, transport):
        result = call(server, "enable_tools", tools=["run_soql_query", "deploy_metadata"])

        assert not result.is_error
        assert result.text == "Tool run_soql_query enabled\nTool deploy_metadata enabled"
        assert {"run_soql_query", "deploy_metadata"} <= enabled_tools(server)
        assert transport.notifications == 1

    def test_empty_list(self, server):
        result = call(server, "enable_tools", tools=[])
        assert result.is_error
        assert result.text == "No tools specified to enable."

    def test_unknown_tool(self, server, transport):
        result = call(server, "enable_tools", tools=["nonexistent"])

        assert result.is_error
        assert result.text == "Tool nonexistent does not exist"
        assert transport.notifications == 0

    def test_already_enabled_is_not_an_error(self, server):
        result = call(server, "enable_tools", tools=["get_username"])
        assert not result.is_error
        assert result.text == "Tool get_username is already enabled"


class TestEnableToolset:

    def test_enable_toolset(self, server, transport):
        result = call(server, "enable_toolset", toolset="devops")

        assert result.text == "Toolset devops enabled"
        assert {"run_soql_query", "list_projects", "list_workitems"} <= enabled_tools(server)
        assert transport.notifications == 1

    def test_already_enabled(self, server, transport):
        call(server, "enable_toolset", toolset="devops")
        result = call(server, "enable_toolset", toolset="devops")

        assert not result.is_error
        assert result.text == "Toolset devops is already enabled"
        assert transport.notifications == 1

    def test_invalid_toolset(self, server):
        result = call(server, "enable_toolset", toolset="bogus")

        assert result.is_error
        assert result.text == "Invalid toolset: bogus. Available: core, data, metadata, devops"

    def test_overlap_with_individually_enabled_tool(self, server, transport):
        call(server, "enable_tools", tools=["run_soql_query"])
        result = call(server, "enable_toolset", toolset="devops")

        assert result.text == "Toolset devops enabled"
        assert transport.registered.count("run_soql_query") == 1
        assert transport.notifications == 2


class TestToolsetListing:

    def test_list_available_toolsets(self, server):
        toolsets = json.loads(call(server, "list_available_toolsets").text)
        by_name = {toolset["name"]: toolset for toolset in toolsets}

        assert list(by_name) == ["core", "data", "metadata", "devops"]
        assert by_name["core"]["enabled"] is True
        assert by_name["devops"] == {
            "name": "devops",
            "description": "Tools for DevOps Center projects and work items.",
            "enabled": False,
            "toolCount": 3,
        }

    def test_get_toolset_tools(self, server):
        tools = json.loads(call(server, "get_toolset_tools", toolset="data").text)
        assert [tool["name"] for tool in tools] == ["run_soql_query", "get_record"]

    def test_get_toolset_tools_unknown(self, server):
        result = call(server, "get_toolset_tools", toolset="bogus")
        assert result.is_error
        assert result.text == "Toolset bogus not found"
