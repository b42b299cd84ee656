"""
Listing Service Tests
"""

import asyncio

import pytest

from salesforce_mcp.errors import UnknownToolsetError


def _enabled(listing):
    return {tool.name: tool.enabled for tool in listing.list_all_tools()}


class TestListAllTools:

    def test_every_tool_listed_disabled_initially(self, listing, registry):
        tools = listing.list_all_tools()
        assert [tool.name for tool in tools] == registry.tool_names()
        assert not any(tool.enabled for tool in tools)

    def test_reflects_enable(self, listing, engine):
        assert _enabled(listing)["run_soql_query"] is False
        asyncio.run(engine.enable_tool("run_soql_query"))
        assert _enabled(listing)["run_soql_query"] is True

    def test_to_dict_shape(self, listing):
        data = listing.list_all_tools()[1].to_dict()
        assert data == {
            "name": "run_soql_query",
            "description": "Description of run_soql_query",
            "enabled": False,
            "releaseState": "ga",
            "toolsets": ["data", "devops"],
        }


class TestListToolsets:

    def test_enabled_only_when_all_members_enabled(self, listing, engine):
        asyncio.run(engine.enable_tools(["run_soql_query", "list_projects"]))
        statuses = {status.name: status for status in listing.list_toolsets()}

        assert statuses["devops"].enabled is False
        assert statuses["devops"].tool_count == 3

        asyncio.run(engine.enable_tool("list_workitems"))
        assert listing.is_toolset_enabled("devops")

    def test_toolset_enabled_by_member_enables(self, listing, engine):
        """data becomes enabled without enable_toolset ever being called for it."""
        asyncio.run(engine.enable_tools(["run_soql_query", "get_record"]))
        assert listing.is_toolset_enabled("data")

    def test_to_dict_uses_tool_count_key(self, listing):
        data = listing.list_toolsets()[0].to_dict()
        assert set(data) == {"name", "description", "enabled", "toolCount"}


class TestToolsetTools:

    def test_members_with_status(self, listing, engine):
        asyncio.run(engine.enable_tool("list_projects"))
        tools = listing.toolset_tools("devops")

        assert [(t.name, t.enabled) for t in tools] == [
            ("run_soql_query", False),
            ("list_projects", True),
            ("list_workitems", False),
        ]

    def test_unknown_toolset(self, listing):
        with pytest.raises(UnknownToolsetError):
            listing.toolset_tools("nope")
