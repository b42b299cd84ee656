"""
Salesforce Tool Provider Tests
------------------------------
The simple_salesforce client is replaced with a MagicMock.
"""

import asyncio
import json
import threading
from unittest.mock import MagicMock

import httpx
import pytest

from salesforce_mcp.config import Settings
from salesforce_mcp.providers import salesforce as salesforce_module
from salesforce_mcp.providers import collect_descriptors
from salesforce_mcp.providers.salesforce import SalesforceClient, SalesforceToolProvider
from salesforce_mcp.tools import ReleaseState


@pytest.fixture
def sf():
    return MagicMock()


@pytest.fixture
def provider(sf):
    client = SalesforceClient(Settings())
    client.sf = sf
    return SalesforceToolProvider(client)


def run(provider, name, **arguments):
    descriptor = next(d for d in provider.provide_tools() if d.name == name)
    return asyncio.run(descriptor.execute(arguments))


class TestCatalogue:

    def test_toolset_membership(self, provider):
        toolsets = {d.name: d.toolsets for d in provider.provide_tools()}

        assert toolsets["get_username"] == ("core",)
        assert toolsets["run_soql_query"] == ("data", "devops")
        assert toolsets["deploy_metadata"] == ("metadata",)
        assert toolsets["run_apex_tests"] == ("testing",)

    def test_restful_is_not_generally_available(self, provider):
        descriptors = {d.name: d for d in provider.provide_tools()}
        assert descriptors["restful"].release_state is ReleaseState.NON_GA
        assert "restful" not in [d.name for d in collect_descriptors([provider])]

    def test_every_tool_has_an_object_schema(self, provider):
        for descriptor in provider.provide_tools():
            assert descriptor.config.input_schema["type"] == "object"


class TestExecution:

    def test_soql_query(self, provider, sf):
        sf.query_all.return_value = {"totalSize": 1, "records": [{"Id": "001"}]}

        result = run(provider, "run_soql_query", query="SELECT Id FROM Account")

        sf.query_all.assert_called_once_with("SELECT Id FROM Account")
        assert result.text.startswith("SOQL Query Results (JSON):\n")
        assert json.loads(result.text.split("\n", 1)[1])["totalSize"] == 1

    def test_salesforce_calls_run_off_the_event_loop_thread(self, provider, sf):
        threads = []
        sf.query_all.side_effect = lambda query: threads.append(threading.get_ident()) or {"records": []}

        run(provider, "run_soql_query", query="SELECT Id FROM Account")

        assert threads and threads[0] != threading.get_ident()

    def test_missing_argument(self, provider):
        with pytest.raises(ValueError, match="Missing 'query' argument"):
            run(provider, "run_soql_query")

    def test_get_record(self, provider, sf):
        sf.Account.get.return_value = {"Id": "001", "Name": "Acme"}

        result = run(provider, "get_record", object_name="Account", record_id="001")

        sf.Account.get.assert_called_once_with("001")
        assert result.text.startswith("Account Record (JSON):")

    def test_object_fields_are_cached(self, provider, sf):
        sf.Contact.describe.return_value = {"fields": [{
            "label": "Email", "name": "Email", "updateable": True,
            "type": "email", "length": 80, "picklistValues": [],
        }]}

        run(provider, "get_object_fields", object_name="Contact")
        result = run(provider, "get_object_fields", object_name="Contact")

        assert sf.Contact.describe.call_count == 1
        assert '"name": "Email"' in result.text

    def test_apex_test_failures_are_errors(self, provider, sf):
        sf.toolingexecute.return_value = {"numTestsRun": 2, "numFailures": 1}

        result = run(provider, "run_apex_tests", class_names=["MyTest"])

        assert result.is_error
        sf.toolingexecute.assert_called_once_with(
            "runTestsSynchronous", method="POST", data={"tests": [{"className": "MyTest"}]}
        )

    def test_list_workitems_escapes_project_id(self, provider, sf):
        sf.query_all.return_value = {"records": []}

        result = run(provider, "list_workitems", project_id="a0X'1")

        query = sf.query_all.call_args[0][0]
        assert "DevopsProjectId = 'a0X\\'1'" in query
        assert result.text == "[]"

    def test_not_connected(self):
        provider = SalesforceToolProvider(SalesforceClient(Settings()))
        with pytest.raises(ValueError, match="Salesforce connection not established"):
            run(provider, "get_username")


class TestConnect:

    def test_connect_runs_connectivity_check_first(self, monkeypatch):
        calls = []
        monkeypatch.setattr(salesforce_module, "Salesforce", MagicMock())
        monkeypatch.setattr(SalesforceClient, "check_connectivity", lambda self: calls.append("check") or True)
        client = SalesforceClient(Settings(username="user@example.com", password="pw", security_token="tok"))

        assert client.connect() is True
        assert calls == ["check"]
        assert client.connected

    def test_failed_login_still_checks_connectivity(self, monkeypatch):
        calls = []
        monkeypatch.setattr(salesforce_module, "Salesforce", MagicMock(side_effect=Exception("INVALID_LOGIN")))
        monkeypatch.setattr(SalesforceClient, "check_connectivity", lambda self: calls.append("check") or False)
        client = SalesforceClient(Settings())

        assert client.connect() is False
        assert calls == ["check"]
        assert not client.connected

    def _mock_http(self, monkeypatch, handler):
        real_client = httpx.Client
        monkeypatch.setattr(
            httpx, "Client", lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs)
        )

    def test_connectivity_check_hits_login_host(self, monkeypatch):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(200)

        self._mock_http(monkeypatch, handler)

        assert SalesforceClient(Settings(domain="test")).check_connectivity() is True
        assert hosts == ["test.salesforce.com"]

    def test_connectivity_check_network_error(self, monkeypatch):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        self._mock_http(monkeypatch, handler)

        assert SalesforceClient(Settings()).check_connectivity() is False
