"""
Salesforce tools backed by simple_salesforce.

simple_salesforce is synchronous; tool bodies run its calls in a worker thread
so a slow org does not hold up the event loop.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from simple_salesforce import Salesforce, format_soql

from ..config import Settings
from ..tools import ReleaseState, ToolConfig, ToolDescriptor, ToolResult, Toolset, text_response
from . import ToolProvider

logger = logging.getLogger(__name__)

OBJECT_NAME_PROPERTY = {
    "type": "string",
    "description": "The name of the Salesforce object (e.g., 'Account', 'Contact')",
}
HTTP_METHOD_PROPERTY = {
    "type": "string",
    "description": "The HTTP method (default: 'GET')",
    "enum": ["GET", "POST", "PATCH", "DELETE"],
    "default": "GET",
}
DATA_PROPERTY = {
    "type": "object",
    "description": "Data for POST/PATCH requests",
    "properties": {},
    "additionalProperties": True,
}


class SalesforceClient:
    """Handles Salesforce operations and caching."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.sf: Optional[Salesforce] = None
        self.sobjects_cache: Dict[str, Any] = {}

    def check_connectivity(self) -> bool:
        """Diagnostic HTTP request against the login host."""
        url = f"https://{self.settings.domain}.salesforce.com/"
        try:
            with httpx.Client(timeout=5.0) as client:
                response = client.get(url)
            logger.info(f"Salesforce connectivity check: Status {response.status_code}")
            return response.status_code < 500
        except httpx.HTTPError as e:
            logger.warning(f"Salesforce connectivity check failed: {e}")
            return False

    def connect(self) -> bool:
        """Establishes connection to Salesforce using the configured credentials.

        Returns:
            bool: True if connection successful, False otherwise
        """
        # Diagnostic only, login is attempted either way
        self.check_connectivity()
        try:
            if self.settings.uses_session_auth:
                self.sf = Salesforce(
                    instance_url=self.settings.instance_url,
                    session_id=self.settings.access_token,
                )
            else:
                self.sf = Salesforce(
                    username=self.settings.username,
                    password=self.settings.password,
                    security_token=self.settings.security_token,
                    domain=self.settings.domain,
                )
            logger.info("Connected to Salesforce successfully")
            return True
        except Exception as e:
            logger.error(f"Salesforce connection failed: {e}")
            self.sf = None
            return False

    @property
    def connected(self) -> bool:
        return self.sf is not None

    def require(self) -> Salesforce:
        if not self.sf:
            raise ValueError("Salesforce connection not established.")
        return self.sf

    def get_object_fields(self, object_name: str) -> List[Dict[str, Any]]:
        """Retrieves field names, labels and types for a specific Salesforce object."""
        sf = self.require()
        if object_name not in self.sobjects_cache:
            fields = getattr(sf, object_name).describe()['fields']
            self.sobjects_cache[object_name] = [
                {
                    'label': field['label'],
                    'name': field['name'],
                    'updateable': field['updateable'],
                    'type': field['type'],
                    'length': field['length'],
                    'picklistValues': field['picklistValues'],
                }
                for field in fields
            ]
        return self.sobjects_cache[object_name]


def _json(results: Any) -> str:
    return json.dumps(results, indent=2, default=str)


def _require_args(arguments: Dict[str, Any], *names: str) -> List[Any]:
    values = [arguments.get(name) for name in names]
    if any(value in (None, "", {}, []) for value in values):
        quoted = ", ".join(f"'{name}'" for name in names)
        raise ValueError(f"Missing {quoted} argument" if len(names) == 1 else f"Missing one of {quoted} arguments")
    return values


class SalesforceToolProvider(ToolProvider):
    """Thin wrappers around the Salesforce REST, Tooling and Metadata APIs."""

    def __init__(self, client: SalesforceClient):
        self.client = client

    def get_name(self) -> str:
        return "salesforce"

    def provide_tools(self) -> List[ToolDescriptor]:
        return [
            ToolDescriptor(
                name="get_username",
                toolsets=(Toolset.CORE,),
                config=ToolConfig(
                    title="Get Username",
                    description="Returns the username and instance of the Salesforce user this server is connected as",
                    read_only=True,
                    open_world=False,
                ),
                execute=self.get_username,
            ),
            ToolDescriptor(
                name="run_soql_query",
                toolsets=(Toolset.DATA, Toolset.DEVOPS),
                config=ToolConfig(
                    title="Run SOQL Query",
                    description="Executes a SOQL query against Salesforce",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "query": {"type": "string", "description": "The SOQL query to execute"},
                        },
                        "required": ["query"],
                    },
                    read_only=True,
                ),
                execute=self.run_soql_query,
            ),
            ToolDescriptor(
                name="run_sosl_search",
                toolsets=(Toolset.DATA,),
                config=ToolConfig(
                    title="Run SOSL Search",
                    description="Executes a SOSL search against Salesforce",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "search": {
                                "type": "string",
                                "description": "The SOSL search to execute (e.g., 'FIND {John Smith} IN ALL FIELDS')",
                            },
                        },
                        "required": ["search"],
                    },
                    read_only=True,
                ),
                execute=self.run_sosl_search,
            ),
            ToolDescriptor(
                name="get_record",
                toolsets=(Toolset.DATA,),
                config=ToolConfig(
                    title="Get Record",
                    description="Retrieves a specific record by ID",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "object_name": OBJECT_NAME_PROPERTY,
                            "record_id": {"type": "string", "description": "The ID of the record to retrieve"},
                        },
                        "required": ["object_name", "record_id"],
                    },
                    read_only=True,
                ),
                execute=self.get_record,
            ),
            ToolDescriptor(
                name="create_record",
                toolsets=(Toolset.DATA,),
                config=ToolConfig(
                    title="Create Record",
                    description="Creates a new record",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "object_name": OBJECT_NAME_PROPERTY,
                            "data": dict(DATA_PROPERTY, description="The data for the new record"),
                        },
                        "required": ["object_name", "data"],
                    },
                ),
                execute=self.create_record,
            ),
            ToolDescriptor(
                name="update_record",
                toolsets=(Toolset.DATA,),
                config=ToolConfig(
                    title="Update Record",
                    description="Updates an existing record",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "object_name": OBJECT_NAME_PROPERTY,
                            "record_id": {"type": "string", "description": "The ID of the record to update"},
                            "data": dict(DATA_PROPERTY, description="The updated data for the record"),
                        },
                        "required": ["object_name", "record_id", "data"],
                    },
                ),
                execute=self.update_record,
            ),
            ToolDescriptor(
                name="delete_record",
                toolsets=(Toolset.DATA,),
                config=ToolConfig(
                    title="Delete Record",
                    description="Deletes a record",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "object_name": OBJECT_NAME_PROPERTY,
                            "record_id": {"type": "string", "description": "The ID of the record to delete"},
                        },
                        "required": ["object_name", "record_id"],
                    },
                    destructive=True,
                ),
                execute=self.delete_record,
            ),
            ToolDescriptor(
                name="get_object_fields",
                toolsets=(Toolset.METADATA,),
                config=ToolConfig(
                    title="Get Object Fields",
                    description="Retrieves field Names, labels and types for a specific Salesforce object",
                    input_schema={
                        "type": "object",
                        "properties": {"object_name": OBJECT_NAME_PROPERTY},
                        "required": ["object_name"],
                    },
                    read_only=True,
                ),
                execute=self.get_object_fields,
            ),
            ToolDescriptor(
                name="deploy_metadata",
                toolsets=(Toolset.METADATA,),
                config=ToolConfig(
                    title="Deploy Metadata",
                    description="Deploys a zipped metadata package to the org through the Metadata API. "
                                "Returns the deployment id; use check_deploy_status to follow it.",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "zip_path": {"type": "string", "description": "Path to the metadata .zip file"},
                            "sandbox": {
                                "type": "boolean",
                                "description": "Whether the target org is a sandbox",
                                "default": False,
                            },
                            "test_level": {
                                "type": "string",
                                "description": "Apex test level for the deployment",
                                "enum": ["NoTestRun", "RunSpecifiedTests", "RunLocalTests", "RunAllTestsInOrg"],
                            },
                            "check_only": {
                                "type": "boolean",
                                "description": "Validate the deployment without saving it",
                                "default": False,
                            },
                        },
                        "required": ["zip_path"],
                    },
                    destructive=True,
                ),
                execute=self.deploy_metadata,
            ),
            ToolDescriptor(
                name="check_deploy_status",
                toolsets=(Toolset.METADATA,),
                config=ToolConfig(
                    title="Check Deploy Status",
                    description="Reports the state of a Metadata API deployment started by deploy_metadata",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "deployment_id": {"type": "string", "description": "The id returned by deploy_metadata"},
                        },
                        "required": ["deployment_id"],
                    },
                    read_only=True,
                ),
                execute=self.check_deploy_status,
            ),
            ToolDescriptor(
                name="run_apex_tests",
                toolsets=(Toolset.TESTING,),
                config=ToolConfig(
                    title="Run Apex Tests",
                    description="Runs Apex test classes synchronously and returns the results",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "class_names": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "Names of the Apex test classes to run",
                            },
                        },
                        "required": ["class_names"],
                    },
                ),
                execute=self.run_apex_tests,
            ),
            ToolDescriptor(
                name="list_projects",
                toolsets=(Toolset.DEVOPS,),
                config=ToolConfig(
                    title="List DevOps Projects",
                    description="Lists DevOps Center Projects available in the connected org using SOQL on DevopsProject. "
                                "Only use this against a DevOps Center org.",
                    read_only=True,
                ),
                execute=self.list_projects,
            ),
            ToolDescriptor(
                name="list_workitems",
                toolsets=(Toolset.DEVOPS,),
                config=ToolConfig(
                    title="List DevOps Work Items",
                    description="Lists work items from a Salesforce DevOps Center project. "
                                "Select a project with list_projects first.",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "project_id": {"type": "string", "description": "Id of the DevopsProject"},
                        },
                        "required": ["project_id"],
                    },
                    read_only=True,
                ),
                execute=self.list_workitems,
            ),
            ToolDescriptor(
                name="tooling_execute",
                toolsets=(Toolset.OTHER,),
                config=ToolConfig(
                    title="Tooling API Request",
                    description="Executes a Tooling API request",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "action": {
                                "type": "string",
                                "description": "The Tooling API endpoint to call (e.g., 'sobjects/ApexClass')",
                            },
                            "method": HTTP_METHOD_PROPERTY,
                            "data": DATA_PROPERTY,
                        },
                        "required": ["action"],
                    },
                ),
                execute=self.tooling_execute,
            ),
            ToolDescriptor(
                name="apex_execute",
                toolsets=(Toolset.OTHER,),
                config=ToolConfig(
                    title="Apex REST Request",
                    description="Executes an Apex REST request",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "action": {
                                "type": "string",
                                "description": "The Apex REST endpoint to call (e.g., '/MyApexClass')",
                            },
                            "method": HTTP_METHOD_PROPERTY,
                            "data": DATA_PROPERTY,
                        },
                        "required": ["action"],
                    },
                ),
                execute=self.apex_execute,
            ),
            ToolDescriptor(
                name="restful",
                toolsets=(Toolset.OTHER,),
                release_state=ReleaseState.NON_GA,
                config=ToolConfig(
                    title="REST API Call",
                    description="Makes a direct REST API call to Salesforce",
                    input_schema={
                        "type": "object",
                        "properties": {
                            "path": {
                                "type": "string",
                                "description": "The path of the REST API endpoint (e.g., 'sobjects/Account/describe')",
                            },
                            "method": HTTP_METHOD_PROPERTY,
                            "params": {
                                "type": "object",
                                "description": "Query parameters for the request",
                                "properties": {},
                                "additionalProperties": True,
                            },
                            "data": DATA_PROPERTY,
                        },
                        "required": ["path"],
                    },
                ),
                execute=self.restful,
            ),
        ]

    async def get_username(self, arguments: Dict[str, Any]) -> ToolResult:
        sf = self.client.require()
        me = await asyncio.to_thread(sf.restful, "chatter/users/me")
        return text_response(_json({
            "username": me.get("username"),
            "name": me.get("name"),
            "instanceUrl": f"https://{sf.sf_instance}",
        }))

    async def run_soql_query(self, arguments: Dict[str, Any]) -> ToolResult:
        query, = _require_args(arguments, "query")
        results = await asyncio.to_thread(self.client.require().query_all, query)
        return text_response(f"SOQL Query Results (JSON):\n{_json(results)}")

    async def run_sosl_search(self, arguments: Dict[str, Any]) -> ToolResult:
        search, = _require_args(arguments, "search")
        results = await asyncio.to_thread(self.client.require().search, search)
        return text_response(f"SOSL Search Results (JSON):\n{_json(results)}")

    async def get_record(self, arguments: Dict[str, Any]) -> ToolResult:
        object_name, record_id = _require_args(arguments, "object_name", "record_id")
        sobject = getattr(self.client.require(), object_name)
        results = await asyncio.to_thread(sobject.get, record_id)
        return text_response(f"{object_name} Record (JSON):\n{_json(results)}")

    async def create_record(self, arguments: Dict[str, Any]) -> ToolResult:
        object_name, data = _require_args(arguments, "object_name", "data")
        sobject = getattr(self.client.require(), object_name)
        results = await asyncio.to_thread(sobject.create, data)
        return text_response(f"Create {object_name} Record Result (JSON):\n{_json(results)}")

    async def update_record(self, arguments: Dict[str, Any]) -> ToolResult:
        object_name, record_id, data = _require_args(arguments, "object_name", "record_id", "data")
        sobject = getattr(self.client.require(), object_name)
        results = await asyncio.to_thread(sobject.update, record_id, data)
        return text_response(f"Update {object_name} Record Result: {results}")

    async def delete_record(self, arguments: Dict[str, Any]) -> ToolResult:
        object_name, record_id = _require_args(arguments, "object_name", "record_id")
        sobject = getattr(self.client.require(), object_name)
        results = await asyncio.to_thread(sobject.delete, record_id)
        return text_response(f"Delete {object_name} Record Result: {results}")

    async def get_object_fields(self, arguments: Dict[str, Any]) -> ToolResult:
        object_name, = _require_args(arguments, "object_name")
        results = await asyncio.to_thread(self.client.get_object_fields, object_name)
        return text_response(f"{object_name} Metadata (JSON):\n{_json(results)}")

    async def deploy_metadata(self, arguments: Dict[str, Any]) -> ToolResult:
        zip_path, = _require_args(arguments, "zip_path")
        options = {}
        if arguments.get("test_level"):
            options["testLevel"] = arguments["test_level"]
        if arguments.get("check_only"):
            options["checkOnly"] = True
        result = await asyncio.to_thread(
            self.client.require().deploy, zip_path, arguments.get("sandbox", False), **options
        )
        return text_response(f"Deploy Metadata Result (JSON):\n{_json(result)}")

    async def check_deploy_status(self, arguments: Dict[str, Any]) -> ToolResult:
        deployment_id, = _require_args(arguments, "deployment_id")
        result = await asyncio.to_thread(self.client.require().checkDeployStatus, deployment_id)
        return text_response(f"Deploy Status (JSON):\n{_json(result)}")

    async def run_apex_tests(self, arguments: Dict[str, Any]) -> ToolResult:
        class_names, = _require_args(arguments, "class_names")
        result = await asyncio.to_thread(
            self.client.require().toolingexecute,
            "runTestsSynchronous",
            method="POST",
            data={"tests": [{"className": name} for name in class_names]},
        )
        failures = result.get("numFailures", 0) if isinstance(result, dict) else 0
        return text_response(f"Apex Test Results (JSON):\n{_json(result)}", is_error=bool(failures))

    async def list_projects(self, arguments: Dict[str, Any]) -> ToolResult:
        results = await asyncio.to_thread(
            self.client.require().query_all, "SELECT Id, Name, Description FROM DevopsProject"
        )
        return text_response(_json(results.get("records", [])))

    async def list_workitems(self, arguments: Dict[str, Any]) -> ToolResult:
        project_id, = _require_args(arguments, "project_id")
        query = format_soql(
            "SELECT Id, Name, Subject, Description, Status, AssignedToId, "
            "DevopsPipelineStageId, DevopsProjectId FROM WorkItem WHERE DevopsProjectId = {}",
            project_id,
        )
        results = await asyncio.to_thread(self.client.require().query_all, query)
        return text_response(_json(results.get("records", [])))

    async def tooling_execute(self, arguments: Dict[str, Any]) -> ToolResult:
        action, = _require_args(arguments, "action")
        results = await asyncio.to_thread(
            self.client.require().toolingexecute,
            action, method=arguments.get("method", "GET"), data=arguments.get("data"),
        )
        return text_response(f"Tooling Execute Result (JSON):\n{_json(results)}")

    async def apex_execute(self, arguments: Dict[str, Any]) -> ToolResult:
        action, = _require_args(arguments, "action")
        results = await asyncio.to_thread(
            self.client.require().apexecute,
            action, method=arguments.get("method", "GET"), data=arguments.get("data"),
        )
        return text_response(f"Apex Execute Result (JSON):\n{_json(results)}")

    async def restful(self, arguments: Dict[str, Any]) -> ToolResult:
        path, = _require_args(arguments, "path")
        results = await asyncio.to_thread(
            self.client.require().restful,
            path,
            method=arguments.get("method", "GET"),
            params=arguments.get("params"),
            json=arguments.get("data"),
        )
        return text_response(f"RESTful API Call Result (JSON):\n{_json(results)}")
