"""
Tool activation engine

Turns "enable this tool" and "enable this toolset" requests into transport
registrations. The engine is the only caller of ServerTransport.register, and
it checks and updates the enablement state under one lock, so a tool reaches
the transport at most once no matter how often or from where it is enabled.
Each top-level request sends at most one tools/list_changed notification.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .errors import SalesforceMcpError, TransportRegistrationError, UnknownToolsetError
from .state import EnablementState
from .toolsets import ToolsetRegistry
from .transport import ServerTransport

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    ENABLED = "enabled"
    ALREADY_ENABLED = "already_enabled"
    UNKNOWN_TOOL = "unknown_tool"
    FAILED = "failed"


@dataclass(frozen=True)
class ActivationOutcome:
    tool_name: str
    outcome: Outcome
    message: str

    @property
    def success(self) -> bool:
        return self.outcome in (Outcome.ENABLED, Outcome.ALREADY_ENABLED)


@dataclass
class ActivationReport:
    """Per-tool outcomes of one enable request, in request order."""
    outcomes: List[ActivationOutcome] = field(default_factory=list)
    toolset: Optional[str] = None
    # Set when the request failed before any tool was considered
    error: Optional[SalesforceMcpError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and all(o.success for o in self.outcomes)

    @property
    def changed(self) -> bool:
        return bool(self.newly_enabled())

    @property
    def by_tool(self) -> Dict[str, ActivationOutcome]:
        return {o.tool_name: o for o in self.outcomes}

    def newly_enabled(self) -> List[str]:
        return [o.tool_name for o in self.outcomes if o.outcome is Outcome.ENABLED]

    def failures(self) -> List[ActivationOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def message(self) -> str:
        if self.error is not None:
            return str(self.error)
        return "\n".join(o.message for o in self.outcomes)


class ActivationEngine:
    """Enables tools and toolsets against a server transport."""

    def __init__(self, registry: ToolsetRegistry, state: EnablementState, transport: ServerTransport):
        self.registry = registry
        self.state = state
        self.transport = transport
        self._lock = threading.Lock()

    def _activate(self, tool_name: str) -> ActivationOutcome:
        if not self.registry.has_tool(tool_name):
            return ActivationOutcome(tool_name, Outcome.UNKNOWN_TOOL, f"Tool {tool_name} does not exist")

        with self._lock:
            if self.state.is_enabled(tool_name):
                return ActivationOutcome(
                    tool_name, Outcome.ALREADY_ENABLED, f"Tool {tool_name} is already enabled"
                )
            descriptor = self.registry.descriptor(tool_name)
            try:
                self.transport.register(descriptor)
            except TransportRegistrationError as e:
                logger.exception(f"Registration of tool '{tool_name}' failed")
                return ActivationOutcome(tool_name, Outcome.FAILED, f"Tool {tool_name} could not be enabled: {e}")
            self.state.mark_enabled(tool_name)

        logger.info(f"Tool {tool_name} enabled")
        return ActivationOutcome(tool_name, Outcome.ENABLED, f"Tool {tool_name} enabled")

    def activate(self, tool_names: Iterable[str], toolset: Optional[str] = None) -> ActivationReport:
        """Enable each named tool without notifying clients. Never stops early."""
        report = ActivationReport(toolset=toolset)
        for name in tool_names:
            report.outcomes.append(self._activate(name))
        return report

    def activate_toolset(self, toolset_name: str) -> ActivationReport:
        try:
            members = self.registry.members_of(toolset_name)
        except UnknownToolsetError as e:
            return ActivationReport(toolset=toolset_name, error=e)
        return self.activate(members, toolset=toolset_name)

    def preload(self, toolsets: Iterable[str] = (), tools: Iterable[str] = ()) -> List[ActivationReport]:
        """Startup enablement. No client is connected yet, so nothing is notified."""
        reports = []
        for toolset in toolsets:
            logger.info(f"Registering toolset: '{toolset}'")
            reports.append(self.activate_toolset(toolset))
        tools = list(tools)
        if tools:
            logger.info(f"Registering tools: {', '.join(tools)}")
            reports.append(self.activate(tools))
        return reports

    async def enable_tool(self, tool_name: str) -> ActivationOutcome:
        report = await self.enable_tools([tool_name])
        return report.outcomes[0]

    async def enable_tools(self, tool_names: Iterable[str]) -> ActivationReport:
        report = self.activate(tool_names)
        await self._notify_if_changed(report)
        return report

    async def enable_toolset(self, toolset_name: str) -> ActivationReport:
        report = self.activate_toolset(toolset_name)
        await self._notify_if_changed(report)
        return report

    async def _notify_if_changed(self, report: ActivationReport):
        if not report.changed:
            return
        logger.debug(f"Tool list changed: {', '.join(report.newly_enabled())}")
        try:
            await self.transport.notify_tool_list_changed()
        except Exception as e:
            logger.warning(f"Failed to send tools/list_changed notification: {e}")
