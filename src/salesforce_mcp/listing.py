"""
Read-only views over the toolset registry and the enablement state.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping

from .state import EnablementRecord, EnablementState
from .toolsets import ToolsetRegistry


@dataclass(frozen=True)
class ToolStatus:
    name: str
    description: str
    enabled: bool
    release_state: str
    toolsets: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "releaseState": self.release_state,
            "toolsets": list(self.toolsets),
        }


@dataclass(frozen=True)
class ToolsetStatus:
    name: str
    description: str
    enabled: bool
    tool_count: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["toolCount"] = data.pop("tool_count")
        return data


class ListingService:
    """Answers "what exists" and "what is enabled" from a fresh state snapshot per call."""

    def __init__(self, registry: ToolsetRegistry, state: EnablementState):
        self.registry = registry
        self.state = state

    def list_all_tools(self) -> List[ToolStatus]:
        snapshot = self.state.snapshot()
        return [self._tool_status(name, snapshot) for name in self.registry.tool_names()]

    def list_toolsets(self, include_hidden: bool = False) -> List[ToolsetStatus]:
        snapshot = self.state.snapshot()
        result = []
        for info in self.registry.list_toolsets(include_hidden=include_hidden):
            members = self.registry.members_of(info.name)
            result.append(ToolsetStatus(
                name=info.name,
                description=info.description,
                enabled=self._all_enabled(members, snapshot),
                tool_count=len(members),
            ))
        return result

    def toolset_tools(self, toolset_name: str) -> List[ToolStatus]:
        """Member tools of one toolset. Raises UnknownToolsetError for unknown names."""
        members = self.registry.members_of(toolset_name)
        snapshot = self.state.snapshot()
        return [self._tool_status(name, snapshot) for name in members]

    def is_toolset_enabled(self, toolset_name: str) -> bool:
        """True iff every member tool is enabled."""
        members = self.registry.members_of(toolset_name)
        return self._all_enabled(members, self.state.snapshot())

    @staticmethod
    def _all_enabled(members, snapshot: Mapping[str, EnablementRecord]) -> bool:
        return all(snapshot[name].enabled for name in members)

    def _tool_status(self, name: str, snapshot: Mapping[str, EnablementRecord]) -> ToolStatus:
        descriptor = self.registry.descriptor(name)
        return ToolStatus(
            name=name,
            description=descriptor.description,
            enabled=snapshot[name].enabled,
            release_state=descriptor.release_state.value,
            toolsets=list(descriptor.toolsets),
        )
