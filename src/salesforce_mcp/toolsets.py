"""
Toolset registry

Built once at startup from every descriptor the providers supplied. Groups
tool names by toolset and keeps the descriptor lookup used by the activation
engine and the listing service. Nothing in here changes after construction.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from .errors import UnknownToolError, UnknownToolsetError
from .tools import HIDDEN_TOOLSETS, TOOLSET_DESCRIPTIONS, Toolset, ToolDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolsetInfo:
    name: str
    description: str
    hidden: bool = False


class ToolsetRegistry:
    """Static mapping from toolset name to the ordered names of its members."""

    def __init__(self, descriptors: Iterable[ToolDescriptor]):
        self._descriptors: Dict[str, ToolDescriptor] = {}
        members: Dict[str, List[str]] = {}

        for descriptor in descriptors:
            if descriptor.name in self._descriptors:
                raise ValueError(f"Duplicate tool name: {descriptor.name}")
            self._descriptors[descriptor.name] = descriptor
            for toolset in descriptor.toolsets:
                members.setdefault(toolset, []).append(descriptor.name)

        # Known toolsets first in enum order, anything else after in first-seen order
        known = [t.value for t in Toolset if t.value in members]
        extra = [name for name in members if name not in known]
        self._members: Dict[str, Tuple[str, ...]] = {
            name: tuple(members[name]) for name in known + extra
        }
        logger.debug(
            f"Toolset registry built with {len(self._descriptors)} tools in {len(self._members)} toolsets"
        )

    def list_toolsets(self, include_hidden: bool = False) -> List[ToolsetInfo]:
        """Ordered toolsets with their descriptions."""
        result = []
        for name in self._members:
            hidden = name in HIDDEN_TOOLSETS
            if hidden and not include_hidden:
                continue
            result.append(ToolsetInfo(name=name, description=TOOLSET_DESCRIPTIONS.get(name, ""), hidden=hidden))
        return result

    def toolset_names(self, include_hidden: bool = False) -> List[str]:
        return [info.name for info in self.list_toolsets(include_hidden=include_hidden)]

    def members_of(self, toolset_name: str) -> Tuple[str, ...]:
        """Member tool names of a toolset.

        Raises:
            UnknownToolsetError: if the toolset is not registered.
        """
        try:
            return self._members[toolset_name]
        except KeyError:
            raise UnknownToolsetError(toolset_name, self.toolset_names()) from None

    def descriptor(self, tool_name: str) -> ToolDescriptor:
        try:
            return self._descriptors[tool_name]
        except KeyError:
            raise UnknownToolError(tool_name) from None

    def has_tool(self, tool_name: str) -> bool:
        return tool_name in self._descriptors

    def tool_names(self) -> List[str]:
        return list(self._descriptors)

    def descriptors(self) -> List[ToolDescriptor]:
        return list(self._descriptors.values())
