"""
Enablement state

One table per server process recording, for every known tool, whether it has
been handed to the server transport. Registration and enablement are set
together; there is no way back to disabled.
"""

import threading
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, Iterable, Mapping

from .errors import UnknownToolError


@dataclass(frozen=True)
class EnablementRecord:
    tool_name: str
    registered: bool = False
    enabled: bool = False


class EnablementState:
    """Thread-safe per-tool enablement table."""

    def __init__(self, tool_names: Iterable[str]):
        self._lock = threading.Lock()
        self._records: Dict[str, EnablementRecord] = {
            name: EnablementRecord(tool_name=name) for name in tool_names
        }

    def is_enabled(self, tool_name: str) -> bool:
        """False for unknown and never-enabled tools."""
        record = self._records.get(tool_name)
        return record is not None and record.enabled

    def mark_enabled(self, tool_name: str) -> bool:
        """Set registered and enabled for a tool.

        Returns:
            bool: True if the tool was not enabled before this call.

        Raises:
            UnknownToolError: if the tool is not in the table.
        """
        with self._lock:
            record = self._records.get(tool_name)
            if record is None:
                raise UnknownToolError(tool_name)
            if record.enabled:
                return False
            self._records[tool_name] = replace(record, registered=True, enabled=True)
            return True

    def snapshot(self) -> Mapping[str, EnablementRecord]:
        """Read-only copy of the table for reporting."""
        with self._lock:
            return MappingProxyType(dict(self._records))

    def enabled_names(self):
        return [name for name, record in self.snapshot().items() if record.enabled]
