"""
Tool providers

A provider supplies the descriptors for a group of tools. Providers are
enumerated once at startup; the resulting descriptors never change.
"""

import logging
from typing import Iterable, List

from ..tools import ReleaseState, ToolDescriptor

logger = logging.getLogger(__name__)


class ToolProvider:
    """Base class for anything that contributes tools to the server."""

    def get_name(self) -> str:
        return type(self).__name__

    def provide_tools(self) -> List[ToolDescriptor]:
        return []


def collect_descriptors(providers: Iterable[ToolProvider], allow_non_ga_tools: bool = False) -> List[ToolDescriptor]:
    """Enumerate every provider once and return the descriptors to serve.

    Args:
        providers: Providers to enumerate, in order.
        allow_non_ga_tools: Keep tools whose release state is NON_GA.

    Raises:
        ValueError: if two providers supply a tool with the same name.
    """
    descriptors: List[ToolDescriptor] = []
    seen = {}
    for provider in providers:
        for descriptor in provider.provide_tools():
            if descriptor.name in seen:
                raise ValueError(
                    f"Tool '{descriptor.name}' from {provider.get_name()} is already provided by {seen[descriptor.name]}"
                )
            seen[descriptor.name] = provider.get_name()
            if descriptor.release_state is ReleaseState.NON_GA and not allow_non_ga_tools:
                logger.info(
                    f"Skipping non-GA tool '{descriptor.name}' because --allow-non-ga-tools was not set"
                )
                continue
            descriptors.append(descriptor)
    return descriptors
