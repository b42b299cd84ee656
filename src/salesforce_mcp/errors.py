"""
Exception types raised by the Salesforce MCP server.
"""

import math
from typing import List, Optional


class SalesforceMcpError(Exception):
    """Base class for all server errors."""


class ConfigError(SalesforceMcpError):
    """Invalid configuration value."""


class UnknownToolError(SalesforceMcpError):
    """No tool descriptor exists for the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool {name} does not exist")


class UnknownToolsetError(SalesforceMcpError):
    """The requested toolset is not in the registry."""

    def __init__(self, name: str, available: Optional[List[str]] = None):
        self.name = name
        self.available = list(available or [])
        super().__init__(f"Invalid toolset: {name}. Available: {', '.join(self.available)}")


class TransportRegistrationError(SalesforceMcpError):
    """A tool was handed to the server transport more than once."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool {name} is already registered with the server")


class ToolExecutionError(SalesforceMcpError):
    """A tool finished with an error result."""


class RateLimitExceededError(SalesforceMcpError):
    """Too many tool calls in the current window."""

    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(
            "Rate limit exceeded. Too many tool calls. "
            f"Please wait {max(1, math.ceil(retry_after))} seconds before trying again."
        )
