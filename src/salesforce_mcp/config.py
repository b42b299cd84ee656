"""
Settings loaded from the environment (and a .env file when present).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if parsed <= 0:
        raise ConfigError(f"{name} must be positive, got {parsed}")
    return parsed


@dataclass
class Settings:
    username: Optional[str] = None
    password: Optional[str] = None
    security_token: Optional[str] = None
    access_token: Optional[str] = None
    instance_url: Optional[str] = None
    domain: str = "login"
    rate_limit: int = 60
    rate_window_seconds: int = 60
    rate_burst: int = 10
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        return cls(
            username=os.getenv("SALESFORCE_USERNAME"),
            password=os.getenv("SALESFORCE_PASSWORD"),
            security_token=os.getenv("SALESFORCE_SECURITY_TOKEN"),
            access_token=os.getenv("SALESFORCE_ACCESS_TOKEN"),
            instance_url=os.getenv("SALESFORCE_INSTANCE_URL"),
            domain=os.getenv("SALESFORCE_DOMAIN") or "login",
            rate_limit=_int_env("SF_MCP_RATE_LIMIT", 60),
            rate_window_seconds=_int_env("SF_MCP_RATE_WINDOW_SECONDS", 60),
            rate_burst=_int_env("SF_MCP_RATE_BURST", 10),
            log_level=(os.getenv("SF_MCP_LOG_LEVEL") or "INFO").upper(),
        )

    @property
    def uses_session_auth(self) -> bool:
        return bool(self.access_token and self.instance_url)
