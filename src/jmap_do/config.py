"""
Configuration management for jmap-do

This module provides global configuration for the JMAP client.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import ClientConfig

DEFAULT_TIMEOUT = 30.0


def _get_env(key: str) -> str | None:
    """Get environment variable value."""
    return os.environ.get(key)


def _get_env_float(key: str) -> float | None:
    value = _get_env(key)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{key} must be a number of seconds, got {value!r}") from None


def _env_config() -> dict[str, object]:
    """Build configuration values from JMAP_* environment variables."""
    return {
        "session_url": _get_env("JMAP_SESSION_URL"),
        "bearer_token": _get_env("JMAP_BEARER_TOKEN"),
        "timeout": _get_env_float("JMAP_TIMEOUT") or DEFAULT_TIMEOUT,
        "custom_capabilities": {},
    }


# Global configuration
_global_config: dict[str, object] = _env_config()


def configure(
    *,
    session_url: str | None = None,
    bearer_token: str | None = None,
    timeout: float | None = None,
    custom_capabilities: dict[str, str] | None = None,
) -> None:
    """
    Configure client defaults.

    Args:
        session_url: URL of the JMAP session resource
        bearer_token: Bearer token used to authenticate all requests
        timeout: Default HTTP timeout in seconds (default: 30)
        custom_capabilities: Extra entity name → capability URI entries

    Example::

        from jmap_do import configure

        configure(
            session_url="https://api.fastmail.com/jmap/session",
            custom_capabilities={"Sandwich": "urn:bigco:params:jmap:sandwich"},
        )
    """
    if session_url is not None:
        _global_config["session_url"] = session_url
    if bearer_token is not None:
        _global_config["bearer_token"] = bearer_token
    if timeout is not None:
        _global_config["timeout"] = timeout
    if custom_capabilities is not None:
        _global_config["custom_capabilities"] = dict(custom_capabilities)


def get_config() -> "ClientConfig":
    """
    Get current client configuration.

    Example::

        from jmap_do import get_config

        config = get_config()
        print(f"Session URL: {config.session_url}")
    """
    from .types import ClientConfig

    return ClientConfig(
        session_url=_global_config["session_url"],  # type: ignore[arg-type]
        bearer_token=_global_config["bearer_token"],  # type: ignore[arg-type]
        timeout=_global_config["timeout"] or DEFAULT_TIMEOUT,  # type: ignore[arg-type]
        custom_capabilities=dict(_global_config["custom_capabilities"]),  # type: ignore[call-overload]
    )


def configure_from_env() -> None:
    """
    Configure the client from environment variables.

    Reads from:
        - JMAP_SESSION_URL
        - JMAP_BEARER_TOKEN
        - JMAP_TIMEOUT
    """
    configure(
        session_url=_get_env("JMAP_SESSION_URL"),
        bearer_token=_get_env("JMAP_BEARER_TOKEN"),
        timeout=_get_env_float("JMAP_TIMEOUT"),
    )
