"""Shared application context holding the process-wide configuration."""
from __future__ import annotations

from typing import Any, Optional

from .config import ProxyConfig

_config: Optional[ProxyConfig] = None


def configure(*, config: ProxyConfig) -> None:
    """Register the configuration built at startup."""

    global _config
    _config = config


def reset() -> None:
    global _config
    _config = None


def _require(value: Optional[Any], name: str) -> Any:
    if value is None:
        raise RuntimeError(f"Application context has not been configured yet: {name}")
    return value


def get_config() -> ProxyConfig:
    return _require(_config, "config")
