"""Application wiring for configuration and the provider client."""
from __future__ import annotations

from functools import lru_cache

from ... import app_context
from ...config import ProxyConfig
from ..provider import SealProviderClient


def get_proxy_config() -> ProxyConfig:
    return app_context.get_config()


@lru_cache(maxsize=1)
def get_provider_client() -> SealProviderClient:
    return SealProviderClient.from_config(get_proxy_config())


__all__ = ["get_provider_client", "get_proxy_config"]
