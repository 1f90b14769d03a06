"""
Backend base URL resolution for the same-origin API proxy

The deployed API's base URL can change between environment restarts, so the
proxy asks a resolver for it on every request instead of caching it.
"""

from __future__ import annotations

import logging
import os
from typing import Protocol, Sequence

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


class BaseUrlResolver(Protocol):
    def resolve_base_url(self) -> str | None:
        """Return the base URL without a trailing slash, or None if unknown."""
        ...


def _normalize(url: str | None) -> str | None:
    if not url or not url.strip():
        return None
    return url.strip().rstrip("/")


class EnvFileBaseUrlResolver:
    """Reads the base URL from a dotenv file written at environment start-up."""

    def __init__(self, path: str, key: str = "API_BASE_URL"):
        self.path = path
        self.key = key

    def resolve_base_url(self) -> str | None:
        if not os.path.isfile(self.path):
            return None
        try:
            values = dotenv_values(self.path)
        except OSError as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return None
        return _normalize(values.get(self.key))


class StaticBaseUrlResolver:
    def __init__(self, base_url: str | None):
        self.base_url = base_url

    def resolve_base_url(self) -> str | None:
        return _normalize(self.base_url)


class ChainedBaseUrlResolver:
    """First resolver that yields a URL wins."""

    def __init__(self, resolvers: Sequence[BaseUrlResolver]):
        self.resolvers = list(resolvers)

    def resolve_base_url(self) -> str | None:
        for resolver in self.resolvers:
            url = resolver.resolve_base_url()
            if url:
                return url
        return None


def default_resolver(env_file: str | None, fallback_url: str | None) -> BaseUrlResolver:
    """Persisted env file first, then the configured API_BASE_URL."""
    resolvers: list[BaseUrlResolver] = []
    if env_file:
        resolvers.append(EnvFileBaseUrlResolver(env_file))
    resolvers.append(StaticBaseUrlResolver(fallback_url))
    return ChainedBaseUrlResolver(resolvers)
