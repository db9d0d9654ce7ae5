"""Creation of providers by name."""

from __future__ import annotations

import threading
from collections.abc import Callable

from agentsdk.anthropic import AnthropicProvider
from agentsdk.openai import OpenAIProvider
from agentsdk.provider import Provider
from agentsdk.types import ProviderConfig

ProviderBuilder = Callable[[ProviderConfig], Provider]


class ProviderFactory:
    """Maps provider names to builders; ``anthropic`` and ``openai`` are built in."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._builders: dict[str, ProviderBuilder] = {
            "anthropic": AnthropicProvider,
            "openai": OpenAIProvider,
        }

    def register_provider(self, name: str, factory: ProviderBuilder) -> None:
        """Register ``factory`` under ``name``, replacing any earlier builder."""
        with self._lock:
            self._builders[name] = factory

    def create(self, name: str, config: ProviderConfig) -> Provider | None:
        """Build the provider called ``name``; return None if it is unknown."""
        with self._lock:
            builder = self._builders.get(name)
        return builder(config) if builder is not None else None


_factory = ProviderFactory()


def get_factory() -> ProviderFactory:
    """Return the process-wide provider factory."""
    return _factory