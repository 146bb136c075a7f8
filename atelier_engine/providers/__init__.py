"""Provider registry."""

from __future__ import annotations

from .base import ProviderRegistry
from .dryrun import DryRunProvider
from .openai import OpenAIImageProvider
from .venice import VeniceProvider


def default_registry() -> ProviderRegistry:
    return ProviderRegistry(
        [
            DryRunProvider(),
            VeniceProvider(),
            OpenAIImageProvider(),
        ]
    )
