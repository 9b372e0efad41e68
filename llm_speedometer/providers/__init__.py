"""
Provider wire protocols, credentials and the provider catalog.
"""

from ..models import ProviderFamily
from .anthropic import AnthropicAdapter, AnthropicDecoder
from .base import PreparedRequest, ProviderAdapter, StreamDecoder
from .google import GoogleAdapter, GoogleDecoder
from .openai_compatible import OpenAICompatibleAdapter, OpenAICompatibleDecoder

ADAPTERS: dict[ProviderFamily, type[ProviderAdapter]] = {
    ProviderFamily.OPENAI_COMPATIBLE: OpenAICompatibleAdapter,
    ProviderFamily.ANTHROPIC: AnthropicAdapter,
    ProviderFamily.GOOGLE: GoogleAdapter,
}


def get_adapter(family: ProviderFamily) -> ProviderAdapter:
    """Return the adapter for a provider family."""
    return ADAPTERS[ProviderFamily.parse(family)]()


__all__ = [
    "ADAPTERS",
    "AnthropicAdapter",
    "AnthropicDecoder",
    "GoogleAdapter",
    "GoogleDecoder",
    "OpenAICompatibleAdapter",
    "OpenAICompatibleDecoder",
    "PreparedRequest",
    "ProviderAdapter",
    "StreamDecoder",
    "get_adapter",
]
