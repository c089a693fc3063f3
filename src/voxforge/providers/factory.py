"""Provider construction helpers."""

import httpx

from voxforge.config import Settings
from voxforge.providers.anthropic import AnthropicProvider
from voxforge.providers.base import ModelProvider
from voxforge.providers.openai_compat import OpenAICompatProvider
from voxforge.providers.router import ProviderRouter

_ALLOWED_PRIMARY_PROVIDERS = {"anthropic", "openai"}


def resolve_primary_provider_name(settings: Settings) -> str:
    value = settings.primary_provider.strip().lower()
    if value in _ALLOWED_PRIMARY_PROVIDERS:
        return value
    return "anthropic"


def _anthropic(
    settings: Settings, transport: httpx.AsyncBaseTransport | None
) -> AnthropicProvider:
    return AnthropicProvider(
        settings.anthropic_model,
        api_key=settings.anthropic_api_key,
        base_url=settings.anthropic_base_url,
        timeout_seconds=settings.reasoning_timeout_seconds,
        transport=transport,
    )


def _openai(
    settings: Settings, transport: httpx.AsyncBaseTransport | None
) -> OpenAICompatProvider:
    return OpenAICompatProvider(
        settings.openai_model,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.reasoning_timeout_seconds,
        transport=transport,
    )


def build_primary_provider(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> ModelProvider:
    if resolve_primary_provider_name(settings) == "openai":
        return _openai(settings, transport)
    return _anthropic(settings, transport)


def build_fallback_provider(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> ModelProvider | None:
    """The other provider, only when its credentials are present."""
    if resolve_primary_provider_name(settings) == "openai":
        return _anthropic(settings, transport) if settings.anthropic_api_key.strip() else None
    return _openai(settings, transport) if settings.openai_api_key.strip() else None


def build_router(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> ProviderRouter:
    return ProviderRouter(
        build_primary_provider(settings, transport),
        build_fallback_provider(settings, transport),
    )
