"""
Provider factory for creating LLM provider instances.

Handles provider selection based on configuration and available API keys.
"""

import logging
from enum import Enum

from .base import LLMProvider
from .anthropic import AnthropicProvider
from .openai import OpenAIProvider
from .google import GoogleProvider

logger = logging.getLogger(__name__)


class ProviderType(Enum):
    """Available LLM provider types."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"


def create_provider(
    provider_type: ProviderType | str,
    api_key: str,
    default_model: str | None = None,
    timeout: float = 60.0,
) -> LLMProvider:
    """
    Create an LLM provider instance.

    Args:
        provider_type: The provider to create (anthropic, openai, google)
        api_key: API key for the provider
        default_model: Optional default model override
        timeout: Per-request timeout in seconds

    Returns:
        Configured LLMProvider instance

    Raises:
        ValueError: If provider_type is unknown
    """
    # Normalize provider type
    if isinstance(provider_type, str):
        try:
            provider_type = ProviderType(provider_type.lower())
        except ValueError:
            raise ValueError(
                f"Unknown provider: {provider_type}. "
                f"Available: {[p.value for p in ProviderType]}"
            )

    if provider_type == ProviderType.ANTHROPIC:
        return AnthropicProvider(
            api_key=api_key,
            default_model=default_model or "haiku",
            timeout=timeout,
        )
    elif provider_type == ProviderType.OPENAI:
        return OpenAIProvider(
            api_key=api_key,
            default_model=default_model or "gpt-4o-mini",
            timeout=timeout,
        )
    elif provider_type == ProviderType.GOOGLE:
        return GoogleProvider(
            api_key=api_key,
            default_model=default_model or "flash",
            timeout=timeout,
        )
    else:
        raise ValueError(f"Unknown provider type: {provider_type}")


def get_provider_from_env(
    anthropic_key: str | None = None,
    openai_key: str | None = None,
    google_key: str | None = None,
    preferred_provider: str | None = None,
    default_model: str | None = None,
    timeout: float = 60.0,
) -> LLMProvider | None:
    """
    Create a provider from available environment keys.

    Tries the preferred provider first, then Anthropic > OpenAI > Google,
    returning the first one with an API key configured.

    Returns:
        Configured LLMProvider or None if no keys available
    """
    providers = {
        ProviderType.ANTHROPIC: anthropic_key,
        ProviderType.OPENAI: openai_key,
        ProviderType.GOOGLE: google_key,
    }

    if preferred_provider:
        try:
            pref_type = ProviderType(preferred_provider.lower())
        except ValueError:
            logger.warning(f"Unknown LLM_PROVIDER '{preferred_provider}', using default order")
        else:
            if providers.get(pref_type):
                return create_provider(
                    pref_type,
                    providers[pref_type],
                    default_model=default_model,
                    timeout=timeout,
                )

    for provider_type, api_key in providers.items():
        if api_key:
            return create_provider(
                provider_type,
                api_key,
                default_model=default_model,
                timeout=timeout,
            )

    return None
