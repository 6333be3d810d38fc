"""
Base LLM provider interface.

Defines the abstract interface that all provider implementations must follow.
Implementations translate SDK failures into AIBoundaryTimeout (retryable) or
AIBoundaryRejected so callers never depend on a vendor's exception types.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class ModelTier(Enum):
    """Model capability tiers for automatic selection."""
    FAST = "fast"      # Quick, cheap models (Haiku, GPT mini, Gemini Flash)
    STANDARD = "standard"  # Balanced models (Sonnet, GPT, Gemini Pro)
    ADVANCED = "advanced"  # Most capable models


@dataclass
class ProviderCapabilities:
    """Describes what features a provider supports."""
    supports_system_prompt: bool = True
    supports_prompt_caching: bool = False
    supports_multi_turn: bool = True
    max_context_tokens: int = 128000


@dataclass
class LLMResponse:
    """Standardized response from any LLM provider."""
    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cached_tokens: int = 0  # For providers with prompt caching
    metadata: dict = field(default_factory=dict)


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    All provider implementations must inherit from this class and implement
    the required methods. This ensures a consistent interface across
    Anthropic, OpenAI, Google, and any future providers.
    """

    TIER_MODELS: dict[ModelTier, str] = {}

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name (e.g., 'anthropic', 'openai', 'google')."""
        pass

    @property
    @abstractmethod
    def capabilities(self) -> ProviderCapabilities:
        """Return the provider's capabilities."""
        pass

    def get_model_for_tier(self, tier: ModelTier) -> str:
        """Get the model ID for a given capability tier."""
        return self.TIER_MODELS[tier]

    @abstractmethod
    def complete_chat(
        self,
        messages: list[dict],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        use_cache: bool = False,
    ) -> LLMResponse:
        """
        Generate the next assistant turn of a conversation.

        Args:
            messages: [{"role": "user"|"assistant", "content": str}, ...],
                oldest first, ending with a user turn
            system_prompt: Optional system prompt for context
            model: Specific model to use (defaults to provider's default)
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature (0.0 = deterministic)
            use_cache: Enable prompt caching if supported

        Returns:
            LLMResponse with the generated text and metadata

        Raises:
            AIBoundaryTimeout: the provider did not answer in time
            AIBoundaryRejected: quota, auth or request errors
        """
        pass

    def complete(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        use_cache: bool = False,
    ) -> LLMResponse:
        """Single-turn completion."""
        return self.complete_chat(
            messages=[{"role": "user", "content": user_prompt}],
            system_prompt=system_prompt,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            use_cache=use_cache,
        )

    async def complete_chat_async(
        self,
        messages: list[dict],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        use_cache: bool = False,
    ) -> LLMResponse:
        """
        Async version of complete_chat.

        Default implementation runs the sync call in a worker thread.
        Providers with native async support should override this.
        """
        return await asyncio.to_thread(
            self.complete_chat,
            messages,
            system_prompt,
            model,
            max_tokens,
            temperature,
            use_cache,
        )

    async def complete_async(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        use_cache: bool = False,
    ) -> LLMResponse:
        """Async version of complete."""
        return await self.complete_chat_async(
            messages=[{"role": "user", "content": user_prompt}],
            system_prompt=system_prompt,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            use_cache=use_cache,
        )
