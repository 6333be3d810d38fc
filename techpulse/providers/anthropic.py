"""
Anthropic Claude provider implementation.

Supports Claude models with prompt caching for cost optimization.
"""

import anthropic

from ..exceptions import AIBoundaryRejected, AIBoundaryTimeout
from .base import LLMProvider, LLMResponse, ProviderCapabilities, ModelTier


class AnthropicProvider(LLMProvider):
    """
    Anthropic Claude provider with prompt caching support.

    The article context sits in the system prompt, which is cached across
    the turns of one conversation.
    """

    # Model mappings for each tier
    TIER_MODELS = {
        ModelTier.FAST: "claude-haiku-4-5-20251001",
        ModelTier.STANDARD: "claude-sonnet-4-5-20250929",
        ModelTier.ADVANCED: "claude-opus-4-1-20250805",
    }

    # Model aliases for convenience
    MODEL_ALIASES = {
        "haiku": "claude-haiku-4-5-20251001",
        "sonnet": "claude-sonnet-4-5-20250929",
        "opus": "claude-opus-4-1-20250805",
        "claude-haiku-4-5": "claude-haiku-4-5-20251001",
        "claude-sonnet-4-5": "claude-sonnet-4-5-20250929",
    }

    def __init__(
        self,
        api_key: str,
        default_model: str = "claude-haiku-4-5-20251001",
        timeout: float = 60.0,
    ):
        """
        Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            default_model: Default model to use
            timeout: Per-request timeout in seconds
        """
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=1)
        self.async_client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=1)
        self._default_model = self._resolve_model(default_model)

    def _resolve_model(self, model: str) -> str:
        """Resolve model alias to full model ID."""
        return self.MODEL_ALIASES.get(model, model)

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_system_prompt=True,
            supports_prompt_caching=True,
            supports_multi_turn=True,
            max_context_tokens=200000,
        )

    def _build_request(
        self,
        messages: list[dict],
        system_prompt: str | None,
        model: str | None,
        max_tokens: int,
        temperature: float,
        use_cache: bool,
    ) -> dict:
        """Keyword arguments for messages.create; the system prompt is cached when asked."""
        kwargs = {
            "model": self._resolve_model(model) if model else self._default_model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if temperature > 0:
            kwargs["temperature"] = temperature
        if system_prompt and use_cache:
            kwargs["system"] = [{
                "type": "text",
                "text": system_prompt,
                "cache_control": {"type": "ephemeral"}
            }]
        elif system_prompt:
            kwargs["system"] = system_prompt
        return kwargs

    @staticmethod
    def _to_response(response, model: str) -> LLMResponse:
        text_blocks = [b.text for b in response.content if getattr(b, "type", "") == "text"]
        usage = response.usage
        return LLMResponse(
            text="".join(text_blocks),
            model=model,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cached_tokens=getattr(usage, "cache_read_input_tokens", 0) or 0,
            metadata={
                "stop_reason": response.stop_reason,
                "provider": "anthropic",
            }
        )

    def complete_chat(
        self,
        messages: list[dict],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        use_cache: bool = False,
    ) -> LLMResponse:
        """Generate the next turn using Claude."""
        kwargs = self._build_request(messages, system_prompt, model, max_tokens, temperature, use_cache)
        try:
            response = self.client.messages.create(**kwargs)
        except anthropic.APITimeoutError as e:
            raise AIBoundaryTimeout(f"Anthropic request timed out: {e}") from e
        except anthropic.APIError as e:
            raise AIBoundaryRejected(f"Anthropic request failed: {e}") from e
        return self._to_response(response, kwargs["model"])

    async def complete_chat_async(
        self,
        messages: list[dict],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        use_cache: bool = False,
    ) -> LLMResponse:
        """Native async call; cancelling the awaiting task aborts the request."""
        kwargs = self._build_request(messages, system_prompt, model, max_tokens, temperature, use_cache)
        try:
            response = await self.async_client.messages.create(**kwargs)
        except anthropic.APITimeoutError as e:
            raise AIBoundaryTimeout(f"Anthropic request timed out: {e}") from e
        except anthropic.APIError as e:
            raise AIBoundaryRejected(f"Anthropic request failed: {e}") from e
        return self._to_response(response, kwargs["model"])
