"""
OpenAI provider implementation.
"""

import openai
from openai import AsyncOpenAI, OpenAI

from ..exceptions import AIBoundaryRejected, AIBoundaryTimeout
from .base import LLMProvider, LLMResponse, ProviderCapabilities, ModelTier


class OpenAIProvider(LLMProvider):
    """
    OpenAI GPT provider.
    """

    # Model mappings for each tier
    TIER_MODELS = {
        ModelTier.FAST: "gpt-4o-mini",
        ModelTier.STANDARD: "gpt-4o",
        ModelTier.ADVANCED: "gpt-4o",
    }

    # Model aliases for convenience
    MODEL_ALIASES = {
        "fast": "gpt-4o-mini",
        "standard": "gpt-4o",
        "gpt4": "gpt-4o",
        "gpt4-mini": "gpt-4o-mini",
    }

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        organization: str | None = None,
        timeout: float = 60.0,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            default_model: Default model to use
            organization: Optional organization ID
            timeout: Per-request timeout in seconds
        """
        self.client = OpenAI(
            api_key=api_key,
            organization=organization,
            timeout=timeout,
            max_retries=1,
        )
        self.async_client = AsyncOpenAI(
            api_key=api_key,
            organization=organization,
            timeout=timeout,
            max_retries=1,
        )
        self._default_model = self._resolve_model(default_model)

    def _resolve_model(self, model: str) -> str:
        """Resolve model alias to full model ID."""
        return self.MODEL_ALIASES.get(model, model)

    @property
    def name(self) -> str:
        return "openai"

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_system_prompt=True,
            supports_prompt_caching=False,  # OpenAI has caching but less explicit
            supports_multi_turn=True,
            max_context_tokens=128000,
        )

    def _build_messages(self, messages: list[dict], system_prompt: str | None) -> list[dict]:
        """OpenAI takes the system prompt as the first message."""
        if not system_prompt:
            return list(messages)
        return [{"role": "system", "content": system_prompt}, *messages]

    @staticmethod
    def _to_response(response, model: str) -> LLMResponse:
        choice = response.choices[0]
        usage = response.usage
        return LLMResponse(
            text=choice.message.content or "",
            model=model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            metadata={
                "finish_reason": choice.finish_reason,
                "provider": "openai",
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
        """Generate the next turn using GPT. use_cache is ignored (automatic caching)."""
        resolved_model = self._resolve_model(model) if model else self._default_model
        try:
            response = self.client.chat.completions.create(
                model=resolved_model,
                messages=self._build_messages(messages, system_prompt),
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.APITimeoutError as e:
            raise AIBoundaryTimeout(f"OpenAI request timed out: {e}") from e
        except openai.APIError as e:
            raise AIBoundaryRejected(f"OpenAI request failed: {e}") from e
        return self._to_response(response, resolved_model)

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
        resolved_model = self._resolve_model(model) if model else self._default_model
        try:
            response = await self.async_client.chat.completions.create(
                model=resolved_model,
                messages=self._build_messages(messages, system_prompt),
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.APITimeoutError as e:
            raise AIBoundaryTimeout(f"OpenAI request timed out: {e}") from e
        except openai.APIError as e:
            raise AIBoundaryRejected(f"OpenAI request failed: {e}") from e
        return self._to_response(response, resolved_model)
