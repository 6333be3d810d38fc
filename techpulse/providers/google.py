"""
Google Gemini provider implementation.

Uses the google-genai SDK.
"""

import httpx
from google import genai
from google.genai import errors, types

from ..exceptions import AIBoundaryRejected, AIBoundaryTimeout
from .base import LLMProvider, LLMResponse, ProviderCapabilities, ModelTier


class GoogleProvider(LLMProvider):
    """
    Google Gemini provider.
    """

    # Model mappings for each tier
    TIER_MODELS = {
        ModelTier.FAST: "gemini-2.5-flash",
        ModelTier.STANDARD: "gemini-2.5-pro",
        ModelTier.ADVANCED: "gemini-2.5-pro",
    }

    # Model aliases for convenience
    MODEL_ALIASES = {
        "flash": "gemini-2.5-flash",
        "pro": "gemini-2.5-pro",
        "fast": "gemini-2.5-flash",
        "standard": "gemini-2.5-pro",
    }

    # Gemini calls the assistant role "model"
    ROLE_MAP = {"user": "user", "assistant": "model"}

    def __init__(
        self,
        api_key: str,
        default_model: str = "gemini-2.5-flash",
        timeout: float = 60.0,
    ):
        """
        Initialize Google Gemini provider.

        Args:
            api_key: Google AI API key
            default_model: Default model to use
            timeout: Per-request timeout in seconds
        """
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )
        self._default_model = self._resolve_model(default_model)

    def _resolve_model(self, model: str) -> str:
        """Resolve model alias to full model ID."""
        return self.MODEL_ALIASES.get(model, model)

    @property
    def name(self) -> str:
        return "google"

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_system_prompt=True,
            supports_prompt_caching=False,
            supports_multi_turn=True,
            max_context_tokens=1000000,  # Gemini has very large context
        )

    def _build_request(
        self,
        messages: list[dict],
        system_prompt: str | None,
        max_tokens: int,
        temperature: float,
    ) -> tuple[list, "types.GenerateContentConfig"]:
        config_kwargs = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }
        if system_prompt:
            config_kwargs["system_instruction"] = system_prompt

        contents = [
            types.Content(
                role=self.ROLE_MAP.get(m["role"], "user"),
                parts=[types.Part(text=m["content"])],
            )
            for m in messages
        ]
        return contents, types.GenerateContentConfig(**config_kwargs)

    @staticmethod
    def _to_response(response, model: str) -> LLMResponse:
        usage = getattr(response, "usage_metadata", None)
        return LLMResponse(
            text=response.text or "",
            model=model,
            input_tokens=(usage.prompt_token_count or 0) if usage else 0,
            output_tokens=(usage.candidates_token_count or 0) if usage else 0,
            metadata={"provider": "google"},
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
        """Generate the next turn using Gemini. use_cache is ignored."""
        resolved_model = self._resolve_model(model) if model else self._default_model
        contents, config = self._build_request(messages, system_prompt, max_tokens, temperature)
        try:
            response = self.client.models.generate_content(
                model=resolved_model, contents=contents, config=config,
            )
        except httpx.TimeoutException as e:
            raise AIBoundaryTimeout(f"Gemini request timed out: {e}") from e
        except errors.APIError as e:
            raise AIBoundaryRejected(f"Gemini request failed: {e}") from e
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
        """Native async call through the SDK's aio client."""
        resolved_model = self._resolve_model(model) if model else self._default_model
        contents, config = self._build_request(messages, system_prompt, max_tokens, temperature)
        try:
            response = await self.client.aio.models.generate_content(
                model=resolved_model, contents=contents, config=config,
            )
        except httpx.TimeoutException as e:
            raise AIBoundaryTimeout(f"Gemini request timed out: {e}") from e
        except errors.APIError as e:
            raise AIBoundaryRejected(f"Gemini request failed: {e}") from e
        return self._to_response(response, resolved_model)
