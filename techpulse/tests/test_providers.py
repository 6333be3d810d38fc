"""
Tests for LLM provider selection and request shaping (no network).
"""

import pytest

from techpulse.providers import (
    AnthropicProvider,
    GoogleProvider,
    ModelTier,
    OpenAIProvider,
    create_provider,
    get_provider_from_env,
)


class TestProviderSelection:
    def test_no_keys_means_no_provider(self):
        assert get_provider_from_env() is None

    def test_default_order_prefers_anthropic(self):
        provider = get_provider_from_env(anthropic_key="a-key", openai_key="o-key")
        assert isinstance(provider, AnthropicProvider)

    def test_preferred_provider_wins_when_keyed(self):
        provider = get_provider_from_env(
            anthropic_key="a-key", openai_key="o-key", preferred_provider="OpenAI"
        )
        assert isinstance(provider, OpenAIProvider)

    def test_preferred_provider_without_key_falls_back(self):
        provider = get_provider_from_env(google_key="g-key", preferred_provider="anthropic")
        assert isinstance(provider, GoogleProvider)

    def test_unknown_provider_name(self):
        with pytest.raises(ValueError):
            create_provider("mystery", "key")


class TestRequestShaping:
    def test_anthropic_aliases_and_tiers(self):
        provider = AnthropicProvider(api_key="a-key", default_model="sonnet")
        kwargs = provider._build_request(
            [{"role": "user", "content": "hi"}], None, None, 100, 0.0, False
        )
        assert kwargs["model"] == "claude-sonnet-4-5-20250929"
        assert "system" not in kwargs
        assert "temperature" not in kwargs
        assert provider.get_model_for_tier(ModelTier.FAST) == "claude-haiku-4-5-20251001"

    def test_anthropic_caches_system_prompt_when_asked(self):
        provider = AnthropicProvider(api_key="a-key")
        kwargs = provider._build_request(
            [{"role": "user", "content": "hi"}], "article context", "haiku", 100, 0.7, True
        )
        assert kwargs["system"][0]["cache_control"] == {"type": "ephemeral"}
        assert kwargs["temperature"] == 0.7

    def test_openai_system_prompt_first(self):
        provider = OpenAIProvider(api_key="o-key")
        messages = provider._build_messages([{"role": "user", "content": "hi"}], "be brief")
        assert messages[0] == {"role": "system", "content": "be brief"}
        assert messages[1]["role"] == "user"

    def test_google_maps_assistant_role(self):
        provider = GoogleProvider(api_key="g-key")
        contents, _ = provider._build_request(
            [{"role": "user", "content": "q"}, {"role": "assistant", "content": "a"}],
            None, 100, 0.0,
        )
        assert [c.role for c in contents] == ["user", "model"]
