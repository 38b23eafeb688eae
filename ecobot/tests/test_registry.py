"""Tests for the provider registry."""

import pytest

from ecobot.mocks.providers import (
    MockCompletionClient,
    MockSpeechRecognizer,
    MockSpeechSynthesizer,
)
from ecobot.providers import registry
from ecobot.providers.completion.gemini import GeminiClient
from ecobot.providers.completion.openrouter import OpenRouterClient
from ecobot.providers.registry import ProviderRegistry
from ecobot.providers.speech.elevenlabs import ElevenLabsSynthesizer
from ecobot.providers.speech.whisperkit import WhisperKitRecognizer


class TestGlobalRegistry:
    """Providers registered on package import."""

    def test_builtin_providers_registered(self):
        assert registry.list_completion_providers() == ["openrouter", "gemini"]
        assert registry.list_speech_recognizers() == ["whisperkit"]
        assert registry.list_speech_synthesizers() == ["elevenlabs"]

    def test_openrouter_uses_configured_values(self):
        provider = registry.get_completion_provider("openrouter")

        assert isinstance(provider, OpenRouterClient)
        assert provider.base_url == "https://openrouter.ai/api/v1"
        assert provider.site_name == "EcoTravel Platform"

    def test_explicit_kwargs_win(self):
        provider = registry.get_completion_provider("gemini", model_name="gemini-1.5-pro")

        assert isinstance(provider, GeminiClient)
        assert provider.model_name == "gemini-1.5-pro"

    def test_speech_providers_built(self):
        assert isinstance(registry.get_speech_recognizer("whisperkit"), WhisperKitRecognizer)
        assert isinstance(registry.get_speech_synthesizer("elevenlabs"), ElevenLabsSynthesizer)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown completion provider: claude"):
            registry.get_completion_provider("claude")


class TestProviderRegistry:
    """Test cases for a standalone ProviderRegistry."""

    def setup_method(self):
        """Set up test fixtures."""
        self.registry = ProviderRegistry()
        self.registry.register_completion_provider(
            "mock", MockCompletionClient, lambda: {"responses": ["configured"]}
        )
        self.registry.register_speech_recognizer("mock", MockSpeechRecognizer)
        self.registry.register_speech_synthesizer(
            "mock", MockSpeechSynthesizer, lambda: {"available": False}
        )

    def test_config_getter_feeds_constructor(self):
        client = self.registry.get_completion_provider("mock")
        assert client.responses == ["configured"]

    def test_resolve_speech_capabilities(self):
        capabilities = self.registry.resolve_speech_capabilities(
            recognizer="mock", synthesizer="mock"
        )

        assert isinstance(capabilities.recognizer, MockSpeechRecognizer)
        # The configured synthesizer reports itself unavailable
        assert capabilities.synthesizer is None

    def test_resolve_without_names(self):
        capabilities = self.registry.resolve_speech_capabilities()
        assert capabilities.recognizer is None
        assert capabilities.synthesizer is None

    def test_clear(self):
        self.registry.clear()

        assert self.registry.list_completion_providers() == []
        with pytest.raises(ValueError):
            self.registry.get_speech_recognizer("mock")
