"""Mock providers for offline runs and tests."""

from .providers import MockCompletionClient, MockSpeechRecognizer, MockSpeechSynthesizer

__all__ = ["MockCompletionClient", "MockSpeechRecognizer", "MockSpeechSynthesizer"]
