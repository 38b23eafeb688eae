"""Tests for the headless chat widget controller."""

import threading
import pytest
from unittest.mock import Mock

from ecobot.chat.errors import ErrorCategory, NetworkError, error_for
from ecobot.chat.messages import Role
from ecobot.chat.session import ConversationSession
from ecobot.config.settings import DEFAULT_GREETING
from ecobot.core.chat_controller import (
    CLEARED_MESSAGE,
    SPOKEN_APOLOGY,
    ChatController,
    error_display_text,
)
from ecobot.mocks.providers import (
    MockCompletionClient,
    MockSpeechRecognizer,
    MockSpeechSynthesizer,
)
from ecobot.providers.completion.base import CompletionFailure
from ecobot.providers.speech.base import ERROR_NOT_ALLOWED, SpeechCapabilities
from ecobot.voice.controller import PERMISSION_ADVISORY, VoiceController, VoiceState


class TestChatController:
    """Test cases for ChatController."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = MockCompletionClient(responses=["Try the night train."])
        self.session = ConversationSession(self.client, persona="You are EcoBot.")
        self.recognizer = MockSpeechRecognizer()
        self.synthesizer = MockSpeechSynthesizer(auto_complete=True)
        self.voice = VoiceController(SpeechCapabilities(self.recognizer, self.synthesizer))
        self.rendered = []
        self.controller = ChatController(
            self.session, voice=self.voice, on_message=self.rendered.append
        )

    def test_transcript_starts_with_greeting(self):
        assert len(self.controller.messages) == 1
        assert self.controller.messages[0].role is Role.ASSISTANT
        assert self.controller.messages[0].content == DEFAULT_GREETING
        # The greeting is display-only
        assert len(self.session.history()) == 1

    def test_submit_appends_exchange_and_speaks(self):
        bubble = self.controller.submit("How do I get to Vienna?")

        assert bubble.content == "Try the night train."
        contents = [m.content for m in self.controller.messages]
        assert contents[1:] == ["How do I get to Vienna?", "Try the night train."]
        assert [u.text for u in self.synthesizer.spoken] == ["Try the night train."]
        assert self.controller.is_loading is False

    def test_submit_renders_messages(self):
        self.controller.submit("hello")
        assert [m.role for m in self.rendered] == [Role.ASSISTANT, Role.USER, Role.ASSISTANT]

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_blank_submit_ignored(self, text):
        assert self.controller.submit(text) is None
        assert len(self.controller.messages) == 1
        assert self.client.requests == []

    def test_submit_ignored_while_listening(self):
        self.voice.start_listening()

        assert self.controller.submit("hello") is None
        assert self.client.requests == []

    def test_submit_ignored_while_reply_loading(self):
        entered = threading.Event()
        release = threading.Event()

        def blocking_complete(request):
            entered.set()
            release.wait(timeout=5)
            yield "Try the night train."

        client = Mock()
        client.provider_name = "openrouter"
        client.complete.side_effect = blocking_complete
        controller = ChatController(ConversationSession(client), voice=self.voice)

        worker = threading.Thread(target=controller.submit, args=("typed question",))
        worker.start()
        assert entered.wait(timeout=5)

        assert controller.is_loading is True
        assert controller.submit("spoken question") is None

        release.set()
        worker.join(timeout=5)

        contents = [m.content for m in controller.messages]
        assert contents[1:] == ["typed question", "Try the night train."]
        assert [u.text for u in self.synthesizer.spoken] == ["Try the night train."]
        assert controller.is_loading is False

    def test_failure_shows_apology(self):
        client = MockCompletionClient(failures=[CompletionFailure("Model xyz missing")])
        controller = ChatController(ConversationSession(client), voice=self.voice)

        bubble = controller.submit("hello")

        assert bubble.role is Role.ASSISTANT
        assert bubble.content == (
            "I apologize, but I'm having trouble responding right now. "
            "Error: AI service error: Model xyz missing"
        )
        assert [u.text for u in self.synthesizer.spoken] == [SPOKEN_APOLOGY]
        assert controller.is_loading is False

    def test_voice_disabled_skips_speech(self):
        self.voice.set_voice_enabled(False)
        self.controller.submit("hello")
        assert self.synthesizer.spoken == []

    def test_recognized_speech_is_submitted(self):
        self.controller.toggle_listening()
        assert self.voice.state is VoiceState.LISTENING

        self.recognizer.emit_result("eco hotels in Porto")
        self.recognizer.emit_end()

        contents = [m.content for m in self.controller.messages]
        assert contents[-2:] == ["eco hotels in Porto", "Try the night train."]

    def test_toggle_listening_twice_stops(self):
        assert self.controller.toggle_listening() is True
        assert self.controller.toggle_listening() is False
        assert self.voice.state is VoiceState.IDLE
        assert self.recognizer.abort_count == 1

    def test_toggle_listening_unsupported_sets_notice(self):
        controller = ChatController(self.session)

        assert controller.toggle_listening() is False
        assert controller.notice == "Speech recognition is not supported on this platform."

    def test_recognition_error_sets_notice(self):
        notices = []
        self.controller.on_notice = notices.append

        self.controller.toggle_listening()
        self.recognizer.emit_error(ERROR_NOT_ALLOWED)

        assert self.controller.notice == PERMISSION_ADVISORY
        assert notices == [PERMISSION_ADVISORY]

    def test_toggle_voice_flips_flag(self):
        assert self.controller.toggle_voice() is False
        assert self.controller.toggle_voice() is True

    def test_toggle_voice_stops_speaking_first(self):
        synthesizer = MockSpeechSynthesizer()
        voice = VoiceController(SpeechCapabilities(None, synthesizer))
        controller = ChatController(self.session, voice=voice)
        voice.speak("a long answer")

        assert controller.toggle_voice() is True
        assert voice.state is VoiceState.IDLE
        assert synthesizer.cancel_count == 1

    def test_clear(self):
        self.controller.submit("hello")
        self.controller.clear()

        assert [m.content for m in self.controller.messages] == [CLEARED_MESSAGE]
        assert len(self.session.history()) == 1

    def test_get_status(self):
        status = self.controller.get_status()
        assert status["loading"] is False
        assert status["display_messages"] == 1
        assert status["voice"]["state"] == "idle"
        assert status["session"]["provider"] == "mock"


class TestErrorDisplayText:
    """Category-specific chat bubbles."""

    def test_service_unavailable(self):
        text = error_display_text(error_for(ErrorCategory.SERVICE_UNAVAILABLE))
        assert text == "The AI service is temporarily busy. Please wait a moment and try again!"

    def test_rate_limited(self):
        text = error_display_text(error_for(ErrorCategory.RATE_LIMITED))
        assert text == "API usage limit reached. Please try again in a few minutes."

    def test_network(self):
        text = error_display_text(NetworkError("offline"))
        assert text == "Network connection issue. Please check your internet and try again."

    def test_auth_falls_back_to_message(self):
        text = error_display_text(error_for(ErrorCategory.AUTH_ERROR))
        assert text.endswith("Error: Invalid API key. Please verify your API key is correct.")
