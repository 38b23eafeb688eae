"""Tests for completion providers."""

import os
import httpx
import openai
import pytest
import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from unittest.mock import Mock, PropertyMock, patch

from ecobot.chat.session import ConversationSession
from ecobot.mocks.providers import MockCompletionClient
from ecobot.providers.completion.base import CompletionFailure, CompletionRequest
from ecobot.providers.completion.gemini import GeminiClient, _split_messages
from ecobot.providers.completion.openrouter import OpenRouterClient


MESSAGES = [
    {"role": "system", "content": "You are EcoBot."},
    {"role": "user", "content": "Best way to Paris?"},
    {"role": "assistant", "content": "The train."},
    {"role": "user", "content": "How long does it take?"},
]

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"


def _choice(content="", finish_reason="stop"):
    choice = Mock()
    choice.finish_reason = finish_reason
    choice.message.content = content
    return choice


def _chunk(content, finish_reason=None):
    chunk = Mock()
    chunk.choices = [Mock(finish_reason=finish_reason)]
    chunk.choices[0].delta.content = content
    return chunk


class TestOpenRouterClient:
    """Test cases for the OpenRouter provider."""

    def setup_method(self):
        """Set up test fixtures."""
        self.provider = OpenRouterClient()

    def test_initialization_requires_api_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="OPENROUTER_API_KEY"):
                self.provider.initialize()

    @patch("ecobot.providers.completion.openrouter.OpenAI")
    def test_initialization_sets_headers(self, mock_openai):
        with patch.dict(os.environ, {"OPENROUTER_API_KEY": "sk-or-test"}):
            self.provider.initialize()

        kwargs = mock_openai.call_args.kwargs
        assert kwargs["base_url"] == "https://openrouter.ai/api/v1"
        assert kwargs["api_key"] == "sk-or-test"
        assert kwargs["default_headers"] == {
            "HTTP-Referer": "https://ecotravel-omega.vercel.app/",
            "X-Title": "EcoTravel Platform",
        }

    def test_complete_requires_initialization(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            list(self.provider.complete(CompletionRequest(messages=MESSAGES)))

    @patch("ecobot.providers.completion.openrouter.OpenAI")
    def test_complete_returns_single_fragment(self, mock_openai):
        mock_client = mock_openai.return_value
        mock_client.chat.completions.create.return_value = Mock(
            choices=[_choice("About two hours on the TGV.")]
        )
        self.provider.api_key = "sk-or-test"
        self.provider.initialize()

        fragments = list(self.provider.complete(CompletionRequest(messages=MESSAGES)))

        assert fragments == ["About two hours on the TGV."]
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "anthropic/claude-3.5-sonnet"
        assert kwargs["messages"] == MESSAGES
        assert kwargs["max_tokens"] == 500
        assert kwargs["temperature"] == 0.7
        assert kwargs["stream"] is False

    @patch("ecobot.providers.completion.openrouter.OpenAI")
    def test_request_model_overrides_default(self, mock_openai):
        mock_client = mock_openai.return_value
        mock_client.chat.completions.create.return_value = Mock(choices=[_choice("ok")])
        self.provider.api_key = "sk-or-test"
        self.provider.initialize()

        list(self.provider.complete(CompletionRequest(messages=MESSAGES, model="openai/gpt-4o")))

        assert mock_client.chat.completions.create.call_args.kwargs["model"] == "openai/gpt-4o"

    @patch("ecobot.providers.completion.openrouter.OpenAI")
    def test_streaming(self, mock_openai):
        mock_client = mock_openai.return_value
        mock_client.chat.completions.create.return_value = iter(
            [_chunk("About "), _chunk(None), _chunk("two hours."), _chunk(None, "stop")]
        )
        self.provider.api_key = "sk-or-test"
        self.provider.initialize()

        fragments = list(
            self.provider.complete(CompletionRequest(messages=MESSAGES, stream=True))
        )

        assert fragments == ["About ", "two hours."]

    @patch("ecobot.providers.completion.openrouter.OpenAI")
    def test_content_filter_is_blocked(self, mock_openai):
        mock_client = mock_openai.return_value
        mock_client.chat.completions.create.return_value = Mock(
            choices=[_choice("", finish_reason="content_filter")]
        )
        self.provider.api_key = "sk-or-test"
        self.provider.initialize()

        with pytest.raises(CompletionFailure) as exc_info:
            list(self.provider.complete(CompletionRequest(messages=MESSAGES)))

        assert exc_info.value.blocked is True

    @patch("ecobot.providers.completion.openrouter.OpenAI")
    def test_status_error_keeps_status(self, mock_openai):
        mock_client = mock_openai.return_value
        response = httpx.Response(429, request=httpx.Request("POST", OPENROUTER_URL))
        mock_client.chat.completions.create.side_effect = openai.RateLimitError(
            "Rate limit exceeded", response=response, body=None
        )
        self.provider.api_key = "sk-or-test"
        self.provider.initialize()

        with pytest.raises(CompletionFailure) as exc_info:
            list(self.provider.complete(CompletionRequest(messages=MESSAGES)))

        assert exc_info.value.status == 429
        assert "Rate limit exceeded" in exc_info.value.message

    @patch("ecobot.providers.completion.openrouter.OpenAI")
    def test_connection_error_is_no_response(self, mock_openai):
        mock_client = mock_openai.return_value
        mock_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", OPENROUTER_URL)
        )
        self.provider.api_key = "sk-or-test"
        self.provider.initialize()

        with pytest.raises(CompletionFailure) as exc_info:
            list(self.provider.complete(CompletionRequest(messages=MESSAGES)))

        assert exc_info.value.no_response is True
        assert exc_info.value.code == "NETWORK_ERROR"

    @patch("ecobot.providers.completion.openrouter.OpenAI")
    def test_stop_closes_client(self, mock_openai):
        self.provider.api_key = "sk-or-test"
        self.provider.initialize()
        self.provider.stop()

        mock_openai.return_value.close.assert_called_once()
        assert self.provider.get_status()["initialized"] is False


class TestGeminiClient:
    """Test cases for the Gemini provider."""

    def setup_method(self):
        """Set up test fixtures."""
        self.provider = GeminiClient()

    def test_initialization_requires_api_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="GOOGLE_API_KEY"):
                self.provider.initialize()

    @patch("ecobot.providers.completion.gemini.genai.configure")
    def test_initialization(self, mock_configure):
        with patch.dict(os.environ, {"GOOGLE_API_KEY": "test-key"}):
            self.provider.initialize()

        mock_configure.assert_called_once_with(api_key="test-key")
        assert self.provider.is_configured

    def test_complete_requires_initialization(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            list(self.provider.complete(CompletionRequest(messages=MESSAGES)))

    def test_split_messages(self):
        system_instruction, history, prompt = _split_messages(MESSAGES)

        assert system_instruction == "You are EcoBot."
        assert history == [
            {"role": "user", "parts": ["Best way to Paris?"]},
            {"role": "model", "parts": ["The train."]},
        ]
        assert prompt == "How long does it take?"

    def test_split_messages_requires_trailing_user_turn(self):
        with pytest.raises(CompletionFailure):
            _split_messages(MESSAGES[:3])

    @patch("ecobot.providers.completion.gemini.genai.GenerativeModel")
    @patch("ecobot.providers.completion.gemini.genai.configure")
    def test_complete(self, mock_configure, mock_model_class):
        chat_session = mock_model_class.return_value.start_chat.return_value
        chat_session.send_message.return_value = Mock(text="Around two hours.")
        self.provider.api_key = "test-key"
        self.provider.initialize()

        fragments = list(self.provider.complete(CompletionRequest(messages=MESSAGES)))

        assert fragments == ["Around two hours."]
        model_kwargs = mock_model_class.call_args.kwargs
        assert model_kwargs["model_name"] == "gemini-1.5-flash"
        assert model_kwargs["system_instruction"] == "You are EcoBot."
        history = mock_model_class.return_value.start_chat.call_args.kwargs["history"]
        assert len(history) == 2
        assert chat_session.send_message.call_args.args[0] == "How long does it take?"

    @patch("ecobot.providers.completion.gemini.genai.GenerativeModel")
    @patch("ecobot.providers.completion.gemini.genai.configure")
    def test_streaming(self, mock_configure, mock_model_class):
        chat_session = mock_model_class.return_value.start_chat.return_value
        chat_session.send_message.return_value = iter(
            [Mock(text="Around "), Mock(text=""), Mock(text="two hours.")]
        )
        self.provider.api_key = "test-key"
        self.provider.initialize()

        fragments = list(
            self.provider.complete(CompletionRequest(messages=MESSAGES, stream=True))
        )

        assert fragments == ["Around ", "two hours."]

    @patch("ecobot.providers.completion.gemini.genai.GenerativeModel")
    @patch("ecobot.providers.completion.gemini.genai.configure")
    def test_blocked_prompt(self, mock_configure, mock_model_class):
        chat_session = mock_model_class.return_value.start_chat.return_value
        chat_session.send_message.side_effect = genai.types.BlockedPromptException("blocked")
        self.provider.api_key = "test-key"
        self.provider.initialize()

        with pytest.raises(CompletionFailure) as exc_info:
            list(self.provider.complete(CompletionRequest(messages=MESSAGES)))

        assert exc_info.value.blocked is True

    @patch("ecobot.providers.completion.gemini.genai.GenerativeModel")
    @patch("ecobot.providers.completion.gemini.genai.configure")
    def test_api_error_keeps_status(self, mock_configure, mock_model_class):
        chat_session = mock_model_class.return_value.start_chat.return_value
        chat_session.send_message.side_effect = google_exceptions.ResourceExhausted(
            "Quota exceeded"
        )
        self.provider.api_key = "test-key"
        self.provider.initialize()

        with pytest.raises(CompletionFailure) as exc_info:
            list(self.provider.complete(CompletionRequest(messages=MESSAGES)))

        assert exc_info.value.status == 429
        assert "Quota exceeded" in exc_info.value.message

    @patch("ecobot.providers.completion.gemini.genai.GenerativeModel")
    @patch("ecobot.providers.completion.gemini.genai.configure")
    def test_filtered_candidate(self, mock_configure, mock_model_class):
        chat_session = mock_model_class.return_value.start_chat.return_value
        response = Mock()
        type(response).text = PropertyMock(side_effect=ValueError("no valid Part"))
        chat_session.send_message.return_value = response
        self.provider.api_key = "test-key"
        self.provider.initialize()

        with pytest.raises(CompletionFailure) as exc_info:
            list(self.provider.complete(CompletionRequest(messages=MESSAGES)))

        assert exc_info.value.blocked is True

    @patch("ecobot.providers.completion.gemini.genai.GenerativeModel")
    @patch("ecobot.providers.completion.gemini.genai.configure")
    def test_trimmed_history_starts_with_user_turn(self, mock_configure, mock_model_class):
        chat_session = mock_model_class.return_value.start_chat.return_value
        chat_session.send_message.return_value = Mock(text="Take the night train.")
        self.provider.api_key = "test-key"
        self.provider.initialize()

        # Nine non-persona slots: after six exchanges the oldest retained turn is a reply
        mock_client = MockCompletionClient()
        session = ConversationSession(mock_client, persona="You are EcoBot.")
        for i in range(6):
            session.send(f"question {i}")
        session.send("one more")
        messages = mock_client.requests[-1].messages
        assert messages[1]["role"] == "assistant"

        list(self.provider.complete(CompletionRequest(messages=messages)))

        history = mock_model_class.return_value.start_chat.call_args.kwargs["history"]
        assert history[0]["role"] == "user"
        assert history[-1]["role"] == "model"
        assert chat_session.send_message.call_args.args[0] == "one more"

    def test_split_messages_drops_leading_replies(self):
        _, history, prompt = _split_messages([
            {"role": "system", "content": "You are EcoBot."},
            {"role": "assistant", "content": "The train."},
            {"role": "user", "content": "And from Berlin?"},
            {"role": "assistant", "content": "Also the train."},
            {"role": "user", "content": "How long?"},
        ])

        assert [turn["role"] for turn in history] == ["user", "model"]
        assert prompt == "How long?"
