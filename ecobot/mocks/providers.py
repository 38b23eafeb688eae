"""
Mock provider implementations for offline runs and tests.
"""

import time
from typing import Iterable, Iterator, List, Optional

from ..providers.completion.base import CompletionClient, CompletionRequest
from ..providers.speech.base import (
    ERROR_ABORTED,
    ErrorCallback,
    EventCallback,
    ResultCallback,
    SpeechRecognizer,
    SpeechSynthesizer,
    Utterance,
)


class MockCompletionClient(CompletionClient):
    """
    Completion provider with canned EcoBot replies.

    ``failures`` is consumed one entry per call before any reply is served;
    an entry of ``None`` lets that call succeed.
    """

    provider_name = "mock"

    def __init__(
        self,
        responses: Optional[Iterable[str]] = None,
        failures: Optional[Iterable[Optional[BaseException]]] = None,
        delay: float = 0.0,
    ):
        self.responses = list(responses) if responses is not None else [
            "Trains are one of the greenest ways to travel. For trips under 1000 km they usually beat flying on total time too.",
            "Look for accommodations with a recognized eco-certification and ask about their energy and water policies.",
            "Pack light, bring a reusable bottle, and choose local, seasonal food at your destination.",
            "Costa Rica, Slovenia and Bhutan are well known for putting conservation at the center of tourism.",
        ]
        self.failures: List[Optional[BaseException]] = list(failures or [])
        self.delay = delay
        self.requests: List[CompletionRequest] = []
        self.response_index = 0
        self.is_initialized = False

    def initialize(self) -> None:
        """Initialize mock completion provider."""
        self.is_initialized = True

    def complete(self, request: CompletionRequest) -> Iterator[str]:
        """Yield a canned reply, word by word when streaming."""
        self.requests.append(request)

        if self.failures:
            failure = self.failures.pop(0)
            if failure is not None:
                raise failure

        response = self.responses[self.response_index % len(self.responses)]
        self.response_index += 1

        if self.delay:
            time.sleep(self.delay)

        if not request.stream:
            yield response
            return

        words = response.split(" ")
        for i, word in enumerate(words):
            yield word + (" " if i < len(words) - 1 else "")

    def stop(self) -> None:
        """Stop mock completion provider."""
        self.is_initialized = False

    def get_status(self) -> dict:
        """Get mock completion provider status."""
        return {
            "provider": self.provider_name,
            "initialized": self.is_initialized,
            "requests": len(self.requests),
        }


class MockSpeechRecognizer(SpeechRecognizer):
    """
    Recognizer that replays scripted transcripts.

    With ``auto_respond`` each ``start()`` immediately delivers the next
    transcript. Otherwise the callbacks are held until ``emit_result``,
    ``emit_error`` or ``emit_end`` is called.
    """

    def __init__(
        self,
        transcripts: Optional[Iterable[str]] = None,
        available: bool = True,
        auto_respond: bool = False,
    ):
        self.transcripts = list(transcripts) if transcripts is not None else [
            "What are some eco-friendly destinations in Europe?",
            "How can I reduce my carbon footprint when flying?",
        ]
        self.available = available
        self.auto_respond = auto_respond
        self.transcript_index = 0
        self.start_count = 0
        self.stop_count = 0
        self.abort_count = 0
        self._callbacks = None

    def is_available(self) -> bool:
        return self.available

    def start(
        self,
        on_result: ResultCallback,
        on_error: ErrorCallback,
        on_end: EventCallback,
    ) -> None:
        self.start_count += 1
        self._callbacks = (on_result, on_error, on_end)
        if self.auto_respond:
            text = self.transcripts[self.transcript_index % len(self.transcripts)]
            self.transcript_index += 1
            self.emit_result(text)
            self.emit_end()

    def stop(self) -> None:
        self.stop_count += 1

    def abort(self) -> None:
        self.abort_count += 1
        if self._callbacks:
            self.emit_error(ERROR_ABORTED)
            self.emit_end()

    @property
    def is_capturing(self) -> bool:
        return self._callbacks is not None

    def emit_result(self, text: str) -> None:
        if self._callbacks:
            self._callbacks[0](text)

    def emit_error(self, code: str) -> None:
        if self._callbacks:
            self._callbacks[1](code)

    def emit_end(self) -> None:
        if self._callbacks:
            callbacks, self._callbacks = self._callbacks, None
            callbacks[2]()


class MockSpeechSynthesizer(SpeechSynthesizer):
    """
    Synthesizer that records what it was asked to say.

    With ``auto_complete`` playback ends as soon as it starts; otherwise it
    runs until ``finish()``, ``fail()`` or ``cancel()``.
    """

    def __init__(self, available: bool = True, auto_complete: bool = False):
        self.available = available
        self.auto_complete = auto_complete
        self.spoken: List[Utterance] = []
        self.cancel_count = 0
        self._callbacks = None

    def is_available(self) -> bool:
        return self.available

    def speak(
        self,
        utterance: Utterance,
        on_start: EventCallback,
        on_end: EventCallback,
        on_error: ErrorCallback,
    ) -> None:
        self.spoken.append(utterance)
        self._callbacks = (on_end, on_error)
        on_start()
        if self.auto_complete:
            self.finish()

    def cancel(self) -> None:
        self.cancel_count += 1
        # Cancelled playback still reports its end, like a browser does.
        self.finish()

    @property
    def is_playing(self) -> bool:
        return self._callbacks is not None

    def finish(self) -> None:
        if self._callbacks:
            callbacks, self._callbacks = self._callbacks, None
            callbacks[0]()

    def fail(self, error: str = "synthesis-failed") -> None:
        if self._callbacks:
            callbacks, self._callbacks = self._callbacks, None
            callbacks[1](error)
