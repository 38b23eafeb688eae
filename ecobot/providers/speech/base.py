"""Base interfaces for speech recognition and speech synthesis."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

import structlog


logger = structlog.get_logger()


# Recognition error codes, matching the browser speech API vocabulary.
ERROR_NOT_ALLOWED = "not-allowed"
ERROR_SERVICE_NOT_ALLOWED = "service-not-allowed"
ERROR_NO_SPEECH = "no-speech"
ERROR_NETWORK = "network"
ERROR_AUDIO_CAPTURE = "audio-capture"
ERROR_ABORTED = "aborted"


ResultCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]
EventCallback = Callable[[], None]


@dataclass
class Utterance:
    """Text to be spoken plus voice parameters."""

    text: str
    rate: float = 0.9
    pitch: float = 1.0
    volume: float = 0.8
    voice: Optional[str] = None
    language: str = "en-US"


class SpeechRecognizer(ABC):
    """Single-utterance speech-to-text capability."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this platform can capture and transcribe speech."""
        pass

    @abstractmethod
    def start(
        self,
        on_result: ResultCallback,
        on_error: ErrorCallback,
        on_end: EventCallback,
    ) -> None:
        """
        Begin capturing one utterance.

        ``on_result`` receives the final transcript, ``on_error`` an error
        code, and ``on_end`` fires once capture is over on every path.
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing and deliver whatever was heard."""
        pass

    @abstractmethod
    def abort(self) -> None:
        """Stop capturing and discard the utterance."""
        pass

    def close(self) -> None:
        """Release capture resources."""
        self.abort()


class SpeechSynthesizer(ABC):
    """Text-to-speech playback capability."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this platform can synthesize and play speech."""
        pass

    @abstractmethod
    def speak(
        self,
        utterance: Utterance,
        on_start: EventCallback,
        on_end: EventCallback,
        on_error: ErrorCallback,
    ) -> None:
        """Start speaking; exactly one of ``on_end``/``on_error`` fires."""
        pass

    @abstractmethod
    def cancel(self) -> None:
        """Cancel playback in progress."""
        pass

    def close(self) -> None:
        """Release playback resources."""
        self.cancel()


@dataclass
class SpeechCapabilities:
    """Speech capabilities resolved once at startup; ``None`` when absent."""

    recognizer: Optional[SpeechRecognizer] = None
    synthesizer: Optional[SpeechSynthesizer] = None

    @classmethod
    def resolve(
        cls,
        recognizer: Optional[SpeechRecognizer] = None,
        synthesizer: Optional[SpeechSynthesizer] = None,
    ) -> "SpeechCapabilities":
        """Keep only the capabilities the platform actually supports."""
        resolved = cls(
            recognizer=recognizer if _probe(recognizer) else None,
            synthesizer=synthesizer if _probe(synthesizer) else None,
        )
        logger.info(
            "Resolved speech capabilities",
            recognition=resolved.recognizer is not None,
            synthesis=resolved.synthesizer is not None,
        )
        return resolved

    @classmethod
    def none(cls) -> "SpeechCapabilities":
        return cls()


def _probe(capability) -> bool:
    if capability is None:
        return False
    try:
        return bool(capability.is_available())
    except Exception as e:
        logger.warning(
            "Speech capability probe failed",
            capability=type(capability).__name__,
            error=str(e),
        )
        return False
