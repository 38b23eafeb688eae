"""
Voice input/output state machine.

Owns the ``idle / listening / speaking`` state over the injected speech
capabilities. Capability callbacks arrive on provider threads; every
operation carries a token and callbacks from an operation that is no longer
current are ignored.
"""

import threading
from enum import Enum
from typing import Callable, Dict, Optional

import structlog

from ..chat.errors import UnsupportedPlatformError
from ..providers.speech.base import (
    ERROR_ABORTED,
    ERROR_NETWORK,
    ERROR_NO_SPEECH,
    ERROR_NOT_ALLOWED,
    ERROR_SERVICE_NOT_ALLOWED,
    SpeechCapabilities,
    Utterance,
)


logger = structlog.get_logger()


class VoiceState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    SPEAKING = "speaking"


PERMISSION_ADVISORY = "Voice recognition failed. Please allow microphone access."
NO_SPEECH_ADVISORY = "Voice recognition failed. No speech detected. Please try again."
NETWORK_ADVISORY = "Voice recognition failed. Network error. Check your connection."
GENERIC_ADVISORY = "Voice recognition failed. Please try again."

RECOGNITION_ADVISORIES: Dict[str, str] = {
    ERROR_NOT_ALLOWED: PERMISSION_ADVISORY,
    ERROR_SERVICE_NOT_ALLOWED: PERMISSION_ADVISORY,
    ERROR_NO_SPEECH: NO_SPEECH_ADVISORY,
    ERROR_NETWORK: NETWORK_ADVISORY,
}


def recognition_advisory(error_code: str) -> str:
    """User-facing advisory for a recognizer error code."""
    return RECOGNITION_ADVISORIES.get(error_code, GENERIC_ADVISORY)


class VoiceController:
    """
    Coordinates speech recognition and speech synthesis.

    Listening and speaking are mutually exclusive. Starting to listen cancels
    playback; speaking while listening is refused. Errors are reported
    through ``on_error`` as advisory text; the only exception that escapes is
    ``UnsupportedPlatformError`` from ``start_listening()``.
    """

    def __init__(
        self,
        capabilities: Optional[SpeechCapabilities] = None,
        voice_enabled: bool = True,
        language: str = "en-US",
        rate: float = 0.9,
        pitch: float = 1.0,
        volume: float = 0.8,
        voice: Optional[str] = None,
        on_transcript: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_state_change: Optional[Callable[["VoiceState"], None]] = None,
    ):
        capabilities = capabilities or SpeechCapabilities.none()
        self.recognizer = capabilities.recognizer
        self.synthesizer = capabilities.synthesizer
        self.recognition_supported = self.recognizer is not None
        self.synthesis_supported = self.synthesizer is not None

        self.voice_enabled = voice_enabled
        self.language = language
        self.rate = rate
        self.pitch = pitch
        self.volume = volume
        self.voice = voice

        self.on_transcript = on_transcript
        self.on_error = on_error
        self.on_state_change = on_state_change

        self._state = VoiceState.IDLE
        self._token = 0
        self._lock = threading.RLock()

    @property
    def state(self) -> VoiceState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is VoiceState.LISTENING

    @property
    def is_speaking(self) -> bool:
        return self._state is VoiceState.SPEAKING

    def start_listening(self) -> bool:
        """
        Begin capturing one utterance.

        Returns False if already listening.

        Raises:
            UnsupportedPlatformError: no speech recognizer on this platform
        """
        if not self.recognition_supported:
            raise UnsupportedPlatformError("no speech recognizer available")

        with self._lock:
            if self._state is VoiceState.LISTENING:
                logger.debug("Already listening")
                return False
            was_speaking = self._state is VoiceState.SPEAKING
            token = self._begin(VoiceState.LISTENING)

        if was_speaking:
            self._cancel_playback()
        self._notify_state(VoiceState.LISTENING)
        logger.info("Started listening", language=self.language)

        try:
            self.recognizer.start(
                on_result=lambda text: self._on_recognition_result(token, text),
                on_error=lambda code: self._on_recognition_error(token, code),
                on_end=lambda: self._on_recognition_end(token),
            )
        except Exception as e:
            logger.error("Failed to start speech recognition", error=str(e))
            if self._finish(token):
                self._notify_state(VoiceState.IDLE)
                self._emit(self.on_error, GENERIC_ADVISORY)
            return False
        return True

    def stop_listening(self) -> bool:
        """Abort capture; a transcript arriving later is dropped."""
        with self._lock:
            if self._state is not VoiceState.LISTENING:
                return False
            self._begin(VoiceState.IDLE)

        try:
            self.recognizer.abort()
        except Exception as e:
            logger.warning("Error aborting speech recognition", error=str(e))

        self._notify_state(VoiceState.IDLE)
        logger.info("Stopped listening")
        return True

    def speak(self, text: str) -> bool:
        """
        Speak ``text`` if voice output is on.

        Returns False without doing anything when voice output is disabled,
        synthesis is unsupported, the text is blank or the controller is
        listening.
        """
        if not self.voice_enabled or not self.synthesis_supported:
            return False
        if text is None or not text.strip():
            return False

        with self._lock:
            if self._state is VoiceState.LISTENING:
                logger.debug("Not speaking while listening")
                return False
            was_speaking = self._state is VoiceState.SPEAKING
            token = self._begin(VoiceState.SPEAKING)

        if was_speaking:
            self._cancel_playback()
        self._notify_state(VoiceState.SPEAKING)

        utterance = Utterance(
            text=text.strip(),
            rate=self.rate,
            pitch=self.pitch,
            volume=self.volume,
            voice=self.voice,
            language=self.language,
        )
        try:
            self.synthesizer.speak(
                utterance,
                on_start=lambda: logger.debug("Speech started", text_length=len(utterance.text)),
                on_end=lambda: self._on_speech_end(token),
                on_error=lambda error: self._on_speech_error(token, error),
            )
        except Exception as e:
            logger.error("Failed to start speech synthesis", error=str(e))
            if self._finish(token):
                self._notify_state(VoiceState.IDLE)
            return False
        return True

    def stop_speaking(self) -> bool:
        """Cancel playback in progress."""
        with self._lock:
            if self._state is not VoiceState.SPEAKING:
                return False
            self._begin(VoiceState.IDLE)

        self._cancel_playback()
        self._notify_state(VoiceState.IDLE)
        logger.info("Stopped speaking")
        return True

    def set_voice_enabled(self, enabled: bool) -> None:
        """Turn voice output on or off; turning it off stops playback."""
        self.voice_enabled = bool(enabled)
        if not self.voice_enabled:
            self.stop_speaking()
        logger.info("Voice output toggled", enabled=self.voice_enabled)

    def close(self) -> None:
        """Release both speech capabilities."""
        with self._lock:
            previous = self._state
            self._begin(VoiceState.IDLE)

        if self.recognizer:
            try:
                self.recognizer.close()
            except Exception as e:
                logger.warning("Error closing speech recognizer", error=str(e))
        if self.synthesizer:
            try:
                self.synthesizer.close()
            except Exception as e:
                logger.warning("Error closing speech synthesizer", error=str(e))

        if previous is not VoiceState.IDLE:
            self._notify_state(VoiceState.IDLE)
        logger.debug("Voice controller closed")

    def __enter__(self) -> "VoiceController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get_status(self) -> dict:
        return {
            "state": self._state.value,
            "voice_enabled": self.voice_enabled,
            "recognition_supported": self.recognition_supported,
            "synthesis_supported": self.synthesis_supported,
            "language": self.language,
        }

    def _begin(self, state: VoiceState) -> int:
        # Caller holds the lock.
        self._token += 1
        self._state = state
        return self._token

    def _finish(self, token: int) -> bool:
        """Return to idle if ``token`` is still the current operation."""
        with self._lock:
            if token != self._token or self._state is VoiceState.IDLE:
                return False
            self._state = VoiceState.IDLE
            return True

    def _on_recognition_result(self, token: int, text: str) -> None:
        if not self._finish(token):
            logger.debug("Ignoring stale transcript")
            return
        self._notify_state(VoiceState.IDLE)

        transcript = (text or "").strip()
        logger.info("Speech recognized", transcript_length=len(transcript))
        if transcript:
            self._emit(self.on_transcript, transcript)

    def _on_recognition_error(self, token: int, error_code: str) -> None:
        if error_code == ERROR_ABORTED:
            self._on_recognition_end(token)
            return
        if not self._finish(token):
            logger.debug("Ignoring stale recognition error", error_code=error_code)
            return
        self._notify_state(VoiceState.IDLE)

        logger.warning("Speech recognition error", error_code=error_code)
        self._emit(self.on_error, recognition_advisory(error_code))

    def _on_recognition_end(self, token: int) -> None:
        if self._finish(token):
            self._notify_state(VoiceState.IDLE)

    def _on_speech_end(self, token: int) -> None:
        if self._finish(token):
            self._notify_state(VoiceState.IDLE)

    def _on_speech_error(self, token: int, error: str) -> None:
        logger.warning("Speech synthesis error", error=error)
        if self._finish(token):
            self._notify_state(VoiceState.IDLE)

    def _cancel_playback(self) -> None:
        try:
            self.synthesizer.cancel()
        except Exception as e:
            logger.warning("Error cancelling speech playback", error=str(e))

    def _notify_state(self, state: VoiceState) -> None:
        self._emit(self.on_state_change, state)

    def _emit(self, callback: Optional[Callable], value) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception as e:
            logger.error("Voice callback failed", error=str(e))
