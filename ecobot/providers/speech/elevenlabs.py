"""ElevenLabs speech synthesizer with pygame playback."""

import os
import threading
import time
from io import BytesIO
from typing import Optional

import pygame
import structlog
from elevenlabs import VoiceSettings
from elevenlabs.client import ElevenLabs

from .base import (
    ErrorCallback,
    EventCallback,
    SpeechSynthesizer,
    Utterance,
)


logger = structlog.get_logger()


class ElevenLabsSynthesizer(SpeechSynthesizer):
    """
    Speaks utterances through ElevenLabs text-to-speech.

    Each ``speak()`` runs on its own playback thread; ``cancel()`` stops the
    mixer and waits for that thread to finish.
    """

    def __init__(
        self,
        voice_id: str = "pNInz6obpgDQGcFmaJgB",  # Adam voice
        model_id: str = "eleven_flash_v2_5",
        output_format: str = "mp3_22050_32",
        stability: float = 0.5,
        similarity_boost: float = 0.8,
        style: float = 0.0,
        use_speaker_boost: bool = True,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.voice_id = voice_id
        self.model_id = model_id
        self.output_format = output_format
        self.stability = stability
        self.similarity_boost = similarity_boost
        self.style = style
        self.use_speaker_boost = use_speaker_boost
        self.api_key = api_key
        self.timeout = timeout

        self.client: Optional[ElevenLabs] = None
        self.is_playing = False
        self.playback_thread: Optional[threading.Thread] = None
        self._cancel_event: Optional[threading.Event] = None
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        if not (self.api_key or os.getenv("ELEVENLABS_API_KEY")):
            logger.info("ElevenLabs unavailable: ELEVENLABS_API_KEY not set")
            return False
        try:
            self.initialize()
        except Exception as e:
            logger.warning("ElevenLabs unavailable", error=str(e))
            return False
        return True

    def initialize(self) -> None:
        """Initialize ElevenLabs client and pygame mixer."""
        if self.client:
            return

        api_key = self.api_key or os.getenv("ELEVENLABS_API_KEY")
        if not api_key:
            raise ValueError("ELEVENLABS_API_KEY environment variable not set")

        logger.info("Initializing ElevenLabs synthesizer", voice_id=self.voice_id)
        self.client = ElevenLabs(api_key=api_key, timeout=self.timeout)

        pygame.mixer.pre_init(frequency=22050, size=-16, channels=2, buffer=1024)
        pygame.mixer.init()

    def speak(
        self,
        utterance: Utterance,
        on_start: EventCallback,
        on_end: EventCallback,
        on_error: ErrorCallback,
    ) -> None:
        if not self.client:
            raise RuntimeError("ElevenLabs not initialized")

        self.cancel()

        cancel_event = threading.Event()
        with self._lock:
            self._cancel_event = cancel_event
            self.playback_thread = threading.Thread(
                target=self._playback_worker,
                args=(utterance, cancel_event, on_start, on_end, on_error),
                daemon=True,
                name="TTS-Playback",
            )
            self.playback_thread.start()

    def _playback_worker(
        self,
        utterance: Utterance,
        cancel_event: threading.Event,
        on_start: EventCallback,
        on_end: EventCallback,
        on_error: ErrorCallback,
    ) -> None:
        try:
            audio_data = self._synthesize(utterance)
            if cancel_event.is_set():
                on_end()
                return

            pygame.mixer.music.load(BytesIO(audio_data))
            pygame.mixer.music.set_volume(utterance.volume)
            pygame.mixer.music.play()
            self.is_playing = True
            on_start()

            while pygame.mixer.music.get_busy() and not cancel_event.is_set():
                time.sleep(0.01)

            if cancel_event.is_set():
                pygame.mixer.music.stop()

            logger.debug("Audio playback completed", cancelled=cancel_event.is_set())
            on_end()

        except Exception as e:
            logger.error("Speech synthesis error", error=str(e))
            on_error(str(e))
        finally:
            self.is_playing = False

    def _synthesize(self, utterance: Utterance) -> bytes:
        logger.debug("Generating TTS audio", text_length=len(utterance.text))

        audio = self.client.text_to_speech.convert(
            voice_id=utterance.voice or self.voice_id,
            text=utterance.text,
            model_id=self.model_id,
            output_format=self.output_format,
            voice_settings=VoiceSettings(
                stability=self.stability,
                similarity_boost=self.similarity_boost,
                style=self.style,
                use_speaker_boost=self.use_speaker_boost,
                speed=utterance.rate,
            ),
        )

        if hasattr(audio, "content"):
            return audio.content  # type: ignore[attr-defined]
        if isinstance(audio, (bytes, bytearray)):
            return bytes(audio)
        # Generator of byte chunks
        return b"".join(audio)

    def cancel(self) -> None:
        """Stop current audio playback."""
        with self._lock:
            cancel_event = self._cancel_event
            thread = self.playback_thread

        if cancel_event is None or cancel_event.is_set():
            return

        logger.debug("Cancelling audio playback")
        cancel_event.set()
        if self.is_playing:
            pygame.mixer.music.stop()

        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)

    def close(self) -> None:
        """Cancel playback and shut the mixer down."""
        logger.info("Stopping ElevenLabs synthesizer")
        self.cancel()
        if self.client:
            pygame.mixer.quit()
            self.client = None

    def get_status(self) -> dict:
        return {
            "provider": "elevenlabs",
            "voice_id": self.voice_id,
            "model_id": self.model_id,
            "is_playing": self.is_playing,
            "initialized": self.client is not None,
        }
