"""WhisperKit speech recognizer with sounddevice capture."""

import os
import queue
import shutil
import subprocess
import tempfile
import threading
import time
from typing import List, Optional

import numpy as np
import soundfile as sf
import structlog

from .base import (
    ERROR_AUDIO_CAPTURE,
    ERROR_NO_SPEECH,
    ErrorCallback,
    EventCallback,
    ResultCallback,
    SpeechRecognizer,
)


logger = structlog.get_logger()

ERROR_TRANSCRIPTION = "transcription-failed"


class WhisperKitRecognizer(SpeechRecognizer):
    """
    Captures a single utterance from the default microphone and transcribes
    it with the WhisperKit CLI.

    Capture ends after ``silence_duration_ms`` of quiet following speech,
    after ``no_speech_timeout`` seconds without any speech, after
    ``max_duration`` seconds, or on ``stop()``/``abort()``.
    """

    def __init__(
        self,
        model: str = "large-v3_turbo",
        compute_units: str = "cpuAndNeuralEngine",
        whisperkit_path: str = "/opt/homebrew/bin/whisperkit-cli",
        sample_rate: int = 16000,
        channels: int = 1,
        block_duration: float = 0.1,
        speech_threshold: float = 0.02,
        silence_duration_ms: int = 800,
        no_speech_timeout: float = 5.0,
        max_duration: float = 15.0,
        transcribe_timeout: float = 30.0,
    ):
        self.model = model
        self.compute_units = compute_units
        self.whisperkit_path = whisperkit_path
        self.sample_rate = sample_rate
        self.channels = channels
        self.block_size = int(sample_rate * block_duration)
        self.speech_threshold = speech_threshold
        self.silence_duration_ms = silence_duration_ms
        self.no_speech_timeout = no_speech_timeout
        self.max_duration = max_duration
        self.transcribe_timeout = transcribe_timeout

        self.capture_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._abort_event = threading.Event()

    def is_available(self) -> bool:
        if not (os.path.exists(self.whisperkit_path) or shutil.which(self.whisperkit_path)):
            logger.info("WhisperKit CLI not found", path=self.whisperkit_path)
            return False
        try:
            import sounddevice as sd

            device = sd.query_devices(kind="input")
        except Exception as e:
            logger.info("No audio input device", error=str(e))
            return False
        logger.info("Audio input device", name=device["name"])
        return True

    def start(
        self,
        on_result: ResultCallback,
        on_error: ErrorCallback,
        on_end: EventCallback,
    ) -> None:
        if self.capture_thread and self.capture_thread.is_alive():
            raise RuntimeError("Recognition already in progress")

        self._stop_event = threading.Event()
        self._abort_event = threading.Event()
        self.capture_thread = threading.Thread(
            target=self._capture_worker,
            args=(self._stop_event, self._abort_event, on_result, on_error, on_end),
            daemon=True,
            name="STT-Capture",
        )
        self.capture_thread.start()

    def stop(self) -> None:
        self._stop_event.set()

    def abort(self) -> None:
        self._abort_event.set()
        self._stop_event.set()

    def _capture_worker(
        self,
        stop_event: threading.Event,
        abort_event: threading.Event,
        on_result: ResultCallback,
        on_error: ErrorCallback,
        on_end: EventCallback,
    ) -> None:
        try:
            try:
                blocks, heard_speech = self._record(stop_event)
            except Exception as e:
                logger.error("Audio capture failed", error=str(e))
                on_error(ERROR_AUDIO_CAPTURE)
                return

            if abort_event.is_set():
                logger.debug("Recognition aborted")
                return
            if not heard_speech:
                on_error(ERROR_NO_SPEECH)
                return

            try:
                transcript = self.transcribe(np.concatenate(blocks))
            except Exception as e:
                logger.error("Transcription failed", error=str(e))
                on_error(ERROR_TRANSCRIPTION)
                return

            if abort_event.is_set():
                return
            if transcript:
                on_result(transcript)
            else:
                on_error(ERROR_NO_SPEECH)
        finally:
            on_end()

    def _record(self, stop_event: threading.Event):
        # PortAudio is loaded on import.
        import sounddevice as sd

        audio_queue: queue.Queue = queue.Queue()

        def audio_callback(indata, frames, time_info, status):
            if status:
                logger.warning("Audio callback status", status=str(status))
            audio_queue.put(indata.copy())

        blocks: List[np.ndarray] = []
        heard_speech = False
        started = time.time()
        last_voice_time = started

        with sd.InputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype=np.float32,
            blocksize=self.block_size,
            callback=audio_callback,
        ):
            while not stop_event.is_set():
                now = time.time()
                if now - started >= self.max_duration:
                    break
                if not heard_speech and now - started >= self.no_speech_timeout:
                    break
                if heard_speech and (now - last_voice_time) * 1000 >= self.silence_duration_ms:
                    break

                try:
                    indata = audio_queue.get(timeout=0.1)
                except queue.Empty:
                    continue

                block = np.mean(indata, axis=1) if indata.ndim > 1 else indata
                blocks.append(block)

                level = float(np.sqrt(np.mean(block.astype(np.float32) ** 2)))
                if level >= self.speech_threshold:
                    heard_speech = True
                    last_voice_time = time.time()

        logger.debug(
            "Capture finished",
            blocks=len(blocks),
            heard_speech=heard_speech,
            duration_s=round(time.time() - started, 2),
        )
        return blocks, heard_speech

    def transcribe(self, audio: np.ndarray) -> str:
        """Transcribe mono float audio with the WhisperKit CLI."""
        with tempfile.NamedTemporaryFile(suffix=".wav", delete=False) as temp_file:
            temp_filename = temp_file.name

        try:
            sf.write(temp_filename, audio, self.sample_rate)
            cmd = [
                self.whisperkit_path,
                "transcribe",
                "--audio-path",
                temp_filename,
                "--model",
                self.model,
                "--audio-encoder-compute-units",
                self.compute_units,
                "--text-decoder-compute-units",
                self.compute_units,
            ]
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.transcribe_timeout,
            )
            if result.returncode != 0:
                raise RuntimeError(
                    f"WhisperKit failed with code {result.returncode}: {result.stderr}"
                )

            lines = [line.strip() for line in result.stdout.splitlines()]
            return " ".join(line for line in lines if line)
        finally:
            try:
                os.unlink(temp_filename)
            except OSError:
                pass

    def get_status(self) -> dict:
        return {
            "provider": "whisperkit",
            "model": self.model,
            "whisperkit_path": self.whisperkit_path,
            "capturing": self.capture_thread is not None and self.capture_thread.is_alive(),
        }
