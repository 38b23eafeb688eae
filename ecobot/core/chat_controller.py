"""
Headless chat widget: display transcript, typed and spoken input, spoken
replies.
"""

import threading
from typing import Callable, List, Optional

import structlog

from ..chat.errors import ChatError, ErrorCategory, UnsupportedPlatformError
from ..chat.messages import Message
from ..chat.session import ConversationSession
from ..config.settings import DEFAULT_GREETING
from ..voice.controller import VoiceController


logger = structlog.get_logger()

CLEARED_MESSAGE = "Chat cleared! How can I help you with your eco-travel plans?"
APOLOGY = "I apologize, but I'm having trouble responding right now. "
SPOKEN_APOLOGY = APOLOGY + "Please try again."


def error_display_text(error: ChatError) -> str:
    """Chat bubble text for a failed reply."""
    if error.category is ErrorCategory.SERVICE_UNAVAILABLE:
        return "The AI service is temporarily busy. Please wait a moment and try again!"
    if error.category is ErrorCategory.RATE_LIMITED:
        return "API usage limit reached. Please try again in a few minutes."
    if error.category is ErrorCategory.NETWORK_ERROR:
        return "Network connection issue. Please check your internet and try again."
    return f"{APOLOGY}Error: {error}"


class ChatController:
    """
    Glue between the conversation session, the voice controller and
    whatever renders the transcript.

    ``messages`` is the display transcript, which is separate from the
    session history: it starts with the greeting and keeps error bubbles
    that never reach the provider.
    """

    def __init__(
        self,
        session: ConversationSession,
        voice: Optional[VoiceController] = None,
        greeting: str = DEFAULT_GREETING,
        cleared_message: str = CLEARED_MESSAGE,
        on_message: Optional[Callable[[Message], None]] = None,
        on_notice: Optional[Callable[[str], None]] = None,
    ):
        self.session = session
        self.voice = voice or VoiceController(voice_enabled=False)
        self.greeting = greeting
        self.cleared_message = cleared_message
        self.on_message = on_message
        self.on_notice = on_notice

        self.voice.on_transcript = self._on_transcript
        self.voice.on_error = self._notify

        self.messages: List[Message] = []
        self.notice: Optional[str] = None
        self._submit_lock = threading.Lock()
        self._append(Message.assistant(greeting))

    @property
    def is_loading(self) -> bool:
        return self._submit_lock.locked()

    def submit(self, text: str) -> Optional[Message]:
        """
        Send typed or recognized text and return the reply bubble.

        Returns None when the input is ignored: blank text, a reply still
        loading or the microphone still listening.
        """
        if text is None or not text.strip():
            return None
        if self.voice.is_listening:
            logger.debug("Ignoring input while listening")
            return None
        if not self._submit_lock.acquire(blocking=False):
            logger.debug("Ignoring input while a reply is loading")
            return None

        try:
            self._append(Message.user(text.strip()))
            try:
                reply = self.session.send(text)
            except ChatError as e:
                logger.warning("Chat reply failed", category=e.category.value, detail=e.detail)
                bubble = self._append(Message.assistant(error_display_text(e)))
                self.voice.speak(SPOKEN_APOLOGY)
                return bubble
        finally:
            self._submit_lock.release()

        bubble = self._append(Message.assistant(reply))
        self.voice.speak(reply)
        return bubble

    def toggle_listening(self) -> bool:
        """Start or stop the microphone; returns whether it is now listening."""
        if self.voice.is_listening:
            self.voice.stop_listening()
            return False

        try:
            self.voice.start_listening()
        except UnsupportedPlatformError as e:
            self._notify(str(e))
            return False
        return self.voice.is_listening

    def toggle_voice(self) -> bool:
        """Stop speech in progress, otherwise flip voice output. Returns the voice flag."""
        if self.voice.is_speaking:
            self.voice.stop_speaking()
        else:
            self.voice.set_voice_enabled(not self.voice.voice_enabled)
        return self.voice.voice_enabled

    def clear(self) -> None:
        """Reset the transcript and the conversation."""
        self.messages = []
        self._append(Message.assistant(self.cleared_message))
        self.session.reset()
        logger.info("Chat cleared")

    def close(self) -> None:
        self.voice.close()

    def get_status(self) -> dict:
        return {
            "loading": self.is_loading,
            "display_messages": len(self.messages),
            "notice": self.notice,
            "session": self.session.get_status(),
            "voice": self.voice.get_status(),
        }

    def _append(self, message: Message) -> Message:
        self.messages.append(message)
        if self.on_message:
            self.on_message(message)
        return message

    def _on_transcript(self, transcript: str) -> None:
        logger.info("Submitting recognized speech", transcript_length=len(transcript))
        self.submit(transcript)

    def _notify(self, advisory: str) -> None:
        self.notice = advisory
        if self.on_notice:
            self.on_notice(advisory)
