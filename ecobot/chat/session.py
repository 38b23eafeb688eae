"""
Bounded conversation session.

Owns the ordered message list for one conversation (persona first, then
alternating user/assistant turns) and mediates every call to the completion
provider.
"""

import threading
import time
from typing import Iterable, List, Mapping, Optional, Tuple

import structlog

from .classifier import ErrorClassifier
from .errors import (
    AlreadyInProgressError,
    ChatError,
    InvalidInputError,
    NetworkError,
    UnknownChatError,
)
from .messages import Message, Role
from ..providers.completion.base import CompletionClient, CompletionRequest


logger = structlog.get_logger()

DEFAULT_MAX_HISTORY = 10


class ConversationSession:
    """
    A single chat conversation with a bounded history.

    The persona message, when configured, is always ``history()[0]`` and is
    never evicted. After every successful ``send()`` the history holds at most
    ``max_history`` entries; older non-persona entries are evicted first.
    """

    def __init__(
        self,
        client: CompletionClient,
        persona: Optional[str] = None,
        max_history: int = DEFAULT_MAX_HISTORY,
        classifier: Optional[ErrorClassifier] = None,
        model: Optional[str] = None,
        max_tokens: int = 500,
        temperature: float = 0.7,
        stream: bool = False,
        timeout: Optional[float] = 30.0,
    ):
        minimum = 2 if persona else 1
        if max_history < minimum:
            raise ValueError(
                f"max_history must be at least {minimum}, got {max_history}"
            )

        self.client = client
        self.max_history = max_history
        self.classifier = classifier or ErrorClassifier.for_provider(
            getattr(client, "provider_name", "openrouter")
        )
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.stream = stream
        self.timeout = timeout

        self._persona: Optional[Message] = Message.system(persona) if persona else None
        self._messages: List[Message] = []
        self._send_lock = threading.Lock()
        self.reset()

    @property
    def persona(self) -> Optional[Message]:
        return self._persona

    @property
    def pending(self) -> bool:
        """True while a ``send()`` is waiting on the provider."""
        return self._send_lock.locked()

    def history(self) -> Tuple[Message, ...]:
        """Read-only snapshot of the retained messages, oldest first."""
        return tuple(self._messages)

    def reset(self) -> None:
        """Discard everything except the persona."""
        self._messages = [self._persona] if self._persona else []
        logger.debug("Conversation reset", has_persona=self._persona is not None)

    def send(self, text: str) -> str:
        """
        Send a user message and return the assistant's reply.

        Raises:
            InvalidInputError: ``text`` is empty after trimming
            AlreadyInProgressError: another ``send()`` is still pending
            ChatError: the classified provider failure; the user message stays
                in history so a retry continues the conversation
        """
        if text is None or not text.strip():
            raise InvalidInputError("empty message")

        if not self._send_lock.acquire(blocking=False):
            raise AlreadyInProgressError("send() called while a request is pending")

        try:
            user_message = Message.user(text.strip())
            self._messages.append(user_message)

            request = CompletionRequest(
                messages=[message.to_payload() for message in self._messages],
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=self.stream,
            )

            logger.info(
                "Sending message",
                provider=getattr(self.client, "provider_name", None),
                history_length=len(self._messages),
                stream=self.stream,
            )
            start_time = time.time()

            try:
                reply = self._collect_reply(request, start_time)
            except ChatError as e:
                logger.warning("Completion failed", category=e.category.value)
                raise
            except Exception as e:
                error = self.classifier.classify_exception(e)
                logger.warning(
                    "Completion failed",
                    category=error.category.value,
                    error=str(e),
                )
                raise error from e

            self._messages.append(Message.assistant(reply))
            evicted = self._trim()

            logger.info(
                "Received reply",
                reply_length=len(reply),
                latency_ms=round((time.time() - start_time) * 1000, 2),
                evicted=evicted,
            )
            return reply

        finally:
            self._send_lock.release()

    def load_turns(self, turns: Iterable[Mapping[str, str]]) -> None:
        """Seed prior user/assistant turns, e.g. from a saved context file."""
        for turn in turns:
            role = Role(turn["role"])
            if role is Role.SYSTEM:
                continue
            self._messages.append(Message(role, turn["content"]))
        self._trim()

    def get_status(self) -> dict:
        return {
            "provider": getattr(self.client, "provider_name", None),
            "model": self.model,
            "pending": self.pending,
            "history_length": len(self._messages),
            "max_history": self.max_history,
        }

    def _collect_reply(self, request: CompletionRequest, start_time: float) -> str:
        fragments = []
        for fragment in self.client.complete(request):
            if self.timeout is not None and time.time() - start_time > self.timeout:
                logger.error("Completion timeout", timeout=self.timeout)
                raise NetworkError(f"Completion timeout after {self.timeout}s")
            if fragment:
                fragments.append(fragment)

        if self.timeout is not None and time.time() - start_time > self.timeout:
            raise NetworkError(f"Completion timeout after {self.timeout}s")

        reply = "".join(fragments).strip()
        if not reply:
            raise UnknownChatError("Empty response from provider")
        return reply

    def _trim(self) -> int:
        """Evict oldest non-persona entries until the bound holds."""
        overflow = len(self._messages) - self.max_history
        if overflow <= 0:
            return 0

        start = 1 if self._persona else 0
        del self._messages[start:start + overflow]
        logger.debug("Trimmed conversation history", evicted=overflow)
        return overflow
