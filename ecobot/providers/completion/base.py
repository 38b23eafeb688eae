"""Base interface for remote chat-completion providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional


@dataclass
class CompletionRequest:
    """One chat-completion call."""

    messages: List[Dict[str, str]]  # ordered {"role", "content"} pairs
    model: Optional[str] = None
    max_tokens: int = 500
    temperature: float = 0.7
    stream: bool = False


class CompletionFailure(Exception):
    """
    Raw provider failure, carrying whatever structure the transport exposed.

    ``status`` is the HTTP status when a response was received, ``no_response``
    marks transport-level failures (connection, timeout) and ``blocked`` marks
    provider safety rejections.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        no_response: bool = False,
        blocked: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.no_response = no_response
        self.blocked = blocked


class CompletionClient(ABC):
    """Abstract base class for completion providers."""

    provider_name: str = "base"

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the provider (credentials, SDK client)."""
        pass

    @abstractmethod
    def complete(self, request: CompletionRequest) -> Iterator[str]:
        """
        Run a completion.

        Args:
            request: The messages and generation parameters

        Yields:
            Reply text fragments in arrival order. Non-streaming providers
            yield exactly one fragment.

        Raises:
            CompletionFailure: on any provider or transport failure
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Release the provider's resources."""
        pass

    @abstractmethod
    def get_status(self) -> dict:
        """Get current status of the provider."""
        pass
