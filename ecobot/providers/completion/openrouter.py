"""OpenRouter completion provider using the OpenAI-compatible API."""

import os
from typing import Iterator, Optional

import structlog
from openai import APIConnectionError, APIStatusError, OpenAI, OpenAIError

from .base import CompletionClient, CompletionFailure, CompletionRequest


logger = structlog.get_logger()

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterClient(CompletionClient):
    """
    Chat completions through OpenRouter (Claude by default).
    """

    provider_name = "openrouter"

    def __init__(
        self,
        model_name: str = "anthropic/claude-3.5-sonnet",
        base_url: str = OPENROUTER_BASE_URL,
        site_url: str = "https://ecotravel-omega.vercel.app/",
        site_name: str = "EcoTravel Platform",
        api_key: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.model_name = model_name
        self.base_url = base_url
        self.site_url = site_url
        self.site_name = site_name
        self.api_key = api_key
        self.timeout = timeout
        self.client: Optional[OpenAI] = None

    def initialize(self) -> None:
        """Create the OpenAI SDK client pointed at OpenRouter."""
        api_key = self.api_key or os.getenv("OPENROUTER_API_KEY")
        if not api_key:
            raise ValueError("OPENROUTER_API_KEY environment variable not set")

        logger.info(
            "Initializing OpenRouter provider",
            model=self.model_name,
            api_key_length=len(api_key),
            site_url=self.site_url,
        )

        # Retries are left to the caller.
        self.client = OpenAI(
            base_url=self.base_url,
            api_key=api_key,
            timeout=self.timeout,
            max_retries=0,
            default_headers={
                "HTTP-Referer": self.site_url,
                "X-Title": self.site_name,
            },
        )

    def complete(self, request: CompletionRequest) -> Iterator[str]:
        """Yield reply fragments from OpenRouter."""
        if not self.client:
            raise RuntimeError("OpenRouter not initialized")

        model = request.model or self.model_name
        try:
            if request.stream:
                stream = self.client.chat.completions.create(
                    model=model,
                    messages=request.messages,
                    max_tokens=request.max_tokens,
                    temperature=request.temperature,
                    stream=True,
                )
                for chunk in stream:
                    if not chunk.choices:
                        continue
                    choice = chunk.choices[0]
                    if choice.finish_reason == "content_filter":
                        raise CompletionFailure(
                            "Response stopped by content_filter", blocked=True
                        )
                    text = choice.delta.content if choice.delta else None
                    if text:
                        yield text
            else:
                completion = self.client.chat.completions.create(
                    model=model,
                    messages=request.messages,
                    max_tokens=request.max_tokens,
                    temperature=request.temperature,
                    stream=False,
                )
                if not completion.choices:
                    raise CompletionFailure("Empty response from OpenRouter API")

                choice = completion.choices[0]
                if choice.finish_reason == "content_filter":
                    raise CompletionFailure(
                        "Response stopped by content_filter", blocked=True
                    )
                yield choice.message.content or ""

        except APIStatusError as e:
            logger.error(
                "OpenRouter API error", status=e.status_code, error=str(e.message)
            )
            raise CompletionFailure(
                str(e.message), status=e.status_code, code=_error_code(e)
            ) from e
        except APIConnectionError as e:
            # Covers APITimeoutError as well.
            logger.error("OpenRouter connection error", error=str(e))
            raise CompletionFailure(
                f"Network error: {e}", code="NETWORK_ERROR", no_response=True
            ) from e
        except OpenAIError as e:
            logger.error("OpenRouter client error", error=str(e))
            raise CompletionFailure(str(e)) from e

    def stop(self) -> None:
        """Close the HTTP client."""
        logger.info("Stopping OpenRouter provider")
        if self.client:
            self.client.close()
            self.client = None

    def get_status(self) -> dict:
        return {
            "provider": self.provider_name,
            "model": self.model_name,
            "base_url": self.base_url,
            "initialized": self.client is not None,
        }


def _error_code(error: APIStatusError) -> Optional[str]:
    code = getattr(error, "code", None)
    return str(code) if code is not None else None
