"""Gemini completion provider implementation."""

import os
from typing import Dict, Iterator, List, Optional, Tuple

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions

from .base import CompletionClient, CompletionFailure, CompletionRequest


logger = structlog.get_logger()


class GeminiClient(CompletionClient):
    """
    Gemini provider using direct API calls.

    The persona becomes the model's system instruction, earlier turns become
    the chat history and the newest user turn is the message sent.
    """

    provider_name = "gemini"

    def __init__(
        self,
        model_name: str = "gemini-1.5-flash",
        api_key: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.model_name = model_name
        self.api_key = api_key
        self.timeout = timeout
        self.is_configured = False

    def initialize(self) -> None:
        """Configure the Gemini API key."""
        logger.info("Initializing Gemini provider", model=self.model_name)

        api_key = self.api_key or os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise ValueError("GOOGLE_API_KEY environment variable not set")

        genai.configure(api_key=api_key)
        self.is_configured = True

    def complete(self, request: CompletionRequest) -> Iterator[str]:
        """Yield reply fragments from Gemini."""
        if not self.is_configured:
            raise RuntimeError("Gemini not initialized")

        system_instruction, history, prompt = _split_messages(request.messages)

        try:
            model = genai.GenerativeModel(
                model_name=request.model or self.model_name,
                system_instruction=system_instruction,
            )
            chat_session = model.start_chat(history=history)

            generation_config = genai.GenerationConfig(
                temperature=request.temperature,
                max_output_tokens=request.max_tokens,
            )

            response = chat_session.send_message(
                prompt,
                stream=request.stream,
                generation_config=generation_config,
                request_options={"timeout": self.timeout},
            )

            if request.stream:
                for chunk in response:
                    text = chunk.text if hasattr(chunk, "text") else ""
                    if text:
                        yield text
            else:
                yield response.text

        except (
            genai.types.BlockedPromptException,
            genai.types.StopCandidateException,
        ) as e:
            logger.warning("Gemini blocked the exchange", error=str(e))
            raise CompletionFailure(f"Blocked by safety settings: {e}", blocked=True) from e
        except google_exceptions.RetryError as e:
            logger.error("Gemini request gave up", error=str(e))
            raise CompletionFailure(str(e), no_response=True) from e
        except google_exceptions.GoogleAPICallError as e:
            status = e.code if isinstance(e.code, int) else None
            logger.error("Gemini API error", status=status, error=e.message)
            raise CompletionFailure(
                str(e.message), status=status, code=_grpc_code(e)
            ) from e
        except ValueError as e:
            # response.text raises when every candidate was filtered out.
            logger.warning("Gemini returned no usable candidate", error=str(e))
            raise CompletionFailure(str(e), blocked=True) from e

    def stop(self) -> None:
        logger.info("Stopping Gemini provider")
        self.is_configured = False

    def get_status(self) -> dict:
        return {
            "provider": self.provider_name,
            "model": self.model_name,
            "initialized": self.is_configured,
        }


def _split_messages(
    messages: List[Dict[str, str]],
) -> Tuple[Optional[str], List[dict], str]:
    """Turn OpenAI-style messages into (system instruction, history, prompt)."""
    system_parts = [m["content"] for m in messages if m["role"] == "system"]
    turns = [m for m in messages if m["role"] != "system"]
    if not turns or turns[-1]["role"] != "user":
        raise CompletionFailure("Gemini requests must end with a user message")

    # Chat history must open with a user turn; trimming can leave a reply first.
    prior = turns[:-1]
    while prior and prior[0]["role"] != "user":
        prior = prior[1:]

    history = [
        {
            "role": "model" if turn["role"] == "assistant" else "user",
            "parts": [turn["content"]],
        }
        for turn in prior
    ]
    system_instruction = "\n\n".join(system_parts) if system_parts else None
    return system_instruction, history, turns[-1]["content"]


def _grpc_code(error: "google_exceptions.GoogleAPICallError") -> Optional[str]:
    grpc_status = getattr(error, "grpc_status_code", None)
    return grpc_status.name if grpc_status is not None else None
