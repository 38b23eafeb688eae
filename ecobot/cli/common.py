"""Helpers shared by the CLI commands."""

import logging
from typing import Optional

import structlog

from ..config.settings import settings
from ..mocks.providers import MockCompletionClient
from ..providers import registry
from ..providers.completion.base import CompletionClient
from ..utils.logging import setup_logging


logger = structlog.get_logger()


def configure_logging(debug: bool, quiet: bool = False) -> None:
    """Set up logging from settings; ``quiet`` keeps stdout/stderr clean."""
    if quiet and not debug:
        setup_logging(log_level="CRITICAL", log_format=settings.logging.format)
        logging.getLogger().setLevel(logging.CRITICAL)
        return

    setup_logging(
        debug=debug,
        log_file=settings.logging.file_enabled,
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        file_rotation_mb=settings.logging.file_rotation_mb,
        file_backup_count=settings.logging.file_backup_count,
    )


def build_completion_client(
    provider: str, model: Optional[str] = None, mock: bool = False
) -> CompletionClient:
    """Create and initialize a completion client."""
    if mock:
        client: CompletionClient = MockCompletionClient()
    else:
        kwargs = {"model_name": model} if model else {}
        client = registry.get_completion_provider(provider, **kwargs)

    client.initialize()
    logger.info("Completion client ready", provider=client.provider_name, model=model)
    return client
