"""One-shot question command."""

import click
import json
import sys
import time
from typing import Optional
import structlog

from ..chat.errors import ChatError
from ..chat.messages import Role
from ..chat.session import ConversationSession
from ..config.settings import settings, COMPLETION_PROVIDERS
from .common import build_completion_client, configure_logging

logger = structlog.get_logger()


@click.command()
@click.option(
    "--input", "-i", help="Question for EcoBot (if not provided, reads from stdin)"
)
@click.option(
    "--provider",
    "-p",
    type=click.Choice(COMPLETION_PROVIDERS),
    help="Completion provider to use (default: AI_PROVIDER setting)",
)
@click.option("--model", "-m", help="Model to use (provider-specific)")
@click.option("--system", "-s", help="Persona to use instead of the EcoBot default")
@click.option(
    "--context",
    "-c",
    type=click.Path(exists=True),
    help="Path to conversation context JSON file",
)
@click.option("--max-history", type=int, help="Messages kept in the conversation")
@click.option(
    "--json", "json_output", is_flag=True, help="Output response as JSON with metadata"
)
@click.option("--metrics", is_flag=True, help="Include latency metrics in output")
@click.option(
    "--streaming/--no-streaming", default=None, help="Request a streamed completion"
)
@click.option("--mock", is_flag=True, help="Use canned replies (no API calls)")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def ask(
    input: Optional[str],
    provider: Optional[str],
    model: Optional[str],
    system: Optional[str],
    context: Optional[str],
    max_history: Optional[int],
    json_output: bool,
    metrics: bool,
    streaming: Optional[bool],
    mock: bool,
    debug: bool,
):
    """
    Ask EcoBot a single question.

    Examples:
    \b
        ecobot ask --input "Is the train greener than flying to Paris?"
        echo "Eco hotels in Lisbon?" | ecobot ask --provider gemini
        ecobot ask --input "And in Porto?" --context previous.json --json
    """
    configure_logging(debug, quiet=json_output)

    provider = provider or settings.ai_provider
    streaming = settings.chat.streaming if streaming is None else streaming

    # Get input text
    if input:
        user_input = input
    else:
        try:
            user_input = sys.stdin.read().strip()
        except KeyboardInterrupt:
            click.echo("\nInterrupted", err=True)
            sys.exit(1)
        if not user_input:
            click.echo("Error: No input provided", err=True)
            sys.exit(1)

    # Load conversation context if provided
    conversation_history = []
    if context:
        try:
            with open(context, "r") as f:
                conversation_history = json.load(f).get("history", [])
            logger.info("Loaded conversation context", messages=len(conversation_history))
        except (OSError, ValueError, AttributeError) as e:
            click.echo(f"Error loading context file: {e}", err=True)
            sys.exit(1)

    try:
        client = build_completion_client(provider, model=model, mock=mock)
    except Exception as e:
        logger.error("Failed to initialize completion provider", error=str(e))
        click.echo(f"Error initializing {provider}: {e}", err=True)
        sys.exit(1)

    try:
        session = ConversationSession(
            client,
            persona=system or settings.system_prompts.persona,
            max_history=max_history or settings.chat.max_history,
            model=model,
            max_tokens=settings.chat.max_tokens,
            temperature=settings.chat.temperature,
            stream=streaming,
            timeout=settings.timeouts.ai_response_timeout,
        )
        session.load_turns(conversation_history)

        start_time = time.time()
        reply = session.send(user_input)
        total_latency_ms = (time.time() - start_time) * 1000

        if json_output:
            output_data = {
                "response": reply,
                "provider": client.provider_name,
                "model": model,
                "input": user_input,
                "conversation_history": [
                    message.to_payload()
                    for message in session.history()
                    if message.role is not Role.SYSTEM
                ],
            }
            if metrics:
                output_data["metadata"] = {
                    "total_latency_ms": round(total_latency_ms, 2),
                    "response_length": len(reply),
                    "history_length": len(session.history()),
                }
            click.echo(json.dumps(output_data, indent=2))
        else:
            click.echo(reply)
            if metrics:
                click.echo("\n--- Metrics ---", err=True)
                click.echo(f"Provider: {client.provider_name}", err=True)
                if model:
                    click.echo(f"Model: {model}", err=True)
                click.echo(f"Total latency: {total_latency_ms:.2f}ms", err=True)
                click.echo(f"Response length: {len(reply)} chars", err=True)

    except KeyboardInterrupt:
        click.echo("\nInterrupted", err=True)
        sys.exit(1)
    except (ChatError, ValueError, KeyError) as e:
        logger.error("Error during chat", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        try:
            client.stop()
        except Exception as e:
            logger.warning("Error stopping completion provider", error=str(e))
