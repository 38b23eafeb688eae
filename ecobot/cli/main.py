"""CLI entry point for EcoBot."""

import click
import json
import sys
from typing import Optional
import structlog

from ..chat.errors import InvalidInputError
from ..chat.messages import Message, Role
from ..chat.session import ConversationSession
from ..config.settings import settings, COMPLETION_PROVIDERS
from ..core.chat_controller import ChatController
from ..footprint import TRANSPORT_MODES, estimate_footprint
from ..mocks.providers import MockSpeechRecognizer, MockSpeechSynthesizer
from ..providers import registry
from ..providers.speech.base import SpeechCapabilities
from ..voice.controller import VoiceController
from .ask import ask
from .common import build_completion_client, configure_logging


logger = structlog.get_logger()


CHAT_COMMANDS = {
    "/listen": "Speak your next message",
    "/voice": "Stop speaking, or turn voice replies on/off",
    "/history": "Show the conversation sent to the model",
    "/reset": "Clear the conversation",
    "/quit": "Leave the chat",
}


def _resolve_capabilities(mock: bool) -> SpeechCapabilities:
    if mock:
        return SpeechCapabilities.resolve(
            recognizer=MockSpeechRecognizer(auto_respond=True),
            synthesizer=MockSpeechSynthesizer(auto_complete=True),
        )
    try:
        return registry.resolve_speech_capabilities(
            recognizer=settings.recognizer_provider,
            synthesizer=settings.synthesizer_provider,
        )
    except ValueError as e:
        logger.warning("Speech providers unavailable", error=str(e))
        return SpeechCapabilities.none()


def _render_message(message: Message) -> None:
    if message.role is Role.ASSISTANT:
        click.echo(click.style("EcoBot: ", fg="green", bold=True) + message.content)
    elif message.role is Role.USER:
        logger.debug("User message", length=len(message.content))


def _render_notice(advisory: str) -> None:
    click.echo(click.style(advisory, fg="yellow"), err=True)


@click.command()
@click.option(
    "--provider",
    "-p",
    type=click.Choice(COMPLETION_PROVIDERS),
    help="Completion provider to use (default: AI_PROVIDER setting)",
)
@click.option("--model", "-m", help="Model to use (provider-specific)")
@click.option("--voice/--no-voice", default=None, help="Speak EcoBot's replies")
@click.option("--mock", is_flag=True, help="Run in mock mode (no API calls)")
@click.option("--max-history", type=int, help="Messages kept in the conversation")
@click.option(
    "--config", type=click.Path(exists=True), help="Path to configuration file"
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
def chat(
    provider: Optional[str],
    model: Optional[str],
    voice: Optional[bool],
    mock: bool,
    max_history: Optional[int],
    config: Optional[str],
    debug: bool,
):
    """
    Chat with EcoBot, your sustainable travel assistant.

    Type a message and press Enter. Commands: /listen, /voice, /history,
    /reset, /quit.
    """
    if config:
        settings.load_from_file(config)
    configure_logging(debug)

    provider = provider or settings.ai_provider
    voice_enabled = settings.voice.enabled if voice is None else voice

    try:
        client = build_completion_client(provider, model=model, mock=mock)
        session = ConversationSession(
            client,
            persona=settings.system_prompts.persona,
            max_history=max_history or settings.chat.max_history,
            model=model,
            max_tokens=settings.chat.max_tokens,
            temperature=settings.chat.temperature,
            stream=settings.chat.streaming,
            timeout=settings.timeouts.ai_response_timeout,
        )
    except Exception as e:
        logger.error("Failed to start chat", error=str(e))
        click.echo(f"Error initializing {provider}: {e}", err=True)
        sys.exit(1)

    voice_controller = VoiceController(
        _resolve_capabilities(mock),
        voice_enabled=voice_enabled,
        language=settings.voice.language,
        rate=settings.voice.rate,
        pitch=settings.voice.pitch,
        volume=settings.voice.volume,
    )

    if mock:
        click.echo(
            click.style("Running in MOCK mode - no API calls will be made", fg="yellow")
        )
    click.echo(f"Provider: {client.provider_name}")
    click.echo("Commands: " + ", ".join(CHAT_COMMANDS) + "\n")

    controller = ChatController(
        session,
        voice=voice_controller,
        greeting=settings.system_prompts.greeting,
        cleared_message=settings.system_prompts.cleared,
        on_message=_render_message,
        on_notice=_render_notice,
    )

    try:
        while True:
            try:
                text = click.prompt(
                    click.style("You", fg="cyan", bold=True),
                    default="",
                    show_default=False,
                    prompt_suffix="> ",
                )
            except click.Abort:
                break

            command = text.strip().lower()
            if not command:
                continue
            if command in ("/quit", "/exit"):
                break
            if command == "/help":
                for name, description in CHAT_COMMANDS.items():
                    click.echo(f"  {name:<10} {description}")
            elif command == "/reset":
                controller.clear()
            elif command == "/history":
                for message in session.history():
                    click.echo(f"[{message.role.value}] {message.content}")
            elif command == "/listen":
                if controller.toggle_listening():
                    click.echo("Listening... (/listen again to stop)")
            elif command == "/voice":
                enabled = controller.toggle_voice()
                click.echo(f"Voice replies {'on' if enabled else 'off'}")
            else:
                controller.submit(text)

    finally:
        controller.close()
        try:
            client.stop()
        except Exception as e:
            logger.warning("Error stopping completion provider", error=str(e))

    click.echo("\nGoodbye!")


@click.command()
def providers():
    """List available providers."""
    click.echo("Available Providers")
    click.echo("-" * 50)

    completion_providers = registry.list_completion_providers()
    click.echo(f"\nCompletion Providers ({len(completion_providers)})")
    for provider in completion_providers:
        marker = " (default)" if provider == settings.ai_provider else ""
        click.echo(f"  - {provider}{marker}")

    recognizers = registry.list_speech_recognizers()
    click.echo(f"\nSpeech Recognizers ({len(recognizers)})")
    for provider in recognizers:
        click.echo(f"  - {provider}")

    synthesizers = registry.list_speech_synthesizers()
    click.echo(f"\nSpeech Synthesizers ({len(synthesizers)})")
    for provider in synthesizers:
        click.echo(f"  - {provider}")

    click.echo("\nUse --provider to select a completion provider.")
    click.echo("Example: ecobot chat --provider gemini")


@click.command()
@click.option(
    "--mode",
    type=click.Choice(sorted(TRANSPORT_MODES)),
    required=True,
    help="How you travel",
)
@click.option("--distance", type=float, required=True, help="Trip distance in km")
@click.option("--json", "json_output", is_flag=True, help="Output estimate as JSON")
def footprint(mode: str, distance: float, json_output: bool):
    """Estimate the carbon footprint of a trip."""
    try:
        estimate = estimate_footprint(mode, distance)
    except InvalidInputError as e:
        click.echo(f"Error: {e.detail or e}", err=True)
        sys.exit(1)

    if json_output:
        click.echo(json.dumps(estimate.to_dict(), indent=2))
        return

    click.echo(f"{estimate.mode}: {estimate.distance_km:g} km")
    click.echo(f"Emissions: {estimate.emissions_kg} kg CO2 ({estimate.level} impact)")
    click.echo(
        f"That is {estimate.annual_share_percent}% of an average "
        "annual footprint of 4,000 kg CO2."
    )
    click.echo("\nSuggestions:")
    for suggestion in estimate.suggestions:
        click.echo(f"  - {suggestion}")


# Create CLI group
cli = click.Group(help="EcoBot sustainable travel assistant.")
cli.add_command(chat)
cli.add_command(ask)
cli.add_command(providers)
cli.add_command(footprint)


if __name__ == "__main__":
    cli()
