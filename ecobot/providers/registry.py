"""Provider registry for dynamic provider loading."""

from typing import Any, Callable, Dict, Optional, Type

import structlog

from .completion.base import CompletionClient
from .speech.base import SpeechCapabilities, SpeechRecognizer, SpeechSynthesizer


logger = structlog.get_logger()


class ProviderRegistry:
    """Registry for managing provider implementations."""

    def __init__(self):
        self._completion_providers: Dict[str, Type[CompletionClient]] = {}
        self._recognizers: Dict[str, Type[SpeechRecognizer]] = {}
        self._synthesizers: Dict[str, Type[SpeechSynthesizer]] = {}
        self._provider_configs: Dict[str, Callable[[], Dict[str, Any]]] = {}

    def register_completion_provider(
        self,
        name: str,
        provider_class: Type[CompletionClient],
        config_getter: Callable[[], Dict[str, Any]] = None,
    ) -> None:
        """Register a completion provider."""
        self._completion_providers[name] = provider_class
        if config_getter:
            self._provider_configs[f"completion:{name}"] = config_getter
        logger.debug(
            "Registered completion provider",
            name=name,
            class_name=provider_class.__name__,
        )

    def register_speech_recognizer(
        self,
        name: str,
        provider_class: Type[SpeechRecognizer],
        config_getter: Callable[[], Dict[str, Any]] = None,
    ) -> None:
        """Register a speech recognizer."""
        self._recognizers[name] = provider_class
        if config_getter:
            self._provider_configs[f"recognizer:{name}"] = config_getter
        logger.debug(
            "Registered speech recognizer",
            name=name,
            class_name=provider_class.__name__,
        )

    def register_speech_synthesizer(
        self,
        name: str,
        provider_class: Type[SpeechSynthesizer],
        config_getter: Callable[[], Dict[str, Any]] = None,
    ) -> None:
        """Register a speech synthesizer."""
        self._synthesizers[name] = provider_class
        if config_getter:
            self._provider_configs[f"synthesizer:{name}"] = config_getter
        logger.debug(
            "Registered speech synthesizer",
            name=name,
            class_name=provider_class.__name__,
        )

    def _build(self, kind: str, providers: Dict[str, type], name: str, kwargs: dict):
        if name not in providers:
            raise ValueError(f"Unknown {kind} provider: {name}")

        config_key = f"{kind}:{name}"
        if config_key in self._provider_configs:
            # Explicit keyword arguments win over configured values.
            config = self._provider_configs[config_key]()
            config.update(kwargs)
            kwargs = config

        return providers[name](**kwargs)

    def get_completion_provider(self, name: str, **kwargs) -> CompletionClient:
        """Get a completion provider instance."""
        return self._build("completion", self._completion_providers, name, kwargs)

    def get_speech_recognizer(self, name: str, **kwargs) -> SpeechRecognizer:
        """Get a speech recognizer instance."""
        return self._build("recognizer", self._recognizers, name, kwargs)

    def get_speech_synthesizer(self, name: str, **kwargs) -> SpeechSynthesizer:
        """Get a speech synthesizer instance."""
        return self._build("synthesizer", self._synthesizers, name, kwargs)

    def list_completion_providers(self) -> list[str]:
        return list(self._completion_providers.keys())

    def list_speech_recognizers(self) -> list[str]:
        return list(self._recognizers.keys())

    def list_speech_synthesizers(self) -> list[str]:
        return list(self._synthesizers.keys())

    def resolve_speech_capabilities(
        self,
        recognizer: Optional[str] = None,
        synthesizer: Optional[str] = None,
    ) -> SpeechCapabilities:
        """
        Instantiate the named speech providers and keep the ones this
        platform supports. A name of ``None`` leaves that capability out.
        """
        return SpeechCapabilities.resolve(
            recognizer=self.get_speech_recognizer(recognizer) if recognizer else None,
            synthesizer=self.get_speech_synthesizer(synthesizer) if synthesizer else None,
        )

    def clear(self) -> None:
        """Clear all registered providers."""
        self._completion_providers.clear()
        self._recognizers.clear()
        self._synthesizers.clear()
        self._provider_configs.clear()


# Global registry instance
registry = ProviderRegistry()
