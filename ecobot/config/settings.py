"""Configuration settings for EcoBot."""

import os
from pathlib import Path
from typing import Optional, Dict, Any, Union
from dataclasses import dataclass, asdict
import json
import structlog
from dotenv import load_dotenv
import threading


logger = structlog.get_logger()


DEFAULT_PERSONA = """You are EcoBot, a helpful AI assistant specializing in sustainable travel and eco-friendly tourism.

Your expertise includes:
- Eco-friendly travel destinations and accommodations
- Carbon footprint reduction strategies for travelers
- Sustainable transportation options
- Local environmental conservation initiatives
- Green travel tips and best practices
- Climate-conscious travel planning

Always provide helpful, accurate, and environmentally-focused advice. Keep responses conversational, informative, and encouraging towards sustainable practices. If asked about topics outside sustainable travel, politely redirect the conversation back to eco-friendly travel topics."""

DEFAULT_GREETING = (
    "Hello! I'm EcoBot, your AI-powered sustainable travel assistant. "
    "I can help you with eco-friendly travel tips, destination recommendations, "
    "carbon footprint reduction, and sustainable tourism practices. "
    "How can I assist you today?"
)

COMPLETION_PROVIDERS = ["openrouter", "gemini"]


@dataclass
class SystemPrompts:
    """Persona and canned messages."""
    persona: str = DEFAULT_PERSONA
    greeting: str = DEFAULT_GREETING
    cleared: str = "Chat cleared! How can I help you with your eco-travel plans?"


@dataclass
class ChatSettings:
    """Conversation session settings."""
    max_history: int = 10
    max_tokens: int = 500
    temperature: float = 0.7
    streaming: bool = False


@dataclass
class ProviderSettings:
    """Provider-specific settings."""
    # OpenRouter
    openrouter_model: str = "anthropic/claude-3.5-sonnet"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    site_url: str = "https://ecotravel-omega.vercel.app/"
    site_name: str = "EcoTravel Platform"

    # Gemini
    gemini_model: str = "gemini-1.5-flash"

    # ElevenLabs
    elevenlabs_voice_id: str = "pNInz6obpgDQGcFmaJgB"  # Adam voice
    elevenlabs_model_id: str = "eleven_flash_v2_5"
    elevenlabs_output_format: str = "mp3_22050_32"
    elevenlabs_stability: float = 0.5
    elevenlabs_similarity_boost: float = 0.8

    # WhisperKit
    whisperkit_path: str = "/opt/homebrew/bin/whisperkit-cli"
    whisperkit_model: str = "large-v3_turbo"
    whisperkit_compute_units: str = "cpuAndNeuralEngine"


@dataclass
class VoiceSettings:
    """Voice input/output settings."""
    enabled: bool = True
    language: str = "en-US"
    rate: float = 0.9
    pitch: float = 1.0
    volume: float = 0.8
    sample_rate: int = 16000
    silence_duration_ms: int = 800
    max_utterance_seconds: float = 15.0


@dataclass
class TimeoutSettings:
    """Timeout settings for various operations."""
    ai_response_timeout: int = 30  # seconds
    tts_generation_timeout: int = 10  # seconds


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = "INFO"
    format: str = "json"
    file_enabled: bool = False
    file_rotation_mb: int = 10
    file_backup_count: int = 7


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Main settings class for EcoBot."""

    def __init__(self, config_file: Optional[Union[str, Path]] = None,
                 load_env_file: bool = True):
        self.config_file = Path(config_file) if config_file else None
        self._lock = threading.RLock()
        self._env_loaded = False

        self.ai_provider = "openrouter"
        self.recognizer_provider = "whisperkit"
        self.synthesizer_provider = "elevenlabs"

        # Initialize sub-settings
        self.system_prompts = SystemPrompts()
        self.chat = ChatSettings()
        self.providers = ProviderSettings()
        self.voice = VoiceSettings()
        self.timeouts = TimeoutSettings()
        self.logging = LoggingSettings()

        # Load .env file first
        if load_env_file:
            self._load_env_file()

        # Load from file if provided
        if self.config_file and self.config_file.exists():
            self.load_from_file()

        # Override with environment variables
        self.load_from_env()

    def _load_env_file(self) -> None:
        """Load environment variables from .env file."""
        if not self._env_loaded:
            # Look for .env in current directory and parent directories
            current_dir = Path.cwd()
            for parent in [current_dir] + list(current_dir.parents):
                env_file = parent / ".env"
                if env_file.exists():
                    load_dotenv(env_file)
                    logger.debug("Loaded .env file", path=str(env_file))
                    break
            self._env_loaded = True

    def _sections(self) -> Dict[str, Any]:
        return {
            "system_prompts": self.system_prompts,
            "chat": self.chat,
            "providers": self.providers,
            "voice": self.voice,
            "timeouts": self.timeouts,
            "logging": self.logging,
        }

    def load_from_file(self, config_file: Optional[Union[str, Path]] = None) -> None:
        """Load settings from a JSON configuration file."""
        if config_file:
            self.config_file = Path(config_file)
        if not self.config_file or not self.config_file.exists():
            return

        try:
            with self._lock:
                with open(self.config_file, 'r') as f:
                    config = json.load(f)

                if "ai_provider" in config:
                    self.ai_provider = config["ai_provider"]

                for name, section in self._sections().items():
                    for key, value in config.get(name, {}).items():
                        if hasattr(section, key):
                            setattr(section, key, value)
                        else:
                            logger.warning("Ignoring unknown setting",
                                           section=name, key=key)

                logger.info("Loaded settings from file", file=str(self.config_file))

        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load settings from file",
                         file=str(self.config_file),
                         error=str(e))

    def load_from_env(self) -> None:
        """Load settings from environment variables."""
        with self._lock:
            # Provider selection
            if os.getenv("AI_PROVIDER"):
                self.ai_provider = os.getenv("AI_PROVIDER")
            if os.getenv("STT_PROVIDER"):
                self.recognizer_provider = os.getenv("STT_PROVIDER")
            if os.getenv("TTS_PROVIDER"):
                self.synthesizer_provider = os.getenv("TTS_PROVIDER")

            # System prompts
            if os.getenv("ECOBOT_PERSONA"):
                self.system_prompts.persona = os.getenv("ECOBOT_PERSONA")
            if os.getenv("ECOBOT_GREETING"):
                self.system_prompts.greeting = os.getenv("ECOBOT_GREETING")

            # Chat settings
            if os.getenv("CHAT_MAX_HISTORY"):
                self.chat.max_history = int(os.getenv("CHAT_MAX_HISTORY"))
            if os.getenv("CHAT_MAX_TOKENS"):
                self.chat.max_tokens = int(os.getenv("CHAT_MAX_TOKENS"))
            if os.getenv("CHAT_TEMPERATURE"):
                self.chat.temperature = float(os.getenv("CHAT_TEMPERATURE"))
            if _env_bool("CHAT_STREAMING") is not None:
                self.chat.streaming = _env_bool("CHAT_STREAMING")

            # Provider-specific overrides
            if os.getenv("OPENROUTER_MODEL"):
                self.providers.openrouter_model = os.getenv("OPENROUTER_MODEL")
            if os.getenv("OPENROUTER_BASE_URL"):
                self.providers.openrouter_base_url = os.getenv("OPENROUTER_BASE_URL")
            if os.getenv("SITE_URL"):
                self.providers.site_url = os.getenv("SITE_URL")
            if os.getenv("SITE_NAME"):
                self.providers.site_name = os.getenv("SITE_NAME")

            if os.getenv("GEMINI_MODEL"):
                self.providers.gemini_model = os.getenv("GEMINI_MODEL")

            if os.getenv("ELEVENLABS_VOICE_ID"):
                self.providers.elevenlabs_voice_id = os.getenv("ELEVENLABS_VOICE_ID")
            if os.getenv("ELEVENLABS_MODEL_ID"):
                self.providers.elevenlabs_model_id = os.getenv("ELEVENLABS_MODEL_ID")
            if os.getenv("ELEVENLABS_OUTPUT_FORMAT"):
                self.providers.elevenlabs_output_format = os.getenv("ELEVENLABS_OUTPUT_FORMAT")

            if os.getenv("WHISPERKIT_PATH"):
                self.providers.whisperkit_path = os.getenv("WHISPERKIT_PATH")
            if os.getenv("WHISPERKIT_MODEL"):
                self.providers.whisperkit_model = os.getenv("WHISPERKIT_MODEL")
            if os.getenv("WHISPERKIT_COMPUTE_UNITS"):
                self.providers.whisperkit_compute_units = os.getenv("WHISPERKIT_COMPUTE_UNITS")

            # Voice settings
            if _env_bool("VOICE_ENABLED") is not None:
                self.voice.enabled = _env_bool("VOICE_ENABLED")
            if os.getenv("VOICE_LANGUAGE"):
                self.voice.language = os.getenv("VOICE_LANGUAGE")
            if os.getenv("VOICE_RATE"):
                self.voice.rate = float(os.getenv("VOICE_RATE"))
            if os.getenv("VOICE_VOLUME"):
                self.voice.volume = float(os.getenv("VOICE_VOLUME"))

            # Timeout overrides
            if os.getenv("AI_RESPONSE_TIMEOUT"):
                self.timeouts.ai_response_timeout = int(os.getenv("AI_RESPONSE_TIMEOUT"))
            if os.getenv("TTS_GENERATION_TIMEOUT"):
                self.timeouts.tts_generation_timeout = int(os.getenv("TTS_GENERATION_TIMEOUT"))

            # Logging settings
            if os.getenv("LOG_LEVEL"):
                self.logging.level = os.getenv("LOG_LEVEL")
            if os.getenv("LOG_FORMAT"):
                self.logging.format = os.getenv("LOG_FORMAT")
            if _env_bool("LOG_FILE_ENABLED") is not None:
                self.logging.file_enabled = _env_bool("LOG_FILE_ENABLED")

    def get_provider_config(self, provider_type: str) -> Dict[str, Any]:
        """Get configuration for a specific provider."""
        if provider_type == "openrouter":
            return {
                "model": self.providers.openrouter_model,
                "base_url": self.providers.openrouter_base_url,
                "site_url": self.providers.site_url,
                "site_name": self.providers.site_name,
            }
        elif provider_type == "gemini":
            return {
                "model": self.providers.gemini_model,
            }
        elif provider_type == "elevenlabs":
            return {
                "voice_id": self.providers.elevenlabs_voice_id,
                "model_id": self.providers.elevenlabs_model_id,
                "output_format": self.providers.elevenlabs_output_format,
                "stability": self.providers.elevenlabs_stability,
                "similarity_boost": self.providers.elevenlabs_similarity_boost,
            }
        elif provider_type == "whisperkit":
            return {
                "path": self.providers.whisperkit_path,
                "model": self.providers.whisperkit_model,
                "compute_units": self.providers.whisperkit_compute_units,
            }
        else:
            raise ValueError(f"Unknown provider type: {provider_type}")

    def reload(self) -> None:
        """Reload settings from file and environment."""
        with self._lock:
            if self.config_file and self.config_file.exists():
                self.load_from_file()
            self.load_from_env()
            logger.info("Settings reloaded")

    def validate(self) -> list[str]:
        """Validate current settings and return list of issues."""
        issues = []

        if self.ai_provider not in COMPLETION_PROVIDERS:
            issues.append(f"Unknown AI provider: {self.ai_provider}")

        minimum_history = 2 if self.system_prompts.persona else 1
        if self.chat.max_history < minimum_history:
            issues.append(f"Invalid max history: {self.chat.max_history}")
        if self.chat.max_tokens <= 0:
            issues.append(f"Invalid max tokens: {self.chat.max_tokens}")
        if not 0.0 <= self.chat.temperature <= 2.0:
            issues.append(f"Invalid temperature: {self.chat.temperature}")

        if not 0.0 <= self.voice.volume <= 1.0:
            issues.append(f"Invalid voice volume: {self.voice.volume}")
        if self.voice.rate <= 0:
            issues.append(f"Invalid voice rate: {self.voice.rate}")
        if self.voice.sample_rate not in [8000, 16000, 44100, 48000]:
            issues.append(f"Invalid sample rate: {self.voice.sample_rate}")

        if self.timeouts.ai_response_timeout <= 0:
            issues.append(f"Invalid AI response timeout: {self.timeouts.ai_response_timeout}")
        if self.timeouts.tts_generation_timeout <= 0:
            issues.append(f"Invalid TTS timeout: {self.timeouts.tts_generation_timeout}")

        return issues

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary for serialization."""
        with self._lock:
            data: Dict[str, Any] = {"ai_provider": self.ai_provider}
            for name, section in self._sections().items():
                data[name] = asdict(section)
            return data


# Global settings instance
settings = Settings()
