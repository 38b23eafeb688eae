"""Speech recognition and synthesis providers."""

def register_providers():
    """Register all speech providers."""
    # Import at function level to avoid circular imports
    from ..registry import registry
    from ...config.settings import settings
    from .whisperkit import WhisperKitRecognizer
    from .elevenlabs import ElevenLabsSynthesizer

    def get_whisperkit_config():
        config = settings.get_provider_config("whisperkit")
        return {
            "model": config["model"],
            "compute_units": config["compute_units"],
            "whisperkit_path": config["path"],
            "sample_rate": settings.voice.sample_rate,
            "silence_duration_ms": settings.voice.silence_duration_ms,
            "max_duration": settings.voice.max_utterance_seconds,
        }

    def get_elevenlabs_config():
        config = settings.get_provider_config("elevenlabs")
        return {
            "voice_id": config["voice_id"],
            "model_id": config["model_id"],
            "output_format": config["output_format"],
            "stability": config["stability"],
            "similarity_boost": config["similarity_boost"],
            "timeout": settings.timeouts.tts_generation_timeout,
        }

    registry.register_speech_recognizer(
        "whisperkit",
        WhisperKitRecognizer,
        get_whisperkit_config
    )
    registry.register_speech_synthesizer(
        "elevenlabs",
        ElevenLabsSynthesizer,
        get_elevenlabs_config
    )
