"""Chat completion providers."""

def register_providers():
    """Register all completion providers."""
    # Import at function level to avoid circular imports
    from ..registry import registry
    from ...config.settings import settings
    from .openrouter import OpenRouterClient
    from .gemini import GeminiClient

    def get_openrouter_config():
        config = settings.get_provider_config("openrouter")
        return {
            "model_name": config["model"],
            "base_url": config["base_url"],
            "site_url": config["site_url"],
            "site_name": config["site_name"],
            "timeout": settings.timeouts.ai_response_timeout,
        }

    def get_gemini_config():
        config = settings.get_provider_config("gemini")
        return {
            "model_name": config["model"],
            "timeout": settings.timeouts.ai_response_timeout,
        }

    registry.register_completion_provider(
        "openrouter",
        OpenRouterClient,
        get_openrouter_config
    )
    registry.register_completion_provider(
        "gemini",
        GeminiClient,
        get_gemini_config
    )
