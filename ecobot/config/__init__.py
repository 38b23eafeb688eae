"""Settings loaded from .env, a JSON file and the environment."""
