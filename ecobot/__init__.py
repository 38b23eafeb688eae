"""
EcoBot - a sustainable travel assistant.

A bounded conversational session over pluggable completion providers
(OpenRouter, Gemini) with optional voice input and spoken replies.
"""

__version__ = "1.0.0"
