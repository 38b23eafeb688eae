"""Voice input/output controller."""

from .controller import VoiceController, VoiceState, recognition_advisory

__all__ = ["VoiceController", "VoiceState", "recognition_advisory"]
