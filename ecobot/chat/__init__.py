"""Conversation session, messages and error classification."""

from .messages import Message, Role
from .errors import ChatError, ErrorCategory
from .session import ConversationSession

__all__ = ["Message", "Role", "ChatError", "ErrorCategory", "ConversationSession"]
