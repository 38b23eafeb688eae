"""Chat message model."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict
from uuid import uuid4


class Role(str, Enum):
    """Speaker of a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


def _new_id() -> str:
    return uuid4().hex


@dataclass(frozen=True)
class Message:
    """A single role-tagged entry in a conversation."""

    role: Role
    content: str
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(Role.ASSISTANT, content)

    def to_payload(self) -> Dict[str, str]:
        """Wire form sent to completion providers."""
        return {"role": self.role.value, "content": self.content}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        timestamp = data.get("timestamp")
        return cls(
            role=Role(data["role"]),
            content=data["content"],
            id=data.get("id") or _new_id(),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(),
        )
