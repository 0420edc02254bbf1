"""
Orchestration events.

The orchestrator produces these; the API layer decides how to put them on
the wire (see api/streaming.py).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class EventType(Enum):
    """Event kinds, in the order a turn may emit them."""
    CHUNK = "chunk"
    TOOL_INVOCATION = "tool_invocation"
    TOOL_RESULT = "tool_result"
    TOOL_ERROR = "tool_error"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_EVENTS = (EventType.COMPLETE, EventType.ERROR)


@dataclass(frozen=True)
class ChatEvent:
    """A single event of a streamed chat turn."""
    type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, **self.payload}

    @classmethod
    def chunk(cls, content: str) -> "ChatEvent":
        return cls(EventType.CHUNK, {"content": content})

    @classmethod
    def tool_invocation(cls, tool: str, parameters: Dict[str, Any]) -> "ChatEvent":
        return cls(EventType.TOOL_INVOCATION, {"tool": tool, "parameters": parameters})

    @classmethod
    def tool_result(cls, tool: str, result: Dict[str, Any]) -> "ChatEvent":
        return cls(EventType.TOOL_RESULT, {"tool": tool, "result": result})

    @classmethod
    def tool_error(cls, tool: str, error: str) -> "ChatEvent":
        return cls(EventType.TOOL_ERROR, {"tool": tool, "error": error})

    @classmethod
    def complete(cls, timestamp: str) -> "ChatEvent":
        return cls(EventType.COMPLETE, {"timestamp": timestamp})

    @classmethod
    def error(cls, error: str) -> "ChatEvent":
        return cls(EventType.ERROR, {"error": error})
