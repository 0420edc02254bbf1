"""
Tool directive detection for streamed model output.

The tools-aware system prompt asks the model to answer with
{"action": "use_tool", "tool": ..., "parameters": {...}} when it wants a
tool. The orchestrator calls parse_tool_directive() on the accumulated text
after every fragment; a None result only means "not found yet".
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

DIRECTIVE_ACTION = "use_tool"

_decoder = json.JSONDecoder()


@dataclass(frozen=True)
class ToolDirective:
    """A model request to run one tool."""
    tool: str
    parameters: Dict[str, Any] = field(default_factory=dict)


def _as_directive(obj: Any) -> Optional[ToolDirective]:
    if not isinstance(obj, dict) or obj.get("action") != DIRECTIVE_ACTION:
        return None
    tool = obj.get("tool")
    if not isinstance(tool, str) or not tool.strip():
        return None
    parameters = obj.get("parameters")
    if not isinstance(parameters, dict):
        parameters = {}
    return ToolDirective(tool=tool.strip(), parameters=parameters)


def _opens_directive(text: str, start: int) -> bool:
    """
    True when the object starting at text[start] is still unclosed and
    already carries "action": "use_tool" at its top level.

    Anything after such a prefix is nested inside the pending directive, so
    a use_tool object found there must not be reported ahead of it.
    """
    depth = 0
    in_string = escaped = pending = False
    string_start = 0
    last_string = key = None

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
                if depth == 1:
                    last_string = text[string_start:i]
                    if key == "action" and last_string == DIRECTIVE_ACTION:
                        pending = True
            continue

        if ch == '"':
            in_string = True
            string_start = i + 1
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth <= 0:
                return False
        elif depth == 1 and ch == ":":
            key, last_string = last_string, None
        elif depth == 1 and ch == ",":
            key = last_string = None

    return pending


def parse_tool_directive(text: str) -> Optional[ToolDirective]:
    """
    Find the first complete tool directive embedded in text.

    Every '{' is tried as the start of a JSON value. Objects without the
    use_tool marker are incidental content and scanning continues inside
    them; incomplete objects (still streaming) decode as errors and are
    retried on the next call. An incomplete directive hides everything
    nested inside it, so the answer never changes as the text grows.

    Args:
        text: Model output accumulated so far

    Returns:
        The first directive found, or None
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        try:
            obj, _ = _decoder.raw_decode(text, start)
        except (ValueError, RecursionError):
            if DIRECTIVE_ACTION in text[start:] and _opens_directive(text, start):
                return None
            obj = None
        directive = _as_directive(obj)
        if directive:
            return directive
        start = text.find("{", start + 1)

    return None
