"""
Data types exchanged with the MCP Gateway.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ToolDescriptor:
    """A tool advertised by the gateway."""
    name: str
    description: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)
    category: str = "general"

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ToolDescriptor":
        return cls(
            name=payload["name"],
            description=payload.get("description") or "",
            parameters=payload.get("parameters") or {},
            category=payload.get("category") or "general",
        )

    def to_context(self) -> Dict[str, Any]:
        """Trimmed view handed to the model."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {**self.to_context(), "category": self.category}


@dataclass(frozen=True)
class ToolInvocationResult:
    """Outcome of a single tool execution."""
    success: bool
    result: Any = None
    error: Optional[str] = None
    status: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str, status: Optional[int] = None) -> "ToolInvocationResult":
        return cls(success=False, error=error, status=status)

    @classmethod
    def from_payload(cls, payload: Any) -> "ToolInvocationResult":
        """Normalize one gateway result entry (batch responses mix shapes)."""
        if not isinstance(payload, dict):
            return cls(success=True, result=payload)
        if payload.get("success") is False or (payload.get("error") and "result" not in payload):
            return cls(
                success=False,
                error=payload.get("error") or "Tool execution failed",
                status=payload.get("status"),
                metadata=payload.get("metadata") or {},
            )
        return cls(
            success=True,
            result=payload.get("result"),
            metadata=payload.get("metadata") or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "result": self.result, "metadata": self.metadata}
        data: Dict[str, Any] = {"success": False, "error": self.error}
        if self.status is not None:
            data["status"] = self.status
        return data


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation made on behalf of an assistant turn."""
    tool: str
    parameters: Dict[str, Any]
    result: ToolInvocationResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "parameters": self.parameters,
            "result": self.result.to_dict(),
        }
