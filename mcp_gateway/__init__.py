"""
MCP Gateway integration.

Client for tool discovery and execution against the external gateway.
"""

from .client import MCPGatewayClient
from .models import ToolCall, ToolDescriptor, ToolInvocationResult

__all__ = [
    "MCPGatewayClient",
    "ToolCall",
    "ToolDescriptor",
    "ToolInvocationResult",
]
