"""
API Module for the Teams AI Agent.

FastAPI application with routes for:
- Agent chat (plain and streamed)
- Conversation history
- MCP tool discovery and execution
"""

from .main import create_app, app

__all__ = ["create_app", "app"]
