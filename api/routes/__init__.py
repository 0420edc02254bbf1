"""
API Routes for the Teams AI Agent.
"""

from . import agent, auth, mcp

__all__ = ["agent", "auth", "mcp"]
