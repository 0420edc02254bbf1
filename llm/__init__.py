"""
LLM Orchestration Module for the Teams AI Agent.

This module handles:
- LLM provider abstraction (Bedrock, OpenAI)
- Prompt template management
- Tool directive detection in streamed output
- Per-user conversation history
- Streaming chat orchestration
"""

from .orchestrator import ChatOrchestrator, ChatResult, TurnState
from .prompt_templates import PromptTemplates, PromptType

__all__ = [
    "ChatOrchestrator",
    "ChatResult",
    "TurnState",
    "PromptTemplates",
    "PromptType",
]
