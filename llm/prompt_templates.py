"""
Prompt Templates for the Teams AI Agent.

Manages the system prompts used with and without MCP tools.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from .directive_parser import DIRECTIVE_ACTION


class PromptType(Enum):
    """Types of prompts."""
    GENERAL = "general"
    TOOLS = "tools"


class PromptTemplates:
    """
    Manages prompt templates for the agent.

    The tools prompt teaches the model the directive format that
    llm.directive_parser looks for.
    """

    SYSTEM_PROMPTS = {
        PromptType.GENERAL: """You are an AI assistant integrated with Microsoft Teams. You have access to various tools through the MCP Gateway.

Your capabilities:
- Answer questions and provide information
- Execute tools based on user requests
- Provide structured responses with tool results
- Maintain conversation context

Current context: {context}

Always be helpful, accurate, and professional. When using tools, explain what you're doing and present results clearly.""",

        PromptType.TOOLS: """You are an AI assistant with access to the following tools:

{tools}

When a user makes a request, analyze if you need to use any tools to fulfill it. If so, respond with a JSON object containing:
{{
  "action": "%s",
  "tool": "tool_name",
  "parameters": {{...}}
}}

If no tool is needed, respond normally with helpful information.

Current context: {context}""" % DIRECTIVE_ACTION,
    }

    @classmethod
    def format_tools(cls, tools: List[Dict[str, Any]]) -> str:
        """One line per tool: name, description and parameter schema."""
        return "\n".join(
            f"- {t['name']}: {t.get('description', '')} (parameters: {json.dumps(t.get('parameters') or {})})"
            for t in tools
        )

    @classmethod
    def get_system_prompt(
        cls,
        prompt_type: PromptType = PromptType.GENERAL,
        context: Optional[Dict[str, Any]] = None,
        tools: Optional[List[Dict[str, Any]]] = None
    ) -> str:
        """
        Get system prompt for a given type.

        Args:
            prompt_type: Type of prompt
            context: Conversation context embedded as JSON
            tools: Tool descriptors (name, description, parameters)

        Returns:
            Formatted system prompt
        """
        template = cls.SYSTEM_PROMPTS.get(prompt_type, cls.SYSTEM_PROMPTS[PromptType.GENERAL])

        return template.format(
            context=json.dumps(context or {}, indent=2, default=str),
            tools=cls.format_tools(tools or []),
        )
