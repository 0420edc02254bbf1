"""
Service initialization and dependency injection for the Teams AI Agent API.

Creates and manages all service instances used by the API.
"""

import logging
from typing import Any, Optional

from config.settings import get_settings, Settings
from llm.conversation_store import InMemoryConversationStore
from llm.orchestrator import ChatOrchestrator
from llm.providers import BedrockProvider, OpenAIProvider
from mcp_gateway import MCPGatewayClient

logger = logging.getLogger(__name__)


class Services:
    """Container for all application services."""

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.model_client: Optional[Any] = None
        self.gateway: Optional[MCPGatewayClient] = None
        self.store: Optional[InMemoryConversationStore] = None
        self.orchestrator: Optional[ChatOrchestrator] = None
        self.gateway_healthy = False
        self._initialized = False

    def initialize(self):
        """Initialize all services."""
        if self._initialized:
            return

        self.settings = get_settings()
        logger.info(f"Initializing services with provider: {self.settings.llm_provider}")

        self.store = InMemoryConversationStore()
        try:
            self._init_gateway()
            self._init_model()
            self._init_orchestrator()
            logger.info("All services initialized successfully")
        except Exception as e:
            logger.error(f"Service initialization failed: {e}")
            # Allow API to start even if some services fail
            logger.warning("API starting in degraded mode")
        self._initialized = True

    def _init_model(self):
        """Initialize the model client."""
        s = self.settings

        if s.is_openai:
            self.model_client = OpenAIProvider(
                api_key=s.openai_api_key,
                model_id=s.openai_llm_model,
                max_tokens=s.max_tokens,
                temperature=s.temperature,
                inactivity_timeout=s.model_inactivity_timeout,
            )
        else:
            self.model_client = BedrockProvider(
                model_id=s.bedrock_model,
                region=s.aws_region,
                max_tokens=s.max_tokens,
                temperature=s.temperature,
                inactivity_timeout=s.model_inactivity_timeout,
                aws_access_key_id=s.aws_access_key_id,
                aws_secret_access_key=s.aws_secret_access_key,
            )

    def _init_gateway(self):
        """Initialize the MCP Gateway client."""
        s = self.settings

        if not s.mcp_api_key:
            logger.warning("MCP_API_KEY not set, tool calls will likely be rejected")

        self.gateway = MCPGatewayClient(
            base_url=s.mcp_gateway_url,
            api_key=s.mcp_api_key,
            environment=s.environment,
            discovery_timeout=s.mcp_discovery_timeout,
            execute_timeout=s.mcp_execute_timeout,
            batch_timeout=s.mcp_batch_timeout,
        )
        logger.info(f"MCP Gateway client ready: {s.mcp_gateway_url}")

    def _init_orchestrator(self):
        """Initialize the chat orchestrator."""
        s = self.settings

        self.orchestrator = ChatOrchestrator(
            model_client=self.model_client,
            gateway=self.gateway,
            store=self.store,
            history_turns=s.history_context_turns,
            tool_timeout=s.tool_invocation_timeout,
            serialize_requests=s.serialize_user_requests,
        )
        logger.info("Chat orchestrator ready")

    async def check_gateway(self) -> bool:
        """Probe the gateway; failure leaves the API running without tools."""
        if self.gateway is None:
            return False
        self.gateway_healthy = await self.gateway.health_check()
        if self.gateway_healthy:
            logger.info("MCP Gateway connection verified")
        else:
            logger.warning("MCP Gateway unreachable, chat will run without tools")
        return self.gateway_healthy

    @property
    def is_ready(self) -> bool:
        return self._initialized and self.orchestrator is not None

    def health(self) -> dict:
        """Return health status of all services."""
        return {
            "initialized": self._initialized,
            "model": self.model_client is not None,
            "gateway": self.gateway_healthy,
            "orchestrator": self.orchestrator is not None,
            "conversations": self.store.user_count() if self.store else 0,
        }


# Singleton
_services = Services()


def get_services() -> Services:
    """Get the global services instance."""
    return _services


def initialize_services():
    """Initialize all services (called at startup)."""
    _services.initialize()
