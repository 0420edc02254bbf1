"""Shared fixtures for Teams AI Agent tests."""

import asyncio
import os

import pytest
from fastapi.testclient import TestClient

# Ensure we use test settings
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("MCP_API_KEY", "test-key")
os.environ.setdefault("AWS_REGION", "us-east-1")

from llm.conversation_store import InMemoryConversationStore  # noqa: E402
from llm.exceptions import GatewayUnavailable, ModelUnavailable, ToolNotFound  # noqa: E402
from llm.orchestrator import ChatOrchestrator  # noqa: E402
from mcp_gateway.models import ToolDescriptor, ToolInvocationResult  # noqa: E402

WEATHER_TOOL = ToolDescriptor(
    name="get_weather",
    description="Current weather for a city",
    parameters={"type": "object", "properties": {"city": {"type": "string"}}},
    category="weather",
)


class FakeModel:
    """Model client that replays canned fragments."""

    def __init__(self, chunks=None):
        self.chunks = list(chunks or ["2 + 2 ", "is 4."])
        self.fail_after = None  # raise after this many fragments
        self.crash = False  # raise a non-ChatError instead
        self.closed = False
        self.calls = []

    async def stream_completion(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        try:
            for i, chunk in enumerate(self.chunks):
                if self.crash and i >= (self.fail_after or 0):
                    raise RuntimeError("unexpected backend payload")
                if self.fail_after is not None and i >= self.fail_after:
                    raise ModelUnavailable("backend rejected the request")
                await asyncio.sleep(0)
                yield chunk
            if self.fail_after is not None and self.fail_after >= len(self.chunks):
                raise ModelUnavailable("backend rejected the request")
        finally:
            self.closed = True


class FakeGateway:
    """In-process stand-in for the MCP Gateway client."""

    def __init__(self, tools=None):
        self.tools = list(tools if tools is not None else [WEATHER_TOOL])
        self.discovery_error = False
        self.invoke_error = False
        self.invoke_delay = 0.0
        self.result = ToolInvocationResult(success=True, result={"city": "Paris", "temp_c": 18})
        self.invocations = []
        self.completed = []

    async def health_check(self):
        return True

    async def list_tools(self):
        if self.discovery_error:
            raise GatewayUnavailable("Failed to fetch available tools")
        return list(self.tools)

    async def list_categories(self):
        return sorted({t.category for t in await self.list_tools()})

    async def get_tool_schema(self, name):
        for tool in self.tools:
            if tool.name == name:
                return tool.parameters
        raise ToolNotFound(f"Unknown tool: {name}")

    async def invoke(self, name, parameters=None):
        self.invocations.append((name, parameters))
        if self.invoke_delay:
            await asyncio.sleep(self.invoke_delay)
        if self.invoke_error:
            raise RuntimeError("malformed request")
        self.completed.append(name)
        return self.result

    async def invoke_batch(self, executions):
        return [await self.invoke(e.get("tool"), e.get("parameters")) for e in executions]

    async def get_execution_history(self, user_id, limit=50):
        history = [
            {"tool": "get_weather", "userId": user_id, "timestamp": "2024-05-02T10:00:00Z"},
            {"tool": "get_weather", "userId": user_id, "timestamp": "2024-05-01T10:00:00Z"},
        ]
        return history[:limit]


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def store():
    return InMemoryConversationStore()


@pytest.fixture
def orchestrator(fake_model, fake_gateway, store):
    return ChatOrchestrator(
        model_client=fake_model,
        gateway=fake_gateway,
        store=store,
        tool_timeout=1.0,
    )


@pytest.fixture
def services(orchestrator, fake_model, fake_gateway, store):
    """A Services container wired with fakes."""
    from api.services import Services
    from config.settings import get_settings

    svc = Services()
    svc.settings = get_settings()
    svc.model_client = fake_model
    svc.gateway = fake_gateway
    svc.store = store
    svc.orchestrator = orchestrator
    svc._initialized = True
    return svc


@pytest.fixture
def client(services):
    """Create a FastAPI test client backed by fake services."""
    from api.main import create_app
    from api.services import get_services

    app = create_app()
    app.dependency_overrides[get_services] = lambda: services
    return TestClient(app)


@pytest.fixture
def auth_headers():
    from api.middleware.auth import create_jwt_token
    token = create_jwt_token({"sub": "user-1", "oid": "oid-1", "name": "Ada", "tid": "tenant-1"})
    return {"Authorization": f"Bearer {token}"}
