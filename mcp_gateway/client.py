"""
MCP Gateway client.

Talks to the external tool-execution API over HTTP. Discovery calls raise
GatewayUnavailable / ToolNotFound; execution calls always resolve to a
ToolInvocationResult so a failing tool never aborts a chat turn.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from llm.exceptions import GatewayUnavailable, ToolNotFound
from .models import ToolDescriptor, ToolInvocationResult

logger = logging.getLogger(__name__)


class MCPGatewayClient:
    """Async HTTP client for the MCP Gateway."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        environment: str = "development",
        discovery_timeout: float = 10.0,
        execute_timeout: float = 30.0,
        batch_timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the gateway client.

        Args:
            base_url: Gateway root URL
            api_key: Bearer key sent with every call
            environment: Environment name forwarded with executions
            discovery_timeout: Timeout for list/schema/history/health calls
            execute_timeout: Timeout for a single tool execution
            batch_timeout: Timeout for a batch execution
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.environment = environment
        self.discovery_timeout = discovery_timeout
        self.execute_timeout = execute_timeout
        self.batch_timeout = batch_timeout
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=self._transport,
        )

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        async with self._client(self.discovery_timeout) as client:
            resp = await client.get(path, params=params)
            resp.raise_for_status()
            return resp.json()

    # ── Discovery ─────────────────────────────────────────────────

    async def health_check(self) -> bool:
        """Check that the gateway answers /health."""
        try:
            async with self._client(self.discovery_timeout) as client:
                resp = await client.get("/health")
                return resp.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"MCP Gateway health check failed: {e}")
            return False

    async def list_tools(self) -> List[ToolDescriptor]:
        """Fetch the tools the gateway currently exposes."""
        try:
            data = await self._get_json("/tools")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching available tools: {e}")
            raise GatewayUnavailable("Failed to fetch available tools") from e
        if not isinstance(data, dict):
            logger.error(f"Unexpected /tools payload: {type(data).__name__}")
            raise GatewayUnavailable("Failed to fetch available tools")

        tools = []
        for payload in data.get("tools") or []:
            if isinstance(payload, dict) and payload.get("name"):
                tools.append(ToolDescriptor.from_payload(payload))
        return tools

    async def list_categories(self) -> List[str]:
        """Sorted, de-duplicated tool categories."""
        tools = await self.list_tools()
        return sorted({t.category for t in tools})

    async def get_tool_schema(self, name: str) -> Dict[str, Any]:
        """Fetch the parameter schema for one tool."""
        try:
            return await self._get_json(f"/tools/{quote(name, safe='')}/schema")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ToolNotFound(f"Unknown tool: {name}") from e
            logger.error(f"Error getting tool schema for {name}: {e}")
            raise GatewayUnavailable(f"Failed to get schema for tool {name}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error getting tool schema for {name}: {e}")
            raise GatewayUnavailable(f"Failed to get schema for tool {name}") from e

    async def get_execution_history(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        """Past executions for a user, most recent first."""
        try:
            data = await self._get_json("/history", params={"userId": user_id, "limit": limit})
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error getting execution history: {e}")
            raise GatewayUnavailable("Failed to get execution history") from e
        if not isinstance(data, dict):
            logger.error(f"Unexpected /history payload: {type(data).__name__}")
            raise GatewayUnavailable("Failed to get execution history")

        history = [h for h in data.get("history") or [] if isinstance(h, dict)]
        if all("timestamp" in h for h in history):
            history.sort(key=lambda h: str(h["timestamp"]), reverse=True)
        return history[:max(limit, 0)]

    # ── Execution ─────────────────────────────────────────────────

    async def invoke(self, name: str, parameters: Optional[Dict[str, Any]] = None) -> ToolInvocationResult:
        """
        Execute a tool.

        Remote failures come back as ToolInvocationResult(success=False);
        only a missing tool name raises.
        """
        if not name:
            raise ValueError("Tool name is required")

        body = {
            "tool": name,
            "parameters": parameters or {},
            "environment": self.environment,
        }
        try:
            async with self._client(self.execute_timeout) as client:
                resp = await client.post("/execute", json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException:
            logger.error(f"Tool {name} timed out after {self.execute_timeout}s")
            return ToolInvocationResult.failure("timeout", status=408)
        except httpx.HTTPStatusError as e:
            logger.error(f"Error executing tool {name}: {e}")
            return ToolInvocationResult.failure(
                _error_message(e.response), status=e.response.status_code
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error executing tool {name}: {e}")
            return ToolInvocationResult.failure("Tool execution failed", status=503)

        if not isinstance(data, dict):
            logger.error(f"Unexpected /execute payload for {name}: {type(data).__name__}")
            return ToolInvocationResult.failure("Tool execution failed", status=502)

        return ToolInvocationResult(
            success=True,
            result=data.get("result"),
            metadata=data.get("metadata") or {},
        )

    async def invoke_batch(self, executions: List[Dict[str, Any]]) -> List[ToolInvocationResult]:
        """Execute several tools; results line up with the input positions."""
        if not executions:
            return []

        body = {"executions": executions, "environment": self.environment}
        try:
            async with self._client(self.batch_timeout) as client:
                resp = await client.post("/execute/batch", json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException:
            logger.error(f"Batch of {len(executions)} tools timed out")
            return [ToolInvocationResult.failure("timeout", status=408) for _ in executions]
        except httpx.HTTPStatusError as e:
            logger.error(f"Error executing batch tools: {e}")
            error = _error_message(e.response)
            return [
                ToolInvocationResult.failure(error, status=e.response.status_code)
                for _ in executions
            ]
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error executing batch tools: {e}")
            return [ToolInvocationResult.failure("Tool execution failed", status=503) for _ in executions]

        raw = data.get("results") if isinstance(data, dict) else data
        raw = raw if isinstance(raw, list) else []

        results = []
        for i in range(len(executions)):
            if i < len(raw):
                results.append(ToolInvocationResult.from_payload(raw[i]))
            else:
                results.append(ToolInvocationResult.failure("No result returned", status=502))
        return results


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return "Tool execution failed"
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return "Tool execution failed"
