"""
MCP tool routes for the Teams AI Agent.

Thin HTTP surface over the MCP Gateway client.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from llm.exceptions import GatewayUnavailable, ToolNotFound
from ..middleware.auth import get_current_user
from ..middleware.metrics import record_tool_invocation
from ..services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mcp", dependencies=[Depends(get_current_user)])


class ExecuteRequest(BaseModel):
    tool: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)


class BatchExecuteRequest(BaseModel):
    executions: Optional[List[Dict[str, Any]]] = None


def _error(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@router.get("/tools")
async def list_tools(services: Services = Depends(get_services)):
    """List available tools."""
    try:
        tools = await services.gateway.list_tools()
    except GatewayUnavailable as e:
        logger.error(f"Error getting available tools: {e.message}")
        return _error(500, "Failed to get available tools")

    return {"success": True, "tools": [t.to_dict() for t in tools]}


@router.get("/tools/{tool_name}/schema")
async def get_tool_schema(tool_name: str, services: Services = Depends(get_services)):
    """Get the parameter schema of a tool."""
    try:
        schema = await services.gateway.get_tool_schema(tool_name)
    except ToolNotFound:
        return _error(404, f"Tool {tool_name} not found")
    except GatewayUnavailable as e:
        logger.error(f"Error getting schema for tool {tool_name}: {e.message}")
        return _error(500, f"Failed to get schema for tool {tool_name}")

    return {"success": True, "schema": schema}


@router.post("/execute")
async def execute_tool(request: ExecuteRequest, services: Services = Depends(get_services)):
    """Execute a single tool."""
    if not request.tool:
        return _error(400, "Tool name is required")

    result = await services.gateway.invoke(request.tool, request.parameters)
    record_tool_invocation(result.success)

    return {
        "success": True,
        "tool": request.tool,
        "parameters": request.parameters,
        "result": result.to_dict(),
    }


@router.post("/execute/batch")
async def execute_batch(request: BatchExecuteRequest, services: Services = Depends(get_services)):
    """Execute multiple tools in one gateway call."""
    if not request.executions:
        return _error(400, "Executions array is required")

    results = await services.gateway.invoke_batch(request.executions)
    for result in results:
        record_tool_invocation(result.success)

    return {"success": True, "results": [r.to_dict() for r in results]}


@router.get("/history")
async def get_execution_history(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    limit: int = Query(default=50, ge=1, le=500),
    services: Services = Depends(get_services),
):
    """Get tool execution history for a user."""
    if not user_id:
        return _error(400, "userId is required")

    try:
        history = await services.gateway.get_execution_history(user_id, limit)
    except GatewayUnavailable as e:
        logger.error(f"Error getting execution history: {e.message}")
        return _error(500, "Failed to get execution history")

    return {"success": True, "history": history}


@router.post("/test")
async def test_tool(request: ExecuteRequest, services: Services = Depends(get_services)):
    """Run a tool under a hard timeout to check it works."""
    if not request.tool:
        return _error(400, "Tool name is required")

    timeout = services.settings.mcp_test_timeout if services.settings else 10.0
    try:
        result = await asyncio.wait_for(
            services.gateway.invoke(request.tool, request.parameters),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.error(f"Tool test for {request.tool} exceeded {timeout}s")
        return _error(500, "Tool execution timeout")

    return {
        "success": True,
        "tool": request.tool,
        "result": result.to_dict(),
        "message": "Tool test completed successfully",
    }


@router.get("/categories")
async def get_categories(services: Services = Depends(get_services)):
    """List tool categories."""
    try:
        categories = await services.gateway.list_categories()
    except GatewayUnavailable as e:
        logger.error(f"Error getting tool categories: {e.message}")
        return _error(500, "Failed to get tool categories")

    return {"success": True, "categories": categories}
