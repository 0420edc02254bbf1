"""
Agent chat routes for the Teams AI Agent.
"""

import logging
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from llm.events import ChatEvent, EventType
from llm.exceptions import ChatError, InvalidRequest
from ..middleware.auth import get_current_user
from ..middleware.metrics import record_chat_turn, record_tool_invocation
from ..services import Services, get_services
from ..streaming import sse_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agent", dependencies=[Depends(get_current_user)])


# ── Request Models ────────────────────────────────────────────────

class AgentChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    include_tools: bool = Field(default=True, alias="includeTools")


def _error(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


# ── Endpoints ─────────────────────────────────────────────────────

@router.post("/chat")
async def chat(request: AgentChatRequest, services: Services = Depends(get_services)):
    """Run one chat turn and return the full response."""
    start_time = time.time()
    try:
        result = await services.orchestrator.chat(
            request.user_id, request.message, include_tools=request.include_tools
        )
    except InvalidRequest as e:
        return _error(400, e.message)
    except ChatError as e:
        logger.error(f"Error in chat endpoint: {e.message}")
        record_chat_turn("sync", "error", time.time() - start_time)
        return _error(500, "Failed to process chat request")
    except Exception as e:
        logger.exception(f"Unexpected error in chat endpoint: {e}")
        record_chat_turn("sync", "error", time.time() - start_time)
        return _error(500, "Failed to process chat request")

    record_chat_turn("sync", "complete", time.time() - start_time)
    if result.tool_result:
        record_tool_invocation(result.tool_result.result.success)

    return {"success": True, **result.to_dict()}


@router.post("/chat/stream")
async def chat_stream(request: AgentChatRequest, services: Services = Depends(get_services)):
    """Run one chat turn as a server-sent event stream."""
    try:
        events = services.orchestrator.chat_stream(
            request.user_id, request.message, include_tools=request.include_tools
        )
    except InvalidRequest as e:
        return _error(400, e.message)

    start_time = time.time()

    def observe(event: ChatEvent):
        if event.type is EventType.TOOL_RESULT:
            record_tool_invocation(bool(event.payload["result"].get("success")))
        elif event.type is EventType.TOOL_ERROR:
            record_tool_invocation(False)
        elif event.is_terminal:
            record_chat_turn("stream", event.type.value, time.time() - start_time)

    return sse_response(events, observer=observe)


@router.get("/history/{user_id}")
async def get_history(user_id: str, services: Services = Depends(get_services)) -> Dict[str, Any]:
    """Get a user's conversation history."""
    history = await services.orchestrator.get_history(user_id)
    return {"success": True, "history": [turn.to_dict() for turn in history]}


@router.delete("/history/{user_id}")
async def clear_history(user_id: str, services: Services = Depends(get_services)) -> Dict[str, Any]:
    """Clear a user's conversation history."""
    await services.orchestrator.clear_history(user_id)
    return {"success": True, "message": "Conversation history cleared"}
