"""
Chat Orchestrator for the Teams AI Agent.

Drives one chat turn from user message to stored assistant reply:
history and tool context, model streaming, directive detection, tool
execution through the MCP Gateway, and the event sequence sent to clients.
"""

import asyncio
import logging
import time
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Set

from mcp_gateway.models import ToolCall, ToolDescriptor, ToolInvocationResult
from .conversation_store import ConversationStore, ConversationTurn, InMemoryConversationStore, Role, utc_now
from .directive_parser import ToolDirective, parse_tool_directive
from .events import ChatEvent
from .exceptions import ChatError, InvalidRequest
from .prompt_templates import PromptTemplates, PromptType
from .providers import ModelClient

logger = logging.getLogger(__name__)

TOOL_FAILED = "Tool execution failed"
GENERATION_FAILED = "Failed to generate response"


class TurnState(Enum):
    """Lifecycle of a single chat turn."""
    IDLE = "idle"
    AWAITING_MODEL_STREAM = "awaiting_model_stream"
    STREAMING_TOKENS = "streaming_tokens"
    TOOL_PENDING = "tool_pending"
    TOOL_EXECUTING = "tool_executing"
    TOOL_RESOLVED = "tool_resolved"
    COMPLETING = "completing"
    DONE = "done"
    ERRORED = "errored"
    CANCELLED = "cancelled"


FINISHED_STATES = (TurnState.DONE, TurnState.ERRORED, TurnState.CANCELLED)


@dataclass
class ChatResult:
    """Response from a non-streaming chat turn."""
    response_text: str
    tool_result: Optional[ToolCall] = None
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "response": self.response_text,
            "toolResult": self.tool_result.to_dict() if self.tool_result else None,
            "timestamp": self.timestamp,
        }


@dataclass
class _Turn:
    """Mutable working state of one in-flight turn."""
    user_id: str
    message: str
    include_tools: bool
    state: TurnState = TurnState.IDLE
    parts: List[str] = field(default_factory=list)
    directive: Optional[ToolDirective] = None
    tool_call: Optional[ToolCall] = None
    persisted: bool = False
    timestamp: Optional[str] = None

    @property
    def text(self) -> str:
        return "".join(self.parts)

    def advance(self, state: TurnState):
        logger.debug(f"Turn for {self.user_id}: {self.state.value} -> {state.value}")
        self.state = state


class ChatOrchestrator:
    """
    Orchestrates the chat pipeline.

    Pipeline:
    1. Validate and record the user message
    2. Discover tools (degrades to no tools on failure)
    3. Build context from recent history and tools
    4. Stream the model response, watching for a tool directive
    5. Execute the first directive found, if any
    6. Record the assistant reply
    7. Signal completion
    """

    def __init__(
        self,
        model_client: ModelClient,
        gateway: Optional[Any] = None,
        store: Optional[ConversationStore] = None,
        history_turns: int = 10,
        tool_timeout: float = 30.0,
        serialize_requests: bool = True
    ):
        """
        Initialize the orchestrator.

        Args:
            model_client: Object with stream_completion(system_prompt, user_prompt)
            gateway: MCP Gateway client (list_tools / invoke); None disables tools
            store: Conversation store (in-memory by default)
            history_turns: Number of recent turns placed in model context
            tool_timeout: Upper bound in seconds for one tool invocation
            serialize_requests: Allow only one in-flight turn per user
        """
        self.model_client = model_client
        self.gateway = gateway
        self.store = store if store is not None else InMemoryConversationStore()
        self.history_turns = history_turns
        self.tool_timeout = tool_timeout
        self.serialize_requests = serialize_requests

        self._user_locks: Dict[str, asyncio.Lock] = {}
        self._background: Set[asyncio.Future] = set()

    # ── Public API ────────────────────────────────────────────────

    async def chat(self, user_id: str, message: str, include_tools: bool = True) -> ChatResult:
        """
        Run a full turn and return the buffered result.

        Raises:
            InvalidRequest: message or user_id missing
            ModelUnavailable / ModelTimeout: the model stream failed
        """
        turn = self._new_turn(user_id, message, include_tools)
        async with self._serialized(user_id):
            try:
                async with aclosing(self._run_turn(turn)) as events:
                    async for _ in events:
                        pass
            except Exception as e:
                turn.advance(TurnState.ERRORED)
                logger.error(f"Chat processing error for {user_id}: {e}")
                raise

        return ChatResult(
            response_text=turn.text,
            tool_result=turn.tool_call,
            timestamp=turn.timestamp or utc_now(),
        )

    def chat_stream(self, user_id: str, message: str, include_tools: bool = True) -> AsyncIterator[ChatEvent]:
        """
        Run a turn as an event stream.

        Validation happens immediately; everything after is reported through
        events, ending with exactly one `complete` or `error`. Closing the
        iterator early cancels the turn.
        """
        turn = self._new_turn(user_id, message, include_tools)
        return self._stream(turn)

    async def get_history(self, user_id: str) -> List[ConversationTurn]:
        """Get conversation history."""
        return await self.store.get_history(user_id)

    async def clear_history(self, user_id: str):
        """Clear a conversation."""
        await self.store.clear(user_id)

    # ── Turn pipeline ─────────────────────────────────────────────

    def _new_turn(self, user_id: str, message: str, include_tools: bool) -> _Turn:
        if not user_id or not message or not str(message).strip():
            raise InvalidRequest("Message and userId are required")
        return _Turn(user_id=user_id, message=message, include_tools=include_tools)

    async def _stream(self, turn: _Turn) -> AsyncIterator[ChatEvent]:
        async with self._serialized(turn.user_id):
            try:
                async with aclosing(self._run_turn(turn)) as events:
                    async for event in events:
                        yield event
            except ChatError as e:
                turn.advance(TurnState.ERRORED)
                logger.error(f"Streaming chat failed for {turn.user_id}: {e.message}")
                yield ChatEvent.error(GENERATION_FAILED)
            except Exception as e:
                turn.advance(TurnState.ERRORED)
                logger.exception(f"Unexpected error in streaming chat for {turn.user_id}: {e}")
                yield ChatEvent.error(GENERATION_FAILED)
            finally:
                if turn.state not in FINISHED_STATES:
                    turn.advance(TurnState.CANCELLED)
                    await self._persist_truncated(turn)

    async def _run_turn(self, turn: _Turn) -> AsyncIterator[ChatEvent]:
        """Core turn logic shared by chat() and chat_stream()."""
        start_time = time.time()

        await self.store.append(turn.user_id, ConversationTurn(role=Role.USER, text=turn.message))

        tools = await self._available_tools(turn.include_tools)
        use_tools = turn.include_tools and bool(tools)

        history = await self.store.recent(turn.user_id, self.history_turns)
        context = {
            "userId": turn.user_id,
            "history": [t.to_dict() for t in history],
            "availableTools": [t.to_context() for t in tools],
        }

        if use_tools:
            system_prompt = PromptTemplates.get_system_prompt(
                PromptType.TOOLS, context=context, tools=context["availableTools"]
            )
        else:
            system_prompt = PromptTemplates.get_system_prompt(PromptType.GENERAL, context=context)

        turn.advance(TurnState.AWAITING_MODEL_STREAM)
        async with aclosing(self.model_client.stream_completion(system_prompt, turn.message)) as fragments:
            async for fragment in fragments:
                if turn.state is TurnState.AWAITING_MODEL_STREAM:
                    turn.advance(TurnState.STREAMING_TOKENS)
                turn.parts.append(fragment)

                if use_tools and turn.directive is None:
                    turn.directive = parse_tool_directive(turn.text)
                    if turn.directive:
                        logger.info(f"Tool directive detected for {turn.user_id}: {turn.directive.tool}")

                yield ChatEvent.chunk(fragment)

        logger.info(
            f"Model response for {turn.user_id}: {len(turn.text)} chars "
            f"in {(time.time() - start_time) * 1000:.0f}ms"
        )

        if turn.directive:
            turn.advance(TurnState.TOOL_PENDING)
            directive = turn.directive
            yield ChatEvent.tool_invocation(directive.tool, directive.parameters)

            turn.advance(TurnState.TOOL_EXECUTING)
            try:
                result = await self._invoke_tool(directive)
            except Exception as e:
                logger.error(f"Tool execution error for {directive.tool}: {e}")
                turn.tool_call = ToolCall(directive.tool, directive.parameters, ToolInvocationResult.failure(TOOL_FAILED))
                turn.advance(TurnState.TOOL_RESOLVED)
                yield ChatEvent.tool_error(directive.tool, TOOL_FAILED)
            else:
                turn.tool_call = ToolCall(directive.tool, directive.parameters, result)
                turn.advance(TurnState.TOOL_RESOLVED)
                yield ChatEvent.tool_result(directive.tool, result.to_dict())

        turn.advance(TurnState.COMPLETING)
        assistant = ConversationTurn(
            role=Role.ASSISTANT,
            text=turn.text,
            tool_result=turn.tool_call.to_dict() if turn.tool_call else None,
        )
        await self.store.append(turn.user_id, assistant)
        turn.persisted = True
        turn.timestamp = assistant.timestamp
        turn.advance(TurnState.DONE)

        yield ChatEvent.complete(assistant.timestamp)

    # ── Helpers ───────────────────────────────────────────────────

    async def _available_tools(self, include_tools: bool) -> List[ToolDescriptor]:
        if not include_tools or self.gateway is None:
            return []
        try:
            return list(await self.gateway.list_tools())
        except Exception as e:
            logger.warning(f"Failed to get available tools: {e}")
            return []

    async def _invoke_tool(self, directive: ToolDirective) -> ToolInvocationResult:
        """
        Invoke a tool with an upper time bound.

        The call runs as its own task so cancelling the turn does not
        abort a request already sent to the gateway; a late result is dropped.
        """
        task = asyncio.ensure_future(
            asyncio.wait_for(
                self.gateway.invoke(directive.tool, directive.parameters),
                timeout=self.tool_timeout,
            )
        )
        self._track(task)
        try:
            return await asyncio.shield(task)
        except asyncio.TimeoutError:
            logger.error(f"Tool {directive.tool} timed out after {self.tool_timeout}s")
            return ToolInvocationResult.failure("timeout", status=408)

    async def _persist_truncated(self, turn: _Turn):
        """Record the partial reply of a cancelled turn."""
        if turn.persisted:
            return
        turn.persisted = True
        assistant = ConversationTurn(role=Role.ASSISTANT, text=turn.text, truncated=True)
        logger.info(f"Turn for {turn.user_id} cancelled after {len(turn.text)} chars")
        write = asyncio.ensure_future(self.store.append(turn.user_id, assistant))
        self._track(write)
        await asyncio.shield(write)

    def _track(self, future: asyncio.Future):
        self._background.add(future)
        future.add_done_callback(self._untrack)

    def _untrack(self, future: asyncio.Future):
        self._background.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.debug(f"Background task finished with error: {future.exception()}")

    @asynccontextmanager
    async def _serialized(self, user_id: str):
        """One in-flight turn per user when serialization is enabled."""
        if not self.serialize_requests:
            yield
            return
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = self._user_locks[user_id] = asyncio.Lock()
        async with lock:
            yield
