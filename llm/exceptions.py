"""
Error taxonomy for the Teams AI Agent.

Model and gateway failures are raised as ChatError subclasses; each carries
the HTTP status the API layer maps it to.
"""


class ChatError(Exception):
    """Base class for agent errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class InvalidRequest(ChatError):
    """Missing or malformed client input."""

    status_code = 400


class ModelUnavailable(ChatError):
    """The language-model backend could not be reached or rejected the request."""

    status_code = 502


class ModelTimeout(ChatError):
    """No fragment arrived from the model within the inactivity window."""

    status_code = 504


class GatewayUnavailable(ChatError):
    """The MCP Gateway could not be reached or refused the call."""

    status_code = 502


class ToolNotFound(ChatError):
    """The MCP Gateway does not know the requested tool."""

    status_code = 404
