"""
Runtime errors — typed failures surfaced to callers of the agent runtime

Every failure the runtime reports is an AgentRuntimeError carrying an
ErrorKind, so the (external) API layer can map it to a response without
inspecting messages.
"""
import asyncio
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Error taxonomy"""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    RESOURCE_LIMIT = "resource_limit"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


class AgentRuntimeError(Exception):
    """
    Base class for all runtime errors.

    Attributes:
        kind: ErrorKind of the failure
        message: Human-readable message
        details: Extra context (tool name, agent id, limits, ...)
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind.value,
            "detail": self.message,
            **({"context": self.details} if self.details else {}),
        }


class ValidationError(AgentRuntimeError):
    """Bad or missing parameters, malformed tool name"""
    kind = ErrorKind.VALIDATION


class NotFoundError(AgentRuntimeError):
    """Unknown agent or tool"""
    kind = ErrorKind.NOT_FOUND


class PermissionDeniedError(AgentRuntimeError):
    """Disabled tool, tenant/user not allowed"""
    kind = ErrorKind.PERMISSION_DENIED


class ResourceLimitError(AgentRuntimeError):
    """Agent capacity or tool call quota exceeded"""
    kind = ErrorKind.RESOURCE_LIMIT


class ExecutionTimeoutError(AgentRuntimeError, asyncio.TimeoutError):
    """
    A tool call or reasoning step ran past its time budget.

    Raised internally and converted into data by the runtime: a failed
    ToolResult for tools, a timeout payload for the reasoning loop.
    """
    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        operation: str,
        timeout: float,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout}s", details)


class InternalError(AgentRuntimeError):
    """Unexpected provider or tool failure"""
    kind = ErrorKind.INTERNAL
