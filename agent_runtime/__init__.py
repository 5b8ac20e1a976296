"""
agent_runtime — hosts LLM-driven agents that reason, call tools and remember
"""
from agent_runtime.errors import (
    AgentRuntimeError,
    ErrorKind,
    ExecutionTimeoutError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
    ResourceLimitError,
    ValidationError,
)
from agent_runtime.models import (
    AgentConfig,
    AgentState,
    AgentTask,
    MemoryType,
    PermissionLevel,
    ReasoningStrategy,
    TaskPriority,
    TaskStatus,
    ToolPermissions,
)
from agent_runtime.runtime import AgentRuntime, create_runtime

__version__ = "0.1.0"

__all__ = [
    "AgentRuntime", "create_runtime",
    "AgentConfig", "AgentTask", "AgentState", "TaskStatus", "TaskPriority",
    "MemoryType", "PermissionLevel", "ReasoningStrategy", "ToolPermissions",
    "AgentRuntimeError", "ErrorKind", "ValidationError", "NotFoundError",
    "PermissionDeniedError", "ResourceLimitError", "ExecutionTimeoutError",
    "InternalError",
]
