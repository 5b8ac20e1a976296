"""
Agent package — Core of the agent runtime

Components:
- MemoryStore: Short-term, working and long-term memory per agent
- ToolRegistry: Register, permission-check and invoke tools
- ReasoningEngine: Prompt building, model call and action parsing
- AgentRegistry: Agent lifecycle and the reasoning loop
"""
from agent_runtime.agent.context import ExecutionContext, ExecutionStep
from agent_runtime.agent.memory import MemoryItem, MemoryStore
from agent_runtime.agent.tool_registry import (
    Tool,
    ToolCallRequest,
    ToolCallResponse,
    ToolCategory,
    ToolMetadata,
    ToolParameter,
    ToolRegistry,
    ToolResult,
    ToolUsageStats,
)
from agent_runtime.agent.reasoning import (
    Complete,
    ContinueReasoning,
    ReasoningEngine,
    ReasoningResult,
    RequestInput,
    Respond,
    ToolCall,
)
from agent_runtime.agent.executor import AgentInstance, AgentRegistry

__all__ = [
    "ExecutionContext", "ExecutionStep",
    "MemoryItem", "MemoryStore",
    "Tool", "ToolCallRequest", "ToolCallResponse", "ToolCategory", "ToolMetadata",
    "ToolParameter", "ToolRegistry", "ToolResult", "ToolUsageStats",
    "ReasoningEngine", "ReasoningResult",
    "ToolCall", "Respond", "RequestInput", "Complete", "ContinueReasoning",
    "AgentInstance", "AgentRegistry",
]
