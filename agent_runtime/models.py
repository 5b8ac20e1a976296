"""
Pydantic models for the runtime's caller-facing data contracts
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum
import uuid


def _now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


# ===== Enums =====

class ReasoningStrategy(str, Enum):
    REACT = "react"
    CHAIN_OF_THOUGHT = "chain_of_thought"
    PLAN_AND_EXECUTE = "plan_and_execute"
    SELF_REFLECTION = "self_reflection"


class AgentState(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    EXECUTING_TOOL = "executing_tool"
    WAITING_FOR_INPUT = "waiting_for_input"
    COMPLETED = "completed"
    ERROR = "error"
    PAUSED = "paused"
    STOPPED = "stopped"


class TaskPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class MemoryType(str, Enum):
    CONVERSATION = "conversation"
    TASK_EXECUTION = "task_execution"
    TOOL_USAGE = "tool_usage"
    LEARNING_EXPERIENCE = "learning_experience"
    ERROR_RECORD = "error_record"
    SUCCESS_CASE = "success_case"


class StepType(str, Enum):
    REASONING = "reasoning"
    TOOL_CALL = "tool_call"
    MEMORY_RETRIEVAL = "memory_retrieval"
    MEMORY_STORAGE = "memory_storage"
    USER_INTERACTION = "user_interaction"
    TASK_PLANNING = "task_planning"


class StepStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class PermissionLevel(str, Enum):
    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return list(PermissionLevel).index(self)


# ===== Agent Models =====

class AgentConfig(BaseModel):
    """Immutable configuration an agent is created with"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    system_prompt: str = ""
    available_tools: List[str] = Field(default_factory=list)
    reasoning_strategy: ReasoningStrategy = ReasoningStrategy.REACT
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(1000, gt=0)
    tenant_id: Optional[str] = None
    created_by: Optional[str] = None


class AgentTask(BaseModel):
    """A unit of work submitted to an agent"""
    task_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    description: str
    objective: str = ""
    parameters: Dict[str, Any] = Field(default_factory=dict)
    priority: TaskPriority = TaskPriority.NORMAL
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = Field(default_factory=_now)
    deadline: Optional[datetime] = None


# ===== Tool Models =====

class ToolPermissions(BaseModel):
    """Who may call a tool, and how often"""
    tool_name: str = ""
    enabled: bool = True
    allowed_tenants: List[str] = Field(default_factory=list)
    blocked_tenants: List[str] = Field(default_factory=list)
    allowed_users: List[str] = Field(default_factory=list)
    blocked_users: List[str] = Field(default_factory=list)
    hourly_limit: Optional[int] = Field(None, ge=0)
    daily_limit: Optional[int] = Field(None, ge=0)
    required_permission_level: PermissionLevel = PermissionLevel.BASIC
