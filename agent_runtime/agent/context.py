"""
Execution context — task-scoped state an agent carries through a run
"""
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid

from agent_runtime.models import AgentTask, StepStatus, StepType


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ExecutionStep:
    """One entry in an agent's execution history"""
    step_type: StepType
    description: str
    input: Any = None
    output: Any = None
    status: StepStatus = StepStatus.RUNNING
    step_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = field(default_factory=_now)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    def complete(self, output: Any = None) -> None:
        self.output = output
        self.status = StepStatus.COMPLETED
        self.completed_at = _now()

    def fail(self, error: str, output: Any = None) -> None:
        self.output = output
        self.error = error
        self.status = StepStatus.FAILED
        self.completed_at = _now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "step_type": self.step_type.value,
            "description": self.description,
            "input": self.input,
            "output": self.output,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
        }


@dataclass
class ExecutionContext:
    """
    Current task, step history and free-form variables of one agent.

    Mutated only by the owning agent's reasoning loop. Tool permission checks
    read the caller identity from here: ``user_id`` and the ``tenant_id`` /
    ``permission_level`` context variables.
    """
    current_task: Optional[AgentTask] = None
    execution_history: List[ExecutionStep] = field(default_factory=list)
    context_variables: Dict[str, Any] = field(default_factory=dict)
    session_id: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def tenant_id(self) -> Optional[str]:
        value = self.context_variables.get("tenant_id")
        return str(value) if value is not None else None

    def record(self, step_type: StepType, description: str, input: Any = None) -> ExecutionStep:
        """Append a running step to the history and return it"""
        step = ExecutionStep(step_type=step_type, description=description, input=input)
        self.execution_history.append(step)
        return step

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_task": self.current_task.model_dump(mode="json") if self.current_task else None,
            "execution_history": [s.to_dict() for s in self.execution_history],
            "context_variables": dict(self.context_variables),
            "session_id": self.session_id,
            "user_id": self.user_id,
        }
