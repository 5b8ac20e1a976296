"""
Executor — Agent registry and execution engine (the agent loop)

Owns every live agent instance and drives its reasoning loop:
1. Check stop / step limit / time budget
2. Ask the ReasoningEngine for the next action
3. Dispatch: call a tool, reply, request input, complete, or keep thinking
4. Write the outcome back into the agent's memory
5. Return a terminal payload to the caller
"""
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import asyncio
import json
import time
import uuid

from agent_runtime.agent.context import ExecutionContext
from agent_runtime.agent.locks import ReadWriteLock
from agent_runtime.agent.memory import MemoryItem, MemoryStore
from agent_runtime.agent.reasoning import (
    Complete,
    ContinueReasoning,
    ReasoningEngine,
    RequestInput,
    Respond,
    ToolCall,
)
from agent_runtime.agent.tool_registry import ToolCallRequest, ToolRegistry, ToolResult
from agent_runtime.config import AgentRuntimeConfig
from agent_runtime.errors import (
    AgentRuntimeError,
    ExecutionTimeoutError,
    NotFoundError,
    PermissionDeniedError,
    ResourceLimitError,
    ValidationError,
)
from agent_runtime.logs import get_logger
from agent_runtime.models import (
    AgentConfig,
    AgentState,
    AgentTask,
    MemoryType,
    StepStatus,
    StepType,
    TaskStatus,
)

logger = get_logger(__name__)

TOOL_USAGE_IMPORTANCE = 0.7
RESPONSE_IMPORTANCE = 0.8
COMPLETION_IMPORTANCE = 0.9
TASK_IMPORTANCE = 0.6
MAX_MEMORY_CONTENT = 500


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AgentInstance:
    """A live agent. Only ever handed out as a snapshot (to_dict)."""
    config: AgentConfig
    memory: MemoryStore
    agent_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: AgentState = AgentState.IDLE
    execution_context: ExecutionContext = field(default_factory=ExecutionContext)
    created_at: datetime = field(default_factory=_now)
    last_active_at: datetime = field(default_factory=_now)
    run_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def touch(self) -> None:
        self.last_active_at = _now()

    def summary(self) -> Dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "name": self.config.name,
            "state": self.state.value,
            "created_at": self.created_at.isoformat(),
            "last_active_at": self.last_active_at.isoformat(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.summary(),
            "config": self.config.model_dump(mode="json"),
            "memory": self.memory.to_dict(),
            "execution_context": self.execution_context.to_dict(),
        }


class AgentRegistry:
    """
    Capacity-bounded map of agent instances.

    The map is guarded by a reader/writer lock; writes (create, remove,
    cleanup, state transitions) are short and never await I/O. Reasoning
    loops run outside the lock, one at a time per agent.

    Usage:
        registry = AgentRegistry(config, engine, tools)
        agent_id = await registry.create_agent(AgentConfig(name="helper"))
        payload = await registry.execute_task(agent_id, AgentTask(description="..."))
    """

    def __init__(
        self,
        config: AgentRuntimeConfig,
        engine: ReasoningEngine,
        tool_registry: ToolRegistry,
    ):
        self.config = config
        self.engine = engine
        self.tool_registry = tool_registry
        self._agents: Dict[str, AgentInstance] = {}
        self._lock = ReadWriteLock()

    # ─── Lifecycle ───────────────────────────────────────────────────────────

    async def create_agent(self, config: AgentConfig) -> str:
        """
        Create an idle agent.

        Raises:
            ResourceLimitError: max_concurrent_agents agents already exist
        """
        agent = AgentInstance(config=config, memory=MemoryStore(self.config.memory_config))
        context = agent.execution_context
        if config.tenant_id is not None:
            context.context_variables["tenant_id"] = config.tenant_id
        context.user_id = config.created_by

        async with self._lock.write():
            if len(self._agents) >= self.config.max_concurrent_agents:
                raise ResourceLimitError(
                    "Maximum number of concurrent agents reached",
                    {"max_concurrent_agents": self.config.max_concurrent_agents},
                )
            self._agents[agent.agent_id] = agent

        logger.info(f"🤖 Created agent: {agent.agent_id} ({config.name})")
        return agent.agent_id

    async def get_state(self, agent_id: str) -> AgentState:
        async with self._lock.read():
            return self._require(agent_id).state

    async def get_agent(self, agent_id: str) -> Dict[str, Any]:
        """Snapshot of an agent (config, state, memory, context)"""
        async with self._lock.read():
            return self._require(agent_id).to_dict()

    async def list_agents(self) -> List[Dict[str, Any]]:
        async with self._lock.read():
            return [agent.summary() for agent in self._agents.values()]

    async def count(self) -> int:
        async with self._lock.read():
            return len(self._agents)

    async def stop(self, agent_id: str) -> None:
        """Mark an agent stopped. Its loop exits at the next check. Idempotent."""
        async with self._lock.write():
            agent = self._agents.get(agent_id)
            if agent is None or agent.state == AgentState.STOPPED:
                return
            agent.state = AgentState.STOPPED
        logger.info(f"Stopped agent: {agent_id}")

    async def remove_agent(self, agent_id: str) -> None:
        async with self._lock.write():
            agent = self._require(agent_id)
            agent.state = AgentState.STOPPED
            del self._agents[agent_id]
        logger.info(f"Removed agent: {agent_id}")

    async def cleanup_inactive(
        self,
        idle_timeout: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Remove agents idle for at least `idle_timeout` seconds.

        Args:
            idle_timeout: Seconds of inactivity; defaults to the configured value
            now: Reference time for the sweep (defaults to current UTC time)

        Returns:
            Number of agents removed
        """
        timeout = timedelta(
            seconds=self.config.idle_timeout_seconds if idle_timeout is None else idle_timeout
        )

        async with self._lock.write():
            reference = now or _now()
            stale = [
                agent_id
                for agent_id, agent in self._agents.items()
                if reference - agent.last_active_at >= timeout
            ]
            for agent_id in stale:
                self._agents[agent_id].state = AgentState.STOPPED
                del self._agents[agent_id]

        if stale:
            logger.info(f"🧹 Cleaned up {len(stale)} inactive agents")
        return len(stale)

    # ─── Execution ───────────────────────────────────────────────────────────

    async def execute_task(self, agent_id: str, task: AgentTask) -> Dict[str, Any]:
        """
        Run a task on an agent until a terminal action, limit, or stop.

        Returns:
            The terminal payload: {"type": "response" | "input_request" |
            "timeout" | "stopped", ...} or the result of a Complete action

        Raises:
            NotFoundError: unknown agent
            InternalError: the language model failed (agent is kept, in Error)
        """
        async with self._lock.read():
            agent = self._require(agent_id)

        async with agent.run_lock:
            task = task.model_copy(update={"status": TaskStatus.IN_PROGRESS})
            async with self._lock.write():
                if self._agents.get(agent_id) is not agent:
                    raise NotFoundError(f"Agent '{agent_id}' not found", {"agent_id": agent_id})
                agent.execution_context.current_task = task
                agent.state = AgentState.THINKING
                agent.touch()

            agent.memory.clear_working()
            agent.memory.add_working(
                f"Task: {task.description}\nObjective: {task.objective}",
                importance=TASK_IMPORTANCE,
                tags=["task"],
            )

            logger.debug(f"Executing task {task.task_id} on agent {agent_id}")
            try:
                payload, final_state, task_status = await self._reasoning_loop(agent, task)
            except AgentRuntimeError as e:
                async with self._lock.write():
                    agent.execution_context.current_task = task.model_copy(
                        update={"status": TaskStatus.FAILED}
                    )
                    if agent.state != AgentState.STOPPED:
                        agent.state = AgentState.ERROR
                    agent.touch()
                logger.error(f"Task {task.task_id} failed on agent {agent_id}: {e.message}")
                raise
            except asyncio.CancelledError:
                async with self._lock.write():
                    for step in agent.execution_context.execution_history:
                        if step.status == StepStatus.RUNNING:
                            step.fail("Cancelled")
                    agent.execution_context.current_task = task.model_copy(
                        update={"status": TaskStatus.CANCELLED}
                    )
                    agent.state = AgentState.STOPPED
                    agent.touch()
                logger.warning(f"Task {task.task_id} cancelled on agent {agent_id}")
                raise

            async with self._lock.write():
                agent.execution_context.current_task = task.model_copy(update={"status": task_status})
                if agent.state != AgentState.STOPPED:
                    agent.state = final_state
                agent.touch()

        logger.info(
            f"🏁 Task {task.task_id} finished on agent {agent_id}: "
            f"{payload.get('type', 'result') if isinstance(payload, dict) else 'result'}"
        )
        return payload

    async def _reasoning_loop(
        self,
        agent: AgentInstance,
        task: AgentTask,
    ) -> Tuple[Any, AgentState, TaskStatus]:
        context = agent.execution_context
        budget = self._time_budget(task)
        started = time.monotonic()
        step_count = 0

        while True:
            if agent.state == AgentState.STOPPED:
                return self._stopped_payload(step_count), AgentState.STOPPED, TaskStatus.CANCELLED

            if step_count >= self.config.max_reasoning_steps:
                logger.warning(f"Agent {agent.agent_id} reached the reasoning step limit")
                break

            remaining = budget - (time.monotonic() - started)
            if remaining <= 0:
                logger.warning(f"Agent {agent.agent_id} reasoning timed out")
                break

            step_count += 1
            agent.touch()
            self._set_state(agent, AgentState.THINKING)
            step = context.record(StepType.REASONING, f"Reasoning step {step_count}")

            try:
                result = await self.engine.reason(agent.config, context, agent.memory, timeout=remaining)
            except ExecutionTimeoutError as e:
                step.fail(e.message)
                logger.warning(f"Agent {agent.agent_id} reasoning timed out during model call")
                break
            except AgentRuntimeError as e:
                step.fail(e.message)
                raise
            step.complete(result.to_dict())

            # stop() may have landed while the model was answering
            if agent.state == AgentState.STOPPED:
                return self._stopped_payload(step_count), AgentState.STOPPED, TaskStatus.CANCELLED

            action = result.next_action
            if isinstance(action, ToolCall):
                await self._dispatch_tool(agent, action)
                continue

            if isinstance(action, Respond):
                context.record(StepType.USER_INTERACTION, "Respond", action.message).complete()
                agent.memory.add(
                    f"Response: {action.message}",
                    importance=RESPONSE_IMPORTANCE,
                    memory_type=MemoryType.CONVERSATION,
                )
                payload = {"type": "response", "message": action.message, "reasoning_steps": step_count}
                return payload, AgentState.COMPLETED, TaskStatus.COMPLETED

            if isinstance(action, Complete):
                agent.memory.add(
                    f"Task completed: {_describe(action.result)}",
                    importance=COMPLETION_IMPORTANCE,
                    memory_type=MemoryType.TASK_EXECUTION,
                )
                return action.result, AgentState.COMPLETED, TaskStatus.COMPLETED

            if isinstance(action, RequestInput):
                context.record(StepType.USER_INTERACTION, "Request input", action.prompt).complete()
                self._set_state(agent, AgentState.WAITING_FOR_INPUT)
                payload = {"type": "input_request", "prompt": action.prompt, "reasoning_steps": step_count}
                return payload, AgentState.WAITING_FOR_INPUT, TaskStatus.IN_PROGRESS

            if isinstance(action, ContinueReasoning):
                continue

        payload = {
            "type": "timeout",
            "message": "Reasoning loop timed out or reached the step limit",
            "reasoning_steps": step_count,
        }
        return payload, AgentState.COMPLETED, TaskStatus.FAILED

    async def _dispatch_tool(self, agent: AgentInstance, action: ToolCall) -> ToolResult:
        """Call a tool and remember the outcome; failures come back as data"""
        context = agent.execution_context
        name = action.tool_name
        self._set_state(agent, AgentState.EXECUTING_TOOL)
        step = context.record(StepType.TOOL_CALL, f"Tool call: {name}", action.parameters)

        if name not in agent.config.available_tools:
            result = ToolResult(
                success=False,
                error=f"Tool '{name}' is not available to this agent",
                metadata={"error_kind": NotFoundError.kind.value},
            )
        else:
            request = ToolCallRequest(
                tool_name=name,
                parameters=action.parameters,
                context=context,
                timeout_seconds=self.config.tool_call_timeout_seconds,
            )
            try:
                response = await self.tool_registry.call(request)
                result = response.result
            except (ValidationError, NotFoundError, PermissionDeniedError, ResourceLimitError) as e:
                result = ToolResult(success=False, error=e.message, metadata={"error_kind": e.kind.value})

        if result.success:
            step.complete(result.to_dict())
            content = f"Tool call: {name} -> success: {_describe(result.data)}"
        else:
            step.fail(result.error or "unknown error", result.to_dict())
            content = f"Tool call: {name} -> failed: {result.error}"
            logger.warning(f"Agent {agent.agent_id} tool call failed: {name} - {result.error}")

        agent.memory.add(MemoryItem(
            content=content,
            memory_type=MemoryType.TOOL_USAGE,
            importance_score=TOOL_USAGE_IMPORTANCE,
            tags=["tool", name, "success" if result.success else "failure"],
        ))
        self._set_state(agent, AgentState.THINKING)
        return result

    # ─── Helpers ─────────────────────────────────────────────────────────────

    def _require(self, agent_id: str) -> AgentInstance:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise NotFoundError(f"Agent '{agent_id}' not found", {"agent_id": agent_id})
        return agent

    def _time_budget(self, task: AgentTask) -> float:
        budget = float(self.config.reasoning_timeout_seconds)
        if task.deadline is not None:
            deadline = task.deadline
            if deadline.tzinfo is None:
                deadline = deadline.replace(tzinfo=timezone.utc)
            budget = min(budget, (deadline - _now()).total_seconds())
        return budget

    @staticmethod
    def _set_state(agent: AgentInstance, state: AgentState) -> None:
        # A stop request wins over any transition the loop makes
        if agent.state != AgentState.STOPPED:
            agent.state = state

    @staticmethod
    def _stopped_payload(step_count: int) -> Dict[str, Any]:
        return {"type": "stopped", "message": "Agent was stopped", "reasoning_steps": step_count}


def _describe(value: Any) -> str:
    if isinstance(value, str):
        text = value
    else:
        text = json.dumps(value, default=str, ensure_ascii=False)
    if len(text) > MAX_MEMORY_CONTENT:
        text = text[:MAX_MEMORY_CONTENT] + "..."
    return text
