"""
Tests for the agent registry and the reasoning loop.

Every scenario drives the loop with a scripted MockLanguageModel, so the
number of model calls and the actions taken are fully deterministic.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from agent_runtime.agent.executor import AgentRegistry
from agent_runtime.agent.reasoning import ReasoningEngine
from agent_runtime.agent.tool_registry import ToolRegistry
from agent_runtime.config import AgentRuntimeConfig
from agent_runtime.errors import InternalError, NotFoundError, ResourceLimitError
from agent_runtime.models import AgentConfig, AgentState, AgentTask, TaskStatus, ToolPermissions
from mock_utils import EchoTool, MockLanguageModel, SlowTool


async def make_registry(model, tools=(), **config_overrides):
  tool_registry = ToolRegistry()
  for tool in tools:
    await tool_registry.register(tool)
  config = AgentRuntimeConfig(**config_overrides)
  engine = ReasoningEngine(model, tool_registry)
  return AgentRegistry(config, engine, tool_registry), tool_registry


def short_term_contents(snapshot):
  return [m["content"] for m in snapshot["memory"]["short_term"]]


class TestAgentLifecycle:
  @pytest.mark.asyncio
  async def test_create_agent_starts_idle(self):
    registry, _ = await make_registry(MockLanguageModel())
    agent_id = await registry.create_agent(AgentConfig(name="helper"))

    assert await registry.get_state(agent_id) == AgentState.IDLE
    assert await registry.count() == 1
    assert (await registry.list_agents())[0]["agent_id"] == agent_id

  @pytest.mark.asyncio
  async def test_capacity_limit(self):
    registry, _ = await make_registry(MockLanguageModel(), max_concurrent_agents=2)
    await registry.create_agent(AgentConfig(name="a"))
    await registry.create_agent(AgentConfig(name="b"))

    with pytest.raises(ResourceLimitError):
      await registry.create_agent(AgentConfig(name="c"))

    assert await registry.count() == 2

  @pytest.mark.asyncio
  async def test_concurrent_creates_respect_capacity(self):
    registry, _ = await make_registry(MockLanguageModel(), max_concurrent_agents=3)

    results = await asyncio.gather(
      *[registry.create_agent(AgentConfig(name=f"a{i}")) for i in range(6)],
      return_exceptions=True,
    )

    assert sum(isinstance(r, str) for r in results) == 3
    assert sum(isinstance(r, ResourceLimitError) for r in results) == 3
    assert await registry.count() == 3

  @pytest.mark.asyncio
  async def test_unknown_agent(self):
    registry, _ = await make_registry(MockLanguageModel())

    with pytest.raises(NotFoundError):
      await registry.execute_task("missing", AgentTask(description="x"))
    with pytest.raises(NotFoundError):
      await registry.get_state("missing")

  @pytest.mark.asyncio
  async def test_identity_seeded_into_context(self):
    registry, _ = await make_registry(MockLanguageModel())
    agent_id = await registry.create_agent(AgentConfig(name="a", tenant_id="t1", created_by="u1"))

    context = (await registry.get_agent(agent_id))["execution_context"]
    assert context["context_variables"]["tenant_id"] == "t1"
    assert context["user_id"] == "u1"

  @pytest.mark.asyncio
  async def test_remove_agent(self):
    registry, _ = await make_registry(MockLanguageModel())
    agent_id = await registry.create_agent(AgentConfig(name="a"))

    await registry.remove_agent(agent_id)

    assert await registry.count() == 0
    with pytest.raises(NotFoundError):
      await registry.remove_agent(agent_id)

  @pytest.mark.asyncio
  async def test_stop_is_idempotent(self):
    registry, _ = await make_registry(MockLanguageModel())
    agent_id = await registry.create_agent(AgentConfig(name="a"))

    await registry.stop(agent_id)
    await registry.stop(agent_id)
    await registry.stop("missing")

    assert await registry.get_state(agent_id) == AgentState.STOPPED


class TestReasoningLoop:
  @pytest.mark.asyncio
  async def test_respond_scenario(self):
    model = MockLanguageModel(["Hello! How can I help you today?"])
    registry, _ = await make_registry(model)
    agent_id = await registry.create_agent(AgentConfig(name="greeter", system_prompt="Be friendly."))

    payload = await registry.execute_task(agent_id, AgentTask(description="Greet the user"))

    assert payload == {
      "type": "response",
      "message": "Hello! How can I help you today?",
      "reasoning_steps": 1,
    }
    assert model.call_count == 1
    assert await registry.get_state(agent_id) == AgentState.COMPLETED

    snapshot = await registry.get_agent(agent_id)
    assert snapshot["execution_context"]["current_task"]["status"] == TaskStatus.COMPLETED.value
    assert "Response: Hello! How can I help you today?" in short_term_contents(snapshot)

  @pytest.mark.asyncio
  async def test_working_memory_seeded_with_task(self):
    registry, _ = await make_registry(MockLanguageModel(["Final Answer: done"]))
    agent_id = await registry.create_agent(AgentConfig(name="a"))

    await registry.execute_task(agent_id, AgentTask(description="Sum numbers", objective="Get total"))

    working = (await registry.get_agent(agent_id))["memory"]["working"]
    assert [m["content"] for m in working] == ["Task: Sum numbers\nObjective: Get total"]
    assert working[0]["tags"] == ["task"]

  @pytest.mark.asyncio
  async def test_step_limit(self):
    model = MockLanguageModel(default="hmm")
    registry, _ = await make_registry(model, max_reasoning_steps=3)
    agent_id = await registry.create_agent(AgentConfig(name="a"))

    payload = await registry.execute_task(agent_id, AgentTask(description="Think forever"))

    assert payload["type"] == "timeout"
    assert payload["reasoning_steps"] == 3
    assert model.call_count == 3
    assert await registry.get_state(agent_id) == AgentState.COMPLETED
    snapshot = await registry.get_agent(agent_id)
    assert snapshot["execution_context"]["current_task"]["status"] == TaskStatus.FAILED.value

  @pytest.mark.asyncio
  async def test_expired_deadline_makes_no_model_calls(self):
    model = MockLanguageModel(["Final Answer: never"])
    registry, _ = await make_registry(model)
    agent_id = await registry.create_agent(AgentConfig(name="a"))
    task = AgentTask(description="Late", deadline=datetime.now(timezone.utc) - timedelta(seconds=1))

    payload = await registry.execute_task(agent_id, task)

    assert payload["type"] == "timeout"
    assert payload["reasoning_steps"] == 0
    assert model.call_count == 0

  @pytest.mark.asyncio
  async def test_slow_model_hits_reasoning_timeout(self):
    model = MockLanguageModel(["Final Answer: late"], delay=1.0)
    registry, _ = await make_registry(model, reasoning_timeout_seconds=0.05)
    agent_id = await registry.create_agent(AgentConfig(name="a"))

    payload = await registry.execute_task(agent_id, AgentTask(description="Slow"))

    assert payload["type"] == "timeout"
    assert payload["reasoning_steps"] == 1

  @pytest.mark.asyncio
  async def test_tool_call_then_complete(self):
    echo = EchoTool()
    model = MockLanguageModel(['Thought: echo it.\nAction: echo {"text": "hi"}', "Final Answer: hi"])
    registry, tools = await make_registry(model, tools=[echo])
    agent_id = await registry.create_agent(AgentConfig(name="a", available_tools=["echo"]))

    payload = await registry.execute_task(agent_id, AgentTask(description="Echo hi"))

    assert payload == {"message": "hi"}
    assert echo.calls == [{"text": "hi"}]
    assert model.call_count == 2
    assert "Tool call: echo -> success: hi" in model.prompts[1]

    contents = short_term_contents(await registry.get_agent(agent_id))
    assert "Tool call: echo -> success: hi" in contents
    assert 'Task completed: {"message": "hi"}' in contents
    assert (await tools.get_usage_stats("echo")).successful_calls == 1

  @pytest.mark.asyncio
  async def test_tool_timeout_does_not_abort_loop(self):
    model = MockLanguageModel(["Action: slow {}", "Final Answer: recovered"])
    registry, tools = await make_registry(model, tools=[SlowTool(seconds=5.0)], tool_call_timeout_seconds=0.05)
    agent_id = await registry.create_agent(AgentConfig(name="a", available_tools=["slow"]))

    payload = await registry.execute_task(agent_id, AgentTask(description="Try the slow tool"))

    assert payload == {"message": "recovered"}
    contents = short_term_contents(await registry.get_agent(agent_id))
    assert any(c.startswith("Tool call: slow -> failed:") and "timed out" in c for c in contents)
    assert (await tools.get_usage_stats("slow")).failed_calls == 1

  @pytest.mark.asyncio
  async def test_tool_outside_allow_list_is_not_called(self):
    echo = EchoTool()
    model = MockLanguageModel(['Action: echo {"text": "x"}', "Final Answer: ok"])
    registry, _ = await make_registry(model, tools=[echo])
    agent_id = await registry.create_agent(AgentConfig(name="a", available_tools=[]))

    payload = await registry.execute_task(agent_id, AgentTask(description="x"))

    assert payload == {"message": "ok"}
    assert echo.calls == []
    contents = short_term_contents(await registry.get_agent(agent_id))
    assert any(c.startswith("Tool call: echo -> failed:") for c in contents)

  @pytest.mark.asyncio
  async def test_invalid_tool_parameters_are_fed_back(self):
    model = MockLanguageModel(["Action: echo {}", "Final Answer: gave up"])
    registry, _ = await make_registry(model, tools=[EchoTool()])
    agent_id = await registry.create_agent(AgentConfig(name="a", available_tools=["echo"]))

    payload = await registry.execute_task(agent_id, AgentTask(description="x"))

    assert payload == {"message": "gave up"}
    assert "Missing required parameter: text" in model.prompts[1]

  @pytest.mark.asyncio
  async def test_permission_denied_for_agent_tenant(self):
    echo = EchoTool()
    model = MockLanguageModel(['Action: echo {"text": "x"}', "Final Answer: denied"])
    registry, tools = await make_registry(model)
    await tools.register(echo, ToolPermissions(blocked_tenants=["t1"]))
    agent_id = await registry.create_agent(AgentConfig(name="a", available_tools=["echo"], tenant_id="t1"))

    payload = await registry.execute_task(agent_id, AgentTask(description="x"))

    assert payload == {"message": "denied"}
    assert echo.calls == []
    assert (await tools.get_usage_stats("echo")).total_calls == 0

  @pytest.mark.asyncio
  async def test_request_input(self):
    registry, _ = await make_registry(MockLanguageModel(["REQUEST_INPUT: Which city?"]))
    agent_id = await registry.create_agent(AgentConfig(name="a"))

    payload = await registry.execute_task(agent_id, AgentTask(description="Weather"))

    assert payload == {"type": "input_request", "prompt": "Which city?", "reasoning_steps": 1}
    assert await registry.get_state(agent_id) == AgentState.WAITING_FOR_INPUT
    snapshot = await registry.get_agent(agent_id)
    assert snapshot["execution_context"]["current_task"]["status"] == TaskStatus.IN_PROGRESS.value

  @pytest.mark.asyncio
  async def test_model_failure_sets_error_state(self):
    registry, _ = await make_registry(MockLanguageModel([ConnectionError("provider down")]))
    agent_id = await registry.create_agent(AgentConfig(name="a"))

    with pytest.raises(InternalError):
      await registry.execute_task(agent_id, AgentTask(description="x"))

    assert await registry.get_state(agent_id) == AgentState.ERROR
    assert await registry.count() == 1

  @pytest.mark.asyncio
  async def test_stop_during_execution(self):
    model = MockLanguageModel(default="hmm", delay=0.2)
    registry, _ = await make_registry(model)
    agent_id = await registry.create_agent(AgentConfig(name="a"))

    running = asyncio.create_task(registry.execute_task(agent_id, AgentTask(description="x")))
    await asyncio.sleep(0.05)
    await registry.stop(agent_id)
    payload = await running

    assert payload["type"] == "stopped"
    assert payload["reasoning_steps"] == 1
    assert model.call_count == 1
    assert await registry.get_state(agent_id) == AgentState.STOPPED
    snapshot = await registry.get_agent(agent_id)
    assert snapshot["execution_context"]["current_task"]["status"] == TaskStatus.CANCELLED.value

  @pytest.mark.asyncio
  async def test_caller_cancellation_settles_agent(self):
    model = MockLanguageModel(["Final Answer: too late"], delay=1.0)
    registry, _ = await make_registry(model)
    agent_id = await registry.create_agent(AgentConfig(name="a"))

    with pytest.raises(asyncio.TimeoutError):
      await asyncio.wait_for(registry.execute_task(agent_id, AgentTask(description="x")), timeout=0.05)

    assert await registry.get_state(agent_id) == AgentState.STOPPED
    snapshot = await registry.get_agent(agent_id)
    context = snapshot["execution_context"]
    assert context["current_task"]["status"] == TaskStatus.CANCELLED.value
    assert all(step["status"] != "running" for step in context["execution_history"])
    assert context["execution_history"][-1]["error"] == "Cancelled"

  @pytest.mark.asyncio
  async def test_cancelled_agent_accepts_a_new_task(self):
    model = MockLanguageModel(["Second attempt works"], delay=0.2)
    registry, _ = await make_registry(model)
    agent_id = await registry.create_agent(AgentConfig(name="a"))

    with pytest.raises(asyncio.TimeoutError):
      await asyncio.wait_for(registry.execute_task(agent_id, AgentTask(description="x")), timeout=0.05)

    payload = await registry.execute_task(agent_id, AgentTask(description="y"))

    assert payload["message"] == "Second attempt works"
    assert await registry.get_state(agent_id) == AgentState.COMPLETED

  @pytest.mark.asyncio
  async def test_tasks_on_one_agent_run_one_at_a_time(self):
    model = MockLanguageModel(["First reply to you", "Second reply to you"], delay=0.05)
    registry, _ = await make_registry(model)
    agent_id = await registry.create_agent(AgentConfig(name="a"))

    first, second = await asyncio.gather(
      registry.execute_task(agent_id, AgentTask(description="one")),
      registry.execute_task(agent_id, AgentTask(description="two")),
    )

    assert first["message"] == "First reply to you"
    assert second["message"] == "Second reply to you"
    assert "Current task: one" in model.prompts[0]
    assert "Current task: two" in model.prompts[1]

  @pytest.mark.asyncio
  async def test_agents_run_concurrently(self):
    model = MockLanguageModel(default="A reply for everyone", delay=0.1)
    registry, _ = await make_registry(model)
    agent_ids = [await registry.create_agent(AgentConfig(name=f"a{i}")) for i in range(5)]

    payloads = await asyncio.wait_for(
      asyncio.gather(*[registry.execute_task(a, AgentTask(description="hi")) for a in agent_ids]),
      timeout=0.4,
    )

    assert all(p["type"] == "response" for p in payloads)


class TestCleanup:
  @pytest.mark.asyncio
  async def test_removes_only_idle_agents(self):
    registry, _ = await make_registry(MockLanguageModel())
    stale = await registry.create_agent(AgentConfig(name="stale"))
    fresh = await registry.create_agent(AgentConfig(name="fresh"))
    registry._agents[stale].last_active_at = datetime.now(timezone.utc) - timedelta(hours=2)

    removed = await registry.cleanup_inactive()

    assert removed == 1
    assert [a["agent_id"] for a in await registry.list_agents()] == [fresh]

  @pytest.mark.asyncio
  async def test_cleanup_frees_capacity(self):
    registry, _ = await make_registry(MockLanguageModel(), max_concurrent_agents=1)
    first = await registry.create_agent(AgentConfig(name="first"))

    with pytest.raises(ResourceLimitError):
      await registry.create_agent(AgentConfig(name="second"))

    registry._agents[first].last_active_at = datetime.now(timezone.utc) - timedelta(hours=2)
    assert await registry.cleanup_inactive() == 1

    assert await registry.create_agent(AgentConfig(name="second"))

  @pytest.mark.asyncio
  async def test_reference_time_and_timeout(self):
    registry, _ = await make_registry(MockLanguageModel())
    await registry.create_agent(AgentConfig(name="a"))
    await registry.create_agent(AgentConfig(name="b"))
    later = datetime.now(timezone.utc) + timedelta(minutes=10)

    assert await registry.cleanup_inactive(idle_timeout=3600, now=later) == 0
    assert await registry.cleanup_inactive(idle_timeout=60, now=later) == 2
    assert await registry.count() == 0
