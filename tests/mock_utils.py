"""
Shared utilities for testing the agent runtime.

Provides a scripted language model client and a handful of small tools with
predictable behaviour (slow, failing, echoing).
"""

import asyncio
from typing import Any, Dict, List, Optional

from agent_runtime.agent.context import ExecutionContext
from agent_runtime.agent.tool_registry import Tool, ToolParameter, ToolResult


class MockLanguageModel:
  """
  Language model client that replays scripted responses.

  Usage:
      # Single reply
      model = MockLanguageModel(["Hello! How can I help you today?"])

      # Tool call, then a final answer
      model = MockLanguageModel([
          'Action: calculator {"operation": "add", "a": 2, "b": 3}',
          "Final Answer: 5",
      ])

  Once the script runs out, `default` is returned for every further call.
  An Exception instance in the script is raised instead of returned.
  """

  def __init__(self, responses: List[Any] = None, default: str = "", delay: float = 0.0):
    self.responses = list(responses or [])
    self.default = default
    self.delay = delay
    self.call_count = 0
    self.prompts: List[str] = []
    self.temperatures: List[Optional[float]] = []

  async def generate_text(self, prompt: str, temperature: Optional[float] = None) -> str:
    self.call_count += 1
    self.prompts.append(prompt)
    self.temperatures.append(temperature)

    if self.delay:
      await asyncio.sleep(self.delay)

    response = self.responses.pop(0) if self.responses else self.default
    if isinstance(response, Exception):
      raise response
    return response

  async def generate_embedding(self, text: str) -> List[float]:
    return [float(len(text)), 0.0, 1.0]


class EchoTool(Tool):
  """Returns its `text` parameter"""

  def __init__(self, name: str = "echo"):
    super().__init__(
      name=name,
      description="Echo the given text back",
      parameters=[ToolParameter(name="text", type="string", description="Text to echo")],
    )
    self.calls: List[Dict[str, Any]] = []

  async def execute(self, parameters: Dict[str, Any], context: ExecutionContext) -> ToolResult:
    self.calls.append(parameters)
    return ToolResult(success=True, data=parameters["text"])


class SlowTool(Tool):
  """Sleeps for `seconds` before succeeding"""

  def __init__(self, name: str = "slow", seconds: float = 5.0):
    super().__init__(name=name, description="Sleep, then succeed")
    self.seconds = seconds

  async def execute(self, parameters: Dict[str, Any], context: ExecutionContext) -> ToolResult:
    await asyncio.sleep(self.seconds)
    return ToolResult(success=True, data="done")


class FailingTool(Tool):
  """Raises from execute()"""

  def __init__(self, name: str = "failing", error: Exception = None):
    super().__init__(name=name, description="Always raises")
    self.error = error or RuntimeError("boom")

  async def execute(self, parameters: Dict[str, Any], context: ExecutionContext) -> ToolResult:
    raise self.error


def create_scripted_model(*responses: Any, default: str = "") -> MockLanguageModel:
  """Create a MockLanguageModel from positional responses"""
  return MockLanguageModel(list(responses), default=default)
