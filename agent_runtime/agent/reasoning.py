"""
Reasoning Engine — one step of an agent's reasoning loop

Builds a prompt from the agent's config, current task, tool catalog and
relevant memories, asks the language model for the next move, and parses
the answer into a typed NextAction.

The parser is pluggable: pass any `(text, tool_names) -> ReasoningResult`
callable as `action_parser`. The default is keyword matching; if a parser
raises, the step degrades to ContinueReasoning.
"""
from typing import Dict, Any, List, Optional, Sequence, Callable, Union, ClassVar
from dataclasses import dataclass, field
import asyncio

from agent_runtime.agent.context import ExecutionContext
from agent_runtime.agent.memory import MemoryStore
from agent_runtime.agent.strategies import (
    ACTION_FORMAT_INSTRUCTION,
    classify_next_action,
    extract_reasoning_steps,
    get_strategy_instruction,
)
from agent_runtime.agent.tool_registry import ToolRegistry
from agent_runtime.errors import AgentRuntimeError, ExecutionTimeoutError, InternalError
from agent_runtime.logs import get_logger
from agent_runtime.models import AgentConfig
from agent_runtime.providers.client import LanguageModelClient

logger = get_logger(__name__)

RELEVANT_MEMORY_LIMIT = 5


# ─── Next actions ────────────────────────────────────────────────────────────

@dataclass
class ToolCall:
    tool_name: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    type: ClassVar[str] = "tool_call"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "tool_name": self.tool_name, "parameters": self.parameters}


@dataclass
class Respond:
    message: str
    type: ClassVar[str] = "respond"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "message": self.message}


@dataclass
class RequestInput:
    prompt: str
    type: ClassVar[str] = "request_input"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "prompt": self.prompt}


@dataclass
class Complete:
    result: Any
    type: ClassVar[str] = "complete"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "result": self.result}


@dataclass
class ContinueReasoning:
    focus: str = ""
    type: ClassVar[str] = "continue_reasoning"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "focus": self.focus}


NextAction = Union[ToolCall, Respond, RequestInput, Complete, ContinueReasoning]


@dataclass
class ReasoningResult:
    """Parsed outcome of one reasoning step"""
    reasoning: str
    next_action: NextAction
    confidence: float = 0.8
    steps: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reasoning": self.reasoning,
            "next_action": self.next_action.to_dict(),
            "confidence": self.confidence,
            "steps": self.steps,
        }


ActionParser = Callable[[str, Sequence[str]], ReasoningResult]


def parse_reasoning_response(text: str, tool_names: Sequence[str] = ()) -> ReasoningResult:
    """Default ActionParser: keyword classification of the model's text"""
    action_type, fields = classify_next_action(text, tool_names)

    if action_type == "tool_call":
        action = ToolCall(tool_name=fields["tool_name"], parameters=fields["parameters"])
        confidence = 0.8
    elif action_type == "complete":
        action = Complete(result=fields["result"])
        confidence = 0.8
    elif action_type == "request_input":
        action = RequestInput(prompt=fields["prompt"])
        confidence = 0.8
    elif action_type == "respond":
        action = Respond(message=fields["message"])
        confidence = 0.5
    else:
        action = ContinueReasoning(focus=fields.get("focus", ""))
        confidence = 0.0

    return ReasoningResult(
        reasoning=text,
        next_action=action,
        confidence=confidence,
        steps=extract_reasoning_steps(text),
    )


class ReasoningEngine:
    """
    Prompt builder + model call + action parser.

    Stateless apart from its collaborators; one engine serves every agent.
    """

    def __init__(
        self,
        llm_client: LanguageModelClient,
        tool_registry: ToolRegistry,
        action_parser: Optional[ActionParser] = None,
        memory_limit: int = RELEVANT_MEMORY_LIMIT,
    ):
        self.llm_client = llm_client
        self.tool_registry = tool_registry
        self.action_parser = action_parser or parse_reasoning_response
        self.memory_limit = memory_limit

    async def build_prompt(
        self,
        config: AgentConfig,
        context: ExecutionContext,
        memory: MemoryStore,
    ) -> str:
        """
        Assemble the reasoning prompt.

        Sections, in order: system prompt, current task, available tools,
        relevant memories, strategy instruction, action format. Memories used
        here are marked as accessed.
        """
        sections = []

        if config.system_prompt:
            sections.append(config.system_prompt)

        task = context.current_task
        if task is not None:
            sections.append(f"Current task: {task.description}\nObjective: {task.objective}")

        if config.available_tools:
            tools = await self.tool_registry.catalog(config.available_tools)
            if tools:
                lines = [f"- {t.name}: {t.description}" for t in tools]
                sections.append("Available tools:\n" + "\n".join(lines))

        memories = memory.retrieve_relevant(self.memory_limit)
        if memories:
            lines = [f"- {m.content}" for m in memories]
            sections.append("Relevant memories:\n" + "\n".join(lines))
            memory.mark_accessed(memories)

        sections.append(get_strategy_instruction(config.reasoning_strategy))
        sections.append(ACTION_FORMAT_INSTRUCTION)

        return "\n\n".join(sections)

    async def reason(
        self,
        config: AgentConfig,
        context: ExecutionContext,
        memory: MemoryStore,
        timeout: Optional[float] = None,
    ) -> ReasoningResult:
        """
        Run one reasoning step.

        Raises:
            ExecutionTimeoutError: the model did not answer within `timeout`
            InternalError: the language model client failed
        """
        prompt = await self.build_prompt(config, context, memory)

        try:
            text = await asyncio.wait_for(
                self.llm_client.generate_text(prompt, config.temperature),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise ExecutionTimeoutError("Reasoning step", timeout or 0.0)
        except AgentRuntimeError:
            raise
        except Exception as e:
            raise InternalError(f"Language model call failed: {e}") from e

        return self.parse(text or "", config.available_tools)

    def parse(self, text: str, tool_names: Sequence[str] = ()) -> ReasoningResult:
        try:
            return self.action_parser(text, tool_names)
        except Exception as e:
            logger.warning(f"Could not parse model response, continuing: {type(e).__name__}: {e}")
            return ReasoningResult(
                reasoning=text,
                next_action=ContinueReasoning(focus="Unparseable response"),
                confidence=0.0,
                steps=[text],
            )
