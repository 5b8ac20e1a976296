"""
Reasoning strategies and keyword-based action classification

The model answers in free text. `classify_next_action` turns that text into a
typed NextAction by looking for a small set of markers the prompt asks the
model to use. It is a best-effort heuristic: anything it cannot classify
becomes ContinueReasoning, never an error.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple
import json
import re

from agent_runtime.models import ReasoningStrategy


STRATEGY_INSTRUCTIONS: Dict[ReasoningStrategy, str] = {
    ReasoningStrategy.REACT: (
        "Use the ReAct pattern: Thought -> Action -> Observation. "
        "Think about what to do, act, then reflect on the result."
    ),
    ReasoningStrategy.CHAIN_OF_THOUGHT: (
        "Use chain-of-thought reasoning: analyse the problem step by step "
        "and show each step of your reasoning."
    ),
    ReasoningStrategy.PLAN_AND_EXECUTE: (
        "First write a short plan, then carry it out one step at a time."
    ),
    ReasoningStrategy.SELF_REFLECTION: (
        "Reflect on your progress so far, evaluate what worked and what did "
        "not, and adjust your approach."
    ),
}

ACTION_FORMAT_INSTRUCTION = (
    "Give your reasoning and then your next action.\n"
    "- To call a tool write: Action: <tool_name> followed by a JSON object of parameters\n"
    "- When the task is finished write: Final Answer: <result>\n"
    "- If you need information from the user write: REQUEST_INPUT: <question>\n"
    "- Otherwise reply with your message to the user."
)

# Responses at most this long (stripped) are not treated as a reply
MIN_RESPONSE_LENGTH = 10

TOOL_CALL_PATTERNS = [
    re.compile(r"^\s*(?:action|tool|tool[ _]call)\s*:\s*`?([A-Za-z0-9_-]+)`?", re.IGNORECASE | re.MULTILINE),
    re.compile(r"\buse (?:the )?tool\s+`?([A-Za-z0-9_-]+)`?", re.IGNORECASE),
]
# "Action: Final Answer" and friends are not tool names
NON_TOOL_ACTIONS = {"final", "finish", "none", "respond", "answer"}

FINAL_ANSWER_PATTERN = re.compile(r"final answer\s*:\s*(.+)", re.IGNORECASE | re.DOTALL)
COMPLETE_KEYWORDS = ["task_complete", "task complete", "task completed"]

REQUEST_INPUT_PATTERN = re.compile(r"request_input\s*:\s*(.+)", re.IGNORECASE | re.DOTALL)
INPUT_KEYWORDS = ["need more information", "please provide"]

THOUGHT_LINE_PATTERN = re.compile(r"^\s*(?:thought\s*:|step \d+\s*[:.]|\d+\.)\s*(.+)$", re.IGNORECASE | re.MULTILINE)


def get_strategy_instruction(strategy: ReasoningStrategy) -> str:
    return STRATEGY_INSTRUCTIONS[ReasoningStrategy(strategy)]


def extract_reasoning_steps(text: str) -> List[str]:
    """Pull 'Thought:' / numbered lines out of the response; whole text if none"""
    steps = [m.group(1).strip() for m in THOUGHT_LINE_PATTERN.finditer(text)]
    return steps or [text.strip()]


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Decode the first JSON object found in text, if any"""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text[start:])
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        return value if isinstance(value, dict) else None
    return None


def find_tool_call(text: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """Return (tool_name, parameters) if the text asks for a tool call"""
    for pattern in TOOL_CALL_PATTERNS:
        for match in pattern.finditer(text):
            name = match.group(1)
            if name.lower() in NON_TOOL_ACTIONS:
                continue
            parameters = extract_json_object(text[match.end():]) or {}
            return name, parameters
    return None


def classify_next_action(text: str, tool_names: Sequence[str] = ()) -> Tuple[str, Dict[str, Any]]:
    """
    Keyword-based classification of a model response.

    Checked in order: tool call, completion, input request, plain reply,
    then continue.

    Returns:
        (action_type, fields) where action_type is one of "tool_call",
        "complete", "request_input", "respond", "continue_reasoning"
    """
    lowered = text.lower()

    tool_call = find_tool_call(text)
    if tool_call:
        name, parameters = tool_call
        # Model may get the case wrong; prefer the registered spelling
        for known in tool_names:
            if known.lower() == name.lower():
                name = known
                break
        return "tool_call", {"tool_name": name, "parameters": parameters}

    final = FINAL_ANSWER_PATTERN.search(text)
    if final:
        return "complete", {"result": {"message": final.group(1).strip()}}
    if any(keyword in lowered for keyword in COMPLETE_KEYWORDS):
        return "complete", {"result": {"message": text.strip()}}

    request = REQUEST_INPUT_PATTERN.search(text)
    if request:
        return "request_input", {"prompt": request.group(1).strip()}
    if any(keyword in lowered for keyword in INPUT_KEYWORDS):
        return "request_input", {"prompt": text.strip()}

    if len(text.strip()) > MIN_RESPONSE_LENGTH:
        return "respond", {"message": text.strip()}

    return "continue_reasoning", {"focus": "Continue analysing the problem"}
