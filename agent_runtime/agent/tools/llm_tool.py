"""
LLM Generate Tool — exposes the runtime's language model client as a tool.

Lets an agent delegate a sub-prompt (summaries, drafts, analysis) to the
model without spending one of its own reasoning steps on it.
"""
from typing import Dict, Any

from agent_runtime.agent.context import ExecutionContext
from agent_runtime.agent.tool_registry import Tool, ToolResult, ToolParameter, ToolCategory
from agent_runtime.providers.client import LanguageModelClient


class LLMGenerateTool(Tool):
    """Text generation through the configured language model client"""

    def __init__(self, llm_client: LanguageModelClient):
        super().__init__(
            name="llm_generate",
            description=(
                "Generate text using an LLM. Use for answering questions, writing, "
                "analysis, summarization, and any general-purpose text generation task."
            ),
            category=ToolCategory.LLM,
            parameters=[
                ToolParameter(
                    name="prompt",
                    type="string",
                    description="The prompt or instruction to send to the LLM",
                    required=True,
                ),
                ToolParameter(
                    name="temperature",
                    type="number",
                    description="Sampling temperature 0.0-2.0. Lower = more focused, higher = more creative.",
                    required=False,
                    default=0.7,
                    minimum=0.0,
                    maximum=2.0,
                ),
            ],
        )
        self.llm_client = llm_client

    async def execute(self, parameters: Dict[str, Any], context: ExecutionContext) -> ToolResult:
        """Execute LLM generation"""
        prompt = parameters.get("prompt")
        if not prompt:
            return ToolResult(success=False, error="'prompt' is required")

        temperature = parameters.get("temperature")
        temperature = 0.7 if temperature is None else float(temperature)

        try:
            text = await self.llm_client.generate_text(prompt, temperature)
        except Exception as e:
            return ToolResult(
                success=False,
                error=f"LLM generation failed: {str(e)}",
            )

        return ToolResult(
            success=True,
            data=text,
            metadata={"prompt_chars": len(prompt), "response_chars": len(text or "")},
        )
