"""Built-in tools package for the agent runtime"""
from agent_runtime.agent.tools.calculator_tool import CalculatorTool
from agent_runtime.agent.tools.llm_tool import LLMGenerateTool

__all__ = ["CalculatorTool", "LLMGenerateTool"]
