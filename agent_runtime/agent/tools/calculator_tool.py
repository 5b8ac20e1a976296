"""
Calculator Tool — basic arithmetic for agents that must not guess at numbers
"""
from typing import Dict, Any
import math

from agent_runtime.agent.context import ExecutionContext
from agent_runtime.agent.tool_registry import Tool, ToolResult, ToolParameter, ToolCategory
from agent_runtime.errors import ValidationError

BINARY_OPERATIONS = ["add", "subtract", "multiply", "divide", "power"]
UNARY_OPERATIONS = ["sqrt", "abs", "round"]
SUPPORTED_OPERATIONS = BINARY_OPERATIONS + UNARY_OPERATIONS


class CalculatorTool(Tool):
    """add / subtract / multiply / divide / power on (a, b); sqrt / abs / round on a"""

    def __init__(self):
        super().__init__(
            name="calculator",
            description=(
                "Perform a math operation. Binary operations (add, subtract, multiply, "
                "divide, power) take 'a' and 'b'; sqrt, abs and round take only 'a'. "
                "round uses 'precision' decimal places."
            ),
            category=ToolCategory.MATH,
            parameters=[
                ToolParameter(
                    name="operation",
                    type="string",
                    description="Operation to perform",
                    required=True,
                    enum=SUPPORTED_OPERATIONS,
                ),
                ToolParameter(
                    name="a",
                    type="number",
                    description="First operand",
                    required=True,
                ),
                ToolParameter(
                    name="b",
                    type="number",
                    description="Second operand (binary operations only)",
                    required=False,
                ),
                ToolParameter(
                    name="precision",
                    type="integer",
                    description="Decimal places for round",
                    required=False,
                    default=2,
                    minimum=0,
                    maximum=10,
                ),
            ],
        )

    def validate_parameters(self, parameters: Dict[str, Any]) -> None:
        super().validate_parameters(parameters)

        operation = parameters["operation"]
        if operation in BINARY_OPERATIONS:
            if parameters.get("b") is None:
                raise ValidationError(
                    f"Operation '{operation}' requires parameter 'b'",
                    {"tool": self.name, "parameter": "b"},
                )
            if operation == "divide" and parameters["b"] == 0:
                raise ValidationError("Division by zero", {"tool": self.name, "parameter": "b"})

    async def execute(self, parameters: Dict[str, Any], context: ExecutionContext) -> ToolResult:
        operation = parameters["operation"]
        a = float(parameters["a"])
        b = float(parameters["b"]) if parameters.get("b") is not None else None

        try:
            if operation == "add":
                result = a + b
            elif operation == "subtract":
                result = a - b
            elif operation == "multiply":
                result = a * b
            elif operation == "divide":
                result = a / b
            elif operation == "power":
                result = math.pow(a, b)
            elif operation == "sqrt":
                if a < 0:
                    raise ValidationError("Cannot take the square root of a negative number", {"tool": self.name})
                result = math.sqrt(a)
            elif operation == "abs":
                result = abs(a)
            else:
                precision = parameters.get("precision")
                result = _round_half_away(a, 2 if precision is None else int(precision))
        except (ArithmeticError, ValueError) as e:
            return ToolResult(success=False, error=f"Calculation failed: {e}")

        if math.isinf(result) or math.isnan(result):
            return ToolResult(success=False, error=f"Calculation produced a non-finite result: {result}")

        return ToolResult(
            success=True,
            data={
                "operation": operation,
                "result": result,
                "parameters": dict(parameters),
            },
            message=f"Calculated {operation} = {result}",
        )


def _round_half_away(value: float, precision: int) -> float:
    """Round half away from zero (round() in Python rounds half to even)"""
    multiplier = 10 ** precision
    return math.copysign(math.floor(abs(value) * multiplier + 0.5), value) / multiplier
