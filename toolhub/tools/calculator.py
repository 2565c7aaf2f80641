from pydantic import Field

from toolhub.infra.sandbox import SandboxError, safe_eval
from toolhub.tools.base import BuiltinTool, ToolParams


class CalculatorParams(ToolParams):
    expression: str = Field(
        ...,
        description='The mathematical expression to evaluate, e.g. "2 + 3 * 4", "Math.sqrt(16)", "15% * 200"',
    )


async def calculate(params: CalculatorParams, context) -> dict:
    try:
        result = safe_eval(params.expression)
    except SandboxError as e:
        return {"success": False, "expression": params.expression, "error": str(e)}

    return {"success": True, "expression": params.expression, "result": result}


calculator_tool = BuiltinTool(
    name="calculator",
    display_name="Calculator",
    description=(
        "Evaluate mathematical expressions. Supports basic arithmetic (+, -, *, /, ^, %), "
        "parentheses, and Math functions (sqrt, abs, ceil, floor, round, pow, min, max, "
        "log, sin, cos, tan, PI, E)."
    ),
    parameters=CalculatorParams,
    handler=calculate,
)
