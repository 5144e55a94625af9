"""Element-wise arithmetic tool."""

import math
import operator
from collections.abc import Callable
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, model_validator

from app.tools.base import ToolDefinition

Operation = Literal["add", "subtract", "multiply", "divide"]


def _divide(u: float, v: float) -> float:
    return math.nan if v == 0 else u / v


OPERATIONS: dict[str, Callable[[float, float], float]] = {
    "add": operator.add,
    "subtract": operator.sub,
    "multiply": operator.mul,
    "divide": _divide,
}


class CalculatorInput(BaseModel):
    """Input schema for calculator."""

    model_config = ConfigDict(extra="forbid")

    operation: Operation = Field(..., description="The arithmetic operation to perform")
    x: list[StrictFloat] = Field(..., min_length=1, description="First set of numbers (non-empty)")
    y: list[StrictFloat] = Field(..., min_length=1, description="Second set of numbers (non-empty)")

    @model_validator(mode="after")
    def check_broadcastable(self) -> "CalculatorInput":
        """Lengths must match unless one side is a single number."""
        if len(self.x) != len(self.y) and len(self.x) != 1 and len(self.y) != 1:
            raise ValueError("Array lengths must match, or one side must have length 1 to broadcast.")
        return self


class CalculatorResult(BaseModel):
    result: float | list[float]


def elementwise(x: list[float], y: list[float], fn: Callable[[float, float], float]) -> list[float]:
    """Apply `fn` pairwise, broadcasting a length-1 side."""
    if len(x) == len(y):
        return [fn(u, v) for u, v in zip(x, y, strict=True)]
    if len(x) == 1:
        return [fn(x[0], v) for v in y]
    if len(y) == 1:
        return [fn(u, y[0]) for u in x]
    raise ValueError("Array lengths must match, or one side must have length 1 to broadcast.")


def calculate(args: CalculatorInput) -> CalculatorResult:
    """Run the requested operation; single-element results collapse to a number."""
    values = elementwise(args.x, args.y, OPERATIONS[args.operation])
    if len(values) == 1:
        return CalculatorResult(result=values[0])
    return CalculatorResult(result=values)


def create_calculator_tool() -> ToolDefinition:
    async def calculator_handler(args: CalculatorInput) -> CalculatorResult:  # noqa: RUF029
        return calculate(args)

    return ToolDefinition(
        name="calculator",
        description=(
            "Perform basic arithmetic on two sets of numbers. Supports add, subtract, multiply, divide. "
            "Arrays may be broadcast if one side has length 1 or equal lengths."
        ),
        input_schema_class=CalculatorInput,
        handler=calculator_handler,
    )
