"""
Calculator tool
"""

import math

from llm_bench.tools.base import Tool, ToolInputError, require

OPERATIONS = ["add", "subtract", "multiply", "divide", "power", "sqrt", "factorial"]
BINARY_OPERATIONS = {"add", "subtract", "multiply", "divide", "power"}


class Calculator(Tool):
    """Basic arithmetic"""

    name = "calculator"
    description = (
        "Performs basic mathematical operations (add, subtract, multiply, divide, power, sqrt, factorial). "
        "Use this tool when you need to perform calculations."
    )
    parameters = {
        "type": "object",
        "properties": {
            "operation": {
                "type": "string",
                "enum": OPERATIONS,
                "description": "The mathematical operation to perform",
            },
            "a": {
                "type": "number",
                "description": "The first operand (or the only operand for sqrt and factorial)",
            },
            "b": {
                "type": "number",
                "description": "The second operand (required for add, subtract, multiply, divide, power)",
            },
        },
        "required": ["operation", "a"],
    }

    def run(self, arguments: dict) -> dict:
        operation = require(arguments, "operation", str)
        a = float(require(arguments, "a", (int, float)))
        b = arguments.get("b", 0)
        if operation in BINARY_OPERATIONS and not isinstance(b, (int, float)):
            raise ToolInputError("argument 'b' must be a number")
        b = float(b or 0)

        try:
            result = self._compute(operation, a, b)
        except (ArithmeticError, ValueError) as e:
            return {"result": 0, "error": str(e)}
        return {"result": result}

    @staticmethod
    def _compute(operation: str, a: float, b: float) -> float:
        if operation == "add":
            return a + b
        elif operation == "subtract":
            return a - b
        elif operation == "multiply":
            return a * b
        elif operation == "divide":
            if b == 0:
                raise ZeroDivisionError("division by zero")
            return a / b
        elif operation == "power":
            return math.pow(a, b)
        elif operation == "sqrt":
            if a < 0:
                raise ValueError("square root of negative number")
            return math.sqrt(a)
        elif operation == "factorial":
            if a < 0 or a != math.floor(a):
                raise ValueError("factorial requires non-negative integer")
            return float(math.factorial(int(a)))
        raise ValueError(f"unknown operation: {operation}")
