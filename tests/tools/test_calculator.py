"""
Tests for the calculator tool
"""

import json

import pytest

from llm_bench.tools.base import ToolInputError
from llm_bench.tools.calculator import Calculator


class TestCalculator:
    """Calculator.run"""

    @pytest.mark.parametrize("operation,a,b,expected", [
        ("add", 2, 3, 5.0),
        ("subtract", 150, 100, 50.0),
        ("multiply", 8, 12.5, 100.0),
        ("divide", 9, 4, 2.25),
        ("power", 2, 10, 1024.0),
    ])
    def test_binary_operations(self, operation, a, b, expected):
        assert Calculator().run({"operation": operation, "a": a, "b": b}) == {"result": expected}

    def test_unary_operations(self):
        calc = Calculator()
        assert calc.run({"operation": "sqrt", "a": 16}) == {"result": 4.0}
        assert calc.run({"operation": "factorial", "a": 5}) == {"result": 120.0}

    def test_division_by_zero(self):
        assert Calculator().run({"operation": "divide", "a": 1, "b": 0}) == {"result": 0, "error": "division by zero"}

    def test_negative_sqrt(self):
        result = Calculator().run({"operation": "sqrt", "a": -4})
        assert result["error"] == "square root of negative number"

    def test_factorial_of_fraction(self):
        result = Calculator().run({"operation": "factorial", "a": 2.5})
        assert result["error"] == "factorial requires non-negative integer"

    def test_unknown_operation(self):
        result = Calculator().run({"operation": "modulo", "a": 5, "b": 2})
        assert result["error"] == "unknown operation: modulo"

    def test_missing_operand(self):
        with pytest.raises(ToolInputError, match="'a'"):
            Calculator().run({"operation": "add"})

    def test_non_numeric_operand(self):
        with pytest.raises(ToolInputError):
            Calculator().run({"operation": "add", "a": "two", "b": 3})
        with pytest.raises(ToolInputError):
            Calculator().run({"operation": "add", "a": 2, "b": "three"})

    def test_definition_is_json_schema(self):
        definition = Calculator().definition()
        assert definition.name == "calculator"
        assert definition.parameters["required"] == ["operation", "a"]
        json.dumps(definition.parameters)
