"""
Suite Loader

Loads benchmark test cases from a suite JSON file.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_SUITE_PATH = Path(__file__).parent / "suites" / "benchmark_suite.json"


@dataclass
class TestCase:
    """A named prompt pair, optionally tool-assisted"""
    name: str
    system_prompt: str
    user_prompt: str
    reference: str = ""        # Expected content of a correct answer (shown to the judge)
    judge_prompt: str = ""     # Case-specific grading instructions for the judge
    tools: list[str] = field(default_factory=list)  # Tool names offered to the model
    tool_judge_prompt: str = ""  # Grading instructions for the tool-usage judge

    @property
    def is_tool_assisted(self) -> bool:
        return bool(self.tools)


@dataclass
class Suite:
    """Suite definition"""
    suite_id: str
    suite_name: str
    description: str
    version: str
    test_cases: list[TestCase]

    def select(self, names: list[str] | None) -> list[TestCase]:
        """
        Test cases in suite order, restricted to names when given

        Raises:
            KeyError: If a requested name is not in the suite
        """
        if not names:
            return list(self.test_cases)
        known = {tc.name for tc in self.test_cases}
        missing = [n for n in names if n not in known]
        if missing:
            raise KeyError(f"Unknown test cases: {', '.join(missing)}")
        wanted = set(names)
        return [tc for tc in self.test_cases if tc.name in wanted]


def _parse_test_case(data: dict) -> TestCase:
    """
    Create a TestCase object from dictionary data

    Args:
        data: Test case data dictionary

    Returns:
        TestCase: TestCase object
    """
    for key in ("name", "system_prompt", "user_prompt"):
        if key not in data:
            raise KeyError(f"Required field '{key}' is missing in test case: {data.get('name', '?')}")

    return TestCase(
        name=data["name"],
        system_prompt=data["system_prompt"],
        user_prompt=data["user_prompt"],
        # Optional fields
        reference=data.get("reference", ""),
        judge_prompt=data.get("judge_prompt", ""),
        tools=list(data.get("tools") or []),
        tool_judge_prompt=data.get("tool_judge_prompt", ""),
    )


def load_suite(file_path: str | Path = DEFAULT_SUITE_PATH) -> Suite:
    """
    Load a suite JSON file

    Args:
        file_path: Path to the suite JSON file

    Returns:
        Suite: Suite object

    Raises:
        FileNotFoundError: If the file does not exist
        KeyError: If a required field is missing
        ValueError: If two test cases share a name
    """
    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    # Validate required fields
    required_fields = ["suite_id", "test_cases"]
    for key in required_fields:
        if key not in data:
            raise KeyError(f"Required field '{key}' is missing: {file_path}")

    test_cases = [_parse_test_case(tc) for tc in data["test_cases"]]

    seen = set()
    for tc in test_cases:
        if tc.name in seen:
            raise ValueError(f"Duplicate test case name '{tc.name}': {file_path}")
        seen.add(tc.name)

    return Suite(
        suite_id=data["suite_id"],
        suite_name=data.get("suite_name", data["suite_id"]),
        description=data.get("description", ""),
        version=data.get("version", "1.0"),
        test_cases=test_cases,
    )
