"""
Tests for suite_loader.py
"""

import json

import pytest

from llm_bench.suite_loader import DEFAULT_SUITE_PATH, load_suite
from llm_bench.tools import default_registry


def _write_suite(tmp_path, test_cases, **extra):
    data = {"suite_id": "tiny", "test_cases": test_cases, **extra}
    path = tmp_path / "suite.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestDefaultSuite:
    """The bundled benchmark suite"""

    def test_loads(self):
        suite = load_suite()
        assert suite.suite_id == "llm_benchmark_default"
        assert len(suite.test_cases) == 9

    def test_case_names(self):
        names = [tc.name for tc in load_suite(DEFAULT_SUITE_PATH).test_cases]
        assert names == [
            "code-explanation",
            "mathematical-operations",
            "creative-writing",
            "factual-question",
            "code-generation",
            "calculator-reasoning",
            "code-validation",
            "api-data-retrieval",
            "pokemon-compare",
        ]

    def test_tool_cases_use_registered_tools(self):
        registry = default_registry()
        tool_cases = [tc for tc in load_suite().test_cases if tc.is_tool_assisted]
        assert len(tool_cases) == 4
        for tc in tool_cases:
            assert tc.tool_judge_prompt
            for name in tc.tools:
                assert name in registry

    def test_every_case_has_reference_and_judge_prompt(self):
        for tc in load_suite().test_cases:
            assert tc.reference
            assert tc.judge_prompt


class TestLoadSuite:
    def test_optional_fields_default(self, tmp_path):
        path = _write_suite(tmp_path, [{"name": "a", "system_prompt": "s", "user_prompt": "u"}])
        suite = load_suite(path)
        tc = suite.test_cases[0]
        assert suite.suite_name == "tiny"
        assert tc.reference == ""
        assert tc.tools == []
        assert tc.is_tool_assisted is False

    def test_missing_suite_field(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"test_cases": []}), encoding="utf-8")
        with pytest.raises(KeyError, match="suite_id"):
            load_suite(path)

    def test_missing_case_field(self, tmp_path):
        path = _write_suite(tmp_path, [{"name": "a", "user_prompt": "u"}])
        with pytest.raises(KeyError, match="system_prompt"):
            load_suite(path)

    def test_duplicate_names(self, tmp_path):
        case = {"name": "a", "system_prompt": "s", "user_prompt": "u"}
        path = _write_suite(tmp_path, [case, case])
        with pytest.raises(ValueError, match="Duplicate"):
            load_suite(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_suite(tmp_path / "nope.json")


class TestSelect:
    def test_select_keeps_suite_order(self):
        suite = load_suite()
        selected = suite.select(["pokemon-compare", "factual-question"])
        assert [tc.name for tc in selected] == ["factual-question", "pokemon-compare"]

    def test_select_none_returns_all(self):
        suite = load_suite()
        assert len(suite.select(None)) == 9

    def test_select_unknown(self):
        with pytest.raises(KeyError, match="nope"):
            load_suite().select(["nope"])
