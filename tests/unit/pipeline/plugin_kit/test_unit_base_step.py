# tests/unit/pipeline/plugin_kit/test_unit_base_step.py - v1
"""Tests for pipeline/plugin_kit."""

from __future__ import annotations

import json

import pytest

from contentflow.pipeline.plugin_kit.base_step import load_prompt, parse_json_response
from contentflow.pipeline.plugin_kit.models import StepOutput, StepUsage


class TestParseJsonResponse:
    def test_plain(self):
        assert parse_json_response('{"a": 1}') == {"a": 1}

    def test_fenced(self):
        assert parse_json_response('```json\n{"a": [1, 2]}\n```') == {"a": [1, 2]}

    def test_surrounding_prose(self):
        assert parse_json_response('Here is the plan:\n{"a": 1}\nHope it helps') == {"a": 1}

    def test_garbage(self):
        with pytest.raises(json.JSONDecodeError):
            parse_json_response("no json at all")


class TestLoadPrompt:
    @pytest.mark.parametrize("name", ["plan_article", "write_block", "generate_meta"])
    def test_templates_format(self, name):
        template = load_prompt(name)
        rendered = template.format_map(_Anything())
        assert "<keyword>" in rendered


class _Anything(dict):
    def __missing__(self, key):
        return f"<{key}>"


class TestStepUsage:
    def test_add_accumulates(self):
        usage = StepUsage()
        usage.add(10, 5, 0.1, "m1")
        usage.add(3, 2, 0.05, None)
        assert (usage.tokens_in, usage.tokens_out) == (13, 7)
        assert usage.cost_usd == pytest.approx(0.15)
        assert usage.model_used == "m1"

    def test_output_defaults(self):
        out = StepOutput()
        assert out.updates == {}
        assert out.usage.cost_usd == 0.0
