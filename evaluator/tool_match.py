"""Routing-decision metric for tool-router outputs."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from optim_core.tool_router import ToolRouterOutput

from .base import EvaluationResult, Metric


def _as_routing(value: Any) -> ToolRouterOutput:
    if isinstance(value, ToolRouterOutput):
        return value
    return ToolRouterOutput.model_validate(value)


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def arguments_match(predicted: Mapping[str, Any] | None, expected: Mapping[str, Any]) -> bool:
    """Every expected key must carry an equal value; extra predicted keys are ignored."""
    actual = predicted or {}
    for key, value in expected.items():
        if key not in actual or _canonical(actual[key]) != _canonical(value):
            return False
    return True


class ToolMatchMetric(Metric):
    name = "tool_match"

    def __init__(self) -> None:
        self.threshold = 1.0

    def evaluate(self, predicted: Any, expected: Any) -> EvaluationResult:
        actual = _as_routing(predicted)
        target = _as_routing(expected)

        tool_name_match = actual.tool_name == target.tool_name
        should_use_tool_match = actual.should_use_tool == target.should_use_tool
        args_match = True
        if target.tool_arguments:
            args_match = arguments_match(actual.tool_arguments, target.tool_arguments)

        all_match = tool_name_match and should_use_tool_match and args_match
        return EvaluationResult.graded(
            1.0 if all_match else 0.0,
            self.threshold,
            {
                "tool_name_match": tool_name_match,
                "should_use_tool_match": should_use_tool_match,
                "args_match": args_match,
            },
        )
