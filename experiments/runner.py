"""Evaluation runs and provider/metric wiring for the CLI."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from tqdm import tqdm

from evaluator.base import Metric
from evaluator.text_metrics import F1ScoreMetric
from evaluator.tool_match import ToolMatchMetric
from llm.base import BaseLLMProvider
from llm.providers import create_provider
from optim_core.module import BaseModule, DecodeStatus, ModuleContext
from optim_core.registry import Registry
from optim_core.schemas import DatasetExample, LLMProviderConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExampleOutcome:
    example_id: str
    passed: bool
    score: float
    decode_status: DecodeStatus


@dataclass
class EvaluationSummary:
    module_id: str
    outcomes: list[ExampleOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def passed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.passed)

    @property
    def average_score(self) -> float:
        if not self.outcomes:
            return 0.0
        return sum(outcome.score for outcome in self.outcomes) / len(self.outcomes)

    @property
    def pass_rate(self) -> float:
        return self.passed / self.total if self.total else 0.0

    def decode_counts(self) -> dict[str, int]:
        counts = {"parsed": 0, "recovered": 0, "defaulted": 0}
        for outcome in self.outcomes:
            counts[outcome.decode_status] += 1
        return counts


def metric_for_module(module_id: str) -> Metric:
    if module_id == "tool-router":
        return ToolMatchMetric()
    return F1ScoreMetric()


def build_provider_registry(configs: Iterable[LLMProviderConfig]) -> Registry[BaseLLMProvider]:
    registry: Registry[BaseLLMProvider] = Registry(key=lambda provider: provider.name, kind="Provider")
    for config in configs:
        registry.register(create_provider(config))
    return registry


def evaluate_module(
    module: BaseModule[Any, Any],
    metric: Metric,
    examples: Sequence[DatasetExample],
    ctx: ModuleContext,
    *,
    show_progress: bool = True,
) -> EvaluationSummary:
    """Run every example through the module and metric, in order.

    Provider failures propagate; a partially evaluated run is not reported.
    """
    summary = EvaluationSummary(module_id=module.id)
    for example in tqdm(examples, desc=f"  {module.id}", leave=False, ncols=80, disable=not show_progress):
        decoded = module.predict(ctx, example.input or {})
        result = metric.evaluate(decoded.value, example.expected_output)
        outcome = ExampleOutcome(
            example_id=example.id or "?",
            passed=result.passed,
            score=result.score,
            decode_status=decoded.status,
        )
        summary.outcomes.append(outcome)
        logger.debug("%s: %s score=%.2f (%s)", module.id, outcome.example_id, outcome.score, decoded.status)
    return summary
