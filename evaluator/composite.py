"""Weighted combination of metrics."""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from .base import EvaluationResult, Metric


@dataclass(frozen=True)
class MetricWeight:
    metric: Metric
    weight: float = 1.0


@dataclass(frozen=True)
class CompositeEvaluationResult(EvaluationResult):
    breakdown: dict[str, EvaluationResult] = field(default_factory=dict)


class CompositeMetric(Metric):
    """Weighted mean of constituent metrics.

    Constituents are independent and side-effect free, so they run on a
    thread pool and are joined before weighting.
    """

    name = "composite"

    def __init__(self, metrics: Sequence[MetricWeight | tuple[Metric, float]], threshold: float = 0.7) -> None:
        self.metrics: list[MetricWeight] = [
            item if isinstance(item, MetricWeight) else MetricWeight(*item) for item in metrics
        ]
        if any(item.weight < 0 for item in self.metrics):
            raise ValueError("metric weights must be non-negative")
        self.threshold = threshold

    def evaluate(self, predicted: Any, expected: Any) -> CompositeEvaluationResult:
        if self.metrics:
            with ThreadPoolExecutor(max_workers=len(self.metrics)) as pool:
                results = list(
                    pool.map(lambda item: item.metric.evaluate(predicted, expected), self.metrics)
                )
        else:
            results = []

        breakdown: dict[str, EvaluationResult] = {}
        weighted_sum = 0.0
        total_weight = 0.0
        for item, result in zip(self.metrics, results):
            breakdown[item.metric.name] = result
            weighted_sum += result.score * item.weight
            total_weight += item.weight

        score = weighted_sum / total_weight if total_weight > 0 else 0.0
        return CompositeEvaluationResult(
            score=score,
            passed=score >= self.threshold,
            breakdown=breakdown,
        )
