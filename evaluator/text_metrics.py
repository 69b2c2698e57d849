"""String comparison metrics."""

from __future__ import annotations

import re
from typing import Any

from .base import EvaluationResult, Metric, coerce_text

_TOKEN_RE = re.compile(r"\w+")


def tokenize(text: str) -> set[str]:
    return set(_TOKEN_RE.findall(text.lower()))


class ExactMatchMetric(Metric):
    """1.0 iff the whitespace-trimmed strings are equal (case-sensitive)."""

    name = "exact_match"

    def __init__(self, text_field: str | None = "response") -> None:
        self.threshold = 1.0
        self.text_field = text_field

    def evaluate(self, predicted: Any, expected: Any) -> EvaluationResult:
        predicted_text = coerce_text(predicted, self.text_field).strip()
        expected_text = coerce_text(expected, self.text_field).strip()
        return EvaluationResult.graded(
            1.0 if predicted_text == expected_text else 0.0,
            self.threshold,
        )


class F1ScoreMetric(Metric):
    """Token-set F1 over case-insensitive word tokens."""

    name = "f1_score"

    def __init__(self, threshold: float = 0.5, text_field: str | None = "response") -> None:
        self.threshold = threshold
        self.text_field = text_field

    def evaluate(self, predicted: Any, expected: Any) -> EvaluationResult:
        predicted_tokens = tokenize(coerce_text(predicted, self.text_field))
        expected_tokens = tokenize(coerce_text(expected, self.text_field))
        overlap = len(predicted_tokens & expected_tokens)

        precision = overlap / len(predicted_tokens) if predicted_tokens else 0.0
        recall = overlap / len(expected_tokens) if expected_tokens else 0.0
        if precision + recall > 0:
            f1 = 2 * precision * recall / (precision + recall)
        else:
            f1 = 0.0

        return EvaluationResult.graded(
            f1,
            self.threshold,
            {"precision": precision, "recall": recall},
        )
