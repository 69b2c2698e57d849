"""Base metric interface and shared result type."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel


def clamp_score(score: float) -> float:
    return max(0.0, min(1.0, float(score)))


@dataclass(frozen=True)
class EvaluationResult:
    """Score in [0, 1] with its pass/fail verdict."""

    score: float
    passed: bool
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def graded(
        cls,
        score: float,
        threshold: float,
        details: Mapping[str, Any] | None = None,
    ) -> "EvaluationResult":
        value = clamp_score(score)
        return cls(score=value, passed=value >= threshold, details=dict(details or {}))


def as_mapping(value: object) -> Mapping[str, Any] | None:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Mapping):
        return value
    return None


def coerce_text(value: object, text_field: str | None = "response") -> str:
    """Reduce a prediction or label to the text a string metric compares.

    Strings pass through. Records and mappings contribute ``text_field`` when
    present, otherwise their sorted JSON dump.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    mapping = as_mapping(value)
    if mapping is None:
        return str(value)
    if text_field is not None and text_field in mapping:
        return coerce_text(mapping[text_field], None)
    return json.dumps(dict(mapping), sort_keys=True, ensure_ascii=False)


class Metric(ABC):
    """Scores a (predicted, expected) pair.

    Metrics are stateless beyond their configuration, so one instance can be
    shared across threads.
    """

    name: str
    threshold: float

    @abstractmethod
    def evaluate(self, predicted: Any, expected: Any) -> EvaluationResult:
        """Score ``predicted`` against ``expected``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, threshold={self.threshold})"
