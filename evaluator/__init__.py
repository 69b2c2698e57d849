"""
Evaluator Module

Metrics and datasets for scoring module outputs.

This module provides:
- Abstract metric interface with clamped, thresholded results
- Exact-match and token-F1 text metrics
- Tool-routing match metric
- Weighted composite metric with concurrent constituents
- Dataset loading, validation and seeded train/test splits
"""

__version__ = "0.1.0"

from .base import EvaluationResult, Metric
from .composite import CompositeEvaluationResult, CompositeMetric, MetricWeight
from .datasets import (
    DatasetSplit,
    ValidationReport,
    dataset_summary,
    load_dataset,
    save_dataset,
    split_dataset,
    validate_dataset,
)
from .text_metrics import ExactMatchMetric, F1ScoreMetric
from .tool_match import ToolMatchMetric

__all__ = [
    "EvaluationResult",
    "Metric",
    "CompositeEvaluationResult",
    "CompositeMetric",
    "MetricWeight",
    "ExactMatchMetric",
    "F1ScoreMetric",
    "ToolMatchMetric",
    "DatasetSplit",
    "ValidationReport",
    "dataset_summary",
    "load_dataset",
    "save_dataset",
    "split_dataset",
    "validate_dataset",
]
