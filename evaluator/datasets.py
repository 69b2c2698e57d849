"""Labeled example datasets: loading, validation and train/test splits.

Dataset file format (JSON):

    {
      "version": "1.0",
      "moduleId": "tool-router",
      "description": "...",
      "examples": [
        {"id": "...", "input": {...}, "expectedOutput": {...},
         "metadata": {"category": "...", "difficulty": "easy", "notes": "..."}}
      ]
    }
"""

from __future__ import annotations

import logging
import math
import random
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from optim_core.errors import DatasetNotFoundError
from optim_core.schemas import Dataset, DatasetExample

logger = logging.getLogger(__name__)

DEFAULT_DATASET_DIR = Path("evals") / "datasets"
DEFAULT_SPLIT_SEED = 42


@dataclass
class ValidationReport:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class DatasetSplit:
    train: list[DatasetExample]
    test: list[DatasetExample]


def load_dataset(path: str | Path) -> Dataset:
    """Load a dataset file.

    Raises:
        DatasetNotFoundError: If the file is missing or unreadable.
        ValueError: If the file is not a well-formed dataset.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DatasetNotFoundError(f"Dataset not found: {path}") from exc
    try:
        dataset = Dataset.from_json(content)
    except ValidationError as exc:
        raise ValueError(f"Invalid dataset in {path}: {exc}") from exc
    logger.info("Loaded %d example(s) for %s from %s", len(dataset.examples), dataset.module_id, path)
    return dataset


def save_dataset(dataset: Dataset, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dataset.to_json(indent=2), encoding="utf-8")


def _is_missing(value: object) -> bool:
    return value is None or value == "" or value == {}


def validate_dataset(dataset: Dataset) -> ValidationReport:
    """Collect every structural problem in one pass; never raises."""
    errors: list[str] = []
    if not dataset.examples:
        errors.append("Dataset must contain at least one example")

    for index, example in enumerate(dataset.examples):
        if _is_missing(example.id):
            errors.append(f"Example {index} missing id")
        if _is_missing(example.input):
            errors.append(f"Example {index} missing input")
        if _is_missing(example.expected_output):
            errors.append(f"Example {index} missing expectedOutput")

    return ValidationReport(valid=not errors, errors=errors)


def split_dataset(
    dataset: Dataset,
    train_ratio: float = 0.8,
    *,
    seed: int = DEFAULT_SPLIT_SEED,
    rng: random.Random | None = None,
) -> DatasetSplit:
    """Shuffle and cut the examples into train and test.

    The shuffle is seeded so a given dataset always splits the same way;
    pass ``rng`` to control the randomness directly.
    """
    if not 0.0 <= train_ratio <= 1.0:
        raise ValueError("train_ratio must be between 0 and 1")
    shuffled = list(dataset.examples)
    (rng or random.Random(seed)).shuffle(shuffled)
    train_size = math.floor(len(shuffled) * train_ratio)
    logger.info("Split into %d train / %d test", train_size, len(shuffled) - train_size)
    return DatasetSplit(train=shuffled[:train_size], test=shuffled[train_size:])


def dataset_summary(dataset: Dataset) -> str:
    """Generate a summary of a dataset."""
    if not dataset.examples:
        return f"Dataset '{dataset.module_id}': empty"

    difficulties = Counter(
        (example.metadata.difficulty if example.metadata else None) or "unspecified"
        for example in dataset.examples
    )
    categories = Counter(
        (example.metadata.category if example.metadata else None) or "uncategorized"
        for example in dataset.examples
    )
    lines = [
        f"Dataset: {dataset.module_id} (v{dataset.version})",
        f"  Examples: {len(dataset.examples)}",
        "  Difficulty: " + ", ".join(f"{k}={v}" for k, v in sorted(difficulties.items())),
        "  Categories: " + ", ".join(f"{k}={v}" for k, v in sorted(categories.items())),
    ]
    if dataset.description:
        lines.insert(1, f"  {dataset.description}")
    return "\n".join(lines)
