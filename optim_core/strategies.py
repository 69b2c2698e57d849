"""Optimizer strategy catalogue.

Each strategy carries an ``implemented`` marker so planned strategies are
rejected up front instead of being silently approximated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .errors import StrategyNotImplementedError


class OptimizerKind(str, Enum):
    MIPRO = "mipro"
    ACE = "ace"
    GEPA = "gepa"


@dataclass(frozen=True)
class StrategyInfo:
    kind: OptimizerKind
    description: str
    estimated_time: str
    cost_per_50_examples: float
    implemented: bool
    params: dict[str, int] = field(default_factory=dict)
    unavailable_hint: str = ""

    def estimate_cost(self, train_size: int) -> float:
        """Display-only dollar estimate for a run over ``train_size`` examples."""
        return (train_size / 50) * self.cost_per_50_examples


OPTIMIZER_STRATEGIES: dict[OptimizerKind, StrategyInfo] = {
    OptimizerKind.MIPRO: StrategyInfo(
        kind=OptimizerKind.MIPRO,
        description="MIPROv2 (default) - Bayesian optimization, proven and reliable",
        estimated_time="~1 hour",
        cost_per_50_examples=2.5,
        implemented=True,
        params={"max_bootstrapped_demos": 10, "max_labeled_demos": 20, "num_candidates": 8},
    ),
    OptimizerKind.ACE: StrategyInfo(
        kind=OptimizerKind.ACE,
        description="ACE - Adaptive Chain of Experts, good for complex tasks",
        estimated_time="~1.5 hours",
        cost_per_50_examples=3.5,
        implemented=False,
        params={"max_bootstrapped_demos": 8, "max_labeled_demos": 15, "num_candidates": 6},
        unavailable_hint="Use mipro (default). ACE will be available in a future update.",
    ),
    OptimizerKind.GEPA: StrategyInfo(
        kind=OptimizerKind.GEPA,
        description="GEPA - Highest performance, best for production (3x slower)",
        estimated_time="~2-3 hours",
        cost_per_50_examples=7.0,
        implemented=False,
        params={"num_candidates": 10, "max_steps": 10},
        unavailable_hint="Use mipro (default). GEPA support coming soon.",
    ),
}


def get_optimizer_info(kind: OptimizerKind | str) -> StrategyInfo:
    return OPTIMIZER_STRATEGIES[OptimizerKind(kind)]


def list_optimizers() -> list[StrategyInfo]:
    return list(OPTIMIZER_STRATEGIES.values())


def require_implemented(kind: OptimizerKind | str) -> StrategyInfo:
    """Return the strategy info, or raise if the strategy is only planned."""
    info = get_optimizer_info(kind)
    if not info.implemented:
        raise StrategyNotImplementedError(info.kind.value, info.unavailable_hint)
    return info
