"""Optimizer orchestration: propose, evaluate, apply, persist.

``ModuleOptimizer.optimize`` resolves a candidate compiled state for the
configured strategy, scores it on the train and test splits, applies it to
the live module and then writes it to the artifact store. Only the MIPRO
strategy is available; its search is a placeholder that keeps the default
prompt and takes labeled demos verbatim from the training split.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from tqdm import tqdm

from llm.base import LLMConfig
from store.artifacts import ArtifactStore

from .module import BaseModule, CompletionProvider, ModuleContext
from .schemas import (
    CompiledArtifact,
    CostEstimate,
    DatasetExample,
    FewShotExample,
    OptimizationConfig,
    OptimizationResult,
)
from .strategies import OptimizerKind, StrategyInfo, require_implemented

if TYPE_CHECKING:
    from evaluator.base import Metric

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgramCandidate:
    prompt: str | None = None
    demos: tuple[FewShotExample, ...] = ()


def _provider_tokens(provider: CompletionProvider) -> int:
    total_tokens = getattr(provider, "total_tokens", None)
    return int(total_tokens()) if callable(total_tokens) else 0


class ModuleOptimizer:
    """Produces, evaluates, applies and persists a compiled artifact."""

    def __init__(
        self,
        module: BaseModule[Any, Any],
        metric: Metric,
        config: OptimizationConfig | None = None,
        store: ArtifactStore | None = None,
    ) -> None:
        self.module = module
        self.metric = metric
        self.config = config or OptimizationConfig()
        self.store = store or ArtifactStore()

    def optimize(
        self,
        train_examples: Sequence[DatasetExample],
        test_examples: Sequence[DatasetExample],
        provider: CompletionProvider,
        provider_config: LLMConfig,
    ) -> OptimizationResult:
        # Planned strategies fail here, before any provider call or file I/O.
        info = require_implemented(self.config.optimizer_kind)
        if self.config.verbose:
            logger.info(
                "Optimizing %s with %s - %s (%d train / %d test)",
                self.module.id,
                info.kind.value.upper(),
                info.description,
                len(train_examples),
                len(test_examples),
            )

        candidate = self._propose(info, train_examples)
        trial = copy.copy(self.module)
        trial.compile(self._artifact(candidate))

        ctx = ModuleContext(provider=provider, config=provider_config)
        tokens_before = _provider_tokens(provider)
        train_score = self.score_examples(trial, train_examples, ctx, label="train")
        test_score = self.score_examples(trial, test_examples, ctx, label="test")
        total_tokens = _provider_tokens(provider) - tokens_before

        estimated_cost = info.estimate_cost(len(train_examples))
        artifact = self._artifact(
            candidate,
            metadata={
                "optimizerKind": info.kind.value,
                "trainScore": train_score,
                "testScore": test_score,
                "trainSize": len(train_examples),
                "testSize": len(test_examples),
                "estimatedCost": estimated_cost,
            },
        )

        # Apply before persisting: callers inspecting the module see the new state.
        self.module.compile(artifact)
        saved_path = self.store.save(artifact)

        if self.config.verbose:
            logger.info(
                "Optimization complete: train %.1f%%, test %.1f%%, est. $%.2f, artifact %s",
                train_score * 100,
                test_score * 100,
                estimated_cost,
                saved_path,
            )

        return OptimizationResult(
            artifact=artifact,
            train_score=train_score,
            test_score=test_score,
            optimizer_kind=info.kind,
            cost_estimate=CostEstimate(total_tokens=total_tokens, estimated_cost=estimated_cost),
            artifact_path=str(saved_path),
        )

    def _propose(
        self, info: StrategyInfo, train_examples: Sequence[DatasetExample]
    ) -> ProgramCandidate:
        if info.kind is OptimizerKind.MIPRO:
            # TODO: replace with instruction/demo search over num_candidates trials.
            demos = tuple(
                FewShotExample(
                    input=example.input or {},
                    output=self.module.label_output(example.expected_output or {}).to_wire(),
                )
                for example in train_examples[: self.config.max_labeled_demos]
            )
            return ProgramCandidate(prompt=self.module.default_prompt, demos=demos)
        raise AssertionError(f"unhandled optimizer kind: {info.kind}")

    def _artifact(
        self, candidate: ProgramCandidate, metadata: dict[str, Any] | None = None
    ) -> CompiledArtifact:
        return CompiledArtifact(
            module_id=self.module.id,
            prompt=candidate.prompt or self.module.default_prompt,
            few_shot_examples=candidate.demos,
            metadata=metadata or {},
        )

    def score_examples(
        self,
        module: BaseModule[Any, Any],
        examples: Sequence[DatasetExample],
        ctx: ModuleContext,
        label: str = "eval",
    ) -> float:
        """Mean metric score over ``examples``, one example at a time."""
        if not examples:
            raise ValueError(f"cannot score an empty {label} split")
        scores: list[float] = []
        progress = tqdm(
            examples,
            desc=f"  {module.id} {label}",
            leave=False,
            ncols=80,
            disable=not self.config.verbose,
        )
        for example in progress:
            output = module.forward(ctx, example.input or {})
            result = self.metric.evaluate(output, example.expected_output)
            scores.append(result.score)
        return sum(scores) / len(scores)
