"""CLI interface for evaluating and optimizing modules."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError

from evaluator.datasets import dataset_summary, load_dataset, split_dataset, validate_dataset
from experiments.config import ExperimentConfig, load_config, resolve_api_key
from experiments.runner import build_provider_registry, evaluate_module, metric_for_module
from llm.base import BaseLLMProvider
from optim_core.errors import NotFoundError, OptimError, UnknownEntryError
from optim_core.module import ModuleContext
from optim_core.optimizer import ModuleOptimizer
from optim_core.registry import build_module_registry
from optim_core.schemas import Dataset, OptimizationConfig
from optim_core.strategies import list_optimizers
from store.artifacts import ArtifactStore

app = typer.Typer(help="JournAI module optimization CLI")

MIN_RECOMMENDED_EXAMPLES = 20


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> NoReturn:
    typer.secho(f"❌ {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


def _load_settings(config_path: Optional[str]) -> ExperimentConfig:
    if config_path is None:
        return ExperimentConfig()
    try:
        return load_config(config_path)
    except FileNotFoundError as e:
        _fail(f"Config file not found: {e}")
    except ValueError as e:
        _fail(f"Invalid config: {e}")


def _build_provider(config: ExperimentConfig) -> tuple[BaseLLMProvider, str]:
    api_key = ""
    if config.provider.provider_type.lower() != "fake":
        api_key = resolve_api_key(config) or ""
        if not api_key:
            _fail("OPENAI_API_KEY environment variable required")
    provider_config = config.provider.model_copy(update={"api_key": api_key})
    try:
        providers = build_provider_registry([provider_config])
        return providers.get(provider_config.provider_id), api_key
    except (ValueError, UnknownEntryError) as e:
        _fail(str(e))


def _resolve_dataset(config: ExperimentConfig, module_id: str, dataset: Optional[str]) -> Dataset:
    path = Path(dataset) if dataset else config.dataset_path(module_id)
    if path is None:
        _fail(f'No dataset configured for module "{module_id}"')
    try:
        return load_dataset(path)
    except NotFoundError as e:
        _fail(str(e))
    except ValueError as e:
        _fail(f"Invalid dataset: {e}")


@app.command()
def evaluate(
    module_id: str = typer.Argument("journal-chat", help="Module to evaluate"),
    dataset: Optional[str] = typer.Option(None, "--dataset", help="Dataset JSON file"),
    compiled: bool = typer.Option(False, "--compiled", help="Use the latest compiled artifact"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Experiment YAML config"),
) -> None:
    """Score a module against its golden dataset."""
    config = _load_settings(config_path)
    registry = build_module_registry()
    try:
        module = registry.get(module_id)
    except UnknownEntryError as e:
        _fail(str(e))

    typer.secho(f"\n📊 Evaluating module: {module_id}", fg=typer.colors.BLUE)
    typer.echo(f"   Using {'compiled' if compiled else 'default'} prompt\n")

    data = _resolve_dataset(config, module_id, dataset)
    provider, api_key = _build_provider(config)

    if compiled:
        store = ArtifactStore(config.artifact_dir)
        try:
            artifact = store.load_latest(module_id)
        except (NotFoundError, ValueError) as e:
            _fail(f"Could not load artifact: {e}")
        if artifact is not None:
            registry.load_compiled(module_id, artifact)
            typer.echo(f"✓ Loaded compiled artifact from {artifact.compiled_at.isoformat()}\n")
        else:
            typer.secho("⚠️  No compiled artifact found, using default\n", fg=typer.colors.YELLOW)

    ctx = ModuleContext(provider=provider, config=config.llm_config(api_key))
    try:
        summary = evaluate_module(module, metric_for_module(module_id), data.examples, ctx)
    except (OptimError, ValidationError) as e:
        _fail(f"Evaluation failed: {e}")

    for outcome in summary.outcomes:
        mark = "✓" if outcome.passed else "✗"
        typer.echo(f"  {outcome.example_id}... {mark} ({outcome.score * 100:.0f}%)")

    typer.echo("\n" + "=" * 60)
    typer.echo(
        f"RESULTS: {summary.passed}/{summary.total} passed ({summary.pass_rate * 100:.1f}%)"
    )
    typer.echo(f"Average score: {summary.average_score * 100:.1f}%")
    typer.echo("=" * 60 + "\n")

    if not compiled:
        typer.echo("💡 Tip: Run optimization to improve performance")
        typer.echo(f"   journai-optim optimize {module_id}\n")


@app.command()
def optimize(
    module_id: str = typer.Argument("journal-chat", help="Module to optimize"),
    dataset: Optional[str] = typer.Option(None, "--dataset", help="Dataset JSON file"),
    optimizer: Optional[str] = typer.Option(None, "--optimizer", help="mipro, ace or gepa"),
    train_ratio: Optional[float] = typer.Option(None, "--train-ratio", help="Training share, 0..1"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Split seed"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Experiment YAML config"),
) -> None:
    """Optimize a module and save the compiled artifact."""
    config = _load_settings(config_path)
    registry = build_module_registry()
    try:
        module = registry.get(module_id)
    except UnknownEntryError as e:
        _fail(str(e))

    try:
        opt_config = (
            OptimizationConfig.model_validate(
                {**config.optimization.model_dump(), "optimizer_kind": optimizer}
            )
            if optimizer
            else config.optimization
        )
    except NotImplementedError as e:
        _fail(str(e))
    except ValidationError as e:
        _fail(f"Unknown optimizer: {optimizer} ({e.error_count()} error(s))")

    typer.secho(f"\n🚀 Optimizing module: {module_id}", fg=typer.colors.BLUE)
    typer.echo(f"   Optimizer: {opt_config.optimizer_kind.value.upper()}\n")

    data = _resolve_dataset(config, module_id, dataset)
    report = validate_dataset(data)
    if not report.valid:
        typer.secho("❌ Dataset validation failed:", fg=typer.colors.RED, err=True)
        for error in report.errors:
            typer.echo(f"   - {error}", err=True)
        raise typer.Exit(1)

    typer.echo(dataset_summary(data))
    if len(data.examples) < MIN_RECOMMENDED_EXAMPLES:
        typer.secho(
            f"⚠️  Only {len(data.examples)} examples. "
            f"Recommend at least {MIN_RECOMMENDED_EXAMPLES} for good results.",
            fg=typer.colors.YELLOW,
        )

    try:
        split = split_dataset(
            data,
            config.train_ratio if train_ratio is None else train_ratio,
            seed=config.seed if seed is None else seed,
        )
    except ValueError as e:
        _fail(str(e))
    if not split.train or not split.test:
        _fail(f"Split produced {len(split.train)} train / {len(split.test)} test examples")
    typer.echo(f"\nSplit: {len(split.train)} train / {len(split.test)} test\n")

    provider, api_key = _build_provider(config)
    optimizer_run = ModuleOptimizer(
        module,
        metric_for_module(module_id),
        config=opt_config,
        store=ArtifactStore(config.artifact_dir),
    )
    try:
        result = optimizer_run.optimize(split.train, split.test, provider, config.llm_config(api_key))
    except (OptimError, ValidationError) as e:
        _fail(f"Optimization failed: {e}")

    typer.echo("\n" + "=" * 60)
    typer.secho("✅ Optimization complete!", fg=typer.colors.GREEN)
    typer.echo(f"   Train score: {result.train_score * 100:.1f}%")
    typer.echo(f"   Test score:  {result.test_score * 100:.1f}%")
    typer.echo(f"   Tokens used: {result.cost_estimate.total_tokens}")
    typer.echo(f"   Est. cost:   ${result.cost_estimate.estimated_cost:.2f}")
    typer.echo(f"   Artifact:    {result.artifact_path}")
    typer.echo("=" * 60 + "\n")


@app.command()
def validate(
    dataset_path: str = typer.Argument(..., help="Dataset JSON file"),
) -> None:
    """Check a dataset for missing fields."""
    try:
        data = load_dataset(dataset_path)
    except NotFoundError as e:
        _fail(str(e))
    except ValueError as e:
        _fail(f"Invalid dataset: {e}")

    report = validate_dataset(data)
    if not report.valid:
        typer.secho(f"❌ {len(report.errors)} problem(s) found:", fg=typer.colors.RED, err=True)
        for error in report.errors:
            typer.echo(f"   - {error}", err=True)
        raise typer.Exit(1)

    typer.secho("✅ Dataset is valid", fg=typer.colors.GREEN)
    typer.echo(dataset_summary(data))


@app.command(name="list-optimizers")
def list_optimizers_cmd() -> None:
    """List optimizer strategies and their availability."""
    typer.secho("\n🧭 Optimizer strategies:\n", fg=typer.colors.BLUE)
    for info in list_optimizers():
        status = "available" if info.implemented else "planned"
        color = typer.colors.GREEN if info.implemented else typer.colors.YELLOW
        typer.secho(f"  {info.kind.value:<6} [{status}]", fg=color)
        typer.echo(f"    {info.description}")
        typer.echo(f"    Time: {info.estimated_time}, cost per 50 examples: ${info.cost_per_50_examples:.2f}")


@app.command()
def list_artifacts(
    module_id: Optional[str] = typer.Option(None, "--module", help="Only this module"),
    artifact_dir: Optional[str] = typer.Option(None, "--artifact-dir", help="Artifacts directory"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Experiment YAML config"),
) -> None:
    """List saved compiled artifacts, newest first."""
    config = _load_settings(config_path)
    store = ArtifactStore(artifact_dir or config.artifact_dir)
    paths = store.list_artifacts(module_id)

    if not paths:
        typer.secho("No artifacts found.", fg=typer.colors.YELLOW)
        return

    typer.secho(f"\n📁 Found {len(paths)} artifact(s):\n", fg=typer.colors.BLUE)
    for path in paths:
        try:
            artifact = store.load(path)
        except ValueError as e:
            typer.secho(f"  {path.name}: unreadable ({e})", fg=typer.colors.YELLOW)
            continue
        score = artifact.metadata.get("testScore")
        score_text = f", test {score * 100:.1f}%" if isinstance(score, (int, float)) else ""
        typer.echo(
            f"  {path.name}: {len(artifact.few_shot_examples)} demos, "
            f"compiled {artifact.compiled_at.isoformat()}{score_text}"
        )


if __name__ == "__main__":
    app()
