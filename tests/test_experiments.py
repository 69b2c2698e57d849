import json
from pathlib import Path

import pytest
import yaml

from evaluator.text_metrics import F1ScoreMetric
from evaluator.tool_match import ToolMatchMetric
from experiments.config import ExperimentConfig, load_config, resolve_api_key, save_config
from experiments.runner import build_provider_registry, evaluate_module, metric_for_module
from llm.base import LLMConfig
from llm.providers import FakeProvider
from optim_core.errors import ProviderError, UnknownEntryError
from optim_core.module import ModuleContext
from optim_core.schemas import DatasetExample, LLMProviderConfig
from optim_core.strategies import OptimizerKind
from optim_core.tool_router import ToolRouterModule


# --- Config ---


def test_default_config() -> None:
    config = ExperimentConfig()
    assert config.temperature == 0.7
    assert config.seed == 42
    assert config.train_ratio == 0.8
    assert config.optimization.optimizer_kind is OptimizerKind.MIPRO
    assert config.dataset_path("tool-router") == Path("evals/datasets/tool-routing.json")
    assert config.dataset_path("unknown") is None


def test_load_config_from_yaml(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        yaml.safe_dump(
            {
                "provider": {"provider_id": "fake", "provider_type": "fake", "model_name": "fake-model"},
                "temperature": 0.2,
                "seed": 7,
                "train_ratio": 0.5,
                "artifact_dir": str(tmp_path / "artifacts"),
                "optimization": {"max_labeled_demos": 4, "verbose": False},
            }
        ),
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.provider.provider_type == "fake"
    assert config.temperature == 0.2
    assert config.seed == 7
    assert config.optimization.max_labeled_demos == 4
    assert config.llm_config("k") == LLMConfig(model="fake-model", temperature=0.2, max_tokens=None, api_key="k")


def test_save_and_reload_config_omits_api_key(tmp_path: Path) -> None:
    config = ExperimentConfig(provider=LLMProviderConfig(api_key="sk-secret"), seed=11)
    path = tmp_path / "out" / "config.yaml"

    save_config(config, path)

    assert "sk-secret" not in path.read_text(encoding="utf-8")
    reloaded = load_config(path)
    assert reloaded.seed == 11
    assert reloaded.provider.api_key is None


def test_load_config_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        _ = load_config(tmp_path / "missing.yaml")


def test_load_config_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        _ = load_config(path)


def test_load_config_rejects_planned_optimizer(tmp_path: Path) -> None:
    path = tmp_path / "ace.yaml"
    path.write_text("optimization:\n  optimizer_kind: ace\n", encoding="utf-8")
    with pytest.raises(ValueError, match="ACE optimizer not yet implemented"):
        _ = load_config(path)


def test_load_config_rejects_bad_ratio(tmp_path: Path) -> None:
    path = tmp_path / "ratio.yaml"
    path.write_text("train_ratio: 1.5\n", encoding="utf-8")
    with pytest.raises(ValueError):
        _ = load_config(path)


def test_resolve_api_key_order(tmp_path: Path) -> None:
    user_config = tmp_path / "config.json"
    user_config.write_text(json.dumps({"openaiApiKey": "from-file"}), encoding="utf-8")

    explicit = ExperimentConfig(provider=LLMProviderConfig(api_key="from-config"))
    plain = ExperimentConfig()

    assert resolve_api_key(explicit, env={"OPENAI_API_KEY": "from-env"}, user_config_path=user_config) == "from-config"
    assert resolve_api_key(plain, env={"OPENAI_API_KEY": "from-env"}, user_config_path=user_config) == "from-env"
    assert resolve_api_key(plain, env={}, user_config_path=user_config) == "from-file"
    assert resolve_api_key(plain, env={}, user_config_path=tmp_path / "missing.json") is None


def test_resolve_api_key_ignores_unreadable_user_config(tmp_path: Path) -> None:
    user_config = tmp_path / "config.json"
    user_config.write_text("not json", encoding="utf-8")
    assert resolve_api_key(ExperimentConfig(), env={}, user_config_path=user_config) is None


# --- Runner ---


def test_metric_for_module() -> None:
    assert isinstance(metric_for_module("tool-router"), ToolMatchMetric)
    assert isinstance(metric_for_module("journal-chat"), F1ScoreMetric)


def test_provider_registry() -> None:
    registry = build_provider_registry(
        [LLMProviderConfig(provider_id="fake-a", provider_type="fake"), LLMProviderConfig(provider_id="fake-b", provider_type="fake")]
    )
    assert registry.ids() == ["fake-a", "fake-b"]
    with pytest.raises(UnknownEntryError, match='Provider "openai" not found'):
        _ = registry.get("openai")


def _routing_examples() -> list[DatasetExample]:
    return [
        DatasetExample(
            id="search",
            input={"query": "sister"},
            expected_output={"shouldUseTool": True, "toolName": "search_journal", "toolArguments": {"query": "sister"}},
        ),
        DatasetExample(
            id="greeting",
            input={"query": "hi"},
            expected_output={"shouldUseTool": False, "toolName": None, "toolArguments": None},
        ),
    ]


def test_evaluate_module_summarizes_outcomes() -> None:
    provider = FakeProvider(
        replies=[
            'Decision: {"shouldUseTool": true, "toolName": "search_journal", "toolArguments": {"query": "sister"}}',
            '{"shouldUseTool": true, "toolName": "get_insights", "toolArguments": null}',
        ]
    )
    ctx = ModuleContext(provider=provider, config=LLMConfig(model="m"))

    summary = evaluate_module(ToolRouterModule(), ToolMatchMetric(), _routing_examples(), ctx, show_progress=False)

    assert summary.total == 2
    assert summary.passed == 1
    assert summary.average_score == pytest.approx(0.5)
    assert summary.pass_rate == pytest.approx(0.5)
    assert [o.example_id for o in summary.outcomes] == ["search", "greeting"]
    assert summary.decode_counts() == {"parsed": 1, "recovered": 1, "defaulted": 0}


def test_evaluate_module_propagates_provider_errors() -> None:
    def down(messages: object) -> str:
        raise ProviderError("down")

    ctx = ModuleContext(provider=FakeProvider(replies=down), config=LLMConfig(model="m"))
    with pytest.raises(ProviderError):
        _ = evaluate_module(ToolRouterModule(), ToolMatchMetric(), _routing_examples(), ctx, show_progress=False)


def test_empty_summary() -> None:
    ctx = ModuleContext(provider=FakeProvider(), config=LLMConfig(model="m"))
    summary = evaluate_module(ToolRouterModule(), ToolMatchMetric(), [], ctx, show_progress=False)
    assert summary.total == 0
    assert summary.average_score == 0.0
