import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from experiments.cli import app
from experiments.runner import build_provider_registry
from store.artifacts import ArtifactStore

runner = CliRunner()


def _write_dataset(path: Path, n: int = 5) -> Path:
    examples = [
        {
            "id": f"route-{i}",
            "input": {"query": f"hello {i}"},
            "expectedOutput": {"shouldUseTool": False, "toolName": None, "toolArguments": None},
            "metadata": {"category": "none", "difficulty": "easy"},
        }
        for i in range(n)
    ]
    path.write_text(json.dumps({"version": "1.0", "moduleId": "tool-router", "examples": examples}), encoding="utf-8")
    return path


def _write_config(tmp_path: Path, dataset: Path) -> Path:
    config_file = tmp_path / "config.yaml"
    with open(config_file, "w") as f:
        yaml.dump(
            {
                "provider": {"provider_id": "fake", "provider_type": "fake", "model_name": "fake-model"},
                "artifact_dir": str(tmp_path / "artifacts"),
                "datasets": {"tool-router": str(dataset)},
                "optimization": {"verbose": False},
            },
            f,
        )
    return config_file


def test_list_optimizers() -> None:
    result = runner.invoke(app, ["list-optimizers"])

    assert result.exit_code == 0
    assert "mipro" in result.output
    assert "available" in result.output
    assert "planned" in result.output


def test_validate_good_dataset(tmp_path: Path) -> None:
    dataset = _write_dataset(tmp_path / "routing.json")
    result = runner.invoke(app, ["validate", str(dataset)])

    assert result.exit_code == 0
    assert "Dataset is valid" in result.output


def test_validate_reports_problems(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"moduleId": "tool-router", "examples": [{"id": "a", "input": {"query": "q"}}]}))
    result = runner.invoke(app, ["validate", str(path)])

    assert result.exit_code == 1
    assert "Example 0 missing expectedOutput" in result.output


def test_validate_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["validate", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert "Dataset not found" in result.output


def test_evaluate_with_fake_provider(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json"))
    result = runner.invoke(app, ["evaluate", "tool-router", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "RESULTS: 5/5 passed" in result.output
    assert "Average score: 100.0%" in result.output


def test_evaluate_compiled_without_artifacts_falls_back(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json"))
    result = runner.invoke(app, ["evaluate", "tool-router", "--compiled", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "No compiled artifact found" in result.output


def test_evaluate_unknown_module(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json"))
    result = runner.invoke(app, ["evaluate", "nope", "--config", str(config_file)])

    assert result.exit_code == 1
    assert 'Module "nope" not found' in result.output


def test_evaluate_requires_api_key_for_real_provider(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setattr("experiments.cli.resolve_api_key", lambda config: None)
    dataset = _write_dataset(tmp_path / "routing.json")
    config_file = tmp_path / "openai.yaml"
    config_file.write_text(yaml.dump({"datasets": {"tool-router": str(dataset)}}), encoding="utf-8")

    result = runner.invoke(app, ["evaluate", "tool-router", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output


def test_optimize_writes_artifact(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json", n=6))
    result = runner.invoke(
        app,
        ["optimize", "tool-router", "--config", str(config_file), "--train-ratio", "0.5", "--seed", "1"],
    )

    assert result.exit_code == 0, result.output
    assert "Split: 3 train / 3 test" in result.output
    assert "Only 6 examples" in result.output
    assert "Test score:  100.0%" in result.output

    latest = ArtifactStore(tmp_path / "artifacts").load_latest("tool-router")
    assert latest is not None
    assert len(latest.few_shot_examples) == 3


def test_optimize_then_evaluate_compiled(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json"))
    assert runner.invoke(app, ["optimize", "tool-router", "--config", str(config_file)]).exit_code == 0

    result = runner.invoke(app, ["evaluate", "tool-router", "--compiled", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "Loaded compiled artifact" in result.output


def test_optimize_rejects_planned_optimizer(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json"))
    result = runner.invoke(app, ["optimize", "tool-router", "--optimizer", "gepa", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "GEPA optimizer not yet implemented" in result.output
    assert not (tmp_path / "artifacts").exists()


def test_optimize_rejects_unknown_optimizer(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json"))
    result = runner.invoke(app, ["optimize", "tool-router", "--optimizer", "bogus", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "Unknown optimizer" in result.output


def test_optimize_rejects_split_without_test_examples(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json"))
    result = runner.invoke(app, ["optimize", "tool-router", "--train-ratio", "1.0", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "5 train / 0 test" in result.output
    assert not (tmp_path / "artifacts").exists()


def test_optimize_rejects_invalid_dataset(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"moduleId": "tool-router", "examples": []}))
    config_file = _write_config(tmp_path, path)
    result = runner.invoke(app, ["optimize", "tool-router", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "Dataset must contain at least one example" in result.output


def test_list_artifacts(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json"))
    empty = runner.invoke(app, ["list-artifacts", "--config", str(config_file)])
    assert "No artifacts found" in empty.output

    assert runner.invoke(app, ["optimize", "tool-router", "--config", str(config_file)]).exit_code == 0
    result = runner.invoke(app, ["list-artifacts", "--config", str(config_file), "--module", "tool-router"])

    assert result.exit_code == 0
    assert "Found 1 artifact(s)" in result.output
    assert "tool-router-" in result.output


def test_missing_config_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["list-artifacts", "--config", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 1
    assert "Config file not found" in result.output


def _write_chat_dataset(path: Path, examples: list[dict]) -> Path:
    path.write_text(json.dumps({"version": "1.0", "moduleId": "journal-chat", "examples": examples}), encoding="utf-8")
    return path


def test_evaluate_reports_example_with_missing_input_field(tmp_path: Path) -> None:
    dataset = _write_chat_dataset(
        tmp_path / "chat.json",
        [{"id": "chat-0", "input": {"text": "no query here"}, "expectedOutput": "anything"}],
    )
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json"))

    result = runner.invoke(app, ["evaluate", "journal-chat", "--dataset", str(dataset), "--config", str(config_file)])

    assert result.exit_code == 1
    assert "Evaluation failed" in result.output
    assert "query" in result.output


def test_optimize_reports_example_with_missing_input_field(tmp_path: Path) -> None:
    dataset = _write_chat_dataset(
        tmp_path / "chat.json",
        [{"id": f"chat-{i}", "input": {"text": f"entry {i}"}, "expectedOutput": f"answer {i}"} for i in range(4)],
    )
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json"))

    result = runner.invoke(
        app,
        ["optimize", "journal-chat", "--dataset", str(dataset), "--train-ratio", "0.5", "--config", str(config_file)],
    )

    assert result.exit_code == 1
    assert "Optimization failed" in result.output
    assert not (tmp_path / "artifacts").exists()


def test_optimize_chat_dataset_with_string_labels(tmp_path: Path) -> None:
    dataset = _write_chat_dataset(
        tmp_path / "chat.json",
        [{"id": f"chat-{i}", "input": {"query": f"question {i}"}, "expectedOutput": f"answer {i}"} for i in range(6)],
    )
    config_file = _write_config(tmp_path, _write_dataset(tmp_path / "routing.json"))

    result = runner.invoke(
        app,
        ["optimize", "journal-chat", "--dataset", str(dataset), "--train-ratio", "0.5", "--config", str(config_file)],
    )

    assert result.exit_code == 0, result.output
    latest = ArtifactStore(tmp_path / "artifacts").load_latest("journal-chat")
    assert latest is not None
    assert all(set(demo.output) == {"response", "citedDates"} for demo in latest.few_shot_examples)
    assert all(demo.output["response"].startswith("answer ") for demo in latest.few_shot_examples)


def test_cli_builds_provider_through_registry(tmp_path: Path, monkeypatch) -> None:
    built: list[list[str]] = []

    def _recording_registry(configs):  # type: ignore[no-untyped-def]
        configs = list(configs)
        built.append([config.provider_id for config in configs])
        return build_provider_registry(configs)

    monkeypatch.setattr("experiments.cli.build_provider_registry", _recording_registry)
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        yaml.dump(
            {
                "provider": {"provider_id": "local-fake", "provider_type": "fake", "model_name": "fake-model"},
                "datasets": {"tool-router": str(_write_dataset(tmp_path / "routing.json"))},
            }
        ),
        encoding="utf-8",
    )

    result = runner.invoke(app, ["evaluate", "tool-router", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert built == [["local-fake"]]
