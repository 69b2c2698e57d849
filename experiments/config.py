"""Experiment configuration with YAML support."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import Field

from llm.base import LLMConfig
from optim_core.schemas import BaseSchema, LLMProviderConfig, OptimizationConfig

DEFAULT_DATASETS: dict[str, str] = {
    "journal-chat": "evals/datasets/chat-golden.json",
    "tool-router": "evals/datasets/tool-routing.json",
}

USER_CONFIG_PATH = Path.home() / ".journai" / "config.json"


class ExperimentConfig(BaseSchema):
    """Settings shared by the evaluate and optimize commands."""

    provider: LLMProviderConfig = Field(default_factory=LLMProviderConfig)
    temperature: float = 0.7
    max_tokens: int | None = None

    artifact_dir: str = "evals/artifacts"
    datasets: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_DATASETS))

    seed: int = 42
    train_ratio: float = Field(default=0.8, ge=0.0, le=1.0)
    optimization: OptimizationConfig = Field(default_factory=OptimizationConfig)

    def llm_config(self, api_key: str = "") -> LLMConfig:
        return LLMConfig(
            model=self.provider.model_name,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            api_key=api_key,
        )

    def dataset_path(self, module_id: str) -> Path | None:
        path = self.datasets.get(module_id)
        return Path(path) if path else None


def load_config(yaml_path: str | Path) -> ExperimentConfig:
    """Load experiment configuration from YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        ExperimentConfig instance

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValueError: If YAML is invalid or missing required fields
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        raise ValueError(f"Empty or invalid YAML file: {yaml_path}")

    try:
        return ExperimentConfig.from_dict(data)
    except Exception as e:
        raise ValueError(f"Invalid configuration in {yaml_path}: {e}") from e


def save_config(config: ExperimentConfig, yaml_path: str | Path) -> None:
    """Save configuration to YAML, omitting the API key."""
    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json")
    data["provider"].pop("api_key", None)

    with open(yaml_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)


def resolve_api_key(
    config: ExperimentConfig,
    env: Mapping[str, str] | None = None,
    user_config_path: Path = USER_CONFIG_PATH,
) -> str | None:
    """API key from the config, then ``OPENAI_API_KEY``, then ``~/.journai/config.json``."""
    if config.provider.api_key:
        return config.provider.api_key
    env = os.environ if env is None else env
    if env.get("OPENAI_API_KEY"):
        return env["OPENAI_API_KEY"]
    if user_config_path.exists():
        try:
            data = json.loads(user_config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        key = data.get("openaiApiKey") if isinstance(data, dict) else None
        return key or None
    return None
