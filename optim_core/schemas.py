from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .strategies import OptimizerKind, require_implemented


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


TBaseSchema = TypeVar("TBaseSchema", bound="BaseSchema")


class BaseSchema(BaseModel):
    """Shared base: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_json(cls: type[TBaseSchema], data: str) -> TBaseSchema:
        return cls.model_validate_json(data)

    @classmethod
    def from_dict(cls: type[TBaseSchema], data: Mapping[str, object]) -> TBaseSchema:
        return cls.model_validate(data)


class FewShotExample(BaseSchema):
    input: dict[str, Any]
    output: dict[str, Any]


class CompiledArtifact(BaseSchema):
    model_config = ConfigDict(frozen=True)

    module_id: str
    version: str = "1.0"
    compiled_at: datetime = Field(default_factory=utc_now)
    prompt: str
    few_shot_examples: tuple[FewShotExample, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("compiled_at")
    @classmethod
    def compiled_at_utc(cls, value: datetime) -> datetime:
        return _ensure_utc(value)


class ExampleMetadata(BaseSchema):
    category: str | None = None
    difficulty: Literal["easy", "medium", "hard"] | None = None
    notes: str | None = None


class DatasetExample(BaseSchema):
    # Required fields are optional here so validate_dataset can report them.
    id: str | None = None
    input: dict[str, Any] | None = None
    expected_output: Any = None
    metadata: ExampleMetadata | None = None


class Dataset(BaseSchema):
    version: str = "1.0"
    module_id: str
    description: str = ""
    examples: list[DatasetExample] = Field(default_factory=list)


class OptimizationConfig(BaseSchema):
    optimizer_kind: OptimizerKind = OptimizerKind.MIPRO
    max_bootstrapped_demos: int = Field(default=10, ge=0)
    max_labeled_demos: int = Field(default=20, ge=0)
    num_candidates: int = Field(default=8, ge=1)
    max_steps: int = Field(default=50, ge=1)
    verbose: bool = True

    @field_validator("optimizer_kind")
    @classmethod
    def kind_is_implemented(cls, value: OptimizerKind) -> OptimizerKind:
        # StrategyNotImplementedError is not a ValueError, so it escapes
        # pydantic's wrapping and reaches the caller unchanged.
        _ = require_implemented(value)
        return value


class CostEstimate(BaseSchema):
    total_tokens: int = 0
    estimated_cost: float = 0.0


class OptimizationResult(BaseSchema):
    artifact: CompiledArtifact
    train_score: float
    test_score: float
    optimizer_kind: OptimizerKind
    cost_estimate: CostEstimate | None = None
    artifact_path: str | None = None


class LLMProviderConfig(BaseSchema):
    provider_id: str = "openai"
    provider_type: str = "openai"
    base_url: str | None = None
    model_name: str = "gpt-4o-mini"
    api_key: str | None = Field(default=None, repr=False)
    max_retries: int = 3
    timeout_seconds: int = 30
