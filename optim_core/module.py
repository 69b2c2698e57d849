"""Module abstraction: one LLM-backed behavior with a swappable prompt.

A module turns a typed input record into a chat message sequence (system
prompt, few-shot demos, final user turn), calls the provider and decodes the
completion into a typed output record. ``compile`` swaps the prompt and demo
set from a ``CompiledArtifact``; ``export`` snapshots the current state.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Literal, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from llm.base import LLMConfig, LLMMessage, LLMResponse

from .errors import ArtifactMismatchError
from .schemas import CompiledArtifact, FewShotExample

logger = logging.getLogger(__name__)

DecodeStatus = Literal["parsed", "recovered", "defaulted"]


class Record(BaseModel):
    """Base for module input/output records (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


TInput = TypeVar("TInput", bound=Record)
TOutput = TypeVar("TOutput", bound=Record)


class CompletionProvider(Protocol):
    def complete(self, messages: Sequence[LLMMessage], config: LLMConfig) -> LLMResponse: ...


@dataclass(frozen=True)
class ModuleContext:
    provider: CompletionProvider
    config: LLMConfig


@dataclass(frozen=True)
class Demo(Generic[TInput, TOutput]):
    input: TInput
    output: TOutput


@dataclass(frozen=True)
class DecodeResult(Generic[TOutput]):
    value: TOutput
    status: DecodeStatus
    raw: str

    @property
    def clean(self) -> bool:
        return self.status == "parsed"


@dataclass(frozen=True)
class _CompiledState(Generic[TInput, TOutput]):
    prompt: str
    demos: tuple[Demo[TInput, TOutput], ...]


def find_balanced_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span in ``text``.

    Braces inside JSON string literals do not count. Starts that never close
    are skipped in favour of the next ``{``.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        start = text.find("{", start + 1)
    return None


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


class BaseModule(ABC, Generic[TInput, TOutput]):
    """Base class for LLM-backed modules.

    Subclasses set ``id``, ``signature``, ``default_prompt``,
    ``input_model`` and ``output_model`` and provide ``default_output``.
    The formatting hooks default to a JSON dump of the record.
    """

    id: str
    signature: str
    default_prompt: str
    input_model: type[TInput]
    output_model: type[TOutput]
    fallback_log_level: int = logging.WARNING

    def __init__(self) -> None:
        self._compiled: _CompiledState[TInput, TOutput] | None = None

    @property
    def compiled_prompt(self) -> str | None:
        return None if self._compiled is None else self._compiled.prompt

    @property
    def active_prompt(self) -> str:
        compiled = self.compiled_prompt
        return compiled if compiled is not None else self.default_prompt

    @property
    def few_shot_examples(self) -> list[Demo[TInput, TOutput]]:
        return [] if self._compiled is None else list(self._compiled.demos)

    def coerce_input(self, value: TInput | Mapping[str, Any]) -> TInput:
        if isinstance(value, self.input_model):
            return value
        return self.input_model.model_validate(value)

    def coerce_output(self, value: TOutput | Mapping[str, Any]) -> TOutput:
        if isinstance(value, self.output_model):
            return value
        return self.output_model.model_validate(value)

    def label_output(self, value: Any) -> TOutput:
        """Output record for a dataset label, used when building demos."""
        return self.coerce_output(value)

    # -- prompt construction -------------------------------------------------

    def placeholders(self, record: TInput) -> dict[str, str]:
        """Values for ``{{name}}`` tokens in the prompt, keyed by wire name."""
        values: dict[str, str] = {}
        for key, value in record.to_wire().items():
            if isinstance(value, str):
                values[key] = value
            elif isinstance(value, list) and all(isinstance(item, str) for item in value):
                values[key] = ", ".join(value)
        return values

    def render_prompt(self, record: TInput) -> str:
        prompt = self.active_prompt
        for key, value in self.placeholders(record).items():
            prompt = prompt.replace("{{" + key + "}}", value)
        return prompt

    def format_input(self, record: TInput) -> str:
        return _dump(record.to_wire())

    def format_output(self, record: TOutput) -> str:
        return _dump(record.to_wire())

    def format_demo_input(self, record: TInput) -> str:
        return self.format_input(record)

    def format_user_message(self, record: TInput) -> str:
        return self.format_input(record)

    def build_messages(self, record: TInput) -> list[LLMMessage]:
        messages = [LLMMessage(role="system", content=self.render_prompt(record))]
        for demo in self.few_shot_examples:
            messages.append(LLMMessage(role="user", content=self.format_demo_input(demo.input)))
            messages.append(LLMMessage(role="assistant", content=self.format_output(demo.output)))
        messages.append(LLMMessage(role="user", content=self.format_user_message(record)))
        return messages

    # -- decoding ------------------------------------------------------------

    def parse_output(self, text: str) -> TOutput:
        return self.output_model.model_validate_json(text.strip())

    @abstractmethod
    def default_output(self, content: str) -> TOutput:
        """Conservative output used when the completion cannot be decoded."""

    def decode(self, content: str) -> DecodeResult[TOutput]:
        try:
            return DecodeResult(self.parse_output(content), "parsed", content)
        except ValueError:
            pass
        span = find_balanced_object(content)
        if span is not None:
            try:
                value = self.parse_output(span)
            except ValueError:
                pass
            else:
                logger.debug("%s: recovered output from embedded object", self.id)
                return DecodeResult(value, "recovered", content)
        logger.log(
            self.fallback_log_level, "%s: could not decode completion, using default output", self.id
        )
        return DecodeResult(self.default_output(content), "defaulted", content)

    # -- contract --------------------------------------------------------------

    def predict(
        self, ctx: ModuleContext, input: TInput | Mapping[str, Any]
    ) -> DecodeResult[TOutput]:
        """Run the module and return the tagged decode result."""
        record = self.coerce_input(input)
        response = ctx.provider.complete(self.build_messages(record), ctx.config)
        logger.debug("%s raw response: %s", self.id, response.content)
        return self.decode(response.content)

    def forward(self, ctx: ModuleContext, input: TInput | Mapping[str, Any]) -> TOutput:
        return self.predict(ctx, input).value

    def compile(self, artifact: CompiledArtifact) -> None:
        if artifact.module_id != self.id:
            raise ArtifactMismatchError(artifact.module_id, self.id)
        demos = tuple(
            Demo(self.coerce_input(example.input), self.coerce_output(example.output))
            for example in artifact.few_shot_examples
        )
        # Single assignment keeps prompt and demos in step.
        self._compiled = _CompiledState(prompt=artifact.prompt, demos=demos)

    def export(self) -> CompiledArtifact:
        return CompiledArtifact(
            module_id=self.id,
            prompt=self.active_prompt,
            few_shot_examples=tuple(
                FewShotExample(input=demo.input.to_wire(), output=demo.output.to_wire())
                for demo in self.few_shot_examples
            ),
        )

    def __repr__(self) -> str:
        state = "compiled" if self._compiled is not None else "default"
        return f"{type(self).__name__}(id={self.id!r}, state={state})"
