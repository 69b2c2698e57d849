"""Base LLM provider interfaces and the chat completion boundary."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class LLMMessage:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class LLMConfig:
    model: str
    temperature: float | None = None
    max_tokens: int | None = None
    api_key: str = field(default="", repr=False)


@dataclass(frozen=True)
class TokenUsage:
    prompt: int = 0
    completion: int = 0

    @property
    def total(self) -> int:
        return self.prompt + self.completion


@dataclass(frozen=True)
class LLMResponse:
    content: str
    tokens_used: TokenUsage
    latency_ms: float


def _empty_metrics() -> dict[str, float | int]:
    return {
        "calls": 0,
        "total_latency_ms": 0.0,
        "total_input_tokens": 0,
        "total_output_tokens": 0,
        "errors": 0,
    }


class BaseLLMProvider(ABC):
    """Abstract chat completion provider.

    Subclasses implement ``_complete``; ``complete`` wraps it with usage
    accounting so every provider reports the same counters.
    """

    name: str

    def __init__(self, name: str) -> None:
        self.name = name
        self._metrics = _empty_metrics()

    def complete(self, messages: Sequence[LLMMessage], config: LLMConfig) -> LLMResponse:
        """Send an ordered message list and return the completion."""
        try:
            response = self._complete(list(messages), config)
        except Exception:
            self._metrics["errors"] += 1
            raise
        self._metrics["calls"] += 1
        self._metrics["total_latency_ms"] += response.latency_ms
        self._metrics["total_input_tokens"] += response.tokens_used.prompt
        self._metrics["total_output_tokens"] += response.tokens_used.completion
        return response

    @abstractmethod
    def _complete(self, messages: list[LLMMessage], config: LLMConfig) -> LLMResponse:
        """Perform the provider call."""

    def get_metrics(self) -> dict[str, object]:
        """Get current metrics."""
        metrics: dict[str, object] = dict(self._metrics)
        calls = int(self._metrics["calls"])
        if calls > 0:
            metrics["avg_latency_ms"] = float(self._metrics["total_latency_ms"]) / calls
        else:
            metrics["avg_latency_ms"] = 0.0
        return metrics

    def total_tokens(self) -> int:
        return int(self._metrics["total_input_tokens"]) + int(self._metrics["total_output_tokens"])

    def reset_metrics(self) -> None:
        """Reset metrics."""
        self._metrics = _empty_metrics()
