"""LLM provider implementations."""

from __future__ import annotations

import importlib
import json
import os
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Protocol, cast

from optim_core.errors import ProviderError
from optim_core.schemas import LLMProviderConfig

from .base import BaseLLMProvider, LLMConfig, LLMMessage, LLMResponse, TokenUsage
from .retry import RetryPolicy


class _ChatCompletions(Protocol):
    def create(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int | None,
    ) -> object: ...


class _Chat(Protocol):
    completions: _ChatCompletions


class _OpenAIClient(Protocol):
    chat: _Chat


def _load_openai_client(
    api_key: str | None,
    base_url: str | None,
    timeout_seconds: int,
) -> _OpenAIClient:
    try:
        module = importlib.import_module("openai")
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency at runtime
        raise ImportError("openai is required to use OpenAIProvider") from exc
    openai_client = getattr(module, "OpenAI", None)
    if openai_client is None:
        raise ImportError("openai.OpenAI client is unavailable")
    return cast(
        _OpenAIClient,
        openai_client(api_key=api_key, base_url=base_url, timeout=timeout_seconds),
    )


def _extract_usage(raw_usage: object) -> TokenUsage:
    if raw_usage is None:
        return TokenUsage()
    model_dump = getattr(raw_usage, "model_dump", None)
    if callable(model_dump):
        raw_usage = model_dump()
    if not isinstance(raw_usage, Mapping):
        return TokenUsage()
    typed_usage = cast(Mapping[str, object], raw_usage)
    prompt = typed_usage.get("prompt_tokens", 0)
    completion = typed_usage.get("completion_tokens", 0)
    return TokenUsage(
        prompt=int(prompt) if isinstance(prompt, (int, float)) else 0,
        completion=int(completion) if isinstance(completion, (int, float)) else 0,
    )


def _extract_text(response: object) -> str:
    if response is None:
        return ""
    choices = cast(Sequence[object] | None, getattr(response, "choices", None))
    if not choices:
        return ""
    message = cast(object, getattr(choices[0], "message", None))
    content = cast(object | None, getattr(message, "content", None)) if message is not None else None
    return "" if content is None else str(content)


class OpenAIProvider(BaseLLMProvider):
    """OpenAI-compatible chat completion provider."""

    provider_type: str
    _base_url: str | None
    _timeout_seconds: int
    _retry_policy: RetryPolicy | None
    _default_api_key: str | None
    _clients: dict[str | None, _OpenAIClient]

    def __init__(
        self,
        name: str = "openai",
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: int = 30,
        retry_policy: RetryPolicy | None = None,
        provider_type: str = "openai",
    ) -> None:
        super().__init__(name=name)
        self.provider_type = provider_type
        self._default_api_key = api_key or os.getenv("OPENAI_API_KEY")
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._retry_policy = retry_policy
        self._clients = {}

    def _client_for(self, api_key: str | None) -> _OpenAIClient:
        if api_key not in self._clients:
            self._clients[api_key] = _load_openai_client(api_key, self._base_url, self._timeout_seconds)
        return self._clients[api_key]

    def _complete(  # pyright: ignore[reportImplicitOverride]
        self, messages: list[LLMMessage], config: LLMConfig
    ) -> LLMResponse:
        client = self._client_for(config.api_key or self._default_api_key)
        payload = [message.to_dict() for message in messages]

        def _call() -> object:
            return client.chat.completions.create(
                model=config.model,
                messages=payload,
                temperature=0.7 if config.temperature is None else config.temperature,
                max_tokens=config.max_tokens,
            )

        start = time.perf_counter()
        try:
            if self._retry_policy is None:
                response = _call()
            else:
                response = self._retry_policy.execute(_call)
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(f"{self.name} ({self.provider_type}) completion failed: {exc}") from exc
        latency_ms = (time.perf_counter() - start) * 1000

        return LLMResponse(
            content=_extract_text(response),
            tokens_used=_extract_usage(getattr(response, "usage", None)),
            latency_ms=latency_ms,
        )


ReplyFn = Callable[[list[LLMMessage]], str]


def _echo_reply(messages: list[LLMMessage]) -> str:
    last_user = next((m.content for m in reversed(messages) if m.role == "user"), "")
    return json.dumps({"response": last_user, "citedDates": []})


class FakeProvider(BaseLLMProvider):
    """Deterministic fake provider for offline tests and demo runs.

    Replies come from ``replies`` in order (the last one repeats), from a
    callable, or default to echoing the final user message as a chat answer.
    """

    call_count: int
    requests: list[list[LLMMessage]]

    def __init__(
        self,
        name: str = "fake",
        replies: Sequence[str] | ReplyFn | None = None,
    ) -> None:
        super().__init__(name=name)
        self.call_count = 0
        self.requests = []
        self._replies = replies

    def _next_reply(self, messages: list[LLMMessage]) -> str:
        if self._replies is None:
            return _echo_reply(messages)
        if callable(self._replies):
            return self._replies(messages)
        if not self._replies:
            return ""
        index = min(self.call_count, len(self._replies)) - 1
        return self._replies[index]

    def _complete(  # pyright: ignore[reportImplicitOverride]
        self, messages: list[LLMMessage], config: LLMConfig
    ) -> LLMResponse:
        self.call_count += 1
        self.requests.append(messages)
        text = self._next_reply(messages)
        prompt_words = sum(len(m.content.split()) for m in messages)
        return LLMResponse(
            content=text,
            tokens_used=TokenUsage(prompt=prompt_words, completion=len(text.split())),
            latency_ms=0.0,
        )


def create_provider(
    config: LLMProviderConfig,
    retry_policy: RetryPolicy | None = None,
) -> BaseLLMProvider:
    provider_type = config.provider_type.lower()
    if provider_type in {"openai", "deepseek", "glm"}:
        policy = retry_policy or RetryPolicy(max_retries=config.max_retries)
        return OpenAIProvider(
            name=config.provider_id,
            api_key=config.api_key,
            base_url=config.base_url,
            timeout_seconds=config.timeout_seconds,
            retry_policy=policy,
            provider_type=provider_type,
        )
    if provider_type == "fake":
        return FakeProvider(name=config.provider_id)
    raise ValueError(f"Unsupported provider type: {config.provider_type}")
