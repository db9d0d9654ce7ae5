"""Provider for the OpenAI chat-completions API and compatible services."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

import httpx

from agentsdk.message import Message, Role
from agentsdk.provider import (
    FinishStep,
    LlmRequest,
    LlmResponse,
    Provider,
    SseEventBuffer,
    StreamError,
    StreamEvent,
    TextDelta,
    ToolCallComplete,
    ToolCallDelta,
)
from agentsdk.types import FinishReason, ModelInfo, ProviderConfig, TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com"
_COMPLETIONS_PATH = "/v1/chat/completions"
_DEFAULT_TIMEOUT = httpx.Timeout(600.0, connect=30.0)

_MODELS = (
    ModelInfo("gpt-4.1", "openai", 1047576, 32768, True, True),
    ModelInfo("gpt-4.1-mini", "openai", 1047576, 32768, True, True),
    ModelInfo("gpt-4.1-nano", "openai", 1047576, 32768, True, True),
    ModelInfo("gpt-4o", "openai", 128000, 16384, True, True),
    ModelInfo("gpt-4o-mini", "openai", 128000, 16384, True, True),
    ModelInfo("o3", "openai", 200000, 100000, True, True),
    ModelInfo("o3-mini", "openai", 200000, 100000, False, True),
    ModelInfo("o4-mini", "openai", 200000, 100000, True, True),
)

_PARSE_ERRORS = (ValueError, KeyError, TypeError, AttributeError, IndexError)


@dataclass
class _ToolCallInfo:
    id: str
    name: str
    args_json: str = ""


def _bearer(api_key: str) -> str:
    return f"Bearer {api_key}"


def _finish_reason(text: str) -> FinishReason:
    if text == "tool_calls":
        return FinishReason.TOOL_CALLS
    if text == "length":
        return FinishReason.LENGTH
    return FinishReason.STOP


def _parse_arguments(text: Any) -> Any:
    try:
        return json.loads(text)
    except (ValueError, TypeError):
        return {}


def _http_error(status_code: int, body: str) -> str:
    error = f"HTTP error: {status_code}"
    if not body:
        return error
    try:
        parsed = json.loads(body)
    except ValueError:
        return f"{error} - {body}"
    if isinstance(parsed, dict):
        detail = parsed.get("error")
        if isinstance(detail, dict) and "message" in detail:
            return str(detail["message"])
    return error


def _usage_from(usage: dict[str, Any]) -> TokenUsage:
    result = TokenUsage(usage.get("prompt_tokens", 0), usage.get("completion_tokens", 0))
    details = usage.get("prompt_tokens_details")
    if isinstance(details, dict):
        result.cache_read_tokens = details.get("cached_tokens", 0)
    return result


class OpenAIProvider(Provider):
    """Talks to an OpenAI-compatible chat-completions endpoint.

    ``auth_header`` turns the configured API key into the value of the
    ``Authorization`` header; by default it builds a bearer token.
    """

    def __init__(
        self,
        config: ProviderConfig,
        client: httpx.Client | None = None,
        auth_header: Callable[[str], str] | None = None,
    ) -> None:
        self._config = config
        self._base_url = config.base_url or DEFAULT_BASE_URL
        self._client = client if client is not None else httpx.Client(timeout=_DEFAULT_TIMEOUT)
        self._auth_header = auth_header or _bearer
        self._tool_calls: dict[int, _ToolCallInfo] = {}
        self._cancelled = threading.Event()

    @property
    def base_url(self) -> str:
        return self._base_url

    def name(self) -> str:
        return "openai"

    def models(self) -> list[ModelInfo]:
        return [ModelInfo(**vars(m)) for m in _MODELS]

    def _url(self) -> str:
        return self._base_url + _COMPLETIONS_PATH

    def _headers(self, streaming: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if streaming:
            headers["Accept"] = "text/event-stream"
        headers["Authorization"] = self._auth_header(self._config.api_key)
        if self._config.organization:
            headers["OpenAI-Organization"] = self._config.organization
        headers.update(self._config.headers)
        return headers

    def complete(self, request: LlmRequest) -> LlmResponse:
        body = request.to_openai_format()
        try:
            response = self._client.post(self._url(), content=json.dumps(body), headers=self._headers(False))
        except httpx.HTTPError as exc:
            return LlmResponse(error=f"Network error: {exc}")

        if not response.is_success:
            return LlmResponse(error=_http_error(response.status_code, response.text))

        result = LlmResponse()
        try:
            data = response.json()
            msg = Message(Role.ASSISTANT)
            choices = data.get("choices")
            if choices:
                choice = choices[0]
                message = choice["message"]
                content = message.get("content")
                if content is not None:
                    msg.add_text(str(content))
                for call in message.get("tool_calls") or []:
                    function = call["function"]
                    msg.add_tool_call(
                        call.get("id", ""),
                        function.get("name", ""),
                        _parse_arguments(function.get("arguments", "{}")),
                    )
                result.finish_reason = _finish_reason(choice.get("finish_reason") or "stop")

            usage = data.get("usage")
            if isinstance(usage, dict):
                result.usage = _usage_from(usage)

            msg.finished = True
            msg.finish_reason = result.finish_reason
            msg.usage = result.usage
            result.message = msg
        except _PARSE_ERRORS as exc:
            result.error = f"Parse error: {exc}"
        return result

    def stream(self, request: LlmRequest) -> Iterator[StreamEvent]:
        body = request.to_openai_format()
        body["stream"] = True
        self._tool_calls.clear()
        self._cancelled.clear()
        buffer = SseEventBuffer()
        payload = json.dumps(body)
        logger.debug("OpenAI request URL: %s", self._url())
        logger.debug("OpenAI request body: %s", payload)

        try:
            with self._client.stream("POST", self._url(), content=payload, headers=self._headers(True)) as response:
                if not response.is_success:
                    response.read()
                    yield StreamError(_http_error(response.status_code, response.text))
                    return
                for chunk in response.iter_text():
                    if self._cancelled.is_set():
                        return
                    logger.debug("OpenAI SSE chunk received (%d chars): %s", len(chunk), chunk[:200])
                    for data in buffer.feed(chunk):
                        for event in self.parse_sse_event(data):
                            if self._cancelled.is_set():
                                return
                            yield event
        except httpx.HTTPError as exc:
            yield StreamError(str(exc))

    def _complete_tool_calls(self) -> list[StreamEvent]:
        return [
            ToolCallComplete(info.id, info.name, _parse_arguments(info.args_json) if info.args_json else {})
            for _, info in sorted(self._tool_calls.items())
            if info.id
        ]

    def parse_sse_event(self, data: str) -> list[StreamEvent]:
        """Turn one SSE ``data`` payload into stream events."""
        if data == "[DONE]":
            events = self._complete_tool_calls()
            # Some services never send a usage chunk, so finish here too.
            reason = FinishReason.TOOL_CALLS if self._tool_calls else FinishReason.STOP
            events.append(FinishStep(reason))
            self._tool_calls.clear()
            return events
        try:
            return self._events_from(json.loads(data))
        except _PARSE_ERRORS as exc:
            logger.warning("Failed to parse OpenAI SSE event: %s", exc)
            return []

    def _events_from(self, event: dict[str, Any]) -> list[StreamEvent]:
        if "error" in event:
            return [StreamError(event["error"].get("message", "Unknown error"))]

        usage = event.get("usage")
        if usage is not None:
            finish = FinishStep(usage=_usage_from(usage))
            choices = event.get("choices")
            if choices:
                finish.reason = _finish_reason(choices[0].get("finish_reason") or "")
            return [finish]

        choices = event.get("choices")
        if not choices:
            return []

        choice = choices[0]
        delta = choice.get("delta") or {}
        finish_reason = choice.get("finish_reason") or ""
        events: list[StreamEvent] = []

        content = delta.get("content")
        if content:
            events.append(TextDelta(content))

        for call in delta.get("tool_calls") or []:
            index = call.get("index", 0)
            function = call.get("function") or {}
            if call.get("id") is not None:
                info = _ToolCallInfo(call["id"], function.get("name") or "")
                self._tool_calls[index] = info
                events.append(ToolCallDelta(info.id, info.name, ""))
            args_delta = function.get("arguments")
            if args_delta and index in self._tool_calls:
                info = self._tool_calls[index]
                info.args_json += args_delta
                events.append(ToolCallDelta(info.id, info.name, args_delta))

        if finish_reason == "tool_calls":
            events.extend(self._complete_tool_calls())
            self._tool_calls.clear()
        return events

    def cancel(self) -> None:
        self._cancelled.set()