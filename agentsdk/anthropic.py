"""Provider for the Anthropic Messages API."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator
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

DEFAULT_BASE_URL = "https://api.anthropic.com"
API_VERSION = "2023-06-01"
_MESSAGES_PATH = "/v1/messages"
_DEFAULT_TIMEOUT = httpx.Timeout(600.0, connect=30.0)

_MODELS = (
    ModelInfo("claude-opus-4-20250514", "anthropic", 200000, 32000, True, True),
    ModelInfo("claude-sonnet-4-20250514", "anthropic", 200000, 64000, True, True),
    ModelInfo("claude-3-5-sonnet-20241022", "anthropic", 200000, 8192, True, True),
    ModelInfo("claude-3-5-haiku-20241022", "anthropic", 200000, 8192, True, True),
    ModelInfo("claude-3-opus-20240229", "anthropic", 200000, 4096, True, True),
)


@dataclass
class _ToolCallInfo:
    id: str
    name: str
    args_json: str = ""


def _finish_reason(stop_reason: str) -> FinishReason:
    if stop_reason == "tool_use":
        return FinishReason.TOOL_CALLS
    if stop_reason == "max_tokens":
        return FinishReason.LENGTH
    return FinishReason.STOP


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


def _parse_args(args_json: str) -> Any:
    if not args_json:
        return {}
    try:
        return json.loads(args_json)
    except ValueError:
        return {}


class AnthropicProvider(Provider):
    """Talks to the Anthropic Messages API, blocking or streaming."""

    def __init__(self, config: ProviderConfig, client: httpx.Client | None = None) -> None:
        self._config = config
        self._base_url = config.base_url or DEFAULT_BASE_URL
        self._client = client if client is not None else httpx.Client(timeout=_DEFAULT_TIMEOUT)
        self._tool_calls: dict[int, _ToolCallInfo] = {}
        self._cancelled = threading.Event()

    @property
    def base_url(self) -> str:
        return self._base_url

    def name(self) -> str:
        return "anthropic"

    def models(self) -> list[ModelInfo]:
        return [ModelInfo(**vars(m)) for m in _MODELS]

    def _headers(self, streaming: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if streaming:
            headers["Accept"] = "text/event-stream"
        headers["x-api-key"] = self._config.api_key
        headers["anthropic-version"] = API_VERSION
        headers.update(self._config.headers)
        return headers

    def _url(self) -> str:
        return self._base_url + _MESSAGES_PATH

    def complete(self, request: LlmRequest) -> LlmResponse:
        body = request.to_anthropic_format()
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
            for block in data["content"]:
                kind = block["type"]
                if kind == "text":
                    msg.add_text(block["text"])
                elif kind == "tool_use":
                    msg.add_tool_call(block["id"], block["name"], block["input"])

            result.finish_reason = _finish_reason(data.get("stop_reason") or "end_turn")

            usage = data.get("usage")
            if usage is not None:
                result.usage = TokenUsage(
                    usage.get("input_tokens", 0),
                    usage.get("output_tokens", 0),
                    usage.get("cache_read_input_tokens", 0),
                    usage.get("cache_creation_input_tokens", 0),
                )

            msg.finished = True
            msg.finish_reason = result.finish_reason
            msg.usage = result.usage
            result.message = msg
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            result.error = f"Parse error: {exc}"
        return result

    def stream(self, request: LlmRequest) -> Iterator[StreamEvent]:
        body = request.to_anthropic_format()
        body["stream"] = True
        self._tool_calls.clear()
        self._cancelled.clear()
        buffer = SseEventBuffer()

        try:
            with self._client.stream(
                "POST", self._url(), content=json.dumps(body), headers=self._headers(True)
            ) as response:
                if not response.is_success:
                    response.read()
                    yield StreamError(_http_error(response.status_code, response.text))
                    return
                for chunk in response.iter_text():
                    if self._cancelled.is_set():
                        return
                    for data in buffer.feed(chunk):
                        for event in self.parse_sse_event(data):
                            if self._cancelled.is_set():
                                return
                            yield event
        except httpx.HTTPError as exc:
            yield StreamError(str(exc))

    def parse_sse_event(self, data: str) -> list[StreamEvent]:
        """Turn one SSE ``data`` payload into stream events."""
        if data == "[DONE]":
            return []
        try:
            return self._events_from(json.loads(data))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Failed to parse SSE event: %s", exc)
            return []

    def _events_from(self, event: dict[str, Any]) -> list[StreamEvent]:
        kind = event.get("type", "")

        if kind == "content_block_delta":
            delta = event["delta"]
            delta_type = delta.get("type", "")
            if delta_type == "text_delta":
                return [TextDelta(delta["text"])]
            if delta_type == "input_json_delta":
                info = self._tool_calls.get(event.get("index", 0))
                if info is not None:
                    info.args_json += delta.get("partial_json", "")
            return []

        if kind == "content_block_start":
            block = event["content_block"]
            if block.get("type", "") == "tool_use":
                info = _ToolCallInfo(block.get("id", ""), block.get("name", ""))
                self._tool_calls[event.get("index", 0)] = info
                return [ToolCallDelta(info.id, info.name, "")]
            return []

        if kind == "content_block_stop":
            info = self._tool_calls.get(event.get("index", 0))
            if info is not None and info.id:
                return [ToolCallComplete(info.id, info.name, _parse_args(info.args_json))]
            return []

        if kind == "message_delta":
            delta = event["delta"]
            finish = FinishStep(_finish_reason(delta.get("stop_reason") or ""))
            usage = event.get("usage")
            if usage is not None:
                finish.usage.output_tokens = usage.get("output_tokens", 0)
            return [finish]

        if kind == "error":
            error = StreamError()
            detail = event.get("error")
            if detail is not None:
                error.message = detail.get("message", "Unknown error")
            return [error]

        return []

    def cancel(self) -> None:
        self._cancelled.set()