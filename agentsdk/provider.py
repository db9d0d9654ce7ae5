"""LLM request/response types, stream events and the provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

from agentsdk.message import ImagePart, Message, Role, TextPart, ToolCallPart, ToolResultPart
from agentsdk.types import FinishReason, ModelInfo, TokenUsage

DEFAULT_ANTHROPIC_MAX_TOKENS = 8192


@dataclass
class TextDelta:
    text: str


@dataclass
class ToolCallDelta:
    id: str
    name: str
    arguments_delta: str = ""


@dataclass
class ToolCallComplete:
    id: str
    name: str
    arguments: Any = field(default_factory=dict)


@dataclass
class FinishStep:
    reason: FinishReason = FinishReason.STOP
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass
class StreamError:
    message: str = ""
    retryable: bool = False


StreamEvent = Union[TextDelta, ToolCallDelta, ToolCallComplete, FinishStep, StreamError]


class ToolSchema(Protocol):
    """Anything that can describe itself as a tool schema."""

    def to_json_schema(self) -> dict[str, Any]: ...


@dataclass
class LlmRequest:
    """A model request that can be rendered for different APIs."""

    model: str = ""
    messages: list[Message] = field(default_factory=list)
    system_prompt: str = ""
    tools: list[ToolSchema] = field(default_factory=list)
    temperature: float | None = None
    max_tokens: int | None = None
    stop_sequences: list[str] | None = None

    def to_anthropic_format(self) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens if self.max_tokens is not None else DEFAULT_ANTHROPIC_MAX_TOKENS,
        }
        if self.system_prompt:
            request["system"] = self.system_prompt
        if self.temperature is not None:
            request["temperature"] = self.temperature
        if self.stop_sequences:
            request["stop_sequences"] = list(self.stop_sequences)

        messages = []
        for msg in self.messages:
            if msg.role is Role.SYSTEM:
                continue
            content = [block for block in map(_anthropic_block, msg.parts) if block is not None]
            if len(content) == 1 and content[0]["type"] == "text":
                body: Any = content[0]["text"]
            else:
                body = content
            messages.append({"role": "user" if msg.role is Role.USER else "assistant", "content": body})
        request["messages"] = messages

        if self.tools:
            request["tools"] = [tool.to_json_schema() for tool in self.tools]
        return request

    def to_openai_format(self) -> dict[str, Any]:
        request: dict[str, Any] = {"model": self.model}
        if self.max_tokens is not None:
            request["max_tokens"] = self.max_tokens
        if self.temperature is not None:
            request["temperature"] = self.temperature
        if self.stop_sequences:
            request["stop"] = list(self.stop_sequences)

        messages: list[dict[str, Any]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        for msg in self.messages:
            if msg.role is Role.SYSTEM:
                continue
            results = msg.tool_results()
            if not results:
                messages.append(msg.to_api_format())
                continue
            text = msg.text()
            if text:
                messages.append({"role": "user", "content": text})
            messages.extend(
                {"role": "tool", "tool_call_id": r.tool_call_id, "content": r.output} for r in results
            )
        request["messages"] = messages

        if self.tools:
            tools = []
            for tool in self.tools:
                schema = tool.to_json_schema()
                function = {"name": schema.get("name"), "description": schema.get("description")}
                if "input_schema" in schema:
                    function["parameters"] = schema["input_schema"]
                tools.append({"type": "function", "function": function})
            request["tools"] = tools
        return request


def _anthropic_block(part: Any) -> dict[str, Any] | None:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    if isinstance(part, ToolCallPart):
        return {"type": "tool_use", "id": part.id, "name": part.name, "input": part.arguments}
    if isinstance(part, ToolResultPart):
        return {
            "type": "tool_result",
            "tool_use_id": part.tool_call_id,
            "content": part.output,
            "is_error": part.is_error,
        }
    if isinstance(part, ImagePart) and part.url.startswith("data:"):
        comma = part.url.find(",")
        if comma == -1:
            return None
        semicolon = part.url.find(";")
        media_type = part.url[5:semicolon] if semicolon >= 5 else part.url[5:]
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": media_type, "data": part.url[comma + 1 :]},
        }
    return None


def _default_response_message() -> Message:
    return Message(Role.ASSISTANT)


@dataclass
class LlmResponse:
    """Result of a non-streaming completion."""

    message: Message = field(default_factory=_default_response_message)
    finish_reason: FinishReason = FinishReason.STOP
    usage: TokenUsage = field(default_factory=TokenUsage)
    error: str | None = None

    def ok(self) -> bool:
        return self.error is None


class Provider(ABC):
    """Interface of an LLM provider."""

    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def models(self) -> list[ModelInfo]: ...

    def get_model(self, model_id: str) -> ModelInfo | None:
        return next((m for m in self.models() if m.id == model_id), None)

    @abstractmethod
    def complete(self, request: LlmRequest) -> LlmResponse:
        """Run a request to completion."""

    @abstractmethod
    def stream(self, request: LlmRequest) -> Iterator[StreamEvent]:
        """Run a request, yielding events as they arrive."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop the request in progress."""


def _event_data(block: str) -> str:
    lines = []
    for line in block.split("\n"):
        if line.endswith("\r"):
            line = line[:-1]
        if line.startswith("data: "):
            lines.append(line[6:])
    return "\n".join(lines)


class SseEventBuffer:
    """Collects server-sent-event text and splits it into event payloads."""

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> list[str]:
        """Add ``chunk`` and return the ``data`` payloads of every completed event."""
        self._buffer += chunk
        events = []
        while True:
            pos = self._buffer.find("\n\n")
            if pos == -1:
                pos = self._buffer.find("\r\n\r\n")
                if pos == -1:
                    break
            block = self._buffer[:pos]
            skip = 4 if self._buffer.startswith("\r\n\r\n", pos) else 2
            self._buffer = self._buffer[pos + skip :]
            data = _event_data(block)
            if data:
                events.append(data)
        return events