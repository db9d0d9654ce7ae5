"""Conversation messages, their parts and message stores."""

from __future__ import annotations

import copy
import json
import threading
from abc import ABC, abstractmethod
from dataclasses import InitVar, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from agentsdk.ids import generate_uuid
from agentsdk.types import AgentType, FinishReason, TokenUsage, finish_reason_from_string


class Role(str, Enum):
    """Who authored a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"

    def __str__(self) -> str:
        return self.value


def role_from_string(text: str) -> Role:
    """Parse a role; unknown values map to USER."""
    try:
        return Role(text)
    except ValueError:
        return Role.USER


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_epoch(ts: datetime) -> int:
    return int(ts.timestamp())


def _from_epoch(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _dump_compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


@dataclass
class TextPart:
    text: str


@dataclass
class ToolCallPart:
    id: str
    name: str
    arguments: Any = field(default_factory=dict)
    started: bool = False
    completed: bool = False


@dataclass
class ToolResultPart:
    tool_call_id: str
    tool_name: str
    output: str
    is_error: bool = False
    title: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    compacted: bool = False
    compacted_at: datetime | None = None


@dataclass
class ImagePart:
    url: str
    media_type: str = ""


@dataclass
class FilePart:
    path: str
    content: str = ""
    truncated: bool = False


@dataclass
class CompactionPart:
    parent_id: str
    completed: bool = False


@dataclass
class SubtaskPart:
    task_id: str
    prompt: str
    agent_type: AgentType = AgentType.BUILD
    completed: bool = False
    result: str | None = None


MessagePart = Union[TextPart, ToolCallPart, ToolResultPart, ImagePart, FilePart, CompactionPart, SubtaskPart]


def _usage_to_json(usage: TokenUsage) -> dict[str, int]:
    return {
        "input_tokens": usage.input_tokens,
        "output_tokens": usage.output_tokens,
        "cache_read_tokens": usage.cache_read_tokens,
        "cache_write_tokens": usage.cache_write_tokens,
    }


def _part_to_json(part: MessagePart) -> dict[str, Any] | None:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    if isinstance(part, ToolCallPart):
        return {
            "type": "tool_call",
            "id": part.id,
            "name": part.name,
            "arguments": part.arguments,
            "started": part.started,
            "completed": part.completed,
        }
    if isinstance(part, ToolResultPart):
        return {
            "type": "tool_result",
            "tool_call_id": part.tool_call_id,
            "tool_name": part.tool_name,
            "output": part.output,
            "is_error": part.is_error,
            "compacted": part.compacted,
        }
    # Other part kinds are not persisted.
    return None


def _part_from_json(data: Any) -> MessagePart | None:
    if not isinstance(data, dict):
        return None
    kind = data.get("type", "")
    if kind == "text":
        return TextPart(data["text"])
    if kind == "tool_call":
        return ToolCallPart(
            data["id"],
            data["name"],
            data["arguments"],
            data.get("started", False),
            data.get("completed", False),
        )
    if kind == "tool_result":
        return ToolResultPart(
            data["tool_call_id"],
            data["tool_name"],
            data["output"],
            is_error=data.get("is_error", False),
            compacted=data.get("compacted", False),
        )
    return None


@dataclass
class Message:
    """A conversation message made of ordered parts."""

    role: Role = Role.USER
    content: InitVar[str] = ""
    parts: list[MessagePart] = field(default_factory=list)
    id: str = field(default_factory=generate_uuid)
    parent_id: str | None = None
    session_id: str = ""
    finished: bool = False
    finish_reason: FinishReason = FinishReason.STOP
    usage: TokenUsage = field(default_factory=TokenUsage)
    is_summary: bool = False
    is_synthetic: bool = False
    created_at: datetime = field(default_factory=_now)

    def __post_init__(self, content: str) -> None:
        if content:
            self.parts.insert(0, TextPart(content))

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(Role.ASSISTANT, content)

    def add_part(self, part: MessagePart) -> None:
        self.parts.append(part)

    def add_text(self, text: str) -> None:
        self.parts.append(TextPart(text))

    def add_tool_call(self, call_id: str, name: str, arguments: Any) -> None:
        self.parts.append(ToolCallPart(call_id, name, arguments))

    def add_tool_result(self, call_id: str, name: str, output: str, is_error: bool = False) -> None:
        self.parts.append(ToolResultPart(call_id, name, output, is_error))

    def text(self) -> str:
        """All text parts joined by newlines."""
        return "\n".join(p.text for p in self.parts if isinstance(p, TextPart))

    def tool_calls(self) -> list[ToolCallPart]:
        return [p for p in self.parts if isinstance(p, ToolCallPart)]

    def tool_results(self) -> list[ToolResultPart]:
        return [p for p in self.parts if isinstance(p, ToolResultPart)]

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "role": self.role.value,
            "finished": self.finished,
            "finish_reason": self.finish_reason.value,
            "is_summary": self.is_summary,
            "is_synthetic": self.is_synthetic,
        }
        if self.parent_id is not None:
            data["parent_id"] = self.parent_id
        data["session_id"] = self.session_id
        data["parts"] = [_part_to_json(p) for p in self.parts]
        data["usage"] = _usage_to_json(self.usage)
        data["created_at"] = _to_epoch(self.created_at)
        return data

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Message:
        msg = cls(
            role=role_from_string(data.get("role", "user")),
            id=data.get("id") or generate_uuid(),
            finished=data.get("finished", False),
            finish_reason=finish_reason_from_string(data.get("finish_reason", "stop")),
            is_summary=data.get("is_summary", False),
            is_synthetic=data.get("is_synthetic", False),
            session_id=data.get("session_id", ""),
        )
        if "parent_id" in data:
            msg.parent_id = data["parent_id"]
        for part_json in data.get("parts", []):
            part = _part_from_json(part_json)
            if part is not None:
                msg.parts.append(part)
        usage = data.get("usage")
        if usage is not None:
            msg.usage = TokenUsage(
                usage.get("input_tokens", 0),
                usage.get("output_tokens", 0),
                usage.get("cache_read_tokens", 0),
                usage.get("cache_write_tokens", 0),
            )
        if "created_at" in data:
            msg.created_at = _from_epoch(int(data["created_at"]))
        return msg

    def to_api_format(self) -> dict[str, Any]:
        """Render as a chat-completion style API message."""
        result: dict[str, Any] = {"role": self.role.value}
        content: list[dict[str, Any]] = []
        for part in self.parts:
            if isinstance(part, TextPart):
                content.append({"type": "text", "text": part.text})
            elif isinstance(part, ToolCallPart):
                result.setdefault("tool_calls", []).append(
                    {
                        "id": part.id,
                        "type": "function",
                        "function": {"name": part.name, "arguments": _dump_compact(part.arguments)},
                    }
                )
            elif isinstance(part, ToolResultPart):
                content.append(
                    {
                        "type": "tool_result",
                        "tool_use_id": part.tool_call_id,
                        "content": part.output,
                        "is_error": part.is_error,
                    }
                )
            elif isinstance(part, ImagePart):
                content.append({"type": "image_url", "image_url": {"url": part.url}})
        if len(content) == 1 and content[0]["type"] == "text":
            result["content"] = content[0]["text"]
        elif content:
            result["content"] = content
        return result


class MessageStore(ABC):
    """Storage for messages grouped by session."""

    @abstractmethod
    def save(self, message: Message) -> None: ...

    @abstractmethod
    def get(self, message_id: str) -> Message | None: ...

    @abstractmethod
    def list(self, session_id: str) -> list[Message]: ...

    @abstractmethod
    def update(self, message: Message) -> None: ...

    @abstractmethod
    def remove(self, message_id: str) -> None: ...


class InMemoryMessageStore(MessageStore):
    """A thread-safe message store kept in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._messages: dict[str, Message] = {}
        self._session_messages: dict[str, list[str]] = {}

    def save(self, message: Message) -> None:
        with self._lock:
            self._messages[message.id] = copy.deepcopy(message)
            self._session_messages.setdefault(message.session_id, []).append(message.id)

    def get(self, message_id: str) -> Message | None:
        with self._lock:
            found = self._messages.get(message_id)
            return copy.deepcopy(found) if found is not None else None

    def list(self, session_id: str) -> list[Message]:
        with self._lock:
            ids = self._session_messages.get(session_id, [])
            return [copy.deepcopy(self._messages[i]) for i in ids if i in self._messages]

    def update(self, message: Message) -> None:
        with self._lock:
            self._messages[message.id] = copy.deepcopy(message)

    def remove(self, message_id: str) -> None:
        with self._lock:
            found = self._messages.pop(message_id, None)
            if found is None:
                return
            ids = self._session_messages.get(found.session_id)
            if ids is not None:
                self._session_messages[found.session_id] = [i for i in ids if i != message_id]