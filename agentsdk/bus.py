"""A typed publish/subscribe event bus and the SDK's common events."""

from __future__ import annotations

import itertools
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

E = TypeVar("E")


class Bus:
    """Routes events to handlers subscribed to the event's exact type."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._handlers: dict[type, list[tuple[int, Callable[[Any], None]]]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> int:
        """Register ``handler`` for events of ``event_type``; return a subscription id."""
        with self._lock:
            sub_id = next(self._ids)
            self._handlers[event_type].append((sub_id, handler))
        return sub_id

    def unsubscribe(self, subscription_id: int) -> None:
        """Remove a subscription; unknown ids are ignored."""
        with self._lock:
            for event_type, entries in self._handlers.items():
                self._handlers[event_type] = [e for e in entries if e[0] != subscription_id]

    def publish(self, event: Any) -> None:
        """Deliver ``event`` to every handler subscribed to its type."""
        with self._lock:
            handlers = [handler for _, handler in self._handlers.get(type(event), ())]
        for handler in handlers:
            handler(event)


_bus = Bus()


def get_bus() -> Bus:
    """Return the process-wide bus."""
    return _bus


@dataclass
class SessionCreated:
    session_id: str


@dataclass
class SessionEnded:
    session_id: str


@dataclass
class MessageAdded:
    session_id: str
    message_id: str


@dataclass
class ToolCallStarted:
    session_id: str
    tool_id: str
    tool_name: str


@dataclass
class ToolCallCompleted:
    session_id: str
    tool_id: str
    tool_name: str
    success: bool


@dataclass
class StreamDelta:
    session_id: str
    text: str


@dataclass
class TokensUsed:
    session_id: str
    input_tokens: int
    output_tokens: int


@dataclass
class ContextCompacted:
    session_id: str
    tokens_before: int
    tokens_after: int


@dataclass
class PermissionRequested:
    session_id: str
    tool_name: str
    description: str
    respond: Callable[[bool], None] = field(default=lambda allowed: None, repr=False)


@dataclass
class McpToolsChanged:
    server_name: str