"""Core value types shared across the SDK."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

VERSION_MAJOR = 0
VERSION_MINOR = 0
VERSION_PATCH = 1
VERSION = VERSION_MAJOR * 10000 + VERSION_MINOR * 100 + VERSION_PATCH

_REPLACEMENT = "\ufffd".encode("utf-8")


def version() -> str:
    """Return the SDK version string, e.g. ``v0.0.1``."""
    return f"v{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"


class _StrEnum(str, Enum):
    def __str__(self) -> str:
        return self.value


class FinishReason(_StrEnum):
    """Why a model response ended."""

    STOP = "stop"
    TOOL_CALLS = "tool_calls"
    LENGTH = "length"
    ERROR = "error"
    CANCELLED = "cancelled"


class Permission(_StrEnum):
    """Permission level for running a tool."""

    ALLOW = "allow"
    DENY = "deny"
    ASK = "ask"


class AgentType(_StrEnum):
    """Kinds of agents."""

    BUILD = "build"
    EXPLORE = "explore"
    GENERAL = "general"
    PLAN = "plan"
    COMPACTION = "compaction"


_FINISH_ALIASES = {
    "stop": FinishReason.STOP,
    "end_turn": FinishReason.STOP,
    "tool_calls": FinishReason.TOOL_CALLS,
    "tool_use": FinishReason.TOOL_CALLS,
    "length": FinishReason.LENGTH,
    "max_tokens": FinishReason.LENGTH,
    "error": FinishReason.ERROR,
    "cancelled": FinishReason.CANCELLED,
}


def finish_reason_from_string(text: str) -> FinishReason:
    """Parse a finish reason, accepting provider aliases; unknown maps to STOP."""
    return _FINISH_ALIASES.get(text, FinishReason.STOP)


def permission_from_string(text: str) -> Permission:
    """Parse a permission; unknown maps to ASK."""
    try:
        return Permission(text)
    except ValueError:
        return Permission.ASK


def agent_type_from_string(text: str) -> AgentType:
    """Parse an agent type; unknown maps to BUILD."""
    try:
        return AgentType(text)
    except ValueError:
        return AgentType.BUILD


@dataclass
class TokenUsage:
    """Token counts for a request or a session."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0

    def total(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: TokenUsage) -> TokenUsage:
        if not isinstance(other, TokenUsage):
            return NotImplemented
        return TokenUsage(
            self.input_tokens + other.input_tokens,
            self.output_tokens + other.output_tokens,
            self.cache_read_tokens + other.cache_read_tokens,
            self.cache_write_tokens + other.cache_write_tokens,
        )

    def __iadd__(self, other: TokenUsage) -> TokenUsage:
        if not isinstance(other, TokenUsage):
            return NotImplemented
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.cache_read_tokens += other.cache_read_tokens
        self.cache_write_tokens += other.cache_write_tokens
        return self


@dataclass
class ModelInfo:
    """Description of a model offered by a provider."""

    id: str
    provider: str
    context_window: int = 128000
    max_output_tokens: int = 8192
    supports_vision: bool = False
    supports_tools: bool = True


@dataclass
class ProviderConfig:
    """Connection settings for an LLM provider."""

    name: str = ""
    api_key: str = ""
    base_url: str = ""
    organization: str | None = None
    headers: dict[str, str] = field(default_factory=dict)


def _is_cont(byte: int) -> bool:
    return byte & 0xC0 == 0x80


def sanitize_utf8(data: bytes | bytearray | str) -> str:
    """Decode bytes as UTF-8, replacing each invalid sequence with U+FFFD.

    Overlong encodings, surrogates and out-of-range code points of a complete
    sequence become one replacement character; a lead byte without enough
    continuation bytes becomes one replacement character on its own.
    """
    if isinstance(data, str):
        data = data.encode("utf-8", "surrogateescape")
    raw = bytes(data)
    out = bytearray()
    size = len(raw)
    i = 0
    while i < size:
        c = raw[i]
        if c <= 0x7F:
            out.append(c)
            i += 1
            continue
        if c & 0xE0 == 0xC0:
            width, cp = 2, c & 0x1F
        elif c & 0xF0 == 0xE0:
            width, cp = 3, c & 0x0F
        elif c & 0xF8 == 0xF0:
            width, cp = 4, c & 0x07
        else:
            out += _REPLACEMENT
            i += 1
            continue
        tail = raw[i + 1 : i + width]
        if len(tail) < width - 1 or not all(_is_cont(b) for b in tail):
            out += _REPLACEMENT
            i += 1
            continue
        for b in tail:
            cp = (cp << 6) | (b & 0x3F)
        if width == 2:
            valid = cp >= 0x80
        elif width == 3:
            valid = cp >= 0x800 and not 0xD800 <= cp <= 0xDFFF
        else:
            valid = 0x10000 <= cp <= 0x10FFFF
        out += raw[i : i + width] if valid else _REPLACEMENT
        i += width
    return out.decode("utf-8")