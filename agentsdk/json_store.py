"""A message store kept as JSON files, with an index of sessions.

Layout under the base directory::

    sessions.json            index of session metadata
    <session_id>/
        messages.json        messages of that session
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from agentsdk.message import Message, MessageStore
from agentsdk.types import AgentType, TokenUsage, agent_type_from_string

logger = logging.getLogger(__name__)

_MESSAGES_FILE = "messages.json"
_SESSIONS_INDEX = "sessions.json"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_epoch(ts: datetime) -> int:
    return int(ts.timestamp())


def _from_epoch(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


@dataclass
class SessionMeta:
    """Metadata for one stored session."""

    id: str = ""
    title: str = ""
    parent_id: str | None = None
    agent_type: AgentType = AgentType.BUILD
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    total_usage: TokenUsage = field(default_factory=TokenUsage)

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.parent_id is not None:
            data["parent_id"] = self.parent_id
        data["agent_type"] = self.agent_type.value
        data["created_at"] = _to_epoch(self.created_at)
        data["updated_at"] = _to_epoch(self.updated_at)
        data["total_usage"] = {
            "input_tokens": self.total_usage.input_tokens,
            "output_tokens": self.total_usage.output_tokens,
            "cache_read_tokens": self.total_usage.cache_read_tokens,
            "cache_write_tokens": self.total_usage.cache_write_tokens,
        }
        return data

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> SessionMeta:
        meta = cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            agent_type=agent_type_from_string(data.get("agent_type", "build")),
            created_at=_from_epoch(int(data.get("created_at", 0))),
            updated_at=_from_epoch(int(data.get("updated_at", 0))),
        )
        if "parent_id" in data:
            meta.parent_id = data["parent_id"]
        usage = data.get("total_usage")
        if usage is not None:
            meta.total_usage = TokenUsage(
                usage.get("input_tokens", 0),
                usage.get("output_tokens", 0),
                usage.get("cache_read_tokens", 0),
                usage.get("cache_write_tokens", 0),
            )
        return meta


class JsonMessageStore(MessageStore):
    """Message store persisted as JSON files; I/O failures are logged, not raised."""

    def __init__(self, base_dir: str | os.PathLike[str]) -> None:
        self._base_dir = Path(base_dir)
        self._lock = threading.Lock()
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Failed to create sessions directory %s: %s", self._base_dir, exc)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    # --- paths ---

    def _session_dir(self, session_id: str) -> Path:
        return self._base_dir / session_id

    def _messages_file(self, session_id: str) -> Path:
        return self._session_dir(session_id) / _MESSAGES_FILE

    def _index_file(self) -> Path:
        return self._base_dir / _SESSIONS_INDEX

    # --- file helpers ---

    @staticmethod
    def _atomic_write(path: Path, content: str) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            tmp_path.write_text(content, encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to write temp file %s: %s", tmp_path, exc)
            tmp_path.unlink(missing_ok=True)
            return
        try:
            os.replace(tmp_path, path)
        except OSError as exc:
            logger.warning("Failed to rename temp file %s -> %s: %s", tmp_path, path, exc)
            tmp_path.unlink(missing_ok=True)

    @staticmethod
    def _read_json_list(path: Path) -> list[Any] | None:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            return None
        if not isinstance(data, list):
            logger.warning("Expected a JSON array in %s", path)
            return None
        return data

    def _load_messages(self, session_id: str) -> list[Message]:
        path = self._messages_file(session_id)
        entries = self._read_json_list(path)
        if entries is None:
            return []
        try:
            return [Message.from_json(entry) for entry in entries]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Failed to parse messages file %s: %s", path, exc)
            return []

    def _save_messages(self, session_id: str, messages: list[Message]) -> None:
        directory = self._session_dir(session_id)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Failed to create session directory %s: %s", directory, exc)
            return
        self._atomic_write(self._messages_file(session_id), _dump([m.to_json() for m in messages]))

    def _load_index(self) -> list[SessionMeta]:
        entries = self._read_json_list(self._index_file())
        if entries is None:
            return []
        try:
            return [SessionMeta.from_json(entry) for entry in entries]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Failed to parse sessions index: %s", exc)
            return []

    def _save_index(self, sessions: list[SessionMeta]) -> None:
        self._atomic_write(self._index_file(), _dump([s.to_json() for s in sessions]))

    def _session_ids(self) -> list[str]:
        if not self._base_dir.exists():
            return []
        return sorted(entry.name for entry in self._base_dir.iterdir() if entry.is_dir())

    # --- MessageStore interface ---

    def save(self, message: Message) -> None:
        with self._lock:
            messages = self._load_messages(message.session_id)
            messages.append(message)
            self._save_messages(message.session_id, messages)

    def get(self, message_id: str) -> Message | None:
        with self._lock:
            for session_id in self._session_ids():
                for msg in self._load_messages(session_id):
                    if msg.id == message_id:
                        return msg
        return None

    def list(self, session_id: str) -> list[Message]:
        with self._lock:
            return self._load_messages(session_id)

    def update(self, message: Message) -> None:
        with self._lock:
            messages = self._load_messages(message.session_id)
            for index, existing in enumerate(messages):
                if existing.id == message.id:
                    messages[index] = message
                    break
            self._save_messages(message.session_id, messages)

    def remove(self, message_id: str) -> None:
        with self._lock:
            for session_id in self._session_ids():
                messages = self._load_messages(session_id)
                kept = [m for m in messages if m.id != message_id]
                if len(kept) != len(messages):
                    self._save_messages(session_id, kept)
                    return

    # --- sessions ---

    def save_session(self, meta: SessionMeta) -> None:
        """Add ``meta`` to the index, replacing an entry with the same id."""
        with self._lock:
            sessions = self._load_index()
            for index, existing in enumerate(sessions):
                if existing.id == meta.id:
                    sessions[index] = meta
                    break
            else:
                sessions.append(meta)
            self._save_index(sessions)

    def get_session(self, session_id: str) -> SessionMeta | None:
        with self._lock:
            return next((s for s in self._load_index() if s.id == session_id), None)

    def list_sessions(self) -> list[SessionMeta]:
        with self._lock:
            return self._load_index()

    def remove_session(self, session_id: str) -> None:
        """Drop a session from the index and delete its messages."""
        with self._lock:
            sessions = [s for s in self._load_index() if s.id != session_id]
            self._save_index(sessions)
            directory = self._session_dir(session_id)
            if directory.exists():
                try:
                    shutil.rmtree(directory)
                except OSError as exc:
                    logger.warning("Failed to remove session directory %s: %s", directory, exc)