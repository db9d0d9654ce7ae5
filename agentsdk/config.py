"""Configuration data for agents, MCP servers and the application."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from agentsdk.types import AgentType, Permission, ProviderConfig


@dataclass
class AgentConfig:
    """Settings for one agent."""

    id: str = ""
    type: AgentType = AgentType.BUILD
    model: str = ""
    system_prompt: str = ""
    permissions: dict[str, Permission] = field(default_factory=dict)
    default_permission: Permission = Permission.ASK
    max_tokens: int = 100000
    allowed_tools: list[str] = field(default_factory=list)
    denied_tools: list[str] = field(default_factory=list)


@dataclass
class McpServerConfig:
    """Settings for an MCP server: ``local``, ``remote`` or ``qwen-portal``."""

    name: str = ""
    type: str = ""
    command: str = ""
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    auth_type: str = ""
    enabled: bool = True


@dataclass
class ContextSettings:
    """Limits used when pruning and truncating conversation context."""

    prune_protect_tokens: int = 40000
    prune_minimum_tokens: int = 20000
    truncate_max_lines: int = 2000
    truncate_max_bytes: int = 51200


@dataclass
class Config:
    """Application configuration."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    default_model: str = "claude-sonnet-4-20250514"
    agents: dict[str, AgentConfig] = field(default_factory=dict)
    mcp_servers: list[McpServerConfig] = field(default_factory=list)
    working_dir: Path = field(default_factory=Path.cwd)
    instructions: list[str] = field(default_factory=list)
    skill_paths: list[Path] = field(default_factory=list)
    context: ContextSettings = field(default_factory=ContextSettings)
    log_level: str = "info"
    log_file: Path | None = None