from pathlib import Path

from agentsdk.config import AgentConfig, Config, ContextSettings, McpServerConfig
from agentsdk.types import AgentType, Permission, ProviderConfig


def test_config_working_dir_is_cwd_at_creation(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = Config()
    assert Path(config.working_dir).resolve() == tmp_path.resolve()


def test_config_default_model_and_log_level():
    config = Config()
    assert config.default_model == "claude-sonnet-4-20250514"
    assert config.log_level == "info"
    assert config.log_file is None


def test_config_containers_not_shared():
    a, b = Config(), Config()
    a.providers["openai"] = ProviderConfig(name="openai", api_key="placeholder")
    a.context.truncate_max_lines = 10
    a.skill_paths.append(Path("x"))
    assert b.providers == {}
    assert b.context == ContextSettings()
    assert b.skill_paths == []


def test_context_settings_defaults():
    ctx = Config().context
    assert (ctx.prune_protect_tokens, ctx.prune_minimum_tokens) == (40000, 20000)
    assert (ctx.truncate_max_lines, ctx.truncate_max_bytes) == (2000, 51200)


def test_agent_config_defaults_and_independence():
    a = AgentConfig(id="build")
    b = AgentConfig()
    a.permissions["bash"] = Permission.ALLOW
    assert a.type is AgentType.BUILD
    assert b.default_permission is Permission.ASK
    assert b.permissions == {}
    assert b.max_tokens == 100000


def test_mcp_server_config_enabled_by_default():
    server = McpServerConfig(name="fs", type="local", command="mcp-fs", args=["--root", "/tmp"])
    other = McpServerConfig()
    server.env["A"] = "1"
    assert server.enabled is True
    assert other.env == {}
    assert server.args == ["--root", "/tmp"]


def test_config_agents_mapping():
    config = Config()
    config.agents["build"] = AgentConfig(id="build", default_permission=Permission.ALLOW)
    assert config.agents["build"].default_permission is Permission.ALLOW
    assert Config().agents == {}