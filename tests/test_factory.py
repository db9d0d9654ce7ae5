import json

import httpx

from agentsdk.anthropic import AnthropicProvider
from agentsdk.factory import ProviderFactory, get_factory
from agentsdk.message import Message, Role
from agentsdk.openai import OpenAIProvider
from agentsdk.provider import LlmRequest
from agentsdk.types import FinishReason, ProviderConfig


def test_builtin_providers_are_created_by_name():
    factory = ProviderFactory()
    anthropic = factory.create("anthropic", ProviderConfig(name="anthropic", api_key="placeholder"))
    openai = factory.create("openai", ProviderConfig(name="openai", api_key="placeholder"))
    assert isinstance(anthropic, AnthropicProvider) and anthropic.name() == "anthropic"
    assert isinstance(openai, OpenAIProvider) and openai.name() == "openai"
    assert all(m.context_window > 0 for m in anthropic.models())


def test_unknown_provider_returns_none():
    assert ProviderFactory().create("nope", ProviderConfig()) is None


def test_global_factory_is_shared():
    assert get_factory() is get_factory()
    assert get_factory().create("openai", ProviderConfig(api_key="placeholder")).name() == "openai"


def test_config_base_url_is_passed_through():
    provider = ProviderFactory().create("openai", ProviderConfig(api_key="placeholder", base_url="http://localhost:8080"))
    assert provider.base_url == "http://localhost:8080"


def test_registered_provider_completes_request():
    captured = []

    def handler(request):
        captured.append(request)
        return httpx.Response(
            200,
            json={
                "content": [{"type": "text", "text": "Four"}],
                "stop_reason": "end_turn",
                "usage": {"input_tokens": 20, "output_tokens": 1},
            },
        )

    factory = ProviderFactory()
    factory.register_provider(
        "anthropic",
        lambda cfg: AnthropicProvider(cfg, client=httpx.Client(transport=httpx.MockTransport(handler))),
    )
    provider = factory.create("anthropic", ProviderConfig(name="anthropic", api_key="placeholder"))

    request = LlmRequest(
        model="claude-sonnet-4-20250514",
        system_prompt="You are a helpful assistant. Respond briefly.",
        messages=[Message(Role.USER, "What is 2+2? Reply in one word.")],
        max_tokens=100,
    )
    response = provider.complete(request)
    assert response.ok()
    assert response.finish_reason is FinishReason.STOP
    assert (response.usage.input_tokens, response.usage.output_tokens) == (20, 1)
    assert response.message.text() == "Four"

    sent = json.loads(captured[0].content)
    assert sent["max_tokens"] == 100
    assert sent["system"] == "You are a helpful assistant. Respond briefly."
    assert sent["messages"] == [{"role": "user", "content": "What is 2+2? Reply in one word."}]


def test_register_custom_name():
    factory = ProviderFactory()
    seen = []

    def build(cfg):
        seen.append(cfg.name)
        return OpenAIProvider(cfg)

    factory.register_provider("compatible", build)
    provider = factory.create("compatible", ProviderConfig(name="compatible", api_key="placeholder"))
    assert provider.name() == "openai"
    assert seen == ["compatible"]