import pytest

from agentsdk.message import ImagePart, Message, Role
from agentsdk.provider import (
    FinishStep,
    LlmRequest,
    LlmResponse,
    Provider,
    SseEventBuffer,
    TextDelta,
)
from agentsdk.types import FinishReason, ModelInfo


class _Tool:
    def to_json_schema(self):
        return {
            "name": "glob",
            "description": "Find files",
            "input_schema": {"type": "object", "properties": {}},
        }


class _StaticProvider(Provider):
    def name(self):
        return "static"

    def models(self):
        return [ModelInfo("m1", "static"), ModelInfo("m2", "static", context_window=5)]

    def complete(self, request):
        return LlmResponse(message=Message.assistant(request.model))

    def stream(self, request):
        yield TextDelta(request.model)
        yield FinishStep()

    def cancel(self):
        pass


def test_sse_buffer_splits_complete_events():
    buf = SseEventBuffer()
    assert buf.feed('data: {"a":1}\n\ndata: {"b"') == ['{"a":1}']
    assert buf.feed(":2}\n\n") == ['{"b":2}']


def test_sse_buffer_crlf_and_multiline():
    buf = SseEventBuffer()
    events = buf.feed("event: x\r\ndata: one\r\ndata: two\r\n\r\n")
    assert events == ["one\ntwo"]


def test_sse_buffer_skips_events_without_data():
    buf = SseEventBuffer()
    assert buf.feed(": comment\n\nevent: ping\n\n") == []
    assert buf.feed("data: [DONE]\n\n") == ["[DONE]"]


def test_anthropic_format_basics():
    request = LlmRequest(
        model="claude-sonnet-4-20250514",
        system_prompt="be brief",
        messages=[Message.system("ignored"), Message.user("hi")],
        stop_sequences=["END"],
    )
    body = request.to_anthropic_format()
    assert body["max_tokens"] == 8192
    assert body["system"] == "be brief"
    assert body["stop_sequences"] == ["END"]
    assert body["messages"] == [{"role": "user", "content": "hi"}]
    assert "temperature" not in body
    assert "tools" not in body


def test_anthropic_format_tool_blocks_and_tools():
    assistant = Message(Role.ASSISTANT)
    assistant.add_tool_call("c1", "glob", {"pattern": "*"})
    result = Message(Role.USER)
    result.add_tool_result("c1", "glob", "a.txt", True)
    request = LlmRequest(model="m", messages=[assistant, result], tools=[_Tool()], max_tokens=10)
    body = request.to_anthropic_format()
    assert body["max_tokens"] == 10
    assert body["messages"][0]["content"] == [
        {"type": "tool_use", "id": "c1", "name": "glob", "input": {"pattern": "*"}}
    ]
    assert body["messages"][1]["content"] == [
        {"type": "tool_result", "tool_use_id": "c1", "content": "a.txt", "is_error": True}
    ]
    assert body["tools"] == [_Tool().to_json_schema()]


def test_anthropic_format_data_url_image():
    msg = Message(Role.USER, "look")
    msg.add_part(ImagePart("data:image/png;base64,QUJD"))
    msg.add_part(ImagePart("file.png"))
    body = LlmRequest(model="m", messages=[msg]).to_anthropic_format()
    assert body["messages"][0]["content"] == [
        {"type": "text", "text": "look"},
        {"type": "image", "source": {"type": "base64", "media_type": "image/png", "data": "QUJD"}},
    ]


def test_openai_format_system_and_tool_results():
    call = Message(Role.ASSISTANT)
    call.add_tool_call("c1", "glob", {})
    result = Message(Role.USER, "note")
    result.add_tool_result("c1", "glob", "out")
    request = LlmRequest(
        model="gpt-4o",
        system_prompt="sys",
        messages=[Message.user("hi"), call, result],
        temperature=0.5,
    )
    body = request.to_openai_format()
    assert "max_tokens" not in body
    assert body["temperature"] == 0.5
    msgs = body["messages"]
    assert msgs[0] == {"role": "system", "content": "sys"}
    assert msgs[1] == Message.user("hi").to_api_format()
    assert msgs[2]["tool_calls"][0]["id"] == "c1"
    assert msgs[3] == {"role": "user", "content": "note"}
    assert msgs[4] == {"role": "tool", "tool_call_id": "c1", "content": "out"}


def test_openai_format_tools_use_parameters():
    body = LlmRequest(model="m", tools=[_Tool()], stop_sequences=["x"], max_tokens=3).to_openai_format()
    schema = _Tool().to_json_schema()
    assert body["stop"] == ["x"]
    assert body["max_tokens"] == 3
    assert body["tools"] == [
        {
            "type": "function",
            "function": {
                "name": schema["name"],
                "description": schema["description"],
                "parameters": schema["input_schema"],
            },
        }
    ]


def test_response_ok_depends_on_error():
    assert LlmResponse().ok() is True
    assert LlmResponse(error="boom").ok() is False
    assert LlmResponse().message.role is Role.ASSISTANT
    assert LlmResponse().finish_reason is FinishReason.STOP


def test_provider_get_model_and_stream():
    provider = _StaticProvider()
    assert provider.get_model("m2").context_window == 5
    assert provider.get_model("unknown") is None
    events = list(provider.stream(LlmRequest(model="m1")))
    assert events[0] == TextDelta("m1")


def test_provider_is_abstract():
    with pytest.raises(TypeError):
        Provider()