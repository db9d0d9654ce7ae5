# agentsdk

`agentsdk` provides the core parts of an LLM coding agent.

- **`agentsdk.types`**: `FinishReason`, `Permission`, `AgentType`, `TokenUsage`, `ModelInfo` and `ProviderConfig`. The module also has these helpers:
  - `finish_reason_from_string` accepts provider aliases such as `end_turn`, `tool_use` and `max_tokens`.
  - `permission_from_string` and `agent_type_from_string` parse the other two enums.
  - `sanitize_utf8` replaces malformed UTF-8 with U+FFFD.
  - `version()` returns `"v0.0.1"`.
- **`agentsdk.ids`**: `generate_uuid()` returns a random version-4 UUID. `short_id(length=8)` returns a random string of lower-case letters and digits.
- **`agentsdk.message`**:
  - `Message` holds ordered parts: `TextPart`, `ToolCallPart`, `ToolResultPart`, `ImagePart`, `FilePart`, `CompactionPart` and `SubtaskPart`.
  - `to_json` and `from_json` convert a message to and from JSON. `to_api_format` converts it to the chat API format.
  - `InMemoryMessageStore` is a thread-safe store that implements the `MessageStore` interface.
- **`agentsdk.json_store`**:
  - `JsonMessageStore` keeps a `sessions.json` index of `SessionMeta` entries and one `<session_id>/messages.json` per session.
  - It writes each file to a `.tmp` file first, then renames it into place.
  - It logs I/O and parse failures and does not raise them.
- **`agentsdk.bus`**:
  - `Bus` is a thread-safe publish/subscribe hub keyed by event type. `get_bus()` returns the process-wide instance.
  - The module defines these common events: `SessionCreated`, `SessionEnded`, `MessageAdded`, `ToolCallStarted`, `ToolCallCompleted`, `StreamDelta`, `TokensUsed`, `ContextCompacted`, `PermissionRequested` and `McpToolsChanged`.
- **`agentsdk.config`**: the dataclasses `Config`, `AgentConfig`, `McpServerConfig` and `ContextSettings`, with their default values.
- **`agentsdk.provider`**:
  - `LlmRequest` renders a request with `to_anthropic_format()` or `to_openai_format()`.
  - `LlmResponse` is the result of `complete()`.
  - `Provider` is the abstract provider interface.
  - The stream event types are `TextDelta`, `ToolCallDelta`, `ToolCallComplete`, `FinishStep` and `StreamError`.
  - `SseEventBuffer` splits server-sent-event text into `data` payloads.
- **`agentsdk.anthropic` / `agentsdk.openai`**: `AnthropicProvider` and `OpenAIProvider` run over `httpx`. Both support one-shot and streaming completions.
- **`agentsdk.factory`**: `ProviderFactory` creates a provider by name. The names `anthropic` and `openai` are built in, and `register_provider` adds more. `get_factory()` returns the process-wide factory.

## Installation

```
pip install agentsdk
```

## Messages and storage

```python
from agentsdk.message import Message
from agentsdk.json_store import JsonMessageStore, SessionMeta

store = JsonMessageStore("sessions")

msg = Message.user("What is 2+2?")
msg.session_id = "demo"
store.save(msg)
store.save_session(SessionMeta(id="demo", title="Arithmetic"))

for meta in store.list_sessions():
    print(meta.title, [m.text() for m in store.list(meta.id)])

store.remove_session("demo")  # drops the index entry and the session directory
```

## Talking to a model

```python
from agentsdk.factory import get_factory
from agentsdk.message import Message
from agentsdk.provider import LlmRequest, TextDelta, FinishStep
from agentsdk.types import ProviderConfig

provider = get_factory().create(
    "anthropic", ProviderConfig(name="anthropic", api_key="placeholder")
)

request = LlmRequest(
    model="claude-sonnet-4-20250514",
    system_prompt="You are a helpful assistant. Respond briefly.",
    messages=[Message.user("What is 2+2? Reply in one word.")],
    max_tokens=100,
)

response = provider.complete(request)
if response.ok():
    print(response.message.text())
else:
    print("error:", response.error)

for event in provider.stream(request):
    if isinstance(event, TextDelta):
        print(event.text, end="", flush=True)
    elif isinstance(event, FinishStep):
        print("\n[finished:", event.reason.value, "]")
```

`provider.stream` is a generator. It yields `TextDelta`, `ToolCallDelta`, `ToolCallComplete`, `FinishStep` and `StreamError` events as they arrive. `provider.cancel()` stops a stream that is in progress.

Network errors, HTTP errors and response parse errors are not raised:

- `complete()` reports them in `LlmResponse.error`.
- `stream()` reports them as a `StreamError` event.

Both providers accept an `httpx.Client` as a second argument, for example to set timeouts or to use a mock transport. `OpenAIProvider` also takes an `auth_header` callable. It turns the API key into the `Authorization` header value; the default is `"Bearer <key>"`. An empty `base_url` in `ProviderConfig` selects the service's public endpoint.

## Event bus

```python
from agentsdk.bus import get_bus, StreamDelta

bus = get_bus()
sub = bus.subscribe(StreamDelta, lambda e: print(e.text, end=""))
bus.publish(StreamDelta(session_id="demo", text="hello"))
bus.unsubscribe(sub)
```

Handlers receive only events of exactly the type they subscribed to. They are called outside the bus lock.

## What this package does not do

- It has no command-line program.
- It has no session runner that drives a conversation loop.
- It has no tool implementations and no permission prompting.
- It has no MCP client.
- `Config` and its related classes only hold settings. Nothing in the package loads them from files or environment variables, or saves them.

## Running the tests

```
pip install -e .[test]
pytest
```