"""Building blocks for LLM coding agents: messages, JSON session storage, an event bus and Anthropic/OpenAI providers."""

__version__ = "0.0.1"