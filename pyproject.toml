[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "agentsdk"
version = "0.0.1"
description = "Building blocks for LLM coding agents: messages, session storage, an event bus and Anthropic/OpenAI providers"
requires-python = ">=3.10"
keywords = ["llm", "agent", "anthropic", "openai", "streaming", "sse"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "httpx",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["agentsdk"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
