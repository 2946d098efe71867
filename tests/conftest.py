"""Shared fixtures: settings, a scripted console, a fake model client and plugin scripts."""

import io
import json
from collections import deque
from pathlib import Path
from typing import (
    Callable,
    List,
    Optional,
)

import pytest

from bai.agent.model_client import ModelClient
from bai.client.cli import Console
from bai.common import Theme
from bai.config import Settings
from bai.core.schema import (
    ChatRequest,
    ModelResponse,
    ToolCallRequest,
    ToolFunction,
)


class ScriptedConsole(Console):
    """Console answering prompts from queues and printing into a string buffer."""

    def __init__(self, lines=(), keys=(), edits=()) -> None:
        super().__init__(theme=Theme(enabled=False), stream=io.StringIO())
        self.lines = deque(lines)
        self.keys = deque(keys)
        self.edits = deque(edits)
        self.prompts: List[str] = []

    def read_line(self, prompt: str) -> Optional[str]:
        self.prompts.append(prompt)
        return self.lines.popleft() if self.lines else None

    def read_key(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.keys.popleft() if self.keys else ""

    def edit_line(self, prompt: str, prefill: str) -> str:
        self.prompts.append(prompt)
        return self.edits.popleft() if self.edits else prefill

    @property
    def output(self) -> str:
        return self.stream.getvalue()


class FakeModelClient(ModelClient):
    """Replays canned responses and records every request it was sent."""

    def __init__(self, *responses: ModelResponse, console: Optional[ScriptedConsole] = None) -> None:
        self.responses = deque(responses)
        self.requests: List[ChatRequest] = []
        self.console = console
        self.prompts_seen: List[int] = []

    def send(self, request: ChatRequest) -> ModelResponse:
        self.requests.append(request)
        if self.console is not None:
            self.prompts_seen.append(len(self.console.prompts))
        return self.responses.popleft()


def answer(payload: dict, finish_reason: str = "stop") -> ModelResponse:
    """A model reply whose content is *payload* encoded as JSON."""
    return ModelResponse(content=json.dumps(payload), finish_reason=finish_reason)


def tool_call(call_id: str, name: str, **arguments) -> ToolCallRequest:
    return ToolCallRequest(
        id=call_id, function=ToolFunction(name=name, arguments=json.dumps(arguments))
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the user's config file."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        KEY="test-key",
        MAX_HISTORY=10,
        HISTORY_FILE=tmp_path / "history.txt",
        TOOLS_PATH=tmp_path / "tools",
        EXEC_QUERY="",
        QUESTION_QUERY="",
        ERROR_QUERY="",
        EXPOSE_CURRENT_DIR=True,
        JSON_MODE=False,
        TOKENS=500,
    )


@pytest.fixture
def write_plugin(tmp_path: Path) -> Callable[..., Path]:
    """Write a shell tool plugin into the tools directory."""

    def _write(filename: str, init_body: Optional[str], execute_body: str = 'echo "$1"') -> Path:
        tools = tmp_path / "tools"
        tools.mkdir(exist_ok=True)
        script = ""
        if init_body is not None:
            script += f"init() {{\n{init_body}\n}}\n\n"
        script += f"execute() {{\n{execute_body}\n}}\n"
        path = tools / filename
        path.write_text(script, encoding="utf-8")
        return path

    return _write


def function_descriptor(name: str, /, **parameters) -> str:
    """``init`` body printing a function descriptor for *name*."""
    schema = {
        "type": "function",
        "function": {
            "name": name,
            "description": f"{name} test tool",
            "parameters": {"type": "object", "properties": parameters},
        },
    }
    return f"cat <<'JSON'\n{json.dumps(schema)}\nJSON"
