"""Conversation assembly order and contents."""

from datetime import datetime
from pathlib import Path

from bai.agent.assembler import (
    assemble,
    pending_turns,
    runtime_context,
)
from bai.agent.prompts import (
    DEFAULT_INSTRUCTIONS,
    exemplar_turns,
)
from bai.core.schema import (
    AssistantTurn,
    QueryType,
    SystemTurn,
    UserTurn,
)

TOOLS = [{"type": "function", "function": {"name": "t", "parameters": {}}}]


def test_request_order(settings) -> None:
    """System, exemplars, history, context, user, reminder."""

    history = [UserTurn(content="earlier"), AssistantTurn(content='{"info": "ok"}')]
    request = assemble(QueryType.EXECUTE, history, "list all files", [], "CONTEXT", settings, "PREAMBLE")
    messages = request.messages
    exemplars = exemplar_turns(QueryType.EXECUTE)

    assert messages[0] == SystemTurn(content=f"PREAMBLE {DEFAULT_INSTRUCTIONS[QueryType.EXECUTE]}")
    assert messages[1 : 1 + len(exemplars)] == exemplars
    assert messages[1 + len(exemplars) : 3 + len(exemplars)] == history
    assert messages[-3] == SystemTurn(content="CONTEXT")
    assert messages[-2] == UserTurn(content="list all files")
    assert messages[-1] == SystemTurn(
        content=f"{DEFAULT_INSTRUCTIONS[QueryType.EXECUTE]} Respond in less than 500 tokens."
    )


def test_tool_continuation_omits_context_and_user(settings) -> None:
    """No context turn and no user turn on a tool-call continuation."""

    request = assemble(QueryType.QUESTION, [], None, TOOLS, None, settings, "P")
    exemplars = exemplar_turns(QueryType.QUESTION)

    assert len(request.messages) == 1 + len(exemplars) + 1


def test_mode_selects_instruction_and_exemplars(settings) -> None:
    """Each mode has its own instruction and exemplar set."""

    for mode in QueryType:
        request = assemble(mode, [], "x", [], None, settings, "P")
        assert request.messages[0].content.endswith(DEFAULT_INSTRUCTIONS[mode])
        assert request.messages[1] == exemplar_turns(mode)[0]


def test_configured_instruction_overrides_default(settings) -> None:
    """A mode instruction from the config file replaces the built-in one."""

    settings.ERROR_QUERY = "Explain the error."
    request = assemble(QueryType.ERROR, [], "x", [], None, settings, "P")

    assert request.messages[0].content == "P Explain the error."
    assert request.messages[-1].content == "Explain the error. Respond in less than 500 tokens."


def test_tools_attached_only_when_registered(settings) -> None:
    """Tool schemas and tool_choice appear only with a non-empty registry."""

    without = assemble(QueryType.EXECUTE, [], "x", [], None, settings, "P").to_payload()
    with_tools = assemble(QueryType.EXECUTE, [], "x", TOOLS, None, settings, "P").to_payload()

    assert "tools" not in without and "tool_choice" not in without
    assert with_tools["tools"] == TOOLS
    assert with_tools["tool_choice"] == "auto"


def test_payload_shape(settings) -> None:
    """Model, sampling, ceiling and optional structured output flag."""

    settings.JSON_MODE = True
    payload = assemble(QueryType.EXECUTE, [], "x", [], None, settings, "P").to_payload()

    assert payload["model"] == settings.MODEL
    assert payload["max_tokens"] == 500
    assert payload["temperature"] == settings.TEMP
    assert payload["response_format"] == {"type": "json_object"}
    assert payload["messages"][0]["role"] == "system"


def test_user_text_is_sanitized() -> None:
    """User text is trimmed and stripped of newlines and escape characters."""

    turns = pending_turns("  line one\nline two\033[1m  ", None)

    assert turns == [UserTurn(content="line one line two\\033[1m")]


def test_runtime_context(settings) -> None:
    """Directory exposure, the date and the host note."""

    when = datetime(2026, 10, 18, 9, 5)
    text = runtime_context(settings, cwd=Path("/home/me/src"), now=when, host_note="In Vim.")

    assert text == (
        'User is working from directory "/home/me/src". '
        'The current date is Y-m-d H:M "2026-10-18 09:05". In Vim.'
    )

    settings.EXPOSE_CURRENT_DIR = False
    assert runtime_context(settings, cwd=Path("/secret"), now=when) == (
        'The current date is Y-m-d H:M "2026-10-18 09:05".'
    )
