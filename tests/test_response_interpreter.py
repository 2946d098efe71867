"""Model reply interpretation and best-effort JSON recovery."""

import json

import pytest

from bai.agent.response_interpreter import (
    REJECTED_TEXT,
    UNKNOWN_ERROR,
    extract_json_block,
    interpret,
    parse_reply_object,
    repair_truncated_json,
)
from bai.core.schema import (
    FinalAnswer,
    ModelResponse,
    Rejected,
    ToolCallBatch,
)

from conftest import tool_call


@pytest.mark.parametrize(
    "text",
    [
        '{"info": "hello"}',
        '{"cmd": "ls -a", "info": "list \\"all\\" files"}',
        '{"cmd": "awk \'{print $1}\' f.txt", "info": "first column"}',
        '{"info": "C:\\\\Users"}',
    ],
)
def test_repair_leaves_well_formed_objects_unchanged(text: str) -> None:
    """Repairing an already valid object returns it as-is."""

    assert repair_truncated_json(text) == json.loads(text)


def test_repair_closes_truncated_string() -> None:
    """A reply cut off inside a string value becomes a parseable object."""

    assert repair_truncated_json('{"info": "hello') == {"info": "hello"}


def test_repair_closes_object_after_complete_value() -> None:
    """A reply cut off after a complete value still parses."""

    repaired = repair_truncated_json('{"cmd": "ls -a", "info": "lists files"')

    assert repaired == {"cmd": "ls -a", "info": "lists files"}


def test_repair_doubles_lone_backslashes() -> None:
    """Backslashes that are not JSON escapes are escaped."""

    assert repair_truncated_json('{"cmd": "grep \\d+ log') == {"cmd": "grep \\d+ log"}


def test_repair_reports_unrepairable_text() -> None:
    """Text that cannot be recovered yields None instead of raising."""

    assert repair_truncated_json('{"info": {"nested": [1, 2') is None
    assert repair_truncated_json("no json at all") is None


def test_first_block_is_extracted_from_chatty_reply() -> None:
    """An object embedded in prose is found."""

    text = 'Sure! Here you go: {"cmd": "df -h", "info": "disk usage"} Hope that helps {"x": 1}'

    assert extract_json_block(text) == '{"cmd": "df -h", "info": "disk usage"}'
    assert parse_reply_object(text) == {"cmd": "df -h", "info": "disk usage"}


def test_braces_inside_strings_do_not_end_the_block() -> None:
    """Quoted braces are skipped when matching."""

    text = '{"cmd": "find . -name \\"*.tmp\\" -exec rm {} +", "info": "x"}'

    assert extract_json_block(text) == text


def test_code_fences_are_stripped() -> None:
    """Markdown fenced JSON is parsed."""

    assert parse_reply_object('```json\n{"info": "fenced"}\n```') == {"info": "fenced"}


def test_command_proposal() -> None:
    """A stop reply with cmd and info is a final answer proposing a command."""

    outcome = interpret(ModelResponse(content='{"cmd": "ls -a", "info": "all files"}', finish_reason="stop"))

    assert isinstance(outcome, FinalAnswer)
    assert outcome.reply.cmd == "ls -a"
    assert outcome.reply.info == "all files"


def test_empty_cmd_is_absent() -> None:
    """A zero-length cmd means an informational reply."""

    outcome = interpret(ModelResponse(content='{"cmd": "", "info": "just info"}', finish_reason="stop"))

    assert isinstance(outcome, FinalAnswer)
    assert outcome.reply.cmd is None


def test_plain_text_is_wrapped_as_info() -> None:
    """A reply that is not an info/cmd object is shown verbatim."""

    for content in ("Use ls -a.", '{"answer": "no info key"}', "[1, 2]"):
        outcome = interpret(ModelResponse(content=content, finish_reason="stop"))
        assert isinstance(outcome, FinalAnswer)
        assert outcome.reply.info == content
        assert outcome.reply.cmd is None


def test_truncated_reply_is_repaired() -> None:
    """A length-limited reply goes through repair."""

    outcome = interpret(ModelResponse(content='{"info": "hello', finish_reason="length"))

    assert isinstance(outcome, FinalAnswer)
    assert outcome.reply.info == "hello"


def test_unrepairable_truncated_reply_degrades_to_text() -> None:
    """When repair fails the raw text becomes the information."""

    outcome = interpret(ModelResponse(content='{"info": {"deep": [1', finish_reason="length"))

    assert isinstance(outcome, FinalAnswer)
    assert outcome.reply.info == '{"info": {"deep": [1'


def test_content_filter_is_rejected() -> None:
    """Filtered replies are replaced by a fixed message."""

    outcome = interpret(ModelResponse(content='{"cmd": "rm -rf /"}', finish_reason="content_filter"))

    assert outcome == Rejected(reason=REJECTED_TEXT)


def test_tool_calls_bypass_final_answer() -> None:
    """Tool call replies produce the ordered batch and nothing else."""

    calls = [tool_call("a", "first"), tool_call("b", "second")]
    outcome = interpret(ModelResponse(content=None, finish_reason="tool_calls", tool_calls=calls))

    assert isinstance(outcome, ToolCallBatch)
    assert [call.id for call in outcome.calls] == ["a", "b"]


def test_error_payload_is_surfaced_as_info() -> None:
    """An error-shaped payload becomes the informational reply."""

    outcome = interpret(ModelResponse(error="Incorrect API key provided"))

    assert isinstance(outcome, FinalAnswer)
    assert outcome.reply.info == "Incorrect API key provided"


def test_missing_content_and_error_is_unknown_error() -> None:
    """Nothing usable at all still yields a message."""

    outcome = interpret(ModelResponse(content="", finish_reason="stop"))

    assert isinstance(outcome, FinalAnswer)
    assert outcome.reply.info == UNKNOWN_ERROR


@pytest.mark.parametrize(
    "content",
    [
        'Sure! {"cmd": "ls -a", "info": "lists fi',
        '```json\n{"cmd": "ls -a", "info": "lists fi',
    ],
)
def test_truncated_reply_with_preamble_keeps_command(content: str) -> None:
    """Chatter or an open code fence before a cut-off object does not lose the proposal."""

    outcome = interpret(ModelResponse(content=content, finish_reason="length"))

    assert isinstance(outcome, FinalAnswer)
    assert outcome.reply.cmd == "ls -a"
    assert outcome.reply.info == "lists fi"
