"""
Interpret model replies.

Turns a decoded :class:`~bai.core.schema.ModelResponse` into one of three outcomes:

* :class:`~bai.core.schema.ToolCallBatch` - the model wants tools to run first,
* :class:`~bai.core.schema.Rejected` - the reply was content filtered,
* :class:`~bai.core.schema.FinalAnswer` - an ``info``/``cmd`` reply, recovered on a best-effort
  basis from chatty, fenced or truncated output.

Nothing in here raises on bad model output; the worst case is the raw text shown as information.
"""

import json
import logging
import re
from typing import (
    Any,
    Dict,
    Optional,
)

from bai.core.schema import (
    FinalAnswer,
    ModelResponse,
    Outcome,
    Rejected,
    Reply,
    ToolCallBatch,
)

logger = logging.getLogger(__name__)

REJECTED_TEXT = "Your query was rejected."
UNKNOWN_ERROR = "An unknown error occurred."

_FENCE = re.compile(r"```(?:json)?\s*(.+?)```", re.DOTALL)
_ESCAPE = re.compile(r"\\(.)?", re.DOTALL)
_JSON_ESCAPES = frozenset('"\\/bfnrtu')


def interpret(response: ModelResponse) -> Outcome:
    """Decide what the session does with *response*."""
    if response.finish_reason == "tool_calls" and response.tool_calls:
        logger.info(
            "Model requested %d tool calls: %s",
            len(response.tool_calls),
            [call.name for call in response.tool_calls],
        )
        return ToolCallBatch(content=response.content, calls=response.tool_calls)

    if response.finish_reason == "content_filter":
        logger.info("Model reply was content filtered")
        return Rejected(reason=REJECTED_TEXT)

    text = response.content or ""
    if len(text) <= 1:
        text = response.error or UNKNOWN_ERROR

    if response.finish_reason == "length":
        logger.info("Model reply was truncated, attempting repair")
        parsed = repair_truncated_json(text)
        if parsed is None:
            parsed = parse_reply_object(text)
    else:
        parsed = parse_reply_object(text)

    reply = to_reply(parsed)
    if reply is None:
        logger.debug("Reply is not a JSON object, using it as information: %s", text)
        reply = Reply(info=text)
    return FinalAnswer(reply=reply, raw=text)


def to_reply(parsed: Any) -> Optional[Reply]:
    """Build a :class:`Reply` from an object holding ``info`` and/or ``cmd``, else None."""
    if not isinstance(parsed, dict) or not ("info" in parsed or "cmd" in parsed):
        return None
    return Reply(info=parsed.get("info"), cmd=parsed.get("cmd"))


# ---------------------------------------------------------------------------
# JSON recovery
# ---------------------------------------------------------------------------
def _loads_object(content: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(content, strict=False)
    except (json.JSONDecodeError, RecursionError):
        return None
    return parsed if isinstance(parsed, dict) else None


def _find_matching_brace(s: str, i: int) -> Optional[int]:
    """Given s[i] == '{', return index just past its matching '}', skipping quoted sections."""
    depth = 0
    in_string = False
    escaped = False
    for j in range(i, len(s)):
        ch = s[j]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return j + 1
    return None


def extract_json_block(content: str) -> Optional[str]:
    """Return the first balanced ``{...}`` block in *content*, or None."""
    open_idx = content.find("{")
    if open_idx < 0:
        return None
    end = _find_matching_brace(content, open_idx)
    return content[open_idx:end] if end is not None else None


def parse_reply_object(content: str) -> Optional[Dict[str, Any]]:
    """
    Find a JSON object in a possibly chatty reply.

    Markdown code fences are stripped, then the first ``{...}`` block is tried before the whole
    text.
    """
    match = _FENCE.search(content)
    if match:
        content = match.group(1)
    content = content.strip()

    block = extract_json_block(content)
    if block is not None:
        parsed = _loads_object(block)
        if parsed is not None:
            return parsed
    return _loads_object(content)


def _count_unescaped_quotes(content: str) -> int:
    count = 0
    escaped = False
    for ch in content:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            count += 1
    return count


def _double_lone_backslashes(content: str) -> str:
    """Double every backslash that does not start a valid JSON escape."""

    def fix(match: re.Match) -> str:
        follower = match.group(1)
        if follower is not None and follower in _JSON_ESCAPES:
            return match.group(0)
        return "\\\\" + (follower or "")

    return _ESCAPE.sub(fix, content)


def repair_truncated_json(content: str) -> Optional[Dict[str, Any]]:
    """
    Best-effort repair of a JSON object cut off by the output length limit.

    Well-formed objects come back unchanged.  Otherwise the text gets, in order: a closing quote and
    brace unless it already ends in a brace, closing braces until they balance the opening ones, an
    escaped quote if the quote count is odd, and doubled lone backslashes.  If that does not parse,
    a second candidate only closes the open string and the open braces.  Each candidate is parsed
    like a complete reply, so leading chatter or an unclosed code fence does not defeat the repair.

    Deeply nested truncation and braces inside strings are not handled.  Returns None when the
    text cannot be repaired.
    """
    parsed = parse_reply_object(content)
    if parsed is not None:
        return parsed

    text = content.rstrip()

    repaired = text
    if not repaired.endswith("}"):
        repaired += '"}'
    while repaired.count("{") > repaired.count("}"):
        repaired += "}"
    if _count_unescaped_quotes(repaired) % 2 != 0:
        repaired += '\\"'
    repaired = _double_lone_backslashes(repaired)
    parsed = parse_reply_object(repaired)
    if parsed is not None:
        return parsed

    closed = _double_lone_backslashes(text)
    if _count_unescaped_quotes(closed) % 2 != 0:
        closed += '"'
    while closed.count("{") > closed.count("}"):
        closed += "}"
    parsed = parse_reply_object(closed)
    if parsed is None:
        logger.debug("Could not repair truncated reply: %s", content)
    return parsed
