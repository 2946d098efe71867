"""Dispatches tool calls requested by the model to the plugins in the registry."""

import json
import logging
from pathlib import Path
from typing import (
    Protocol,
    Tuple,
)

from bai.common import json_safe
from bai.core.schema import (
    ToolCallRequest,
    ToolTurn,
)
from bai.tools import (
    TOOL_REASON,
    ToolRegistry,
)
from bai.tools.shell_host import ToolExecutionError

logger = logging.getLogger(__name__)

MAX_TOOL_OUTPUT = 1000
"""Tool output is cut to this many characters before it goes back to the model."""


class ToolHost(Protocol):
    """Executes a plugin (see :class:`bai.tools.shell_host.ShellToolHost`)."""

    def execute(self, source: Path, arguments: str) -> str: ...


def describe_arguments(arguments: str) -> Tuple[str, str]:
    """
    Split a call's arguments into the model's stated reason and a readable summary.

    Returns
    -------
    Tuple[str, str]
        ``(tool_reason, "key: value, key: value")``; the raw text is the summary when the arguments
        are not a JSON object.
    """
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError:
        return "", arguments
    if not isinstance(parsed, dict):
        return "", arguments

    reason = parsed.pop(TOOL_REASON, "")
    readable = ", ".join(f"{key}: {value}" for key, value in parsed.items())
    return str(reason), readable


def execute_tool(call: ToolCallRequest, registry: ToolRegistry, host: ToolHost) -> ToolTurn:
    """
    Run the tool requested by *call* and wrap its output as a tool turn.

    An unknown tool name answers the call with empty output, so the conversation stays valid for the
    next request.  A plugin that cannot be started answers with the failure message.
    """
    descriptor = registry.get(call.name)
    if descriptor is None:
        logger.warning("Model requested unknown tool '%s' (call %s)", call.name, call.id)
        return ToolTurn(tool_call_id=call.id, content="")

    try:
        output = host.execute(descriptor.source, call.arguments)
    except ToolExecutionError as exc:
        logger.error("Tool '%s' failed: %s", call.name, exc)
        output = str(exc)

    logger.debug("Tool '%s' returned: %s", call.name, output)
    return ToolTurn(tool_call_id=call.id, content=json_safe(output[:MAX_TOOL_OUTPUT]))
