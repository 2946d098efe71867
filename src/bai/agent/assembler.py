"""
Conversation assembly.

Builds the outbound request in a fixed order:

1. system message (persona preamble + mode instruction)
2. mode exemplars
3. rolling history
4. dynamic runtime context (skipped on tool-call continuations)
5. the new user turn (skipped on tool-call continuations)
6. trailing reminder (mode instruction + output ceiling)
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Sequence,
)

from bai.agent.prompts import (
    exemplar_turns,
    reminder_message,
    system_message,
)
from bai.common import json_safe
from bai.config import Settings
from bai.core.schema import (
    ChatRequest,
    ConversationTurn,
    QueryType,
    SystemTurn,
    UserTurn,
)

logger = logging.getLogger(__name__)


def runtime_context(
    settings: Settings,
    cwd: Optional[Path] = None,
    now: Optional[datetime] = None,
    host_note: str = "",
) -> str:
    """Describe the working directory (if exposure is enabled), the current time and the host."""
    parts = []
    if settings.EXPOSE_CURRENT_DIR:
        parts.append(f'User is working from directory "{cwd or Path.cwd()}".')
    parts.append(f'The current date is Y-m-d H:M "{(now or datetime.now()):%Y-%m-%d %H:%M}".')
    if host_note:
        parts.append(host_note)
    return json_safe(" ".join(parts))


def pending_turns(pending_user: Optional[str], context: Optional[str]) -> List[ConversationTurn]:
    """
    Turns this cycle adds to the conversation: the context turn and the user turn.

    Either is omitted when absent, which is the case on tool-call continuations.
    """
    turns: List[ConversationTurn] = []
    if context:
        turns.append(SystemTurn(content=context))
    if pending_user:
        turns.append(UserTurn(content=json_safe(pending_user.strip())))
    return turns


def assemble(
    mode: QueryType,
    history: Sequence[ConversationTurn],
    pending_user: Optional[str],
    tool_schemas: Sequence[Dict[str, Any]],
    context: Optional[str],
    settings: Settings,
    preamble: str,
) -> ChatRequest:
    """
    Build the request for one model call.

    Parameters
    ----------
    mode:
        Query mode selecting instruction text and exemplars.
    history:
        Persisted and rolling turns, replayed verbatim.
    pending_user:
        New user text, or None on a tool-call continuation.
    tool_schemas:
        Registered tool schemas; attached only when non-empty.
    context:
        Runtime context text, or None on a tool-call continuation.
    settings:
        Model name, sampling and output ceiling.
    preamble:
        Persona and environment description.
    """
    messages: List[ConversationTurn] = [system_message(mode, settings, preamble)]
    messages.extend(exemplar_turns(mode))
    messages.extend(history)
    messages.extend(pending_turns(pending_user, context))
    messages.append(reminder_message(mode, settings))

    logger.debug(
        "Assembled %s request: %d messages, %d tools", mode.value, len(messages), len(tool_schemas)
    )
    return ChatRequest(
        model=settings.MODEL,
        max_tokens=settings.TOKENS,
        temperature=settings.TEMP,
        messages=messages,
        tools=list(tool_schemas),
        json_mode=settings.JSON_MODE,
    )
