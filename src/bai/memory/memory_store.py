"""Persist the rolling conversation history as a JSON array between invocations."""

import json
import logging
from pathlib import Path
from typing import (
    List,
    Sequence,
)

from pydantic import (
    TypeAdapter,
    ValidationError,
)

from bai.core.schema import (
    ConversationTurn,
    ToolTurn,
)

logger = logging.getLogger(__name__)

_TURNS = TypeAdapter(List[ConversationTurn])


class HistoryStore:
    """
    Bounded history log backed by one file.

    The file is read once when a session starts and overwritten once when it ends.  Concurrent
    invocations against the same file are not coordinated; the last writer wins.
    """

    def __init__(self, path: Path, max_turns: int) -> None:
        self.path = path
        self.max_turns = max_turns

    def load(self) -> List[ConversationTurn]:
        """Return the persisted turns, or an empty list if there is no usable history."""
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
            if not raw.strip():
                return []
            turns = _TURNS.validate_python(json.loads(raw))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable history file %s: %s", self.path, exc)
            return []
        logger.debug("Loaded %d history turns from %s", len(turns), self.path)
        return turns

    def save(self, turns: Sequence[ConversationTurn]) -> None:
        """Overwrite the history file with the most recent *turns* that fit the window."""
        window = trim_history(turns, self.max_turns)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps([turn.to_message() for turn in window], separators=(",", ":")) + "\n",
            encoding="utf-8",
        )
        logger.debug("Saved %d history turns to %s", len(window), self.path)


def trim_history(turns: Sequence[ConversationTurn], max_turns: int) -> List[ConversationTurn]:
    """
    Keep the newest *max_turns* turns, evicting the oldest first.

    Tool answers left at the front of the window lost the assistant turn that requested them, so
    they are evicted too.
    """
    if max_turns <= 0:
        return []
    window = list(turns[-max_turns:])
    while window and isinstance(window[0], ToolTurn):
        window.pop(0)
    return window
