"""Common utility functions for the project."""

import re
from enum import Enum
from typing import Any

VERSION = "1.0.5"
"""Version of Bash AI, also quoted to the model in the persona preamble."""

# Everything below the space character except tab counts as a control character
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    CMD = "\033[48;5;236m\033[38;5;203m"  # cmd suggestions (background + text)
    INFO = "\033[90;3m"  # all information messages
    ERROR = "\033[91m"  # cmd error messages
    CANCEL = "\033[93m"  # cmd cancellation message
    OK = "\033[92m"  # cmd success message
    TITLE = "\033[1m"  # the Bash AI title
    RESET = "\033[0m"


class Theme:
    """
    Resolves the colors actually written to the terminal.

    Inside Vim every sequence is blanked out, and high contrast mode prints information messages in
    the default color.
    """

    def __init__(self, enabled: bool = True, hi_contrast: bool = False) -> None:
        self.enabled = enabled
        self.hi_contrast = hi_contrast

    def code(self, color: AnsiColors) -> str:
        """Return the escape sequence for *color*, or an empty string when colors are off."""
        if not self.enabled:
            return ""
        if color is AnsiColors.INFO and self.hi_contrast:
            return AnsiColors.RESET.value
        return color.value

    def control(self, sequence: str) -> str:
        """Return a raw terminal control *sequence* (cursor, line clearing) when allowed."""
        return sequence if self.enabled else ""


def colored_print(text: str, color: AnsiColors, *args: Any, theme: Theme | None = None, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        theme: Theme deciding whether colors are emitted (colors on when omitted)
        kwargs: Additional keyword arguments for print
    """
    theme = theme or Theme()
    print(f"{theme.code(color)}{text}{theme.code(AnsiColors.RESET)}", *args, **kwargs)


def json_safe(text: str) -> str:
    """
    Make free text safe to embed in a model payload.

    Newlines become spaces, escape characters are spelled out as ``\\033`` and remaining control
    characters are dropped. Quoting and backslashes are left to the JSON encoder.
    """
    text = text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    text = text.replace("\033", "\\033")
    return _CONTROL_CHARS.sub("", text)
