"""Terminal front-end for Bash AI: themed output, prompts and the progress spinner."""

from __future__ import annotations

import logging
import sys
import threading
from typing import (
    Any,
    Optional,
    TextIO,
)

from bai.common import (
    AnsiColors,
    Theme,
    colored_print,
)

logger = logging.getLogger(__name__)

PRE_TEXT = "  "  # Prefix for text output
NO_REPLY_TEXT = "¯\\_(ツ)_/¯"
INTERACTIVE_INFO = (
    'Hi! Feel free to ask me anything or give me a task. Type "exit" when you\'re done.'
)
PROGRESS_TEXT = "Thinking..."
PROGRESS_ANIM = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

CLEAR_LINE = "\033[2K\r"
HIDE_CURSOR = "\033[?25l"
SHOW_CURSOR = "\033[?25h"


class Spinner:
    """
    Progress animation running on a background thread while the model is busy.

    :meth:`stop` waits for the thread to finish, so nothing keeps drawing once control returns.
    """

    def __init__(self, stream: TextIO, theme: Theme, enabled: bool = True, interval: float = 0.1) -> None:
        self.stream = stream
        self.theme = theme
        self.enabled = enabled
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _spin(self) -> None:
        i = 0
        while not self._stop.wait(self.interval):
            frame = PROGRESS_ANIM[i % len(PROGRESS_ANIM)]
            self.stream.write(f"\r{PRE_TEXT}{frame}")
            self.stream.flush()
            i += 1

    def start(self) -> None:
        if not self.enabled or self._thread is not None:
            return
        self._stop.clear()
        self.stream.write(f"{PRE_TEXT}  {PROGRESS_TEXT}")
        self.stream.flush()
        self._thread = threading.Thread(target=self._spin, name="bai-spinner", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join()
        self._thread = None
        self.stream.write(self.theme.control(CLEAR_LINE) or "\n")
        self.stream.flush()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> "Spinner":
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()


class Console:
    """Reads user input and prints themed output."""

    def __init__(self, theme: Optional[Theme] = None, stream: Optional[TextIO] = None) -> None:
        self.theme = theme or Theme()
        self.stream = stream or sys.stdout

    # ------------------------------------------------------------------ #
    # Output
    # ------------------------------------------------------------------ #
    def _print(self, text: str, color: AnsiColors, prefix: str = "", end: str = "\n\n") -> None:
        if not text:
            return
        colored_print(f"{prefix}{text}", color, theme=self.theme, end=end, file=self.stream)

    def print_info(self, text: str) -> None:
        self._print(text, AnsiColors.INFO, prefix=PRE_TEXT)

    def print_ok(self, text: str) -> None:
        self._print(text, AnsiColors.OK)

    def print_error(self, text: str) -> None:
        self._print(text, AnsiColors.ERROR)

    def print_cancel(self, text: str) -> None:
        self._print(text, AnsiColors.CANCEL)

    def print_cmd(self, text: str) -> None:
        self._print(f" {text} ", AnsiColors.CMD, prefix=PRE_TEXT)

    def print_title(self, title: str, suffix: str = "") -> None:
        """Print a bold title line, optionally followed by plain text."""
        bold = self.theme.code(AnsiColors.TITLE)
        reset = self.theme.code(AnsiColors.RESET)
        print(f"{PRE_TEXT}{bold}{title}{reset}{suffix}", file=self.stream)

    def newline(self) -> None:
        print(file=self.stream)

    def cursor(self, visible: bool) -> None:
        self.stream.write(self.theme.control(SHOW_CURSOR if visible else HIDE_CURSOR))
        self.stream.flush()

    def spinner(self) -> Spinner:
        """A spinner drawing on this console, animated only on a real terminal."""
        return Spinner(self.stream, self.theme, enabled=self.stream.isatty())

    # ------------------------------------------------------------------ #
    # Input
    # ------------------------------------------------------------------ #
    def read_line(self, prompt: str) -> Optional[str]:
        """
        Read one line of input.

        Returns None if input couldn't be read (e.g., Ctrl+C or Ctrl+D).
        """
        import signal  # pylint: disable=import-outside-toplevel

        # Ensure SIGINT breaks out of slow system calls such as read()
        if hasattr(signal, "siginterrupt"):
            signal.siginterrupt(signal.SIGINT, True)

        self.cursor(True)
        try:
            return input(prompt)
        except (EOFError, KeyboardInterrupt):
            return None
        finally:
            self.cursor(False)

    def read_key(self, prompt: str) -> str:
        """Show *prompt* and read a single key press without echo."""
        self.stream.write(f"{PRE_TEXT}{prompt}")
        self.cursor(True)
        try:
            if not sys.stdin.isatty():
                return sys.stdin.readline()[:1]
            import termios  # pylint: disable=import-outside-toplevel
            import tty  # pylint: disable=import-outside-toplevel

            fd = sys.stdin.fileno()
            old = termios.tcgetattr(fd)
            try:
                tty.setcbreak(fd)
                return sys.stdin.read(1)
            finally:
                termios.tcsetattr(fd, termios.TCSADRAIN, old)
        except KeyboardInterrupt:
            return ""
        finally:
            self.cursor(False)

    def answer(self, text: str) -> None:
        """Echo the meaning of a key press after a :meth:`read_key` prompt."""
        print(text, file=self.stream)
        print(file=self.stream)

    def edit_line(self, prompt: str, prefill: str) -> str:
        """Let the user edit *prefill*; an interrupted edit keeps it unchanged."""
        import readline  # pylint: disable=import-outside-toplevel

        self.stream.write(self.theme.control(CLEAR_LINE))
        readline.set_startup_hook(lambda: readline.insert_text(prefill))
        self.cursor(True)
        try:
            edited = input(f"{PRE_TEXT}{prompt}")
        except (EOFError, KeyboardInterrupt):
            edited = prefill
        finally:
            readline.set_startup_hook(None)
            self.cursor(False)
        print(file=self.stream)
        return edited
