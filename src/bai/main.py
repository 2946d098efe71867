"""
Bash AI entry point.

This file handles startup concerns (arg-parsing, config, logging, tool discovery) and launches the
session, either one-shot for the query given on the command line or interactive without one.
"""

import argparse
import logging
import os
import shutil
import sys

from bai.agent.agent_loop import Session
from bai.agent.model_client import (
    ChatCompletionsClient,
    TransportError,
)
from bai.client.cli import (
    NO_REPLY_TEXT,
    Console,
)
from bai.common import (
    VERSION,
    Theme,
)
from bai.config import (
    CONFIG_FILE,
    ConfigurationError,
    ensure_config_file,
    in_vim,
    load_settings,
)
from bai.memory.memory_store import HistoryStore
from bai.tools import (
    ToolRegistry,
    ToolRegistryError,
)
from bai.tools.shell_host import ShellToolHost

logger = logging.getLogger(__name__)

REQUIRED_EXECUTABLES = ("bash",)


class RequirementError(RuntimeError):
    """Raised when an external executable Bash AI relies on is missing."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stderr,
    )
    # Keep transport chatter out of the terminal
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def check_requirements() -> None:
    """Make sure required tools are installed."""
    for name in REQUIRED_EXECUTABLES:
        if shutil.which(name) is None:
            raise RequirementError(f"ERROR: Bash AI requires {name} to be installed.")


def host_note() -> str:
    """Extra runtime context describing where Bash AI is running."""
    if in_vim():
        return f'User is inside "{os.environ.get("VIM", "")}". You are in the Vim terminal.'
    return ""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bai",
        description="Bash AI: turn natural language into shell commands.",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=None,
        help="Logging level (default from config: warning)",
    )
    parser.add_argument("--version", action="version", version=f"Bash AI v{VERSION}")
    parser.add_argument(
        "query",
        nargs=argparse.REMAINDER,
        help="Task or question; omit it to start interactive mode",
    )
    return parser


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for Bash AI.

    Exits with status 1 on missing executables, bad plugin descriptors, missing credentials or an
    empty model response, and with 0 otherwise.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = build_parser().parse_args(argv)
    query = " ".join(args.query).strip()
    console = Console(theme=Theme(enabled=not in_vim()))

    try:
        check_requirements()
        ensure_config_file(CONFIG_FILE)
        settings = load_settings(CONFIG_FILE)
    except (RequirementError, ConfigurationError) as exc:
        console.print_error(str(exc))
        sys.exit(1)

    if args.log_level:
        settings.LOG_LEVEL = args.log_level
    _init_logging(settings.LOG_LEVEL)
    console.theme.hi_contrast = settings.HI_CONTRAST

    logger.info("Starting Bash AI [%s mode]", "one-shot" if query else "interactive")
    logger.debug("Settings: %s", settings.model_dump(exclude={"KEY"}))

    registry = ToolRegistry()
    host = ShellToolHost(settings.tools_path)
    try:
        registry.discover(host)
    except ToolRegistryError as exc:
        console.print_error(f"ERROR: {exc}")
        sys.exit(1)

    session = Session(
        settings=settings,
        client=ChatCompletionsClient(settings),
        registry=registry,
        host=host,
        store=HistoryStore(settings.history_path, settings.MAX_HISTORY),
        console=console,
        host_note=host_note(),
    )

    console.cursor(False)
    try:
        code = session.run(query or None)
    except TransportError as exc:
        logger.error("%s", exc)
        console.print_info(NO_REPLY_TEXT)
        code = 1
    finally:
        console.cursor(True)
    sys.exit(code)


if __name__ == "__main__":
    main()
