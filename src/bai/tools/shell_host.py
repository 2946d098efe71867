"""
Shell plugin host.

A plugin is a ``*.sh`` script in the tools directory defining two functions:

* ``init``    - prints the tool description, one JSON object in the chat-completions tool shape.
* ``execute`` - receives the call arguments as a JSON string in ``$1`` and prints the tool output.

Plugins are trusted code chosen by the user; they run with the user's privileges.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import (
    List,
    Optional,
)

logger = logging.getLogger(__name__)

_INIT_SCRIPT = 'source "$1"; init'
_EXECUTE_SCRIPT = 'source "$1"; execute "$2"'


class ToolExecutionError(RuntimeError):
    """Raised when a plugin process cannot run."""


@dataclass(frozen=True)
class PluginListing:
    """A plugin script and what its ``init`` printed (None if it has no usable ``init``)."""

    path: Path
    description: Optional[str]


class ShellToolHost:
    """Enumerates and executes shell plugins through bash."""

    def __init__(self, tools_path: Path, shell: str = "bash") -> None:
        self.tools_path = tools_path
        self.shell = shell

    def list(self) -> List[PluginListing]:
        """Run ``init`` of every plugin, in file name order."""
        self.tools_path.mkdir(parents=True, exist_ok=True)
        listings = []
        for path in sorted(self.tools_path.glob("*.sh")):
            if not path.is_file():
                continue
            listings.append(PluginListing(path=path, description=self._describe(path)))
        return listings

    def _describe(self, path: Path) -> Optional[str]:
        try:
            proc = subprocess.run(
                [self.shell, "-c", _INIT_SCRIPT, self.shell, str(path)],
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as exc:
            logger.warning("Could not run init of %s: %s", path, exc)
            return None
        if proc.returncode != 0:
            return None
        return proc.stdout

    def execute(self, source: Path, arguments: str) -> str:
        """
        Run the ``execute`` function of *source* with *arguments* and return its stdout.

        Raises
        ------
        ToolExecutionError
            If the plugin process cannot be started.
        """
        logger.debug("Executing plugin %s with args=%s", source, arguments)
        try:
            proc = subprocess.run(
                [self.shell, "-c", _EXECUTE_SCRIPT, self.shell, str(source), arguments],
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise ToolExecutionError(f"Plugin '{source.name}' could not be started: {exc}") from exc
        if proc.returncode != 0:
            logger.info("Plugin %s exited with status %d", source, proc.returncode)
        return proc.stdout.rstrip("\n")
