"""Main orchestration loop for Bash AI."""

from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import (
    dataclass,
    replace,
)
from typing import (
    List,
    Optional,
    Tuple,
)

from bai.agent.assembler import (
    assemble,
    pending_turns,
    runtime_context,
)
from bai.agent.classifier import classify
from bai.agent.model_client import ModelClient
from bai.agent.prompts import global_preamble
from bai.agent.response_interpreter import interpret
from bai.agent.tool_executor import (
    ToolHost,
    describe_arguments,
    execute_tool,
)
from bai.client.cli import (
    INTERACTIVE_INFO,
    Console,
)
from bai.common import VERSION
from bai.config import Settings
from bai.core.schema import (
    AssistantTurn,
    ChatRequest,
    ConversationTurn,
    FinalAnswer,
    ModelResponse,
    QueryType,
    Reply,
    ToolCallBatch,
    ToolCallRequest,
    ToolTurn,
)
from bai.memory.memory_store import HistoryStore
from bai.tools import ToolRegistry

logger = logging.getLogger(__name__)

EXIT_WORD = "exit"
PROMPT = "Bash AI> "
NO_INFO_TEXT = "warning: no information"

# bash prefixes its own diagnostics with its name and, on newer versions, the line
_BASH_PREFIX = re.compile(r"^bash: (?:line \d+: )?", re.MULTILINE)


@dataclass(frozen=True)
class NextCycle:
    """
    What the next loop iteration must do.

    ``mode`` pins the query mode (the sticky error override, or the mode of a pending tool
    round-trip).  ``rerun`` keeps a one-shot session going for one more cycle.
    """

    user_text: Optional[str] = None
    mode: Optional[QueryType] = None
    skip_user_input: bool = False
    skip_context: bool = False
    rerun: bool = False


def run_command(cmd: str, shell: str = "bash") -> Tuple[int, str]:
    """
    Run *cmd* with its output on the terminal and capture what it writes to stderr.

    Returns
    -------
    Tuple[int, str]
        The exit status and the error text with bash's ``line N`` prefix removed.
    """
    logger.info("Executing command: %s", cmd)
    proc = subprocess.run(
        [shell, "-c", cmd],
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=False,
    )
    error = _BASH_PREFIX.sub("", proc.stderr.strip())
    logger.debug("Command exited with %d, stderr=%r", proc.returncode, error)
    return proc.returncode, error


class Session:
    """Drives the interactive or one-shot conversation with the model."""

    def __init__(
        self,
        settings: Settings,
        client: ModelClient,
        registry: ToolRegistry,
        host: ToolHost,
        store: HistoryStore,
        console: Console,
        preamble: Optional[str] = None,
        host_note: str = "",
    ) -> None:
        self.settings = settings
        self.client = client
        self.registry = registry
        self.host = host
        self.store = store
        self.console = console
        self.preamble = preamble if preamble is not None else global_preamble()
        self.host_note = host_note
        self.history: List[ConversationTurn] = []

    # ------------------------------------------------------------------ #
    # Loop
    # ------------------------------------------------------------------ #
    def run(self, query: Optional[str] = None) -> int:
        """
        Run until the conversation is over and return the exit code.

        Without *query* the session is interactive and ends when the user types ``exit``.  A one-shot
        session ends once no cycle asks to run again, and only then persists the history.
        """
        interactive = not query
        self.history = self.store.load()
        if interactive:
            self._banner()

        directive = NextCycle(user_text=query or None)
        while True:
            text = directive.user_text
            if not directive.skip_user_input:
                while not text:
                    line = self.console.read_line(PROMPT)
                    if line is None or line.strip() == EXIT_WORD:
                        if line is None:
                            self.console.newline()
                        self.console.print_info("Bye!")
                        return 0
                    text = line.strip()

            directive = self.cycle(replace(directive, user_text=text))
            if not (interactive or directive.rerun):
                break

        self.store.save(self.history)
        return 0

    def cycle(self, directive: NextCycle) -> NextCycle:
        """Run one request/reply cycle and return the directive for the next one."""
        text = None if directive.skip_user_input else directive.user_text
        mode = classify(text or "", directive.mode)
        context = None if directive.skip_context else runtime_context(self.settings, host_note=self.host_note)

        request = assemble(
            mode, self.history, text, self.registry.schemas(), context, self.settings, self.preamble
        )
        response = self._call_model(request)
        self.history.extend(pending_turns(text, context))

        outcome = interpret(response)
        if isinstance(outcome, ToolCallBatch):
            self.history.append(AssistantTurn(content=outcome.content, tool_calls=outcome.calls))
            for call in outcome.calls:
                self.history.append(self._run_tool(call))
            return NextCycle(mode=mode, skip_user_input=True, skip_context=True, rerun=True)

        if isinstance(outcome, FinalAnswer):
            reply, raw = outcome.reply, outcome.raw
        else:
            reply, raw = Reply(info=outcome.reason), outcome.reason
        self.history.append(AssistantTurn(content=json.dumps(reply.model_dump(exclude_none=True))))
        return self._present(reply, raw)

    def _call_model(self, request: ChatRequest) -> ModelResponse:
        with self.console.spinner():
            return self.client.send(request)

    def _banner(self) -> None:
        self.console.print_title(f"🤖 Bash AI v{VERSION}")
        if len(self.registry):
            self.console.newline()
            self.console.print_title("🔧 Activated Tools")
            for descriptor in self.registry:
                self.console.print_title(descriptor.name, f" from {descriptor.source.name}")
        self.console.newline()
        self.console.print_info(INTERACTIVE_INFO)

    # ------------------------------------------------------------------ #
    # Tools
    # ------------------------------------------------------------------ #
    def _run_tool(self, call: ToolCallRequest) -> ToolTurn:
        if call.name not in self.registry:
            self.console.print_info(f'Tool "{call.name}" is not available, skipping it.')
        else:
            reason, readable = describe_arguments(call.arguments)
            self.console.print_info(reason)
            self.console.print_info(f'Using tool "{call.name}" {readable}')
        return execute_tool(call, self.registry, self.host)

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #
    def _present(self, reply: Reply, raw: str) -> NextCycle:
        if not reply.cmd:
            self.console.print_info(reply.info or raw)
            return NextCycle()

        self.console.print_cmd(reply.cmd)
        self.console.print_info(reply.info or NO_INFO_TEXT)

        answer = self.console.read_key("execute command? [y/e/N]: ").lower()
        if answer == "y":
            self.console.answer("yes")
            return self._execute(reply.cmd)
        if answer == "e":
            edited = self.console.edit_line("edit command: ", reply.cmd).strip()
            if edited:
                return self._execute(edited)
        else:
            self.console.answer("no")
        self.console.print_cancel("[cancel]")
        return NextCycle()

    def _execute(self, cmd: str) -> NextCycle:
        returncode, error = run_command(cmd)
        if returncode == 0:
            if error:
                print(error, file=self.console.stream)
            self.console.print_ok("[ok]")
            return NextCycle()

        if error:
            print(error, file=self.console.stream)
        if len(error) <= 1:
            self.console.print_cancel("[cancel]")
            return NextCycle()

        self.console.print_error("[error]")
        answer = self.console.read_key("examine error? [y/N]: ").lower()
        if answer != "y":
            self.console.answer("no")
            return NextCycle()

        self.console.answer("yes")
        return NextCycle(
            user_text=f'You executed "{cmd}". Which returned error "{error}".',
            mode=QueryType.ERROR,
            rerun=True,
        )
