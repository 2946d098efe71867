"""
Hand-authored prompt text for Bash AI.

Holds the persona preamble, the instruction for each query mode and the few-shot exemplars that
anchor the model's JSON output format.  The exemplars are fixed; nothing here is learned.
"""

import json
import os
import platform
import shutil
import subprocess
import sys
from typing import (
    Dict,
    List,
    Tuple,
)

from bai.common import VERSION
from bai.config import Settings
from bai.core.schema import (
    AssistantTurn,
    QueryType,
    SystemTurn,
    UserTurn,
)

HOMEPAGE = "https://github.com/hezkore/bash-ai"

DEFAULT_INSTRUCTIONS: Dict[QueryType, str] = {
    QueryType.EXECUTE: (
        "Return only a single compact JSON object containing 'cmd' and 'info' fields. 'cmd' must "
        "always contain one or multiple commands to perform the task specified in the user query. "
        "'info' must always contain a single-line string detailing the actions 'cmd' will perform "
        "and the purpose of all command flags. 'cmd' may output a shell script to perform complex "
        "tasks. 'cmd' may be omittied as a last resort if no command can be suggested."
    ),
    QueryType.QUESTION: (
        "Return only a single compact JSON object containing a 'info' field. 'info' must always "
        "contain a single-line string terminal-related answer to the user query."
    ),
    QueryType.ERROR: (
        "Return only a single compact JSON object containing 'cmd' and 'info' fields. 'cmd' is "
        "optional. 'cmd' must always contain a suggestion on how to fix, solve or repair the error "
        "in the user query. 'info' must always be a single-line string explaining what the error in "
        "the user query means, why it happened, and why 'cmd' might fix it. Use your tools to find "
        "out why the error occured and offer alternatives."
    ),
}

# (user text, assistant reply) pairs per mode
_EXEMPLARS: Dict[QueryType, List[Tuple[str, Dict[str, str]]]] = {
    QueryType.EXECUTE: [
        (
            "list all files",
            {
                "cmd": "ls -a",
                "info": '"ls" with the flag "-a" will list all files, including hidden ones, '
                "in the current directory",
            },
        ),
        (
            "start avidemux",
            {
                "cmd": "avidemux",
                "info": "start the Avidemux video editor, if it is installed on the system and "
                "available for the current user",
            },
        ),
        (
            "print hello world",
            {
                "cmd": 'echo "hello world"',
                "info": '"echo" will print text, while "echo "hello world"" will print your text',
            },
        ),
        (
            "remove the hello world folder",
            {
                "cmd": 'rm -r  "hello world"',
                "info": '"rm" with the "-r" flag will remove the "hello world" folder and its '
                "contents recursively",
            },
        ),
        (
            "move into the hello world folder",
            {
                "cmd": 'cd "hello world"',
                "info": '"cd" will let you change directory to "hello world"',
            },
        ),
        (
            "add /home/user/.local/bin to PATH",
            {
                "cmd": "export PATH=/home/user/.local/bin:PATH",
                "info": '"export" has the ability to add "/some/path" to your PATH environment '
                "variable for the current session. the specified path already exists in your PATH "
                "environment variable since before",
            },
        ),
    ],
    QueryType.QUESTION: [
        (
            "how do I list all files?",
            {
                "info": 'Use the "ls" command to with the "-a" flag to list all files, including '
                "hidden ones, in the current directory."
            },
        ),
        (
            "how do I recursively list all the files?",
            {
                "info": 'Use the "ls" command to with the "-aR" flag to list all files '
                "recursively, including hidden ones, in the current directory."
            },
        ),
        (
            "how do I print hello world?",
            {
                "info": 'Use the "echo" command to print text, and "echo "hello world"" to print '
                "your specified text."
            },
        ),
        (
            "how do I autocomplete commands?",
            {"info": "Press the Tab key to autocomplete commands, file names, and directories."},
        ),
    ],
    QueryType.ERROR: [
        (
            'You executed "start avidemux". Which returned error "avidemux: command not found".',
            {
                "cmd": "sudo install avidemux",
                "info": 'This means that the application "avidemux" was not found. Try installing it.',
            },
        ),
        (
            'You executed "cd "hell word"". Which returned error "cd: hell word: No such file or '
            'directory".',
            {
                "cmd": 'cd "wORLD helloz"',
                "info": 'The error indicates that the "wORLD helloz" directory does not exist. '
                'However, the current directory contains a "hello world" directory we can try '
                "instead.",
            },
        ),
        (
            'You executed "cat "in .sh."". Which returned error "cat: in .sh: No such file or '
            'directory".',
            {
                "cmd": 'cat "install.sh"',
                "info": 'The cat command could not find the "in .sh" file in the current '
                'directory. However, the current directory contains a file called "install.sh".',
            },
        ),
    ],
}


def mode_instruction(mode: QueryType, settings: Settings) -> str:
    """Instruction text for *mode*, honouring overrides from the config file."""
    configured = {
        QueryType.EXECUTE: settings.EXEC_QUERY,
        QueryType.QUESTION: settings.QUESTION_QUERY,
        QueryType.ERROR: settings.ERROR_QUERY,
    }[mode]
    return configured or DEFAULT_INSTRUCTIONS[mode]


def exemplar_turns(mode: QueryType) -> List[UserTurn | AssistantTurn]:
    """The fixed few-shot exchange for *mode*."""
    turns: List[UserTurn | AssistantTurn] = []
    for question, answer in _EXEMPLARS[mode]:
        turns.append(UserTurn(content=question))
        turns.append(AssistantTurn(content=json.dumps(answer)))
    return turns


def distro_info() -> str:
    """Human readable distribution name, ``Unknown`` when it cannot be found."""
    info = ""
    if shutil.which("lsb_release"):
        proc = subprocess.run(
            ["lsb_release", "-ds"], capture_output=True, text=True, errors="replace", check=False
        )
        info = proc.stdout.strip().strip('"')
    if not info:
        try:
            info = platform.freedesktop_os_release().get("PRETTY_NAME", "")
        except OSError:
            info = ""
    return info if len(info) > 1 else "Unknown"


def global_preamble() -> str:
    """Persona and environment description opening every system message."""
    uname = platform.uname()
    parts = (uname.system, uname.release, uname.processor or uname.machine)
    unix_name = " ".join(part for part in parts if part)
    home = os.path.expanduser("~")
    user = os.environ.get("USER", "")
    return (
        f"You are Bash AI (bai) v{VERSION}. You are an advanced Bash shell script. "
        f'You are located at "{sys.argv[0]}". '
        "You do not have feelings or emotions, do not convey them. Please give precise curt answers. "
        "Please do not include any sign off phrases or platitudes, only respond precisely to the user. "
        "Bash AI is made by Hezkore. "
        "You execute the tasks the user asks from you by utilizing the terminal and shell commands. "
        "No task is too big. Always assume the query is terminal and shell related. "
        'You support user plugins called "tools" that extends your capabilities, more info and '
        "plugins can be found on the Bash AI homepage. "
        f'The Bash AI homepage is "{HOMEPAGE}". '
        "You always respond with a single JSON object containing 'cmd' and 'info' fields. "
        "We are always in the terminal. "
        f'The user is using "{unix_name}" and specifically distribution "{distro_info()}". '
        f'The users username is "{user}" with home "{home}". '
        f"You must always use LANG {os.environ.get('LANG', '')} "
        f"and LC_TIME {os.environ.get('LC_TIME', '')}."
    )


def system_message(mode: QueryType, settings: Settings, preamble: str) -> SystemTurn:
    """Opening system turn: the preamble followed by the mode instruction."""
    return SystemTurn(content=f"{preamble} {mode_instruction(mode, settings)}")


def reminder_message(mode: QueryType, settings: Settings) -> SystemTurn:
    """Closing system turn restating the mode instruction and the output ceiling."""
    return SystemTurn(
        content=f"{mode_instruction(mode, settings)} Respond in less than {settings.TOKENS} tokens."
    )
