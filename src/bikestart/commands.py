"""
Command definitions and auto-completion for REPL.

The REPL only knows a handful of argument-less commands, so completion
works on the first word alone.
"""

from dataclasses import dataclass
from typing import Any, List

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document


@dataclass
class Command:
    """Command definition with metadata."""

    name: str
    aliases: List[str]
    description: str
    usage: str
    handler: str


COMMANDS = [
    Command(
        name="enable",
        aliases=["e", "start"],
        description="Scan for the motorcycle and run the start sequence",
        usage="enable",
        handler="cmd_enable",
    ),
    Command(
        name="disable",
        aliases=["d", "stop"],
        description="Stop scanning and disconnect",
        usage="disable",
        handler="cmd_disable",
    ),
    Command(
        name="status",
        aliases=["st"],
        description="Show connection state and flags",
        usage="status",
        handler="cmd_status",
    ),
    Command(
        name="info",
        aliases=["i"],
        description="Show device configuration",
        usage="info",
        handler="cmd_info",
    ),
    Command(
        name="help",
        aliases=["h", "?"],
        description="Show all available commands",
        usage="help",
        handler="cmd_help",
    ),
    Command(
        name="quit",
        aliases=["q", "exit"],
        description="Exit the REPL",
        usage="quit",
        handler="cmd_quit",
    ),
]


_BY_NAME = {
    alias: cmd for cmd in COMMANDS for alias in [cmd.name, *cmd.aliases]
}


def get_command(name: str) -> Command | None:
    """Look up a command by name or alias (case-insensitive)."""
    return _BY_NAME.get(name.lower())


class CommandCompleter(Completer):
    """Completes the command word, showing each command's description."""

    def get_completions(self, document: Document, complete_event) -> Any:  # type: ignore[no-untyped-def]
        word = document.text_before_cursor.lstrip()

        # Commands take no arguments, so only the first word completes
        if not word or " " in word:
            return

        partial = word.lower()
        for name in sorted(_BY_NAME):
            if name.startswith(partial):
                yield Completion(
                    name,
                    start_position=-len(word),
                    display_meta=_BY_NAME[name].description,
                )
