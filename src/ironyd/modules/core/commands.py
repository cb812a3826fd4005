"""Command table and request loop.

A request is one line of shell-quoted words: ``VERB ARGS... [-- FLAGS...]``.
Each handled request is followed by the ``\\n;;EOT\\n`` frame so the editor
knows the response is complete.
"""

from __future__ import annotations

import logging
import shlex
import sys
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, TextIO

from ...config import ServerConfig
from .completion import MatchStyle
from .errors import CommandError, MalformedCommandLine
from .scratch import ScratchFile
from .session import Irony
from .sexp import END_OF_RESPONSE

logger = logging.getLogger(__name__)

APP_NAME = "ironyd"
FLAGS_SEPARATOR = "--"


class ExitRequested(Exception):
    """Raised by the ``exit`` verb to stop the loop without output."""


@dataclass
class CommandDef:
    name: str
    desc: str
    handler: Callable[["Dispatcher", list[str], list[str]], None]
    min_args: int = 0
    max_args: int | None = 0

    def check_arity(self, positional: list[str]) -> None:
        count = len(positional)
        if count < self.min_args or (self.max_args is not None and count > self.max_args):
            raise CommandError(f"Invalid argument number for {self.name}: {count}")


def split_command_line(line: str) -> list[str]:
    """Split a request line into words; raises MalformedCommandLine."""
    try:
        return shlex.split(line)
    except ValueError as exc:
        raise MalformedCommandLine(f"invalid command line string: {exc}") from None


def split_flags(args: list[str]) -> tuple[list[str], list[str]]:
    """Split ``args`` at the first ``--`` into positional words and flags."""
    if FLAGS_SEPARATOR in args:
        i = args.index(FLAGS_SEPARATOR)
        return args[:i], args[i + 1:]
    return list(args), []


def parse_uint(value: str, what: str) -> int:
    try:
        number = int(value, 0)
    except ValueError:
        raise CommandError(f"{what} isn't an integer: {value!r}") from None
    if number < 0:
        raise CommandError(f"{what} must not be negative: {value!r}")
    return number


def _dump_flags(info: str, file: str, flags: list[str]) -> None:
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("%s: file: %s, flags: %s", info, file, " ".join(f"`{f}`" for f in flags))


def cmd_help(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    d.out.write(usage_text())


def cmd_exit(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    raise ExitRequested()


def cmd_parse(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    file = d.scratch.resolve(args[0])
    _dump_flags("parse", file, flags)
    d.session.parse(file, flags)


def cmd_complete(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    file = d.scratch.resolve(args[0])
    line = parse_uint(args[1], "Line")
    column = parse_uint(args[2], "Column")
    _dump_flags("complete", file, flags)
    d.session.complete(file, line, column, flags)


def cmd_candidates(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    prefix = args[0] if args else ""
    style = MatchStyle.EXACT
    if len(args) > 1:
        try:
            style = MatchStyle.parse(args[1])
        except ValueError as exc:
            raise CommandError(str(exc)) from None
    d.session.candidates(prefix, style)


def cmd_completion_diagnostics(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    d.session.completion_diagnostics()


def cmd_diagnostics(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    d.session.diagnostics()


def cmd_get_type(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    line = parse_uint(args[0], "Line")
    column = parse_uint(args[1], "Column")
    d.session.get_type(line, column)


def cmd_set_unsaved(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    d.session.set_unsaved(d.scratch.resolve(args[0]), args[1])


def cmd_reset_unsaved(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    d.session.reset_unsaved(d.scratch.resolve(args[0]))


def cmd_get_compile_options(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    d.session.get_compile_options(args[0], d.scratch.resolve(args[1]))


def cmd_set_debug(d: "Dispatcher", args: list[str], flags: list[str]) -> None:
    value = args[0].lower()
    if value not in ("on", "off"):
        raise CommandError(f"set-debug expects on or off, got {args[0]!r}")
    d.config.set_debug(value == "on")


COMMANDS = [
    CommandDef("help", "show this message", cmd_help),
    CommandDef(
        "candidates",
        "[PREFIX [exact|case-insensitive|smart-case]] - print completion candidates (require previous complete)",
        cmd_candidates, 0, 2,
    ),
    CommandDef(
        "complete",
        "FILE LINE COL [-- [COMPILE_OPTIONS...]] - perform code completion at a given location",
        cmd_complete, 3, 3,
    ),
    CommandDef(
        "completion-diagnostics",
        "print the diagnostics generated during complete",
        cmd_completion_diagnostics,
    ),
    CommandDef("diagnostics", "print the diagnostics of the last parse", cmd_diagnostics),
    CommandDef("exit", "exit interactive mode, print nothing", cmd_exit),
    CommandDef(
        "get-compile-options",
        "BUILD_DIR FILE - get compile options for FILE from JSON database in BUILD_DIR",
        cmd_get_compile_options, 2, 2,
    ),
    CommandDef("get-type", "LINE COL - get type of symbol at a given location", cmd_get_type, 2, 2),
    CommandDef("parse", "FILE [-- [COMPILE_OPTIONS...]] - parse the given file", cmd_parse, 1, 1),
    CommandDef("reset-unsaved", "FILE - reset FILE, its content is up to date", cmd_reset_unsaved, 1, 1),
    CommandDef("set-debug", "[on|off] - enable or disable verbose logging", cmd_set_debug, 1, 1),
    CommandDef(
        "set-unsaved",
        "FILE UNSAVED - tell the server that UNSAVED contains the effective content of FILE",
        cmd_set_unsaved, 2, 2,
    ),
]

COMMAND_MAP = {cmd.name: cmd for cmd in COMMANDS}


def usage_text() -> str:
    lines = [
        f"usage: {APP_NAME} [OPTIONS...] [COMMAND] [ARGS...]",
        "",
        "Options:",
        "  -v, --version",
        "  -h, --help",
        "  -i, --interactive",
        "  -d, --debug",
        "  --log-file PATH",
        "  --builtin-dir DIR",
        "  --libclang PATH",
        "",
        "Commands:",
    ]
    lines += [f"{cmd.name:<25} {cmd.desc}" for cmd in COMMANDS]
    return "\n".join(lines) + "\n"


def stdin_commands(stream: TextIO) -> Iterator[list[str]]:
    """Yield one word list per non-blank input line."""
    for line in stream:
        if not line.strip():
            continue
        words = split_command_line(line)
        logger.debug("Get cmd %s", words)
        yield words


class Dispatcher:
    """Runs commands against a session and frames the responses."""

    def __init__(
        self,
        session: Irony,
        config: ServerConfig | None = None,
        scratch: ScratchFile | None = None,
        out: TextIO | None = None,
    ) -> None:
        self.session = session
        self.config = config or session.config
        self.scratch = scratch or ScratchFile()
        self._out = out

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    def execute(self, words: list[str]) -> None:
        """Run one command; raises CommandError or ExitRequested."""
        if not words:
            raise CommandError("Empty command")
        cmd = COMMAND_MAP.get(words[0])
        if cmd is None:
            raise CommandError(f"Invalid command '{words[0]}'")
        positional, flags = split_flags(words[1:])
        cmd.check_arity(positional)
        cmd.handler(self, positional, flags)

    def run(self, commands: Iterable[list[str]]) -> int:
        """Process commands until input ends, ``exit`` or an error.

        Returns the process exit status.
        """
        try:
            for words in commands:
                try:
                    self.execute(words)
                except ExitRequested:
                    return 0
                except CommandError as exc:
                    logger.info("Run [%s]: %s", words[0] if words else "", exc)
                    return 1
                self.out.write(END_OF_RESPONSE)
                self.out.flush()
        except MalformedCommandLine as exc:
            logger.info("Invalid input: %s", exc)
            return 1
        return 0
