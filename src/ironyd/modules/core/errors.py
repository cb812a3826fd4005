"""
Irony error kinds and exceptions.

Error kinds reported to the editor as ``(error . (KIND "message" ...))``:
- file-read-error: unsaved buffer source could not be read
- parse-error: no usable translation unit after retries, or reparse failed
- complete-error: no translation unit or no completion results

Exceptions:
- ParseFailed: raised by the translation unit cache, turned into parse-error
  or complete-error by the session
- CommandError: bad verb, argument count or argument value; ends the
  command loop
"""

from .sexp import quote

ERR_FILE_READ = "file-read-error"
ERR_PARSE = "parse-error"
ERR_COMPLETE = "complete-error"


class IronyError(Exception):
    """Base class for server errors."""


class ParseFailed(IronyError):
    """The engine did not produce a usable translation unit."""

    def __init__(self, file: str, code: int, reason: str = "parse") -> None:
        super().__init__(f"{reason} failed for {file} (error {code})")
        self.file = file
        self.code = code
        self.reason = reason


class CommandError(IronyError):
    """Invalid command, argument count or argument value."""


class MalformedCommandLine(CommandError):
    """Unbalanced quotes or a dangling escape in a command line."""


def make_error(kind: str, message: str, *args: str | int) -> str:
    """Render an error payload, e.g. ``(error . (parse-error "msg" "f.c"))``."""
    parts = [kind, quote(message)]
    for arg in args:
        parts.append(quote(arg) if isinstance(arg, str) else str(arg))
    return "(error . (" + " ".join(parts) + "))"


def make_file_read_error(file: str, source: str) -> str:
    return make_error(ERR_FILE_READ, "failed to read unsaved buffer", file, source)


def make_parse_error(file: str) -> str:
    return make_error(ERR_PARSE, "failed to parse file", file)


def make_complete_error(file: str, line: int, column: int) -> str:
    return make_error(ERR_COMPLETE, "failed to perform code completion", file, line, column)
