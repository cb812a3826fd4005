"""
Irony session: the editor-facing state machine.

Holds at most one active translation unit (from ``parse``) and at most one
active completion set (from ``complete``), plus the unsaved buffer overlays
applied to every engine call. Each operation writes its response to ``out``.
"""

from __future__ import annotations

import logging
import sys
from typing import Iterable, Sequence, TextIO

from ...config import ServerConfig
from .completion import MatchStyle, iter_candidates, sort_by_priority
from .engine import CompletionHandle, Diagnostic, Engine, Overlay
from .errors import (
    ParseFailed,
    make_complete_error,
    make_file_read_error,
    make_parse_error,
)
from .sexp import NIL, SUCCESS, quote, sexp_list
from .tu_cache import TranslationUnitCache, TranslationUnitRecord

logger = logging.getLogger(__name__)


class OverlaySet:
    """Unsaved buffer contents keyed by file path."""

    def __init__(self) -> None:
        self._contents: dict[str, str] = {}
        self.pairs: list[Overlay] = []

    def __contains__(self, file: str) -> bool:
        return file in self._contents

    def __len__(self) -> int:
        return len(self._contents)

    def set(self, file: str, content: str) -> None:
        self._contents[file] = content

    def remove(self, file: str) -> bool:
        return self._contents.pop(file, None) is not None

    def rebuild(self) -> list[Overlay]:
        self.pairs = list(self._contents.items())
        return self.pairs


class ActiveCompletion:
    """A completion result set with its records sorted best-first."""

    def __init__(self, handle: CompletionHandle, records: Sequence) -> None:
        self.handle = handle
        self.records = sort_by_priority(records)


class Irony:
    def __init__(
        self,
        engine: Engine,
        config: ServerConfig | None = None,
        out: TextIO | None = None,
    ) -> None:
        self.config = config or ServerConfig()
        self.engine = engine
        self.cache = TranslationUnitCache(
            engine,
            builtin_header_dir=self.config.builtin_header_dir,
            program_name=self.config.program_name,
            attempts=self.config.parse_attempts,
            retry_delay=self.config.retry_delay,
        )
        self.overlays = OverlaySet()
        self.active_parse: TranslationUnitRecord | None = None
        self.active_completion: ActiveCompletion | None = None
        self._out = out

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    def _write(self, text: str) -> None:
        logger.debug("%s", text.rstrip("\n"))
        self.out.write(text)

    def _success(self) -> None:
        self._write(SUCCESS + "\n")

    def _error(self, payload: str) -> None:
        logger.info("%s", payload)
        self._write(payload + "\n")

    def reset_active(self) -> None:
        """Drop the active completion set, then the active translation unit."""
        if self.active_completion is not None:
            self.engine.dispose_completion(self.active_completion.handle)
        if self.active_parse is not None:
            self.cache.dispose(self.active_parse)
        self.active_completion = None
        self.active_parse = None

    def dispose(self) -> None:
        self.reset_active()
        self.cache.teardown()

    # -- unsaved buffers ---------------------------------------------------

    def set_unsaved(self, file: str, source: str) -> None:
        try:
            with open(source, encoding="utf-8", errors="replace") as f:
                content = f.read()
        except OSError as exc:
            logger.debug("set-unsaved: cannot read %s: %s", source, exc)
            self.overlays.remove(file)
            self._error(make_file_read_error(file, source))
        else:
            self.overlays.set(file, content)
            self._success()
        self.overlays.rebuild()

    def reset_unsaved(self, file: str) -> None:
        self.reset_active()
        if self.overlays.remove(file):
            self.overlays.rebuild()
        self._success()

    # -- parsing -----------------------------------------------------------

    def parse(self, file: str, flags: Sequence[str]) -> None:
        self.reset_active()
        try:
            record = self.cache.parse(file, flags, self.overlays.pairs)
        except ParseFailed as exc:
            logger.debug("%s", exc)
            self._error(make_parse_error(file))
            return
        self.active_parse = record
        logger.debug("Parse %s done", file)
        self._success()

    def _write_diagnostics(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._write("(\n")
        for diag in diagnostics:
            self._write(
                f"({quote(diag.file)} {diag.line} {diag.column} {diag.offset} "
                f"{diag.severity.tag} {quote(diag.message)})\n"
            )
        self._write(")\n")

    def diagnostics(self) -> None:
        if self.active_parse is None:
            logger.info("No active tu")
            self._write_diagnostics([])
            return
        self._write_diagnostics(self.engine.diagnostics(self.active_parse.handle))

    def get_type(self, line: int, column: int) -> None:
        if self.active_parse is None:
            logger.warning("get-type: parse wasn't called")
            self._write(NIL)
            return
        record = self.active_parse
        types = self.engine.type_at(record.handle, record.file, line, column)
        if types is None:
            self._write(NIL)
            return
        spelling, canonical = types
        spellings = []
        if spelling:
            spellings.append(spelling)
            if canonical and canonical != spelling:
                spellings.append(canonical)
        self._write(sexp_list(spellings))

    # -- completion --------------------------------------------------------

    def complete(self, file: str, line: int, column: int, flags: Sequence[str]) -> None:
        self.reset_active()
        overlays = self.overlays.pairs
        handle = None
        try:
            record = self.cache.gen_tu(file, flags, overlays)
        except ParseFailed as exc:
            logger.debug("%s", exc)
        else:
            try:
                handle = self.engine.code_complete(record.handle, file, line, column, overlays)
            finally:
                self.cache.dispose(record)
        if handle is None:
            self._error(make_complete_error(file, line, column))
            return
        self.active_completion = ActiveCompletion(
            handle, self.engine.completion_results(handle)
        )
        logger.debug(
            "Complete %s:%d:%d, %d results",
            file, line, column, len(self.active_completion.records),
        )
        self._success()

    def candidates(self, prefix: str = "", style: MatchStyle = MatchStyle.EXACT) -> None:
        if self.active_completion is None:
            self._write(NIL + "\n")
            return
        self._write("(\n")
        for candidate in iter_candidates(self.active_completion.records, prefix, style):
            self._write("  " + candidate.to_sexp() + "\n")
        self._write(")")

    def completion_diagnostics(self) -> None:
        if self.active_completion is None:
            self._write_diagnostics([])
            return
        self._write_diagnostics(
            self.engine.completion_diagnostics(self.active_completion.handle)
        )

    # -- compilation database ----------------------------------------------

    def get_compile_options(self, build_dir: str, file: str) -> None:
        commands = self.engine.compile_commands(build_dir, file)
        if commands is None:
            self._write(NIL)
            return
        for command in commands:
            self._write(" ".join(quote(arg) for arg in command.arguments) + "\n")
            self._write(quote(command.directory) + "\n")
