"""Shared fixtures: a scripted in-memory engine standing in for libclang."""
import io
import itertools

import pytest

from ironyd.config import ServerConfig
from ironyd.modules.core.engine import (
    ERROR_SUCCESS,
    Availability,
    ChunkKind,
    CompileCommand,
    CompletionChunk,
    CompletionRecord,
    Diagnostic,
    Severity,
)
from ironyd.modules.core.session import Irony


class FakeEngine:
    """Records every call; outcomes are scripted through plain attributes."""

    def __init__(self) -> None:
        self.parse_codes: list[int] = []
        self.reparse_codes: list[int] = []
        self.parse_calls: list[tuple] = []
        self.reparse_calls: list[tuple] = []
        self.complete_calls: list[tuple] = []
        self.events: list[tuple] = []
        self.live_units: dict[int, str] = {}
        self.live_completions: set[int] = set()
        self.completion_records: list[CompletionRecord] | None = []
        self.completion_diags: list[Diagnostic] = []
        self.unit_diagnostics: list[Diagnostic] = []
        self.types: dict[tuple[int, int], tuple[str, str]] = {}
        self.compile_db: dict[str, list[CompileCommand]] = {}
        self.closed = False
        self._ids = itertools.count(1)

    def parse(self, file, flags, overlays, options):
        self.parse_calls.append((file, list(flags), list(overlays), options))
        code = self.parse_codes.pop(0) if self.parse_codes else ERROR_SUCCESS
        if code != ERROR_SUCCESS:
            return code, None
        handle = next(self._ids)
        self.live_units[handle] = file
        self.events.append(("parse", handle))
        return code, handle

    def reparse(self, handle, overlays):
        assert handle in self.live_units
        self.reparse_calls.append((handle, list(overlays)))
        return self.reparse_codes.pop(0) if self.reparse_codes else ERROR_SUCCESS

    def dispose_unit(self, handle):
        assert handle in self.live_units, f"unit {handle} released twice"
        del self.live_units[handle]
        self.events.append(("dispose_unit", handle))

    def code_complete(self, handle, file, line, column, overlays):
        assert handle in self.live_units
        self.complete_calls.append((handle, file, line, column, list(overlays)))
        if self.completion_records is None:
            return None
        key = next(self._ids)
        self.live_completions.add(key)
        return key

    def completion_results(self, results):
        assert results in self.live_completions
        return list(self.completion_records)

    def completion_diagnostics(self, results):
        return list(self.completion_diags)

    def dispose_completion(self, results):
        self.live_completions.remove(results)
        self.events.append(("dispose_completion", results))

    def diagnostics(self, handle):
        assert handle in self.live_units
        return iter(self.unit_diagnostics)

    def type_at(self, handle, file, line, column):
        return self.types.get((line, column))

    def compile_commands(self, build_dir, file):
        if build_dir not in self.compile_db:
            return None
        return self.compile_db[build_dir]

    def version(self):
        return "fake clang version 0"

    def close(self):
        self.closed = True


def chunk(kind: ChunkKind, text: str = "") -> CompletionChunk:
    return CompletionChunk(kind, text)


def function_record(name: str, priority: int = 50, availability=Availability.AVAILABLE):
    """Completion record for ``int name(int x)``."""
    return CompletionRecord(
        priority=priority,
        availability=availability,
        chunks=[
            chunk(ChunkKind.RESULT_TYPE, "int"),
            chunk(ChunkKind.TYPED_TEXT, name),
            chunk(ChunkKind.LEFT_PAREN),
            chunk(ChunkKind.PLACEHOLDER, "int x"),
            chunk(ChunkKind.RIGHT_PAREN),
        ],
    )


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def config():
    return ServerConfig(retry_delay=0)


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def session(engine, config, out):
    return Irony(engine, config, out=out)


@pytest.fixture
def make_diagnostic():
    def factory(message="expected ';'", severity=Severity.ERROR, file="main.c"):
        return Diagnostic(file, 3, 7, 42, severity, message)
    return factory


@pytest.fixture
def make_record():
    return function_record
