"""libclang-backed engine.

Wraps ``clang.cindex``. Parse and reparse go through the raw C entry points
because the Python bindings hide their error codes, and the cache needs to
tell a crash (retried) from any other failure (reported).

Native objects are kept in handle tables keyed by integers. Disposing a
handle drops the table entry; cindex frees the native object when its last
Python reference goes away.
"""

from __future__ import annotations

import itertools
import logging
from ctypes import POINTER, Structure, byref, c_char_p, c_int, c_uint, c_ulong, c_void_p
from typing import Iterator, Sequence

from clang.cindex import (
    CompilationDatabase,
    CompilationDatabaseError,
    Cursor,
    File,
    Index,
    SourceLocation,
    TranslationUnit,
    _CXString,
    c_object_p,
    conf,
)

from .engine import (
    ERROR_FAILURE,
    ERROR_SUCCESS,
    Availability,
    ChunkKind,
    CompileCommand,
    Diagnostic,
    Overlay,
    Severity,
)

logger = logging.getLogger(__name__)

REPARSE_NONE = 0


def _kind_key(kind) -> str:
    # "NotAvailable" (older bindings) and "NOT_AVAILABLE" (enum based) both
    # reduce to "notavailable".
    name = getattr(kind, "name", None) or str(kind)
    return name.replace("_", "").lower()


_AVAILABILITY = {
    "available": Availability.AVAILABLE,
    "deprecated": Availability.DEPRECATED,
    "notavailable": Availability.NOT_AVAILABLE,
    "notaccessible": Availability.NOT_ACCESSIBLE,
}

_CHUNK_KINDS = {_kind_key(kind.value): kind for kind in ChunkKind}


class _UnsavedFile(Structure):
    _fields_ = [("Filename", c_char_p), ("Contents", c_char_p), ("Length", c_ulong)]


def _unsaved_array(overlays: Sequence[Overlay]):
    if not overlays:
        return None, 0
    array = (_UnsavedFile * len(overlays))()
    for slot, (name, content) in zip(array, overlays):
        data = content.encode("utf-8")
        slot.Filename = name.encode("utf-8")
        slot.Contents = data
        slot.Length = len(data)
    return array, len(overlays)


def _parse_function():
    fn = conf.lib.clang_parseTranslationUnit2FullArgv
    fn.argtypes = [
        c_void_p,
        c_char_p,
        POINTER(c_char_p),
        c_int,
        POINTER(_UnsavedFile),
        c_uint,
        c_uint,
        POINTER(c_object_p),
    ]
    fn.restype = c_int
    return fn


def _to_diagnostic(diag) -> Diagnostic:
    location = diag.location
    file = location.file
    if file is None:
        name, line, column, offset = "", 0, 0, 0
    else:
        name, line, column, offset = file.name, location.line, location.column, location.offset
    try:
        severity = Severity(diag.severity)
    except ValueError:
        severity = Severity.IGNORED
    return Diagnostic(name, line, column, offset, severity, diag.spelling)


class ClangChunk:
    __slots__ = ("kind", "text")

    def __init__(self, chunk) -> None:
        self.kind = _CHUNK_KINDS[_kind_key(chunk.kind)]
        self.text = chunk.spelling or ""


class ClangCompletion:
    """Lazy view of one cindex completion result."""

    __slots__ = ("_string",)

    def __init__(self, result) -> None:
        self._string = result.string

    @property
    def priority(self) -> int:
        return self._string.priority

    @property
    def availability(self) -> Availability:
        return _AVAILABILITY.get(_kind_key(self._string.availability), Availability.AVAILABLE)

    @property
    def brief_comment(self) -> str:
        return self._string.briefComment or ""

    @property
    def chunks(self) -> Iterator[ClangChunk]:
        for i in range(len(self._string)):
            yield ClangChunk(self._string[i])


class ClangEngine:
    def __init__(self, library_file: str | None = None) -> None:
        if library_file and not conf.loaded:
            conf.set_library_file(library_file)
        self._index = Index.create()
        self._parse2 = _parse_function()
        self._ids = itertools.count(1)
        self._units: dict[int, TranslationUnit] = {}
        self._completions: dict[int, object] = {}

    def parse(self, file, flags, overlays, options):
        argv = (c_char_p * len(flags))(*(flag.encode("utf-8") for flag in flags))
        unsaved, count = _unsaved_array(overlays)
        tu_ptr = c_object_p()
        code = self._parse2(
            self._index.obj,
            file.encode("utf-8"),
            argv,
            len(flags),
            unsaved,
            count,
            options,
            byref(tu_ptr),
        )
        if not tu_ptr:
            return (code if code != ERROR_SUCCESS else ERROR_FAILURE), None
        handle = next(self._ids)
        self._units[handle] = TranslationUnit(tu_ptr, self._index)
        return code, handle

    def reparse(self, handle, overlays) -> int:
        unsaved, count = _unsaved_array(overlays)
        return conf.lib.clang_reparseTranslationUnit(
            self._units[handle], count, unsaved, REPARSE_NONE
        )

    def dispose_unit(self, handle) -> None:
        self._units.pop(handle, None)

    def code_complete(self, handle, file, line, column, overlays):
        results = self._units[handle].codeComplete(
            file,
            line,
            column,
            unsaved_files=list(overlays),
            include_macros=True,
            include_code_patterns=False,
            include_brief_comments=True,
        )
        if results is None:
            return None
        key = next(self._ids)
        self._completions[key] = results
        return key

    def completion_results(self, results) -> list[ClangCompletion]:
        ccr = self._completions[results].results
        return [ClangCompletion(ccr[i]) for i in range(len(ccr))]

    def completion_diagnostics(self, results) -> list[Diagnostic]:
        return [_to_diagnostic(d) for d in self._completions[results].diagnostics]

    def dispose_completion(self, results) -> None:
        self._completions.pop(results, None)

    def diagnostics(self, handle) -> Iterator[Diagnostic]:
        for diag in self._units[handle].diagnostics:
            yield _to_diagnostic(diag)

    def type_at(self, handle, file, line, column):
        tu = self._units[handle]
        location = SourceLocation.from_position(tu, File.from_name(tu, file), line, column)
        cursor = Cursor.from_location(tu, location)
        # clang_getCursor hands back the null cursor rather than None
        if cursor is None or cursor == conf.lib.clang_getNullCursor():
            return None
        cursor_type = cursor.type
        return cursor_type.spelling, cursor_type.get_canonical().spelling

    def compile_commands(self, build_dir, file):
        try:
            database = CompilationDatabase.fromDirectory(build_dir)
        except CompilationDatabaseError as exc:
            logger.debug("No compilation database in %s: %s", build_dir, exc)
            return None
        commands = database.getCompileCommands(file) or []
        return [CompileCommand(list(cmd.arguments), cmd.directory) for cmd in commands]

    def version(self) -> str:
        fn = conf.lib.clang_getClangVersion
        fn.argtypes = []
        fn.restype = _CXString
        fn.errcheck = _CXString.from_result
        return fn()

    def close(self) -> None:
        self._completions.clear()
        self._units.clear()
        self._index = None
