"""
Engine interface for the C/C++ analysis backend.

The server never talks to libclang directly outside of ``clang_engine``.
Everything else (cache, session, decoder) sees this narrow interface:

- parse / reparse of translation units against a list of overlays
- code completion at a location
- diagnostics of a unit or of a completion set
- type lookup for the cursor at a location
- compile-command lookup from a compilation database

Handles returned by the engine are opaque; callers must hand them back to
``dispose_unit`` / ``dispose_completion`` exactly once.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Protocol, Sequence

# Error codes reported by parse/reparse (CXErrorCode).
ERROR_SUCCESS = 0
ERROR_FAILURE = 1
ERROR_CRASHED = 2
ERROR_INVALID_ARGUMENTS = 3
ERROR_AST_READ = 4

# Translation unit options (CXTranslationUnit_Flags).
TU_DETAILED_PREPROCESSING_RECORD = 0x01
TU_PRECOMPILED_PREAMBLE = 0x04
TU_CACHE_COMPLETION_RESULTS = 0x08
TU_KEEP_GOING = 0x200

# clang_defaultEditingTranslationUnitOptions()
DEFAULT_EDITING_OPTIONS = TU_PRECOMPILED_PREAMBLE | TU_CACHE_COMPLETION_RESULTS

DEFAULT_PARSE_OPTIONS = (
    DEFAULT_EDITING_OPTIONS | TU_DETAILED_PREPROCESSING_RECORD | TU_KEEP_GOING
)

Overlay = tuple[str, str]
UnitHandle = Any
CompletionHandle = Any


class ChunkKind(enum.Enum):
    """Completion chunk kinds, named after CXCompletionChunkKind."""

    OPTIONAL = "Optional"
    TYPED_TEXT = "TypedText"
    TEXT = "Text"
    PLACEHOLDER = "Placeholder"
    INFORMATIVE = "Informative"
    CURRENT_PARAMETER = "CurrentParameter"
    LEFT_PAREN = "LeftParen"
    RIGHT_PAREN = "RightParen"
    LEFT_BRACKET = "LeftBracket"
    RIGHT_BRACKET = "RightBracket"
    LEFT_BRACE = "LeftBrace"
    RIGHT_BRACE = "RightBrace"
    LEFT_ANGLE = "LeftAngle"
    RIGHT_ANGLE = "RightAngle"
    COMMA = "Comma"
    RESULT_TYPE = "ResultType"
    COLON = "Colon"
    SEMI_COLON = "SemiColon"
    EQUAL = "Equal"
    HORIZONTAL_SPACE = "HorizontalSpace"
    VERTICAL_SPACE = "VerticalSpace"


class Availability(enum.Enum):
    AVAILABLE = "available"
    DEPRECATED = "deprecated"
    NOT_AVAILABLE = "not-available"
    NOT_ACCESSIBLE = "not-accessible"


class Severity(enum.IntEnum):
    IGNORED = 0
    NOTE = 1
    WARNING = 2
    ERROR = 3
    FATAL = 4

    @property
    def tag(self) -> str:
        return self.name.lower()


@dataclass
class CompletionChunk:
    kind: ChunkKind
    text: str = ""


@dataclass
class CompletionRecord:
    """One engine completion result.

    Engines may hand out lazier objects with the same attributes; the
    decoder only reads ``availability``, ``priority``, ``brief_comment``
    and iterates ``chunks``.
    """

    priority: int
    availability: Availability = Availability.AVAILABLE
    brief_comment: str = ""
    chunks: Sequence[CompletionChunk] = field(default_factory=list)


@dataclass
class Diagnostic:
    file: str
    line: int
    column: int
    offset: int
    severity: Severity
    message: str


@dataclass
class CompileCommand:
    arguments: list[str]
    directory: str


class Engine(Protocol):
    """Black-box analysis engine."""

    def parse(
        self, file: str, flags: Sequence[str], overlays: Sequence[Overlay], options: int
    ) -> tuple[int, UnitHandle | None]:
        """Parse ``file``; return ``(error_code, handle_or_None)``."""
        ...

    def reparse(self, handle: UnitHandle, overlays: Sequence[Overlay]) -> int:
        ...

    def dispose_unit(self, handle: UnitHandle) -> None:
        ...

    def code_complete(
        self,
        handle: UnitHandle,
        file: str,
        line: int,
        column: int,
        overlays: Sequence[Overlay],
    ) -> CompletionHandle | None:
        ...

    def completion_results(self, results: CompletionHandle) -> list[CompletionRecord]:
        ...

    def completion_diagnostics(self, results: CompletionHandle) -> Iterable[Diagnostic]:
        ...

    def dispose_completion(self, results: CompletionHandle) -> None:
        ...

    def diagnostics(self, handle: UnitHandle) -> Iterator[Diagnostic]:
        ...

    def type_at(
        self, handle: UnitHandle, file: str, line: int, column: int
    ) -> tuple[str, str] | None:
        """Return ``(type, canonical_type)`` spellings, or None for a null cursor."""
        ...

    def compile_commands(self, build_dir: str, file: str) -> list[CompileCommand] | None:
        """None when no compilation database can be loaded from ``build_dir``."""
        ...

    def version(self) -> str:
        ...

    def close(self) -> None:
        """Release the shared index."""
        ...
