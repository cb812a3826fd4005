"""Core server: engine interface, translation unit cache, session, commands.

The libclang engine lives in ``clang_engine`` and is imported on demand so
that the rest of the package works without the native library.
"""

from .completion import Candidate, MatchStyle, decode_candidate, iter_candidates
from .commands import COMMANDS, Dispatcher
from .engine import (
    Availability,
    ChunkKind,
    CompletionChunk,
    CompletionRecord,
    Diagnostic,
    Engine,
    Severity,
)
from .errors import CommandError, IronyError, ParseFailed
from .session import Irony, OverlaySet
from .tu_cache import TranslationUnitCache, TranslationUnitRecord

__all__ = [
    "Availability",
    "COMMANDS",
    "Candidate",
    "ChunkKind",
    "CommandError",
    "CompletionChunk",
    "CompletionRecord",
    "Diagnostic",
    "Dispatcher",
    "Engine",
    "Irony",
    "IronyError",
    "MatchStyle",
    "OverlaySet",
    "ParseFailed",
    "Severity",
    "TranslationUnitCache",
    "TranslationUnitRecord",
    "decode_candidate",
    "iter_candidates",
]
