"""Completion candidate decoding and filtering.

An engine completion result is a list of typed chunks. ``decode_candidate``
flattens it into a ``Candidate``:

    add(int x, int y)        prototype
    ^^^                      typed_text, annotation_start = 3
       (int x, int y)        post_completion_text
        [1,6) [8,13)         placeholder_spans

Optional chunks (default arguments and the like) are dropped, not expanded.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from .engine import Availability, ChunkKind, CompletionRecord
from .sexp import quote

PUNCTUATION = {
    ChunkKind.LEFT_PAREN: "(",
    ChunkKind.RIGHT_PAREN: ")",
    ChunkKind.LEFT_BRACKET: "[",
    ChunkKind.RIGHT_BRACKET: "]",
    ChunkKind.LEFT_BRACE: "{",
    ChunkKind.RIGHT_BRACE: "}",
    ChunkKind.LEFT_ANGLE: "<",
    ChunkKind.RIGHT_ANGLE: ">",
    ChunkKind.COMMA: ", ",
    ChunkKind.COLON: ":",
    ChunkKind.SEMI_COLON: ";",
    ChunkKind.EQUAL: "=",
    ChunkKind.HORIZONTAL_SPACE: " ",
    ChunkKind.VERTICAL_SPACE: "\n",
}

PROTOTYPE_TEXT = {
    ChunkKind.TYPED_TEXT,
    ChunkKind.TEXT,
    ChunkKind.PLACEHOLDER,
    ChunkKind.INFORMATIVE,
    ChunkKind.CURRENT_PARAMETER,
}

PLACEHOLDERS = {ChunkKind.PLACEHOLDER, ChunkKind.CURRENT_PARAMETER}


class MatchStyle(enum.Enum):
    EXACT = "exact"
    CASE_INSENSITIVE = "case-insensitive"
    SMART_CASE = "smart-case"

    @classmethod
    def parse(cls, value: str) -> "MatchStyle":
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"unknown match style: {value}") from None


@dataclass
class Candidate:
    typed_text: str
    priority: int
    result_type: str = ""
    brief_comment: str = ""
    prototype: str = ""
    annotation_start: int = 0
    post_completion_text: str = ""
    placeholder_spans: list[int] = field(default_factory=list)
    availability: Availability = Availability.AVAILABLE

    def to_sexp(self) -> str:
        post = " ".join([quote(self.post_completion_text), *map(str, self.placeholder_spans)])
        return (
            f"({quote(self.typed_text)} {self.priority} {quote(self.result_type)} "
            f"{quote(self.brief_comment)} {quote(self.prototype)} {self.annotation_start} "
            f"({post}) {self.availability.value})"
        )


def decode_candidate(record: CompletionRecord) -> Candidate | None:
    """Flatten one completion result; None when it is unusable."""
    if record.availability is Availability.NOT_AVAILABLE:
        return None

    typed_text: str | None = None
    result_type = ""
    prototype = ""
    annotation_start = 0
    post = ""
    spans: list[int] = []

    for chunk in record.chunks:
        kind = chunk.kind
        literal = PUNCTUATION.get(kind)
        if kind is ChunkKind.RESULT_TYPE:
            result_type = chunk.text
        elif kind in PROTOTYPE_TEXT:
            prototype += chunk.text
        elif literal is not None:
            prototype += literal

        if typed_text is not None:
            if literal is not None:
                post += literal
            elif kind in (ChunkKind.TEXT, ChunkKind.TYPED_TEXT):
                post += chunk.text
            elif kind in PLACEHOLDERS:
                spans.append(len(post))
                post += chunk.text
                spans.append(len(post))
        elif kind is ChunkKind.TYPED_TEXT:
            typed_text = chunk.text
            annotation_start = len(prototype)

    if typed_text is None:
        return None
    return Candidate(
        typed_text=typed_text,
        priority=record.priority,
        result_type=result_type,
        brief_comment=record.brief_comment or "",
        prototype=prototype,
        annotation_start=annotation_start,
        post_completion_text=post,
        placeholder_spans=spans,
        availability=record.availability,
    )


def prefix_matcher(prefix: str, style: MatchStyle):
    """Return a predicate over typed text for the given prefix and style."""
    if not prefix:
        return lambda text: True
    if style is MatchStyle.SMART_CASE:
        style = (
            MatchStyle.EXACT
            if any(ch.isupper() for ch in prefix)
            else MatchStyle.CASE_INSENSITIVE
        )
    if style is MatchStyle.CASE_INSENSITIVE:
        folded = prefix.casefold()
        return lambda text: text.casefold().startswith(folded)
    return lambda text: text.startswith(prefix)


def iter_candidates(
    records: Iterable[CompletionRecord],
    prefix: str = "",
    style: MatchStyle = MatchStyle.EXACT,
) -> Iterator[Candidate]:
    """Decode and filter completion results, preserving their order."""
    matches = prefix_matcher(prefix, style)
    for record in records:
        candidate = decode_candidate(record)
        if candidate is None or not matches(candidate.typed_text):
            continue
        yield candidate


def sort_by_priority(records: Iterable[CompletionRecord]) -> list[CompletionRecord]:
    """Best (numerically lowest) priority first; ties keep engine order."""
    return sorted(records, key=lambda record: record.priority)
